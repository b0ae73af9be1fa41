import logging
import math
import re

import numpy as np
import pandas as pd
from config import FUNDING_COLUMNS, RECORDS_CSV, DISTRICTS_CSV

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["incident_start", "incident_type", "state", "event", "incident_number"]
TEXT_COLUMNS = ["incident_type", "state", "event"]
DATE_COLUMNS = ["incident_start", "declaration_date"]
OPTIONAL_NUMERIC = ["ihp_applicants", "ihp_average_award"]

FRN_TRANCHES = 4
FRN_GRANTEES = 9

DISTRICT_NUMERIC = ["district_number", "total_applicants", "total_funding", "funding_per_applicant"]

# Leading float prefix, the same text JavaScript's parseFloat would accept
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def normalize_amount(value) -> float:
    """Coerce one funding cell to a finite, non-negative float.

    Unparseable funding is absent funding: blanks, junk strings, None and NaN
    all become 0.0. Nothing here raises.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        match = _FLOAT_PREFIX.match(value.strip())
        if match is None:
            return 0.0
        value = float(match.group(0))
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def load_raw_records(path: str | None = None) -> pd.DataFrame:
    csv_path = path if path is not None else RECORDS_CSV
    df = pd.read_csv(csv_path, low_memory=False, dtype={"state": str, "incident_number": str})
    df.columns = [c.strip() for c in df.columns]
    return df


def check_required_columns(df: pd.DataFrame) -> None:
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise KeyError(f"Missing required column(s) {missing}. Available={list(df.columns)}")


def normalize_records(df: pd.DataFrame) -> pd.DataFrame:
    """Apply the load-time normalization once so downstream code can trust types."""
    df = df.copy()

    for col in FUNDING_COLUMNS:
        if col in df.columns:
            df[col] = df[col].map(normalize_amount).astype(float)
        else:
            df[col] = 0.0

    for col in OPTIONAL_NUMERIC:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
        else:
            df[col] = np.nan

    for col in DATE_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], errors="coerce")
        else:
            df[col] = pd.NaT

    for col in TEXT_COLUMNS:
        df[col] = df[col].fillna("").astype(str).str.strip()
    df["state"] = df["state"].str.upper()

    df["incident_number"] = (
        df["incident_number"].fillna("").astype(str).str.strip().str.replace(r"\.0$", "", regex=True)
    )

    return df


def extract_grantees(df: pd.DataFrame) -> pd.DataFrame:
    """
    Build the CDBG-DR recipient table: one row per (record, tranche, grantee)
    from the frn{n}_date / frn{n}_grantee{k}_name / frn{n}_grantee{k}_amount columns.
    """
    out_cols = ["incident_number", "state", "event", "tranche", "tranche_date", "grantee", "name", "amount"]
    frames = []
    for tranche in range(1, FRN_TRANCHES + 1):
        date_col = f"frn{tranche}_date"
        for grantee in range(1, FRN_GRANTEES + 1):
            name_col = f"frn{tranche}_grantee{grantee}_name"
            amount_col = f"frn{tranche}_grantee{grantee}_amount"
            if name_col not in df.columns:
                continue

            part = df[["incident_number", "state", "event"]].copy()
            part["tranche"] = tranche
            part["tranche_date"] = (
                pd.to_datetime(df[date_col], errors="coerce") if date_col in df.columns else pd.NaT
            )
            part["grantee"] = grantee
            part["name"] = df[name_col].fillna("").astype(str).str.strip()
            part["amount"] = (
                df[amount_col].map(normalize_amount).astype(float) if amount_col in df.columns else 0.0
            )
            frames.append(part[part["name"].str.len() > 0])

    if not frames:
        return pd.DataFrame(columns=out_cols)

    grantees = pd.concat(frames, ignore_index=True)
    return grantees.sort_values(["incident_number", "tranche", "grantee"]).reset_index(drop=True)[out_cols]


def load_records(path: str | None = None) -> pd.DataFrame:
    df = load_raw_records(path)
    check_required_columns(df)
    df = normalize_records(df)
    logger.info("Loaded %d disaster records (%d with a start date)", len(df), df["incident_start"].notna().sum())
    return df


def load_districts(path: str | None = None) -> pd.DataFrame:
    csv_path = path if path is not None else DISTRICTS_CSV
    districts = pd.read_csv(csv_path, low_memory=False)
    districts.columns = [c.strip() for c in districts.columns]

    if "state_name" not in districts.columns:
        raise KeyError(f"District file needs a 'state_name' column; got {list(districts.columns)}")

    for col in DISTRICT_NUMERIC:
        if col in districts.columns:
            districts[col] = pd.to_numeric(districts[col], errors="coerce")
        else:
            districts[col] = np.nan
    for col in ["district_label", "representative", "party"]:
        if col not in districts.columns:
            districts[col] = ""
        districts[col] = districts[col].fillna("").astype(str).str.strip()
    districts["state_name"] = districts["state_name"].fillna("").astype(str).str.strip()

    keep = (
        (districts["state_name"].str.len() > 0)
        & districts["district_number"].notna()
        & (districts["total_funding"].fillna(0) != 0)
    )
    districts = districts.loc[keep].reset_index(drop=True)
    logger.info("Loaded %d congressional district rows", len(districts))
    return districts


def build_base(path: str | None = None) -> tuple[pd.DataFrame, pd.DataFrame]:
    df = load_records(path)
    grantees = extract_grantees(df)
    return df, grantees
