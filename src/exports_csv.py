import logging
from pathlib import Path

import pandas as pd
from config import REGION_ROLLUP_CSV, region_name

logger = logging.getLogger(__name__)


def prepare_export(df: pd.DataFrame) -> pd.DataFrame:
    """The filtered view as it is downloaded: same columns, region codes replaced by full names."""
    out = df.copy()
    out["state"] = out["state"].map(region_name)
    for col in ["incident_start", "declaration_date"]:
        if col in out.columns and pd.api.types.is_datetime64_any_dtype(out[col]):
            out[col] = out[col].dt.strftime("%Y-%m-%d")
    return out


def export_filtered_csv(df: pd.DataFrame, path=None) -> str:
    """
    Render the filtered records as CSV text (what the download button serves)
    and, when a path is given, also write it to disk.
    """
    csv_text = prepare_export(df).to_csv(index=False)
    if path is not None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(csv_text)
        logger.info("Wrote %d filtered rows to %s", len(df), path)
    return csv_text


def export_region_rollup(regions: pd.DataFrame, path=REGION_ROLLUP_CSV) -> pd.DataFrame:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    rollup = regions.reset_index()
    rollup.insert(1, "state_name", rollup["state"].map(region_name))
    rollup = rollup.sort_values("funding", ascending=False, kind="stable")
    rollup.to_csv(path, index=False)
    return rollup
