import logging
from dataclasses import dataclass

import pandas as pd
from config import FUNDING_SOURCES, REGION_NAMES
from filters import funding_total

logger = logging.getLogger(__name__)


@dataclass
class RegionAggregates:
    """
    Per-region rollup of a filtered record set.

    - regions: index state, columns event_count, funding
    - types: one row per (state, incident_type) with count and funding
    - excluded: records whose region is not recognized, kept for diagnostics
    """
    regions: pd.DataFrame
    types: pd.DataFrame
    excluded: pd.DataFrame

    def funding_values(self) -> list[float]:
        return self.regions["funding"].tolist()


def aggregate_by_region(df: pd.DataFrame, sources, regions=REGION_NAMES) -> RegionAggregates:
    work = df[["state", "incident_type"]].copy()
    work["funding"] = funding_total(df, sources)

    work = work[work["state"].str.len() > 0]
    recognized = work["state"].isin(set(regions))

    excluded = (
        work.loc[~recognized]
        .groupby("state", as_index=False)
        .agg(event_count=("funding", "size"), funding=("funding", "sum"))
    )
    if not excluded.empty:
        logger.debug(
            "Excluded %d unrecognized region(s) from the rollup: %s",
            len(excluded),
            dict(zip(excluded["state"], excluded["funding"])),
        )

    work = work.loc[recognized]
    by_region = (
        work.groupby("state")
        .agg(event_count=("funding", "size"), funding=("funding", "sum"))
        .sort_index()
    )

    typed = work[work["incident_type"].str.len() > 0]
    by_type = (
        typed.groupby(["state", "incident_type"], as_index=False)
        .agg(count=("funding", "size"), funding=("funding", "sum"))
        .sort_values(["state", "funding"], ascending=[True, False], kind="stable")
        .reset_index(drop=True)
    )

    return RegionAggregates(regions=by_region, types=by_type, excluded=excluded)


def region_breakdown(df: pd.DataFrame, state: str, sources) -> dict[str, float]:
    """Funding per selected source for one region (map hover text)."""
    in_region = df[df["state"] == state]
    return {
        s: float(in_region[FUNDING_SOURCES[s][0]].sum())
        for s in FUNDING_SOURCES
        if s in set(sources)
    }


def funding_by_source(df: pd.DataFrame, sources=tuple(FUNDING_SOURCES)) -> pd.DataFrame:
    rows = [
        {"source": s, "label": FUNDING_SOURCES[s][1], "amount": float(df[FUNDING_SOURCES[s][0]].sum())}
        for s in sources
    ]
    return pd.DataFrame(rows, columns=["source", "label", "amount"])


def monthly_funding(df: pd.DataFrame, sources=tuple(FUNDING_SOURCES)) -> pd.DataFrame:
    """Monthly event count and funding for dated records that carry any funding."""
    total = funding_total(df, sources)
    dated = df.loc[df["incident_start"].notna() & (total > 0), ["incident_start"]].copy()
    dated["funding"] = total
    dated["month"] = dated["incident_start"].dt.to_period("M").dt.to_timestamp()

    return (
        dated.groupby("month", as_index=False)
        .agg(count=("funding", "size"), funding=("funding", "sum"))
        .sort_values("month")
        .reset_index(drop=True)
    )


def date_span(df: pd.DataFrame) -> dict | None:
    dates = df["incident_start"].dropna()
    if dates.empty:
        return None
    return {
        "earliest": dates.min(),
        "latest": dates.max(),
        "total_records": len(df),
        "records_with_dates": len(dates),
    }
