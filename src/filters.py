from dataclasses import dataclass, field

import pandas as pd
from config import FUNDING_SOURCES, TERRITORIES, region_name


@dataclass(frozen=True)
class FilterCriteria:
    """User-selected view state. Empty states/types mean "all"; empty funding sources mean "none"."""
    start_year: int
    start_month: int
    end_year: int
    end_month: int
    states: frozenset = field(default_factory=frozenset)
    include_territories: bool = False
    disaster_types: frozenset = field(default_factory=frozenset)
    funding_sources: frozenset = field(default_factory=lambda: frozenset(FUNDING_SOURCES))

    @property
    def start_date(self) -> pd.Timestamp:
        return pd.Timestamp(year=self.start_year, month=self.start_month, day=1)

    @property
    def end_date(self) -> pd.Timestamp:
        # Last day of the end month
        return pd.Timestamp(year=self.end_year, month=self.end_month, day=1) + pd.offsets.MonthEnd(0)


def funding_total(df: pd.DataFrame, sources) -> pd.Series:
    """Per-row sum of the selected funding sources only."""
    cols = [FUNDING_SOURCES[s][0] for s in FUNDING_SOURCES if s in set(sources)]
    if not cols:
        return pd.Series(0.0, index=df.index)
    return df[cols].sum(axis=1)


def date_mask(df: pd.DataFrame, criteria: FilterCriteria) -> pd.Series:
    start = df["incident_start"].dt.normalize()
    return start.notna() & (start >= criteria.start_date) & (start <= criteria.end_date)


def region_mask(df: pd.DataFrame, criteria: FilterCriteria) -> pd.Series:
    # Territories are governed by the include_territories toggle alone; an empty
    # state selection means every state
    is_territory = df["state"].isin(TERRITORIES)
    if not criteria.states:
        return ~is_territory | criteria.include_territories
    return df["state"].isin(criteria.states) | (is_territory & criteria.include_territories)


def type_mask(df: pd.DataFrame, criteria: FilterCriteria) -> pd.Series:
    if not criteria.disaster_types:
        return pd.Series(True, index=df.index)
    return df["incident_type"].isin(criteria.disaster_types)


def funding_mask(df: pd.DataFrame, criteria: FilterCriteria) -> pd.Series:
    # No funding lens selected means nothing is shown, unlike states and types
    mask = pd.Series(False, index=df.index)
    for source in criteria.funding_sources:
        col = FUNDING_SOURCES[source][0]
        mask |= df[col] > 0
    return mask


def filter_records(df: pd.DataFrame, criteria: FilterCriteria) -> pd.DataFrame:
    keep = (
        date_mask(df, criteria)
        & region_mask(df, criteria)
        & type_mask(df, criteria)
        & funding_mask(df, criteria)
    )
    return df.loc[keep].copy()


def default_criteria(df: pd.DataFrame) -> FilterCriteria:
    """Initial view: the ten years up to the latest month in the data, everything selected."""
    latest = df["incident_start"].max()
    if pd.isna(latest):
        latest = pd.Timestamp.now()
    return FilterCriteria(
        start_year=latest.year - 10,
        start_month=1,
        end_year=latest.year,
        end_month=latest.month,
        include_territories=True,
    )


SORTABLE_COLUMNS = ("incident_start", "state", "incident_type", "event", "incident_number")


def sort_records(df: pd.DataFrame, column: str = "incident_start", ascending: bool = False) -> pd.DataFrame:
    if column not in SORTABLE_COLUMNS or column not in df.columns:
        return df
    if column == "state":
        # Sort regions by display name, not code
        return df.sort_values(
            "state", ascending=ascending, kind="stable", key=lambda s: s.map(region_name)
        )
    return df.sort_values(column, ascending=ascending, kind="stable", na_position="last")
