"""
Fact-sheet statistics for one or more selected disaster events.

Everything here is a pure function of (selected events, full dataset, district
dataset, "now"), so the dashboard can recompute it on every interaction and the
PDF export renders exactly what the page shows.
"""

import logging
import math
from dataclasses import dataclass, field

import pandas as pd
from config import (
    ANNUALIZED_YEARS,
    DEFAULT_AVERAGE_GRANT,
    FACT_SHEET_SOURCES,
    FUNDING_SOURCES,
    NATIONAL_AVERAGE_GRANTS,
    SIMILAR_EVENTS_YEARS,
    region_name,
)
from filters import funding_total

logger = logging.getLogger(__name__)

LARGE_EVENT_FUNDING = 1_000_000_000
BACKFILL_MIN_FUNDED = 5
BACKFILL_MIN_EVENTS = 10
BACKFILL_LIMIT = 10
DISTRICT_LIMIT = 10
DISTRICT_SORT_COLUMNS = {"funding": "total_funding", "applicants": "total_applicants"}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _positive(value) -> float:
    """Return value as a float when it is a finite positive number, else 0.0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value <= 0:
        return 0.0
    return value


def national_average_grant(incident_type: str) -> int:
    text = (incident_type or "").lower()
    for keywords, grant in NATIONAL_AVERAGE_GRANTS:
        if any(k in text for k in keywords):
            return grant
    return DEFAULT_AVERAGE_GRANT


@dataclass(frozen=True)
class AssistanceEstimate:
    average_assistance: float
    applicants: int
    # "reported", "derived", "estimated" or "none": which branch produced the numbers
    basis: str


def household_assistance(record) -> AssistanceEstimate:
    """
    Average IHP assistance per household and the applicant count behind it.

    Tried in order:
    1. a reported average award (applicants derived from it when missing),
    2. IHP total / reported applicants,
    3. a national average grant for the disaster type, with applicants
       estimated as IHP total / that grant.
    """
    ihp_total = _positive(record.get("ihp_total"))
    applicants = _positive(record.get("ihp_applicants"))
    average_award = _positive(record.get("ihp_average_award"))

    if average_award > 0:
        if not applicants and ihp_total > 0:
            applicants = round_half_up(ihp_total / average_award)
        return AssistanceEstimate(average_award, int(applicants), "reported")

    if applicants > 0 and ihp_total > 0:
        return AssistanceEstimate(ihp_total / applicants, int(applicants), "derived")

    if not applicants and ihp_total > 0:
        grant = national_average_grant(record.get("incident_type"))
        logger.debug(
            "Estimating average assistance for %s (#%s) from the national average: $%s",
            record.get("event") or "Unnamed Event",
            record.get("incident_number"),
            grant,
        )
        return AssistanceEstimate(float(grant), round_half_up(ihp_total / grant), "estimated")

    return AssistanceEstimate(0.0, int(applicants), "none")


def _now(now) -> pd.Timestamp:
    return pd.Timestamp.now() if now is None else pd.Timestamp(now)


def with_totals(events: pd.DataFrame, sources=FACT_SHEET_SOURCES) -> pd.DataFrame:
    out = events.copy()
    out["total_funding"] = funding_total(out, sources)
    return out


def event_label(record, include_region: bool = False) -> str:
    start = record.get("incident_start")
    year = start.year if pd.notna(start) else "Unknown"
    name = record.get("event") or "Unnamed Event"
    if include_region:
        return f"{year} {region_name(record.get('state'))} {name}"
    return f"{year} {name}"


def similar_recent_count(all_events: pd.DataFrame, incident_type: str, now=None, years: int = SIMILAR_EVENTS_YEARS) -> int:
    """Same-type events nationwide that started within the last `years` years."""
    cutoff = _now(now) - pd.DateOffset(years=years)
    same = all_events["incident_type"] == incident_type
    recent = all_events["incident_start"].notna() & (all_events["incident_start"] >= cutoff)
    return int((same & recent).sum())


@dataclass(frozen=True)
class AnnualSpend:
    total_funding: float
    annual_average: float
    years_span: int
    earliest_year: int
    latest_year: int
    event_count: int


def annualized_spend(region_events: pd.DataFrame, now=None, years: int = ANNUALIZED_YEARS) -> AnnualSpend:
    """
    Federal spend per year in a region over the trailing window.

    The denominator is always `years`, however much history the region has, so
    regions are comparable with each other.
    """
    now = _now(now)
    dates = region_events["incident_start"].dropna()
    if dates.empty:
        return AnnualSpend(0.0, 0.0, years, now.year, now.year, 0)

    cutoff = now - pd.DateOffset(years=years)
    recent = with_totals(region_events[region_events["incident_start"] >= cutoff])

    for _, row in recent[recent["total_funding"] > LARGE_EVENT_FUNDING].iterrows():
        logger.debug(
            "Large funding detected: %s (#%s) - $%s",
            row["event"],
            row["incident_number"],
            f"{row['total_funding']:,.0f}",
        )

    total = float(recent["total_funding"].sum())
    latest_year = dates.max().year
    return AnnualSpend(
        total_funding=total,
        annual_average=total / years,
        years_span=years,
        earliest_year=max(dates.min().year, latest_year - years),
        latest_year=latest_year,
        event_count=len(recent),
    )


@dataclass(frozen=True)
class TopEvents:
    events: pd.DataFrame
    window_years: int
    date_range: str


def lookback_window(region_events: pd.DataFrame) -> int:
    dates = region_events["incident_start"].dropna()
    if dates.empty:
        return 10
    spread = dates.max().year - dates.min().year
    if spread >= 20:
        return 20
    if spread >= 15:
        return 15
    return 10


def display_count(available: int) -> int:
    if available <= 15:
        return available
    return 20


def top_funding_events(region_events: pd.DataFrame, now=None) -> TopEvents:
    """
    The region's largest events by total funding, for the major-storms chart.

    Looks back 10, 15 or 20 years depending on how much history the region has.
    When fewer than five recent events carry funding and the region has more
    than ten events overall, the highest-funded older or undated events (up to
    ten) are added before ranking.
    """
    now = _now(now)
    work = with_totals(region_events)
    window = lookback_window(work)
    cutoff = now - pd.DateOffset(years=window)

    is_recent = work["incident_start"].notna() & (work["incident_start"] >= cutoff)
    recent = work.loc[is_recent]
    funded_recent = int((recent["total_funding"] > 0).sum())

    if funded_recent < BACKFILL_MIN_FUNDED and len(work) > BACKFILL_MIN_EVENTS:
        extra = (
            work.loc[~is_recent & (work["total_funding"] > 0)]
            .sort_values("total_funding", ascending=False, kind="stable")
            .head(BACKFILL_LIMIT)
        )
        if not extra.empty:
            logger.info("Few recent funded events (%d); adding %d older events", funded_recent, len(extra))
            recent = pd.concat([recent, extra])

    ranked = recent.sort_values("total_funding", ascending=False, kind="stable")
    top = ranked.head(display_count(len(ranked))).copy()
    top["name"] = [event_label(row) for _, row in top.iterrows()]

    cols = ["name", "incident_number", "incident_start", *[c for c, _ in FUNDING_SOURCES.values()], "total_funding"]
    return TopEvents(
        events=top[cols].reset_index(drop=True),
        window_years=window,
        date_range=f"{cutoff.year}-{now.year}",
    )


def district_rankings(
    districts: pd.DataFrame,
    selected_events: pd.DataFrame,
    sort_by: str = "funding",
    descending: bool = True,
    limit: int = DISTRICT_LIMIT,
) -> pd.DataFrame:
    """Congressional districts in the selected events' regions, ranked by funding or applicants."""
    if sort_by not in DISTRICT_SORT_COLUMNS:
        raise ValueError(f"sort_by must be one of {sorted(DISTRICT_SORT_COLUMNS)}, got {sort_by!r}")
    if districts is None or districts.empty or selected_events.empty:
        return pd.DataFrame(columns=[] if districts is None else districts.columns)

    names = {region_name(s) for s in selected_events["state"].unique()}
    rows = districts[districts["state_name"].isin(names)]
    sort_col = DISTRICT_SORT_COLUMNS[sort_by]
    return (
        rows.sort_values(sort_col, ascending=not descending, kind="stable", key=lambda s: s.fillna(0))
        .head(limit)
        .reset_index(drop=True)
    )


@dataclass(frozen=True)
class CombinedTotals:
    by_event: pd.DataFrame
    totals: dict
    states: list
    incident_types: list
    date_range: str

    @property
    def event_count(self) -> int:
        return len(self.by_event)


def _short_date(ts: pd.Timestamp) -> str:
    return f"{ts:%b} {ts.day}, {ts.year}"


def combined_totals(selected_events: pd.DataFrame) -> CombinedTotals:
    """
    Per-event and grand totals for a multi-event selection. Applicants are
    estimated per event and then summed, never from the combined IHP total.
    """
    work = with_totals(selected_events)
    work["name"] = [event_label(row, include_region=True) for _, row in work.iterrows()]
    work["state_name"] = work["state"].map(region_name)
    work["applicants"] = [household_assistance(row).applicants for _, row in work.iterrows()]

    cols = [
        "name", "incident_number", "state", "state_name", "incident_type", "incident_start",
        "ihp_total", "pa_total", "cdbg_dr_allocation", "total_funding", "applicants",
    ]
    by_event = work[cols].reset_index(drop=True)

    totals = {
        "ihp_total": float(by_event["ihp_total"].sum()),
        "pa_total": float(by_event["pa_total"].sum()),
        "cdbg_dr_allocation": float(by_event["cdbg_dr_allocation"].sum()),
        "total_funding": float(by_event["total_funding"].sum()),
        "applicants": int(by_event["applicants"].sum()),
    }

    dates = by_event["incident_start"].dropna()
    date_range = "Unknown"
    if not dates.empty:
        date_range = f"{_short_date(dates.min())} - {_short_date(dates.max())}"

    return CombinedTotals(
        by_event=by_event,
        totals=totals,
        states=list(dict.fromkeys(by_event["state_name"])),
        incident_types=list(dict.fromkeys(by_event["incident_type"])),
        date_range=date_range,
    )


def search_events(df: pd.DataFrame, query: str) -> pd.DataFrame:
    """Case-insensitive match on event name, type, region code or incident number; newest first."""
    q = (query or "").strip().lower()
    if not q:
        return df.iloc[0:0]

    mask = (
        df["event"].str.lower().str.contains(q, regex=False)
        | df["incident_type"].str.lower().str.contains(q, regex=False)
        | df["state"].str.lower().str.contains(q, regex=False)
        | df["incident_number"].astype(str).str.contains(q, regex=False)
    )
    return df.loc[mask].sort_values("incident_start", ascending=False, na_position="last", kind="stable")


@dataclass
class FactSheet:
    event: pd.Series
    state_name: str
    assistance: AssistanceEstimate
    similar_recent: int
    annual: AnnualSpend
    top_events: TopEvents
    districts: pd.DataFrame
    grantees: pd.DataFrame
    combined: CombinedTotals | None = None
    generated_at: pd.Timestamp = field(default_factory=pd.Timestamp.now)

    @property
    def is_comparison(self) -> bool:
        return self.combined is not None

    @property
    def title(self) -> str:
        if self.is_comparison:
            return f"Comparing {self.combined.event_count} Disaster Events"
        return f"{self.event.get('event') or 'Unnamed Event'} (#{self.event.get('incident_number')})"

    @property
    def subtitle(self) -> str:
        if self.is_comparison:
            types = self.combined.incident_types
            kinds = f"{types[0]}s" if len(types) == 1 else "Multiple Disaster Types"
            return f"{', '.join(self.combined.states)} • {kinds} • {self.combined.date_range}"
        start = self.event.get("incident_start")
        when = f"{start:%B} {start.day}, {start.year}" if pd.notna(start) else "N/A"
        return f"{self.state_name} • {self.event.get('incident_type')} • {when}"

    def funding_breakdown(self) -> pd.DataFrame:
        """Fact-sheet funding sources with a non-zero amount and their share of the total."""
        source = self.combined.totals if self.is_comparison else self.event
        rows = []
        for key in FACT_SHEET_SOURCES:
            col, label = FUNDING_SOURCES[key]
            rows.append({"source": key, "label": label, "amount": _positive(source.get(col))})
        breakdown = pd.DataFrame(rows)
        total = breakdown["amount"].sum()
        breakdown["percentage"] = breakdown["amount"] / total * 100 if total > 0 else 0.0
        return breakdown[breakdown["amount"] > 0].reset_index(drop=True)


def build_fact_sheet(
    all_events: pd.DataFrame,
    selected_events: pd.DataFrame,
    districts: pd.DataFrame | None = None,
    grantees: pd.DataFrame | None = None,
    now=None,
    district_sort: str = "funding",
    district_descending: bool = True,
) -> FactSheet:
    """Everything the fact sheet shows; the first selected event is the primary one."""
    if selected_events.empty:
        raise ValueError("Select at least one event to build a fact sheet.")

    now = _now(now)
    event = selected_events.iloc[0]
    region_events = all_events[all_events["state"] == event["state"]]

    if grantees is not None and not grantees.empty:
        event_grantees = grantees[
            (grantees["incident_number"] == event["incident_number"]) & (grantees["state"] == event["state"])
        ].reset_index(drop=True)
    else:
        event_grantees = pd.DataFrame(columns=["tranche", "tranche_date", "name", "amount"])

    assistance = household_assistance(event)
    logger.info(
        "Fact sheet for %s (#%s): average assistance $%.0f (%s)",
        event.get("event") or "Unnamed Event",
        event.get("incident_number"),
        assistance.average_assistance,
        assistance.basis,
    )

    return FactSheet(
        event=event,
        state_name=region_name(event["state"]),
        assistance=assistance,
        similar_recent=similar_recent_count(all_events, event["incident_type"], now=now),
        annual=annualized_spend(region_events, now=now),
        top_events=top_funding_events(region_events, now=now),
        districts=district_rankings(
            districts, selected_events, sort_by=district_sort, descending=district_descending
        ),
        grantees=event_grantees,
        combined=combined_totals(selected_events) if len(selected_events) > 1 else None,
        generated_at=now,
    )
