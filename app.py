# app.py

import logging
import sys
from pathlib import Path

import pandas as pd
import streamlit as st
import plotly.express as px

# -------------------------------------------------------------------
# Paths and data loading
# -------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from config import (
    FUNDING_SOURCES,
    STATE_NAMES,
    configure_logging,
    region_name,
)
from base_etl import build_base, load_districts
from filters import FilterCriteria, default_criteria, filter_records, sort_records, SORTABLE_COLUMNS
from aggregation import aggregate_by_region, date_span, funding_by_source, monthly_funding, region_breakdown
from thresholds import METHODS, color_for, compute_thresholds, plotly_colorscale, threshold_colors
from fact_sheet import build_fact_sheet, event_label, search_events
from geo import attach_region_funding, load_region_geometry, map_frame
from exports_csv import export_filtered_csv
from exports_pdf import build_fact_sheet_pdf, fact_sheet_filename, format_currency, format_number

configure_logging()
logger = logging.getLogger("dashboard")

MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
MARGINS = dict(l=10, r=10, t=40, b=40)


@st.cache_data
def load_data():
    return build_base()


@st.cache_data
def load_district_data():
    try:
        return load_districts()
    except Exception:
        logger.exception("Error loading congressional district data")
        return pd.DataFrame()


@st.cache_data
def load_geometry():
    try:
        return load_region_geometry()
    except Exception:
        logger.exception("Error loading region geometry")
        return None


st.set_page_config(
    page_title="Disaster Dollar Database",
    layout="wide",
)

st.title("Disaster Dollar Database Explorer")
st.caption(
    "Federal disaster assistance by state: FEMA Individual & Household Program, "
    "FEMA Public Assistance, HUD CDBG-DR and SBA disaster loans."
)

try:
    records, grantees = load_data()
except Exception as exc:
    logger.exception("Error loading disaster data")
    st.error(f"Disaster data could not be loaded: {exc}")
    st.stop()

districts = load_district_data()
geometry = load_geometry()


# Sidebar filters

st.sidebar.header("Filters")

initial = default_criteria(records)
span = date_span(records)
years = list(range(span["earliest"].year, span["latest"].year + 1)) if span else [initial.end_year]
initial_start_year = initial.start_year if initial.start_year in years else years[0]

c1, c2 = st.sidebar.columns(2)
start_year = c1.selectbox("Start year", years, index=years.index(initial_start_year))
start_month = c2.selectbox("Start month", range(1, 13), index=initial.start_month - 1, format_func=lambda m: MONTHS[m - 1])
c1, c2 = st.sidebar.columns(2)
end_year = c1.selectbox("End year", years, index=years.index(initial.end_year) if initial.end_year in years else len(years) - 1)
end_month = c2.selectbox("End month", range(1, 13), index=initial.end_month - 1, format_func=lambda m: MONTHS[m - 1])

if span:
    st.sidebar.caption(
        f"Data covers {span['earliest']:%b %Y} to {span['latest']:%b %Y} "
        f"({span['records_with_dates']:,} of {span['total_records']:,} records have a start date)."
    )
if (start_year, start_month) > (end_year, end_month):
    st.sidebar.warning("Start date is after end date; no records will match.")

selected_state_names = st.sidebar.multiselect(
    "States (none selected = all states)",
    sorted(STATE_NAMES.values()),
    default=[],
)
name_to_abbr = {name: abbr for abbr, name in STATE_NAMES.items()}
include_territories = st.sidebar.checkbox("Include U.S. territories", value=initial.include_territories)

available_types = sorted(t for t in records["incident_type"].unique() if t)
selected_types = st.sidebar.multiselect(
    "Disaster type",
    available_types,
    default=available_types,
)

st.sidebar.subheader("Funding type")
selected_sources = [
    key
    for key, (_, label) in FUNDING_SOURCES.items()
    if st.sidebar.checkbox(label, value=True, key=f"source_{key}")
]

threshold_method = st.sidebar.selectbox(
    "Map classification",
    list(METHODS),
    index=0,
    help="Proportional scales every break to the largest state total.",
)

criteria = FilterCriteria(
    start_year=start_year,
    start_month=start_month,
    end_year=end_year,
    end_month=end_month,
    states=frozenset(name_to_abbr[n] for n in selected_state_names),
    include_territories=include_territories,
    disaster_types=frozenset(selected_types),
    funding_sources=frozenset(selected_sources),
)
filtered = filter_records(records, criteria)

if not selected_sources:
    st.info("Select at least one funding type to see data.")

(
    tab_map,
    tab_time,
    tab_data,
    tab_fact,
) = st.tabs(
    [
        "Map",
        "Time Trends",
        "Data & Download",
        "Fact Sheet",
    ]
)


# 1. Map tab

with tab_map:
    aggregates = aggregate_by_region(filtered, selected_sources, regions=STATE_NAMES)
    thresholds = compute_thresholds(aggregates.funding_values(), method=threshold_method)

    c1, c2, c3 = st.columns(3, gap="large")
    c1.metric("Disaster events", f"{len(filtered):,}")
    c2.metric("Total funding (selected sources)", format_currency(float(aggregates.regions["funding"].sum()), True))
    c3.metric("States with events", f"{len(aggregates.regions):,}")

    if geometry is None:
        st.warning("State boundaries could not be loaded; the map is unavailable.")
    else:
        geo_funded = attach_region_funding(geometry, aggregates.regions)
        mapped = map_frame(geometry, aggregates.regions)
        mapped["state_name"] = mapped["state"].map(region_name)
        mapped["funding_label"] = mapped["funding"].map(format_currency)

        fig_map = px.choropleth(
            mapped,
            geojson=geo_funded,
            featureidkey="properties.state_abbr",
            locations="state",
            color="funding",
            color_continuous_scale=plotly_colorscale(thresholds),
            range_color=(0, thresholds[-1]),
            scope="usa",
            hover_name="state_name",
            hover_data={"state": False, "funding": False, "funding_label": True, "event_count": True},
            labels={"funding": "Funding (USD)", "funding_label": "Total funding", "event_count": "Events"},
            title="Disaster funding by state",
        )
        fig_map.update_traces(marker_line_color="#000", marker_line_width=0.5)
        fig_map.update_layout(margin=MARGINS, height=520)
        st.plotly_chart(fig_map, key="map_choropleth")

        legend = pd.DataFrame({"From": [format_currency(t, True) for t in thresholds], "Colour": threshold_colors(thresholds)})
        with st.expander("Colour breaks"):
            st.dataframe(legend, hide_index=True)

    if not aggregates.excluded.empty:
        st.caption(
            "Not shown on the map: "
            + ", ".join(
                f"{region_name(r.state)} ({format_currency(r.funding, True)})"
                for r in aggregates.excluded.itertuples()
            )
        )

    c1, c2 = st.columns(2, gap="large")

    top_states = aggregates.regions.reset_index().sort_values("funding", ascending=False).head(15)
    top_states["state_name"] = top_states["state"].map(region_name)
    # Same bucket colours as the map
    top_states["colour"] = top_states["funding"].map(lambda v: color_for(v, thresholds))
    fig_states = px.bar(
        top_states,
        x="funding",
        y="state_name",
        orientation="h",
        color="colour",
        color_discrete_map="identity",
        labels={"funding": "Funding (USD)", "state_name": "State"},
        title="Top states by funding",
    )
    fig_states.update_traces(marker_line_color="#000", marker_line_width=0.5)
    fig_states.update_layout(margin=MARGINS, showlegend=False, yaxis=dict(categoryorder="total ascending"))
    c1.plotly_chart(fig_states, key="map_top_states")

    by_type = (
        aggregates.types.groupby("incident_type", as_index=False)[["count", "funding"]]
            .sum()
            .sort_values("funding", ascending=False)
    )
    fig_types = px.bar(
        by_type,
        x="funding",
        y="incident_type",
        orientation="h",
        hover_data={"count": True},
        labels={"funding": "Funding (USD)", "incident_type": "Disaster type", "count": "Events"},
        title="Funding by disaster type",
    )
    fig_types.update_layout(margin=MARGINS, yaxis=dict(categoryorder="total ascending"))
    c2.plotly_chart(fig_types, key="map_types")

    if not aggregates.regions.empty:
        detail_state = st.selectbox(
            "State detail",
            list(aggregates.regions.index),
            format_func=region_name,
        )
        breakdown = region_breakdown(filtered, detail_state, selected_sources)
        row = aggregates.regions.loc[detail_state]
        st.markdown(
            f"**{region_name(detail_state)}**: {int(row['event_count'])} events, "
            f"{format_currency(row['funding'])} total  \n"
            + "  \n".join(f"{FUNDING_SOURCES[s][1]}: {format_currency(v)}" for s, v in breakdown.items())
        )
        st.dataframe(
            aggregates.types[aggregates.types["state"] == detail_state][["incident_type", "count", "funding"]],
            hide_index=True,
        )


# 2. Time Trends tab

with tab_time:
    st.subheader("Funding over time")

    by_month = monthly_funding(filtered, selected_sources)
    if by_month.empty:
        st.info("No funded events in the selected range.")
    else:
        fig_month = px.bar(
            by_month,
            x="month",
            y="funding",
            hover_data={"count": True},
            labels={"month": "Month", "funding": "Funding (USD)", "count": "Events"},
            title="Funding by incident start month",
        )
        fig_month.update_layout(margin=MARGINS)
        st.plotly_chart(fig_month, key="time_month")

    by_source = funding_by_source(filtered, selected_sources)
    by_source = by_source[by_source["amount"] > 0]
    if not by_source.empty:
        fig_source = px.bar(
            by_source,
            x="amount",
            y="label",
            orientation="h",
            labels={"amount": "Funding (USD)", "label": "Source"},
            title="Funding by source",
        )
        fig_source.update_layout(margin=MARGINS, yaxis=dict(categoryorder="total ascending"))
        st.plotly_chart(fig_source, key="time_source")


# 3. Data & Download tab

with tab_data:
    st.subheader("Filtered records")

    c1, c2 = st.columns(2)
    sort_column = c1.selectbox("Sort by", SORTABLE_COLUMNS, index=0)
    sort_ascending = c2.radio("Order", ["Descending", "Ascending"], horizontal=True) == "Ascending"
    table = sort_records(filtered, sort_column, ascending=sort_ascending)

    display_cols = [
        "incident_start", "state", "incident_type", "event", "incident_number",
        *[col for col, _ in FUNDING_SOURCES.values()],
    ]
    shown = table[[c for c in display_cols if c in table.columns]].copy()
    shown["state"] = shown["state"].map(region_name)
    st.dataframe(shown, height=420, hide_index=True)

    if filtered.empty or not selected_sources:
        st.info("No data to download. Select at least one funding type and make sure records match your filters.")
    else:
        st.download_button(
            "Download filtered data (CSV)",
            data=export_filtered_csv(table),
            file_name="disaster_data_export.csv",
            mime="text/csv",
        )


# 4. Fact Sheet tab

with tab_fact:
    st.subheader("Disaster fact sheet")

    query = st.text_input("Search by event name, incident type, state or disaster number")
    results = search_events(records, query)

    if query and results.empty:
        st.info("No matching events.")

    if not results.empty:
        picks = st.multiselect(
            "Select one event for a fact sheet, or several to compare",
            list(results.index[:200]),
            format_func=lambda i: f"{event_label(results.loc[i], include_region=True)} (#{results.loc[i, 'incident_number']})",
        )

        if picks:
            c1, c2 = st.columns(2)
            district_sort = c1.radio("Rank districts by", ["funding", "applicants"], horizontal=True)
            district_desc = c2.radio("District order", ["Descending", "Ascending"], horizontal=True) == "Descending"

            sheet = build_fact_sheet(
                records,
                results.loc[picks],
                districts=districts,
                grantees=grantees,
                district_sort=district_sort,
                district_descending=district_desc,
            )

            st.caption("Multi-Disaster Comparison" if sheet.is_comparison else "Fact Sheet for")
            st.markdown(f"### {sheet.title}")
            st.markdown(sheet.subtitle)

            c1, c2, c3 = st.columns(3, gap="large")
            if sheet.is_comparison:
                totals = sheet.combined.totals
                c1.metric("Total funding", format_currency(totals["total_funding"], True))
                c2.metric("Individual & Household Assistance", format_currency(totals["ihp_total"], True))
                c3.metric("Applicants", format_number(totals["applicants"]))
                st.dataframe(sheet.combined.by_event.drop(columns=["state"]), hide_index=True)
            else:
                c1.metric("Average assistance to households", format_currency(sheet.assistance.average_assistance))
                c2.metric("Households that applied", format_number(sheet.assistance.applicants))
                c3.metric(f"{sheet.event['incident_type']} disasters in past 5 years", format_number(sheet.similar_recent))
                if sheet.assistance.basis == "estimated":
                    st.caption("Average assistance estimated from FEMA national averages for this disaster type.")

            breakdown = sheet.funding_breakdown()
            if not breakdown.empty:
                fig_breakdown = px.bar(
                    breakdown,
                    x="amount",
                    y="label",
                    orientation="h",
                    text=breakdown["percentage"].map(lambda p: f"{p:.1f}%"),
                    labels={"amount": "Funding (USD)", "label": "Source"},
                    title="Funding breakdown by source",
                )
                fig_breakdown.update_layout(margin=MARGINS)
                st.plotly_chart(fig_breakdown, key="fact_breakdown")

            st.markdown("#### Top congressional districts by disaster assistance (2021-present)")
            if sheet.districts.empty:
                st.caption("No congressional district data for the selected states.")
            else:
                st.dataframe(
                    sheet.districts[["representative", "district_label", "party", "total_funding", "total_applicants"]],
                    hide_index=True,
                )

            annual = sheet.annual
            c1, c2 = st.columns(2)
            c1.metric(
                f"Average annual federal spend in {sheet.state_name} ({annual.earliest_year}-{annual.latest_year})",
                format_currency(annual.annual_average, True),
            )
            c2.metric(f"Total over the last {annual.years_span} years", format_currency(annual.total_funding, True))

            top = sheet.top_events.events
            if not top.empty:
                stacked = top.melt(
                    id_vars=["name"],
                    value_vars=["ihp_total", "pa_total", "cdbg_dr_allocation"],
                    var_name="source",
                    value_name="amount",
                )
                stacked["source"] = stacked["source"].map({col: label for col, label in FUNDING_SOURCES.values()})
                fig_top = px.bar(
                    stacked,
                    x="amount",
                    y="name",
                    color="source",
                    orientation="h",
                    labels={"amount": "Funding (USD)", "name": "Event", "source": "Source"},
                    title=f"Major disasters in {sheet.state_name} ({sheet.top_events.date_range})",
                )
                fig_top.update_layout(margin=MARGINS, yaxis=dict(categoryorder="total ascending"))
                st.plotly_chart(fig_top, key="fact_top_events")

            if not sheet.is_comparison and not sheet.grantees.empty:
                st.markdown("#### CDBG-DR grantees")
                st.dataframe(sheet.grantees[["tranche", "tranche_date", "name", "amount"]], hide_index=True)

            try:
                pdf_bytes = build_fact_sheet_pdf(sheet)
            except Exception as exc:
                logger.exception("Error generating PDF")
                st.error(f"There was an error generating the PDF: {exc}")
            else:
                st.download_button(
                    "Download fact sheet (PDF)",
                    data=pdf_bytes,
                    file_name=fact_sheet_filename(sheet),
                    mime="application/pdf",
                )
