import sys
from pathlib import Path

import pandas as pd

# Add src to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from config import STATE_NAMES
from base_etl import build_base
from filters import default_criteria, filter_records
from aggregation import aggregate_by_region
from thresholds import compute_thresholds
from fact_sheet import build_fact_sheet
from exports_csv import export_filtered_csv
from exports_pdf import build_fact_sheet_pdf

RAW_CSV = """incident_start,declaration_date,incident_type,state,event,incident_number,ihp_total,pa_total,cdbg_dr_allocation,sba_total_approved_loan_amount,ihp_applicants,ihp_average_award,frn1_date,frn1_grantee1_name,frn1_grantee1_amount
2017-08-25,2017-08-25,Hurricane,TX,Hurricane Harvey,4332,1650000000,3000000000,5676390000,3500000000,895000,,2018-02-09,State of Texas,5024215000
2021-02-11,2021-02-19,Severe Storm,TX,Winter Storm,4586,,,,,,,,,
2022-09-28,2022-09-29,Hurricane,FL,Hurricane Ian,4673,1030000000,not reported,2000000000,,,3900,,,
2022-09-17,2022-09-21,Hurricane,PR,Hurricane Fiona,4671,700000000,1200000000,,,,,,,
2023-01-05,2023-01-14,Flood,CA,Winter Storms,4683,120000000,500000000,,25000000,,,,,
,,Flood,LA,Undated Flood,9999,50,,,,,,,,
"""


def write_raw(tmp_path):
    path = tmp_path / "disaster_dollar_database.csv"
    path.write_text(RAW_CSV, encoding="utf-8")
    return str(path)


def test_build_base_runs(tmp_path):
    df, grantees = build_base(write_raw(tmp_path))
    assert len(df) == 6, "every raw row should survive loading"
    assert df["ihp_total"].ge(0).all()
    assert df.loc[df["incident_number"] == "4673", "pa_total"].item() == 0.0
    assert grantees["name"].tolist() == ["State of Texas"]


def test_dashboard_pipeline(tmp_path):
    df, grantees = build_base(write_raw(tmp_path))

    criteria = default_criteria(df)
    filtered = filter_records(df, criteria)
    # Harvey falls inside the default ten-year window; the winter storm has no funding
    assert set(filtered["incident_number"]) == {"4332", "4673", "4671", "4683"}

    aggregates = aggregate_by_region(filtered, criteria.funding_sources, regions=STATE_NAMES)
    assert "PR" not in aggregates.regions.index
    thresholds = compute_thresholds(aggregates.funding_values())
    assert thresholds[0] == 0
    assert thresholds[-1] == max(aggregates.funding_values())

    csv_text = export_filtered_csv(filtered)
    assert "Puerto Rico" in csv_text


def test_fact_sheet_pipeline(tmp_path):
    df, grantees = build_base(write_raw(tmp_path))
    harvey = df[df["incident_number"] == "4332"]

    sheet = build_fact_sheet(df, harvey, grantees=grantees, now=pd.Timestamp("2025-02-05"))
    assert sheet.assistance.basis == "derived"
    assert sheet.assistance.applicants == 895000
    assert len(sheet.grantees) == 1
    assert sheet.annual.years_span == 10
    assert build_fact_sheet_pdf(sheet).startswith(b"%PDF")
