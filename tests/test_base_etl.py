import math

import pandas as pd
import pytest

from base_etl import extract_grantees, load_districts, load_records, normalize_amount, normalize_records


@pytest.mark.parametrize(
    "raw, expected",
    [
        (1500, 1500.0),
        ("2500.75", 2500.75),
        ("12.5abc", 12.5),
        ("1e3", 1000.0),
        ("", 0.0),
        ("n/a", 0.0),
        (None, 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        (-400, 0.0),
    ],
)
def test_normalize_amount(raw, expected):
    assert normalize_amount(raw) == expected


def test_normalize_records_fills_and_cleans():
    raw = pd.DataFrame(
        [
            {"incident_start": "2021-02-11", "incident_type": " Severe Storm ", "state": " tx",
             "event": "Winter Storm Uri", "incident_number": "4586.0", "ihp_total": "abc"},
            {"incident_start": "not a date", "incident_type": "Flood", "state": "LA",
             "event": None, "incident_number": 4600, "ihp_total": "1200"},
        ]
    )
    df = normalize_records(raw)

    # funding columns absent from the file come back as zeros
    assert (df["pa_total"] == 0).all()
    assert (df["sba_total_approved_loan_amount"] == 0).all()
    assert df["ihp_total"].tolist() == [0.0, 1200.0]

    assert df.loc[0, "state"] == "TX"
    assert df.loc[0, "incident_type"] == "Severe Storm"
    assert df.loc[0, "incident_number"] == "4586"
    assert df.loc[1, "event"] == ""
    assert pd.isna(df.loc[1, "incident_start"])
    assert math.isnan(df.loc[0, "ihp_applicants"])


def test_normalize_records_does_not_mutate_input():
    raw = pd.DataFrame([{"incident_start": "2021-01-01", "incident_type": "Flood", "state": "la",
                         "event": "x", "incident_number": "1"}])
    normalize_records(raw)
    assert raw.loc[0, "state"] == "la"
    assert "ihp_total" not in raw.columns


def test_load_records_requires_columns(tmp_path):
    path = tmp_path / "records.csv"
    pd.DataFrame([{"incident_start": "2021-01-01", "state": "TX"}]).to_csv(path, index=False)
    with pytest.raises(KeyError):
        load_records(str(path))


def test_load_records_reads_csv(tmp_path):
    path = tmp_path / "records.csv"
    path.write_text(
        "incident_start,incident_type,state,event,incident_number,ihp_total,pa_total\n"
        "2022-09-28,Hurricane,FL,Hurricane Ian,4673,\"1,000\",5000000\n"
        "2022-01-05,Flood,PR,Flooding,4500,,\n",
        encoding="utf-8",
    )
    df = load_records(str(path))
    assert len(df) == 2
    assert df.loc[0, "incident_number"] == "4673"
    # parseFloat semantics: "1,000" reads as 1
    assert df.loc[0, "ihp_total"] == 1.0
    assert df.loc[1, "pa_total"] == 0.0


def test_extract_grantees():
    raw = pd.DataFrame(
        [
            {"incident_start": "2017-08-25", "incident_type": "Hurricane", "state": "TX",
             "event": "Hurricane Harvey", "incident_number": "4332",
             "frn1_date": "2018-02-09", "frn1_grantee1_name": "Texas GLO", "frn1_grantee1_amount": "5024215000",
             "frn1_grantee2_name": "Houston", "frn1_grantee2_amount": "1000",
             "frn2_date": None, "frn2_grantee1_name": None, "frn2_grantee1_amount": None},
            {"incident_start": "2020-06-01", "incident_type": "Flood", "state": "LA",
             "event": "Flood", "incident_number": "4500",
             "frn1_date": None, "frn1_grantee1_name": "", "frn1_grantee1_amount": None,
             "frn1_grantee2_name": None, "frn1_grantee2_amount": None,
             "frn2_date": "2021-01-01", "frn2_grantee1_name": "Louisiana", "frn2_grantee1_amount": "-5"},
        ]
    )
    grantees = extract_grantees(normalize_records(raw))

    assert len(grantees) == 3
    harvey = grantees[grantees["incident_number"] == "4332"]
    assert harvey["name"].tolist() == ["Texas GLO", "Houston"]
    assert harvey["amount"].tolist() == [5_024_215_000.0, 1000.0]
    louisiana = grantees[grantees["incident_number"] == "4500"].iloc[0]
    assert louisiana["tranche"] == 2
    assert louisiana["amount"] == 0.0


def test_extract_grantees_without_columns(make_frame):
    grantees = extract_grantees(make_frame([{}]))
    assert grantees.empty
    assert "amount" in grantees.columns


def test_load_districts_drops_unusable_rows(tmp_path):
    path = tmp_path / "districts.csv"
    pd.DataFrame(
        [
            {"state_name": "Texas", "district_number": 1, "total_funding": 100.0, "total_applicants": 3},
            {"state_name": "Texas", "district_number": 2, "total_funding": 0.0, "total_applicants": 0},
            {"state_name": "", "district_number": 3, "total_funding": 50.0, "total_applicants": 1},
            {"state_name": "Ohio", "district_number": None, "total_funding": 50.0, "total_applicants": 1},
        ]
    ).to_csv(path, index=False)

    districts = load_districts(str(path))
    assert districts["state_name"].tolist() == ["Texas"]
    assert districts.loc[0, "representative"] == ""
