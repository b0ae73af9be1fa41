import sys
from pathlib import Path

import pandas as pd
import pytest

# Add src to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from base_etl import normalize_records

BASE_RECORD = {
    "incident_start": "2020-06-01",
    "declaration_date": "2020-06-10",
    "incident_type": "Hurricane",
    "state": "TX",
    "event": "Hurricane Test",
    "incident_number": "4000",
    "ihp_total": 0,
    "pa_total": 0,
    "cdbg_dr_allocation": 0,
    "sba_total_approved_loan_amount": 0,
}


def build_frame(rows):
    """Normalized records frame from a list of partial record dicts."""
    return normalize_records(pd.DataFrame([{**BASE_RECORD, **row} for row in rows]))


@pytest.fixture
def make_frame():
    return build_frame


@pytest.fixture
def districts():
    return pd.DataFrame(
        [
            {"state_name": "Texas", "district_number": 1, "district_label": "Texas District 1",
             "representative": "Rep A", "party": "R", "total_funding": 5_000_000.0, "total_applicants": 100},
            {"state_name": "Texas", "district_number": 2, "district_label": "Texas District 2",
             "representative": "Rep B", "party": "D", "total_funding": 9_000_000.0, "total_applicants": 50},
            {"state_name": "Texas", "district_number": 3, "district_label": "Texas District 3",
             "representative": "Rep C", "party": "R", "total_funding": 1_000_000.0, "total_applicants": 400},
            {"state_name": "Florida", "district_number": 1, "district_label": "Florida District 1",
             "representative": "Rep D", "party": "R", "total_funding": 20_000_000.0, "total_applicants": 900},
        ]
    )
