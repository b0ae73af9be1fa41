import logging
from pathlib import Path
from types import MappingProxyType

# Root of the repo (adjust if needed)
PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_RAW = PROJECT_ROOT / "data_raw"
DATA_EXPORTS = PROJECT_ROOT / "data_exports"

# Input files
RECORDS_CSV = DATA_RAW / "disaster_dollar_database_2025_02_05.csv"
DISTRICTS_CSV = DATA_RAW / "ihp_funding_by_cd_2023_districts_2021_onwards.csv"
STATES_GEOJSON = DATA_RAW / "us-states.geojson"

# Output files
FILTERED_EXPORT_CSV = DATA_EXPORTS / "disaster_data_export.csv"
REGION_ROLLUP_CSV = DATA_EXPORTS / "region_rollup.csv"

LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Funding source key -> (column, display label)
FUNDING_SOURCES = MappingProxyType({
    "ihp": ("ihp_total", "FEMA Individual & Household Program"),
    "pa": ("pa_total", "FEMA Public Assistance"),
    "cdbg_dr": ("cdbg_dr_allocation", "HUD CDBG-DR"),
    "sba": ("sba_total_approved_loan_amount", "SBA Disaster Loans"),
})
FUNDING_COLUMNS = tuple(col for col, _ in FUNDING_SOURCES.values())

# Fact sheets report FEMA + HUD dollars; SBA loans are repayable
FACT_SHEET_SOURCES = ("ihp", "pa", "cdbg_dr")

STATE_NAMES = MappingProxyType({
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas", "CA": "California",
    "CO": "Colorado", "CT": "Connecticut", "DC": "District of Columbia", "DE": "Delaware",
    "FL": "Florida", "GA": "Georgia", "HI": "Hawaii", "ID": "Idaho", "IL": "Illinois",
    "IN": "Indiana", "IA": "Iowa", "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana",
    "ME": "Maine", "MD": "Maryland", "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada",
    "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
    "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma",
    "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah", "VT": "Vermont",
    "VA": "Virginia", "WA": "Washington", "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
})

TERRITORY_NAMES = MappingProxyType({
    "PR": "Puerto Rico", "GU": "Guam", "VI": "Virgin Islands", "MP": "Northern Mariana Islands",
    "AS": "American Samoa", "FM": "Federated States of Micronesia", "MH": "Marshall Islands",
    "PW": "Palau",
})
TERRITORIES = frozenset(TERRITORY_NAMES)

REGION_NAMES = MappingProxyType({**STATE_NAMES, **TERRITORY_NAMES})

# Two-digit FIPS code (GeoJSON feature id) -> state abbreviation
FIPS_TO_ABBR = MappingProxyType({
    "01": "AL", "02": "AK", "04": "AZ", "05": "AR", "06": "CA",
    "08": "CO", "09": "CT", "10": "DE", "11": "DC", "12": "FL",
    "13": "GA", "15": "HI", "16": "ID", "17": "IL", "18": "IN",
    "19": "IA", "20": "KS", "21": "KY", "22": "LA", "23": "ME",
    "24": "MD", "25": "MA", "26": "MI", "27": "MN", "28": "MS",
    "29": "MO", "30": "MT", "31": "NE", "32": "NV", "33": "NH",
    "34": "NJ", "35": "NM", "36": "NY", "37": "NC", "38": "ND",
    "39": "OH", "40": "OK", "41": "OR", "42": "PA", "44": "RI",
    "45": "SC", "46": "SD", "47": "TN", "48": "TX", "49": "UT",
    "50": "VT", "51": "VA", "53": "WA", "54": "WV", "55": "WI",
    "56": "WY",
})

# FEMA national average IHP grant by disaster type; keys are matched as
# substrings of the lower-cased incident type, in this order
NATIONAL_AVERAGE_GRANTS = (
    (("hurricane", "typhoon"), 5372),
    (("flood",), 4467),
    (("fire", "wildfire"), 6198),
    (("tornado",), 3975),
)
DEFAULT_AVERAGE_GRANT = 4103

# Map palette: white for no funding, then increasingly dark blues
COLOR_SCALE = (
    "#ffffff",
    "#eef8ff",
    "#d0e6f7",
    "#a6d0f5",
    "#6baed6",
    "#4292c6",
    "#2171b5",
    "#084594",
    "#041e42",
)
DEFAULT_THRESHOLDS = (0, 100, 10_000, 100_000, 1_000_000, 10_000_000, 100_000_000, 1_000_000_000, 5_000_000_000)

# Analysis constants
ANNUALIZED_YEARS = 10
SIMILAR_EVENTS_YEARS = 5


def ensure_directories():
    DATA_RAW.mkdir(parents=True, exist_ok=True)
    DATA_EXPORTS.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
    )


def region_name(abbr: str) -> str:
    return REGION_NAMES.get(abbr, abbr)
