from pathlib import Path
import argparse
import sys

# Ensure src is on path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from config import DATA_EXPORTS, FILTERED_EXPORT_CSV, STATE_NAMES, configure_logging, ensure_directories
from base_etl import build_base, load_districts
from filters import FilterCriteria, default_criteria, filter_records
from aggregation import aggregate_by_region
from thresholds import METHODS, compute_thresholds
from fact_sheet import build_fact_sheet
from exports_csv import export_filtered_csv, export_region_rollup
from exports_pdf import build_fact_sheet_pdf, fact_sheet_filename


def parse_month(text: str) -> tuple[int, int]:
    try:
        year, month = (int(part) for part in text.split("-"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {text!r}")
    if not 1 <= month <= 12:
        raise argparse.ArgumentTypeError(f"month out of range in {text!r}")
    return year, month


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Write the disaster funding CSV exports and, optionally, a fact sheet PDF.")
    parser.add_argument("--start", type=parse_month, help="first month to include, YYYY-MM (default: ten years back)")
    parser.add_argument("--end", type=parse_month, help="last month to include, YYYY-MM (default: latest month in the data)")
    parser.add_argument("--method", default="proportional", choices=list(METHODS), help="map threshold method")
    parser.add_argument("--incident", action="append", default=[], help="incident number for a fact sheet PDF (repeat to compare)")
    return parser.parse_args(argv)


def write_fact_sheet(sheet, directory=DATA_EXPORTS):
    """Write the fact sheet PDF into directory; returns the path, or None when rendering fails."""
    pdf_path = Path(directory) / fact_sheet_filename(sheet)
    try:
        pdf = build_fact_sheet_pdf(sheet)
    except Exception as exc:
        print(f"Error generating fact sheet PDF: {exc}")
        return None
    pdf_path.write_bytes(pdf)
    print(f"Wrote fact sheet: {pdf_path}")
    return pdf_path


def main(argv=None):
    args = parse_args(argv)
    status = 0
    configure_logging()
    ensure_directories()

    print("Building base data (records, grantees)...")
    records, grantees = build_base()

    initial = default_criteria(records)
    start_year, start_month = args.start or (initial.start_year, initial.start_month)
    end_year, end_month = args.end or (initial.end_year, initial.end_month)
    criteria = FilterCriteria(
        start_year=start_year,
        start_month=start_month,
        end_year=end_year,
        end_month=end_month,
        include_territories=True,
    )

    print(f"Filtering {start_year}-{start_month:02d} to {end_year}-{end_month:02d}...")
    filtered = filter_records(records, criteria)

    print("Exporting filtered records...")
    export_filtered_csv(filtered, FILTERED_EXPORT_CSV)

    print("Exporting region rollup...")
    aggregates = aggregate_by_region(filtered, criteria.funding_sources)
    rollup = export_region_rollup(aggregates.regions)

    states_only = aggregate_by_region(filtered, criteria.funding_sources, regions=STATE_NAMES)
    thresholds = compute_thresholds(states_only.funding_values(), method=args.method)
    print(f"Map thresholds ({args.method}): {', '.join(f'{t:,.0f}' for t in thresholds)}")

    if args.incident:
        # First incident given is the primary event
        order = {number: i for i, number in enumerate(args.incident)}
        selected = records[records["incident_number"].isin(list(order))]
        selected = selected.sort_values("incident_number", kind="stable", key=lambda s: s.map(order))
        if selected.empty:
            print(f"No records match incident number(s) {', '.join(args.incident)}; skipping PDF.")
        else:
            try:
                districts = load_districts()
            except FileNotFoundError:
                print("District file not found; the fact sheet will have no district table.")
                districts = None
            sheet = build_fact_sheet(records, selected, districts=districts, grantees=grantees)
            if write_fact_sheet(sheet) is None:
                status = 1

    print("Done.")
    print(f"filtered rows: {len(filtered)}")
    print(f"regions in rollup: {len(rollup)}")
    return status


if __name__ == "__main__":
    sys.exit(main())
