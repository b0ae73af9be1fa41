import pandas as pd
import pytest

from filters import FilterCriteria, default_criteria, filter_records, funding_total, sort_records


def criteria(**overrides):
    base = dict(start_year=2015, start_month=1, end_year=2024, end_month=12, include_territories=True)
    base.update(overrides)
    return FilterCriteria(**base)


@pytest.fixture
def records(make_frame):
    return make_frame(
        [
            {"incident_number": "1", "state": "TX", "incident_start": "2020-06-30", "ihp_total": 100},
            {"incident_number": "2", "state": "FL", "incident_start": "2020-06-01", "incident_type": "Flood", "pa_total": 50},
            {"incident_number": "3", "state": "PR", "incident_start": "2021-03-15", "cdbg_dr_allocation": 75},
            {"incident_number": "4", "state": "CA", "incident_start": "2020-07-01", "incident_type": "Fire", "sba_total_approved_loan_amount": 10},
            {"incident_number": "5", "state": "TX", "incident_start": None, "ihp_total": 500},
            {"incident_number": "6", "state": "LA", "incident_start": "2020-03-01"},
        ]
    )


def ids(df):
    return sorted(df["incident_number"].tolist())


def test_end_month_is_inclusive(records):
    out = filter_records(records, criteria(start_year=2020, start_month=6, end_year=2020, end_month=6))
    assert ids(out) == ["1", "2"]


def test_undated_records_never_match(records):
    out = filter_records(records, criteria(start_year=1900))
    assert "5" not in ids(out)


def test_start_after_end_matches_nothing(records):
    out = filter_records(records, criteria(start_year=2024, end_year=2015))
    assert out.empty


def test_zero_funding_records_are_dropped(records):
    assert "6" not in ids(filter_records(records, criteria()))


def test_no_states_selected_means_all_states(records):
    assert ids(filter_records(records, criteria())) == ["1", "2", "3", "4"]


def test_territories_follow_toggle(records):
    out = filter_records(records, criteria(include_territories=False))
    assert "3" not in ids(out)

    out = filter_records(records, criteria(states=frozenset({"TX"}), include_territories=True))
    assert ids(out) == ["1", "3"]

    out = filter_records(records, criteria(states=frozenset({"TX"}), include_territories=False))
    assert ids(out) == ["1"]


def test_disaster_type_filter(records):
    out = filter_records(records, criteria(disaster_types=frozenset({"Flood", "Fire"})))
    assert ids(out) == ["2", "4"]


def test_funding_sources(records):
    out = filter_records(records, criteria(funding_sources=frozenset({"sba"})))
    assert ids(out) == ["4"]

    out = filter_records(records, criteria(funding_sources=frozenset({"ihp", "pa"})))
    assert ids(out) == ["1", "2"]

    assert filter_records(records, criteria(funding_sources=frozenset())).empty


def test_filter_returns_copy(records):
    out = filter_records(records, criteria())
    out["ihp_total"] = -1
    assert (records["ihp_total"] >= 0).all()


def test_funding_total_selected_sources_only(records):
    totals = funding_total(records, ["ihp", "cdbg_dr"])
    assert totals.tolist() == [100.0, 0.0, 75.0, 0.0, 500.0, 0.0]
    assert (funding_total(records, []) == 0).all()


def test_default_criteria(make_frame):
    df = make_frame([{"incident_start": "2012-05-01"}, {"incident_start": "2024-03-17"}])
    c = default_criteria(df)
    assert (c.start_year, c.start_month) == (2014, 1)
    assert (c.end_year, c.end_month) == (2024, 3)
    assert c.include_territories
    assert c.funding_sources == frozenset({"ihp", "pa", "cdbg_dr", "sba"})
    assert c.end_date == pd.Timestamp("2024-03-31")


def test_sort_by_state_uses_full_name(make_frame):
    df = make_frame([{"state": "CA"}, {"state": "AK"}, {"state": "AL"}])
    assert sort_records(df, "state", ascending=True)["state"].tolist() == ["AL", "AK", "CA"]


def test_sort_by_date_puts_undated_last(make_frame):
    df = make_frame(
        [
            {"incident_number": "a", "incident_start": "2019-01-01"},
            {"incident_number": "b", "incident_start": None},
            {"incident_number": "c", "incident_start": "2021-01-01"},
        ]
    )
    out = sort_records(df, "incident_start", ascending=False)
    assert out["incident_number"].tolist() == ["c", "a", "b"]


def test_sort_unknown_column_is_noop(make_frame):
    df = make_frame([{"state": "CA"}, {"state": "AK"}])
    assert sort_records(df, "ihp_total")["state"].tolist() == ["CA", "AK"]


def test_filter_is_idempotent(records):
    for include_territories in (True, False):
        for states in (frozenset(), frozenset({"TX", "FL"})):
            c = criteria(states=states, include_territories=include_territories)
            once = filter_records(records, c)
            assert filter_records(once, c).equals(once), (states, include_territories)
