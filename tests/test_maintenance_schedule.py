"""Tests for due-date calculation, urgency buckets and the unified maintenance list."""

from datetime import date, datetime, timedelta

import pytest

from maintenance_schedule import (
    SERVICE_INTERVALS,
    add_years,
    build_unified_maintenance_list,
    calculate_next_due,
    classify_urgency,
    get_due_services,
    get_fleet_stats,
    get_maintenance_overview,
    parse_date,
)

TODAY = date(2025, 6, 15)


def _mower(mower_id, status='active', next_service_date=None, make='Toro', model='Reelmaster'):
    return {
        'id': mower_id,
        'make': make,
        'model': model,
        'status': status,
        'last_service_date': None,
        'next_service_date': next_service_date,
    }


def _record(mower_id, service_type, service_date, cost=None):
    return {
        'mower_id': mower_id,
        'service_type': service_type,
        'service_date': service_date,
        'cost': cost,
    }


# ---------------------------------------------------------------------------
# Interval table / urgency
# ---------------------------------------------------------------------------

class TestServiceIntervals:
    def test_recurring_categories(self):
        assert SERVICE_INTERVALS['maintenance'] == 90
        assert SERVICE_INTERVALS['inspection'] == 180

    def test_non_recurring_categories(self):
        assert SERVICE_INTERVALS['repair'] == 0
        assert SERVICE_INTERVALS['warranty'] == 0


class TestClassifyUrgency:
    @pytest.mark.parametrize('days, expected', [
        (-1, 'overdue'),
        (-365, 'overdue'),
        (0, 'due_soon'),
        (15, 'due_soon'),
        (30, 'due_soon'),
        (31, 'upcoming'),
        (400, 'upcoming'),
    ])
    def test_buckets(self, days, expected):
        assert classify_urgency(days) == expected


# ---------------------------------------------------------------------------
# Due-date calculation
# ---------------------------------------------------------------------------

class TestCalculateNextDue:
    def test_never_performed_is_due_today(self):
        due = calculate_next_due([], 'maintenance', TODAY)
        assert due['next_due'] == TODAY
        assert due['last_date'] is None
        assert due['interval_days'] == 90

    def test_next_due_is_last_date_plus_interval(self):
        records = [_record(1, 'maintenance', '2025-05-01')]
        due = calculate_next_due(records, 'maintenance', TODAY)
        assert due['last_date'] == date(2025, 5, 1)
        assert due['next_due'] == date(2025, 7, 30)

    def test_only_most_recent_record_counts(self):
        records = [
            _record(1, 'maintenance', '2025-04-01'),
            _record(1, 'maintenance', '2025-01-10'),
        ]
        due = calculate_next_due(records, 'maintenance', TODAY)
        assert due['last_date'] == date(2025, 4, 1)
        assert due['next_due'] == date(2025, 6, 30)

    def test_other_categories_are_ignored(self):
        records = [
            _record(1, 'repair', '2025-06-01'),
            _record(1, 'inspection', '2025-01-01'),
        ]
        due = calculate_next_due(records, 'inspection', TODAY)
        assert due['next_due'] == date(2025, 6, 30)

    def test_non_recurring_category_returns_none(self):
        records = [_record(1, 'repair', '2025-06-01')]
        assert calculate_next_due(records, 'repair', TODAY) is None
        assert calculate_next_due(records, 'warranty', TODAY) is None

    def test_accepts_timestamps_and_date_objects(self):
        records = [
            _record(1, 'maintenance', '2025-05-01T14:30:00'),
            _record(1, 'maintenance', datetime(2025, 3, 1, 9, 0)),
        ]
        due = calculate_next_due(records, 'maintenance', TODAY)
        assert due['last_date'] == date(2025, 5, 1)

    def test_overdue_by_ten_days(self):
        records = [_record(1, 'maintenance', TODAY - timedelta(days=100))]
        [maintenance] = [d for d in get_due_services(records, TODAY) if d['service_type'] == 'maintenance']
        assert maintenance['days_until_due'] == -10
        assert maintenance['status'] == 'overdue'


class TestGetDueServices:
    def test_new_mower_gets_every_recurring_category_due_today(self):
        due = get_due_services([], TODAY)
        assert {d['service_type'] for d in due} == {'maintenance', 'inspection'}
        assert all(d['days_until_due'] == 0 for d in due)
        assert all(d['status'] == 'due_soon' for d in due)

    def test_sorted_soonest_first(self):
        records = [
            _record(1, 'inspection', TODAY - timedelta(days=10)),
            _record(1, 'maintenance', TODAY - timedelta(days=100)),
        ]
        due = get_due_services(records, TODAY)
        assert [d['service_type'] for d in due] == ['maintenance', 'inspection']
        assert [d['days_until_due'] for d in due] == [-10, 170]
        assert due[1]['status'] == 'upcoming'

    def test_dates_beyond_twelve_months_are_excluded(self):
        # Service logged ahead of time pushes the next inspection past the window
        records = [_record(1, 'inspection', TODAY + timedelta(days=200))]
        due = get_due_services(records, TODAY)
        assert [d['service_type'] for d in due] == ['maintenance']


# ---------------------------------------------------------------------------
# Unified list
# ---------------------------------------------------------------------------

class TestUnifiedMaintenanceList:
    def test_empty_fleet(self):
        assert build_unified_maintenance_list([], [], TODAY) == []

    def test_priority_order_across_sources(self):
        yesterday = (TODAY - timedelta(days=1)).isoformat()
        mowers = [
            _mower(3, make='Deere', model='2500B'),
            _mower(2, next_service_date=yesterday),
            _mower(1, status='maintenance'),
        ]
        result = build_unified_maintenance_list(mowers, [], TODAY)

        assert [e['mower_id'] for e in result] == [1, 2, 3, 3]
        assert [e['priority'] for e in result] == [1, 2, 3, 3]
        assert result[0]['type'] == 'in_maintenance'
        assert result[0]['status'] == 'in_maintenance'
        assert result[0]['days_until_due'] is None
        assert result[1]['type'] == 'overdue_service'
        assert result[1]['days_until_due'] == -1
        assert {e['type'] for e in result[2:]} == {'recurring_service'}

    def test_mower_in_maintenance_appears_once(self):
        mowers = [_mower(1, status='maintenance', next_service_date='2024-01-01')]
        records = [
            _record(1, 'maintenance', TODAY - timedelta(days=300)),
            _record(1, 'inspection', TODAY - timedelta(days=400)),
        ]
        result = build_unified_maintenance_list(mowers, records, TODAY)
        assert len(result) == 1
        assert result[0]['type'] == 'in_maintenance'

    def test_overdue_mower_skips_category_entries(self):
        mowers = [_mower(1, next_service_date='2025-06-01')]
        records = [_record(1, 'maintenance', TODAY - timedelta(days=200))]
        result = build_unified_maintenance_list(mowers, records, TODAY)
        assert len(result) == 1
        assert result[0]['type'] == 'overdue_service'
        assert result[0]['days_until_due'] == -14

    def test_all_categories_of_a_mower_are_listed(self):
        mowers = [_mower(1)]
        records = [
            _record(1, 'maintenance', TODAY - timedelta(days=100)),
            _record(1, 'inspection', TODAY - timedelta(days=170)),
        ]
        result = build_unified_maintenance_list(mowers, records, TODAY)
        by_type = {e['service_type']: e for e in result}
        assert by_type['maintenance']['priority'] == 2
        assert by_type['maintenance']['status'] == 'overdue'
        assert by_type['inspection']['priority'] == 3
        assert by_type['inspection']['status'] == 'due_soon'
        assert by_type['inspection']['days_until_due'] == 10

    def test_retired_mower_only_gets_category_entries(self):
        mowers = [_mower(1, status='retired', next_service_date='2024-01-01')]
        result = build_unified_maintenance_list(mowers, [], TODAY)
        assert [e['type'] for e in result] == ['recurring_service', 'recurring_service']
        assert all(e['days_until_due'] == 0 for e in result)

    def test_scheduled_service_within_thirty_days(self):
        next_service = TODAY + timedelta(days=10)
        mowers = [_mower(1, next_service_date=next_service.isoformat())]
        records = [_record(1, 'maintenance', TODAY - timedelta(days=10))]
        result = build_unified_maintenance_list(mowers, records, TODAY)

        assert [(e['type'], e['service_type'], e['days_until_due']) for e in result] == [
            ('recurring_service', 'inspection', 0),
            ('scheduled_service', None, 10),
            ('recurring_service', 'maintenance', 80),
        ]
        scheduled = result[1]
        assert scheduled['priority'] == 3
        assert scheduled['status'] == 'due_soon'
        assert scheduled['next_due'] == next_service

    def test_scheduled_service_window_boundaries(self):
        mowers = [
            _mower(1, next_service_date=TODAY.isoformat()),
            _mower(2, next_service_date=(TODAY + timedelta(days=30)).isoformat()),
            _mower(3, next_service_date=(TODAY + timedelta(days=31)).isoformat()),
        ]
        result = build_unified_maintenance_list(mowers, [], TODAY)
        scheduled = [(e['mower_id'], e['days_until_due']) for e in result if e['type'] == 'scheduled_service']
        assert scheduled == [(1, 0), (2, 30)]

    def test_claimed_mowers_get_no_scheduled_entry(self):
        soon = (TODAY + timedelta(days=5)).isoformat()
        mowers = [
            _mower(1, status='maintenance', next_service_date=soon),
            _mower(2, next_service_date=(TODAY - timedelta(days=2)).isoformat()),
            _mower(3, status='retired', next_service_date=soon),
        ]
        result = build_unified_maintenance_list(mowers, [], TODAY)
        assert not [e for e in result if e['type'] == 'scheduled_service']
        assert [e['type'] for e in result if e['mower_id'] in (1, 2)] == ['in_maintenance', 'overdue_service']

    def test_sorted_by_days_within_priority(self):
        mowers = [_mower(1), _mower(2)]
        records = [
            _record(1, 'maintenance', TODAY - timedelta(days=95)),
            _record(2, 'maintenance', TODAY - timedelta(days=120)),
        ]
        result = build_unified_maintenance_list(mowers, records, TODAY)
        assert [(e['mower_id'], e['service_type']) for e in result] == [
            (2, 'maintenance'),
            (1, 'maintenance'),
            (1, 'inspection'),
            (2, 'inspection'),
        ]

    def test_entry_contract(self):
        result = build_unified_maintenance_list([_mower(7, make='Jacobsen', model='Eclipse 322')], [], TODAY)
        entry = result[0]
        assert set(entry) == {
            'mower_id', 'mower_name', 'type', 'service_type', 'last_date',
            'next_due', 'days_until_due', 'status', 'priority',
        }
        assert entry['mower_name'] == 'Jacobsen Eclipse 322'
        assert entry['next_due'] == TODAY

    def test_idempotent_for_same_inputs(self):
        mowers = [_mower(1), _mower(2, status='maintenance'), _mower(3, next_service_date='2025-06-10')]
        records = [_record(1, 'maintenance', '2025-02-01')]
        first = build_unified_maintenance_list(mowers, records, TODAY)
        second = build_unified_maintenance_list(mowers, records, TODAY)
        assert first == second

    def test_inputs_are_not_mutated(self):
        mowers = [_mower(1)]
        records = [_record(1, 'maintenance', '2025-02-01')]
        before = ([dict(m) for m in mowers], [dict(r) for r in records])
        build_unified_maintenance_list(mowers, records, TODAY)
        assert (mowers, records) == before


# ---------------------------------------------------------------------------
# Overview / fleet stats
# ---------------------------------------------------------------------------

class TestMaintenanceOverview:
    def test_figures(self):
        records = [
            _record(1, 'maintenance', TODAY - timedelta(days=400), cost=999),
            _record(1, 'maintenance', TODAY - timedelta(days=200), cost=100),
            _record(1, 'maintenance', TODAY - timedelta(days=100), cost=120),
            _record(1, 'repair', TODAY - timedelta(days=30), cost=150.5),
        ]
        overview = get_maintenance_overview(records, TODAY)
        assert overview['days_since_last_service'] == 30
        assert overview['avg_service_interval'] == 150.0
        assert overview['twelve_month_cost'] == 370.5
        assert overview['repair_ratio'] == 33.3
        assert overview['service_count'] == 4
        assert overview['due_services'][0]['days_until_due'] == -10

    def test_defaults_without_history(self):
        overview = get_maintenance_overview([], TODAY)
        assert overview['days_since_last_service'] is None
        assert overview['avg_service_interval'] == 90
        assert overview['twelve_month_cost'] == 0
        assert overview['repair_ratio'] == 0.0


class TestFleetStats:
    def test_counts(self):
        mowers = [
            _mower(1, next_service_date=(TODAY - timedelta(days=5)).isoformat()),
            _mower(2, next_service_date=TODAY.isoformat()),
            _mower(3, status='maintenance', next_service_date=(TODAY + timedelta(days=30)).isoformat()),
            _mower(4, next_service_date=(TODAY + timedelta(days=31)).isoformat()),
            _mower(5, status='retired'),
        ]
        stats = get_fleet_stats(mowers, TODAY)
        assert stats == {
            'total': 5,
            'active': 3,
            'maintenance': 1,
            'retired': 1,
            'upcoming_services': 2,
            'overdue_services': 1,
        }


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------

class TestDateHelpers:
    def test_parse_blank_values(self):
        assert parse_date(None) is None
        assert parse_date('') is None
        assert parse_date('   ') is None

    def test_parse_iso_variants(self):
        assert parse_date('2025-06-15') == TODAY
        assert parse_date('2025-06-15T08:00:00Z') == TODAY
        assert parse_date('2025-06-15 08:00:00') == TODAY
        assert parse_date(datetime(2025, 6, 15, 23, 59)) == TODAY

    @pytest.mark.parametrize('value', ['15/06/2025', 'soon', 20250615, 3.5])
    def test_parse_rejects_garbage(self, value):
        with pytest.raises(ValueError):
            parse_date(value)

    def test_add_years_leap_day(self):
        assert add_years(date(2024, 2, 29)) == date(2025, 2, 28)
        assert add_years(date(2025, 3, 1), -1) == date(2024, 3, 1)
