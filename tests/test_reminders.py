"""Tests for service and stock reminders."""

from datetime import timedelta

import pytest

from mower_manager import add_mower
from parts_inventory import add_part
from reminders import get_all_reminders, get_service_reminders, get_stock_reminders

pytestmark = pytest.mark.usefixtures('clean_db')


def _mower_due(today, days, status='active', model='Reelmaster'):
    return add_mower({
        'make': 'Toro',
        'model': model,
        'status': status,
        'next_service_date': (today + timedelta(days=days)).isoformat(),
    })


class TestServiceReminders:
    def test_window_and_priority(self, today):
        overdue = _mower_due(today, -3, model='A')
        _mower_due(today, 10, model='B')
        _mower_due(today, 20, model='C')
        _mower_due(today, 31, model='D')

        reminders = get_service_reminders(today)
        assert [r['days_until_due'] for r in reminders] == [-3, 10, 20]
        assert [r['priority'] for r in reminders] == ['high', 'medium', 'low']
        assert reminders[0]['mower_id'] == overdue
        assert reminders[0]['title'] == 'Service overdue'
        assert reminders[0]['message'] == 'Toro A service is 3 day(s) overdue'
        assert reminders[0]['due_date'] == today - timedelta(days=3)

    def test_due_today_and_boundaries(self, today):
        _mower_due(today, 0, model='Today')
        _mower_due(today, 7, model='Week')
        _mower_due(today, 14, model='Fortnight')
        _mower_due(today, 30, model='Month')

        reminders = get_service_reminders(today)
        assert reminders[0]['message'] == 'Toro Today service is due today'
        assert [r['priority'] for r in reminders] == ['high', 'high', 'medium', 'low']

    def test_retired_and_unscheduled_mowers_skipped(self, today):
        _mower_due(today, -1, status='retired')
        add_mower({'make': 'Toro', 'model': 'Unscheduled'})
        assert get_service_reminders(today) == []


class TestStockReminders:
    def test_low_and_out_of_stock(self):
        add_part({'name': 'Belt', 'stock_quantity': 0, 'min_stock_level': 1})
        add_part({'name': 'Filter', 'stock_quantity': 1, 'min_stock_level': 2})
        add_part({'name': 'Plug', 'stock_quantity': 9, 'min_stock_level': 2})

        by_name = {r['part_name']: r for r in get_stock_reminders()}
        assert set(by_name) == {'Belt', 'Filter'}
        assert by_name['Belt']['priority'] == 'high'
        assert by_name['Belt']['title'] == 'Out of stock'
        assert by_name['Filter']['priority'] == 'medium'
        assert by_name['Filter']['message'] == 'Filter: 1 in stock (minimum 2)'


class TestAllReminders:
    def test_merged_order(self, today):
        _mower_due(today, -3, model='A')
        _mower_due(today, 10, model='B')
        _mower_due(today, 20, model='C')
        add_part({'name': 'Belt', 'stock_quantity': 0, 'min_stock_level': 1})
        add_part({'name': 'Filter', 'stock_quantity': 1, 'min_stock_level': 2})

        order = [
            (r['type'], r.get('mower_name') or r.get('part_name'))
            for r in get_all_reminders(today)
        ]
        assert order == [
            ('stock', 'Belt'),
            ('service', 'Toro A'),
            ('stock', 'Filter'),
            ('service', 'Toro B'),
            ('service', 'Toro C'),
        ]
