"""
Reminder feed for MowerManager.

Two sources: mowers whose stored next service date is close or past, and
parts whose stock has dropped to the reorder level.
"""

import logging
from datetime import date

from db import get_db, rows_to_dicts
from maintenance_schedule import SCHEDULED_WINDOW_DAYS, days_until, mower_display_name, parse_date
from parts_inventory import get_low_stock_parts

logger = logging.getLogger(__name__)

HIGH_PRIORITY_DAYS = 7
MEDIUM_PRIORITY_DAYS = 14

_PRIORITY_ORDER = {'high': 0, 'medium': 1, 'low': 2}


def _service_priority(days):
    if days <= HIGH_PRIORITY_DAYS:
        return 'high'
    if days <= MEDIUM_PRIORITY_DAYS:
        return 'medium'
    return 'low'


def get_service_reminders(today=None):
    """Non-retired mowers whose next_service_date is past or within 30 days.

    Returns:
        list[dict]: reminders, soonest first.
    """
    today = today or date.today()
    with get_db() as conn:
        rows = conn.execute('''
            SELECT * FROM mowers
            WHERE status != 'retired' AND next_service_date IS NOT NULL
        ''').fetchall()

    reminders = []
    for mower in rows_to_dicts(rows):
        due = parse_date(mower['next_service_date'])
        if due is None:
            continue
        remaining = days_until(due, today)
        if remaining > SCHEDULED_WINDOW_DAYS:
            continue
        name = mower_display_name(mower)
        if remaining < 0:
            message = f"{name} service is {-remaining} day(s) overdue"
        elif remaining == 0:
            message = f"{name} service is due today"
        else:
            message = f"{name} service is due in {remaining} day(s)"
        reminders.append({
            'type': 'service',
            'mower_id': mower['id'],
            'mower_name': name,
            'title': 'Service overdue' if remaining < 0 else 'Service due',
            'message': message,
            'due_date': due,
            'days_until_due': remaining,
            'priority': _service_priority(remaining),
        })

    reminders.sort(key=lambda r: r['days_until_due'])
    return reminders


def get_stock_reminders():
    """Reorder reminders for low-stock parts; out of stock is high priority."""
    reminders = []
    for part in get_low_stock_parts():
        out = part['stock_quantity'] <= 0
        reminders.append({
            'type': 'stock',
            'part_id': part['id'],
            'part_name': part['name'],
            'part_number': part.get('part_number'),
            'title': 'Out of stock' if out else 'Low stock',
            'message': (
                f"{part['name']}: {part['stock_quantity']} in stock "
                f"(minimum {part['min_stock_level']})"
            ),
            'stock_quantity': part['stock_quantity'],
            'min_stock_level': part['min_stock_level'],
            'priority': 'high' if out else 'medium',
        })
    return reminders


def get_all_reminders(today=None):
    """Service and stock reminders merged, by priority then days until due.

    Stock reminders carry no due date and sort ahead of service reminders
    of the same priority.
    """
    reminders = get_service_reminders(today) + get_stock_reminders()
    reminders.sort(key=lambda r: (
        _PRIORITY_ORDER[r['priority']],
        r.get('days_until_due', float('-inf')),
    ))
    logger.debug(f"Reminders: {len(reminders)} total")
    return reminders
