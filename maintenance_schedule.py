"""
Maintenance scheduling for MowerManager.

Computes when each recurring service category is next due for a mower,
buckets due dates by urgency, and merges the fleet into a single
priority-ordered maintenance worklist.

Everything here is a pure function of the mowers, their service records
and an injected ``today``; nothing touches the database. Mowers and service
records are plain dicts shaped like the rows returned by ``mower_manager``.
"""

import logging
from datetime import date, datetime, timedelta

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Recurrence interval in days per service category. 0 = not recurring.
SERVICE_INTERVALS = {
    'maintenance': 90,
    'inspection': 180,
    'repair': 0,
    'warranty': 0,
}

DUE_SOON_DAYS = 30
SCHEDULED_WINDOW_DAYS = 30
DUE_WINDOW_YEARS = 1
DEFAULT_AVG_INTERVAL_DAYS = 90

PRIORITY_IN_MAINTENANCE = 1
PRIORITY_OVERDUE = 2
PRIORITY_UPCOMING = 3

STATUS_OVERDUE = 'overdue'
STATUS_DUE_SOON = 'due_soon'
STATUS_UPCOMING = 'upcoming'
STATUS_IN_MAINTENANCE = 'in_maintenance'


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------

def parse_date(value):
    """Coerce a stored or submitted date value to ``datetime.date``.

    Accepts ``date``, ``datetime`` and ISO strings (``YYYY-MM-DD``, with or
    without a time part). ``None`` and blank strings mean "no date".

    Raises:
        ValueError: for anything that is not a recognisable date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        day_part = text.split('T')[0].split(' ')[0]
        return datetime.strptime(day_part, '%Y-%m-%d').date()
    raise ValueError(f"Unsupported date value: {value!r}")


def format_date(value):
    """Render a date-like value as ``YYYY-MM-DD`` (or None)."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def add_years(d, years=1):
    """Shift a date by whole calendar years; Feb 29 falls back to Feb 28."""
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        return d.replace(year=d.year + years, day=28)


def days_until(target, today):
    return (target - today).days


def mower_display_name(mower):
    return f"{mower.get('make') or ''} {mower.get('model') or ''}".strip()


# ---------------------------------------------------------------------------
# Due-date calculation
# ---------------------------------------------------------------------------

def classify_urgency(days_until_due):
    """Bucket a signed day count into overdue / due_soon / upcoming.

    Both 0 and DUE_SOON_DAYS belong to the due_soon band.
    """
    if days_until_due < 0:
        return STATUS_OVERDUE
    if days_until_due <= DUE_SOON_DAYS:
        return STATUS_DUE_SOON
    return STATUS_UPCOMING


def calculate_next_due(service_records, service_type, today=None):
    """Compute the next due date of one recurring service category.

    Args:
        service_records: the mower's service records (any categories).
        service_type: category to compute.
        today: reference date; defaults to the current date.

    Returns:
        dict with service_type, interval_days, last_date and next_due, or
        None when the category has no recurring interval. A category that
        was never performed is due ``today``.
    """
    interval_days = SERVICE_INTERVALS.get(service_type, 0)
    if not interval_days:
        return None
    today = today or date.today()

    performed = [
        parse_date(r['service_date'])
        for r in service_records
        if r.get('service_type') == service_type and r.get('service_date')
    ]
    last_date = max(performed) if performed else None
    next_due = last_date + timedelta(days=interval_days) if last_date else today

    return {
        'service_type': service_type,
        'interval_days': interval_days,
        'last_date': last_date,
        'next_due': next_due,
    }


def get_due_services(service_records, today=None):
    """Due dates for every recurring category inside the display window.

    The window reaches 12 months ahead of ``today``; overdue categories are
    always included.

    Returns:
        list[dict]: calculate_next_due() entries plus days_until_due and
        status, soonest first.
    """
    today = today or date.today()
    window_end = add_years(today, DUE_WINDOW_YEARS)

    results = []
    for service_type in SERVICE_INTERVALS:
        due = calculate_next_due(service_records, service_type, today)
        if due is None or due['next_due'] > window_end:
            continue
        due['days_until_due'] = days_until(due['next_due'], today)
        due['status'] = classify_urgency(due['days_until_due'])
        results.append(due)

    results.sort(key=lambda d: d['days_until_due'])
    return results


# ---------------------------------------------------------------------------
# Unified fleet worklist
# ---------------------------------------------------------------------------

def _entry(mower, entry_type, status, priority, service_type=None,
           last_date=None, next_due=None, days_until_due=None):
    return {
        'mower_id': mower['id'],
        'mower_name': mower_display_name(mower),
        'type': entry_type,
        'service_type': service_type,
        'last_date': last_date,
        'next_due': next_due,
        'days_until_due': days_until_due,
        'status': status,
        'priority': priority,
    }


def _group_by_mower(service_records):
    grouped = {}
    for record in service_records:
        grouped.setdefault(record['mower_id'], []).append(record)
    return grouped


def build_unified_maintenance_list(mowers, service_records, today=None):
    """Merge the fleet's maintenance signals into one deduplicated worklist.

    Sources are consumed in a fixed order. Steps 1, 2 and 4 claim the mower,
    and later steps skip claimed mowers:

    1. mowers currently in maintenance (priority 1)
    2. active mowers whose stored next_service_date has passed (priority 2)
    3. per-category due dates from the service history (priority 2 when
       overdue, else 3) for every unclaimed mower; every category of the
       mower is listed
    4. active mowers whose stored next_service_date is within 30 days
       (priority 3)

    The result is ordered by priority, then by days_until_due. Entries
    without a day count (in-maintenance) keep their input order.

    Args:
        mowers: list of mower dicts.
        service_records: service records for any of those mowers.
        today: reference date; defaults to the current date.

    Returns:
        list[dict]: worklist entries.
    """
    today = today or date.today()
    records_by_mower = _group_by_mower(service_records)
    processed = set()
    entries = []

    for mower in mowers:
        if mower.get('status') == 'maintenance':
            entries.append(_entry(
                mower, 'in_maintenance', STATUS_IN_MAINTENANCE, PRIORITY_IN_MAINTENANCE,
                last_date=parse_date(mower.get('last_service_date')),
            ))
            processed.add(mower['id'])

    for mower in mowers:
        if mower['id'] in processed or mower.get('status') != 'active':
            continue
        next_service = parse_date(mower.get('next_service_date'))
        if next_service and next_service < today:
            entries.append(_entry(
                mower, 'overdue_service', STATUS_OVERDUE, PRIORITY_OVERDUE,
                last_date=parse_date(mower.get('last_service_date')),
                next_due=next_service,
                days_until_due=days_until(next_service, today),
            ))
            processed.add(mower['id'])

    # Category entries do not claim the mower, so step 4 can still add a
    # scheduled_service entry for it.
    for mower in mowers:
        if mower['id'] in processed:
            continue
        due_services = get_due_services(records_by_mower.get(mower['id'], []), today)
        for due in due_services:
            overdue = due['status'] == STATUS_OVERDUE
            entries.append(_entry(
                mower, 'recurring_service', due['status'],
                PRIORITY_OVERDUE if overdue else PRIORITY_UPCOMING,
                service_type=due['service_type'],
                last_date=due['last_date'],
                next_due=due['next_due'],
                days_until_due=due['days_until_due'],
            ))

    for mower in mowers:
        if mower['id'] in processed or mower.get('status') != 'active':
            continue
        next_service = parse_date(mower.get('next_service_date'))
        if next_service is None:
            continue
        remaining = days_until(next_service, today)
        if 0 <= remaining <= SCHEDULED_WINDOW_DAYS:
            entries.append(_entry(
                mower, 'scheduled_service', classify_urgency(remaining), PRIORITY_UPCOMING,
                last_date=parse_date(mower.get('last_service_date')),
                next_due=next_service,
                days_until_due=remaining,
            ))
            processed.add(mower['id'])

    # sorted() is stable, so entries without a day count keep input order
    entries = sorted(entries, key=lambda e: (
        e['priority'],
        e['days_until_due'] if e['days_until_due'] is not None else 0,
    ))
    logger.debug(f"Unified maintenance list: {len(entries)} entries for {len(mowers)} mowers")
    return entries


# ---------------------------------------------------------------------------
# Overview / dashboard figures
# ---------------------------------------------------------------------------

def get_maintenance_overview(service_records, today=None):
    """Per-mower maintenance KPIs.

    Returns:
        dict with days_since_last_service, avg_service_interval,
        twelve_month_cost, repair_ratio (percent), service_count and
        due_services.
    """
    today = today or date.today()
    dated = [(parse_date(r['service_date']), r) for r in service_records if r.get('service_date')]

    last = max((d for d, _ in dated), default=None)
    days_since_last = days_until(today, last) if last else None

    maintenance_dates = sorted(d for d, r in dated if r.get('service_type') == 'maintenance')
    if len(maintenance_dates) > 1:
        gaps = [
            (later - earlier).days
            for earlier, later in zip(maintenance_dates, maintenance_dates[1:])
        ]
        avg_interval = sum(gaps) / len(gaps)
    else:
        avg_interval = DEFAULT_AVG_INTERVAL_DAYS

    year_ago = add_years(today, -1)
    recent = [r for d, r in dated if d >= year_ago]
    twelve_month_cost = sum(float(r.get('cost') or 0) for r in recent)
    repairs = sum(1 for r in recent if r.get('service_type') == 'repair')
    repair_ratio = (repairs / len(recent)) * 100 if recent else 0.0

    return {
        'days_since_last_service': days_since_last,
        'avg_service_interval': round(avg_interval, 1),
        'twelve_month_cost': round(twelve_month_cost, 2),
        'repair_ratio': round(repair_ratio, 1),
        'service_count': len(service_records),
        'due_services': get_due_services(service_records, today),
    }


def get_fleet_stats(mowers, today=None):
    """Dashboard counters driven by the stored next_service_date."""
    today = today or date.today()
    upcoming = 0
    overdue = 0
    for mower in mowers:
        next_service = parse_date(mower.get('next_service_date'))
        if next_service is None:
            continue
        remaining = days_until(next_service, today)
        if remaining < 0:
            overdue += 1
        elif remaining <= SCHEDULED_WINDOW_DAYS:
            upcoming += 1

    return {
        'total': len(mowers),
        'active': sum(1 for m in mowers if m.get('status') == 'active'),
        'maintenance': sum(1 for m in mowers if m.get('status') == 'maintenance'),
        'retired': sum(1 for m in mowers if m.get('status') == 'retired'),
        'upcoming_services': upcoming,
        'overdue_services': overdue,
    }
