"""
Mower fleet module for MowerManager.
Handles the mower inventory, service history and the bookkeeping that keeps
each mower's last/next service dates in step with its service records.
"""

import logging

from constants import MOWER_CONDITIONS, MOWER_STATUSES, SERVICE_TYPES
from db import get_db, rows_to_dicts
from maintenance_schedule import add_years, format_date, parse_date

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VALID_CONDITIONS = MOWER_CONDITIONS
VALID_STATUSES = MOWER_STATUSES
VALID_SERVICE_TYPES = SERVICE_TYPES

DEFAULT_CONDITION = 'good'
DEFAULT_STATUS = 'active'

MOWER_FIELDS = [
    'make', 'model', 'year', 'serial_number', 'purchase_date',
    'purchase_price', 'location', 'condition', 'status',
    'last_service_date', 'next_service_date', 'notes'
]

SERVICE_RECORD_FIELDS = [
    'service_date', 'service_type', 'description', 'cost',
    'performed_by', 'next_service_due', 'mileage'
]

_MOWER_DATE_FIELDS = ('purchase_date', 'last_service_date', 'next_service_date')
_SERVICE_DATE_FIELDS = ('service_date', 'next_service_due')


# ---------------------------------------------------------------------------
# Table initialization
# ---------------------------------------------------------------------------

def init_mower_tables():
    """Initialize mower and service history tables. Safe to call multiple times."""
    with get_db() as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS mowers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                make TEXT NOT NULL,
                model TEXT NOT NULL,
                year INTEGER,
                serial_number TEXT,
                purchase_date TEXT,
                purchase_price REAL,
                location TEXT,
                condition TEXT NOT NULL DEFAULT 'good',
                status TEXT NOT NULL DEFAULT 'active',
                last_service_date TEXT,
                next_service_date TEXT,
                thumbnail_attachment_id INTEGER,
                notes TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS service_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                mower_id INTEGER NOT NULL,
                service_date TEXT NOT NULL,
                service_type TEXT NOT NULL,
                description TEXT NOT NULL,
                cost REAL,
                performed_by TEXT,
                next_service_due TEXT,
                mileage INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (mower_id) REFERENCES mowers (id)
            )
        ''')

        cursor.execute(
            'CREATE INDEX IF NOT EXISTS idx_service_records_mower '
            'ON service_records (mower_id, service_date)'
        )

    logger.info("Mower tables initialized")


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _normalize_dates(data, fields):
    """Rewrite any date fields present in data as YYYY-MM-DD strings.

    Raises:
        ValueError: if a value cannot be parsed as a date.
    """
    for field in fields:
        if field in data:
            try:
                data[field] = format_date(data[field])
            except ValueError:
                raise ValueError(f"Invalid date for {field}: {data[field]!r}")


def _require(data, fields):
    missing = [f for f in fields if not data.get(f)]
    if missing:
        raise ValueError(f"Missing required field(s): {', '.join(missing)}")


# ---------------------------------------------------------------------------
# Mower CRUD
# ---------------------------------------------------------------------------

def add_mower(data):
    """Add a mower to the fleet.

    Args:
        data: dict with keys matching the mowers table columns. make and
            model are required.

    Returns:
        int: New mower row ID.
    """
    _require(data, ['make', 'model'])
    data = dict(data)
    _normalize_dates(data, _MOWER_DATE_FIELDS)

    condition = data.get('condition') or DEFAULT_CONDITION
    if condition not in VALID_CONDITIONS:
        condition = DEFAULT_CONDITION

    status = data.get('status') or DEFAULT_STATUS
    if status not in VALID_STATUSES:
        status = DEFAULT_STATUS

    with get_db() as conn:
        cursor = conn.execute('''
            INSERT INTO mowers (
                make, model, year, serial_number, purchase_date,
                purchase_price, location, condition, status,
                last_service_date, next_service_date, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            data['make'],
            data['model'],
            data.get('year'),
            data.get('serial_number'),
            data.get('purchase_date'),
            data.get('purchase_price'),
            data.get('location'),
            condition,
            status,
            data.get('last_service_date'),
            data.get('next_service_date'),
            data.get('notes')
        ))
        mower_id = cursor.lastrowid

    logger.info(f"Mower added: id={mower_id} name={data['make']} {data['model']}")
    return mower_id


def update_mower(mower_id, data):
    """Update mower details. Only updates fields present in data.

    Returns:
        bool: True if the row was updated.
    """
    data = dict(data)
    if 'make' in data and not data['make']:
        raise ValueError("make cannot be empty")
    if 'model' in data and not data['model']:
        raise ValueError("model cannot be empty")
    _normalize_dates(data, _MOWER_DATE_FIELDS)

    if 'condition' in data and data['condition'] not in VALID_CONDITIONS:
        data['condition'] = DEFAULT_CONDITION
    if 'status' in data and data['status'] not in VALID_STATUSES:
        data['status'] = DEFAULT_STATUS

    set_clauses = []
    params = []
    for field in MOWER_FIELDS:
        if field in data:
            set_clauses.append(f'{field} = ?')
            params.append(data[field])

    if not set_clauses:
        return False

    set_clauses.append('updated_at = CURRENT_TIMESTAMP')
    params.append(mower_id)

    query = f"UPDATE mowers SET {', '.join(set_clauses)} WHERE id = ?"

    with get_db() as conn:
        cursor = conn.execute(query, params)
        updated = cursor.rowcount > 0

    if updated:
        logger.info(f"Mower updated: id={mower_id}")
    return updated


def delete_mower(mower_id):
    """Permanently delete a mower and everything attached to it.

    Engines installed on the mower go with it, along with their
    attachments and part allocations.

    Returns:
        bool: True if the mower was deleted.
    """
    with get_db() as conn:
        row = conn.execute("SELECT id FROM mowers WHERE id = ?", (mower_id,)).fetchone()
        if not row:
            return False

        engine_ids = [
            r['id'] for r in conn.execute(
                "SELECT id FROM engines WHERE mower_id = ?", (mower_id,)
            ).fetchall()
        ]
        for engine_id in engine_ids:
            conn.execute("DELETE FROM attachments WHERE engine_id = ?", (engine_id,))
            conn.execute("DELETE FROM asset_parts WHERE engine_id = ?", (engine_id,))

        conn.execute("DELETE FROM engines WHERE mower_id = ?", (mower_id,))
        conn.execute("DELETE FROM asset_parts WHERE mower_id = ?", (mower_id,))
        conn.execute("DELETE FROM attachments WHERE mower_id = ?", (mower_id,))
        conn.execute("DELETE FROM tasks WHERE mower_id = ?", (mower_id,))
        conn.execute("DELETE FROM service_records WHERE mower_id = ?", (mower_id,))
        conn.execute("DELETE FROM mowers WHERE id = ?", (mower_id,))

    logger.info(f"Mower deleted: id={mower_id} engines={len(engine_ids)}")
    return True


def get_mowers(status=None, search=None):
    """Get the fleet with optional filters.

    Args:
        status: Optional filter by status.
        search: Optional case-insensitive match on make, model, serial
            number or location.

    Returns:
        list[dict]: Mower records.
    """
    query = 'SELECT * FROM mowers WHERE 1 = 1'
    params = []

    if status and status in VALID_STATUSES:
        query += ' AND status = ?'
        params.append(status)

    if search:
        like = f'%{search.lower()}%'
        query += (
            ' AND (LOWER(make) LIKE ? OR LOWER(model) LIKE ?'
            " OR LOWER(COALESCE(serial_number, '')) LIKE ?"
            " OR LOWER(COALESCE(location, '')) LIKE ?)"
        )
        params.extend([like, like, like, like])

    query += ' ORDER BY make ASC, model ASC, id ASC'

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()

    return rows_to_dicts(rows)


def get_mower_by_id(mower_id):
    """Get a single mower by ID.

    Returns:
        dict or None: Mower record.
    """
    with get_db() as conn:
        row = conn.execute('SELECT * FROM mowers WHERE id = ?', (mower_id,)).fetchone()

    return dict(row) if row else None


def get_mower_details(mower_id):
    """Mower record together with its service history, tasks, engines and
    attachment metadata, as shown on the mower detail page.

    Returns:
        dict or None
    """
    import attachments
    import parts_inventory
    import task_manager

    mower = get_mower_by_id(mower_id)
    if not mower:
        return None

    mower['service_records'] = get_service_records(mower_id)
    mower['tasks'] = task_manager.get_tasks(mower_id)
    mower['engines'] = parts_inventory.get_engines(mower_id=mower_id)
    mower['parts'] = parts_inventory.get_mower_parts(mower_id)
    mower['attachments'] = attachments.get_attachments('mower', mower_id)
    return mower


def set_mower_thumbnail(mower_id, attachment_id):
    """Point the mower's thumbnail at one of its image attachments.

    Args:
        mower_id: Mower ID.
        attachment_id: Attachment ID, or None to clear the thumbnail.

    Returns:
        bool: False if the mower does not exist.

    Raises:
        ValueError: if the attachment is not an image belonging to the mower.
    """
    with get_db() as conn:
        if not conn.execute("SELECT id FROM mowers WHERE id = ?", (mower_id,)).fetchone():
            return False

        if attachment_id is not None:
            row = conn.execute(
                "SELECT id, file_type FROM attachments WHERE id = ? AND mower_id = ?",
                (attachment_id, mower_id)
            ).fetchone()
            if not row:
                raise ValueError(f"Attachment {attachment_id} does not belong to mower {mower_id}")
            if row['file_type'] != 'image':
                raise ValueError("Thumbnail must be an image attachment")

        conn.execute(
            "UPDATE mowers SET thumbnail_attachment_id = ?, updated_at = CURRENT_TIMESTAMP "
            "WHERE id = ?",
            (attachment_id, mower_id)
        )

    logger.info(f"Mower thumbnail set: mower={mower_id} attachment={attachment_id}")
    return True


# ---------------------------------------------------------------------------
# Service records
# ---------------------------------------------------------------------------

def add_service_record(mower_id, data):
    """Log a service event and roll the mower's service dates forward.

    The mower's last_service_date only ever moves forward. When the record
    is the mower's most recent service, next_service_date becomes the
    record's next_service_due, or the service date plus 12 months when none
    was given.

    Args:
        mower_id: Mower the service was performed on.
        data: dict with service_date, service_type, description and
            optional cost, performed_by, next_service_due, mileage.

    Returns:
        int: New service record ID, or None if the mower does not exist.

    Raises:
        ValueError: for missing fields, unknown service types or bad dates.
    """
    _require(data, ['service_date', 'service_type', 'description'])
    data = dict(data)
    _normalize_dates(data, _SERVICE_DATE_FIELDS)

    if data['service_type'] not in VALID_SERVICE_TYPES:
        raise ValueError(
            f"Invalid service_type {data['service_type']!r}; "
            f"expected one of {', '.join(VALID_SERVICE_TYPES)}"
        )

    service_date = parse_date(data['service_date'])

    with get_db() as conn:
        mower = conn.execute(
            'SELECT id, last_service_date FROM mowers WHERE id = ?', (mower_id,)
        ).fetchone()
        if not mower:
            logger.warning(f"Service record denied: mower {mower_id} not found")
            return None

        cursor = conn.execute('''
            INSERT INTO service_records (
                mower_id, service_date, service_type, description, cost,
                performed_by, next_service_due, mileage
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            mower_id,
            data['service_date'],
            data['service_type'],
            data['description'],
            data.get('cost'),
            data.get('performed_by'),
            data.get('next_service_due'),
            data.get('mileage')
        ))
        record_id = cursor.lastrowid

        previous = parse_date(mower['last_service_date'])
        if previous is None or service_date >= previous:
            next_service = data.get('next_service_due') or format_date(add_years(service_date, 1))
            conn.execute(
                "UPDATE mowers SET last_service_date = ?, next_service_date = ?, "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (service_date.isoformat(), next_service, mower_id)
            )

    logger.info(
        f"Service logged: id={record_id} mower={mower_id} "
        f"type={data['service_type']} date={data['service_date']}"
    )
    return record_id


def get_service_records(mower_id):
    """Service history for one mower, newest first."""
    with get_db() as conn:
        rows = conn.execute('''
            SELECT * FROM service_records
            WHERE mower_id = ?
            ORDER BY service_date DESC, id DESC
        ''', (mower_id,)).fetchall()

    return rows_to_dicts(rows)


def get_all_service_records():
    """Service history for the whole fleet, newest first, with mower names."""
    with get_db() as conn:
        rows = conn.execute('''
            SELECT sr.*, m.make AS mower_make, m.model AS mower_model
            FROM service_records sr
            JOIN mowers m ON m.id = sr.mower_id
            ORDER BY sr.service_date DESC, sr.id DESC
        ''').fetchall()

    return rows_to_dicts(rows)


def get_service_record(record_id):
    with get_db() as conn:
        row = conn.execute('SELECT * FROM service_records WHERE id = ?', (record_id,)).fetchone()

    return dict(row) if row else None


def update_service_record(record_id, data):
    """Amend a service record. The owning mower cannot be changed and the
    mower's stored service dates are left as they are.

    Returns:
        bool: True if the row was updated.
    """
    data = dict(data)
    for field in ('service_date', 'service_type', 'description'):
        if field in data and not data[field]:
            raise ValueError(f"{field} cannot be empty")
    _normalize_dates(data, _SERVICE_DATE_FIELDS)

    if 'service_type' in data and data['service_type'] not in VALID_SERVICE_TYPES:
        raise ValueError(f"Invalid service_type {data['service_type']!r}")

    set_clauses = []
    params = []
    for field in SERVICE_RECORD_FIELDS:
        if field in data:
            set_clauses.append(f'{field} = ?')
            params.append(data[field])

    if not set_clauses:
        return False

    params.append(record_id)
    query = f"UPDATE service_records SET {', '.join(set_clauses)} WHERE id = ?"

    with get_db() as conn:
        cursor = conn.execute(query, params)
        updated = cursor.rowcount > 0

    if updated:
        logger.info(f"Service record updated: id={record_id}")
    return updated


def delete_service_record(record_id):
    """Delete a service record. Parts installed during that service stay
    allocated but lose their link to the record.

    Returns:
        bool: True if the record was deleted.
    """
    with get_db() as conn:
        row = conn.execute("SELECT id FROM service_records WHERE id = ?", (record_id,)).fetchone()
        if not row:
            return False

        conn.execute(
            "UPDATE asset_parts SET service_record_id = NULL WHERE service_record_id = ?",
            (record_id,)
        )
        conn.execute("DELETE FROM service_records WHERE id = ?", (record_id,))

    logger.info(f"Service record deleted: id={record_id}")
    return True
