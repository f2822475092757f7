"""
Parts and engine inventory for MowerManager.

Tracks the parts catalog with stock levels, engines (components that may be
installed on a mower or kept as spares) and allocations of parts to a mower
or an engine. Allocating a part draws it from stock; removing an allocation
puts it back.
"""

import logging
from datetime import date

from constants import ENGINE_CONDITIONS, ENGINE_STATUSES
from db import get_db, rows_to_dicts
from maintenance_schedule import format_date

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VALID_ENGINE_CONDITIONS = ENGINE_CONDITIONS
VALID_ENGINE_STATUSES = ENGINE_STATUSES

PART_FIELDS = [
    'name', 'description', 'part_number', 'manufacturer', 'category',
    'unit_cost', 'stock_quantity', 'min_stock_level', 'notes'
]

ENGINE_FIELDS = [
    'mower_id', 'name', 'description', 'part_number', 'manufacturer',
    'model', 'serial_number', 'install_date', 'condition', 'status',
    'cost', 'notes'
]


# ---------------------------------------------------------------------------
# Table initialization
# ---------------------------------------------------------------------------

def init_inventory_tables():
    """Initialize parts, engines and allocation tables. Safe to call multiple times."""
    with get_db() as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS parts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                description TEXT,
                part_number TEXT,
                manufacturer TEXT,
                category TEXT,
                unit_cost REAL,
                stock_quantity INTEGER NOT NULL DEFAULT 0,
                min_stock_level INTEGER NOT NULL DEFAULT 0,
                notes TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS engines (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                mower_id INTEGER,
                name TEXT NOT NULL,
                description TEXT,
                part_number TEXT,
                manufacturer TEXT,
                model TEXT,
                serial_number TEXT,
                install_date TEXT,
                condition TEXT NOT NULL DEFAULT 'good',
                status TEXT NOT NULL DEFAULT 'active',
                cost REAL,
                notes TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (mower_id) REFERENCES mowers (id)
            )
        ''')

        # A part is allocated to exactly one of mower / engine
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS asset_parts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                part_id INTEGER NOT NULL,
                mower_id INTEGER,
                engine_id INTEGER,
                quantity INTEGER NOT NULL DEFAULT 1,
                install_date TEXT,
                service_record_id INTEGER,
                notes TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (part_id) REFERENCES parts (id),
                FOREIGN KEY (mower_id) REFERENCES mowers (id),
                FOREIGN KEY (engine_id) REFERENCES engines (id),
                FOREIGN KEY (service_record_id) REFERENCES service_records (id)
            )
        ''')

    logger.info("Inventory tables initialized")


def _to_int(value, field, minimum=0):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer")
    if number < minimum:
        raise ValueError(f"{field} must be at least {minimum}")
    return number


def _build_update(fields, data):
    set_clauses = []
    params = []
    for field in fields:
        if field in data:
            set_clauses.append(f'{field} = ?')
            params.append(data[field])
    return set_clauses, params


# ---------------------------------------------------------------------------
# Parts catalog
# ---------------------------------------------------------------------------

def add_part(data):
    """Add a part to the catalog.

    Returns:
        int: New part ID.
    """
    if not data.get('name'):
        raise ValueError("Missing required field(s): name")
    stock = _to_int(data.get('stock_quantity', 0), 'stock_quantity')
    min_stock = _to_int(data.get('min_stock_level', 0), 'min_stock_level')

    with get_db() as conn:
        cursor = conn.execute('''
            INSERT INTO parts (
                name, description, part_number, manufacturer, category,
                unit_cost, stock_quantity, min_stock_level, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            data['name'],
            data.get('description'),
            data.get('part_number'),
            data.get('manufacturer'),
            data.get('category'),
            data.get('unit_cost'),
            stock,
            min_stock,
            data.get('notes')
        ))
        part_id = cursor.lastrowid

    logger.info(f"Part added: id={part_id} name={data['name']} stock={stock}")
    return part_id


def update_part(part_id, data):
    data = dict(data)
    if 'name' in data and not data['name']:
        raise ValueError("name cannot be empty")
    for field in ('stock_quantity', 'min_stock_level'):
        if field in data:
            data[field] = _to_int(data[field], field)

    set_clauses, params = _build_update(PART_FIELDS, data)
    if not set_clauses:
        return False
    set_clauses.append('updated_at = CURRENT_TIMESTAMP')
    params.append(part_id)

    with get_db() as conn:
        updated = conn.execute(
            f"UPDATE parts SET {', '.join(set_clauses)} WHERE id = ?", params
        ).rowcount > 0

    if updated:
        logger.info(f"Part updated: id={part_id}")
    return updated


def delete_part(part_id):
    """Delete a part together with its allocations and attachments."""
    with get_db() as conn:
        if not conn.execute("SELECT id FROM parts WHERE id = ?", (part_id,)).fetchone():
            return False
        conn.execute("DELETE FROM asset_parts WHERE part_id = ?", (part_id,))
        conn.execute("DELETE FROM attachments WHERE part_id = ?", (part_id,))
        conn.execute("DELETE FROM parts WHERE id = ?", (part_id,))

    logger.info(f"Part deleted: id={part_id}")
    return True


def get_parts(category=None, search=None):
    """Parts catalog ordered by name, with optional category and text filters."""
    query = 'SELECT * FROM parts WHERE 1 = 1'
    params = []
    if category:
        query += ' AND category = ?'
        params.append(category)
    if search:
        like = f'%{search.lower()}%'
        query += (
            " AND (LOWER(name) LIKE ? OR LOWER(COALESCE(part_number, '')) LIKE ?"
            " OR LOWER(COALESCE(manufacturer, '')) LIKE ?)"
        )
        params.extend([like, like, like])
    query += ' ORDER BY name ASC, id ASC'

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
    return rows_to_dicts(rows)


def get_part_by_id(part_id):
    with get_db() as conn:
        row = conn.execute('SELECT * FROM parts WHERE id = ?', (part_id,)).fetchone()
    return dict(row) if row else None


def get_low_stock_parts():
    """Parts with a minimum stock level set whose stock has fallen to or below it."""
    with get_db() as conn:
        rows = conn.execute('''
            SELECT * FROM parts
            WHERE min_stock_level > 0 AND stock_quantity <= min_stock_level
            ORDER BY stock_quantity ASC, name ASC
        ''').fetchall()
    return rows_to_dicts(rows)


# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------

def _clean_engine(data):
    data = dict(data)
    if 'condition' in data and data['condition'] not in VALID_ENGINE_CONDITIONS:
        data['condition'] = 'good'
    if 'status' in data and data['status'] not in VALID_ENGINE_STATUSES:
        data['status'] = 'active'
    if 'install_date' in data:
        try:
            data['install_date'] = format_date(data['install_date'])
        except ValueError:
            raise ValueError(f"Invalid install_date: {data['install_date']!r}")
    return data


def _check_mower(conn, mower_id):
    if mower_id is not None and not conn.execute(
        'SELECT id FROM mowers WHERE id = ?', (mower_id,)
    ).fetchone():
        raise ValueError(f"Mower {mower_id} not found")


def add_engine(data):
    """Add an engine, optionally installed on a mower.

    Returns:
        int: New engine ID.

    Raises:
        ValueError: if name is missing or the mower does not exist.
    """
    if not data.get('name'):
        raise ValueError("Missing required field(s): name")
    data = _clean_engine(data)

    with get_db() as conn:
        _check_mower(conn, data.get('mower_id'))
        cursor = conn.execute('''
            INSERT INTO engines (
                mower_id, name, description, part_number, manufacturer,
                model, serial_number, install_date, condition, status,
                cost, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            data.get('mower_id'),
            data['name'],
            data.get('description'),
            data.get('part_number'),
            data.get('manufacturer'),
            data.get('model'),
            data.get('serial_number'),
            data.get('install_date'),
            data.get('condition') or 'good',
            data.get('status') or 'active',
            data.get('cost'),
            data.get('notes')
        ))
        engine_id = cursor.lastrowid

    logger.info(f"Engine added: id={engine_id} name={data['name']} mower={data.get('mower_id')}")
    return engine_id


def update_engine(engine_id, data):
    """Update engine fields. Passing mower_id=None detaches it from its mower."""
    if 'name' in data and not data['name']:
        raise ValueError("name cannot be empty")
    data = _clean_engine(data)

    set_clauses, params = _build_update(ENGINE_FIELDS, data)
    if not set_clauses:
        return False
    set_clauses.append('updated_at = CURRENT_TIMESTAMP')
    params.append(engine_id)

    with get_db() as conn:
        if 'mower_id' in data:
            _check_mower(conn, data['mower_id'])
        updated = conn.execute(
            f"UPDATE engines SET {', '.join(set_clauses)} WHERE id = ?", params
        ).rowcount > 0

    if updated:
        logger.info(f"Engine updated: id={engine_id}")
    return updated


def delete_engine(engine_id):
    """Delete an engine with its attachments and part allocations."""
    with get_db() as conn:
        if not conn.execute("SELECT id FROM engines WHERE id = ?", (engine_id,)).fetchone():
            return False
        conn.execute("DELETE FROM asset_parts WHERE engine_id = ?", (engine_id,))
        conn.execute("DELETE FROM attachments WHERE engine_id = ?", (engine_id,))
        conn.execute("DELETE FROM engines WHERE id = ?", (engine_id,))

    logger.info(f"Engine deleted: id={engine_id}")
    return True


def get_engines(mower_id=None):
    query = '''
        SELECT e.*, m.make AS mower_make, m.model AS mower_model
        FROM engines e
        LEFT JOIN mowers m ON m.id = e.mower_id
    '''
    params = []
    if mower_id is not None:
        query += ' WHERE e.mower_id = ?'
        params.append(mower_id)
    query += ' ORDER BY e.name ASC, e.id ASC'

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
    return rows_to_dicts(rows)


def get_engine_by_id(engine_id):
    with get_db() as conn:
        row = conn.execute('SELECT * FROM engines WHERE id = ?', (engine_id,)).fetchone()
    return dict(row) if row else None


# ---------------------------------------------------------------------------
# Allocations
# ---------------------------------------------------------------------------

def allocate_part(data):
    """Install a quantity of a part on a mower or an engine.

    Args:
        data: dict with part_id, exactly one of mower_id / engine_id, and
            optional quantity (default 1), install_date (default today),
            service_record_id and notes.

    Returns:
        int: New allocation ID.

    Raises:
        ValueError: for a bad target, unknown references or when the
            quantity exceeds the part's stock.
    """
    part_id = data.get('part_id')
    mower_id = data.get('mower_id')
    engine_id = data.get('engine_id')

    if not part_id:
        raise ValueError("Missing required field(s): part_id")
    if (mower_id is None) == (engine_id is None):
        raise ValueError("Allocate to exactly one of mower_id or engine_id")

    quantity = _to_int(data.get('quantity', 1), 'quantity', minimum=1)
    try:
        install_date = format_date(data.get('install_date')) or date.today().isoformat()
    except ValueError:
        raise ValueError(f"Invalid install_date: {data.get('install_date')!r}")
    service_record_id = data.get('service_record_id')

    with get_db() as conn:
        part = conn.execute(
            'SELECT id, name, stock_quantity FROM parts WHERE id = ?', (part_id,)
        ).fetchone()
        if not part:
            raise ValueError(f"Part {part_id} not found")

        if mower_id is not None:
            _check_mower(conn, mower_id)
        elif not conn.execute('SELECT id FROM engines WHERE id = ?', (engine_id,)).fetchone():
            raise ValueError(f"Engine {engine_id} not found")

        if service_record_id is not None and not conn.execute(
            'SELECT id FROM service_records WHERE id = ?', (service_record_id,)
        ).fetchone():
            raise ValueError(f"Service record {service_record_id} not found")

        if part['stock_quantity'] < quantity:
            raise ValueError(
                f"Insufficient stock for {part['name']}: "
                f"{part['stock_quantity']} available, {quantity} requested"
            )

        cursor = conn.execute('''
            INSERT INTO asset_parts (
                part_id, mower_id, engine_id, quantity, install_date,
                service_record_id, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        ''', (
            part_id, mower_id, engine_id, quantity, install_date,
            service_record_id, data.get('notes')
        ))
        allocation_id = cursor.lastrowid

        conn.execute(
            "UPDATE parts SET stock_quantity = stock_quantity - ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (quantity, part_id)
        )

    target = f"mower={mower_id}" if mower_id is not None else f"engine={engine_id}"
    logger.info(f"Part allocated: id={allocation_id} part={part_id} qty={quantity} {target}")
    return allocation_id


def get_allocation(allocation_id):
    with get_db() as conn:
        row = conn.execute('SELECT * FROM asset_parts WHERE id = ?', (allocation_id,)).fetchone()
    return dict(row) if row else None


def update_allocation(allocation_id, data):
    """Amend an allocation. A quantity change is drawn from (or returned to)
    the part's stock.

    Returns:
        bool: False if the allocation does not exist.
    """
    data = dict(data)
    if 'install_date' in data:
        try:
            data['install_date'] = format_date(data['install_date'])
        except ValueError:
            raise ValueError(f"Invalid install_date: {data['install_date']!r}")

    with get_db() as conn:
        current = conn.execute(
            'SELECT * FROM asset_parts WHERE id = ?', (allocation_id,)
        ).fetchone()
        if not current:
            return False

        if 'quantity' in data:
            data['quantity'] = _to_int(data['quantity'], 'quantity', minimum=1)
            delta = data['quantity'] - current['quantity']
            if delta:
                part = conn.execute(
                    'SELECT name, stock_quantity FROM parts WHERE id = ?', (current['part_id'],)
                ).fetchone()
                if delta > 0 and part['stock_quantity'] < delta:
                    raise ValueError(
                        f"Insufficient stock for {part['name']}: "
                        f"{part['stock_quantity']} available, {delta} more requested"
                    )
                conn.execute(
                    "UPDATE parts SET stock_quantity = stock_quantity - ?, "
                    "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (delta, current['part_id'])
                )

        set_clauses, params = _build_update(
            ['quantity', 'install_date', 'service_record_id', 'notes'], data
        )
        if set_clauses:
            params.append(allocation_id)
            conn.execute(f"UPDATE asset_parts SET {', '.join(set_clauses)} WHERE id = ?", params)

    logger.info(f"Allocation updated: id={allocation_id}")
    return True


def delete_allocation(allocation_id):
    """Remove an allocation and return its quantity to stock."""
    with get_db() as conn:
        current = conn.execute(
            'SELECT part_id, quantity FROM asset_parts WHERE id = ?', (allocation_id,)
        ).fetchone()
        if not current:
            return False
        conn.execute(
            "UPDATE parts SET stock_quantity = stock_quantity + ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (current['quantity'], current['part_id'])
        )
        conn.execute('DELETE FROM asset_parts WHERE id = ?', (allocation_id,))

    logger.info(f"Allocation deleted: id={allocation_id} restocked={current['quantity']}")
    return True


_ALLOCATION_SELECT = '''
    SELECT ap.*, p.name AS part_name, p.part_number, p.manufacturer,
           p.unit_cost, m.make AS mower_make, m.model AS mower_model,
           e.name AS engine_name
    FROM asset_parts ap
    JOIN parts p ON p.id = ap.part_id
    LEFT JOIN mowers m ON m.id = ap.mower_id
    LEFT JOIN engines e ON e.id = ap.engine_id
'''


def get_part_allocations(part_id):
    """Where a part is installed across the fleet."""
    with get_db() as conn:
        rows = conn.execute(
            _ALLOCATION_SELECT + ' WHERE ap.part_id = ? ORDER BY ap.install_date DESC, ap.id DESC',
            (part_id,)
        ).fetchall()
    return rows_to_dicts(rows)


def get_mower_parts(mower_id):
    with get_db() as conn:
        rows = conn.execute(
            _ALLOCATION_SELECT + ' WHERE ap.mower_id = ? ORDER BY ap.install_date DESC, ap.id DESC',
            (mower_id,)
        ).fetchall()
    return rows_to_dicts(rows)


def get_engine_parts(engine_id):
    with get_db() as conn:
        rows = conn.execute(
            _ALLOCATION_SELECT + ' WHERE ap.engine_id = ? ORDER BY ap.install_date DESC, ap.id DESC',
            (engine_id,)
        ).fetchall()
    return rows_to_dicts(rows)
