"""
Task tracking for MowerManager.
Open work items (repairs to schedule, parts to order, inspections) attached
to a mower, with a small pending -> in_progress -> completed/cancelled
lifecycle.
"""

import logging

from constants import TASK_CATEGORIES, TASK_PRIORITIES, TASK_STATUSES
from db import get_db, rows_to_dicts
from maintenance_schedule import format_date

logger = logging.getLogger(__name__)

VALID_PRIORITIES = TASK_PRIORITIES
VALID_STATUSES = TASK_STATUSES
VALID_CATEGORIES = TASK_CATEGORIES

TASK_FIELDS = [
    'title', 'description', 'priority', 'status', 'category',
    'due_date', 'estimated_cost', 'part_number'
]


def init_task_tables():
    """Initialize the tasks table. Safe to call multiple times."""
    with get_db() as conn:
        conn.execute('''
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                mower_id INTEGER NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                priority TEXT NOT NULL DEFAULT 'medium',
                status TEXT NOT NULL DEFAULT 'pending',
                category TEXT NOT NULL DEFAULT 'maintenance',
                due_date TEXT,
                estimated_cost REAL,
                part_number TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                completed_at TIMESTAMP,
                FOREIGN KEY (mower_id) REFERENCES mowers (id)
            )
        ''')
    logger.info("Task tables initialized")


def _clean(data):
    data = dict(data)
    if 'priority' in data and data['priority'] not in VALID_PRIORITIES:
        data['priority'] = 'medium'
    if 'status' in data and data['status'] not in VALID_STATUSES:
        data['status'] = 'pending'
    if 'category' in data and data['category'] not in VALID_CATEGORIES:
        data['category'] = 'maintenance'
    if 'due_date' in data:
        try:
            data['due_date'] = format_date(data['due_date'])
        except ValueError:
            raise ValueError(f"Invalid due_date: {data['due_date']!r}")
    return data


def add_task(mower_id, data):
    """Create a task for a mower.

    Returns:
        int: New task ID, or None if the mower does not exist.
    """
    if not data.get('title'):
        raise ValueError("Missing required field(s): title")
    data = _clean(data)

    with get_db() as conn:
        if not conn.execute('SELECT id FROM mowers WHERE id = ?', (mower_id,)).fetchone():
            logger.warning(f"Task denied: mower {mower_id} not found")
            return None

        cursor = conn.execute('''
            INSERT INTO tasks (
                mower_id, title, description, priority, status, category,
                due_date, estimated_cost, part_number
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            mower_id,
            data['title'],
            data.get('description'),
            data.get('priority') or 'medium',
            data.get('status') or 'pending',
            data.get('category') or 'maintenance',
            data.get('due_date'),
            data.get('estimated_cost'),
            data.get('part_number')
        ))
        task_id = cursor.lastrowid

    logger.info(f"Task added: id={task_id} mower={mower_id} title={data['title']}")
    return task_id


def get_tasks(mower_id, status=None):
    """Tasks for a mower, newest first, optionally filtered by status."""
    query = 'SELECT * FROM tasks WHERE mower_id = ?'
    params = [mower_id]
    if status and status in VALID_STATUSES:
        query += ' AND status = ?'
        params.append(status)
    query += ' ORDER BY created_at DESC, id DESC'

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
    return rows_to_dicts(rows)


def get_task(task_id):
    with get_db() as conn:
        row = conn.execute('SELECT * FROM tasks WHERE id = ?', (task_id,)).fetchone()
    return dict(row) if row else None


def update_task(task_id, data):
    """Update task fields present in data.

    Moving a task to completed stamps completed_at; moving it anywhere else
    clears it.

    Returns:
        bool: True if the row was updated.
    """
    if 'title' in data and not data['title']:
        raise ValueError("title cannot be empty")
    data = _clean(data)

    set_clauses = []
    params = []
    for field in TASK_FIELDS:
        if field in data:
            set_clauses.append(f'{field} = ?')
            params.append(data[field])

    if not set_clauses:
        return False

    if 'status' in data:
        if data['status'] == 'completed':
            set_clauses.append('completed_at = COALESCE(completed_at, CURRENT_TIMESTAMP)')
        else:
            set_clauses.append('completed_at = NULL')

    params.append(task_id)
    query = f"UPDATE tasks SET {', '.join(set_clauses)} WHERE id = ?"

    with get_db() as conn:
        updated = conn.execute(query, params).rowcount > 0

    if updated:
        logger.info(f"Task updated: id={task_id}")
    return updated


def delete_task(task_id):
    with get_db() as conn:
        deleted = conn.execute('DELETE FROM tasks WHERE id = ?', (task_id,)).rowcount > 0
    if deleted:
        logger.info(f"Task deleted: id={task_id}")
    return deleted


def complete_task(task_id):
    """Mark a task completed.

    Returns:
        bool: False if the task does not exist.

    Raises:
        ValueError: if the task was cancelled.
    """
    with get_db() as conn:
        row = conn.execute('SELECT status FROM tasks WHERE id = ?', (task_id,)).fetchone()
        if not row:
            return False
        if row['status'] == 'cancelled':
            raise ValueError("Cannot complete a cancelled task")
        if row['status'] != 'completed':
            conn.execute(
                "UPDATE tasks SET status = 'completed', completed_at = CURRENT_TIMESTAMP "
                "WHERE id = ?",
                (task_id,)
            )

    logger.info(f"Task completed: id={task_id}")
    return True


def cancel_task(task_id):
    """Cancel a task.

    Raises:
        ValueError: if the task is already completed.
    """
    with get_db() as conn:
        row = conn.execute('SELECT status FROM tasks WHERE id = ?', (task_id,)).fetchone()
        if not row:
            return False
        if row['status'] == 'completed':
            raise ValueError("Cannot cancel a completed task")
        conn.execute("UPDATE tasks SET status = 'cancelled' WHERE id = ?", (task_id,))

    logger.info(f"Task cancelled: id={task_id}")
    return True
