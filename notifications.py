"""
Notification feed for MowerManager.

Provides the in-app notification lifecycle (create, list, mark read,
delete) plus builders that turn fleet events (a mower added, a part
allocated, an engine removed) into feed entries.

Notifications are a side channel: every write here logs and swallows its
own failures so that the operation that triggered it is never rolled back
because the feed could not be updated.
"""

import logging

from constants import NOTIFICATION_PRIORITIES, NOTIFICATION_TYPES
from db import get_db, rows_to_dicts
from maintenance_schedule import mower_display_name

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VALID_NOTIFICATION_TYPES = NOTIFICATION_TYPES
VALID_PRIORITIES = NOTIFICATION_PRIORITIES

# action -> (title, message template, type, priority, detail url template)
_MOWER_EVENTS = {
    'added': ('Mower Added', 'New mower "{name}" has been added to the fleet',
              'success', 'medium', '/mowers/{id}'),
    'deleted': ('Mower Deleted', 'Mower "{name}" has been removed from the fleet',
                'warning', 'high', '/mowers'),
    'sold': ('Mower Sold', 'Mower "{name}" has been sold',
             'info', 'high', '/mowers'),
}

_PART_EVENTS = {
    'created': ('Part Created', 'New part "{name}" has been added to inventory',
                'success', 'medium', '/catalog/parts/{id}'),
    'allocated': ('Part Allocated', 'Part "{name}" has been allocated{target}',
                  'info', 'medium', '/catalog/parts/{id}'),
    'deleted': ('Part Deleted', 'Part "{name}" has been removed from inventory',
                'warning', 'high', '/catalog'),
}

_ENGINE_EVENTS = {
    'created': ('Engine Created', 'New engine "{name}" has been created{target}',
                'success', 'medium', '/catalog/engines/{id}'),
    'allocated': ('Engine Allocated', 'Engine "{name}" has been allocated{target}',
                  'info', 'medium', '/catalog/engines/{id}'),
    'deleted': ('Engine Deleted', 'Engine "{name}" has been removed',
                'warning', 'high', '/catalog'),
}


# ---------------------------------------------------------------------------
# Table initialisation
# ---------------------------------------------------------------------------

def init_notification_tables():
    """Create the notifications table if it does not already exist."""
    with get_db() as conn:
        conn.execute('''
            CREATE TABLE IF NOT EXISTS notifications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                notification_type TEXT NOT NULL DEFAULT 'info',
                title TEXT NOT NULL,
                message TEXT NOT NULL,
                priority TEXT NOT NULL DEFAULT 'medium',
                is_read INTEGER NOT NULL DEFAULT 0,
                entity_type TEXT,
                entity_id INTEGER,
                entity_name TEXT,
                detail_url TEXT,
                created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
        ''')
    logger.info("Notification tables initialised")


# ---------------------------------------------------------------------------
# Notification CRUD
# ---------------------------------------------------------------------------

def create_notification(
    title,
    message,
    notification_type='info',
    priority='medium',
    entity_type=None,
    entity_id=None,
    entity_name=None,
    detail_url=None,
):
    """Insert a new notification and return its id (None on failure)."""
    if notification_type not in VALID_NOTIFICATION_TYPES:
        notification_type = 'info'
    if priority not in VALID_PRIORITIES:
        priority = 'medium'

    try:
        with get_db() as conn:
            cursor = conn.execute(
                '''INSERT INTO notifications
                   (notification_type, title, message, priority,
                    entity_type, entity_id, entity_name, detail_url)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)''',
                (
                    notification_type,
                    title,
                    message,
                    priority,
                    entity_type,
                    entity_id,
                    entity_name,
                    detail_url,
                ),
            )
            notification_id = cursor.lastrowid
        logger.info("Created notification %s: %s", notification_id, title)
        return notification_id
    except Exception:
        logger.exception("Failed to create notification %r", title)
        return None


def get_notifications(unread_only=False, limit=50):
    """Return the newest notifications.

    Args:
        unread_only: When ``True`` only return notifications that have not
            been read.
        limit: Maximum number of rows to return (default 50).

    Returns:
        list[dict]
    """
    query = 'SELECT * FROM notifications'
    if unread_only:
        query += ' WHERE is_read = 0'
    query += ' ORDER BY created_at DESC, id DESC LIMIT ?'

    with get_db() as conn:
        rows = conn.execute(query, (limit,)).fetchall()
    results = rows_to_dicts(rows)
    for r in results:
        r['is_read'] = bool(r['is_read'])
    return results


def get_unread_count():
    with get_db() as conn:
        row = conn.execute('SELECT COUNT(*) FROM notifications WHERE is_read = 0').fetchone()
    return row[0] if row else 0


def mark_read(notification_id):
    """Mark a single notification as read.  Returns ``True`` on success."""
    with get_db() as conn:
        cursor = conn.execute(
            'UPDATE notifications SET is_read = 1 WHERE id = ?',
            (notification_id,),
        )
        return cursor.rowcount > 0


def mark_all_read():
    """Mark every unread notification as read.  Returns the number of rows affected."""
    with get_db() as conn:
        count = conn.execute('UPDATE notifications SET is_read = 1 WHERE is_read = 0').rowcount
    logger.info("Marked %d notifications read", count)
    return count


def delete_notification(notification_id):
    with get_db() as conn:
        cursor = conn.execute('DELETE FROM notifications WHERE id = ?', (notification_id,))
        return cursor.rowcount > 0


def delete_all_notifications():
    """Clear the feed.  Returns the number of deleted rows."""
    with get_db() as conn:
        count = conn.execute('DELETE FROM notifications').rowcount
    logger.info("Deleted %d notifications", count)
    return count


# ---------------------------------------------------------------------------
# Event builders
# ---------------------------------------------------------------------------

def _notify(events, action, entity_type, entity_id, entity_name, target_name=None, target_id=None):
    if action not in events:
        logger.warning("Unknown %s notification action %r -- skipping", entity_type, action)
        return None

    title, template, notification_type, priority, url = events[action]
    target = ''
    if target_name:
        target = f' for {target_name}' if action == 'created' else f' to {target_name}'
    detail_url = url.format(id=entity_id)
    if action == 'allocated' and target_id is not None:
        detail_url = f'/mowers/{target_id}'

    return create_notification(
        title,
        template.format(name=entity_name, target=target),
        notification_type=notification_type,
        priority=priority,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        detail_url=detail_url,
    )


def notify_mower_event(action, mower):
    """Feed entry for a mower being added, deleted or sold."""
    return _notify(_MOWER_EVENTS, action, 'mower', mower['id'], mower_display_name(mower))


def notify_part_event(action, part, mower=None):
    """Feed entry for a part being created, allocated or deleted."""
    return _notify(
        _PART_EVENTS, action, 'part', part['id'], part['name'],
        target_name=mower_display_name(mower) if mower else None,
        target_id=mower['id'] if mower else None,
    )


def notify_engine_event(action, engine, mower=None):
    """Feed entry for an engine being created, allocated or deleted."""
    return _notify(
        _ENGINE_EVENTS, action, 'engine', engine['id'], engine['name'],
        target_name=mower_display_name(mower) if mower else None,
        target_id=mower['id'] if mower else None,
    )
