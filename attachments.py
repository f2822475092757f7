"""
File attachments for MowerManager.

Manuals, receipts and photos attached to a mower, an engine or a part. File
content is stored base64-encoded in the attachments table so a database
backup carries the files with it.
"""

import base64
import logging
import mimetypes
import os

from config import Config
from constants import ATTACHMENT_EXTENSIONS, ATTACHMENT_OWNER_TYPES
from db import get_db, rows_to_dicts

logger = logging.getLogger(__name__)

VALID_OWNER_TYPES = ATTACHMENT_OWNER_TYPES

# owner type -> (owner table, attachments column)
_OWNERS = {
    'mower': ('mowers', 'mower_id'),
    'engine': ('engines', 'engine_id'),
    'part': ('parts', 'part_id'),
}

_METADATA_COLUMNS = (
    'id, mower_id, engine_id, part_id, file_name, title, file_type, '
    'mime_type, file_size, description, uploaded_at'
)


def init_attachment_tables():
    """Initialize the attachments table. Safe to call multiple times."""
    with get_db() as conn:
        conn.execute('''
            CREATE TABLE IF NOT EXISTS attachments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                mower_id INTEGER,
                engine_id INTEGER,
                part_id INTEGER,
                file_name TEXT NOT NULL,
                title TEXT,
                file_type TEXT NOT NULL,
                mime_type TEXT,
                file_data TEXT NOT NULL,
                file_size INTEGER NOT NULL,
                description TEXT,
                uploaded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (mower_id) REFERENCES mowers (id),
                FOREIGN KEY (engine_id) REFERENCES engines (id),
                FOREIGN KEY (part_id) REFERENCES parts (id)
            )
        ''')
    logger.info("Attachment tables initialized")


def classify_file(file_name):
    """Map a file name to its attachment file_type (pdf, image or document).

    Raises:
        ValueError: if the extension is not an accepted upload type.
    """
    ext = os.path.splitext(file_name or '')[1].lower().lstrip('.')
    for file_type, extensions in ATTACHMENT_EXTENSIONS.items():
        if ext in extensions:
            return file_type
    allowed = ', '.join(e for exts in ATTACHMENT_EXTENSIONS.values() for e in exts)
    raise ValueError(f"Unsupported file type '.{ext}'. Allowed: {allowed}")


def _owner(owner_type):
    if owner_type not in VALID_OWNER_TYPES:
        raise ValueError(f"Invalid owner type {owner_type!r}")
    return _OWNERS[owner_type]


def add_attachment(owner_type, owner_id, file_name, content, title=None, description=None):
    """Store a file against a mower, engine or part.

    Args:
        owner_type: 'mower', 'engine' or 'part'.
        owner_id: ID of the owning row.
        file_name: Original file name; its extension decides file_type.
        content: Raw file bytes.
        title: Display title, defaults to the file name.
        description: Optional free text.

    Returns:
        int: New attachment ID, or None if the owner does not exist.

    Raises:
        ValueError: for empty, oversize or disallowed files.
    """
    table, column = _owner(owner_type)
    if not file_name:
        raise ValueError("A file name is required")
    if not content:
        raise ValueError("File is empty")

    max_bytes = Config.MAX_ATTACHMENT_MB * 1024 * 1024
    if len(content) > max_bytes:
        raise ValueError(f"File exceeds the {Config.MAX_ATTACHMENT_MB} MB attachment limit")

    file_type = classify_file(file_name)
    mime_type = mimetypes.guess_type(file_name)[0] or 'application/octet-stream'
    encoded = base64.b64encode(content).decode('ascii')

    with get_db() as conn:
        if not conn.execute(f'SELECT id FROM {table} WHERE id = ?', (owner_id,)).fetchone():
            logger.warning(f"Attachment denied: {owner_type} {owner_id} not found")
            return None

        cursor = conn.execute(f'''
            INSERT INTO attachments (
                {column}, file_name, title, file_type, mime_type,
                file_data, file_size, description
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            owner_id,
            file_name,
            title or file_name,
            file_type,
            mime_type,
            encoded,
            len(content),
            description
        ))
        attachment_id = cursor.lastrowid

    logger.info(
        f"Attachment added: id={attachment_id} {owner_type}={owner_id} "
        f"file={file_name} size={len(content)}"
    )
    return attachment_id


def get_attachments(owner_type, owner_id):
    """Attachment metadata (no file content) for one owner, newest first.

    Each row carries an is_thumbnail flag, set on the image a mower uses as
    its thumbnail.
    """
    _, column = _owner(owner_type)

    with get_db() as conn:
        rows = conn.execute(
            f'SELECT {_METADATA_COLUMNS} FROM attachments WHERE {column} = ? '
            'ORDER BY uploaded_at DESC, id DESC',
            (owner_id,)
        ).fetchall()

        thumbnail_id = None
        if owner_type == 'mower':
            mower = conn.execute(
                'SELECT thumbnail_attachment_id FROM mowers WHERE id = ?', (owner_id,)
            ).fetchone()
            thumbnail_id = mower['thumbnail_attachment_id'] if mower else None

    results = rows_to_dicts(rows)
    for r in results:
        r['is_thumbnail'] = thumbnail_id is not None and r['id'] == thumbnail_id
    return results


def get_attachment(attachment_id):
    """Metadata for a single attachment, or None."""
    with get_db() as conn:
        row = conn.execute(
            f'SELECT {_METADATA_COLUMNS} FROM attachments WHERE id = ?', (attachment_id,)
        ).fetchone()
    return dict(row) if row else None


def get_attachment_file(attachment_id):
    """Decoded file content for download.

    Returns:
        tuple(bytes, str, str) of (content, file_name, mime_type), or None.
    """
    with get_db() as conn:
        row = conn.execute(
            'SELECT file_name, mime_type, file_data FROM attachments WHERE id = ?',
            (attachment_id,)
        ).fetchone()
    if not row:
        return None
    content = base64.b64decode(row['file_data'])
    return content, row['file_name'], row['mime_type'] or 'application/octet-stream'


def update_attachment(attachment_id, data):
    """Update an attachment's title and/or description."""
    set_clauses = []
    params = []
    for field in ('title', 'description'):
        if field in data:
            set_clauses.append(f'{field} = ?')
            params.append(data[field])
    if not set_clauses:
        return False
    params.append(attachment_id)

    with get_db() as conn:
        updated = conn.execute(
            f"UPDATE attachments SET {', '.join(set_clauses)} WHERE id = ?", params
        ).rowcount > 0

    if updated:
        logger.info(f"Attachment updated: id={attachment_id}")
    return updated


def delete_attachment(attachment_id):
    """Delete an attachment, clearing any mower thumbnail that points at it."""
    with get_db() as conn:
        if not conn.execute('SELECT id FROM attachments WHERE id = ?', (attachment_id,)).fetchone():
            return False
        conn.execute(
            'UPDATE mowers SET thumbnail_attachment_id = NULL WHERE thumbnail_attachment_id = ?',
            (attachment_id,)
        )
        conn.execute('DELETE FROM attachments WHERE id = ?', (attachment_id,))

    logger.info(f"Attachment deleted: id={attachment_id}")
    return True
