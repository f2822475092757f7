"""
Backup and restore for MowerManager.

A backup is a ZIP archive:

    manifest.json     version, timestamp and per-table row counts
    database.json     every table as a list of rows (attachment rows
                      without their file content)
    attachments/<owner>/<owner_id>/<id>_<file_name>
                      the attachment files themselves

Restoring replaces all existing data inside a single transaction, so a
failed restore leaves the database untouched.
"""

import base64
import io
import json
import logging
import zipfile
from datetime import datetime, timezone

from config import Config
from db import get_db, reset_id_sequence, rows_to_dicts

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Insert order respects references; deletes run in reverse.
BACKUP_TABLES = {
    'mowers': [
        'id', 'make', 'model', 'year', 'serial_number', 'purchase_date',
        'purchase_price', 'location', 'condition', 'status',
        'last_service_date', 'next_service_date', 'thumbnail_attachment_id',
        'notes', 'created_at', 'updated_at',
    ],
    'parts': [
        'id', 'name', 'description', 'part_number', 'manufacturer', 'category',
        'unit_cost', 'stock_quantity', 'min_stock_level', 'notes',
        'created_at', 'updated_at',
    ],
    'engines': [
        'id', 'mower_id', 'name', 'description', 'part_number', 'manufacturer',
        'model', 'serial_number', 'install_date', 'condition', 'status',
        'cost', 'notes', 'created_at', 'updated_at',
    ],
    'service_records': [
        'id', 'mower_id', 'service_date', 'service_type', 'description',
        'cost', 'performed_by', 'next_service_due', 'mileage', 'created_at',
    ],
    'tasks': [
        'id', 'mower_id', 'title', 'description', 'priority', 'status',
        'category', 'due_date', 'estimated_cost', 'part_number',
        'created_at', 'completed_at',
    ],
    'asset_parts': [
        'id', 'part_id', 'mower_id', 'engine_id', 'quantity', 'install_date',
        'service_record_id', 'notes', 'created_at',
    ],
    'attachments': [
        'id', 'mower_id', 'engine_id', 'part_id', 'file_name', 'title',
        'file_type', 'mime_type', 'file_data', 'file_size', 'description',
        'uploaded_at',
    ],
    'notifications': [
        'id', 'notification_type', 'title', 'message', 'priority', 'is_read',
        'entity_type', 'entity_id', 'entity_name', 'detail_url', 'created_at',
    ],
}

_OWNER_FOLDERS = (('mower_id', 'mowers'), ('engine_id', 'engines'), ('part_id', 'parts'))


def attachment_archive_path(attachment):
    """Archive path for an attachment file, grouped by what it belongs to."""
    folder = 'attachments/orphaned'
    for column, name in _OWNER_FOLDERS:
        if attachment.get(column):
            folder = f'attachments/{name}/{attachment[column]}'
            break
    return f"{folder}/{attachment['id']}_{attachment['file_name']}"


def backup_filename(today=None):
    today = today or datetime.now(timezone.utc).date()
    return f"mowermanager-backup-{today.isoformat()}.zip"


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

def create_backup():
    """Dump all tables and attachment files to an in-memory ZIP.

    Returns:
        io.BytesIO positioned at the start of the archive.
    """
    tables = {}
    with get_db() as conn:
        for table, columns in BACKUP_TABLES.items():
            rows = conn.execute(
                f"SELECT {', '.join(columns)} FROM {table} ORDER BY id"
            ).fetchall()
            tables[table] = rows_to_dicts(rows)

    files = []
    for attachment in tables['attachments']:
        encoded = attachment.pop('file_data', None)
        if encoded:
            files.append((attachment_archive_path(attachment), base64.b64decode(encoded)))

    counts = {table: len(rows) for table, rows in tables.items()}
    manifest = {
        'version': Config.APP_VERSION,
        'schema_version': SCHEMA_VERSION,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'total_records': sum(counts.values()),
        'tables': counts,
    }

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
        archive.writestr('manifest.json', json.dumps(manifest, indent=2))
        archive.writestr('database.json', json.dumps(tables, indent=2, default=str))
        for path, content in files:
            archive.writestr(path, content)
    buffer.seek(0)

    logger.info(f"Backup created: {manifest['total_records']} records, {len(files)} files")
    return buffer


# ---------------------------------------------------------------------------
# Validate / restore
# ---------------------------------------------------------------------------

def _read_archive(data):
    """Open a backup and return (manifest, tables, files).

    Raises:
        ValueError: if the archive is not a readable MowerManager backup.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile:
        raise ValueError("Not a valid ZIP file")

    with archive:
        names = set(archive.namelist())
        for required in ('manifest.json', 'database.json'):
            if required not in names:
                raise ValueError(f"No {required} found in backup")
        try:
            manifest = json.loads(archive.read('manifest.json'))
            tables = json.loads(archive.read('database.json'))
        except json.JSONDecodeError as e:
            raise ValueError(f"Corrupt backup metadata: {e}")

        files = {
            name: archive.read(name)
            for name in names
            if name.startswith('attachments/') and not name.endswith('/')
        }

    if not isinstance(manifest, dict) or 'tables' not in manifest:
        raise ValueError("manifest.json is missing table counts")
    if not isinstance(tables, dict):
        raise ValueError("database.json must be an object keyed by table")
    unknown = set(tables) - set(BACKUP_TABLES)
    if unknown:
        raise ValueError(f"Unknown tables in backup: {', '.join(sorted(unknown))}")
    for table, rows in tables.items():
        if not isinstance(rows, list):
            raise ValueError(f"Table {table} must be a list of rows")

    return manifest, tables, files


def validate_backup(data):
    """Check a backup archive's structure without touching the database.

    Returns:
        dict: the archive's manifest.

    Raises:
        ValueError: describing the first problem found.
    """
    manifest, _, _ = _read_archive(data)
    return manifest


def restore_backup(data):
    """Replace all data with the contents of a backup archive.

    Returns:
        dict: rows restored per table, plus 'skipped_attachments' for
        attachment rows whose file was missing from the archive.

    Raises:
        ValueError: if the archive is invalid.
    """
    manifest, tables, files = _read_archive(data)
    logger.info(f"Restoring backup version={manifest.get('version')} timestamp={manifest.get('timestamp')}")

    stats = {}
    skipped = 0
    with get_db() as conn:
        for table in reversed(list(BACKUP_TABLES)):
            conn.execute(f'DELETE FROM {table}')

        for table, columns in BACKUP_TABLES.items():
            restored = 0
            for row in tables.get(table, []):
                if table == 'attachments':
                    content = files.get(attachment_archive_path(row))
                    if content is None:
                        logger.warning(f"Backup missing file for attachment {row.get('id')}; skipped")
                        skipped += 1
                        continue
                    row = dict(row, file_data=base64.b64encode(content).decode('ascii'))
                present = [c for c in columns if c in row]
                conn.execute(
                    f"INSERT INTO {table} ({', '.join(present)}) "
                    f"VALUES ({', '.join('?' for _ in present)})",
                    [row[c] for c in present]
                )
                restored += 1
            reset_id_sequence(conn, table)
            stats[table] = restored

    stats['skipped_attachments'] = skipped
    logger.info(f"Backup restored: {stats}")
    return stats
