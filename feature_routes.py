"""
Feature Routes Blueprint for the MowerManager API.

This module registers the JSON API for the feature modules:
- Mowers and service history
- Tasks
- Engines, parts and part allocations
- Attachments
- Maintenance schedule, dashboard and PDF reports
- Reminders
- Notifications
- Backup / restore
"""

import io
import logging
from datetime import date, datetime

from flask import Blueprint, jsonify, request, send_file

import attachments
import backup
import maintenance_schedule
import mower_manager
import notifications
import parts_inventory
import pdf_generator
import reminders
import task_manager

logger = logging.getLogger(__name__)

features_bp = Blueprint('features_bp', __name__)


# ---------------------------------------------------------------------------
# Database table initialization
# ---------------------------------------------------------------------------

def init_all_feature_tables():
    """Initialize database tables for all feature modules."""
    modules = [
        ('mower_manager', 'init_mower_tables'),
        ('task_manager', 'init_task_tables'),
        ('parts_inventory', 'init_inventory_tables'),
        ('attachments', 'init_attachment_tables'),
        ('notifications', 'init_notification_tables'),
    ]
    for module_name, func_name in modules:
        try:
            mod = __import__(module_name)
            init_fn = getattr(mod, func_name)
            init_fn()
            logger.info(f"Initialized tables for {module_name}")
        except Exception as e:
            logger.warning(f"Could not initialize tables for {module_name}: {e}")


# ====================================================================
# Helpers
# ====================================================================

def _jsonable(value):
    """Render dates as ISO strings all the way down."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _json(value, status=200):
    return jsonify(_jsonable(value)), status


def _payload():
    """JSON request body as a dict (empty when absent)."""
    data = request.get_json(force=True, silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _today():
    """Reference date for date-dependent endpoints (?as_of=YYYY-MM-DD)."""
    as_of = request.args.get('as_of')
    if not as_of:
        return date.today()
    try:
        return maintenance_schedule.parse_date(as_of)
    except ValueError:
        raise ValueError(f"Invalid as_of date: {as_of!r}")


def _not_found(what):
    return jsonify({'error': f'{what} not found'}), 404


# ====================================================================
# Mowers
# ====================================================================

@features_bp.route('/api/mowers', methods=['GET'])
def list_mowers():
    try:
        mowers = mower_manager.get_mowers(
            status=request.args.get('status'),
            search=request.args.get('search'),
        )
        return _json(mowers)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error listing mowers: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers', methods=['POST'])
def create_mower():
    try:
        mower_id = mower_manager.add_mower(_payload())
        mower = mower_manager.get_mower_by_id(mower_id)
        notifications.notify_mower_event('added', mower)
        return _json(mower, 201)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error creating mower: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>', methods=['GET'])
def get_mower(mower_id):
    try:
        mower = mower_manager.get_mower_by_id(mower_id)
        if not mower:
            return _not_found('Mower')
        return _json(mower)
    except Exception as e:
        logger.error(f"Error getting mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>', methods=['PUT'])
def update_mower(mower_id):
    try:
        data = _payload()
        if not mower_manager.get_mower_by_id(mower_id):
            return _not_found('Mower')
        mower_manager.update_mower(mower_id, data)
        mower = mower_manager.get_mower_by_id(mower_id)
        if data.get('sold'):
            notifications.notify_mower_event('sold', mower)
        return _json(mower)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error updating mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>', methods=['DELETE'])
def delete_mower(mower_id):
    try:
        mower = mower_manager.get_mower_by_id(mower_id)
        if not mower or not mower_manager.delete_mower(mower_id):
            return _not_found('Mower')
        notifications.notify_mower_event('deleted', mower)
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>/details', methods=['GET'])
def get_mower_details(mower_id):
    try:
        details = mower_manager.get_mower_details(mower_id)
        if not details:
            return _not_found('Mower')
        return _json(details)
    except Exception as e:
        logger.error(f"Error getting mower details {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>/overview', methods=['GET'])
def get_mower_overview(mower_id):
    try:
        today = _today()
        if not mower_manager.get_mower_by_id(mower_id):
            return _not_found('Mower')
        records = mower_manager.get_service_records(mower_id)
        return _json(maintenance_schedule.get_maintenance_overview(records, today))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error getting overview for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>/thumbnail', methods=['GET'])
def get_mower_thumbnail(mower_id):
    try:
        mower = mower_manager.get_mower_by_id(mower_id)
        if not mower:
            return _not_found('Mower')
        thumbnail_id = mower['thumbnail_attachment_id']
        attachment = attachments.get_attachment(thumbnail_id) if thumbnail_id else None
        return _json({'thumbnail_attachment_id': thumbnail_id, 'attachment': attachment})
    except Exception as e:
        logger.error(f"Error getting thumbnail for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>/thumbnail', methods=['PUT'])
def set_mower_thumbnail(mower_id):
    try:
        data = _payload()
        if not mower_manager.set_mower_thumbnail(mower_id, data.get('attachment_id')):
            return _not_found('Mower')
        return _json(mower_manager.get_mower_by_id(mower_id))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error setting thumbnail for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>/report.pdf', methods=['GET'])
def mower_report_pdf(mower_id):
    try:
        today = _today()
        mower = mower_manager.get_mower_by_id(mower_id)
        if not mower:
            return _not_found('Mower')
        records = mower_manager.get_service_records(mower_id)
        due = maintenance_schedule.get_due_services(records, today)
        buffer = pdf_generator.generate_mower_service_report(mower, records, due, as_of=today)
        return send_file(
            buffer,
            mimetype='application/pdf',
            as_attachment=True,
            download_name=f'mower-{mower_id}-service-report.pdf',
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error generating report for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


# ====================================================================
# Service records
# ====================================================================

@features_bp.route('/api/mowers/<int:mower_id>/service', methods=['GET'])
def list_service_records(mower_id):
    try:
        if not mower_manager.get_mower_by_id(mower_id):
            return _not_found('Mower')
        return _json(mower_manager.get_service_records(mower_id))
    except Exception as e:
        logger.error(f"Error listing service records for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>/service', methods=['POST'])
def create_service_record(mower_id):
    try:
        record_id = mower_manager.add_service_record(mower_id, _payload())
        if record_id is None:
            return _not_found('Mower')
        return _json(mower_manager.get_service_record(record_id), 201)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error creating service record for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/service-records', methods=['GET'])
def list_all_service_records():
    try:
        return _json(mower_manager.get_all_service_records())
    except Exception as e:
        logger.error(f"Error listing service records: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/service/<int:record_id>', methods=['GET'])
def get_service_record(record_id):
    try:
        record = mower_manager.get_service_record(record_id)
        if not record:
            return _not_found('Service record')
        return _json(record)
    except Exception as e:
        logger.error(f"Error getting service record {record_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/service/<int:record_id>', methods=['PUT'])
def update_service_record(record_id):
    try:
        data = _payload()
        data.pop('mower_id', None)
        if not mower_manager.get_service_record(record_id):
            return _not_found('Service record')
        mower_manager.update_service_record(record_id, data)
        return _json(mower_manager.get_service_record(record_id))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error updating service record {record_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/service/<int:record_id>', methods=['DELETE'])
def delete_service_record(record_id):
    try:
        if not mower_manager.delete_service_record(record_id):
            return _not_found('Service record')
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting service record {record_id}: {e}")
        return jsonify({'error': str(e)}), 500


# ====================================================================
# Tasks
# ====================================================================

@features_bp.route('/api/mowers/<int:mower_id>/tasks', methods=['GET'])
def list_tasks(mower_id):
    try:
        if not mower_manager.get_mower_by_id(mower_id):
            return _not_found('Mower')
        return _json(task_manager.get_tasks(mower_id, status=request.args.get('status')))
    except Exception as e:
        logger.error(f"Error listing tasks for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>/tasks', methods=['POST'])
def create_task(mower_id):
    try:
        task_id = task_manager.add_task(mower_id, _payload())
        if task_id is None:
            return _not_found('Mower')
        return _json(task_manager.get_task(task_id), 201)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error creating task for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/tasks/<int:task_id>', methods=['GET'])
def get_task(task_id):
    try:
        task = task_manager.get_task(task_id)
        if not task:
            return _not_found('Task')
        return _json(task)
    except Exception as e:
        logger.error(f"Error getting task {task_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/tasks/<int:task_id>', methods=['PUT'])
def update_task(task_id):
    try:
        data = _payload()
        if not task_manager.get_task(task_id):
            return _not_found('Task')
        task_manager.update_task(task_id, data)
        return _json(task_manager.get_task(task_id))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error updating task {task_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/tasks/<int:task_id>', methods=['DELETE'])
def delete_task(task_id):
    try:
        if not task_manager.delete_task(task_id):
            return _not_found('Task')
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting task {task_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/tasks/<int:task_id>/complete', methods=['POST'])
def complete_task(task_id):
    try:
        if not task_manager.complete_task(task_id):
            return _not_found('Task')
        return _json(task_manager.get_task(task_id))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error completing task {task_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/tasks/<int:task_id>/cancel', methods=['POST'])
def cancel_task(task_id):
    try:
        if not task_manager.cancel_task(task_id):
            return _not_found('Task')
        return _json(task_manager.get_task(task_id))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error cancelling task {task_id}: {e}")
        return jsonify({'error': str(e)}), 500


# ====================================================================
# Engines
# ====================================================================

@features_bp.route('/api/engines', methods=['GET'])
def list_engines():
    try:
        return _json(parts_inventory.get_engines())
    except Exception as e:
        logger.error(f"Error listing engines: {e}")
        return jsonify({'error': str(e)}), 500


def _create_engine(data):
    engine_id = parts_inventory.add_engine(data)
    engine = parts_inventory.get_engine_by_id(engine_id)
    mower = mower_manager.get_mower_by_id(engine['mower_id']) if engine['mower_id'] else None
    notifications.notify_engine_event('created', engine, mower)
    return engine


@features_bp.route('/api/engines', methods=['POST'])
def create_engine():
    try:
        return _json(_create_engine(_payload()), 201)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error creating engine: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/engines/<int:engine_id>', methods=['GET'])
def get_engine(engine_id):
    try:
        engine = parts_inventory.get_engine_by_id(engine_id)
        if not engine:
            return _not_found('Engine')
        engine['attachments'] = attachments.get_attachments('engine', engine_id)
        return _json(engine)
    except Exception as e:
        logger.error(f"Error getting engine {engine_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/engines/<int:engine_id>', methods=['PUT'])
def update_engine(engine_id):
    try:
        data = _payload()
        before = parts_inventory.get_engine_by_id(engine_id)
        if not before:
            return _not_found('Engine')
        parts_inventory.update_engine(engine_id, data)
        engine = parts_inventory.get_engine_by_id(engine_id)
        if engine['mower_id'] and engine['mower_id'] != before['mower_id']:
            mower = mower_manager.get_mower_by_id(engine['mower_id'])
            notifications.notify_engine_event('allocated', engine, mower)
        return _json(engine)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error updating engine {engine_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/engines/<int:engine_id>', methods=['DELETE'])
def delete_engine(engine_id):
    try:
        engine = parts_inventory.get_engine_by_id(engine_id)
        if not engine or not parts_inventory.delete_engine(engine_id):
            return _not_found('Engine')
        notifications.notify_engine_event('deleted', engine)
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting engine {engine_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>/engines', methods=['GET'])
def list_mower_engines(mower_id):
    try:
        if not mower_manager.get_mower_by_id(mower_id):
            return _not_found('Mower')
        return _json(parts_inventory.get_engines(mower_id=mower_id))
    except Exception as e:
        logger.error(f"Error listing engines for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>/engines', methods=['POST'])
def create_mower_engine(mower_id):
    try:
        if not mower_manager.get_mower_by_id(mower_id):
            return _not_found('Mower')
        data = _payload()
        data['mower_id'] = mower_id
        return _json(_create_engine(data), 201)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error creating engine for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


# ====================================================================
# Parts & allocations
# ====================================================================

@features_bp.route('/api/parts', methods=['GET'])
def list_parts():
    try:
        parts = parts_inventory.get_parts(
            category=request.args.get('category'),
            search=request.args.get('search'),
        )
        return _json(parts)
    except Exception as e:
        logger.error(f"Error listing parts: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/parts', methods=['POST'])
def create_part():
    try:
        part_id = parts_inventory.add_part(_payload())
        part = parts_inventory.get_part_by_id(part_id)
        notifications.notify_part_event('created', part)
        return _json(part, 201)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error creating part: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/parts/<int:part_id>', methods=['GET'])
def get_part(part_id):
    try:
        part = parts_inventory.get_part_by_id(part_id)
        if not part:
            return _not_found('Part')
        part['attachments'] = attachments.get_attachments('part', part_id)
        return _json(part)
    except Exception as e:
        logger.error(f"Error getting part {part_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/parts/<int:part_id>', methods=['PUT'])
def update_part(part_id):
    try:
        data = _payload()
        if not parts_inventory.get_part_by_id(part_id):
            return _not_found('Part')
        parts_inventory.update_part(part_id, data)
        return _json(parts_inventory.get_part_by_id(part_id))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error updating part {part_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/parts/<int:part_id>', methods=['DELETE'])
def delete_part(part_id):
    try:
        part = parts_inventory.get_part_by_id(part_id)
        if not part or not parts_inventory.delete_part(part_id):
            return _not_found('Part')
        notifications.notify_part_event('deleted', part)
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting part {part_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/parts/<int:part_id>/allocations', methods=['GET'])
def list_part_allocations(part_id):
    try:
        if not parts_inventory.get_part_by_id(part_id):
            return _not_found('Part')
        return _json(parts_inventory.get_part_allocations(part_id))
    except Exception as e:
        logger.error(f"Error listing allocations for part {part_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/mowers/<int:mower_id>/parts', methods=['GET'])
def list_mower_parts(mower_id):
    try:
        if not mower_manager.get_mower_by_id(mower_id):
            return _not_found('Mower')
        return _json(parts_inventory.get_mower_parts(mower_id))
    except Exception as e:
        logger.error(f"Error listing parts for mower {mower_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/engines/<int:engine_id>/parts', methods=['GET'])
def list_engine_parts(engine_id):
    try:
        if not parts_inventory.get_engine_by_id(engine_id):
            return _not_found('Engine')
        return _json(parts_inventory.get_engine_parts(engine_id))
    except Exception as e:
        logger.error(f"Error listing parts for engine {engine_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/asset-parts', methods=['POST'])
def create_allocation():
    try:
        allocation_id = parts_inventory.allocate_part(_payload())
        allocation = parts_inventory.get_allocation(allocation_id)
        part = parts_inventory.get_part_by_id(allocation['part_id'])
        mower = None
        if allocation['mower_id']:
            mower = mower_manager.get_mower_by_id(allocation['mower_id'])
        notifications.notify_part_event('allocated', part, mower)
        return _json(allocation, 201)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error allocating part: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/asset-parts/<int:allocation_id>', methods=['PUT'])
def update_allocation(allocation_id):
    try:
        if not parts_inventory.update_allocation(allocation_id, _payload()):
            return _not_found('Allocation')
        return _json(parts_inventory.get_allocation(allocation_id))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error updating allocation {allocation_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/asset-parts/<int:allocation_id>', methods=['DELETE'])
def delete_allocation(allocation_id):
    try:
        if not parts_inventory.delete_allocation(allocation_id):
            return _not_found('Allocation')
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting allocation {allocation_id}: {e}")
        return jsonify({'error': str(e)}), 500


# ====================================================================
# Attachments
# ====================================================================

_OWNER_TYPES = {'mowers': 'mower', 'engines': 'engine', 'parts': 'part'}


@features_bp.route('/api/<any(mowers, engines, parts):owner>/<int:owner_id>/attachments', methods=['GET'])
def list_attachments(owner, owner_id):
    try:
        return _json(attachments.get_attachments(_OWNER_TYPES[owner], owner_id))
    except Exception as e:
        logger.error(f"Error listing attachments for {owner} {owner_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/<any(mowers, engines, parts):owner>/<int:owner_id>/attachments', methods=['POST'])
def upload_attachment(owner, owner_id):
    try:
        upload = request.files.get('file')
        if upload is None:
            raise ValueError("No file uploaded (expected multipart field 'file')")
        attachment_id = attachments.add_attachment(
            _OWNER_TYPES[owner],
            owner_id,
            upload.filename,
            upload.read(),
            title=request.form.get('title'),
            description=request.form.get('description'),
        )
        if attachment_id is None:
            return _not_found(_OWNER_TYPES[owner].capitalize())
        return _json(attachments.get_attachment(attachment_id), 201)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error uploading attachment for {owner} {owner_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/attachments/<int:attachment_id>', methods=['GET'])
def get_attachment(attachment_id):
    try:
        attachment = attachments.get_attachment(attachment_id)
        if not attachment:
            return _not_found('Attachment')
        return _json(attachment)
    except Exception as e:
        logger.error(f"Error getting attachment {attachment_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/attachments/<int:attachment_id>/download', methods=['GET'])
def download_attachment(attachment_id):
    try:
        result = attachments.get_attachment_file(attachment_id)
        if result is None:
            return _not_found('Attachment')
        content, file_name, mime_type = result
        return send_file(
            io.BytesIO(content),
            mimetype=mime_type,
            as_attachment=request.args.get('inline') != '1',
            download_name=file_name,
        )
    except Exception as e:
        logger.error(f"Error downloading attachment {attachment_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/attachments/<int:attachment_id>', methods=['PUT'])
def update_attachment(attachment_id):
    try:
        data = _payload()
        if not attachments.get_attachment(attachment_id):
            return _not_found('Attachment')
        attachments.update_attachment(attachment_id, data)
        return _json(attachments.get_attachment(attachment_id))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error updating attachment {attachment_id}: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/attachments/<int:attachment_id>', methods=['DELETE'])
def delete_attachment(attachment_id):
    try:
        if not attachments.delete_attachment(attachment_id):
            return _not_found('Attachment')
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting attachment {attachment_id}: {e}")
        return jsonify({'error': str(e)}), 500


# ====================================================================
# Maintenance schedule & dashboard
# ====================================================================

def _fleet_snapshot():
    return mower_manager.get_mowers(), mower_manager.get_all_service_records()


@features_bp.route('/api/maintenance/upcoming', methods=['GET'])
def upcoming_maintenance():
    try:
        today = _today()
        mowers, records = _fleet_snapshot()
        items = maintenance_schedule.build_unified_maintenance_list(mowers, records, today)
        return _json(items)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error building maintenance list: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/maintenance/report.pdf', methods=['GET'])
def maintenance_report_pdf():
    try:
        today = _today()
        mowers, records = _fleet_snapshot()
        stats = maintenance_schedule.get_fleet_stats(mowers, today)
        items = maintenance_schedule.build_unified_maintenance_list(mowers, records, today)
        buffer = pdf_generator.generate_fleet_maintenance_report(stats, items, as_of=today)
        return send_file(
            buffer,
            mimetype='application/pdf',
            as_attachment=True,
            download_name=f'fleet-maintenance-{today.isoformat()}.pdf',
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error generating fleet maintenance report: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/dashboard/stats', methods=['GET'])
def dashboard_stats():
    try:
        today = _today()
        stats = maintenance_schedule.get_fleet_stats(mower_manager.get_mowers(), today)
        stats['low_stock_parts'] = len(parts_inventory.get_low_stock_parts())
        return _json(stats)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error getting dashboard stats: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/service-intervals', methods=['GET'])
def service_intervals():
    return jsonify(maintenance_schedule.SERVICE_INTERVALS)


# ====================================================================
# Reminders
# ====================================================================

@features_bp.route('/api/reminders', methods=['GET'])
def all_reminders():
    try:
        return _json(reminders.get_all_reminders(_today()))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error getting reminders: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/reminders/low-stock', methods=['GET'])
def low_stock_reminders():
    try:
        return _json(reminders.get_stock_reminders())
    except Exception as e:
        logger.error(f"Error getting stock reminders: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/reminders/upcoming-services', methods=['GET'])
def service_reminders():
    try:
        return _json(reminders.get_service_reminders(_today()))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error getting service reminders: {e}")
        return jsonify({'error': str(e)}), 500


# ====================================================================
# Notifications
# ====================================================================

@features_bp.route('/api/notifications', methods=['GET'])
def list_notifications():
    try:
        unread_only = request.args.get('unread_only', 'false').lower() == 'true'
        limit = int(request.args.get('limit', 50))
        return _json(notifications.get_notifications(unread_only=unread_only, limit=limit))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error listing notifications: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/notifications', methods=['POST'])
def create_notification():
    try:
        data = _payload()
        if not data.get('title') or not data.get('message'):
            raise ValueError("title and message are required")
        notification_id = notifications.create_notification(
            data['title'],
            data['message'],
            notification_type=data.get('type', 'info'),
            priority=data.get('priority', 'medium'),
            entity_type=data.get('entity_type'),
            entity_id=data.get('entity_id'),
            entity_name=data.get('entity_name'),
            detail_url=data.get('detail_url'),
        )
        if notification_id is None:
            return jsonify({'error': 'Failed to create notification'}), 500
        return jsonify({'id': notification_id}), 201
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error creating notification: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/notifications', methods=['DELETE'])
def clear_notifications():
    try:
        return jsonify({'deleted': notifications.delete_all_notifications()})
    except Exception as e:
        logger.error(f"Error clearing notifications: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/notifications/unread', methods=['GET'])
def unread_notifications():
    try:
        return _json({
            'count': notifications.get_unread_count(),
            'notifications': notifications.get_notifications(unread_only=True),
        })
    except Exception as e:
        logger.error(f"Error getting unread notifications: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/notifications/<int:notification_id>/read', methods=['PATCH'])
def mark_notification_read(notification_id):
    try:
        if not notifications.mark_read(notification_id):
            return _not_found('Notification')
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error marking notification {notification_id} read: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/notifications/read-all', methods=['PATCH'])
def mark_all_notifications_read():
    try:
        return jsonify({'updated': notifications.mark_all_read()})
    except Exception as e:
        logger.error(f"Error marking all notifications read: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/notifications/<int:notification_id>', methods=['DELETE'])
def delete_notification(notification_id):
    try:
        if not notifications.delete_notification(notification_id):
            return _not_found('Notification')
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting notification {notification_id}: {e}")
        return jsonify({'error': str(e)}), 500


# ====================================================================
# Backup / restore
# ====================================================================

@features_bp.route('/api/backup', methods=['POST'])
def create_backup():
    try:
        buffer = backup.create_backup()
        return send_file(
            buffer,
            mimetype='application/zip',
            as_attachment=True,
            download_name=backup.backup_filename(),
        )
    except Exception as e:
        logger.error(f"Error creating backup: {e}")
        return jsonify({'error': str(e)}), 500


@features_bp.route('/api/restore', methods=['POST'])
def restore_backup():
    try:
        upload = request.files.get('backup')
        if upload is None:
            raise ValueError("No backup uploaded (expected multipart field 'backup')")
        stats = backup.restore_backup(upload.read())
        return jsonify({'success': True, 'stats': stats})
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error restoring backup: {e}")
        return jsonify({'error': str(e)}), 500
