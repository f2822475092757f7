"""Tests for the mower fleet and service history — CRUD, cascades, service date bookkeeping."""

import pytest

from attachments import add_attachment
from db import get_db
from mower_manager import (
    add_mower, update_mower, delete_mower, get_mowers, get_mower_by_id,
    get_mower_details, set_mower_thumbnail,
    add_service_record, get_service_records, get_all_service_records,
    get_service_record, update_service_record, delete_service_record,
)
from parts_inventory import add_engine, add_part, allocate_part, get_part_by_id
from task_manager import add_task

pytestmark = pytest.mark.usefixtures('clean_db')


def _service(service_date, service_type='maintenance', **extra):
    data = {
        'service_date': service_date,
        'service_type': service_type,
        'description': f'{service_type} on {service_date}',
    }
    data.update(extra)
    return data


# ---------------------------------------------------------------------------
# Mower CRUD
# ---------------------------------------------------------------------------

class TestMowerCRUD:
    def test_add_and_get(self, mower_data):
        mower_id = add_mower(mower_data)
        mower = get_mower_by_id(mower_id)
        assert mower['make'] == 'Toro'
        assert mower['model'] == 'Greensmaster 3150'
        assert mower['year'] == 2019
        assert mower['status'] == 'active'
        assert mower['thumbnail_attachment_id'] is None

    def test_make_and_model_required(self):
        with pytest.raises(ValueError):
            add_mower({'make': 'Toro'})
        with pytest.raises(ValueError):
            add_mower({'model': 'Reelmaster'})

    def test_invalid_enums_fall_back_to_defaults(self):
        mower_id = add_mower({'make': 'Toro', 'model': 'X', 'condition': 'shiny', 'status': 'lost'})
        mower = get_mower_by_id(mower_id)
        assert mower['condition'] == 'good'
        assert mower['status'] == 'active'

    def test_dates_normalized(self):
        mower_id = add_mower({'make': 'Toro', 'model': 'X', 'purchase_date': '2021-04-02T10:00:00'})
        assert get_mower_by_id(mower_id)['purchase_date'] == '2021-04-02'

    def test_bad_date_rejected(self):
        with pytest.raises(ValueError):
            add_mower({'make': 'Toro', 'model': 'X', 'purchase_date': 'last spring'})

    def test_update_only_given_fields(self, mower_data):
        mower_id = add_mower(mower_data)
        assert update_mower(mower_id, {'location': 'Shop', 'status': 'maintenance'}) is True
        mower = get_mower_by_id(mower_id)
        assert mower['location'] == 'Shop'
        assert mower['status'] == 'maintenance'
        assert mower['serial_number'] == 'TGM-3150-0042'

    def test_update_nothing_returns_false(self, mower_data):
        mower_id = add_mower(mower_data)
        assert update_mower(mower_id, {'unknown': 1}) is False

    def test_update_missing_mower(self):
        assert update_mower(424242, {'location': 'Shop'}) is False

    def test_update_cannot_blank_make(self, mower_data):
        mower_id = add_mower(mower_data)
        with pytest.raises(ValueError):
            update_mower(mower_id, {'make': ''})

    def test_get_missing_returns_none(self):
        assert get_mower_by_id(424242) is None


class TestMowerQueries:
    def test_filter_by_status(self, mower_data):
        add_mower(mower_data)
        add_mower({**mower_data, 'status': 'retired'})
        assert len(get_mowers()) == 2
        assert [m['status'] for m in get_mowers(status='retired')] == ['retired']

    def test_unknown_status_filter_ignored(self, mower_data):
        add_mower(mower_data)
        assert len(get_mowers(status='bogus')) == 1

    def test_search_is_case_insensitive(self, mower_data):
        add_mower(mower_data)
        add_mower({'make': 'John Deere', 'model': '2500B', 'location': 'North shed'})
        assert [m['make'] for m in get_mowers(search='deere')] == ['John Deere']
        assert [m['make'] for m in get_mowers(search='tgm-3150')] == ['Toro']
        assert [m['make'] for m in get_mowers(search='NORTH')] == ['John Deere']

    def test_ordered_by_make_and_model(self):
        add_mower({'make': 'Toro', 'model': 'Reelmaster'})
        add_mower({'make': 'Jacobsen', 'model': 'Eclipse'})
        add_mower({'make': 'Toro', 'model': 'Greensmaster'})
        assert [(m['make'], m['model']) for m in get_mowers()] == [
            ('Jacobsen', 'Eclipse'), ('Toro', 'Greensmaster'), ('Toro', 'Reelmaster'),
        ]


class TestDeleteMower:
    def test_cascades_to_everything_it_owns(self, mower_data):
        mower_id = add_mower(mower_data)
        engine_id = add_engine({'name': 'Kubota D722', 'mower_id': mower_id})
        part_id = add_part({'name': 'Bedknife', 'stock_quantity': 5})
        allocate_part({'part_id': part_id, 'mower_id': mower_id})
        allocate_part({'part_id': part_id, 'engine_id': engine_id})
        add_attachment('mower', mower_id, 'photo.jpg', b'jpeg')
        add_attachment('engine', engine_id, 'manual.pdf', b'%PDF')
        add_task(mower_id, {'title': 'Grind reels'})
        add_service_record(mower_id, _service('2025-01-01'))

        assert delete_mower(mower_id) is True
        assert get_mower_by_id(mower_id) is None

        with get_db() as conn:
            for table in ('engines', 'asset_parts', 'attachments', 'tasks', 'service_records'):
                count = conn.execute(f'SELECT COUNT(*) AS n FROM {table}').fetchone()['n']
                assert count == 0, table

        # Parts stay in the catalog and are not restocked
        assert get_part_by_id(part_id)['stock_quantity'] == 3

    def test_other_mowers_untouched(self, mower_data):
        keep = add_mower(mower_data)
        drop = add_mower({**mower_data, 'serial_number': 'OTHER'})
        add_service_record(keep, _service('2025-01-01'))
        delete_mower(drop)
        assert len(get_service_records(keep)) == 1

    def test_missing_mower(self):
        assert delete_mower(424242) is False


class TestMowerDetails:
    def test_includes_related_rows(self, mower_data):
        mower_id = add_mower(mower_data)
        add_service_record(mower_id, _service('2025-01-01'))
        add_task(mower_id, {'title': 'Replace belt'})
        add_engine({'name': 'Kubota D722', 'mower_id': mower_id})
        add_attachment('mower', mower_id, 'manual.pdf', b'%PDF-1.4')

        details = get_mower_details(mower_id)
        assert len(details['service_records']) == 1
        assert [t['title'] for t in details['tasks']] == ['Replace belt']
        assert [e['name'] for e in details['engines']] == ['Kubota D722']
        assert details['parts'] == []
        assert [a['file_name'] for a in details['attachments']] == ['manual.pdf']
        assert 'file_data' not in details['attachments'][0]

    def test_missing_mower(self):
        assert get_mower_details(424242) is None


class TestThumbnail:
    def test_set_and_clear(self, mower_data):
        mower_id = add_mower(mower_data)
        photo = add_attachment('mower', mower_id, 'front.png', b'png-bytes')
        assert set_mower_thumbnail(mower_id, photo) is True
        assert get_mower_by_id(mower_id)['thumbnail_attachment_id'] == photo

        assert set_mower_thumbnail(mower_id, None) is True
        assert get_mower_by_id(mower_id)['thumbnail_attachment_id'] is None

    def test_rejects_non_image(self, mower_data):
        mower_id = add_mower(mower_data)
        manual = add_attachment('mower', mower_id, 'manual.pdf', b'%PDF')
        with pytest.raises(ValueError):
            set_mower_thumbnail(mower_id, manual)

    def test_rejects_other_mowers_attachment(self, mower_data):
        mine = add_mower(mower_data)
        theirs = add_mower(mower_data)
        photo = add_attachment('mower', theirs, 'front.png', b'png-bytes')
        with pytest.raises(ValueError):
            set_mower_thumbnail(mine, photo)

    def test_missing_mower(self):
        assert set_mower_thumbnail(424242, None) is False


# ---------------------------------------------------------------------------
# Service records
# ---------------------------------------------------------------------------

class TestServiceRecords:
    def test_add_rolls_mower_dates_forward(self, mower_data):
        mower_id = add_mower(mower_data)
        record_id = add_service_record(mower_id, _service('2025-03-10', cost=85.0))
        assert record_id is not None

        mower = get_mower_by_id(mower_id)
        assert mower['last_service_date'] == '2025-03-10'
        assert mower['next_service_date'] == '2026-03-10'

    def test_explicit_next_service_due_wins(self, mower_data):
        mower_id = add_mower(mower_data)
        add_service_record(mower_id, _service('2025-03-10', next_service_due='2025-06-10'))
        assert get_mower_by_id(mower_id)['next_service_date'] == '2025-06-10'

    def test_backfilled_record_leaves_mower_dates(self, mower_data):
        mower_id = add_mower(mower_data)
        add_service_record(mower_id, _service('2025-03-10'))
        add_service_record(mower_id, _service('2024-11-01', 'repair'))

        mower = get_mower_by_id(mower_id)
        assert mower['last_service_date'] == '2025-03-10'
        assert mower['next_service_date'] == '2026-03-10'

    def test_missing_mower_returns_none(self):
        assert add_service_record(424242, _service('2025-03-10')) is None

    @pytest.mark.parametrize('missing', ['service_date', 'service_type', 'description'])
    def test_required_fields(self, mower_data, missing):
        mower_id = add_mower(mower_data)
        data = _service('2025-03-10')
        del data[missing]
        with pytest.raises(ValueError):
            add_service_record(mower_id, data)

    def test_unknown_service_type_rejected(self, mower_data):
        mower_id = add_mower(mower_data)
        with pytest.raises(ValueError):
            add_service_record(mower_id, _service('2025-03-10', 'overhaul'))

    def test_history_newest_first(self, mower_data):
        mower_id = add_mower(mower_data)
        add_service_record(mower_id, _service('2025-01-05'))
        add_service_record(mower_id, _service('2025-04-20', 'inspection'))
        add_service_record(mower_id, _service('2024-12-01', 'repair'))
        assert [r['service_date'] for r in get_service_records(mower_id)] == [
            '2025-04-20', '2025-01-05', '2024-12-01',
        ]

    def test_fleet_history_carries_mower_name(self, mower_data):
        mower_id = add_mower(mower_data)
        add_service_record(mower_id, _service('2025-01-05'))
        [record] = get_all_service_records()
        assert record['mower_make'] == 'Toro'
        assert record['mower_model'] == 'Greensmaster 3150'

    def test_update_leaves_mower_dates(self, mower_data):
        mower_id = add_mower(mower_data)
        record_id = add_service_record(mower_id, _service('2025-03-10'))
        assert update_service_record(record_id, {'service_date': '2025-05-01', 'cost': 40}) is True

        record = get_service_record(record_id)
        assert record['service_date'] == '2025-05-01'
        assert record['cost'] == 40
        assert get_mower_by_id(mower_id)['last_service_date'] == '2025-03-10'

    def test_update_validation(self, mower_data):
        mower_id = add_mower(mower_data)
        record_id = add_service_record(mower_id, _service('2025-03-10'))
        with pytest.raises(ValueError):
            update_service_record(record_id, {'service_type': 'overhaul'})
        with pytest.raises(ValueError):
            update_service_record(record_id, {'description': ''})
        assert update_service_record(record_id, {'mower_id': 99}) is False

    def test_delete_unlinks_allocations(self, mower_data):
        mower_id = add_mower(mower_data)
        record_id = add_service_record(mower_id, _service('2025-03-10'))
        part_id = add_part({'name': 'Spark plug', 'stock_quantity': 4})
        allocation_id = allocate_part({
            'part_id': part_id, 'mower_id': mower_id, 'service_record_id': record_id,
        })

        assert delete_service_record(record_id) is True
        assert get_service_record(record_id) is None
        with get_db() as conn:
            row = conn.execute(
                'SELECT service_record_id FROM asset_parts WHERE id = ?', (allocation_id,)
            ).fetchone()
        assert row['service_record_id'] is None

    def test_delete_missing(self):
        assert delete_service_record(424242) is False
