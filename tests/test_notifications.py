"""Tests for the notification feed and the fleet event builders."""

import pytest

from notifications import (
    create_notification, get_notifications, get_unread_count,
    mark_read, mark_all_read, delete_notification, delete_all_notifications,
    notify_mower_event, notify_part_event, notify_engine_event,
)

pytestmark = pytest.mark.usefixtures('clean_db')

MOWER = {'id': 3, 'make': 'Toro', 'model': 'Reelmaster 5010'}
PART = {'id': 11, 'name': 'Bedknife'}
ENGINE = {'id': 5, 'name': 'Kubota D722'}


class TestNotificationFeed:
    def test_create_and_list(self):
        notification_id = create_notification('Heads up', 'Something happened')
        [n] = get_notifications()
        assert n['id'] == notification_id
        assert n['notification_type'] == 'info'
        assert n['priority'] == 'medium'
        assert n['is_read'] is False

    def test_invalid_type_and_priority_fall_back(self):
        create_notification('T', 'M', notification_type='shout', priority='critical')
        [n] = get_notifications()
        assert n['notification_type'] == 'info'
        assert n['priority'] == 'medium'

    def test_newest_first_and_limit(self):
        for i in range(5):
            create_notification(f'n{i}', 'msg')
        assert [n['title'] for n in get_notifications(limit=3)] == ['n4', 'n3', 'n2']

    def test_read_state(self):
        first = create_notification('a', 'msg')
        create_notification('b', 'msg')
        assert get_unread_count() == 2

        assert mark_read(first) is True
        assert get_unread_count() == 1
        assert [n['title'] for n in get_notifications(unread_only=True)] == ['b']

        assert mark_all_read() == 1
        assert get_unread_count() == 0
        assert mark_read(424242) is False

    def test_delete(self):
        first = create_notification('a', 'msg')
        create_notification('b', 'msg')
        assert delete_notification(first) is True
        assert delete_notification(first) is False
        assert delete_all_notifications() == 1
        assert get_notifications() == []


class TestEventBuilders:
    def test_mower_added(self):
        notify_mower_event('added', MOWER)
        [n] = get_notifications()
        assert n['title'] == 'Mower Added'
        assert n['message'] == 'New mower "Toro Reelmaster 5010" has been added to the fleet'
        assert n['notification_type'] == 'success'
        assert n['entity_type'] == 'mower'
        assert n['entity_id'] == 3
        assert n['detail_url'] == '/mowers/3'

    def test_mower_deleted_and_sold_are_high_priority(self):
        notify_mower_event('deleted', MOWER)
        notify_mower_event('sold', MOWER)
        titles = {n['title']: n for n in get_notifications()}
        assert titles['Mower Deleted']['priority'] == 'high'
        assert titles['Mower Deleted']['notification_type'] == 'warning'
        assert titles['Mower Sold']['message'] == 'Mower "Toro Reelmaster 5010" has been sold'
        assert titles['Mower Sold']['detail_url'] == '/mowers'

    def test_part_allocated_to_mower(self):
        notify_part_event('allocated', PART, mower=MOWER)
        [n] = get_notifications()
        assert n['message'] == 'Part "Bedknife" has been allocated to Toro Reelmaster 5010'
        assert n['detail_url'] == '/mowers/3'

    def test_part_created(self):
        notify_part_event('created', PART)
        [n] = get_notifications()
        assert n['message'] == 'New part "Bedknife" has been added to inventory'
        assert n['detail_url'] == '/catalog/parts/11'

    def test_engine_created_for_mower(self):
        notify_engine_event('created', ENGINE, mower=MOWER)
        [n] = get_notifications()
        assert n['message'] == 'New engine "Kubota D722" has been created for Toro Reelmaster 5010'
        assert n['detail_url'] == '/catalog/engines/5'

    def test_engine_deleted(self):
        notify_engine_event('deleted', ENGINE)
        [n] = get_notifications()
        assert n['title'] == 'Engine Deleted'
        assert n['detail_url'] == '/catalog'

    def test_unknown_action_is_skipped(self):
        assert notify_mower_event('painted', MOWER) is None
        assert get_notifications() == []
