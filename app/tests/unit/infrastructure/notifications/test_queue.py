"""Unit tests for the in-memory dispatch queue."""

import threading
from datetime import timedelta

import pytest

from infrastructure.notifications.models import NotificationPriority, utc_now

pytestmark = pytest.mark.unit


def test_empty_queue(queue):
    assert queue.dequeue_ready() is None
    assert queue.depth() == 0


def test_priority_served_first(queue, notification_factory):
    low = notification_factory(priority=NotificationPriority.LOW)
    medium = notification_factory(priority=NotificationPriority.MEDIUM)
    high = notification_factory(priority=NotificationPriority.HIGH)
    for notification in (low, medium, high):
        queue.enqueue(notification)

    order = [queue.dequeue_ready().notification_id for _ in range(3)]
    assert order == [high.id, medium.id, low.id]


def test_fifo_within_priority(queue, notification_factory):
    first, second = notification_factory(), notification_factory()
    now = utc_now()
    queue.enqueue(first, not_before=now)
    queue.enqueue(second, not_before=now)
    assert queue.dequeue_ready().notification_id == first.id
    assert queue.dequeue_ready().notification_id == second.id


def test_not_before_respected(queue, notification_factory):
    notification = notification_factory()
    now = utc_now()
    queue.enqueue(notification, not_before=now + timedelta(minutes=5))

    assert queue.dequeue_ready(now) is None
    assert queue.contains(notification.id)
    item = queue.dequeue_ready(now + timedelta(minutes=5))
    assert item.notification_id == notification.id


def test_scheduled_at_used_as_not_before(queue, notification_factory):
    scheduled_at = utc_now() + timedelta(hours=1)
    item = queue.enqueue(notification_factory(scheduled_at=scheduled_at))
    assert item.not_before == scheduled_at


def test_ready_low_served_before_waiting_high(queue, notification_factory):
    now = utc_now()
    high = notification_factory(priority=NotificationPriority.HIGH)
    low = notification_factory(priority=NotificationPriority.LOW)
    queue.enqueue(high, not_before=now + timedelta(minutes=1))
    queue.enqueue(low, not_before=now)
    assert queue.dequeue_ready(now).notification_id == low.id


def test_enqueue_replaces_existing_entry(queue, notification_factory):
    notification = notification_factory()
    queue.enqueue(notification)
    queue.enqueue(notification)
    assert queue.depth() == 1


def test_requeue_with_delay(queue, notification_factory):
    notification = notification_factory()
    item = queue.requeue_with_delay(notification, 30)
    assert item.not_before > utc_now() + timedelta(seconds=25)
    assert queue.dequeue_ready() is None


def test_requeue_item_does_not_clobber_newer_entry(queue, notification_factory):
    notification = notification_factory()
    stale = queue.enqueue(notification)
    queue.dequeue_ready()
    fresh = queue.requeue_with_delay(notification, 60)

    queue.requeue_item(stale, 0)

    assert queue.depth() == 1
    assert queue.dequeue_ready(fresh.not_before).sequence == fresh.sequence


def test_remove(queue, notification_factory):
    notification = notification_factory()
    queue.enqueue(notification)
    assert queue.remove(notification.id) is True
    assert queue.remove(notification.id) is False
    assert not queue.contains(notification.id)


def test_concurrent_dequeue_hands_out_each_item_once(queue, notification_factory):
    notifications = [notification_factory() for _ in range(50)]
    for notification in notifications:
        queue.enqueue(notification)

    taken = []
    lock = threading.Lock()

    def worker():
        while True:
            item = queue.dequeue_ready()
            if item is None:
                return
            with lock:
                taken.append(item.notification_id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(taken) == sorted(n.id for n in notifications)
    assert len(set(taken)) == len(taken)
