"""Change notifier: topic subscription and failure isolation."""
import pytest

from app.services.events import BLOCKS_CHANGED, COURTS_CHANGED, WAITLIST_CHANGED, ChangeNotifier


def test_publish_reaches_topic_subscribers_only():
    notifier = ChangeNotifier()
    courts, waitlist = [], []
    notifier.subscribe(COURTS_CHANGED, lambda topic, payload: courts.append(payload))
    notifier.subscribe(WAITLIST_CHANGED, lambda topic, payload: waitlist.append(payload))

    assert notifier.publish(COURTS_CHANGED, {"version": 1}) == 1
    assert courts == [{"version": 1}]
    assert waitlist == []


def test_unknown_topic_rejected():
    with pytest.raises(ValueError):
        ChangeNotifier().subscribe("court-changed", lambda topic, payload: None)


def test_duplicate_subscription_delivers_once():
    notifier = ChangeNotifier()
    seen = []

    def callback(topic, payload):
        seen.append(topic)

    notifier.subscribe(BLOCKS_CHANGED, callback)
    notifier.subscribe(BLOCKS_CHANGED, callback)
    notifier.publish(BLOCKS_CHANGED, {})
    assert seen == [BLOCKS_CHANGED]


def test_unsubscribe():
    notifier = ChangeNotifier()
    seen = []

    def callback(topic, payload):
        seen.append(topic)

    notifier.subscribe(COURTS_CHANGED, callback)
    notifier.unsubscribe(COURTS_CHANGED, callback)
    notifier.unsubscribe(COURTS_CHANGED, callback)
    assert notifier.publish(COURTS_CHANGED, {}) == 0
    assert seen == []


def test_failing_subscriber_is_skipped(caplog):
    notifier = ChangeNotifier()
    seen = []

    def broken(topic, payload):
        raise RuntimeError("display offline")

    notifier.subscribe(COURTS_CHANGED, broken)
    notifier.subscribe(COURTS_CHANGED, lambda topic, payload: seen.append(payload))

    assert notifier.publish(COURTS_CHANGED, {"version": 2}) == 1
    assert seen == [{"version": 2}]
    assert "failed for topic courts-changed" in caplog.text
