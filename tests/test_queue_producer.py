import threading
import time
from datetime import datetime

import pytest

from pubsub_samples.config import SampleNames, SessionConfig
from pubsub_samples.errors import ProvisionError, SendError
from pubsub_samples.messages import DeliveryMode, Message
from pubsub_samples.queue_consumer import consume_one
from pubsub_samples.queue_producer import format_timestamp, send_to_queue

CONFIG = SessionConfig(host="localhost", port=1883, vpn="vpn1", username="user", password="secret")
NAMES = SampleNames(queue_lookup_timeout=0.05)
NOW = datetime(2026, 10, 19, 13, 38, 5)
QUEUE_ID = "queue-vpn1-Q_tutorial"
QUEUE_TOPIC = "vpn1/Q/tutorial"
MARKER_TOPIC = "vpn1/_queues/Q/tutorial"


def _queue_messages(broker):
    return [message for topic, message in broker.published if topic == QUEUE_TOPIC]


def test_format_timestamp():
    assert format_timestamp(NOW) == "Oct 19, 2026, 1:38:05 PM"
    assert format_timestamp(datetime(2026, 1, 2, 0, 5, 0)) == "Jan 2, 2026, 12:05:00 AM"


def test_sends_one_persistent_message_to_the_queue(broker):
    message = send_to_queue(CONFIG, NAMES, client_factory=broker, now=NOW)

    sent = _queue_messages(broker)
    assert sent == [message]
    assert message.delivery_mode is DeliveryMode.PERSISTENT
    assert "Persistent Queue Tutorial!" in message.text
    assert format_timestamp(NOW) in message.text


def test_provisions_through_the_queue_session_when_no_marker(broker):
    send_to_queue(CONFIG, NAMES, client_factory=broker, now=NOW)

    producer, provisioner = broker.clients
    assert producer.client_id.startswith("queue-producer-")
    assert provisioner.client_id == QUEUE_ID
    assert provisioner.options["clean_session"] is False
    assert provisioner.options["username"] == "user"
    assert provisioner.options["password"] == "secret"
    assert broker.actions(provisioner.client_id) == ["start", "subscribe", "stop"]
    assert ("vpn1/Q/tutorial", 1) in [d for _, a, d in broker.events if a == "subscribe"]
    assert broker.actions(producer.client_id) == ["start", "subscribe", "publish", "publish", "stop"]
    assert provisioner.stop_calls == 1
    assert producer.stop_calls == 1


def test_publishes_retained_marker_after_provisioning(broker):
    send_to_queue(CONFIG, NAMES, client_factory=broker, now=NOW)

    marker = broker.retained[MARKER_TOPIC]
    assert marker.text == QUEUE_ID
    assert marker.delivery_mode is DeliveryMode.PERSISTENT


def test_marker_means_the_queue_session_is_never_touched(broker, capsys):
    broker.retained[MARKER_TOPIC] = Message(text=QUEUE_ID, delivery_mode=DeliveryMode.PERSISTENT)

    send_to_queue(CONFIG, NAMES, client_factory=broker, now=NOW)

    assert QUEUE_ID not in broker.started_ids()
    assert len(broker.clients) == 1
    assert "already exists" in capsys.readouterr().out
    assert len(_queue_messages(broker)) == 1


def test_existing_session_without_marker_is_not_an_error(broker, capsys):
    broker.sessions.add(QUEUE_ID)

    send_to_queue(CONFIG, NAMES, client_factory=broker, now=NOW)

    assert "already exists" in capsys.readouterr().out
    assert len(_queue_messages(broker)) == 1


def test_bound_consumer_keeps_its_session_and_gets_the_message(broker):
    received = []
    consumer = threading.Thread(target=lambda: received.append(consume_one(CONFIG, NAMES, client_factory=broker)))
    consumer.start()

    deadline = time.monotonic() + 5
    while MARKER_TOPIC not in broker.retained and time.monotonic() < deadline:
        time.sleep(0.01)
    assert MARKER_TOPIC in broker.retained

    message = send_to_queue(CONFIG, NAMES, client_factory=broker, now=NOW)
    consumer.join(timeout=5)

    assert not consumer.is_alive()
    assert received[0].text == message.text
    assert broker.started_ids().count(QUEUE_ID) == 1
    assert "taken-over" not in broker.actions()
    assert broker.actions(QUEUE_ID)[-2:] == ["ack", "stop"]


def test_consumer_started_later_finds_the_stored_message(broker):
    message = send_to_queue(CONFIG, NAMES, client_factory=broker, now=NOW)

    received = consume_one(CONFIG, NAMES, client_factory=broker)

    assert received.text == message.text


def test_refused_provisioning_is_fatal(broker):
    broker.refuse_topics.add(QUEUE_TOPIC)

    with pytest.raises(ProvisionError):
        send_to_queue(CONFIG, NAMES, client_factory=broker, now=NOW)

    assert broker.published == []
    assert [c.stop_calls for c in broker.clients] == [1, 1]
    assert MARKER_TOPIC not in broker.retained


def test_downgraded_subscription_is_a_provisioning_error(broker):
    broker.max_qos = 0

    with pytest.raises(ProvisionError, match="QoS 0"):
        send_to_queue(CONFIG, NAMES, client_factory=broker, now=NOW)


def test_send_error_is_fatal_and_session_closed_once(broker):
    broker.retained[MARKER_TOPIC] = Message(text=QUEUE_ID, delivery_mode=DeliveryMode.PERSISTENT)
    broker.fail_publish = True

    with pytest.raises(SendError):
        send_to_queue(CONFIG, NAMES, client_factory=broker, now=NOW)

    assert broker.clients[0].stop_calls == 1
