from __future__ import annotations

# Durable queues on top of MQTT.
#
# A queue is an MQTT persistent session (clean_session=False) whose client id
# is derived from the queue name, holding a QoS 1 subscription to the queue's
# topic. While nobody is connected the broker stores persistent messages for
# that session; connecting with the same client id binds to the queue.
#
# Only one connection per client id is allowed, which makes the binding
# exclusive. It also means a second connection takes the session over, so
# producers never connect under the queue's client id once the queue exists:
# whoever creates the session publishes a retained marker on the queue's
# registry topic, and producers look for that marker first.

from typing import Any

from .config import SessionConfig
from .errors import ProvisionError, SubscribeError
from .messages import DeliveryMode, Message
from .mqtt_client import ClientFactory, MqttClient, new_session
from .mqtt_topics import queue_registry_topic, queue_session_id, queue_topic
from .oneshot import OneShotSignal


def queue_session(
    config: SessionConfig,
    queue_name: str,
    *,
    client_factory: ClientFactory = MqttClient,
    **kwargs: Any,
) -> MqttClient:
    """Create (not start) the client that binds to `queue_name`."""
    return new_session(
        config,
        client_id=queue_session_id(queue_name, config.vpn),
        client_factory=client_factory,
        clean_session=False,
        **kwargs,
    )


def provision_queue(client: MqttClient, queue_name: str, *, vpn: str) -> bool:
    """Make sure the queue exists on a started queue session.

    Returns True if the queue was created, False if it already existed.
    An existing queue is not an error; any refusal from the broker is.
    """
    try:
        granted = client.subscribe(queue_topic(queue_name, vpn), qos=1)
    except SubscribeError as e:
        raise ProvisionError(queue_name, e.reason) from e
    if granted < 1:
        raise ProvisionError(queue_name, f"broker granted QoS {granted}, persistent delivery needs 1")
    return not client.session_present


def register_queue(client: MqttClient, queue_name: str, *, vpn: str) -> None:
    """Publish the retained marker saying the queue's session exists."""
    marker = Message(text=queue_session_id(queue_name, vpn), delivery_mode=DeliveryMode.PERSISTENT)
    client.publish(queue_registry_topic(queue_name, vpn), marker, retain=True)


class _MarkerWatch:
    def __init__(self, topic: str, found: OneShotSignal) -> None:
        self.topic = topic
        self.found = found

    def on_message(self, message: Message) -> None:
        if message.topic == self.topic:
            self.found.signal()

    def on_error(self, error: Exception) -> None:
        print(f"[queue] lost connection while looking up '{self.topic}': {error}")


def queue_registered(client: MqttClient, queue_name: str, *, vpn: str, timeout: float = 1.0) -> bool:
    """Look for the queue's retained marker on any started session.

    The broker sends retained messages right after the SUBACK, so a short
    wait is enough.
    """
    topic = queue_registry_topic(queue_name, vpn)
    found = OneShotSignal()
    client.add_handler(_MarkerWatch(topic, found))
    client.subscribe(topic, qos=1)
    return found.wait(timeout)


def ensure_queue(
    client: MqttClient,
    config: SessionConfig,
    queue_name: str,
    *,
    client_factory: ClientFactory = MqttClient,
    lookup_timeout: float = 1.0,
) -> bool:
    """Producer side: create the queue unless its marker says it exists.

    `client` is the producer's own started session. Returns True if the queue
    was created.
    """
    if queue_registered(client, queue_name, vpn=config.vpn, timeout=lookup_timeout):
        return False

    provisioner = queue_session(config, queue_name, client_factory=client_factory)
    provisioner.start()
    try:
        created = provision_queue(provisioner, queue_name, vpn=config.vpn)
    finally:
        provisioner.stop()
    register_queue(client, queue_name, vpn=config.vpn)
    return created
