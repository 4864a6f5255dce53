"""MQTT topic helpers.

We keep destination naming in one place so that every pair of samples
(replier/requestor, producer/consumer, publisher/subscriber) agrees.

MQTT has no message VPNs, so the VPN becomes a topic namespace: every
destination lives under `<vpn>/`, which keeps demos in different VPNs apart on
a shared broker.

Layout under a VPN (default: `default`):
- `<vpn>/tutorial/requests`     requests for the replier
- `<vpn>/tutorial/topic`        the topic subscriber's topic
- `<vpn>/Q/tutorial`            topic feeding the durable queue `Q/tutorial`
- `<vpn>/_inbox/<client_id>`    private reply-address of one requestor
- `<vpn>/_queues/<queue>`       retained marker: the queue has been provisioned

A durable queue is an MQTT persistent session. Its client id is derived from
the queue name (see `queue_session_id`) so producer and consumer find the same
session. Only the consumer, or a producer that finds no queue yet, connects
under that client id; a producer learns the queue exists from the retained
marker and never takes the session over from a bound consumer.
"""

from __future__ import annotations

DEFAULT_VPN = "default"


def destination(name: str, vpn: str = DEFAULT_VPN) -> str:
    return f"{vpn}/{name}"


def reply_inbox(client_id: str, vpn: str = DEFAULT_VPN) -> str:
    return f"{vpn}/_inbox/{client_id}"


def queue_topic(queue_name: str, vpn: str = DEFAULT_VPN) -> str:
    """Topic the queue's session subscribes to (and producers publish to)."""
    return destination(queue_name, vpn)


def queue_session_id(queue_name: str, vpn: str = DEFAULT_VPN) -> str:
    """Stable MQTT client id of the persistent session backing a queue.

    Client ids may not contain '/' on every broker, so path separators are
    flattened.
    """
    return f"queue-{vpn}-{queue_name}".replace("/", "_")


def queue_registry_topic(queue_name: str, vpn: str = DEFAULT_VPN) -> str:
    """Retained marker published once the queue's session exists."""
    return f"{vpn}/_queues/{queue_name}"
