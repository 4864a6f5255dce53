import pytest

from pubsub_samples.config import DEFAULT_MQTT_PORT, parse_host_port, parse_user_at_vpn
from pubsub_samples.errors import UsageError


def test_parse_host_port():
    assert parse_host_port("broker.local:55555") == ("broker.local", 55555)
    assert parse_host_port("localhost") == ("localhost", DEFAULT_MQTT_PORT)


@pytest.mark.parametrize("value", ["", ":1883", "host:abc", "host:0", "host:70000"])
def test_parse_host_port_rejects(value):
    with pytest.raises(UsageError):
        parse_host_port(value)


def test_parse_user_at_vpn():
    assert parse_user_at_vpn("alice@vpn1") == ("alice", "vpn1")


@pytest.mark.parametrize(
    "value, message",
    [
        ("alice", "Expected"),
        ("a@b@c", "Expected"),
        ("@vpn1", "No client-username entered"),
        ("alice@", "No message-vpn entered"),
    ],
)
def test_parse_user_at_vpn_rejects(value, message):
    with pytest.raises(UsageError, match=message):
        parse_user_at_vpn(value)
