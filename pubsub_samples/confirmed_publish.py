from __future__ import annotations

# Confirmed publish.
#
# A short-lived process:
# - connect (VPN and username are fixed, no password)
# - send a batch of persistent messages to the durable queue's topic, each
#   carrying its own receipt as correlation key
# - wait until the broker has accepted or rejected every one of them
# - report the receipts and exit
#
# The queue is not provisioned here; run the queue producer or consumer once
# so that the broker stores what this sends.

import argparse
from dataclasses import dataclass

from .config import SampleArgumentParser, SampleNames, SessionConfig, host_port_arg
from .messages import DeliveryMode, Message
from .mqtt_client import ClientFactory, MqttClient, new_session, unique_client_id
from .mqtt_topics import queue_topic
from .oneshot import CountdownGate


@dataclass(eq=False)
class PublishReceipt:
    """Correlation key of one message; filled in when the broker answers."""

    id: int
    acked: bool = False
    published: bool = False
    message: Message | None = None

    def __str__(self) -> str:
        return f"Message ID: {self.id}, PubConf: {self.acked}, PubSuccessful: {self.published}"


class ReceiptCounter:
    """Publish event handler: settle the receipt, then count the gate down."""

    def __init__(self, gate: CountdownGate, label: str = "confirmed-publish") -> None:
        self.gate = gate
        self.label = label

    def on_response(self, key: object) -> None:
        if isinstance(key, PublishReceipt):
            key.acked = True
            key.published = True
            print(f"[{self.label}] Message response (accepted) received for {key}")
        self.gate.count_down()

    def on_error(self, key: object, error: Exception) -> None:
        if isinstance(key, PublishReceipt):
            key.acked = True
            print(f"[{self.label}] Message response (rejected) received for {key}, error was {error}")
        self.gate.count_down()


class _ConnectionWatch:
    # Outcomes never arrive once the connection is gone.
    def __init__(self, gate: CountdownGate, label: str) -> None:
        self.gate = gate
        self.label = label

    def on_message(self, message: Message) -> None:
        pass

    def on_error(self, error: Exception) -> None:
        print(f"[{self.label}] Connection error while waiting for confirmations: {error}")
        self.gate.release()


def publish_confirmed(
    config: SessionConfig,
    names: SampleNames = SampleNames(),
    *,
    client_factory: ClientFactory = MqttClient,
) -> list[PublishReceipt]:
    """Send `names.confirmed_count` persistent messages and wait for every outcome."""
    print("[confirmed-publish] initializing...")
    count = names.confirmed_count
    gate = CountdownGate(count)
    receipts: list[PublishReceipt] = []

    client = new_session(config, client_id=unique_client_id("confirmed-publish"), client_factory=client_factory)
    client.set_publish_handler(ReceiptCounter(gate))
    client.add_handler(_ConnectionWatch(gate, "confirmed-publish"))
    client.start()
    try:
        topic = queue_topic(names.queue_name, config.vpn)
        print(f"[confirmed-publish] Connected. About to send {count} messages to queue '{names.queue_name}'...")
        for i in range(1, count + 1):
            message = Message(text=f"Confirmed Publish Tutorial! Message ID: {i}", delivery_mode=DeliveryMode.PERSISTENT)
            receipt = PublishReceipt(id=i, message=message)
            receipts.append(receipt)
            client.publish(topic, message, correlation_key=receipt)
        print("[confirmed-publish] Messages sent. Processing replies.")
        try:
            gate.wait()
        except KeyboardInterrupt:
            print("[confirmed-publish] I was awoken while waiting")

        for receipt in receipts:
            print(f"[confirmed-publish] Removing acknowledged message ({receipt}) from application list.")
    finally:
        client.stop()
    return receipts


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("host_port", type=host_port_arg, metavar="host:port", help="broker address")


def run_from_args(args: argparse.Namespace) -> None:
    names = SampleNames()
    host, port = args.host_port
    config = SessionConfig(host=host, port=port, vpn="default", username=names.confirmed_username)
    publish_confirmed(config, names)


def main(argv: list[str] | None = None) -> None:
    parser = SampleArgumentParser(description="Confirmed publish: send 5 persistent messages to Q/tutorial and wait for every ack (MQTT)")
    add_arguments(parser)
    run_from_args(parser.parse_args(argv))


if __name__ == "__main__":
    main()
