from __future__ import annotations

# Queue producer.
#
# A short-lived process:
# - make sure the durable queue exists (an existing queue is fine); the
#   queue's session is only touched when no queue marker is found
# - send one persistent message straight to the queue
# - exit
#
# There is no retry: any send error ends the run.

import argparse
from datetime import datetime

from .config import SampleArgumentParser, SampleNames, SessionConfig, host_port_arg
from .handlers import PrintingPublishEvents
from .messages import DeliveryMode, Message
from .mqtt_client import ClientFactory, MqttClient, new_session, unique_client_id
from .mqtt_topics import queue_topic
from .queues import ensure_queue


def format_timestamp(when: datetime) -> str:
    # e.g. "Oct 19, 2026, 1:38:05 PM"
    return f"{when:%b} {when.day}, {when.year}, {when.hour % 12 or 12}:{when:%M:%S %p}"


def send_to_queue(
    config: SessionConfig,
    names: SampleNames = SampleNames(),
    *,
    client_factory: ClientFactory = MqttClient,
    now: datetime | None = None,
) -> Message:
    """Make sure the queue exists and send one persistent message to it."""
    print("[queue-producer] initializing...")
    queue_name = names.queue_name

    client = new_session(config, client_id=unique_client_id("queue-producer"), client_factory=client_factory)
    client.set_publish_handler(PrintingPublishEvents("queue-producer"))
    client.start()
    try:
        # The queue's own session is only used when the queue does not exist
        # yet, so a consumer that is already bound keeps its session.
        print(f"[queue-producer] Attempting to provision the queue '{queue_name}' on the broker.")
        if not ensure_queue(
            client,
            config,
            queue_name,
            client_factory=client_factory,
            lookup_timeout=names.queue_lookup_timeout,
        ):
            print(f"[queue-producer] Queue '{queue_name}' already exists.")

        print(f"[queue-producer] Connected. About to send message to queue '{queue_name}'...")
        text = f"Persistent Queue Tutorial! {format_timestamp(now or datetime.now())}"
        message = Message(text=text, delivery_mode=DeliveryMode.PERSISTENT)
        client.publish(queue_topic(queue_name, config.vpn), message)
        print("[queue-producer] Message sent. Exiting.")
    finally:
        client.stop()
    return message


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("host_port", type=host_port_arg, metavar="host:port", help="broker address")
    parser.add_argument("vpn", metavar="message-vpn")
    parser.add_argument("username", metavar="client-username")
    parser.add_argument("password", metavar="client-password")


def run_from_args(args: argparse.Namespace) -> None:
    host, port = args.host_port
    config = SessionConfig(host=host, port=port, vpn=args.vpn, username=args.username, password=args.password)
    send_to_queue(config)


def main(argv: list[str] | None = None) -> None:
    parser = SampleArgumentParser(description="Queue producer: send one persistent message to Q/tutorial (MQTT)")
    add_arguments(parser)
    run_from_args(parser.parse_args(argv))


if __name__ == "__main__":
    main()
