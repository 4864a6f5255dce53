from __future__ import annotations

# Topic publisher.
#
# Counterpart of the topic subscriber: connect, publish one direct message to
# the tutorial topic, exit.

import argparse

from .config import (
    SampleArgumentParser,
    SampleNames,
    SessionConfig,
    add_credential_arguments,
    session_from_credential_args,
)
from .messages import Message
from .mqtt_client import ClientFactory, MqttClient, new_session, unique_client_id
from .mqtt_topics import destination


def publish_one(
    config: SessionConfig,
    names: SampleNames = SampleNames(),
    *,
    client_factory: ClientFactory = MqttClient,
) -> Message:
    print("[topic-publisher] initializing...")
    client = new_session(config, client_id=unique_client_id("topic-publisher"), client_factory=client_factory)
    client.start()
    try:
        topic = destination(names.subscriber_topic, config.vpn)
        print(f"[topic-publisher] Connected. About to publish message to topic '{topic}'...")
        message = Message(text=names.publish_text)
        client.publish(topic, message)
        print("[topic-publisher] Message sent. Exiting.")
    finally:
        client.stop()
    return message


def add_arguments(parser: argparse.ArgumentParser) -> None:
    add_credential_arguments(parser)


def run_from_args(args: argparse.Namespace) -> None:
    publish_one(session_from_credential_args(args))


def main(argv: list[str] | None = None) -> None:
    parser = SampleArgumentParser(description="Topic publisher: publish one message to tutorial/topic (MQTT)")
    add_arguments(parser)
    run_from_args(parser.parse_args(argv))


if __name__ == "__main__":
    main()
