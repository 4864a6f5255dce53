from __future__ import annotations

# Topic subscriber.
#
# A short-lived process:
# - connect as <client-username@message-vpn>
# - subscribe to the tutorial topic
# - print the first message (or error) and exit

import argparse

from .config import (
    SampleArgumentParser,
    SampleNames,
    SessionConfig,
    add_credential_arguments,
    session_from_credential_args,
)
from .handlers import FirstMessageReceiver
from .messages import Message
from .mqtt_client import ClientFactory, MqttClient, new_session, unique_client_id
from .mqtt_topics import destination
from .oneshot import OneShotSignal


def receive_one(
    config: SessionConfig,
    names: SampleNames = SampleNames(),
    *,
    client_factory: ClientFactory = MqttClient,
) -> Message | None:
    print("[topic-subscriber] initializing...")
    client = new_session(config, client_id=unique_client_id("topic-subscriber"), client_factory=client_factory)

    done = OneShotSignal()
    receiver = FirstMessageReceiver(client, done, label="topic-subscriber")
    client.add_handler(receiver)
    client.start()

    try:
        client.subscribe(destination(names.subscriber_topic, config.vpn))
        print("[topic-subscriber] Connected. Awaiting message...")
        try:
            done.wait()
        except KeyboardInterrupt:
            print("[topic-subscriber] I was awoken while waiting")
    finally:
        client.stop()
    print("[topic-subscriber] Exiting.")
    return receiver.received


def add_arguments(parser: argparse.ArgumentParser) -> None:
    add_credential_arguments(parser)


def run_from_args(args: argparse.Namespace) -> None:
    receive_one(session_from_credential_args(args))


def main(argv: list[str] | None = None) -> None:
    parser = SampleArgumentParser(description="Topic subscriber: print the first message on tutorial/topic (MQTT)")
    add_arguments(parser)
    run_from_args(parser.parse_args(argv))


if __name__ == "__main__":
    main()
