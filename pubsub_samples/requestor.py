from __future__ import annotations

# Requestor.
#
# Counterpart of the replier, a short-lived process:
# - connect as <client-username@message-vpn>
# - listen for the reply on a private inbox topic
# - send one request and wait (bounded) for the correlated reply
# - print the reply (or the timeout) and exit

import argparse

from .config import (
    SampleArgumentParser,
    SampleNames,
    SessionConfig,
    add_credential_arguments,
    session_from_credential_args,
)
from .handlers import print_message
from .messages import Message
from .mqtt_client import ClientFactory, MqttClient, new_session, unique_client_id
from .mqtt_topics import destination, reply_inbox


def send_request(
    config: SessionConfig,
    names: SampleNames = SampleNames(),
    *,
    client_factory: ClientFactory = MqttClient,
) -> Message | None:
    """Send one request; return the reply, or None on timeout."""
    print("[requestor] initializing...")
    client_id = unique_client_id("requestor")
    client = new_session(config, client_id=client_id, client_factory=client_factory)
    client.start()

    try:
        inbox = reply_inbox(client_id, config.vpn)
        client.subscribe(inbox)

        topic = destination(names.request_topic, config.vpn)
        print(f"[requestor] Connected. About to send request message '{names.request_text}' to topic '{topic}'...")
        try:
            reply = client.request(
                request_topic=topic,
                response_topic=inbox,
                message=Message(text=names.request_text),
                timeout=names.request_timeout,
            )
        except TimeoutError:
            print(f"[requestor] Failed to receive a reply in {int(names.request_timeout * 1000)} msecs")
            return None
        print_message("requestor", reply)
        return reply
    finally:
        client.stop()
        print("[requestor] Exiting...")


def add_arguments(parser: argparse.ArgumentParser) -> None:
    add_credential_arguments(parser)


def run_from_args(args: argparse.Namespace) -> None:
    send_request(session_from_credential_args(args))


def main(argv: list[str] | None = None) -> None:
    parser = SampleArgumentParser(description="Requestor: send one request to tutorial/requests (MQTT)")
    add_arguments(parser)
    run_from_args(parser.parse_args(argv))


if __name__ == "__main__":
    main()
