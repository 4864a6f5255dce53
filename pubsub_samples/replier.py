from __future__ import annotations

# Replier.
#
# A long-running responder:
# - connect to broker (VPN and username are fixed, no password)
# - subscribe to the request topic
# - answer every request that carries a reply-address with a fixed text
# - run until the operator presses Enter (or closes stdin)
#
# A failed reply is printed and the replier keeps serving.

import argparse
from typing import Callable

from .config import SampleArgumentParser, SampleNames, SessionConfig, host_port_arg
from .handlers import PrintingPublishEvents, RequestHandler
from .mqtt_client import ClientFactory, MqttClient, new_session, unique_client_id
from .mqtt_topics import destination


def run_replier(
    config: SessionConfig,
    names: SampleNames = SampleNames(),
    *,
    client_factory: ClientFactory = MqttClient,
    wait_for_exit: Callable[[], object] = input,
) -> None:
    print("[replier] initializing...")
    client = new_session(config, client_id=unique_client_id("replier"), client_factory=client_factory)
    client.set_publish_handler(PrintingPublishEvents("replier"))
    client.add_handler(RequestHandler(client, reply_text=names.reply_text))
    client.start()

    try:
        topic = destination(names.request_topic, config.vpn)
        client.subscribe(topic)
        print(f"[replier] Listening for request messages on topic {topic} ... Press enter to exit")
        try:
            wait_for_exit()
        except (EOFError, KeyboardInterrupt):
            pass
    finally:
        client.stop()
    print("[replier] Exiting.")


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("host_port", type=host_port_arg, metavar="host:port", help="broker address")


def run_from_args(args: argparse.Namespace) -> None:
    names = SampleNames()
    host, port = args.host_port
    config = SessionConfig(host=host, port=port, vpn=names.replier_vpn, username=names.replier_username)
    run_replier(config, names)


def main(argv: list[str] | None = None) -> None:
    parser = SampleArgumentParser(description="Replier: answer requests on tutorial/requests (MQTT)")
    add_arguments(parser)
    run_from_args(parser.parse_args(argv))


if __name__ == "__main__":
    main()
