from __future__ import annotations

# Single-entrypoint runner.
#
#     python -m pubsub_samples.app <program> <args...>
#
# Every program is also runnable on its own (`python -m pubsub_samples.replier`)
# and takes exactly the same positional arguments here.

import argparse
from importlib import import_module

from .config import SampleArgumentParser

# subcommand -> (module, help)
PROGRAMS: dict[str, tuple[str, str]] = {
    "replier": ("replier", "Answer requests on tutorial/requests until Enter is pressed"),
    "requestor": ("requestor", "Send one request to the replier and print the reply"),
    "queue-producer": ("queue_producer", "Send one persistent message to the durable queue Q/tutorial"),
    "queue-consumer": ("queue_consumer", "Receive and acknowledge one message from Q/tutorial"),
    "topic-subscriber": ("topic_subscriber", "Print the first message published on tutorial/topic"),
    "topic-publisher": ("topic_publisher", "Publish one message on tutorial/topic"),
    "confirmed-publish": ("confirmed_publish", "Send 5 persistent messages to Q/tutorial and wait for every broker ack"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = SampleArgumentParser(description="Broker messaging samples (MQTT) - main entrypoint")
    sub = parser.add_subparsers(dest="cmd", required=True)

    for name, (module_name, help_text) in PROGRAMS.items():
        module = import_module(f".{module_name}", __package__)
        p = sub.add_parser(name, help=help_text, description=help_text)
        module.add_arguments(p)
        p.set_defaults(run=module.run_from_args)

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    args.run(args)


if __name__ == "__main__":
    main()
