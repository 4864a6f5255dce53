from __future__ import annotations

# Startup configuration.
#
# Everything the programs would otherwise hardcode (topic and queue names, the
# replier's credentials, reply texts) lives in `SampleNames`; where to connect
# and as whom lives in `SessionConfig`. Both are built once in `main()` and
# passed down, nothing reads module globals at runtime.

import argparse
import sys
from dataclasses import dataclass
from typing import Callable, NoReturn, TypeVar

from .errors import UsageError

DEFAULT_MQTT_PORT = 1883

# Exit status for bad arguments (reported by the OS as 255).
USAGE_EXIT_CODE = -1

T = TypeVar("T")


@dataclass(frozen=True)
class SessionConfig:
    """Where to connect and as whom."""

    host: str
    port: int = DEFAULT_MQTT_PORT
    vpn: str = "default"
    username: str | None = None
    password: str | None = None


@dataclass(frozen=True)
class SampleNames:
    """Fixed names shared by the samples so that pairs of programs agree."""

    request_topic: str = "tutorial/requests"
    subscriber_topic: str = "tutorial/topic"
    queue_name: str = "Q/tutorial"

    reply_text: str = "Sample response"
    request_text: str = "Sample Request"
    publish_text: str = "Hello world!"
    request_timeout: float = 10.0

    # How long a producer waits for the retained queue marker before it
    # provisions the queue itself.
    queue_lookup_timeout: float = 1.0

    # Confirmed publish sends a batch and waits for every broker outcome.
    confirmed_count: int = 5
    confirmed_username: str = "queueTutorial"

    # The replier only takes host:port on the command line.
    replier_vpn: str = "default"
    replier_username: str = "clientUsername"


def parse_host_port(value: str) -> tuple[str, int]:
    """Split `host[:port]`; the port defaults to the plain MQTT port."""
    if not value:
        raise UsageError("No host entered")
    host, sep, port = value.rpartition(":")
    if not sep:
        return value, DEFAULT_MQTT_PORT
    if not host:
        raise UsageError(f"No host entered in '{value}'")
    try:
        port_num = int(port)
    except ValueError as e:
        raise UsageError(f"Invalid port in '{value}'") from e
    if not 0 < port_num < 65536:
        raise UsageError(f"Port out of range in '{value}'")
    return host, port_num


def parse_user_at_vpn(value: str) -> tuple[str, str]:
    """Split `client-username@message-vpn` into its two non-empty halves."""
    parts = value.split("@")
    if len(parts) != 2:
        raise UsageError(f"Expected <client-username@message-vpn>, got '{value}'")
    username, vpn = parts
    if not username:
        raise UsageError("No client-username entered")
    if not vpn:
        raise UsageError("No message-vpn entered")
    return username, vpn


def _arg_type(parse: Callable[[str], T]) -> Callable[[str], T]:
    # argparse only shows our message for ArgumentTypeError.
    def convert(value: str) -> T:
        try:
            return parse(value)
        except UsageError as e:
            raise argparse.ArgumentTypeError(str(e)) from e

    convert.__name__ = parse.__name__
    return convert


host_port_arg = _arg_type(parse_host_port)
user_at_vpn_arg = _arg_type(parse_user_at_vpn)


class SampleArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with USAGE_EXIT_CODE on bad arguments."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(USAGE_EXIT_CODE, f"{self.prog}: error: {message}\n")


def add_credential_arguments(parser: argparse.ArgumentParser) -> None:
    """`<host:port> <client-username@message-vpn> [client-password]`"""
    parser.add_argument("host_port", type=host_port_arg, metavar="host:port", help="broker address")
    parser.add_argument("user_vpn", type=user_at_vpn_arg, metavar="client-username@message-vpn")
    parser.add_argument("password", nargs="?", default=None, metavar="client-password")


def session_from_credential_args(args: argparse.Namespace) -> SessionConfig:
    host, port = args.host_port
    username, vpn = args.user_vpn
    return SessionConfig(host=host, port=port, vpn=vpn, username=username, password=args.password)
