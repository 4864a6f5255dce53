from __future__ import annotations

# Queue consumer.
#
# A short-lived process:
# - bind to the durable queue's session with client acknowledgement
# - make sure the queue exists (an existing queue is fine)
# - wait for one message, print it, ack it, exit
#
# An error while waiting also ends the run, without an ack. Messages delivered
# after the first one stay unacknowledged and are redelivered next run.

import argparse

from .config import SampleArgumentParser, SampleNames, SessionConfig, host_port_arg
from .handlers import FirstMessageReceiver
from .messages import Message
from .mqtt_client import ClientFactory, MqttClient
from .oneshot import OneShotSignal
from .queues import provision_queue, queue_session, register_queue


def consume_one(
    config: SessionConfig,
    names: SampleNames = SampleNames(),
    *,
    client_factory: ClientFactory = MqttClient,
) -> Message | None:
    """Receive and acknowledge one message from the queue.

    Returns the message, or None if the wait ended with an error.
    """
    print("[queue-consumer] initializing...")
    queue_name = names.queue_name
    client = queue_session(config, queue_name, client_factory=client_factory, manual_ack=True)

    # Stored messages may arrive as soon as the session is up, so the
    # receiver is registered before connecting.
    done = OneShotSignal()
    receiver = FirstMessageReceiver(client, done, ack=True, label="queue-consumer")
    client.add_handler(receiver)
    client.start()

    try:
        print(f"[queue-consumer] Attempting to provision the queue '{queue_name}' on the broker.")
        if not provision_queue(client, queue_name, vpn=config.vpn):
            print(f"[queue-consumer] Queue '{queue_name}' already exists.")
        register_queue(client, queue_name, vpn=config.vpn)
        print(f"[queue-consumer] Bound to the queue '{queue_name}'. Awaiting message ...")
        try:
            done.wait()
        except KeyboardInterrupt:
            print("[queue-consumer] I was awoken while waiting")
    finally:
        client.stop()
    print("[queue-consumer] Exiting.")
    return receiver.received


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("host_port", type=host_port_arg, metavar="host:port", help="broker address")
    parser.add_argument("vpn", metavar="message-vpn")
    parser.add_argument("username", metavar="client-username")
    parser.add_argument("password", metavar="client-password")


def run_from_args(args: argparse.Namespace) -> None:
    host, port = args.host_port
    config = SessionConfig(host=host, port=port, vpn=args.vpn, username=args.username, password=args.password)
    consume_one(config)


def main(argv: list[str] | None = None) -> None:
    parser = SampleArgumentParser(description="Queue consumer: receive and ack one message from Q/tutorial (MQTT)")
    add_arguments(parser)
    run_from_args(parser.parse_args(argv))


if __name__ == "__main__":
    main()
