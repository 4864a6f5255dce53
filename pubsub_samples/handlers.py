"""Callback objects handed to `MqttClient`.

Each one covers a single role:
- `RequestHandler` answers requests that carry a reply-address (replier)
- `FirstMessageReceiver` prints the first message, optionally acks it, and
  releases the waiting main thread (queue consumer, topic subscriber)
- `PrintingPublishEvents` reports broker acknowledgements of our publishes
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .errors import SendError
from .messages import Message
from .oneshot import OneShotSignal

if TYPE_CHECKING:
    from .mqtt_client import MqttClient


def print_message(label: str, message: Message) -> None:
    if message.text is not None:
        print(f"[{label}] TextMessage received: '{message.text}'")
    else:
        print(f"[{label}] Message received.")
    print(f"[{label}] Message Dump:\n{message.dump()}")


class RequestHandler:
    """Reply with a fixed text to every request that says where to reply."""

    def __init__(self, client: MqttClient, *, reply_text: str, label: str = "replier") -> None:
        self.client = client
        self.reply_text = reply_text
        self.label = label

    def on_message(self, message: Message) -> None:
        if message.reply_to is None:
            print(f"[{self.label}] Received message without reply-to field")
            return

        print(f"[{self.label}] Received request, generating response")
        try:
            self.client.send_reply(message, Message(text=self.reply_text))
        except (SendError, ValueError) as e:
            # One failed reply must not stop the replier.
            print(f"[{self.label}] Error sending reply to '{message.reply_to}': {e}")

    def on_error(self, error: Exception) -> None:
        print(f"[{self.label}] Consumer received exception: {error}")


class FirstMessageReceiver:
    """Take the first message (or error) delivered, then release `done`.

    With `ack=True` the message is acknowledged before `done` is released.
    Later deliveries are ignored and stay unacknowledged.
    """

    def __init__(
        self,
        client: MqttClient,
        done: OneShotSignal,
        *,
        ack: bool = False,
        label: str = "receiver",
    ) -> None:
        self.client = client
        self.done = done
        self.ack = ack
        self.label = label
        self.received: Message | None = None
        self.error: Exception | None = None

    def on_message(self, message: Message) -> None:
        # paho delivers callbacks on a single thread, so this check is enough.
        if self.done.is_set():
            return
        try:
            print_message(self.label, message)
            if self.ack:
                self.client.ack(message)
            self.received = message
        finally:
            self.done.signal()

    def on_error(self, error: Exception) -> None:
        print(f"[{self.label}] Consumer received exception: {error}")
        self.error = error
        self.done.signal()


class PrintingPublishEvents:
    def __init__(self, label: str) -> None:
        self.label = label

    def on_response(self, key: Any) -> None:
        print(f"[{self.label}] Producer received response for msg ID #{key}")

    def on_error(self, key: Any, error: Exception) -> None:
        print(f"[{self.label}] Producer received error for msg ID {key} - {error}")
