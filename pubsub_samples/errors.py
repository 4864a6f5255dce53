"""Error types shared by all samples.

Argument errors are reported before any connection attempt. Connection and
provisioning errors are fatal. Send errors are fatal for one-shot producers;
long-running listeners print them and carry on.
"""

from __future__ import annotations


class SampleError(Exception):
    """Base class for errors raised by the samples."""


class UsageError(SampleError, ValueError):
    """Bad command line argument."""


class BrokerConnectionError(SampleError, ConnectionError):
    """Could not open a session with the broker."""

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message if reason is None else f"{message}: {reason}")
        self.reason = reason


class ProvisionError(SampleError):
    """The broker refused to create (or bind) a durable queue."""

    def __init__(self, queue_name: str, reason: str) -> None:
        super().__init__(f"Could not provision queue '{queue_name}': {reason}")
        self.queue_name = queue_name
        self.reason = reason


class SendError(SampleError):
    """A publish was refused or never acknowledged by the broker."""


class SubscribeError(SampleError):
    """The broker refused a subscription."""

    def __init__(self, topic: str, reason: str) -> None:
        super().__init__(f"Subscription to '{topic}' refused: {reason}")
        self.topic = topic
        self.reason = reason
