"""Small MQTT helper built on top of paho-mqtt.

Why this exists:
- paho-mqtt is callback-based and reports most failures asynchronously
  (CONNACK, SUBACK, PUBACK arrive on its network thread).
- The samples want plain blocking calls: `start()` returns once the session is
  up, `subscribe()` once the broker granted the subscription, a persistent
  `publish()` once the broker acknowledged the message.

Design:
- `MqttClient` manages one connection + a background network loop.
- Inbound messages are decoded into `Message` and handed to registered
  listeners (`on_message` / `on_error`).
- Publish outcomes go to an optional publish event handler (`on_response` /
  `on_error`), keyed by the correlation key given to `publish()` (or the
  message id when there is none).
- `request()` publishes a message and waits for a correlated response.

Automatic reconnect is disabled: a lost connection is reported to the
listeners' `on_error` and the session stays down.
"""

from __future__ import annotations

import queue
import threading
import uuid
from dataclasses import dataclass, replace
from typing import Any, Callable, Protocol

import paho.mqtt.client as mqtt

from .config import SessionConfig
from .errors import BrokerConnectionError, SendError, SubscribeError
from .messages import DeliveryMode, Message


class MessageListener(Protocol):
    def on_message(self, message: Message) -> None: ...

    def on_error(self, error: Exception) -> None: ...


class PublishEventHandler(Protocol):
    def on_response(self, key: Any) -> None: ...

    def on_error(self, key: Any, error: Exception) -> None: ...


@dataclass(frozen=True)
class PendingResponse:
    corr_id: str
    q: "queue.Queue[Message]"


def unique_client_id(prefix: str) -> str:
    # Unique so that several copies of one sample can run concurrently.
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


class MqttClient:
    """Thin wrapper around paho-mqtt with blocking setup calls."""

    def __init__(
        self,
        *,
        client_id: str,
        host: str,
        port: int,
        username: str | None = None,
        password: str | None = None,
        clean_session: bool = True,
        manual_ack: bool = False,
        keepalive: int = 30,
        setup_timeout: float = 10.0,
    ) -> None:
        self.client_id = client_id
        self.host = host
        self.port = port
        self.keepalive = keepalive
        self.setup_timeout = setup_timeout

        self._client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            clean_session=clean_session,
            reconnect_on_failure=False,
            manual_ack=manual_ack,
        )
        if username is not None:
            self._client.username_pw_set(username, password)

        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_subscribe = self._on_subscribe
        self._client.on_publish = self._on_publish
        self._client.on_message = self._on_message

        self._handlers: list[MessageListener] = []
        self._publish_handler: PublishEventHandler | None = None

        # corr_id -> queue used by request()
        self._pending: dict[str, PendingResponse] = {}
        self._lock = threading.Lock()

        # SUBACK results by mid, guarded by the same lock.
        self._subacks: dict[int, list[Any]] = {}
        self._suback_ready = threading.Condition(self._lock)

        # mid -> correlation key of publishes awaiting the broker, and outcomes
        # that arrived before publish() recorded their mid. Same lock.
        self._in_flight: dict[int, Any] = {}
        self._early_outcomes: dict[int, Any] = {}

        # (session_present, failure reason or None), filled once per connect.
        self._connack: "queue.Queue[tuple[bool, str | None]]" = queue.Queue(maxsize=1)

        self._started = False
        self._stopping = False
        self.session_present = False

    def start(self) -> bool:
        """Connect, start the network loop and wait for CONNACK.

        Returns whether the broker already held a session for this client id.
        """
        if self._started:
            return self.session_present
        try:
            self._client.connect(self.host, self.port, keepalive=self.keepalive)
        except OSError as e:
            raise BrokerConnectionError(f"Could not connect to {self.host}:{self.port}", reason=str(e)) from e
        self._client.loop_start()

        try:
            session_present, failure = self._connack.get(timeout=self.setup_timeout)
        except queue.Empty as e:
            self._client.disconnect()
            self._client.loop_stop()
            raise BrokerConnectionError(f"No CONNACK from {self.host}:{self.port}") from e

        if failure is not None:
            self._client.loop_stop()
            raise BrokerConnectionError(f"Connection to {self.host}:{self.port} refused", reason=failure)

        self._started = True
        self._stopping = False
        self.session_present = session_present
        return session_present

    def stop(self) -> None:
        """Disconnect and stop the network loop."""
        if not self._started:
            return
        self._stopping = True
        self._client.disconnect()
        self._client.loop_stop()
        self._started = False

    def add_handler(self, handler: MessageListener) -> None:
        self._handlers.append(handler)

    def set_publish_handler(self, handler: PublishEventHandler) -> None:
        self._publish_handler = handler

    def subscribe(self, topic: str, qos: int = 0) -> int:
        """Subscribe and wait for the SUBACK. Returns the granted QoS."""
        result, mid = self._client.subscribe(topic, qos=qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise SubscribeError(topic, mqtt.error_string(result))

        with self._suback_ready:
            if not self._suback_ready.wait_for(lambda: mid in self._subacks, timeout=self.setup_timeout):
                raise SubscribeError(topic, "no SUBACK from broker")
            granted = self._subacks.pop(mid)[0]

        if granted.is_failure:
            raise SubscribeError(topic, str(granted))
        return int(granted.value)

    def publish(
        self,
        topic: str,
        message: Message,
        *,
        correlation_key: Any = None,
        retain: bool = False,
    ) -> int:
        """Publish a message and return its mid.

        Without a correlation key, persistent messages block until the broker
        acks them. With one, the call returns at once and the outcome reaches
        the publish event handler under that key.
        """
        info = self._client.publish(
            topic,
            payload=message.to_payload(),
            qos=message.delivery_mode.qos,
            retain=retain,
        )
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise SendError(f"Publish to '{topic}' failed: {mqtt.error_string(info.rc)}")

        key = info.mid if correlation_key is None else correlation_key
        # The broker's answer may already have arrived on the network thread.
        with self._lock:
            early = self._early_outcomes.pop(info.mid, None)
            if early is None:
                self._in_flight[info.mid] = key
        if early is not None:
            self._report_publish(key, early)

        if correlation_key is None and message.delivery_mode is DeliveryMode.PERSISTENT:
            try:
                info.wait_for_publish(timeout=self.setup_timeout)
            except (RuntimeError, ValueError) as e:
                raise SendError(f"Publish to '{topic}' failed: {e}") from e
            if not info.is_published():
                raise SendError(f"Message {info.mid} to '{topic}' was not acknowledged")
        return info.mid

    def send_reply(self, request: Message, reply: Message) -> int:
        """Send `reply` to the request's reply-address, keeping its correlation id."""
        if request.reply_to is None:
            raise SendError("Request carries no reply-to address")
        return self.publish(request.reply_to, replace(reply, reply_to=None, corr_id=request.corr_id))

    def ack(self, message: Message) -> None:
        """Acknowledge a message received on a client-ack (manual_ack) session."""
        if message.mid is None or message.delivery_mode is DeliveryMode.DIRECT:
            return
        self._client.ack(message.mid, message.delivery_mode.qos)

    def request(
        self,
        *,
        request_topic: str,
        response_topic: str,
        message: Message,
        timeout: float = 10.0,
    ) -> Message:
        """Publish a message and wait for a correlated response.

        The caller must ensure we are subscribed to `response_topic`.
        """
        corr_id = str(uuid.uuid4())
        msg = replace(message, corr_id=corr_id, reply_to=response_topic)

        q: "queue.Queue[Message]" = queue.Queue(maxsize=1)
        pending = PendingResponse(corr_id=corr_id, q=q)

        with self._lock:
            self._pending[corr_id] = pending

        try:
            self.publish(request_topic, msg)
            return q.get(timeout=timeout)
        except queue.Empty as e:
            raise TimeoutError(f"No response for corr_id={corr_id}") from e
        finally:
            with self._lock:
                self._pending.pop(corr_id, None)

    # -------------------- internal callbacks --------------------

    def _on_connect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        failure = str(reason_code) if reason_code.is_failure else None
        try:
            self._connack.put_nowait((bool(flags.session_present), failure))
        except queue.Full:
            pass

    def _on_disconnect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        if not self._started:
            # Dropped before CONNACK: unblock start().
            try:
                self._connack.put_nowait((False, f"connection lost ({reason_code})"))
            except queue.Full:
                pass
            return
        if self._stopping:
            return
        error = BrokerConnectionError("Connection lost", reason=str(reason_code))
        self._notify_error(error)

    def _on_subscribe(self, client: mqtt.Client, userdata: Any, mid: int, reason_codes: list[Any], properties: Any) -> None:
        with self._suback_ready:
            self._subacks[mid] = list(reason_codes)
            self._suback_ready.notify_all()

    def _on_publish(self, client: mqtt.Client, userdata: Any, mid: int, reason_code: Any, properties: Any) -> None:
        with self._lock:
            if mid not in self._in_flight:
                # publish() has not recorded this mid yet; it reports it.
                self._early_outcomes[mid] = reason_code
                return
            key = self._in_flight.pop(mid)
        self._report_publish(key, reason_code)

    def _report_publish(self, key: Any, reason_code: Any) -> None:
        handler = self._publish_handler
        if handler is None:
            return
        if reason_code.is_failure:
            handler.on_error(key, SendError(f"Message {key} rejected: {reason_code}"))
        else:
            handler.on_response(key)

    def _on_message(self, client: mqtt.Client, userdata: Any, msg: mqtt.MQTTMessage) -> None:
        message = Message.from_payload(msg.payload, topic=msg.topic, qos=msg.qos, mid=msg.mid)

        # First, try to match pending request.
        if message.corr_id is not None:
            with self._lock:
                pending = self._pending.get(message.corr_id)
            if pending is not None:
                try:
                    pending.q.put_nowait(message)
                except queue.Full:
                    pass
                return

        # Otherwise broadcast to handlers.
        for h in list(self._handlers):
            try:
                h.on_message(message)
            except Exception as e:
                # Keep the network loop alive; the listener owns its errors.
                print(f"[mqtt {self.client_id}] listener failed on message {message.mid}: {e!r}")

    def _notify_error(self, error: Exception) -> None:
        for h in list(self._handlers):
            try:
                h.on_error(error)
            except Exception as e:
                print(f"[mqtt {self.client_id}] listener failed on error {error!r}: {e!r}")


ClientFactory = Callable[..., MqttClient]


def new_session(
    config: SessionConfig,
    *,
    client_id: str,
    client_factory: ClientFactory = MqttClient,
    **kwargs: Any,
) -> MqttClient:
    """Create (but do not start) a client for the given session settings."""
    return client_factory(
        client_id=client_id,
        host=config.host,
        port=config.port,
        username=config.username,
        password=config.password,
        **kwargs,
    )
