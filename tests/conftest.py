import threading
from dataclasses import replace

import pytest

from pubsub_samples.errors import BrokerConnectionError, SendError, SubscribeError


class FakeClient:
    """Stands in for MqttClient; everything is recorded on the broker."""

    def __init__(self, broker, **kwargs):
        self.broker = broker
        self.client_id = kwargs["client_id"]
        self.options = kwargs
        self.handlers = []
        self.publish_handler = None
        self.subscriptions = set()
        self.session_present = False
        self.started = False
        self.stop_calls = 0

    def _log(self, action, detail=None):
        self.broker.events.append((self.client_id, action, detail))

    @property
    def persistent(self):
        return not self.options.get("clean_session", True)

    def start(self):
        self._log("start")
        if self.broker.refuse_connect:
            raise BrokerConnectionError("Connection refused", reason="Not authorized")
        # One connection per client id: the newcomer takes the session over.
        for other in self.broker.clients:
            if other is not self and other.started and other.client_id == self.client_id:
                other._log("taken-over")
                other.started = False
                other.fail(BrokerConnectionError("Connection lost", reason="Session taken over"))
        self.session_present = self.client_id in self.broker.sessions
        if self.persistent:
            self.broker.sessions.add(self.client_id)
            self.subscriptions |= self.broker.session_topics.get(self.client_id, set())
        self.started = True
        return self.session_present

    def stop(self):
        self._log("stop")
        self.stop_calls += 1
        self.started = False

    def add_handler(self, handler):
        self.handlers.append(handler)

    def set_publish_handler(self, handler):
        self.publish_handler = handler

    def subscribe(self, topic, qos=0):
        self._log("subscribe", (topic, qos))
        if topic in self.broker.refuse_topics:
            raise SubscribeError(topic, "Not authorized")
        self.subscriptions.add(topic)
        if self.persistent:
            self.broker.session_topics.setdefault(self.client_id, set()).add(topic)
        if topic in self.broker.retained:
            self.deliver(replace(self.broker.retained[topic], topic=topic))
        for item in self.broker.inbound.pop(topic, []):
            self._dispatch(item)
        for item in self.broker.delayed.pop(topic, []):
            threading.Timer(0.05, self._dispatch, args=(item,)).start()
        return min(qos, self.broker.max_qos)

    def publish(self, topic, message, *, correlation_key=None, retain=False):
        self._log("publish", (topic, message))
        if self.broker.fail_publish:
            raise SendError(f"Publish to '{topic}' failed")
        self.broker.published.append((topic, message))
        mid = len(self.broker.published)
        if retain:
            self.broker.retained[topic] = message
        self.broker.route(topic, replace(message, topic=topic, mid=mid))

        if correlation_key is not None and self.publish_handler is not None:
            if mid in self.broker.reject_mids:
                self.publish_handler.on_error(correlation_key, SendError(f"Message {correlation_key} rejected"))
            else:
                self.publish_handler.on_response(correlation_key)
        return mid

    def send_reply(self, request, reply):
        if request.reply_to is None:
            raise SendError("Request carries no reply-to address")
        return self.publish(request.reply_to, replace(reply, reply_to=None, corr_id=request.corr_id))

    def ack(self, message):
        self._log("ack", message.mid)

    def request(self, *, request_topic, response_topic, message, timeout=10.0):
        self._log("request", (request_topic, response_topic, message, timeout))
        if not self.broker.replies:
            raise TimeoutError("No response")
        return self.broker.replies.pop(0)

    # test helpers

    def _dispatch(self, item):
        if isinstance(item, Exception):
            self.fail(item)
        else:
            self.deliver(item)

    def deliver(self, message):
        for h in list(self.handlers):
            h.on_message(message)

    def fail(self, error):
        for h in list(self.handlers):
            h.on_error(error)


class FakeBroker:
    def __init__(self):
        self.clients = []
        self.events = []
        self.published = []
        self.retained = {}
        self.sessions = set()
        self.session_topics = {}
        self.inbound = {}
        self.delayed = {}
        self.replies = []
        self.refuse_topics = set()
        self.reject_mids = set()
        self.refuse_connect = False
        self.fail_publish = False
        self.max_qos = 1

    def __call__(self, **kwargs):
        client = FakeClient(self, **kwargs)
        self.clients.append(client)
        return client

    def route(self, topic, message):
        """Deliver to connected subscribers, store for offline persistent sessions."""
        stored = False
        for client in list(self.clients):
            if client.started and topic in client.subscriptions:
                client.deliver(message)
        for client_id, topics in self.session_topics.items():
            online = any(c.started and c.client_id == client_id for c in self.clients)
            if topic in topics and not online and not stored:
                self.inbound.setdefault(topic, []).append(message)
                stored = True

    def actions(self, client_id=None):
        return [action for cid, action, _ in self.events if client_id is None or cid == client_id]

    def started_ids(self):
        return [cid for cid, action, _ in self.events if action == "start"]


@pytest.fixture
def broker():
    return FakeBroker()
