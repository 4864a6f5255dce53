"""Message model shared by every sample.

A message is a text payload plus two optional routing fields:
- `reply_to`: where a responder should send its reply
- `corr_id`: copied from a request into its reply so the requester can match them

On the wire the message is a compact JSON object (`{"text": ..., "reply_to": ...}`).
The delivery mode is not part of the payload: it is the MQTT QoS the message
travels with (QoS 0 = direct, QoS 1 = persistent).

Payloads published by other MQTT tools are accepted too: anything that is not
a JSON object with a `text` field is treated as plain UTF-8 text, and anything
that is not UTF-8 as a binary message without text.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class DeliveryMode(str, Enum):
    DIRECT = "direct"
    PERSISTENT = "persistent"

    @property
    def qos(self) -> int:
        return 1 if self is DeliveryMode.PERSISTENT else 0

    @classmethod
    def from_qos(cls, qos: int) -> "DeliveryMode":
        return cls.PERSISTENT if qos > 0 else cls.DIRECT


@dataclass(frozen=True)
class Message:
    text: str | None = None
    delivery_mode: DeliveryMode = DeliveryMode.DIRECT
    reply_to: str | None = None
    corr_id: str | None = None

    # Only set on inbound messages.
    topic: str | None = None
    mid: int | None = None
    payload: bytes | None = None

    def to_payload(self) -> bytes:
        body: dict[str, Any] = {"text": self.text}
        if self.reply_to is not None:
            body["reply_to"] = self.reply_to
        if self.corr_id is not None:
            body["corr_id"] = self.corr_id
        return json.dumps(body, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_payload(
        cls,
        raw: bytes | str,
        *,
        topic: str | None = None,
        qos: int = 0,
        mid: int | None = None,
    ) -> "Message":
        # Depending on paho-mqtt version / type stubs, the payload may be
        # `bytes` (typical) or a `str`.
        payload = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
        mode = DeliveryMode.from_qos(qos)

        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError:
            return cls(text=None, delivery_mode=mode, topic=topic, mid=mid, payload=payload)

        try:
            data = json.loads(text)
        except ValueError:
            data = None

        if isinstance(data, dict) and "text" in data:
            body = data.get("text")
            return cls(
                text=body if isinstance(body, str) else None,
                delivery_mode=mode,
                reply_to=data.get("reply_to") if isinstance(data.get("reply_to"), str) else None,
                corr_id=data.get("corr_id") if isinstance(data.get("corr_id"), str) else None,
                topic=topic,
                mid=mid,
                payload=payload,
            )

        return cls(text=text, delivery_mode=mode, topic=topic, mid=mid, payload=payload)

    def dump(self) -> str:
        """Multi-line human readable summary, one `Name: value` per line."""
        lines = []
        if self.topic is not None:
            lines.append(f"Destination:     Topic '{self.topic}'")
        lines.append(f"Delivery Mode:   {self.delivery_mode.name}")
        if self.mid is not None:
            lines.append(f"Message Id:      {self.mid}")
        if self.reply_to is not None:
            lines.append(f"Reply To:        Topic '{self.reply_to}'")
        if self.corr_id is not None:
            lines.append(f"Correlation Id:  {self.corr_id}")
        if self.text is not None:
            lines.append(f"Text:            {self.text!r}")
        elif self.payload is not None:
            lines.append(f"Binary Attachment: len={len(self.payload)}")
        return "\n".join(lines)
