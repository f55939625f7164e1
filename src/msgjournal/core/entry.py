"""
Journal entry and payload models.

A journal entry records one worker message or emitted event. Its payload
comes in two shapes that share one interface:

- ``TextPayload``: the legacy plain-text worker message.
- ``StructuredPayload``: a key/value record stored as JSON, with one named
  field (``message`` by default) holding the human-readable text.

Both know how to truncate their human-readable portion and how to encode
themselves for storage, so callers never branch on the stored shape.
"""
import json
from datetime import datetime
from typing import Any, Dict, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from msgjournal.utility.timestamps import ensure_utc, parse_timestamp

TRUNCATION_MARKER = "..."


def truncate_text(value: str, bound: int) -> str:
    """
    Truncate value to bound characters and mark it.

    Values shorter than the bound are returned unchanged. A bound of 0
    disables truncation.
    """
    if bound > 0 and len(value) >= bound:
        return f"{value[:bound]}{TRUNCATION_MARKER}"
    return value


class TextPayload(BaseModel):
    """Legacy plain-text worker message."""

    model_config = ConfigDict(frozen=True)

    payload_format: Literal["text"] = "text"
    text: str

    def truncate(self, bound: int) -> "TextPayload":
        return TextPayload(text=truncate_text(self.text, bound))

    def encode(self) -> str:
        return self.text

    def projection(self) -> Dict[str, str]:
        return {"worker_message": self.text}


class StructuredPayload(BaseModel):
    """Key/value worker data, stored as JSON text."""

    model_config = ConfigDict(frozen=True)

    payload_format: Literal["json"] = "json"
    data: Dict[str, Any] = Field(default_factory=dict)
    text_field: str = Field(
        default="message",
        description="Field holding the human-readable message",
    )

    def truncate(self, bound: int) -> "StructuredPayload":
        """Truncate the text field only; every other field is left as is."""
        value = self.data.get(self.text_field)
        if not isinstance(value, str):
            return self
        data = dict(self.data)
        data[self.text_field] = truncate_text(value, bound)
        return StructuredPayload(data=data, text_field=self.text_field)

    def encode(self) -> str:
        """
        Encode data as JSON with sorted keys.

        Raises:
            TypeError: If a field value is not JSON serializable
            ValueError: If a field value is NaN or infinite
        """
        return json.dumps(self.data, sort_keys=True, allow_nan=False)

    def projection(self) -> Dict[str, str]:
        return {"worker_data": self.encode()}

    @classmethod
    def decode(cls, text: str, text_field: str = "message") -> "StructuredPayload":
        """
        Decode stored JSON text.

        Raises:
            ValueError: If the text is not a JSON object
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(
                f"Structured payload must be a JSON object, got {type(data).__name__}"
            )
        return cls(data=data, text_field=text_field)


Payload = Union[TextPayload, StructuredPayload]


def decode_payload(
    text: Optional[str], payload_format: str, text_field: str = "message"
) -> Optional[Payload]:
    """Rebuild a payload from its stored text and format column."""
    if text is None:
        return None
    if payload_format == "json":
        return StructuredPayload.decode(text, text_field=text_field)
    return TextPayload(text=text)


class JournalEntry(BaseModel):
    """
    One immutable record of a worker message or emitted event.

    Example:
        ```python
        entry = JournalEntry(
            message_id="2f0f5a1e-6d0b-4c52-9a53-6e1f4e0b3c7d",
            sent=datetime.now(timezone.utc),
            worker_name="echo",
            worker_event=WorkerEventName.WORKING,
            payload={"message": "processing", "progress": 40},
        )
        await journal.add_entry(entry)
        ```
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = Field(
        default=None, description="Row id assigned by the store on insert"
    )
    message_id: str = Field(..., min_length=1, max_length=36)
    sent: datetime
    worker_name: str = Field(..., min_length=1, max_length=128)
    response_to: Optional[str] = Field(default=None, max_length=36)
    worker_event: Optional[int] = Field(default=None, ge=0)
    payload: Optional[Payload] = None

    @field_validator("sent", mode="before")
    @classmethod
    def validate_sent(cls, v):
        """Accept ISO strings and naive datetimes; normalize to UTC."""
        if isinstance(v, (str, datetime)):
            return parse_timestamp(v)
        return v

    @field_validator("sent")
    @classmethod
    def validate_sent_utc(cls, v):
        return ensure_utc(v)

    @field_validator("payload", mode="before")
    @classmethod
    def validate_payload(cls, v):
        """Coerce raw strings and mappings into payload variants."""
        if v is None or isinstance(v, (TextPayload, StructuredPayload)):
            return v
        if isinstance(v, str):
            return TextPayload(text=v)
        if isinstance(v, Mapping):
            return StructuredPayload(data=dict(v))
        raise ValueError(
            f"Payload must be text or a mapping, got {type(v).__name__}"
        )

    @classmethod
    def from_worker_message(cls, message: Mapping[str, Any]) -> "JournalEntry":
        """
        Build an entry from an inbound worker message.

        Expected shape:
            {
                "message_id": "...",
                "sent": "2024-01-01T09:00:00Z",
                "worker_name": "echo",
                "response_to": "...",
                "worker_event": {"event_name": 3, "event_data": {"message": "..."}}
            }

        ``event_data`` becomes a structured payload; a legacy
        ``event_message`` string becomes a text payload. An empty
        ``response_to`` is treated as absent.
        """
        worker_event = message.get("worker_event") or {}
        payload: Any = None
        if worker_event.get("event_data") is not None:
            payload = worker_event["event_data"]
        elif worker_event.get("event_message") is not None:
            payload = worker_event["event_message"]

        return cls(
            message_id=message.get("message_id"),
            sent=message.get("sent"),
            worker_name=message.get("worker_name"),
            response_to=message.get("response_to") or None,
            worker_event=worker_event.get("event_name"),
            payload=payload,
        )

