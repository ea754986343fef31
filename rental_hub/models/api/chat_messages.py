"""WebSocket frame models for the chat relay."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

ADD_USER_EVENT = "addUser"
SEND_MSG_EVENT = "sendMsg"
RECEIVE_MSG_EVENT = "receiveMsg"


def normalize_user_id(value: Any) -> str | None:
    """User ids arrive as strings or integers; both map to the same key."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    return str(value) or None


class WsInbound(BaseModel):
    """Client -> Server."""

    event: str  # addUser | sendMsg
    data: Any = None


class WsOutbound(BaseModel):
    """Server -> Client."""

    event: Literal["receiveMsg"] = RECEIVE_MSG_EVENT
    data: Any = None


class ChatMessage(BaseModel):
    """Payload of a ``sendMsg`` event. Never persisted."""

    to: str = Field(..., min_length=1)
    message: Any = None

    @field_validator("to", mode="before")
    @classmethod
    def _normalize_to(cls, value: Any) -> Any:
        normalized = normalize_user_id(value)
        return value if normalized is None else normalized
