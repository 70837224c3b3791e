"""Normalized events sent to relay clients."""

import enum
import json
from dataclasses import dataclass
from typing import Any, Mapping

from ..core.sse import SSEEvent


class EventKind(str, enum.Enum):
    PROGRESS = "progress"
    ANSWER = "answer"
    DEBUG = "debug"
    ERROR = "error"


@dataclass(frozen=True)
class NormalizedEvent:
    """One client-visible event, independent of the upstream protocol."""

    kind: EventKind
    payload: str

    @classmethod
    def progress(cls, message: str) -> "NormalizedEvent":
        return cls(EventKind.PROGRESS, message)

    @classmethod
    def answer(cls, text: str) -> "NormalizedEvent":
        return cls(EventKind.ANSWER, text)

    @classmethod
    def debug(cls, info: Mapping[str, Any]) -> "NormalizedEvent":
        return cls(EventKind.DEBUG, json.dumps(dict(info), ensure_ascii=False))

    @classmethod
    def error(cls, message: str) -> "NormalizedEvent":
        return cls(EventKind.ERROR, message)

    @property
    def is_error(self) -> bool:
        return self.kind is EventKind.ERROR

    def to_sse(self) -> SSEEvent:
        return SSEEvent(data=self.payload, event=self.kind.value)

    def encode(self) -> bytes:
        return self.to_sse().encode()
