"""
Outbound replies produced by the dispatcher.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ReplyKind(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    DENIED = "denied"
    INVALID = "invalid"
    UNKNOWN = "unknown"
    ERROR = "error"
    # addressed to another bot; the adapter sends nothing
    IGNORED = "ignored"


@dataclass(frozen=True)
class OutboundReply:
    """
    What the channel adapter sends back.

    When document is set, the adapter sends it as a file with text as caption.
    An IGNORED reply has empty text and is not sent at all.
    """
    kind: ReplyKind
    text: str
    document: Optional[bytes] = None
    document_name: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is ReplyKind.OK
