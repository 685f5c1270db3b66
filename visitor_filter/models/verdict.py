"""Evaluation data contracts.

  VisitorSignals — what is sent to the analytics service for one evaluation.
  Verdict        — the service's answer, deserialised from its JSON envelope.
  BlockOutcome   — what manual evaluation hands back to the caller.

Response envelope (analytics service):

.. code-block:: json

    {
      "error": {"message": "text" | ["text", "..."]},
      "data": {"status": {"need_to_block": true, "detect_activity": "..."}}
    }

Every level is optional. Absent paths deserialise to ``need_to_block=False`` and
``detect_activity=None`` — deserialisation only raises for the ``error`` branch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from visitor_filter.errors import RemoteServiceError

BlockContent = Union[int, str, None]


@dataclass(frozen=True)
class VisitorSignals:
    """Visitor facts sent to the analytics service. Never stored."""

    ip: str
    user_agent: str
    event: str
    domain: str


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


UNKNOWN_ERROR_MESSAGE = "unknown error"


def _error_messages(error: Any) -> list[str]:
    message = error.get("message") if isinstance(error, dict) else error
    if isinstance(message, (list, tuple)):
        messages = [str(m) for m in message if m not in (None, "")]
    elif message in (None, "") or isinstance(message, bool):
        messages = []
    else:
        messages = [str(message)]
    return messages or [UNKNOWN_ERROR_MESSAGE]


@dataclass(frozen=True)
class Verdict:
    """Block/allow decision for one visitor."""

    need_to_block: bool = False
    detect_activity: Optional[Any] = None

    @classmethod
    def from_envelope(cls, payload: Any) -> "Verdict":
        """Deserialise the analytics response envelope.

        Raises:
            RemoteServiceError: The envelope carries a non-empty ``error`` member.
                                Multiple messages are joined with ", ".
        """
        envelope = _mapping(payload)
        error = envelope.get("error")
        if error:
            raise RemoteServiceError(_error_messages(error))

        status = _mapping(_mapping(envelope.get("data")).get("status"))
        return cls(
            need_to_block=bool(status.get("need_to_block", False)),
            detect_activity=status.get("detect_activity"),
        )


@dataclass(frozen=True)
class BlockOutcome:
    """Result of a manual evaluation.

    ``content`` is an HTTP status code (int), an HTML string, or None when the
    visitor is allowed.
    """

    need_to_block: bool = False
    detect_activity: Optional[Any] = None
    content: BlockContent = None

    @classmethod
    def allowed(cls, detect_activity: Optional[Any] = None) -> "BlockOutcome":
        return cls(need_to_block=False, detect_activity=detect_activity, content=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "need_to_block": self.need_to_block,
            "detect_activity": self.detect_activity,
            "content": self.content,
        }
