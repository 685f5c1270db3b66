"""Exception hierarchy for the visitor filter.

  VisitorFilterError      — base class; catch this to handle every evaluation failure.
  InvalidIpError          — client IP is not an IPv4/IPv6 literal (raised before any network call).
  RemoteServiceError      — analytics service answered with an error envelope.
  TransportError          — the verdict request or the loopback fetch could not complete,
                            or the verdict body was not valid JSON.

Failures of the hosting framework's own send path are not wrapped here; they
propagate from Starlette unchanged.
"""

from __future__ import annotations

from typing import Sequence


class VisitorFilterError(Exception):
    """Base class for all evaluation failures."""

    def with_context(self, prefix: str) -> "VisitorFilterError":
        """Return a copy of this error whose message is prefixed with ``prefix``.

        The copy keeps the concrete type so callers can still tell an invalid IP
        from a service error after the evaluator adds its context.
        """
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        clone.args = (f"{prefix}: {self}",)
        return clone


class InvalidIpError(VisitorFilterError):
    """Raised when the supplied client IP is not a valid IPv4 or IPv6 literal."""

    def __init__(self, message: str = "Invalid IP address.") -> None:
        super().__init__(message)


class RemoteServiceError(VisitorFilterError):
    """Raised when the analytics service reports an error in its response envelope.

    Attributes:
        messages: The individual message(s) reported by the service.
    """

    def __init__(self, messages: Sequence[str]) -> None:
        self.messages: list[str] = [str(m) for m in messages]
        super().__init__(f"Requesting analytics error: {', '.join(self.messages)}")


class TransportError(VisitorFilterError):
    """Raised when an outbound call fails before a usable body is obtained.

    Attributes:
        target: Which call failed (``"analytics"`` or ``"unwanted_content"``).
    """

    def __init__(self, target: str, detail: str) -> None:
        self.target = target
        super().__init__(f"Requesting {target} failed: {detail}")
