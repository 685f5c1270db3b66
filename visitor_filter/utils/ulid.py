"""ULID generation for evaluation IDs.

Each evaluation gets a 26-character ULID that is merged into every log entry
emitted while it runs, so a verdict request, a block decision and a loopback
fetch failure can be correlated.

Uses the `python-ulid` library — do NOT hand-roll ULID generation.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID as a 26-character uppercase string.

    Example::

        evaluation_id = generate_ulid()
        assert len(evaluation_id) == 26
    """
    return str(ULID())
