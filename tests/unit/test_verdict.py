"""Unit tests for visitor_filter/models/verdict.py.

Verifies:
  - Verdict.from_envelope() defaults for every missing level of the envelope
  - error envelopes raise RemoteServiceError with messages joined by ", "
  - BlockOutcome.to_dict() shape
"""

from __future__ import annotations

import pytest

from visitor_filter.errors import RemoteServiceError, VisitorFilterError
from visitor_filter.models.verdict import BlockOutcome, Verdict


class TestVerdictFromEnvelope:

    def test_block(self) -> None:
        verdict = Verdict.from_envelope(
            {"data": {"status": {"need_to_block": True, "detect_activity": "bot"}}}
        )
        assert verdict == Verdict(need_to_block=True, detect_activity="bot")

    def test_allow(self) -> None:
        verdict = Verdict.from_envelope(
            {"data": {"status": {"need_to_block": False, "detect_activity": None}}}
        )
        assert verdict.need_to_block is False
        assert verdict.detect_activity is None

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"data": None},
            {"data": {}},
            {"data": {"status": None}},
            {"data": {"status": {}}},
            {"data": "unexpected"},
            [],
            None,
            "text",
        ],
    )
    def test_missing_paths_default_to_allow(self, payload: object) -> None:
        assert Verdict.from_envelope(payload) == Verdict(need_to_block=False, detect_activity=None)

    def test_detect_activity_kept_on_allow(self) -> None:
        verdict = Verdict.from_envelope({"data": {"status": {"detect_activity": {"type": "scan"}}}})
        assert verdict.need_to_block is False
        assert verdict.detect_activity == {"type": "scan"}

    def test_error_single_message(self) -> None:
        with pytest.raises(RemoteServiceError) as exc_info:
            Verdict.from_envelope({"error": {"message": "Invalid key"}})
        assert str(exc_info.value) == "Requesting analytics error: Invalid key"
        assert exc_info.value.messages == ["Invalid key"]

    def test_error_message_list_joined(self) -> None:
        with pytest.raises(RemoteServiceError) as exc_info:
            Verdict.from_envelope({"error": {"message": ["a", "b"]}})
        assert "a, b" in str(exc_info.value)
        assert exc_info.value.messages == ["a", "b"]

    def test_error_wins_over_data(self) -> None:
        with pytest.raises(RemoteServiceError):
            Verdict.from_envelope({
                "error": {"message": "quota"},
                "data": {"status": {"need_to_block": True}},
            })

    @pytest.mark.parametrize(
        "error",
        [{"code": 401}, {"message": None}, {"message": ""}, {"message": []}, True],
    )
    def test_error_without_message(self, error: object) -> None:
        with pytest.raises(RemoteServiceError) as exc_info:
            Verdict.from_envelope({"error": error})
        assert str(exc_info.value) == "Requesting analytics error: unknown error"

    def test_error_as_plain_string(self) -> None:
        with pytest.raises(RemoteServiceError) as exc_info:
            Verdict.from_envelope({"error": "quota exceeded"})
        assert exc_info.value.messages == ["quota exceeded"]

    def test_empty_error_ignored(self) -> None:
        verdict = Verdict.from_envelope({"error": None, "data": {"status": {"need_to_block": True}}})
        assert verdict.need_to_block is True

    def test_remote_service_error_is_filter_error(self) -> None:
        with pytest.raises(VisitorFilterError):
            Verdict.from_envelope({"error": {"message": "x"}})


class TestBlockOutcome:

    def test_allowed(self) -> None:
        assert BlockOutcome.allowed().to_dict() == {
            "need_to_block": False,
            "detect_activity": None,
            "content": None,
        }

    def test_blocked_to_dict(self) -> None:
        outcome = BlockOutcome(need_to_block=True, detect_activity="bot", content=403)
        assert outcome.to_dict() == {"need_to_block": True, "detect_activity": "bot", "content": 403}
