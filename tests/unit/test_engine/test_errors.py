"""Unit tests for engine errors."""

import pytest

from stackrank.errors import (
    AuthRequiredError,
    ConflictError,
    EngineError,
    EngineErrorClass,
    InvalidArgumentError,
    NotFoundError,
    ValidationError,
    http_status_for,
)


class TestHttpStatusFor:
    """Tests for http_status_for."""

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (ValidationError("Title cannot be empty."), 400),
            (AuthRequiredError("vote"), 401),
            (NotFoundError("question", "q1"), 404),
            (ConflictError("answer", "a1", 5), 409),
            (InvalidArgumentError("ordering", "hot"), 400),
            (RuntimeError("boom"), 500),
        ],
    )
    def test_status_mapping(self, error: BaseException, status: int) -> None:
        """Test each error class maps to its status."""
        assert http_status_for(error) == status


class TestEngineErrors:
    """Tests for error payloads."""

    def test_validation_error_joins_messages(self) -> None:
        """Test multiple messages are joined into one."""
        error = ValidationError(["Title cannot be empty.", "Text cannot be empty."], ["title", "text"])
        assert error.message == "Title cannot be empty. Text cannot be empty."
        assert error.error_class == EngineErrorClass.VALIDATION
        assert error.details == {
            "title": "Title cannot be empty.",
            "text": "Text cannot be empty.",
        }

    def test_not_found_message(self) -> None:
        """Test the not-found message names the entity."""
        error = NotFoundError("answer", "a9")
        assert error.message == "Answer not found: a9"
        assert error.entity_id == "a9"

    def test_to_dict(self) -> None:
        """Test the serialized error carries class and message."""
        payload = ConflictError("answer", "a1", 3).to_dict()
        assert payload["error_class"] == "CONFLICT"
        assert "3 attempts" in str(payload["message"])

    def test_all_are_engine_errors(self) -> None:
        """Test every typed error derives from EngineError."""
        for error in (
            ValidationError("x"),
            AuthRequiredError(),
            NotFoundError("tag", "t"),
            ConflictError("answer", "a", 1),
            InvalidArgumentError("ordering", "x"),
        ):
            assert isinstance(error, EngineError)
