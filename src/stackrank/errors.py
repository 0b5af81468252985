"""Error taxonomy for the ranking engine.

Every failure that crosses the engine boundary is one of the typed errors
below. The HTTP layer maps them to status codes with `http_status_for`.
"""

from enum import Enum


LOGIN_REQUIRED_MESSAGE = "You need to log in first."


class EngineErrorClass(str, Enum):
    """Classification of engine errors.

    - VALIDATION: Missing, oversized or malformed input
    - AUTH_REQUIRED: Action needs an authenticated identity
    - NOT_FOUND: Referenced question/answer/tag does not exist
    - CONFLICT: Concurrent-write race outlived the retry budget
    - INVALID_ARGUMENT: Caller passed an unknown option (e.g. ordering key)
    """

    VALIDATION = "VALIDATION"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"


class EngineError(Exception):
    """Base exception for engine errors.

    Provides structured error information for logging and response mapping.
    """

    error_class: EngineErrorClass

    def __init__(
        self,
        error_class: EngineErrorClass,
        message: str,
        details: dict[str, str | int | bool | None] | None = None,
    ) -> None:
        """Initialize the engine error.

        Args:
            error_class: Classification of the error.
            message: Human-readable error message.
            details: Additional structured error details.
        """
        super().__init__(message)
        self.error_class = error_class
        self.message = message
        self.details = details or {}

    def to_dict(
        self,
    ) -> dict[str, str | dict[str, str | int | bool | None]]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self.error_class.value,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(EngineError):
    """Input failed boundary validation.

    Carries every failing field so a form can show all problems at once.
    """

    def __init__(
        self,
        messages: list[str] | str,
        fields: list[str] | None = None,
    ) -> None:
        """Initialize the validation error.

        Args:
            messages: One message per failing field.
            fields: Names of the failing fields, parallel to ``messages``.
        """
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        self.fields = list(fields or [])
        details: dict[str, str | int | bool | None] = {
            name: msg for name, msg in zip(self.fields, self.messages, strict=False)
        }
        super().__init__(EngineErrorClass.VALIDATION, " ".join(self.messages), details)


class AuthRequiredError(EngineError):
    """Raised when an action requires an authenticated user."""

    def __init__(self, action: str | None = None) -> None:
        """Initialize the error.

        Args:
            action: Name of the rejected action, for logging.
        """
        self.action = action
        super().__init__(
            EngineErrorClass.AUTH_REQUIRED,
            LOGIN_REQUIRED_MESSAGE,
            {"action": action},
        )


class NotFoundError(EngineError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        """Initialize the error with the missing entity.

        Args:
            entity: Entity kind ("question", "answer", "tag").
            entity_id: The identifier that was not found.
        """
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            EngineErrorClass.NOT_FOUND,
            f"{entity.capitalize()} not found: {entity_id}",
            {"entity": entity, "entity_id": entity_id},
        )


class ConflictError(EngineError):
    """Raised when optimistic retries are exhausted.

    This is a transient failure; the caller may resubmit the same action.
    """

    def __init__(self, entity: str, entity_id: str, attempts: int) -> None:
        """Initialize the conflict error.

        Args:
            entity: Entity kind that kept conflicting.
            entity_id: Identifier of the contended entity.
            attempts: Number of attempts made before giving up.
        """
        self.entity = entity
        self.entity_id = entity_id
        self.attempts = attempts
        super().__init__(
            EngineErrorClass.CONFLICT,
            f"Concurrent update on {entity} {entity_id}; gave up after {attempts} attempts",
            {"entity": entity, "entity_id": entity_id, "attempts": attempts},
        )


class InvalidArgumentError(EngineError):
    """Raised when an option value is not one of the accepted choices."""

    def __init__(self, argument: str, value: object) -> None:
        """Initialize the error.

        Args:
            argument: Name of the argument.
            value: The rejected value.
        """
        self.argument = argument
        self.value = value
        super().__init__(
            EngineErrorClass.INVALID_ARGUMENT,
            f"Invalid {argument}: {value!r}",
            {"argument": argument, "value": str(value)},
        )


_STATUS_BY_CLASS: dict[EngineErrorClass, int] = {
    EngineErrorClass.VALIDATION: 400,
    EngineErrorClass.AUTH_REQUIRED: 401,
    EngineErrorClass.NOT_FOUND: 404,
    EngineErrorClass.CONFLICT: 409,
    EngineErrorClass.INVALID_ARGUMENT: 400,
}


def http_status_for(error: BaseException) -> int:
    """Map an exception to the HTTP status the API layer should return.

    Args:
        error: Any exception raised by an engine call.

    Returns:
        HTTP status code; 500 for anything that is not an EngineError.
    """
    if isinstance(error, EngineError):
        return _STATUS_BY_CLASS.get(error.error_class, 500)
    return 500
