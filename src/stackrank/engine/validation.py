"""Boundary validation for forum writes.

Messages are surfaced verbatim to users; callers match them
case-insensitively.
"""

from stackrank.errors import AuthRequiredError, ValidationError
from stackrank.store.models import TagRecord
from stackrank.tags.index import TAG_EMPTY_MESSAGE, resolve_tag_names


TITLE_MAX_LENGTH = 100
TAGS_MAX_COUNT = 5
TAG_MAX_LENGTH = 20
COMMENT_MAX_LENGTH = 500

TITLE_EMPTY_MESSAGE = "Title cannot be empty."
TITLE_TOO_LONG_MESSAGE = f"Title cannot be more than {TITLE_MAX_LENGTH} characters."
TEXT_EMPTY_MESSAGE = "Text cannot be empty."
TOO_MANY_TAGS_MESSAGE = "More than five tags is not allowed."
TAG_TOO_LONG_MESSAGE = f"New tag length cannot be more than {TAG_MAX_LENGTH}."
ANSWER_EMPTY_MESSAGE = "Answer text cannot be empty."
COMMENT_EMPTY_MESSAGE = "Comment cannot be empty."
COMMENT_TOO_LONG_MESSAGE = f"Comment cannot exceed {COMMENT_MAX_LENGTH} characters."


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_question(
    title: str | None, text: str | None, tags: list[str] | None
) -> list[TagRecord]:
    """Check a new question and resolve its tags.

    All failing fields are reported in one error.

    Args:
        title: Question title.
        text: Question body.
        tags: Tag names as submitted.

    Returns:
        Deduplicated tag records in the author's order.

    Raises:
        ValidationError: If any field is invalid.
    """
    messages: list[str] = []
    fields: list[str] = []

    if _is_blank(title):
        messages.append(TITLE_EMPTY_MESSAGE)
        fields.append("title")
    elif title is not None and len(title.strip()) > TITLE_MAX_LENGTH:
        messages.append(TITLE_TOO_LONG_MESSAGE)
        fields.append("title")

    if _is_blank(text):
        messages.append(TEXT_EMPTY_MESSAGE)
        fields.append("text")

    records: list[TagRecord] = []
    try:
        records = resolve_tag_names(list(tags or []))
    except ValidationError:
        messages.append(TAG_EMPTY_MESSAGE)
        fields.append("tags")
    else:
        if len(records) > TAGS_MAX_COUNT:
            messages.append(TOO_MANY_TAGS_MESSAGE)
            fields.append("tags")
        elif any(len(r.name) > TAG_MAX_LENGTH for r in records):
            messages.append(TAG_TOO_LONG_MESSAGE)
            fields.append("tags")

    if messages:
        raise ValidationError(messages, fields)
    return records


def validate_answer(text: str | None) -> None:
    """Check a new answer body.

    Raises:
        ValidationError: If the text is empty.
    """
    if _is_blank(text):
        raise ValidationError(ANSWER_EMPTY_MESSAGE, fields=["text"])


def validate_comment(text: str | None, author_id: str | None) -> None:
    """Check a new comment.

    Args:
        text: Comment body.
        author_id: Authenticated commenter.

    Raises:
        AuthRequiredError: If there is no author.
        ValidationError: If the text is empty or longer than 500 characters.
    """
    if not author_id:
        raise AuthRequiredError("comment")
    if _is_blank(text):
        raise ValidationError(COMMENT_EMPTY_MESSAGE, fields=["text"])
    if text is not None and len(text) > COMMENT_MAX_LENGTH:
        raise ValidationError(COMMENT_TOO_LONG_MESSAGE, fields=["text"])
