"""Tag index: per-tag question membership and live counts."""

import threading
from dataclasses import dataclass

import structlog

from stackrank.errors import NotFoundError, ValidationError
from stackrank.store.models import TagRecord


logger = structlog.get_logger()

TAG_EMPTY_MESSAGE = "Tag cannot be empty."


def normalize_tag(name: str) -> str:
    """Return the identifier for a tag name.

    Tags compare case-insensitively; surrounding whitespace is ignored.

    Args:
        name: Tag name as typed.

    Returns:
        Normalized tag id.
    """
    return name.strip().casefold()


def resolve_tag_names(tag_names: list[str]) -> list[TagRecord]:
    """Turn raw tag names into deduplicated tag records.

    The first spelling of a name within the list is kept, and so is the
    author's order.

    Args:
        tag_names: Names as submitted.

    Returns:
        One record per distinct normalized name.

    Raises:
        ValidationError: If no non-blank name remains.
    """
    seen: dict[str, TagRecord] = {}
    for raw in tag_names:
        display = raw.strip()
        if not display:
            continue
        tag_id = normalize_tag(display)
        if tag_id not in seen:
            seen[tag_id] = TagRecord(tag_id=tag_id, name=display)

    if not seen:
        raise ValidationError(TAG_EMPTY_MESSAGE, fields=["tags"])
    return list(seen.values())


@dataclass(frozen=True)
class TagCount:
    """A tag with the number of questions referencing it."""

    tag_id: str
    name: str
    count: int


class TagIndex:
    """Maintains tag display names and question membership.

    Tags are created implicitly the first time a name is used and are
    never removed. A question's membership is fixed once attached.
    """

    def __init__(self) -> None:
        """Initialize an empty index."""
        self._names: dict[str, str] = {}
        self._members: dict[str, set[str]] = {}
        self._by_question: dict[str, tuple[str, ...]] = {}
        self._lock = threading.Lock()
        self._log = logger.bind(component="tags")

    def __len__(self) -> int:
        """Number of known tags."""
        with self._lock:
            return len(self._names)

    def _resolve_or_create_locked(self, name: str) -> str:
        display = name.strip()
        if not display:
            raise ValidationError(TAG_EMPTY_MESSAGE, fields=["tags"])
        tag_id = normalize_tag(display)
        if tag_id not in self._names:
            self._names[tag_id] = display
            self._members[tag_id] = set()
            self._log.debug("tag_created", tag_id=tag_id, name=display)
        return tag_id

    def resolve_or_create(self, name: str) -> str:
        """Look up a tag by case-insensitive name, creating it if unseen.

        Args:
            name: Tag name; the casing of the first use is kept for display.

        Returns:
            The tag id.
        """
        with self._lock:
            return self._resolve_or_create_locked(name)

    def attach(self, question_id: str, tag_names: list[str]) -> list[str]:
        """Record a question as a member of each named tag.

        Args:
            question_id: The question being tagged.
            tag_names: Names to attach; duplicates (by normalized name) count once.

        Returns:
            Resolved tag ids in first-occurrence order.

        Raises:
            ValidationError: If no usable name is given, or the question
                already has tags.
        """
        records = resolve_tag_names(tag_names)

        with self._lock:
            if question_id in self._by_question:
                raise ValidationError(
                    f"Question {question_id} is already tagged.", fields=["tags"]
                )
            tag_ids = [self._resolve_or_create_locked(r.name) for r in records]
            for tag_id in tag_ids:
                self._members[tag_id].add(question_id)
            self._by_question[question_id] = tuple(tag_ids)
        return tag_ids

    def require(self, tag: str) -> str:
        """Resolve an existing tag to its id.

        Args:
            tag: Tag id or any casing of its name.

        Returns:
            The tag id.

        Raises:
            NotFoundError: If the tag has never been used.
        """
        tag_id = normalize_tag(tag)
        with self._lock:
            if tag_id not in self._members:
                raise NotFoundError("tag", tag)
        return tag_id

    def count_for(self, tag: str) -> int:
        """Number of distinct questions carrying a tag.

        Raises:
            NotFoundError: If the tag has never been used.
        """
        tag_id = self.require(tag)
        with self._lock:
            return len(self._members[tag_id])

    def name_for(self, tag_id: str) -> str:
        """Display name of a tag."""
        with self._lock:
            try:
                return self._names[tag_id]
            except KeyError:
                raise NotFoundError("tag", tag_id) from None

    def questions_for(self, tag: str) -> frozenset[str]:
        """Question ids carrying a tag (empty for an unknown tag)."""
        with self._lock:
            return frozenset(self._members.get(normalize_tag(tag), ()))

    def tags_for(self, question_id: str) -> tuple[str, ...]:
        """Tag ids of a question, in the author's order."""
        with self._lock:
            return self._by_question.get(question_id, ())

    def all_tags(self) -> list[TagCount]:
        """Every tag with its question count, ordered by name.

        Returns:
            Tag counts sorted case-insensitively by display name.
        """
        with self._lock:
            tags = [
                TagCount(tag_id=tag_id, name=name, count=len(self._members[tag_id]))
                for tag_id, name in self._names.items()
            ]
        return sorted(tags, key=lambda t: (t.tag_id, t.name))
