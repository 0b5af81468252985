"""Search filter applied to an already-ordered question listing.

``[name]`` tokens select tags, every other token is a word. Tags must
all match; any word may match the title or text. When both kinds are
present a question matching either side is kept. Filtering never
reorders.
"""

from dataclasses import dataclass

from stackrank.engine.models import QuestionView


@dataclass(frozen=True)
class SearchQuery:
    """Parsed search text."""

    tags: tuple[str, ...]
    words: tuple[str, ...]

    @property
    def is_empty(self) -> bool:
        """True when the query selects everything."""
        return not self.tags and not self.words


def parse_search(search: str) -> SearchQuery:
    """Split search text into tag names and words.

    Args:
        search: Raw search text, e.g. ``"[python] sorting"``.

    Returns:
        Lower-cased tags and words.
    """
    tokens = search.split()
    tags = tuple(
        t[1:-1].casefold()
        for t in tokens
        if t.startswith("[") and t.endswith("]") and len(t) > 2
    )
    words = tuple(t.casefold() for t in tokens if "[" not in t and "]" not in t)
    return SearchQuery(tags=tags, words=words)


def _matches_tags(question: QuestionView, tags: tuple[str, ...]) -> bool:
    names = {name.casefold() for name in question.tags}
    return all(tag in names for tag in tags)


def _matches_words(question: QuestionView, words: tuple[str, ...]) -> bool:
    title = question.title.casefold()
    text = question.text.casefold()
    return any(word in title or word in text for word in words)


def filter_questions(questions: list[QuestionView], search: str) -> list[QuestionView]:
    """Keep the questions that match a search, in their given order.

    Args:
        questions: Ordered listing.
        search: Raw search text.

    Returns:
        The matching subsequence.
    """
    query = parse_search(search)
    if query.is_empty:
        return list(questions)

    if query.tags and query.words:
        return [
            q
            for q in questions
            if _matches_tags(q, query.tags) or _matches_words(q, query.words)
        ]
    if query.tags:
        return [q for q in questions if _matches_tags(q, query.tags)]
    return [q for q in questions if _matches_words(q, query.words)]
