"""Unit tests for the tag index."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from stackrank.errors import NotFoundError, ValidationError
from stackrank.tags.index import (
    TAG_EMPTY_MESSAGE,
    TagIndex,
    normalize_tag,
    resolve_tag_names,
)


class TestNormalizeTag:
    """Tests for normalize_tag."""

    def test_lowercases(self) -> None:
        """Test names are case-folded."""
        assert normalize_tag("Python") == "python"

    def test_strips_whitespace(self) -> None:
        """Test surrounding whitespace is ignored."""
        assert normalize_tag("  sql ") == "sql"


class TestResolveTagNames:
    """Tests for resolve_tag_names."""

    def test_dedupes_case_insensitively(self) -> None:
        """Test duplicates by normalized name collapse to the first spelling."""
        records = resolve_tag_names(["Python", "python", "SQL"])
        assert [(r.tag_id, r.name) for r in records] == [
            ("python", "Python"),
            ("sql", "SQL"),
        ]

    def test_blank_names_skipped(self) -> None:
        """Test blank names are dropped."""
        records = resolve_tag_names(["", "  ", "go"])
        assert [r.tag_id for r in records] == ["go"]

    def test_all_blank_rejected(self) -> None:
        """Test a list with no usable name is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_tag_names(["", " "])
        assert exc_info.value.message == TAG_EMPTY_MESSAGE

    def test_empty_list_rejected(self) -> None:
        """Test an empty list is rejected."""
        with pytest.raises(ValidationError):
            resolve_tag_names([])


class TestTagIndex:
    """Tests for TagIndex."""

    @pytest.fixture
    def index(self) -> TagIndex:
        """Create an empty tag index."""
        return TagIndex()

    def test_resolve_or_create_keeps_first_spelling(self, index: TagIndex) -> None:
        """Test the first casing of a tag is used for display."""
        assert index.resolve_or_create("JavaScript") == "javascript"
        assert index.resolve_or_create("javascript") == "javascript"
        assert index.name_for("javascript") == "JavaScript"
        assert len(index) == 1

    def test_resolve_or_create_rejects_blank(self, index: TagIndex) -> None:
        """Test a blank tag name is rejected."""
        with pytest.raises(ValidationError):
            index.resolve_or_create("   ")

    def test_attach_counts_distinct_questions(self, index: TagIndex) -> None:
        """Test the count is the number of distinct questions."""
        index.attach("q1", ["python", "sql"])
        index.attach("q2", ["Python"])
        assert index.count_for("python") == 2
        assert index.count_for("sql") == 1

    def test_attach_case_duplicates_count_once(self, index: TagIndex) -> None:
        """Test ["A", "a"] on one question gives one tag with count 1."""
        tag_ids = index.attach("q1", ["A", "a"])
        assert tag_ids == ["a"]
        assert index.count_for("A") == 1
        assert len(index) == 1

    def test_attach_twice_rejected(self, index: TagIndex) -> None:
        """Test a question's membership cannot be attached again."""
        index.attach("q1", ["python"])
        with pytest.raises(ValidationError):
            index.attach("q1", ["rust"])
        assert index.count_for("python") == 1
        assert index.questions_for("rust") == frozenset()

    def test_count_for_unknown_tag(self, index: TagIndex) -> None:
        """Test counting an unknown tag raises NotFoundError."""
        with pytest.raises(NotFoundError):
            index.count_for("haskell")

    def test_count_for_any_casing(self, index: TagIndex) -> None:
        """Test counts are looked up case-insensitively."""
        index.attach("q1", ["Rust"])
        assert index.count_for("RUST") == 1

    def test_require_resolves_any_casing(self, index: TagIndex) -> None:
        """Test an existing tag resolves to its id whatever the casing."""
        index.attach("q1", ["Rust"])
        assert index.require("rUsT") == "rust"

    def test_require_unknown_tag(self, index: TagIndex) -> None:
        """Test requiring a never-used tag raises NotFoundError."""
        with pytest.raises(NotFoundError):
            index.require("haskell")
        assert index.all_tags() == []

    def test_tags_for_keeps_author_order(self, index: TagIndex) -> None:
        """Test a question's tags come back in the order given."""
        index.attach("q1", ["zeta", "alpha", "mid"])
        assert index.tags_for("q1") == ("zeta", "alpha", "mid")

    def test_tags_for_unknown_question(self, index: TagIndex) -> None:
        """Test an untagged question has no tags."""
        assert index.tags_for("missing") == ()

    def test_name_for_unknown(self, index: TagIndex) -> None:
        """Test looking up an unknown tag id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            index.name_for("nope")

    def test_all_tags(self, index: TagIndex) -> None:
        """Test every tag is listed with its count."""
        index.attach("q1", ["SQL", "python"])
        index.attach("q2", ["python"])
        tags = index.all_tags()
        assert [(t.name, t.count) for t in tags] == [("python", 2), ("SQL", 1)]

    def test_concurrent_attach(self, index: TagIndex) -> None:
        """Test concurrent attaches to the same tag are all counted."""
        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda i: index.attach(f"q{i}", ["Shared"]), range(50)))
        assert index.count_for("shared") == 50
        assert len(index) == 1
