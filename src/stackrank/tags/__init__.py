"""Tag index with implicit creation and case-insensitive names."""

from stackrank.tags.index import (
    TAG_EMPTY_MESSAGE,
    TagCount,
    TagIndex,
    normalize_tag,
    resolve_tag_names,
)


__all__ = [
    "TAG_EMPTY_MESSAGE",
    "TagCount",
    "TagIndex",
    "normalize_tag",
    "resolve_tag_names",
]
