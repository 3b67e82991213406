"""Encoding and decoding of materialized ancestry paths.

A hierarchy path is a sequence of tokens, one per ancestor, ordered from the
root down to the immediate parent. Each token encodes a (type name,
identifier) pair:

    <type><record_separator><id>

Tokens are joined with the path separator:

    Project|1/Task|7/Task|12

No escaping is performed. Type names and identifiers must never contain
either separator, otherwise decoding silently splits in the wrong place.
Separators are fixed per type at setup time; changing them invalidates every
path already stored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence
    from typing import Self

DEFAULT_PATH_SEPARATOR = "/"
DEFAULT_RECORD_SEPARATOR = "|"
DEFAULT_LIKE_ESCAPE = "\\"


def encode_token(
    type_name: str,
    identifier: Any,
    record_separator: str = DEFAULT_RECORD_SEPARATOR,
) -> str:
    """Encode a (type name, identifier) pair as a single path token.

    Example:
        >>> encode_token("Task", 7)
        'Task|7'
    """
    return f"{type_name}{record_separator}{identifier}"


def decode_token(
    token: str,
    record_separator: str = DEFAULT_RECORD_SEPARATOR,
) -> tuple[str, str]:
    """Split a token on the first record separator.

    A token without a separator decodes to ``(token, "")``.

    Example:
        >>> decode_token("Task|7")
        ('Task', '7')
    """
    type_name, _, identifier = token.partition(record_separator)
    return type_name, identifier


def encode_path(
    tokens: Iterable[str],
    path_separator: str = DEFAULT_PATH_SEPARATOR,
) -> str:
    """Join tokens into a path string. An empty sequence encodes to ``""``."""
    return path_separator.join(tokens)


def decode_path(
    path: str | None,
    path_separator: str = DEFAULT_PATH_SEPARATOR,
) -> list[str]:
    """Split a path string into tokens. ``""`` and ``None`` decode to ``[]``."""
    if not path:
        return []
    return path.split(path_separator)


def escape_like(value: str, escape: str = DEFAULT_LIKE_ESCAPE) -> str:
    """Escape LIKE wildcards so ``value`` matches literally as a prefix.

    Example:
        >>> escape_like("Task_A|1")
        'Task\\\\_A|1'
    """
    return (
        value.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


class HierarchyPath:
    """Immutable value object wrapping an encoded ancestry path.

    Provides Python-side navigation over the tokens of a path without
    touching the database.

    Example:
        >>> path = HierarchyPath("Project|1/Task|7")
        >>> path.depth
        2
        >>> path.root
        'Project|1'
        >>> path.parent
        HierarchyPath('Project|1')
        >>> path.child("Task|12")
        HierarchyPath('Project|1/Task|7/Task|12')
        >>> path.records()
        [('Project', '1'), ('Task', '7')]
        >>> path.is_ancestor_of("Project|1/Task|7/Task|12")
        True
    """

    __slots__ = ("_path_separator", "_record_separator", "_tokens")
    _tokens: tuple[str, ...]
    _path_separator: str
    _record_separator: str

    def __init__(
        self,
        path: str | HierarchyPath | None = "",
        *,
        path_separator: str = DEFAULT_PATH_SEPARATOR,
        record_separator: str = DEFAULT_RECORD_SEPARATOR,
    ) -> None:
        if isinstance(path, HierarchyPath):
            self._tokens = path._tokens
            self._path_separator = path._path_separator
            self._record_separator = path._record_separator
        else:
            self._tokens = tuple(decode_path(path, path_separator))
            self._path_separator = path_separator
            self._record_separator = record_separator

    @classmethod
    def from_tokens(
        cls,
        tokens: Iterable[str],
        *,
        path_separator: str = DEFAULT_PATH_SEPARATOR,
        record_separator: str = DEFAULT_RECORD_SEPARATOR,
    ) -> Self:
        """Build a path from already encoded tokens."""
        return cls(
            encode_path(tokens, path_separator),
            path_separator=path_separator,
            record_separator=record_separator,
        )

    @classmethod
    def from_records(
        cls,
        records: Iterable[tuple[str, Any]],
        *,
        path_separator: str = DEFAULT_PATH_SEPARATOR,
        record_separator: str = DEFAULT_RECORD_SEPARATOR,
    ) -> Self:
        """Build a path from (type name, identifier) pairs."""
        return cls.from_tokens(
            (encode_token(name, ident, record_separator) for name, ident in records),
            path_separator=path_separator,
            record_separator=record_separator,
        )

    @property
    def tokens(self) -> list[str]:
        """Copy of the token list, root first."""
        return list(self._tokens)

    @property
    def depth(self) -> int:
        """Number of tokens (0 for an empty path)."""
        return len(self._tokens)

    @property
    def root(self) -> str:
        """First token or ``""`` when empty."""
        return self._tokens[0] if self._tokens else ""

    @property
    def leaf(self) -> str:
        """Last token or ``""`` when empty."""
        return self._tokens[-1] if self._tokens else ""

    @property
    def parent(self) -> HierarchyPath | None:
        """Path without its last token, or None for empty/single-token paths."""
        if self.depth <= 1:
            return None
        return self._derive(self._tokens[:-1])

    def child(self, token: str) -> HierarchyPath:
        """Return a new path with ``token`` appended."""
        return self._derive((*self._tokens, token))

    def records(self) -> list[tuple[str, str]]:
        """Decode every token into its (type name, identifier) pair."""
        return [decode_token(token, self._record_separator) for token in self._tokens]

    def type_names(self) -> list[str]:
        """Distinct type names in path order."""
        return list(dict.fromkeys(name for name, _ in self.records()))

    def is_ancestor_of(self, other: str | HierarchyPath) -> bool:
        """Check whether this path is a proper token-wise prefix of ``other``.

        Comparison is per token, so ``Task|1`` is not an ancestor of
        ``Task|10/...``.
        """
        other_path = self._coerce(other)
        if self.depth >= other_path.depth:
            return False
        return other_path._tokens[: self.depth] == self._tokens

    def is_descendant_of(self, other: str | HierarchyPath) -> bool:
        """Check whether ``other`` is a proper token-wise prefix of this path."""
        return self._coerce(other).is_ancestor_of(self)

    def _coerce(self, other: str | HierarchyPath) -> HierarchyPath:
        if isinstance(other, HierarchyPath):
            return other
        return HierarchyPath(
            other,
            path_separator=self._path_separator,
            record_separator=self._record_separator,
        )

    def _derive(self, tokens: Sequence[str]) -> HierarchyPath:
        return HierarchyPath.from_tokens(
            tokens,
            path_separator=self._path_separator,
            record_separator=self._record_separator,
        )

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return self.depth

    def __str__(self) -> str:
        """Return the encoded form used for storage."""
        return encode_path(self._tokens, self._path_separator)

    def __repr__(self) -> str:
        return f"HierarchyPath({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HierarchyPath):
            return str(self) == str(other)
        if isinstance(other, str):
            return str(self) == other
        return False

    def __hash__(self) -> int:
        return hash(str(self))

    def __bool__(self) -> bool:
        return bool(self._tokens)


__all__ = [
    "DEFAULT_LIKE_ESCAPE",
    "DEFAULT_PATH_SEPARATOR",
    "DEFAULT_RECORD_SEPARATOR",
    "HierarchyPath",
    "decode_path",
    "decode_token",
    "encode_path",
    "encode_token",
    "escape_like",
]
