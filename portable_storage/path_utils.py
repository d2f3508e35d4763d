"""Path construction and decomposition helpers.

Paths are opaque identifiers built from a root path plus name segments. None
of these helpers touch storage, so they are safe to use against backends whose
paths cannot be passed to the operating system.

Key utilities:
- Associative segment joining
- Trailing separator removal
- Leaf/parent decomposition
- Stem/extension splitting and collision numbering
"""

from __future__ import annotations

import os

DEFAULT_SEPARATOR = "/"


def strip_trailing_separator(path: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """Remove trailing separators some native listing APIs append.

    A path consisting only of separators is left as a single separator so
    that filesystem roots keep their meaning.

    Example:

        >>> strip_trailing_separator("data/reports/")
        'data/reports'
        >>> strip_trailing_separator("/")
        '/'

    """
    stripped = path.rstrip(separator)
    if not stripped and path:
        return separator
    return stripped


def combine(*segments: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """Join path segments with ``separator``.

    Empty segments are skipped, so an empty root path is the identity
    element, and ``combine(combine(a, b), c) == combine(a, b, c)``.

    Example:

        >>> combine("", "docs", "a.txt")
        'docs/a.txt'
        >>> combine("/srv/data/", "a.txt")
        '/srv/data/a.txt'

    """
    result = ""
    for segment in segments:
        if not segment:
            continue
        if not result:
            result = segment
            continue
        head = strip_trailing_separator(result, separator)
        if head == separator:
            result = head + segment
        else:
            result = head + separator + segment
    return result


def leaf_name(path: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """Return the last segment of ``path``, ignoring trailing separators."""
    stripped = strip_trailing_separator(path, separator)
    if stripped == separator:
        return ""
    return stripped.rsplit(separator, 1)[-1]


def parent_path(path: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """Return ``path`` without its last segment.

    Example:

        >>> parent_path("docs/a.txt")
        'docs'
        >>> parent_path("a.txt")
        ''
        >>> parent_path("/a.txt")
        '/'

    """
    stripped = strip_trailing_separator(path, separator)
    if separator not in stripped or stripped == separator:
        return ""
    head = stripped.rsplit(separator, 1)[0]
    return head or separator


def split_extension(name: str) -> tuple[str, str]:
    """Split a file name into stem and extension.

    Leading dots do not start an extension, so ``.profile`` has no extension.
    """
    return os.path.splitext(name)


def numbered_name(name: str, number: int, *, is_file: bool) -> str:
    """Return the disambiguated form of ``name`` for a collision counter.

    Example:

        >>> numbered_name("report.txt", 2, is_file=True)
        'report (2).txt'
        >>> numbered_name("archive.old", 3, is_file=False)
        'archive.old (3)'

    """
    if not is_file:
        return f"{name} ({number})"
    stem, extension = split_extension(name)
    return f"{stem} ({number}){extension}"
