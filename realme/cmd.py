"""Parser for command-line style ``key=value`` configuration strings."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

_MULTISPACE = " \t\r\n"
_SPACE = " \t"

_Result = tuple[Any, int] | None


def _skip(text: str, pos: int, chars: str) -> int:
    while pos < len(text) and text[pos] in chars:
        pos += 1
    return pos


def _take_while1(text: str, pos: int, accept: Callable[[str], bool]) -> _Result:
    end = pos
    while end < len(text) and accept(text[end]):
        end += 1
    if end == pos:
        return None
    return text[pos:end], end


def _char(text: str, pos: int, wanted: str) -> int | None:
    if pos < len(text) and text[pos] == wanted:
        return pos + 1
    return None


def _separated(
    text: str,
    pos: int,
    separator: Callable[[str, int], int | None],
    element: Callable[[str, int], _Result],
) -> tuple[list[Any], int]:
    """Zero or more elements between separators; stops where a step fails."""
    items: list[Any] = []
    first = element(text, pos)
    if first is None:
        return items, pos
    value, pos = first
    items.append(value)
    while True:
        after_sep = separator(text, pos)
        if after_sep is None:
            return items, pos
        nxt = element(text, after_sep)
        if nxt is None:
            return items, pos
        value, pos = nxt
        items.append(value)


def _array_separator(text: str, pos: int) -> int | None:
    return _char(text, _skip(text, pos, _SPACE), ";")


def _array_item(text: str, pos: int) -> _Result:
    nested = _parse_array(text, pos)
    if nested is not None:
        return nested
    raw = _take_while1(text, pos, lambda c: c not in ";]")
    if raw is None:
        return None
    return raw[0].strip(), raw[1]


def _parse_array(text: str, pos: int) -> _Result:
    start = _char(text, _skip(text, pos, _MULTISPACE), "[")
    if start is None:
        return None
    items, pos = _separated(text, start, _array_separator, _array_item)
    end = _char(text, pos, "]")
    if end is None:
        return None
    return items, end


def _parse_quoted(text: str, pos: int) -> _Result:
    start = _char(text, pos, '"')
    if start is None:
        return None
    body = _take_while1(text, start, lambda c: c != '"')
    if body is None:
        return None
    end = _char(text, body[1], '"')
    if end is None:
        return None
    return body[0].strip(), end


def _parse_value(text: str, pos: int) -> _Result:
    for alternative in (_parse_array, _parse_quoted):
        found = alternative(text, pos)
        if found is not None:
            return found
    raw = _take_while1(text, pos, lambda c: c not in ",]")
    if raw is None:
        return None
    return raw[0].strip(), raw[1]


def _parse_key(text: str, pos: int) -> _Result:
    raw = _take_while1(text, pos, lambda c: c.isalnum() or c in "._")
    if raw is None:
        return None
    return raw[0].strip(), raw[1]


def _parse_pair(text: str, pos: int) -> _Result:
    key = _parse_key(text, pos)
    if key is None:
        return None
    after_eq = _char(text, key[1], "=")
    if after_eq is None:
        return None
    value = _parse_value(text, after_eq)
    if value is None:
        return None
    return (key[0], value[0]), value[1]


def _pair_separator(text: str, pos: int) -> int | None:
    after = _char(text, pos, ",")
    if after is None:
        return None
    return _skip(text, after, _MULTISPACE)


def _insert_nested(table: dict[str, Any], parts: list[str], value: Any) -> None:
    head, *tail = parts
    if not tail:
        table[head] = value
        return
    entry = table.setdefault(head, {})
    if isinstance(entry, dict):
        _insert_nested(entry, tail, value)


class CmdParser:
    """Parses ``a=1, b.c=x, list=[x; y]`` strings into nested tables.

    Dotted keys build nested tables, ``[..; ..]`` builds arrays, and a value
    in double quotes may contain commas. Every leaf value is a string.
    Parsing stops quietly at the first part that does not fit the grammar.
    """

    def parse(self, args: str) -> dict[str, Any]:
        text = args.strip()
        result: dict[str, Any] = {}
        if not text:
            return result
        pairs, _ = _separated(text, 0, _pair_separator, _parse_pair)
        for key, value in pairs:
            _insert_nested(result, key.split("."), value)
        return result