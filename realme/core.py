"""The configuration object: lookup, update, merge and reload."""

from __future__ import annotations

import copy
import dataclasses
import enum
import re
import types
from collections.abc import Mapping
from typing import Any, Literal, Union, get_args, get_origin

from realme.errors import DeserializeError, SetValueError
from realme.sources import _to_value

_SEGMENT = re.compile(r"(?P<name>[^\[\]]*)(?P<indices>(?:\[\d+\])*)")
_INDEX = re.compile(r"\[(\d+)\]")
_MISSING = object()

_NAMED_TYPES: dict[str, Any] = {
    "int": int,
    "str": str,
    "float": float,
    "bool": bool,
    "list": list,
    "dict": dict,
    "tuple": tuple,
    "Any": Any,
    "object": object,
    "None": type(None),
}


class _InvalidKey(ValueError):
    pass


def _parse_key(key: str) -> list[str | int]:
    """Split ``a.b[0].c`` into ``["a", "b", 0, "c"]``."""
    if not key:
        return []
    path: list[str | int] = []
    for piece in key.split("."):
        match = _SEGMENT.fullmatch(piece)
        if match is None or not piece:
            raise _InvalidKey(key)
        if match["name"]:
            path.append(match["name"])
        elif not match["indices"]:
            raise _InvalidKey(key)
        path.extend(int(index) for index in _INDEX.findall(match["indices"]))
    return path


def _lookup(node: Any, path: list[str | int]) -> Any:
    for segment in path:
        if isinstance(segment, int):
            if not isinstance(node, list) or segment >= len(node):
                return _MISSING
            node = node[segment]
        else:
            if not isinstance(node, dict) or segment not in node:
                return _MISSING
            node = node[segment]
    return node


def _assign(node: Any, path: list[str | int], value: Any, key: str) -> Any:
    if not path:
        return value
    head, rest = path[0], path[1:]
    if isinstance(head, str):
        if node is None:
            node = {}
        if not isinstance(node, dict):
            raise SetValueError(f"cannot set '{key}': '{head}' is not in a table")
        node[head] = _assign(node.get(head), rest, value, key)
        return node
    if node is None:
        node = []
    if not isinstance(node, list):
        raise SetValueError(f"cannot set '{key}': index {head} is not in an array")
    if head < len(node):
        node[head] = _assign(node[head], rest, value, key)
    elif head == len(node):
        node.append(_assign(None, rest, value, key))
    else:
        raise SetValueError(f"cannot set '{key}': index {head} out of range")
    return node


def deep_merge(target: Any, overlay: Any) -> Any:
    """Return ``target`` with ``overlay`` merged on top; inputs are untouched.

    Tables are merged key by key, recursively; anything else in ``overlay``
    replaces what is in ``target``.
    """
    if isinstance(target, dict) and isinstance(overlay, dict):
        merged = dict(target)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = deep_merge(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
        return merged
    return copy.deepcopy(overlay)


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", repr(target))


def _mismatch(value: Any, target: Any) -> DeserializeError:
    return DeserializeError(
        f"invalid type: found {type(value).__name__}, "
        f"expected {_type_name(target)}"
    )


def _deserialize(value: Any, target: Any) -> Any:
    if target is Any or target is object:
        return copy.deepcopy(value)
    origin = get_origin(target)
    args = get_args(target)

    if origin is Union or origin is types.UnionType:
        if value is None and type(None) in args:
            return None
        for option in args:
            if option is type(None):
                continue
            try:
                return _deserialize(value, option)
            except DeserializeError:
                continue
        raise _mismatch(value, target)
    if origin is Literal:
        if value in args:
            return value
        raise DeserializeError(f"invalid value {value!r}, expected one of {args}")
    if origin is list or origin is set or origin is frozenset:
        if not isinstance(value, list):
            raise _mismatch(value, target)
        item_type = args[0] if args else Any
        return origin(_deserialize(item, item_type) for item in value)
    if origin is tuple:
        if not isinstance(value, list):
            raise _mismatch(value, target)
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_deserialize(item, args[0]) for item in value)
        if args and len(args) != len(value):
            raise DeserializeError(
                f"invalid length {len(value)}, expected {len(args)}"
            )
        return tuple(
            _deserialize(item, item_type)
            for item, item_type in zip(value, args or [Any] * len(value))
        )
    if origin is dict or origin is Mapping:
        if not isinstance(value, dict):
            raise _mismatch(value, target)
        key_type, item_type = args if args else (Any, Any)
        return {
            _deserialize(key, key_type): _deserialize(item, item_type)
            for key, item in value.items()
        }

    if target is None or target is type(None):
        if value is None:
            return None
        raise _mismatch(value, target)
    if isinstance(target, type) and dataclasses.is_dataclass(target):
        return _deserialize_dataclass(value, target)
    if isinstance(target, type) and issubclass(target, enum.Enum):
        try:
            return target(value)
        except ValueError as exc:
            raise DeserializeError(str(exc)) from exc
    if target is bool:
        if isinstance(value, bool):
            return value
        raise _mismatch(value, target)
    if target is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise _mismatch(value, target)
    if target is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise _mismatch(value, target)
    if target is str:
        if isinstance(value, str):
            return value
        raise _mismatch(value, target)
    if target in (list, dict):
        if isinstance(value, target):
            return copy.deepcopy(value)
        raise _mismatch(value, target)
    if target is tuple:
        if isinstance(value, list):
            return tuple(copy.deepcopy(value))
        raise _mismatch(value, target)
    if isinstance(target, type) and isinstance(value, target):
        return value
    raise _mismatch(value, target)


def _field_type(field: dataclasses.Field) -> Any:
    """The field's annotation; a string annotation is read by simple name."""
    annotation = field.type
    if isinstance(annotation, str):
        return _NAMED_TYPES.get(annotation.strip(), Any)
    return annotation


def _deserialize_dataclass(value: Any, target: type) -> Any:
    if not isinstance(value, dict):
        raise _mismatch(value, target)
    kwargs: dict[str, Any] = {}
    for field in dataclasses.fields(target):
        if not field.init:
            continue
        if field.name in value:
            kwargs[field.name] = _deserialize(value[field.name], _field_type(field))
        elif (
            field.default is dataclasses.MISSING
            and field.default_factory is dataclasses.MISSING
        ):
            raise DeserializeError(f"missing field `{field.name}`")
    return target(**kwargs)


class Realme:
    """A loaded configuration: a table of values reached by dotted keys.

    Keys look like ``database.ports[0]``. Values set at run time are kept
    aside and laid over the freshly loaded data on :meth:`reload`.
    """

    def __init__(
        self,
        cache: Any = None,
        *,
        default: Any = None,
        builder: Any = None,
    ) -> None:
        self.cache = {} if cache is None else cache
        self.default = default
        self.builder = builder

    @staticmethod
    def builder() -> Any:
        """Return a new, empty builder."""
        from realme.builder import RealmeBuilder

        return RealmeBuilder()

    def __repr__(self) -> str:
        return f"Realme(cache={self.cache!r}, default={self.default!r})"

    def try_deserialize(self, target: Any) -> Any:
        """Convert the whole configuration into ``target``."""
        return _deserialize(self.cache, target)

    def reload(self) -> None:
        """Rebuild from the builder and lay the values set at run time on top."""
        if self.builder is None:
            fresh_cache: Any = {}
        else:
            fresh_cache = self.builder.build().cache
        if self.default is not None:
            fresh_cache = deep_merge(fresh_cache, self.default)
        self.cache = fresh_cache

    def get(self, key: str) -> Any:
        """Return the value under ``key``, or ``None`` if there is none."""
        try:
            path = _parse_key(key)
        except _InvalidKey:
            return None
        found = _lookup(self.cache, path)
        return None if found is _MISSING else found

    def get_as(self, key: str, target: Any) -> Any:
        """Return the value under ``key`` converted to ``target``, or ``None``."""
        try:
            path = _parse_key(key)
        except _InvalidKey:
            return None
        found = _lookup(self.cache, path)
        if found is _MISSING:
            return None
        try:
            return _deserialize(found, target)
        except DeserializeError:
            return None

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, creating tables along the way."""
        try:
            path = _parse_key(key)
        except _InvalidKey as exc:
            raise SetValueError(f"invalid key '{key}'") from exc
        if not path:
            raise SetValueError("key must not be empty")
        plain = _to_value(value)
        self.cache = _assign(self.cache, path, copy.deepcopy(plain), key)
        base = self.default if self.default is not None else {}
        self.default = _assign(base, path, plain, key)

    def merge(self, other: Realme) -> None:
        """Merge another configuration's values and run-time settings into this one."""
        self.cache = deep_merge(self.cache, other.cache)
        if other.default is not None:
            if self.default is None:
                self.default = copy.deepcopy(other.default)
            else:
                self.default = deep_merge(self.default, other.default)


__all__ = ["Realme", "deep_merge"]