"""Adaptors: a configuration source together with how and when to load it."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from realme.parsers import Parser, TomlParser
from realme.sources import FileSource, Source

_MAX_PRIORITY = 255


@dataclass
class Adaptor:
    """Wraps a source with its load priority, watch flag and profile.

    Adaptors with a larger priority are loaded later, so their values win.
    An adaptor with a profile is only loaded when the builder selects that
    profile; one without a profile is always loaded.
    """

    source: Source
    priority: int = 0
    watch: bool = False
    profile: str | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.priority <= _MAX_PRIORITY:
            raise ValueError(
                f"priority must be between 0 and {_MAX_PRIORITY}, "
                f"got {self.priority}"
            )

    def parse(self) -> Any:
        """Read and parse the wrapped source."""
        return self.source.parse()

    def watcher(self, notify: Callable[[], None]) -> Any:
        """Start watching the source if this adaptor is set to watch.

        Returns the handle the source gives back, or ``None`` when nothing
        is watched.
        """
        if not self.watch:
            return None
        return self.source.watcher(notify)


def file_adaptor(
    path: str | os.PathLike[str],
    parser: Parser | None,
    priority: int | None = None,
    profile: str | None = None,
) -> Adaptor:
    """Build an adaptor reading ``path`` with ``parser``."""
    if parser is None:
        raise ValueError("parser is required")
    return Adaptor(
        FileSource(path, parser),
        priority=0 if priority is None else priority,
        profile=profile,
    )


def toml_adaptor(
    path: str | os.PathLike[str],
    priority: int | None = None,
    profile: str | None = None,
) -> Adaptor:
    """Build an adaptor reading a TOML file at ``path``."""
    return file_adaptor(path, TomlParser(), priority=priority, profile=profile)