"""Sources of configuration data: strings, files, the environment and objects."""

from __future__ import annotations

import dataclasses
import datetime
import os
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from realme.cmd import CmdParser
from realme.errors import ParseError, ReadFileError, SerializeError, WatcherError
from realme.parsers import EnvParser, Parser

_SCALARS = (bool, int, float, str, datetime.date, datetime.time)
_IGNORED_EVENTS = frozenset({"opened", "closed_no_write"})


def _to_value(obj: Any) -> Any:
    """Convert an object into plain tables, arrays and scalars."""
    if obj is None or isinstance(obj, _SCALARS):
        return obj
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            field.name: _to_value(getattr(obj, field.name))
            for field in dataclasses.fields(obj)
        }
    if isinstance(obj, tuple) and hasattr(obj, "_asdict"):
        return _to_value(obj._asdict())
    if isinstance(obj, Mapping):
        table: dict[str, Any] = {}
        for key, value in obj.items():
            if isinstance(key, str):
                table[key] = _to_value(value)
            elif isinstance(key, (bool, int, float)):
                table[str(key)] = _to_value(value)
            else:
                raise SerializeError(
                    f"key must be a string, got {type(key).__name__}"
                )
        return table
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [_to_value(item) for item in obj]
    raise SerializeError(f"cannot serialize value of type {type(obj).__name__}")


def _run_parser(parser: Parser, data: Any, origin: str) -> Any:
    try:
        parsed = parser.parse(data)
    except Exception as exc:
        raise ParseError(origin, str(exc)) from exc
    return _to_value(parsed)


class Source(ABC):
    """A place configuration data is read from."""

    @abstractmethod
    def parse(self) -> Any:
        """Read and parse the source, returning configuration data."""

    def watcher(self, notify: Callable[[], None]) -> Any:
        """Start watching for changes, calling ``notify`` on each one.

        Returns a handle with ``stop()`` and ``join()``, or ``None`` when the
        source cannot change.
        """
        return None

    def __repr__(self) -> str:
        return type(self).__name__


class CmdSource(Source):
    """Configuration given as a command-line style option string."""

    def __init__(self, options: str, parser: Parser | None = None) -> None:
        self.options = options
        self.parser = parser if parser is not None else CmdParser()

    def parse(self) -> Any:
        return _run_parser(self.parser, self.options, self.options)


class EnvSource(Source):
    """Configuration taken from environment variables with a prefix."""

    def __init__(self, prefix: str, parser: Parser | None = None) -> None:
        self.prefix = prefix
        self.parser = parser if parser is not None else EnvParser()

    def parse(self) -> Any:
        return _run_parser(self.parser, self.prefix, self.prefix)


class _FileChangeHandler(FileSystemEventHandler):
    def __init__(self, target: str, notify: Callable[[], None]) -> None:
        super().__init__()
        self._target = target
        self._notify = notify

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _IGNORED_EVENTS or event.is_directory:
            return
        paths = [event.src_path, getattr(event, "dest_path", "")]
        if any(
            path and os.path.abspath(os.fsdecode(path)) == self._target
            for path in paths
        ):
            self._notify()


class FileSource(Source):
    """Configuration read from a file and parsed with a text parser."""

    def __init__(self, path: str | os.PathLike[str], parser: Parser) -> None:
        self.path = Path(path)
        self.parser = parser

    def _read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ReadFileError(
                f"Failed to read file: {self.path}, error: {exc}"
            ) from exc

    def parse(self) -> Any:
        return _run_parser(self.parser, self._read(), str(self.path))

    def watcher(self, notify: Callable[[], None]) -> Any:
        """Watch the file in a background thread and return the observer."""
        target = os.path.abspath(self.path)
        observer = Observer()
        observer.daemon = True
        try:
            observer.schedule(
                _FileChangeHandler(target, notify),
                os.path.dirname(target),
                recursive=False,
            )
            observer.start()
        except OSError as exc:
            raise WatcherError(str(exc)) from exc
        return observer


class SerSource(Source):
    """Configuration taken from an already structured Python object."""

    def __init__(self, meta: Any) -> None:
        self.meta = meta

    def parse(self) -> Any:
        return _to_value(self.meta)


class StringSource(Source):
    """Configuration held in a string and parsed with a text parser."""

    def __init__(self, buffer: str, parser: Parser) -> None:
        self.buffer = buffer
        self.parser = parser

    def parse(self) -> Any:
        return _run_parser(self.parser, self.buffer, self.buffer)