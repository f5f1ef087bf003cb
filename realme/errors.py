"""Exception types raised by the configuration library."""

from __future__ import annotations

import logging

_log = logging.getLogger(__name__)


class RealmeError(Exception):
    """Base class of every error the library raises."""


class CastError(RealmeError):
    """A value could not be converted to the requested type."""

    def __init__(self, origin: str, cause: str) -> None:
        self.origin = origin
        self.cause = cause
        _log.debug("Cast error: %s, error: %s", origin, cause)
        super().__init__(f"Cast from {origin}, error: {cause}")


class ParseError(RealmeError):
    """Input could not be parsed into configuration data."""

    def __init__(self, origin: str, cause: str) -> None:
        self.origin = origin
        self.cause = cause
        _log.debug("Parse error: origin:%s, error: %s", origin, cause)
        super().__init__(f"Parse {origin}, error: {cause}")


class _MessageError(RealmeError):
    """An error carrying a single message behind a fixed prefix."""

    prefix = ""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"{self.prefix}{message}")


class ExprError(_MessageError):
    """An expression could not be evaluated."""

    prefix = "Expression error: "


class SetValueError(_MessageError):
    """A value could not be stored under a key."""

    prefix = "Set value error: "


class BuildError(_MessageError):
    """The configuration could not be assembled."""

    prefix = "Build error: "

    def __init__(self, message: str) -> None:
        _log.debug("Build error: %s", message)
        super().__init__(message)


class ReadFileError(_MessageError):
    """A configuration file could not be read."""

    prefix = "Read file error: "


class WatcherError(_MessageError):
    """A file watcher could not be started."""

    prefix = "Watcher error: "


class LockError(_MessageError):
    """A shared configuration could not be locked."""

    prefix = "Lock error: "


class DeserializeError(_MessageError):
    """Configuration data could not be turned into the requested type."""


class SerializeError(_MessageError):
    """An object could not be turned into configuration data."""