"""Parsers that turn raw text (or ready-made objects) into configuration data."""

from __future__ import annotations

import configparser
import json
import os
import string
import tomllib
from typing import Any, Protocol, runtime_checkable

import yaml

from realme.errors import ParseError

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)

# Section names that cannot clash with anything a user writes in a file.
_GENERAL_SECTION = "\x00general"
_DEFAULT_SECTION = "\x00defaults"


def _ascii_lower(text: str) -> str:
    return text.translate(_ASCII_LOWER)


@runtime_checkable
class Parser(Protocol):
    """Anything that turns an input into configuration data."""

    def parse(self, args: Any) -> Any:
        """Parse ``args`` and return the parsed data, or raise on failure."""
        ...


class EnvParser:
    """Collects environment variables whose names start with a prefix.

    Matching ignores ASCII case. Keys come back lower-cased with the prefix
    removed (repeatedly, if it occurs more than once at the start).
    """

    def parse(self, args: str) -> dict[str, Any]:
        prefix = _ascii_lower(args.strip())
        result: dict[str, Any] = {}
        if not prefix:
            return result
        for name, value in os.environ.items():
            key = _ascii_lower(name)
            if not key.startswith(prefix):
                continue
            while key.startswith(prefix):
                key = key[len(prefix):]
            result[key] = value
        return result


class IniParser:
    """Parses INI text into a table of sections, each a table of strings.

    Keys that appear before the first section header are ignored.
    """

    def parse(self, args: str) -> dict[str, Any]:
        text = args.strip()
        reader = configparser.ConfigParser(
            interpolation=None,
            strict=False,
            default_section=_DEFAULT_SECTION,
        )
        reader.optionxform = str  # type: ignore[assignment,method-assign]
        lines = "\n".join(line.strip() for line in text.splitlines())
        try:
            reader.read_string(f"[{_GENERAL_SECTION}]\n{lines}")
        except configparser.Error as exc:
            raise ParseError(text, str(exc)) from exc
        return {
            section: dict(reader.items(section))
            for section in reader.sections()
            if section != _GENERAL_SECTION
        }


class JsonParser:
    """Parses JSON text."""

    def parse(self, args: str) -> Any:
        text = args.strip()
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(text, str(exc)) from exc


class TomlParser:
    """Parses TOML text."""

    def parse(self, args: str) -> dict[str, Any]:
        text = args.strip()
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ParseError(text, str(exc)) from exc


class YamlParser:
    """Parses YAML text; an empty document gives ``None``."""

    def parse(self, args: str) -> Any:
        text = args.strip()
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ParseError(text, str(exc)) from exc


class SerParser:
    """Passes an already structured object through unchanged."""

    def parse(self, args: Any) -> Any:
        return args