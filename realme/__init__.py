"""Layered configuration loading from files, strings, the environment and objects."""

__version__ = "0.1.0"

__all__ = ["adaptor", "builder", "cmd", "core", "errors", "parsers", "sources"]