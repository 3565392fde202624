"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/errors.py
Fatal errors. They are raised before any item is dispatched.
Per-item problems are never raised, see FailureKind.
"""


class FanoutError(Exception):
    """Base class for errors that abort a whole run."""


class SourceUnavailable(FanoutError):
    """The enumeration source is missing, unreadable or of the wrong type."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Source unavailable: {source} ({reason})")
        self.source = source
        self.reason = reason


class TemplateError(FanoutError):
    """The command template is malformed or cannot be resolved."""
