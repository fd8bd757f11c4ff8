"""
Error classes for LedgerScope.

This module defines the exception classes raised by the pipeline. Data
problems found while reading a ledger export are *not* exceptions: they are
collected as :class:`~ledgerscope.core.report.Issue` records so callers always
get best-effort results. Exceptions are reserved for programming errors and
unusable inputs.
"""

from __future__ import annotations


class LedgerScopeError(Exception):
    """Base class for all LedgerScope errors."""


class ConfigError(LedgerScopeError):
    """
    Configuration error in settings or builder options.

    **Common Causes:**
    - Unknown keys in a settings file
    - Non-positive fan-out threshold or header row count
    - Transaction leaves requested with a balance-based sizing

    **Example Usage:**
        ```python
        from ledgerscope.core.errors import ConfigError
        from ledgerscope.core.settings import load_settings

        try:
            settings = load_settings({"hierarchy": {"fan_out": 0}})
        except ConfigError as e:
            print(f"Configuration error: {e}")
        ```
    """


class SourceFormatError(LedgerScopeError, ValueError):
    """Raised when a source file or ledger document cannot be read."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"[{source}] {message}")


class UnknownGranularityError(LedgerScopeError, ValueError):
    """Raised for a time bucket selector that is not supported."""

    def __init__(self, granularity: object, allowed: list[str]):
        self.granularity = granularity
        self.allowed = allowed
        super().__init__(
            f"Unknown granularity {granularity!r}; expected one of: {', '.join(allowed)}"
        )


class LayoutError(LedgerScopeError, ValueError):
    """
    Raised when a layout engine receives a structurally invalid hierarchy.

    Layout engines assume a valid decorated hierarchy, so a negative or
    non-finite ``value`` or an empty canvas is a programming error.
    """

    def __init__(self, message: str, node_ids: list[str] | None = None):
        self.node_ids = node_ids or []
        super().__init__(self._fmt(message))

    def _fmt(self, msg: str) -> str:
        if not self.node_ids:
            return msg
        preview = ", ".join(self.node_ids[:10])
        more = f" (+{len(self.node_ids) - 10} more)" if len(self.node_ids) > 10 else ""
        return f"{msg} | node_ids: [{preview}]{more}"


class UnknownNodeError(LedgerScopeError, KeyError):
    """Raised when a collapse operation names a node the hierarchy does not have."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(node_id)

    def __str__(self) -> str:
        return f"Unknown node id: {self.node_id!r}"
