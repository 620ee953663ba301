"""Non-fatal parse diagnostics.

Collects the warnings produced while recovering from malformed input in
lenient mode, and logs each one as it is recorded.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    """Categories of recoverable parse conditions."""

    MALFORMED_LINE = "malformed_line"
    INVALID_VALUE = "invalid_value"
    MULTIPLE_CALENDARS = "multiple_calendars"
    UNKNOWN_COMPONENT = "unknown_component"
    IGNORED_CONTENT = "ignored_content"


# Informational kinds are logged at INFO, the rest at WARNING
_INFO_KINDS = frozenset(
    {
        DiagnosticKind.MULTIPLE_CALENDARS,
        DiagnosticKind.UNKNOWN_COMPONENT,
        DiagnosticKind.IGNORED_CONTENT,
    }
)


class Diagnostic(BaseModel):
    """A single recorded parse warning."""

    kind: DiagnosticKind
    message: str
    line_number: Optional[int] = None
    property_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        where = f"line {self.line_number}: " if self.line_number is not None else ""
        return f"{where}{self.kind.value}: {self.message}"


class Diagnostics:
    """Ordered diagnostics list owned by one parse call."""

    def __init__(self, source_name: Optional[str] = None):
        self.source_name = source_name or "<input>"
        self._items: list[Diagnostic] = []

    def record(
        self,
        kind: DiagnosticKind,
        message: str,
        line_number: Optional[int] = None,
        property_name: Optional[str] = None,
    ) -> Diagnostic:
        """Record a diagnostic and log it."""
        diagnostic = Diagnostic(
            kind=kind,
            message=message,
            line_number=line_number,
            property_name=property_name,
        )
        self._items.append(diagnostic)
        level = logging.INFO if kind in _INFO_KINDS else logging.WARNING
        logger.log(level, "%s: %s", self.source_name, diagnostic)
        return diagnostic

    def count(self, kind: Optional[DiagnosticKind] = None) -> int:
        """Count recorded diagnostics, optionally of a single kind."""
        if kind is None:
            return len(self._items)
        return sum(1 for item in self._items if item.kind == kind)

    def as_list(self) -> list[Diagnostic]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)
