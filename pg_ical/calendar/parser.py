"""iCalendar parse pipeline.

Wires the stages together::

    raw input -> unfold -> tokenize -> interpret + assemble -> component tree

Each stage is a generator pulling from the previous one, so input is read
only as far as the assembler needs it.
"""

import logging
import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.settings import ParserSettings, load_settings
from .assembler import ComponentAssembler
from .diagnostics import Diagnostic, DiagnosticKind, Diagnostics
from .model import Component, ComponentKind
from .tokenizer import iter_content_lines
from .unfolder import Source, unfold

logger = logging.getLogger(__name__)


class ParseResult(BaseModel):
    """A fully assembled calendar plus the diagnostics recorded on the way."""

    calendar: Component
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    source_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def has_diagnostics(self) -> bool:
        return bool(self.diagnostics)

    def diagnostics_of(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [item for item in self.diagnostics if item.kind == kind]


class ICalParser:
    """Parses iCalendar input into a component tree."""

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        """Initialize parser.

        Args:
            settings: Parser settings; loaded from the environment when omitted
        """
        self.settings = settings if settings is not None else load_settings()

    def parse(self, source: Source, source_name: Optional[str] = None) -> ParseResult:
        """Parse one calendar.

        Args:
            source: String, bytes, file object, or iterable of str/bytes chunks
            source_name: Label used in log messages

        Returns:
            ParseResult with the VCALENDAR tree and diagnostics

        Raises:
            MalformedInputError: On stream-level errors
            UnbalancedNestingError: On mismatched BEGIN/END
            MalformedLineError: On an untokenizable line in strict mode
            InvalidValueError: On an invalid value in strict mode
        """
        settings = self.settings
        diagnostics = Diagnostics(source_name)
        started = time.monotonic()

        lines = unfold(
            source,
            strict=settings.strict,
            chunk_size=settings.chunk_size,
            decode_errors=settings.decode_errors,
        )
        content_lines = iter_content_lines(lines, strict=settings.strict, diagnostics=diagnostics)
        assembler = ComponentAssembler(strict=settings.strict, diagnostics=diagnostics)
        calendar = assembler.assemble(content_lines)

        logger.debug(
            "Parsed %s in %.3fs: %d components, %d diagnostics",
            source_name or "<input>",
            time.monotonic() - started,
            sum(1 for _ in calendar.walk()),
            len(diagnostics),
        )
        return ParseResult(
            calendar=calendar, diagnostics=diagnostics.as_list(), source_name=source_name
        )


def parse_calendar(
    source: Source,
    strict: Optional[bool] = None,
    settings: Optional[ParserSettings] = None,
    source_name: Optional[str] = None,
) -> ParseResult:
    """Parse iCalendar input with default or given settings.

    Args:
        source: String, bytes, file object, or iterable of str/bytes chunks
        strict: Overrides ``settings.strict`` when given
        settings: Parser settings; loaded from the environment when omitted
        source_name: Label used in log messages
    """
    if settings is None:
        settings = load_settings(strict=strict)
    elif strict is not None and strict != settings.strict:
        settings = settings.model_copy(update={"strict": strict})
    return ICalParser(settings).parse(source, source_name=source_name)


def iter_components(calendar: Component, *kinds: ComponentKind):
    """Iterate over descendants of the given kinds, depth-first."""
    for component in calendar.walk():
        if component is calendar:
            continue
        if not kinds or component.kind in kinds:
            yield component
