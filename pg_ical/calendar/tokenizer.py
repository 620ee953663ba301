"""Content-line tokenizer.

Splits one logical line into its property name, parameters and raw value
following the RFC 5545 grammar::

    contentline = name *(";" param) ":" value
    param       = param-name "=" param-value *("," param-value)

The value is returned untouched. Backslash escapes depend on the value type
and are resolved later by the value interpreter.
"""

import logging
import re
from collections.abc import Generator, Iterable
from dataclasses import dataclass, field
from typing import Optional

from ..exceptions import MalformedLineError
from .diagnostics import DiagnosticKind, Diagnostics
from .unfolder import LogicalLine

logger = logging.getLogger(__name__)

_RE_NAME = re.compile(r"[A-Za-z0-9-]+")
_NAME_DELIMITERS = (";", ":")
_PARAM_DELIMITERS = (",", ";", ":")
_QUOTE = '"'


@dataclass(frozen=True)
class ContentLine:
    """A tokenized content line."""

    name: str
    parameters: dict[str, list[str]] = field(default_factory=dict)
    raw_value: str = ""
    line_number: int = 0

    def get_parameter(self, name: str) -> Optional[str]:
        """Return the last value of a parameter, or None if absent."""
        values = self.parameters.get(name.upper())
        return values[-1] if values else None


def _find_first(line: str, chars: Iterable[str], start: int = 0) -> Optional[int]:
    """Find the earliest occurrence of any of the given characters."""
    earliest: Optional[int] = None
    for char in chars:
        pos = line.find(char, start)
        if pos != -1 and (earliest is None or pos < earliest):
            earliest = pos
    return earliest


def tokenize_line(line: str, line_number: int = 0) -> ContentLine:
    """Tokenize one logical line.

    Args:
        line: Unfolded content line
        line_number: 1-based logical line index used in error reports

    Returns:
        ContentLine with an upper-cased name and parameter names

    Raises:
        MalformedLineError: On a missing ':' separator, an unterminated
            quote, or an empty or invalid name
    """
    name_end = _find_first(line, _NAME_DELIMITERS)
    if name_end is None:
        raise MalformedLineError(f"missing ':' separator in {line!r}", line_number)

    name = line[:name_end]
    if not name:
        raise MalformedLineError(f"empty property name in {line!r}", line_number)
    if not _RE_NAME.fullmatch(name):
        raise MalformedLineError(f"invalid property name {name!r}", line_number)

    parameters: dict[str, list[str]] = {}
    pos = name_end + 1
    delimiter = line[name_end]
    length = len(line)

    while delimiter == ";":
        eq_pos = line.find("=", pos)
        if eq_pos == -1:
            raise MalformedLineError(
                f"parameter without '=' in {line[pos:]!r}", line_number
            )
        param_name = line[pos:eq_pos]
        if not _RE_NAME.fullmatch(param_name):
            raise MalformedLineError(f"invalid parameter name {param_name!r}", line_number)
        pos = eq_pos + 1

        values = parameters.setdefault(param_name.upper(), [])
        delimiter = ","
        while delimiter == ",":
            if pos < length and line[pos] == _QUOTE:
                end_quote = line.find(_QUOTE, pos + 1)
                if end_quote == -1:
                    raise MalformedLineError(
                        f"unterminated quoted value for parameter {param_name!r}",
                        line_number,
                    )
                values.append(line[pos + 1 : end_quote])
                pos = end_quote + 1
            else:
                end_pos = _find_first(line, _PARAM_DELIMITERS, pos)
                if end_pos is None:
                    raise MalformedLineError(
                        f"missing ':' separator after parameter {param_name!r}",
                        line_number,
                    )
                values.append(line[pos:end_pos])
                pos = end_pos

            if pos >= length:
                raise MalformedLineError(
                    f"missing ':' separator after parameter {param_name!r}", line_number
                )
            delimiter = line[pos]
            if delimiter not in _PARAM_DELIMITERS:
                raise MalformedLineError(
                    f"unexpected {delimiter!r} after value of parameter {param_name!r}",
                    line_number,
                )
            pos += 1

    return ContentLine(
        name=name.upper(),
        parameters=parameters,
        raw_value=line[pos:],
        line_number=line_number,
    )


def iter_content_lines(
    lines: Iterable[LogicalLine],
    strict: bool = False,
    diagnostics: Optional[Diagnostics] = None,
) -> Generator[ContentLine, None, None]:
    """Tokenize a sequence of logical lines.

    In lenient mode a line that cannot be tokenized is skipped and recorded
    as a MALFORMED_LINE diagnostic; in strict mode the error propagates.
    """
    for number, text in lines:
        try:
            yield tokenize_line(text, number)
        except MalformedLineError as e:
            if strict or diagnostics is None:
                raise
            diagnostics.record(DiagnosticKind.MALFORMED_LINE, e.message, number)
