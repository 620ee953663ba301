"""iCalendar lexing, value interpretation and component assembly."""

from .diagnostics import Diagnostic, DiagnosticKind
from .model import Component, ComponentKind, Property
from .parser import ICalParser, ParseResult, parse_calendar
from .serializer import serialize_component
from .tokenizer import ContentLine, tokenize_line
from .unfolder import LogicalLine, unfold
from .value_parser import interpret_value

__all__ = [
    "Component",
    "ComponentKind",
    "ContentLine",
    "Diagnostic",
    "DiagnosticKind",
    "ICalParser",
    "LogicalLine",
    "ParseResult",
    "Property",
    "interpret_value",
    "parse_calendar",
    "serialize_component",
    "tokenize_line",
    "unfold",
]
