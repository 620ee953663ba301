"""Exception hierarchy for iCalendar parsing errors.

Stream-level and nesting errors always abort a parse. Line-level and
value-level errors abort only when the parser runs in strict mode; in
lenient mode they are recorded as diagnostics instead.
"""

from typing import Optional


class ICalError(Exception):
    """Base exception for all iCalendar parsing errors."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line_number = line_number

    def __str__(self) -> str:
        if self.line_number is None:
            return self.message
        return f"line {self.line_number}: {self.message}"


class MalformedInputError(ICalError):
    """The stream itself is broken.

    Raised when:
    - A continuation line appears with no line before it
    - A bare LF terminator is found in strict mode
    - Byte input is not valid UTF-8 and decode errors are strict
    - The input holds no VCALENDAR at all
    """


class MalformedLineError(ICalError):
    """A single logical line cannot be split into name, parameters and value."""


class UnbalancedNestingError(ICalError):
    """BEGIN/END delimiters do not nest properly.

    Always fatal: once nesting is broken the component tree cannot be trusted.
    """


class InvalidValueError(ICalError):
    """A property value does not match its resolved value type."""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        property_name: Optional[str] = None,
        value_type: Optional[str] = None,
    ):
        super().__init__(message, line_number)
        self.property_name = property_name
        self.value_type = value_type
