"""Stack-based component assembly.

Consumes tokenized content lines, interprets property values, and builds the
component tree. The stack is local to one ``assemble`` call, so concurrent
parses never share state.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Optional

from ..exceptions import (
    InvalidValueError,
    MalformedInputError,
    MalformedLineError,
    UnbalancedNestingError,
)
from .diagnostics import DiagnosticKind, Diagnostics
from .model import Component, ComponentKind, Property
from .tokenizer import ContentLine
from .value_parser import interpret_value, salvage_value

logger = logging.getLogger(__name__)

BEGIN = "BEGIN"
END = "END"


@dataclass
class _OpenComponent:
    """A component whose END has not been seen yet."""

    name: str
    line_number: int
    properties: dict[str, list[Property]] = field(default_factory=dict)
    children: list[Component] = field(default_factory=list)

    def freeze(self) -> Component:
        return Component(
            name=self.name,
            kind=ComponentKind.from_name(self.name),
            properties={key: tuple(props) for key, props in self.properties.items()},
            children=tuple(self.children),
        )


class ComponentAssembler:
    """Builds one VCALENDAR tree from a stream of content lines."""

    def __init__(self, strict: bool = False, diagnostics: Optional[Diagnostics] = None):
        self.strict = strict
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def assemble(self, lines: Iterable[ContentLine]) -> Component:
        """Assemble the first calendar in the stream.

        Raises:
            MalformedInputError: If the first component is not a VCALENDAR,
                no VCALENDAR is found, or properties precede it in strict mode
            UnbalancedNestingError: On mismatched BEGIN/END
            InvalidValueError: On a bad value in strict mode
        """
        stack: list[_OpenComponent] = []
        root: Optional[Component] = None
        last_line = 0
        iterator: Iterator[ContentLine] = iter(lines)

        for line in iterator:
            last_line = line.line_number

            if line.name == BEGIN:
                name = self._component_name(line)
                if not stack and name != ComponentKind.VCALENDAR.value:
                    raise MalformedInputError(
                        f"expected BEGIN:VCALENDAR, found BEGIN:{name}", line.line_number
                    )
                stack.append(_OpenComponent(name=name, line_number=line.line_number))
                self._check_known(name, line.line_number)
                continue

            if line.name == END:
                name = self._component_name(line)
                if not stack:
                    raise UnbalancedNestingError(
                        f"END:{name} with no open component", line.line_number
                    )
                current = stack.pop()
                if current.name != name:
                    raise UnbalancedNestingError(
                        f"END:{name} does not match BEGIN:{current.name} "
                        f"opened on line {current.line_number}",
                        line.line_number,
                    )
                component = current.freeze()
                if stack:
                    stack[-1].children.append(component)
                    continue
                root = component
                break

            if not stack:
                self._before_calendar(line)
                continue
            stack[-1].properties.setdefault(line.name, []).append(self._build_property(line))

        if stack:
            open_names = " > ".join(item.name for item in stack)
            raise UnbalancedNestingError(
                f"input ended with unclosed components: {open_names}", last_line
            )
        if root is None:
            raise MalformedInputError("no VCALENDAR component found", last_line or None)

        self._check_trailing(iterator)
        return root

    def _component_name(self, line: ContentLine) -> str:
        name = line.raw_value.strip().upper()
        if not name:
            raise UnbalancedNestingError(f"{line.name} without a component name", line.line_number)
        return name

    def _build_property(self, line: ContentLine) -> Property:
        parameters = {key: tuple(values) for key, values in line.parameters.items()}
        try:
            value = interpret_value(line.name, line.parameters, line.raw_value)
        except InvalidValueError as e:
            e.line_number = line.line_number
            if self.strict:
                raise
            self.diagnostics.record(
                DiagnosticKind.INVALID_VALUE, e.message, line.line_number, line.name
            )
            value = salvage_value(line.name, line.parameters, line.raw_value)
        return Property(
            name=line.name, parameters=parameters, value=value, line_number=line.line_number
        )

    def _before_calendar(self, line: ContentLine) -> None:
        message = f"{line.name} outside of VCALENDAR"
        if self.strict:
            raise MalformedInputError(message, line.line_number)
        self.diagnostics.record(
            DiagnosticKind.MALFORMED_LINE, message, line.line_number, line.name
        )

    def _check_known(self, name: str, line_number: int) -> None:
        if ComponentKind.from_name(name) != ComponentKind.UNKNOWN or name.startswith("X-"):
            return
        self.diagnostics.record(
            DiagnosticKind.UNKNOWN_COMPONENT,
            f"unrecognized component {name} kept as-is",
            line_number,
        )

    def _check_trailing(self, iterator: Iterator[ContentLine]) -> None:
        """Look at the first line after the calendar and stop reading.

        A line that cannot be unfolded or tokenized is recorded as ignored
        content too.
        """
        try:
            following = next(iterator, None)
        except (MalformedInputError, MalformedLineError) as e:
            self.diagnostics.record(
                DiagnosticKind.IGNORED_CONTENT,
                f"unreadable content after END:VCALENDAR ignored: {e.message}",
                e.line_number,
            )
            return
        if following is None:
            return
        if following.name == BEGIN and following.raw_value.strip().upper() == "VCALENDAR":
            self.diagnostics.record(
                DiagnosticKind.MULTIPLE_CALENDARS,
                "input holds more than one VCALENDAR, only the first is parsed",
                following.line_number,
            )
        else:
            self.diagnostics.record(
                DiagnosticKind.IGNORED_CONTENT,
                f"content after END:VCALENDAR ignored, starting with {following.name}",
                following.line_number,
            )
