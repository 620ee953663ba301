"""Component tree models produced by the assembler."""

from collections.abc import Iterator
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, WrapSerializer

from .values import Value


def _as_dict(mapping: Any, handler: Any) -> Any:
    return handler(dict(mapping))


# Validated dicts are stored behind a read-only proxy and dumped as plain dicts
ParameterMap = Annotated[
    dict[str, tuple[str, ...]],
    AfterValidator(MappingProxyType),
    WrapSerializer(_as_dict),
]


class ComponentKind(str, Enum):
    """Known component names; UNKNOWN covers vendor and future components."""

    VCALENDAR = "VCALENDAR"
    VEVENT = "VEVENT"
    VTODO = "VTODO"
    VJOURNAL = "VJOURNAL"
    VFREEBUSY = "VFREEBUSY"
    VTIMEZONE = "VTIMEZONE"
    VALARM = "VALARM"
    STANDARD = "STANDARD"
    DAYLIGHT = "DAYLIGHT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_name(cls, name: str) -> "ComponentKind":
        upper = name.upper()
        if upper == cls.UNKNOWN.value:
            return cls.UNKNOWN
        try:
            return cls(upper)
        except ValueError:
            return cls.UNKNOWN


class Property(BaseModel):
    """A named, possibly parameterized, typed value on a component."""

    name: str
    parameters: ParameterMap = Field(default_factory=dict, validate_default=True)
    value: Value
    line_number: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    def __eq__(self, other: object) -> bool:
        # Source position is not part of a property's identity
        if not isinstance(other, Property):
            return NotImplemented
        return (self.name, self.parameters, self.value) == (
            other.name,
            other.parameters,
            other.value,
        )

    __hash__ = None  # type: ignore[assignment]

    def get_parameter(self, name: str) -> Optional[str]:
        """Return the last value of a parameter, or None if absent."""
        values = self.parameters.get(name.upper())
        return values[-1] if values else None


PropertyMap = Annotated[
    dict[str, tuple[Property, ...]],
    AfterValidator(MappingProxyType),
    WrapSerializer(_as_dict),
]


class Component(BaseModel):
    """A BEGIN/END delimited block with its properties and sub-components."""

    name: str
    kind: ComponentKind
    properties: PropertyMap = Field(default_factory=dict, validate_default=True)
    children: tuple["Component", ...] = ()

    model_config = ConfigDict(frozen=True)

    def get(self, name: str) -> Optional[Property]:
        """Return the first property with this name."""
        found = self.properties.get(name.upper())
        return found[0] if found else None

    def get_all(self, name: str) -> tuple[Property, ...]:
        """Return every property with this name, in source order."""
        return self.properties.get(name.upper(), ())

    def value(self, name: str) -> Optional[Value]:
        """Return the value of the first property with this name."""
        prop = self.get(name)
        return prop.value if prop is not None else None

    @property
    def property_names(self) -> list[str]:
        return list(self.properties)

    def components(self, kind: Optional[ComponentKind] = None) -> list["Component"]:
        """Direct children, optionally filtered by kind."""
        return [child for child in self.children if kind is None or child.kind == kind]

    def walk(self, kind: Optional[ComponentKind] = None) -> Iterator["Component"]:
        """Depth-first iteration over this component and all descendants."""
        if kind is None or self.kind == kind:
            yield self
        for child in self.children:
            yield from child.walk(kind)


Component.model_rebuild()
