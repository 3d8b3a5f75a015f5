from enum import Enum, auto
from typing import Callable, NamedTuple, Optional, Set, Tuple


class PortDirection(Enum):
    INPUT = auto()
    OUTPUT = auto()


class ValueType(Enum):
    ANY = "any"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"
    DICT = "dict"
    ARRAY = "array"
    OBJECT = "object"
    VECTOR = "vector"
    MATRIX = "matrix"
    COLOR = "color"
    BINARY = "binary"

    @staticmethod
    def parse(value) -> 'ValueType':
        """Accept a ValueType, its string value or its member name."""
        if isinstance(value, ValueType):
            return value
        try:
            return ValueType(str(value).lower())
        except ValueError:
            return ValueType[str(value).upper()]


# (output type, input type) pairs that connect without an explicit converter node
IMPLICIT_CONVERSIONS: Set[Tuple[ValueType, ValueType]] = {
    (ValueType.INT, ValueType.FLOAT),
    (ValueType.BOOL, ValueType.INT),
    (ValueType.VECTOR, ValueType.ARRAY),
    (ValueType.MATRIX, ValueType.ARRAY),
}

# types every other type can flow into
SUPERTYPES: Set[ValueType] = {ValueType.ANY, ValueType.OBJECT}

TypeCompatibility = Callable[[ValueType, ValueType], bool]


def types_are_connectable(output_type: ValueType, input_type: ValueType) -> bool:
    if output_type == input_type:
        return True
    # ANY on the output side is an untyped source, let the input decide at runtime
    if output_type == ValueType.ANY or input_type in SUPERTYPES:
        return True
    return (output_type, input_type) in IMPLICIT_CONVERSIONS


class Vector2(NamedTuple):
    x: float = 0.0
    y: float = 0.0


class Rect(NamedTuple):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def offset(self, dx: float, dy: float) -> 'Rect':
        return self._replace(x=self.x + dx, y=self.y + dy)

    @property
    def position(self) -> Vector2:
        return Vector2(self.x, self.y)

    def to_dict(self) -> dict:
        return self._asdict()

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'Rect':
        if not data:
            return cls()
        return cls(
            float(data.get("x", 0.0)),
            float(data.get("y", 0.0)),
            float(data.get("width", 0.0)),
            float(data.get("height", 0.0)),
        )
