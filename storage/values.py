import enum
import re
from dataclasses import dataclass
from typing import Union

from errors import SchemaError

# Integer cells are signed 64-bit
INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1
INTEGER_LITERAL = re.compile(r"[+-]?[0-9]+")


class ValueType(enum.Enum):
    """Column types accepted by CREATE and ALTER ADD, keyed by their keyword."""
    INTEGER = "int"
    FLOAT = "float"
    TEXT = "string"

    @staticmethod
    def from_keyword(keyword: str) -> "ValueType":
        """
        Resolve a type keyword such as 'int' to its ValueType.

        Raises:
            SchemaError: If the keyword names no supported type.
        """
        for value_type in ValueType:
            if value_type.value == keyword:
                return value_type
        raise SchemaError(f"Unsupported column type: '{keyword}' (expected int, float or string)")


@dataclass(frozen=True)
class Value:
    """
    A single cell: an Integer, a Float or a Text, tagged by its ValueType.

    Values of different tags never compare; asking them to raises SchemaError.
    """
    type: ValueType
    data: Union[int, float, str]

    @classmethod
    def of_int(cls, data: int) -> "Value":
        return cls(ValueType.INTEGER, int(data))

    @classmethod
    def of_float(cls, data: float) -> "Value":
        return cls(ValueType.FLOAT, float(data))

    @classmethod
    def of_text(cls, data: str) -> "Value":
        return cls(ValueType.TEXT, str(data))

    @classmethod
    def default(cls, value_type: ValueType) -> "Value":
        """Return the value a new column is filled with: 0, 0.0 or ''."""
        if value_type is ValueType.INTEGER:
            return cls.of_int(0)
        if value_type is ValueType.FLOAT:
            return cls.of_float(0.0)
        return cls.of_text("")

    @classmethod
    def coerce(cls, literal: str, value_type: ValueType) -> "Value":
        """
        Convert a statement literal to a Value of the given column type.

        Parameters:
            literal (str): Token text taken from the statement.
            value_type (ValueType): The column's established type.

        Raises:
            SchemaError: If the literal is not a valid integer/float for the column.
        """
        if value_type is ValueType.INTEGER:
            if not INTEGER_LITERAL.fullmatch(literal):
                raise SchemaError(f"Type mismatch: '{literal}' is not an int")
            number = int(literal)
            if not INT64_MIN <= number <= INT64_MAX:
                raise SchemaError(f"Out of range: '{literal}' does not fit a 64-bit int")
            return cls.of_int(number)
        if value_type is ValueType.FLOAT:
            try:
                return cls.of_float(float(literal))
            except ValueError:
                raise SchemaError(f"Type mismatch: '{literal}' is not a float") from None
        return cls.of_text(literal)

    def compare(self, other: "Value") -> int:
        """
        Three-way comparison against a value of the same tag.

        Returns:
            int: -1, 0 or 1.

        Raises:
            SchemaError: If the two values carry different tags.
        """
        if self.type is not other.type:
            raise SchemaError(
                f"Type mismatch: cannot compare {self.type.value} with {other.type.value}"
            )
        if self.data < other.data:
            return -1
        if self.data > other.data:
            return 1
        return 0

    def __str__(self) -> str:
        if self.type is ValueType.FLOAT:
            return repr(self.data)
        return str(self.data)
