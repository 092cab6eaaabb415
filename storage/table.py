from BTrees.OOBTree import OOBTree  # OOBTree: key=column name, value=list of cells

from errors import SchemaError
from storage.values import Value, ValueType


class ColumnStore:
    """
    Row data of one table, held as parallel column arrays.

    Columns are kept in an OOBTree so iteration always yields them sorted by
    name; every column holds exactly row_count values.
    """

    def __init__(self):
        self.columns = OOBTree()  # column name -> list[Value]
        self.types: dict[str, ValueType] = {}
        self.row_count = 0

    def column_names(self) -> list[str]:
        """Column names in catalog (sorted) order."""
        return list(self.columns.keys())

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def column_type(self, name: str) -> ValueType:
        if name not in self.types:
            raise SchemaError(f"No such column '{name}'")
        return self.types[name]

    def add_column(self, name: str, value_type: ValueType):
        """
        Register a column, back-filled with the type default for every existing row.

        Raises:
            SchemaError: If the column already exists.
        """
        if name in self.columns:
            raise SchemaError(f"Column '{name}' already exists")
        self.columns[name] = [Value.default(value_type)] * self.row_count
        self.types[name] = value_type

    def drop_column(self, name: str):
        if name not in self.columns:
            raise SchemaError(f"No such column '{name}'")
        del self.columns[name]
        del self.types[name]

    def append_row(self, row: dict[str, Value]):
        """
        Append one row given as column name -> Value.

        Raises:
            SchemaError: If the row does not cover exactly the table's columns.
        """
        if set(row) != set(self.columns.keys()):
            raise SchemaError("Column mismatch")
        for name, values in self.columns.items():
            values.append(row[name])
        self.row_count += 1

    def cell(self, name: str, row_index: int) -> Value:
        return self.columns[name][row_index]

    def set_cell(self, name: str, row_index: int, value: Value):
        self.columns[name][row_index] = value

    def row(self, row_index: int) -> dict[str, Value]:
        """Return one row as column name -> Value."""
        return {name: values[row_index] for name, values in self.columns.items()}

    def rows(self) -> list[dict[str, Value]]:
        return [self.row(i) for i in range(self.row_count)]

    def copy(self) -> "ColumnStore":
        """Independent copy: the column lists are duplicated, the immutable cells shared."""
        clone = ColumnStore()
        for name, values in self.columns.items():
            clone.columns[name] = list(values)
        clone.types = dict(self.types)
        clone.row_count = self.row_count
        return clone
