from dataclasses import dataclass

from errors import SchemaError
from storage.table import ColumnStore
from storage.values import Value, ValueType


@dataclass(frozen=True)
class ForeignKey:
    """
    A (possibly composite) foreign key from one table's columns to another
    table's primary key columns. Column order is significant: position i of
    referencing_columns pairs with position i of referenced_columns.
    """
    referencing_table: str
    referencing_columns: tuple[str, ...]
    referenced_table: str
    referenced_columns: tuple[str, ...]

    def mentions_table(self, table_name: str) -> bool:
        return table_name in (self.referencing_table, self.referenced_table)

    def mentions_column(self, table_name: str, column: str) -> bool:
        """Return True if the column takes part in this key on either side."""
        if self.referencing_table == table_name and column in self.referencing_columns:
            return True
        return self.referenced_table == table_name and column in self.referenced_columns

    def __str__(self) -> str:
        return (f"{self.referencing_table}({', '.join(self.referencing_columns)}) -> "
                f"{self.referenced_table}({', '.join(self.referenced_columns)})")


class Table:
    """
    Encapsulates a table's definition (column types, primary key) and its row store.
    """

    def __init__(self, name: str, columns: list[tuple[str, ValueType]], primary_key: list[str] = None):
        """
        Parameters:
            name (str): Table name.
            columns (list[tuple[str, ValueType]]): Column definitions in declaration order.
            primary_key (list[str]): Primary key column names, composite keys in order.
        """
        self.name = name
        self.store = ColumnStore()
        for column_name, value_type in columns:
            self.store.add_column(column_name, value_type)
        self.primary_key: list[str] = list(primary_key or [])

    @property
    def column_names(self) -> list[str]:
        return self.store.column_names()

    @property
    def row_count(self) -> int:
        return self.store.row_count

    def has_column(self, name: str) -> bool:
        return self.store.has_column(name)

    def column_type(self, name: str) -> ValueType:
        """
        Raises:
            SchemaError: If the column does not exist in this table.
        """
        if not self.store.has_column(name):
            raise SchemaError(f"No such column '{name}' in table '{self.name}'")
        return self.store.column_type(name)

    def require_columns(self, names):
        """Raise SchemaError naming the first column that does not exist."""
        for name in names:
            self.column_type(name)

    def key_of(self, row: dict[str, Value], columns=None) -> tuple[Value, ...]:
        """Build the composite key tuple of a row (primary key columns by default)."""
        columns = self.primary_key if columns is None else columns
        return tuple(row[column] for column in columns)

    def select_all(self) -> list[dict[str, Value]]:
        """Return all rows as a list of dicts."""
        return self.store.rows()

    def copy(self) -> "Table":
        clone = Table(self.name, [], self.primary_key)
        clone.store = self.store.copy()
        return clone
