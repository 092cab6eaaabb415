# schema.py

from BTrees.OOBTree import OOBTree

from errors import SchemaError
from .table import Table, ForeignKey


class Schema:
    """
    The catalog: every table definition plus primary and foreign key metadata.
    """

    def __init__(self, name: str = "default"):
        """
        Initialize an empty catalog.

        Attributes:
            tables (OOBTree): Mapping of table names to Table objects, sorted by name.
            foreign_keys (list[ForeignKey]): Every registered foreign key, in creation order.
        """
        self.name = name
        self.tables = OOBTree()
        self.foreign_keys: list[ForeignKey] = []

    @property
    def primary_keys(self) -> dict[str, list[str]]:
        """Global primary key index: table name -> primary key column names."""
        return {name: list(table.primary_key) for name, table in self.tables.items()}

    def create_table(self, table: Table):
        """
        Add a new table to the catalog.

        Raises:
            SchemaError: If a table with the same name already exists.
        """
        if table.name in self.tables:
            raise SchemaError(f"Table '{table.name}' already exists")
        self.tables[table.name] = table

    def has_table(self, table_name: str) -> bool:
        """Return True if the catalog contains a table by that name."""
        return table_name in self.tables

    def get_table(self, table_name: str) -> Table:
        """Retrieve a Table object by name (or None if not found)."""
        return self.tables.get(table_name)

    def require_table(self, table_name: str) -> Table:
        """
        Retrieve a Table object by name.

        Raises:
            SchemaError: If the table does not exist.
        """
        table = self.tables.get(table_name)
        if table is None:
            raise SchemaError(f"No such table exists: '{table_name}'")
        return table

    def drop_table(self, table_name: str) -> list[ForeignKey]:
        """
        Remove a table together with its primary key and every foreign key
        naming it on either side.

        Returns:
            list[ForeignKey]: The foreign keys purged along with the table.

        Raises:
            SchemaError: If the table does not exist.
        """
        if table_name not in self.tables:
            raise SchemaError(f"No such table exists: '{table_name}'")

        purged = [fk for fk in self.foreign_keys if fk.mentions_table(table_name)]
        self.foreign_keys = [fk for fk in self.foreign_keys if not fk.mentions_table(table_name)]
        del self.tables[table_name]
        return purged

    def copy(self) -> "Schema":
        """
        Copy the catalog so it can be changed without touching this one.

        Tables and their rows are copied; foreign keys are immutable and shared.
        """
        clone = Schema(self.name)
        for name, table in self.tables.items():
            clone.tables[name] = table.copy()
        clone.foreign_keys = list(self.foreign_keys)
        return clone

    def add_foreign_key(self, foreign_key: ForeignKey):
        self.foreign_keys.append(foreign_key)

    def foreign_keys_from(self, table_name: str) -> list[ForeignKey]:
        """Foreign keys whose referencing table is table_name."""
        return [fk for fk in self.foreign_keys if fk.referencing_table == table_name]

    def foreign_keys_to(self, table_name: str) -> list[ForeignKey]:
        """Foreign keys whose referenced table is table_name."""
        return [fk for fk in self.foreign_keys if fk.referenced_table == table_name]
