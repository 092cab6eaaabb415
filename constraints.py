from catalog.schema import Schema
from catalog.table import Table, ForeignKey
from errors import ConstraintError, SchemaError
from storage.values import Value


def _as_text(values) -> tuple[str, ...]:
    """Stringified tuple used to match foreign key values across tables."""
    return tuple(str(value) for value in values)


class ConstraintEngine:
    """
    Checks primary key, foreign key and drop-safety rules against the catalog.

    Every check only reads; callers mutate the catalog after all checks for a
    statement have passed.
    """

    def __init__(self, schema: Schema):
        self.schema = schema

    # ------------------------------------------------------------------
    # Primary keys
    # ------------------------------------------------------------------

    def validate_primary_key(self, table: Table):
        """
        Ensure a freshly created table declares a primary key made of its own columns.

        Raises:
            ConstraintError: If no primary key column was declared.
            SchemaError: If a primary key column does not exist in the table.
        """
        if not table.primary_key:
            raise ConstraintError(f"No primary key in table '{table.name}'")
        for column in table.primary_key:
            if not table.has_column(column):
                raise SchemaError(
                    f"Primary key column '{column}' does not exist in table '{table.name}'"
                )

    def check_primary_key_unique(self, table: Table, row: dict[str, Value]):
        """
        Reject a new row whose composite primary key already exists.

        Tables without a primary key are not checked.
        """
        if not table.primary_key:
            return
        new_key = table.key_of(row)
        for existing in table.select_all():
            if table.key_of(existing) == new_key:
                raise ConstraintError(
                    f"Composite primary key constraint violated! Duplicate entry "
                    f"({', '.join(_as_text(new_key))}) in table '{table.name}'"
                )

    # ------------------------------------------------------------------
    # Foreign keys
    # ------------------------------------------------------------------

    @staticmethod
    def has_match(fk: ForeignKey, row: dict[str, Value], candidates: list[dict[str, Value]]) -> bool:
        """Linear scan for a candidate row whose referenced columns equal the row's referencing columns."""
        wanted = _as_text(row[column] for column in fk.referencing_columns)
        return any(
            _as_text(candidate[column] for column in fk.referenced_columns) == wanted
            for candidate in candidates
        )

    def check_references_exist(self, table: Table, row: dict[str, Value]):
        """
        Ensure every foreign key leaving table finds the row's values in its referenced table.

        Raises:
            ConstraintError: If a referencing tuple has no match.
        """
        for fk in self.schema.foreign_keys_from(table.name):
            referenced = self.schema.require_table(fk.referenced_table)
            if not self.has_match(fk, row, referenced.select_all()):
                raise ConstraintError(
                    f"Foreign key constraint failed: ({', '.join(_as_text(row[c] for c in fk.referencing_columns))}) "
                    f"not found in referenced table '{fk.referenced_table}'"
                )

    def check_insert(self, table: Table, row: dict[str, Value]):
        """Run every check a new row must pass before it is appended."""
        self.check_primary_key_unique(table, row)
        self.check_references_exist(table, row)

    def check_update(self, table: Table, new_rows: list[dict[str, Value]]):
        """
        Validate the state a table would have after an UPDATE.

        Parameters:
            table (Table): The table being updated.
            new_rows (list[dict]): Every row of the table as it would look afterwards.

        Raises:
            ConstraintError: On a duplicate primary key, a referencing tuple
                without a match, or a referenced key that is still in use.
        """
        # Primary key uniqueness across the new state
        if table.primary_key:
            seen = set()
            for row in new_rows:
                key = table.key_of(row)
                if key in seen:
                    raise ConstraintError(
                        f"Composite primary key constraint violated! Duplicate entry "
                        f"({', '.join(_as_text(key))}) in table '{table.name}'"
                    )
                seen.add(key)

        # Keys this table holds must still point at existing rows
        for fk in self.schema.foreign_keys_from(table.name):
            if fk.referenced_table == table.name:
                candidates = new_rows
            else:
                candidates = self.schema.require_table(fk.referenced_table).select_all()
            for row in new_rows:
                if not self.has_match(fk, row, candidates):
                    raise ConstraintError(
                        f"Foreign key constraint failed: updated row has no match in "
                        f"referenced table '{fk.referenced_table}'"
                    )

        # Keys other tables hold on this one must not disappear
        for fk in self.schema.foreign_keys_to(table.name):
            if fk.referencing_table == table.name:
                sources = new_rows
            else:
                sources = self.schema.require_table(fk.referencing_table).select_all()
            for row in sources:
                if not self.has_match(fk, row, new_rows):
                    raise ConstraintError(
                        f"Cannot update '{table.name}': key still referenced by "
                        f"'{fk.referencing_table}' ({', '.join(fk.referencing_columns)})"
                    )

    def validate_foreign_key(self, fk: ForeignKey):
        """
        Check a foreign key before it is registered.

        The checks run in a fixed order: per-position type agreement, duplicate
        key, referenced table, referenced columns, referencing columns, match
        with the referenced primary key, arity, and finally the rows already
        stored in the referencing table.

        Raises:
            SchemaError: On missing tables/columns or a type mismatch.
            ConstraintError: On any other rule violation.
        """
        referencing = self.schema.require_table(fk.referencing_table)
        referenced = self.schema.get_table(fk.referenced_table)

        if referenced is not None:
            for local, remote in zip(fk.referencing_columns, fk.referenced_columns):
                if not (referencing.has_column(local) and referenced.has_column(remote)):
                    continue
                local_type = referencing.column_type(local)
                remote_type = referenced.column_type(remote)
                if local_type is not remote_type:
                    raise SchemaError(
                        f"Type mismatch: '{fk.referencing_table}.{local}' is {local_type.value} "
                        f"but '{fk.referenced_table}.{remote}' is {remote_type.value}"
                    )

        if fk in self.schema.foreign_keys:
            raise ConstraintError("This foreign key relationship already exists.")

        if referenced is None:
            raise SchemaError(f"Table '{fk.referenced_table}' does not exist.")

        for column in fk.referenced_columns:
            if not referenced.has_column(column):
                raise SchemaError(
                    f"Referenced column '{column}' does not exist in table '{fk.referenced_table}'."
                )
        for column in fk.referencing_columns:
            if not referencing.has_column(column):
                raise SchemaError(
                    f"Referencing column '{column}' does not exist in table '{fk.referencing_table}'."
                )

        if sorted(fk.referenced_columns) != sorted(referenced.primary_key):
            raise ConstraintError(
                f"Referenced columns do not match the primary key of '{fk.referenced_table}'."
            )

        if len(fk.referencing_columns) != len(fk.referenced_columns):
            raise ConstraintError("Mismatched column count in referencing and referenced keys.")

        candidates = referenced.select_all()
        for row in referencing.select_all():
            if not self.has_match(fk, row, candidates):
                raise ConstraintError(
                    f"Existing rows of '{fk.referencing_table}' have no match in '{fk.referenced_table}'."
                )

    # ------------------------------------------------------------------
    # Drop safety
    # ------------------------------------------------------------------

    def check_column_droppable(self, table: Table, column: str):
        """
        Raises:
            SchemaError: If the column does not exist.
            ConstraintError: If the column belongs to the primary key or to any foreign key.
        """
        table.column_type(column)
        if column in table.primary_key:
            raise ConstraintError(
                f"Cannot drop '{column}': it is part of the primary key of '{table.name}'"
            )
        for fk in self.schema.foreign_keys:
            if fk.mentions_column(table.name, column):
                raise ConstraintError(f"Cannot drop '{column}': it is part of foreign key {fk}")
