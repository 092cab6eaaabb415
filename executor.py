from dataclasses import dataclass, field
from typing import Optional, Union

from catalog.schema import Schema
from catalog.table import Table, ForeignKey
from constraints import ConstraintEngine
from errors import DatabaseError, ParseError, SchemaError
from predicate import WherePattern, parse_where, row_checker, select_fold, update_fold
from sql_parser import SQLParser, Statement, TokenCursor
from storage.values import Value, ValueType


@dataclass
class ResultSet:
    """Rows returned by SELECT: column names plus row-major cells."""
    columns: list[str]
    rows: list[list[Value]] = field(default_factory=list)


@dataclass
class ExecutionResult:
    """What a successful statement reports back."""
    message: str
    result_set: Optional[ResultSet] = None


@dataclass
class Outcome:
    """Result of one statement in a batch: either a result or the error that aborted it."""
    statement: Statement
    result: Optional[ExecutionResult] = None
    error: Optional[DatabaseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _plain_names(tokens: list[str], what: str) -> list[str]:
    """Reject nested groups inside a column or value list."""
    for token in tokens:
        if token in ("(", ")"):
            raise ParseError(f"Unexpected '{token}' in {what}")
    return tokens


class Executor:
    """
    Executes command statements against the in-memory catalog.
    """

    def __init__(self, schema: Schema, parser: SQLParser = None):
        """
        Initialize the executor with a schema instance.
        """
        self.schema = schema
        self.constraints = ConstraintEngine(schema)
        self.parser = parser or SQLParser()

    def run(self, source: Union[str, list[str]]) -> list[Outcome]:
        """
        Execute every statement found in raw text or a token list.

        A statement that fails is reported in its Outcome and does not stop
        the statements after it.

        Returns:
            list[Outcome]: One outcome per statement, in input order.
        """
        if isinstance(source, str):
            try:
                tokens = self.parser.tokenize(source)
            except ParseError as error:
                return [Outcome(Statement("", [], error), error=error)]
        else:
            tokens = source

        outcomes = []
        for statement in self.parser.segment(tokens, lenient=True):
            if statement.error is not None:
                outcomes.append(Outcome(statement, error=statement.error))
                continue
            try:
                outcomes.append(Outcome(statement, result=self.execute(statement.tokens)))
            except DatabaseError as error:
                outcomes.append(Outcome(statement, error=error))
        return outcomes

    def execute(self, tokens: list[str]) -> ExecutionResult:
        """
        Dispatch one statement based on its leading keyword.

        Parameters:
            tokens (list[str]): Tokens of exactly one statement.

        Raises:
            DatabaseError: If the statement is malformed or violates the catalog.
        """
        if not tokens:
            raise ParseError("Empty statement")
        handlers = {
            "create": self._execute_create,
            "insert": self._execute_insert,
            "select": self._execute_select,
            "update": self._execute_update,
            "alter": self._execute_alter,
            "drop": self._execute_drop,
        }
        handler = handlers.get(tokens[0])
        if handler is None:
            raise ParseError(f"Unknown command '{tokens[0]}'")
        return handler(TokenCursor(tokens))

    @staticmethod
    def _expect_end(cursor: TokenCursor):
        if not cursor.at_end():
            raise ParseError(f"Unexpected '{cursor.peek()}' at end of statement")

    # ------------------------------------------------------------------
    # CREATE
    # ------------------------------------------------------------------

    def _execute_create(self, cursor: TokenCursor) -> ExecutionResult:
        """
        Handle 'create [table] <name> ( <col> <type> ... [primary key ( <col> ... )] )'.

        The table is registered, then its primary key is validated; if that
        fails the table is dropped again so nothing of it persists.
        """
        cursor.expect("create")
        cursor.accept("table")
        table_name = cursor.name("table name")
        body = TokenCursor(cursor.take_group())
        self._expect_end(cursor)

        columns: list[tuple[str, ValueType]] = []
        primary_keys: list[str] = []

        while not body.at_end():
            if body.accept("primary"):
                body.expect("key")
                if body.peek() == "(":
                    # Table-level 'primary key ( col ... )'
                    key_columns = _plain_names(body.take_group(), "primary key clause")
                    if not key_columns:
                        raise ParseError("Empty primary key clause")
                else:
                    # Inline '<col> <type> primary key'
                    if not columns:
                        raise ParseError("'primary key' must follow a column definition")
                    key_columns = [columns[-1][0]]
                for column in key_columns:
                    if column not in primary_keys:
                        primary_keys.append(column)
                continue

            column_name = body.name("column name")
            value_type = ValueType.from_keyword(body.next(f"type for column '{column_name}'"))
            if any(name == column_name for name, _ in columns):
                raise SchemaError(f"Column '{column_name}' is defined twice")
            columns.append((column_name, value_type))

        if not columns:
            raise ParseError(f"Table '{table_name}' defines no columns")

        table = Table(table_name, columns, primary_key=primary_keys)
        self.schema.create_table(table)
        try:
            self.constraints.validate_primary_key(table)
        except DatabaseError:
            self.schema.drop_table(table_name)
            raise

        column_list = ", ".join(f"{name} {value_type.value}" for name, value_type in columns)
        return ExecutionResult(
            f"Table '{table_name}' created with columns ({column_list}) "
            f"and primary key ({', '.join(primary_keys)})"
        )

    # ------------------------------------------------------------------
    # INSERT
    # ------------------------------------------------------------------

    def _execute_insert(self, cursor: TokenCursor) -> ExecutionResult:
        """
        Execute 'insert into <table> ( col... ) values ( val... )'.

        Every column of the table must be given. All checks run before the
        row is appended, so a rejected insert leaves the table untouched.
        """
        cursor.expect("insert")
        cursor.expect("into")
        table_name = cursor.name("table name")
        column_names = _plain_names(cursor.take_group(), "column list")
        cursor.expect("values")
        values = _plain_names(cursor.take_group(), "value list")
        self._expect_end(cursor)

        table = self.schema.require_table(table_name)

        if len(column_names) != len(values):
            raise ParseError(
                f"There is a mismatch between {len(values)} value(s) and {len(column_names)} column(s)"
            )
        if len(set(column_names)) != len(column_names):
            raise ParseError("A column is listed more than once in the insert statement")
        table.require_columns(column_names)

        literals = dict(zip(column_names, values))
        for column in table.column_names:
            if column not in literals:
                raise SchemaError(f"Column '{column}' missing from insert statement")

        # Convert and assemble row
        row = {column: Value.coerce(literals[column], table.column_type(column))
               for column in table.column_names}

        self.constraints.check_insert(table, row)
        table.store.append_row(row)
        return ExecutionResult(f"Inserted into table '{table_name}'")

    # ------------------------------------------------------------------
    # SELECT
    # ------------------------------------------------------------------

    def _execute_select(self, cursor: TokenCursor) -> ExecutionResult:
        """
        Execute 'select <col ...|*> from <table> [where ...]'.
        """
        cursor.expect("select")
        targets = []
        while cursor.peek() != "from":
            targets.append(cursor.next("'from'"))
        cursor.expect("from")
        table_name = cursor.name("table name")
        pattern = self._where_clause(cursor)

        if not targets:
            raise ParseError("No columns selected")

        table = self.schema.require_table(table_name)
        if targets == ["*"]:
            columns = table.column_names
        elif "*" in targets:
            raise ParseError("'*' cannot be combined with column names")
        else:
            for target in targets:
                if not table.has_column(target):
                    raise SchemaError(f"No such column '{target}' in table '{table_name}'")
            columns = targets

        if pattern is not None:
            table.require_columns(pattern.columns)

        result = ResultSet(columns)
        for row_index in range(table.row_count):
            row = table.store.row(row_index)
            if pattern is not None and not select_fold(pattern, row_checker(row)):
                continue
            result.rows.append([row[column] for column in columns])

        return ExecutionResult(f"{len(result.rows)} row(s) returned.", result)

    # ------------------------------------------------------------------
    # UPDATE
    # ------------------------------------------------------------------

    def _execute_update(self, cursor: TokenCursor) -> ExecutionResult:
        """
        Execute 'update <table> set <col> = <val> ... [where ...]'.

        The post-update state is validated against the primary and foreign
        keys before any cell is written.
        """
        cursor.expect("update")
        table_name = cursor.name("table name")
        cursor.expect("set")

        assignments: list[tuple[str, str]] = []
        while True:
            column = cursor.name("column name")
            cursor.expect("=")
            assignments.append((column, cursor.next("value")))
            if cursor.at_end() or cursor.peek() == "where":
                break
        pattern = self._where_clause(cursor)

        table = self.schema.require_table(table_name)

        # Parse assignments from SET clause and convert types based on schema
        updates: dict[str, Value] = {}
        for column, literal in assignments:
            if column in updates:
                raise ParseError(f"Column '{column}' is set more than once")
            updates[column] = Value.coerce(literal, table.column_type(column))

        if pattern is not None:
            table.require_columns(pattern.columns)

        # Identify target rows
        rows = table.select_all()
        targets = [
            index for index, row in enumerate(rows)
            if pattern is None or update_fold(pattern, row_checker(row))
        ]

        new_rows = list(rows)
        for index in targets:
            new_rows[index] = {**rows[index], **updates}
        self.constraints.check_update(table, new_rows)

        # Apply updates
        for index in targets:
            for column, value in updates.items():
                table.store.set_cell(column, index, value)

        return ExecutionResult(f"Updated {len(targets)} row(s) in '{table_name}'")

    def _where_clause(self, cursor: TokenCursor) -> Optional[WherePattern]:
        """Parse an optional trailing WHERE clause; anything else left over is an error."""
        if cursor.accept("where"):
            pattern = parse_where(cursor.tokens[cursor.pos:])
            cursor.pos = len(cursor.tokens)
            return pattern
        self._expect_end(cursor)
        return None

    # ------------------------------------------------------------------
    # ALTER
    # ------------------------------------------------------------------

    def _execute_alter(self, cursor: TokenCursor) -> ExecutionResult:
        """
        Execute 'alter table <table>' followed by add/drop/foreign key clauses.

        All clauses are parsed first, then applied in order to a copy of the
        catalog. Only when every clause succeeds there are they applied for
        real, so a failing clause leaves the table as it was.
        """
        cursor.expect("alter")
        cursor.expect("table")
        table_name = cursor.name("table name")

        clauses = []
        while not cursor.at_end():
            keyword = cursor.next()
            if keyword == "add":
                column = cursor.name("column name")
                clauses.append(("add", (column, cursor.next(f"type for column '{column}'"))))
            elif keyword == "drop":
                clauses.append(("drop", (cursor.name("column name"),)))
            elif keyword == "foreign":
                cursor.expect("key")
                columns = _plain_names(cursor.take_group(), "foreign key columns")
                cursor.expect("references")
                referenced_table = cursor.name("referenced table name")
                referenced_columns = _plain_names(cursor.take_group(), "referenced columns")
                clauses.append(("foreign", (columns, referenced_table, referenced_columns)))
            else:
                raise ParseError(f"Unknown ALTER clause '{keyword}' (expected add, drop or foreign key)")

        if not clauses:
            raise ParseError("ALTER TABLE needs an add, drop or foreign key clause")

        self.schema.require_table(table_name)
        Executor(self.schema.copy(), self.parser)._apply_alter(table_name, clauses)
        messages = self._apply_alter(table_name, clauses)
        return ExecutionResult("\n".join(messages))

    def _apply_alter(self, table_name: str, clauses: list[tuple[str, tuple]]) -> list[str]:
        handlers = {
            "add": self._alter_add,
            "drop": self._alter_drop,
            "foreign": self._alter_foreign_key,
        }
        table = self.schema.require_table(table_name)
        return [handlers[kind](table, *args) for kind, args in clauses]

    def _alter_add(self, table: Table, column: str, type_keyword: str) -> str:
        """Add a column, back-filled with the type default for every existing row."""
        if table.has_column(column):
            raise SchemaError(f"Column '{column}' already exists in table '{table.name}'")
        value_type = ValueType.from_keyword(type_keyword)
        table.store.add_column(column, value_type)
        return f"Column '{column}' ({value_type.value}) added to '{table.name}'"

    def _alter_drop(self, table: Table, column: str) -> str:
        self.constraints.check_column_droppable(table, column)
        table.store.drop_column(column)
        return f"Column '{column}' dropped from '{table.name}'"

    def _alter_foreign_key(self, table: Table, columns: list[str], referenced_table: str,
                           referenced_columns: list[str]) -> str:
        fk = ForeignKey(
            referencing_table=table.name,
            referencing_columns=tuple(columns),
            referenced_table=referenced_table,
            referenced_columns=tuple(referenced_columns),
        )
        self.constraints.validate_foreign_key(fk)
        self.schema.add_foreign_key(fk)
        return f"Foreign key {fk} added"

    # ------------------------------------------------------------------
    # DROP
    # ------------------------------------------------------------------

    def _execute_drop(self, cursor: TokenCursor) -> ExecutionResult:
        """
        Execute DROP TABLE statements.
        """
        cursor.expect("drop")
        cursor.expect("table")
        table_name = cursor.name("table name")
        self._expect_end(cursor)

        purged = self.schema.drop_table(table_name)
        message = f"Table '{table_name}' dropped."
        if purged:
            message += f" Removed {len(purged)} foreign key(s)."
        return ExecutionResult(message)
