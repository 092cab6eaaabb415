"""Exception types shared by the parser, the catalog and the executors.

Every error raised while running a statement derives from DatabaseError, so the
batch runner and the REPL can report it and move on to the next statement
without catching unrelated exceptions.
"""


class DatabaseError(Exception):
    """Base class for all Simple-RelStore errors."""


class ParseError(DatabaseError):
    """
    Raised when a statement has the wrong shape.

    Examples:
      - Unbalanced parentheses or a missing keyword
      - A statement that runs past the end of the input
      - An unknown leading keyword
    """


class SchemaError(DatabaseError):
    """
    Raised when a statement is well formed but does not fit the catalog.

    Examples:
      - Missing table or column
      - Table or column already exists
      - Literal that does not coerce to the column type
    """


class ConstraintError(DatabaseError):
    """
    Raised when a data integrity constraint would be violated.

    Examples:
      - Duplicate composite primary key
      - Foreign key tuple with no match in the referenced table
      - Dropping a column that belongs to a primary or foreign key
    """


class StorageError(DatabaseError):
    """Raised when a snapshot cannot be written or a script cannot be read."""
