# predicate.py

from dataclasses import dataclass, field
from typing import Callable

from errors import ParseError
from storage.values import Value

OPERATORS = ("=", "<", ">", "<=", ">=")
CONNECTIVES = ("and", "or")


@dataclass
class WhereCondition:
    """A single '<column> <operator> <literal>' test."""
    column: str
    operator: str
    value: str


@dataclass
class WherePattern:
    """
    Parsed WHERE clause: conditions in order, plus the logical operators
    between them (logical_operators[i] sits between conditions i and i + 1).
    """
    conditions: list[WhereCondition] = field(default_factory=list)
    logical_operators: list[str] = field(default_factory=list)

    @property
    def columns(self) -> list[str]:
        return [condition.column for condition in self.conditions]


def parse_where(tokens: list[str]) -> WherePattern:
    """
    Parse the tokens following 'where' into a WherePattern.

    Tokens are read as (column, operator, value) triples; 'and'/'or' tokens
    between triples are collected separately.

    Raises:
        ParseError: If a triple is incomplete, an operator is unknown, or the
            connectives do not sit between conditions.
    """
    pattern = WherePattern()
    pending: list[str] = []

    for token in tokens:
        if token in CONNECTIVES and not pending:
            if len(pattern.logical_operators) != len(pattern.conditions) - 1 or not pattern.conditions:
                raise ParseError(f"Misplaced '{token}' in WHERE clause")
            pattern.logical_operators.append(token)
            continue

        pending.append(token)
        if len(pending) == 3:
            column, operator, value = pending
            if operator not in OPERATORS:
                raise ParseError(
                    f"Unsupported operator '{operator}' in WHERE clause (use =, <, >, <=, >=)"
                )
            if len(pattern.logical_operators) != len(pattern.conditions):
                raise ParseError(f"Missing 'and'/'or' before condition on '{column}'")
            pattern.conditions.append(WhereCondition(column, operator, value))
            pending = []

    if pending:
        raise ParseError(f"Incomplete condition in WHERE clause: {' '.join(pending)}")
    if not pattern.conditions:
        raise ParseError("Empty WHERE clause")
    if len(pattern.logical_operators) != len(pattern.conditions) - 1:
        raise ParseError("WHERE clause cannot end with 'and'/'or'")
    return pattern


def compare(cell: Value, operator: str, literal: str) -> bool:
    """
    Compare one cell against a condition's literal.

    The literal is read according to the cell's type: as an integer for
    Integer cells, a float for Float cells, and as plain text otherwise
    (lexicographic comparison).

    Raises:
        SchemaError: If the literal cannot be read as the cell's type.
    """
    target = Value.coerce(literal, cell.type)
    order = cell.compare(target)
    if operator == "=":
        return order == 0
    if operator == "<":
        return order < 0
    if operator == ">":
        return order > 0
    if operator == "<=":
        return order <= 0
    if operator == ">=":
        return order >= 0
    raise ParseError(f"Unsupported operator '{operator}'")


def select_fold(pattern: WherePattern, check: Callable[[WhereCondition], bool]) -> bool:
    """
    Decide whether a row is shown by SELECT.

    The state is seeded by condition 0. A failing condition after 'and'
    rejects the row's AND state and stops evaluation; a passing condition
    after 'or' sets a separate OR flag. The row is shown if either holds, so
    an OR that passed before a failing AND still lets the row through.
    """
    passed = True
    passed_via_or = False
    for i, condition in enumerate(pattern.conditions):
        current = check(condition)
        if i == 0:
            passed = current
            continue
        operator = pattern.logical_operators[i - 1]
        if operator == "and" and not current:
            passed = False
            break
        if operator == "or" and current:
            passed_via_or = True
    return passed or passed_via_or


def update_fold(pattern: WherePattern, check: Callable[[WhereCondition], bool]) -> bool:
    """
    Decide whether UPDATE touches a row: a strict left fold,
    ((c0 op0 c1) op1 c2) ..., with every condition evaluated.
    """
    passed = False
    for i, condition in enumerate(pattern.conditions):
        current = check(condition)
        if i == 0:
            passed = current
        elif pattern.logical_operators[i - 1] == "and":
            passed = passed and current
        else:
            passed = passed or current
    return passed


def row_checker(row: dict[str, Value]) -> Callable[[WhereCondition], bool]:
    """Bind a row so the folds can evaluate conditions against it."""
    def check(condition: WhereCondition) -> bool:
        return compare(row[condition.column], condition.operator, condition.value)
    return check
