import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from catalog.schema import Schema
from errors import ConstraintError, ParseError, SchemaError
from executor import Executor


@pytest.fixture
def executor():
    return Executor(Schema("test"))


def run_ok(executor, text):
    outcomes = executor.run(text)
    for outcome in outcomes:
        assert outcome.ok, f"{' '.join(outcome.statement.tokens)}: {outcome.error}"
    return outcomes


def run_error(executor, text):
    [outcome] = executor.run(text)
    assert not outcome.ok
    return outcome.error


def selected(executor, text):
    [outcome] = run_ok(executor, text)
    result_set = outcome.result.result_set
    return [[str(value) for value in row] for row in result_set.rows]


def assert_rows_aligned(schema):
    for table in schema.tables.values():
        lengths = {len(values) for values in table.store.columns.values()}
        assert lengths <= {table.row_count}


@pytest.fixture
def people(executor):
    run_ok(executor, "create person ( id int primary key ( id ) name string )")
    for person_id, name in ((1, "alice"), (3, "carol"), (7, "gina")):
        run_ok(executor, f"insert into person ( id name ) values ( {person_id} {name} )")
    return executor


@pytest.fixture
def company(executor):
    run_ok(executor, """
        create dept ( id int name string primary key ( id ) )
        create emp ( id int dept int primary key ( id ) )
        alter table emp foreign key ( dept ) references dept ( id )
        insert into dept ( id name ) values ( 1 sales )
        insert into dept ( id name ) values ( 2 ops )
        insert into emp ( id dept ) values ( 10 1 )
    """)
    return executor


# ---------------------------------------------------------------
# CREATE
# ---------------------------------------------------------------

def test_person_scenario(executor):
    run_ok(executor, "create person ( id int primary key ( id ) name string )")
    run_ok(executor, "insert into person ( id name ) values ( 1 alice )")

    [outcome] = run_ok(executor, "select * from person")
    assert outcome.result.result_set.columns == ["id", "name"]
    assert selected(executor, "select * from person") == [["1", "alice"]]

    error = run_error(executor, "insert into person ( id name ) values ( 1 alice )")
    assert isinstance(error, ConstraintError)
    assert executor.schema.get_table("person").row_count == 1


def test_create_without_primary_key_leaves_no_table(executor):
    error = run_error(executor, "create t ( a int )")
    assert isinstance(error, ConstraintError)
    assert not executor.schema.has_table("t")


def test_create_with_unknown_primary_key_column_leaves_no_table(executor):
    error = run_error(executor, "create t ( a int primary key ( b ) )")
    assert isinstance(error, SchemaError)
    assert not executor.schema.has_table("t")


@pytest.mark.parametrize("text, error_type", [
    ("create t ( a varchar primary key ( a ) )", SchemaError),
    ("create t ( a int a string primary key ( a ) )", SchemaError),
    ("create t ( primary key ( a ) )", ParseError),
    ("create t ( a int primary key ( ) )", ParseError),
])
def test_create_errors(executor, text, error_type):
    assert isinstance(run_error(executor, text), error_type)
    assert not executor.schema.has_table("t")


def test_create_existing_table_is_rejected(people):
    error = run_error(people, "create person ( id int primary key ( id ) )")
    assert isinstance(error, SchemaError)
    assert people.schema.get_table("person").column_names == ["id", "name"]


def test_two_concatenated_creates(executor):
    run_ok(executor, "create a ( x int primary key ( x ) ) create b ( y string z float primary key ( y ) )")
    assert executor.schema.get_table("a").column_names == ["x"]
    assert executor.schema.get_table("b").column_names == ["y", "z"]
    assert executor.schema.primary_keys == {"a": ["x"], "b": ["y"]}


def test_inline_and_composite_primary_keys(executor):
    run_ok(executor, "create t ( id int primary key name string )")
    assert executor.schema.get_table("t").primary_key == ["id"]

    run_ok(executor, "create pair ( a int b int primary key ( a ) primary key ( b ) )")
    assert executor.schema.get_table("pair").primary_key == ["a", "b"]


def test_optional_table_keyword(executor):
    run_ok(executor, "CREATE TABLE Item ( sku string, price float, PRIMARY KEY (sku) )")
    assert executor.schema.get_table("item").column_names == ["price", "sku"]


# ---------------------------------------------------------------
# INSERT
# ---------------------------------------------------------------

def test_composite_key_uniqueness(executor):
    run_ok(executor, "create pair ( a int b int primary key ( a ) primary key ( b ) )")
    run_ok(executor, "insert into pair ( a b ) values ( 1 1 )")
    run_ok(executor, "insert into pair ( a b ) values ( 1 2 )")
    run_ok(executor, "insert into pair ( b a ) values ( 1 2 )")

    error = run_error(executor, "insert into pair ( a b ) values ( 1 2 )")
    assert isinstance(error, ConstraintError)
    assert executor.schema.get_table("pair").row_count == 3


def test_primary_key_compares_typed_values(executor):
    run_ok(executor, "create t ( id int primary key ( id ) )")
    run_ok(executor, "insert into t ( id ) values ( 1 )")
    assert isinstance(run_error(executor, "insert into t ( id ) values ( 01 )"), ConstraintError)


@pytest.mark.parametrize("text, error_type", [
    ("insert into nobody ( id name ) values ( 2 bob )", SchemaError),
    ("insert into person ( id name ) values ( 2 )", ParseError),
    ("insert into person ( id ) values ( 2 )", SchemaError),
    ("insert into person ( id age ) values ( 2 30 )", SchemaError),
    ("insert into person ( id id ) values ( 2 2 )", ParseError),
    ("insert into person ( id name ) values ( two bob )", SchemaError),
    ("insert into person ( id name ) values ( 99999999999999999999 bob )", SchemaError),
])
def test_insert_errors_leave_table_unchanged(people, text, error_type):
    assert isinstance(run_error(people, text), error_type)
    assert people.schema.get_table("person").row_count == 3
    assert_rows_aligned(people.schema)


def test_insert_coerces_to_column_types(executor):
    run_ok(executor, "create item ( sku string price float qty int primary key ( sku ) )")
    run_ok(executor, "insert into item ( sku price qty ) values ( 100 3 -2 )")
    assert selected(executor, "select * from item") == [["3.0", "-2", "100"]]


def test_foreign_key_blocks_orphan_insert(company):
    error = run_error(company, "insert into emp ( id dept ) values ( 11 9 )")
    assert isinstance(error, ConstraintError)
    assert company.schema.get_table("emp").row_count == 1

    run_ok(company, "insert into emp ( id dept ) values ( 11 2 )")
    assert company.schema.get_table("emp").row_count == 2


def test_insert_punctuated_text_values(people):
    run_ok(people, """
        insert into person ( id name ) values ( 20 j.doe )
        insert into person ( id name ) values ( 21 o'neil )
        insert into person ( id name ) values ( 22 a--b )
        insert into person ( id name ) values ( 23 a@b.com )
    """)
    assert selected(people, "select name from person where id >= 20") == \
        [["j.doe"], ["o'neil"], ["a--b"], ["a@b.com"]]


# ---------------------------------------------------------------
# SELECT
# ---------------------------------------------------------------

def test_select_range(people):
    assert selected(people, "select * from person where id > 0 and id < 5") == [["1", "alice"], ["3", "carol"]]


def test_select_columns_in_given_order(people):
    assert selected(people, "select name, id from person where name = gina") == [["gina", "7"]]


def test_select_text_comparison(people):
    assert selected(people, "select name from person where name < c") == [["alice"]]


def test_select_or(people):
    assert selected(people, "select id from person where id = 1 or id = 7") == [["1"], ["7"]]


def test_select_or_flag_survives_failed_and(people):
    # id = 9 fails, name = carol passes via OR, id = 8 fails after AND
    rows = selected(people, "select id from person where id = 9 or name = carol and id = 8")
    assert rows == [["3"]]


def test_select_and_failure_hides_later_or(people):
    rows = selected(people, "select id from person where id = 1 and name = bob or id = 7")
    assert rows == []


def test_select_float_column(executor):
    run_ok(executor, """
        create item ( sku string price float primary key ( sku ) )
        insert into item ( sku price ) values ( a 1.25 )
        insert into item ( sku price ) values ( b 4.5 )
    """)
    assert selected(executor, "select sku from item where price >= 2") == [["b"]]


@pytest.mark.parametrize("text, error_type", [
    ("select * from nobody", SchemaError),
    ("select age from person", SchemaError),
    ("select * from person where age = 3", SchemaError),
    ("select * from person where id = abc", SchemaError),
    ("select * id from person", ParseError),
    ("select from person", ParseError),
])
def test_select_errors(people, text, error_type):
    assert isinstance(run_error(people, text), error_type)


def test_select_empty_table(executor):
    run_ok(executor, "create t ( id int primary key ( id ) )")
    assert selected(executor, "select * from t") == []


# ---------------------------------------------------------------
# UPDATE
# ---------------------------------------------------------------

def test_update_all_rows(people):
    [outcome] = run_ok(people, "update person set name = x")
    assert outcome.result.message == "Updated 3 row(s) in 'person'"
    assert selected(people, "select name from person") == [["x"], ["x"], ["x"]]


def test_update_with_where(people):
    run_ok(people, "update person set name=zed where id >= 3 and name = gina")
    assert selected(people, "select name from person") == [["alice"], ["carol"], ["zed"]]


def test_update_uses_strict_left_fold(people):
    # ((id = 1 and name = bob) or id = 7) holds only for id 7
    run_ok(people, "update person set name = hit where id = 1 and name = bob or id = 7")
    assert selected(people, "select name from person") == [["alice"], ["carol"], ["hit"]]

    # ((id = 9 or name = carol) and id = 8) holds for nobody
    [outcome] = run_ok(people, "update person set name = miss where id = 9 or name = carol and id = 8")
    assert outcome.result.message == "Updated 0 row(s) in 'person'"


def test_update_duplicate_primary_key_is_rejected(people):
    error = run_error(people, "update person set id = 1 where id = 3")
    assert isinstance(error, ConstraintError)
    assert selected(people, "select id from person") == [["1"], ["3"], ["7"]]


@pytest.mark.parametrize("text, error_type", [
    ("update nobody set a = 1", SchemaError),
    ("update person set age = 1", SchemaError),
    ("update person set id = one", SchemaError),
    ("update person set name = a name = b", ParseError),
    ("update person set name = a where age = 1", SchemaError),
])
def test_update_errors_change_nothing(people, text, error_type):
    assert isinstance(run_error(people, text), error_type)
    assert selected(people, "select name from person") == [["alice"], ["carol"], ["gina"]]


def test_update_keeps_foreign_keys_intact(company):
    assert isinstance(run_error(company, "update emp set dept = 9"), ConstraintError)
    assert isinstance(run_error(company, "update dept set id = 5 where id = 1"), ConstraintError)

    run_ok(company, "update dept set id = 5 where id = 2")
    run_ok(company, "update emp set dept = 5")
    assert selected(company, "select dept from emp") == [["5"]]


# ---------------------------------------------------------------
# ALTER
# ---------------------------------------------------------------

def test_alter_add_backfills(people):
    run_ok(people, "alter table person add age int add score float")
    table = people.schema.get_table("person")
    assert table.column_names == ["age", "id", "name", "score"]
    assert selected(people, "select age score from person where id = 1") == [["0", "0.0"]]
    assert_rows_aligned(people.schema)

    run_ok(people, "insert into person ( id name age score ) values ( 9 ivan 40 1.5 )")
    assert table.row_count == 4


def test_alter_add_errors(people):
    assert isinstance(run_error(people, "alter table person add name string"), SchemaError)
    assert isinstance(run_error(people, "alter table person add age date"), SchemaError)
    assert isinstance(run_error(people, "alter table nobody add age int"), SchemaError)
    assert isinstance(run_error(people, "alter table person rename age"), ParseError)
    assert isinstance(run_error(people, "alter table person"), ParseError)


def test_alter_drop_column(people):
    run_ok(people, "alter table person add age int")
    run_ok(people, "alter table person drop age")
    assert people.schema.get_table("person").column_names == ["id", "name"]
    assert isinstance(run_error(people, "alter table person drop age"), SchemaError)


@pytest.mark.parametrize("text, error_type", [
    ("alter table person add age int drop id", ConstraintError),
    ("alter table person add age int add age int", SchemaError),
    ("alter table person add age int drop ghost", SchemaError),
    ("alter table person add age int foreign key ( age ) references nowhere ( id )", SchemaError),
])
def test_failed_alter_changes_nothing(people, text, error_type):
    assert isinstance(run_error(people, text), error_type)
    assert people.schema.get_table("person").column_names == ["id", "name"]
    assert people.schema.foreign_keys == []


def test_alter_clauses_see_earlier_clauses(people):
    run_ok(people, "alter table person add age int drop age add nick string")
    assert people.schema.get_table("person").column_names == ["id", "name", "nick"]
    assert_rows_aligned(people.schema)


def test_alter_foreign_key_on_added_column(company):
    error = run_error(company, "alter table emp add boss int foreign key ( boss ) references emp ( id )")
    assert isinstance(error, ConstraintError)
    assert company.schema.get_table("emp").column_names == ["dept", "id"]
    assert len(company.schema.foreign_keys) == 1

    run_ok(company, "insert into dept ( id name ) values ( 0 none )")
    run_ok(company, "alter table emp add unit int foreign key ( unit ) references dept ( id )")
    assert company.schema.get_table("emp").column_names == ["dept", "id", "unit"]
    assert len(company.schema.foreign_keys) == 2


def test_drop_protection(company):
    for text in ("alter table dept drop id", "alter table emp drop dept", "alter table emp drop id"):
        assert isinstance(run_error(company, text), ConstraintError)
    assert company.schema.get_table("emp").column_names == ["dept", "id"]
    assert company.schema.get_table("dept").has_column("id")


@pytest.mark.parametrize("text, error_type", [
    ("alter table emp foreign key ( dept ) references dept ( id )", ConstraintError),
    ("alter table emp foreign key ( dept ) references nowhere ( id )", SchemaError),
    ("alter table emp foreign key ( dept ) references dept ( code )", SchemaError),
    ("alter table emp foreign key ( boss ) references dept ( id )", SchemaError),
    ("alter table emp foreign key ( id ) references dept ( name )", SchemaError),
    ("alter table dept foreign key ( name ) references emp ( dept )", SchemaError),
    ("alter table emp foreign key ( dept id ) references dept ( id )", ConstraintError),
    ("alter table emp foreign key ( dept references dept ( id )", ParseError),
])
def test_foreign_key_validation(company, text, error_type):
    assert isinstance(run_error(company, text), error_type)
    assert len(company.schema.foreign_keys) == 1


def test_foreign_key_must_target_whole_primary_key(executor):
    run_ok(executor, """
        create pair ( a int b int primary key ( a ) primary key ( b ) )
        create ref ( x int y int primary key ( x ) )
    """)
    assert isinstance(
        run_error(executor, "alter table ref foreign key ( x ) references pair ( a )"), ConstraintError
    )
    run_ok(executor, "alter table ref foreign key ( y x ) references pair ( b a )")
    run_ok(executor, "insert into pair ( a b ) values ( 1 2 )")
    run_ok(executor, "insert into ref ( x y ) values ( 1 2 )")
    assert isinstance(run_error(executor, "insert into ref ( x y ) values ( 2 1 )"), ConstraintError)


def test_foreign_key_checks_existing_rows(company):
    run_ok(company, "create audit ( id int dept int primary key ( id ) )")
    run_ok(company, "insert into audit ( id dept ) values ( 1 42 )")
    error = run_error(company, "alter table audit foreign key ( dept ) references dept ( id )")
    assert isinstance(error, ConstraintError)


# ---------------------------------------------------------------
# DROP
# ---------------------------------------------------------------

def test_drop_table_purges_foreign_keys(company):
    [outcome] = run_ok(company, "drop table dept")
    assert "Removed 1 foreign key(s)" in outcome.result.message
    assert not company.schema.has_table("dept")
    assert company.schema.foreign_keys == []
    run_ok(company, "insert into emp ( id dept ) values ( 11 99 )")


def test_drop_missing_table(executor):
    assert isinstance(run_error(executor, "drop table ghost"), SchemaError)


# ---------------------------------------------------------------
# Batches
# ---------------------------------------------------------------

def test_batch_continues_after_failure(executor):
    outcomes = executor.run("""
        create t ( id int primary key ( id ) )
        insert into t ( id ) values ( 1 )
        insert into t ( id ) values ( 1 )
        bogus words here
        insert into t ( id ) values ( 2 )
    """)
    assert [outcome.ok for outcome in outcomes] == [True, True, False, False, True]
    assert isinstance(outcomes[3].error, ParseError)
    assert executor.schema.get_table("t").row_count == 2


def test_malformed_statement_does_not_swallow_the_next(executor):
    outcomes = executor.run("create bad ( a int create good ( b int primary key ( b ) )")
    assert [outcome.ok for outcome in outcomes] == [False, True]
    assert not executor.schema.has_table("bad")
    assert executor.schema.has_table("good")


def test_tokenizer_failure_is_reported(executor):
    [outcome] = executor.run("insert into t ( a ) values ( 'oops )")
    assert isinstance(outcome.error, ParseError)


def test_row_length_invariant_after_mixed_operations(company):
    company.run("""
        alter table emp add title string
        insert into emp ( id dept title ) values ( 12 2 lead )
        insert into emp ( id dept title ) values ( 12 2 dup )
        update emp set title = boss where id = 10
        alter table emp drop title
        insert into emp ( id dept ) values ( 13 1 )
    """)
    assert_rows_aligned(company.schema)
    assert company.schema.get_table("emp").row_count == 3
