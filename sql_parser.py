import re
from dataclasses import dataclass
from typing import Optional

from sqlglot.errors import TokenError
from sqlglot.tokens import Tokenizer, TokenType

from errors import ParseError

# Keywords that can start a statement
LEADING_KEYWORDS = ("create", "insert", "alter", "select", "update", "drop")

# Statement keywords that never appear inside a parenthesised group
GROUP_BREAKERS = ("create", "insert", "alter")

CONNECTIVES = ("and", "or")

# Comments and quoted values are only recognised at the start of a word
WORD_PATTERN = re.compile(r"""
    (?P<comment>--[^\n]*)
  | (?P<quoted>'(?:[^']|'')*'|"(?:[^"]|"")*")
  | (?P<symbol><=|>=|[()=<>,;])
  | (?P<word>[^\s()=<>,;]+)
""", re.VERBOSE)

QUOTE_CHARS = ("'", '"')

# sqlglot token types of a decoded quoted value
VERBATIM_TOKENS = (TokenType.STRING, TokenType.IDENTIFIER)

# Optional punctuation that is dropped from the token stream
DROPPED_SYMBOLS = (",", ";")


class TokenCursor:
    """
    Bounds-checked walk over a statement's tokens.

    Reading past the end raises ParseError instead of IndexError, so a
    truncated statement is reported rather than crashing the interpreter.
    """

    def __init__(self, tokens: list[str], pos: int = 0):
        self.tokens = tokens
        self.pos = pos

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def peek(self, offset: int = 0) -> Optional[str]:
        """Return the token offset places ahead, or None past the end."""
        index = self.pos + offset
        if 0 <= index < len(self.tokens):
            return self.tokens[index]
        return None

    def next(self, what: str = "token") -> str:
        """
        Consume and return the current token.

        Raises:
            ParseError: If the statement ended before a token was found.
        """
        if self.at_end():
            raise ParseError(f"Unexpected end of statement: expected {what}")
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def expect(self, *words: str) -> str:
        """
        Consume the current token, which must be one of words.

        Raises:
            ParseError: On end of input or any other token.
        """
        expected = " or ".join(f"'{w}'" for w in words)
        token = self.next(expected)
        if token not in words:
            raise ParseError(f"Expected {expected} but found '{token}'")
        return token

    def accept(self, word: str) -> bool:
        """Consume the current token if it equals word."""
        if self.peek() == word:
            self.pos += 1
            return True
        return False

    def name(self, what: str) -> str:
        """Consume an identifier; punctuation is rejected."""
        token = self.next(what)
        if token in ("(", ")"):
            raise ParseError(f"Expected {what} but found '{token}'")
        return token

    def take_group(self) -> list[str]:
        """
        Consume a balanced '( ... )' group and return the tokens inside it.

        Nested groups are kept as tokens in the returned list.

        Raises:
            ParseError: If the group is missing, unbalanced, or runs into
                another statement's keyword.
        """
        self.expect("(")
        start = self.pos
        depth = 1
        while depth:
            if self.at_end():
                raise ParseError("Unbalanced parentheses: missing ')'")
            token = self.tokens[self.pos]
            if token in GROUP_BREAKERS:
                raise ParseError(f"Unbalanced parentheses: missing ')' before '{token}'")
            if token == "(":
                depth += 1
            elif token == ")":
                depth -= 1
            self.pos += 1
        return self.tokens[start:self.pos - 1]


@dataclass
class Statement:
    """One statement cut out of a token stream (or the error that stopped it)."""
    kind: str
    tokens: list[str]
    error: Optional[ParseError] = None


class SQLParser:
    """
    Turns raw command text into tokens and tokens into statements.
    """

    def tokenize(self, text: str) -> list[str]:
        """
        Split raw text into lowercase whitespace-delimited word tokens.

        Parentheses and comparison operators are split off the words around
        them, commas and semicolons are dropped, and everything else between
        whitespace stays one token ('j.doe', "o'neil", 'a--b', '-5'). A word
        opening with a quote is a quoted value read by sqlglot's tokenizer:
        it keeps its case and may contain whitespace. A word opening with
        '--' starts a comment running to the end of the line.

        Raises:
            ParseError: If a quoted value is never closed.
        """
        words: list[str] = []
        for match in WORD_PATTERN.finditer(text):
            kind = match.lastgroup
            chunk = match.group()
            if kind == "comment":
                continue
            if kind == "quoted":
                words.append(self._unquote(chunk))
            elif kind == "symbol":
                if chunk not in DROPPED_SYMBOLS:
                    words.append(chunk)
            elif chunk[0] in QUOTE_CHARS:
                raise ParseError(f"Failed to tokenize input: unterminated quote in {chunk!r}")
            else:
                words.append(chunk.lower())
        return words

    @staticmethod
    def _unquote(chunk: str) -> str:
        try:
            tokens = Tokenizer().tokenize(chunk)
        except TokenError as e:
            raise ParseError(f"Failed to tokenize input: {e}") from e
        if len(tokens) != 1 or tokens[0].token_type not in VERBATIM_TOKENS:
            raise ParseError(f"Failed to tokenize input: bad quoted value {chunk!r}")
        return tokens[0].text

    def segment(self, tokens: list[str], lenient: bool = False) -> list[Statement]:
        """
        Cut a flat token sequence into statements.

        Statements may be concatenated without any separator; each one is
        scanned to its own closing marker and never takes tokens from the next.

        Parameters:
            tokens (list[str]): Lowercase tokens, usually from tokenize().
            lenient (bool): If True, a malformed statement is returned as a
                Statement carrying its ParseError and scanning resumes at the
                next statement keyword. If False, the first error is raised.

        Returns:
            list[Statement]: Statements in input order.
        """
        statements = []
        pos = 0
        while pos < len(tokens):
            kind = tokens[pos]
            try:
                scanner = self._scanners().get(kind)
                if scanner is None:
                    raise ParseError(f"Unknown command '{kind}'")
                cursor = TokenCursor(tokens, pos)
                scanner(cursor)
                statements.append(Statement(kind, tokens[pos:cursor.pos]))
                pos = cursor.pos
            except ParseError as error:
                if not lenient:
                    raise
                resume = self._next_statement_start(tokens, pos + 1)
                statements.append(Statement(kind, tokens[pos:resume], error))
                pos = resume
        return statements

    def parse(self, text: str, lenient: bool = False) -> list[Statement]:
        """Tokenize and segment raw text in one step."""
        return self.segment(self.tokenize(text), lenient=lenient)

    def _scanners(self):
        return {
            "create": self._scan_create,
            "insert": self._scan_insert,
            "alter": self._scan_alter,
            "select": self._scan_select,
            "update": self._scan_update,
            "drop": self._scan_drop,
        }

    @staticmethod
    def _starts_statement(tokens: list[str], index: int) -> bool:
        token = tokens[index]
        if token == "drop":
            # 'drop <col>' inside ALTER is a clause, 'drop table' a statement
            return index + 1 < len(tokens) and tokens[index + 1] == "table"
        return token in LEADING_KEYWORDS

    def _next_statement_start(self, tokens: list[str], start: int) -> int:
        index = start
        while index < len(tokens) and not self._starts_statement(tokens, index):
            index += 1
        return index

    # ---------------------------------------------------------------
    # Per-statement scanners: each leaves the cursor after the last
    # token of its statement.
    # ---------------------------------------------------------------

    @staticmethod
    def _scan_create(cursor: TokenCursor):
        cursor.expect("create")
        cursor.accept("table")
        cursor.name("table name")
        # The column-definition group, with 'primary key ( ... )' nested inside
        cursor.take_group()

    @staticmethod
    def _scan_insert(cursor: TokenCursor):
        cursor.expect("insert")
        cursor.expect("into")
        cursor.name("table name")
        cursor.take_group()
        cursor.expect("values")
        cursor.take_group()

    def _scan_alter(self, cursor: TokenCursor):
        cursor.expect("alter")
        tokens = cursor.tokens
        # Runs to the end of input or the next statement keyword
        index = cursor.pos
        while index < len(tokens) and not self._starts_statement(tokens, index):
            index += 1
        if index == cursor.pos:
            raise ParseError("Unexpected end of statement: expected 'table'")
        cursor.pos = index

    @classmethod
    def _scan_select(cls, cursor: TokenCursor):
        cursor.expect("select")
        while cursor.peek() != "from":
            token = cursor.next("'from'")
            if token in LEADING_KEYWORDS:
                raise ParseError(f"Expected 'from' but found '{token}'")
        cursor.expect("from")
        cursor.name("table name")
        if cursor.accept("where"):
            cls._scan_where(cursor)

    @classmethod
    def _scan_update(cls, cursor: TokenCursor):
        cursor.expect("update")
        cursor.name("table name")
        cursor.expect("set")
        while True:
            cursor.name("column name")
            cursor.expect("=")
            cursor.next("value")
            if cursor.peek(1) != "=" or cursor.peek() in ("where",) + LEADING_KEYWORDS:
                break
        if cursor.accept("where"):
            cls._scan_where(cursor)

    @staticmethod
    def _scan_drop(cursor: TokenCursor):
        cursor.expect("drop")
        cursor.expect("table")
        cursor.name("table name")

    @staticmethod
    def _scan_where(cursor: TokenCursor):
        """Consume '<col> <op> <val>' triples joined by 'and'/'or'."""
        while True:
            cursor.next("column name")
            cursor.next("operator")
            cursor.next("value")
            if cursor.peek() not in CONNECTIVES:
                break
            cursor.next()
