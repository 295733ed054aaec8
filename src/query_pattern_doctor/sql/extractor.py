import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from query_pattern_doctor.domain.models import (
    JoinDescriptor,
    JoinType,
    LookupShape,
    QuickFlags,
    TableRef,
)

_TOKEN_PATTERN = re.compile(
    r"(?P<string>'(?:[^']|'')*')"
    r"|(?P<comment>--[^\n]*|/\*.*?\*/)"
    r"|(?P<quoted>\"(?:[^\"]|\"\")*\"|`[^`]*`)"
    r"|(?P<word>[A-Za-z_][\w$]*)"
    r"|(?P<number>\d+(?:\.\d+)?)"
    r"|(?P<param>\$\d+|\?|%\(\w+\)s|%s|:[A-Za-z_]\w*)"
    r"|(?P<op><=|>=|<>|!=|::|\|\||[=<>(),.;*+\-/%\[\]])"
    r"|(?P<space>\s+)"
    r"|(?P<other>.)",
    re.DOTALL,
)
_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")

_JOIN_MODIFIERS = frozenset({"INNER", "LEFT", "RIGHT", "FULL", "CROSS", "OUTER", "NATURAL"})
_CLAUSE_END = frozenset(
    {
        "WHERE", "GROUP", "ORDER", "HAVING", "LIMIT", "OFFSET", "FETCH", "UNION",
        "INTERSECT", "EXCEPT", "WINDOW", "FOR", "RETURNING",
    }
)
_ON_TERMINATORS = _CLAUSE_END | _JOIN_MODIFIERS | {"JOIN"}
_RESERVED = _ON_TERMINATORS | {
    "ON", "USING", "AS", "LATERAL", "ONLY", "SELECT", "FROM", "SET", "VALUES",
    "WITH", "AND", "OR", "NOT", "NULL", "TRUE", "FALSE", "TABLESAMPLE", "IN",
    "IS", "LIKE", "ILIKE", "BETWEEN", "EXISTS", "CASE", "WHEN", "THEN", "ELSE",
    "END", "ANY", "ALL", "SOME", "ARRAY", "ROW", "DISTINCT",
}
_STATEMENT_KEYWORDS = frozenset({"SELECT", "INSERT", "UPDATE", "DELETE", "MERGE"})
_COMPARISONS = frozenset({"=", "<>", "!=", "<", ">", "<=", ">="})
_COMPARISON_WORDS = frozenset({"LIKE", "ILIKE", "IN", "BETWEEN"})
_NAME_KINDS = frozenset({"word", "quoted"})
_VALUE_KINDS = frozenset({"param", "number", "string"})


@dataclass(frozen=True, slots=True)
class Token:
    kind: str
    text: str
    start: int
    end: int
    depth: int

    def is_word(self, *words: str) -> bool:
        return self.kind == "word" and self.text.upper() in words


def tokenize(sql: str) -> list[Token]:
    """Split SQL into tokens, dropping whitespace and comments.

    ``depth`` is the parenthesis nesting level; an opening paren and its
    matching closing paren carry the same depth as their surroundings.
    """
    tokens: list[Token] = []
    depth = 0
    for match in _TOKEN_PATTERN.finditer(sql):
        kind = match.lastgroup or "other"
        if kind in ("space", "comment"):
            continue
        text = match.group()
        if text == ")":
            depth = max(depth - 1, 0)
        tokens.append(Token(kind, text, match.start(), match.end(), depth))
        if text == "(":
            depth += 1
    return tokens


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] in "\"`" and text[-1] == text[0]:
        return text[1:-1]
    return text


def _skip_group(tokens: Sequence[Token], index: int) -> int:
    """Return the index just past the paren group opening at ``index``."""
    depth = tokens[index].depth
    for position in range(index + 1, len(tokens)):
        if tokens[position].text == ")" and tokens[position].depth == depth:
            return position + 1
    return len(tokens)


def _is_name(token: Token) -> bool:
    if token.kind == "quoted":
        return True
    return token.kind == "word" and token.text.upper() not in _RESERVED


def _name_before(tokens: Sequence[Token], index: int) -> str | None:
    position = index - 1
    if position < 0 or not _is_name(tokens[position]):
        return None
    parts = [_unquote(tokens[position].text)]
    while (
        position >= 2
        and tokens[position - 1].text == "."
        and tokens[position - 2].kind in _NAME_KINDS
    ):
        parts.insert(0, _unquote(tokens[position - 2].text))
        position -= 2
    return ".".join(parts)


def _name_after(tokens: Sequence[Token], index: int) -> str | None:
    position = index + 1
    if position >= len(tokens) or not _is_name(tokens[position]):
        return None
    parts = [_unquote(tokens[position].text)]
    while (
        position + 2 < len(tokens)
        and tokens[position + 1].text == "."
        and tokens[position + 2].kind in _NAME_KINDS
    ):
        parts.append(_unquote(tokens[position + 2].text))
        position += 2
    if position + 1 < len(tokens) and tokens[position + 1].text == "(":
        return None
    return ".".join(parts)


@dataclass(frozen=True, slots=True)
class StatementStructure:
    """Everything the detectors ask about a single statement text."""

    main_table: TableRef | None = None
    joins: tuple[JoinDescriptor, ...] = ()
    join_count: int = 0
    flags: QuickFlags = field(
        default_factory=lambda: QuickFlags(
            has_join=False,
            has_order_by=False,
            has_limit=False,
            is_select=False,
            has_group_by=False,
        )
    )
    aliases: Mapping[str, str] = field(default_factory=dict)
    order_by: str | None = None
    lookup_shape: LookupShape | None = None
    leading_wildcard_like: bool = False
    wrapped_where_columns: tuple[str, ...] = ()


class SqlStructureExtractor:
    """Token-based extractor for the structural facts of a SQL statement.

    Only the top level of the statement is read. Derived tables used as
    join targets and CTE bodies are skipped rather than descended into.
    """

    def describe(self, sql: str) -> StatementStructure:
        tokens = tokenize(sql)
        if not tokens:
            return StatementStructure()

        main_table, joins, join_count = self._read_from_clause(sql, tokens)
        aliases: dict[str, str] = {}
        for ref in (main_table, *joins):
            if ref is None:
                continue
            aliases[ref.reference.lower()] = ref.table
            aliases.setdefault(ref.table.lower(), ref.table)

        is_select = self._is_select(tokens)
        where = self._where_tokens(tokens)
        flags = QuickFlags(
            has_join=join_count > 0,
            has_order_by=self._find_pair(tokens, "ORDER", "BY") is not None,
            has_limit=self._has_limit(tokens),
            is_select=is_select,
            has_group_by=self._find_pair(tokens, "GROUP", "BY") is not None,
        )
        return StatementStructure(
            main_table=main_table,
            joins=tuple(joins),
            join_count=join_count,
            flags=flags,
            aliases=aliases,
            order_by=self._order_by_clause(sql, tokens),
            lookup_shape=(
                self._lookup_shape(where, main_table) if is_select else None
            ),
            leading_wildcard_like=self._leading_wildcard_like(where),
            wrapped_where_columns=self._wrapped_columns(where),
        )

    def extract_joins(self, sql: str) -> list[JoinDescriptor]:
        return list(self.describe(sql).joins)

    def main_table(self, sql: str) -> TableRef | None:
        return self.describe(sql).main_table

    def count_joins(self, sql: str) -> int:
        return self.describe(sql).join_count

    def is_select(self, sql: str) -> bool:
        return self.describe(sql).flags.is_select

    def lookup_shape(self, sql: str) -> LookupShape | None:
        return self.describe(sql).lookup_shape

    def has_leading_wildcard_like(self, sql: str) -> bool:
        return self.describe(sql).leading_wildcard_like

    def wrapped_where_columns(self, sql: str) -> tuple[str, ...]:
        return self.describe(sql).wrapped_where_columns

    def alias_used_elsewhere(self, sql: str, alias: str, excluding_clause: str = "") -> bool:
        """Whether ``alias.`` appears anywhere outside ``excluding_clause``.

        That covers the select list, WHERE, GROUP BY, ORDER BY, HAVING and
        the ON clauses of other joins. A schema-qualified table name also
        matches by its bare name.
        """
        if not alias:
            return False
        remaining = sql.replace(excluding_clause, " ", 1) if excluding_clause else sql
        remaining = _STRING_LITERAL.sub("''", remaining)
        names = {alias, alias.rsplit(".", 1)[-1]}
        return any(
            re.search(r'(?<![\w."])"?' + re.escape(name) + r'"?\s*\.', remaining, re.IGNORECASE)
            for name in names
        )

    def _read_from_clause(
        self, sql: str, tokens: list[Token]
    ) -> tuple[TableRef | None, list[JoinDescriptor], int]:
        main_table: TableRef | None = None
        main_seen = False
        joins: list[JoinDescriptor] = []
        join_count = 0
        previous_ref: str | None = None

        first = tokens[0]
        index = 0
        if first.is_word("UPDATE"):
            main_table, index = self._read_table_ref(tokens, 1)
            main_seen = True
        elif first.is_word("INSERT") and len(tokens) > 1 and tokens[1].is_word("INTO"):
            main_table, index = self._read_table_ref(tokens, 2)
            main_seen = True
        if main_table is not None:
            previous_ref = main_table.reference

        while index < len(tokens):
            token = tokens[index]
            if token.depth != 0:
                index += 1
                continue
            if not main_seen and token.is_word("FROM"):
                main_seen = True
                main_table, index = self._read_table_ref(tokens, index + 1)
                if main_table is not None:
                    previous_ref = main_table.reference
                continue
            if token.is_word("JOIN"):
                join_count += 1
                join, index = self._read_join(sql, tokens, index, previous_ref)
                if join is not None:
                    joins.append(join)
                    previous_ref = join.reference
                continue
            index += 1
        return main_table, joins, join_count

    def _read_table_ref(self, tokens: list[Token], index: int) -> tuple[TableRef | None, int]:
        while index < len(tokens) and tokens[index].is_word("ONLY", "LATERAL"):
            index += 1
        if index >= len(tokens):
            return None, index

        if tokens[index].text == "(":
            index = _skip_group(tokens, index)
            _alias, index = self._read_alias(tokens, index)
            return None, index

        if not _is_name(tokens[index]):
            return None, index
        parts = [_unquote(tokens[index].text)]
        index += 1
        while (
            index + 1 < len(tokens)
            and tokens[index].text == "."
            and tokens[index + 1].kind in _NAME_KINDS
        ):
            parts.append(_unquote(tokens[index + 1].text))
            index += 2
        if index < len(tokens) and tokens[index].text == "(":
            index = _skip_group(tokens, index)

        alias, index = self._read_alias(tokens, index)
        return TableRef(table=".".join(parts), alias=alias), index

    def _read_alias(self, tokens: list[Token], index: int) -> tuple[str | None, int]:
        if index < len(tokens) and tokens[index].is_word("AS"):
            index += 1
        if index < len(tokens) and _is_name(tokens[index]):
            return _unquote(tokens[index].text), index + 1
        return None, index

    def _read_join(
        self,
        sql: str,
        tokens: list[Token],
        index: int,
        previous_ref: str | None,
    ) -> tuple[JoinDescriptor | None, int]:
        start = index
        while start > 0 and tokens[start - 1].depth == 0 and tokens[start - 1].is_word(*_JOIN_MODIFIERS):
            start -= 1
        modifiers = {token.text.upper() for token in tokens[start:index]}

        ref, index = self._read_table_ref(tokens, index + 1)

        on_tokens: list[Token] = []
        using_columns: list[str] = []
        if index < len(tokens) and tokens[index].is_word("ON"):
            end = index + 1
            while end < len(tokens) and not self._ends_on_clause(tokens[end]):
                end += 1
            on_tokens = tokens[index + 1 : end]
            index = end
        elif (
            index + 1 < len(tokens)
            and tokens[index].is_word("USING")
            and tokens[index + 1].text == "("
        ):
            close = _skip_group(tokens, index + 1)
            using_columns = [
                _unquote(token.text)
                for token in tokens[index + 2 : close - 1]
                if token.kind in _NAME_KINDS
            ]
            index = close

        if ref is None:
            return None, index

        conditions = self._equality_pairs(on_tokens)
        if using_columns:
            conditions = [
                (f"{previous_ref}.{column}" if previous_ref else column, f"{ref.reference}.{column}")
                for column in using_columns
            ]
        on_left, on_right = conditions[0] if conditions else ("", "")
        on_clause = sql[on_tokens[0].start : on_tokens[-1].end] if on_tokens else ""
        clause = sql[tokens[start].start : tokens[index - 1].end]

        return (
            JoinDescriptor(
                join_type=self._join_type(modifiers),
                table=ref.table,
                alias=ref.alias,
                on_left=on_left,
                on_right=on_right,
                conditions=tuple(conditions),
                on_clause=on_clause,
                clause=clause,
            ),
            index,
        )

    def _join_type(self, modifiers: set[str]) -> JoinType:
        if "LEFT" in modifiers:
            return JoinType.LEFT
        if "RIGHT" in modifiers:
            return JoinType.RIGHT
        if "FULL" in modifiers:
            return JoinType.FULL
        return JoinType.INNER

    def _ends_on_clause(self, token: Token) -> bool:
        if token.depth != 0:
            return False
        return token.text in (",", ";") or token.is_word(*_ON_TERMINATORS)

    def _equality_pairs(self, tokens: list[Token]) -> list[tuple[str, str]]:
        pairs: list[tuple[str, str]] = []
        for index, token in enumerate(tokens):
            if token.text != "=":
                continue
            left = _name_before(tokens, index)
            right = _name_after(tokens, index)
            if left and right:
                pairs.append((left, right))
        return pairs

    def _is_select(self, tokens: list[Token]) -> bool:
        first = next((token for token in tokens if token.kind == "word"), None)
        if first is None:
            return False
        if first.is_word("SELECT"):
            return True
        if first.is_word("WITH"):
            for token in tokens:
                if token.depth == 0 and token.is_word(*_STATEMENT_KEYWORDS):
                    return token.is_word("SELECT")
        return False

    def _find_pair(self, tokens: list[Token], first: str, second: str) -> int | None:
        for index in range(len(tokens) - 1):
            token = tokens[index]
            if token.depth == 0 and token.is_word(first) and tokens[index + 1].is_word(second):
                return index
        return None

    def _has_limit(self, tokens: list[Token]) -> bool:
        for index, token in enumerate(tokens):
            if token.depth != 0:
                continue
            if token.is_word("LIMIT"):
                return True
            if (
                token.is_word("FETCH")
                and index + 1 < len(tokens)
                and tokens[index + 1].is_word("FIRST", "NEXT")
            ):
                return True
        return False

    def _clause_tokens(self, tokens: list[Token], start: int) -> list[Token]:
        end = start
        while end < len(tokens):
            token = tokens[end]
            if token.depth == 0 and (token.text == ";" or token.is_word(*_CLAUSE_END)):
                break
            end += 1
        return tokens[start:end]

    def _where_tokens(self, tokens: list[Token]) -> list[Token]:
        for index, token in enumerate(tokens):
            if token.depth == 0 and token.is_word("WHERE"):
                return self._clause_tokens(tokens, index + 1)
        return []

    def _order_by_clause(self, sql: str, tokens: list[Token]) -> str | None:
        index = self._find_pair(tokens, "ORDER", "BY")
        if index is None:
            return None
        clause = self._clause_tokens(tokens, index + 2)
        if not clause:
            return None
        return sql[clause[0].start : clause[-1].end]

    def _lookup_shape(self, where: list[Token], main_table: TableRef | None) -> LookupShape | None:
        if main_table is None:
            return None
        reference = main_table.reference.lower()
        for index, token in enumerate(where):
            if token.text != "=" or index + 1 >= len(where):
                continue
            if where[index + 1].kind not in _VALUE_KINDS:
                continue
            name = _name_before(where, index)
            if name is None:
                continue
            qualifier, _, column = name.rpartition(".")
            if qualifier and qualifier.lower() not in (reference, main_table.table.lower()):
                continue
            column = column.lower()
            if column == "id":
                return LookupShape(kind="proxy", table=main_table.table, column=column)
            if column.endswith("_id"):
                return LookupShape(kind="collection", table=main_table.table, column=column)
        return None

    def _leading_wildcard_like(self, where: list[Token]) -> bool:
        for index, token in enumerate(where[:-1]):
            if token.is_word("LIKE", "ILIKE"):
                following = where[index + 1]
                if following.kind == "string" and following.text.startswith("'%"):
                    return True
        return False

    def _wrapped_columns(self, where: list[Token]) -> tuple[str, ...]:
        wrapped: list[str] = []
        for index, token in enumerate(where):
            if not _is_name(token) or token.kind != "word":
                continue
            if index + 1 >= len(where) or where[index + 1].text != "(":
                continue
            close = _skip_group(where, index + 1)
            inner = where[index + 2 : close - 1]
            if not self._is_column_ref(inner) or close >= len(where):
                continue
            following = where[close]
            if following.text in _COMPARISONS or following.is_word(*_COMPARISON_WORDS):
                column = ".".join(_unquote(part.text) for part in inner if part.text != ".")
                wrapped.append(f"{token.text.upper()}({column})")
        return tuple(wrapped)

    def _is_column_ref(self, tokens: list[Token]) -> bool:
        if not tokens or len(tokens) % 2 == 0:
            return False
        for position, token in enumerate(tokens):
            if position % 2 == 0 and not _is_name(token):
                return False
            if position % 2 == 1 and token.text != ".":
                return False
        return True
