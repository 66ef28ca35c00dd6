"""
Relational data source used by the linking and merge services.

Projected selects with simple filters and offset/limit paging, plus
insert/update/delete by filter. PostgresSource implements them over a
psycopg2 connection; tests use an in-memory twin that evaluates the same
Condition objects.

Identifiers are checked against a strict pattern before being spliced into
SQL; values are always bound.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from psycopg2.extras import RealDictCursor, execute_values

_IDENT_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

OP_EQ = "eq"
OP_NEQ = "neq"
OP_IS_NULL = "is_null"
OP_NOT_NULL = "not_null"
OP_IN = "in"


def safe_ident(name: str) -> str:
    """Reject anything that is not a plain lowercase SQL identifier."""
    if not isinstance(name, str) or not _IDENT_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


@dataclass(frozen=True)
class Condition:
    column: str
    op: str
    value: Any = None

    def matches(self, row: Mapping[str, Any]) -> bool:
        """Evaluate against a row with SQL NULL semantics."""
        actual = row.get(self.column)
        if self.op == OP_IS_NULL:
            return actual is None
        if self.op == OP_NOT_NULL:
            return actual is not None
        if actual is None:
            return False
        if self.op == OP_EQ:
            return actual == self.value
        if self.op == OP_NEQ:
            return actual != self.value
        if self.op == OP_IN:
            return actual in self.value
        raise ValueError(f"Unknown operator: {self.op}")

    def to_sql(self) -> Tuple[str, List[Any]]:
        col = safe_ident(self.column)
        if self.op == OP_IS_NULL:
            return f"{col} IS NULL", []
        if self.op == OP_NOT_NULL:
            return f"{col} IS NOT NULL", []
        if self.op == OP_EQ:
            return f"{col} = %s", [self.value]
        if self.op == OP_NEQ:
            return f"{col} <> %s", [self.value]
        if self.op == OP_IN:
            values = list(self.value)
            if not values:
                return "FALSE", []
            return f"{col} = ANY(%s)", [values]
        raise ValueError(f"Unknown operator: {self.op}")


def eq(column: str, value: Any) -> Condition:
    return Condition(column, OP_EQ, value)


def neq(column: str, value: Any) -> Condition:
    return Condition(column, OP_NEQ, value)


def is_null(column: str) -> Condition:
    return Condition(column, OP_IS_NULL)


def not_null(column: str) -> Condition:
    return Condition(column, OP_NOT_NULL)


def in_(column: str, values: Sequence[Any]) -> Condition:
    return Condition(column, OP_IN, tuple(values))


def where_clause(where: Sequence[Condition]) -> Tuple[str, List[Any]]:
    """(' WHERE a = %s AND b IS NULL', params) or ('', [])."""
    if not where:
        return "", []
    parts, params = [], []
    for cond in where:
        fragment, values = cond.to_sql()
        parts.append(fragment)
        params.extend(values)
    return " WHERE " + " AND ".join(parts), params


class PostgresSource:
    """Data source over a psycopg2 connection. Does not commit; the caller owns the transaction."""

    def __init__(self, conn):
        self.conn = conn

    def _cursor(self):
        return self.conn.cursor(cursor_factory=RealDictCursor)

    def select(self, table: str, columns: Sequence[str] = (),
               where: Sequence[Condition] = (), limit: Optional[int] = None,
               offset: int = 0, order_by: str = "id") -> List[Dict[str, Any]]:
        cols = ", ".join(safe_ident(c) for c in columns) if columns else "*"
        clause, params = where_clause(where)
        query = f"SELECT {cols} FROM {safe_ident(table)}{clause} ORDER BY {safe_ident(order_by)}"
        if limit is not None:
            query += " LIMIT %s OFFSET %s"
            params.extend([limit, offset])
        with self._cursor() as cur:
            cur.execute(query, params)
            return [dict(row) for row in cur.fetchall()]

    def count(self, table: str, where: Sequence[Condition] = ()) -> int:
        clause, params = where_clause(where)
        with self._cursor() as cur:
            cur.execute(f"SELECT COUNT(*) AS count FROM {safe_ident(table)}{clause}", params)
            return cur.fetchone()["count"]

    def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        if not rows:
            return 0
        columns = list(rows[0].keys())
        cols = ", ".join(safe_ident(c) for c in columns)
        values = [tuple(row[c] for c in columns) for row in rows]
        with self._cursor() as cur:
            execute_values(cur, f"INSERT INTO {safe_ident(table)} ({cols}) VALUES %s", values)
        return len(rows)

    def update(self, table: str, values: Mapping[str, Any],
               where: Sequence[Condition]) -> int:
        if not where:
            raise ValueError("Refusing to update without a filter")
        if not values:
            return 0
        assignments = ", ".join(f"{safe_ident(c)} = %s" for c in values)
        clause, params = where_clause(where)
        with self._cursor() as cur:
            cur.execute(f"UPDATE {safe_ident(table)} SET {assignments}{clause}",
                        list(values.values()) + params)
            return cur.rowcount

    def delete(self, table: str, where: Sequence[Condition]) -> int:
        if not where:
            raise ValueError("Refusing to delete without a filter")
        clause, params = where_clause(where)
        with self._cursor() as cur:
            cur.execute(f"DELETE FROM {safe_ident(table)}{clause}", params)
            return cur.rowcount

    def get(self, table: str, row_id: Any) -> Optional[Dict[str, Any]]:
        rows = self.select(table, where=[eq("id", row_id)], limit=1)
        return rows[0] if rows else None
