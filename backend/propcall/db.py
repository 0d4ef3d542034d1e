from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union
from uuid import uuid4
from datetime import datetime, timezone
from functools import lru_cache
import logging

# Lightweight adapter over Supabase client. Falls back to an in-memory store when SUPABASE_URL is missing.
from supabase import create_client, Client
from postgrest.exceptions import APIError

from .config import get_settings

# Set up logger
logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_CODE = "23505"

# (op, column, value). op is one of eq, gte, lte, ilike_any; ilike_any takes a tuple of columns.
Filter = Tuple[str, Any, Any]


class Embed(NamedTuple):
    """One related row attached by foreign key, e.g. property:properties(id,name)."""
    alias: str
    table: str
    foreign_key: str
    columns: Tuple[str, ...]


class UniqueViolation(Exception):
    def __init__(self, table: str, columns: Sequence[str]) -> None:
        super().__init__(f"duplicate key on {table}({', '.join(columns)})")
        self.table = table
        self.columns = tuple(columns)


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


# Column defaults the database applies on insert
TABLE_DEFAULTS: Dict[str, Dict[str, Callable[[], Any]]] = {
    "users": {
        "name": lambda: None,
        "onboarding_completed": lambda: False,
        "last_login": lambda: None,
        "created_at": utcnow,
        "updated_at": utcnow,
    },
    "properties": {
        "address": lambda: None,
        "property_type": lambda: None,
        "status": lambda: "active",
        "price": lambda: None,
        "description": lambda: None,
        "created_at": utcnow,
        "updated_at": utcnow,
    },
    "ai_agents": {
        "agent_name": lambda: None,
        "system_prompt": lambda: None,
        "created_at": utcnow,
        "updated_at": utcnow,
    },
    "call_history": {
        "user_id": lambda: None,
        "ai_agent_id": lambda: None,
        "property_id": lambda: None,
        "call_timestamp": utcnow,
        "duration_seconds": lambda: None,
        "status": lambda: "completed",
        "recording_url": lambda: None,
        "summary": lambda: None,
        "transcript": lambda: None,
        "created_at": utcnow,
        "updated_at": utcnow,
    },
    "tags": {
        "color": lambda: None,
        "created_at": utcnow,
    },
    "call_tags": {
        "assigned_at": utcnow,
    },
}

UNIQUE_KEYS: Dict[str, List[Tuple[str, ...]]] = {
    "users": [("email",)],
    "ai_agents": [("user_id",)],
    "tags": [("user_id", "name")],
    "call_tags": [("call_id", "tag_id")],
}


def _comparable(value: Any) -> Any:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return value


def _matches(row: Dict[str, Any], filters: Iterable[Filter]) -> bool:
    for op, column, value in filters:
        if op == "eq":
            if row.get(column) != value:
                return False
        elif op in ("gte", "lte"):
            current = row.get(column)
            if current is None:
                return False
            left, right = _comparable(current), _comparable(value)
            if op == "gte" and not left >= right:
                return False
            if op == "lte" and not left <= right:
                return False
        elif op == "ilike_any":
            needle = str(value).lower()
            if not any(needle in str(row.get(c) or "").lower() for c in column):
                return False
        else:
            raise ValueError(f"Unsupported filter op: {op}")
    return True


class InMemoryDB:
    """Row store with the same contract as SupabaseDB, used for local runs and tests."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in TABLE_DEFAULTS}

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        if table not in self.tables:
            raise ValueError(f"Unknown table: {table}")
        return self.tables[table]

    def _check_unique(self, table: str, candidate: Dict[str, Any], skip: Optional[Dict[str, Any]] = None) -> None:
        for key in UNIQUE_KEYS.get(table, []):
            for other in self._rows(table):
                if other is skip:
                    continue
                if all(other.get(c) == candidate.get(c) for c in key):
                    raise UniqueViolation(table, key)

    def _shape(self, row: Dict[str, Any], columns: Optional[Sequence[str]], embeds: Sequence[Embed]) -> Dict[str, Any]:
        out = {c: row.get(c) for c in columns} if columns else dict(row)
        for embed in embeds:
            related = next((r for r in self._rows(embed.table) if r.get("id") == row.get(embed.foreign_key)), None)
            out[embed.alias] = {c: related.get(c) for c in embed.columns} if related else None
        return out

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        columns: Optional[Sequence[str]] = None,
        embeds: Sequence[Embed] = (),
        order: Optional[str] = None,
        desc: bool = False,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        rows = [r for r in self._rows(table) if _matches(r, filters)]
        total = len(rows)
        if order:
            present = [r for r in rows if r.get(order) is not None]
            missing = [r for r in rows if r.get(order) is None]
            present.sort(key=lambda r: _comparable(r[order]), reverse=desc)
            # Postgres puts nulls first on desc, last on asc
            rows = missing + present if desc else present + missing
        if limit is not None:
            start = offset or 0
            rows = rows[start:start + limit]
        return [self._shape(r, columns, embeds) for r in rows], total

    def insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        row = {"id": str(uuid4())}
        for column, default in TABLE_DEFAULTS.get(table, {}).items():
            row[column] = default()
        row.update(values)
        self._check_unique(table, row)
        self._rows(table).append(row)
        return dict(row)

    def upsert(self, table: str, values: Dict[str, Any], on_conflict: Sequence[str]) -> Dict[str, Any]:
        existing = next(
            (r for r in self._rows(table) if all(r.get(c) == values.get(c) for c in on_conflict)),
            None,
        )
        if existing is None:
            return self.insert(table, values)
        candidate = {**existing, **values}
        self._check_unique(table, candidate, skip=existing)
        existing.update(values)
        return dict(existing)

    def update(self, table: str, filters: Sequence[Filter], values: Dict[str, Any]) -> List[Dict[str, Any]]:
        targets = [r for r in self._rows(table) if _matches(r, filters)]
        for row in targets:
            self._check_unique(table, {**row, **values}, skip=row)
        for row in targets:
            row.update(values)
        return [dict(r) for r in targets]

    def delete(self, table: str, filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        rows = self._rows(table)
        removed = [r for r in rows if _matches(r, filters)]
        self.tables[table] = [r for r in rows if not _matches(r, filters)]
        return removed


def _sanitize_pattern(value: Any) -> str:
    # PostgREST uses , ( ) as or() syntax
    return "".join(ch for ch in str(value) if ch not in ",()")


class SupabaseDB:
    def __init__(self, client: Client) -> None:
        self.client = client

    @staticmethod
    def _apply_filters(query, filters: Sequence[Filter]):
        for op, column, value in filters:
            if op == "eq":
                query = query.eq(column, value)
            elif op == "gte":
                query = query.gte(column, value)
            elif op == "lte":
                query = query.lte(column, value)
            elif op == "ilike_any":
                pattern = _sanitize_pattern(value)
                query = query.or_(",".join(f"{c}.ilike.%{pattern}%" for c in column))
            else:
                raise ValueError(f"Unsupported filter op: {op}")
        return query

    @staticmethod
    def _execute(query, table: str):
        try:
            return query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION_CODE:
                raise UniqueViolation(table, ()) from e
            raise

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        columns: Optional[Sequence[str]] = None,
        embeds: Sequence[Embed] = (),
        order: Optional[str] = None,
        desc: bool = False,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        parts = [",".join(columns) if columns else "*"]
        for e in embeds:
            parts.append(f"{e.alias}:{e.table}!{e.foreign_key}({','.join(e.columns)})")
        # count is computed by the same request as the page slice
        query = self.client.table(table).select(",".join(parts), count="exact")
        query = self._apply_filters(query, filters)
        if order:
            query = query.order(order, desc=desc)
        if limit is not None:
            start = offset or 0
            query = query.range(start, start + limit - 1)
        res = self._execute(query, table)
        return res.data or [], res.count or 0

    def insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        res = self._execute(self.client.table(table).insert(values), table)
        return (res.data or [])[0]

    def upsert(self, table: str, values: Dict[str, Any], on_conflict: Sequence[str]) -> Dict[str, Any]:
        query = self.client.table(table).upsert(values, on_conflict=",".join(on_conflict), ignore_duplicates=False)
        res = self._execute(query, table)
        return (res.data or [])[0]

    def update(self, table: str, filters: Sequence[Filter], values: Dict[str, Any]) -> List[Dict[str, Any]]:
        query = self._apply_filters(self.client.table(table).update(values), filters)
        res = self._execute(query, table)
        return res.data or []

    def delete(self, table: str, filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        query = self._apply_filters(self.client.table(table).delete(), filters)
        res = self._execute(query, table)
        return res.data or []


RowStore = Union[InMemoryDB, SupabaseDB]


def build_db(url: Optional[str], key: Optional[str]) -> RowStore:
    if url and key:
        logger.info("Using Supabase row store")
        return SupabaseDB(create_client(url, key))
    logger.warning("SUPABASE_URL or service key missing; using in-memory row store")
    return InMemoryDB()


@lru_cache
def get_db() -> RowStore:
    """Process-wide row store. Tests replace it through app.dependency_overrides."""
    settings = get_settings()
    return build_db(settings.supabase_url, settings.supabase_service_role_key)
