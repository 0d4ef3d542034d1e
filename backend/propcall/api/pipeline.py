"""
Ownership-scoped row operations shared by every resource endpoint.

Each OwnedResource binds a table to the column holding the owning user id. Every
read, update and delete it issues carries that column as a filter, so a row owned
by another user is never visible: it is reported exactly like a missing row.
Updates and deletes are a single filtered mutation; zero affected rows means 404.
"""
import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..db import Embed, Filter, RowStore, UniqueViolation, utcnow
from ..errors import ConflictError, NotFoundError, ValidationError, format_validation_errors
from ..services.security import Identity

# Set up logger
logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def validate(schema: Type[M], payload: Any) -> M:
    """Validate a raw payload against a schema or raise a 400 with one message per violation."""
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(format_validation_errors(e.errors()))


def total_pages(total_items: int, limit: int) -> int:
    return math.ceil(total_items / limit) if limit else 0


def pagination(total_items: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "totalItems": total_items,
        "currentPage": page,
        "itemsPerPage": limit,
        "totalPages": total_pages(total_items, limit),
    }


class OwnedResource:
    def __init__(
        self,
        table: str,
        label: str,
        owner_column: str = "user_id",
        created_field: Optional[str] = "created_at",
        updated_field: Optional[str] = "updated_at",
        conflict_message: Optional[str] = None,
    ) -> None:
        self.table = table
        self.label = label
        self.owner_column = owner_column
        self.created_field = created_field
        self.updated_field = updated_field
        self.conflict_message = conflict_message or f"{label} already exists"

    @property
    def not_found_message(self) -> str:
        return f"{self.label} not found"

    def scope(self, identity: Identity, rid: Any = None, **match: Any) -> List[Filter]:
        filters: List[Filter] = [("eq", self.owner_column, identity.id)]
        if rid is not None:
            filters.append(("eq", "id", str(rid)))
        for column, value in match.items():
            filters.append(("eq", column, str(value)))
        return filters

    def list(
        self,
        db: RowStore,
        identity: Identity,
        filters: Sequence[Filter] = (),
        **select_kwargs: Any,
    ) -> Tuple[List[Dict[str, Any]], int]:
        return db.select(self.table, filters=[*self.scope(identity), *filters], **select_kwargs)

    def get(
        self,
        db: RowStore,
        identity: Identity,
        rid: Any = None,
        columns: Optional[Sequence[str]] = None,
        embeds: Sequence[Embed] = (),
    ) -> Dict[str, Any]:
        rows, _ = db.select(self.table, filters=self.scope(identity, rid), columns=columns, embeds=embeds, limit=1)
        if not rows:
            raise NotFoundError(self.not_found_message)
        return rows[0]

    def require(self, db: RowStore, identity: Identity, rid: Any) -> None:
        """Ownership check for a referenced row in a multi-resource operation."""
        self.get(db, identity, rid, columns=("id",))

    def _stamp(self, values: Dict[str, Any], created: bool) -> Dict[str, Any]:
        now = utcnow()
        stamped = dict(values)
        if created and self.created_field:
            stamped[self.created_field] = now
        if self.updated_field:
            stamped[self.updated_field] = now
        return stamped

    def create(self, db: RowStore, identity: Identity, values: Dict[str, Any]) -> Dict[str, Any]:
        row = self._stamp(values, created=True)
        row[self.owner_column] = identity.id
        try:
            return db.insert(self.table, row)
        except UniqueViolation:
            raise ConflictError(self.conflict_message)

    def upsert(self, db: RowStore, identity: Identity, values: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or update the single row keyed on the owner column."""
        row = self._stamp(values, created=False)
        row[self.owner_column] = identity.id
        try:
            return db.upsert(self.table, row, on_conflict=(self.owner_column,))
        except UniqueViolation:
            raise ConflictError(self.conflict_message)

    def update(self, db: RowStore, identity: Identity, values: Dict[str, Any], rid: Any = None) -> Dict[str, Any]:
        try:
            rows = db.update(self.table, self.scope(identity, rid), self._stamp(values, created=False))
        except UniqueViolation:
            raise ConflictError(self.conflict_message)
        if not rows:
            raise NotFoundError(self.not_found_message)
        return rows[0]

    def delete(self, db: RowStore, identity: Identity, rid: Any = None, **match: Any) -> None:
        removed = db.delete(self.table, self.scope(identity, rid, **match))
        if not removed:
            raise NotFoundError(self.not_found_message)
        logger.info(f"Deleted {len(removed)} row(s) from {self.table} for user {identity.id}")
