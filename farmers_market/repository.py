"""
Generic document repository.

One ``Repository`` class serves every entity.  What differs between entities
lives in a static ``EntityConfig``: the table, the writable field names, the
natural keys and the fields hashed at write time.  Documents go in and come
out as plain dicts so the layers above never touch ORM instances.

Repositories flush but do not commit; the transaction boundary belongs to the
``get_db`` dependency.  Store errors (integrity violations in particular)
propagate unmodified to the caller.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from farmers_market import models
from farmers_market.errors import NotFoundError, ValidationError
from farmers_market.security import hash_password_async
from farmers_market.slugs import slugify

Document = dict[str, Any]


@dataclass(frozen=True)
class EntityConfig:
    """Static, per-entity description consumed by ``Repository``."""

    name: str
    model: type[models.Base]
    allowed_fields: frozenset[str]
    unique_fields: frozenset[str] = frozenset()
    hashed_fields: frozenset[str] = frozenset()
    # Adds derived fields to incoming data (e.g. a slug from the city).
    derive: Callable[[dict[str, Any]], dict[str, Any]] | None = None
    default_sort: tuple[str, ...] = ("created_at", "id")
    fields: tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        columns = tuple(c.key for c in self.model.__mapper__.column_attrs)
        object.__setattr__(self, "fields", columns)

    def disallowed(self, data: Mapping[str, Any]) -> list[str]:
        return sorted(key for key in data if key not in self.allowed_fields)


def _derive_location_slug(data: dict[str, Any]) -> dict[str, Any]:
    if data.get("city"):
        slug = slugify(data["city"])
        if not slug:
            raise ValidationError(f"City {data['city']!r} has no characters usable in a slug")
        data["slug"] = slug
    return data


LOCATION = EntityConfig(
    name="location",
    model=models.Location,
    allowed_fields=frozenset({"city", "slug"}),
    unique_fields=frozenset({"city", "slug"}),
    derive=_derive_location_slug,
)

MEMBER = EntityConfig(
    name="member",
    model=models.Member,
    allowed_fields=frozenset({"name", "location", "phone", "email", "password"}),
    unique_fields=frozenset({"email"}),
    hashed_fields=frozenset({"password"}),
)

FARM = EntityConfig(
    name="farm",
    model=models.Farm,
    allowed_fields=frozenset({"name", "member"}),
)

PRODUCT = EntityConfig(
    name="product",
    model=models.Product,
    allowed_fields=frozenset({"name", "producer", "price", "soldout"}),
)

WEBHOOK = EntityConfig(
    name="webhook",
    model=models.WebHook,
    allowed_fields=frozenset({"url", "event"}),
)


class Repository:
    """Async CRUD over one entity's collection, returning plain dicts."""

    def __init__(self, db: AsyncSession, config: EntityConfig) -> None:
        self._db = db
        self._config = config
        self._model = config.model

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _to_document(self, obj) -> Document:
        return {name: getattr(obj, name) for name in self._config.fields}

    def _conditions(self, filter: Mapping[str, Any] | None) -> list:
        conditions = []
        for name, value in (filter or {}).items():
            if name not in self._config.fields:
                raise ValidationError(f"Unknown {self._config.name} field: {name}")
            column = getattr(self._model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                conditions.append(column.in_(list(value)))
            else:
                conditions.append(column == value)
        return conditions

    def _ordering(self, sort: str | Iterable[str] | None) -> list:
        keys = [sort] if isinstance(sort, str) else list(sort or self._config.default_sort)
        ordering = []
        for key in keys:
            descending = key.startswith("-")
            name = key.lstrip("-")
            if name not in self._config.fields:
                raise ValidationError(f"Cannot sort {self._config.name} by {name}")
            column = getattr(self._model, name)
            ordering.append(desc(column) if descending else asc(column))
        return ordering

    async def _prepare(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Validate field names, then derive and hash fields for storage."""
        rejected = self._config.disallowed(data)
        if rejected:
            raise ValidationError(
                f"Disallowed {self._config.name} field(s): {', '.join(rejected)}",
                details=rejected,
            )
        prepared = dict(data)
        if self._config.derive is not None:
            prepared = self._config.derive(prepared)
        for name in self._config.hashed_fields:
            if prepared.get(name) is not None:
                prepared[name] = await hash_password_async(prepared[name])
        return prepared

    async def _load(self, conditions: Mapping[str, Any]):
        q = select(self._model).where(*self._conditions(conditions)).limit(1)
        result = await self._db.execute(q)
        return result.scalars().first()

    async def _write(self, obj, data: Mapping[str, Any]) -> Document:
        for name, value in data.items():
            setattr(obj, name, value)
        await self._db.flush()
        await self._db.refresh(obj)
        return self._to_document(obj)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(
        self,
        filter: Mapping[str, Any] | None = None,
        projection: Iterable[str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> list[Document]:
        """
        Return every document matching *filter* (equality per field; a
        list/tuple/set value matches any of its members).

        *projection* restricts the returned fields (``id`` is always kept).
        *options* accepts ``skip``, ``limit`` and ``sort`` (a field name or a
        list of names, ``-`` prefix for descending).
        """
        options = options or {}
        if projection is not None:
            names = ["id", *(name for name in projection if name != "id")]
            for name in names:
                if name not in self._config.fields:
                    raise ValidationError(f"Unknown {self._config.name} field: {name}")
            q = select(*(getattr(self._model, name) for name in names))
        else:
            q = select(self._model)

        q = q.where(*self._conditions(filter)).order_by(*self._ordering(options.get("sort")))
        if options.get("skip"):
            q = q.offset(options["skip"])
        if options.get("limit"):
            q = q.limit(options["limit"])

        result = await self._db.execute(q)
        if projection is not None:
            return [dict(row._mapping) for row in result.all()]
        return [self._to_document(obj) for obj in result.scalars().all()]

    async def count(self, filter: Mapping[str, Any] | None = None) -> int:
        q = select(func.count()).select_from(self._model).where(*self._conditions(filter))
        return (await self._db.execute(q)).scalar_one()

    async def get_by_id(self, id: str) -> Document | None:
        obj = await self._db.get(self._model, id)
        return self._to_document(obj) if obj is not None else None

    async def get_one(self, conditions: Mapping[str, Any]) -> Document | None:
        obj = await self._load(conditions)
        return self._to_document(obj) if obj is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, data: Mapping[str, Any]) -> Document:
        prepared = await self._prepare(data)
        obj = self._model()
        self._db.add(obj)
        return await self._write(obj, prepared)

    async def update(self, id: str, data: Mapping[str, Any]) -> Document:
        """Merge *data* into the document with *id*; absent fields are kept."""
        prepared = await self._prepare(data)
        obj = await self._db.get(self._model, id)
        if obj is None:
            raise NotFoundError()
        return await self._write(obj, prepared)

    async def replace(self, id: str, data: Mapping[str, Any]) -> Document:
        """
        Overwrite every supplied field of the document with *id*.

        ``None`` values are written as-is (unlike ``update`` callers, which
        send only the fields they mean to change).
        """
        obj = await self._db.get(self._model, id)
        if obj is None:
            raise NotFoundError()
        return await self._write(obj, await self._prepare(data))

    async def replace_by_name(self, filter: Mapping[str, Any], data: Mapping[str, Any]) -> Document:
        """Same as ``replace`` but resolves the document by a natural key."""
        obj = await self._load(filter)
        if obj is None:
            raise NotFoundError()
        return await self._write(obj, await self._prepare(data))

    async def delete(self, id: str) -> Document | None:
        obj = await self._db.get(self._model, id)
        if obj is None:
            return None
        document = self._to_document(obj)
        await self._db.delete(obj)
        await self._db.flush()
        return document

    async def delete_by_name(self, filter: Mapping[str, Any]) -> Document | None:
        obj = await self._load(filter)
        if obj is None:
            return None
        return await self.delete(obj.id)
