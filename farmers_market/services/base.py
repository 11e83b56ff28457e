"""
Generic service over a ``Repository``.

Routers talk to services only, never to repositories, so the store can change
without touching HTTP code.  Apart from the two filter conveniences the
service is a straight pass-through.
"""
from typing import Any, Iterable, Mapping

from farmers_market.repository import Document, Repository


class Service:
    def __init__(self, repository: Repository) -> None:
        self._repository = repository

    async def get(
        self,
        filter: Mapping[str, Any] | None = None,
        projection: Iterable[str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> list[Document]:
        return await self._repository.get(filter, projection, options)

    async def count(self, filter: Mapping[str, Any] | None = None) -> int:
        return await self._repository.count(filter)

    async def get_by_id(self, id: str) -> Document | None:
        return await self._repository.get_by_id(id)

    async def get_resource_by_filter(self, filter: Mapping[str, Any]) -> Document | None:
        """Return the first document matching *filter*, e.g. ``{"email": ...}``."""
        return await self._repository.get_one(filter)

    async def get_all_resources_by_filter(self, filter: Mapping[str, Any]) -> list[Document]:
        """Return every document matching *filter*, e.g. all farms of a member."""
        return await self._repository.get(filter)

    async def insert(self, data: Mapping[str, Any]) -> Document:
        return await self._repository.insert(data)

    async def update(self, id: str, data: Mapping[str, Any]) -> Document:
        return await self._repository.update(id, data)

    async def replace(self, id: str, data: Mapping[str, Any]) -> Document:
        return await self._repository.replace(id, data)

    async def replace_by_name(self, filter: Mapping[str, Any], data: Mapping[str, Any]) -> Document:
        return await self._repository.replace_by_name(filter, data)

    async def delete(self, id: str) -> Document | None:
        return await self._repository.delete(id)

    async def delete_by_name(self, filter: Mapping[str, Any]) -> Document | None:
        return await self._repository.delete_by_name(filter)
