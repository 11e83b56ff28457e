from typing import Annotated, Callable

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from farmers_market.config import settings
from farmers_market.database import get_db
from farmers_market.errors import NotFoundError
from farmers_market.repository import (
    FARM,
    LOCATION,
    MEMBER,
    PRODUCT,
    WEBHOOK,
    Document,
    EntityConfig,
    Repository,
)
from farmers_market.services.base import Service


class PaginationParams:
    """
    Reusable FastAPI dependency that parses the member-listing pagination
    query parameters.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    per_page:
        Number of items per page (``perPage`` in the query string), clamped
        to ``settings.MAX_PER_PAGE``.
    offset:
        Number of documents skipped before the requested page.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        per_page: int = Query(
            settings.DEFAULT_PER_PAGE,
            alias="perPage",
            ge=1,
            description="Number of members returned per page.",
        ),
    ) -> None:
        self.page = page
        self.per_page = min(per_page, settings.MAX_PER_PAGE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


# ---------------------------------------------------------------------------
# Service providers (one Service per entity, sharing the request's session)
# ---------------------------------------------------------------------------

def _service_provider(config: EntityConfig) -> Callable[..., Service]:
    def provide(db: AsyncSession = Depends(get_db)) -> Service:
        return Service(Repository(db, config))

    provide.__name__ = f"get_{config.name}_service"
    return provide


get_location_service = _service_provider(LOCATION)
get_member_service = _service_provider(MEMBER)
get_farm_service = _service_provider(FARM)
get_product_service = _service_provider(PRODUCT)
get_webhook_service = _service_provider(WEBHOOK)

LocationService = Annotated[Service, Depends(get_location_service)]
MemberService = Annotated[Service, Depends(get_member_service)]
FarmService = Annotated[Service, Depends(get_farm_service)]
ProductService = Annotated[Service, Depends(get_product_service)]
WebHookService = Annotated[Service, Depends(get_webhook_service)]


# ---------------------------------------------------------------------------
# Path-parameter loaders: resolve the entity or stop with 404
# ---------------------------------------------------------------------------

async def load_location(location_key: str, service: LocationService) -> Document:
    """Resolve a location by id, falling back to its slug."""
    location = await service.get_by_id(location_key)
    if location is None:
        location = await service.get_resource_by_filter({"slug": location_key})
    if location is None:
        raise NotFoundError()
    return location


async def load_member(member_id: str, service: MemberService) -> Document:
    member = await service.get_by_id(member_id)
    if member is None:
        raise NotFoundError()
    return member


async def load_farm(farm_id: str, service: FarmService, member: Annotated[Document, Depends(load_member)]) -> Document:
    farm = await service.get_by_id(farm_id)
    if farm is None:
        raise NotFoundError()
    return farm


async def load_product(
    product_id: str, service: ProductService, farm: Annotated[Document, Depends(load_farm)]
) -> Document:
    product = await service.get_by_id(product_id)
    if product is None:
        raise NotFoundError()
    return product


LoadedLocation = Annotated[Document, Depends(load_location)]
LoadedMember = Annotated[Document, Depends(load_member)]
LoadedFarm = Annotated[Document, Depends(load_farm)]
LoadedProduct = Annotated[Document, Depends(load_product)]
