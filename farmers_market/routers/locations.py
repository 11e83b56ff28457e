from fastapi import APIRouter, Request, Response

from farmers_market import hateoas as links
from farmers_market.dependencies import LoadedLocation, LocationService, MemberService
from farmers_market.errors import translate_store_errors
from farmers_market.repository import Document
from farmers_market.routers.members import member_summary
from farmers_market.schemas import LocationCreate, LocationUpdate

router = APIRouter(prefix="/locations", tags=["locations"])

_DUPLICATE_CITY = "A location with this city already exists"


def _context(request: Request) -> links.LinkContext:
    return links.LinkContext.from_request(request, "locations")


def _location_links(ctx: links.LinkContext, location: Document) -> dict:
    location_id, city = location["id"], location["city"]
    return {
        "self": links.resource_by_id_link(ctx, location_id, city),
        "bySlug": links.resource_by_slug_link(ctx, location["slug"]),
        "get": links.base_url_link(ctx),
        "update": links.update_link(ctx, location_id, city),
        "patch": links.patch_link(ctx, location_id, city),
        "delete": links.delete_link(ctx, location_id, city),
        "members": links.nested_resource_link(ctx, location_id, "members"),
    }


def _location_summary(ctx: links.LinkContext, location: Document) -> dict:
    return {
        "id": location["id"],
        "city": location["city"],
        "slug": location["slug"],
        "_links": {"self": links.plain_resource_link(ctx, location["id"])},
    }


def _location_response(ctx: links.LinkContext, location: Document) -> dict:
    return links.hal(
        _location_links(ctx, location),
        {"location": _location_summary(ctx, location)},
    )


async def _write(service: LocationService, key: str, location: Document, data: dict, partial: bool) -> Document:
    """Persist by id when addressed by id, otherwise by the slug natural key."""
    with translate_store_errors(_DUPLICATE_CITY):
        if key == location["id"]:
            if partial:
                return await service.update(location["id"], data)
            return await service.replace(location["id"], data)
        return await service.replace_by_name({"slug": location["slug"]}, data)


@router.get("")
async def list_locations(request: Request, service: LocationService):
    ctx = _context(request)
    locations = await service.get()
    return links.hal(
        {"self": links.base_url_link(ctx), "create": links.create_link(ctx, "location")},
        {
            "locations": [
                {**_location_summary(ctx, location), "_links": _location_links(ctx, location)}
                for location in locations
            ]
        },
    )


@router.post("", status_code=201)
async def create_location(data: LocationCreate, request: Request, response: Response, service: LocationService):
    ctx = _context(request)
    with translate_store_errors(_DUPLICATE_CITY):
        location = await service.insert(data.model_dump())
    response.headers["Location"] = links.build_href(ctx, location["id"])
    return links.hal(
        {
            "self": links.plain_resource_link(ctx, location["id"]),
            "get": links.base_url_link(ctx),
            "getById": links.resource_by_id_link(ctx, location["id"], location["city"]),
            "update": links.update_link(ctx, location["id"], location["city"]),
            "delete": links.delete_link(ctx, location["id"], location["city"]),
        },
        {"location": _location_summary(ctx, location)},
    )


@router.get("/{location_key}")
async def get_location(location: LoadedLocation, request: Request):
    return _location_response(_context(request), location)


@router.get("/{location_key}/members")
async def list_location_members(location: LoadedLocation, request: Request, members: MemberService):
    ctx = _context(request)
    member_ctx = links.LinkContext.from_request(request, "members")
    # Members reference their location by id, city or slug.
    keys = {location["id"], location["city"], location["slug"]}
    found = await members.get_all_resources_by_filter({"location": keys})
    return links.hal(
        {
            "self": links.nested_resource_link(ctx, location["id"], "members"),
            "location": links.resource_by_id_link(ctx, location["id"], location["city"]),
        },
        {"members": [member_summary(member_ctx, member) for member in found]},
    )


@router.put("/{location_key}")
async def replace_location(
    location_key: str, data: LocationCreate, location: LoadedLocation, request: Request, service: LocationService
):
    updated = await _write(service, location_key, location, data.model_dump(), partial=False)
    return _location_response(_context(request), updated)


@router.patch("/{location_key}")
async def patch_location(
    location_key: str, data: LocationUpdate, location: LoadedLocation, request: Request, service: LocationService
):
    updated = await _write(service, location_key, location, data.model_dump(exclude_unset=True), partial=True)
    return _location_response(_context(request), updated)


@router.delete("/{location_key}", status_code=204)
async def delete_location(location_key: str, location: LoadedLocation, service: LocationService):
    if location_key == location["id"]:
        await service.delete(location["id"])
    else:
        await service.delete_by_name({"slug": location["slug"]})
    return Response(status_code=204)
