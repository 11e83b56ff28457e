from fastapi import APIRouter, Request, Response

from farmers_market import hateoas as links
from farmers_market.dependencies import FarmService, LoadedFarm, LoadedMember
from farmers_market.errors import translate_store_errors
from farmers_market.repository import Document
from farmers_market.schemas import FarmCreate, FarmUpdate
from farmers_market.security import CurrentPrincipal

router = APIRouter(prefix="/members/{member_id}/farms", tags=["farms"])


def _context(request: Request) -> links.LinkContext:
    # Farm links hang off the member collection: /members/<id>/farms/<farmId>
    return links.LinkContext.from_request(request, "members")


def _farm_summary(ctx: links.LinkContext, member_id: str, farm: Document) -> dict:
    return {
        "id": farm["id"],
        "name": farm["name"],
        "member": farm["member"],
        "_links": {"self": links.nested_resource_by_id_link(ctx, member_id, "farms", farm["id"])},
    }


def _farm_links(ctx: links.LinkContext, member_id: str, farm_id: str) -> dict:
    return {
        "self": links.nested_resource_by_id_link(ctx, member_id, "farms", farm_id),
        "get": links.nested_resource_link(ctx, member_id, "farms"),
        "create": links.nested_resource_create_link(ctx, member_id, "farms"),
        "update": links.nested_resource_update_link(ctx, member_id, "farms", farm_id),
        "delete": links.nested_resource_delete_link(ctx, member_id, "farms", farm_id),
        "member": links.resource_by_id_link(ctx, member_id),
        "products": links.double_nested_resource_link(ctx, member_id, "farms", farm_id, "products"),
    }


def _farm_response(ctx: links.LinkContext, member_id: str, farm: Document) -> dict:
    return links.hal(
        _farm_links(ctx, member_id, farm["id"]),
        {"farm": _farm_summary(ctx, member_id, farm)},
    )


@router.get("")
async def list_member_farms(member: LoadedMember, request: Request, service: FarmService):
    ctx = _context(request)
    farms = await service.get_all_resources_by_filter({"member": member["id"]})
    return links.hal(
        {
            "self": links.nested_resource_link(ctx, member["id"], "farms"),
            "create": links.nested_resource_create_link(ctx, member["id"], "farms"),
            "member": links.resource_by_id_link(ctx, member["id"], member["name"]),
        },
        {"farms": [_farm_summary(ctx, member["id"], farm) for farm in farms]},
    )


@router.post("", status_code=201)
async def create_farm(
    principal: CurrentPrincipal,
    data: FarmCreate,
    member: LoadedMember,
    request: Request,
    response: Response,
    service: FarmService,
):
    ctx = _context(request)
    with translate_store_errors():
        farm = await service.insert({**data.model_dump(), "member": member["id"]})
    response.headers["Location"] = links.build_href(ctx, member["id"], "farms", farm["id"])
    return _farm_response(ctx, member["id"], farm)


@router.get("/{farm_id}")
async def get_farm(member: LoadedMember, farm: LoadedFarm, request: Request):
    return _farm_response(_context(request), member["id"], farm)


@router.put("/{farm_id}")
async def replace_farm(
    principal: CurrentPrincipal,
    data: FarmCreate,
    member: LoadedMember,
    farm: LoadedFarm,
    request: Request,
    service: FarmService,
):
    with translate_store_errors():
        await service.replace(farm["id"], {**data.model_dump(), "member": member["id"]})
    updated = await service.get_by_id(farm["id"])
    return _farm_response(_context(request), member["id"], updated)


@router.patch("/{farm_id}")
async def patch_farm(
    principal: CurrentPrincipal,
    data: FarmUpdate,
    member: LoadedMember,
    farm: LoadedFarm,
    request: Request,
    service: FarmService,
):
    with translate_store_errors():
        await service.update(farm["id"], data.model_dump(exclude_unset=True))
    updated = await service.get_by_id(farm["id"])
    return _farm_response(_context(request), member["id"], updated)


@router.delete("/{farm_id}", status_code=204)
async def delete_farm(principal: CurrentPrincipal, farm: LoadedFarm, service: FarmService):
    await service.delete(farm["id"])
    return Response(status_code=204)
