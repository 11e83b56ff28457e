from fastapi import APIRouter, Depends, Request, Response

from farmers_market import hateoas as links
from farmers_market.dependencies import LoadedMember, MemberService, PaginationParams
from farmers_market.errors import translate_store_errors
from farmers_market.repository import Document
from farmers_market.schemas import LoginRequest, LoginResponse, MemberCreate, MemberUpdate
from farmers_market.security import CurrentPrincipal
from farmers_market.services import member_service

router = APIRouter(prefix="/members", tags=["members"])

_DUPLICATE_EMAIL = "Email address already in use"


def _context(request: Request) -> links.LinkContext:
    return links.LinkContext.from_request(request, "members")


def member_summary(ctx: links.LinkContext, member: Document) -> dict:
    """Public projection of a member; the password hash never leaves the server."""
    return {
        "id": member["id"],
        "name": member["name"],
        "location": member["location"],
        "phone": member["phone"],
        "email": member["email"],
        "_links": {"self": links.plain_resource_link(ctx, member["id"])},
    }


def _member_links(ctx: links.LinkContext, member: Document) -> dict:
    member_id, name = member["id"], member["name"]
    return {
        "self": links.resource_by_id_link(ctx, member_id, name),
        "get": links.base_url_link(ctx),
        "update": links.update_link(ctx, member_id, name),
        "patch": links.patch_link(ctx, member_id, name),
        "delete": links.delete_link(ctx, member_id, name),
        "farms": links.nested_resource_link(ctx, member_id, "farms"),
    }


def _member_response(ctx: links.LinkContext, member: Document) -> dict:
    return links.hal(_member_links(ctx, member), {"member": member_summary(ctx, member)})


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, service: MemberService):
    return await member_service.login(service, data.email, data.password)


@router.get("")
async def list_members(
    request: Request,
    service: MemberService,
    pagination: PaginationParams = Depends(),
):
    ctx = _context(request)
    page, per_page = pagination.page, pagination.per_page
    members, total, total_pages = await member_service.get_members_page(service, pagination.offset, per_page)

    page_links = {
        "self": links.page_link(ctx, page, per_page),
        "create": links.create_link(ctx, "member"),
        "first": links.page_link(ctx, 1, per_page),
    }
    if page > 1 and page - 1 <= total_pages:
        page_links["prev"] = links.page_link(ctx, page - 1, per_page)
    if page < total_pages:
        page_links["next"] = links.page_link(ctx, page + 1, per_page)
    if total_pages > 0:
        page_links["last"] = links.page_link(ctx, total_pages, per_page)

    return links.hal(
        page_links,
        {
            "members": [
                {**member_summary(ctx, member), "_links": _member_links(ctx, member)}
                for member in members
            ]
        },
        page=page,
        perPage=per_page,
        total=total,
        totalPages=total_pages,
    )


@router.post("", status_code=201)
async def create_member(data: MemberCreate, request: Request, response: Response, service: MemberService):
    ctx = _context(request)
    with translate_store_errors(_DUPLICATE_EMAIL):
        member = await service.insert(data.model_dump())
    response.headers["Location"] = links.build_href(ctx, member["id"])
    return links.hal(
        {
            "self": links.plain_resource_link(ctx, member["id"]),
            "get": links.base_url_link(ctx),
            "getById": links.resource_by_id_link(ctx, member["id"], member["name"]),
            "update": links.update_link(ctx, member["id"], member["name"]),
            "delete": links.delete_link(ctx, member["id"], member["name"]),
        },
        {"member": member_summary(ctx, member)},
    )


@router.get("/{member_id}")
async def get_member(member: LoadedMember, request: Request):
    return _member_response(_context(request), member)


@router.put("/{member_id}")
async def replace_member(
    principal: CurrentPrincipal, data: MemberCreate, member: LoadedMember, request: Request, service: MemberService
):
    with translate_store_errors(_DUPLICATE_EMAIL):
        await service.replace(member["id"], data.model_dump())
    updated = await service.get_by_id(member["id"])
    return _member_response(_context(request), updated)


@router.patch("/{member_id}")
async def patch_member(
    principal: CurrentPrincipal, data: MemberUpdate, member: LoadedMember, request: Request, service: MemberService
):
    with translate_store_errors(_DUPLICATE_EMAIL):
        await service.update(member["id"], data.model_dump(exclude_unset=True))
    updated = await service.get_by_id(member["id"])
    return _member_response(_context(request), updated)


@router.delete("/{member_id}", status_code=204)
async def delete_member(principal: CurrentPrincipal, member: LoadedMember, service: MemberService):
    await service.delete(member["id"])
    return Response(status_code=204)
