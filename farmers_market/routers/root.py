from fastapi import APIRouter, Request

from farmers_market import hateoas as links

router = APIRouter(tags=["root"])


@router.get("/")
async def entry_point(request: Request):
    """List the top-level collections a client can start from."""
    ctx = links.LinkContext.from_request(request)
    return links.hal(
        {
            "self": links.base_url_link(ctx),
            "locations": links.make_link(links.build_href(ctx, "locations"), "GET", "Get ALL locations"),
            "members": links.make_link(links.build_href(ctx, "members"), "GET", "Get ALL members"),
            "webhooks": links.make_link(links.build_href(ctx, "webhooks"), "GET", "Get ALL webhooks"),
            "login": links.make_link(links.build_href(ctx, "members", "login"), "POST", "Log in as a member"),
        },
        message="Welcome to the farmers-market directory API",
    )
