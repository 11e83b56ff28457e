from fastapi import APIRouter, Request, Response

from farmers_market import hateoas as links
from farmers_market.dependencies import WebHookService
from farmers_market.errors import NotFoundError, translate_store_errors
from farmers_market.repository import Document
from farmers_market.schemas import WebHookCreate

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _context(request: Request) -> links.LinkContext:
    return links.LinkContext.from_request(request, "webhooks")


def _webhook_summary(ctx: links.LinkContext, webhook: Document) -> dict:
    return {
        "id": webhook["id"],
        "url": webhook["url"],
        "event": webhook["event"],
        "_links": {
            "self": links.plain_resource_link(ctx, webhook["id"]),
            "unregister": links.delete_link(ctx, webhook["id"], webhook["event"]),
        },
    }


@router.get("")
async def list_webhooks(request: Request, service: WebHookService):
    ctx = _context(request)
    webhooks = await service.get()
    return links.hal(
        {
            "self": links.base_url_link(ctx),
            "register": links.make_link(links.build_href(ctx, "register"), "POST", "Register a webhook URL"),
        },
        {"webhooks": [_webhook_summary(ctx, webhook) for webhook in webhooks]},
    )


@router.post("/register", status_code=201)
async def register_webhook(data: WebHookCreate, request: Request, response: Response, service: WebHookService):
    ctx = _context(request)
    with translate_store_errors():
        webhook = await service.insert({"url": str(data.url), "event": data.event})
    response.headers["Location"] = links.build_href(ctx, webhook["id"])
    return links.hal(
        {"self": links.plain_resource_link(ctx, webhook["id"]), "get": links.base_url_link(ctx)},
        {"webhook": _webhook_summary(ctx, webhook)},
    )


@router.delete("/{webhook_id}", status_code=204)
async def unregister_webhook(webhook_id: str, service: WebHookService):
    if await service.delete(webhook_id) is None:
        raise NotFoundError()
    return Response(status_code=204)
