import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response

from farmers_market import hateoas as links
from farmers_market.dependencies import LoadedFarm, LoadedMember, LoadedProduct, ProductService, WebHookService
from farmers_market.errors import translate_store_errors
from farmers_market.repository import Document
from farmers_market.schemas import ProductCreate, ProductReplace, ProductUpdate
from farmers_market.security import CurrentPrincipal
from farmers_market.services.webhook_service import (
    SOLDOUT_EVENT,
    WebhookNotifier,
    collect_soldout_notification,
    get_webhook_notifier,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/members/{member_id}/farms/{farm_id}/products", tags=["products"])

Notifier = Annotated[WebhookNotifier, Depends(get_webhook_notifier)]


def _context(request: Request) -> links.LinkContext:
    return links.LinkContext.from_request(request, "members")


def _product_summary(ctx: links.LinkContext, member_id: str, farm_id: str, product: Document) -> dict:
    return {
        "id": product["id"],
        "name": product["name"],
        "producer": product["producer"],
        "price": product["price"],
        "soldout": product["soldout"],
        "_links": {
            "self": links.double_nested_resource_by_id_link(
                ctx, member_id, "farms", farm_id, "products", product["id"]
            )
        },
    }


def _product_links(ctx: links.LinkContext, member_id: str, farm_id: str, product_id: str) -> dict:
    return {
        "self": links.double_nested_resource_by_id_link(ctx, member_id, "farms", farm_id, "products", product_id),
        "get": links.double_nested_resource_link(ctx, member_id, "farms", farm_id, "products"),
        "create": links.double_nested_resource_create_link(ctx, member_id, "farms", farm_id, "products"),
        "update": links.double_nested_resource_update_link(ctx, member_id, "farms", farm_id, "products", product_id),
        "delete": links.double_nested_resource_delete_link(ctx, member_id, "farms", farm_id, "products", product_id),
        "farm": links.nested_resource_by_id_link(ctx, member_id, "farms", farm_id),
    }


def _product_response(ctx: links.LinkContext, member_id: str, farm_id: str, product: Document) -> dict:
    return links.hal(
        _product_links(ctx, member_id, farm_id, product["id"]),
        {"product": _product_summary(ctx, member_id, farm_id, product)},
    )


async def _schedule_soldout_notification(
    data: dict,
    products: ProductService,
    webhooks: WebHookService,
    notifier: WebhookNotifier,
    background_tasks: BackgroundTasks,
) -> None:
    """Queue webhook delivery when the write marked a product as sold out."""
    if data.get("soldout") is not True:
        return
    urls, payload = await collect_soldout_notification(products, webhooks)
    if urls:
        logger.info("Scheduling %s notification for %d webhook(s)", SOLDOUT_EVENT, len(urls))
        background_tasks.add_task(notifier.notify, urls, SOLDOUT_EVENT, payload)


@router.get("")
async def list_farm_products(member: LoadedMember, farm: LoadedFarm, request: Request, service: ProductService):
    ctx = _context(request)
    products = await service.get_all_resources_by_filter({"producer": farm["id"]})
    return links.hal(
        {
            "self": links.double_nested_resource_link(ctx, member["id"], "farms", farm["id"], "products"),
            "create": links.double_nested_resource_create_link(ctx, member["id"], "farms", farm["id"], "products"),
            "farm": links.nested_resource_by_id_link(ctx, member["id"], "farms", farm["id"]),
        },
        {"products": [_product_summary(ctx, member["id"], farm["id"], product) for product in products]},
    )


@router.post("", status_code=201)
async def create_product(
    principal: CurrentPrincipal,
    data: ProductCreate,
    member: LoadedMember,
    farm: LoadedFarm,
    request: Request,
    response: Response,
    service: ProductService,
    webhooks: WebHookService,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
):
    ctx = _context(request)
    values = {**data.model_dump(), "producer": farm["id"]}
    with translate_store_errors():
        product = await service.insert(values)
    await _schedule_soldout_notification(values, service, webhooks, notifier, background_tasks)
    response.headers["Location"] = links.build_href(ctx, member["id"], "farms", farm["id"], "products", product["id"])
    return _product_response(ctx, member["id"], farm["id"], product)


@router.get("/{product_id}")
async def get_product(member: LoadedMember, farm: LoadedFarm, product: LoadedProduct, request: Request):
    return _product_response(_context(request), member["id"], farm["id"], product)


@router.put("/{product_id}")
async def replace_product(
    principal: CurrentPrincipal,
    data: ProductReplace,
    member: LoadedMember,
    farm: LoadedFarm,
    product: LoadedProduct,
    request: Request,
    service: ProductService,
    webhooks: WebHookService,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
):
    values = data.model_dump()
    values["producer"] = values["producer"] or farm["id"]
    with translate_store_errors():
        await service.replace(product["id"], values)
    await _schedule_soldout_notification(values, service, webhooks, notifier, background_tasks)
    updated = await service.get_by_id(product["id"])
    return _product_response(_context(request), member["id"], farm["id"], updated)


@router.patch("/{product_id}")
async def patch_product(
    principal: CurrentPrincipal,
    data: ProductUpdate,
    member: LoadedMember,
    farm: LoadedFarm,
    product: LoadedProduct,
    request: Request,
    service: ProductService,
    webhooks: WebHookService,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
):
    values = data.model_dump(exclude_unset=True)
    with translate_store_errors():
        await service.update(product["id"], values)
    await _schedule_soldout_notification(values, service, webhooks, notifier, background_tasks)
    updated = await service.get_by_id(product["id"])
    return _product_response(_context(request), member["id"], farm["id"], updated)


@router.delete("/{product_id}", status_code=204)
async def delete_product(principal: CurrentPrincipal, product: LoadedProduct, service: ProductService):
    await service.delete(product["id"])
    return Response(status_code=204)
