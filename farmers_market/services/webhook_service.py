"""
Webhook fan-out for product events.

Delivery is best-effort: each subscribed URL receives one POST, in
registration order, and a failing endpoint is logged and skipped without
affecting the rest of the batch or the request that triggered it.
"""
import logging
from typing import Any, Iterable

import httpx

from farmers_market.services.base import Service

logger = logging.getLogger(__name__)

SOLDOUT_EVENT = "product.soldout"


class WebhookNotifier:
    """Posts event payloads to registered webhook URLs."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        # Tests inject an ``httpx.MockTransport``; production uses the default.
        self._transport = transport

    async def notify(self, urls: Iterable[str], event: str, data: list[dict[str, Any]]) -> int:
        """
        POST ``{"event": event, "data": data}`` to every URL in *urls*.

        Returns the number of successful deliveries.
        """
        delivered = 0
        payload = {"event": event, "data": data}
        async with httpx.AsyncClient(transport=self._transport) as client:
            for url in urls:
                try:
                    resp = await client.post(url, json=payload)
                    resp.raise_for_status()
                except httpx.HTTPError as exc:
                    logger.warning("Error triggering webhook %s: %s", url, exc)
                    continue
                delivered += 1
        logger.info("Delivered %s to %d webhook(s)", event, delivered)
        return delivered


# Module-level singleton; overridable through ``get_webhook_notifier``.
notifier = WebhookNotifier()


def get_webhook_notifier() -> WebhookNotifier:
    return notifier


async def collect_soldout_notification(
    product_service: Service, webhook_service: Service
) -> tuple[list[str], list[dict[str, Any]]]:
    """
    Return the URLs subscribed to ``product.soldout`` and the payload data
    listing every product that is currently sold out.

    Runs inside the request so the background delivery needs no database
    session of its own.
    """
    hooks = await webhook_service.get_all_resources_by_filter({"event": SOLDOUT_EVENT})
    if not hooks:
        return [], []
    products = await product_service.get(
        {"soldout": True}, projection=["name"]
    )
    return [hook["url"] for hook in hooks], [
        {"name": product["name"], "id": product["id"]} for product in products
    ]
