"""
Member-specific operations layered over the generic ``Service``.

Email lookups back the login flow; unknown emails and wrong passwords fail
identically so the endpoint cannot be used to discover registered addresses.
"""
import logging
import math

from farmers_market.errors import UnauthorizedError
from farmers_market.repository import Document
from farmers_market.security import authenticate_member, create_access_token
from farmers_market.services.base import Service

logger = logging.getLogger(__name__)


async def login(service: Service, email: str, password: str) -> dict:
    """Verify *email* / *password* and return the access-token response body."""
    member = await service.get_resource_by_filter({"email": email})
    if not await authenticate_member(member, password):
        logger.info("Rejected login attempt")
        raise UnauthorizedError("Invalid email or password.")

    return {
        "access_token": create_access_token(member),
        "user_id": member["id"],
        "name": member["name"],
        "message": "You are logged in",
    }


async def get_members_page(service: Service, offset: int, per_page: int) -> tuple[list[Document], int, int]:
    """
    Return ``(members, total, total_pages)`` for the page starting at *offset*.

    Pages past the end come back empty rather than failing.
    """
    total = await service.count()
    total_pages = math.ceil(total / per_page) if total > 0 else 0
    members = await service.get(
        options={"skip": offset, "limit": per_page}
    )
    return members, total, total_pages
