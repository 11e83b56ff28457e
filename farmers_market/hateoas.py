"""
HATEOAS link builder.

Every function here is pure: given a ``LinkContext`` (scheme, host and the
collection's base path, captured once from the request) and resource
identifiers, it returns a link descriptor::

    {"href": str, "method": str, "title": str, "description": str}

``description`` is omitted when there is nothing to add.  Four addressing
schemes are supported:

- by id:            ``/members/<id>``
- by name:          ``/locations/<slugified name>``
- by slug:          ``/locations/<slug>``
- nested resources: ``/members/<id>/farms/<farmId>/products/<productId>``
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode

from starlette.requests import Request

from farmers_market.config import settings
from farmers_market.slugs import slugify

Link = dict[str, str]


@dataclass(frozen=True)
class LinkContext:
    origin: str
    base_path: str
    path: str

    @classmethod
    def from_request(cls, request: Request, collection: str = "") -> "LinkContext":
        """Capture what the builders need from *request* without touching it."""
        url = request.url
        root = request.scope.get("root_path", "").rstrip("/")
        base_path = f"{root}{settings.API_PREFIX}"
        if collection:
            base_path = f"{base_path}/{collection.strip('/')}"
        return cls(origin=f"{url.scheme}://{url.netloc}", base_path=base_path, path=url.path)


def build_href(ctx: LinkContext, *segments: Any, query: dict[str, Any] | None = None) -> str:
    path = ctx.base_path
    for segment in segments:
        path = f"{path}/{quote(str(segment), safe='')}"
    href = f"{ctx.origin}{path}"
    if query:
        href = f"{href}?{urlencode(query)}"
    return href


def make_link(href: str, method: str, title: str, description: str | None = None) -> Link:
    link = {"href": href, "method": method, "title": title}
    if description:
        link["description"] = description
    return link


def hal(links: dict[str, Link], embedded: dict[str, Any] | None = None, **fields: Any) -> dict[str, Any]:
    """Assemble a HAL envelope; extra keyword fields sit beside ``_links``."""
    body: dict[str, Any] = {"_links": links}
    body.update(fields)
    if embedded is not None:
        body["_embedded"] = embedded
    return body


# ---------------------------------------------------------------------------
# Collection level
# ---------------------------------------------------------------------------

def base_url_link(ctx: LinkContext) -> Link:
    return make_link(build_href(ctx), "GET", "Get ALL resources")


def create_link(ctx: LinkContext, resource: str | None = None) -> Link:
    title = f"Create a new {resource}" if resource else "Create a new resource"
    return make_link(build_href(ctx), "POST", title)


def page_link(ctx: LinkContext, page: int, per_page: int) -> Link:
    href = f"{ctx.origin}{ctx.path}?{urlencode({'page': page, 'perPage': per_page})}"
    return make_link(href, "GET", f"Page {page}")


# ---------------------------------------------------------------------------
# By id
# ---------------------------------------------------------------------------

def plain_resource_link(ctx: LinkContext, resource_id: str) -> Link:
    return {"href": build_href(ctx, resource_id)}


def resource_by_id_link(ctx: LinkContext, resource_id: str, label: str | None = None) -> Link:
    return make_link(
        build_href(ctx, resource_id),
        "GET",
        "Get resource by ID",
        f"The requested resource {label}" if label else None,
    )


def update_link(ctx: LinkContext, resource_id: str, label: str) -> Link:
    return make_link(
        build_href(ctx, resource_id),
        "PUT",
        f"Update the resource {label}",
        f"Update the resource {label} with ID {resource_id}",
    )


def patch_link(ctx: LinkContext, resource_id: str, label: str) -> Link:
    return make_link(
        build_href(ctx, resource_id),
        "PATCH",
        f"Partially update the resource {label}",
        f"Update some fields of the resource {label} with ID {resource_id}",
    )


def delete_link(ctx: LinkContext, resource_id: str, label: str) -> Link:
    return make_link(
        build_href(ctx, resource_id),
        "DELETE",
        f"Delete the resource {label}",
        f"Delete the resource {label} with ID {resource_id}",
    )


# ---------------------------------------------------------------------------
# By name / slug
# ---------------------------------------------------------------------------

def resource_by_name_link(ctx: LinkContext, name: str) -> Link:
    return make_link(build_href(ctx, slugify(name)), "GET", "Gets a specific resource")


def resource_by_slug_link(ctx: LinkContext, slug: str) -> Link:
    return make_link(build_href(ctx, slug), "GET", "Gets a specific resource")


def update_by_slug_link(ctx: LinkContext, slug: str) -> Link:
    return make_link(build_href(ctx, slug), "PUT", "Update the resource")


def delete_by_slug_link(ctx: LinkContext, slug: str) -> Link:
    return make_link(build_href(ctx, slug), "DELETE", "Delete the resource")


# ---------------------------------------------------------------------------
# Nested: /<collection>/<id>/<nested>[/<nestedId>]
# ---------------------------------------------------------------------------

def nested_resource_link(ctx: LinkContext, resource_id: str, nested: str) -> Link:
    return make_link(
        build_href(ctx, resource_id, nested),
        "GET",
        "Get nested resource",
        "Gets ALL instances of the last nested resource in the url",
    )


def nested_resource_create_link(ctx: LinkContext, resource_id: str, nested: str) -> Link:
    return make_link(build_href(ctx, resource_id, nested), "POST", f"Create a new resource in {nested}")


def nested_resource_by_id_link(ctx: LinkContext, resource_id: str, nested: str, nested_id: str) -> Link:
    return make_link(
        build_href(ctx, resource_id, nested, nested_id),
        "GET",
        "An instance of the nested resource",
        "Gets an instance of the last nested resource in the url, by its ID",
    )


def nested_resource_update_link(ctx: LinkContext, resource_id: str, nested: str, nested_id: str) -> Link:
    return make_link(
        build_href(ctx, resource_id, nested, nested_id),
        "PUT",
        "Update an instance of the nested resource",
    )


def nested_resource_delete_link(ctx: LinkContext, resource_id: str, nested: str, nested_id: str) -> Link:
    return make_link(
        build_href(ctx, resource_id, nested, nested_id),
        "DELETE",
        "Delete an instance of the nested resource",
    )


# ---------------------------------------------------------------------------
# Double nested: /<collection>/<id>/<nested>/<nestedId>/<inner>[/<innerId>]
# ---------------------------------------------------------------------------

def double_nested_resource_link(
    ctx: LinkContext, resource_id: str, nested: str, nested_id: str, inner: str
) -> Link:
    return make_link(
        build_href(ctx, resource_id, nested, nested_id, inner),
        "GET",
        "Get double nested resource",
        "Gets ALL instances of the last nested resource in the url",
    )


def double_nested_resource_create_link(
    ctx: LinkContext, resource_id: str, nested: str, nested_id: str, inner: str
) -> Link:
    return make_link(
        build_href(ctx, resource_id, nested, nested_id, inner),
        "POST",
        f"Create a new resource in {inner}",
    )


def double_nested_resource_by_id_link(
    ctx: LinkContext, resource_id: str, nested: str, nested_id: str, inner: str, inner_id: str
) -> Link:
    return make_link(
        build_href(ctx, resource_id, nested, nested_id, inner, inner_id),
        "GET",
        "An instance of the double nested resource",
        "Gets an instance of the last nested resource in the url, by its ID",
    )


def double_nested_resource_update_link(
    ctx: LinkContext, resource_id: str, nested: str, nested_id: str, inner: str, inner_id: str
) -> Link:
    return make_link(
        build_href(ctx, resource_id, nested, nested_id, inner, inner_id),
        "PUT",
        "Update an instance of the double nested resource",
    )


def double_nested_resource_delete_link(
    ctx: LinkContext, resource_id: str, nested: str, nested_id: str, inner: str, inner_id: str
) -> Link:
    return make_link(
        build_href(ctx, resource_id, nested, nested_id, inner, inner_id),
        "DELETE",
        "Delete an instance of the double nested resource",
    )
