"""
Direct repository and service tests — exercises the generic document layer
without HTTP overhead: allow-list validation, round-trips, replace/update
semantics, natural-key operations and password hashing.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from farmers_market.errors import NotFoundError, ValidationError
from farmers_market.repository import FARM, LOCATION, MEMBER, PRODUCT, WEBHOOK, Repository
from farmers_market.security import verify_password
from farmers_market.services import member_service
from farmers_market.services.base import Service

MEMBER_DATA = {
    "name": "Ana",
    "location": "tulum",
    "phone": "555-0101",
    "email": "ana@example.com",
    "password": "first-password",
}


def _service(db: AsyncSession, config) -> Service:
    return Service(Repository(db, config))


# ---------------------------------------------------------------------------
# Allow-list validation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "config, data",
    [
        (LOCATION, {"city": "Tulum", "mayor": "x"}),
        (MEMBER, {**MEMBER_DATA, "role": "admin"}),
        (FARM, {"name": "Finca", "owner": "x"}),
        (PRODUCT, {"name": "Mango", "producer": "f1", "price": 1.0, "soldout": False, "stock": 3}),
        (WEBHOOK, {"url": "http://hooks.test/a", "event": "product.soldout", "secret": "x"}),
    ],
)
async def test_insert_rejects_unknown_fields(db_session: AsyncSession, config, data):
    with pytest.raises(ValidationError):
        await Repository(db_session, config).insert(data)


@pytest.mark.asyncio
async def test_insert_rejects_generated_fields(db_session: AsyncSession):
    repo = Repository(db_session, FARM)
    with pytest.raises(ValidationError):
        await repo.insert({"name": "Finca", "id": "my-own-id"})


@pytest.mark.asyncio
async def test_insert_with_subset_of_allowed_fields(db_session: AsyncSession):
    farm = await Repository(db_session, FARM).insert({"name": "Finca"})
    assert farm["name"] == "Finca"
    assert farm["member"] is None


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(db_session: AsyncSession):
    repo = Repository(db_session, FARM)
    farm = await repo.insert({"name": "Finca"})
    with pytest.raises(ValidationError):
        await repo.update(farm["id"], {"acres": 10})


# ---------------------------------------------------------------------------
# Round-trips
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_by_id_round_trip(db_session: AsyncSession):
    repo = Repository(db_session, PRODUCT)
    data = {"name": "Mango", "producer": "farm-1", "price": 2.5, "soldout": False}
    created = await repo.insert(data)

    first = await repo.get_by_id(created["id"])
    second = await repo.get_by_id(created["id"])
    assert first is not None
    assert {key: first[key] for key in data} == data
    assert first["id"] == second["id"] == created["id"]


@pytest.mark.asyncio
async def test_get_by_id_missing_returns_none(db_session: AsyncSession):
    assert await Repository(db_session, FARM).get_by_id("does-not-exist") is None


@pytest.mark.asyncio
async def test_get_empty_returns_list(db_session: AsyncSession):
    assert await Repository(db_session, LOCATION).get() == []


@pytest.mark.asyncio
async def test_get_filter_projection_and_options(db_session: AsyncSession):
    repo = Repository(db_session, PRODUCT)
    for i, soldout in enumerate([True, False, True, True]):
        await repo.insert({"name": f"P{i}", "producer": "f", "price": float(i), "soldout": soldout})

    soldout = await repo.get({"soldout": True}, projection=["name"], options={"sort": "-price"})
    assert [p["name"] for p in soldout] == ["P3", "P2", "P0"]
    assert set(soldout[0]) == {"id", "name"}

    page = await repo.get(options={"skip": 1, "limit": 2, "sort": "price"})
    assert [p["name"] for p in page] == ["P1", "P2"]
    assert await repo.count({"soldout": True}) == 3


@pytest.mark.asyncio
async def test_get_filter_with_list_matches_any(db_session: AsyncSession):
    repo = Repository(db_session, FARM)
    await repo.insert({"name": "A", "member": "m1"})
    await repo.insert({"name": "B", "member": "m2"})
    await repo.insert({"name": "C", "member": "m3"})

    farms = await repo.get({"member": ["m1", "m3"]})
    assert sorted(f["name"] for f in farms) == ["A", "C"]


@pytest.mark.asyncio
async def test_get_unknown_filter_field(db_session: AsyncSession):
    with pytest.raises(ValidationError):
        await Repository(db_session, FARM).get({"acres": 3})


# ---------------------------------------------------------------------------
# update / replace / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_merges_partial_data(db_session: AsyncSession):
    repo = Repository(db_session, PRODUCT)
    product = await repo.insert({"name": "Mango", "producer": "f", "price": 2.0, "soldout": False})
    updated = await repo.update(product["id"], {"price": 3.0})
    assert updated["price"] == 3.0
    assert updated["name"] == "Mango"
    assert updated["id"] == product["id"]


@pytest.mark.asyncio
async def test_update_missing_raises_not_found(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await Repository(db_session, FARM).update("missing", {"name": "x"})


@pytest.mark.asyncio
async def test_replace_missing_raises_not_found(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await Repository(db_session, FARM).replace("missing", {"name": "x"})


@pytest.mark.asyncio
async def test_replace_rehashes_password(db_session: AsyncSession):
    repo = Repository(db_session, MEMBER)
    member = await repo.insert(MEMBER_DATA)
    assert member["password"] != "first-password"
    assert verify_password("first-password", member["password"])

    replaced = await repo.replace(member["id"], {**MEMBER_DATA, "password": "second-password"})
    assert not verify_password("first-password", replaced["password"])
    assert verify_password("second-password", replaced["password"])


@pytest.mark.asyncio
async def test_update_without_password_keeps_hash(db_session: AsyncSession):
    repo = Repository(db_session, MEMBER)
    member = await repo.insert(MEMBER_DATA)
    updated = await repo.update(member["id"], {"phone": "555-0202"})
    assert updated["password"] == member["password"]


@pytest.mark.asyncio
async def test_delete_returns_removed_document(db_session: AsyncSession):
    repo = Repository(db_session, WEBHOOK)
    hook = await repo.insert({"url": "http://hooks.test/a", "event": "product.soldout"})
    removed = await repo.delete(hook["id"])
    assert removed["id"] == hook["id"]
    assert await repo.get_by_id(hook["id"]) is None
    assert await repo.delete(hook["id"]) is None


# ---------------------------------------------------------------------------
# Natural keys (Location slug)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_location_slug_derived_from_city(db_session: AsyncSession):
    location = await Repository(db_session, LOCATION).insert({"city": "Playa del Carmen"})
    assert location["slug"] == "playa-del-carmen"


@pytest.mark.asyncio
async def test_replace_and_delete_by_name(db_session: AsyncSession):
    repo = Repository(db_session, LOCATION)
    await repo.insert({"city": "Holbox"})

    replaced = await repo.replace_by_name({"slug": "holbox"}, {"city": "Isla Holbox"})
    assert replaced["city"] == "Isla Holbox"
    assert replaced["slug"] == "isla-holbox"

    removed = await repo.delete_by_name({"slug": "isla-holbox"})
    assert removed["city"] == "Isla Holbox"
    assert await repo.delete_by_name({"slug": "isla-holbox"}) is None


@pytest.mark.asyncio
async def test_replace_by_name_missing_raises_not_found(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await Repository(db_session, LOCATION).replace_by_name({"slug": "nowhere"}, {"city": "X"})


# ---------------------------------------------------------------------------
# Service conveniences
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_service_filter_helpers(db_session: AsyncSession):
    farms = _service(db_session, FARM)
    await farms.insert({"name": "A", "member": "m1"})
    await farms.insert({"name": "B", "member": "m1"})
    await farms.insert({"name": "C", "member": "m2"})

    of_m1 = await farms.get_all_resources_by_filter({"member": "m1"})
    assert sorted(f["name"] for f in of_m1) == ["A", "B"]

    one = await farms.get_resource_by_filter({"name": "C"})
    assert one["member"] == "m2"
    assert await farms.get_resource_by_filter({"name": "Z"}) is None


@pytest.mark.asyncio
async def test_members_page_starts_at_offset(db_session: AsyncSession):
    members = _service(db_session, MEMBER)
    for i in range(7):
        await members.insert({**MEMBER_DATA, "name": f"Member {i}", "email": f"m{i}@example.com"})

    page, total, total_pages = await member_service.get_members_page(members, 5, 5)
    assert [m["name"] for m in page] == ["Member 5", "Member 6"]
    assert (total, total_pages) == (7, 2)
