"""Database seeder for local development of the farmers-market API."""
import argparse
import asyncio
import logging
import time

from farmers_market.database import Base, async_session, engine
from farmers_market.errors import translate_store_errors
from farmers_market.repository import FARM, LOCATION, MEMBER, PRODUCT, Repository
from farmers_market.services.base import Service

logger = logging.getLogger("seed")

LOCATIONS = ["Tulum", "Veracruz", "Holbox", "Bacalar"]

MEMBERS = [
    {"name": "Member1", "location": "tulum", "phone": "12345678", "email": "Member1@email.com", "password": "member1password"},
    {"name": "Member2", "location": "tulum", "phone": "12345678", "email": "Member2@email.com", "password": "member2password"},
    {"name": "Member3", "location": "holbox", "phone": "12345678", "email": "Member3@email.com", "password": "member3password"},
    {"name": "Member4", "location": "bacalar", "phone": "12345678", "email": "Member4@email.com", "password": "member4password"},
]

PRODUCTS = [
    {"name": "Papaya", "price": 12.0, "soldout": False},
    {"name": "Mango", "price": 18.0, "soldout": False},
    {"name": "Chaya", "price": 20.0, "soldout": False},
    {"name": "Honey", "price": 10.0, "soldout": True},
]


async def seed(reset: bool = False, with_farms: bool = True) -> None:
    start = time.perf_counter()

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        locations = Service(Repository(session, LOCATION))
        members = Service(Repository(session, MEMBER))
        farms = Service(Repository(session, FARM))
        products = Service(Repository(session, PRODUCT))

        with translate_store_errors():
            for city in LOCATIONS:
                await locations.insert({"city": city})
            logger.info("Created %d locations", len(LOCATIONS))

            for data in MEMBERS:
                member = await members.insert(data)
                if not with_farms:
                    continue
                farm = await farms.insert({"name": f"{member['name']}'s farm", "member": member["id"]})
                for product in PRODUCTS:
                    await products.insert({**product, "producer": farm["id"]})
            logger.info("Created %d members", len(MEMBERS))

        await session.commit()

    await engine.dispose()
    logger.info("Seeding finished in %.2fs", time.perf_counter() - start)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    parser = argparse.ArgumentParser(description="Seed the farmers-market database")
    parser.add_argument("--reset", action="store_true", help="Drop all tables before seeding")
    parser.add_argument("--no-farms", action="store_true", help="Only seed locations and members")
    args = parser.parse_args()
    asyncio.run(seed(reset=args.reset, with_farms=not args.no_farms))
