"""Seed the database with a demo admin, categories and products.

The seeder is idempotent: rows are matched by email/slug and only missing ones
are inserted, so running it twice leaves a single copy of everything.

Usage:
    python -m storefront.seed

The script reads DATABASE_URL (and ADMIN_EMAIL / ADMIN_PASSWORD) from the environment.
"""
import asyncio
import logging
import os

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import configure_logging
from .database import Base, async_session_maker, engine
from .models import Category, Product, User
from .security import get_password_hash

logger = logging.getLogger("storefront.seed")

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin12345")

DEMO_CATEGORIES = [
    {"name": "Men", "slug": "men", "description": "Menswear"},
    {"name": "Women", "slug": "women", "description": "Womenswear"},
]

DEMO_PRODUCTS = [
    {
        "name": "Classic Tee", "slug": "classic-tee", "category": "men",
        "description": "Soft cotton tee", "price": 24.99, "stock": 120,
        "sizes": ["S", "M", "L", "XL"], "colors": ["Black", "White"], "featured": True,
        "images": ["https://images.unsplash.com/photo-1520975682031-a1248f1a6386"],
    },
    {
        "name": "Denim Jacket", "slug": "denim-jacket", "category": "men",
        "description": "Stonewashed denim jacket", "price": 89.0, "compare_price": 119.0,
        "stock": 35, "sizes": ["M", "L"], "colors": ["Blue"],
        "images": ["https://images.unsplash.com/photo-1551537482-f2075a1d41f2"],
    },
    {
        "name": "Linen Dress", "slug": "linen-dress", "category": "women",
        "description": "Breathable summer linen dress", "price": 64.5, "stock": 40,
        "sizes": ["XS", "S", "M"], "colors": ["Sand", "Olive"], "featured": True,
        "images": ["https://images.unsplash.com/photo-1515372039744-b8f02a3ae446"],
    },
    {
        "name": "Wool Coat", "slug": "wool-coat", "category": "women",
        "description": "Double-breasted wool coat", "price": 180.0, "stock": 12,
        "sizes": ["S", "M", "L"], "colors": ["Camel"],
        "images": ["https://images.unsplash.com/photo-1539533018447-63fcce2678e3"],
    },
]


async def seed_admin(session: AsyncSession) -> bool:
    existing = await session.execute(select(User).where(User.email == ADMIN_EMAIL))
    if existing.scalar_one_or_none():
        return False
    session.add(User(
        name="Admin",
        email=ADMIN_EMAIL,
        password_hash=get_password_hash(ADMIN_PASSWORD),
        role="admin",
    ))
    return True


async def seed_catalog(session: AsyncSession) -> int:
    by_slug = {}
    for data in DEMO_CATEGORIES:
        res = await session.execute(select(Category).where(Category.slug == data["slug"]))
        category = res.scalar_one_or_none()
        if category is None:
            category = Category(**data)
            session.add(category)
        by_slug[data["slug"]] = category
    await session.flush()

    created = 0
    for data in DEMO_PRODUCTS:
        res = await session.execute(select(Product.id).where(Product.slug == data["slug"]))
        if res.scalar_one_or_none() is not None:
            continue
        fields = {k: v for k, v in data.items() if k != "category"}
        session.add(Product(category_id=by_slug[data["category"]].id, **fields))
        created += 1
    return created


async def seed(session: AsyncSession) -> dict:
    admin_created = await seed_admin(session)
    products_created = await seed_catalog(session)
    await session.commit()
    return {"admin_created": admin_created, "products_created": products_created}


async def main():
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session_maker() as session:
        result = await seed(session)
    logger.info("seed finished: %s", result)


if __name__ == "__main__":
    asyncio.run(main())
