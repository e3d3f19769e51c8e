# storefront/categories.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import Identity, require_admin
from .database import get_session
from .errors import NotFound, ValidationError
from .models import Category, Product
from .schemas import CategoryCreate, CategoryOut, CategoryUpdate

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=List[CategoryOut])
async def list_categories(session: AsyncSession = Depends(get_session)):
    result = await session.execute(
        select(Category).where(Category.is_active.is_(True)).order_by(Category.name)
    )
    return result.scalars().all()


@router.get("/{slug}", response_model=CategoryOut)
async def get_category(slug: str, session: AsyncSession = Depends(get_session)):
    result = await session.execute(select(Category).where(Category.slug == slug))
    category = result.scalar_one_or_none()
    if not category:
        raise NotFound("Category not found")
    return category


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    category = Category(**payload.model_dump())
    session.add(category)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValidationError("Category slug already exists")
    await session.refresh(category)
    return category


@router.put("/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    category = await session.get(Category, category_id)
    if not category:
        raise NotFound("Category not found")

    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(category, key, value)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValidationError("Category slug already exists")
    await session.refresh(category)
    return category


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    category = await session.get(Category, category_id)
    if not category:
        raise NotFound("Category not found")

    in_use = await session.execute(
        select(func.count()).select_from(Product).where(Product.category_id == category_id)
    )
    if in_use.scalar_one():
        raise ValidationError("Category still has products")

    await session.delete(category)
    await session.commit()
    return {"message": "Category removed"}
