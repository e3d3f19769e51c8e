# storefront/shop.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import Identity, require_admin
from .cart import drop_product_lines
from .database import get_session
from .errors import NotFound, ValidationError
from .models import Category, Product
from .pagination import PageParams, pagination
from .schemas import ProductCreate, ProductOut, ProductsPage, ProductUpdate

logger = logging.getLogger("storefront.shop")

router = APIRouter(prefix="/api/products", tags=["products"])

FEATURED_LIMIT = 8
RELATED_LIMIT = 4

SORTS = {
    "newest": (Product.created_at.desc(), Product.id.desc()),
    "price-asc": (Product.price.asc(), Product.id.asc()),
    "price-desc": (Product.price.desc(), Product.id.desc()),
    "rating": (Product.rating.desc(), Product.id.desc()),
}


def escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class ProductFilter:
    """Optional catalog predicates, combined with AND.

    Every field left as ``None`` (or empty) contributes no clause.
    """
    category_id: Optional[int] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sizes: List[str] = field(default_factory=list)
    search: Optional[str] = None
    featured: Optional[bool] = None
    active_only: bool = True

    def clauses(self) -> list:
        out = []
        if self.active_only:
            out.append(Product.is_active.is_(True))
        if self.category_id is not None:
            out.append(Product.category_id == self.category_id)
        if self.min_price is not None:
            out.append(Product.price >= self.min_price)
        if self.max_price is not None:
            out.append(Product.price <= self.max_price)
        if self.sizes:
            # sizes is a JSON list; match any of the requested sizes
            sizes_text = cast(Product.sizes, String)
            out.append(or_(*[sizes_text.like(f'%"{size}"%') for size in self.sizes]))
        if self.search:
            pattern = f"%{escape_like(self.search)}%"
            out.append(or_(
                Product.name.ilike(pattern, escape="\\"),
                Product.description.ilike(pattern, escape="\\"),
            ))
        if self.featured is not None:
            out.append(Product.featured.is_(self.featured))
        return out

    def apply(self, stmt):
        return stmt.where(*self.clauses())


def product_filter(
    category: Optional[int] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    size: Optional[str] = None,
    search: Optional[str] = None,
    featured: Optional[bool] = None,
) -> ProductFilter:
    sizes = [s.strip() for s in size.split(",") if s.strip()] if size else []
    return ProductFilter(
        category_id=category,
        min_price=min_price,
        max_price=max_price,
        sizes=sizes,
        search=search.strip() if search else None,
        featured=featured,
    )


async def list_catalog(
    session: AsyncSession,
    flt: ProductFilter,
    params: PageParams,
    sort: str = "newest",
) -> dict:
    order_by = SORTS.get(sort, SORTS["newest"])
    result = await session.execute(
        flt.apply(select(Product)).order_by(*order_by).offset(params.offset).limit(params.limit)
    )
    total = (await session.execute(flt.apply(select(func.count()).select_from(Product)))).scalar_one()
    return {
        "products": result.scalars().all(),
        "page": params.page,
        "pages": params.pages(total),
        "total": total,
    }


async def get_product_or_404(session: AsyncSession, product_id: int) -> Product:
    product = await session.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")
    return product


async def ensure_category(session: AsyncSession, category_id: int) -> None:
    if await session.get(Category, category_id) is None:
        raise ValidationError("Category does not exist")


@router.get("", response_model=ProductsPage)
async def list_products(
    flt: ProductFilter = Depends(product_filter),
    params: PageParams = Depends(pagination(12)),
    sort: str = "newest",
    session: AsyncSession = Depends(get_session),
):
    return await list_catalog(session, flt, params, sort)


@router.get("/featured", response_model=List[ProductOut])
async def featured_products(
    limit: int = Query(FEATURED_LIMIT, ge=1, le=50),
    session: AsyncSession = Depends(get_session),
):
    flt = ProductFilter(featured=True)
    result = await session.execute(flt.apply(select(Product)).order_by(*SORTS["newest"]).limit(limit))
    return result.scalars().all()


@router.get("/admin/all", response_model=ProductsPage)
async def admin_list_products(
    params: PageParams = Depends(pagination(20)),
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await list_catalog(session, ProductFilter(active_only=False), params)


@router.get("/slug/{slug}", response_model=ProductOut)
async def get_product_by_slug(slug: str, session: AsyncSession = Depends(get_session)):
    result = await session.execute(select(Product).where(Product.slug == slug))
    product = result.scalar_one_or_none()
    if not product:
        raise NotFound("Product not found")
    return product


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: int, session: AsyncSession = Depends(get_session)):
    return await get_product_or_404(session, product_id)


@router.get("/{product_id}/related", response_model=List[ProductOut])
async def related_products(
    product_id: int,
    limit: int = Query(RELATED_LIMIT, ge=1, le=20),
    session: AsyncSession = Depends(get_session),
):
    product = await get_product_or_404(session, product_id)
    flt = ProductFilter(category_id=product.category_id)
    result = await session.execute(
        flt.apply(select(Product)).where(Product.id != product.id).order_by(Product.id).limit(limit)
    )
    return result.scalars().all()


# 🔒 Админ: CRUD товаров
@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    await ensure_category(session, payload.category_id)
    product = Product(**payload.model_dump())
    session.add(product)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValidationError("Product slug already exists")
    await session.refresh(product, attribute_names=["category"])
    logger.info("created product id=%s slug=%s", product.id, product.slug)
    return product


@router.put("/{product_id}", response_model=ProductOut)
async def update_product(
    product_id: int,
    payload: ProductUpdate,
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    product = await get_product_or_404(session, product_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("category_id") is not None:
        await ensure_category(session, changes["category_id"])

    for key, value in changes.items():
        # compare_price is the only optional column that may be cleared
        if value is None and key != "compare_price":
            continue
        setattr(product, key, value)

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValidationError("Product slug already exists")
    # Гарантируем, что category уже загружена (без ленивых запросов при сериализации)
    await session.refresh(product, attribute_names=["category"])
    return product


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    product = await get_product_or_404(session, product_id)
    # cart totals must follow the lines that disappear with the product
    carts = await drop_product_lines(session, product_id)
    await session.delete(product)
    await session.commit()
    logger.info("removed product id=%s (dropped from %s carts)", product_id, carts)
    return {"message": "Product removed"}
