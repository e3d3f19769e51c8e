# storefront/dashboard.py
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import Order, Product

RECENT_ORDERS = 5


async def _count(session: AsyncSession, stmt) -> int:
    return (await session.execute(stmt)).scalar_one()


async def get_dashboard_stats(session: AsyncSession) -> dict:
    """Read-only aggregation over orders and products, recomputed on every call."""
    total_orders = await _count(session, select(func.count()).select_from(Order))
    total_revenue = await _count(
        session,
        select(func.coalesce(func.sum(Order.total_price), 0)).where(Order.is_paid.is_(True)),
    )
    total_products = await _count(session, select(func.count()).select_from(Product))
    pending_orders = await _count(
        session, select(func.count()).select_from(Order).where(Order.status == "pending")
    )
    recent = await session.execute(
        select(Order)
        .options(selectinload(Order.user))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(RECENT_ORDERS)
    )
    return {
        "total_orders": total_orders,
        "total_revenue": total_revenue,
        "total_products": total_products,
        "pending_orders": pending_orders,
        "recent_orders": recent.scalars().all(),
    }
