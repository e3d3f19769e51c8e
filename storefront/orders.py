# storefront/orders.py
"""Cart → order pipeline, Stripe checkout and payment webhook, admin order views.

Order creation is a sequence of independent writes with no rollback between them:

1. the order is persisted (status ``pending``);
2. each purchased product's stock is decremented, one write per item;
3. the cart is emptied.

A failure after step 1 leaves the order in place with stock and/or cart
untouched. Stock is not re-checked at step 2, so concurrent checkouts can
oversell; the ``stock >= 0`` constraint then fails that decrement.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from . import payments
from .auth import Identity, protect, require_admin
from .cart import find_cart, save_cart
from .dashboard import get_dashboard_stats
from .database import get_session
from .errors import EmptyCart, Forbidden, NotFound
from .models import Order, OrderItem, Product
from .pagination import PageParams, pagination
from .pricing import compute_totals
from .schemas import (
    CheckoutSessionOut, CheckoutSessionRequest, DashboardStats, OrderCreate,
    OrderDetailOut, OrderOut, OrdersPage, OrderStatus, OrderStatusUpdate,
)

logger = logging.getLogger("storefront.orders")

router = APIRouter(prefix="/api/orders", tags=["orders"])


async def create_order(session: AsyncSession, user_id: int, payload: OrderCreate) -> Order:
    cart = await find_cart(session, user_id)
    if cart is None or not cart.items:
        raise EmptyCart()

    # snapshot: later catalog edits must not change the purchase record
    order_items = [
        OrderItem(
            product_id=ci.product_id,
            name=ci.product.name,
            image=ci.product.images[0] if ci.product.images else "",
            quantity=ci.quantity,
            size=ci.size,
            color=ci.color,
            price=ci.price,
        )
        for ci in cart.items
    ]
    totals = compute_totals(cart.total_price)

    order = Order(
        user_id=user_id,
        items=order_items,
        shipping_address=payload.shipping_address.model_dump(),
        payment_method=payload.payment_method,
        subtotal=totals.subtotal,
        shipping_price=totals.shipping_price,
        tax_price=totals.tax_price,
        total_price=totals.total_price,
        status="pending",
        is_paid=False,
        is_delivered=False,
    )
    session.add(order)
    await session.commit()
    logger.info("order %s created for user %s total=%s", order.id, user_id, order.total_price)

    for ci in cart.items:
        await session.execute(
            update(Product)
            .where(Product.id == ci.product_id)
            .values(stock=Product.stock - ci.quantity)
        )
        await session.commit()
        logger.debug("stock of product %s decremented by %s", ci.product_id, ci.quantity)

    cart.items = []
    await save_cart(session, cart)
    return order


async def load_order(session: AsyncSession, order_id: int, with_user: bool = False) -> Order:
    stmt = select(Order).where(Order.id == order_id)
    if with_user:
        stmt = stmt.options(selectinload(Order.user))
    order = (await session.execute(stmt)).scalar_one_or_none()
    if not order:
        raise NotFound("Order not found")
    return order


def ensure_can_view(order: Order, identity: Identity) -> None:
    if order.user_id != identity.id and not identity.is_admin:
        raise Forbidden("Not authorized")


async def start_checkout(session: AsyncSession, order_id: int, identity: Identity) -> dict:
    order = await load_order(session, order_id)
    ensure_can_view(order, identity)

    checkout = await payments.create_checkout_session(order)
    order.stripe_session_id = checkout.id
    await session.commit()
    logger.info("checkout session %s opened for order %s", checkout.id, order.id)
    return {"session_id": checkout.id, "url": checkout.url}


async def apply_payment_event(session: AsyncSession, event: dict) -> bool:
    """Mark the referenced order paid. Returns False when the event is ignored."""
    event_type = event.get("type")
    if event_type != payments.CHECKOUT_COMPLETED:
        logger.info("ignoring webhook event type %s", event_type)
        return False

    checkout = (event.get("data") or {}).get("object") or {}
    raw_order_id = (checkout.get("metadata") or {}).get("order_id")
    try:
        order_id = int(raw_order_id)
    except (TypeError, ValueError):
        logger.warning("webhook event %s carries no usable order id", event.get("id"))
        return False

    order = await session.get(Order, order_id)
    if order is None:
        logger.warning("webhook event %s references missing order %s", event.get("id"), order_id)
        return False

    now = datetime.now(timezone.utc)
    order.is_paid = True
    order.paid_at = now
    order.status = "processing"
    order.payment_result = {
        "id": checkout.get("payment_intent"),
        "status": checkout.get("payment_status"),
        "update_time": now.isoformat(),
        "email": checkout.get("customer_email")
        or (checkout.get("customer_details") or {}).get("email")
        or "",
    }
    await session.commit()
    logger.info("order %s paid via %s", order.id, order.payment_result["id"])
    return True


# 🔔 Stripe webhook: сырое тело, без авторизации
@router.post("/webhook")
async def payment_webhook(request: Request, session: AsyncSession = Depends(get_session)):
    payload = await request.body()
    event = payments.construct_event(payload, request.headers.get("stripe-signature"))
    await apply_payment_event(session, event)
    return {"received": True}


# ✅ Оформление заказа из корзины
@router.post("", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
async def place_order(
    payload: OrderCreate,
    identity: Identity = Depends(protect),
    session: AsyncSession = Depends(get_session),
):
    return await create_order(session, identity.id, payload)


@router.post("/checkout-session", response_model=CheckoutSessionOut)
async def checkout_session(
    payload: CheckoutSessionRequest,
    identity: Identity = Depends(protect),
    session: AsyncSession = Depends(get_session),
):
    return await start_checkout(session, payload.order_id, identity)


# 🧾 История заказов текущего пользователя
@router.get("/my-orders", response_model=List[OrderOut])
async def my_orders(
    identity: Identity = Depends(protect),
    session: AsyncSession = Depends(get_session),
):
    res = await session.execute(
        select(Order)
        .where(Order.user_id == identity.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return res.scalars().all()


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await get_dashboard_stats(session)


@router.get("", response_model=OrdersPage)
async def list_all_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    params: PageParams = Depends(pagination(20)),
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    stmt = select(Order)
    count_stmt = select(func.count()).select_from(Order)
    if status_filter:
        stmt = stmt.where(Order.status == status_filter)
        count_stmt = count_stmt.where(Order.status == status_filter)

    res = await session.execute(
        stmt.options(selectinload(Order.user))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset(params.offset)
        .limit(params.limit)
    )
    total = (await session.execute(count_stmt)).scalar_one()
    return {"orders": res.scalars().all(), "page": params.page, "pages": params.pages(total), "total": total}


# 📦 Детали одного заказа
@router.get("/{order_id}", response_model=OrderDetailOut)
async def order_detail(
    order_id: int,
    identity: Identity = Depends(protect),
    session: AsyncSession = Depends(get_session),
):
    order = await load_order(session, order_id, with_user=True)
    ensure_can_view(order, identity)
    return order


@router.put("/{order_id}/status", response_model=OrderOut)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    admin: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    order = await load_order(session, order_id)

    # no transition table: any known status may be set
    order.status = payload.status
    if payload.status == "delivered":
        order.is_delivered = True
        order.delivered_at = datetime.now(timezone.utc)

    await session.commit()
    logger.info("admin %s set order %s status to %s", admin.id, order.id, order.status)
    return order
