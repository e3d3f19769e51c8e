# storefront/cart.py
from decimal import Decimal
from typing import Optional, Tuple

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import Identity, protect
from .database import get_session
from .errors import NotFound, OutOfStock
from .models import Cart, CartItem, Product
from .schemas import CartAddRequest, CartItemUpdate, CartOut

router = APIRouter(prefix="/api/cart", tags=["cart"])


async def find_cart(session: AsyncSession, user_id: int) -> Optional[Cart]:
    result = await session.execute(select(Cart).where(Cart.user_id == user_id))
    return result.scalar_one_or_none()


async def ensure_cart(session: AsyncSession, user_id: int) -> Tuple[Cart, bool]:
    """Fetch the user's cart, creating an empty one if missing.

    Returns ``(cart, created)``.
    """
    cart = await find_cart(session, user_id)
    if cart is not None:
        return cart, False

    cart = Cart(user_id=user_id, items=[], total_price=Decimal("0"))
    session.add(cart)
    try:
        await session.commit()
    except IntegrityError:
        # Параллельный запрос уже создал корзину
        await session.rollback()
        return await find_cart(session, user_id), False
    return cart, True


async def save_cart(session: AsyncSession, cart: Cart) -> Cart:
    # total_price must match the line items after every write
    cart.recalculate_total()
    await session.commit()
    return cart


async def drop_product_lines(session: AsyncSession, product_id: int) -> int:
    """Remove every cart line for ``product_id`` and re-total the affected carts.

    Does not commit. Returns the number of carts touched.
    """
    result = await session.execute(
        select(Cart).where(Cart.items.any(CartItem.product_id == product_id))
    )
    carts = result.scalars().all()
    for cart in carts:
        cart.items = [it for it in cart.items if it.product_id != product_id]
        cart.recalculate_total()
    return len(carts)


async def add_item(session: AsyncSession, user_id: int, payload: CartAddRequest) -> Cart:
    # cart first: a lost creation race rolls back the session and expires loaded rows
    cart, _ = await ensure_cart(session, user_id)

    product = await session.get(Product, payload.product_id)
    if not product:
        raise NotFound("Product not found")
    if product.stock < payload.quantity:
        raise OutOfStock()

    existing = next(
        (
            item for item in cart.items
            if item.product_id == product.id and item.size == payload.size and item.color == payload.color
        ),
        None,
    )
    if existing:
        # Stock is checked against the requested amount only, not the new cumulative quantity
        existing.quantity += payload.quantity
    else:
        cart.items.append(CartItem(
            product=product,
            quantity=payload.quantity,
            size=payload.size,
            color=payload.color,
            price=product.price,
        ))
    return await save_cart(session, cart)


async def update_item_quantity(session: AsyncSession, user_id: int, item_id: int, quantity: int) -> Cart:
    cart = await find_cart(session, user_id)
    if cart is None:
        raise NotFound("Cart not found")

    item = next((it for it in cart.items if it.id == item_id), None)
    if item is None:
        raise NotFound("Item not found in cart")

    if quantity <= 0:
        cart.items.remove(item)
    else:
        item.quantity = quantity
    return await save_cart(session, cart)


async def remove_item(session: AsyncSession, user_id: int, item_id: int) -> Cart:
    cart = await find_cart(session, user_id)
    if cart is None:
        raise NotFound("Cart not found")

    cart.items = [it for it in cart.items if it.id != item_id]
    return await save_cart(session, cart)


async def clear_cart(session: AsyncSession, user_id: int) -> None:
    cart = await find_cart(session, user_id)
    if cart is not None:
        cart.items = []
        await save_cart(session, cart)


@router.get("", response_model=CartOut)
async def get_cart(
    identity: Identity = Depends(protect),
    session: AsyncSession = Depends(get_session),
):
    cart, _ = await ensure_cart(session, identity.id)
    return cart


@router.post("/add", response_model=CartOut)
async def add_to_cart(
    payload: CartAddRequest,
    identity: Identity = Depends(protect),
    session: AsyncSession = Depends(get_session),
):
    return await add_item(session, identity.id, payload)


@router.put("/item/{item_id}", response_model=CartOut)
async def update_cart_item(
    item_id: int,
    payload: CartItemUpdate,
    identity: Identity = Depends(protect),
    session: AsyncSession = Depends(get_session),
):
    return await update_item_quantity(session, identity.id, item_id, payload.quantity)


@router.delete("/item/{item_id}", response_model=CartOut)
async def remove_cart_item(
    item_id: int,
    identity: Identity = Depends(protect),
    session: AsyncSession = Depends(get_session),
):
    return await remove_item(session, identity.id, item_id)


@router.delete("/clear")
async def clear(
    identity: Identity = Depends(protect),
    session: AsyncSession = Depends(get_session),
):
    await clear_cart(session, identity.id)
    return {"message": "Cart cleared"}
