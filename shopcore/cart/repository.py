from typing import Any, Dict, List, Optional
from sqlalchemy import delete, func, select
from shopcore.schema.full_schema import CartItem, Product


async def get_cart_lines(session, user_id: int) -> List[Dict[str, Any]]:
    """Cart lines priced at the current product price."""
    stmt = (
        select(CartItem.id.label("cart_item_id"), CartItem.product_id, CartItem.quantity,
               Product.name, Product.price, Product.stock_qty, Product.deleted_at)
        .join(Product, Product.id == CartItem.product_id)
        .where(CartItem.user_id == user_id)
        .order_by(CartItem.product_id)
    )
    res = await session.execute(stmt)
    lines = []
    for r in res.all():
        lines.append({
            "cart_item_id": r.cart_item_id,
            "product_id": r.product_id,
            "name": r.name,
            "quantity": int(r.quantity),
            "price": r.price,
            "subtotal": r.price * int(r.quantity),
            "stock_qty": r.stock_qty,
            "is_available": r.deleted_at is None,
        })
    return lines


async def count_cart_lines(session, user_id: int) -> int:
    stmt = select(func.count(CartItem.id)).where(CartItem.user_id == user_id)
    res = await session.execute(stmt)
    return int(res.scalar_one())


async def get_cart_item(session, item_id: int) -> Optional[CartItem]:
    stmt = select(CartItem).where(CartItem.id == item_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_cart_item_by_product(session, user_id: int, product_id: int) -> Optional[CartItem]:
    stmt = (
        select(CartItem)
        .where(CartItem.user_id == user_id, CartItem.product_id == product_id)
        .with_for_update()
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def delete_cart_item(session, item_id: int) -> None:
    await session.execute(delete(CartItem).where(CartItem.id == item_id))


async def clear_cart(session, user_id: int) -> int:
    res = await session.execute(delete(CartItem).where(CartItem.user_id == user_id))
    return res.rowcount
