from typing import Any, Dict, Iterable, List
from sqlalchemy import and_, select, update
from shopcore.common.errors import InventoryError, InventoryErrorCode
from shopcore.inventory.constants import logger
from shopcore.schema.full_schema import Product


async def load_products(session, product_ids: Iterable[int], lock: bool = False) -> Dict[int, Dict[str, Any]]:
    """Live (price, stock, deleted_at) for the given products, keyed by id."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    stmt = (
        select(Product.id, Product.name, Product.price, Product.stock_qty, Product.deleted_at)
        .where(Product.id.in_(ids))
        .order_by(Product.id)   # stable lock order
    )
    if lock:
        stmt = stmt.with_for_update()
    res = await session.execute(stmt)
    return {
        r.id: {"id": r.id, "name": r.name, "price": r.price, "stock_qty": r.stock_qty, "deleted_at": r.deleted_at}
        for r in res.all()
    }


async def validate_stock(session, lines: List[Dict[str, Any]], lock: bool = False) -> Dict[int, Dict[str, Any]]:
    """Fail if any line asks for a missing product or more than is in stock.

    ``lines`` are dicts with ``product_id`` and ``quantity``. Every short line is
    reported, not only the first one.
    """
    products = await load_products(session, (ln["product_id"] for ln in lines), lock=lock)

    missing = [ln["product_id"] for ln in lines
               if ln["product_id"] not in products or products[ln["product_id"]]["deleted_at"] is not None]
    if missing:
        raise InventoryError(InventoryErrorCode.PRODUCT_NOT_FOUND, details={"product_ids": missing})

    short = []
    for ln in lines:
        available = products[ln["product_id"]]["stock_qty"]
        if ln["quantity"] > available:
            short.append({"product_id": ln["product_id"], "requested": ln["quantity"], "available": available})

    if short:
        logger.info("inventory.validate.insufficient", extra={"items": short})
        raise InventoryError(InventoryErrorCode.INSUFFICIENT_STOCK, details={"items": short})

    return products


async def decrement_stock(session, product_id: int, quantity: int) -> None:
    # conditional update, zero rows means another order took the stock first
    stmt = (
        update(Product)
        .where(and_(Product.id == product_id,
                    Product.stock_qty >= quantity,
                    Product.deleted_at.is_(None)))
        .values(stock_qty=Product.stock_qty - quantity)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    if res.rowcount == 0:
        raise InventoryError(
            InventoryErrorCode.INSUFFICIENT_STOCK,
            details={"items": [{"product_id": product_id, "requested": quantity}]},
        )


async def restore_stock(session, product_id: int, quantity: int) -> None:
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock_qty=Product.stock_qty + quantity)
        .execution_options(synchronize_session=False)
    )
    await session.execute(stmt)


async def restore_items_stock(session, items: List[Dict[str, Any]]) -> None:
    for it in items:
        await restore_stock(session, it["product_id"], it["quantity"])
    logger.info("inventory.restore", extra={"items": len(items)})
