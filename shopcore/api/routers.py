from fastapi import APIRouter
from shopcore.api import version_prefix
from shopcore.cart.routes import carts_router
from shopcore.checkout.routes import checkout_router
from shopcore.common.routes import home_router
from shopcore.coupons.routes import coupons_admin_router
from shopcore.orders.routes import orders_admin_router, orders_router
from shopcore.payments.routes import payments_router
from shopcore.returns.routes import returns_admin_router, returns_router
from shopcore.wallet.routes import wallet_router


public_routers = APIRouter(prefix=version_prefix)

public_routers.include_router(carts_router,prefix="/cart",tags=["cart"])
public_routers.include_router(checkout_router,prefix="/checkout",tags=["checkout"])
public_routers.include_router(orders_router,tags=["orders"])
public_routers.include_router(payments_router,prefix="/payments",tags=["payments"])
public_routers.include_router(returns_router,prefix="/returns",tags=["returns"])
public_routers.include_router(wallet_router,prefix="/wallet",tags=["wallet"])
public_routers.include_router(home_router,tags=["home"])

#--------------------------------------------------------------------------------------------------------

admin_routers = APIRouter(prefix=f"{version_prefix}/admin")

admin_routers.include_router(orders_admin_router, prefix="/orders",tags=["orders-admin"])
admin_routers.include_router(returns_admin_router, prefix="/returns",tags=["returns-admin"])
admin_routers.include_router(coupons_admin_router, prefix="/coupons",tags=["coupons-admin"])
