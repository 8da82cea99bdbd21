from contextlib import asynccontextmanager
from fastapi import FastAPI
from shopcore.api import cur_version, version_prefix
from shopcore.api.routers import admin_routers, public_routers
from shopcore.common.custom_exceptions import register_all_exceptions
from shopcore.common.logging_setup import setup_logging, stop_logging
from shopcore.config.admin_config import admin_config
from shopcore.db.connection import async_engine
from shopcore.middlewares.identity_middleware import IdentityMiddleware
from shopcore.middlewares.request_id_middleware import RequestIdMiddleware


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    setup_logging()
    try:
        yield
    finally:
        # requests have stopped by now
        await async_engine.dispose()
        stop_logging()


def create_app():
    app=FastAPI(
        title="Shopcore",
        version=cur_version,
        lifespan=app_lifespan)

    app.include_router(public_routers)

    if admin_config.ENABLE_ADMIN:
        app.include_router(admin_routers)      # mounts /api/v1/admin

    app.add_middleware(IdentityMiddleware, skip_paths=[f"{version_prefix}/health"])
    app.add_middleware(RequestIdMiddleware)
    register_all_exceptions(app)

    return app

app=create_app()
