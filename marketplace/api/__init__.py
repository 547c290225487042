# marketplace/api/__init__.py
from fastapi import FastAPI

from marketplace.api.errors import register_error_handlers
from marketplace.api.routers import carts, markets, hanger_rentals, cron
from marketplace.api.routers.health import router as health_router


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(
        title="Market Reservation Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(carts.router)
    app.include_router(markets.router)
    app.include_router(hanger_rentals.router)
    app.include_router(cron.router)

    return app
