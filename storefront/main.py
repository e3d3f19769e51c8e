# storefront/main.py
import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError, SQLAlchemyError

from . import auth, cart, categories, orders, shop
from .config import allowed_origins, configure_logging
from .database import engine, Base

configure_logging()
logger = logging.getLogger("storefront")

app = FastAPI(
    title="Storefront",
    description="Catalog, cart, checkout and order API",
    version="1.0.0",
)

# ✅ CORS (cookies require explicit origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ Роутеры
app.include_router(auth.router)
app.include_router(shop.router)
app.include_router(categories.router)
app.include_router(cart.router)
app.include_router(orders.router)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    # 503 только для недоступной базы; остальное (constraint и т.п.) это 500 с текстом ошибки
    if isinstance(exc, (OperationalError, InterfaceError, DisconnectionError)):
        return JSONResponse(status_code=503, content={"detail": "Database temporarily unavailable"})
    reason = getattr(exc, "orig", None) or exc
    return JSONResponse(status_code=500, content={"detail": f"Database error: {reason}"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": str(exc) or "Internal server error"})


@app.get("/api/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.on_event("startup")
async def on_startup():
    # Создаём таблицы (в development). В production используйте миграции (alembic).
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ✅ OpenAPI с Bearer JWT (чтобы в /docs появился Authorize)
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    schema.setdefault("components", {}).setdefault("securitySchemes", {})
    schema["components"]["securitySchemes"]["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = custom_openapi

if __name__ == "__main__":
    uvicorn.run("storefront.main:app", host="0.0.0.0", port=8000, reload=True)
