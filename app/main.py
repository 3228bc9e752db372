# app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.logging import setup_logging
from app.http_problem_handlers import register_exception_handlers

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("tienda")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info(
        "tienda-envios starting: env=%s rules_backend=%s",
        settings.ENV,
        settings.SHIPPING_RULES_BACKEND,
    )
    yield
    from app.db.session import close_engines

    await close_engines()


app = FastAPI(
    title="Tienda Envios",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://127.0.0.1:8000",
        "http://localhost:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ===========================
#          挂载路由
# ===========================
from app.api.routers.shipping_estimate import router as shipping_estimate_router  # noqa: E402
from app.metrics import router as metrics_router  # noqa: E402

# 结账运费估算：/api/envios/estimar + /api/envios/explicar
app.include_router(shipping_estimate_router)

# 观测：/metrics + /healthz
app.include_router(metrics_router)


@app.get("/")
async def root():
    return {"name": "Tienda Envios", "version": "1.0.0"}


@app.get("/ping")
async def ping():
    return {"status": "ok"}
