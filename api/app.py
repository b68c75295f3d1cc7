# -*- coding: utf-8 -*-
"""
SmartTransit Predictor FastAPI Application
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.dependencies import registry
from api.routers import congestion, prediction, recommendations, stations
from api.schemas import HealthStatus
from src.config import Settings
from src.congestion import kst_now

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not registry.loaded:
        registry.load()
    logger.info("SmartTransit services loaded (history db: %s)", registry.settings.db_path)
    yield


app = FastAPI(title="SmartTransit Predictor", version=VERSION, lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings.from_env().allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=500)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if exc.status_code == 405:
        message = "Method not allowed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query"))
    message = f"Invalid request: {location} {first.get('msg', '')}".strip()
    return JSONResponse(status_code=400, content={"status": "error", "message": message})


app.include_router(stations.router, prefix="/api", tags=["stations"])
app.include_router(congestion.router, prefix="/api", tags=["congestion"])
app.include_router(prediction.router, prefix="/api", tags=["prediction"])
app.include_router(recommendations.router, prefix="/api", tags=["recommendations"])


@app.get(
    "/api/health",
    response_model=HealthStatus,
    summary="서비스 상태 확인",
    description="프로세스 liveness 확인용. 외부 API나 DB 상태는 확인하지 않습니다.",
)
async def health():
    return HealthStatus(
        status="healthy",
        timestamp=kst_now().isoformat(),
        version=VERSION,
        services_loaded=registry.loaded,
    )
