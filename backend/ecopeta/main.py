import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from ecopeta import models  # noqa: F401
from ecopeta.core.config import CORS_ORIGIN_REGEX, CORS_ORIGINS, UPLOADS_DIR, parse_cors_origins
from ecopeta.database.bootstrap import start_bootstrap
from ecopeta.database.session import engine
from ecopeta.routes import (
    auth,
    dashboard,
    locations,
    notifications,
    pickups,
    regions,
    reviews,
    users,
    waste_categories,
)

API_PREFIX = "/api/v1"
API_ROUTERS = (
    auth.router,
    users.router,
    locations.router,
    reviews.location_reviews_router,
    reviews.router,
    pickups.router,
    waste_categories.router,
    dashboard.router,
    notifications.router,
)

logger = logging.getLogger("uvicorn.error")
app = FastAPI(title="Eco-Peta API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_cors_origins(CORS_ORIGINS),
    allow_origin_regex=CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

@app.middleware("http")
async def json_utf8(request: Request, call_next):
    response = await call_next(request)
    if response.headers.get("content-type") == "application/json":
        response.headers["content-type"] = "application/json; charset=utf-8"
    return response

@app.exception_handler(StarletteHTTPException)
async def http_error_envelope(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def validation_error_envelope(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(status_code=400, content={"success": False, "error": "; ".join(messages)})

UPLOADS_ROOT = Path(UPLOADS_DIR).resolve()
UPLOADS_ROOT.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(UPLOADS_ROOT)), name="uploads")

for api_router in API_ROUTERS:
    app.include_router(api_router, prefix=API_PREFIX)
# Regions proxy is served outside the versioned prefix.
app.include_router(regions.router)

@app.get("/")
def root():
    return {"success": True, "message": "Eco-Peta API is running"}

@app.get("/health")
def healthcheck():
    return {"status": "ok"}

@app.get("/health/db")
def healthcheck_db():
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    return {"status": "ok", "database": engine.url.get_backend_name()}

@app.on_event("startup")
def startup_event():
    start_bootstrap()
