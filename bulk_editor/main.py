import logging

from bulk_editor.core.config import settings

uvicorn_logger = logging.getLogger("uvicorn")

app_logger = logging.getLogger("bulk_editor")
app_logger.setLevel(settings.LOG_LEVEL.upper())
app_logger.handlers = uvicorn_logger.handlers
app_logger.propagate = False

from fastapi import FastAPI, HTTPException, status, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from bulk_editor.core.admin_client import close_http_client
from bulk_editor.services.taxonomy import taxonomy_service
from bulk_editor.api.v1.products import router as products_router
from bulk_editor.api.v1.bulk_edit import router as bulk_edit_router
from bulk_editor.api.v1.taxonomy import router as taxonomy_router
from bulk_editor.web.routes import router as web_router

logger = logging.getLogger(__name__)
logger.info("Application startup - logging configured")


app = FastAPI(
    title=settings.APP_NAME,
    description="Bulk editing of catalog products through the shop Admin API",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.add_middleware(SessionMiddleware, secret_key=settings.SESSION_SECRET_KEY)

app.include_router(web_router)
app.include_router(products_router)
app.include_router(bulk_edit_router)
app.include_router(taxonomy_router)


@app.on_event("startup")
async def load_taxonomy():
    taxonomy_service.load()


@app.on_event("shutdown")
async def shutdown_http_client():
    await close_http_client()


@app.get("/health")
async def health_check():
    return {"status": "ok", "taxonomy_loaded": taxonomy_service.loaded}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if exc.status_code == 401:
        logger.warning(f"Unauthenticated request to {request.url.path}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
