import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from buildsetu.config import CORS_ORIGINS, LOG_LEVEL
from buildsetu.database import init_database
from buildsetu.errors import AppError

# Route modules
from buildsetu.routes import (
    health,
    users,
    categories,
    products,
    addresses,
    orders,
    support,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="BuildSetu API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error rendering ────────────────────────────────────────────────
@app.exception_handler(AppError)
def handle_app_error(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("Request failed | path=%s | code=%s | error=%s", request.url.path, exc.code, exc.message)
    else:
        logger.info(
            "Request rejected | path=%s | status=%s | code=%s | reason=%s",
            request.url.path,
            exc.status_code,
            exc.code,
            exc.reason,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": {
                "message": "Validation error",
                "code": "VALIDATION_ERROR",
                "details": jsonable_encoder(exc.errors()),
            },
        },
    )


@app.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error | path=%s | error=%s", request.url.path, str(exc))
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": {"message": "Internal server error", "code": "INTERNAL_ERROR"}},
    )


# ── Routers ────────────────────────────────────────────────────────
app.include_router(health.router,      prefix="/api")
app.include_router(users.router,       prefix="/api")
app.include_router(categories.router,  prefix="/api")
app.include_router(products.router,    prefix="/api")
app.include_router(addresses.router,   prefix="/api")
app.include_router(orders.router,      prefix="/api")
app.include_router(support.router,     prefix="/api")


@app.get("/")
def root():
    return {"message": "BuildSetu API", "base": "/api", "health": "/api/health"}


@app.on_event("startup")
def startup():
    init_database()
