# backend/app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import config, models
from app.database import engine
from app.logging_config import configure_logging
from app.routers import (
    ai,
    auth,
    bikes,
    customers,
    dashboard,
    expenses,
    finance,
    payments,
    reports,
    revenue,
    sales,
)

configure_logging()
logger = logging.getLogger(__name__)


# ------------------ FASTAPI LIFESPAN ------------------ #

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    On startup:
    - create database tables (if not exist)
    - make sure the invoice and report directories exist
    """
    logger.info("Creating database tables (if not exist)...")
    models.Base.metadata.create_all(bind=engine)

    config.INVOICE_DIR.mkdir(parents=True, exist_ok=True)
    config.REPORT_TMP_DIR.mkdir(parents=True, exist_ok=True)

    yield


app = FastAPI(
    title="Bike Dealer API",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------ ERROR BODIES ------------------ #
# Every error leaves as {"message": ..., "errors"?: [...]}

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid input", "errors": errors},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Server error"},
    )


# Routers
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(bikes.router, prefix="/bikes", tags=["bikes"])
app.include_router(customers.router, prefix="/customers", tags=["customers"])
app.include_router(sales.router, prefix="/sales", tags=["sales"])
app.include_router(payments.router, prefix="/payments", tags=["payments"])
app.include_router(finance.router, prefix="/finance", tags=["finance"])
app.include_router(expenses.router, prefix="/expenses", tags=["expenses"])
app.include_router(revenue.router, prefix="/revenue", tags=["revenue"])
app.include_router(reports.router, prefix="/reports", tags=["reports"])
app.include_router(ai.router, prefix="/ai", tags=["ai"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])


@app.get("/health")
def health_check():
    return {"status": "ok"}
