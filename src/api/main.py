from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from ..core.logging import setup_logging
from ..core.config import settings
from ..core.errors import (
    AssistantError,
    AssistantUnavailableError,
    ExtractionError,
    InvoiceNotFoundError,
    InvoiceParseError,
    InvoiceStoreError,
)
from .routers import chat, health, invoices, parse

logger = setup_logging()
app = FastAPI(title="Rental Invoice Parse API")


# Add custom exception handler for validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances that JSON can't encode
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


@app.exception_handler(InvoiceParseError)
async def invoice_parse_exception_handler(request: Request, exc: InvoiceParseError):
    logger.error(f"Failed to parse model response: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Failed to parse invoice", "raw": exc.raw},
    )


@app.exception_handler(ExtractionError)
async def extraction_exception_handler(request: Request, exc: ExtractionError):
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"success": False, "error": "Failed to process invoice", "message": str(exc)},
    )


@app.exception_handler(InvoiceStoreError)
async def store_exception_handler(request: Request, exc: InvoiceStoreError):
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"success": False, "error": "Database request failed", "message": str(exc)},
    )


@app.exception_handler(InvoiceNotFoundError)
async def not_found_exception_handler(request: Request, exc: InvoiceNotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"success": False, "error": str(exc)},
    )


@app.exception_handler(AssistantUnavailableError)
async def assistant_unavailable_exception_handler(request: Request, exc: AssistantUnavailableError):
    logger.warning(str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"success": False, "error": str(exc)},
    )


@app.exception_handler(AssistantError)
async def assistant_exception_handler(request: Request, exc: AssistantError):
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"success": False, "error": "Assistant request failed", "message": str(exc)},
    )


# Configure CORS to allow frontend access
# CORS_ORIGINS can be set in .env as comma-separated list
# Example: CORS_ORIGINS=http://localhost:3000,https://your-frontend.com
allowed_origins = [origin.strip() for origin in settings.cors_origins.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(parse.router)
app.include_router(invoices.router)
app.include_router(chat.router)
