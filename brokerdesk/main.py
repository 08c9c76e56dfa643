# brokerdesk/main.py

# --- Environment Variable Loading ---
# Must run before any brokerdesk module reads settings.
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from brokerdesk.core.config import get_settings
from brokerdesk.core.exceptions import BrokerDeskError
from brokerdesk.core.logging_config import app_logger, console_error_logger, error_logger
from brokerdesk.core.security import close_redis_connection, connect_to_redis
from brokerdesk.dependencies import redis_client as redis_dependency
from brokerdesk.api.v1.api import api_router

logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

settings = get_settings()
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

# --- CORS Settings ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)


@app.exception_handler(BrokerDeskError)
async def brokerdesk_error_handler(request: Request, exc: BrokerDeskError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    error_logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    console_error_logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


@app.on_event("startup")
async def startup_event():
    app_logger.info("Application startup initiated")
    try:
        client = await connect_to_redis()
        if client and await client.ping():
            redis_dependency.global_redis_client_instance = client
            app_logger.info("Redis initialized")
    except Exception as e:
        # Sessions fall back to a late connection; notifications stay DB-only
        app_logger.warning(f"Redis initialization failed: {e}")
    app_logger.info("Application startup completed")


@app.on_event("shutdown")
async def shutdown_event():
    app_logger.info("Application shutdown initiated")
    if redis_dependency.global_redis_client_instance:
        await close_redis_connection(redis_dependency.global_redis_client_instance)
        redis_dependency.global_redis_client_instance = None
        app_logger.info("Redis connection closed")
    app_logger.info("Application shutdown completed")


app.include_router(api_router, prefix=settings.API_V1_STR)
