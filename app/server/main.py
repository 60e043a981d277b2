import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.models.shared import ErrorResponse, HealthResponse
from app.server.dependencies import get_settings
from app.server.routers.auth_routes import auth_router
from app.server.routers.contact_routes import contact_router
from app.server.routers.payment_routes import payment_router
from app.server.routers.youtube_routes import youtube_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Location prefixes FastAPI puts in front of validation error field paths
_LOCATIONS = {"body", "query", "path", "header", "cookie"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    for integration in get_settings().missing_integrations():
        logger.warning(f"{integration} is not configured; its endpoints will fail")
    yield


app = FastAPI(
    title="Yobaexo Server",
    lifespan=lifespan,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # The site and its previews are served from many hosts
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods (GET, POST, etc.)
    allow_headers=["*"],  # Allows all headers
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": str(exc.detail)}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


def describe_validation_error(error: dict) -> str:
    """Render one pydantic error as "field: message"."""
    field = ".".join(
        str(part) for part in error.get("loc", ()) if part not in _LOCATIONS
    )
    message = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info(f"Rejected request to {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content={
            "error": describe_validation_error(errors[0])
            if errors
            else "Invalid request",
        },
    )


@app.get("/", tags=["root"])
def root():
    return {"message": "success"}


@app.get("/health", tags=["root"], response_model=HealthResponse)
def health():
    return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc))


# Include the routers in the main app with the prefix the frontend calls
app.include_router(auth_router, prefix="/api", tags=["auth"])
app.include_router(payment_router, prefix="/api", tags=["payments"])
app.include_router(youtube_router, prefix="/api/youtube", tags=["youtube"])
app.include_router(contact_router, prefix="/api", tags=["contact"])

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
