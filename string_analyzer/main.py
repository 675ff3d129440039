from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from string_analyzer.api.routes import router
from string_analyzer.config import CORS_ORIGINS, LOG_LEVEL, PORT
from string_analyzer.database import init_db
from string_analyzer.errors import StringServiceError

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database...")
    init_db()
    yield


# Create FastAPI app
app = FastAPI(
    title="String Analyzer Service",
    description="Analyze, store and filter strings by their computed properties",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(router, tags=["strings"])


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Welcome to the String Analyzer Service",
        "version": "1.0.0",
        "endpoints": {
            "POST /strings": "Analyze and store a string",
            "GET /strings/{id}": "Get a stored string by its SHA-256 id",
            "GET /strings": "Get all strings with optional filters",
            "GET /strings/filter-by-natural-language": "Filter using natural language",
            "DELETE /strings/{id}": "Delete a string"
        }
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


# Service error handler
@app.exception_handler(StringServiceError)
async def service_exception_handler(request: Request, exc: StringServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = {}
    status_code = status.HTTP_400_BAD_REQUEST

    for error in exc.errors():
        field = error['loc'][-1] if error['loc'] else "body"
        errors[str(field)] = error['msg']
        # Present but not a string -> 422; missing, null or malformed -> 400
        if error['type'] == "string_type" and error.get('input') is not None:
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    if status_code == status.HTTP_422_UNPROCESSABLE_ENTITY:
        message = "Invalid data type for 'value' (must be string)"
    else:
        message = "Invalid request body or missing 'value' field"

    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "details": errors
        }
    )


# HTTPException handler
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # If detail is already a dict with 'error' key, return as is
    if isinstance(exc.detail, dict) and 'error' in exc.detail:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.detail
        )
    # Otherwise wrap it
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)}
    )


# Generic error handler
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error"
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("string_analyzer.main:app", host="0.0.0.0", port=PORT, reload=True)
