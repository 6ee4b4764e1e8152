import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskboard.api.auth import router as auth_router
from taskboard.api.tasks import router as tasks_router
from taskboard.database import check_db_health, init_db
from taskboard.errors import TaskboardError
from taskboard.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def _cors_origins():
    configured = os.getenv("CORS_ORIGINS", "")
    origins = [origin.strip() for origin in configured.split(",") if origin.strip()]
    return origins or DEFAULT_CORS_ORIGINS


@asynccontextmanager
async def lifespan(app: FastAPI):
    if os.getenv("INIT_DB_ON_STARTUP", "true").lower() == "true":
        init_db()
    logger.info("Taskboard API started")
    yield


app = FastAPI(
    title="Taskboard Backend",
    description="Team task board: member approval workflow and subtask tracking",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Auth",
            "description": "Leader/member registration, login and member approval",
        },
        {
            "name": "Tasks",
            "description": "Tasks and subtasks: claiming, assignment, progress and deadlines",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Accept", "Content-Type", "Authorization", "X-Requested-With"],
)


@app.exception_handler(TaskboardError)
async def taskboard_error_handler(request: Request, exc: TaskboardError):
    logger.warning(
        "%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err["loc"][1:]) for err in exc.errors()]
    logger.warning("%s %s invalid fields: %s", request.method, request.url.path, fields)
    return JSONResponse(
        status_code=400,
        content={"error": "Missing required fields", "fields": fields},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        tags=app.openapi_tags,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "HTTPBearer": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Token returned by /api/auth/login, valid for 24 hours.",
        },
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.include_router(auth_router)
app.include_router(tasks_router)


@app.get("/")
async def root():
    return {"message": "Taskboard API"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/api/health")
def api_health_check():
    if not check_db_health():
        return JSONResponse(
            status_code=503,
            content={"status": "ERROR", "message": "Database unavailable"},
        )
    return {"status": "OK", "message": "Server is running"}
