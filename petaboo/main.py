# petaboo/main.py

from contextlib import asynccontextmanager
import os
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

# Роутеры
from petaboo.api.admin import router as admin_router
from petaboo.api.browser_log import router as browser_log_router
from petaboo.api.comment import router as comment_router
from petaboo.api.memo import router as memo_router
from petaboo.api.notification import router as notification_router
from petaboo.api.task import router as task_router
from petaboo.api.team import router as team_router
from petaboo.api.user import router as user_router

from petaboo.core.events import EventBus
from petaboo.core.settings import settings
from petaboo.core.exceptions import (
    BaseAppException,
    DuplicateError,
    Forbidden,
    NotFoundError,
    Unauthorized,
    UpstreamError,
    ValidationError,
)
from petaboo.database import init_db

# Логирование
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger("Petaboo")

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Petaboo API (env: {settings.ENV})")
    init_db()
    app.state.event_bus = EventBus()
    yield
    app.state.event_bus.shutdown()
    logger.info("Stopping Petaboo API")

app = FastAPI(
    title="Petaboo API",
    version="1.0.0",
    description="Teams, shared tasks and memos, comments and notifications",
    lifespan=lifespan,
)

# Middlewares
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Роутеры
app.include_router(user_router)
app.include_router(team_router)
app.include_router(task_router)
app.include_router(memo_router)
app.include_router(comment_router)
app.include_router(notification_router)
app.include_router(admin_router)
app.include_router(browser_log_router)

# Health check & root
@app.get("/", tags=["Health"])
def root():
    return {"status": "Petaboo API is running!"}

@app.get("/health", tags=["Health"])
def health():
    return {"ok": True}

# ==== Exception handlers ====

def _error(status_code: int, exc: BaseAppException) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": exc.code, "detail": exc.message})

@app.exception_handler(Unauthorized)
async def unauthorized_exception_handler(request: Request, exc: Unauthorized):
    logger.info(f"401 {request.method} {request.url.path}: {exc.message}")
    return _error(401, exc)

@app.exception_handler(Forbidden)
async def forbidden_exception_handler(request: Request, exc: Forbidden):
    return _error(403, exc)

@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError):
    return _error(404, exc)

@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    return _error(400, exc)

@app.exception_handler(DuplicateError)
async def duplicate_exception_handler(request: Request, exc: DuplicateError):
    return _error(409, exc)

@app.exception_handler(UpstreamError)
async def upstream_exception_handler(request: Request, exc: UpstreamError):
    logger.error(f"Upstream failure on {request.method} {request.url.path}: {exc.message}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": exc.code, "detail": "Internal server error"})

@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    logger.error(f"Unhandled app exception on {request.method} {request.url.path}: {exc.message}")
    return _error(500, exc)

@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "upstream_error", "detail": "Internal server error"})

@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    detail = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": "validation_error", "detail": detail})

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "petaboo.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=settings.DEBUG,
    )
