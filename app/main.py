from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.http import health_router, collaborations_router, shares_router
from app.core.config import settings
from app.core.db import init_models
from app.core.exceptions import DomainError
from app.domains.collaboration.entities import ContentType
from app.domains.content.providers import ContentRegistry, InMemoryContentProvider, InMemoryUserDirectory

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


def build_default_registry() -> ContentRegistry:
    """Реестр с провайдерами в памяти для каждого типа контента"""
    registry = ContentRegistry()
    for content_type in ContentType:
        registry.register(content_type, InMemoryContentProvider())
    return registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("Database schema is ready")
    yield


app = FastAPI(
    title="CourseCollab",
    description="Совместная работа над учебным контентом и публикация по ссылкам",
    version="1.0.0",
    lifespan=lifespan
)

# Настройка CORS для работы с frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # В продакшене указать конкретные домены
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Внешние источники контента и пользователей подключаются через app.state
app.state.content_registry = build_default_registry()
app.state.user_directory = InMemoryUserDirectory()


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Подключаем роутеры
app.include_router(health_router)
app.include_router(collaborations_router)
app.include_router(shares_router)


@app.get("/")
async def root():
    """Корневой эндпоинт"""
    return {
        "message": "CourseCollab API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
