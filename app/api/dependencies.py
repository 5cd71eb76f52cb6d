from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.domains.collaboration.services import CollaborationService
from app.domains.content.providers import ContentRegistry, UserDirectory
from app.domains.sharing.services import ShareService


def get_content_registry(request: Request) -> ContentRegistry:
    """Реестр провайдеров контента, настраивается при старте приложения"""
    return request.app.state.content_registry


def get_user_directory(request: Request) -> UserDirectory:
    return request.app.state.user_directory


def get_collaboration_service(
    db: AsyncSession = Depends(get_db),
    content_registry: ContentRegistry = Depends(get_content_registry),
    user_directory: UserDirectory = Depends(get_user_directory)
) -> CollaborationService:
    return CollaborationService(db, content_registry, user_directory)


def get_share_service(
    db: AsyncSession = Depends(get_db),
    content_registry: ContentRegistry = Depends(get_content_registry)
) -> ShareService:
    return ShareService(db, content_registry)
