from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi.encoders import jsonable_encoder
import uuid
import logging

from app.core.exceptions import (
    NotFoundError, PermissionDeniedError, InvalidStateError,
    ShareExpiredError, AuthenticationRequiredError
)
from app.db.repositories.share_repository import ShareRepository
from app.domains.collaboration.entities import ItemRef, Reply
from app.domains.content.providers import ContentRegistry
from app.domains.sharing.entities import Share, ShareType, SharePermission, ShareComment
from app.domains.sharing.schemas import ShareCreate, ShareUpdate, normalize_emails

logger = logging.getLogger(__name__)


class ShareService:
    """Сервис публикации контента"""

    def __init__(self, session: AsyncSession, content_registry: ContentRegistry):
        self.session = session
        self.repository = ShareRepository(session)
        self.content_registry = content_registry

    async def create_share(self, data: ShareCreate, user_id: uuid.UUID, tenant_id: uuid.UUID) -> Share:
        """Публикация контента его владельцем"""
        content = await self.content_registry.find_content(data.content_type, data.content_id, tenant_id)
        if content is None:
            raise NotFoundError("Content not found")
        if str(content.get("owner_id")) != str(user_id):
            raise PermissionDeniedError("Access denied")

        share = Share.create(
            tenant_id=tenant_id,
            content_id=data.content_id,
            content_type=data.content_type,
            shared_by=user_id,
            share_type=data.share_type,
            recipients=data.recipients,
            permissions=data.permissions.model_dump(exclude_none=True) if data.permissions else None,
            settings=data.settings.model_dump(exclude_none=True) if data.settings else None
        )
        created = await self.repository.create(share)
        logger.info(f"Share {created.uuid} ({created.share_type.value}) created by {user_id}")

        if created.share_type == ShareType.EMAIL and created.recipients:
            # Отправка писем не реализована, фиксируем только факт
            logger.info(f"Share {created.uuid} would be sent to {len(created.recipients)} recipient(s)")

        return created

    async def list_shares(
        self,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
        sort: str = "created_at",
        order: str = "desc",
        share_type: Optional[ShareType] = None
    ) -> Tuple[List[Share], int]:
        """Страница публикаций, созданных пользователем"""
        return await self.repository.list(
            tenant_id,
            shared_by=user_id,
            share_type=share_type,
            sort=sort,
            order=order,
            limit=limit,
            offset=(page - 1) * limit
        )

    async def get_share(self, share_id: uuid.UUID, user_id: uuid.UUID, tenant_id: uuid.UUID) -> Share:
        share = await self._load(share_id, tenant_id)
        self._ensure_owner(share, user_id)
        return share

    async def update_share(
        self,
        share_id: uuid.UUID,
        data: ShareUpdate,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Share:
        share = await self.get_share(share_id, user_id, tenant_id)

        if data.recipients is not None:
            recipients = data.recipients
            if share.share_type == ShareType.EMAIL:
                try:
                    recipients = normalize_emails(recipients)
                except ValueError:
                    raise InvalidStateError("Recipients must be valid email addresses")
            share.recipients = recipients
        if data.permissions is not None:
            share.update_permissions(data.permissions.model_dump(exclude_none=True))
        if data.settings is not None:
            share.update_settings(data.settings.model_dump(exclude_unset=True))

        saved = await self.repository.save(share)
        logger.info(f"Share {share_id} updated by {user_id}")
        return saved

    async def delete_share(self, share_id: uuid.UUID, user_id: uuid.UUID, tenant_id: uuid.UUID) -> bool:
        share = await self.get_share(share_id, user_id, tenant_id)
        deleted = await self.repository.delete(share.uuid, tenant_id)
        logger.info(f"Share {share_id} deleted by {user_id}")
        return deleted

    async def toggle_share(self, share_id: uuid.UUID, user_id: uuid.UUID, tenant_id: uuid.UUID) -> Share:
        """Включение и отключение ссылки"""
        share = await self.get_share(share_id, user_id, tenant_id)
        is_active = share.toggle_active()

        saved = await self.repository.save(share)
        logger.info(f"Share {share_id} {'activated' if is_active else 'deactivated'} by {user_id}")
        return saved

    async def access_by_token(
        self,
        token: str,
        user_id: Optional[uuid.UUID] = None,
        password: Optional[str] = None
    ) -> Tuple[Share, Optional[Dict[str, Any]]]:
        """Открытие публикации по ссылке с учетом срока, входа и пароля"""
        share = await self.repository.get_by_token(token)
        if not share:
            raise NotFoundError("Share not found")

        if share.is_expired():
            raise ShareExpiredError("Share has expired")
        if share.settings.require_login and user_id is None:
            raise AuthenticationRequiredError("Login required")
        if not share.verify_password(password):
            raise AuthenticationRequiredError("Invalid share password")

        share.record_view(user_id)
        saved = await self.repository.save(share)

        content = await self.content_registry.find_content(share.content_type, share.content_id, share.tenant_id)
        return saved, jsonable_encoder(content) if content is not None else None

    async def add_comment(self, share_id: uuid.UUID, text: str, user_id: uuid.UUID, tenant_id: uuid.UUID) -> ShareComment:
        share = await self._load(share_id, tenant_id)
        self._ensure_permission(share, SharePermission.CAN_COMMENT, user_id)

        comment = share.add_comment(user_id, text)
        await self.repository.save(share)
        logger.info(f"Comment {comment.uuid} added to share {share_id} by {user_id}")
        return comment

    async def add_reply(
        self,
        share_id: uuid.UUID,
        comment_ref: ItemRef,
        text: str,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Reply:
        share = await self._load(share_id, tenant_id)
        self._ensure_permission(share, SharePermission.CAN_COMMENT, user_id)

        reply = share.add_reply(comment_ref, user_id, text)
        await self.repository.save(share)
        logger.info(f"Reply {reply.uuid} added in share {share_id} by {user_id}")
        return reply

    async def record_download(self, share_id: uuid.UUID, user_id: uuid.UUID, tenant_id: uuid.UUID) -> Share:
        share = await self._load(share_id, tenant_id)
        self._ensure_permission(share, SharePermission.CAN_DOWNLOAD, user_id)

        share.record_download()
        return await self.repository.save(share)

    async def _load(self, share_id: uuid.UUID, tenant_id: uuid.UUID) -> Share:
        share = await self.repository.get_by_uuid(share_id, tenant_id)
        if not share:
            raise NotFoundError("Share not found")
        return share

    @staticmethod
    def _ensure_owner(share: Share, user_id: uuid.UUID) -> None:
        if not share.is_owner(user_id):
            raise PermissionDeniedError("Access denied")

    @staticmethod
    def _ensure_permission(share: Share, permission: SharePermission, user_id: uuid.UUID) -> None:
        if not share.has_permission(permission, user_id):
            raise PermissionDeniedError("Access denied")
