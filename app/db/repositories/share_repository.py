from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func, and_
from sqlalchemy.exc import IntegrityError
import uuid

from app.core.exceptions import ConflictError, NotFoundError
from app.db.models.share import Share as ShareModel
from app.domains.collaboration.entities import ContentType
from app.domains.sharing.entities import (
    Share, ShareType, SharePermissions, ShareSettings, ShareStatistics, ShareComment
)

SORTABLE_FIELDS = {
    "created_at": ShareModel.created_at,
    "updated_at": ShareModel.updated_at,
    "share_type": ShareModel.share_type,
}


class ShareRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, share: Share) -> Share:
        """Создание публикации; токен выдаётся при первой записи"""
        share.ensure_token()
        share.touch()
        db_share = ShareModel(
            uuid=share.uuid,
            tenant_id=share.tenant_id,
            content_id=share.content_id,
            content_type=share.content_type.value,
            shared_by=share.shared_by,
            created_at=share.created_at,
            **self._document_values(share)
        )

        self.session.add(db_share)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Share token already in use")

        return share

    async def get_by_uuid(self, share_uuid: uuid.UUID, tenant_id: uuid.UUID) -> Optional[Share]:
        result = await self.session.execute(
            select(ShareModel).where(
                and_(ShareModel.uuid == share_uuid, ShareModel.tenant_id == tenant_id)
            )
        )
        db_share = result.scalar_one_or_none()
        return self._to_domain(db_share) if db_share else None

    async def get_by_token(self, token: str) -> Optional[Share]:
        """Поиск активной публикации по токену ссылки"""
        result = await self.session.execute(
            select(ShareModel).where(
                and_(ShareModel.share_token == token, ShareModel.is_active.is_(True))
            )
        )
        db_share = result.scalar_one_or_none()
        return self._to_domain(db_share) if db_share else None

    async def list(
        self,
        tenant_id: uuid.UUID,
        shared_by: Optional[uuid.UUID] = None,
        share_type: Optional[ShareType] = None,
        sort: str = "created_at",
        order: str = "desc",
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Share], int]:
        """Страница публикаций и общее количество"""
        conditions = [ShareModel.tenant_id == tenant_id]
        if shared_by is not None:
            conditions.append(ShareModel.shared_by == shared_by)
        if share_type is not None:
            conditions.append(ShareModel.share_type == share_type.value)

        column = SORTABLE_FIELDS.get(sort, ShareModel.created_at)
        ordering = column.asc() if order == "asc" else column.desc()

        result = await self.session.execute(
            select(ShareModel)
            .where(and_(*conditions))
            .order_by(ordering)
            .limit(limit)
            .offset(offset)
        )
        shares = [self._to_domain(row) for row in result.scalars().all()]

        total = await self.session.scalar(
            select(func.count()).select_from(ShareModel).where(and_(*conditions))
        )
        return shares, total or 0

    async def save(self, share: Share) -> Share:
        """Запись изменённого агрегата (последняя запись побеждает)"""
        result = await self.session.execute(
            select(ShareModel).where(ShareModel.uuid == share.uuid)
        )
        db_share = result.scalar_one_or_none()
        if not db_share:
            raise NotFoundError("Share not found")

        share.ensure_token()
        share.touch()
        for key, value in self._document_values(share).items():
            setattr(db_share, key, value)

        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Share token already in use")

        return share

    async def delete(self, share_uuid: uuid.UUID, tenant_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            delete(ShareModel).where(
                and_(ShareModel.uuid == share_uuid, ShareModel.tenant_id == tenant_id)
            )
        )
        await self.session.commit()
        return result.rowcount > 0

    @staticmethod
    def _document_values(share: Share) -> dict:
        return {
            "share_type": share.share_type.value,
            "is_active": share.is_active,
            "share_token": share.share_token,
            "recipients": list(share.recipients),
            "permissions": share.permissions.to_dict(),
            "settings": share.settings.to_dict(),
            "statistics": share.statistics.to_dict(),
            "comments": [c.to_dict() for c in share.comments],
            "updated_at": share.updated_at
        }

    def _to_domain(self, db_share: ShareModel) -> Share:
        """Преобразование модели БД в доменную сущность"""
        return Share(
            uuid=db_share.uuid,
            tenant_id=db_share.tenant_id,
            content_id=db_share.content_id,
            content_type=ContentType(db_share.content_type),
            shared_by=db_share.shared_by,
            share_type=ShareType(db_share.share_type),
            recipients=list(db_share.recipients or []),
            permissions=SharePermissions.from_dict(db_share.permissions),
            settings=ShareSettings.from_dict(db_share.settings),
            statistics=ShareStatistics.from_dict(db_share.statistics),
            is_active=db_share.is_active,
            share_token=db_share.share_token,
            comments=[ShareComment.from_dict(c) for c in db_share.comments or []],
            created_at=db_share.created_at,
            updated_at=db_share.updated_at
        )
