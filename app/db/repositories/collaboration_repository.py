from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, insert, and_
from sqlalchemy.exc import IntegrityError
import uuid
import logging

from app.core.exceptions import ConflictError, RevisionConflictError
from app.db.models.collaboration import (
    Collaboration as CollaborationModel,
    CollaborationParticipant as ParticipantModel
)
from app.domains.collaboration.entities import (
    Collaboration, CollaborationSettings, CollaborationStatus, ContentType,
    Member, Comment, Task, Version, TimelineEntry
)

logger = logging.getLogger(__name__)


class CollaborationRepository:
    """Репозиторий агрегата совместной работы.

    Агрегат записывается целиком одним UPDATE с проверкой ``revision``;
    если строку успели изменить, запись отклоняется без слияния.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, collaboration: Collaboration) -> Collaboration:
        """Первая запись агрегата"""
        collaboration.touch()
        db_collaboration = CollaborationModel(
            uuid=collaboration.uuid,
            tenant_id=collaboration.tenant_id,
            content_id=collaboration.content_id,
            content_type=collaboration.content_type.value,
            owner_id=collaboration.owner_id,
            revision=collaboration.revision + 1,
            created_at=collaboration.created_at,
            **self._document_values(collaboration)
        )

        self.session.add(db_collaboration)
        try:
            await self.session.flush()
            await self._sync_participants(collaboration)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Collaboration already exists for this content")

        collaboration.revision += 1
        return collaboration

    async def get_by_uuid(self, collaboration_uuid: uuid.UUID, tenant_id: uuid.UUID) -> Optional[Collaboration]:
        """Получение агрегата по UUID в пределах арендатора"""
        result = await self.session.execute(
            select(CollaborationModel).where(
                and_(
                    CollaborationModel.uuid == collaboration_uuid,
                    CollaborationModel.tenant_id == tenant_id
                )
            ).execution_options(populate_existing=True)
        )
        db_collaboration = result.scalar_one_or_none()
        return self._to_domain(db_collaboration) if db_collaboration else None

    async def get_by_content(
        self,
        content_id: uuid.UUID,
        content_type: ContentType,
        tenant_id: uuid.UUID
    ) -> Optional[Collaboration]:
        result = await self.session.execute(
            select(CollaborationModel).where(
                and_(
                    CollaborationModel.content_id == content_id,
                    CollaborationModel.content_type == content_type.value,
                    CollaborationModel.tenant_id == tenant_id
                )
            ).execution_options(populate_existing=True)
        )
        db_collaboration = result.scalar_one_or_none()
        return self._to_domain(db_collaboration) if db_collaboration else None

    async def list_for_user(self, user_id: uuid.UUID, tenant_id: uuid.UUID) -> List[Collaboration]:
        """Совместные работы, где пользователь владелец или принятый участник"""
        result = await self.session.execute(
            select(CollaborationModel)
            .join(ParticipantModel, ParticipantModel.collaboration_id == CollaborationModel.uuid)
            .where(
                and_(
                    ParticipantModel.user_id == user_id,
                    CollaborationModel.tenant_id == tenant_id
                )
            )
            .order_by(CollaborationModel.updated_at.desc())
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(row) for row in result.scalars().all()]

    async def save(self, collaboration: Collaboration) -> Collaboration:
        """Атомарная запись всего документа с проверкой ревизии"""
        expected_revision = collaboration.revision
        collaboration.touch()

        stmt = (
            update(CollaborationModel)
            .where(
                and_(
                    CollaborationModel.uuid == collaboration.uuid,
                    CollaborationModel.revision == expected_revision
                )
            )
            .values(
                revision=expected_revision + 1,
                **self._document_values(collaboration)
            )
            .execution_options(synchronize_session=False)
        )

        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            await self.session.rollback()
            logger.warning(
                f"Revision conflict on collaboration {collaboration.uuid} (expected {expected_revision})"
            )
            raise RevisionConflictError()

        await self._sync_participants(collaboration)
        await self.session.commit()

        collaboration.revision = expected_revision + 1
        return collaboration

    async def delete(self, collaboration_uuid: uuid.UUID, tenant_id: uuid.UUID) -> bool:
        """Удаление агрегата вместе со всеми вложенными данными"""
        await self.session.execute(
            delete(ParticipantModel).where(ParticipantModel.collaboration_id == collaboration_uuid)
        )
        result = await self.session.execute(
            delete(CollaborationModel).where(
                and_(
                    CollaborationModel.uuid == collaboration_uuid,
                    CollaborationModel.tenant_id == tenant_id
                )
            )
        )
        await self.session.commit()
        return result.rowcount > 0

    async def _sync_participants(self, collaboration: Collaboration) -> None:
        """Пересборка индекса участников в той же транзакции"""
        await self.session.execute(
            delete(ParticipantModel).where(ParticipantModel.collaboration_id == collaboration.uuid)
        )
        await self.session.execute(
            insert(ParticipantModel),
            [
                {"collaboration_id": collaboration.uuid, "user_id": user_id}
                for user_id in collaboration.participant_ids()
            ]
        )

    @staticmethod
    def _document_values(collaboration: Collaboration) -> dict:
        return {
            "status": collaboration.status.value,
            "settings": collaboration.settings.to_dict(),
            "members": [m.to_dict() for m in collaboration.members],
            "comments": [c.to_dict() for c in collaboration.comments],
            "tasks": [t.to_dict() for t in collaboration.tasks],
            "versions": [v.to_dict() for v in collaboration.versions],
            "timeline": [e.to_dict() for e in collaboration.timeline],
            "updated_at": collaboration.updated_at
        }

    def _to_domain(self, db_collaboration: CollaborationModel) -> Collaboration:
        """Преобразование модели БД в доменную сущность"""
        return Collaboration(
            uuid=db_collaboration.uuid,
            tenant_id=db_collaboration.tenant_id,
            content_id=db_collaboration.content_id,
            content_type=ContentType(db_collaboration.content_type),
            owner_id=db_collaboration.owner_id,
            status=CollaborationStatus(db_collaboration.status),
            settings=CollaborationSettings.from_dict(db_collaboration.settings),
            members=[Member.from_dict(m) for m in db_collaboration.members or []],
            comments=[Comment.from_dict(c) for c in db_collaboration.comments or []],
            tasks=[Task.from_dict(t) for t in db_collaboration.tasks or []],
            versions=[Version.from_dict(v) for v in db_collaboration.versions or []],
            timeline=[TimelineEntry.from_dict(e) for e in db_collaboration.timeline or []],
            revision=db_collaboration.revision,
            created_at=db_collaboration.created_at,
            updated_at=db_collaboration.updated_at
        )
