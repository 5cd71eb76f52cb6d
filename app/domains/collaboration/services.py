from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi.encoders import jsonable_encoder
import uuid
import logging

from app.core.exceptions import NotFoundError, PermissionDeniedError, ConflictError
from app.db.repositories.collaboration_repository import CollaborationRepository
from app.domains.collaboration.entities import (
    Collaboration, Member, Comment, Reply, Task, Version, TimelineEntry, ItemRef
)
from app.domains.collaboration.schemas import (
    CollaborationCreate, CollaborationUpdate, MemberInvite, CommentCreate,
    ReplyCreate, TaskCreate, TaskUpdateRequest, VersionCreate
)
from app.domains.content.providers import ContentRegistry, UserDirectory

logger = logging.getLogger(__name__)

INITIAL_VERSION_CHANGES = "Initial version"


class CollaborationService:
    """Сервис совместной работы над контентом.

    Каждый метод читает агрегат, вызывает его метод от имени пользователя
    и сохраняет документ целиком. Права проверяет сам агрегат.
    """

    def __init__(
        self,
        session: AsyncSession,
        content_registry: ContentRegistry,
        user_directory: Optional[UserDirectory] = None
    ):
        self.session = session
        self.repository = CollaborationRepository(session)
        self.content_registry = content_registry
        self.user_directory = user_directory

    async def create_collaboration(
        self,
        data: CollaborationCreate,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Collaboration:
        """Создание совместной работы вместе с начальной версией"""
        content = await self.content_registry.find_content(data.content_type, data.content_id, tenant_id)
        if content is None:
            raise NotFoundError("Content not found")
        if str(content.get("owner_id")) != str(user_id):
            raise PermissionDeniedError("Access denied")

        existing = await self.repository.get_by_content(data.content_id, data.content_type, tenant_id)
        if existing:
            raise ConflictError("Collaboration already exists for this content")

        settings = data.settings.model_dump(exclude_none=True) if data.settings else None
        collaboration = Collaboration.create(
            tenant_id=tenant_id,
            content_id=data.content_id,
            content_type=data.content_type,
            owner_id=user_id,
            settings=settings
        )
        collaboration.create_version(user_id, INITIAL_VERSION_CHANGES, jsonable_encoder(content))

        created = await self.repository.create(collaboration)
        logger.info(
            f"Collaboration {created.uuid} created by {user_id} for "
            f"{data.content_type.value} {data.content_id}"
        )
        return created

    async def list_collaborations(self, user_id: uuid.UUID, tenant_id: uuid.UUID) -> List[Collaboration]:
        """Совместные работы пользователя в пределах арендатора"""
        return await self.repository.list_for_user(user_id, tenant_id)

    async def get_collaboration(
        self,
        collaboration_id: uuid.UUID,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Collaboration:
        """Получение агрегата владельцем или участником"""
        collaboration = await self._load(collaboration_id, tenant_id)
        self._ensure_can_view(collaboration, user_id)
        return collaboration

    async def get_participants(self, collaboration: Collaboration) -> Dict[str, Dict[str, Any]]:
        """Отображаемые данные владельца и участников"""
        if self.user_directory is None:
            return {}

        user_ids = [collaboration.owner_id] + [m.user_id for m in collaboration.members]
        participants: Dict[str, Dict[str, Any]] = {}
        for participant_id in user_ids:
            user = await self.user_directory.find_by_id(participant_id)
            if user is not None:
                participants[str(participant_id)] = jsonable_encoder(user)
        return participants

    async def update_collaboration(
        self,
        collaboration_id: uuid.UUID,
        data: CollaborationUpdate,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Collaboration:
        collaboration = await self._load(collaboration_id, tenant_id)
        settings = data.settings.model_dump(exclude_none=True) if data.settings else None
        collaboration.update_settings(user_id, status=data.status, settings=settings)

        saved = await self.repository.save(collaboration)
        logger.info(f"Collaboration {collaboration_id} settings updated by {user_id}")
        return saved

    async def delete_collaboration(
        self,
        collaboration_id: uuid.UUID,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> bool:
        """Удаление совместной работы владельцем"""
        collaboration = await self._load(collaboration_id, tenant_id)
        collaboration.ensure_owner(user_id)

        deleted = await self.repository.delete(collaboration_id, tenant_id)
        logger.info(f"Collaboration {collaboration_id} deleted by {user_id}")
        return deleted

    # Участники

    async def invite_member(
        self,
        collaboration_id: uuid.UUID,
        data: MemberInvite,
        actor_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Member:
        collaboration = await self._load(collaboration_id, tenant_id)
        overrides = data.permissions.model_dump(exclude_none=True) if data.permissions else None
        member = collaboration.add_member(data.user_id, data.role, overrides, actor_id=actor_id)

        await self.repository.save(collaboration)
        logger.info(f"User {data.user_id} invited to collaboration {collaboration_id} as {data.role.value}")
        return member

    async def accept_invitation(
        self,
        collaboration_id: uuid.UUID,
        member_id: uuid.UUID,
        actor_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Member:
        """Принятие приглашения самим приглашенным"""
        self._ensure_self(member_id, actor_id)
        collaboration = await self._load(collaboration_id, tenant_id)
        member = collaboration.accept_invitation(member_id)

        await self.repository.save(collaboration)
        logger.info(f"User {member_id} accepted invitation to collaboration {collaboration_id}")
        return member

    async def decline_invitation(
        self,
        collaboration_id: uuid.UUID,
        member_id: uuid.UUID,
        actor_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Member:
        """Отклонение приглашения самим приглашенным"""
        self._ensure_self(member_id, actor_id)
        collaboration = await self._load(collaboration_id, tenant_id)
        member = collaboration.decline_invitation(member_id)

        await self.repository.save(collaboration)
        logger.info(f"User {member_id} declined invitation to collaboration {collaboration_id}")
        return member

    async def remove_member(
        self,
        collaboration_id: uuid.UUID,
        member_id: uuid.UUID,
        actor_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> None:
        collaboration = await self._load(collaboration_id, tenant_id)
        collaboration.remove_member(member_id, actor_id)

        await self.repository.save(collaboration)
        logger.info(f"User {member_id} removed from collaboration {collaboration_id} by {actor_id}")

    # Обсуждение

    async def add_comment(
        self,
        collaboration_id: uuid.UUID,
        data: CommentCreate,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Comment:
        collaboration = await self._load(collaboration_id, tenant_id)
        comment = collaboration.add_comment(user_id, data.text, jsonable_encoder(data.position))

        await self.repository.save(collaboration)
        logger.info(f"Comment {comment.uuid} added to collaboration {collaboration_id} by {user_id}")
        return comment

    async def add_reply(
        self,
        collaboration_id: uuid.UUID,
        comment_ref: ItemRef,
        data: ReplyCreate,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Reply:
        collaboration = await self._load(collaboration_id, tenant_id)
        reply = collaboration.add_reply(comment_ref, user_id, data.text)

        await self.repository.save(collaboration)
        logger.info(f"Reply {reply.uuid} added in collaboration {collaboration_id} by {user_id}")
        return reply

    async def resolve_comment(
        self,
        collaboration_id: uuid.UUID,
        comment_ref: ItemRef,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Comment:
        collaboration = await self._load(collaboration_id, tenant_id)
        comment = collaboration.resolve_comment(comment_ref, user_id)

        await self.repository.save(collaboration)
        logger.info(f"Comment {comment.uuid} resolved in collaboration {collaboration_id} by {user_id}")
        return comment

    # Задачи

    async def add_task(
        self,
        collaboration_id: uuid.UUID,
        data: TaskCreate,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Task:
        collaboration = await self._load(collaboration_id, tenant_id)
        task = collaboration.add_task(
            title=data.title,
            description=data.description,
            assigned_to=data.assigned_to,
            assigned_by=user_id,
            priority=data.priority,
            due_date=data.due_date
        )

        await self.repository.save(collaboration)
        logger.info(f"Task {task.uuid} added to collaboration {collaboration_id} for {data.assigned_to}")
        return task

    async def update_task(
        self,
        collaboration_id: uuid.UUID,
        task_ref: ItemRef,
        data: TaskUpdateRequest,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Task:
        collaboration = await self._load(collaboration_id, tenant_id)
        task = collaboration.update_task(task_ref, data.to_updates(), user_id)

        await self.repository.save(collaboration)
        logger.info(f"Task {task.uuid} in collaboration {collaboration_id} updated by {user_id}")
        return task

    # Версии

    async def create_version(
        self,
        collaboration_id: uuid.UUID,
        data: VersionCreate,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Version:
        collaboration = await self._load(collaboration_id, tenant_id)
        version = collaboration.create_version(user_id, data.changes, jsonable_encoder(data.snapshot))

        await self.repository.save(collaboration)
        logger.info(f"Version {version.version_number} of collaboration {collaboration_id} created by {user_id}")
        return version

    async def list_versions(
        self,
        collaboration_id: uuid.UUID,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> List[Version]:
        collaboration = await self.get_collaboration(collaboration_id, user_id, tenant_id)
        return sorted(collaboration.versions, key=lambda v: v.version_number, reverse=True)

    async def get_timeline(
        self,
        collaboration_id: uuid.UUID,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> List[TimelineEntry]:
        """Журнал изменений, новые записи первыми"""
        collaboration = await self.get_collaboration(collaboration_id, user_id, tenant_id)
        return list(reversed(collaboration.timeline))

    async def _load(self, collaboration_id: uuid.UUID, tenant_id: uuid.UUID) -> Collaboration:
        collaboration = await self.repository.get_by_uuid(collaboration_id, tenant_id)
        if not collaboration:
            raise NotFoundError("Collaboration not found")
        return collaboration

    @staticmethod
    def _ensure_can_view(collaboration: Collaboration, user_id: uuid.UUID) -> None:
        if not collaboration.can_view(user_id):
            raise PermissionDeniedError("Access denied")

    @staticmethod
    def _ensure_self(member_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        if member_id != actor_id:
            raise PermissionDeniedError("Only the invited user can respond to the invitation")
