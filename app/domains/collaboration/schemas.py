from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from typing import Optional, List, Dict, Any
import uuid
from datetime import datetime

from app.core.exceptions import NotFoundError
from app.domains.collaboration.entities import (
    ContentType, CollaborationStatus, MemberRole, MemberStatus, TaskStatus, TaskPriority,
    ItemRef, StatusChange, PriorityChange, Reschedule, TaskUpdate
)


def parse_item_ref(value: str) -> ItemRef:
    """Ссылка из пути запроса: индекс в списке или UUID элемента"""
    if value.isdigit():
        return int(value)
    try:
        return uuid.UUID(value)
    except ValueError:
        raise NotFoundError("Item not found")


def _strip_text(v: str) -> str:
    if not v.strip():
        raise ValueError('Text cannot be empty')
    return v.strip()


class CollaborationSettingsSchema(BaseModel):
    """Настройки совместной работы; незаданные поля не меняются"""
    allow_invites: Optional[bool] = None
    require_approval: Optional[bool] = None
    auto_accept: Optional[bool] = None
    notify_on_changes: Optional[bool] = None
    allow_comments: Optional[bool] = None
    allow_version_history: Optional[bool] = None


class CollaborationCreate(BaseModel):
    """Схема для создания совместной работы"""
    content_id: uuid.UUID
    content_type: ContentType
    settings: Optional[CollaborationSettingsSchema] = None


class CollaborationUpdate(BaseModel):
    """Схема для обновления статуса и настроек"""
    status: Optional[CollaborationStatus] = None
    settings: Optional[CollaborationSettingsSchema] = None


class MemberPermissionsSchema(BaseModel):
    can_edit: Optional[bool] = None
    can_comment: Optional[bool] = None
    can_invite: Optional[bool] = None
    can_delete: Optional[bool] = None


class MemberInvite(BaseModel):
    """Схема для приглашения участника"""
    user_id: uuid.UUID
    role: MemberRole = MemberRole.COMMENTER
    permissions: Optional[MemberPermissionsSchema] = None


class CommentCreate(BaseModel):
    """Схема для добавления комментария"""
    text: str = Field(..., min_length=1, max_length=5000)
    position: Optional[Dict[str, Any]] = None

    @field_validator('text')
    @classmethod
    def validate_text(cls, v):
        return _strip_text(v)


class ReplyCreate(BaseModel):
    """Схема для ответа на комментарий"""
    text: str = Field(..., min_length=1, max_length=5000)

    @field_validator('text')
    @classmethod
    def validate_text(cls, v):
        return _strip_text(v)


class TaskCreate(BaseModel):
    """Схема для создания задачи"""
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    assigned_to: uuid.UUID
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()


class TaskUpdateRequest(BaseModel):
    """Схема для изменения задачи.

    Допускаются только статус, приоритет и срок; ``due_date: null``
    явно снимает срок.
    """
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode='after')
    def validate_not_empty(self):
        if not self.to_updates():
            raise ValueError('At least one of status, priority or due_date is required')
        return self

    def to_updates(self) -> List[TaskUpdate]:
        updates: List[TaskUpdate] = []
        if self.status is not None:
            updates.append(StatusChange(self.status))
        if self.priority is not None:
            updates.append(PriorityChange(self.priority))
        if "due_date" in self.model_fields_set:
            updates.append(Reschedule(self.due_date))
        return updates


class VersionCreate(BaseModel):
    """Схема для создания версии"""
    changes: str = Field(..., min_length=1, max_length=1000)
    snapshot: Dict[str, Any]

    @field_validator('snapshot')
    @classmethod
    def validate_snapshot(cls, v):
        if not v:
            raise ValueError('Content snapshot is required')
        return v


class MemberResponse(BaseModel):
    user_id: uuid.UUID
    role: MemberRole
    permissions: Dict[str, bool]
    permissions_overridden: bool
    status: MemberStatus
    invited_at: datetime
    responded_at: Optional[datetime] = None


class ReplyResponse(BaseModel):
    uuid: uuid.UUID
    user_id: uuid.UUID
    text: str
    timestamp: datetime


class CommentResponse(BaseModel):
    """Схема для ответа с комментарием"""
    uuid: uuid.UUID
    user_id: uuid.UUID
    text: str
    position: Optional[Dict[str, Any]] = None
    timestamp: datetime
    resolved: bool
    resolved_by: Optional[uuid.UUID] = None
    resolved_at: Optional[datetime] = None
    replies: List[ReplyResponse]


class TaskResponse(BaseModel):
    """Схема для ответа с задачей"""
    uuid: uuid.UUID
    title: str
    description: str
    assigned_to: uuid.UUID
    assigned_by: uuid.UUID
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class VersionResponse(BaseModel):
    """Схема для ответа с версией контента"""
    uuid: uuid.UUID
    version_number: int
    user_id: uuid.UUID
    changes: str
    snapshot: Optional[Dict[str, Any]] = None
    is_current: bool
    timestamp: datetime


class TimelineEntryResponse(BaseModel):
    action: str
    user_id: uuid.UUID
    timestamp: datetime
    details: Dict[str, Any]


class CollaborationResponse(BaseModel):
    """Схема для ответа с данными совместной работы"""
    uuid: uuid.UUID
    tenant_id: uuid.UUID
    content_id: uuid.UUID
    content_type: ContentType
    owner_id: uuid.UUID
    status: CollaborationStatus
    settings: Dict[str, bool]
    members: List[MemberResponse]
    comments: List[CommentResponse]
    tasks: List[TaskResponse]
    versions: List[VersionResponse]
    timeline: List[TimelineEntryResponse]
    revision: int
    created_at: datetime
    updated_at: datetime


class CollaborationDetailResponse(CollaborationResponse):
    """Совместная работа с данными участников из справочника пользователей"""
    participants: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
