import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Sequence, Union
from enum import Enum

from app.core.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from app.core.timeutils import utcnow, to_iso, from_iso

# Максимальная длина текста, попадающего в детали записи аудита
AUDIT_TEXT_LIMIT = 100

# Ссылка на вложенный элемент: стабильный UUID или индекс в списке
ItemRef = Union[uuid.UUID, int]


class ContentType(Enum):
    """Типы учебного контента, над которым ведется совместная работа"""
    COURSE = "Course"
    PRESENTATION = "Presentation"
    QUIZ = "Quiz"
    TUTORIAL = "Tutorial"


class CollaborationStatus(Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class MemberRole(Enum):
    EDITOR = "editor"
    REVIEWER = "reviewer"
    COMMENTER = "commenter"


class MemberStatus(Enum):
    INVITED = "invited"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class TaskStatus(Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    COMPLETED = "completed"


class TaskPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Permission(Enum):
    """Права участника совместной работы"""
    CAN_EDIT = "can_edit"
    CAN_COMMENT = "can_comment"
    CAN_INVITE = "can_invite"
    CAN_DELETE = "can_delete"


def _uuid_or_none(value) -> Optional[uuid.UUID]:
    return uuid.UUID(str(value)) if value is not None else None


def _truncate(text: str) -> str:
    return text[:AUDIT_TEXT_LIMIT]


def locate_item(items: Sequence[Any], ref: ItemRef, label: str) -> Any:
    """Поиск вложенного элемента по UUID или по индексу"""
    if isinstance(ref, int) and not isinstance(ref, bool):
        if 0 <= ref < len(items):
            return items[ref]
    else:
        for item in items:
            if item.uuid == ref:
                return item
    raise NotFoundError(f"{label} not found")


class MemberPermissions:
    """Набор прав участника, независимых от роли после создания"""

    KEYS = tuple(p.value for p in Permission)

    def __init__(
        self,
        can_edit: bool = False,
        can_comment: bool = True,
        can_invite: bool = False,
        can_delete: bool = False
    ):
        self.can_edit = can_edit
        self.can_comment = can_comment
        self.can_invite = can_invite
        self.can_delete = can_delete

    @classmethod
    def for_role(cls, role: MemberRole) -> "MemberPermissions":
        """Права по умолчанию для роли"""
        is_editor = role == MemberRole.EDITOR
        return cls(can_edit=is_editor, can_comment=True, can_invite=is_editor, can_delete=False)

    def merged(self, overrides: Optional[Dict[str, bool]]) -> "MemberPermissions":
        """Копия прав, в которой заменены только переданные ключи"""
        values = self.to_dict()
        for key, value in (overrides or {}).items():
            if key in self.KEYS and value is not None:
                values[key] = bool(value)
        return MemberPermissions(**values)

    def get(self, permission: Union[Permission, str]) -> bool:
        key = permission.value if isinstance(permission, Permission) else permission
        if key not in self.KEYS:
            return False
        return bool(getattr(self, key))

    def to_dict(self) -> Dict[str, bool]:
        return {key: getattr(self, key) for key in self.KEYS}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemberPermissions":
        return cls(**{key: bool(data.get(key, False)) for key in cls.KEYS})

    def __eq__(self, other) -> bool:
        if not isinstance(other, MemberPermissions):
            return False
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"MemberPermissions({self.to_dict()})"


class Member:
    """Приглашенный участник (не владелец)"""

    def __init__(
        self,
        user_id: uuid.UUID,
        role: MemberRole = MemberRole.COMMENTER,
        permissions: Optional[MemberPermissions] = None,
        status: MemberStatus = MemberStatus.INVITED,
        invited_at: Optional[datetime] = None,
        responded_at: Optional[datetime] = None
    ):
        self.user_id = user_id
        self.role = role
        self.permissions = permissions or MemberPermissions.for_role(role)
        self.status = status
        self.invited_at = invited_at or utcnow()
        self.responded_at = responded_at

    @property
    def permissions_overridden(self) -> bool:
        """Права разошлись с шаблоном роли"""
        return self.permissions != MemberPermissions.for_role(self.role)

    @property
    def is_accepted(self) -> bool:
        return self.status == MemberStatus.ACCEPTED

    def reinvite(self, role: MemberRole, overrides: Optional[Dict[str, bool]]) -> None:
        """Повторное приглашение: сброс статуса и прав к шаблону роли"""
        self.role = role
        self.permissions = MemberPermissions.for_role(role).merged(overrides)
        self.status = MemberStatus.INVITED
        self.invited_at = utcnow()
        self.responded_at = None

    def respond(self, status: MemberStatus) -> None:
        if self.status != MemberStatus.INVITED:
            raise InvalidStateError("Invitation not found or already responded")
        self.status = status
        self.responded_at = utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "role": self.role.value,
            "permissions": self.permissions.to_dict(),
            "permissions_overridden": self.permissions_overridden,
            "status": self.status.value,
            "invited_at": to_iso(self.invited_at),
            "responded_at": to_iso(self.responded_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Member":
        return cls(
            user_id=uuid.UUID(data["user_id"]),
            role=MemberRole(data.get("role", MemberRole.COMMENTER.value)),
            permissions=MemberPermissions.from_dict(data.get("permissions", {})),
            status=MemberStatus(data.get("status", MemberStatus.INVITED.value)),
            invited_at=from_iso(data.get("invited_at")),
            responded_at=from_iso(data.get("responded_at"))
        )

    def __repr__(self) -> str:
        return f"Member(user={self.user_id}, role={self.role.value}, status={self.status.value})"


class CollaborationSettings:
    """Настройки совместной работы.

    Флаги носят рекомендательный характер: ``require_approval`` и
    ``auto_accept`` сохраняются, но на приглашения не влияют.
    """

    DEFAULTS = {
        "allow_invites": True,
        "require_approval": False,
        "auto_accept": False,
        "notify_on_changes": True,
        "allow_comments": True,
        "allow_version_history": True,
    }

    def __init__(self, **values: bool):
        for key, default in self.DEFAULTS.items():
            setattr(self, key, bool(values.get(key, default)))

    def update(self, values: Optional[Dict[str, Any]]) -> None:
        """Слияние по полям: незаданные ключи не меняются"""
        for key, value in (values or {}).items():
            if key in self.DEFAULTS and value is not None:
                setattr(self, key, bool(value))

    def to_dict(self) -> Dict[str, bool]:
        return {key: getattr(self, key) for key in self.DEFAULTS}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CollaborationSettings":
        return cls(**{k: v for k, v in (data or {}).items() if k in cls.DEFAULTS})


class Reply:
    """Ответ в ветке комментария"""

    def __init__(
        self,
        user_id: uuid.UUID,
        text: str,
        timestamp: Optional[datetime] = None,
        reply_uuid: Optional[uuid.UUID] = None
    ):
        self.uuid = reply_uuid or uuid.uuid4()
        self.user_id = user_id
        self.text = text
        self.timestamp = timestamp or utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": str(self.uuid),
            "user_id": str(self.user_id),
            "text": self.text,
            "timestamp": to_iso(self.timestamp)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reply":
        return cls(
            user_id=uuid.UUID(data["user_id"]),
            text=data["text"],
            timestamp=from_iso(data.get("timestamp")),
            reply_uuid=_uuid_or_none(data.get("uuid"))
        )


class Comment:
    """Комментарий с веткой ответов и отметкой о решении"""

    def __init__(
        self,
        user_id: uuid.UUID,
        text: str,
        position: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
        resolved: bool = False,
        resolved_by: Optional[uuid.UUID] = None,
        resolved_at: Optional[datetime] = None,
        replies: Optional[List[Reply]] = None,
        comment_uuid: Optional[uuid.UUID] = None
    ):
        self.uuid = comment_uuid or uuid.uuid4()
        self.user_id = user_id
        self.text = text
        self.position = position
        self.timestamp = timestamp or utcnow()
        self.resolved = resolved
        self.resolved_by = resolved_by
        self.resolved_at = resolved_at
        self.replies = replies or []

    def resolve(self, user_id: uuid.UUID) -> None:
        # Повторное решение просто перезаписывает автора и время
        self.resolved = True
        self.resolved_by = user_id
        self.resolved_at = utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": str(self.uuid),
            "user_id": str(self.user_id),
            "text": self.text,
            "position": self.position,
            "timestamp": to_iso(self.timestamp),
            "resolved": self.resolved,
            "resolved_by": str(self.resolved_by) if self.resolved_by else None,
            "resolved_at": to_iso(self.resolved_at),
            "replies": [reply.to_dict() for reply in self.replies]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        return cls(
            user_id=uuid.UUID(data["user_id"]),
            text=data["text"],
            position=data.get("position"),
            timestamp=from_iso(data.get("timestamp")),
            resolved=data.get("resolved", False),
            resolved_by=_uuid_or_none(data.get("resolved_by")),
            resolved_at=from_iso(data.get("resolved_at")),
            replies=[Reply.from_dict(r) for r in data.get("replies", [])],
            comment_uuid=_uuid_or_none(data.get("uuid"))
        )

    def __repr__(self) -> str:
        return f"Comment(uuid={self.uuid}, resolved={self.resolved}, replies={len(self.replies)})"


class Task:
    """Задача, назначенная участнику"""

    def __init__(
        self,
        title: str,
        assigned_to: uuid.UUID,
        assigned_by: uuid.UUID,
        description: str = "",
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
        task_uuid: Optional[uuid.UUID] = None
    ):
        self.uuid = task_uuid or uuid.uuid4()
        self.title = title
        self.description = description
        self.assigned_to = assigned_to
        self.assigned_by = assigned_by
        self.status = status
        self.priority = priority
        self.due_date = due_date
        self.created_at = created_at or utcnow()
        self.completed_at = completed_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": str(self.uuid),
            "title": self.title,
            "description": self.description,
            "assigned_to": str(self.assigned_to),
            "assigned_by": str(self.assigned_by),
            "status": self.status.value,
            "priority": self.priority.value,
            "due_date": to_iso(self.due_date),
            "created_at": to_iso(self.created_at),
            "completed_at": to_iso(self.completed_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            title=data["title"],
            description=data.get("description", ""),
            assigned_to=uuid.UUID(data["assigned_to"]),
            assigned_by=uuid.UUID(data["assigned_by"]),
            status=TaskStatus(data.get("status", TaskStatus.TODO.value)),
            priority=TaskPriority(data.get("priority", TaskPriority.MEDIUM.value)),
            due_date=from_iso(data.get("due_date")),
            created_at=from_iso(data.get("created_at")),
            completed_at=from_iso(data.get("completed_at")),
            task_uuid=_uuid_or_none(data.get("uuid"))
        )

    def __repr__(self) -> str:
        return f"Task(uuid={self.uuid}, title={self.title}, status={self.status.value})"


@dataclass(frozen=True)
class StatusChange:
    status: TaskStatus

    def apply(self, task: Task) -> None:
        # completed_at ставится при каждом входе в completed и не сбрасывается при выходе
        if self.status == TaskStatus.COMPLETED and task.status != TaskStatus.COMPLETED:
            task.completed_at = utcnow()
        task.status = self.status

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value}


@dataclass(frozen=True)
class PriorityChange:
    priority: TaskPriority

    def apply(self, task: Task) -> None:
        task.priority = self.priority

    def to_dict(self) -> Dict[str, Any]:
        return {"priority": self.priority.value}


@dataclass(frozen=True)
class Reschedule:
    due_date: Optional[datetime]

    def apply(self, task: Task) -> None:
        task.due_date = self.due_date

    def to_dict(self) -> Dict[str, Any]:
        return {"due_date": to_iso(self.due_date)}


TaskUpdate = Union[StatusChange, PriorityChange, Reschedule]


class Version:
    """Полный снимок контента в момент сохранения"""

    def __init__(
        self,
        version_number: int,
        user_id: uuid.UUID,
        changes: str,
        snapshot: Dict[str, Any],
        is_current: bool = False,
        timestamp: Optional[datetime] = None,
        version_uuid: Optional[uuid.UUID] = None
    ):
        self.uuid = version_uuid or uuid.uuid4()
        self.version_number = version_number
        self.user_id = user_id
        self.changes = changes
        self.snapshot = snapshot
        self.is_current = is_current
        self.timestamp = timestamp or utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": str(self.uuid),
            "version_number": self.version_number,
            "user_id": str(self.user_id),
            "changes": self.changes,
            "snapshot": self.snapshot,
            "is_current": self.is_current,
            "timestamp": to_iso(self.timestamp)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Version":
        return cls(
            version_number=data["version_number"],
            user_id=uuid.UUID(data["user_id"]),
            changes=data["changes"],
            snapshot=data.get("snapshot"),
            is_current=data.get("is_current", False),
            timestamp=from_iso(data.get("timestamp")),
            version_uuid=_uuid_or_none(data.get("uuid"))
        )

    def __repr__(self) -> str:
        return f"Version(number={self.version_number}, current={self.is_current})"


@dataclass(frozen=True)
class TimelineEntry:
    """Запись журнала аудита, после добавления не изменяется"""
    action: str
    user_id: uuid.UUID
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "user_id": str(self.user_id),
            "timestamp": to_iso(self.timestamp),
            "details": self.details
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimelineEntry":
        return cls(
            action=data["action"],
            user_id=uuid.UUID(data["user_id"]),
            details=data.get("details") or {},
            timestamp=from_iso(data.get("timestamp"))
        )


class Collaboration:
    """Агрегат совместной работы над единицей контента.

    Все изменения выполняются через методы агрегата; каждый метод сам
    проверяет права действующего пользователя и дописывает запись в журнал.
    Сохранение выполняет репозиторий одной записью вместе с ``revision``.
    """

    def __init__(
        self,
        uuid: uuid.UUID,
        tenant_id: uuid.UUID,
        content_id: uuid.UUID,
        content_type: ContentType,
        owner_id: uuid.UUID,
        status: CollaborationStatus = CollaborationStatus.ACTIVE,
        settings: Optional[CollaborationSettings] = None,
        members: Optional[List[Member]] = None,
        comments: Optional[List[Comment]] = None,
        tasks: Optional[List[Task]] = None,
        versions: Optional[List[Version]] = None,
        timeline: Optional[List[TimelineEntry]] = None,
        revision: int = 0,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.tenant_id = tenant_id
        self.content_id = content_id
        self.content_type = content_type
        self.owner_id = owner_id
        self.status = status
        self.settings = settings or CollaborationSettings()
        self.members = members or []
        self.comments = comments or []
        self.tasks = tasks or []
        self.versions = versions or []
        self.timeline = timeline or []
        self.revision = revision
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or self.created_at

    @classmethod
    def create(
        cls,
        tenant_id: uuid.UUID,
        content_id: uuid.UUID,
        content_type: ContentType,
        owner_id: uuid.UUID,
        settings: Optional[Dict[str, Any]] = None
    ) -> "Collaboration":
        """Создание новой совместной работы владельцем контента"""
        return cls(
            uuid=uuid.uuid4(),
            tenant_id=tenant_id,
            content_id=content_id,
            content_type=content_type,
            owner_id=owner_id,
            settings=CollaborationSettings.from_dict(settings)
        )

    # --- права ---

    def is_owner(self, user_id: uuid.UUID) -> bool:
        return self.owner_id == user_id

    def get_member(self, user_id: uuid.UUID) -> Optional[Member]:
        return next((m for m in self.members if m.user_id == user_id), None)

    def is_member(self, user_id: uuid.UUID) -> bool:
        """Пользователь принял приглашение"""
        member = self.get_member(user_id)
        return member is not None and member.is_accepted

    def can_view(self, user_id: uuid.UUID) -> bool:
        return self.is_owner(user_id) or self.is_member(user_id)

    def has_permission(self, user_id: uuid.UUID, permission: Union[Permission, str]) -> bool:
        """Владелец имеет все права, участник - только после принятия приглашения"""
        if self.is_owner(user_id):
            return True

        member = self.get_member(user_id)
        if member is not None and member.is_accepted:
            return member.permissions.get(permission)

        return False

    def ensure_owner(self, user_id: uuid.UUID) -> None:
        if not self.is_owner(user_id):
            raise PermissionDeniedError("Only the owner can perform this action")

    def ensure_permission(self, user_id: uuid.UUID, permission: Permission) -> None:
        if not self.has_permission(user_id, permission):
            raise PermissionDeniedError(f"Missing permission: {permission.value}")

    # --- участники ---

    def add_member(
        self,
        user_id: uuid.UUID,
        role: MemberRole = MemberRole.COMMENTER,
        permissions: Optional[Dict[str, bool]] = None,
        *,
        actor_id: uuid.UUID
    ) -> Member:
        """Приглашение участника; повторное приглашение перезаписывает запись"""
        self.ensure_owner(actor_id)
        if self.is_owner(user_id):
            raise InvalidStateError("Owner cannot be invited as a member")

        member = self.get_member(user_id)
        if member is not None:
            member.reinvite(role, permissions)
        else:
            member = Member(
                user_id=user_id,
                role=role,
                permissions=MemberPermissions.for_role(role).merged(permissions)
            )
            self.members.append(member)

        self._record("member_invited", actor_id, {"invited_user_id": str(user_id), "role": role.value})
        return member

    def accept_invitation(self, user_id: uuid.UUID) -> Member:
        return self._respond(user_id, MemberStatus.ACCEPTED, "invitation_accepted")

    def decline_invitation(self, user_id: uuid.UUID) -> Member:
        return self._respond(user_id, MemberStatus.DECLINED, "invitation_declined")

    def _respond(self, user_id: uuid.UUID, status: MemberStatus, action: str) -> Member:
        member = self.get_member(user_id)
        if member is None:
            raise InvalidStateError("Invitation not found or already responded")

        member.respond(status)
        self._record(action, user_id)
        return member

    def remove_member(self, user_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        self.ensure_owner(actor_id)

        member = self.get_member(user_id)
        if member is None:
            raise NotFoundError("Member not found")

        self.members.remove(member)
        self._record("member_removed", actor_id, {"removed_user_id": str(user_id)})

    # --- обсуждение ---

    def add_comment(
        self,
        user_id: uuid.UUID,
        text: str,
        position: Optional[Dict[str, Any]] = None
    ) -> Comment:
        self.ensure_permission(user_id, Permission.CAN_COMMENT)

        comment = Comment(user_id=user_id, text=text, position=position)
        self.comments.append(comment)
        self._record("comment_added", user_id, {
            "comment_id": str(comment.uuid),
            "comment_text": _truncate(text)
        })
        return comment

    def get_comment(self, ref: ItemRef) -> Comment:
        return locate_item(self.comments, ref, "Comment")

    def add_reply(self, comment_ref: ItemRef, user_id: uuid.UUID, text: str) -> Reply:
        self.ensure_permission(user_id, Permission.CAN_COMMENT)

        comment = self.get_comment(comment_ref)
        reply = Reply(user_id=user_id, text=text)
        comment.replies.append(reply)
        self._record("reply_added", user_id, {
            "comment_id": str(comment.uuid),
            "reply_text": _truncate(text)
        })
        return reply

    def resolve_comment(self, comment_ref: ItemRef, user_id: uuid.UUID) -> Comment:
        self.ensure_permission(user_id, Permission.CAN_COMMENT)

        comment = self.get_comment(comment_ref)
        comment.resolve(user_id)
        self._record("comment_resolved", user_id, {"comment_id": str(comment.uuid)})
        return comment

    # --- задачи ---

    def add_task(
        self,
        title: str,
        description: str,
        assigned_to: uuid.UUID,
        assigned_by: uuid.UUID,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: Optional[datetime] = None
    ) -> Task:
        self.ensure_permission(assigned_by, Permission.CAN_INVITE)
        if not self.is_owner(assigned_to) and not self.is_member(assigned_to):
            raise InvalidStateError("Assigned user is not a member of the collaboration")

        task = Task(
            title=title,
            description=description or "",
            assigned_to=assigned_to,
            assigned_by=assigned_by,
            priority=priority,
            due_date=due_date
        )
        self.tasks.append(task)
        self._record("task_added", assigned_by, {
            "task_id": str(task.uuid),
            "task_title": title,
            "assigned_to": str(assigned_to),
            "priority": priority.value
        })
        return task

    def get_task(self, ref: ItemRef) -> Task:
        return locate_item(self.tasks, ref, "Task")

    def update_task(self, task_ref: ItemRef, updates: Sequence[TaskUpdate], actor_id: uuid.UUID) -> Task:
        """Изменение задачи закрытым набором операций"""
        task = self.get_task(task_ref)
        if task.assigned_to != actor_id and not self.is_owner(actor_id):
            raise PermissionDeniedError("Only the assignee or the owner can update this task")

        for update in updates:
            if not isinstance(update, (StatusChange, PriorityChange, Reschedule)):
                raise TypeError(f"Unsupported task update: {update!r}")
        if not updates:
            raise InvalidStateError("No task changes given")

        old_status = task.status
        payload: Dict[str, Any] = {}
        for update in updates:
            update.apply(task)
            payload.update(update.to_dict())

        self._record("task_updated", actor_id, {
            "task_id": str(task.uuid),
            "updates": payload,
            "old_status": old_status.value
        })
        return task

    # --- версии ---

    def create_version(self, user_id: uuid.UUID, changes: str, snapshot: Dict[str, Any]) -> Version:
        """Новая текущая версия с номером max + 1"""
        self.ensure_permission(user_id, Permission.CAN_EDIT)

        next_number = max((v.version_number for v in self.versions), default=0) + 1
        for version in self.versions:
            version.is_current = False

        version = Version(
            version_number=next_number,
            user_id=user_id,
            changes=changes,
            snapshot=snapshot,
            is_current=True
        )
        self.versions.append(version)
        self._record("version_created", user_id, {
            "version_number": next_number,
            "changes": _truncate(changes)
        })
        return version

    @property
    def current_version(self) -> Optional[Version]:
        return next((v for v in self.versions if v.is_current), None)

    def get_version(self, version_number: int) -> Version:
        for version in self.versions:
            if version.version_number == version_number:
                return version
        raise NotFoundError("Version not found")

    # --- настройки ---

    def update_settings(
        self,
        actor_id: uuid.UUID,
        status: Optional[CollaborationStatus] = None,
        settings: Optional[Dict[str, Any]] = None
    ) -> None:
        self.ensure_owner(actor_id)

        if status is not None:
            self.status = status
        self.settings.update(settings)

        self._record("settings_updated", actor_id, {
            "status": status.value if status else None,
            "settings": settings
        })

    # --- служебное ---

    def participant_ids(self) -> List[uuid.UUID]:
        """Владелец и принявшие приглашение участники"""
        return [self.owner_id] + [m.user_id for m in self.members if m.is_accepted]

    def touch(self) -> None:
        """Вызывается репозиторием перед каждой записью"""
        self.updated_at = utcnow()

    def _record(self, action: str, user_id: uuid.UUID, details: Optional[Dict[str, Any]] = None) -> None:
        self.timeline.append(TimelineEntry(action=action, user_id=user_id, details=details or {}))

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация агрегата в словарь"""
        return {
            "uuid": str(self.uuid),
            "tenant_id": str(self.tenant_id),
            "content_id": str(self.content_id),
            "content_type": self.content_type.value,
            "owner_id": str(self.owner_id),
            "status": self.status.value,
            "settings": self.settings.to_dict(),
            "members": [m.to_dict() for m in self.members],
            "comments": [c.to_dict() for c in self.comments],
            "tasks": [t.to_dict() for t in self.tasks],
            "versions": [v.to_dict() for v in self.versions],
            "timeline": [e.to_dict() for e in self.timeline],
            "revision": self.revision,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at)
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, Collaboration):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return (
            f"Collaboration(uuid={self.uuid}, content={self.content_type.value}:{self.content_id}, "
            f"members={len(self.members)}, versions={len(self.versions)})"
        )
