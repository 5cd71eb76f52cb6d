import secrets
import string
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any, Union
from enum import Enum

from app.core.security import get_password_hash, verify_password
from app.core.timeutils import utcnow, to_iso, from_iso, ensure_aware
from app.domains.collaboration.entities import ContentType, ItemRef, Reply, locate_item

SHARE_TOKEN_LENGTH = 16
SHARE_TOKEN_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


def generate_share_token(length: int = SHARE_TOKEN_LENGTH) -> str:
    """Генерация токена публичной ссылки.

    Уникальность гарантирует индекс в БД, а не генератор.
    """
    return "".join(secrets.choice(SHARE_TOKEN_ALPHABET) for _ in range(length))


class ShareType(Enum):
    LINK = "link"
    EMAIL = "email"
    USER = "user"
    GROUP = "group"
    PUBLIC = "public"


class SharePermission(Enum):
    CAN_VIEW = "can_view"
    CAN_EDIT = "can_edit"
    CAN_COMMENT = "can_comment"
    CAN_SHARE = "can_share"
    CAN_DOWNLOAD = "can_download"


class SharePermissions:
    """Права, одинаковые для всех получателей ссылки"""

    DEFAULTS = {
        "can_view": True,
        "can_edit": False,
        "can_comment": True,
        "can_share": False,
        "can_download": False,
    }

    def __init__(self, **values: bool):
        for key, default in self.DEFAULTS.items():
            setattr(self, key, bool(values.get(key, default)))

    def get(self, permission: Union[SharePermission, str]) -> bool:
        key = permission.value if isinstance(permission, SharePermission) else permission
        if key not in self.DEFAULTS:
            return False
        return bool(getattr(self, key))

    def to_dict(self) -> Dict[str, bool]:
        return {key: getattr(self, key) for key in self.DEFAULTS}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SharePermissions":
        return cls(**{k: v for k, v in (data or {}).items() if k in cls.DEFAULTS and v is not None})


class ShareSettings:
    """Настройки доступа по ссылке"""

    def __init__(
        self,
        require_login: bool = False,
        password_hash: str = "",
        expiration_date: Optional[datetime] = None,
        allow_comments: bool = True,
        show_analytics: bool = False
    ):
        self.require_login = require_login
        self.password_hash = password_hash
        self.expiration_date = expiration_date
        self.allow_comments = allow_comments
        self.show_analytics = show_analytics

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "require_login": self.require_login,
            "password_hash": self.password_hash,
            "expiration_date": to_iso(self.expiration_date),
            "allow_comments": self.allow_comments,
            "show_analytics": self.show_analytics
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ShareSettings":
        data = data or {}
        return cls(
            require_login=data.get("require_login", False),
            password_hash=data.get("password_hash", ""),
            expiration_date=from_iso(data.get("expiration_date")),
            allow_comments=data.get("allow_comments", True),
            show_analytics=data.get("show_analytics", False)
        )


class ShareStatistics:
    def __init__(
        self,
        views: int = 0,
        unique_views: int = 0,
        downloads: int = 0,
        comments: int = 0,
        last_accessed: Optional[datetime] = None
    ):
        self.views = views
        self.unique_views = unique_views
        self.downloads = downloads
        self.comments = comments
        self.last_accessed = last_accessed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "views": self.views,
            "unique_views": self.unique_views,
            "downloads": self.downloads,
            "comments": self.comments,
            "last_accessed": to_iso(self.last_accessed)
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ShareStatistics":
        data = data or {}
        return cls(
            views=data.get("views", 0),
            unique_views=data.get("unique_views", 0),
            downloads=data.get("downloads", 0),
            comments=data.get("comments", 0),
            last_accessed=from_iso(data.get("last_accessed"))
        )


class ShareComment:
    """Комментарий к опубликованному контенту (без отметки о решении)"""

    def __init__(
        self,
        user_id: uuid.UUID,
        text: str,
        timestamp: Optional[datetime] = None,
        replies: Optional[List[Reply]] = None,
        comment_uuid: Optional[uuid.UUID] = None
    ):
        self.uuid = comment_uuid or uuid.uuid4()
        self.user_id = user_id
        self.text = text
        self.timestamp = timestamp or utcnow()
        self.replies = replies or []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": str(self.uuid),
            "user_id": str(self.user_id),
            "text": self.text,
            "timestamp": to_iso(self.timestamp),
            "replies": [reply.to_dict() for reply in self.replies]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShareComment":
        return cls(
            user_id=uuid.UUID(data["user_id"]),
            text=data["text"],
            timestamp=from_iso(data.get("timestamp")),
            replies=[Reply.from_dict(r) for r in data.get("replies", [])],
            comment_uuid=uuid.UUID(data["uuid"]) if data.get("uuid") else None
        )


class Share:
    """Агрегат публикации контента по ссылке, e-mail или пользователям"""

    def __init__(
        self,
        uuid: uuid.UUID,
        tenant_id: uuid.UUID,
        content_id: uuid.UUID,
        content_type: ContentType,
        shared_by: uuid.UUID,
        share_type: ShareType = ShareType.LINK,
        recipients: Optional[List[str]] = None,
        permissions: Optional[SharePermissions] = None,
        settings: Optional[ShareSettings] = None,
        statistics: Optional[ShareStatistics] = None,
        is_active: bool = True,
        share_token: Optional[str] = None,
        comments: Optional[List[ShareComment]] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.tenant_id = tenant_id
        self.content_id = content_id
        self.content_type = content_type
        self.shared_by = shared_by
        self.share_type = share_type
        self.recipients = recipients or []
        self.permissions = permissions or SharePermissions()
        self.settings = settings or ShareSettings()
        self.statistics = statistics or ShareStatistics()
        self.is_active = is_active
        self.share_token = share_token
        self.comments = comments or []
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or self.created_at

    @classmethod
    def create(
        cls,
        tenant_id: uuid.UUID,
        content_id: uuid.UUID,
        content_type: ContentType,
        shared_by: uuid.UUID,
        share_type: ShareType = ShareType.LINK,
        recipients: Optional[List[str]] = None,
        permissions: Optional[Dict[str, Any]] = None,
        settings: Optional[Dict[str, Any]] = None
    ) -> "Share":
        """Создание новой публикации"""
        share = cls(
            uuid=uuid.uuid4(),
            tenant_id=tenant_id,
            content_id=content_id,
            content_type=content_type,
            shared_by=shared_by,
            share_type=share_type,
            recipients=list(recipients or []),
            permissions=SharePermissions.from_dict(permissions)
        )
        share.update_settings(settings)
        return share

    def is_owner(self, user_id: uuid.UUID) -> bool:
        return self.shared_by == user_id

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.settings.expiration_date is None:
            return False
        return ensure_aware(now or utcnow()) > ensure_aware(self.settings.expiration_date)

    def has_permission(self, permission: Union[SharePermission, str], user_id: Optional[uuid.UUID] = None) -> bool:
        """Проверка права по ссылке.

        ``user_id`` не учитывается: все получатели имеют одинаковые права.
        """
        if self.is_expired() or not self.is_active:
            return False
        return self.permissions.get(permission)

    def update_settings(self, values: Optional[Dict[str, Any]]) -> None:
        """Слияние настроек; пароль хранится только в виде хеша"""
        values = dict(values or {})
        if "password" in values:
            self.set_password(values.pop("password"))
        if "expiration_date" in values:
            self.settings.expiration_date = from_iso(values.pop("expiration_date"))
        for key in ("require_login", "allow_comments", "show_analytics"):
            if values.get(key) is not None:
                setattr(self.settings, key, bool(values[key]))

    def update_permissions(self, values: Optional[Dict[str, Any]]) -> None:
        merged = self.permissions.to_dict()
        merged.update({k: v for k, v in (values or {}).items() if v is not None})
        self.permissions = SharePermissions.from_dict(merged)

    def set_password(self, password: Optional[str]) -> None:
        self.settings.password_hash = get_password_hash(password) if password else ""

    def verify_password(self, candidate: Optional[str]) -> bool:
        if not self.settings.has_password:
            return True
        if not candidate:
            return False
        return verify_password(candidate, self.settings.password_hash)

    def add_comment(self, user_id: uuid.UUID, text: str) -> ShareComment:
        comment = ShareComment(user_id=user_id, text=text)
        self.comments.append(comment)
        self.statistics.comments += 1
        return comment

    def add_reply(self, comment_ref: ItemRef, user_id: uuid.UUID, text: str) -> Reply:
        comment = locate_item(self.comments, comment_ref, "Comment")
        reply = Reply(user_id=user_id, text=text)
        comment.replies.append(reply)
        return reply

    def record_view(self, user_id: Optional[uuid.UUID] = None) -> None:
        self.statistics.views += 1
        self.statistics.last_accessed = utcnow()
        # Каждый просмотр авторизованного пользователя считается уникальным
        if user_id is not None:
            self.statistics.unique_views += 1

    def record_download(self) -> None:
        self.statistics.downloads += 1

    def toggle_active(self) -> bool:
        self.is_active = not self.is_active
        return self.is_active

    def ensure_token(self) -> None:
        """Вызывается репозиторием перед первой записью"""
        if self.share_type == ShareType.LINK and not self.share_token:
            self.share_token = generate_share_token()

    def touch(self) -> None:
        self.updated_at = utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация без хеша пароля"""
        settings = self.settings.to_dict()
        settings.pop("password_hash")
        settings["has_password"] = self.settings.has_password

        return {
            "uuid": str(self.uuid),
            "tenant_id": str(self.tenant_id),
            "content_id": str(self.content_id),
            "content_type": self.content_type.value,
            "shared_by": str(self.shared_by),
            "share_type": self.share_type.value,
            "recipients": list(self.recipients),
            "permissions": self.permissions.to_dict(),
            "settings": settings,
            "statistics": self.statistics.to_dict(),
            "is_active": self.is_active,
            "is_expired": self.is_expired(),
            "share_token": self.share_token,
            "comments": [c.to_dict() for c in self.comments],
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at)
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, Share):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"Share(uuid={self.uuid}, type={self.share_type.value}, active={self.is_active})"
