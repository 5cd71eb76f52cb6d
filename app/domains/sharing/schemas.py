from pydantic import BaseModel, EmailStr, Field, TypeAdapter, field_validator, model_validator
from typing import Optional, List, Dict, Any
import uuid
from datetime import datetime

from app.domains.collaboration.entities import ContentType
from app.domains.sharing.entities import ShareType

_email_adapter = TypeAdapter(EmailStr)


def normalize_emails(recipients: List[str]) -> List[str]:
    """Проверка адресов получателей e-mail публикации"""
    return [str(_email_adapter.validate_python(r)) for r in recipients]


class SharePermissionsSchema(BaseModel):
    """Права получателей; незаданные поля берутся по умолчанию"""
    can_view: Optional[bool] = None
    can_edit: Optional[bool] = None
    can_comment: Optional[bool] = None
    can_share: Optional[bool] = None
    can_download: Optional[bool] = None


class ShareSettingsSchema(BaseModel):
    """Настройки доступа; пароль принимается открытым текстом и хешируется"""
    require_login: Optional[bool] = None
    password: Optional[str] = Field(None, max_length=128)
    expiration_date: Optional[datetime] = None
    allow_comments: Optional[bool] = None
    show_analytics: Optional[bool] = None


class ShareCreate(BaseModel):
    """Схема для создания публикации"""
    content_id: uuid.UUID
    content_type: ContentType
    share_type: ShareType = ShareType.LINK
    recipients: List[str] = Field(default_factory=list)
    permissions: Optional[SharePermissionsSchema] = None
    settings: Optional[ShareSettingsSchema] = None

    @model_validator(mode='after')
    def validate_recipients(self):
        if self.share_type == ShareType.EMAIL:
            if not self.recipients:
                raise ValueError('Email share requires at least one recipient')
            self.recipients = normalize_emails(self.recipients)
        return self


class ShareUpdate(BaseModel):
    """Схема для обновления публикации"""
    recipients: Optional[List[str]] = None
    permissions: Optional[SharePermissionsSchema] = None
    settings: Optional[ShareSettingsSchema] = None


class ShareCommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)

    @field_validator('text')
    @classmethod
    def validate_text(cls, v):
        if not v.strip():
            raise ValueError('Text cannot be empty')
        return v.strip()


class ShareReplyResponse(BaseModel):
    uuid: uuid.UUID
    user_id: uuid.UUID
    text: str
    timestamp: datetime


class ShareCommentResponse(BaseModel):
    uuid: uuid.UUID
    user_id: uuid.UUID
    text: str
    timestamp: datetime
    replies: List[ShareReplyResponse]


class ShareResponse(BaseModel):
    """Схема для ответа с данными публикации"""
    uuid: uuid.UUID
    tenant_id: uuid.UUID
    content_id: uuid.UUID
    content_type: ContentType
    shared_by: uuid.UUID
    share_type: ShareType
    recipients: List[str]
    permissions: Dict[str, bool]
    settings: Dict[str, Any]
    statistics: Dict[str, Any]
    is_active: bool
    is_expired: bool
    share_token: Optional[str] = None
    comments: List[ShareCommentResponse]
    created_at: datetime
    updated_at: datetime


class SharedContentResponse(ShareResponse):
    """Публикация, открытая по токену, вместе с контентом"""
    content: Optional[Dict[str, Any]] = None


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ShareListResponse(BaseModel):
    """Схема для списка публикаций"""
    shares: List[ShareResponse]
    pagination: PaginationResponse
