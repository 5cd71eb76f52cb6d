from sqlalchemy import Column, String, Boolean, UUID, JSON

from app.db.base import BaseModel


class Share(BaseModel):
    __tablename__ = "shares"

    tenant_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    content_id = Column(UUID(as_uuid=True), nullable=False)
    content_type = Column(String(32), nullable=False)
    shared_by = Column(UUID(as_uuid=True), nullable=False, index=True)
    share_type = Column(String(16), nullable=False, default="link")
    is_active = Column(Boolean, nullable=False, default=True)
    # NULL допускается многократно, поэтому уникальность касается только ссылок
    share_token = Column(String(64), unique=True, nullable=True)

    recipients = Column(JSON, nullable=False, default=list)
    permissions = Column(JSON, nullable=False, default=dict)
    settings = Column(JSON, nullable=False, default=dict)
    statistics = Column(JSON, nullable=False, default=dict)
    comments = Column(JSON, nullable=False, default=list)
