from sqlalchemy import Column, String, Integer, ForeignKey, UUID, JSON, UniqueConstraint

from app.db.base import BaseModel
from app.core.db import Base


class Collaboration(BaseModel):
    __tablename__ = "collaborations"
    __table_args__ = (
        UniqueConstraint("content_id", "content_type", "tenant_id", name="uq_collaboration_content"),
    )

    tenant_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    content_id = Column(UUID(as_uuid=True), nullable=False)
    content_type = Column(String(32), nullable=False)
    owner_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="active")
    revision = Column(Integer, nullable=False, default=0)

    # Вложенные коллекции агрегата хранятся целиком в одной строке
    settings = Column(JSON, nullable=False, default=dict)
    members = Column(JSON, nullable=False, default=list)
    comments = Column(JSON, nullable=False, default=list)
    tasks = Column(JSON, nullable=False, default=list)
    versions = Column(JSON, nullable=False, default=list)
    timeline = Column(JSON, nullable=False, default=list)


class CollaborationParticipant(Base):
    """Индекс принятых участников для выборки "мои совместные работы" """
    __tablename__ = "collaboration_participants"

    collaboration_id = Column(
        UUID(as_uuid=True),
        ForeignKey("collaborations.uuid", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(UUID(as_uuid=True), primary_key=True, index=True)
