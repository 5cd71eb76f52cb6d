from app.db.repositories.collaboration_repository import CollaborationRepository
from app.db.repositories.share_repository import ShareRepository

__all__ = [
    "CollaborationRepository",
    "ShareRepository"
]
