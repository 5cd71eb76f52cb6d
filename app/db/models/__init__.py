from app.db.models.collaboration import Collaboration, CollaborationParticipant
from app.db.models.share import Share

__all__ = [
    "Collaboration",
    "CollaborationParticipant",
    "Share"
]
