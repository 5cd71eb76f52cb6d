from app.domains.sharing.entities import (
    Share, ShareType, SharePermission, SharePermissions, ShareSettings,
    ShareStatistics, ShareComment, generate_share_token
)
from app.domains.sharing.schemas import (
    ShareCreate, ShareUpdate, ShareCommentCreate, ShareResponse,
    SharedContentResponse, ShareListResponse, PaginationResponse, normalize_emails
)

__all__ = [
    "Share", "ShareType", "SharePermission", "SharePermissions", "ShareSettings",
    "ShareStatistics", "ShareComment", "generate_share_token",
    "ShareCreate", "ShareUpdate", "ShareCommentCreate", "ShareResponse",
    "SharedContentResponse", "ShareListResponse", "PaginationResponse", "normalize_emails"
]
