from app.domains.collaboration.entities import (
    Collaboration, CollaborationSettings, CollaborationStatus, ContentType,
    Member, MemberPermissions, MemberRole, MemberStatus, Permission,
    Comment, Reply, Task, TaskStatus, TaskPriority,
    StatusChange, PriorityChange, Reschedule, TaskUpdate,
    Version, TimelineEntry, ItemRef, locate_item
)
from app.domains.collaboration.schemas import (
    CollaborationCreate, CollaborationUpdate, CollaborationSettingsSchema,
    MemberInvite, MemberPermissionsSchema, CommentCreate, ReplyCreate,
    TaskCreate, TaskUpdateRequest, VersionCreate,
    CollaborationResponse, CollaborationDetailResponse, MemberResponse,
    CommentResponse, ReplyResponse, TaskResponse, VersionResponse,
    TimelineEntryResponse, parse_item_ref
)

__all__ = [
    "Collaboration", "CollaborationSettings", "CollaborationStatus", "ContentType",
    "Member", "MemberPermissions", "MemberRole", "MemberStatus", "Permission",
    "Comment", "Reply", "Task", "TaskStatus", "TaskPriority",
    "StatusChange", "PriorityChange", "Reschedule", "TaskUpdate",
    "Version", "TimelineEntry", "ItemRef", "locate_item",
    "CollaborationCreate", "CollaborationUpdate", "CollaborationSettingsSchema",
    "MemberInvite", "MemberPermissionsSchema", "CommentCreate", "ReplyCreate",
    "TaskCreate", "TaskUpdateRequest", "VersionCreate",
    "CollaborationResponse", "CollaborationDetailResponse", "MemberResponse",
    "CommentResponse", "ReplyResponse", "TaskResponse", "VersionResponse",
    "TimelineEntryResponse", "parse_item_ref"
]
