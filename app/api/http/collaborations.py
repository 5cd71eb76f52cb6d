from fastapi import APIRouter, Depends, status
from typing import List
import uuid

from app.api.dependencies import get_collaboration_service
from app.core.auth import Identity, get_current_identity
from app.domains.collaboration.schemas import (
    CollaborationCreate, CollaborationUpdate, MemberInvite, CommentCreate, ReplyCreate,
    TaskCreate, TaskUpdateRequest, VersionCreate,
    CollaborationResponse, CollaborationDetailResponse, MemberResponse, CommentResponse,
    ReplyResponse, TaskResponse, VersionResponse, TimelineEntryResponse, parse_item_ref
)
from app.domains.collaboration.services import CollaborationService

router = APIRouter(prefix="/collaborations", tags=["collaborations"])


@router.post("/", response_model=CollaborationResponse, status_code=status.HTTP_201_CREATED)
async def create_collaboration(
    collaboration_data: CollaborationCreate,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    """Создание совместной работы над контентом"""
    collaboration = await service.create_collaboration(
        collaboration_data, identity.user_id, identity.tenant_id
    )
    return CollaborationResponse.model_validate(collaboration.to_dict())


@router.get("/", response_model=List[CollaborationResponse])
async def list_collaborations(
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    """Совместные работы текущего пользователя"""
    collaborations = await service.list_collaborations(identity.user_id, identity.tenant_id)
    return [CollaborationResponse.model_validate(c.to_dict()) for c in collaborations]


@router.get("/{collaboration_id}", response_model=CollaborationDetailResponse)
async def get_collaboration(
    collaboration_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    collaboration = await service.get_collaboration(collaboration_id, identity.user_id, identity.tenant_id)
    participants = await service.get_participants(collaboration)
    return CollaborationDetailResponse.model_validate(
        {**collaboration.to_dict(), "participants": participants}
    )


@router.put("/{collaboration_id}", response_model=CollaborationResponse)
async def update_collaboration(
    collaboration_id: uuid.UUID,
    update_data: CollaborationUpdate,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    """Изменение статуса и настроек (только владелец)"""
    collaboration = await service.update_collaboration(
        collaboration_id, update_data, identity.user_id, identity.tenant_id
    )
    return CollaborationResponse.model_validate(collaboration.to_dict())


@router.delete("/{collaboration_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collaboration(
    collaboration_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    await service.delete_collaboration(collaboration_id, identity.user_id, identity.tenant_id)


@router.post("/{collaboration_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def invite_member(
    collaboration_id: uuid.UUID,
    invite_data: MemberInvite,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    """Приглашение участника"""
    member = await service.invite_member(collaboration_id, invite_data, identity.user_id, identity.tenant_id)
    return MemberResponse.model_validate(member.to_dict())


@router.put("/{collaboration_id}/members/{user_id}/accept", response_model=MemberResponse)
async def accept_invitation(
    collaboration_id: uuid.UUID,
    user_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    member = await service.accept_invitation(collaboration_id, user_id, identity.user_id, identity.tenant_id)
    return MemberResponse.model_validate(member.to_dict())


@router.put("/{collaboration_id}/members/{user_id}/decline", response_model=MemberResponse)
async def decline_invitation(
    collaboration_id: uuid.UUID,
    user_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    member = await service.decline_invitation(collaboration_id, user_id, identity.user_id, identity.tenant_id)
    return MemberResponse.model_validate(member.to_dict())


@router.delete("/{collaboration_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    collaboration_id: uuid.UUID,
    user_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    await service.remove_member(collaboration_id, user_id, identity.user_id, identity.tenant_id)


@router.post("/{collaboration_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    collaboration_id: uuid.UUID,
    comment_data: CommentCreate,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    comment = await service.add_comment(collaboration_id, comment_data, identity.user_id, identity.tenant_id)
    return CommentResponse.model_validate(comment.to_dict())


@router.post(
    "/{collaboration_id}/comments/{comment_id}/replies",
    response_model=ReplyResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_reply(
    collaboration_id: uuid.UUID,
    comment_id: str,
    reply_data: ReplyCreate,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    """Ответ на комментарий; comment_id - UUID или индекс комментария"""
    reply = await service.add_reply(
        collaboration_id, parse_item_ref(comment_id), reply_data, identity.user_id, identity.tenant_id
    )
    return ReplyResponse.model_validate(reply.to_dict())


@router.put("/{collaboration_id}/comments/{comment_id}/resolve", response_model=CommentResponse)
async def resolve_comment(
    collaboration_id: uuid.UUID,
    comment_id: str,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    comment = await service.resolve_comment(
        collaboration_id, parse_item_ref(comment_id), identity.user_id, identity.tenant_id
    )
    return CommentResponse.model_validate(comment.to_dict())


@router.post("/{collaboration_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def add_task(
    collaboration_id: uuid.UUID,
    task_data: TaskCreate,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    task = await service.add_task(collaboration_id, task_data, identity.user_id, identity.tenant_id)
    return TaskResponse.model_validate(task.to_dict())


@router.put("/{collaboration_id}/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    collaboration_id: uuid.UUID,
    task_id: str,
    update_data: TaskUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    """Изменение статуса, приоритета или срока задачи"""
    task = await service.update_task(
        collaboration_id, parse_item_ref(task_id), update_data, identity.user_id, identity.tenant_id
    )
    return TaskResponse.model_validate(task.to_dict())


@router.post("/{collaboration_id}/versions", response_model=VersionResponse, status_code=status.HTTP_201_CREATED)
async def create_version(
    collaboration_id: uuid.UUID,
    version_data: VersionCreate,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    version = await service.create_version(collaboration_id, version_data, identity.user_id, identity.tenant_id)
    return VersionResponse.model_validate(version.to_dict())


@router.get("/{collaboration_id}/versions", response_model=List[VersionResponse])
async def list_versions(
    collaboration_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    versions = await service.list_versions(collaboration_id, identity.user_id, identity.tenant_id)
    return [VersionResponse.model_validate(v.to_dict()) for v in versions]


@router.get("/{collaboration_id}/timeline", response_model=List[TimelineEntryResponse])
async def get_timeline(
    collaboration_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: CollaborationService = Depends(get_collaboration_service)
):
    """Журнал изменений совместной работы"""
    timeline = await service.get_timeline(collaboration_id, identity.user_id, identity.tenant_id)
    return [TimelineEntryResponse.model_validate(e.to_dict()) for e in timeline]
