from fastapi import APIRouter, Depends, Header, Query, status
from typing import Optional
import math
import uuid

from app.api.dependencies import get_share_service
from app.core.auth import Identity, get_current_identity, get_optional_identity
from app.domains.collaboration.schemas import parse_item_ref
from app.domains.sharing.entities import ShareType
from app.domains.sharing.schemas import (
    ShareCreate, ShareUpdate, ShareCommentCreate, ShareResponse, SharedContentResponse,
    ShareListResponse, ShareCommentResponse, ShareReplyResponse, PaginationResponse
)
from app.domains.sharing.services import ShareService

router = APIRouter(prefix="/shares", tags=["shares"])


@router.post("/", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
async def create_share(
    share_data: ShareCreate,
    identity: Identity = Depends(get_current_identity),
    service: ShareService = Depends(get_share_service)
):
    """Публикация контента"""
    share = await service.create_share(share_data, identity.user_id, identity.tenant_id)
    return ShareResponse.model_validate(share.to_dict())


@router.get("/", response_model=ShareListResponse)
async def list_shares(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: str = Query("created_at", pattern="^(created_at|updated_at|share_type)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    share_type: Optional[ShareType] = Query(None),
    identity: Identity = Depends(get_current_identity),
    service: ShareService = Depends(get_share_service)
):
    """Список собственных публикаций с пагинацией"""
    shares, total = await service.list_shares(
        identity.user_id, identity.tenant_id,
        page=page, limit=limit, sort=sort, order=order, share_type=share_type
    )
    return ShareListResponse(
        shares=[ShareResponse.model_validate(s.to_dict()) for s in shares],
        pagination=PaginationResponse(
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit)
        )
    )


@router.get("/token/{token}", response_model=SharedContentResponse)
async def get_shared_content(
    token: str,
    x_share_password: Optional[str] = Header(None),
    identity: Optional[Identity] = Depends(get_optional_identity),
    service: ShareService = Depends(get_share_service)
):
    """Публичный доступ по ссылке"""
    share, content = await service.access_by_token(
        token,
        user_id=identity.user_id if identity else None,
        password=x_share_password
    )
    return SharedContentResponse.model_validate({**share.to_dict(), "content": content})


@router.get("/{share_id}", response_model=ShareResponse)
async def get_share(
    share_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: ShareService = Depends(get_share_service)
):
    share = await service.get_share(share_id, identity.user_id, identity.tenant_id)
    return ShareResponse.model_validate(share.to_dict())


@router.put("/{share_id}", response_model=ShareResponse)
async def update_share(
    share_id: uuid.UUID,
    update_data: ShareUpdate,
    identity: Identity = Depends(get_current_identity),
    service: ShareService = Depends(get_share_service)
):
    share = await service.update_share(share_id, update_data, identity.user_id, identity.tenant_id)
    return ShareResponse.model_validate(share.to_dict())


@router.delete("/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_share(
    share_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: ShareService = Depends(get_share_service)
):
    await service.delete_share(share_id, identity.user_id, identity.tenant_id)


@router.put("/{share_id}/toggle", response_model=ShareResponse)
async def toggle_share(
    share_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: ShareService = Depends(get_share_service)
):
    """Включение или отключение публикации"""
    share = await service.toggle_share(share_id, identity.user_id, identity.tenant_id)
    return ShareResponse.model_validate(share.to_dict())


@router.post("/{share_id}/comments", response_model=ShareCommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    share_id: uuid.UUID,
    comment_data: ShareCommentCreate,
    identity: Identity = Depends(get_current_identity),
    service: ShareService = Depends(get_share_service)
):
    comment = await service.add_comment(share_id, comment_data.text, identity.user_id, identity.tenant_id)
    return ShareCommentResponse.model_validate(comment.to_dict())


@router.post(
    "/{share_id}/comments/{comment_id}/replies",
    response_model=ShareReplyResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_reply(
    share_id: uuid.UUID,
    comment_id: str,
    reply_data: ShareCommentCreate,
    identity: Identity = Depends(get_current_identity),
    service: ShareService = Depends(get_share_service)
):
    reply = await service.add_reply(
        share_id, parse_item_ref(comment_id), reply_data.text, identity.user_id, identity.tenant_id
    )
    return ShareReplyResponse.model_validate(reply.to_dict())


@router.put("/{share_id}/download", response_model=ShareResponse)
async def record_download(
    share_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    service: ShareService = Depends(get_share_service)
):
    """Учет скачивания контента"""
    share = await service.record_download(share_id, identity.user_id, identity.tenant_id)
    return ShareResponse.model_validate(share.to_dict())
