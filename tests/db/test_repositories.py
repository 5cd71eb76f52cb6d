import uuid

import pytest
from sqlalchemy import select

from app.core.exceptions import ConflictError, NotFoundError, RevisionConflictError
from app.db.models.collaboration import CollaborationParticipant
from app.db.repositories import CollaborationRepository, ShareRepository
from app.domains.collaboration.entities import Collaboration, ContentType, MemberRole, MemberStatus
from app.domains.sharing.entities import Share, ShareType


@pytest.fixture
def repository(session):
    return CollaborationRepository(session)


async def test_create_and_reload(repository, collaboration, member_id):
    collaboration.create_version(collaboration.owner_id, "Initial version", {"title": "Course"})
    collaboration.add_member(member_id, MemberRole.EDITOR, actor_id=collaboration.owner_id)
    await repository.create(collaboration)

    assert collaboration.revision == 1

    loaded = await repository.get_by_uuid(collaboration.uuid, collaboration.tenant_id)
    assert loaded == collaboration
    assert loaded.revision == 1
    assert loaded.versions[0].snapshot == {"title": "Course"}
    assert loaded.versions[0].uuid == collaboration.versions[0].uuid
    assert loaded.get_member(member_id).status == MemberStatus.INVITED


async def test_tenant_isolation(repository, collaboration):
    await repository.create(collaboration)
    assert await repository.get_by_uuid(collaboration.uuid, uuid.uuid4()) is None


async def test_duplicate_content_conflicts(repository, collaboration):
    await repository.create(collaboration)

    duplicate = Collaboration.create(
        tenant_id=collaboration.tenant_id,
        content_id=collaboration.content_id,
        content_type=collaboration.content_type,
        owner_id=collaboration.owner_id
    )
    with pytest.raises(ConflictError):
        await repository.create(duplicate)


async def test_save_increments_revision(repository, collaboration):
    await repository.create(collaboration)

    loaded = await repository.get_by_uuid(collaboration.uuid, collaboration.tenant_id)
    loaded.add_comment(loaded.owner_id, "first pass")
    await repository.save(loaded)

    reloaded = await repository.get_by_uuid(collaboration.uuid, collaboration.tenant_id)
    assert reloaded.revision == 2
    assert reloaded.comments[0].text == "first pass"


async def test_stale_save_is_rejected(repository, collaboration):
    await repository.create(collaboration)

    first = await repository.get_by_uuid(collaboration.uuid, collaboration.tenant_id)
    second = await repository.get_by_uuid(collaboration.uuid, collaboration.tenant_id)

    first.add_comment(first.owner_id, "from first request")
    await repository.save(first)

    second.add_comment(second.owner_id, "from second request")
    with pytest.raises(RevisionConflictError):
        await repository.save(second)

    stored = await repository.get_by_uuid(collaboration.uuid, collaboration.tenant_id)
    assert [c.text for c in stored.comments] == ["from first request"]
    assert stored.revision == 2


async def test_list_for_user_uses_accepted_members(repository, session, collaboration, member_id, other_id):
    collaboration.add_member(member_id, actor_id=collaboration.owner_id)
    collaboration.add_member(other_id, actor_id=collaboration.owner_id)
    await repository.create(collaboration)

    assert await repository.list_for_user(member_id, collaboration.tenant_id) == []

    loaded = await repository.get_by_uuid(collaboration.uuid, collaboration.tenant_id)
    loaded.accept_invitation(member_id)
    await repository.save(loaded)

    assert await repository.list_for_user(member_id, collaboration.tenant_id) == [collaboration]
    assert await repository.list_for_user(collaboration.owner_id, collaboration.tenant_id) == [collaboration]
    assert await repository.list_for_user(other_id, collaboration.tenant_id) == []
    assert await repository.list_for_user(member_id, uuid.uuid4()) == []


async def test_delete_removes_participants(repository, session, collaboration):
    await repository.create(collaboration)

    assert await repository.delete(collaboration.uuid, collaboration.tenant_id) is True
    assert await repository.get_by_uuid(collaboration.uuid, collaboration.tenant_id) is None

    result = await session.execute(
        select(CollaborationParticipant).where(CollaborationParticipant.collaboration_id == collaboration.uuid)
    )
    assert result.scalars().all() == []
    assert await repository.delete(collaboration.uuid, collaboration.tenant_id) is False


def make_share(tenant_id, owner_id, share_type=ShareType.LINK):
    return Share.create(
        tenant_id=tenant_id,
        content_id=uuid.uuid4(),
        content_type=ContentType.TUTORIAL,
        shared_by=owner_id,
        share_type=share_type,
        recipients=["a@example.com"] if share_type == ShareType.EMAIL else None
    )


async def test_share_token_lookup(session, tenant_id, owner_id):
    repository = ShareRepository(session)
    share = await repository.create(make_share(tenant_id, owner_id))

    assert share.share_token is not None
    found = await repository.get_by_token(share.share_token)
    assert found == share

    share.toggle_active()
    await repository.save(share)
    assert await repository.get_by_token(share.share_token) is None


async def test_share_listing(session, tenant_id, owner_id):
    repository = ShareRepository(session)
    for share_type in (ShareType.LINK, ShareType.LINK, ShareType.EMAIL):
        await repository.create(make_share(tenant_id, owner_id, share_type))
    await repository.create(make_share(uuid.uuid4(), owner_id))

    shares, total = await repository.list(tenant_id, limit=2)
    assert total == 3
    assert len(shares) == 2

    links, total = await repository.list(tenant_id, share_type=ShareType.LINK)
    assert total == 2
    assert all(s.share_type == ShareType.LINK for s in links)


async def test_share_statistics_persist(session, tenant_id, owner_id, member_id):
    repository = ShareRepository(session)
    share = await repository.create(make_share(tenant_id, owner_id))

    share.record_view(member_id)
    share.add_comment(member_id, "nice")
    await repository.save(share)

    loaded = await repository.get_by_uuid(share.uuid, tenant_id)
    assert loaded.statistics.views == 1
    assert loaded.statistics.unique_views == 1
    assert loaded.statistics.comments == 1
    assert loaded.comments[0].text == "nice"


async def test_share_save_after_delete(session, tenant_id, owner_id):
    repository = ShareRepository(session)
    share = await repository.create(make_share(tenant_id, owner_id))
    await repository.delete(share.uuid, tenant_id)

    share.record_download()
    with pytest.raises(NotFoundError):
        await repository.save(share)
