import pytest
from datetime import timedelta
from uuid import uuid4
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studio.approvals.models import ApprovalDecision
from studio.approvals.schemas import ApprovalCreate
from studio.approvals.service import ApprovalService
from studio.core.exceptions import (
    Exhausted,
    Expired,
    Forbidden,
    InvalidInput,
    NotFound,
    PasswordInvalid,
    PasswordRequired,
)
from studio.deliverables.schemas import DeliverableCreate, FileReference, VersionCreate
from studio.deliverables.service import DeliverableService
from studio.review_links.models import ReviewLink
from studio.review_links.schemas import LinkCommentCreate, ReviewLinkCreate
from studio.review_links.service import ReviewLinkService, clamp_expiry_days, share_url_for
from studio.review_links.tokens import hash_review_token, mask_token_preview
from studio.shared.models import utcnow
from studio.threads.models import ThreadStatus
from studio.threads.schemas import ThreadCreate
from studio.threads.service import ThreadService


async def _deliverable(db: AsyncSession, world):
    return await DeliverableService(db).create_deliverable(
        world.project.id,
        DeliverableCreate(title="Hero spot", file=FileReference(url="https://cdn.example.com/v1.mp4")),
        world.editor,
    )


async def _issue(db: AsyncSession, world, **options):
    deliverable, version = await _deliverable(db, world)
    link, token = await ReviewLinkService(db).issue_link(
        deliverable.id, ReviewLinkCreate(**options), world.editor
    )
    return deliverable, version, link, token


def test_expiry_is_clamped():
    assert clamp_expiry_days(None) == 7
    assert clamp_expiry_days(0) == 1
    assert clamp_expiry_days(-5) == 1
    assert clamp_expiry_days(12) == 12
    assert clamp_expiry_days(365) == 30


def test_token_preview_hides_the_middle():
    token = "a" * 6 + "b" * 54 + "c" * 4
    assert mask_token_preview(token) == "aaaaaa...cccc"
    assert mask_token_preview("short") == "***"


@pytest.mark.asyncio
async def test_issue_stores_only_the_hash(db_session: AsyncSession, world):
    deliverable, _, link, token = await _issue(db_session, world, expires_in_days=3, password="s3cret")

    assert len(token) == 64
    assert link.token_hash == hash_review_token(token)
    assert link.token_hash != token
    assert link.password_hash and "s3cret" not in link.password_hash
    assert link.has_password
    assert link.allow_guest_comments
    assert timedelta(days=2, hours=23) < link.expires_at - utcnow() <= timedelta(days=3)
    assert share_url_for(token).endswith(f"/review-link/{token}")

    stored = (await db_session.execute(select(ReviewLink.token_hash))).scalars().all()
    assert token not in stored


@pytest.mark.asyncio
async def test_issue_and_list_need_write(db_session: AsyncSession, world):
    deliverable, _ = await _deliverable(db_session, world)
    service = ReviewLinkService(db_session)
    with pytest.raises(Forbidden):
        await service.issue_link(deliverable.id, ReviewLinkCreate(), world.approver)
    with pytest.raises(Forbidden):
        await service.list_links(deliverable.id, world.viewer)

    first, _ = await service.issue_link(deliverable.id, ReviewLinkCreate(), world.editor)
    second, _ = await service.issue_link(deliverable.id, ReviewLinkCreate(single_use=True), world.owner)
    listed = await service.list_links(deliverable.id, world.editor)
    assert {link.id for link in listed} == {first.id, second.id}


@pytest.mark.asyncio
async def test_redeem_returns_review_view(db_session: AsyncSession, world):
    deliverable, v1, _, token = await _issue(db_session, world)
    v2 = await DeliverableService(db_session).publish_version(
        deliverable.id, VersionCreate(file=FileReference(url="https://cdn.example.com/v2.mp4")), world.editor
    )
    await ThreadService(db_session).open_thread(v2.id, ThreadCreate(body="Nice"), world.viewer)
    await ApprovalService(db_session).record_approval(
        deliverable.id, ApprovalCreate(version_id=v2.id, decision=ApprovalDecision.APPROVED), world.approver
    )

    view = await ReviewLinkService(db_session).redeem_link(token)
    assert view["deliverable"].id == deliverable.id
    assert [v.id for v in view["versions"]] == [v2.id, v1.id]
    assert view["selected_version_id"] == v2.id
    assert [t.comments[0].body for t in view["threads"]] == ["Nice"]
    assert len(view["approvals"]) == 1
    assert view["access"] is None

    older = await ReviewLinkService(db_session).redeem_link(token, version_id=v1.id)
    assert older["selected_version_id"] == v1.id
    assert older["threads"] == []
    assert older["approvals"] == []

    with pytest.raises(NotFound):
        await ReviewLinkService(db_session).redeem_link(token, version_id=uuid4())


@pytest.mark.asyncio
async def test_redeem_unknown_token(db_session: AsyncSession, world):
    with pytest.raises(NotFound):
        await ReviewLinkService(db_session).redeem_link("not-a-real-token")


@pytest.mark.asyncio
async def test_expired_link(db_session: AsyncSession, world):
    _, _, link, token = await _issue(db_session, world)
    await db_session.execute(
        update(ReviewLink).where(ReviewLink.id == link.id).values(expires_at=utcnow() - timedelta(seconds=1))
    )
    await db_session.commit()
    with pytest.raises(Expired):
        await ReviewLinkService(db_session).redeem_link(token)


@pytest.mark.asyncio
async def test_password_gate(db_session: AsyncSession, world):
    _, _, _, token = await _issue(db_session, world, password="open sesame")
    service = ReviewLinkService(db_session)

    with pytest.raises(PasswordRequired) as missing:
        await service.redeem_link(token)
    assert missing.value.to_dict()["requires_password"] is True
    assert not isinstance(missing.value, PasswordInvalid)

    with pytest.raises(PasswordInvalid) as wrong:
        await service.redeem_link(token, password="wrong")
    assert wrong.value.to_dict()["requires_password"] is True

    view = await service.redeem_link(token, password="open sesame")
    assert view["link"].has_password


@pytest.mark.asyncio
async def test_expiry_is_checked_before_password(db_session: AsyncSession, world):
    _, _, link, token = await _issue(db_session, world, password="pw")
    await db_session.execute(
        update(ReviewLink).where(ReviewLink.id == link.id).values(expires_at=utcnow() - timedelta(days=1))
    )
    await db_session.commit()
    with pytest.raises(Expired):
        await ReviewLinkService(db_session).redeem_link(token)


@pytest.mark.asyncio
async def test_single_use_link_is_consumed_once(db_session: AsyncSession, world):
    _, _, link, token = await _issue(db_session, world, single_use=True, password="pw")
    service = ReviewLinkService(db_session)

    # failed password attempts do not consume the link
    with pytest.raises(PasswordInvalid):
        await service.redeem_link(token, password="nope")

    view = await service.redeem_link(token, password="pw", user=world.viewer)
    assert view["link"].single_use
    await db_session.refresh(link)
    assert link.use_count == 1
    assert link.used_by_user_id == world.viewer.id
    assert link.used_at is not None

    with pytest.raises(Exhausted):
        await service.redeem_link(token, password="pw")


@pytest.mark.asyncio
async def test_require_auth(db_session: AsyncSession, world):
    _, _, _, token = await _issue(db_session, world, require_auth=True)
    service = ReviewLinkService(db_session)

    with pytest.raises(Forbidden):
        await service.redeem_link(token)
    with pytest.raises(Forbidden):
        await service.redeem_link(token, user=world.outsider)

    view = await service.redeem_link(token, user=world.approver)
    assert view["access"].can_approve


@pytest.mark.asyncio
async def test_guest_comment_starts_thread(db_session: AsyncSession, world):
    _, version, _, token = await _issue(db_session, world)
    thread, comment = await ReviewLinkService(db_session).post_link_comment(
        token,
        LinkCommentCreate(
            body="Can we try a warmer grade?",
            version_id=version.id,
            timecode_seconds=3.0,
            email="Guest.Person@Example.com",
        ),
    )
    assert thread.created_by is None
    assert thread.timecode_seconds == 3.0
    assert comment.created_by is None
    assert comment.guest_name == "Guest"
    assert comment.guest_email == "guest.person@example.com"


@pytest.mark.asyncio
async def test_guest_reply_reopens_thread(db_session: AsyncSession, world):
    _, version, _, token = await _issue(db_session, world)
    threads = ThreadService(db_session)
    thread, _ = await threads.open_thread(version.id, ThreadCreate(body="Fixed?"), world.editor)
    await threads.set_thread_status(thread.id, ThreadStatus.RESOLVED, world.editor)

    replied_thread, comment = await ReviewLinkService(db_session).post_link_comment(
        token, LinkCommentCreate(body="Not yet", thread_id=thread.id, name="Dana")
    )
    assert replied_thread.id == thread.id
    assert replied_thread.status == ThreadStatus.OPEN
    assert comment.guest_name == "Dana"


@pytest.mark.asyncio
async def test_link_comment_rules(db_session: AsyncSession, world):
    _, version, _, token = await _issue(db_session, world, allow_guest_comments=False)
    service = ReviewLinkService(db_session)

    with pytest.raises(Forbidden):
        await service.post_link_comment(token, LinkCommentCreate(body="hi", version_id=version.id))

    # members still comment as themselves
    _, comment = await service.post_link_comment(
        token, LinkCommentCreate(body="hi", version_id=version.id), user=world.viewer
    )
    assert comment.created_by == world.viewer.id

    with pytest.raises(InvalidInput):
        await service.post_link_comment(token, LinkCommentCreate(body="hi"), user=world.viewer)
    with pytest.raises(InvalidInput):
        await service.post_link_comment(
            token, LinkCommentCreate(body="  ", version_id=version.id), user=world.viewer
        )


@pytest.mark.asyncio
async def test_link_comment_cannot_reach_other_deliverables(db_session: AsyncSession, world):
    _, _, _, token = await _issue(db_session, world)
    _, other_version = await _deliverable(db_session, world)
    other_thread, _ = await ThreadService(db_session).open_thread(
        other_version.id, ThreadCreate(body="private"), world.editor
    )
    service = ReviewLinkService(db_session)

    with pytest.raises(NotFound):
        await service.post_link_comment(token, LinkCommentCreate(body="hi", version_id=other_version.id))
    with pytest.raises(NotFound):
        await service.post_link_comment(token, LinkCommentCreate(body="hi", thread_id=other_thread.id))


@pytest.mark.asyncio
async def test_single_use_link_comment_consumes(db_session: AsyncSession, world):
    _, version, _, token = await _issue(db_session, world, single_use=True)
    service = ReviewLinkService(db_session)

    await service.post_link_comment(token, LinkCommentCreate(body="one", version_id=version.id))
    with pytest.raises(Exhausted):
        await service.post_link_comment(token, LinkCommentCreate(body="two", version_id=version.id))
