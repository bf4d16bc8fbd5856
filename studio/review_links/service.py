import logging
from datetime import timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studio.access.service import AccessContext, AccessResolver
from studio.approvals.service import approvals_for
from studio.audit.models import AuditAction
from studio.audit.sink import AuditEntry
from studio.auth.models import User
from studio.config import settings
from studio.core.exceptions import (
    Conflict,
    Exhausted,
    Expired,
    Forbidden,
    InvalidInput,
    NotFound,
    PasswordInvalid,
    PasswordRequired,
)
from studio.core.validation import optional_text, require_text, validate_anchor
from studio.deliverables.models import Deliverable, DeliverableVersion
from studio.notifications.service import NotificationService
from studio.projects.models import Project
from studio.review_links.models import ReviewLink
from studio.review_links.schemas import LinkCommentCreate, ReviewLinkCreate
from studio.review_links.tokens import (
    create_review_token,
    hash_review_password,
    hash_review_token,
    mask_token_preview,
    verify_review_password,
)
from studio.shared.models import utcnow
from studio.threads.models import ReviewComment, ReviewThread
from studio.threads.service import Author, ThreadService, threads_with_comments

logger = logging.getLogger(__name__)

GUEST_NAME = "Guest"


def clamp_expiry_days(days: Optional[int]) -> int:
    if days is None:
        return settings.REVIEW_LINK_DEFAULT_DAYS
    return max(settings.REVIEW_LINK_MIN_DAYS, min(days, settings.REVIEW_LINK_MAX_DAYS))


def share_url_for(token: str) -> str:
    return f"{settings.PUBLIC_APP_URL.rstrip('/')}/review-link/{token}"


class ReviewLinkService:
    """Issues share tokens for a deliverable and serves the holders of those tokens.

    Every token use goes through the same gate, in this order: unknown token,
    expiry, single-use consumption, then password. A link that requires auth
    additionally needs a signed-in caller with read access to the project.
    """

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.access = AccessResolver(db)
        self.notifications = notifications or NotificationService(db)
        self.threads = ThreadService(db, self.notifications)

    async def issue_link(
        self, deliverable_id: UUID, link_in: ReviewLinkCreate, user: User
    ) -> Tuple[ReviewLink, str]:
        deliverable, project = await self.access.locate_deliverable(deliverable_id)
        access = await self.access.resolve(user, project)
        access.require_write("share review links")

        days = clamp_expiry_days(link_in.expires_in_days)
        password = optional_text(link_in.password)
        token = create_review_token()
        link = ReviewLink(
            deliverable_id=deliverable.id,
            token_hash=hash_review_token(token),
            password_hash=hash_review_password(password) if password else None,
            expires_at=utcnow() + timedelta(days=days),
            require_auth=link_in.require_auth,
            single_use=link_in.single_use,
            allow_guest_comments=link_in.allow_guest_comments,
            use_count=0,
            created_by=user.id,
        )
        try:
            self.db.add(link)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(link)
        logger.info(
            "Review link %s issued for deliverable %s (token=%s, days=%d)",
            link.id, deliverable.id, mask_token_preview(token), days,
        )

        await self.notifications.audit.record(AuditEntry(
            action=AuditAction.LINK_CREATED,
            entity_type="review_links",
            entity_id=link.id,
            project_id=project.id,
            actor_id=user.id,
            payload={
                "deliverable_id": deliverable.id,
                "expires_at": link.expires_at.isoformat(),
                "single_use": link.single_use,
                "require_auth": link.require_auth,
                "has_password": link.has_password,
            },
        ))
        return link, token

    async def list_links(self, deliverable_id: UUID, user: User) -> List[ReviewLink]:
        deliverable, project = await self.access.locate_deliverable(deliverable_id)
        access = await self.access.resolve(user, project)
        access.require_write("view review links")
        result = await self.db.execute(
            select(ReviewLink)
            .where(ReviewLink.deliverable_id == deliverable.id)
            .order_by(ReviewLink.created_at.desc())
        )
        return list(result.scalars().all())

    async def _load(self, token: str) -> Tuple[ReviewLink, Deliverable, Project]:
        result = await self.db.execute(
            select(ReviewLink, Deliverable, Project)
            .join(Deliverable, ReviewLink.deliverable_id == Deliverable.id)
            .join(Project, Deliverable.project_id == Project.id)
            .where(ReviewLink.token_hash == hash_review_token(token))
            .execution_options(populate_existing=True)
        )
        row = result.first()
        if not row:
            raise NotFound("Review link not found")
        return row[0], row[1], row[2]

    async def _open(
        self, token: str, password: Optional[str], user: Optional[User]
    ) -> Tuple[ReviewLink, Deliverable, Project, Optional[AccessContext]]:
        link, deliverable, project = await self._load(token)

        if utcnow() > link.expires_at:
            raise Expired()
        if link.single_use and link.use_count > 0:
            raise Exhausted()
        if link.password_hash:
            if not password:
                raise PasswordRequired()
            if not verify_review_password(password, link.password_hash):
                logger.info("Wrong password for review link %s", link.id)
                raise PasswordInvalid()

        access = await self.access.resolve(user, project) if user is not None else None
        if link.require_auth:
            if user is None:
                raise Forbidden("Sign in to open this review link")
            if not access.can_read:
                raise Forbidden("No access to this review link")
        return link, deliverable, project, access

    async def _consume(self, link: ReviewLink, user: Optional[User], commit: bool = True) -> None:
        """Claim a single-use link. Exactly one concurrent caller wins."""
        if not link.single_use:
            return
        link_id = link.id
        user_id = user.id if user is not None else None
        try:
            result = await self.db.execute(
                update(ReviewLink)
                .where(ReviewLink.id == link_id, ReviewLink.use_count == 0)
                .values(
                    use_count=ReviewLink.use_count + 1,
                    used_at=utcnow(),
                    used_by_user_id=user_id,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1 and commit:
                await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        if result.rowcount == 1:
            return

        await self.db.rollback()
        # Re-read to tell a lost race from a row that changed under us
        result = await self.db.execute(select(ReviewLink.use_count).where(ReviewLink.id == link_id))
        use_count = result.scalar_one_or_none()
        if use_count is None or use_count > 0:
            logger.info("Single-use review link %s lost a redemption race", link_id)
            raise Exhausted()
        raise Conflict("Review link changed while it was being redeemed, please retry")

    async def redeem_link(
        self,
        token: str,
        password: Optional[str] = None,
        user: Optional[User] = None,
        version_id: Optional[UUID] = None,
    ) -> dict:
        link, deliverable, project, access = await self._open(token, password, user)

        result = await self.db.execute(
            select(DeliverableVersion)
            .where(DeliverableVersion.deliverable_id == deliverable.id)
            .order_by(DeliverableVersion.version_number.desc())
        )
        versions = list(result.scalars().all())
        if version_id is not None and version_id not in {v.id for v in versions}:
            raise NotFound("Version not found for this deliverable")
        selected_version_id = version_id or (versions[0].id if versions else None)

        await self._consume(link, user)

        threads = []
        approvals = []
        if selected_version_id is not None:
            threads = await threads_with_comments(self.db, selected_version_id)
            approvals = await approvals_for(
                self.db, deliverable.id, selected_version_id, limit=settings.REVIEW_LINK_MAX_APPROVALS
            )

        if link.single_use:
            await self.db.refresh(link)
            await self.notifications.audit.record(AuditEntry(
                action=AuditAction.LINK_REDEEMED,
                entity_type="review_links",
                entity_id=link.id,
                project_id=project.id,
                actor_id=user.id if user is not None else None,
                payload={"deliverable_id": deliverable.id, "version_id": selected_version_id},
            ))

        return {
            "deliverable": deliverable,
            "link": link,
            "versions": versions,
            "selected_version_id": selected_version_id,
            "threads": threads,
            "approvals": approvals,
            "allow_guest_comments": link.allow_guest_comments,
            "access": access,
        }

    async def _comment_target(
        self, deliverable: Deliverable, comment_in: LinkCommentCreate
    ) -> Tuple[Optional[ReviewThread], Optional[DeliverableVersion]]:
        if comment_in.thread_id is not None:
            thread, version, owner, _ = await self.access.locate_thread(comment_in.thread_id)
            if owner.id != deliverable.id:
                raise NotFound("Thread not found")
            return thread, version
        if comment_in.version_id is None:
            raise InvalidInput("version_id or thread_id is required")
        version, owner, _ = await self.access.locate_version(comment_in.version_id)
        if owner.id != deliverable.id:
            raise NotFound("Version not found")
        return None, version

    async def post_link_comment(
        self, token: str, comment_in: LinkCommentCreate, user: Optional[User] = None
    ) -> Tuple[ReviewThread, ReviewComment]:
        """Comment through a review link, as a guest or as the signed-in caller.

        A signed-in caller without read access to the project still comments as
        a guest. Starts a thread when no thread_id is given.
        """
        link, deliverable, project, access = await self._open(token, comment_in.password, user)

        if access is not None and access.can_read:
            actor = access
            author = Author.for_user(user)
        else:
            if not link.allow_guest_comments:
                raise Forbidden("Guest comments are disabled for this review link")
            actor = AccessContext.for_guest(project.id)
            guest_email = optional_text(comment_in.email)
            author = Author(
                user_id=None,
                guest_name=optional_text(comment_in.name) or GUEST_NAME,
                guest_email=guest_email.lower() if guest_email else None,
            )

        body = require_text(comment_in.body, "body")
        thread, version = await self._comment_target(deliverable, comment_in)
        anchor = None
        if thread is None:
            anchor = validate_anchor(comment_in.timecode_seconds, comment_in.x, comment_in.y)

        # The claim stays pending so it commits together with the comment
        await self._consume(link, user, commit=False)
        if thread is None:
            thread, comment = await self.threads.create_thread_with_comment(version, body, anchor, author)
            kind = "review_comment"
        else:
            comment = await self.threads.append_comment(thread, body, author)
            kind = "review_reply"
        logger.info("Comment %s posted through review link %s (guest=%s)", comment.id, link.id, actor.is_guest)

        await self.threads.announce_comment(actor, deliverable, thread, comment, kind, AuditAction.LINK_COMMENTED)
        return thread, comment
