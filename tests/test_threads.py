import math

import pytest
from uuid import uuid4
from sqlalchemy.ext.asyncio import AsyncSession

from studio.audit.sink import AuditSink
from studio.core.exceptions import Forbidden, InvalidInput, NotFound
from studio.deliverables.schemas import DeliverableCreate, FileReference
from studio.deliverables.service import DeliverableService
from studio.notifications.service import NotificationService
from studio.threads.models import ThreadStatus
from studio.threads.schemas import CommentCreate, ThreadCreate
from studio.threads.service import ThreadService


async def _version(db: AsyncSession, world):
    _, version = await DeliverableService(db).create_deliverable(
        world.project.id,
        DeliverableCreate(title="Hero spot", file=FileReference(url="https://cdn.example.com/v1.mp4")),
        world.editor,
    )
    return version


@pytest.mark.asyncio
async def test_open_thread_stores_anchor_and_first_comment(db_session: AsyncSession, world):
    version = await _version(db_session, world)
    service = ThreadService(db_session)

    thread, comment = await service.open_thread(
        version.id, ThreadCreate(body=" Logo too small ", timecode_seconds=12.5, x=0.25, y=0.75), world.approver
    )
    assert thread.status == ThreadStatus.OPEN
    assert (thread.timecode_seconds, thread.x, thread.y) == (12.5, 0.25, 0.75)
    assert comment.thread_id == thread.id
    assert comment.body == "Logo too small"
    assert comment.created_by == world.approver.id


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "anchor",
    [
        {"timecode_seconds": -1},
        {"x": 0.5},
        {"y": 0.5},
        {"x": 1.5, "y": 0.5},
        {"x": 0.5, "y": -0.1},
        {"timecode_seconds": math.nan},
        {"timecode_seconds": math.inf},
    ],
)
async def test_open_thread_rejects_bad_anchor(db_session: AsyncSession, world, anchor):
    version = await _version(db_session, world)
    with pytest.raises(InvalidInput):
        await ThreadService(db_session).open_thread(version.id, ThreadCreate(body="hi", **anchor), world.editor)

    assert await ThreadService(db_session).list_threads(version.id, world.editor) == []


@pytest.mark.asyncio
async def test_open_thread_rejects_empty_body_and_strangers(db_session: AsyncSession, world):
    version = await _version(db_session, world)
    service = ThreadService(db_session)
    with pytest.raises(InvalidInput):
        await service.open_thread(version.id, ThreadCreate(body="   "), world.editor)
    with pytest.raises(Forbidden):
        await service.open_thread(version.id, ThreadCreate(body="hi"), world.outsider)
    with pytest.raises(NotFound):
        await service.open_thread(uuid4(), ThreadCreate(body="hi"), world.editor)


@pytest.mark.asyncio
async def test_reply_reopens_resolved_thread(db_session: AsyncSession, world):
    version = await _version(db_session, world)
    service = ThreadService(db_session)
    thread, _ = await service.open_thread(version.id, ThreadCreate(body="Color is off"), world.viewer)

    resolved = await service.set_thread_status(thread.id, ThreadStatus.RESOLVED, world.editor)
    assert resolved.status == ThreadStatus.RESOLVED
    assert resolved.resolved_by == world.editor.id
    assert resolved.resolved_at is not None

    await service.add_comment(thread.id, CommentCreate(body="Still off"), world.viewer)
    threads = await service.list_threads(version.id, world.viewer)
    assert threads[0].status == ThreadStatus.OPEN
    assert threads[0].resolved_at is None
    assert threads[0].resolved_by is None
    assert [c.body for c in threads[0].comments] == ["Color is off", "Still off"]


@pytest.mark.asyncio
async def test_status_change_needs_writer_or_author(db_session: AsyncSession, world):
    version = await _version(db_session, world)
    service = ThreadService(db_session)
    thread, _ = await service.open_thread(version.id, ThreadCreate(body="Music too loud"), world.viewer)

    with pytest.raises(Forbidden):
        await service.set_thread_status(thread.id, ThreadStatus.RESOLVED, world.approver)

    # the author may resolve their own thread
    resolved = await service.set_thread_status(thread.id, ThreadStatus.RESOLVED, world.viewer)
    assert resolved.status == ThreadStatus.RESOLVED

    reopened = await service.set_thread_status(thread.id, ThreadStatus.OPEN, world.editor)
    assert reopened.status == ThreadStatus.OPEN
    assert reopened.resolved_at is None



class RecordingSink(AuditSink):
    def __init__(self):
        self.entries = []

    async def record(self, entry):
        self.entries.append(entry)


@pytest.mark.asyncio
async def test_resolving_twice_keeps_the_first_resolution(db_session: AsyncSession, world):
    version = await _version(db_session, world)
    sink = RecordingSink()
    service = ThreadService(db_session, NotificationService(db_session, audit=sink))
    thread, _ = await service.open_thread(version.id, ThreadCreate(body="Logo clipped"), world.viewer)

    first = await service.set_thread_status(thread.id, ThreadStatus.RESOLVED, world.viewer)
    resolved_at = first.resolved_at
    recorded = len(sink.entries)

    again = await service.set_thread_status(thread.id, ThreadStatus.RESOLVED, world.editor)
    assert again.resolved_by == world.viewer.id
    assert again.resolved_at == resolved_at
    assert len(sink.entries) == recorded


@pytest.mark.asyncio
async def test_list_threads_ordering(db_session: AsyncSession, world):
    version = await _version(db_session, world)
    service = ThreadService(db_session)
    first, _ = await service.open_thread(version.id, ThreadCreate(body="one"), world.editor)
    second, _ = await service.open_thread(version.id, ThreadCreate(body="two"), world.editor)

    oldest_first = await service.list_threads(version.id, world.editor)
    newest_first = await service.list_threads(version.id, world.editor, newest_first=True)
    assert [t.id for t in oldest_first] == [first.id, second.id]
    assert [t.id for t in newest_first] == [second.id, first.id]
