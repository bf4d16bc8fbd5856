import pytest
from datetime import timedelta
from uuid import UUID, uuid4
from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from studio.auth.security import create_access_token
from studio.review_links.models import ReviewLink
from studio.shared.models import utcnow


async def _deliverable(client: AsyncClient, world, headers, with_file: bool = True) -> dict:
    body = {"title": "Hero spot"}
    if with_file:
        body["file"] = {"url": "https://cdn.example.com/v1.mp4"}
    res = await client.post(f"/v1/projects/{world.project.id}/deliverables", json=body, headers=headers)
    assert res.status_code == 201
    return res.json()


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    res = await async_client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_missing_or_bad_token_is_401(async_client: AsyncClient, world):
    res = await async_client.get(f"/v1/projects/{world.project.id}/deliverables")
    assert res.status_code == 401

    res = await async_client.get(
        f"/v1/projects/{world.project.id}/deliverables",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert res.status_code == 401

    stranger = create_access_token({"sub": str(uuid4())})
    res = await async_client.get(
        f"/v1/projects/{world.project.id}/deliverables",
        headers={"Authorization": f"Bearer {stranger}"},
    )
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_is_rejected(async_client: AsyncClient, factory, world, auth_headers):
    dormant = await factory.user("dormant", is_active=False)
    res = await async_client.get(
        f"/v1/projects/{world.project.id}/deliverables", headers=auth_headers(dormant)
    )
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_error_kinds_map_to_status_codes(async_client: AsyncClient, world, auth_headers):
    editor = auth_headers(world.editor)
    created = await _deliverable(async_client, world, editor)
    deliverable_id = created["deliverable"]["id"]
    version_id = created["version"]["id"]

    res = await async_client.get(f"/v1/deliverables/{uuid4()}", headers=editor)
    assert (res.status_code, res.json()["kind"]) == (404, "not_found")

    res = await async_client.get(f"/v1/deliverables/{deliverable_id}", headers=auth_headers(world.outsider))
    assert (res.status_code, res.json()["kind"]) == (403, "forbidden")

    res = await async_client.post(
        f"/v1/deliverables/{deliverable_id}/approvals",
        json={"version_id": version_id, "decision": "approved"},
        headers=editor,
    )
    assert (res.status_code, res.json()["kind"]) == (403, "forbidden")

    res = await async_client.post(
        f"/v1/versions/{version_id}/threads", json={"body": "   "}, headers=editor
    )
    assert (res.status_code, res.json()["kind"]) == (400, "invalid_input")

    res = await async_client.post(
        f"/v1/versions/{version_id}/threads", json={"body": "hi", "x": 2, "y": 0.5}, headers=editor
    )
    assert (res.status_code, res.json()["kind"]) == (400, "invalid_input")


@pytest.mark.asyncio
async def test_unknown_decision_is_rejected_by_schema(async_client: AsyncClient, world, auth_headers):
    created = await _deliverable(async_client, world, auth_headers(world.editor))
    res = await async_client.post(
        f"/v1/deliverables/{created['deliverable']['id']}/approvals",
        json={"version_id": created["version"]["id"], "decision": "maybe"},
        headers=auth_headers(world.approver),
    )
    assert res.status_code == 422


@pytest.mark.asyncio
async def test_review_link_gone_states(async_client: AsyncClient, db_session: AsyncSession, world, auth_headers):
    editor = auth_headers(world.editor)
    created = await _deliverable(async_client, world, editor)
    deliverable_id = created["deliverable"]["id"]

    res = await async_client.post(
        f"/v1/deliverables/{deliverable_id}/review-links", json={"single_use": True}, headers=editor
    )
    single_use = res.json()["token"]
    assert (await async_client.post(f"/v1/review-links/{single_use}/redeem")).status_code == 200
    res = await async_client.post(f"/v1/review-links/{single_use}/redeem")
    assert (res.status_code, res.json()["kind"]) == (410, "exhausted")

    res = await async_client.post(f"/v1/deliverables/{deliverable_id}/review-links", json={}, headers=editor)
    expiring = res.json()
    await db_session.execute(
        update(ReviewLink)
        .where(ReviewLink.id == UUID(expiring["link"]["id"]))
        .values(expires_at=utcnow() - timedelta(minutes=1))
    )
    await db_session.commit()
    res = await async_client.post(f"/v1/review-links/{expiring['token']}/redeem")
    assert (res.status_code, res.json()["kind"]) == (410, "expired")

    res = await async_client.post("/v1/review-links/does-not-exist/redeem")
    assert (res.status_code, res.json()["kind"]) == (404, "not_found")


@pytest.mark.asyncio
async def test_require_auth_link_uses_optional_identity(async_client: AsyncClient, world, auth_headers):
    editor = auth_headers(world.editor)
    created = await _deliverable(async_client, world, editor)
    res = await async_client.post(
        f"/v1/deliverables/{created['deliverable']['id']}/review-links",
        json={"require_auth": True},
        headers=editor,
    )
    token = res.json()["token"]

    res = await async_client.post(f"/v1/review-links/{token}/redeem")
    assert res.status_code == 403

    # a garbage bearer token degrades to anonymous rather than 401
    res = await async_client.post(
        f"/v1/review-links/{token}/redeem", headers={"Authorization": "Bearer garbage"}
    )
    assert res.status_code == 403

    res = await async_client.post(f"/v1/review-links/{token}/redeem", headers=auth_headers(world.viewer))
    assert res.status_code == 200
    assert res.json()["access"]["audience"] == "client"


@pytest.mark.asyncio
async def test_audit_trail_needs_write(async_client: AsyncClient, world, auth_headers):
    await _deliverable(async_client, world, auth_headers(world.editor))
    res = await async_client.get(f"/v1/projects/{world.project.id}/audit", headers=auth_headers(world.approver))
    assert res.status_code == 403

    res = await async_client.get(f"/v1/projects/{world.project.id}/audit", headers=auth_headers(world.owner))
    assert res.status_code == 200
    assert res.json()[0]["action"] == "review.deliverable.create"


@pytest.mark.asyncio
async def test_notification_inbox_is_per_user(async_client: AsyncClient, world, auth_headers):
    await _deliverable(async_client, world, auth_headers(world.editor))

    res = await async_client.get("/v1/notifications", headers=auth_headers(world.viewer))
    assert res.json()["unread"] == 1
    res = await async_client.get("/v1/notifications", headers=auth_headers(world.editor))
    assert res.json() == {"notifications": [], "unread": 0}

    res = await async_client.get("/v1/notifications?limit=500", headers=auth_headers(world.viewer))
    assert res.status_code == 422
