"""HTTP-level tests — auth, RFC 7807 error bodies, and the main flows
through the FastAPI routers.

Seed rows through ``db`` and commit before calling the client; the app
uses its own session on the same in-memory database.
"""

from __future__ import annotations

import uuid

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.config import settings
from tests.conftest import auth_headers, create_access_token, make_employee

LEAVE = "/api/v1/leave"
SLA = "/api/v1/sla"
ELIGIBILITY = "/api/v1/eligibility"
NOTIFICATIONS = "/api/v1/notifications"

_BODY = {
    "leave_type": "paid",
    "start_date": "2026-03-16",
    "end_date": "2026-03-20",
    "days": 5,
    "reason": "Family trip",
}


async def _submit(client: AsyncClient, employee, body=None) -> dict:
    resp = await client.post(f"{LEAVE}/requests", json=body or _BODY, headers=auth_headers(employee))
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestSystem:

    async def test_health(self, client: AsyncClient):
        resp = await client.get("/api/v1/health")

        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    async def test_missing_token_rejected(self, client: AsyncClient):
        resp = await client.get(f"{LEAVE}/requests")
        assert resp.status_code == 401

    async def test_expired_token_rejected(self, client: AsyncClient, db: AsyncSession, employee):
        await db.commit()

        resp = await client.get(
            f"{LEAVE}/requests",
            headers={"Authorization": f"Bearer {create_access_token(employee.id, expired=True)}"},
        )
        assert resp.status_code == 401

    async def test_refresh_token_type_rejected(
        self, client: AsyncClient, db: AsyncSession, employee,
    ):
        await db.commit()
        token = create_access_token(employee.id, token_type="refresh")

        resp = await client.get(
            f"{LEAVE}/requests", headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 401

    async def test_inactive_employee_rejected(self, client: AsyncClient, db: AsyncSession, org):
        gone = await make_employee(db, org, is_active=False)
        await db.commit()

        resp = await client.get(f"{LEAVE}/requests", headers=auth_headers(gone))
        assert resp.status_code == 401


class TestLeaveApi:

    async def test_submit_approve_flow(
        self, client: AsyncClient, db: AsyncSession, employee, supervisor, clock,
    ):
        await db.commit()

        created = await _submit(client, employee)
        assert created["status"] == "pending"

        resp = await client.put(
            f"{LEAVE}/requests/{created['id']}/approve",
            json={"comment": "Enjoy"},
            headers=auth_headers(supervisor),
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["status"] == "approved"
        assert body["deducted_days"] == 5
        assert body["deducted_from"] == "paid"
        assert body["review_comment"] == "Enjoy"

        await db.refresh(employee)
        assert employee.paid_leave_balance == 19

    async def test_second_decision_is_problem_json_409(
        self, client: AsyncClient, db: AsyncSession, employee, supervisor, clock,
    ):
        await db.commit()
        created = await _submit(client, employee)
        url = f"{LEAVE}/requests/{created['id']}"

        first = await client.put(f"{url}/approve", json={}, headers=auth_headers(supervisor))
        assert first.status_code == 200

        second = await client.put(f"{url}/reject", json={}, headers=auth_headers(supervisor))
        assert second.status_code == 409
        assert second.headers["content-type"].startswith("application/problem+json")
        problem = second.json()
        assert problem["type"].endswith("/already-reviewed")
        assert problem["status"] == 409
        assert problem["instance"] == f"{url}/reject"

    async def test_employee_cannot_approve(
        self, client: AsyncClient, db: AsyncSession, org, employee, clock,
    ):
        colleague = await make_employee(db, org)
        await db.commit()
        created = await _submit(client, colleague)

        resp = await client.put(
            f"{LEAVE}/requests/{created['id']}/approve", json={}, headers=auth_headers(employee),
        )
        assert resp.status_code == 403
        assert resp.json()["type"].endswith("/forbidden")

    async def test_invalid_range_is_422_with_field_errors(
        self, client: AsyncClient, db: AsyncSession, employee,
    ):
        await db.commit()

        resp = await client.post(
            f"{LEAVE}/requests",
            json={**_BODY, "start_date": "2026-03-20", "end_date": "2026-03-16", "days": 1},
            headers=auth_headers(employee),
        )
        assert resp.status_code == 422
        assert resp.headers["content-type"].startswith("application/problem+json")
        problem = resp.json()
        assert problem["type"].endswith("/validation-error")
        assert problem["errors"]

    async def test_unknown_request_is_404(self, client: AsyncClient, db: AsyncSession, supervisor):
        await db.commit()

        resp = await client.get(
            f"{LEAVE}/requests/{uuid.uuid4()}", headers=auth_headers(supervisor),
        )
        assert resp.status_code == 404
        assert resp.json()["type"].endswith("/not-found")

    async def test_owner_deletes_pending_request(
        self, client: AsyncClient, db: AsyncSession, employee, clock,
    ):
        await db.commit()
        created = await _submit(client, employee)

        resp = await client.delete(
            f"{LEAVE}/requests/{created['id']}", headers=auth_headers(employee),
        )
        assert resp.status_code == 204

        listing = await client.get(f"{LEAVE}/requests", headers=auth_headers(employee))
        assert listing.json()["meta"]["total"] == 0

    async def test_listing_page_window_and_utc_timestamps(
        self, client: AsyncClient, db: AsyncSession, employee, clock,
    ):
        await db.commit()
        await _submit(client, employee)
        await _submit(client, employee)

        resp = await client.get(
            f"{LEAVE}/requests", params={"page_size": 1}, headers=auth_headers(employee),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"]["page_size"] == 1
        assert body["meta"]["total_pages"] == 2
        assert body["data"][0]["created_at"].endswith("Z")

        too_big = await client.get(
            f"{LEAVE}/requests", params={"page_size": 101}, headers=auth_headers(employee),
        )
        assert too_big.status_code == 422
        assert "page_size" in too_big.json()["errors"]

    async def test_stats_for_reviewers_only(
        self, client: AsyncClient, db: AsyncSession, employee, supervisor, clock,
    ):
        await db.commit()
        await _submit(client, employee)

        assert (await client.get(f"{LEAVE}/stats", headers=auth_headers(employee))).status_code == 403
        resp = await client.get(f"{LEAVE}/stats", headers=auth_headers(supervisor))
        assert resp.status_code == 200
        assert resp.json()["pending"] == 1


class TestSlaApi:

    async def test_pending_queue_shows_live_status(
        self, client: AsyncClient, db: AsyncSession, employee, supervisor, clock,
    ):
        await db.commit()
        created = await _submit(client, employee)
        clock.advance(hours=19)

        resp = await client.get(f"{SLA}/pending", headers=auth_headers(supervisor))
        assert resp.status_code == 200
        queue = resp.json()
        assert len(queue) == 1
        assert queue[0]["request"]["id"] == created["id"]
        assert queue[0]["sla"]["status"] == "warning"
        assert queue[0]["sla"]["remaining_hours"] == 5.0

    async def test_pending_queue_is_rate_limited(
        self, client: AsyncClient, db: AsyncSession, supervisor,
    ):
        await db.commit()
        allowed = int(settings.SLA_POLL_RATE_LIMIT.split("/")[0])

        for _ in range(allowed):
            resp = await client.get(f"{SLA}/pending", headers=auth_headers(supervisor))
            assert resp.status_code == 200
        resp = await client.get(f"{SLA}/pending", headers=auth_headers(supervisor))
        assert resp.status_code == 429

    async def test_config_read_update_and_guard(
        self, client: AsyncClient, db: AsyncSession, employee, admin, clock,
    ):
        await db.commit()

        resp = await client.get(f"{SLA}/config", headers=auth_headers(employee))
        assert resp.status_code == 200
        assert resp.json()["is_default"] is True

        denied = await client.put(
            f"{SLA}/config", json={"target_response_time": 48}, headers=auth_headers(employee),
        )
        assert denied.status_code == 403

        resp = await client.put(
            f"{SLA}/config",
            json={"target_response_time": 48, "critical_threshold": 40},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["is_default"] is False
        assert resp.json()["target_response_time"] == 48.0

        invalid = await client.put(
            f"{SLA}/config", json={"warning_threshold": 45}, headers=auth_headers(admin),
        )
        assert invalid.status_code == 422
        assert "warning_threshold" in invalid.json()["errors"]

    async def test_stats_and_metric(
        self, client: AsyncClient, db: AsyncSession, employee, supervisor, clock,
    ):
        await db.commit()
        created = await _submit(client, employee)
        clock.advance(hours=10)
        await client.put(
            f"{LEAVE}/requests/{created['id']}/approve", json={}, headers=auth_headers(supervisor),
        )

        stats = (await client.get(f"{SLA}/stats", headers=auth_headers(supervisor))).json()
        assert stats["on_time"] == 1
        assert stats["compliance_rate"] == 100.0

        metric = await client.get(
            f"{SLA}/metrics/{created['id']}", headers=auth_headers(supervisor),
        )
        assert metric.status_code == 200
        assert metric.json()["sla_score"] == 91.67

        trend = await client.get(f"{SLA}/trend?days=7", headers=auth_headers(supervisor))
        assert trend.status_code == 200
        assert len(trend.json()) == 1

    async def test_escalation_sweep_admin_only(
        self, client: AsyncClient, db: AsyncSession, employee, supervisor, admin, clock,
    ):
        await db.commit()
        await _submit(client, employee)
        clock.advance(hours=25)

        denied = await client.post(f"{SLA}/escalations/run", headers=auth_headers(supervisor))
        assert denied.status_code == 403

        resp = await client.post(f"{SLA}/escalations/run", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert resp.json() == {"evaluated": 1, "warnings": 1, "criticals": 1, "breaches": 1}


class TestEligibilityApi:

    async def test_own_score(self, client: AsyncClient, db: AsyncSession, employee, clock):
        await db.commit()

        resp = await client.get(
            f"{ELIGIBILITY}/employees/{employee.id}", headers=auth_headers(employee),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["overall_score"] == 64
        assert body["recommendation"] == "APPROVE"
        assert set(body["breakdown"]) >= {"performance", "attendance", "behavior", "leave_history"}

    async def test_request_score_and_rating(
        self, client: AsyncClient, db: AsyncSession, employee, supervisor, clock,
    ):
        await db.commit()
        created = await _submit(client, employee)

        resp = await client.get(
            f"{ELIGIBILITY}/requests/{created['id']}", headers=auth_headers(supervisor),
        )
        assert resp.status_code == 200
        assert resp.json()["breakdown"]["workload"]["score"] == 100

        rating = await client.post(
            f"{ELIGIBILITY}/employees/{employee.id}/ratings",
            json={
                "quality_of_work": 5, "efficiency": 4, "teamwork": 4,
                "initiative": 4, "communication": 4, "reliability": 3,
            },
            headers=auth_headers(supervisor),
        )
        assert rating.status_code == 201
        assert rating.json()["overall_rating"] == 4.0

        bad = await client.post(
            f"{ELIGIBILITY}/employees/{employee.id}/ratings",
            json={
                "quality_of_work": 9, "efficiency": 4, "teamwork": 4,
                "initiative": 4, "communication": 4, "reliability": 3,
            },
            headers=auth_headers(supervisor),
        )
        assert bad.status_code == 422
        assert "quality_of_work" in bad.json()["errors"]


class TestNotificationsApi:

    async def test_reviewer_inbox_flow(
        self, client: AsyncClient, db: AsyncSession, employee, supervisor, clock,
    ):
        await db.commit()
        await _submit(client, employee)
        headers = auth_headers(supervisor)

        listing = (await client.get(NOTIFICATIONS, headers=headers)).json()
        assert listing["meta"]["unread"] == 1
        assert listing["data"][0]["type"] == "leave_request"

        count = await client.get(f"{NOTIFICATIONS}/unread-count", headers=headers)
        assert count.json() == {"unread": 1}

        cleared = await client.put(f"{NOTIFICATIONS}/read-all", headers=headers)
        assert cleared.json() == {"updated": 1}
        assert (await client.get(f"{NOTIFICATIONS}/unread-count", headers=headers)).json() == {"unread": 0}

    async def test_cannot_mark_someone_elses_notification(
        self, client: AsyncClient, db: AsyncSession, employee, supervisor, clock,
    ):
        await db.commit()
        await _submit(client, employee)
        listing = (await client.get(NOTIFICATIONS, headers=auth_headers(supervisor))).json()
        notification_id = listing["data"][0]["id"]

        resp = await client.put(
            f"{NOTIFICATIONS}/{notification_id}/read", headers=auth_headers(employee),
        )
        assert resp.status_code == 403

        own = await client.put(
            f"{NOTIFICATIONS}/{notification_id}/read", headers=auth_headers(supervisor),
        )
        assert own.status_code == 200
        assert own.json()["is_read"] is True
