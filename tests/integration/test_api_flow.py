"""End-to-end API flows over the in-memory backend."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from tonedu.competition.leaderboard_service import compute_points

WALLET = "0:" + "7d" * 32
REFERRER_WALLET = "0:" + "8e" * 32

pytestmark = pytest.mark.asyncio


async def _login(client: AsyncClient, telegram_id: str, username: str, name: str = "Learner") -> dict:
    response = await client.post(
        "/api/v1/auth/telegram",
        json={"telegram_id": telegram_id, "display_name": name, "username": username},
    )
    assert response.status_code in (200, 201)
    return response.json()["user"]


async def _create_course(client: AsyncClient, lessons: int = 2, **overrides) -> tuple[dict, list[dict]]:
    body = {
        "title": "TON Basics",
        "description": "Intro",
        "level": "Intermediate",
        "duration": "1 hour",
        "min_reward": 0.5,
        "max_reward": 1.0,
    }
    body.update(overrides)
    response = await client.post("/api/v1/courses", json=body)
    assert response.status_code == 201
    course = response.json()
    created = []
    for i in range(1, lessons + 1):
        response = await client.post(
            "/api/v1/lessons",
            json={"course_id": course["id"], "title": f"Lesson {i}", "order_number": i},
        )
        assert response.status_code == 201
        created.append(response.json())
    return course, created


class TestUsers:
    async def test_login_then_relogin(self, client: AsyncClient) -> None:
        first = await client.post(
            "/api/v1/auth/telegram",
            json={"telegram_id": "1001", "display_name": "Ann", "username": "ann"},
        )
        second = await client.post(
            "/api/v1/auth/telegram",
            json={"telegram_id": "1001", "display_name": "Ann", "username": "ann"},
        )
        assert first.status_code == 201
        assert first.json()["created"] is True
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert second.json()["user"]["id"] == first.json()["user"]["id"]

    async def test_login_missing_field_is_400(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/telegram", json={"telegram_id": "1", "username": "x"})
        assert response.status_code == 400

    async def test_wallet_update(self, client: AsyncClient) -> None:
        user = await _login(client, "1002", "bob")
        response = await client.patch(f"/api/v1/users/{user['id']}/wallet", json={"wallet_address": WALLET})
        assert response.status_code == 200
        assert response.json() == {"success": True, "wallet_address": WALLET}

        response = await client.get(f"/api/v1/users/{user['id']}")
        assert response.json()["wallet_address"] == WALLET

    async def test_invalid_wallet_is_400(self, client: AsyncClient) -> None:
        user = await _login(client, "1003", "cat")
        response = await client.patch(f"/api/v1/users/{user['id']}/wallet", json={"wallet_address": "garbage"})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"

    async def test_unknown_user_is_404(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/users/999")
        assert response.status_code == 404
        assert response.json() == {"detail": "User not found", "code": "not_found"}

    async def test_progress_of_unknown_user_is_404(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/users/999/progress")
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    async def test_non_numeric_id_is_400(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/users/abc")
        assert response.status_code == 400


class TestCatalogue:
    async def test_course_detail_has_ordered_lessons(self, client: AsyncClient) -> None:
        course, _ = await _create_course(client, lessons=3)
        response = await client.get(f"/api/v1/courses/{course['id']}")
        assert response.status_code == 200
        assert [lesson["order_number"] for lesson in response.json()["lessons"]] == [1, 2, 3]

    async def test_invalid_reward_range_is_400(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/courses",
            json={"title": "Bad", "level": "Beginner", "duration": "1h", "min_reward": 2, "max_reward": 1},
        )
        assert response.status_code == 400

    async def test_patch_and_deactivate(self, client: AsyncClient) -> None:
        course, _ = await _create_course(client)
        response = await client.patch(f"/api/v1/courses/{course['id']}", json={"active": False})
        assert response.status_code == 200
        assert response.json()["active"] is False

        listed = await client.get("/api/v1/courses")
        assert course["id"] not in [c["id"] for c in listed.json()]
        listed = await client.get("/api/v1/courses", params={"active_only": "false"})
        assert course["id"] in [c["id"] for c in listed.json()]

    async def test_delete_course(self, client: AsyncClient) -> None:
        course, lessons = await _create_course(client)
        response = await client.delete(f"/api/v1/courses/{course['id']}")
        assert response.json() == {"success": True}
        assert (await client.get(f"/api/v1/lessons/{lessons[0]['id']}")).status_code == 404


class TestLearningFlow:
    async def test_complete_claim_certify_rank(self, client: AsyncClient) -> None:
        user = await _login(client, "2001", "dora", "Dora")
        await client.patch(f"/api/v1/users/{user['id']}/wallet", json={"wallet_address": WALLET})
        course, lessons = await _create_course(client, lessons=2)

        response = await client.post(f"/api/v1/users/{user['id']}/courses/{course['id']}/start")
        assert response.status_code == 200
        assert response.json()["progress"] == 0

        early = await client.post(f"/api/v1/users/{user['id']}/courses/{course['id']}/reward")
        assert early.status_code == 400
        assert early.json()["code"] == "course_not_completed"

        for expected, lesson in zip([50, 100], lessons, strict=True):
            response = await client.post(f"/api/v1/users/{user['id']}/lessons/{lesson['id']}/complete")
            assert response.status_code == 200
            assert response.json()["progress"] == expected
        assert response.json()["course_completed"] is True

        progress = await client.get(f"/api/v1/users/{user['id']}/progress")
        assert progress.json()[0]["progress"] == 100
        assert progress.json()[0]["completed_at"] is not None

        claim = await client.post(f"/api/v1/users/{user['id']}/courses/{course['id']}/reward")
        assert claim.status_code == 201
        amount = claim.json()["reward"]["amount"]
        assert 0.5 <= amount <= 1.0
        assert claim.json()["new_balance"] == pytest.approx(amount)

        again = await client.post(f"/api/v1/users/{user['id']}/courses/{course['id']}/reward")
        assert again.status_code == 400
        assert again.json() == {"detail": "Reward already claimed", "code": "already_claimed"}

        rewards = await client.get(f"/api/v1/users/{user['id']}/rewards")
        assert len(rewards.json()) == 1

        cert = await client.post(f"/api/v1/users/{user['id']}/courses/{course['id']}/certificate")
        assert cert.status_code == 201
        assert cert.json()["template_id"] == "silver"
        fetched = await client.get(f"/api/v1/certificates/{cert.json()['id']}")
        assert fetched.json()["token_id"] == cert.json()["token_id"]
        listed = await client.get(f"/api/v1/users/{user['id']}/certificates")
        assert len(listed.json()) == 1

        board = await client.get("/api/v1/leaderboard", params={"period": "weekly"})
        assert board.status_code == 200
        body = board.json()
        assert body["period"] == "all-time"
        assert body["total"] == 1
        assert body["entries"][0]["points"] == compute_points(amount, 1, 1)

    async def test_reward_without_wallet(self, client: AsyncClient) -> None:
        user = await _login(client, "2002", "eve")
        course, lessons = await _create_course(client, lessons=1)
        await client.post(f"/api/v1/users/{user['id']}/lessons/{lessons[0]['id']}/complete")

        response = await client.post(f"/api/v1/users/{user['id']}/courses/{course['id']}/reward")
        assert response.status_code == 400
        assert response.json()["detail"] == "User does not have a wallet address set up"


class TestReferrals:
    async def test_referral_flow(self, client: AsyncClient) -> None:
        referrer = await _login(client, "3001", "fred", "Fred")
        await client.patch(f"/api/v1/users/{referrer['id']}/wallet", json={"wallet_address": REFERRER_WALLET})
        referee = await _login(client, "3002", "gina")

        response = await client.post(
            f"/api/v1/users/{referee['id']}/referral",
            json={"referral_code": referrer["referral_code"].lower()},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "referrer": "Fred", "referral_tier": 0, "bonus_paid": True}

        again = await client.post(
            f"/api/v1/users/{referee['id']}/referral",
            json={"referral_code": referrer["referral_code"]},
        )
        assert again.status_code == 400
        assert again.json()["code"] == "already_referred"

        status = await client.get(f"/api/v1/users/{referrer['id']}/referral-tier")
        assert status.json()["referral_count"] == 1
        assert status.json()["next_tier"]["name"] == "Bronze"

        rewards = await client.get(f"/api/v1/users/{referrer['id']}/rewards")
        assert rewards.json()[0]["reason"] == "Referral Bonus"

    async def test_self_referral(self, client: AsyncClient) -> None:
        user = await _login(client, "3003", "hank")
        response = await client.post(
            f"/api/v1/users/{user['id']}/referral", json={"referral_code": user["referral_code"]}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "self_referral"

    async def test_unknown_code(self, client: AsyncClient) -> None:
        user = await _login(client, "3004", "ivy")
        response = await client.post(f"/api/v1/users/{user['id']}/referral", json={"referral_code": "REFZZZZ9999"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Referrer not found"

    async def test_tier_admin(self, client: AsyncClient) -> None:
        listed = await client.get("/api/v1/referral-tiers")
        assert [t["tier"] for t in listed.json()] == [0, 1, 2, 3]

        created = await client.post(
            "/api/v1/referral-tiers",
            json={"tier": 4, "name": "Platinum", "required_referrals": 50, "reward_multiplier": 3.0},
        )
        assert created.status_code == 201

        patched = await client.patch("/api/v1/referral-tiers/4", json={"reward_multiplier": 2.5})
        assert patched.status_code == 200
        assert patched.json()["reward_multiplier"] == 2.5

        broken = await client.patch("/api/v1/referral-tiers/1", json={"required_referrals": 60})
        assert broken.status_code == 400


class TestNews:
    async def test_feed(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/ton-news")
        assert response.status_code == 200
        items = response.json()
        assert len(items) == 5
        assert items[0]["title"] == "TON Launches New Developer Program"
        assert items[0]["date"] == "2025-03-28"
        assert items[0]["image_url"] == "/ton-dev-program.jpg"

    async def test_filtered_and_limited(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/ton-news", params={"source": "telegram", "limit": 2})
        assert [item["id"] for item in response.json()] == ["1", "3"]

    async def test_unknown_source_is_400(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/ton-news", params={"source": "reddit"})
        assert response.status_code == 400
