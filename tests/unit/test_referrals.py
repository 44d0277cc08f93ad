"""Unit tests for referral submission and referral tiers."""

import random

import pytest

from tonedu.errors import AlreadyReferred, InvalidInputError, NotFoundError, SelfReferral
from tonedu.rewards.reward_service import (
    RewardService,
    next_referral_tier,
    referral_reward_for,
    select_referral_tier,
)
from tonedu.store.entities import REASON_REFERRAL_BONUS, ReferralTier, ReferralTierCreate

REFERRER_WALLET = "-1:" + "a5" * 32

STAIRCASE = [
    ReferralTier(id=1, tier=0, name="Base", required_referrals=0, reward_multiplier=1.0),
    ReferralTier(id=2, tier=1, name="Bronze", required_referrals=3, reward_multiplier=1.2),
    ReferralTier(id=3, tier=2, name="Silver", required_referrals=10, reward_multiplier=1.5),
    ReferralTier(id=4, tier=3, name="Gold", required_referrals=25, reward_multiplier=2.0),
]


class TestTierSelection:
    """Pure tier computations."""

    @pytest.mark.parametrize(
        ("count", "tier"),
        [(0, 0), (2, 0), (3, 1), (9, 1), (10, 2), (12, 2), (24, 2), (25, 3), (1000, 3)],
    )
    def test_select_referral_tier(self, count, tier):
        assert select_referral_tier(STAIRCASE, count) == tier

    def test_no_tiers_means_base(self):
        assert select_referral_tier([], 40) == 0

    def test_input_order_does_not_matter(self):
        assert select_referral_tier(list(reversed(STAIRCASE)), 12) == 2

    def test_next_tier(self):
        assert next_referral_tier(STAIRCASE, 0).tier == 1
        assert next_referral_tier(STAIRCASE, 12).tier == 3
        assert next_referral_tier(STAIRCASE, 25) is None

    def test_reward_scaled_by_multiplier(self):
        assert referral_reward_for(0.05, STAIRCASE[0]) == pytest.approx(0.05)
        assert referral_reward_for(0.05, STAIRCASE[1]) == pytest.approx(0.06)
        assert referral_reward_for(0.05, STAIRCASE[3]) == pytest.approx(0.1)
        assert referral_reward_for(0.05, None) == pytest.approx(0.05)


@pytest.mark.asyncio
class TestUpdateUserReferralTier:
    async def test_twelve_referrals_is_silver(self, tiers, ledger, make_user):
        store = tiers
        user = await make_user()
        async with store.transaction():
            await store.update_user(user.id, referral_count=12)

        assert await RewardService(store, ledger, random.Random(1)).update_user_referral_tier(user.id) == 2
        assert (await store.get_user(user.id)).referral_tier == 2

    async def test_two_referrals_is_base(self, tiers, ledger, make_user):
        store = tiers
        user = await make_user()
        async with store.transaction():
            await store.update_user(user.id, referral_count=2)

        assert await RewardService(store, ledger, random.Random(1)).update_user_referral_tier(user.id) == 0

    async def test_unknown_user(self, tiers, ledger):
        with pytest.raises(NotFoundError):
            await RewardService(tiers, ledger, random.Random(1)).update_user_referral_tier(404)


@pytest.mark.asyncio
class TestSubmitReferral:
    async def test_links_and_counts(self, tiers, ledger, make_user):
        store = tiers
        referrer = await make_user(wallet_address=REFERRER_WALLET)
        referee = await make_user()

        outcome = await RewardService(store, ledger, random.Random(1)).submit_referral(
            referee.id, referrer.referral_code
        )

        assert outcome.referrer.id == referrer.id
        assert outcome.referrer.referral_count == 1
        assert outcome.referral_tier == 0
        assert (await store.get_user(referee.id)).referred_by == referrer.id

    async def test_code_is_case_insensitive(self, tiers, ledger, make_user):
        referrer = await make_user()
        referee = await make_user()
        code = f"  {referrer.referral_code.lower()} "

        outcome = await RewardService(tiers, ledger, random.Random(1)).submit_referral(referee.id, code)

        assert outcome.referrer.id == referrer.id

    async def test_pays_referrer_bonus(self, tiers, ledger, make_user):
        store = tiers
        referrer = await make_user(wallet_address=REFERRER_WALLET)
        referee = await make_user()

        outcome = await RewardService(store, ledger, random.Random(1)).submit_referral(
            referee.id, referrer.referral_code
        )

        assert outcome.bonus is not None
        assert outcome.bonus.reason == REASON_REFERRAL_BONUS
        assert outcome.bonus.amount == pytest.approx(0.05)
        assert outcome.bonus.course_id is None
        assert (await store.get_user(referrer.id)).balance == pytest.approx(0.05)

    async def test_tier_upgrade_applies_new_multiplier(self, tiers, ledger, make_user):
        store = tiers
        referrer = await make_user(wallet_address=REFERRER_WALLET)
        async with store.transaction():
            await store.update_user(referrer.id, referral_count=2)
        referee = await make_user()

        outcome = await RewardService(store, ledger, random.Random(1)).submit_referral(
            referee.id, referrer.referral_code
        )

        assert outcome.referral_tier == 1
        assert (await store.get_user(referrer.id)).referral_tier == 1
        assert outcome.bonus.amount == pytest.approx(0.06)

    async def test_link_survives_without_referrer_wallet(self, tiers, ledger, make_user):
        store = tiers
        referrer = await make_user()
        referee = await make_user()

        outcome = await RewardService(store, ledger, random.Random(1)).submit_referral(
            referee.id, referrer.referral_code
        )

        assert outcome.bonus is None
        assert (await store.get_user(referee.id)).referred_by == referrer.id
        assert (await store.get_user(referrer.id)).referral_count == 1
        assert await store.list_rewards() == []

    async def test_link_survives_ledger_failure(self, tiers, failing_ledger, make_user):
        store = tiers
        referrer = await make_user(wallet_address=REFERRER_WALLET)
        referee = await make_user()

        outcome = await RewardService(store, failing_ledger, random.Random(1)).submit_referral(
            referee.id, referrer.referral_code
        )

        assert outcome.bonus is None
        assert len(failing_ledger.transfers) == 1
        assert (await store.get_user(referee.id)).referred_by == referrer.id
        assert (await store.get_user(referrer.id)).balance == 0

    async def test_second_referral_rejected(self, tiers, ledger, make_user):
        store = tiers
        referrer = await make_user()
        other = await make_user()
        referee = await make_user()
        svc = RewardService(store, ledger, random.Random(1))

        await svc.submit_referral(referee.id, referrer.referral_code)
        with pytest.raises(AlreadyReferred):
            await svc.submit_referral(referee.id, other.referral_code)
        with pytest.raises(AlreadyReferred):
            await svc.submit_referral(referee.id, referrer.referral_code)

        assert (await store.get_user(referrer.id)).referral_count == 1
        assert (await store.get_user(other.id)).referral_count == 0
        assert (await store.get_user(referee.id)).referred_by == referrer.id

    async def test_self_referral_rejected(self, tiers, ledger, make_user):
        store = tiers
        user = await make_user()

        with pytest.raises(SelfReferral):
            await RewardService(store, ledger, random.Random(1)).submit_referral(user.id, user.referral_code)

        refreshed = await store.get_user(user.id)
        assert refreshed.referred_by is None
        assert refreshed.referral_count == 0

    async def test_unknown_code(self, tiers, ledger, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError, match="Referrer not found"):
            await RewardService(tiers, ledger, random.Random(1)).submit_referral(user.id, "REFNOPE0000")

    async def test_blank_code(self, tiers, ledger, make_user):
        user = await make_user()
        with pytest.raises(InvalidInputError):
            await RewardService(tiers, ledger, random.Random(1)).submit_referral(user.id, "   ")

    async def test_referral_status(self, tiers, ledger, make_user):
        store = tiers
        referrer = await make_user()
        referee = await make_user()
        svc = RewardService(store, ledger, random.Random(1))
        await svc.submit_referral(referee.id, referrer.referral_code)

        status = await svc.get_referral_status(referrer.id)

        assert status.tier == 0
        assert status.tier_details.name == "Base"
        assert status.referral_count == 1
        assert status.next_tier.name == "Bronze"


@pytest.mark.asyncio
class TestTierMaintenance:
    async def test_create_tier_above_staircase(self, tiers, ledger):
        svc = RewardService(tiers, ledger, random.Random(1))
        tier = await svc.create_referral_tier(
            ReferralTierCreate(tier=4, name="Platinum", required_referrals=50, reward_multiplier=3.0)
        )
        assert tier.tier == 4
        assert [t.tier for t in await svc.list_referral_tiers()] == [0, 1, 2, 3, 4]

    async def test_duplicate_tier_rejected(self, tiers, ledger):
        svc = RewardService(tiers, ledger, random.Random(1))
        with pytest.raises(InvalidInputError):
            await svc.create_referral_tier(ReferralTierCreate(tier=2, name="Again", required_referrals=11))

    async def test_non_increasing_threshold_rejected(self, tiers, ledger):
        svc = RewardService(tiers, ledger, random.Random(1))
        with pytest.raises(InvalidInputError):
            await svc.create_referral_tier(ReferralTierCreate(tier=4, name="Broken", required_referrals=20))

    async def test_update_multiplier(self, tiers, ledger):
        svc = RewardService(tiers, ledger, random.Random(1))
        updated = await svc.update_referral_tier(1, {"reward_multiplier": 1.25})
        assert updated.reward_multiplier == 1.25
        assert updated.required_referrals == 3

    async def test_update_threshold_must_keep_order(self, tiers, ledger):
        svc = RewardService(tiers, ledger, random.Random(1))
        with pytest.raises(InvalidInputError):
            await svc.update_referral_tier(2, {"required_referrals": 2})
        assert (await tiers.get_referral_tier(2)).required_referrals == 10

    async def test_update_unknown_tier(self, tiers, ledger):
        with pytest.raises(NotFoundError):
            await RewardService(tiers, ledger, random.Random(1)).update_referral_tier(9, {"name": "Ghost"})
