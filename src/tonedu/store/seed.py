"""Seed data: default referral tiers and an optional demo catalogue."""

from __future__ import annotations

import structlog

from tonedu.store.base import EntityStore
from tonedu.store.entities import CourseCreate, LessonCreate, ReferralTierCreate, UserCreate

logger = structlog.get_logger()

DEFAULT_REFERRAL_TIERS: list[dict] = [
    {
        "tier": 0,
        "name": "Base",
        "required_referrals": 0,
        "reward_multiplier": 1.0,
        "description": "Starting tier for every learner",
    },
    {
        "tier": 1,
        "name": "Bronze",
        "required_referrals": 3,
        "reward_multiplier": 1.2,
        "description": "Invite 3 friends to earn 20% more per referral",
    },
    {
        "tier": 2,
        "name": "Silver",
        "required_referrals": 10,
        "reward_multiplier": 1.5,
        "description": "Invite 10 friends to earn 50% more per referral",
    },
    {
        "tier": 3,
        "name": "Gold",
        "required_referrals": 25,
        "reward_multiplier": 2.0,
        "description": "Invite 25 friends to double every referral bonus",
    },
]

DEMO_COURSES: list[dict] = [
    {
        "title": "TON Blockchain Basics",
        "description": (
            "Learn the fundamentals of TON blockchain technology, including its architecture, "
            "consensus mechanism, and unique features."
        ),
        "level": "Beginner",
        "duration": "2 hours",
        "min_reward": 0.05,
        "max_reward": 0.15,
        "lessons": [
            {
                "title": "Introduction to TON",
                "content": (
                    "The Open Network (TON) is a fast, secure, and scalable blockchain designed "
                    "to handle millions of transactions per second."
                ),
                "duration": "10 min",
            },
            {
                "title": "TON Architecture",
                "content": "Understanding the multi-blockchain architecture and sharding approach of TON.",
                "duration": "15 min",
            },
            {
                "title": "TON Coins & Wallets",
                "content": "Learn about TON coins, how to store them, and different wallet options.",
                "duration": "20 min",
            },
        ],
    },
    {
        "title": "Smart Contracts on TON",
        "description": "Develop and deploy smart contracts on TON",
        "level": "Intermediate",
        "duration": "4 hours",
        "min_reward": 0.1,
        "max_reward": 0.2,
        "lessons": [],
    },
    {
        "title": "Intro to Web3",
        "description": "Understand the basics of Web3 technology",
        "level": "Beginner",
        "duration": "1.5 hours",
        "min_reward": 0.02,
        "max_reward": 0.05,
        "lessons": [],
    },
]

DEMO_USERS: list[dict] = [
    {
        "telegram_id": "12345",
        "username": "admin",
        "display_name": "Admin User",
        "referral_code": "ADMIN123",
        "is_admin": True,
    },
    {
        "telegram_id": "67890",
        "username": "alexjohnson",
        "display_name": "Alex Johnson",
        "referral_code": "ALEX123",
    },
]


async def seed_referral_tiers(store: EntityStore) -> int:
    """Insert any default tier that is missing. Idempotent.

    Returns:
        Number of tiers inserted.
    """
    inserted = 0
    async with store.transaction():
        for tier_data in DEFAULT_REFERRAL_TIERS:
            if await store.get_referral_tier(tier_data["tier"]) is not None:
                continue
            await store.create_referral_tier(ReferralTierCreate(**tier_data))
            inserted += 1

    if inserted:
        logger.info("referral_tiers_seeded", inserted=inserted)
    return inserted


async def seed_demo_data(store: EntityStore) -> bool:
    """Populate an empty store with demo courses and users.

    Skipped when any course already exists. Returns True if data was added.
    """
    if await store.list_courses():
        return False

    async with store.transaction():
        for course_data in DEMO_COURSES:
            fields = {k: v for k, v in course_data.items() if k != "lessons"}
            course = await store.create_course(CourseCreate(**fields))
            for order_number, lesson_data in enumerate(course_data["lessons"], start=1):
                await store.create_lesson(
                    LessonCreate(course_id=course.id, order_number=order_number, **lesson_data)
                )

        for user_data in DEMO_USERS:
            if await store.get_user_by_telegram_id(user_data["telegram_id"]) is None:
                await store.create_user(UserCreate(**user_data))

    logger.info("demo_data_seeded", courses=len(DEMO_COURSES), users=len(DEMO_USERS))
    return True
