"""Certificate issuance: soulbound completion certificates minted on TON."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import structlog

from tonedu.errors import (
    CertificateAlreadyIssued,
    CourseNotCompleted,
    ExternalServiceFailure,
    NoWalletAddress,
    NotFoundError,
)
from tonedu.ledger.service import DEFAULT_ISSUER, LedgerService
from tonedu.store.base import EntityStore
from tonedu.store.entities import Certificate, CertificateCreate, Course

logger = structlog.get_logger()

BASE_SKILLS = ["Web3", "Blockchain", "TON"]
CERTIFICATE_BACKGROUND = "#f0f9ff"
CERTIFICATE_BORDER = "#0ea5e9"
INSTITUTION_LOGO = "https://ton.org/assets/ton_logo.svg"


def course_skills(course: Course) -> list[str]:
    """Skills attested by a certificate: the course level plus the base set."""
    return [course.level, *BASE_SKILLS] if course.level else list(BASE_SKILLS)


def course_category(course: Course) -> str:
    level = course.level.lower()
    if level in ("advanced", "intermediate"):
        return level
    return "beginner"


def template_for(course: Course) -> str:
    """premium for advanced courses, silver for intermediate, default otherwise."""
    return {"advanced": "premium", "intermediate": "silver"}.get(course_category(course), "default")


def add_days(start: date, days: int) -> date:
    return start + timedelta(days=days)


class CertificateService:
    """Issues one certificate per completed (user, course) pair."""

    def __init__(
        self,
        store: EntityStore,
        ledger: LedgerService,
        validity_days: int = 365,
        issuer: str = DEFAULT_ISSUER,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.validity_days = validity_days
        self.issuer = issuer

    async def get_certificate(self, certificate_id: int) -> Certificate:
        certificate = await self.store.get_certificate(certificate_id)
        if certificate is None:
            raise NotFoundError("Certificate not found")
        return certificate

    async def list_user_certificates(self, user_id: int) -> list[Certificate]:
        if await self.store.get_user(user_id) is None:
            raise NotFoundError("User not found")
        return await self.store.list_certificates(user_id=user_id)

    async def issue_certificate(self, user_id: int, course_id: int) -> Certificate:
        """Mint and record a completion certificate.

        Nothing is persisted if minting fails.
        """
        user = await self.store.get_user(user_id)
        course = await self.store.get_course(course_id)
        if user is None or course is None:
            raise NotFoundError("User or course not found")

        user_course = await self.store.get_user_course(user_id, course_id)
        if user_course is None or user_course.completed_at is None:
            raise CourseNotCompleted()
        if await self.store.get_user_course_certificate(user_id, course_id) is not None:
            raise CertificateAlreadyIssued()
        if not user.wallet_address:
            raise NoWalletAddress()

        now = datetime.now(timezone.utc)
        issued = now.date()
        valid_until = add_days(issued, self.validity_days)
        skills = course_skills(course)
        template_id = template_for(course)
        description = (
            f'This certifies that {user.display_name} has successfully completed the "{course.title}" '
            f"course, demonstrating proficiency in {', '.join(skills)}."
        )

        async with self.store.transaction():
            if await self.store.get_user_course_certificate(user_id, course_id) is not None:
                raise CertificateAlreadyIssued()

            result = await self.ledger.mint_certificate(
                user.wallet_address,
                {
                    "name": user.display_name,
                    "course_title": course.title,
                    "issued_date": now.isoformat(),
                    "template_id": template_id,
                    "description": description,
                    "skills": skills,
                    "issuer": self.issuer,
                    "certificate_type": "completion",
                    "background_color": CERTIFICATE_BACKGROUND,
                    "border_color": CERTIFICATE_BORDER,
                    "valid_until": valid_until.isoformat(),
                    "additional_metadata": {
                        "course_category": course_category(course),
                        "course_duration": course.duration or "N/A",
                        "achievement_level": course.level or "beginner",
                        "institution_logo": INSTITUTION_LOGO,
                    },
                },
            )
            if not result.success:
                logger.warning(
                    "certificate_mint_failed",
                    user_id=user_id,
                    course_id=course_id,
                    error=result.error,
                )
                raise ExternalServiceFailure(result.error or "Failed to mint certificate")

            certificate = await self.store.create_certificate(
                CertificateCreate(
                    user_id=user_id,
                    course_id=course_id,
                    name=user.display_name,
                    course_title=course.title,
                    issued_date=issued,
                    issuer=self.issuer,
                    token_id=result.token_id,
                    tx_hash=result.tx_hash,
                    skills=skills,
                    template_id=template_id,
                    description=description,
                    valid_until=valid_until,
                    mint_metadata=result.metadata,
                )
            )

        logger.info(
            "certificate_issued",
            user_id=user_id,
            course_id=course_id,
            certificate_id=certificate.id,
            token_id=certificate.token_id,
        )
        return certificate
