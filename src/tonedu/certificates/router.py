"""Certificate endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tonedu.certificates.certificate_service import CertificateService
from tonedu.dependencies import get_certificate_service
from tonedu.store.entities import Certificate

router = APIRouter(prefix="/api/v1", tags=["Certificates"])


@router.post("/users/{user_id}/courses/{course_id}/certificate", status_code=201)
async def issue_certificate(
    user_id: int,
    course_id: int,
    svc: CertificateService = Depends(get_certificate_service),  # noqa: B008
) -> Certificate:
    """Mint an SBT certificate for a completed course."""
    return await svc.issue_certificate(user_id, course_id)


@router.get("/users/{user_id}/certificates")
async def list_user_certificates(
    user_id: int,
    svc: CertificateService = Depends(get_certificate_service),  # noqa: B008
) -> list[Certificate]:
    return await svc.list_user_certificates(user_id)


@router.get("/certificates/{certificate_id}")
async def get_certificate(
    certificate_id: int,
    svc: CertificateService = Depends(get_certificate_service),  # noqa: B008
) -> Certificate:
    return await svc.get_certificate(certificate_id)
