"""Leaderboard endpoint."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from tonedu.competition.leaderboard_service import LeaderboardService
from tonedu.competition.schemas import LeaderboardEntryResponse, LeaderboardResponse
from tonedu.dependencies import get_leaderboard_service

router = APIRouter(prefix="/api/v1", tags=["Competition"])


@router.get("/leaderboard")
async def get_leaderboard(
    period: str | None = Query(default=None, max_length=32),
    svc: LeaderboardService = Depends(get_leaderboard_service),  # noqa: B008
) -> LeaderboardResponse:
    """All-time leaderboard. ``period`` is accepted for compatibility and echoed as applied."""
    entries, applied_period = await svc.get_leaderboard(period)
    return LeaderboardResponse(
        entries=[LeaderboardEntryResponse(**asdict(entry)) for entry in entries],
        total=len(entries),
        period=applied_period,
    )
