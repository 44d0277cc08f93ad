"""Pydantic response models for the leaderboard endpoint."""

from __future__ import annotations

from pydantic import BaseModel


class LeaderboardEntryResponse(BaseModel):
    rank: int
    id: int
    display_name: str
    username: str
    wallet_address: str | None = None
    points: int
    completed_courses: int
    certificates: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntryResponse]
    total: int
    period: str
