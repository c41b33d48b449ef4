"""
Provider fitness scoring.

score = base participation (10)
      + tenure            min(months_registered * 0.5, 5), a month being 30 days
      + completion ratio  confirmed / total bookings * 5 (0.5 ratio when no history)
      + responsiveness    3 / 2 / 1 for average response < 2h / < 6h / otherwise
"""
from dataclasses import dataclass
from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .clock import Clock, as_utc, utcnow
from .config import DEFAULT_RESPONSE_HOURS, REDIS_URL, SERVICE_NAME
from .models import AvailabilitySlot, Booking, BookingStatus, User

BASE_SCORE = 10.0
MAX_TENURE_SCORE = 5.0
TENURE_POINTS_PER_MONTH = 0.5
DAYS_PER_MONTH = 30
COMPLETION_WEIGHT = 5.0
NEUTRAL_COMPLETION_RATIO = 0.5


class ResponsivenessProvider(Protocol):
    async def average_response_hours(self, provider_id: str) -> float:
        ...


class StaticResponsiveness:
    """Same answer for every provider. Used until real response tracking exists."""

    def __init__(self, hours: float = DEFAULT_RESPONSE_HOURS):
        self.hours = hours

    async def average_response_hours(self, provider_id: str) -> float:
        return self.hours


class RedisResponsiveness:
    """
    Reads the rolling average response time (hours) that other services keep
    under responsiveness:{provider_id}.
    """

    def __init__(self, client, default_hours: float = DEFAULT_RESPONSE_HOURS):
        self.client = client
        self.default_hours = default_hours

    @staticmethod
    def key(provider_id: str) -> str:
        return f"responsiveness:{provider_id}"

    async def average_response_hours(self, provider_id: str) -> float:
        try:
            raw = await self.client.get(self.key(provider_id))
        except RedisError as e:
            print(f"[{SERVICE_NAME}] responsiveness lookup failed for {provider_id}; using default: {e}")
            return self.default_hours
        if raw is None:
            return self.default_hours
        try:
            return float(raw)
        except (TypeError, ValueError):
            return self.default_hours


@dataclass
class ScoringContext:
    slot: AvailabilitySlot
    tenure_months: int
    completion_ratio: float
    avg_response_hours: float


def tenure_months(created_at, now) -> int:
    elapsed = abs(as_utc(now) - as_utc(created_at))
    return elapsed.days // DAYS_PER_MONTH


def tenure_score(months: int) -> float:
    return min(months * TENURE_POINTS_PER_MONTH, MAX_TENURE_SCORE)


def completion_score(ratio: float) -> float:
    return ratio * COMPLETION_WEIGHT


def responsiveness_score(avg_hours: float) -> float:
    if avg_hours < 2:
        return 3.0
    if avg_hours < 6:
        return 2.0
    return 1.0


async def completion_ratio(db: AsyncSession, provider_id: str) -> float:
    total = await db.scalar(
        select(func.count()).select_from(Booking).where(Booking.provider_id == provider_id)
    )
    if not total:
        return NEUTRAL_COMPLETION_RATIO

    confirmed = await db.scalar(
        select(func.count())
        .select_from(Booking)
        .where(
            Booking.provider_id == provider_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
    )
    return confirmed / total


class ProviderScorer:
    def __init__(self, responsiveness: ResponsivenessProvider | None = None, clock: Clock = utcnow):
        self.responsiveness = responsiveness or StaticResponsiveness()
        self.clock = clock

    async def build_context(self, db: AsyncSession, provider: User, slot: AvailabilitySlot) -> ScoringContext:
        return ScoringContext(
            slot=slot,
            tenure_months=tenure_months(provider.created_at, self.clock()),
            completion_ratio=await completion_ratio(db, provider.id),
            avg_response_hours=await self.responsiveness.average_response_hours(provider.id),
        )

    async def score(self, db: AsyncSession, provider: User, slot: AvailabilitySlot) -> float:
        ctx = await self.build_context(db, provider, slot)
        return (
            BASE_SCORE
            + tenure_score(ctx.tenure_months)
            + completion_score(ctx.completion_ratio)
            + responsiveness_score(ctx.avg_response_hours)
        )


def build_responsiveness() -> ResponsivenessProvider:
    if REDIS_URL:
        return RedisResponsiveness(redis.from_url(REDIS_URL, decode_responses=True))
    return StaticResponsiveness()
