"""Repository for the User aggregate.

Counter mutations are single targeted UPDATE statements (increment or zero)
so concurrent writers never overwrite each other's fields.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import case, delete, select, update

from ...tiers import Tier
from ..connection import DatabaseConnection
from ..models import User


class UserRepository:
    """Reads and targeted writes against the users table."""

    def __init__(self, db: DatabaseConnection) -> None:
        self._db = db

    async def get(self, user_id: str) -> User | None:
        """Load a user by ID."""
        async with self._db.session() as session:
            result = await session.execute(select(User).where(User.user_id == user_id))
            return result.scalar_one_or_none()

    async def list_all(self) -> list[User]:
        """All users ordered by ID.

        The order is stable across runs, which the reset job's resume cursor
        depends on.
        """
        async with self._db.session() as session:
            result = await session.execute(select(User).order_by(User.user_id.asc()))
            return list(result.scalars().all())

    async def list_by_tier(self, tier: Tier | str) -> list[User]:
        """All users on a tier, ordered by ID."""
        tier_value = tier.value if isinstance(tier, Tier) else tier
        async with self._db.session() as session:
            result = await session.execute(
                select(User).where(User.tier == tier_value).order_by(User.user_id.asc())
            )
            return list(result.scalars().all())

    async def update(self, user_id: str, **fields: Any) -> bool:
        """Set the given columns on one user. Returns False if the user is absent."""
        return await self._execute_update(
            update(User).where(User.user_id == user_id).values(**fields)
        )

    async def increment_transcription_usage(
        self,
        user_id: str,
        hours: float,
        deduct_payg_credits: bool = False,
    ) -> bool:
        """Add a completed transcription to the monthly counters.

        When ``deduct_payg_credits`` is set the same hours are taken from the
        pay-as-you-go balance, floored at zero.
        """
        values: dict[str, Any] = {
            "hours_used": User.hours_used + hours,
            "transcription_count": User.transcription_count + 1,
        }
        if deduct_payg_credits:
            values["payg_credits_hours"] = case(
                (User.payg_credits_hours > hours, User.payg_credits_hours - hours),
                else_=0.0,
            )
        return await self._execute_update(
            update(User).where(User.user_id == user_id).values(**values)
        )

    async def increment_analysis_count(self, user_id: str) -> bool:
        """Add one on-demand analysis to the monthly counters."""
        return await self._execute_update(
            update(User)
            .where(User.user_id == user_id)
            .values(on_demand_analysis_count=User.on_demand_analysis_count + 1)
        )

    async def reset_usage(self, user_id: str, reset_at: datetime) -> bool:
        """Zero the monthly counters. Safe to repeat.

        ``last_reset_at`` never moves backwards.
        """
        return await self._execute_update(
            update(User)
            .where(User.user_id == user_id)
            .values(
                hours_used=0.0,
                transcription_count=0,
                on_demand_analysis_count=0,
                last_reset_at=case(
                    (User.last_reset_at > reset_at, User.last_reset_at),
                    else_=reset_at,
                ),
            )
        )

    async def soft_delete(self, user_id: str, deleted_at: datetime) -> bool:
        """Flag the account deleted while keeping every other field."""
        return await self._execute_update(
            update(User)
            .where(User.user_id == user_id)
            .values(is_deleted=True, deleted_at=deleted_at)
        )

    async def delete(self, user_id: str) -> bool:
        """Remove the user row. Returns False if it was already gone."""
        async with self._db.session() as session:
            result = await session.execute(delete(User).where(User.user_id == user_id))
            return (result.rowcount or 0) > 0

    async def _execute_update(self, stmt: Any) -> bool:
        async with self._db.session() as session:
            result = await session.execute(
                stmt.execution_options(synchronize_session=False)
            )
            return (result.rowcount or 0) > 0
