"""Prepaid credit balances.

There is no reservation step: ``check_sufficient`` only reads, and the
debit happens after the artifact is stored. Two concurrent generations for
the same principal can both pass the check; the resulting overdraft is
logged, not prevented.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookstudio.database import CreditAllocation, utcnow
from bookstudio.errors import (
    AccountingError,
    InsufficientCreditsError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreditBalance:
    available: int
    used: int
    total_used: int


ZERO_BALANCE = CreditBalance(available=0, used=0, total_used=0)


class CreditLedger:
    """Read and update the credit allocation row of a billing principal."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get_balance(self, principal_id: str) -> CreditBalance:
        result = await self.db_session.execute(
            select(CreditAllocation)
            .where(CreditAllocation.user_id == principal_id)
            .execution_options(populate_existing=True)
        )
        allocation = result.scalar_one_or_none()
        if allocation is None:
            raise NotFoundError(f"No credit allocation for user {principal_id}")
        return CreditBalance(
            available=allocation.credits_available or 0,
            used=allocation.credits_used or 0,
            total_used=allocation.total_credits_used or 0,
        )

    async def balance_or_zero(self, principal_id: str) -> CreditBalance:
        try:
            return await self.get_balance(principal_id)
        except NotFoundError:
            logger.info(f"No credit allocation for {principal_id}; treating balance as zero")
            return ZERO_BALANCE

    async def check_sufficient(self, principal_id: str, cost: int) -> bool:
        balance = await self.balance_or_zero(principal_id)
        return balance.available >= cost

    async def require(self, principal_id: str, cost: int) -> CreditBalance:
        """Return the balance, or raise ``InsufficientCreditsError`` if it does not cover *cost*."""
        balance = await self.balance_or_zero(principal_id)
        if balance.available < cost:
            raise InsufficientCreditsError(required=cost, available=balance.available)
        return balance

    async def debit(self, principal_id: str, cost: int) -> CreditBalance:
        """Charge exactly *cost* credits in one UPDATE statement."""
        if cost < 0:
            raise ValidationError(f"Cannot debit a negative amount: {cost}")
        try:
            result = await self.db_session.execute(
                update(CreditAllocation)
                .where(CreditAllocation.user_id == principal_id)
                .values(
                    credits_available=CreditAllocation.credits_available - cost,
                    credits_used=CreditAllocation.credits_used + cost,
                    total_credits_used=CreditAllocation.total_credits_used + cost,
                    updated_at=utcnow(),
                )
            )
            if result.rowcount == 0:
                await self.db_session.rollback()
                raise AccountingError(f"No credit allocation for user {principal_id}")
            await self.db_session.commit()
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            raise AccountingError(f"Failed to deduct {cost} credits: {e}") from e

        balance = await self.get_balance(principal_id)
        if balance.available < 0:
            logger.warning(
                f"Credit overdraft for {principal_id}: "
                f"available={balance.available} after debit of {cost}"
            )
        return balance

    async def credit(self, principal_id: str, amount: int) -> CreditBalance:
        """Add purchased credits, creating the allocation row on first purchase."""
        if amount <= 0:
            raise ValidationError(f"Credit amount must be positive: {amount}")
        try:
            result = await self.db_session.execute(
                update(CreditAllocation)
                .where(CreditAllocation.user_id == principal_id)
                .values(
                    credits_available=CreditAllocation.credits_available + amount,
                    updated_at=utcnow(),
                )
            )
            if result.rowcount == 0:
                self.db_session.add(
                    CreditAllocation(
                        user_id=principal_id,
                        credits_available=amount,
                        credits_used=0,
                        total_credits_used=0,
                    )
                )
            await self.db_session.commit()
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            raise AccountingError(f"Failed to add {amount} credits: {e}") from e
        return await self.get_balance(principal_id)
