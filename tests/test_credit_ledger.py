"""Credit ledger behaviour against a real (in-memory SQLite) database."""

import pytest

from bookstudio.database import CreditAllocation
from bookstudio.errors import (
    AccountingError,
    InsufficientCreditsError,
    NotFoundError,
    ValidationError,
)
from bookstudio.services.credit_ledger import ZERO_BALANCE, CreditLedger


async def _allocate(db_session, user_id: str, available: int, used: int = 0) -> None:
    db_session.add(
        CreditAllocation(
            user_id=user_id,
            credits_available=available,
            credits_used=used,
            total_credits_used=used,
        )
    )
    await db_session.commit()


@pytest.mark.asyncio
async def test_get_balance_reads_allocation(db_session):
    await _allocate(db_session, "user-1", available=10, used=4)
    ledger = CreditLedger(db_session)

    balance = await ledger.get_balance("user-1")

    assert balance.available == 10
    assert balance.used == 4
    assert balance.total_used == 4


@pytest.mark.asyncio
async def test_missing_allocation(db_session):
    ledger = CreditLedger(db_session)

    with pytest.raises(NotFoundError):
        await ledger.get_balance("nobody")
    assert await ledger.balance_or_zero("nobody") == ZERO_BALANCE
    assert await ledger.check_sufficient("nobody", 0) is True
    assert await ledger.check_sufficient("nobody", 1) is False


@pytest.mark.asyncio
async def test_require_reports_required_and_available(db_session):
    await _allocate(db_session, "user-1", available=2)
    ledger = CreditLedger(db_session)

    with pytest.raises(InsufficientCreditsError) as exc_info:
        await ledger.require("user-1", 3)

    assert exc_info.value.required == 3
    assert exc_info.value.available == 2
    assert exc_info.value.status_code == 402
    assert (await ledger.require("user-1", 2)).available == 2


@pytest.mark.asyncio
async def test_debit_moves_exact_amount(db_session):
    await _allocate(db_session, "user-1", available=10, used=1)
    ledger = CreditLedger(db_session)

    balance = await ledger.debit("user-1", 3)

    assert balance.available == 7
    assert balance.used == 4
    assert balance.total_used == 4


@pytest.mark.asyncio
async def test_debit_can_overdraw(db_session, caplog):
    # Two generations that both passed the check are both charged.
    await _allocate(db_session, "user-1", available=3)
    ledger = CreditLedger(db_session)
    assert await ledger.check_sufficient("user-1", 2)
    assert await ledger.check_sufficient("user-1", 2)

    await ledger.debit("user-1", 2)
    balance = await ledger.debit("user-1", 2)

    assert balance.available == -1
    assert "overdraft" in caplog.text


@pytest.mark.asyncio
async def test_debit_without_allocation_fails(db_session):
    ledger = CreditLedger(db_session)

    with pytest.raises(AccountingError):
        await ledger.debit("nobody", 1)


@pytest.mark.asyncio
async def test_debit_rejects_negative_amount(db_session):
    await _allocate(db_session, "user-1", available=3)

    with pytest.raises(ValidationError):
        await CreditLedger(db_session).debit("user-1", -1)


@pytest.mark.asyncio
async def test_credit_creates_then_tops_up(db_session):
    ledger = CreditLedger(db_session)

    assert (await ledger.credit("user-2", 5)).available == 5
    assert (await ledger.credit("user-2", 3)).available == 8
