"""Test balance transfers and the ledger history."""

from __future__ import annotations

import pytest

from tasksync.errors import NotFound
from tasksync.services.ledger import get_balance, get_ledger, transfer
from tests.conftest import balance_of, make_user


@pytest.mark.asyncio
async def test_transfer_moves_exact_amount(db):
    payer = await make_user(db, "payer", balance=20)
    payee = await make_user(db, "payee", balance=1)

    async with db() as session:
        await transfer(session, payer, payee, 7.5, task_id="tk_x")
        await session.commit()

    assert await balance_of(db, payer) == 12.5
    assert await balance_of(db, payee) == 8.5


@pytest.mark.asyncio
async def test_transfer_allows_negative_balance(db):
    payer = await make_user(db, "broke", balance=0)
    payee = await make_user(db, "earner")

    async with db() as session:
        await transfer(session, payer, payee, 5)
        await session.commit()

    assert await balance_of(db, payer) == -5
    assert await balance_of(db, payee) == 5


@pytest.mark.asyncio
async def test_transfer_is_not_committed_by_itself(db):
    payer = await make_user(db, "payer", balance=10)
    payee = await make_user(db, "payee")

    async with db() as session:
        await transfer(session, payer, payee, 4)
        await session.rollback()

    assert await balance_of(db, payer) == 10
    assert await balance_of(db, payee) == 0


@pytest.mark.asyncio
async def test_transfer_to_missing_user_raises(db):
    payer = await make_user(db, "payer", balance=10)

    async with db() as session:
        with pytest.raises(NotFound):
            await transfer(session, payer, "us_ghost", 4)
        await session.rollback()

    assert await balance_of(db, payer) == 10


@pytest.mark.asyncio
async def test_transfer_records_both_sides(db):
    payer = await make_user(db, "payer", balance=10)
    payee = await make_user(db, "payee")

    async with db() as session:
        await transfer(session, payer, payee, 3, task_id="tk_abc")
        await session.commit()

    async with db() as session:
        payer_entries, payer_total = await get_ledger(session, payer)
        payee_entries, payee_total = await get_ledger(session, payee)
        assert await get_balance(session, payee) == 3

    assert payer_total == 1 and payee_total == 1
    assert payer_entries[0]["amount"] == -3
    assert payer_entries[0]["reason"] == "task_payment"
    assert payee_entries[0]["amount"] == 3
    assert payee_entries[0]["reason"] == "task_earning"
    assert payee_entries[0]["task_id"] == "tk_abc"


@pytest.mark.asyncio
async def test_get_balance_of_unknown_user_is_zero(db):
    async with db() as session:
        assert await get_balance(session, "us_nobody") == 0.0
