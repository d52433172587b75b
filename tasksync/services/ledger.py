"""Balance ledger: atomic transfers between users."""

from __future__ import annotations

from sqlalchemy import func, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tasksync.db_models import LedgerEntry, User
from tasksync.errors import NotFound
from tasksync.ids import ledger_id


async def record_entry(
    session: AsyncSession,
    user_id: str,
    amount: float,
    reason: str,
    task_id: str | None = None,
) -> None:
    entry = LedgerEntry(id=ledger_id(), user_id=user_id, amount=amount, reason=reason, task_id=task_id)
    session.add(entry)


async def transfer(
    session: AsyncSession,
    payer_id: str,
    payee_id: str,
    amount: float,
    task_id: str | None = None,
) -> None:
    """Move ``amount`` from payer to payee inside the caller's transaction.

    Both sides are single relative UPDATEs, so concurrent transfers touching
    the same user never overwrite each other. There is no funds check: a
    payer may go negative. Nothing is committed here; the caller commits
    the transfer together with whatever triggered it.
    """
    debit = await session.execute(
        text("UPDATE users SET balance = balance - :amount WHERE id = :id"),
        {"amount": amount, "id": payer_id},
    )
    if debit.rowcount == 0:
        raise NotFound(f"User {payer_id} not found")

    credit = await session.execute(
        text("UPDATE users SET balance = balance + :amount WHERE id = :id"),
        {"amount": amount, "id": payee_id},
    )
    if credit.rowcount == 0:
        raise NotFound(f"User {payee_id} not found")

    await record_entry(session, payer_id, -amount, "task_payment", task_id)
    await record_entry(session, payee_id, amount, "task_earning", task_id)


async def get_balance(session: AsyncSession, user_id: str) -> float:
    result = await session.execute(select(User.balance).where(User.id == user_id))
    balance = result.scalar_one_or_none()
    return balance if balance is not None else 0.0


async def get_ledger(
    session: AsyncSession, user_id: str, offset: int = 0, limit: int = 50
) -> tuple[list[dict], int]:
    """Return (entries, total_count), newest first."""
    count_result = await session.execute(
        select(func.count()).select_from(LedgerEntry).where(LedgerEntry.user_id == user_id)
    )
    total = count_result.scalar_one()

    result = await session.execute(
        select(LedgerEntry)
        .where(LedgerEntry.user_id == user_id)
        .order_by(LedgerEntry.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    rows = result.scalars().all()
    entries = [
        {
            "id": r.id,
            "amount": r.amount,
            "reason": r.reason,
            "task_id": r.task_id,
            "created_at": r.created_at.isoformat() if r.created_at else None,
        }
        for r in rows
    ]
    return entries, total
