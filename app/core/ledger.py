"""
Ledger store: the only code allowed to change an account's credit balance.

Every call changes one balance with a single conditional UPDATE (compare-and-set on
the balance) and appends one Transaction documenting it. Nothing here commits; callers
run these inside app.core.database.unit_of_work so both writes land or neither does.
"""
import logging
from datetime import datetime
from typing import NamedTuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppException, ErrorCode
from app.core.pricing import money
from app.models.enums import AccountType, TransactionStatus, TransactionType
from app.models.provider import CarProvider
from app.models.transaction import Transaction
from app.models.user import User

logger = logging.getLogger(__name__)

ACCOUNT_MODELS = {
    AccountType.user: User,
    AccountType.provider: CarProvider,
}

CREDIT_TYPES = {TransactionType.deposit, TransactionType.refund, TransactionType.payout, TransactionType.system}
DEBIT_TYPES = {TransactionType.payment, TransactionType.withdrawal, TransactionType.system}


class AccountRef(NamedTuple):
    kind: AccountType
    id: UUID

    @classmethod
    def user(cls, user_id: UUID) -> "AccountRef":
        return cls(AccountType.user, user_id)

    @classmethod
    def provider(cls, provider_id: UUID) -> "AccountRef":
        return cls(AccountType.provider, provider_id)


class LedgerEntry(NamedTuple):
    transaction: Transaction
    balance: float


class Ledger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_balance(self, account: AccountRef) -> float:
        model = ACCOUNT_MODELS[account.kind]
        result = await self.db.execute(select(model.credits).where(model.id == account.id))
        balance = result.scalar_one_or_none()
        if balance is None:
            AppException().raise_404(f"{account.kind.value.capitalize()} not found")
        return float(balance)

    async def credit(
        self,
        account: AccountRef,
        amount: float,
        type: TransactionType,
        description: str,
        reference: str | None = None,
        rental_id: UUID | None = None,
        performed_by: UUID | None = None,
        metadata: dict | None = None,
    ) -> LedgerEntry:
        """Increase a balance by `amount` (> 0) and record it."""
        if type not in CREDIT_TYPES:
            raise ValueError(f"{type.value} cannot increase a balance")
        amount = money(amount)
        model = ACCOUNT_MODELS[account.kind]
        result = await self.db.execute(
            update(model)
            .where(model.id == account.id)
            .values(credits=model.credits + amount, updated_at=datetime.utcnow())
            .returning(model.credits)
            .execution_options(synchronize_session=False)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            AppException().raise_404(f"{account.kind.value.capitalize()} not found")
        txn = await self._append(account, amount, type, description, reference, rental_id, performed_by, metadata)
        return LedgerEntry(txn, float(balance))

    async def debit(
        self,
        account: AccountRef,
        amount: float,
        type: TransactionType,
        description: str,
        reference: str | None = None,
        rental_id: UUID | None = None,
        performed_by: UUID | None = None,
        metadata: dict | None = None,
    ) -> LedgerEntry:
        """Decrease a balance by `amount` (> 0) only if it stays non-negative, and record it."""
        if type not in DEBIT_TYPES:
            raise ValueError(f"{type.value} cannot decrease a balance")
        amount = money(amount)
        model = ACCOUNT_MODELS[account.kind]
        result = await self.db.execute(
            update(model)
            .where(model.id == account.id, model.credits >= amount)
            .values(credits=model.credits - amount, updated_at=datetime.utcnow())
            .returning(model.credits)
            .execution_options(synchronize_session=False)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            current = await self.get_balance(account)
            AppException().raise_400(
                f"Insufficient credits. You need {amount:.2f} credits but have {current:.2f}.",
                code=ErrorCode.insufficient_credits,
            )
        txn = await self._append(account, -amount, type, description, reference, rental_id, performed_by, metadata)
        return LedgerEntry(txn, float(balance))

    async def replay_balance(self, account: AccountRef) -> float:
        """Sum of every signed amount on the account, in creation order."""
        column = Transaction.user_id if account.kind == AccountType.user else Transaction.provider_id
        result = await self.db.execute(
            select(Transaction.amount)
            .where(column == account.id, Transaction.status == TransactionStatus.completed.value)
            .order_by(Transaction.created_at.asc(), Transaction.transaction_date.asc())
        )
        total = 0.0
        for amount in result.scalars().all():
            total += amount
        return total

    async def count_transactions(self, account: AccountRef) -> int:
        column = Transaction.user_id if account.kind == AccountType.user else Transaction.provider_id
        result = await self.db.execute(select(func.count(Transaction.id)).where(column == account.id))
        return result.scalar_one() or 0

    async def _append(
        self,
        account: AccountRef,
        signed_amount: float,
        type: TransactionType,
        description: str,
        reference: str | None,
        rental_id: UUID | None,
        performed_by: UUID | None,
        metadata: dict | None,
    ) -> Transaction:
        now = datetime.utcnow()
        txn = Transaction(
            user_id=account.id if account.kind == AccountType.user else None,
            provider_id=account.id if account.kind == AccountType.provider else None,
            amount=signed_amount,
            description=description,
            type=type.value,
            status=TransactionStatus.completed.value,
            reference=reference,
            rental_id=rental_id,
            performed_by=performed_by,
            meta=metadata or {},
            transaction_date=now,
            created_at=now,
        )
        self.db.add(txn)
        await self.db.flush()
        logger.info(
            "Ledger %s %s %s amount=%.2f ref=%s by=%s",
            type.value,
            account.kind.value,
            account.id,
            signed_amount,
            reference,
            performed_by,
        )
        return txn
