import uuid

import pytest

from app.core.database import unit_of_work
from app.core.exceptions import AppError, ErrorCode
from app.core.ledger import AccountRef, Ledger
from app.models.enums import TransactionType
from app.models.provider import CarProvider
from app.models.user import User


async def test_credit_and_debit_write_balance_and_history(session_maker, factory):
    user = await factory.user()
    account = AccountRef.user(user.id)

    async with session_maker() as session:
        ledger = Ledger(session)
        async with unit_of_work(session):
            entry = await ledger.credit(account, 100, TransactionType.deposit, "Top up")
            assert entry.balance == 100
            entry = await ledger.debit(account, 40, TransactionType.payment, "Fuel", reference="r-1")
            assert entry.balance == 60
            assert entry.transaction.amount == -40
            assert entry.transaction.reference == "r-1"

    async with session_maker() as session:
        ledger = Ledger(session)
        assert await ledger.get_balance(account) == 60
        assert await ledger.replay_balance(account) == 60
        assert await ledger.count_transactions(account) == 2


async def test_failure_rolls_back_every_write(session_maker, factory):
    user = await factory.user()
    provider = await factory.provider()

    async with session_maker() as session:
        ledger = Ledger(session)
        with pytest.raises(RuntimeError):
            async with unit_of_work(session):
                await ledger.credit(AccountRef.user(user.id), 50, TransactionType.deposit, "Top up")
                await ledger.credit(AccountRef.provider(provider.id), 50, TransactionType.payout, "Payout")
                raise RuntimeError("boom")

    assert (await factory.get(User, user.id)).credits == 0
    assert (await factory.get(CarProvider, provider.id)).credits == 0
    assert await factory.transactions_for_user(user.id) == []


async def test_insufficient_debit_rolls_back_earlier_credit(session_maker, factory):
    user = await factory.user()
    account = AccountRef.user(user.id)

    async with session_maker() as session:
        ledger = Ledger(session)
        with pytest.raises(AppError) as exc_info:
            async with unit_of_work(session):
                await ledger.credit(account, 10, TransactionType.deposit, "Top up")
                await ledger.debit(account, 25, TransactionType.payment, "Too much")

    assert exc_info.value.status_code == 400
    assert exc_info.value.code == ErrorCode.insufficient_credits
    assert "You need 25.00 credits but have 10.00." in exc_info.value.detail
    assert (await factory.get(User, user.id)).credits == 0
    assert await factory.transactions_for_user(user.id) == []


async def test_unknown_account(session_maker):
    account = AccountRef.user(uuid.uuid4())
    async with session_maker() as session:
        ledger = Ledger(session)
        with pytest.raises(AppError) as exc_info:
            await ledger.get_balance(account)
        assert exc_info.value.status_code == 404
        with pytest.raises(AppError) as exc_info:
            await ledger.debit(account, 5, TransactionType.payment, "Nobody")
        assert exc_info.value.status_code == 404


async def test_transaction_type_must_match_direction(session_maker, factory):
    user = await factory.user()
    async with session_maker() as session:
        ledger = Ledger(session)
        with pytest.raises(ValueError):
            await ledger.credit(AccountRef.user(user.id), 5, TransactionType.payment, "Wrong way")
        with pytest.raises(ValueError):
            await ledger.debit(AccountRef.user(user.id), 5, TransactionType.refund, "Wrong way")
