import logging
import uuid
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.credits.schemas import AdminManageCreditsRequest, CreditAmountRequest, RefundRequest
from app.api.v1.transactions.schemas import TransactionFilters
from app.api.v1.transactions.service import TransactionReportService
from app.core.database import unit_of_work
from app.core.deps import AuthContext
from app.core.exceptions import AppException, ErrorCode
from app.core.ledger import AccountRef, Ledger
from app.core.pricing import money, validate_and_round_amount
from app.models.enums import AccountType, CreditAction, RentalStatus, TransactionType
from app.models.rental import Rental

logger = logging.getLogger(__name__)


def parse_amount(value) -> float:
    try:
        return validate_and_round_amount(value)
    except ValueError as e:
        AppException().raise_400(str(e), code=ErrorCode.invalid_amount)


def own_account(auth: AuthContext) -> AccountRef:
    if auth.is_provider:
        return AccountRef.provider(auth.caller_id)
    return AccountRef.user(auth.caller_id)


class CreditService:
    """
    Credit operations. Each mutating call is one unit of work holding exactly
    one balance change and the transaction that documents it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = Ledger(db)

    async def get_balance(self, auth: AuthContext) -> dict:
        account = own_account(auth)
        credits = await self.ledger.get_balance(account)
        return {"account_id": account.id, "account_type": account.kind, "credits": credits}

    async def get_history(self, auth: AuthContext, filters: TransactionFilters, skip: int = 0, limit: int = 100) -> dict:
        """Own transaction history; account filters from the caller are overridden."""
        account = own_account(auth)
        scoped = filters.model_copy(
            update={
                "user_id": account.id if account.kind == AccountType.user else None,
                "provider_id": account.id if account.kind == AccountType.provider else None,
            }
        )
        return await TransactionReportService(self.db).list_transactions(scoped, skip=skip, limit=limit)

    async def add_credits(self, data: CreditAmountRequest, auth: AuthContext) -> dict:
        amount = parse_amount(data.amount)
        account = own_account(auth)
        async with unit_of_work(self.db):
            entry = await self.ledger.credit(
                account,
                amount,
                TransactionType.deposit,
                data.description or "Credit deposit",
                reference=data.reference,
            )
        return self._operation_result(account, entry, f"{amount:.2f} credits added")

    async def use_credits(self, data: CreditAmountRequest, auth: AuthContext) -> dict:
        amount = parse_amount(data.amount)
        account = own_account(auth)
        async with unit_of_work(self.db):
            entry = await self.ledger.debit(
                account,
                amount,
                TransactionType.payment,
                data.description or "Credit payment",
                reference=data.reference,
            )
        return self._operation_result(account, entry, f"{amount:.2f} credits used")

    async def pay_rental(self, rental_id: uuid.UUID, auth: AuthContext) -> dict:
        """Settle an unpaid rental from the renter's credits and complete it."""
        rental = await self.db.get(Rental, rental_id)
        if not rental:
            AppException().raise_404("Rental not found")
        if auth.is_provider or rental.user_id != auth.caller_id:
            AppException().raise_403("You are not authorized to pay for this rental")
        if rental.status == RentalStatus.completed.value:
            AppException().raise_400("This rental has already been paid", code=ErrorCode.already_paid)
        if rental.status != RentalStatus.unpaid.value:
            AppException().raise_400(
                f"This rental cannot be paid (current status: {rental.status})",
                code=ErrorCode.invalid_state,
            )

        amount = money(rental.final_price - (rental.deposit_amount or 0))
        account = AccountRef.user(auth.caller_id)
        async with unit_of_work(self.db):
            result = await self.db.execute(
                update(Rental)
                .where(Rental.id == rental.id, Rental.status == RentalStatus.unpaid.value)
                .values(status=RentalStatus.completed.value, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                AppException().raise_400("This rental has already been paid", code=ErrorCode.already_paid)
            entry = await self.ledger.debit(
                account,
                amount,
                TransactionType.payment,
                f"Payment for rental #{rental.id}",
                reference=str(rental.id),
                rental_id=rental.id,
            )
            await self.db.refresh(rental)

        logger.info("Rental %s paid with %.2f credits by user %s", rental.id, amount, auth.caller_id)
        return {
            "rental_id": rental.id,
            "amount": amount,
            "remaining_credits": entry.balance,
            "rental_status": rental.status,
            "transaction": entry.transaction,
            "message": f"Rental paid successfully with {amount:.2f} credits",
        }

    async def refund_credits(self, data: RefundRequest, auth: AuthContext) -> dict:
        amount = parse_amount(data.amount)
        account = AccountRef(data.account_type, data.account_id)
        if data.rental_id and not await self.db.get(Rental, data.rental_id):
            AppException().raise_404(f"No rental with the id of {data.rental_id}")
        async with unit_of_work(self.db):
            entry = await self.ledger.credit(
                account,
                amount,
                TransactionType.refund,
                data.description or "Credit refund",
                reference=data.reference,
                rental_id=data.rental_id,
                performed_by=auth.caller_id,
            )
        return self._operation_result(account, entry, f"{amount:.2f} credits refunded")

    async def admin_manage_credits(self, data: AdminManageCreditsRequest, auth: AuthContext) -> dict:
        amount = parse_amount(data.amount)
        account = AccountRef(data.account_type, data.account_id)
        metadata = {"adminAction": data.action.value}
        if data.note:
            metadata["adminNote"] = data.note

        async with unit_of_work(self.db):
            if data.action == CreditAction.use:
                entry = await self.ledger.debit(
                    account,
                    amount,
                    TransactionType.payment,
                    data.description or "Credits deducted by admin",
                    reference=data.reference,
                    performed_by=auth.caller_id,
                    metadata=metadata,
                )
                verb = "deducted from"
            else:
                is_refund = data.action == CreditAction.refund
                entry = await self.ledger.credit(
                    account,
                    amount,
                    TransactionType.refund if is_refund else TransactionType.deposit,
                    data.description or ("Credits refunded by admin" if is_refund else "Credits added by admin"),
                    reference=data.reference,
                    performed_by=auth.caller_id,
                    metadata=metadata,
                )
                verb = "refunded to" if is_refund else "added to"

        logger.info(
            "Admin %s %s %.2f credits %s %s %s",
            auth.caller_id,
            data.action.value,
            amount,
            verb,
            account.kind.value,
            account.id,
        )
        return self._operation_result(account, entry, f"{amount:.2f} credits {verb} {account.kind.value} {account.id}")

    @staticmethod
    def _operation_result(account: AccountRef, entry, message: str) -> dict:
        return {
            "account_id": account.id,
            "account_type": account.kind,
            "credits": entry.balance,
            "transaction": entry.transaction,
            "message": message,
        }
