import io
import logging
import uuid
from typing import List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.transactions.schemas import TransactionFilters, TransactionSummary, TypeTotal
from app.core.exceptions import AppException
from app.core.pricing import money, to_naive_utc
from app.models.enums import TransactionType
from app.models.transaction import Transaction


class TransactionReportService:
    """Read-only views over the ledger. Never writes."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _conditions(filters: TransactionFilters) -> list:
        conditions = []
        if filters.user_id:
            conditions.append(Transaction.user_id == filters.user_id)
        if filters.provider_id:
            conditions.append(Transaction.provider_id == filters.provider_id)
        if filters.type:
            conditions.append(Transaction.type == filters.type.value)
        if filters.status:
            conditions.append(Transaction.status == filters.status.value)
        if filters.rental_id:
            conditions.append(Transaction.rental_id == filters.rental_id)
        if filters.start_date:
            conditions.append(Transaction.transaction_date >= to_naive_utc(filters.start_date))
        if filters.end_date:
            conditions.append(Transaction.transaction_date <= to_naive_utc(filters.end_date))
        if filters.min_amount is not None:
            conditions.append(Transaction.amount >= filters.min_amount)
        if filters.max_amount is not None:
            conditions.append(Transaction.amount <= filters.max_amount)
        if filters.search and filters.search.strip():
            term = f"%{filters.search.strip().lower()}%"
            conditions.append(func.lower(Transaction.description).like(term))
        return conditions

    async def list_transactions(
        self,
        filters: TransactionFilters,
        skip: int = 0,
        limit: int = 100,
    ) -> dict:
        conditions = self._conditions(filters)
        total_result = await self.db.execute(select(func.count(Transaction.id)).where(*conditions))
        total = total_result.scalar_one() or 0

        result = await self.db.execute(
            select(Transaction)
            .where(*conditions)
            .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        items = list(result.scalars().all())
        summary = await self.summarize(filters)
        return {"items": items, "total": total, "summary": summary}

    async def summarize(self, filters: TransactionFilters) -> TransactionSummary:
        """Count and sum per type over the same filtered set the listing uses."""
        result = await self.db.execute(
            select(Transaction.type, func.count(Transaction.id), func.coalesce(func.sum(Transaction.amount), 0))
            .where(*self._conditions(filters))
            .group_by(Transaction.type)
        )
        by_type = {t.value: TypeTotal() for t in TransactionType}
        signed = {t.value: 0.0 for t in TransactionType}
        count = 0
        for type_, type_count, type_sum in result.all():
            signed[type_] = float(type_sum or 0)
            by_type[type_] = TypeTotal(count=type_count, total=money(abs(signed[type_])))
            count += type_count

        deposits = abs(signed[TransactionType.deposit.value])
        refunds = abs(signed[TransactionType.refund.value])
        payments = abs(signed[TransactionType.payment.value])
        withdrawals = abs(signed[TransactionType.withdrawal.value])
        return TransactionSummary(
            count=count,
            total_deposits=money(deposits),
            total_payments=money(payments),
            total_refunds=money(refunds),
            total_withdrawals=money(withdrawals),
            net_flow=money(deposits + refunds - payments - withdrawals),
            by_type=by_type,
        )

    async def get_transaction(self, transaction_id: uuid.UUID) -> Transaction:
        transaction = await self.db.get(Transaction, transaction_id)
        if not transaction:
            AppException().raise_404(f"Transaction with id {transaction_id} not found")
        return transaction

    async def export_transactions_to_excel(self, filters: TransactionFilters) -> bytes:
        """Export the filtered ledger to Excel (.xlsx). Same filters as the listing."""
        result = await self.db.execute(
            select(Transaction)
            .where(*self._conditions(filters))
            .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
        )
        rows: List[Transaction] = list(result.scalars().all())

        wb = Workbook()
        ws = wb.active
        ws.title = "Transactions"

        headers = [
            "Transaction ID",
            "Account Type",
            "Account ID",
            "Type",
            "Status",
            "Amount",
            "Description",
            "Reference",
            "Rental ID",
            "Performed By",
            "Transaction Date",
        ]
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center", wrap_text=True)

        for row_idx, txn in enumerate(rows, start=2):
            account_type = "user" if txn.user_id else "provider"
            account_id = txn.user_id or txn.provider_id
            ws.cell(row=row_idx, column=1, value=str(txn.id))
            ws.cell(row=row_idx, column=2, value=account_type)
            ws.cell(row=row_idx, column=3, value=str(account_id))
            ws.cell(row=row_idx, column=4, value=txn.type)
            ws.cell(row=row_idx, column=5, value=txn.status)
            ws.cell(row=row_idx, column=6, value=money(txn.amount))
            ws.cell(row=row_idx, column=7, value=txn.description)
            ws.cell(row=row_idx, column=8, value=txn.reference or "")
            ws.cell(row=row_idx, column=9, value=str(txn.rental_id) if txn.rental_id else "")
            ws.cell(row=row_idx, column=10, value=str(txn.performed_by) if txn.performed_by else "")
            ws.cell(row=row_idx, column=11, value=txn.transaction_date.strftime("%Y-%m-%d %H:%M:%S"))

        buffer = io.BytesIO()
        wb.save(buffer)
        buffer.seek(0)
        self.logger.info("Exported %s transactions", len(rows))
        return buffer.getvalue()
