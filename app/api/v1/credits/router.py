from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.credits.schemas import (
    AdminManageCreditsRequest,
    BalanceResponse,
    CreditAmountRequest,
    CreditOperationResponse,
    PayRentalResponse,
    RefundRequest,
)
from app.api.v1.credits.service import CreditService
from app.api.v1.transactions.schemas import (
    TransactionFilters,
    TransactionListResponse,
    TransactionResponse,
)
from app.api.v1.transactions.service import TransactionReportService
from app.core.deps import AuthContext, get_auth_context, get_current_admin, get_current_customer, get_db
from app.models.enums import TransactionStatus, TransactionType

router = APIRouter()


def transaction_filters(
    type: Optional[TransactionType] = Query(None, description="Filter by transaction type"),
    status: Optional[TransactionStatus] = Query(None, description="Filter by transaction status"),
    rental_id: Optional[UUID] = Query(None, description="Filter by rental"),
    start_date: Optional[datetime] = Query(None, description="Transaction date on or after"),
    end_date: Optional[datetime] = Query(None, description="Transaction date on or before"),
    min_amount: Optional[float] = Query(None, description="Signed amount lower bound"),
    max_amount: Optional[float] = Query(None, description="Signed amount upper bound"),
    search: Optional[str] = Query(None, description="Search in description"),
    user_id: Optional[UUID] = Query(None, description="Filter by user account (admin listing only)"),
    provider_id: Optional[UUID] = Query(None, description="Filter by provider account (admin listing only)"),
) -> TransactionFilters:
    return TransactionFilters(
        user_id=user_id,
        provider_id=provider_id,
        type=type,
        status=status,
        rental_id=rental_id,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
        search=search,
    )


def _list_response(result: dict) -> TransactionListResponse:
    return TransactionListResponse(
        items=[TransactionResponse.model_validate(t) for t in result["items"]],
        total=result["total"],
        summary=result["summary"],
    )


def _operation_response(result: dict) -> CreditOperationResponse:
    return CreditOperationResponse(
        account_id=result["account_id"],
        account_type=result["account_type"],
        credits=result["credits"],
        transaction=TransactionResponse.model_validate(result["transaction"]),
        message=result["message"],
    )


@router.get(
    "/",
    response_model=BalanceResponse,
    summary="Get my credit balance",
    description="Current balance of the caller's user or provider account.",
)
async def get_credits(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    credit_service = CreditService(db)
    return await credit_service.get_balance(auth)


@router.get(
    "/history",
    response_model=TransactionListResponse,
    summary="Get my transaction history",
    description="Filtered, paginated history with a summary computed over the same filtered set.",
)
async def get_history(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    filters: TransactionFilters = Depends(transaction_filters),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    credit_service = CreditService(db)
    result = await credit_service.get_history(auth, filters, skip=skip, limit=limit)
    return _list_response(result)


@router.post(
    "/add",
    response_model=CreditOperationResponse,
    summary="Add credits",
    description="Deposit credits into the caller's account.",
)
async def add_credits(
    credit_data: CreditAmountRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    credit_service = CreditService(db)
    result = await credit_service.add_credits(credit_data, auth)
    return _operation_response(result)


@router.post(
    "/use",
    response_model=CreditOperationResponse,
    summary="Use credits",
    description="Spend credits from the caller's account. Fails without any change when the balance is too low.",
)
async def use_credits(
    credit_data: CreditAmountRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    credit_service = CreditService(db)
    result = await credit_service.use_credits(credit_data, auth)
    return _operation_response(result)


@router.post(
    "/pay-rental/{rental_id}",
    response_model=PayRentalResponse,
    summary="Pay for a rental with credits",
    description="Pays the outstanding amount of an unpaid rental and marks it completed.",
)
async def pay_rental(
    rental_id: UUID,
    auth: AuthContext = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    credit_service = CreditService(db)
    result = await credit_service.pay_rental(rental_id, auth)
    return PayRentalResponse(
        rental_id=result["rental_id"],
        amount=result["amount"],
        remaining_credits=result["remaining_credits"],
        rental_status=result["rental_status"],
        transaction=TransactionResponse.model_validate(result["transaction"]),
        message=result["message"],
    )


@router.post(
    "/refund",
    response_model=CreditOperationResponse,
    summary="Refund credits",
    description="Refund credits to a user or provider account. Admin only.",
)
async def refund_credits(
    refund_data: RefundRequest,
    auth: AuthContext = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    credit_service = CreditService(db)
    result = await credit_service.refund_credits(refund_data, auth)
    return _operation_response(result)


@router.post(
    "/admin/manage",
    response_model=CreditOperationResponse,
    summary="Adjust an account's credits",
    description="Add, use or refund credits on any account. Records the acting admin and note. Admin only.",
)
async def admin_manage_credits(
    manage_data: AdminManageCreditsRequest,
    auth: AuthContext = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    credit_service = CreditService(db)
    result = await credit_service.admin_manage_credits(manage_data, auth)
    return _operation_response(result)


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    summary="List all transactions",
    description="Ledger listing across all accounts with filters and summary. Admin only.",
    dependencies=[Depends(get_current_admin)],
)
async def list_transactions(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    filters: TransactionFilters = Depends(transaction_filters),
    db: AsyncSession = Depends(get_db),
):
    report_service = TransactionReportService(db)
    result = await report_service.list_transactions(filters, skip=skip, limit=limit)
    return _list_response(result)


@router.get(
    "/transactions/export",
    status_code=status.HTTP_200_OK,
    summary="Export transactions to Excel",
    description="Download the filtered ledger as an Excel (.xlsx) file. Same filters as the listing. Admin only.",
    dependencies=[Depends(get_current_admin)],
)
async def export_transactions_excel(
    filters: TransactionFilters = Depends(transaction_filters),
    db: AsyncSession = Depends(get_db),
):
    report_service = TransactionReportService(db)
    content = await report_service.export_transactions_to_excel(filters)
    filename = "transactions_export.xlsx"
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get transaction by ID",
    description="Admin only.",
    dependencies=[Depends(get_current_admin)],
)
async def get_transaction(
    transaction_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    report_service = TransactionReportService(db)
    transaction = await report_service.get_transaction(transaction_id)
    return TransactionResponse.model_validate(transaction)
