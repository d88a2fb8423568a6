from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from prisma.enums import PaymentMode, PaymentStatus
from prisma.models import User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.domains.admin import service
from csr26_api.domains.admin.models import (
    AdminAccessRequest,
    AdminAccessResponse,
    CorsairExportType,
    ImpactReport,
    MonthlySummaryReport,
    RevenueGroupBy,
    RevenueReport,
    UserGrowthReport,
)
from csr26_api.domains.auth.dependencies import get_optional_user
from csr26_api.domains.billing.models import (
    BillingStats,
    InvoiceDetails,
    InvoiceResponse,
    MarkInvoicePaidRequest,
    MonthlyBillingResult,
    OutstandingBalance,
    RunBillingRequest,
)
from csr26_api.domains.billing.service import BillingService
from csr26_api.domains.corsair.models import CorsairBatchExportResult, CorsairExportStats
from csr26_api.domains.corsair.service import CorsairExportService, convert_to_csv
from csr26_api.domains.cron.models import CronRunResult
from csr26_api.domains.cron.service import CronService
from csr26_api.domains.transactions import service as transactions_service
from csr26_api.domains.transactions.models import (
    ManualTransactionRequest,
    TransactionListResponse,
    TransactionResponse,
    UpdateTransactionStatusRequest,
)
from csr26_api.shared.permissions import Permission, require_permission

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_report_service(db: Prisma = Depends(get_db)) -> service.ReportService:
    return service.ReportService(db)


def get_corsair_service(db: Prisma = Depends(get_db)) -> CorsairExportService:
    return CorsairExportService(db)


def get_billing_service(db: Prisma = Depends(get_db)) -> BillingService:
    return BillingService(db)


def get_cron_service(db: Prisma = Depends(get_db)) -> CronService:
    return CronService(db)


# Corsair


@router.get(
    "/corsair/stats", response_model=CorsairExportStats, operation_id="getCorsairStats"
)
async def get_corsair_stats(
    _: User = Depends(require_permission(Permission.MANAGE_EXPORTS)),
    corsair: CorsairExportService = Depends(get_corsair_service),
) -> CorsairExportStats:
    return await corsair.get_export_stats()


@router.post(
    "/corsair/export-pending",
    response_model=CorsairBatchExportResult,
    operation_id="exportPendingCorsair",
)
async def export_pending(
    _: User = Depends(require_permission(Permission.MANAGE_EXPORTS)),
    corsair: CorsairExportService = Depends(get_corsair_service),
) -> CorsairBatchExportResult:
    return await corsair.export_pending_certified_users()


@router.post(
    "/corsair/export-all",
    response_model=CorsairBatchExportResult,
    operation_id="exportAllCorsair",
)
async def export_all(
    _: User = Depends(require_permission(Permission.MANAGE_EXPORTS)),
    corsair: CorsairExportService = Depends(get_corsair_service),
) -> CorsairBatchExportResult:
    return await corsair.export_all_certified_users()


@router.get("/corsair/download", operation_id="downloadCorsairCsv")
async def download_corsair_csv(
    type: CorsairExportType = Query(CorsairExportType.all),
    _: User = Depends(require_permission(Permission.MANAGE_EXPORTS)),
    corsair: CorsairExportService = Depends(get_corsair_service),
) -> Response:
    if type == CorsairExportType.pending:
        result = await corsair.export_pending_certified_users()
    else:
        result = await corsair.export_all_certified_users()

    today = datetime.now(timezone.utc).date().isoformat()
    filename = f"corsair-export-{type.value}-{today}.csv"
    return Response(
        content=convert_to_csv(result.records),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Reports


@router.get(
    "/reports/summary",
    response_model=MonthlySummaryReport,
    operation_id="getMonthlySummaryReport",
)
async def get_monthly_summary(
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    _: User = Depends(require_permission(Permission.VIEW_REPORTS)),
    reports: service.ReportService = Depends(get_report_service),
) -> MonthlySummaryReport:
    return await reports.get_monthly_summary(year, month)


@router.get(
    "/reports/revenue", response_model=RevenueReport, operation_id="getRevenueReport"
)
async def get_revenue_report(
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    groupBy: RevenueGroupBy = Query(RevenueGroupBy.merchant),
    _: User = Depends(require_permission(Permission.VIEW_REPORTS)),
    reports: service.ReportService = Depends(get_report_service),
) -> RevenueReport:
    return await reports.get_revenue_report(startDate, endDate, groupBy)


@router.get("/reports/impact", response_model=ImpactReport, operation_id="getImpactReport")
async def get_impact_report(
    _: User = Depends(require_permission(Permission.VIEW_REPORTS)),
    reports: service.ReportService = Depends(get_report_service),
) -> ImpactReport:
    return await reports.get_impact_report()


@router.get(
    "/reports/users", response_model=UserGrowthReport, operation_id="getUserGrowthReport"
)
async def get_user_growth_report(
    days: int = Query(30, ge=1, le=3650),
    _: User = Depends(require_permission(Permission.VIEW_REPORTS)),
    reports: service.ReportService = Depends(get_report_service),
) -> UserGrowthReport:
    return await reports.get_user_growth(days)


# Transactions


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    operation_id="adminListTransactions",
)
async def list_transactions(
    paymentMode: Optional[PaymentMode] = Query(None),
    paymentStatus: Optional[PaymentStatus] = Query(None),
    merchantId: Optional[str] = Query(None),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None, description="User email or name contains"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: User = Depends(require_permission(Permission.MANAGE_TRANSACTIONS)),
    db: Prisma = Depends(get_db),
) -> TransactionListResponse:
    transactions, total = await transactions_service.list_transactions(
        db,
        payment_mode=paymentMode,
        payment_status=paymentStatus,
        merchant_id=merchantId,
        start_date=startDate,
        end_date=endDate,
        search=search,
        limit=limit,
        offset=offset,
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.from_prisma(t) for t in transactions],
        total=total,
    )


@router.patch(
    "/transactions/{transaction_id}",
    response_model=TransactionResponse,
    operation_id="updateTransactionStatus",
)
async def update_transaction_status(
    transaction_id: str,
    body: UpdateTransactionStatusRequest,
    _: User = Depends(require_permission(Permission.MANAGE_TRANSACTIONS)),
    db: Prisma = Depends(get_db),
) -> TransactionResponse:
    transaction = await transactions_service.update_transaction_status(
        db, transaction_id, body.paymentStatus
    )
    return TransactionResponse.from_prisma(transaction)


@router.post(
    "/transactions/manual",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createManualTransaction",
)
async def create_manual_transaction(
    body: ManualTransactionRequest,
    _: User = Depends(require_permission(Permission.MANAGE_TRANSACTIONS)),
    db: Prisma = Depends(get_db),
) -> TransactionResponse:
    transaction = await transactions_service.create_manual_transaction(
        db, body.email, body.amount, body.paymentMode, body.reason
    )
    return TransactionResponse.from_prisma(transaction)


# Access code


@router.post("/access", response_model=AdminAccessResponse, operation_id="verifyAdminAccess")
async def verify_admin_access(
    body: AdminAccessRequest,
    user: Optional[User] = Depends(get_optional_user),
    db: Prisma = Depends(get_db),
) -> AdminAccessResponse:
    return await service.verify_admin_access(db, body.code, user)


# Billing


@router.get("/billing/stats", response_model=BillingStats, operation_id="getBillingStats")
async def get_billing_stats(
    _: User = Depends(require_permission(Permission.MANAGE_BILLING)),
    billing: BillingService = Depends(get_billing_service),
) -> BillingStats:
    return await billing.get_billing_stats()


@router.get(
    "/billing/outstanding",
    response_model=List[OutstandingBalance],
    operation_id="getOutstandingBalances",
)
async def get_outstanding_balances(
    _: User = Depends(require_permission(Permission.MANAGE_BILLING)),
    billing: BillingService = Depends(get_billing_service),
) -> List[OutstandingBalance]:
    return await billing.get_merchants_with_balance()


@router.post(
    "/billing/run", response_model=MonthlyBillingResult, operation_id="runMonthlyBilling"
)
async def run_monthly_billing(
    body: Optional[RunBillingRequest] = None,
    _: User = Depends(require_permission(Permission.MANAGE_BILLING)),
    billing: BillingService = Depends(get_billing_service),
) -> MonthlyBillingResult:
    body = body or RunBillingRequest()
    return await billing.run_monthly_billing(body.year, body.month)


@router.get(
    "/billing/invoices/{invoice_id}",
    response_model=InvoiceDetails,
    operation_id="getInvoiceDetails",
)
async def get_invoice(
    invoice_id: str,
    _: User = Depends(require_permission(Permission.MANAGE_BILLING)),
    billing: BillingService = Depends(get_billing_service),
) -> InvoiceDetails:
    return await billing.get_invoice_details(invoice_id)


@router.post(
    "/billing/invoices/{invoice_id}/pay",
    response_model=InvoiceResponse,
    operation_id="markInvoicePaid",
)
async def mark_invoice_paid(
    invoice_id: str,
    body: Optional[MarkInvoicePaidRequest] = None,
    _: User = Depends(require_permission(Permission.MANAGE_BILLING)),
    billing: BillingService = Depends(get_billing_service),
) -> InvoiceResponse:
    stripe_payment_id = body.stripePaymentId if body else None
    invoice = await billing.mark_invoice_paid(invoice_id, stripe_payment_id)
    return InvoiceResponse.from_prisma(invoice)


# Cron


@router.post("/cron/daily", response_model=CronRunResult, operation_id="runDailyCron")
async def run_daily_cron(
    _: User = Depends(require_permission(Permission.RUN_SCHEDULED_TASKS)),
    cron: CronService = Depends(get_cron_service),
) -> CronRunResult:
    return await cron.run_daily_tasks()


@router.post("/cron/monthly", response_model=CronRunResult, operation_id="runMonthlyCron")
async def run_monthly_cron(
    _: User = Depends(require_permission(Permission.RUN_SCHEDULED_TASKS)),
    cron: CronService = Depends(get_cron_service),
) -> CronRunResult:
    return await cron.run_monthly_tasks()


@router.post("/cron/all", response_model=CronRunResult, operation_id="runAllCron")
async def run_all_cron(
    _: User = Depends(require_permission(Permission.RUN_SCHEDULED_TASKS)),
    cron: CronService = Depends(get_cron_service),
) -> CronRunResult:
    return await cron.run_all_tasks()
