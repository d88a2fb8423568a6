from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from prisma.models import Partner, User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.core.email import EmailService, get_email_service
from csr26_api.domains.auth.dependencies import get_current_partner
from csr26_api.domains.partners.models import (
    PartnerAuthResponse,
    PartnerCreateRequest,
    PartnerDashboard,
    PartnerMagicLinkRequest,
    PartnerMagicLinkResponse,
    PartnerMerchantDetail,
    PartnerResponse,
    PartnerSummaryReport,
    PartnerUpdateRequest,
)
from csr26_api.domains.partners.service import PartnerService
from csr26_api.domains.transactions.models import (
    TransactionListResponse,
    TransactionResponse,
)
from csr26_api.shared.permissions import Permission, require_permission

router = APIRouter(prefix="/partners", tags=["Partners"])

require_admin = require_permission(Permission.MANAGE_PARTNERS)


def get_partner_service(
    db: Prisma = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> PartnerService:
    return PartnerService(db, email_service)


@router.post(
    "/auth/magic-link",
    response_model=PartnerMagicLinkResponse,
    response_model_exclude_none=True,
    operation_id="sendPartnerMagicLink",
)
async def send_partner_magic_link(
    body: PartnerMagicLinkRequest,
    service: PartnerService = Depends(get_partner_service),
) -> PartnerMagicLinkResponse:
    return await service.send_magic_link(body.email)


@router.get(
    "/auth/verify/{token}",
    response_model=PartnerAuthResponse,
    operation_id="verifyPartnerMagicLink",
)
async def verify_partner_magic_link(
    token: str, service: PartnerService = Depends(get_partner_service)
) -> PartnerAuthResponse:
    return await service.verify_magic_link(token)


@router.get("/me", response_model=PartnerDashboard, operation_id="getPartnerDashboard")
async def get_partner_dashboard(
    partner: Partner = Depends(get_current_partner),
    service: PartnerService = Depends(get_partner_service),
) -> PartnerDashboard:
    return await service.get_dashboard(partner)


@router.get(
    "/me/merchants",
    response_model=List[PartnerMerchantDetail],
    operation_id="getPartnerMerchants",
)
async def get_partner_merchants(
    partner: Partner = Depends(get_current_partner),
    service: PartnerService = Depends(get_partner_service),
) -> List[PartnerMerchantDetail]:
    return await service.list_merchants(partner.id)


@router.get(
    "/me/transactions",
    response_model=TransactionListResponse,
    operation_id="getPartnerTransactions",
)
async def get_partner_transactions(
    partner: Partner = Depends(get_current_partner),
    service: PartnerService = Depends(get_partner_service),
    merchantId: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> TransactionListResponse:
    transactions, total = await service.list_transactions(
        partner.id, merchantId, limit, offset
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.from_prisma(t) for t in transactions],
        total=total,
    )


@router.get(
    "/me/reports/summary",
    response_model=PartnerSummaryReport,
    operation_id="getPartnerSummaryReport",
)
async def get_partner_summary_report(
    partner: Partner = Depends(get_current_partner),
    service: PartnerService = Depends(get_partner_service),
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
) -> PartnerSummaryReport:
    return await service.get_summary_report(partner, year, month)


@router.get("", response_model=List[PartnerResponse], operation_id="listPartners")
async def list_partners(
    _: User = Depends(require_admin),
    service: PartnerService = Depends(get_partner_service),
) -> List[PartnerResponse]:
    return await service.list_partners()


@router.post(
    "",
    response_model=PartnerResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createPartner",
)
async def create_partner(
    body: PartnerCreateRequest,
    _: User = Depends(require_admin),
    service: PartnerService = Depends(get_partner_service),
) -> PartnerResponse:
    return PartnerResponse.from_prisma(await service.create_partner(body))


@router.put("/{partner_id}", response_model=PartnerResponse, operation_id="updatePartner")
async def update_partner(
    partner_id: str,
    body: PartnerUpdateRequest,
    _: User = Depends(require_admin),
    service: PartnerService = Depends(get_partner_service),
) -> PartnerResponse:
    return PartnerResponse.from_prisma(await service.update_partner(partner_id, body))
