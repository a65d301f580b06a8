"""Report endpoints."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import Role
from easybill.schemas.report import (
    CustomerReport,
    InventoryReport,
    ReportRequest,
    ReportResponse,
    ReportTypeInfo,
    SalesReport,
    TaxReport,
)
from easybill.security.auth import AuthenticatedUser, get_current_user, require_roles
from easybill.services.reports import ReportService
from easybill.storage.db import get_db_session


router = APIRouter()

require_reporting = require_roles(Role.ADMIN, Role.MANAGER)


@router.get("/types", response_model=List[ReportTypeInfo])
async def list_report_types(user: AuthenticatedUser = Depends(get_current_user)) -> List[ReportTypeInfo]:
    return ReportService.report_types()


@router.post("/generate", response_model=ReportResponse)
async def generate_report(
    payload: ReportRequest,
    user: AuthenticatedUser = Depends(require_reporting),
    db: AsyncSession = Depends(get_db_session),
) -> ReportResponse:
    return await ReportService(db, user.tenant_id).generate(payload)


@router.get("/sales", response_model=SalesReport)
async def sales_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    store_id: Optional[str] = Query(None),
    user: AuthenticatedUser = Depends(require_reporting),
    db: AsyncSession = Depends(get_db_session),
) -> SalesReport:
    return await ReportService(db, user.tenant_id).sales_report(start_date, end_date, store_id)


@router.get("/inventory", response_model=InventoryReport)
async def inventory_report(
    store_id: Optional[str] = Query(None),
    user: AuthenticatedUser = Depends(require_reporting),
    db: AsyncSession = Depends(get_db_session),
) -> InventoryReport:
    return await ReportService(db, user.tenant_id).inventory_report(store_id)


@router.get("/customers", response_model=CustomerReport)
async def customer_report(
    user: AuthenticatedUser = Depends(require_reporting),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerReport:
    return await ReportService(db, user.tenant_id).customer_report()


@router.get("/tax", response_model=TaxReport)
async def tax_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    store_id: Optional[str] = Query(None),
    user: AuthenticatedUser = Depends(require_reporting),
    db: AsyncSession = Depends(get_db_session),
) -> TaxReport:
    return await ReportService(db, user.tenant_id).tax_report(start_date, end_date, store_id)
