"""Routes shared by ``/payables`` and ``/receivables``.

Both resources are served by :func:`build_ledger_router`, one router per
ledger kind. Every route resolves the caller's owner key first; static paths
are registered before ``/{entry_id}`` so they are matched first.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..domain.ledger import LedgerKind
from ..domain.ledger_service import LedgerService
from ..domain.owner import OwnerKey
from .dependencies import ledger_service_dependency, resolve_owner
from .schemas import (
    DATE_PATTERN,
    MONTH_PATTERN,
    YEAR_PATTERN,
    DeletedResponse,
    LedgerEntryCreate,
    LedgerEntryResponse,
    LedgerEntryUpdate,
    TotalResponse,
)


def build_ledger_router(kind: LedgerKind) -> APIRouter:
    router = APIRouter(prefix=f"/{kind.table}", tags=[kind.table])
    get_service = ledger_service_dependency(kind)

    @router.post("", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
    def create_entry(
        payload: LedgerEntryCreate,
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> LedgerEntryResponse:
        return LedgerEntryResponse.from_domain(service.create(owner, payload.to_domain()))

    @router.get("", response_model=list[LedgerEntryResponse])
    def list_entries(
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> list[LedgerEntryResponse]:
        return [LedgerEntryResponse.from_domain(e) for e in service.list_by_owner(owner)]

    @router.get("/category/{category}", response_model=list[LedgerEntryResponse])
    def list_by_category(
        category: str,
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> list[LedgerEntryResponse]:
        entries = service.list_by_owner_and_category(owner, category)
        return [LedgerEntryResponse.from_domain(e) for e in entries]

    @router.get("/paid-status/{paid_status}", response_model=list[LedgerEntryResponse])
    def list_by_paid_status(
        paid_status: str,
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> list[LedgerEntryResponse]:
        entries = service.list_by_owner_and_status(owner, paid_status)
        return [LedgerEntryResponse.from_domain(e) for e in entries]

    @router.get("/date-range", response_model=list[LedgerEntryResponse])
    def list_by_date_range(
        start_date: str = Query(..., pattern=DATE_PATTERN, examples=["2025-09-01"]),
        end_date: str = Query(..., pattern=DATE_PATTERN, examples=["2025-09-30"]),
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> list[LedgerEntryResponse]:
        """List records due between ``start_date`` and ``end_date`` inclusive."""
        entries = service.list_by_owner_and_date_range(owner, start_date, end_date)
        return [LedgerEntryResponse.from_domain(e) for e in entries]

    @router.get("/year-month", response_model=list[LedgerEntryResponse])
    def list_by_year_month(
        year: str = Query(..., pattern=YEAR_PATTERN, examples=["2025"]),
        month: str = Query(..., pattern=MONTH_PATTERN, examples=["09"]),
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> list[LedgerEntryResponse]:
        entries = service.list_by_owner_and_year_month(owner, year, month)
        return [LedgerEntryResponse.from_domain(e) for e in entries]

    @router.get("/total", response_model=TotalResponse)
    def total(
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> TotalResponse:
        return TotalResponse(total=float(service.sum_amount(owner)))

    @router.get("/total/paid-status/{paid_status}", response_model=TotalResponse)
    def total_by_paid_status(
        paid_status: str,
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> TotalResponse:
        return TotalResponse(total=float(service.sum_amount(owner, paid_status)))

    @router.get("/{entry_id}", response_model=LedgerEntryResponse)
    def get_entry(
        entry_id: str,
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> LedgerEntryResponse:
        return LedgerEntryResponse.from_domain(service.get_by_id(owner, entry_id))

    @router.patch("/{entry_id}", response_model=LedgerEntryResponse)
    def update_entry(
        entry_id: str,
        payload: LedgerEntryUpdate,
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> LedgerEntryResponse:
        return LedgerEntryResponse.from_domain(service.update(owner, entry_id, payload.to_patch()))

    @router.delete("/{entry_id}", response_model=DeletedResponse)
    def delete_entry(
        entry_id: str,
        owner: OwnerKey = Depends(resolve_owner),
        service: LedgerService = Depends(get_service),
    ) -> DeletedResponse:
        service.remove(owner, entry_id)
        return DeletedResponse(id=entry_id)

    return router
