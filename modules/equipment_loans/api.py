"""FastAPI routes for the equipment loan module."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .exceptions import (
    AvailabilityError,
    InvalidStateError,
    LoanError,
    NotFoundError,
    PaymentError,
    PermissionDenied,
    ValidationError,
)
from .factory import LoanSystem, get_system
from .models.schemas import (
    EquipmentCreate,
    EquipmentRead,
    FineRead,
    LoanRead,
    LoanRequestCreate,
    LoanRequestRead,
    PaymentCreate,
    PersonCreate,
    PersonRead,
    ReviewCreate,
    ReviewRead,
    SweepCreate,
    SweepRead,
)

router = APIRouter(prefix="/api/loans", tags=["equipment-loans"])

ERROR_STATUS = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (InvalidStateError, status.HTTP_409_CONFLICT, "invalid_state"),
    (AvailabilityError, status.HTTP_409_CONFLICT, "unavailable"),
    (PaymentError, status.HTTP_402_PAYMENT_REQUIRED, "payment_failed"),
    (PermissionDenied, status.HTTP_403_FORBIDDEN, "forbidden"),
)


@contextmanager
def domain_errors() -> Iterator[None]:
    """Translate loan exceptions into HTTP errors."""
    try:
        yield
    except LoanError as exc:
        for exc_type, code, kind in ERROR_STATUS:
            if isinstance(exc, exc_type):
                raise HTTPException(
                    status_code=code, detail={"error": kind, "message": str(exc)}
                ) from exc
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "loan_error", "message": str(exc)},
        ) from exc


# ---------------------------------------------------------------- people / equipment


@router.post("/people", response_model=PersonRead, status_code=status.HTTP_201_CREATED)
def create_person(payload: PersonCreate, system: LoanSystem = Depends(get_system)) -> PersonRead:
    with domain_errors():
        person = system.registry.add_person(payload.name, payload.email, payload.role)
    return PersonRead.model_validate(person)


@router.get("/people", response_model=list[PersonRead])
def list_people(system: LoanSystem = Depends(get_system)) -> list[PersonRead]:
    return [PersonRead.model_validate(p) for p in system.stores.people.list()]


@router.post("/equipment", response_model=EquipmentRead, status_code=status.HTTP_201_CREATED)
def create_equipment(
    payload: EquipmentCreate, system: LoanSystem = Depends(get_system)
) -> EquipmentRead:
    with domain_errors():
        equipment = system.registry.add_equipment(payload.name, payload.category)
    return EquipmentRead.model_validate(equipment)


@router.get("/equipment", response_model=list[EquipmentRead])
def list_equipment(
    available: bool = Query(False), system: LoanSystem = Depends(get_system)
) -> list[EquipmentRead]:
    store = system.stores.equipment
    items = store.list_available() if available else store.list()
    return [EquipmentRead.model_validate(e) for e in items]


@router.get("/equipment/{equipment_id}", response_model=EquipmentRead)
def get_equipment(equipment_id: str, system: LoanSystem = Depends(get_system)) -> EquipmentRead:
    with domain_errors():
        equipment = system.stores.equipment.get(equipment_id)
    return EquipmentRead.model_validate(equipment)


# ---------------------------------------------------------------- requests


@router.post("/requests", response_model=LoanRequestRead, status_code=status.HTTP_201_CREATED)
def submit_request(
    payload: LoanRequestCreate, system: LoanSystem = Depends(get_system)
) -> LoanRequestRead:
    with domain_errors():
        request_id = system.review.submit_request(
            payload.equipment_id, payload.requester_id, payload.start_date, payload.end_date
        )
        request = system.stores.requests.get(request_id)
    return LoanRequestRead.model_validate(request)


@router.get("/requests/pending", response_model=list[LoanRequestRead])
def list_pending(system: LoanSystem = Depends(get_system)) -> list[LoanRequestRead]:
    return [LoanRequestRead.model_validate(r) for r in system.stores.requests.list_pending()]


@router.get("/requests/{request_id}", response_model=LoanRequestRead)
def get_request(request_id: str, system: LoanSystem = Depends(get_system)) -> LoanRequestRead:
    with domain_errors():
        request = system.stores.requests.get(request_id)
    return LoanRequestRead.model_validate(request)


@router.post("/requests/{request_id}/review", response_model=ReviewRead)
def review_request(
    request_id: str, payload: ReviewCreate, system: LoanSystem = Depends(get_system)
) -> ReviewRead:
    with domain_errors():
        outcome = system.review.review_request(request_id, payload.decision, payload.reviewer_id)
    return ReviewRead(
        request=LoanRequestRead.model_validate(outcome.request),
        loan=LoanRead.model_validate(outcome.loan) if outcome.loan else None,
    )


# ---------------------------------------------------------------- loans


@router.get("/loans/active", response_model=list[LoanRead])
def list_active_loans(system: LoanSystem = Depends(get_system)) -> list[LoanRead]:
    return [LoanRead.model_validate(loan) for loan in system.stores.loans.list_active()]


@router.get("/loans/{loan_id}", response_model=LoanRead)
def get_loan(loan_id: str, system: LoanSystem = Depends(get_system)) -> LoanRead:
    with domain_errors():
        loan = system.stores.loans.get(loan_id)
    return LoanRead.model_validate(loan)


@router.post("/loans/{loan_id}/return", response_model=LoanRead)
def return_loan(loan_id: str, system: LoanSystem = Depends(get_system)) -> LoanRead:
    with domain_errors():
        loan = system.lifecycle.return_loan(loan_id)
    return LoanRead.model_validate(loan)


@router.get("/loans/{loan_id}/fines", response_model=list[FineRead])
def list_fines(loan_id: str, system: LoanSystem = Depends(get_system)) -> list[FineRead]:
    with domain_errors():
        system.stores.loans.get(loan_id)
        fines = system.stores.fines.find_by_loan(loan_id)
    return [FineRead.model_validate(f) for f in fines]


@router.post("/overdue/sweep", response_model=SweepRead)
def run_sweep(
    payload: SweepCreate | None = None, system: LoanSystem = Depends(get_system)
) -> SweepRead:
    now = payload.now if payload else None
    report = system.sweep.run_daily_check(now)
    return SweepRead.model_validate(report)


# ---------------------------------------------------------------- fines


@router.post("/fines/{fine_id}/pay", response_model=FineRead)
def pay_fine(
    fine_id: str, payload: PaymentCreate, system: LoanSystem = Depends(get_system)
) -> FineRead:
    with domain_errors():
        fine = system.settlement.pay_fine(fine_id, payload.card_token)
    return FineRead.model_validate(fine)
