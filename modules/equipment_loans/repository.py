"""Entity stores for the equipment loan services.

Every store exposes ``add``, ``get`` (raising :class:`NotFoundError`) and the
status updates its owning service needs. Status updates accept an optional
``expected`` status and refuse to write when the stored status differs, so a
check-then-act sequence that lost a race surfaces :class:`InvalidStateError`
instead of overwriting.

Two implementations share these contracts: the in-memory stores below (tests,
demos) and the SQLAlchemy stores in :mod:`.sql_repository`. Pick one with
:func:`build_stores`.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import (
    Callable,
    ContextManager,
    Dict,
    Generic,
    Iterator,
    List,
    Optional,
    Protocol,
    TypeVar,
)

from utils.app_settings import LoanSettings

from .exceptions import InvalidStateError, NotFoundError, ValidationError
from .models import (
    Equipment,
    EquipmentStatus,
    Fine,
    FineStatus,
    Loan,
    LoanRequest,
    LoanStatus,
    Person,
    Receipt,
    RequestStatus,
)
from .models.enums import OPEN_LOAN_STATUSES

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Store contracts
# ---------------------------------------------------------------------------


class PersonStore(Protocol):
    def add(self, person: Person) -> Person: ...
    def get(self, person_id: str) -> Person: ...
    def find_by_email(self, email: str) -> Optional[Person]: ...
    def list(self) -> List[Person]: ...


class EquipmentStore(Protocol):
    def add(self, equipment: Equipment) -> Equipment: ...
    def get(self, equipment_id: str) -> Equipment: ...
    def list(self) -> List[Equipment]: ...
    def list_available(self) -> List[Equipment]: ...
    def update_status(
        self,
        equipment_id: str,
        status: EquipmentStatus,
        *,
        expected: Optional[EquipmentStatus] = None,
    ) -> Equipment: ...


class LoanRequestStore(Protocol):
    def add(self, request: LoanRequest) -> LoanRequest: ...
    def get(self, request_id: str) -> LoanRequest: ...
    def list_pending(self) -> List[LoanRequest]: ...
    def list_for_equipment(self, equipment_id: str) -> List[LoanRequest]: ...
    def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        *,
        expected: Optional[RequestStatus] = None,
        reviewed_at: Optional[datetime] = None,
        reviewer_id: Optional[str] = None,
        loan_id: Optional[str] = None,
    ) -> LoanRequest: ...


class LoanStore(Protocol):
    def add(self, loan: Loan) -> Loan: ...
    def get(self, loan_id: str) -> Loan: ...
    def list_active(self) -> List[Loan]: ...
    def list_for_equipment(self, equipment_id: str) -> List[Loan]: ...
    def update_status(
        self, loan_id: str, status: LoanStatus, *, expected: Optional[LoanStatus] = None
    ) -> Loan: ...
    def close(self, loan_id: str, returned_at: datetime) -> Loan: ...


class FineStore(Protocol):
    def add(self, fine: Fine) -> Fine: ...
    def get(self, fine_id: str) -> Fine: ...
    def find_by_loan(self, loan_id: str) -> List[Fine]: ...
    def list_unpaid(self) -> List[Fine]: ...
    def mark_paid(self, fine_id: str, receipt_ref: str, paid_at: datetime) -> Fine: ...


class ReceiptStore(Protocol):
    def add(self, receipt: Receipt) -> Receipt: ...
    def find_by_fine(self, fine_id: str) -> List[Receipt]: ...


@dataclass
class LoanStores:
    """The full set of stores plus the transaction scope that spans them."""

    people: PersonStore
    equipment: EquipmentStore
    requests: LoanRequestStore
    loans: LoanStore
    fines: FineStore
    receipts: ReceiptStore
    transaction: Callable[[], ContextManager[None]]
    backend: str = "memory"


def check_expected(entity: str, entity_id: str, current: object, expected: object) -> None:
    if expected is not None and current != expected:
        raise InvalidStateError(
            f"{entity} {entity_id} is {current}, expected {expected}", current=current
        )


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class MemoryDatabase:
    """Dictionary tables guarded by one re-entrant lock.

    ``transaction`` snapshots every table on entry to the outermost scope and
    restores the snapshot if the block raises.
    """

    TABLES = ("people", "equipment", "requests", "loans", "fines", "receipts")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.tables: Dict[str, Dict[str, object]] = {name: {} for name in self.TABLES}
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self.lock:
            outermost = self._depth == 0
            snapshot = (
                {name: dict(rows) for name, rows in self.tables.items()} if outermost else None
            )
            self._depth += 1
            try:
                yield
            except Exception:
                if snapshot is not None:
                    logger.debug("[memory] rolling back transaction")
                    for name, rows in snapshot.items():
                        self.tables[name].clear()
                        self.tables[name].update(rows)
                raise
            finally:
                self._depth -= 1


class _MemoryTable(Generic[T]):
    entity = "record"
    table = ""

    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    @property
    def _rows(self) -> Dict[str, T]:
        return self._db.tables[self.table]  # type: ignore[return-value]

    def _insert(self, record: T) -> T:
        record_id = record.id  # type: ignore[attr-defined]
        with self._db.lock:
            if record_id in self._rows:
                raise ValidationError(f"Duplicate {self.entity} id: {record_id}")
            self._rows[record_id] = replace(record)
        return replace(record)

    def get(self, record_id: str) -> T:
        with self._db.lock:
            record = self._rows.get(record_id)
            if record is None:
                raise NotFoundError(self.entity, record_id)
            return replace(record)

    def _select(self, predicate: Callable[[T], bool]) -> List[T]:
        with self._db.lock:
            return [replace(r) for r in self._rows.values() if predicate(r)]

    def _update(self, record_id: str, **changes: object) -> T:
        with self._db.lock:
            current = self._rows.get(record_id)
            if current is None:
                raise NotFoundError(self.entity, record_id)
            updated = replace(current, **changes)
            self._rows[record_id] = updated
            return replace(updated)


class MemoryPersonStore(_MemoryTable[Person]):
    entity = "person"
    table = "people"

    def add(self, person: Person) -> Person:
        with self._db.lock:
            if self.find_by_email(person.email) is not None:
                raise ValidationError(f"Email already registered: {person.email}")
            return self._insert(person)

    def find_by_email(self, email: str) -> Optional[Person]:
        matches = self._select(lambda p: p.email.lower() == email.strip().lower())
        return matches[0] if matches else None

    def list(self) -> List[Person]:
        return self._select(lambda p: True)


class MemoryEquipmentStore(_MemoryTable[Equipment]):
    entity = "equipment"
    table = "equipment"

    def add(self, equipment: Equipment) -> Equipment:
        return self._insert(equipment)

    def list(self) -> List[Equipment]:
        return self._select(lambda e: True)

    def list_available(self) -> List[Equipment]:
        return self._select(lambda e: e.status is EquipmentStatus.AVAILABLE)

    def update_status(
        self,
        equipment_id: str,
        status: EquipmentStatus,
        *,
        expected: Optional[EquipmentStatus] = None,
    ) -> Equipment:
        with self._db.lock:
            check_expected(self.entity, equipment_id, self.get(equipment_id).status, expected)
            return self._update(equipment_id, status=status)


class MemoryLoanRequestStore(_MemoryTable[LoanRequest]):
    entity = "loan request"
    table = "requests"

    def add(self, request: LoanRequest) -> LoanRequest:
        return self._insert(request)

    def list_pending(self) -> List[LoanRequest]:
        pending = self._select(lambda r: r.status is RequestStatus.PENDING)
        return sorted(pending, key=lambda r: r.created_at)

    def list_for_equipment(self, equipment_id: str) -> List[LoanRequest]:
        return self._select(lambda r: r.equipment_id == equipment_id)

    def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        *,
        expected: Optional[RequestStatus] = None,
        reviewed_at: Optional[datetime] = None,
        reviewer_id: Optional[str] = None,
        loan_id: Optional[str] = None,
    ) -> LoanRequest:
        with self._db.lock:
            check_expected(self.entity, request_id, self.get(request_id).status, expected)
            return self._update(
                request_id,
                status=status,
                reviewed_at=reviewed_at,
                reviewer_id=reviewer_id,
                loan_id=loan_id,
            )


class MemoryLoanStore(_MemoryTable[Loan]):
    entity = "loan"
    table = "loans"

    def add(self, loan: Loan) -> Loan:
        return self._insert(loan)

    def list_active(self) -> List[Loan]:
        active = self._select(lambda l: l.status in OPEN_LOAN_STATUSES)
        return sorted(active, key=lambda l: (l.due_date, l.id))

    def list_for_equipment(self, equipment_id: str) -> List[Loan]:
        return self._select(lambda l: l.equipment_id == equipment_id)

    def update_status(
        self, loan_id: str, status: LoanStatus, *, expected: Optional[LoanStatus] = None
    ) -> Loan:
        with self._db.lock:
            check_expected(self.entity, loan_id, self.get(loan_id).status, expected)
            return self._update(loan_id, status=status)

    def close(self, loan_id: str, returned_at: datetime) -> Loan:
        with self._db.lock:
            current = self.get(loan_id)
            if current.status is LoanStatus.CLOSED:
                raise InvalidStateError(f"Loan {loan_id} is already closed", current=current.status)
            return self._update(loan_id, status=LoanStatus.CLOSED, returned_at=returned_at)


class MemoryFineStore(_MemoryTable[Fine]):
    entity = "fine"
    table = "fines"

    def add(self, fine: Fine) -> Fine:
        return self._insert(fine)

    def find_by_loan(self, loan_id: str) -> List[Fine]:
        fines = self._select(lambda f: f.loan_id == loan_id)
        return sorted(fines, key=lambda f: f.created_at)

    def list_unpaid(self) -> List[Fine]:
        return self._select(lambda f: f.status is FineStatus.UNPAID)

    def mark_paid(self, fine_id: str, receipt_ref: str, paid_at: datetime) -> Fine:
        with self._db.lock:
            check_expected(self.entity, fine_id, self.get(fine_id).status, FineStatus.UNPAID)
            return self._update(
                fine_id, status=FineStatus.PAID, paid_at=paid_at, receipt_ref=receipt_ref
            )


class MemoryReceiptStore(_MemoryTable[Receipt]):
    entity = "receipt"
    table = "receipts"

    def add(self, receipt: Receipt) -> Receipt:
        return self._insert(receipt)

    def find_by_fine(self, fine_id: str) -> List[Receipt]:
        return self._select(lambda r: r.fine_id == fine_id)


def memory_stores(db: Optional[MemoryDatabase] = None) -> LoanStores:
    db = db or MemoryDatabase()
    return LoanStores(
        people=MemoryPersonStore(db),
        equipment=MemoryEquipmentStore(db),
        requests=MemoryLoanRequestStore(db),
        loans=MemoryLoanStore(db),
        fines=MemoryFineStore(db),
        receipts=MemoryReceiptStore(db),
        transaction=db.transaction,
        backend="memory",
    )


def build_stores(settings: LoanSettings) -> LoanStores:
    """Return the store implementation named by ``settings.storage``."""

    if settings.storage == "sqlite":
        from .sql_repository import sqlite_stores

        logger.info("[loans] using SQLite stores at %s", settings.db_path)
        return sqlite_stores(settings.db_path)
    logger.info("[loans] using in-memory stores")
    return memory_stores()


__all__ = [
    "PersonStore",
    "EquipmentStore",
    "LoanRequestStore",
    "LoanStore",
    "FineStore",
    "ReceiptStore",
    "LoanStores",
    "MemoryDatabase",
    "memory_stores",
    "build_stores",
]
