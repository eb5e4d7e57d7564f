"""SQLite persistence for the equipment loan stores (SQLAlchemy).

Each store call runs inside :meth:`SqlDatabase.session_scope`. When a
transaction is already open on the current thread the call joins that
session, so a multi-entity mutation commits or rolls back as one unit.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Type

from sqlalchemy import create_engine, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

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
from .models.tables import (
    Base,
    EquipmentRow,
    FineRow,
    LoanRequestRow,
    LoanRow,
    PersonRow,
    ReceiptRow,
)
from .repository import LoanStores, check_expected

logger = logging.getLogger(__name__)

_engine_cache: Dict[str, Engine] = {}


def get_engine(db_path: Path | str) -> Engine:
    """Return a cached engine for ``db_path``, creating tables on first use."""
    key = str(db_path)
    engine = _engine_cache.get(key)
    if engine is None:
        if key != ":memory:":
            Path(key).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{key}", connect_args={"check_same_thread": False}
        )
        Base.metadata.create_all(engine)
        _engine_cache[key] = engine
    return engine


def dispose_engines() -> None:
    for engine in _engine_cache.values():
        engine.dispose()
    _engine_cache.clear()


def _as_dict(row: Any) -> Dict[str, object]:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


class SqlDatabase:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._local = threading.local()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        session = getattr(self._local, "session", None)
        if session is not None:
            yield session
            return
        session = self._session_factory()
        self._local.session = session
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            self._local.session = None
            session.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self.session_scope():
            yield


class _SqlTable:
    entity = "record"
    row_type: Type[Any] = Base
    record_type: Type[Any] = object

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db

    def _to_record(self, row: Any) -> Any:
        return self.record_type.from_row(_as_dict(row))

    def _insert(self, record: Any) -> Any:
        with self._db.session_scope() as session:
            if session.get(self.row_type, record.id) is not None:
                raise ValidationError(f"Duplicate {self.entity} id: {record.id}")
            session.add(self.row_type(**record.to_row()))
            try:
                session.flush()
            except IntegrityError as exc:
                raise ValidationError(f"Cannot store {self.entity}: {exc.orig}") from exc
        return record

    def get(self, record_id: str) -> Any:
        with self._db.session_scope() as session:
            row = session.get(self.row_type, record_id)
            if row is None:
                raise NotFoundError(self.entity, record_id)
            return self._to_record(row)

    def _select(self, *criteria: Any, order_by: Any = None) -> List[Any]:
        stmt = select(self.row_type).where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        with self._db.session_scope() as session:
            return [self._to_record(row) for row in session.scalars(stmt)]

    def _compare_and_set(
        self, record_id: str, expected: Optional[str], values: Dict[str, object]
    ) -> Any:
        """Write ``values`` only while the stored status still equals ``expected``."""
        stmt = update(self.row_type).where(self.row_type.id == record_id)
        if expected is not None:
            stmt = stmt.where(self.row_type.status == expected)
        with self._db.session_scope() as session:
            result = session.execute(
                stmt.values(**values).execution_options(synchronize_session=False)
            )
            session.expire_all()
            if result.rowcount == 0:
                current = self.get(record_id).status
                check_expected(self.entity, record_id, current, expected)
            return self.get(record_id)


class SqlPersonStore(_SqlTable):
    entity = "person"
    row_type = PersonRow
    record_type = Person

    def add(self, person: Person) -> Person:
        if self.find_by_email(person.email) is not None:
            raise ValidationError(f"Email already registered: {person.email}")
        return self._insert(person)

    def find_by_email(self, email: str) -> Optional[Person]:
        matches = self._select(func.lower(PersonRow.email) == email.strip().lower())
        return matches[0] if matches else None

    def list(self) -> List[Person]:
        return self._select(order_by=PersonRow.name)


class SqlEquipmentStore(_SqlTable):
    entity = "equipment"
    row_type = EquipmentRow
    record_type = Equipment

    def add(self, equipment: Equipment) -> Equipment:
        return self._insert(equipment)

    def list(self) -> List[Equipment]:
        return self._select(order_by=EquipmentRow.name)

    def list_available(self) -> List[Equipment]:
        return self._select(
            EquipmentRow.status == EquipmentStatus.AVAILABLE.value, order_by=EquipmentRow.name
        )

    def update_status(
        self,
        equipment_id: str,
        status: EquipmentStatus,
        *,
        expected: Optional[EquipmentStatus] = None,
    ) -> Equipment:
        return self._compare_and_set(
            equipment_id,
            expected.value if expected else None,
            {"status": status.value},
        )


class SqlLoanRequestStore(_SqlTable):
    entity = "loan request"
    row_type = LoanRequestRow
    record_type = LoanRequest

    def add(self, request: LoanRequest) -> LoanRequest:
        return self._insert(request)

    def list_pending(self) -> List[LoanRequest]:
        return self._select(
            LoanRequestRow.status == RequestStatus.PENDING.value,
            order_by=LoanRequestRow.created_at,
        )

    def list_for_equipment(self, equipment_id: str) -> List[LoanRequest]:
        return self._select(LoanRequestRow.equipment_id == equipment_id)

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
        return self._compare_and_set(
            request_id,
            expected.value if expected else None,
            {
                "status": status.value,
                "reviewed_at": reviewed_at,
                "reviewer_id": reviewer_id,
                "loan_id": loan_id,
            },
        )


class SqlLoanStore(_SqlTable):
    entity = "loan"
    row_type = LoanRow
    record_type = Loan

    def add(self, loan: Loan) -> Loan:
        return self._insert(loan)

    def list_active(self) -> List[Loan]:
        return self._select(
            LoanRow.status.in_([s.value for s in OPEN_LOAN_STATUSES]),
            order_by=LoanRow.due_date,
        )

    def list_for_equipment(self, equipment_id: str) -> List[Loan]:
        return self._select(LoanRow.equipment_id == equipment_id)

    def update_status(
        self, loan_id: str, status: LoanStatus, *, expected: Optional[LoanStatus] = None
    ) -> Loan:
        return self._compare_and_set(
            loan_id, expected.value if expected else None, {"status": status.value}
        )

    def close(self, loan_id: str, returned_at: datetime) -> Loan:
        stmt = (
            update(LoanRow)
            .where(LoanRow.id == loan_id, LoanRow.status != LoanStatus.CLOSED.value)
            .values(status=LoanStatus.CLOSED.value, returned_at=returned_at)
            .execution_options(synchronize_session=False)
        )
        with self._db.session_scope() as session:
            result = session.execute(stmt)
            session.expire_all()
            if result.rowcount == 0:
                current = self.get(loan_id)
                raise InvalidStateError(
                    f"Loan {loan_id} is already closed", current=current.status
                )
            return self.get(loan_id)


class SqlFineStore(_SqlTable):
    entity = "fine"
    row_type = FineRow
    record_type = Fine

    def add(self, fine: Fine) -> Fine:
        return self._insert(fine)

    def find_by_loan(self, loan_id: str) -> List[Fine]:
        return self._select(FineRow.loan_id == loan_id, order_by=FineRow.created_at)

    def list_unpaid(self) -> List[Fine]:
        return self._select(FineRow.status == FineStatus.UNPAID.value)

    def mark_paid(self, fine_id: str, receipt_ref: str, paid_at: datetime) -> Fine:
        return self._compare_and_set(
            fine_id,
            FineStatus.UNPAID.value,
            {"status": FineStatus.PAID.value, "paid_at": paid_at, "receipt_ref": receipt_ref},
        )


class SqlReceiptStore(_SqlTable):
    entity = "receipt"
    row_type = ReceiptRow
    record_type = Receipt

    def add(self, receipt: Receipt) -> Receipt:
        return self._insert(receipt)

    def find_by_fine(self, fine_id: str) -> List[Receipt]:
        return self._select(ReceiptRow.fine_id == fine_id)


def sqlite_stores(db_path: Path | str) -> LoanStores:
    db = SqlDatabase(get_engine(db_path))
    return LoanStores(
        people=SqlPersonStore(db),
        equipment=SqlEquipmentStore(db),
        requests=SqlLoanRequestStore(db),
        loans=SqlLoanStore(db),
        fines=SqlFineStore(db),
        receipts=SqlReceiptStore(db),
        transaction=db.transaction,
        backend="sqlite",
    )


__all__ = ["SqlDatabase", "get_engine", "dispose_engines", "sqlite_stores"]
