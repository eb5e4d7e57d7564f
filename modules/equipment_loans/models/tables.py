"""SQLAlchemy tables backing the SQLite loan stores."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class PersonRow(Base):
    __tablename__ = "people"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    role = Column(String, nullable=False)


class EquipmentRow(Base):
    __tablename__ = "equipment"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    status = Column(String, nullable=False, default="Available")


class LoanRequestRow(Base):
    __tablename__ = "loan_requests"

    id = Column(String, primary_key=True)
    requester_id = Column(String, ForeignKey("people.id"), nullable=False)
    equipment_id = Column(String, ForeignKey("equipment.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)
    reviewed_at = Column(DateTime)
    reviewer_id = Column(String)
    loan_id = Column(String)


class LoanRow(Base):
    __tablename__ = "loans"

    id = Column(String, primary_key=True)
    requester_id = Column(String, ForeignKey("people.id"), nullable=False)
    equipment_id = Column(String, ForeignKey("equipment.id"), nullable=False)
    request_id = Column(String, ForeignKey("loan_requests.id"))
    start_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)
    returned_at = Column(DateTime)


class FineRow(Base):
    __tablename__ = "fines"

    id = Column(String, primary_key=True)
    loan_id = Column(String, ForeignKey("loans.id"), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)
    paid_at = Column(DateTime)
    receipt_ref = Column(String)


class ReceiptRow(Base):
    __tablename__ = "receipts"

    id = Column(String, primary_key=True)
    fine_id = Column(String, ForeignKey("fines.id"), nullable=False)
    reference = Column(String, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String, nullable=False)
    paid_at = Column(DateTime, nullable=False)


Index("idx_loan_requests_equipment", LoanRequestRow.equipment_id, LoanRequestRow.status)
Index("idx_loans_status", LoanRow.status)
Index("idx_fines_loan", FineRow.loan_id)
