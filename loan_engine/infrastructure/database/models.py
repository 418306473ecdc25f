"""SQLAlchemy ORM models for the loan origination and servicing aggregates"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from loan_engine.domain.models import (
    AccountType,
    ApplicationStatus,
    ContractStatus,
    DocumentType,
    PaymentStatus,
    VerificationStatus,
)

Base = declarative_base()

Money = Numeric(14, 2)
Rate = Numeric(6, 3)


class LoanType(Base):
    """Loan product with amount/duration bounds and eligibility rules"""

    __tablename__ = "loan_type"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(64), nullable=False, unique=True)
    name = Column(Text, nullable=False)
    min_amount = Column(Money, nullable=False)
    max_amount = Column(Money, nullable=False)
    min_duration_months = Column(Integer, nullable=False)
    max_duration_months = Column(Integer, nullable=False)
    base_interest_rate = Column(Rate, nullable=False)
    processing_fee_percent = Column(Rate, nullable=True)
    allowed_account_types = Column(JSON, nullable=False, default=list)
    required_documents = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    applications = relationship("LoanApplication", back_populates="loan_type")


class Borrower(Base):
    """Identity collaborator snapshot: the only borrower fields the engine reads"""

    __tablename__ = "borrower"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    account_type = Column(Enum(AccountType, native_enum=False), nullable=False, default=AccountType.INDIVIDUAL)
    is_verified = Column(Boolean, nullable=False, default=False)
    monthly_income = Column(Money, nullable=True)
    monthly_debt = Column(Money, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    applications = relationship("LoanApplication", back_populates="borrower")


class LoanApplication(Base):
    """One credit request and its review lifecycle"""

    __tablename__ = "loan_application"

    id = Column(Integer, primary_key=True, autoincrement=True)
    borrower_id = Column(Integer, ForeignKey("borrower.id"), nullable=False, index=True)
    loan_type_id = Column(Integer, ForeignKey("loan_type.id"), nullable=False)
    principal = Column(Money, nullable=False)
    term_months = Column(Integer, nullable=False)
    annual_rate = Column(Rate, nullable=False)
    monthly_payment = Column(Money, nullable=True)
    total_repayable = Column(Money, nullable=True)
    purpose = Column(Text, nullable=True)
    status = Column(
        Enum(ApplicationStatus, native_enum=False, length=32),
        nullable=False,
        default=ApplicationStatus.DRAFT,
        index=True,
    )
    snapshot = Column(JSON, nullable=False, default=dict)  # personal/financial key-value data
    requested_documents = Column(JSON, nullable=False, default=list)
    rejection_reason = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Text, nullable=True)
    approved_by = Column(Text, nullable=True)
    rejected_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    borrower = relationship("Borrower", back_populates="applications")
    loan_type = relationship("LoanType", back_populates="applications")
    documents = relationship(
        "ApplicationDocument",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationDocument.id",
    )
    contract = relationship("LoanContract", back_populates="application", uselist=False)


class ApplicationDocument(Base):
    """Supporting document reference; file bytes live in the document store"""

    __tablename__ = "application_document"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer, ForeignKey("loan_application.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_type = Column(Enum(DocumentType, native_enum=False, length=32), nullable=False)
    storage_ref = Column(Text, nullable=False)
    status = Column(
        Enum(VerificationStatus, native_enum=False, length=16),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    verified_by = Column(Text, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    expires_on = Column(Date, nullable=True)  # last day the document is valid
    uploaded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    application = relationship("LoanApplication", back_populates="documents")


class LoanContract(Base):
    """Binding agreement generated from exactly one approved application"""

    __tablename__ = "loan_contract"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("loan_application.id"), nullable=False, unique=True)
    contract_number = Column(String(64), nullable=False, unique=True)
    principal = Column(Money, nullable=False)
    annual_rate = Column(Rate, nullable=False)
    term_months = Column(Integer, nullable=False)
    monthly_payment = Column(Money, nullable=False)
    total_amount = Column(Money, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(
        Enum(ContractStatus, native_enum=False, length=16),
        nullable=False,
        default=ContractStatus.GENERATED,
        index=True,
    )
    remaining_principal = Column(Money, nullable=False, default=0)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    signed_by = Column(Text, nullable=True)
    suspended_at = Column(DateTime(timezone=True), nullable=True)
    suspension_reason = Column(Text, nullable=True)
    early_repayment_date = Column(Date, nullable=True)
    early_repayment_amount = Column(Money, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    application = relationship("LoanApplication", back_populates="contract")
    payments = relationship(
        "Payment",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="Payment.sequence",
    )


class Payment(Base):
    """One scheduled installment of a contract"""

    __tablename__ = "payment"
    __table_args__ = (UniqueConstraint("contract_id", "sequence", name="uq_payment_contract_sequence"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    contract_id = Column(
        Integer, ForeignKey("loan_contract.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    amount = Column(Money, nullable=False)
    principal = Column(Money, nullable=False)
    interest = Column(Money, nullable=False)
    remaining_principal = Column(Money, nullable=False)
    status = Column(
        Enum(PaymentStatus, native_enum=False, length=16),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    paid_at = Column(DateTime(timezone=True), nullable=True)
    payment_method = Column(Text, nullable=True)
    recorded_by = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    contract = relationship("LoanContract", back_populates="payments")


class AuditEntry(Base):
    """Lifecycle transition trail with the acting user and optional reason"""

    __tablename__ = "audit_entry"

    id = Column(Integer, primary_key=True, autoincrement=True)
    aggregate_type = Column(String(32), nullable=False)
    aggregate_id = Column(Integer, nullable=False, index=True)
    from_status = Column(String(32), nullable=True)
    to_status = Column(String(32), nullable=False)
    actor = Column(Text, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
