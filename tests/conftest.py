"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from loan_engine.api.main import create_app
from loan_engine.api.dependencies import get_notifier
from loan_engine.domain.models import AccountType, DocumentType
from loan_engine.infrastructure.database.models import Base, Borrower, LoanType
from loan_engine.infrastructure.database.session import get_db
from loan_engine.services.applications import ApplicationService
from loan_engine.services.contracts import ContractService
from loan_engine.services.documents import DocumentGate
from loan_engine.services.notifications import Notifier
from loan_engine.services.servicing import ServicingService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

GENERATED_ON = date(2026, 1, 15)  # first installment due 2026-02-01
ACTOR = "reviewer-1"
APPLICANT = "applicant-1"


class RecordingNotifier(Notifier):
    """Collects published events for assertions"""

    def __init__(self):
        self.events = []

    def notify(self, event_kind, payload):
        self.events.append((event_kind, payload))

    def kinds(self):
        return [kind for kind, _ in self.events]


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(db: Session, notifier: RecordingNotifier) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    return TestClient(app)


@pytest.fixture
def loan_type(db: Session) -> LoanType:
    """Personal loan: 1 000 - 50 000 over 6 - 84 months at 6%"""
    loan_type = LoanType(
        slug="personal",
        name="Personal loan",
        min_amount=Decimal("1000.00"),
        max_amount=Decimal("50000.00"),
        min_duration_months=6,
        max_duration_months=84,
        base_interest_rate=Decimal("6.000"),
        processing_fee_percent=Decimal("1.500"),
        allowed_account_types=[AccountType.INDIVIDUAL.value],
        required_documents=[DocumentType.ID_CARD.value, DocumentType.PROOF_INCOME.value],
        is_active=True,
    )
    db.add(loan_type)
    db.commit()
    return loan_type


@pytest.fixture
def borrower(db: Session) -> Borrower:
    borrower = Borrower(
        email="jane@example.com",
        account_type=AccountType.INDIVIDUAL,
        is_verified=False,
        monthly_income=Decimal("5000.00"),
        monthly_debt=Decimal("500.00"),
    )
    db.add(borrower)
    db.commit()
    return borrower


@pytest.fixture
def applications(db: Session, notifier: RecordingNotifier) -> ApplicationService:
    return ApplicationService(db, notifier)


@pytest.fixture
def documents(db: Session, notifier: RecordingNotifier) -> DocumentGate:
    return DocumentGate(db, notifier)


@pytest.fixture
def contracts(db: Session, notifier: RecordingNotifier) -> ContractService:
    return ContractService(db, notifier)


@pytest.fixture
def servicing(db: Session, notifier: RecordingNotifier) -> ServicingService:
    return ServicingService(db, notifier)


@pytest.fixture
def draft(applications: ApplicationService, borrower: Borrower, loan_type: LoanType):
    """12 000 over 12 months at the loan type's 6% base rate"""
    return applications.create(
        borrower_id=borrower.id,
        loan_type_id=loan_type.id,
        principal=Decimal("12000.00"),
        term_months=12,
        purpose="Home renovation",
        actor=APPLICANT,
        snapshot={"employer": "Acme"},
    )


@pytest.fixture
def submitted(applications: ApplicationService, draft):
    return applications.submit(draft.id, APPLICANT)


@pytest.fixture
def approved(applications: ApplicationService, submitted):
    """Approved application with its generated contract"""
    return applications.approve(submitted.id, ACTOR, generated_on=GENERATED_ON)


@pytest.fixture
def active_contract(contracts: ContractService, approved):
    return contracts.sign(approved.contract.id, APPLICANT)
