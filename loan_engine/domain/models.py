"""Domain models - pure Python dataclasses and enums representing business entities"""

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional


class ApplicationStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    DOCUMENTS_REQUESTED = "DOCUMENTS_REQUESTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CONTRACT_GENERATED = "CONTRACT_GENERATED"
    DISBURSED = "DISBURSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ContractStatus(str, enum.Enum):
    GENERATED = "GENERATED"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    LATE = "LATE"
    MISSED = "MISSED"
    CANCELLED = "CANCELLED"


class VerificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class AccountType(str, enum.Enum):
    INDIVIDUAL = "INDIVIDUAL"
    BUSINESS = "BUSINESS"


class DocumentType(str, enum.Enum):
    ID_CARD = "ID_CARD"
    PASSPORT = "PASSPORT"
    PROOF_INCOME = "PROOF_INCOME"
    BANK_STATEMENT = "BANK_STATEMENT"
    PROOF_ADDRESS = "PROOF_ADDRESS"
    BUSINESS_REGISTRATION = "BUSINESS_REGISTRATION"
    BALANCE_SHEET = "BALANCE_SHEET"
    TAX_RETURN = "TAX_RETURN"
    EMPLOYMENT_CONTRACT = "EMPLOYMENT_CONTRACT"
    OTHER = "OTHER"


IDENTITY_DOCUMENTS = frozenset({DocumentType.ID_CARD, DocumentType.PASSPORT})


class RiskTier(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass
class Installment:
    """Single installment of an amortization schedule"""

    sequence: int
    due_date: date
    amount: Decimal
    principal: Decimal
    interest: Decimal
    remaining_principal: Decimal  # balance after this installment


@dataclass
class LoanQuote:
    """Headline figures for a loan offer"""

    principal: Decimal
    annual_rate: Decimal
    term_months: int
    monthly_payment: Decimal
    total_amount: Decimal
    total_interest: Decimal
    processing_fee: Decimal


@dataclass
class BorrowingCapacity:
    """Maximum loan a borrower can service at a given debt ratio"""

    max_borrow_amount: Decimal
    max_monthly_payment: Decimal
    available_income: Decimal
    debt_to_income_percent: Decimal


@dataclass
class PayoffQuote:
    """Early repayment breakdown as of a payoff date"""

    payoff_date: date
    principal: Decimal
    interest: Decimal
    total: Decimal
    installments_elapsed: int
    installments_remaining: int
    interest_saved: Decimal


@dataclass
class EarlyPaymentImpact:
    """Effect of paying a fixed extra amount on top of every installment"""

    extra_payment: Decimal
    original_term_months: int
    new_term_months: int
    months_saved: int
    original_total_cost: Decimal
    new_total_cost: Decimal
    interest_saved: Decimal


@dataclass
class ApprovalTerms:
    """Reviewer overrides applied at approval; None keeps the requested value"""

    principal: Optional[Decimal] = None
    annual_rate: Optional[Decimal] = None
    term_months: Optional[int] = None


@dataclass
class LoanBounds:
    """Amount and duration limits of a loan type"""

    min_amount: Decimal
    max_amount: Decimal
    min_term_months: int
    max_term_months: int


@dataclass
class ApplicantProfile:
    """Identity collaborator fields the engine reads"""

    is_verified: bool
    monthly_income: Optional[Decimal]
    account_type: AccountType
    monthly_debt: Decimal = Decimal("0")


@dataclass
class DocumentSummary:
    """Document completeness signal for one application"""

    required: List[DocumentType]
    attached: int
    verified: int
    pending: int
    missing: List[DocumentType]
    complete: bool


@dataclass
class RiskFactor:
    """One scoring rule that contributed to a risk score"""

    code: str
    points: int


@dataclass
class RiskAssessment:
    """Output of risk scoring"""

    score: int
    tier: RiskTier
    factors: List[RiskFactor] = field(default_factory=list)
