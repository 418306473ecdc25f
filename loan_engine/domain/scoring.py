"""Risk scoring engine - advisory score shown to human reviewers"""

from decimal import Decimal
from typing import List

from loan_engine.domain.amortization import as_decimal
from loan_engine.domain.models import ApplicantProfile, RiskAssessment, RiskFactor, RiskTier

SCORE_MIN = 0
SCORE_MAX = 100

VERIFIED_IDENTITY_POINTS = 20
DOCUMENTS_COMPLETE_POINTS = 15


def debt_to_income_points(ratio_percent: Decimal) -> int:
    """
    Debt-to-income bands (monthly obligations incl. this loan / monthly income):
    - <= 25%: +30 (excellent)
    - <= 33%: +20 (acceptable)
    - >  33%: -10 (over-indebted)
    """
    if ratio_percent <= 25:
        return 30
    elif ratio_percent <= 33:
        return 20
    else:
        return -10


def loan_to_income_points(ratio: Decimal) -> int:
    """
    Loan amount vs annual income:
    - <= 3x: +10
    - >  5x: -15
    - in between: neutral
    """
    if ratio <= 3:
        return 10
    elif ratio > 5:
        return -15
    return 0


def determine_tier(score: int) -> RiskTier:
    """
    Map a clamped score to a risk tier:
    - 0 - 39:   HIGH
    - 40 - 69:  MEDIUM
    - 70 - 100: LOW
    """
    if score >= 70:
        return RiskTier.LOW
    elif score >= 40:
        return RiskTier.MEDIUM
    return RiskTier.HIGH


def score_application(
    applicant: ApplicantProfile,
    monthly_payment: Decimal,
    principal: Decimal,
    documents_complete: bool,
) -> RiskAssessment:
    """
    Deterministic weighted sum of risk factors, clamped to [0, 100].

    Income-based factors are skipped when the monthly income is unknown or zero.
    """
    factors: List[RiskFactor] = []

    if applicant.is_verified:
        factors.append(RiskFactor("verified_identity", VERIFIED_IDENTITY_POINTS))

    income = as_decimal(applicant.monthly_income or 0)
    if income > 0:
        obligations = as_decimal(applicant.monthly_debt or 0) + as_decimal(monthly_payment)
        dti_percent = obligations / income * 100
        factors.append(RiskFactor("debt_to_income", debt_to_income_points(dti_percent)))

    if documents_complete:
        factors.append(RiskFactor("documents_complete", DOCUMENTS_COMPLETE_POINTS))

    if income > 0:
        loan_ratio = as_decimal(principal) / (income * 12)
        points = loan_to_income_points(loan_ratio)
        if points:
            factors.append(RiskFactor("loan_to_income", points))

    raw_score = sum(f.points for f in factors)
    score = max(SCORE_MIN, min(SCORE_MAX, raw_score))

    return RiskAssessment(score=score, tier=determine_tier(score), factors=factors)
