"""Unit tests for risk scoring logic"""

import pytest
from decimal import Decimal
from loan_engine.domain.models import AccountType, ApplicantProfile, RiskTier
from loan_engine.domain.scoring import (
    debt_to_income_points,
    determine_tier,
    loan_to_income_points,
    score_application,
)


def profile(is_verified=True, monthly_income=Decimal("5000"), monthly_debt=Decimal("0")):
    return ApplicantProfile(
        is_verified=is_verified,
        monthly_income=monthly_income,
        account_type=AccountType.INDIVIDUAL,
        monthly_debt=monthly_debt,
    )


@pytest.mark.parametrize(
    "ratio,points",
    [(Decimal("10"), 30), (Decimal("25"), 30), (Decimal("25.01"), 20), (Decimal("33"), 20), (Decimal("33.5"), -10)],
)
def test_debt_to_income_bands(ratio, points):
    assert debt_to_income_points(ratio) == points


@pytest.mark.parametrize("ratio,points", [(Decimal("2"), 10), (Decimal("3"), 10), (Decimal("4"), 0), (Decimal("5"), 0), (Decimal("5.1"), -15)])
def test_loan_to_income_bands(ratio, points):
    assert loan_to_income_points(ratio) == points


@pytest.mark.parametrize("score,tier", [(0, RiskTier.HIGH), (39, RiskTier.HIGH), (40, RiskTier.MEDIUM), (69, RiskTier.MEDIUM), (70, RiskTier.LOW), (100, RiskTier.LOW)])
def test_determine_tier(score, tier):
    assert determine_tier(score) == tier


def test_strong_applicant_is_low_risk():
    """20 verified + 30 DTI (20.7%) + 15 documents + 10 loan/income"""
    assessment = score_application(profile(), Decimal("1032.80"), Decimal("12000"), documents_complete=True)

    assert assessment.score == 75
    assert assessment.tier == RiskTier.LOW
    assert [f.code for f in assessment.factors] == [
        "verified_identity",
        "debt_to_income",
        "documents_complete",
        "loan_to_income",
    ]


def test_existing_debt_counts_towards_dti():
    """(500 + 1032.80) / 5000 = 30.7% -> +20 instead of +30"""
    assessment = score_application(
        profile(monthly_debt=Decimal("500")), Decimal("1032.80"), Decimal("12000"), documents_complete=True
    )

    assert assessment.score == 65
    assert assessment.tier == RiskTier.MEDIUM


def test_unverified_without_documents():
    assessment = score_application(profile(is_verified=False), Decimal("1032.80"), Decimal("12000"), False)

    assert assessment.score == 40
    assert assessment.tier == RiskTier.MEDIUM


def test_income_factors_skipped_without_income():
    assessment = score_application(profile(monthly_income=None), Decimal("1032.80"), Decimal("12000"), True)

    assert assessment.score == 35
    assert {f.code for f in assessment.factors} == {"verified_identity", "documents_complete"}


def test_score_is_clamped_at_zero():
    """Over-indebted and a loan far above annual income"""
    assessment = score_application(
        profile(is_verified=False, monthly_income=Decimal("1000")),
        Decimal("900"),
        Decimal("100000"),
        documents_complete=False,
    )

    assert assessment.score == 0
    assert assessment.tier == RiskTier.HIGH


def test_neutral_loan_to_income_is_not_reported():
    """48 000 against 12 000 annual income is 4x: no points, no factor"""
    assessment = score_application(profile(monthly_income=Decimal("1000")), Decimal("100"), Decimal("48000"), False)

    assert "loan_to_income" not in [f.code for f in assessment.factors]
