"""Soft-scoring tests"""
import pytest
from pydantic import ValidationError

from induction_engine.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights
from induction_engine.models.trainset import (
    BrandingFact,
    MileageFact,
    StablingConstraints,
    StablingFact,
)
from induction_engine.services.scoring import score


def test_high_branding_completed_cleaning_scores_40(make_fact):
    fact = make_fact(branding_priority="HIGH", cleaning_status="COMPLETED", mileage_variance=200)

    result = score(fact, weights=DEFAULT_WEIGHTS)

    assert result.score == 40
    assert result.reasons == ["branding priority HIGH", "cleaning completed"]


def test_branding_fact_overrides_fact_priority(make_fact):
    fact = make_fact(branding_priority="LOW")
    branding = BrandingFact(trainset_id="T-001", priority="MEDIUM", remaining_hours=40)

    result = score(fact, branding=branding)

    assert result.score == 15 + 10 + 10
    assert result.reasons[:2] == ["branding priority MEDIUM", "branding hours running low"]


def test_remaining_hours_at_threshold_gets_no_bonus(make_fact):
    branding = BrandingFact(trainset_id="T-001", priority="LOW", remaining_hours=100)
    result = score(make_fact(), branding=branding)
    assert "branding hours running low" not in result.reasons


@pytest.mark.parametrize(
    "variance,points,reason",
    [
        (-12000, 20, "high mileage variance"),
        (10001, 20, "high mileage variance"),
        (10000, 10, "moderate mileage variance"),
        (-5500, 10, "moderate mileage variance"),
        (5000, 0, None),
    ],
)
def test_mileage_variance_bands(make_fact, variance, points, reason):
    fact = make_fact(cleaning_status="PENDING")
    result = score(fact, mileage=MileageFact(trainset_id="T-001", variance=variance))

    assert result.score == points
    if reason:
        assert reason in result.reasons
    else:
        assert not any("mileage" in r for r in result.reasons)


def test_mileage_fact_takes_precedence_over_fact_variance(make_fact):
    fact = make_fact(cleaning_status="PENDING", mileage_variance=20000)
    result = score(fact, mileage=MileageFact(trainset_id="T-001", variance=100))
    assert result.score == 0


def test_pending_cleaning_adds_reason_but_no_points(make_fact):
    result = score(make_fact(cleaning_status="PENDING"))
    assert result.score == 0
    assert result.reasons == ["cleaning pending"]


def test_stabling_components(make_fact):
    stabling = StablingFact(
        trainset_id="T-001",
        shunting_distance=120,
        turnaround_time=25,
        constraints=StablingConstraints(requires_shunting=True, blocked_by="T-009"),
    )

    result = score(make_fact(cleaning_status="PENDING"), stabling=stabling)

    # -5 shunting, +8 distance, +8 turnaround, -5 blocked exit
    assert result.score == 6
    assert result.reasons == ["cleaning pending", "requires shunting", "exit path blocked by T-009"]


def test_far_stabling_never_goes_below_zero_bonus(make_fact):
    stabling = StablingFact(trainset_id="T-001", shunting_distance=5000, turnaround_time=600)
    result = score(make_fact(cleaning_status="PENDING"), stabling=stabling)
    assert result.score == 0


def test_weights_are_taken_from_the_given_table(make_fact):
    weights, ignored = ScoringWeights.from_overrides({"BRANDING_HIGH": 50, "unknown_weight": 3})

    result = score(make_fact(branding_priority="HIGH"), weights=weights)

    assert ignored == ["unknown_weight"]
    assert result.score == 60
    assert DEFAULT_WEIGHTS.branding_high == 30


def test_invalid_step_weight_is_rejected():
    with pytest.raises(ValidationError):
        ScoringWeights.from_overrides({"shunting_distance_step": 0})
