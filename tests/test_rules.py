"""Tests for sub-metric rule evaluation."""

import logging

import pytest

from testability.config import (
    BandRule,
    InversePenaltyRule,
    LinearCountRule,
    PresenceRule,
    RatioRule,
)
from testability.rules import SubMetricResult, clamp, evaluate_rule, round_half_up


@pytest.mark.parametrize(
    "value, expected",
    [(0.0, 0), (0.49, 0), (0.5, 1), (2.5, 3), (3.5, 4), (7.4999, 7), (-0.5, 0), (-1.2, -1)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_clamp_bounds():
    assert clamp(-3, 10) == 0
    assert clamp(4, 10) == 4
    assert clamp(11, 10) == 10


# ---------------------------------------------------------------------------
# linear
# ---------------------------------------------------------------------------


def test_linear_sums_weighted_counts():
    rule = LinearCountRule(name="r", budget=20, linear={"buttonCount": 1.5, "linkCount": 1.5})
    result = evaluate_rule(rule, {"buttonCount": 3, "linkCount": 2})
    # 3 * 1.5 + 2 * 1.5 = 7.5 -> 8
    assert result == SubMetricResult(name="r", points=8, budget=20, message="raw 7.5")


def test_linear_clamps_to_budget():
    rule = LinearCountRule(name="r", budget=25, linear={"dataTestAttributeCount": 2.5})
    result = evaluate_rule(rule, {"dataTestAttributeCount": 50})
    assert result.points == 25
    assert not result.degraded


def test_linear_negative_count_clamps_to_zero():
    rule = LinearCountRule(name="r", budget=25, linear={"n": 2.5})
    assert evaluate_rule(rule, {"n": -4}).points == 0


def test_linear_missing_term_counts_as_zero():
    rule = LinearCountRule(name="r", budget=35, linear={"dataTestAttributeCount": 2, "formCount": 5})
    result = evaluate_rule(rule, {"formCount": 2})
    assert result.points == 10
    assert result.degraded
    assert "dataTestAttributeCount" in result.message


def test_linear_reads_booleans_as_one_and_zero():
    rule = LinearCountRule(name="r", budget=10, linear={"a": 4, "b": 4})
    assert evaluate_rule(rule, {"a": True, "b": False}).points == 4


def test_linear_non_numeric_value_is_missing():
    rule = LinearCountRule(name="r", budget=10, linear={"a": 4})
    result = evaluate_rule(rule, {"a": "lots"})
    assert result.points == 0
    assert result.degraded


# ---------------------------------------------------------------------------
# presence
# ---------------------------------------------------------------------------


def test_presence_awards_points_when_true():
    rule = PresenceRule(name="p", presence="hasCookies", points=5, absent_points=1)
    result = evaluate_rule(rule, {"hasCookies": True})
    assert result.points == 5
    assert result.budget == 5


def test_presence_awards_absent_points_when_false():
    rule = PresenceRule(name="p", presence="hasCookies", points=5, absent_points=1)
    result = evaluate_rule(rule, {"hasCookies": False})
    assert result.points == 1
    assert not result.degraded


def test_presence_numeric_value_is_truthy_when_positive():
    rule = PresenceRule(name="p", presence="x", points=10, absent_points=2)
    assert evaluate_rule(rule, {"x": 3}).points == 10
    assert evaluate_rule(rule, {"x": 0}).points == 2


def test_presence_missing_takes_absent_branch_and_is_degraded():
    rule = PresenceRule(name="p", presence="hasCookies", points=5, absent_points=1)
    result = evaluate_rule(rule, {})
    assert result.points == 1
    assert result.degraded


# ---------------------------------------------------------------------------
# inverse_penalty
# ---------------------------------------------------------------------------


def test_inverse_penalty_subtracts_weighted_defects():
    rule = InversePenaltyRule(
        name="e", budget=40, inverse_penalty={"jsErrorCount": 5, "consoleErrorCount": 5}
    )
    assert evaluate_rule(rule, {"jsErrorCount": 1, "consoleErrorCount": 2}).points == 25


def test_inverse_penalty_full_budget_without_defects():
    rule = InversePenaltyRule(name="e", budget=25, inverse_penalty={"brokenImageCount": 5})
    assert evaluate_rule(rule, {"brokenImageCount": 0}).points == 25


def test_inverse_penalty_never_negative():
    rule = InversePenaltyRule(name="e", budget=25, inverse_penalty={"brokenImageCount": 5})
    assert evaluate_rule(rule, {"brokenImageCount": 40}).points == 0


def test_inverse_penalty_missing_is_worst_case():
    rule = InversePenaltyRule(
        name="e", budget=40, inverse_penalty={"jsErrorCount": 5, "consoleErrorCount": 5}
    )
    result = evaluate_rule(rule, {"jsErrorCount": 0})
    assert result.points == 0
    assert result.degraded


# ---------------------------------------------------------------------------
# bands
# ---------------------------------------------------------------------------


@pytest.fixture
def band_rule():
    return BandRule(
        name="size",
        budget=35,
        bands={"observation": "totalElementCount", "over": {1000: 15, 200: 30, 500: 25}},
    )


@pytest.mark.parametrize(
    "count, expected",
    [(0, 35), (200, 35), (201, 30), (500, 30), (501, 25), (1000, 25), (1001, 15)],
)
def test_bands_step_on_strictly_greater(band_rule, count, expected):
    assert evaluate_rule(band_rule, {"totalElementCount": count}).points == expected


def test_bands_thresholds_are_sorted(band_rule):
    assert list(band_rule.bands.over) == [200.0, 500.0, 1000.0]
    assert band_rule.floor == 15


def test_bands_sum_several_observations():
    rule = BandRule(
        name="ops",
        budget=35,
        bands={"observation": ["formCount", "buttonCount"], "over": {9: 25, 19: 15}},
    )
    assert evaluate_rule(rule, {"formCount": 2, "buttonCount": 7}).points == 35
    assert evaluate_rule(rule, {"formCount": 2, "buttonCount": 8}).points == 25
    assert evaluate_rule(rule, {"formCount": 5, "buttonCount": 15}).points == 15


def test_bands_missing_is_lowest_band(band_rule):
    result = evaluate_rule(band_rule, {})
    assert result.points == 15
    assert result.degraded


# ---------------------------------------------------------------------------
# ratio
# ---------------------------------------------------------------------------


def test_ratio_scales_budget():
    rule = RatioRule(
        name="alt", budget=15, ratio={"numerator": "imagesWithAltCount", "denominator": "imageCount"}
    )
    # 15 * 3 / 4 = 11.25 -> 11
    assert evaluate_rule(rule, {"imagesWithAltCount": 3, "imageCount": 4}).points == 11


def test_ratio_zero_denominator_scores_zero():
    rule = RatioRule(name="alt", budget=15, ratio={"numerator": "a", "denominator": "b"})
    result = evaluate_rule(rule, {"a": 0, "b": 0})
    assert result.points == 0
    assert not result.degraded


def test_ratio_above_one_clamps():
    rule = RatioRule(name="alt", budget=15, ratio={"numerator": "a", "denominator": "b"})
    assert evaluate_rule(rule, {"a": 9, "b": 3}).points == 15


def test_ratio_missing_is_zero_and_degraded():
    rule = RatioRule(name="alt", budget=15, ratio={"numerator": "a", "denominator": "b"})
    result = evaluate_rule(rule, {"b": 3})
    assert result.points == 0
    assert result.degraded


# ---------------------------------------------------------------------------
# dispatch and logging
# ---------------------------------------------------------------------------


def test_unknown_rule_type_raises():
    with pytest.raises(TypeError, match="Unknown rule type"):
        evaluate_rule(object(), {})


def test_degraded_rule_logs_to_given_logger(mocker):
    logger = mocker.Mock(spec=logging.Logger)
    rule = PresenceRule(name="p", presence="hasCookies", points=5, absent_points=1)
    evaluate_rule(rule, {}, logger=logger)
    logger.debug.assert_called_once()
    assert "hasCookies" in logger.debug.call_args[0][0]
