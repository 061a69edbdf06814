import dataclasses
import math
import os
import sys

import pytest

sys.path.append(os.path.abspath("."))

from body3dmetric.BodyScan.classification import classify_bmi, classify_record, classify_whr, classify_whtr  # noqa: E402
from body3dmetric.BodyScan.engine import (  # noqa: E402
    MeasurementEngine,
    circumference_from_width,
    compute_bmi,
    compute_whr,
    compute_whtr,
    depth_factor_for_age,
    ellipse_perimeter,
    round_half_up,
)
from body3dmetric.BodyScan.exceptions import (  # noqa: E402
    DegenerateMeasurementError,
    InvalidBiometricsError,
    InvalidRatioError,
    RatioSchemaError,
)
from body3dmetric.BodyScan.models import MeasurementRecord, RawRatioEstimate, UserBiometrics  # noqa: E402


def make_estimate(**overrides):
    values = {
        "waist_ratio": 0.25,
        "hip_ratio": 0.30,
        "shoulder_ratio": 0.25,
        "chest_ratio": 0.28,
        "torso_height_ratio": 0.30,
        "confidence": 0.9,
    }
    values.update(overrides)
    return RawRatioEstimate(**values)


@pytest.fixture
def estimate():
    return make_estimate()


@pytest.fixture
def biometrics():
    return UserBiometrics.create(170, 70, 40)


# ------------------------------------------------------------------------------
# Ellipse perimeter
# ------------------------------------------------------------------------------
def test_perimeter_reduces_to_circle():
    assert ellipse_perimeter(12.5, 12.5) == pytest.approx(2 * math.pi * 12.5)


def test_perimeter_of_zero_ellipse_is_zero():
    assert ellipse_perimeter(0.0, 0.0) == 0.0


def test_circumference_80cm_width_simple_depth():
    # a=40, b=28 -> Ramanujan II gives 215.29
    assert ellipse_perimeter(40, 28) == pytest.approx(215.2948, abs=1e-2)
    assert circumference_from_width(80, 0.70) == 215


def test_depth_factor_steps_after_fifty():
    assert depth_factor_for_age(None) == 0.75
    assert depth_factor_for_age(50) == 0.75
    assert depth_factor_for_age(51) == 0.78


# ------------------------------------------------------------------------------
# Indices
# ------------------------------------------------------------------------------
def test_bmi_boundary_between_underweight_and_normal():
    assert compute_bmi(53.5, 170) == 18.5
    assert classify_bmi(compute_bmi(53.5, 170)) == "normal"

    assert compute_bmi(53.2, 170) == 18.4
    assert classify_bmi(compute_bmi(53.2, 170)) == "underweight"

    # 53.4 kg is 18.48, which still rounds up into the normal range
    assert compute_bmi(53.4, 170) == 18.5


@pytest.mark.parametrize("bmi, expected", [
    (18.4, "underweight"),
    (24.9, "normal"),
    (25.0, "overweight"),
    (29.9, "overweight"),
    (30.0, "obese"),
])
def test_bmi_categories(bmi, expected):
    assert classify_bmi(bmi) == expected


@pytest.mark.parametrize("whr, expected", [
    (0.85, "low"),
    (0.86, "medium"),
    (0.95, "medium"),
    (0.96, "high"),
])
def test_whr_risk(whr, expected):
    assert classify_whr(whr) == expected


def test_whtr_risk():
    assert classify_whtr(0.50) == "healthy"
    assert classify_whtr(0.51) == "elevated"


def test_zero_divisors_are_fatal():
    with pytest.raises(DegenerateMeasurementError):
        compute_whr(80, 0)
    with pytest.raises(DegenerateMeasurementError):
        compute_whtr(80, 0)
    with pytest.raises(DegenerateMeasurementError):
        compute_bmi(70, 0)


# ------------------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------------------
def test_engine_builds_full_record(estimate, biometrics):
    record = MeasurementEngine().compute(estimate, biometrics)

    assert record.waist_width_m == pytest.approx(0.425)
    assert record.hip_width_m == pytest.approx(0.51)
    assert record.shoulder_width_m == pytest.approx(0.425)
    assert record.chest_width_m == pytest.approx(0.476)
    assert record.waist_circumference_cm == 117
    assert record.hip_circumference_cm == 141
    assert record.bmi == 24.2
    assert record.whr == 0.83
    assert record.whtr == 0.69
    assert record.depth_factor == 0.75
    assert record.confidence == 0.9
    assert record.age_years == 40


def test_engine_is_deterministic(estimate, biometrics):
    engine = MeasurementEngine()
    assert engine.compute(estimate, biometrics) == engine.compute(estimate, biometrics)


def test_older_users_get_deeper_torso(estimate):
    younger = MeasurementEngine().compute(estimate, UserBiometrics.create(170, 70, 40))
    older = MeasurementEngine().compute(estimate, UserBiometrics.create(170, 70, 60))

    assert older.waist_circumference_cm > younger.waist_circumference_cm
    assert older.hip_circumference_cm > younger.hip_circumference_cm
    assert (older.waist_circumference_cm, older.hip_circumference_cm) == (119, 143)


def test_fixed_depth_factor_overrides_age(estimate, biometrics):
    record = MeasurementEngine(depth_factor=0.70).compute(estimate, biometrics)
    assert record.depth_factor == 0.70


def test_fixed_depth_factor_must_be_a_fraction():
    with pytest.raises(ValueError):
        MeasurementEngine(depth_factor=1.5)


def test_zero_hip_ratio_is_degenerate(biometrics):
    with pytest.raises(DegenerateMeasurementError):
        MeasurementEngine().compute(make_estimate(hip_ratio=0.0), biometrics)


def test_record_is_immutable(estimate, biometrics):
    record = MeasurementEngine().compute(estimate, biometrics)
    with pytest.raises(dataclasses.FrozenInstanceError):
        record.bmi = 10.0


def test_record_dict_round_trip(estimate, biometrics):
    record = MeasurementEngine().compute(estimate, biometrics)
    assert MeasurementRecord.from_dict(record.to_dict()) == record


def test_classify_record_labels(estimate, biometrics):
    record = MeasurementEngine().compute(estimate, biometrics)
    classification = classify_record(record)
    assert classification["bmi"] == {"category": "normal", "label": "NORMAL"}
    assert classification["whr"]["category"] == "low"
    assert classification["whtr"]["category"] == "elevated"


# ------------------------------------------------------------------------------
# Input validation
# ------------------------------------------------------------------------------
@pytest.mark.parametrize("field, value", [
    ("waist_ratio", -0.1),
    ("hip_ratio", 1.5),
    ("confidence", 1.2),
])
def test_out_of_range_values_rejected(field, value):
    with pytest.raises(InvalidRatioError):
        make_estimate(**{field: value})


@pytest.mark.parametrize("value", ["0.3", None, True, float("nan"), float("inf")])
def test_non_numeric_ratios_are_schema_errors(value):
    with pytest.raises(RatioSchemaError):
        make_estimate(chest_ratio=value)


def test_from_payload_reads_oracle_shape():
    estimate = RawRatioEstimate.from_payload({
        "measurements": {
            "waistRatio": 0.2,
            "hipRatio": 0.3,
            "shoulderRatio": 0.25,
            "chestRatio": 0.27,
            "torsoHeightRatio": 0.33,
        },
        "confidence": 0.8,
    })
    assert estimate.waist_ratio == 0.2
    assert estimate.torso_height_ratio == 0.33
    assert estimate.confidence == 0.8


def test_from_payload_requires_every_field():
    with pytest.raises(RatioSchemaError):
        RawRatioEstimate.from_payload({
            "measurements": {"waistRatio": 0.2, "hipRatio": 0.3},
            "confidence": 0.8,
        })
    with pytest.raises(RatioSchemaError):
        RawRatioEstimate.from_payload({"confidence": 0.8})


def test_biometrics_accept_form_strings():
    biometrics = UserBiometrics.create("170", "70.5", "")
    assert biometrics.height_cm == 170.0
    assert biometrics.weight_kg == 70.5
    assert biometrics.age_years is None


@pytest.mark.parametrize("height, weight, age", [
    (0, 70, None),
    (170, -1, None),
    (170, 70, -3),
    ("tall", 70, None),
    (None, 70, None),
])
def test_biometrics_rejected(height, weight, age):
    with pytest.raises(InvalidBiometricsError):
        UserBiometrics.create(height, weight, age)


# ------------------------------------------------------------------------------
# Half-up rounding of indices
# ------------------------------------------------------------------------------
def test_indices_round_ties_up():
    # 100/160 and 50/80 are exactly 0.625; 73/2.0**2 is exactly 18.25
    assert compute_whtr(100, 160) == 0.63
    assert compute_whr(50, 80) == 0.63
    assert compute_bmi(73, 200) == 18.3


def test_round_half_up_keeps_non_ties():
    assert round_half_up(0.624, 2) == 0.62
    assert round_half_up(18.449, 1) == 18.4
    assert round_half_up(24.2214, 1) == 24.2


# ------------------------------------------------------------------------------
# Direct construction is validated too
# ------------------------------------------------------------------------------
@pytest.mark.parametrize("kwargs", [
    {"height_cm": -170, "weight_kg": 70},
    {"height_cm": 170, "weight_kg": 0},
    {"height_cm": 170, "weight_kg": 70, "age_years": -1},
    {"height_cm": float("nan"), "weight_kg": 70},
    {"height_cm": "170", "weight_kg": 70},
])
def test_biometrics_constructor_validates(kwargs):
    with pytest.raises(InvalidBiometricsError):
        UserBiometrics(**kwargs)


def test_engine_never_sees_negative_height(estimate):
    with pytest.raises(InvalidBiometricsError):
        MeasurementEngine().compute(estimate, UserBiometrics(height_cm=-170, weight_kg=0))
