import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .exceptions import DegenerateMeasurementError, InvalidBiometricsError, InvalidRatioError
from .models import MeasurementRecord, RawRatioEstimate, UserBiometrics

# ------------------------------------------------------------------------------
# Torso depth model
# ------------------------------------------------------------------------------
# Cross-sections are ellipses whose front-to-back depth is a fixed fraction of the width.
# Torso depth grows with age, so older users get a deeper ellipse.
DEPTH_FACTOR_DEFAULT = 0.75
DEPTH_FACTOR_OVER_AGE = 0.78
DEPTH_AGE_THRESHOLD_YEARS = 50


def depth_factor_for_age(age_years: Optional[float]) -> float:
    """Depth/width ratio of the torso cross-section; unknown age uses the default."""
    if age_years is not None and age_years > DEPTH_AGE_THRESHOLD_YEARS:
        return DEPTH_FACTOR_OVER_AGE
    return DEPTH_FACTOR_DEFAULT


def derive_width_cm(ratio: float, height_cm: float) -> float:
    return ratio * height_cm


def ellipse_perimeter(a: float, b: float) -> float:
    """
    Ramanujan's second approximation for the perimeter of an ellipse with semi-axes a, b.

    Exact for a circle; well under 0.1% error for torso-like aspect ratios.
    The order of operations is fixed so results are reproducible bit for bit.
    """
    if a + b == 0:
        return 0.0
    h = (a - b) ** 2 / (a + b) ** 2
    return math.pi * (a + b) * (1 + (3 * h) / (10 + math.sqrt(4 - 3 * h)))


def circumference_from_width(width_cm: float, depth_factor: float) -> int:
    """Circumference (whole cm) of an elliptical cross-section with the given frontal width."""
    a = width_cm / 2
    b = (width_cm * depth_factor) / 2
    # halves round up, not to even
    return int(math.floor(ellipse_perimeter(a, b) + 0.5))


def round_half_up(value: float, digits: int) -> float:
    """
    Round to `digits` decimals with ties going away from zero, on the exact binary value.

    round() sends ties to even (0.625 -> 0.62); indices shown to users round 0.625 -> 0.63.
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def compute_bmi(weight_kg: float, height_cm: float) -> float:
    if height_cm == 0:
        raise DegenerateMeasurementError("BMI is undefined for a height of 0.")
    return round_half_up(weight_kg / (height_cm / 100) ** 2, 1)


def compute_whr(waist_circumference_cm: float, hip_circumference_cm: float) -> float:
    if hip_circumference_cm == 0:
        raise DegenerateMeasurementError("Waist-to-hip ratio is undefined for a hip circumference of 0.")
    return round_half_up(waist_circumference_cm / hip_circumference_cm, 2)


def compute_whtr(waist_circumference_cm: float, height_cm: float) -> float:
    if height_cm == 0:
        raise DegenerateMeasurementError("Waist-to-height ratio is undefined for a height of 0.")
    return round_half_up(waist_circumference_cm / height_cm, 2)


class MeasurementEngine:
    """
    Turns oracle ratio estimates plus user biometrics into a MeasurementRecord.

    Pure and deterministic: the same inputs always produce an identical record.
    """

    def __init__(self, depth_factor: Optional[float] = None):
        """
        Args:
          depth_factor: fixed depth/width ratio for every user. When None (default)
                        the age-dependent step function is used instead.
        """
        if depth_factor is not None and not (0 < depth_factor <= 1):
            raise ValueError("depth_factor must be in (0, 1].")
        self.depth_factor = depth_factor

    def compute(self, estimate: RawRatioEstimate, biometrics: UserBiometrics) -> MeasurementRecord:
        """
        Raises:
          InvalidRatioError / InvalidBiometricsError: on inputs of the wrong type
          DegenerateMeasurementError: when an index would divide by zero
        """
        if not isinstance(estimate, RawRatioEstimate):
            raise InvalidRatioError("estimate must be a RawRatioEstimate.")
        if not isinstance(biometrics, UserBiometrics):
            raise InvalidBiometricsError("biometrics must be UserBiometrics.")

        height_cm = biometrics.height_cm
        depth_factor = self.depth_factor if self.depth_factor is not None else depth_factor_for_age(biometrics.age_years)

        waist_cm = derive_width_cm(estimate.waist_ratio, height_cm)
        hip_cm = derive_width_cm(estimate.hip_ratio, height_cm)
        shoulder_cm = derive_width_cm(estimate.shoulder_ratio, height_cm)
        chest_cm = derive_width_cm(estimate.chest_ratio, height_cm)

        waist_circumference = circumference_from_width(waist_cm, depth_factor)
        hip_circumference = circumference_from_width(hip_cm, depth_factor)

        # All indices are computed before the record exists; nothing partial escapes.
        bmi = compute_bmi(biometrics.weight_kg, height_cm)
        whr = compute_whr(waist_circumference, hip_circumference)
        whtr = compute_whtr(waist_circumference, height_cm)

        return MeasurementRecord(
            height_cm=height_cm,
            weight_kg=biometrics.weight_kg,
            age_years=biometrics.age_years,
            waist_width_m=waist_cm / 100,
            hip_width_m=hip_cm / 100,
            shoulder_width_m=shoulder_cm / 100,
            chest_width_m=chest_cm / 100,
            waist_circumference_cm=waist_circumference,
            hip_circumference_cm=hip_circumference,
            bmi=bmi,
            whr=whr,
            whtr=whtr,
            depth_factor=depth_factor,
            confidence=estimate.confidence,
        )
