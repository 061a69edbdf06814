import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .exceptions import InvalidBiometricsError, InvalidRatioError, RatioSchemaError

# ------------------------------------------------------------------------------
# Oracle payload schema
# ------------------------------------------------------------------------------
# camelCase keys are what the oracle is instructed to return; snake_case is accepted
# so records round-tripped through our own API parse the same way.
RATIO_FIELDS = {
    "waist_ratio": "waistRatio",
    "hip_ratio": "hipRatio",
    "shoulder_ratio": "shoulderRatio",
    "chest_ratio": "chestRatio",
    "torso_height_ratio": "torsoHeightRatio",
}
MAX_RATIO = 1.0


def _as_finite_number(value: Any) -> Optional[float]:
    """
    Return value as a float if it is a real, finite number; otherwise None.

    bool is rejected explicitly because it is an int subclass.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return None
    return value


@dataclass(frozen=True)
class RawRatioEstimate:
    """Body-part widths (and torso height) as fractions of total body height in the photo."""

    waist_ratio: float
    hip_ratio: float
    shoulder_ratio: float
    chest_ratio: float
    torso_height_ratio: float
    confidence: float

    def __post_init__(self):
        for field_name in RATIO_FIELDS:
            value = _as_finite_number(getattr(self, field_name))
            if value is None:
                raise RatioSchemaError(f"{field_name} must be a finite number.")
            if value < 0 or value > MAX_RATIO:
                raise InvalidRatioError(f"{field_name} must be between 0 and {MAX_RATIO}.")
            object.__setattr__(self, field_name, value)

        confidence = _as_finite_number(self.confidence)
        if confidence is None:
            raise RatioSchemaError("confidence must be a finite number.")
        if not (0.0 <= confidence <= 1.0):
            raise InvalidRatioError("confidence must be between 0 and 1.")
        object.__setattr__(self, "confidence", confidence)

    @classmethod
    def from_payload(cls, payload: Any) -> "RawRatioEstimate":
        """
        Build an estimate from the oracle JSON shape:

          {"measurements": {"waistRatio": .., "hipRatio": .., ...}, "confidence": ..}

        Raises:
          RatioSchemaError: when the payload shape is wrong or a field is missing or not a number
          InvalidRatioError: when a ratio or the confidence is out of range
        """
        if not isinstance(payload, dict):
            raise RatioSchemaError("oracle payload must be an object.")
        measurements = payload.get("measurements")
        if not isinstance(measurements, dict):
            raise RatioSchemaError("measurements must be an object.")

        values: Dict[str, Any] = {}
        for field_name, camel in RATIO_FIELDS.items():
            if camel in measurements:
                values[field_name] = measurements[camel]
            elif field_name in measurements:
                values[field_name] = measurements[field_name]
            else:
                raise RatioSchemaError(f"measurements.{camel} is required.")

        if "confidence" not in payload:
            raise RatioSchemaError("confidence is required.")
        return cls(confidence=payload["confidence"], **values)


@dataclass(frozen=True)
class UserBiometrics:
    height_cm: float
    weight_kg: float
    age_years: Optional[float] = None

    def __post_init__(self):
        for field_name in ("height_cm", "weight_kg"):
            value = _as_finite_number(getattr(self, field_name))
            if value is None:
                raise InvalidBiometricsError(f"{field_name} must be a number.")
            if value <= 0:
                raise InvalidBiometricsError(f"{field_name} must be greater than 0.")
            object.__setattr__(self, field_name, value)

        if self.age_years is not None:
            age = _as_finite_number(self.age_years)
            if age is None:
                raise InvalidBiometricsError("age_years must be a number.")
            if age < 0:
                raise InvalidBiometricsError("age_years must not be negative.")
            object.__setattr__(self, "age_years", age)

    @classmethod
    def create(cls, height_cm: Any, weight_kg: Any, age_years: Any = None) -> "UserBiometrics":
        """
        Coerce raw user input (numbers or numeric strings from a form) and build biometrics.

        Raises:
          InvalidBiometricsError: on missing, non-numeric or out-of-range values
        """
        height = _coerce_biometric("height_cm", height_cm)
        weight = _coerce_biometric("weight_kg", weight_kg)

        age = None
        if age_years is not None and age_years != "":
            age = _coerce_biometric("age_years", age_years)
        return cls(height_cm=height, weight_kg=weight, age_years=age)

    @property
    def height_m(self) -> float:
        return self.height_cm / 100


def _coerce_biometric(name: str, value: Any) -> float:
    if value is None or value == "":
        raise InvalidBiometricsError(f"{name} is required.")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise InvalidBiometricsError(f"{name} must be a number.")
    number = _as_finite_number(value)
    if number is None:
        raise InvalidBiometricsError(f"{name} must be a number.")
    return number


@dataclass(frozen=True)
class MeasurementRecord:
    """
    Complete, internally consistent measurements for one analysis.

    Widths are SI meters (geometry units); circumferences are whole centimeters.
    """

    height_cm: float
    weight_kg: float
    age_years: Optional[float]
    waist_width_m: float
    hip_width_m: float
    shoulder_width_m: float
    chest_width_m: float
    waist_circumference_cm: int
    hip_circumference_cm: int
    bmi: float
    whr: float
    whtr: float
    depth_factor: float
    confidence: Optional[float] = None

    @property
    def scale_factor(self) -> float:
        """Body height in meters; the unit scale of the silhouette."""
        return self.height_cm / 100

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "MeasurementRecord":
        """
        Rebuild a record previously emitted by to_dict() (e.g. posted back for export).

        Raises:
          InputValidationError subclasses when fields are missing or not usable numbers.
        """
        if not isinstance(data, dict):
            raise InvalidBiometricsError("measurements must be an object.")
        biometrics = UserBiometrics.create(
            data.get("height_cm"), data.get("weight_kg"), data.get("age_years")
        )

        widths = {}
        for name in ("waist_width_m", "hip_width_m", "shoulder_width_m", "chest_width_m"):
            value = _as_finite_number(data.get(name))
            if value is None or value < 0:
                raise InvalidRatioError(f"{name} must be a non-negative number.")
            widths[name] = value

        numbers = {}
        for name in ("waist_circumference_cm", "hip_circumference_cm", "bmi", "whr", "whtr", "depth_factor"):
            value = _as_finite_number(data.get(name))
            if value is None:
                raise InvalidRatioError(f"{name} must be a number.")
            numbers[name] = value

        return cls(
            height_cm=biometrics.height_cm,
            weight_kg=biometrics.weight_kg,
            age_years=biometrics.age_years,
            waist_circumference_cm=int(numbers.pop("waist_circumference_cm")),
            hip_circumference_cm=int(numbers.pop("hip_circumference_cm")),
            confidence=_as_finite_number(data.get("confidence")),
            **widths,
            **numbers,
        )
