"""
Measurement engine: ratio estimates + biometrics -> measurement record.
"""

from .models import MeasurementRecord, RawRatioEstimate, UserBiometrics  # noqa: F401
from .engine import MeasurementEngine  # noqa: F401
from .classification import classify_bmi, classify_record, classify_whr, classify_whtr  # noqa: F401
from .exceptions import (  # noqa: F401
    Body3DError,
    DegenerateMeasurementError,
    InputValidationError,
    InvalidBiometricsError,
    InvalidRatioError,
    InvalidTransitionError,
    LowConfidenceError,
    OracleError,
    OracleResponseError,
    OracleUnavailableError,
    RatioSchemaError,
)
