class Body3DError(Exception):
    """
    Base class for Body3D scan errors.

    All scan-specific exceptions inherit from this type so callers
    (API layer, scan flow, tests) can catch a single umbrella exception when needed.
    """


class InputValidationError(Body3DError):
    """
    Raised when caller-supplied or oracle-supplied values cannot be used.

    Fatal to the current analysis attempt; values are never defaulted to zero.
    """


class InvalidRatioError(InputValidationError):
    """
    Raised when a width/height ratio from the oracle is unusable.

    Typical causes:
      - Field missing from the oracle payload
      - Non-numeric, NaN or infinite value
      - Negative ratio, or a ratio above 1.0 (wider than the person is tall)
      - Confidence outside [0, 1]
    """


class RatioSchemaError(InvalidRatioError):
    """
    Raised when a ratio payload does not have the expected shape.

    Typical causes:
      - measurements object missing
      - A required ratio or confidence key absent
      - Strings, booleans, null or non-finite numbers where numbers are expected
    """


class InvalidBiometricsError(InputValidationError):
    """
    Raised when user biometrics are missing or out of range.

    Typical causes:
      - Height or weight of zero / negative
      - Negative age
      - Form fields that are not numbers
    """


class DegenerateMeasurementError(Body3DError):
    """
    Raised when an index would divide by zero.

    Typical causes:
      - Hip ratio of 0 producing a zero hip circumference
      - Height of zero reaching the index computation directly
    """


class OracleError(Body3DError):
    """
    Base class for failures of the external ratio oracle.
    """


class OracleResponseError(OracleError):
    """
    Raised when the oracle answered but the answer is unusable.

    The message is always the user-facing summary; raw parse detail is logged.
    """


class OracleUnavailableError(OracleError):
    """
    Raised when the oracle could not be reached.

    Typical causes:
      - No API key configured
      - Network error or timeout
      - Non-2xx HTTP status
    """


class LowConfidenceError(Body3DError):
    """
    Raised when a minimum confidence is configured and the oracle reports less.
    """


class InvalidTransitionError(Body3DError):
    """
    Raised when the scan flow is asked to move between steps it does not connect.
    """
