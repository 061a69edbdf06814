import logging
from dataclasses import dataclass
from typing import Dict, Optional

from ..Silhouette.generator import SilhouetteAssembly, generate_silhouette
from .classification import classify_record
from .engine import MeasurementEngine
from .exceptions import InputValidationError, LowConfidenceError
from .models import MeasurementRecord, RawRatioEstimate, UserBiometrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    estimate: RawRatioEstimate
    record: MeasurementRecord
    assembly: SilhouetteAssembly
    classification: Dict[str, Dict[str, str]]


def analyze_scan(
    image_bytes: bytes,
    biometrics: UserBiometrics,
    estimator,
    engine: Optional[MeasurementEngine] = None,
    min_confidence: Optional[float] = None,
    include_shoulder: bool = False,
) -> ScanResult:
    """
    One analysis cycle: oracle -> confidence gate -> measurements -> silhouette.

    The oracle is called exactly once. Any failure propagates; no partial result is built.

    Raises:
      InputValidationError: bad image/biometrics, or out-of-range ratios
      OracleError subclasses: oracle unreachable or unparseable
      LowConfidenceError: min_confidence set and not met
      DegenerateMeasurementError: indices would divide by zero
    """
    if not isinstance(image_bytes, (bytes, bytearray)) or not image_bytes:
        raise InputValidationError("image must be non-empty bytes.")

    estimate = estimator.estimate_ratios(bytes(image_bytes), biometrics)

    if min_confidence is not None and estimate.confidence < min_confidence:
        logger.info({
            "component": "Body3D",
            "event": "low_confidence_rejected",
            "confidence": estimate.confidence,
            "min_confidence": min_confidence,
        })
        raise LowConfidenceError(
            f"Analysis confidence {estimate.confidence:.2f} is below the required {min_confidence:.2f}."
        )

    record = (engine or MeasurementEngine()).compute(estimate, biometrics)
    assembly = generate_silhouette(record, include_shoulder=include_shoulder)
    return ScanResult(
        estimate=estimate,
        record=record,
        assembly=assembly,
        classification=classify_record(record),
    )
