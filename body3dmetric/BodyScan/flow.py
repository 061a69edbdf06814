"""
Scan flow: welcome -> input -> camera -> processing -> result.

The presentation layer drives a ScanSession; the session owns the step, the
user's biometrics and the latest ScanResult. A failed analysis drops back to
the camera step with the biometrics intact and the error message exposed.
"""
import logging
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from .engine import MeasurementEngine
from .exceptions import Body3DError, InvalidTransitionError
from .models import UserBiometrics
from .pipeline import ScanResult, analyze_scan

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error while processing the image."


class ScanStep(str, Enum):
    WELCOME = "welcome"
    INPUT = "input"
    CAMERA = "camera"
    PROCESSING = "processing"
    RESULT = "result"


TRANSITIONS: Dict[ScanStep, FrozenSet[ScanStep]] = {
    ScanStep.WELCOME: frozenset({ScanStep.INPUT}),
    ScanStep.INPUT: frozenset({ScanStep.CAMERA, ScanStep.WELCOME}),
    ScanStep.CAMERA: frozenset({ScanStep.PROCESSING, ScanStep.INPUT, ScanStep.WELCOME}),
    ScanStep.PROCESSING: frozenset({ScanStep.RESULT, ScanStep.CAMERA}),
    ScanStep.RESULT: frozenset({ScanStep.WELCOME, ScanStep.CAMERA}),
}


class ScanSession:
    def __init__(self):
        self.step = ScanStep.WELCOME
        self.biometrics: Optional[UserBiometrics] = None
        self.result: Optional[ScanResult] = None
        self.error: Optional[str] = None

    def _move(self, target: ScanStep):
        if target not in TRANSITIONS[self.step]:
            raise InvalidTransitionError(f"Cannot move from {self.step.value} to {target.value}.")
        self.step = target

    def start(self):
        self._move(ScanStep.INPUT)

    def submit_biometrics(self, height_cm: Any, weight_kg: Any, age_years: Any = None) -> UserBiometrics:
        # Validate before moving so a bad form keeps the user on the input step.
        if self.step is not ScanStep.INPUT:
            raise InvalidTransitionError(f"Biometrics are entered on the input step, not {self.step.value}.")
        biometrics = UserBiometrics.create(height_cm, weight_kg, age_years)
        self.biometrics = biometrics
        self._move(ScanStep.CAMERA)
        return biometrics

    def back_to_input(self):
        self._move(ScanStep.INPUT)

    def analyze(
        self,
        image_bytes: bytes,
        estimator,
        engine: Optional[MeasurementEngine] = None,
        min_confidence: Optional[float] = None,
        include_shoulder: bool = False,
    ) -> Optional[ScanResult]:
        """
        Run one analysis. Returns the new result, or None when the attempt failed
        (the session is then back on the camera step and `error` says why).
        """
        if self.step is ScanStep.RESULT:
            self._move(ScanStep.CAMERA)
        self._move(ScanStep.PROCESSING)
        self.error = None

        try:
            result = analyze_scan(
                image_bytes,
                self.biometrics,
                estimator,
                engine=engine,
                min_confidence=min_confidence,
                include_shoulder=include_shoulder,
            )
        except Body3DError as exc:
            self.error = str(exc) or UNKNOWN_ERROR_MESSAGE
            logger.info({"component": "ScanFlow", "event": "analysis_failed", "error": self.error})
            self._move(ScanStep.CAMERA)
            return None
        except Exception as exc:
            # An injected estimator may fail in ways outside the domain hierarchy.
            self.error = UNKNOWN_ERROR_MESSAGE
            logger.exception({"component": "ScanFlow", "event": "analysis_crashed", "error": str(exc)})
            self._move(ScanStep.CAMERA)
            return None

        # Swap in the fully built result; the previous one is discarded, not edited.
        self.result = result
        self._move(ScanStep.RESULT)
        return result

    def reset(self):
        """Back to welcome; the photo result and error are cleared, biometrics kept for re-entry."""
        self._move(ScanStep.WELCOME)
        self.result = None
        self.error = None
