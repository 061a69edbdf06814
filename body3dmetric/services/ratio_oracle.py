"""
Ratio oracle: the external image-understanding service that turns a photo into
body-width ratios.

Business logic only sees the RatioEstimator interface; the concrete client is
chosen by build_estimator() and injected. Calls are single-shot: no retries, no
streaming. Callers wanting retries wrap the call themselves.
"""
import base64
import json
import logging
from typing import Any, Dict, Optional

import requests

from ..BodyScan.exceptions import InputValidationError, OracleResponseError, OracleUnavailableError, RatioSchemaError
from ..BodyScan.models import RawRatioEstimate, UserBiometrics

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_MESSAGE = "Could not analyze body proportions."

PROMPT_TEMPLATE = """Analyze this full-body photo for 3D reconstruction.
The user is standing in a T-pose or A-pose. The user's height is {height_cm:g} cm{age_clause}.
Calculate the following width ratios relative to the total height of the person in the image:
1. waistWidth / totalHeight
2. hipWidth / totalHeight
3. shoulderWidth / totalHeight
4. chestWidth / totalHeight
5. torsoHeight (from neck base to hips) / totalHeight
Return only the JSON data."""

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "measurements": {
            "type": "OBJECT",
            "properties": {
                "waistRatio": {"type": "NUMBER"},
                "hipRatio": {"type": "NUMBER"},
                "shoulderRatio": {"type": "NUMBER"},
                "chestRatio": {"type": "NUMBER"},
                "torsoHeightRatio": {"type": "NUMBER"},
            },
            "required": ["waistRatio", "hipRatio", "shoulderRatio", "chestRatio", "torsoHeightRatio"],
        },
        "confidence": {"type": "NUMBER"},
    },
    "required": ["measurements", "confidence"],
}


class RatioEstimator:
    """Narrow capability boundary around the oracle."""

    def estimate_ratios(self, image_bytes: bytes, biometrics: UserBiometrics) -> RawRatioEstimate:
        raise NotImplementedError


class StaticRatioEstimator(RatioEstimator):
    """Returns the same estimate for every image. Used for tests and offline development."""

    def __init__(self, estimate: RawRatioEstimate):
        self.estimate = estimate
        self.calls = 0

    def estimate_ratios(self, image_bytes: bytes, biometrics: UserBiometrics) -> RawRatioEstimate:
        self.calls += 1
        return self.estimate


class UnconfiguredRatioEstimator(RatioEstimator):
    """Stands in when no API key is configured; every call fails loudly."""

    def estimate_ratios(self, image_bytes: bytes, biometrics: UserBiometrics) -> RawRatioEstimate:
        raise OracleUnavailableError("Ratio oracle is not configured (set GEMINI_API_KEY).")


def build_prompt(biometrics: UserBiometrics) -> str:
    age_clause = ""
    if biometrics.age_years is not None:
        age_clause = f" and their age is {biometrics.age_years:g} years"
    return PROMPT_TEMPLATE.format(height_cm=biometrics.height_cm, age_clause=age_clause)


def parse_oracle_text(text: Optional[str]) -> RawRatioEstimate:
    """
    Defensively parse the oracle's JSON answer.

    Raises:
      OracleResponseError: not JSON or wrong shape; the user-facing message only, detail is logged
      InvalidRatioError: well-formed but out-of-range values (an input validation failure)
    """
    try:
        payload = json.loads(text or "{}")
        return RawRatioEstimate.from_payload(payload)
    except (ValueError, RatioSchemaError) as exc:
        # json.JSONDecodeError is a ValueError
        logger.warning({
            "component": "RatioOracle",
            "event": "oracle_response_invalid",
            "error": str(exc),
            "raw": (text or "")[:500],
        })
        raise OracleResponseError(ANALYSIS_FAILED_MESSAGE)


class GeminiRatioEstimator(RatioEstimator):
    """
    Gemini generateContent client constrained to the ratio JSON schema.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        endpoint: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise OracleUnavailableError("api_key is required for the Gemini oracle.")
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"

    def build_request(self, image_bytes: bytes, biometrics: UserBiometrics) -> Dict[str, Any]:
        return {
            "contents": [{
                "parts": [
                    {
                        "inline_data": {
                            "mime_type": "image/jpeg",
                            "data": base64.b64encode(image_bytes).decode("ascii"),
                        }
                    },
                    {"text": build_prompt(biometrics)},
                ]
            }],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    def estimate_ratios(self, image_bytes: bytes, biometrics: UserBiometrics) -> RawRatioEstimate:
        """
        Raises:
          OracleUnavailableError: network failure, timeout or non-2xx status
          OracleResponseError: response body is not the expected JSON
        """
        if not isinstance(image_bytes, (bytes, bytearray)) or not image_bytes:
            raise InputValidationError("image must be non-empty bytes.")

        try:
            resp = self.session.post(
                self.url,
                json=self.build_request(bytes(image_bytes), biometrics),
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning({
                "component": "RatioOracle",
                "event": "oracle_request_failed",
                "model": self.model,
                "error": str(exc),
            })
            raise OracleUnavailableError("Ratio oracle request failed.")

        return parse_oracle_text(self._response_text(resp))

    def _response_text(self, resp: requests.Response) -> Optional[str]:
        try:
            body = resp.json()
            parts = body["candidates"][0]["content"]["parts"]
            return "".join(part.get("text", "") for part in parts)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
            logger.warning({
                "component": "RatioOracle",
                "event": "oracle_envelope_invalid",
                "error": str(exc),
            })
            raise OracleResponseError(ANALYSIS_FAILED_MESSAGE)


def build_estimator(settings) -> RatioEstimator:
    if not settings.GEMINI_API_KEY:
        return UnconfiguredRatioEstimator()
    return GeminiRatioEstimator(
        api_key=settings.GEMINI_API_KEY,
        model=settings.ORACLE_MODEL,
        endpoint=settings.ORACLE_ENDPOINT,
        timeout=settings.ORACLE_TIMEOUT,
    )
