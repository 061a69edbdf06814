# body3dmetric/config/settings.py
#   Environment-driven settings shared by the Flask app, the oracle client and tests.
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_ORACLE_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


class Settings:
    def __init__(self):
        self.GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
        self.ORACLE_MODEL = os.getenv("BODY3D_ORACLE_MODEL", "gemini-3-flash-preview")
        self.ORACLE_ENDPOINT = os.getenv("BODY3D_ORACLE_ENDPOINT", DEFAULT_ORACLE_ENDPOINT)
        self.ORACLE_TIMEOUT = _env_float("BODY3D_ORACLE_TIMEOUT", 30.0)

        # No cutoff unless explicitly configured
        self.MIN_CONFIDENCE = _env_float("BODY3D_MIN_CONFIDENCE", None)

        self.MAX_UPLOAD_KB = int(_env_float("BODY3D_MAX_UPLOAD_KB", 5 * 1024))
        self.INCLUDE_SHOULDER_TAPE = _env_bool("BODY3D_INCLUDE_SHOULDER_TAPE")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
