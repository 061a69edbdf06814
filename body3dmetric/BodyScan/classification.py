from typing import Dict

from .models import MeasurementRecord

# Thresholds apply to the already-rounded indices stored on the record.
BMI_UNDERWEIGHT_BELOW = 18.5
BMI_NORMAL_BELOW = 25.0
BMI_OVERWEIGHT_BELOW = 30.0
WHR_LOW_MAX = 0.85
WHR_MEDIUM_MAX = 0.95
WHTR_HEALTHY_MAX = 0.50

# Display labels keyed by category.
DISPLAY_LABELS = {
    "underweight": "BAJO PESO",
    "normal": "NORMAL",
    "overweight": "SOBREPESO",
    "obese": "OBESIDAD",
    "low": "BAJO RIESGO",
    "medium": "RIESGO MEDIO",
    "high": "RIESGO ALTO",
    "healthy": "SALUDABLE",
    "elevated": "RIESGO ELEVADO",
}


def classify_bmi(bmi: float) -> str:
    if bmi < BMI_UNDERWEIGHT_BELOW:
        return "underweight"
    if bmi < BMI_NORMAL_BELOW:
        return "normal"
    if bmi < BMI_OVERWEIGHT_BELOW:
        return "overweight"
    return "obese"


def classify_whr(whr: float) -> str:
    if whr <= WHR_LOW_MAX:
        return "low"
    if whr <= WHR_MEDIUM_MAX:
        return "medium"
    return "high"


def classify_whtr(whtr: float) -> str:
    return "healthy" if whtr <= WHTR_HEALTHY_MAX else "elevated"


def classify_record(record: MeasurementRecord) -> Dict[str, Dict[str, str]]:
    """Risk buckets for presentation; not stored on the record."""
    categories = {
        "bmi": classify_bmi(record.bmi),
        "whr": classify_whr(record.whr),
        "whtr": classify_whtr(record.whtr),
    }
    return {
        index: {"category": category, "label": DISPLAY_LABELS[category]}
        for index, category in categories.items()
    }
