from flask import Blueprint, current_app, jsonify

from body3dmetric.services.ratio_oracle import UnconfiguredRatioEstimator

health_bp = Blueprint("health", __name__)


@health_bp.route("/healthz", methods=["GET"])
def healthz():
    settings = current_app.config["BODY3D_SETTINGS"]
    estimator = current_app.config.get("RATIO_ESTIMATOR")

    # ------------------
    # Oracle check (configuration only; no request is sent)
    # ------------------
    if estimator is not None:
        oracle_ready = not isinstance(estimator, UnconfiguredRatioEstimator)
    else:
        oracle_ready = bool(settings.GEMINI_API_KEY)

    health = {
        "status": "ok",
        "oracle": oracle_ready,
        "min_confidence": settings.MIN_CONFIDENCE,
    }
    return jsonify(health)
