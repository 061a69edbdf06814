import base64
import binascii
import time
from typing import Any, Dict, Optional, Tuple

from flasgger import swag_from
from flask import Blueprint, Response, current_app, g, jsonify, request

from body3dmetric.BodyScan.engine import MeasurementEngine
from body3dmetric.BodyScan.exceptions import (
    Body3DError,
    DegenerateMeasurementError,
    InputValidationError,
    LowConfidenceError,
    OracleResponseError,
    OracleUnavailableError,
)
from body3dmetric.BodyScan.models import MeasurementRecord, UserBiometrics
from body3dmetric.BodyScan.pipeline import ScanResult, analyze_scan
from body3dmetric.Decorators.requestSizeValidator import validate_upload_size
from body3dmetric.Silhouette.export import EXPORT_FILENAME, EXPORT_MIMETYPE, export_obj
from body3dmetric.Silhouette.generator import SilhouetteAssembly, generate_silhouette
from body3dmetric.services.ratio_oracle import build_estimator

# ------------------------------------------------------------------------------
# Blueprint
# ------------------------------------------------------------------------------
scan_bp = Blueprint("scan_bp", __name__, url_prefix="/body3d")

# ------------------------------------------------------------------------------
# Error mapping
# ------------------------------------------------------------------------------
# Checked in order; subclasses before their bases.
ERROR_MAP = (
    (DegenerateMeasurementError, "DEGENERATE_MEASUREMENT", 422),
    (LowConfidenceError, "LOW_CONFIDENCE", 422),
    (OracleResponseError, "ANALYSIS_FAILED", 502),
    (OracleUnavailableError, "ORACLE_UNAVAILABLE", 503),
    (InputValidationError, "INVALID_ARGUMENT", 400),
)
PHOTO_FIELD = "photo"


def _make_error_response(code: str, message: str, status: int, request_id: str, details: Optional[dict] = None):
    """
    Standard error payload used across endpoints for consistent client handling.
    """
    payload = {
        "error": {
            "code": code,
            "message": message
        },
        "request_id": request_id
    }
    if details:
        payload["error"]["details"] = details
    return jsonify(payload), status


def _handle_scan_error(exc: Body3DError, request_id: str, event: str):
    code, status = "INTERNAL", 500
    for exc_type, mapped_code, mapped_status in ERROR_MAP:
        if isinstance(exc, exc_type):
            code, status = mapped_code, mapped_status
            break

    current_app.logger.warning({
        "component": "Body3D",
        "request_id": request_id,
        "event": event,
        "error_code": code,
        "error_type": type(exc).__name__,
        "status": status,
    })
    return _make_error_response(code=code, message=str(exc), status=status, request_id=request_id)


def _get_estimator():
    """The injected oracle if one was given to create_app, else one built from settings."""
    estimator = current_app.config.get("RATIO_ESTIMATOR")
    if estimator is None:
        estimator = build_estimator(current_app.config["BODY3D_SETTINGS"])
        current_app.config["RATIO_ESTIMATOR"] = estimator
    return estimator


# ------------------------------------------------------------------------------
# Request parsing
# ------------------------------------------------------------------------------
def _read_scan_request() -> Tuple[bytes, Dict[str, Any]]:
    """
    Accept either multipart (photo file + form fields) or JSON (image_base64 + fields).

    Returns:
      (image_bytes, fields)

    Raises:
      InputValidationError: no image, or undecodable base64
    """
    if request.files:
        upload = request.files.get(PHOTO_FIELD)
        if upload is None:
            raise InputValidationError(f"{PHOTO_FIELD} file is required.")
        return upload.read(), request.form.to_dict()

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InputValidationError("Expected multipart form data or a JSON object.")

    encoded = data.get("image_base64")
    if not encoded or not isinstance(encoded, str):
        raise InputValidationError("image_base64 is required.")
    # Strip a data URL prefix (data:image/jpeg;base64,...) and MIME line breaks
    encoded = encoded.split(",")[-1] if "," in encoded else encoded
    encoded = "".join(encoded.split())
    try:
        image_bytes = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise InputValidationError("image_base64 is not valid base64.")
    return image_bytes, data


def _describe_assembly(assembly: SilhouetteAssembly) -> Dict[str, Any]:
    return {
        "vertex_count": assembly.mesh.vertex_count,
        "face_count": assembly.mesh.face_count,
        "vertical_offset_m": round(assembly.vertical_offset_m, 4),
        "indicators": [
            {
                "label": curve.label,
                "color": f"#{curve.color:06x}",
                "height_m": round(curve.height_m, 4),
                "major_radius_m": round(curve.major_radius_m, 4),
                "minor_radius_m": round(curve.minor_radius_m, 4),
            }
            for curve in assembly.indicators
        ],
    }


def _scan_response(result: ScanResult, request_id: str, latency_ms: int) -> Dict[str, Any]:
    return {
        "request_id": request_id,
        "measurements": result.record.to_dict(),
        "classification": result.classification,
        "confidence": result.estimate.confidence,
        "model": _describe_assembly(result.assembly),
        "latency_ms": latency_ms,
    }


# ------------------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------------------
@scan_bp.route("/scan", methods=["POST"])
@validate_upload_size()
@swag_from({
    "tags": ["Body3D"],
    "summary": "Estimate body measurements and a 3D silhouette from one front photo",
    "consumes": ["multipart/form-data", "application/json"],
    "parameters": [
        {"name": "photo", "in": "formData", "type": "file", "required": False},
        {"name": "height_cm", "in": "formData", "type": "number", "required": True},
        {"name": "weight_kg", "in": "formData", "type": "number", "required": True},
        {"name": "age_years", "in": "formData", "type": "number", "required": False},
    ],
    "responses": {
        200: {"description": "Measurements, classification and model summary"},
        400: {"description": "Invalid image or biometrics"},
        413: {"description": "Upload too large"},
        422: {"description": "Degenerate measurement or confidence below threshold"},
        502: {"description": "Could not analyze body proportions"},
        503: {"description": "Ratio oracle unavailable"},
    },
})
def scan():
    """
    Analyze a front-facing full-body photo.

    Flow:
      - Validate biometrics and image
      - Ask the ratio oracle once (no retries)
      - Compute measurements, classify, build the silhouette
    """
    start_time = time.time()
    request_id = g.request_id
    settings = current_app.config["BODY3D_SETTINGS"]

    try:
        image_bytes, fields = _read_scan_request()
        biometrics = UserBiometrics.create(
            fields.get("height_cm"), fields.get("weight_kg"), fields.get("age_years")
        )
        result = analyze_scan(
            image_bytes,
            biometrics,
            _get_estimator(),
            engine=MeasurementEngine(),
            min_confidence=settings.MIN_CONFIDENCE,
            include_shoulder=settings.INCLUDE_SHOULDER_TAPE,
        )
    except Body3DError as exc:
        return _handle_scan_error(exc, request_id, "scan_failed")
    except Exception as exc:
        current_app.logger.exception({
            "component": "Body3D",
            "request_id": request_id,
            "event": "scan_exception",
            "error": str(exc),
        })
        return _make_error_response(
            code="INTERNAL",
            message="Unexpected error during body scan processing",
            status=500,
            request_id=request_id,
        )

    latency_ms = int((time.time() - start_time) * 1000)
    current_app.logger.info({
        "component": "Body3D",
        "request_id": request_id,
        "event": "scan_completed",
        "bmi": result.record.bmi,
        "confidence": result.estimate.confidence,
        "latency_ms": latency_ms,
    })
    return jsonify(_scan_response(result, request_id, latency_ms)), 200


@scan_bp.route("/export", methods=["POST"])
@validate_upload_size()
@swag_from({
    "tags": ["Body3D"],
    "summary": "Download the silhouette for a measurement record as an OBJ file",
    "responses": {
        200: {"description": "OBJ file attachment"},
        400: {"description": "Invalid measurement record"},
        413: {"description": "Request too large"},
    },
})
def export():
    """
    Regenerates the mesh from the posted record (as returned by /scan) and returns
    it as a Wavefront OBJ attachment. Only the solid body is exported.
    """
    request_id = g.request_id
    data = request.get_json(silent=True)
    if isinstance(data, dict) and isinstance(data.get("measurements"), dict):
        data = data["measurements"]

    try:
        record = MeasurementRecord.from_dict(data)
    except Body3DError as exc:
        return _handle_scan_error(exc, request_id, "export_failed")

    assembly = generate_silhouette(record)
    obj_text = export_obj(assembly.mesh, assembly.vertical_offset_m)
    current_app.logger.info({
        "component": "Body3D",
        "request_id": request_id,
        "event": "export_completed",
        "vertex_count": assembly.mesh.vertex_count,
        "face_count": assembly.mesh.face_count,
    })
    return Response(
        obj_text,
        mimetype=EXPORT_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
    )
