from functools import wraps

from flask import current_app, g, jsonify, request


def validate_upload_size(setting_name: str = "MAX_UPLOAD_KB"):
    """Decorator rejecting request bodies larger than the configured limit (in KB)"""

    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            max_kb = getattr(current_app.config["BODY3D_SETTINGS"], setting_name)
            content_length = request.content_length
            if content_length and content_length > max_kb * 1024:
                return (
                    jsonify(
                        {
                            "error": {
                                "code": "REQUEST_TOO_LARGE",
                                "message": f"Upload exceeds {max_kb}KB",
                                "details": {"received_kb": round(content_length / 1024, 1)},
                            },
                            "request_id": getattr(g, "request_id", None),
                        }
                    ),
                    413,
                )
            return f(*args, **kwargs)

        return wrapper

    return decorator
