"""
Lathed body silhouette, measurement tapes and OBJ export.
"""

from .generator import (  # noqa: F401
    MeasurementIndicatorCurve,
    SilhouetteAssembly,
    SilhouetteMesh,
    generate_silhouette,
)
from .export import EXPORT_FILENAME, export_obj, parse_obj  # noqa: F401
