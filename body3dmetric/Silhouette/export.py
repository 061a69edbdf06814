import io
from typing import Tuple

import numpy as np
import trimesh
from trimesh.exchange.obj import export_obj as _trimesh_export_obj

from .generator import SilhouetteMesh

EXPORT_FILENAME = "Body3DMetric_Scan.obj"
EXPORT_MIMETYPE = "text/plain"


def to_trimesh(mesh: SilhouetteMesh, vertical_offset_m: float = 0.0) -> trimesh.Trimesh:
    """
    Wrap the solid silhouette in a Trimesh, shifted by the assembly's vertical offset.

    process=False keeps the duplicated seam and pole vertices so counts match the lathe.
    """
    vertices = np.array(mesh.vertices, dtype=np.float64, copy=True)
    vertices[:, 1] += vertical_offset_m
    return trimesh.Trimesh(vertices=vertices, faces=np.array(mesh.faces), process=False)


def export_obj(mesh: SilhouetteMesh, vertical_offset_m: float = 0.0) -> str:
    """Wavefront OBJ text with vertices and faces only (no normals, uvs or tapes)."""
    return _trimesh_export_obj(
        to_trimesh(mesh, vertical_offset_m),
        include_normals=False,
        include_color=False,
        include_texture=False,
    )


def parse_obj(text: str) -> Tuple[int, int]:
    """Load OBJ text back and return (vertex_count, face_count)."""
    loaded = trimesh.load_mesh(
        io.BytesIO(text.encode("utf-8")),
        file_type="obj",
        process=False,
        maintain_order=True,
    )
    return len(loaded.vertices), len(loaded.faces)
