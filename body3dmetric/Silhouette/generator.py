"""
Parametric body silhouette built as a surface of revolution.

The profile is a piecewise-linear radius curve over normalized height, anchored on
anthropometric landmarks (ankle, knee, hip, waist, chest, shoulder, neck) plus a
hemispherical head cap. It is lathed around the vertical (y) axis and flattened on z
so cross-sections read as ellipses instead of circles.

All lengths are meters. The profile runs from y=0 (ground) to y=height_cm/100.
"""
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from ..BodyScan.models import MeasurementRecord

# ------------------------------------------------------------------------------
# Geometry constants
# ------------------------------------------------------------------------------
PROFILE_DENSITY = 40
LATHE_SEGMENTS = 48
DEPTH_SCALE = 0.7

# Landmark heights as fractions of total body height
ANKLE_T = 0.10
KNEE_T = 0.35
HIP_T = 0.45
WAIST_T = 0.58
CHEST_T = 0.72
SHOULDER_T = 0.80
NECK_BASE_T = 0.83
MID_NECK_T = 0.86
CROWN_T = 1.0

# Fixed anatomical radii per meter of body height
NECK_BASE_RADIUS = 0.045
MID_NECK_RADIUS = 0.040
HEAD_RADIUS = 0.08
# Samples above the mid-neck use the head cap instead of the landmark interpolation.
HEAD_START_T = MID_NECK_T
HEAD_NAN_FALLBACK_RADIUS = 0.005

# Measuring tapes
TAPE_MARGIN = 0.01
TAPE_DIVISIONS = 64
TAPE_COLORS = {
    "chest": 0xEC4899,
    "waist": 0x22D3EE,
    "hip": 0x818CF8,
    "shoulder": 0xF59E0B,
}

# Lower the model by half its height so it sits centered around the viewport origin.
VERTICAL_CENTER_FRACTION = 0.5


@dataclass(frozen=True)
class Landmark:
    t: float
    radius: float


@dataclass(frozen=True)
class SilhouetteMesh:
    profile: Tuple[Tuple[float, float], ...]
    vertices: np.ndarray
    faces: np.ndarray
    segments: int
    depth_scale: float

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def face_count(self) -> int:
        return int(self.faces.shape[0])


@dataclass(frozen=True)
class MeasurementIndicatorCurve:
    label: str
    color: int
    height_m: float
    major_radius_m: float
    minor_radius_m: float
    points: np.ndarray


@dataclass(frozen=True)
class SilhouetteAssembly:
    """Everything rendered for one record. Replaced wholesale, never edited."""

    mesh: SilhouetteMesh
    indicators: Tuple[MeasurementIndicatorCurve, ...]
    vertical_offset_m: float


def build_landmarks(record: MeasurementRecord) -> List[Landmark]:
    """Profile control points, bottom to top; body radii are half of each width."""
    scale = record.scale_factor
    hip = record.hip_width_m
    return [
        Landmark(0.0, 0.0),
        Landmark(ANKLE_T, hip * 0.4),
        Landmark(KNEE_T, hip * 0.45),
        Landmark(HIP_T, hip * 0.5),
        Landmark(WAIST_T, record.waist_width_m * 0.5),
        Landmark(CHEST_T, record.chest_width_m * 0.5),
        Landmark(SHOULDER_T, record.shoulder_width_m * 0.5),
        Landmark(NECK_BASE_T, NECK_BASE_RADIUS * scale),
        Landmark(MID_NECK_T, MID_NECK_RADIUS * scale),
        Landmark(CROWN_T, 0.0),
    ]


def head_profile_radius(head_t: float, head_radius: float) -> float:
    """
    Radius of a sphere's silhouette at local fraction head_t of the head region.

    The clamp covers float error at head_t in {0, 1}; NaN never reaches the mesh.
    """
    r = math.sqrt(max(0.0, 1 - (head_t * 2 - 1) ** 2)) * head_radius
    if math.isnan(r):
        r = HEAD_NAN_FALLBACK_RADIUS
    return r


def _interpolate(landmarks: Sequence[Landmark], t: float) -> float:
    # Only the two bracketing landmarks contribute.
    for lower, upper in zip(landmarks, landmarks[1:]):
        if lower.t <= t <= upper.t:
            local_t = (t - lower.t) / (upper.t - lower.t)
            return lower.radius + (upper.radius - lower.radius) * local_t
    return 0.0


def sample_profile(
    landmarks: Sequence[Landmark],
    scale: float,
    density: int = PROFILE_DENSITY,
) -> List[Tuple[float, float]]:
    """
    Sample (radius, height) pairs at density+1 evenly spaced fractions of the height.
    """
    if density < 1:
        raise ValueError("density must be at least 1.")

    head_radius = HEAD_RADIUS * scale
    profile = []
    for i in range(density + 1):
        t = i / density
        r = _interpolate(landmarks, t)
        if t > HEAD_START_T:
            head_t = (t - HEAD_START_T) / (CROWN_T - HEAD_START_T)
            r = head_profile_radius(head_t, head_radius)
        profile.append((r, t * scale))
    return profile


def lathe(
    profile: Sequence[Tuple[float, float]],
    segments: int = LATHE_SEGMENTS,
    depth_scale: float = DEPTH_SCALE,
) -> SilhouetteMesh:
    """
    Revolve the profile about the y axis.

    Vertex (i, j) is profile point j at angle step i, stored at index i * len(profile) + j.
    The seam column is duplicated (segments + 1 columns) so every quad is two triangles.
    The z axis is then multiplied by depth_scale over the whole mesh.
    """
    if segments < 3:
        raise ValueError("segments must be at least 3.")
    points = np.asarray(profile, dtype=np.float64)
    if points.ndim != 2 or points.shape[0] < 2 or points.shape[1] != 2:
        raise ValueError("profile must contain at least two (radius, height) points.")
    n = points.shape[0]

    phi = np.arange(segments + 1, dtype=np.float64) * (2 * math.pi / segments)
    radius = points[:, 0][np.newaxis, :]
    height = points[:, 1][np.newaxis, :]

    vertices = np.empty((segments + 1, n, 3), dtype=np.float64)
    vertices[..., 0] = np.sin(phi)[:, np.newaxis] * radius
    vertices[..., 1] = np.broadcast_to(height, (segments + 1, n))
    vertices[..., 2] = np.cos(phi)[:, np.newaxis] * radius
    vertices = vertices.reshape(-1, 3)
    vertices[:, 2] *= depth_scale

    col, row = np.meshgrid(np.arange(segments), np.arange(n - 1), indexing="ij")
    a = (col * n + row).ravel()
    b = a + n
    c = b + 1
    d = a + 1
    faces = np.empty((a.size * 2, 3), dtype=np.int64)
    faces[0::2] = np.stack([a, b, d], axis=1)
    faces[1::2] = np.stack([c, d, b], axis=1)

    vertices.setflags(write=False)
    faces.setflags(write=False)
    return SilhouetteMesh(
        profile=tuple((float(r), float(h)) for r, h in points),
        vertices=vertices,
        faces=faces,
        segments=segments,
        depth_scale=depth_scale,
    )


def _tape(label: str, t: float, width_m: float, scale: float) -> MeasurementIndicatorCurve:
    major = width_m / 2 + TAPE_MARGIN
    minor = major * DEPTH_SCALE
    height = t * scale
    angles = np.linspace(0.0, 2 * math.pi, TAPE_DIVISIONS + 1)
    points = np.column_stack([
        major * np.cos(angles),
        np.full(angles.shape, height),
        minor * np.sin(angles),
    ])
    points.setflags(write=False)
    return MeasurementIndicatorCurve(
        label=label,
        color=TAPE_COLORS[label],
        height_m=height,
        major_radius_m=major,
        minor_radius_m=minor,
        points=points,
    )


def build_indicator_curves(
    record: MeasurementRecord,
    include_shoulder: bool = False,
) -> Tuple[MeasurementIndicatorCurve, ...]:
    """Closed ellipses hugging the mesh at the chest, waist and hip (and shoulder) heights."""
    scale = record.scale_factor
    curves = [
        _tape("chest", CHEST_T, record.chest_width_m, scale),
        _tape("waist", WAIST_T, record.waist_width_m, scale),
        _tape("hip", HIP_T, record.hip_width_m, scale),
    ]
    if include_shoulder:
        curves.append(_tape("shoulder", SHOULDER_T, record.shoulder_width_m, scale))
    return tuple(curves)


def generate_silhouette(
    record: MeasurementRecord,
    density: int = PROFILE_DENSITY,
    segments: int = LATHE_SEGMENTS,
    include_shoulder: bool = False,
) -> SilhouetteAssembly:
    """
    Build the complete renderable assembly for a record.

    The assembly is only returned once fully built, so callers can swap it in atomically.
    """
    scale = record.scale_factor
    profile = sample_profile(build_landmarks(record), scale, density=density)
    mesh = lathe(profile, segments=segments)
    indicators = build_indicator_curves(record, include_shoulder=include_shoulder)
    return SilhouetteAssembly(
        mesh=mesh,
        indicators=indicators,
        vertical_offset_m=-VERTICAL_CENTER_FRACTION * scale,
    )
