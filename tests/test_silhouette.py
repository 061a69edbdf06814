import math
import os
import sys

import numpy as np
import pytest

sys.path.append(os.path.abspath("."))

from body3dmetric.BodyScan.engine import MeasurementEngine  # noqa: E402
from body3dmetric.BodyScan.models import RawRatioEstimate, UserBiometrics  # noqa: E402
from body3dmetric.Silhouette.export import EXPORT_FILENAME, export_obj, parse_obj  # noqa: E402
from body3dmetric.Silhouette.generator import (  # noqa: E402
    DEPTH_SCALE,
    HEAD_NAN_FALLBACK_RADIUS,
    build_indicator_curves,
    build_landmarks,
    generate_silhouette,
    head_profile_radius,
    lathe,
    sample_profile,
)


@pytest.fixture
def record():
    estimate = RawRatioEstimate(
        waist_ratio=0.25,
        hip_ratio=0.30,
        shoulder_ratio=0.25,
        chest_ratio=0.28,
        torso_height_ratio=0.30,
        confidence=0.9,
    )
    return MeasurementEngine().compute(estimate, UserBiometrics.create(170, 70, 40))


@pytest.fixture
def assembly(record):
    return generate_silhouette(record)


# ------------------------------------------------------------------------------
# Profile
# ------------------------------------------------------------------------------
def test_landmarks_are_ordered_bottom_to_top(record):
    landmarks = build_landmarks(record)
    ts = [lm.t for lm in landmarks]
    assert ts == sorted(ts)
    assert ts[0] == 0.0 and ts[-1] == 1.0
    # widest hip landmark is half the hip width
    assert landmarks[3].radius == pytest.approx(record.hip_width_m / 2)


def test_profile_heights_are_monotonic_and_span_body_height(record):
    profile = sample_profile(build_landmarks(record), record.scale_factor)
    heights = [h for _, h in profile]

    assert len(profile) == 41
    assert all(b >= a for a, b in zip(heights, heights[1:]))
    assert heights[0] == 0.0
    assert heights[-1] == record.scale_factor


def test_profile_has_no_nan_or_negative_radius(record):
    profile = sample_profile(build_landmarks(record), record.scale_factor, density=200)
    radii = [r for r, _ in profile]
    assert all(math.isfinite(r) and r >= 0 for r in radii)
    # crown closes the head
    assert radii[-1] == pytest.approx(0.0, abs=1e-9)


def test_profile_interpolates_between_bracketing_landmarks(record):
    # t=0.5 sits between the hip (0.45) and waist (0.58) landmarks
    profile = sample_profile(build_landmarks(record), record.scale_factor, density=2)
    hip_r = record.hip_width_m * 0.5
    waist_r = record.waist_width_m * 0.5
    expected = hip_r + (waist_r - hip_r) * ((0.5 - 0.45) / (0.58 - 0.45))
    assert profile[1][0] == pytest.approx(expected)


def test_head_profile_is_defined_at_region_edges():
    assert head_profile_radius(0.0, 0.136) == 0.0
    assert head_profile_radius(1.0, 0.136) == 0.0
    assert head_profile_radius(0.5, 0.136) == pytest.approx(0.136)


def test_head_profile_never_returns_nan():
    assert head_profile_radius(0.5, float("nan")) == HEAD_NAN_FALLBACK_RADIUS
    assert not math.isnan(head_profile_radius(float("nan"), 0.1))


def test_density_must_be_positive(record):
    with pytest.raises(ValueError):
        sample_profile(build_landmarks(record), record.scale_factor, density=0)


# ------------------------------------------------------------------------------
# Lathe mesh
# ------------------------------------------------------------------------------
def test_mesh_vertex_and_face_counts(assembly):
    mesh = assembly.mesh
    assert mesh.vertex_count == (48 + 1) * 41
    assert mesh.face_count == 48 * 40 * 2
    assert mesh.faces.min() == 0
    assert mesh.faces.max() == mesh.vertex_count - 1


def test_mesh_is_flattened_front_to_back(assembly):
    vertices = assembly.mesh.vertices
    max_radius = max(r for r, _ in assembly.mesh.profile)

    assert np.abs(vertices[:, 0]).max() == pytest.approx(max_radius)
    assert np.abs(vertices[:, 2]).max() == pytest.approx(max_radius * DEPTH_SCALE)
    assert np.isfinite(vertices).all()


def test_mesh_arrays_are_read_only(assembly):
    with pytest.raises(ValueError):
        assembly.mesh.vertices[0, 0] = 1.0
    with pytest.raises(ValueError):
        assembly.mesh.faces[0, 0] = 1


def test_lathe_rejects_tiny_inputs():
    with pytest.raises(ValueError):
        lathe([(0.1, 0.0)])
    with pytest.raises(ValueError):
        lathe([(0.1, 0.0), (0.1, 1.0)], segments=2)


def test_regeneration_builds_a_new_equal_assembly(record, assembly):
    again = generate_silhouette(record)
    assert again is not assembly
    assert np.array_equal(again.mesh.vertices, assembly.mesh.vertices)
    assert np.array_equal(again.mesh.faces, assembly.mesh.faces)


def test_model_is_centered_vertically(record, assembly):
    assert assembly.vertical_offset_m == pytest.approx(-record.scale_factor / 2)


# ------------------------------------------------------------------------------
# Measuring tapes
# ------------------------------------------------------------------------------
def test_default_tapes(record, assembly):
    labels = [curve.label for curve in assembly.indicators]
    assert labels == ["chest", "waist", "hip"]

    waist = assembly.indicators[1]
    assert waist.major_radius_m == pytest.approx(record.waist_width_m / 2 + 0.01)
    assert waist.minor_radius_m == pytest.approx(waist.major_radius_m * 0.7)
    assert waist.height_m == pytest.approx(0.58 * record.scale_factor)


def test_tapes_are_closed_flat_ellipses(assembly):
    for curve in assembly.indicators:
        assert curve.points.shape == (65, 3)
        assert np.allclose(curve.points[0], curve.points[-1])
        assert np.allclose(curve.points[:, 1], curve.height_m)
        assert np.abs(curve.points[:, 0]).max() == pytest.approx(curve.major_radius_m)


def test_shoulder_tape_is_optional(record):
    curves = build_indicator_curves(record, include_shoulder=True)
    assert [c.label for c in curves][-1] == "shoulder"
    assert curves[-1].height_m == pytest.approx(0.80 * record.scale_factor)


# ------------------------------------------------------------------------------
# OBJ export
# ------------------------------------------------------------------------------
def test_export_contains_only_solid_geometry(assembly):
    text = export_obj(assembly.mesh, assembly.vertical_offset_m)
    lines = text.splitlines()

    assert sum(1 for line in lines if line.startswith("v ")) == assembly.mesh.vertex_count
    assert sum(1 for line in lines if line.startswith("f ")) == assembly.mesh.face_count
    assert not any(line.startswith("l ") for line in lines)


def test_export_applies_vertical_offset(assembly):
    text = export_obj(assembly.mesh, assembly.vertical_offset_m)
    ys = [float(line.split()[2]) for line in text.splitlines() if line.startswith("v ")]
    assert min(ys) == pytest.approx(assembly.vertical_offset_m)
    assert max(ys) == pytest.approx(assembly.vertical_offset_m + 1.70)


def test_export_round_trip_counts(assembly):
    text = export_obj(assembly.mesh)
    assert parse_obj(text) == (assembly.mesh.vertex_count, assembly.mesh.face_count)


def test_export_filename():
    assert EXPORT_FILENAME == "Body3DMetric_Scan.obj"


def test_generate_silhouette_passes_shoulder_flag(record):
    assembly = generate_silhouette(record, include_shoulder=True)
    assert [c.label for c in assembly.indicators] == ["chest", "waist", "hip", "shoulder"]
