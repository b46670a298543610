import numpy as np
import pytest

from paleostress.errors import DegenerateVectorError, InvariantViolationError
from paleostress.rotation import (
    angle_between_unit_vectors, clamp_unit, deg2rad, dot_product, is_rotation,
    minimum_rotation_angle, multiply_tensors, normalize, normalized_cross_product,
    proper_rotation_tensor, rad2deg, rotation_between_vectors, spherical_to_unit_vector,
    tensor_x_vector, transpose_tensor, trend_plunge_to_unit_vector, trend_to_phi,
    unit_vector_to_spherical, unit_vector_to_trend_plunge,
)


def _random_rotations(n, seed=0):
    rng = np.random.default_rng(seed)
    rotations = []
    for _ in range(n):
        axis = spherical_to_unit_vector(rng.uniform(0, 2 * np.pi), np.arccos(2 * rng.uniform() - 1))
        rotations.append(proper_rotation_tensor(axis, rng.uniform(0, np.pi)))
    return rotations


def test_spherical_coordinates_give_unit_vectors():
    for phi in np.linspace(0, 2 * np.pi, 7):
        for theta in np.linspace(0, np.pi, 5):
            v = spherical_to_unit_vector(phi, theta)
            np.testing.assert_allclose(np.linalg.norm(v), 1.0, atol=1e-12)


def test_spherical_roundtrip():
    phi, theta = unit_vector_to_spherical(spherical_to_unit_vector(1.2, 0.7))
    np.testing.assert_allclose([phi, theta], [1.2, 0.7], atol=1e-12)


def test_trend_plunge_geographic_frame():
    # X = East, Y = North, Z = Up
    np.testing.assert_allclose(trend_plunge_to_unit_vector(0, 0), [0, 1, 0], atol=1e-12)
    np.testing.assert_allclose(trend_plunge_to_unit_vector(90, 0), [1, 0, 0], atol=1e-12)
    np.testing.assert_allclose(trend_plunge_to_unit_vector(0, 90), [0, 0, -1], atol=1e-12)
    np.testing.assert_allclose(trend_to_phi(0), np.pi / 2)


def test_trend_plunge_roundtrip():
    trend, plunge = unit_vector_to_trend_plunge(trend_plunge_to_unit_vector(230, 35))
    np.testing.assert_allclose([trend, plunge], [230, 35], atol=1e-9)


def test_trend_plunge_uses_lower_hemisphere():
    trend, plunge = unit_vector_to_trend_plunge(-trend_plunge_to_unit_vector(230, 35))
    np.testing.assert_allclose([trend, plunge], [230, 35], atol=1e-9)


def test_normalize_zero_vector_raises():
    with pytest.raises(DegenerateVectorError):
        normalize([0.0, 0.0, 0.0])


def test_proper_rotation_is_orthonormal():
    for r in _random_rotations(20):
        np.testing.assert_allclose(r.T @ r, np.eye(3), atol=1e-12)
        np.testing.assert_allclose(np.linalg.det(r), 1.0, atol=1e-12)
        assert is_rotation(r)


def test_proper_rotation_keeps_axis_and_turns_right_handed():
    axis = normalize([1.0, 2.0, -0.5])
    r = proper_rotation_tensor(axis, 0.8)
    np.testing.assert_allclose(r @ axis, axis, atol=1e-12)

    rz = proper_rotation_tensor([0, 0, 1], np.pi / 2)
    np.testing.assert_allclose(rz @ [1, 0, 0], [0, 1, 0], atol=1e-12)


def test_is_rotation_rejects_reflection():
    assert not is_rotation(np.diag([1.0, 1.0, -1.0]))
    assert not is_rotation(np.eye(2))


def test_minimum_rotation_angle_identity_and_axis_flips():
    assert minimum_rotation_angle(np.eye(3)) == pytest.approx(0.0, abs=1e-12)
    # Reversing two principal axes describes the same stress frame
    for flips in ([1, -1, -1], [-1, 1, -1], [-1, -1, 1]):
        assert minimum_rotation_angle(np.diag(flips)) == pytest.approx(0.0, abs=1e-7)


def test_minimum_rotation_angle_of_small_rotation():
    r = proper_rotation_tensor([0.3, -0.2, 0.9], 0.4)
    assert minimum_rotation_angle(r) == pytest.approx(0.4, abs=1e-9)


def test_minimum_rotation_angle_bounds_and_symmetry():
    for r in _random_rotations(50, seed=4):
        angle = minimum_rotation_angle(r)
        assert 0.0 <= angle <= np.pi
        assert minimum_rotation_angle(r.T) == pytest.approx(angle, abs=1e-9)


def test_minimum_rotation_angle_rejects_non_rotation():
    with pytest.raises(InvariantViolationError):
        minimum_rotation_angle(3 * np.eye(3))


def test_rotation_between_vectors():
    r, angle = rotation_between_vectors(np.array([1.0, 0, 0]), np.array([0, 1.0, 0]))
    assert angle == pytest.approx(np.pi / 2)
    np.testing.assert_allclose(np.abs(r @ [1, 0, 0]), [0, 1, 0], atol=1e-12)


def test_rotation_between_vectors_uses_closest_sign():
    u = np.array([1.0, 0, 0])
    r, angle = rotation_between_vectors(u, -u)
    assert angle == 0.0
    np.testing.assert_allclose(r, np.eye(3))

    v = normalize([-1.0, 0.2, 0.0])
    r, angle = rotation_between_vectors(u, v)
    assert angle <= np.pi / 2
    np.testing.assert_allclose(r @ u, -v, atol=1e-12)


def test_vector_helpers():
    assert dot_product([1.0, 2.0, 3.0], [0.5, 0.0, 1.0]) == pytest.approx(3.5)
    np.testing.assert_allclose(normalized_cross_product([2.0, 0.0, 0.0], [0.0, 3.0, 0.0]), [0, 0, 1])
    assert clamp_unit(1.0000001) == 1.0
    assert angle_between_unit_vectors([1.0, 0.0, 0.0], [0.0, 1.0, 0.0]) == pytest.approx(np.pi / 2)
    # Slightly out-of-range cosines do not produce NaN
    assert angle_between_unit_vectors([1.0, 0.0, 0.0], [1.0 + 1e-12, 0.0, 0.0]) == 0.0
    assert rad2deg(deg2rad(37.0)) == pytest.approx(37.0)


def test_tensor_helpers():
    r = proper_rotation_tensor([0.0, 0.0, 1.0], np.pi / 2)
    np.testing.assert_allclose(tensor_x_vector(r, [1.0, 0.0, 0.0]), [0.0, 1.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(multiply_tensors(r, transpose_tensor(r)), np.eye(3), atol=1e-12)
    t = transpose_tensor(r)
    t[0, 0] = 5.0
    assert r[0, 0] != 5.0
