import numpy as np
import pytest

from paleostress.config import COMPACTIONAL_S1N_INTERVAL, NEOFORMED_S1N_INTERVAL
from paleostress.data import (
    DataKind, interval_datum, neoformed_striated_plane, striated_compactional_shear_band,
)
from paleostress.engine import tensor_parameters_from_rotation
from paleostress.errors import ConstructionError, InvariantViolationError
from paleostress.faults import Direction, Plane, Striation, TypeOfMovement
from paleostress.rotation import normalize, proper_rotation_tensor
from paleostress.search import MonteCarlo
from paleostress.shear_bands import interval_geometry, interval_misfit, s1n_interval

# Normal fault dipping 60° East, pure dip-slip
PLANE = Plane(0, 60, Direction.E)
STRIATION = Striation(rake=90, type_of_movement=TypeOfMovement.N)
N_PLANE = np.array([np.sqrt(3) / 2, 0.0, 0.5])
N_STRIATION = np.array([0.5, 0.0, -np.sqrt(3) / 2])


def _frame(sigma1, sigma2):
    sigma3 = np.cross(sigma2, sigma1)
    return tensor_parameters_from_rotation(np.array([sigma1, sigma3, sigma2]), 0.5)


def test_default_intervals():
    assert s1n_interval(NEOFORMED_S1N_INTERVAL) == NEOFORMED_S1N_INTERVAL
    assert s1n_interval(COMPACTIONAL_S1N_INTERVAL, (None, None), (None, None)) == COMPACTIONAL_S1N_INTERVAL


def test_friction_interval():
    alpha_min, alpha_max = s1n_interval(NEOFORMED_S1N_INTERVAL, friction_angles=(30.0, 30.0))
    np.testing.assert_allclose([alpha_min, alpha_max], [np.pi / 3, np.pi / 3])

    alpha_min, alpha_max = s1n_interval(NEOFORMED_S1N_INTERVAL, friction_angles=(20.0, None))
    np.testing.assert_allclose([alpha_min, alpha_max], [np.radians(55.0), np.pi / 2])


def test_s1n_interval_in_degrees():
    alpha_min, alpha_max = s1n_interval(NEOFORMED_S1N_INTERVAL, s1n_angles=(50.0, 70.0))
    np.testing.assert_allclose([alpha_min, alpha_max], np.radians([50.0, 70.0]))


def test_friction_and_s1n_are_exclusive():
    with pytest.raises(ConstructionError, match="not both"):
        s1n_interval(NEOFORMED_S1N_INTERVAL, friction_angles=(30.0, 40.0),
                     s1n_angles=(50.0, 70.0), index=9)
    with pytest.raises(ConstructionError):
        s1n_interval(NEOFORMED_S1N_INTERVAL, s1n_angles=(70.0, 50.0))


def test_interval_geometry_frames():
    geometry = interval_geometry(N_PLANE, N_STRIATION, np.pi / 4, np.pi / 2)
    np.testing.assert_allclose(geometry.sigma2_m, [0.0, 1.0, 0.0], atol=1e-12)
    assert geometry.alpha_mean == pytest.approx(3 * np.pi / 8)
    assert geometry.half_width == pytest.approx(np.pi / 8)
    for frame in geometry.frames:
        np.testing.assert_allclose(frame @ frame.T, np.eye(3), atol=1e-12)
        np.testing.assert_allclose(np.linalg.det(frame), 1.0, atol=1e-12)


def test_misfit_is_zero_inside_interval():
    datum = neoformed_striated_plane(PLANE, STRIATION)
    # σ1 vertical makes a 60° angle with the normal, inside [45°, 90°]
    stress = _frame(np.array([0.0, 0.0, 1.0]), np.array([0.0, 1.0, 0.0]))
    assert datum.cost(stress=stress) == pytest.approx(0.0, abs=1e-7)


def test_misfit_outside_interval_is_rotation_to_nearest_bound():
    geometry = interval_geometry(N_PLANE, N_STRIATION, np.pi / 4, np.pi / 2)
    # σ1 along the normal: 45° away from the lower bound
    stress = _frame(N_PLANE, np.array([0.0, 1.0, 0.0]))
    assert interval_misfit(geometry, stress) == pytest.approx(np.pi / 4, abs=1e-9)


def test_misfit_counts_sigma2_rotation():
    geometry = interval_geometry(N_PLANE, N_STRIATION, np.pi / 4, np.pi / 2)
    sigma1 = np.array([0.0, 0.0, 1.0])
    tilt = np.radians(10.0)
    sigma2 = np.array([np.sin(tilt), np.cos(tilt), 0.0])
    assert interval_misfit(geometry, _frame(sigma1, sigma2)) == pytest.approx(tilt, abs=1e-9)


def test_interval_data_require_movement():
    with pytest.raises(ConstructionError, match="type of movement"):
        neoformed_striated_plane(PLANE, Striation(rake=90), index=2)


def test_compactional_band_default_interval():
    datum = striated_compactional_shear_band(PLANE, STRIATION)
    assert datum.kind is DataKind.STRIATED_COMPACTIONAL_SHEAR_BAND
    assert datum.geometry.alpha_min == 0.0
    assert datum.geometry.alpha_max == pytest.approx(np.pi / 4)


def test_interval_datum_rejects_other_kinds():
    with pytest.raises(ValueError, match="not an angular-interval structure"):
        interval_datum(DataKind.STRIATED_PLANE, PLANE, STRIATION)


def _middle_frame_hypothesis(geometry):
    # σ1 turned 90° about σ2_m, then σ2 tilted 85° about the σ1/σ3 bisector
    sigma1, sigma3, sigma2 = geometry.frames[1]
    tilt = proper_rotation_tensor(normalize(sigma1 + sigma3), np.radians(85.0))
    return np.array([sigma3, -sigma1, sigma2]) @ tilt


def test_middle_frame_closest_raises():
    geometry = interval_geometry(N_PLANE, N_STRIATION, np.pi / 4, np.pi / 2)
    stress = tensor_parameters_from_rotation(_middle_frame_hypothesis(geometry), 0.5)
    with pytest.raises(InvariantViolationError) as excinfo:
        interval_misfit(geometry, stress, index=4)
    assert excinfo.value.index == 4


def test_search_skips_middle_frame_hypothesis():
    datum = neoformed_striated_plane(PLANE, STRIATION, index=3)
    search = MonteCarlo(nb_random_trials=5, rot_angle_half_interval=0.0,
                        stress_ratio=0.5, stress_ratio_half_interval=0.0,
                        Rrot=_middle_frame_hypothesis(datum.geometry), seed=0)
    solution = search.run([datum])
    assert search.skipped_trials == 5
    assert solution.misfit == np.inf


def test_interval_geometry_is_read_only():
    geometry = neoformed_striated_plane(PLANE, STRIATION).geometry
    for array in (geometry.n_plane, geometry.sigma2_m, geometry.sigma1_mean, *geometry.frames):
        with pytest.raises(ValueError):
            array[0] = 1.0
