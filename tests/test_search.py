import threading
import time

import numpy as np
import pytest

from paleostress.data import striated_plane
from paleostress.engine import HomogeneousEngine
from paleostress.errors import InvariantViolationError, NoDataError
from paleostress.rotation import is_rotation, normalize
from paleostress.search import (
    DebugSearch, MisfitCriteriunSolution, MonteCarlo, SearchMethodFactory, best_of,
    evaluate_misfit,
)

# σ1 = East, σ3 = North, σ2 = Up and R = 0.5 explain this datum exactly
DATA = [striated_plane(normalize([1.0, 1.0, 0.0]), normalize([-1.0, 1.0, 0.0]))]


class BrokenDatum:
    """Datum whose misfit is undefined for every hypothesis."""
    weight = 1.0
    position = (0.0, 0.0, 0.0)

    def cost(self, displ=None, strain=None, stress=None):
        raise InvariantViolationError("misfit is not monotonic", index=1)


def test_evaluate_misfit():
    engine = HomogeneousEngine()
    engine.set_hypothetical_stress(np.eye(3), 0.5)
    assert evaluate_misfit(DATA, engine) == pytest.approx(0.0, abs=1e-7)
    with pytest.raises(NoDataError):
        evaluate_misfit([], engine)


def test_best_of_keeps_first_on_ties():
    a = MisfitCriteriunSolution(misfit=0.2, stress_ratio=0.1)
    b = MisfitCriteriunSolution(misfit=0.2, stress_ratio=0.9)
    c = MisfitCriteriunSolution(misfit=0.5)
    assert best_of([c, a, b]) is a


def test_clone_is_independent():
    solution = MisfitCriteriunSolution(misfit=0.3, stress_ratio=0.4)
    copy = solution.clone()
    copy.rotation_matrix_w[0, 0] = 5.0
    assert solution.rotation_matrix_w[0, 0] == 1.0
    assert copy.misfit == 0.3


def test_debug_search_evaluates_rough_estimate():
    search = DebugSearch(Rrot=np.eye(3), stress_ratio=0.5)
    solution = search.run(DATA, MisfitCriteriunSolution())
    assert solution.misfit == pytest.approx(0.0, abs=1e-7)
    assert solution.stress_ratio == 0.5
    np.testing.assert_allclose(solution.rotation_matrix_w, np.eye(3))


def test_monte_carlo_is_reproducible_with_seed():
    a = MonteCarlo(nb_random_trials=200, seed=3).run(DATA)
    b = MonteCarlo(nb_random_trials=200, seed=3).run(DATA)
    assert a.misfit == b.misfit
    np.testing.assert_array_equal(a.rotation_matrix_w, b.rotation_matrix_w)
    assert a.stress_ratio == b.stress_ratio


def test_monte_carlo_solution_is_consistent():
    search = MonteCarlo(nb_random_trials=300, seed=0)
    solution = search.run(DATA)
    assert np.isfinite(solution.misfit)
    assert is_rotation(solution.rotation_matrix_w)
    np.testing.assert_allclose(solution.rotation_matrix_w, solution.rotation_matrix_d @ search.Rrot,
                               atol=1e-12)
    r_min, r_max = search.stress_ratio_bounds
    assert r_min <= solution.stress_ratio <= r_max


def test_history_is_non_increasing():
    search = MonteCarlo(nb_random_trials=150, seed=1, record_history=True)
    solution = search.run(DATA)
    assert len(search.history) == 150
    assert np.all(np.diff(search.history) <= 0)
    assert search.history[-1] == solution.misfit


def test_zero_width_search_stays_on_estimate():
    search = MonteCarlo(rot_angle_half_interval=0.0, nb_random_trials=10,
                        stress_ratio=0.5, stress_ratio_half_interval=0.0, seed=2)
    solution = search.run(DATA)
    assert solution.misfit == pytest.approx(0.0, abs=1e-6)
    assert solution.stress_ratio == pytest.approx(0.5)


def test_run_never_worsens_previous_best():
    previous = MisfitCriteriunSolution(misfit=0.0, stress_ratio=0.3)
    solution = MonteCarlo(nb_random_trials=50, seed=4).run(DATA, previous)
    assert solution.misfit == 0.0
    assert solution.stress_ratio == 0.3
    assert solution is not previous


def test_stress_ratio_bounds_are_clamped():
    assert MonteCarlo(stress_ratio=0.9, stress_ratio_half_interval=0.3).stress_ratio_bounds == \
        pytest.approx((0.6, 1.0))
    # A negative R0 is read as its absolute value
    assert MonteCarlo(stress_ratio=-0.1, stress_ratio_half_interval=0.2).stress_ratio_bounds == \
        pytest.approx((0.0, 0.3))


def test_expired_deadline_runs_no_trial():
    search = MonteCarlo(nb_random_trials=1000, deadline=time.monotonic() - 1.0, record_history=True)
    solution = search.run(DATA)
    assert solution.misfit == np.inf
    assert len(search.history) == 0


def test_cancelled_search_returns_start():
    event = threading.Event()
    event.set()
    previous = MisfitCriteriunSolution(misfit=1.0)
    solution = MonteCarlo(nb_random_trials=1000, cancel_event=event).run(DATA, previous)
    assert solution.misfit == 1.0


def test_invariant_violations_are_skipped():
    search = MonteCarlo(nb_random_trials=20, seed=0)
    solution = search.run([BrokenDatum()])
    assert solution.misfit == np.inf
    assert search.skipped_trials == 20


def test_invariant_violations_can_abort():
    search = MonteCarlo(nb_random_trials=20, seed=0, invariant_policy="raise")
    with pytest.raises(InvariantViolationError):
        search.run([BrokenDatum()])


def test_empty_data():
    with pytest.raises(NoDataError):
        MonteCarlo(nb_random_trials=10).run([])


@pytest.mark.parametrize("kwargs", [
    {"nb_random_trials": -1},
    {"rot_angle_half_interval": -0.1},
    {"check_interval": 0},
    {"n_workers": 0},
    {"invariant_policy": "ignore"},
    {"Rrot": np.diag([1.0, 1.0, -1.0])},
    {"stress_ratio": 1.5},
    {"stress_ratio_half_interval": -0.1},
    {"n_workers": 2, "engine": HomogeneousEngine()},
])
def test_invalid_parameters(kwargs):
    with pytest.raises(ValueError):
        MonteCarlo(**kwargs)


def test_parallel_search_is_reproducible():
    a = MonteCarlo(nb_random_trials=40, seed=5, n_workers=2, record_history=True)
    b = MonteCarlo(nb_random_trials=40, seed=5, n_workers=2)
    sol_a, sol_b = a.run(DATA), b.run(DATA)
    assert sol_a.misfit == sol_b.misfit
    np.testing.assert_array_equal(sol_a.rotation_matrix_w, sol_b.rotation_matrix_w)
    assert len(a.history) == 40
    assert np.all(np.diff(a.history) <= 0)
    assert a.history[-1] == sol_a.misfit


def test_factory():
    assert SearchMethodFactory.names() == ["Debug Search", "Monte Carlo"]
    assert SearchMethodFactory.exists("Monte Carlo")
    assert not SearchMethodFactory.exists("Grid Search")

    search = SearchMethodFactory.create("Monte Carlo", {
        "rotAngleHalfInterval": 0.5,
        "nbRandomTrials": 10,
        "stressRatio": 0.3,
        "stressRatioHalfInterval": 0.1,
        "Rrot": [[1, 0, 0], [0, 1, 0], [0, 0, 1]],
    })
    assert isinstance(search, MonteCarlo)
    assert search.rot_angle_half_interval == 0.5
    assert search.nb_random_trials == 10
    assert search.stress_ratio_bounds == pytest.approx((0.2, 0.4))

    assert isinstance(SearchMethodFactory.create("Debug Search"), DebugSearch)
    with pytest.raises(ValueError, match="Unknown search method"):
        SearchMethodFactory.create("Grid Search")


def test_search_setters():
    search = MonteCarlo(nb_random_trials=10)
    search.set_nb_iter(25)
    assert search.nb_random_trials == 25

    engine = HomogeneousEngine()
    search.set_engine(engine)
    assert search.engine is engine

    rot = np.array([[0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, -1.0]])
    search.set_interactive_solution(rot, 0.7)
    np.testing.assert_array_equal(search.Rrot, rot)
    assert search.stress_ratio_bounds == pytest.approx((0.45, 0.95))


def test_interactive_solution_must_meet_stress_ratio_range():
    search = MonteCarlo(stress_ratio=0.5, stress_ratio_half_interval=0.1)
    with pytest.raises(ValueError, match="Stress ratio band"):
        search.set_interactive_solution(np.eye(3), 1.2)
    assert search.stress_ratio0 == 0.5
