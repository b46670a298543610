"""
Search methods for the inverse problem.

The hypothesis space has four dimensions: a 3D rotation of the principal
frame around the user's rough estimate Rrot, and the stress ratio R.
``MonteCarlo`` samples it uniformly and keeps the trial with the lowest
mean misfit:

    axis   : phi ~ U(0, 2π), theta = acos(2 U(0,1) - 1)   (uniform on the sphere)
    angle  : U(0, rotAngleHalfInterval)
    Drot   : proper rotation (axis, angle)
    Wrot   : Drot · Rrot
    R      : U(max(0, |R0| - h), min(1, |R0| + h))

The best solution is an explicit accumulator: ``run`` takes the previous
best and returns a new one, never modifying its argument.
"""

import logging
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from .config import (
    DEFAULT_CHECK_INTERVAL, DEFAULT_INVARIANT_POLICY, DEFAULT_NB_RANDOM_TRIALS,
    DEFAULT_ROT_ANGLE_HALF_INTERVAL, DEFAULT_STRESS_RATIO,
    DEFAULT_STRESS_RATIO_HALF_INTERVAL, INVARIANT_POLICIES,
)
from .engine import HomogeneousEngine
from .errors import InvariantViolationError, NoDataError
from .rotation import is_rotation, proper_rotation_tensor, spherical_to_unit_vector

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Solution accumulator
# ──────────────────────────────────────────────

@dataclass
class MisfitCriteriunSolution:
    misfit: float = np.inf
    rotation_matrix_w: np.ndarray = field(default_factory=lambda: np.eye(3))
    rotation_matrix_d: np.ndarray = field(default_factory=lambda: np.eye(3))
    stress_ratio: float = None
    stress_tensor_solution: np.ndarray = None

    def clone(self) -> "MisfitCriteriunSolution":
        return MisfitCriteriunSolution(
            misfit=self.misfit,
            rotation_matrix_w=np.array(self.rotation_matrix_w, dtype=float),
            rotation_matrix_d=np.array(self.rotation_matrix_d, dtype=float),
            stress_ratio=self.stress_ratio,
            stress_tensor_solution=(None if self.stress_tensor_solution is None
                                    else np.array(self.stress_tensor_solution, dtype=float)),
        )

    def improves_on(self, other: "MisfitCriteriunSolution") -> bool:
        return self.misfit < other.misfit


def best_of(solutions) -> MisfitCriteriunSolution:
    """Reduce candidate solutions to the one with the lowest misfit (first wins ties)."""
    best = None
    for solution in solutions:
        if best is None or solution.improves_on(best):
            best = solution
    return best


def evaluate_misfit(data, engine) -> float:
    """Weighted mean cost of all data under the engine's current hypothesis."""
    if len(data) == 0:
        raise NoDataError()
    costs = [datum.cost(stress=engine.stress(datum.position)) for datum in data]
    weights = [datum.weight for datum in data]
    return float(np.average(costs, weights=weights))


# ──────────────────────────────────────────────
# Search methods
# ──────────────────────────────────────────────

class SearchMethod:
    """Interface of a search: ``run(data, previous_best) -> new best``."""

    def __init__(self, engine=None):
        self._engine = engine if engine is not None else HomogeneousEngine()

    @property
    def engine(self):
        return self._engine

    def set_engine(self, engine) -> None:
        self._engine = engine

    def set_interactive_solution(self, rot, stress_ratio: float) -> None:
        raise NotImplementedError

    def run(self, data, misfit_criteria_solution: MisfitCriteriunSolution) -> MisfitCriteriunSolution:
        raise NotImplementedError


class DebugSearch(SearchMethod):
    """Evaluates the rough estimate only; useful to check data and costs."""

    def __init__(self, Rrot=None, stress_ratio: float = DEFAULT_STRESS_RATIO, engine=None):
        super().__init__(engine)
        self.Rrot = np.eye(3) if Rrot is None else np.asarray(Rrot, dtype=float)
        self.stress_ratio0 = stress_ratio

    def set_interactive_solution(self, rot, stress_ratio: float) -> None:
        self.Rrot = np.asarray(rot, dtype=float)
        self.stress_ratio0 = stress_ratio

    def run(self, data, misfit_criteria_solution):
        best = misfit_criteria_solution.clone()
        self.engine.set_hypothetical_stress(self.Rrot, self.stress_ratio0)
        misfit = evaluate_misfit(data, self.engine)
        if misfit < best.misfit:
            best = MisfitCriteriunSolution(
                misfit=misfit,
                rotation_matrix_w=self.Rrot.copy(),
                rotation_matrix_d=np.eye(3),
                stress_ratio=self.stress_ratio0,
                stress_tensor_solution=self.engine.S,
            )
        return best


class MonteCarlo(SearchMethod):
    """Uniform random sampling of orientation and stress ratio.

    Parameters
    ----------
    rot_angle_half_interval : maximum rotation (radians) away from Rrot
    nb_random_trials : number of trials (no early stopping)
    stress_ratio : center R0 of the explored stress ratio band
    stress_ratio_half_interval : half width of that band, clamped to [0, 1]
    Rrot : rough estimate of the principal frame (rows σ1, σ3, σ2)
    seed : seed of the random generator, for reproducible runs
    deadline : time.monotonic() value after which the search stops with its
        best so far
    timeout : same as deadline, in seconds from the start of ``run``
    cancel_event : threading.Event checked every ``check_interval`` trials
    n_workers : > 1 splits the trials across worker processes
    invariant_policy : "skip" discards a trial whose misfit is undefined,
        "raise" aborts the run
    record_history : keep the best misfit after every trial in ``history``
    """

    def __init__(self,
                 rot_angle_half_interval: float = DEFAULT_ROT_ANGLE_HALF_INTERVAL,
                 nb_random_trials: int = DEFAULT_NB_RANDOM_TRIALS,
                 stress_ratio: float = DEFAULT_STRESS_RATIO,
                 stress_ratio_half_interval: float = DEFAULT_STRESS_RATIO_HALF_INTERVAL,
                 Rrot=None,
                 seed=None,
                 deadline: float = None,
                 timeout: float = None,
                 cancel_event=None,
                 check_interval: int = DEFAULT_CHECK_INTERVAL,
                 n_workers: int = 1,
                 invariant_policy: str = DEFAULT_INVARIANT_POLICY,
                 record_history: bool = False,
                 engine=None):
        super().__init__(engine)
        if nb_random_trials < 0:
            raise ValueError(f"nb_random_trials must be >= 0, got {nb_random_trials}")
        if rot_angle_half_interval < 0:
            raise ValueError(f"rot_angle_half_interval must be >= 0, got {rot_angle_half_interval}")
        if check_interval < 1:
            raise ValueError(f"check_interval must be >= 1, got {check_interval}")
        if n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {n_workers}")
        if invariant_policy not in INVARIANT_POLICIES:
            raise ValueError(f"Unknown invariant policy: {invariant_policy}")
        if stress_ratio_half_interval < 0:
            raise ValueError(f"stress_ratio_half_interval must be >= 0, got {stress_ratio_half_interval}")
        if engine is not None and n_workers > 1:
            raise ValueError("A custom engine cannot be used with n_workers > 1")

        self.rot_angle_half_interval = float(rot_angle_half_interval)
        self.nb_random_trials = int(nb_random_trials)
        self.stress_ratio_half_interval = float(stress_ratio_half_interval)
        self.stress_ratio0 = self._check_stress_ratio(stress_ratio)
        self.Rrot = np.eye(3) if Rrot is None else np.asarray(Rrot, dtype=float)
        if not is_rotation(self.Rrot):
            raise ValueError("Rrot must be a proper rotation tensor")
        self.seed = seed
        self.deadline = deadline
        self.timeout = timeout
        self.cancel_event = cancel_event
        self.check_interval = int(check_interval)
        self.n_workers = int(n_workers)
        self.invariant_policy = invariant_policy
        self.record_history = record_history
        self.history = None
        self.skipped_trials = 0

    def set_nb_iter(self, n: int) -> None:
        self.nb_random_trials = int(n)

    def set_interactive_solution(self, rot, stress_ratio: float) -> None:
        self.stress_ratio0 = self._check_stress_ratio(stress_ratio)
        self.Rrot = np.asarray(rot, dtype=float)

    def _band(self, stress_ratio: float) -> tuple:
        r0 = abs(stress_ratio)
        return (max(0.0, r0 - self.stress_ratio_half_interval),
                min(1.0, r0 + self.stress_ratio_half_interval))

    def _check_stress_ratio(self, stress_ratio: float) -> float:
        r_min, r_max = self._band(float(stress_ratio))
        if r_min > r_max:
            raise ValueError(f"Stress ratio band around {stress_ratio} with half width "
                             f"{self.stress_ratio_half_interval} does not meet [0, 1]")
        return float(stress_ratio)

    @property
    def stress_ratio_bounds(self) -> tuple:
        return self._band(self.stress_ratio0)

    def draw_trial(self, rng) -> tuple:
        """One random hypothesis: (Drot, Wrot, stress ratio)."""
        phi = rng.uniform(0.0, 2 * np.pi)
        theta = np.arccos(2 * rng.uniform() - 1)
        axis = spherical_to_unit_vector(phi, theta)
        angle = rng.uniform() * self.rot_angle_half_interval
        drot = proper_rotation_tensor(axis, angle)
        wrot = drot @ self.Rrot
        r_min, r_max = self.stress_ratio_bounds
        stress_ratio = r_min + rng.uniform() * (r_max - r_min)
        return drot, wrot, stress_ratio

    def _config(self) -> dict:
        return {
            "rot_angle_half_interval": self.rot_angle_half_interval,
            "stress_ratio": self.stress_ratio0,
            "stress_ratio_half_interval": self.stress_ratio_half_interval,
            "Rrot": self.Rrot,
            "check_interval": self.check_interval,
            "invariant_policy": self.invariant_policy,
            "record_history": self.record_history,
        }

    def _effective_deadline(self):
        deadlines = [d for d in (self.deadline,
                                 None if self.timeout is None else time.monotonic() + self.timeout)
                     if d is not None]
        return min(deadlines) if deadlines else None

    def _stop_requested(self, deadline) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    def _trials(self, data, best: MisfitCriteriunSolution, n_trials: int, rng, deadline) -> tuple:
        """Run ``n_trials`` trials from ``best``; returns (best, history, completed trials)."""
        history = [] if self.record_history else None
        completed = 0
        for i in range(n_trials):
            if i % self.check_interval == 0 and self._stop_requested(deadline):
                logger.warning("Search stopped after %d of %d trials", i, n_trials)
                break

            drot, wrot, stress_ratio = self.draw_trial(rng)
            self.engine.set_hypothetical_stress(wrot, stress_ratio)
            try:
                misfit = evaluate_misfit(data, self.engine)
            except InvariantViolationError as exc:
                if self.invariant_policy == "raise":
                    raise
                self.skipped_trials += 1
                logger.debug("Trial %d skipped: %s", i, exc)
                misfit = np.inf

            if misfit < best.misfit:
                best = MisfitCriteriunSolution(
                    misfit=misfit,
                    rotation_matrix_w=wrot.copy(),
                    rotation_matrix_d=drot.copy(),
                    stress_ratio=stress_ratio,
                    stress_tensor_solution=self.engine.S,
                )
                logger.debug("Trial %d: misfit %.6f, R = %.3f", i, misfit, stress_ratio)
            if history is not None:
                history.append(best.misfit)
            completed += 1
        return best, history, completed

    def run(self, data, misfit_criteria_solution: MisfitCriteriunSolution = None) -> MisfitCriteriunSolution:
        """Search for a better solution than ``misfit_criteria_solution``.

        Returns a new solution object; the argument is left untouched.
        """
        if len(data) == 0:
            raise NoDataError()
        start = (misfit_criteria_solution or MisfitCriteriunSolution()).clone()
        deadline = self._effective_deadline()
        self.skipped_trials = 0

        r_min, r_max = self.stress_ratio_bounds
        logger.info("Starting Monte Carlo search: %d trials, R in [%.3f, %.3f], %d worker(s)",
                    self.nb_random_trials, r_min, r_max, self.n_workers)

        if self.n_workers == 1:
            rng = np.random.default_rng(self.seed)
            best, history, completed = self._trials(data, start, self.nb_random_trials, rng, deadline)
        else:
            best, history, completed = self._run_parallel(data, start, deadline)

        self.history = None if history is None else np.asarray(history)
        if self.skipped_trials:
            logger.warning("%d trial(s) skipped because of invariant violations", self.skipped_trials)
        logger.info("Monte Carlo search done: %d trials, best misfit %.6f", completed, best.misfit)
        return best

    def _run_parallel(self, data, start: MisfitCriteriunSolution, deadline) -> tuple:
        """Each worker keeps its own best; results are merged once at the end."""
        if type(self.engine) is not HomogeneousEngine:
            logger.warning("Workers use a homogeneous engine; %s is ignored",
                           type(self.engine).__name__)
        counts = [len(part) for part in np.array_split(np.arange(self.nb_random_trials), self.n_workers)]
        seeds = np.random.SeedSequence(self.seed).spawn(self.n_workers)
        config = self._config()
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())

        if self.cancel_event is not None and self.cancel_event.is_set():
            logger.warning("Search cancelled before start")
            return start, ([] if self.record_history else None), 0

        with ProcessPoolExecutor(max_workers=self.n_workers) as pool:
            futures = [
                pool.submit(_search_partition, config, data, start, n, seed, remaining)
                for n, seed in zip(counts, seeds)
            ]
            results = [future.result() for future in futures]

        best = best_of([start] + [result[0] for result in results])
        self.skipped_trials = sum(result[3] for result in results)
        completed = sum(result[2] for result in results)

        history = None
        if self.record_history:
            merged = np.concatenate([np.asarray(result[1], dtype=float) for result in results])
            history = list(np.minimum.accumulate(merged)) if merged.size else []
        return best, history, completed


def _search_partition(config: dict, data, start, n_trials: int, seed, timeout) -> tuple:
    """Worker entry point: local best over one partition of the trials."""
    search = MonteCarlo(nb_random_trials=n_trials, **config)
    deadline = None if timeout is None else time.monotonic() + timeout
    best, history, completed = search._trials(data, start, n_trials, np.random.default_rng(seed), deadline)
    return best, history, completed, search.skipped_trials


# ──────────────────────────────────────────────
# Factory
# ──────────────────────────────────────────────

# Keys used in JSON configurations of the inversion
_PARAM_ALIASES = {
    "rotAngleHalfInterval": "rot_angle_half_interval",
    "nbRandomTrials": "nb_random_trials",
    "stressRatio": "stress_ratio",
    "stressRatioHalfInterval": "stress_ratio_half_interval",
}


class SearchMethodFactory:
    _registry = {
        "Monte Carlo": MonteCarlo,
        "Debug Search": DebugSearch,
    }

    @classmethod
    def names(cls) -> list:
        return sorted(cls._registry)

    @classmethod
    def exists(cls, name: str) -> bool:
        return name in cls._registry

    @classmethod
    def create(cls, name: str, params: dict = None) -> SearchMethod:
        if name not in cls._registry:
            raise ValueError(f"Unknown search method: {name}")
        params = {_PARAM_ALIASES.get(key, key): value for key, value in (params or {}).items()}
        if "Rrot" in params and params["Rrot"] is not None:
            params["Rrot"] = np.asarray(params["Rrot"], dtype=float)
        return cls._registry[name](**params)
