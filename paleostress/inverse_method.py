"""
Inverse method: orchestrates data and a search method.

Typical use:

    inv = InverseMethod()
    inv.add_data(data)
    solution = inv.run()
    solution.rotation_matrix_w, solution.stress_ratio, solution.misfit
"""

import logging

import numpy as np

from .errors import NoDataError
from .search import MisfitCriteriunSolution, MonteCarlo, SearchMethod

logger = logging.getLogger(__name__)


class InverseMethod:
    """Holds the data set, the search method and the current best solution."""

    def __init__(self, search_method: SearchMethod = None):
        self._data = []
        self.search_method = search_method if search_method is not None else MonteCarlo()
        self.current_solution = MisfitCriteriunSolution()

    @property
    def data(self) -> list:
        return self._data

    def add_data(self, data) -> None:
        """Append one datum or a list of data (no validation)."""
        if isinstance(data, (list, tuple)):
            self._data.extend(data)
        else:
            self._data.append(data)

    def set_search_method(self, search_method: SearchMethod) -> None:
        self.search_method = search_method

    def run(self, reset: bool = True) -> MisfitCriteriunSolution:
        """Run the search and return the best solution.

        Parameters
        ----------
        reset : start from an infinite misfit; False continues from the
                current solution, which is then only replaced by a better one
        """
        if not self._data:
            raise NoDataError()
        start = MisfitCriteriunSolution() if reset else self.current_solution
        logger.info("Inverting %d data with %s", len(self._data), type(self.search_method).__name__)
        self.current_solution = self.search_method.run(self._data, start)
        return self.current_solution

    def resume(self, previous_best: MisfitCriteriunSolution) -> MisfitCriteriunSolution:
        """Continue a search from an explicit previous best."""
        self.current_solution = previous_best
        return self.run(reset=False)

    def cost(self, displ=None, strain=None, stress=None) -> float:
        """Weighted mean cost of the data for one hypothesis."""
        if not self._data:
            raise NoDataError()
        costs = [d.cost(displ=displ, strain=strain, stress=stress) for d in self._data]
        return float(np.average(costs, weights=[d.weight for d in self._data]))


if __name__ == "__main__":
    from paleostress.data import striated_plane_from_angles
    from paleostress.faults import Direction, Plane, Striation, TypeOfMovement as M
    from paleostress.landscape import solution_summary
    from paleostress.logging_config import setup_logging

    setup_logging()

    # Two conjugate sets of strike-slip faults, NE-SW dextral and NW-SE sinistral
    faults = [
        (45, Direction.SE, 60, 0, Direction.NE, M.RL),
        (45, Direction.SE, 60, 5, Direction.NE, M.RL),
        (45, Direction.SE, 30, 4, Direction.SW, M.RL),
        (45, Direction.NW, 45, 3, Direction.SW, M.RL),
        (135, Direction.NE, 60, 6, Direction.SE, M.LL),
        (135, Direction.NE, 30, 2, Direction.NW, M.LL),
        (135, Direction.SW, 40, 1, Direction.SE, M.LL),
    ]
    data = [
        striated_plane_from_angles(
            Plane(strike, dip, dip_direction),
            Striation(rake=rake, strike_direction=strike_direction, type_of_movement=movement),
            index=i + 1,
        )
        for i, (strike, dip_direction, dip, rake, strike_direction, movement) in enumerate(faults)
    ]

    inv = InverseMethod(MonteCarlo(nb_random_trials=20000, seed=1))
    inv.add_data(data)
    sol = inv.run()

    summary = solution_summary(sol)
    print(f"\n--- Inversion Results ({len(data)} striated planes) ---")
    for axis in ("sigma1", "sigma2", "sigma3"):
        trend, plunge = summary[axis]
        print(f"  {axis}: trend {trend:6.1f}°, plunge {plunge:5.1f}°")
    print(f"  R      = {summary['stress_ratio']:.3f}")
    print(f"  misfit = {summary['misfit_deg']:.2f}°")
