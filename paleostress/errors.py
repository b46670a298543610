"""
Exception taxonomy for the inversion engine.

Construction errors are raised while turning field measurements into
data and name the offending record.  Evaluation-time degeneracies (zero
shear stress on a plane) are not errors: they map to a maximal misfit.
"""


class PaleostressError(Exception):
    """Base class for every error raised by the package."""


class ConstructionError(PaleostressError, ValueError):
    """A measurement cannot be turned into a valid datum.

    Raised for missing angles, a striation outside its plane, degenerate
    conjugate pairs, or a sense of movement inconsistent with geometry.
    """

    def __init__(self, index, message: str):
        self.index = index
        self.reason = message
        super().__init__(f"Data number {index}: {message}")


class DegenerateVectorError(PaleostressError, ArithmeticError):
    """Normalizing a vector of (near) zero length."""


class NoDataError(PaleostressError, RuntimeError):
    """Running an inversion or a cost evaluation without any data."""

    def __init__(self, message: str = "No data provided"):
        super().__init__(message)


class InvariantViolationError(PaleostressError, RuntimeError):
    """A modelling assumption does not hold for a given hypothesis.

    Typically the misfit of an angular-interval datum is not a monotonic
    function of the rotation angle, so no meaningful value can be returned.
    """

    def __init__(self, message: str, index=None):
        self.index = index
        if index is not None:
            message = f"Data number {index}: {message}"
        super().__init__(message)
