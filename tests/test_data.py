import numpy as np
import pytest

from paleostress.data import (
    DataKind, FractureStrategy, compaction_band, crystal_fibers_in_vein, dilation_band,
    extension_fracture, fault_stress_components, striated_plane,
    striated_plane_from_angles, stylolite_interface, stylolite_teeth,
)
from paleostress.engine import tensor_parameters_from_rotation
from paleostress.errors import ConstructionError
from paleostress.faults import Direction, Plane, Striation, TypeOfMovement
from paleostress.rotation import normalize, proper_rotation_tensor

# σ1 = East, σ3 = North, σ2 = Up
STRESS = tensor_parameters_from_rotation(np.eye(3), 0.5)

N_PLANE = normalize([1.0, 1.0, 0.0])
SHEAR = normalize([-1.0, 1.0, 0.0])


def test_fault_stress_components():
    components = fault_stress_components(STRESS.S, N_PLANE)
    np.testing.assert_allclose(components["traction"], [-np.sqrt(0.5), 0.0, 0.0], atol=1e-12)
    assert components["normal_stress"] == pytest.approx(-0.5)
    np.testing.assert_allclose(components["shear_stress"], [-0.25 * np.sqrt(2), 0.25 * np.sqrt(2), 0.0])
    assert components["shear_stress_mag"] == pytest.approx(0.5)


def test_striated_plane_cost_matches_shear_direction():
    datum = striated_plane(N_PLANE, SHEAR)
    assert datum.kind is DataKind.STRIATED_PLANE
    assert datum.cost(stress=STRESS) == pytest.approx(0.0, abs=1e-7)
    np.testing.assert_allclose(datum.predict(STRESS), SHEAR, atol=1e-12)


def test_striated_plane_opposite_slip():
    assert striated_plane(N_PLANE, -SHEAR).cost(stress=STRESS) == pytest.approx(np.pi)
    # Without a sense of slip only the line is compared
    assert striated_plane(N_PLANE, -SHEAR, oriented=False).cost(stress=STRESS) == pytest.approx(0.0, abs=1e-7)


def test_striated_plane_dot_strategy():
    assert striated_plane(N_PLANE, SHEAR, strategy=FractureStrategy.DOT).cost(stress=STRESS) == pytest.approx(0.0)
    assert striated_plane(N_PLANE, -SHEAR, strategy=FractureStrategy.DOT).cost(stress=STRESS) == pytest.approx(1.0)


def test_zero_shear_gives_maximal_misfit():
    # Plane normal to σ1: no resolved shear
    datum = striated_plane([1.0, 0.0, 0.0], [0.0, 1.0, 0.0])
    assert datum.cost(stress=STRESS) == pytest.approx(np.pi)
    assert striated_plane([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], oriented=False).cost(stress=STRESS) == pytest.approx(np.pi)
    assert datum.predict(STRESS) is None


def test_striation_must_lie_on_plane():
    with pytest.raises(ConstructionError, match="striation is not on the fault plane"):
        striated_plane([0.0, 0.0, 1.0], [0.0, 1.0, 0.1], index=4)


def test_striated_plane_from_angles():
    datum = striated_plane_from_angles(
        Plane(45, 60, Direction.SE),
        Striation(rake=0, strike_direction=Direction.NE, type_of_movement=TypeOfMovement.RL),
        index=1,
    )
    np.testing.assert_allclose(np.dot(datum.geometry.n_plane, datum.geometry.n_striation), 0.0, atol=1e-12)
    assert datum.oriented

    datum = striated_plane_from_angles(Plane(0, 45, Direction.E), Striation(rake=90))
    assert not datum.oriented


def test_axis_costs():
    # σ3 = North, σ1 = East
    assert extension_fracture([0.0, 1.0, 0.0]).cost(stress=STRESS) == pytest.approx(0.0, abs=1e-7)
    assert extension_fracture([0.0, -1.0, 0.0]).cost(stress=STRESS) == pytest.approx(0.0, abs=1e-7)
    assert extension_fracture([1.0, 0.0, 0.0]).cost(stress=STRESS) == pytest.approx(0.5)
    assert dilation_band([1.0, 0.0, 0.0], strategy=FractureStrategy.DOT).cost(stress=STRESS) == pytest.approx(1.0)
    assert compaction_band([1.0, 0.0, 0.0]).cost(stress=STRESS) == pytest.approx(0.0, abs=1e-7)
    assert stylolite_interface([0.0, 0.0, 1.0]).cost(stress=STRESS) == pytest.approx(0.5)


def test_line_data():
    # Trend 90, plunge 0 is East
    assert stylolite_teeth(90.0, 0.0).cost(stress=STRESS) == pytest.approx(0.0, abs=1e-7)
    assert crystal_fibers_in_vein(0.0, 0.0).cost(stress=STRESS) == pytest.approx(0.0, abs=1e-7)
    with pytest.raises(ConstructionError):
        stylolite_teeth(90.0, 120.0)


def test_plane_data_from_field_angles():
    # Vertical plane striking North: normal is East-West
    datum = compaction_band(Plane(0, 90))
    assert datum.cost(stress=STRESS) == pytest.approx(0.0, abs=1e-7)


def test_costs_are_bounded_and_idempotent():
    rng = np.random.default_rng(2)
    data = [
        striated_plane(N_PLANE, SHEAR),
        striated_plane(N_PLANE, SHEAR, strategy=FractureStrategy.DOT),
        extension_fracture([0.3, 0.2, 0.9]),
        stylolite_teeth(30.0, 40.0, strategy=FractureStrategy.DOT),
    ]
    bounds = [np.pi, 1.0, 0.5, 1.0]
    for _ in range(20):
        hrot = proper_rotation_tensor(rng.normal(size=3), rng.uniform(0, np.pi))
        stress = tensor_parameters_from_rotation(hrot, rng.uniform())
        for datum, bound in zip(data, bounds):
            c = datum.cost(stress=stress)
            assert 0.0 <= c <= bound + 1e-12
            assert datum.cost(stress=stress) == c


def test_check_and_missing_stress():
    datum = extension_fracture([0.0, 1.0, 0.0])
    assert datum.check(stress=STRESS)
    assert not datum.check()
    with pytest.raises(ValueError):
        datum.cost()


def test_strategy_must_fit_kind():
    with pytest.raises(ConstructionError):
        extension_fracture([0.0, 1.0, 0.0], strategy=FractureStrategy.MIN_TENSOR_ROTATION)


def test_datum_is_immutable():
    datum = extension_fracture([0.0, 1.0, 0.0], weight=2.0)
    assert datum.weight == 2.0
    assert datum.nb_linked_data() == 1
    with pytest.raises(AttributeError):
        datum.weight = 3.0
    with pytest.raises(ValueError):
        datum.geometry.axis[0] = 1.0

    geometry = striated_plane(N_PLANE, SHEAR).geometry
    for array in (geometry.n_plane, geometry.n_striation, geometry.n_perp_striation):
        with pytest.raises(ValueError):
            array[0] = 1.0


@pytest.mark.parametrize("weight", [0.0, -1.0, np.nan])
def test_weight_must_be_positive(weight):
    with pytest.raises(ConstructionError, match="weight"):
        extension_fracture([0.0, 1.0, 0.0], weight=weight, index=7)
    with pytest.raises(ConstructionError):
        striated_plane(N_PLANE, SHEAR, weight=weight)


def test_striation_angular_difference_keeps_slip_sense():
    strategy = FractureStrategy.MIN_STRIATION_ANGULAR_DIFFERENCE
    assert striated_plane(N_PLANE, SHEAR, strategy=strategy, oriented=False).cost(stress=STRESS) == \
        pytest.approx(0.0, abs=1e-7)
    assert striated_plane(N_PLANE, -SHEAR, strategy=strategy, oriented=False).cost(stress=STRESS) == \
        pytest.approx(np.pi)


@pytest.mark.parametrize("strike,dip,dip_direction,rake,strike_direction,movement", [
    (45, 60, Direction.SE, 0, Direction.NE, TypeOfMovement.RL),
    (10, 35, Direction.E, 90, None, TypeOfMovement.N),
    (130, 80, Direction.SW, 45, Direction.SE, TypeOfMovement.UND),
    (300, 20, Direction.NE, 70, Direction.NW, TypeOfMovement.UND),
])
def test_constructed_vectors_are_unit_and_orthogonal(strike, dip, dip_direction, rake,
                                                     strike_direction, movement):
    striation = Striation(rake=rake, type_of_movement=movement,
                          strike_direction=strike_direction or Direction.UND)
    geometry = striated_plane_from_angles(Plane(strike, dip, dip_direction), striation).geometry
    assert np.linalg.norm(geometry.n_plane) == pytest.approx(1.0, abs=1e-9)
    assert np.linalg.norm(geometry.n_striation) == pytest.approx(1.0, abs=1e-9)
    assert abs(np.dot(geometry.n_plane, geometry.n_striation)) < 1e-6
