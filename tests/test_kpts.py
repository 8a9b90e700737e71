import pytest

import numpy as np
from numpy.testing import assert_allclose

from recispace.kpts import KPoint, KPointList, KPointGrid, gen_monkhorst_pack_grid
from recispace.lattice import ReciLattice
from recispace.errors import ConstructionError, ConsistencyError


@pytest.fixture
def klist():
    return KPointList([[0, 0, 0], [0.5, 0, 0]], [1, 3])


def test_weight_normalization(klist):
    assert_allclose(klist.weights, [0.25, 0.75])
    assert np.sum(klist.weights) == pytest.approx(1.)


@pytest.mark.parametrize('scale', [1e-3, 0.5, 7., 1e4])
def test_weight_normalization_scale_invariant(scale):
    points = [[0, 0, 0], [0.25, 0, 0], [0.5, 0.5, 0]]
    weights = np.array([1., 2., 5.])
    klist = KPointList(points, weights)
    scaled = KPointList(points, scale * weights)
    assert_allclose(scaled.weights, klist.weights, rtol=1e-14)


def test_normalized_weights_are_renormalized():
    klist = KPointList([[0.], [0.5]], [0.5, 0.5])
    assert_allclose(klist.weights, [0.5, 0.5])


def test_default_weights():
    klist = KPointList(np.zeros((4, 2)))
    assert_allclose(klist.weights, 0.25)
    assert klist.dim == 2
    assert klist.numkpts == len(klist) == 4


def test_indexing(klist):
    kpt = klist[1]
    assert isinstance(kpt, KPoint)
    assert kpt == KPoint((0.5, 0., 0.), 0.75)
    assert kpt.point == (0.5, 0., 0.)
    assert kpt.weight == pytest.approx(0.75)
    assert [k.weight for k in klist] == [0.25, 0.75]


def test_slicing_keeps_weights():
    klist = KPointList([[0.], [0.25], [0.5]], [1, 1, 2])
    sub = klist[:2]
    assert isinstance(sub, KPointList)
    assert len(sub) == 2
    assert_allclose(sub.weights, [0.25, 0.25])
    assert_allclose(sub.points, [[0.], [0.25]])
    assert sub[1] == KPoint((0.25, ), 0.25)
    assert_allclose(klist[[2, 0]].weights, [0.5, 0.25])


def test_slice_of_single_point():
    klist = KPointList([[0, 0, 0], [0.5, 0, 0]], [1, 3])
    assert_allclose(klist[0:1].weights, [0.25])
    assert_allclose(klist[1:].weights, [0.75])


def test_empty_slice():
    klist = KPointList([[0, 0, 0], [0.5, 0, 0]], [1, 3])
    empty = klist[2:]
    assert len(empty) == 0
    assert empty.points.shape == (0, 3)
    assert empty.weights.shape == (0, )
    assert list(empty) == []


def test_slice_is_read_only():
    sub = KPointList([[0.], [0.5]])[:1]
    with pytest.raises(ValueError):
        sub.weights[0] = 1.


def test_equality(klist):
    assert klist == KPointList([[0, 0, 0], [0.5, 0, 0]], [2, 6])
    assert klist != KPointList([[0, 0, 0], [0.5, 0, 0]], [1, 1])
    assert klist != KPointList([[0, 0, 0], [0.25, 0, 0]], [1, 3])


def test_read_only(klist):
    with pytest.raises(ValueError):
        klist.points[0, 0] = 1.
    with pytest.raises(ValueError):
        klist.weights[0] = 1.


def test_invalid_construction():
    with pytest.raises(ConstructionError):
        KPointList([[0, 0, 0], [0.5, 0, 0]], [1, 2, 3])
    with pytest.raises(ConstructionError):
        KPointList([[0, 0, 0], [0.5, 0, 0]], [1, -1])
    with pytest.raises(ConstructionError):
        KPointList([[0, 0, 0], [0.5, 0, 0]], [0, 0])
    with pytest.raises(ConstructionError):
        KPointList([[0, 0], [0.5, 0]], dim=3)
    with pytest.raises(ConstructionError):
        KPointList([0, 0.5])


def test_cart(klist):
    recilat = ReciLattice(2 * np.eye(3))
    assert_allclose(klist.cart(recilat), [[0, 0, 0], [1, 0, 0]])


def test_kpoint_grid_origin_folding():
    kgrid = KPointGrid(np.diag([2, 2, 2]), [0.75, -0.6, 1.25])
    assert_allclose(kgrid.orig, [-0.25, 0.4, 0.25])
    assert np.all((kgrid.orig >= -0.5) & (kgrid.orig < 0.5))
    assert_allclose(KPointGrid(np.eye(2, dtype=int), [0.5, -0.5]).orig,
                    [-0.5, -0.5])


def test_kpoint_grid_invalid():
    with pytest.raises(ConstructionError):
        KPointGrid([[1, -1], [0, 1]])
    with pytest.raises(ConstructionError):
        KPointGrid([[1.5, 0], [0, 1]])
    with pytest.raises(ConstructionError):
        KPointGrid(np.eye(3, dtype=int), [0, 0])
    with pytest.raises(ConsistencyError):
        KPointGrid([[1, 1], [1, 1]]).to_klist()


def test_kpoint_grid_diagonal_mesh():
    kgrid = KPointGrid(np.diag([2, 3, 1]))
    assert kgrid.numkpts == 6
    klist = kgrid.to_klist()
    assert len(klist) == 6
    assert_allclose(klist.weights, 1 / 6)
    expected = [[k1, k2, 0.] for k1 in (-0.5, 0.) for k2 in (-1 / 3, 0., 1 / 3)]
    assert_allclose(klist.points, expected, atol=1e-12)


def test_kpoint_grid_shifted_mesh():
    klist = KPointGrid(np.diag([2]), [0.25]).to_klist()
    assert_allclose(klist.points, [[-0.25], [0.25]])


def test_kpoint_grid_non_diagonal_mesh():
    grid = np.array([[1, 1], [0, 2]])
    kgrid = KPointGrid(grid)
    assert kgrid.numkpts == 2
    klist = kgrid.to_klist()
    assert len(klist) == 2
    # Every point lies on the reciprocal lattice of the supercell
    n_int = klist.points @ grid
    assert_allclose(n_int, np.round(n_int), atol=1e-10)
    assert np.all((klist.points >= -0.5) & (klist.points < 0.5))


def test_monkhorst_pack_grid():
    klist = gen_monkhorst_pack_grid((4, 1, 1))
    assert len(klist) == 4
    assert_allclose(klist.points[:, 0], [-0.25, 0., 0.25, 0.5])
    assert_allclose(klist.weights, 0.25)

    shifted = gen_monkhorst_pack_grid((2, 2), (True, False))
    assert len(shifted) == 4
    assert shifted.dim == 2
    assert_allclose(np.unique(shifted.points[:, 0]), [0.25, 0.75])

    with pytest.raises(TypeError):
        gen_monkhorst_pack_grid((2, 0, 1))
    with pytest.raises(TypeError):
        gen_monkhorst_pack_grid((2, 2, 2), (True, False))
