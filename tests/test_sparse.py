import pytest

import numpy as np
from numpy.testing import assert_array_equal

from recispace.containers import MillerGrid, SparseMillerMap, densify, sparsify
from recispace.lattice import ReciLattice
from recispace.errors import ConstructionError


@pytest.fixture
def recilat():
    return ReciLattice(2 * np.eye(3))


@pytest.fixture
def sparse(recilat):
    return SparseMillerMap.from_items([
        ((0, 0, 0), 1 + 1j),
        ((2, -1, 0), 2.),
        ((-3, 1, 4), -1j),
    ], basis=recilat)


def test_unset_reads_zero(sparse):
    assert sparse[5, 5, 5] == 0
    assert sparse.get((1, 0, 0)) == sparse.zero
    assert sparse.zero == np.complex128(0)
    assert (5, 5, 5) not in sparse
    assert len(sparse) == 3


def test_set_and_overwrite(sparse):
    sparse[2, -1, 0] = 5.
    assert sparse[2, -1, 0] == 5.
    sparse[7, 7, 7] = 1.
    assert len(sparse) == 4
    assert isinstance(sparse[7, 7, 7], np.complex128)
    assert sparse.pop((7, 7, 7)) == 1.
    assert sparse.pop((7, 7, 7)) == 0
    assert len(sparse) == 3


def test_keys(sparse):
    assert set(sparse.keys()) == {(0, 0, 0), (2, -1, 0), (-3, 1, 4)}
    assert set(sparse) == set(sparse.keys())
    sparse[1, 1, 1] = 0
    assert (1, 1, 1) in sparse
    assert (1, 1, 1) not in sparse.nonzero_keys()


def test_invalid_keys(sparse):
    with pytest.raises(ConstructionError):
        sparse[0, 0] = 1.
    with pytest.raises(ConstructionError):
        sparse[0.5, 0, 0] = 1.


def test_default_basis():
    sparse = SparseMillerMap()
    assert sparse.dim == 3
    assert isinstance(sparse.basis, ReciLattice)
    assert sparse.basis.is_zero()
    assert sparse.dtype == np.dtype('c16')
    assert SparseMillerMap.from_items([((1, 2), 3.)]).dim == 2
    with pytest.raises(ConstructionError):
        SparseMillerMap(ReciLattice(np.eye(2)), dim=3)


def test_bounds(sparse):
    assert sparse.bounds() == (range(-3, 3), range(-1, 2), range(0, 5))
    with pytest.raises(ConstructionError):
        SparseMillerMap().bounds()


def test_densify(sparse, recilat):
    grid = densify(sparse)
    assert isinstance(grid, MillerGrid)
    assert grid.basis == recilat
    assert grid.shape == (6, 3, 5)
    assert grid.bounds == sparse.bounds()
    for index in grid.keys():
        assert grid[index] == sparse[index]
    assert np.count_nonzero(grid.data) == 3


def test_densify_empty():
    with pytest.raises(ConstructionError):
        densify(SparseMillerMap())


def test_sparsify(recilat):
    grid = MillerGrid.zeros(recilat, (4, 4, 4))
    grid[1, -2, 0] = 3.
    grid[-1, 1, 1] = 1j
    sparse = sparsify(grid)
    assert set(sparse.keys()) == {(1, -2, 0), (-1, 1, 1)}
    assert sparse[1, -2, 0] == 3.
    assert sparse[-1, 1, 1] == 1j
    assert sparse.basis == recilat


def test_sparse_dense_round_trip(sparse):
    assert sparsify(densify(sparse)) == sparse


def test_dense_sparse_round_trip(recilat):
    # No all-zero border: every face of the box holds a nonzero value
    rng = np.random.default_rng(3)
    arr = rng.random((3, 4, 5)) + 0.5
    arr[1, 2, 2] = 0.
    grid = MillerGrid.from_centered(recilat, arr)
    assert densify(sparsify(grid)) == grid


def test_dense_sparse_round_trip_custom_bounds(recilat):
    arr = np.ones((2, 3, 2), dtype='c16')
    bounds = [range(3, 5), range(-7, -4), range(0, 2)]
    grid = MillerGrid.from_centered(recilat, arr, bounds)
    round_trip = densify(sparsify(grid))
    assert round_trip == grid
    assert_array_equal(round_trip.to_centered(), arr)


def test_equality_ignores_stored_zeros(sparse):
    other = sparse.copy()
    other[9, 9, 9] = 0
    assert other == sparse
    other[9, 9, 9] = 1
    assert other != sparse
    assert sparse != SparseMillerMap.from_items(sparse.items())


def test_abs_abs2(sparse):
    abs2 = sparse.abs2()
    assert abs2.dtype == np.dtype('f8')
    for index in sparse.keys():
        assert abs2[index] == pytest.approx(abs(sparse[index]) ** 2)
        assert sparse.abs()[index] == pytest.approx(abs(sparse[index]))
    assert abs2[8, 8, 8] == 0


def test_conj(sparse):
    conj = sparse.conj()
    for index, value in sparse.items():
        assert conj[index] == np.conj(value)
