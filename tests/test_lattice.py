import warnings
from itertools import product

import pytest

import numpy as np
from numpy.testing import assert_allclose

from recispace.lattice import (RealLattice, ReciLattice, to_reciprocal, to_real,
                               dual_lattice, lattice_2d, lattice_3d,
                               triangularize, max_miller_index)
from recispace.constants import PI, TPI, ANGSTROM, TWO_M_HBAR2_HART
from recispace.errors import (ConstructionError, SingularTransformError,
                              LatticeWarning)

ALAT = 2.0


@pytest.fixture
def sc_lattice():
    return RealLattice(ALAT * np.eye(3))


@pytest.fixture
def fcc_lattice():
    primvec = (ALAT/2) * np.array([
        [-1, 0, 1],
        [ 0, 1, 1],
        [-1, 1, 0]
    ]).T
    return RealLattice(primvec)


@pytest.fixture
def bcc_lattice():
    primvec = (ALAT/2) * np.array([
        [ 1,  1,  1],
        [-1,  1,  1],
        [-1, -1,  1]
    ]).T
    return RealLattice(primvec)


def test_scaled_identity_reciprocal(sc_lattice):
    recilat = to_reciprocal(sc_lattice)
    assert isinstance(recilat, ReciLattice)
    assert_allclose(recilat.matrix(), PI * np.eye(3), atol=1e-9)
    assert sc_lattice.volume() == pytest.approx(8, abs=1e-9)
    assert recilat.volume() == pytest.approx(PI ** 3, abs=1e-9)


@pytest.mark.parametrize('name', ['sc_lattice', 'fcc_lattice', 'bcc_lattice'])
def test_duality_round_trip(name, request):
    reallat = request.getfixturevalue(name)
    recilat = dual_lattice(reallat)
    assert_allclose(to_real(to_reciprocal(reallat)).matrix(), reallat.matrix(),
                    atol=1e-9)
    assert_allclose(dual_lattice(recilat).matrix(), reallat.matrix(), atol=1e-9)
    assert_allclose(recilat.matrix().T @ reallat.matrix(), TPI * np.eye(3),
                    atol=1e-9)
    assert_allclose(reallat.matrix().T @ recilat.matrix(), TPI * np.eye(3),
                    atol=1e-9)


def test_conversion_in_same_space_is_identity(fcc_lattice):
    recilat = to_reciprocal(fcc_lattice)
    assert to_real(fcc_lattice) is fcc_lattice
    assert to_reciprocal(recilat) is recilat
    assert ReciLattice.from_reallat(fcc_lattice) == recilat
    assert RealLattice.from_recilat(recilat) == fcc_lattice


def test_space_tag():
    assert RealLattice.space == 'real'
    assert ReciLattice.space == 'reciprocal'
    with pytest.raises(TypeError):
        ReciLattice.from_reallat(ReciLattice(np.eye(3)))


def test_zero_basis():
    zero = RealLattice.zeros(3)
    assert zero.is_zero()
    assert zero.volume() == 0
    dual = dual_lattice(zero)
    assert isinstance(dual, ReciLattice)
    assert dual.is_zero()
    with pytest.raises(ConstructionError):
        zero.cart2cryst(np.ones(3))


def test_invalid_basis():
    with pytest.raises(ConstructionError):
        RealLattice(np.ones((2, 3)))
    with pytest.raises(ConstructionError):
        RealLattice(np.ones((3, 3)))
    with pytest.raises(ConstructionError):
        RealLattice([[1., 0.], [0., np.inf]])
    with pytest.raises(ValueError):
        RealLattice(np.ones((3, 3)))


def test_left_handed_basis_warns():
    with pytest.warns(LatticeWarning):
        reallat = RealLattice(np.diag([1., 1., -1.]))
    assert reallat.volume() == pytest.approx(1)


def test_matrix_is_a_copy(fcc_lattice):
    mat = fcc_lattice.matrix()
    mat[:] = 0
    assert not fcc_lattice.is_zero()
    with pytest.raises(ValueError):
        fcc_lattice.latvec[0, 0] = 5


def test_vectors_and_indexing(fcc_lattice):
    vecs = fcc_lattice.vectors()
    assert len(vecs) == fcc_lattice.dim == 3
    for i, vec in enumerate(vecs):
        assert_allclose(vec, fcc_lattice[i])
        assert_allclose(vec, fcc_lattice.matrix()[:, i])
    assert_allclose(RealLattice.from_vectors(*vecs).matrix(), fcc_lattice.matrix())


def test_from_angstrom():
    reallat = RealLattice.from_angstrom([1, 0, 0], [0, 1, 0], [0, 0, 1])
    assert_allclose(reallat.matrix(), ANGSTROM * np.eye(3))


def test_is_diagonal(sc_lattice, fcc_lattice):
    assert sc_lattice.is_diagonal()
    assert not fcc_lattice.is_diagonal()


def test_scalar_arithmetic(fcc_lattice):
    doubled = 2 * fcc_lattice
    assert isinstance(doubled, RealLattice)
    assert_allclose(doubled.matrix(), 2 * fcc_lattice.matrix())
    assert (doubled / 2) == fcc_lattice
    assert (fcc_lattice * 2) == doubled
    assert_allclose(fcc_lattice @ np.array([1, 0, 0]), fcc_lattice[0])


def test_equality_tolerance(fcc_lattice):
    assert RealLattice(fcc_lattice.matrix() + 1e-7) == fcc_lattice
    assert RealLattice(fcc_lattice.matrix() + 1e-3) != fcc_lattice
    assert ReciLattice(fcc_lattice.matrix()) != fcc_lattice


def test_geometry_queries():
    reallat = lattice_3d(1., 2., 3., 60., 70., 80.)
    assert_allclose(reallat.lengths(), [1., 2., 3.])
    assert_allclose(reallat.angles_deg(), [60., 70., 80.])
    assert_allclose(reallat.angle_cos(), np.cos(np.deg2rad([60., 70., 80.])))
    assert_allclose(reallat.gram(), reallat.matrix().T @ reallat.matrix())
    assert reallat.volume() > 0
    # b along y, a perpendicular to z
    assert_allclose(reallat[1], [0., 2., 0.], atol=1e-12)
    assert reallat[0][2] == 0


def test_lattice_2d():
    reallat = lattice_2d(1., 2., 90.)
    assert_allclose(reallat.matrix(), [[1., 0.], [0., 2.]], atol=1e-12)
    assert_allclose(lattice_2d(1., 1., 60.).angles_deg(), [60.])


def test_lattice_3d_invalid_angles():
    with pytest.raises(ConstructionError):
        lattice_3d(1., 1., 1., 10., 10., 170.)


def test_d_spacing(sc_lattice):
    assert sc_lattice.d_spacing([1, 0, 0]) == pytest.approx(ALAT)
    assert sc_lattice.d_spacing([1, 1, 0]) == pytest.approx(ALAT / np.sqrt(2))
    with pytest.raises(ValueError):
        sc_lattice.d_spacing([0, 0, 0])


def test_cart2cryst(fcc_lattice):
    rng = np.random.default_rng(0)
    arr = rng.random((3, 4, 5))
    assert_allclose(fcc_lattice.cryst2cart(fcc_lattice.cart2cryst(arr)), arr)
    arr = rng.random((4, 3, 5))
    out = fcc_lattice.cryst2cart(arr, axis=1)
    assert out.shape == arr.shape
    assert_allclose(out[1, :, 2], fcc_lattice.matrix() @ arr[1, :, 2])
    with pytest.raises(ValueError):
        fcc_lattice.cryst2cart(np.ones((2, 4)))


def test_dot_and_norm(bcc_lattice):
    rng = np.random.default_rng(1)
    vec1, vec2 = rng.random((3, 6)), rng.random((3, 2))
    cart1, cart2 = bcc_lattice.cryst2cart(vec1), bcc_lattice.cryst2cart(vec2)
    assert_allclose(bcc_lattice.dot(vec1, vec2), cart1.T @ cart2)
    assert_allclose(bcc_lattice.dot(cart1, cart2, 'cart'), cart1.T @ cart2)
    assert_allclose(bcc_lattice.norm(vec1), np.linalg.norm(cart1, axis=0))
    assert_allclose(bcc_lattice.norm2(cart1, 'cart'), np.sum(cart1 ** 2, axis=0))
    with pytest.raises(ValueError):
        bcc_lattice.norm(vec1, 'tpiba')


def test_triangularize(fcc_lattice):
    tri = triangularize(fcc_lattice)
    mat = tri.matrix()
    assert isinstance(tri, RealLattice)
    assert_allclose(np.tril(mat, k=-1), 0, atol=1e-12)
    assert np.all(np.diag(mat) > 0)
    assert_allclose(tri.gram(), fcc_lattice.gram(), atol=1e-12)
    assert tri.volume() == pytest.approx(fcc_lattice.volume())


def test_triangularize_supercell(fcc_lattice):
    tri = triangularize(fcc_lattice, 2 * np.eye(3, dtype=int))
    assert tri.volume() == pytest.approx(8 * fcc_lattice.volume())
    assert np.all(np.diag(tri.matrix()) > 0)

    with pytest.raises(SingularTransformError):
        triangularize(fcc_lattice, [[1, 0, 0], [0, 1, 0], [1, 1, 0]])
    with pytest.raises(ConstructionError):
        triangularize(fcc_lattice, 0.5 * np.eye(3))
    with pytest.warns(LatticeWarning):
        tri = triangularize(fcc_lattice, np.diag([1, 1, -1]))
    assert np.all(np.diag(tri.matrix()) > 0)


def test_max_miller_index_cubic():
    recilat = ReciLattice(np.eye(3))
    # gmax = sqrt(2 * 8) = 4 with unit reciprocal vectors
    assert max_miller_index(recilat, 8., TWO_M_HBAR2_HART) == (5, 5, 5)
    # Real lattices are converted first
    reallat = RealLattice(TPI * np.eye(3))
    assert max_miller_index(reallat, 8., TWO_M_HBAR2_HART) == (5, 5, 5)


@pytest.mark.parametrize('name', ['fcc_lattice', 'bcc_lattice'])
def test_max_miller_index_covers_sphere(name, request):
    reallat = request.getfixturevalue(name)
    recilat = to_reciprocal(reallat)
    ecut = 40.
    nmax = max_miller_index(reallat, ecut, TWO_M_HBAR2_HART)
    assert len(nmax) == 3
    for miller in product(range(-12, 13), repeat=3):
        if recilat.norm2(np.array(miller)) <= TWO_M_HBAR2_HART * ecut:
            assert all(abs(m) <= n for m, n in zip(miller, nmax))


def test_max_miller_index_2d():
    reallat = lattice_2d(1., 1.5, 60.)
    recilat = to_reciprocal(reallat)
    ecut = 100.
    nmax = max_miller_index(recilat, ecut, TWO_M_HBAR2_HART)
    assert len(nmax) == 2
    for miller in product(range(-10, 11), repeat=2):
        if recilat.norm2(np.array(miller)) <= TWO_M_HBAR2_HART * ecut:
            assert all(abs(m) <= n for m, n in zip(miller, nmax))


def test_max_miller_index_invalid(sc_lattice):
    with pytest.raises(ValueError):
        max_miller_index(sc_lattice, -1., TWO_M_HBAR2_HART)
    with pytest.raises(ValueError):
        max_miller_index(sc_lattice, 1., 0.)
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        with pytest.raises(ValueError):
            max_miller_index(RealLattice.zeros(3), 1., TWO_M_HBAR2_HART)
