from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Literal, Sequence
__all__ = ["LatticeBasis", "RealLattice", "ReciLattice",
           "to_reciprocal", "to_real", "dual_lattice",
           "lattice_2d", "lattice_3d", "triangularize", "max_miller_index"]

import warnings
from abc import ABC, abstractmethod
from itertools import combinations
from numbers import Number

import numpy as np
from scipy.linalg import qr

from recispace.config import NDArray
from recispace.constants import TPI, ANGSTROM, EPS
from recispace.errors import (ConstructionError, SingularTransformError,
                              LatticeWarning)
from recispace.msg_format import type_mismatch_msg


def _sanitize_primvec(primvec) -> NDArray:
    """Validates a matrix of basis vectors and returns it as a read-only
    ``'f8'`` array.

    The matrix must be square and nonsingular, unless all of its entries are
    zero, which stands for an unspecified basis. A left-handed set of
    vectors (negative determinant) is accepted with a `LatticeWarning`.
    """
    try:
        mat = np.array(primvec, dtype='f8', order='C')
    except (TypeError, ValueError) as e:
        raise TypeError(
            type_mismatch_msg('primvec', primvec, 'a square array-like object')
        ) from e

    if mat.ndim != 2 or mat.shape[0] != mat.shape[1] or mat.shape[0] == 0:
        raise ConstructionError(
            "'primvec' must be a square 2D array. "
            f"got array of shape {mat.shape}."
        )
    if not np.all(np.isfinite(mat)):
        raise ConstructionError(f"'primvec' contains non-finite values:\n{mat}")

    mat.flags.writeable = False
    # An all-zero matrix is the sentinel for an unspecified basis
    if not np.any(mat):
        return mat

    if np.linalg.matrix_rank(mat) < mat.shape[0]:
        raise ConstructionError(
            "cell vectors are not linearly independent.\n"
            f"Matrix contents: {mat}"
        )
    if np.linalg.det(mat) < 0:
        warnings.warn("cell vectors form a left-handed coordinate system.",
                      LatticeWarning, stacklevel=3)
    return mat


class LatticeBasis(ABC):
    """Represents the basis of a lattice of translations

    Describes a lattice by its primitive translation vectors and provides
    methods for coordinate transformations and cell geometry. The space
    in which the vectors live is given by the subclass: `RealLattice` or
    `ReciLattice`. Instances are immutable.

    Parameters
    ----------
    primvec : array-like
        (``(D, D)``) 2D array where each **column** represents a primitive
        translation vector. An all-zero matrix is accepted and represents
        an unspecified basis.

    Raises
    ------
    ConstructionError
        Raised if `primvec` is not square, or is singular i.e the basis
        vectors are not linearly independent.
    """

    space: Literal['real', 'reciprocal'] = None
    """Space in which the basis vectors are defined"""

    def __init__(self, primvec: NDArray):
        self._primvec: NDArray = _sanitize_primvec(primvec)
        if self.is_zero():
            self._primvec_inv = None
        else:
            self._primvec_inv = np.linalg.inv(self._primvec)
            self._primvec_inv.flags.writeable = False

    @classmethod
    def from_vectors(cls, *vecs):
        """Generates a basis from its primitive translation vectors,
        given as separate array-like objects of length ``len(vecs)``."""
        return cls(np.stack(vecs, axis=1))

    @classmethod
    def zeros(cls, dim: int = 3):
        """Returns the unspecified (all-zero) basis of dimension `dim`"""
        if not isinstance(dim, int) or dim < 1:
            raise TypeError(type_mismatch_msg('dim', dim, 'a positive integer'))
        return cls(np.zeros((dim, dim), dtype='f8'))

    @abstractmethod
    def dual(self) -> LatticeBasis:
        """Returns the dual basis, defined in the other space, satisfying
        ``dual(b).matrix().T @ b.matrix() == 2 * pi * I``"""
        pass

    @property
    def dim(self) -> int:
        """Number of dimensions spanned by the basis"""
        return self._primvec.shape[0]

    def matrix(self) -> NDArray:
        """Returns a copy of the ``(D, D)`` matrix whose columns are the
        basis vectors"""
        return self._primvec.copy()

    def vectors(self) -> list[NDArray]:
        """List of the basis vectors"""
        return [vec.copy() for vec in self._primvec.T]

    def is_zero(self) -> bool:
        """True if this is the unspecified (all-zero) basis"""
        return not np.any(self._primvec)

    def is_diagonal(self) -> bool:
        return bool(np.count_nonzero(
            self._primvec - np.diag(np.diag(self._primvec))
        ) == 0)

    def __len__(self) -> int:
        return self.dim

    def __getitem__(self, item) -> NDArray:
        # Indexing with a single value returns a basis vector, not a matrix entry
        if isinstance(item, tuple):
            return self._primvec[item]
        return self._primvec[:, item]

    def __iter__(self):
        return iter(self._primvec.T)

    def __array__(self, dtype=None, copy=None):
        return np.array(self._primvec, dtype=dtype)

    # Unit cell metrics
    def lengths(self) -> NDArray:
        """Lengths of the basis vectors"""
        return np.linalg.norm(self._primvec, axis=0)

    def volume(self) -> float:
        """Volume of the unit cell. Always non-negative."""
        return float(abs(np.linalg.det(self._primvec)))

    def angle_cos(self) -> NDArray:
        """Cosines of the angles between each pair of basis vectors.

        The pairs are listed in reversed order of `itertools.combinations`,
        which gives ``[alpha, beta, gamma]`` for 3D cells. An unspecified
        basis has undefined angles and returns NaNs.
        """
        vecs = self._primvec
        lengths = self.lengths()
        pairs = list(combinations(range(self.dim), 2))[::-1]
        with np.errstate(invalid='ignore', divide='ignore'):
            return np.array(
                [vecs[:, a] @ vecs[:, b] / (lengths[a] * lengths[b])
                 for a, b in pairs],
                dtype='f8',
            )

    def angles_rad(self) -> NDArray:
        """Angles between each pair of basis vectors in radians"""
        return np.arccos(np.clip(self.angle_cos(), -1, 1))

    def angles_deg(self) -> NDArray:
        """Angles between each pair of basis vectors in degrees"""
        return np.rad2deg(self.angles_rad())

    def gram(self) -> NDArray:
        """Gram matrix (metric tensor) ``b.T @ b`` of the basis"""
        return self._primvec.T @ self._primvec

    def d_spacing(self, miller: Sequence[int]) -> float:
        """Distance between the family of real-space lattice planes
        labelled by the Miller index `miller`"""
        miller = np.asarray(miller)
        if miller.shape != (self.dim, ):
            raise ValueError(f"'miller' must have {self.dim} components. "
                             f"got shape {miller.shape}")
        if not np.any(miller):
            raise ValueError("'miller' must not be the zero vector")
        recilat = to_reciprocal(self)
        return float(TPI / np.linalg.norm(recilat.cryst2cart(miller)))

    def cart2cryst(self, arr: NDArray, axis: int = 0) -> NDArray:
        """Transforms array of vector components in cartesian coords
        to crystal coords.

        Parameters
        ----------
        arr : NDArray
            Input array of vector components in cartesian coords.
        axis : int, default=0
            Axis indexing the vector coordinates/components.
            `arr.shape[axis]` must be equal to `dim`.

        Returns
        -------
        NDArray
            Array with the same shape as `arr` containing
            the vectors in crystal coords.
        """
        if self._primvec_inv is None:
            raise ConstructionError("cannot transform to crystal coords of an "
                                    "unspecified basis.")
        return self._transform(self._primvec_inv, arr, axis)

    def cryst2cart(self, arr: NDArray, axis: int = 0) -> NDArray:
        """Transforms array of vector components in crystal coords
        to cartesian coords.

        Parameters
        ----------
        arr : NDArray
            Input array of vector components in crystal coords.
        axis : int, default=0
            Axis indexing the vector coordinates/components.
            ``arr.shape[axis]`` must be equal to `dim`.

        Returns
        -------
        NDArray
            Array with the same shape as ``arr`` containing
            the vectors in cartesian coords.
        """
        return self._transform(self._primvec, arr, axis)

    def _transform(self, mat: NDArray, arr: NDArray, axis: int) -> NDArray:
        arr = np.asarray(arr)
        if arr.shape[axis] != self.dim:
            raise ValueError(f"Expected arr.shape[{axis}] == {self.dim}, "
                             f"got {arr.shape}")
        out = np.tensordot(mat, np.moveaxis(arr, axis, 0), axes=(1, 0))
        return np.moveaxis(out, 0, axis)

    def dot(
        self,
        l_vec1: NDArray,
        l_vec2: NDArray,
        coords: Literal["cryst", "cart"] = "cryst",
    ) -> NDArray:
        """Computes the dot product between two sets of vectors

        Parameters
        ----------
        l_vec1, l_vec2 : NDArray
            Input Array of vector components.
            Their first axes must have length `dim`.
        coords : {'cryst', 'cart'}, default='cryst'
            Coordinate type of input vector components.

        Returns
        -------
        NDArray
            Array of dot products between vectors in ``l_vec1`` and
            ``l_vec2`` of shape (``l_vec1.shape[1:]``, ``l_vec2.shape[1:]``).

        Raises
        ------
        ValueError
            Raised if arrays are of improper shape.
        ValueError
            Raised if value of ``coords`` is invalid.
        """
        l_vec1, l_vec2 = np.asarray(l_vec1), np.asarray(l_vec2)
        if l_vec1.shape[0] != self.dim or l_vec2.shape[0] != self.dim:
            raise ValueError(
                f"Leading dimension of input arrays must be {self.dim}. "
                f"Got {l_vec1.shape}, {l_vec2.shape}"
            )

        shape_ = (*l_vec1.shape[1:], *l_vec2.shape[1:])
        l_vec1 = l_vec1.reshape(self.dim, -1)
        l_vec2 = l_vec2.reshape(self.dim, -1)
        if coords == "cryst":
            return (l_vec1.T @ self.gram() @ l_vec2).reshape(shape_)
        elif coords == "cart":
            return (l_vec1.T @ l_vec2).reshape(shape_)
        else:
            raise ValueError(f"'coords' must be either 'cryst' or 'cart'. Got {coords}")

    def norm2(
        self, l_vec: NDArray, coords: Literal["cryst", "cart"] = "cryst"
    ) -> NDArray:
        """Computes the norm squared of input vectors.

        Parameters
        ----------
        l_vec : NDArray
            Input Array of vector components.
            First axis must be of length `dim`.
        coords : {'cryst', 'cart'}, default='cryst'
            Coordinate type of input vector components.

        Returns
        -------
        NDArray
            Array containing norm squared of vectors given in ``l_vec``.
        """
        l_vec = np.asarray(l_vec)
        if l_vec.shape[0] != self.dim:
            raise ValueError(
                f"Leading dimension of input array must be {self.dim}. "
                f"Got {l_vec.shape}"
            )
        shape_ = l_vec.shape[1:]
        l_vec = l_vec.reshape(self.dim, -1)
        if coords == "cryst":
            return np.sum(l_vec * (self.gram() @ l_vec), axis=0).reshape(shape_)
        elif coords == "cart":
            return np.sum(l_vec * l_vec, axis=0).reshape(shape_)
        else:
            raise ValueError(f"'coords' must be either 'cryst' or 'cart'. Got {coords}")

    def norm(
        self, l_vec: NDArray, coords: Literal["cryst", "cart"] = "cryst"
    ) -> NDArray:
        """Computes the norm of given vectors. Refer to `norm2`."""
        return np.sqrt(self.norm2(l_vec, coords))

    # Scaling by numbers keeps the space; products with arrays return arrays
    def __mul__(self, other):
        if isinstance(other, Number):
            return type(self)(self._primvec * other)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other):
        if isinstance(other, Number):
            return type(self)(self._primvec / other)
        return NotImplemented

    def __matmul__(self, other):
        if isinstance(other, LatticeBasis):
            return NotImplemented
        return self._primvec @ np.asarray(other)

    def __rmatmul__(self, other):
        return np.asarray(other) @ self._primvec

    def __eq__(self, other) -> bool:
        if type(self) is not type(other):
            return False
        if self.dim != other.dim:
            return False
        return bool(np.linalg.norm(self._primvec - other._primvec) <= EPS)

    __hash__ = None

    def __repr__(self) -> str:
        primvec = str(self._primvec.tolist())
        return f"{type(self).__name__}(primvec={primvec})"


class RealLattice(LatticeBasis):
    """Represents the basis of a Real-Space Lattice.

    Parameters
    ----------
    latvec : array-like
        (``(D, D)``) 2D array where each **column** represents a primitive
        translation vector.
    """

    space = 'real'

    @property
    def latvec(self) -> NDArray:
        """(``(D, D)``, ``'f8'``) Read-only view of the lattice vectors"""
        return self._primvec

    @classmethod
    def from_angstrom(cls, *vecs) -> RealLattice:
        """Generates ``RealLattice`` instance from a list of primitive
        translation vectors given in angstrom. The vectors are converted
        to Bohr."""
        return cls(np.stack(vecs, axis=1) * ANGSTROM)

    @classmethod
    def from_recilat(cls, recilat: ReciLattice) -> RealLattice:
        """Constructs the real lattice dual to the reciprocal lattice

        Parameters
        ----------
        recilat : ReciLattice
            Reciprocal Lattice

        Returns
        -------
        RealLattice
            Real Lattice that is the dual of Reciprocal Lattice ``recilat``
        """
        if not isinstance(recilat, ReciLattice):
            raise TypeError(type_mismatch_msg('recilat', recilat, ReciLattice))
        if recilat.is_zero():
            return cls.zeros(recilat.dim)
        return cls((TPI * np.linalg.inv(recilat.matrix())).T)

    def dual(self) -> ReciLattice:
        return ReciLattice.from_reallat(self)


class ReciLattice(LatticeBasis):
    """Represents the basis of a Reciprocal-Space Lattice.

    Parameters
    ----------
    recvec : array-like
        (``(D, D)``) 2D array where each **column** represents a primitive
        translation vector.
    """

    space = 'reciprocal'

    @property
    def recvec(self) -> NDArray:
        """(``(D, D)``, ``'f8'``) Read-only view of the reciprocal vectors"""
        return self._primvec

    @classmethod
    def from_reallat(cls, reallat: RealLattice) -> ReciLattice:
        """Constructs the reciprocal lattice dual to the real lattice

        Parameters
        ----------
        reallat : RealLattice
            Real Lattice

        Returns
        -------
        ReciLattice
            Reciprocal Lattice that is the dual of Real Lattice ``reallat``
        """
        if not isinstance(reallat, RealLattice):
            raise TypeError(type_mismatch_msg('reallat', reallat, RealLattice))
        if reallat.is_zero():
            return cls.zeros(reallat.dim)
        return cls(TPI * np.linalg.inv(reallat.matrix().T))

    def dual(self) -> RealLattice:
        return RealLattice.from_recilat(self)


def to_reciprocal(basis: LatticeBasis) -> ReciLattice:
    """Returns `basis` in reciprocal space, converting it if it is a
    `RealLattice`. Reciprocal lattices are returned unchanged."""
    if isinstance(basis, ReciLattice):
        return basis
    if isinstance(basis, RealLattice):
        return ReciLattice.from_reallat(basis)
    raise TypeError(type_mismatch_msg('basis', basis, [RealLattice, ReciLattice]))


def to_real(basis: LatticeBasis) -> RealLattice:
    """Returns `basis` in real space, converting it if it is a
    `ReciLattice`. Real lattices are returned unchanged."""
    if isinstance(basis, RealLattice):
        return basis
    if isinstance(basis, ReciLattice):
        return RealLattice.from_recilat(basis)
    raise TypeError(type_mismatch_msg('basis', basis, [RealLattice, ReciLattice]))


def dual_lattice(basis: LatticeBasis) -> LatticeBasis:
    """Generates the dual lattice of `basis`, which satisfies::

        dual_lattice(b).matrix().T @ b.matrix() == 2 * pi * I

    Note the factor of 2 pi: some conventions define the dual lattice with
    the plain inverse transpose.
    """
    if not isinstance(basis, LatticeBasis):
        raise TypeError(type_mismatch_msg('basis', basis, LatticeBasis))
    return basis.dual()


def lattice_2d(a: float, b: float, gamma: float) -> RealLattice:
    """Constructs a 2D real lattice with lengths `a`, `b` and angle `gamma`
    (in degrees). The b-vector is oriented along y."""
    gamma = np.deg2rad(gamma)
    return RealLattice.from_vectors(
        [a * np.sin(gamma), a * np.cos(gamma)],
        [0., b],
    )


def lattice_3d(a: float, b: float, c: float,
               alpha: float, beta: float, gamma: float) -> RealLattice:
    """Constructs a 3D real lattice with the given lengths and angles
    (in degrees).

    The b-vector is oriented along y, and the a-vector is chosen to be
    perpendicular to z, leaving the c-vector to freely vary.
    """
    cos_a, cos_b, cos_g = np.cos(np.deg2rad([alpha, beta, gamma]))
    sin_g = np.sin(np.deg2rad(gamma))
    c1 = c * (cos_b - cos_g * cos_a) / sin_g
    c2 = c * cos_a
    c3_sq = c ** 2 - (c1 ** 2 + c2 ** 2)
    if c3_sq <= 0:
        raise ConstructionError(
            f"angles (alpha, beta, gamma) = {(alpha, beta, gamma)} "
            "do not describe a valid cell."
        )
    return RealLattice.from_vectors(
        [a * sin_g, a * cos_g, 0.],
        [0., b, 0.],
        [c1, c2, np.sqrt(c3_sq)],
    )


def triangularize(basis: LatticeBasis, supercell: NDArray | None = None
                  ) -> LatticeBasis:
    """Converts a basis to an upper triangular form using QR decomposition.

    The rows of the triangular factor are flipped so that the diagonal is
    positive, giving a right-handed cell (the form expected by LAMMPS) with
    the same vector lengths and angles as the input.
    If `supercell` is given, the basis is first transformed to the
    supercell whose vectors are the columns of ``basis.matrix() @ supercell``.

    Parameters
    ----------
    basis : LatticeBasis
        Input basis.
    supercell : array-like of int, optional
        (``(D, D)``) Integer transformation matrix.

    Returns
    -------
    LatticeBasis
        Basis of the same space as `basis`.

    Raises
    ------
    SingularTransformError
        Raised if `supercell` is singular.
    """
    if not isinstance(basis, LatticeBasis):
        raise TypeError(type_mismatch_msg('basis', basis, LatticeBasis))
    mat = basis.matrix()
    if supercell is not None:
        supercell = np.asarray(supercell)
        if supercell.shape != (basis.dim, basis.dim):
            raise ConstructionError(
                f"'supercell' must have shape {(basis.dim, basis.dim)}. "
                f"got {supercell.shape}"
            )
        if not np.issubdtype(supercell.dtype, np.integer):
            if not np.all(np.isfinite(supercell)) \
                    or np.any(supercell != np.round(supercell)):
                raise ConstructionError(
                    f"'supercell' must contain integers. got {supercell.tolist()}"
                )
            supercell = np.round(supercell).astype('i8')
        det = round(np.linalg.det(supercell))
        if det == 0:
            raise SingularTransformError(
                f"supercell transform is singular: {supercell.tolist()}"
            )
        if det < 0:
            warnings.warn(
                "supercell transform has a negative determinant; "
                "the triangularized basis is right-handed regardless.",
                LatticeWarning, stacklevel=2,
            )
        mat = mat @ supercell

    (r, ) = qr(mat, mode='r')
    signs = np.sign(np.diag(r))
    signs[signs == 0] = 1
    return type(basis)(signs.reshape(-1, 1) * r)


def max_miller_index(basis: LatticeBasis, ecut: float, constant: float
                     ) -> tuple[int, ...]:
    """Determines the maximum Miller index along each reciprocal axis needed
    to store data out to the energy cutoff `ecut`.

    All reciprocal lattice vectors ``G`` with ``|G|^2 <= constant * ecut``
    lie within the returned index range. Real-space bases are converted to
    reciprocal space first. For 3D cells, three estimates of the bound are
    made per axis (one for each pair of basis vectors, using the sines of
    their angle and of the angle between the remaining vector and their
    plane) and the largest is kept, following WaveTrans
    (https://www.andrew.cmu.edu/user/feenstra/wavetrans/).

    Parameters
    ----------
    basis : LatticeBasis
        Lattice basis in real or reciprocal space.
    ecut : float
        Energy cutoff.
    constant : float
        Scale factor ``2m/hbar^2`` in units consistent with `basis` and `ecut`.
        See `recispace.constants.TWO_M_HBAR2_HART` and
        `recispace.constants.TWO_M_HBAR2_VASP`.

    Returns
    -------
    tuple[int, ...]
        Maximum Miller index along each axis.
    """
    if not isinstance(ecut, Number) or ecut < 0:
        raise ValueError(f"'ecut' must be a non-negative number. got {ecut}")
    if not isinstance(constant, Number) or constant <= 0:
        raise ValueError(f"'constant' must be a positive number. got {constant}")
    recilat = to_reciprocal(basis)
    if recilat.is_zero():
        raise ValueError("cannot estimate Miller indices of an unspecified basis.")

    dim = recilat.dim
    gmax = np.sqrt(constant * ecut)
    mat = recilat.matrix()
    lengths = recilat.lengths()

    if dim == 1:
        sines = np.ones((1, 1))
    elif dim == 2:
        cos_g = recilat.angle_cos()[0]
        sines = np.full((2, 1), np.sqrt(1 - cos_g ** 2))
    elif dim == 3:
        # sin_pair[i, j]: sine of the angle between vectors i and j
        cos_pair = np.eye(3)
        for (a, b), cosine in zip(list(combinations(range(3), 2))[::-1],
                                  recilat.angle_cos()):
            cos_pair[a, b] = cos_pair[b, a] = cosine
        sin_pair = np.sqrt(1 - cos_pair ** 2)
        # sin_plane[i]: sine of the angle between vector i and the plane
        # spanned by the other two
        sin_plane = np.empty(3)
        for i in range(3):
            cross = np.cross(mat[:, (i + 1) % 3], mat[:, (i + 2) % 3])
            sin_plane[i] = abs(mat[:, i] @ cross) / (np.linalg.norm(cross) * lengths[i])
        # One estimate per pair (1, 2), (1, 3), (2, 3); the remaining vector
        # uses the vector-to-plane sine
        sines = np.array([
            [sin_pair[0, 1], sin_pair[0, 2], sin_plane[0]],
            [sin_pair[0, 1], sin_plane[1], sin_pair[1, 2]],
            [sin_plane[2], sin_pair[0, 2], sin_pair[1, 2]],
        ])
    else:
        raise NotImplementedError(
            f"'max_miller_index' supports 1, 2 and 3 dimensions. got {dim}"
        )

    nmax = gmax / (lengths.reshape(-1, 1) * sines) + 1
    return tuple(int(n) for n in np.floor(np.amax(nmax, axis=1)))
