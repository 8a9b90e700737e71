from __future__ import annotations
from typing import TYPE_CHECKING, NamedTuple
if TYPE_CHECKING:
    from typing import Sequence
__all__ = ['KPoint', 'KPointList', 'KPointGrid', 'gen_monkhorst_pack_grid']

from itertools import product

import numpy as np

from recispace.lattice import ReciLattice
from recispace.errors import ConstructionError, ConsistencyError
from recispace.logger import rslogger
from recispace.msg_format import (type_mismatch_msg, type_mismatch_seq_msg,
                                  value_mismatch_msg)
from recispace.config import NDArray


def _fold_zone(k_cryst: NDArray) -> NDArray:
    """Folds fractional coordinates into the half-open range [-0.5, 0.5).
    Exact halves are mapped to -0.5."""
    return k_cryst - np.floor(k_cryst + 0.5)


def _sanitize_weights(weights, numkpts: int) -> NDArray:
    try:
        weights = np.array(weights, dtype='f8')
    except (TypeError, ValueError) as e:
        raise TypeError(
            type_mismatch_msg('weights', weights, 'an array-like object')
        ) from e
    if weights.shape != (numkpts, ):
        raise ConstructionError(value_mismatch_msg(
            'weights.shape', weights.shape, f"(numkpts, ) = ({numkpts}, )"
        ))
    if not np.all(np.isfinite(weights)):
        raise ConstructionError(f"'weights' must be finite. got {weights}")
    if np.any(weights < 0):
        raise ConstructionError(f"'weights' must be non-negative. got {weights}")
    wsum = np.sum(weights)
    if wsum == 0:
        raise ConstructionError("'weights' must not sum to zero.")
    # Always normalized, even when the input already sums to one
    weights /= wsum
    return weights


class KPoint(NamedTuple):
    """A k-point in crystal coords and its normalized weight"""
    point: tuple[float, ...]
    weight: float


class KPointList:
    """Ordered list of k-points in crystal coordinates with normalized
    weights.

    Slicing or fancy indexing returns the selected k-points with their
    weights unchanged, so the weights of a selection need not sum to one.

    Parameters
    ----------
    points : array-like
        (``(numkpts, D)``) Fractional coordinates of the k-points.
    weights : array-like, optional
        (``(numkpts, )``) Non-negative weights of the k-points. They are
        always divided by their sum. Defaults to equal weights.
    dim : int, optional
        If given, the number of components of each k-point must equal `dim`.

    Raises
    ------
    ConstructionError
        Raised if the lengths of `points` and `weights` differ, if a
        weight is negative, if the weights sum to zero or if the
        k-points are not `dim`-dimensional.
    """

    def __init__(self, points, weights=None, dim: int | None = None):
        try:
            points = np.array(points, dtype='f8')
        except (TypeError, ValueError) as e:
            raise TypeError(
                type_mismatch_msg('points', points, 'an array-like object')
            ) from e
        if points.ndim != 2 or points.shape[0] == 0:
            raise ConstructionError(
                "'points' must be a non-empty 2D array of shape (numkpts, dim). "
                f"got array of shape {points.shape}"
            )
        if dim is not None and points.shape[1] != dim:
            raise ConstructionError(value_mismatch_msg(
                'points.shape[1]', points.shape[1], dim
            ))
        if weights is None:
            weights = np.ones(points.shape[0], dtype='f8')
        weights = _sanitize_weights(weights, points.shape[0])

        points.flags.writeable = False
        weights.flags.writeable = False
        self._points: NDArray = points
        self._weights: NDArray = weights

    @property
    def points(self) -> NDArray:
        """(``(numkpts, D)``, ``'f8'``) Read-only array of k-points in
        crystal coords"""
        return self._points

    @property
    def weights(self) -> NDArray:
        """(``(numkpts, )``, ``'f8'``) Read-only array of normalized weights"""
        return self._weights

    @property
    def numkpts(self) -> int:
        return self._points.shape[0]

    @property
    def dim(self) -> int:
        return self._points.shape[1]

    def cart(self, recilat: ReciLattice) -> NDArray:
        """Returns the k-points in cartesian coords of `recilat`,
        as an array of shape ``(numkpts, D)``"""
        if not isinstance(recilat, ReciLattice):
            raise TypeError(type_mismatch_msg('recilat', recilat, ReciLattice))
        return recilat.cryst2cart(self._points, axis=1)

    def __len__(self) -> int:
        return self.numkpts

    def __iter__(self):
        for ik in range(self.numkpts):
            yield self[ik]

    @classmethod
    def _from_normalized(cls, points: NDArray, weights: NDArray) -> KPointList:
        """Wraps a selection of an existing list, keeping its weights as
        they are. The result may be empty."""
        klist = cls.__new__(cls)
        points, weights = points.copy(), weights.copy()
        points.flags.writeable = False
        weights.flags.writeable = False
        klist._points, klist._weights = points, weights
        return klist

    def __getitem__(self, item) -> KPointList | KPoint:
        points = self._points[item]
        weights = self._weights[item]
        if weights.ndim == 0:
            return KPoint(tuple(points.tolist()), float(weights))
        # Selections keep the weights of the full list
        return self._from_normalized(points, weights)

    def __eq__(self, other) -> bool:
        if not isinstance(other, KPointList):
            return NotImplemented
        return (self._points.shape == other._points.shape
                and np.array_equal(self._points, other._points)
                and np.allclose(self._weights, other._weights, rtol=0, atol=1e-12))

    __hash__ = None

    def __repr__(self) -> str:
        return (f"KPointList(\n\tnumkpts={self.numkpts},"
                f"\n\tpoints={self._points.tolist()},"
                f"\n\tweights={self._weights.tolist()})")


class KPointGrid:
    """Mesh of k-points generated by an integer matrix, shifted from the
    origin.

    The mesh is the set of points ``k`` in the primitive reciprocal cell
    for which ``grid.T @ k`` is integral, i.e. the reciprocal lattice of the
    supercell whose lattice vectors are the columns of
    ``reallat.matrix() @ grid``. A diagonal `grid` gives the usual
    Monkhorst-Pack-like mesh.

    Parameters
    ----------
    grid : array-like of int
        (``(D, D)``) Generating matrix. All entries must be non-negative.
    orig : array-like, optional
        (``(D, )``) Shift of the mesh in crystal coords. Folded into
        [-0.5, 0.5) at construction. Defaults to zero.
    """

    def __init__(self, grid, orig=None):
        grid = np.asarray(grid)
        if grid.ndim != 2 or grid.shape[0] != grid.shape[1] or grid.shape[0] == 0:
            raise ConstructionError(
                f"'grid' must be a square 2D array. got shape {grid.shape}"
            )
        if not np.issubdtype(grid.dtype, np.integer):
            if (not np.issubdtype(grid.dtype, np.number)
                    or not np.all(np.isfinite(grid))
                    or np.any(grid != np.round(grid))):
                raise ConstructionError(
                    f"'grid' must contain integers. got {grid.tolist()}"
                )
            grid = np.round(grid)
        grid = grid.astype('i8')
        if np.any(grid < 0):
            raise ConstructionError(
                f"'grid' must not contain negative entries. got {grid.tolist()}"
            )
        dim = grid.shape[0]

        if orig is None:
            orig = np.zeros(dim, dtype='f8')
        orig = np.array(orig, dtype='f8')
        if orig.shape != (dim, ):
            raise ConstructionError(value_mismatch_msg(
                'orig.shape', orig.shape, f"({dim}, )"
            ))

        grid.flags.writeable = False
        orig = _fold_zone(orig)
        orig.flags.writeable = False
        self._grid: NDArray = grid
        self._orig: NDArray = orig

    @property
    def grid(self) -> NDArray:
        """(``(D, D)``, ``'i8'``) Read-only generating matrix"""
        return self._grid

    @property
    def orig(self) -> NDArray:
        """(``(D, )``, ``'f8'``) Read-only shift, within [-0.5, 0.5)"""
        return self._orig

    @property
    def dim(self) -> int:
        return self._grid.shape[0]

    @property
    def numkpts(self) -> int:
        """Number of k-points in the mesh"""
        return int(round(abs(np.linalg.det(self._grid))))

    @rslogger.time('KPointGrid.to_klist')
    def to_klist(self) -> KPointList:
        """Enumerates the mesh as a `KPointList` with equal weights.

        Points are folded into [-0.5, 0.5) and sorted lexicographically.

        Raises
        ------
        ConsistencyError
            Raised if the generating matrix is singular.
        """
        numkpts = self.numkpts
        if numkpts == 0:
            raise ConsistencyError(
                f"'grid' is singular; cannot enumerate mesh: {self._grid.tolist()}"
            )
        # Every mesh point in [0, 1)^D has 0 <= grid.T @ k < column sums
        box = [range(int(n)) for n in np.sum(self._grid, axis=0)]
        n_int = np.array(list(product(*box)), dtype='f8')
        k_cryst = np.linalg.solve(self._grid.T.astype('f8'), n_int.T).T

        tol = 1e-8
        k_cryst = k_cryst[np.all((k_cryst > -tol) & (k_cryst < 1 - tol), axis=1)]
        if k_cryst.shape[0] != numkpts:
            raise ConsistencyError(
                f"expected {numkpts} k-points in mesh, found {k_cryst.shape[0]}."
            )
        rslogger.debug("k-point mesh of %d points generated from %s",
                       numkpts, self._grid.tolist())

        k_cryst = _fold_zone(k_cryst + self._orig)
        # Points that fold to -0.5 only up to roundoff must sort consistently
        k_cryst = np.round(k_cryst, 12) + 0.
        k_cryst = k_cryst[np.lexsort(k_cryst.T[::-1])]
        return KPointList(k_cryst, dim=self.dim)

    def __eq__(self, other) -> bool:
        if not isinstance(other, KPointGrid):
            return NotImplemented
        return (np.array_equal(self._grid, other._grid)
                and np.array_equal(self._orig, other._orig))

    __hash__ = None

    def __repr__(self) -> str:
        return (f"KPointGrid(grid={self._grid.tolist()}, "
                f"orig={self._orig.tolist()})")


def gen_monkhorst_pack_grid(
        grid_shape: Sequence[int], shifts: Sequence[bool] | None = None
) -> KPointList:
    """Generates a Monkhorst-Pack grid of k-points without symmetry
    reduction.

    Parameters
    ----------
    grid_shape : Sequence[int]
        Number of k-points along each axis.
    shifts : Sequence[bool], optional
        If True along an axis, the mesh along it is shifted by half a step.
        Defaults to no shifts.

    Returns
    -------
    KPointList
        Mesh of ``prod(grid_shape)`` k-points with equal weights.
    """
    grid_shape = tuple(grid_shape)
    if len(grid_shape) == 0 or \
            not all(isinstance(ni, (int, np.integer)) and ni > 0 for ni in grid_shape):
        raise TypeError(
            type_mismatch_seq_msg('grid_shape', grid_shape, 'positive integers')
        )
    if shifts is None:
        shifts = (False, ) * len(grid_shape)
    shifts = tuple(shifts)
    if len(shifts) != len(grid_shape) or \
            not all(isinstance(si, (bool, np.bool_)) for si in shifts):
        raise TypeError(type_mismatch_msg(
            'shifts', shifts, f'a sequence of {len(grid_shape)} booleans'
        ))

    ki = [
        (np.arange(-ni // 2 + 1, ni // 2 + 1) + 0.5 * si) / ni
        for ni, si in zip(grid_shape, shifts)
    ]
    k_mesh_cryst = np.meshgrid(*ki, indexing="ij")
    k_cryst = np.transpose([np.ravel(arr) for arr in k_mesh_cryst])
    return KPointList(k_cryst, dim=len(grid_shape))
