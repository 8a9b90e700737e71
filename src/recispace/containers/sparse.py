from __future__ import annotations
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from typing import Any, Iterable, Iterator
__all__ = ['SparseMillerMap', 'densify', 'sparsify']

import numpy as np

from recispace.lattice import LatticeBasis, ReciLattice
from recispace.containers.base import MillerDataType
from recispace.containers.grid import MillerGrid
from recispace.errors import ConstructionError
from recispace.logger import rslogger
from recispace.msg_format import type_mismatch_msg, value_mismatch_msg


class SparseMillerMap(MillerDataType):
    """Sparse container of values over an unbounded domain of Miller indices.

    Indices that were never set read as zero. The map may grow by
    insertion; convert it with `densify` for export.

    Parameters
    ----------
    basis : LatticeBasis, optional
        Lattice basis the Miller indices refer to. Defaults to the
        unspecified reciprocal basis of dimension `dim`.
    dtype : str, default='c16'
        Data type of the stored values.
    dim : int, optional
        Number of components of a Miller index. Defaults to ``basis.dim``,
        or 3 when `basis` is not given.
    """

    def __init__(self, basis: LatticeBasis | None = None, dtype: str = 'c16',
                 dim: int | None = None):
        if basis is None:
            basis = ReciLattice.zeros(3 if dim is None else dim)
        elif not isinstance(basis, LatticeBasis):
            raise TypeError(type_mismatch_msg('basis', basis, LatticeBasis))
        if dim is not None and dim != basis.dim:
            raise ConstructionError(value_mismatch_msg('dim', dim, basis.dim))
        self._basis: LatticeBasis = basis
        self._dtype: np.dtype = np.dtype(dtype)
        self._data: dict[tuple[int, ...], Any] = {}

    @classmethod
    def from_items(cls, items: Iterable[tuple[tuple[int, ...], Any]],
                   basis: LatticeBasis | None = None,
                   dtype: str = 'c16') -> SparseMillerMap:
        """Creates a map from ``(index, value)`` pairs. Without a `basis`,
        the dimension is taken from the first index."""
        items = list(items)
        dim = None
        if basis is None and len(items) > 0:
            dim = len(items[0][0]) if isinstance(items[0][0], tuple) else 1
        out = cls(basis, dtype, dim)
        for index, value in items:
            out.set(index, value)
        return out

    @property
    def basis(self) -> LatticeBasis:
        return self._basis

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    def get(self, index) -> Any:
        return self._data.get(self._sanitize_index(index), self.zero)

    def set(self, index, value) -> None:
        self._data[self._sanitize_index(index)] = self._dtype.type(value)

    def pop(self, index) -> Any:
        """Removes the value at `index` and returns it. Returns zero if the
        index was not set."""
        return self._data.pop(self._sanitize_index(index), self.zero)

    def keys(self) -> Iterator[tuple[int, ...]]:
        """Iterates over the explicitly stored Miller indices"""
        return iter(self._data.keys())

    def values(self) -> Iterator[Any]:
        return iter(self._data.values())

    def items(self) -> Iterator[tuple[tuple[int, ...], Any]]:
        return iter(self._data.items())

    def nonzero_keys(self) -> list[tuple[int, ...]]:
        """Stored Miller indices whose value differs from zero"""
        return [index for index, value in self._data.items() if value != 0]

    def __contains__(self, index) -> bool:
        try:
            index = self._sanitize_index(index)
        except ConstructionError:
            return False
        return index in self._data

    def __len__(self) -> int:
        return len(self._data)

    def bounds(self) -> tuple[range, ...]:
        """Smallest box of Miller indices containing all stored indices,
        as one range per axis.

        Raises
        ------
        ConstructionError
            Raised if the map is empty.
        """
        if len(self._data) == 0:
            raise ConstructionError("bounds of an empty 'SparseMillerMap' "
                                    "are undefined.")
        keys = np.array(list(self._data.keys()), dtype='i8')
        return tuple(range(int(lo), int(hi) + 1)
                     for lo, hi in zip(keys.min(axis=0), keys.max(axis=0)))

    def _new(self, dtype) -> SparseMillerMap:
        return SparseMillerMap(self._basis, dtype)

    def copy(self) -> SparseMillerMap:
        out = self._new(self._dtype)
        out._data = dict(self._data)
        return out

    def conj(self) -> SparseMillerMap:
        out = self._new(self._dtype)
        out._data = {index: np.conj(value) for index, value in self._data.items()}
        return out

    def abs(self) -> SparseMillerMap:
        out = self._new(np.abs(self.zero).dtype)
        out._data = {index: np.abs(value) for index, value in self._data.items()}
        return out

    def abs2(self) -> SparseMillerMap:
        out = self._new(np.abs(self.zero).dtype)
        out._data = {index: np.abs(value) ** 2
                     for index, value in self._data.items()}
        return out

    def __eq__(self, other) -> bool:
        # Explicitly stored zeros compare equal to unset indices
        if not isinstance(other, SparseMillerMap):
            return NotImplemented
        if self._basis != other._basis:
            return False
        mine = {index: value for index, value in self._data.items() if value != 0}
        theirs = {index: value for index, value in other._data.items() if value != 0}
        return mine == theirs

    __hash__ = None

    def __repr__(self) -> str:
        return (f"SparseMillerMap(basis={self._basis!r}, dtype={self._dtype}, "
                f"len={len(self)})")


@rslogger.time('densify')
def densify(sparse: SparseMillerMap) -> MillerGrid:
    """Converts a sparse map to a dense grid spanning the smallest box that
    contains every stored index. Unset indices in the box are zero.

    Raises
    ------
    ConstructionError
        Raised if `sparse` is empty.
    """
    if not isinstance(sparse, SparseMillerMap):
        raise TypeError(type_mismatch_msg('sparse', sparse, SparseMillerMap))
    bounds = sparse.bounds()
    shape = tuple(len(rng) for rng in bounds)
    rslogger.debug("densifying %d entries into box %s", len(sparse), bounds)

    grid = MillerGrid.zeros(sparse.basis, shape, dtype=sparse.dtype,
                            bounds=bounds)
    keys = np.array(list(sparse.keys()), dtype='i8')
    values = np.array(list(sparse.values()), dtype=sparse.dtype)
    grid.data[tuple((keys % np.array(shape)).T)] = values
    return grid


@rslogger.time('sparsify')
def sparsify(grid: MillerGrid) -> SparseMillerMap:
    """Converts a dense grid to a sparse map holding its nonzero values,
    keyed by their Miller indices."""
    if not isinstance(grid, MillerGrid):
        raise TypeError(type_mismatch_msg('grid', grid, MillerGrid))
    out = SparseMillerMap(grid.basis, grid.dtype)
    offsets = np.nonzero(grid.data)
    indices = grid.miller_indices()[offsets]
    for index, value in zip(indices.tolist(), grid.data[offsets]):
        out._data[tuple(index)] = value
    return out
