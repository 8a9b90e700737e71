from __future__ import annotations
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from typing import Any, Iterator, Sequence
__all__ = ['MillerGrid', 'centered_bounds', 'wrap_periodic', 'voxel_size']

from itertools import product
from numbers import Number

import numpy as np
import scipy.fft
from numpy.lib.mixins import NDArrayOperatorsMixin

from recispace.lattice import LatticeBasis, to_reciprocal
from recispace.containers.base import MillerDataType
from recispace.config import rsconfig, NDArray, INDEX_MODES
from recispace.errors import ConstructionError, ConsistencyError, MillerIndexError
from recispace.logger import rslogger
from recispace.msg_format import (type_mismatch_msg, value_not_in_list_msg,
                                  obj_mismatch_msg, shape_mismatch_msg)


def centered_bounds(shape: Sequence[int]) -> tuple[range, ...]:
    """Returns the centered Miller index range of each axis of a grid.

    For an axis of length ``n`` the range is ``-(n // 2) .. (n - 1) // 2``,
    the indices of ``numpy.fft.fftfreq(n) * n``. For ``n = 8`` this gives
    ``-4 .. 3``.
    """
    return tuple(range(-(n // 2), (n - 1) // 2 + 1) for n in shape)


def _sanitize_bounds(bounds, shape: tuple[int, ...]) -> tuple[range, ...]:
    if bounds is None:
        return centered_bounds(shape)
    bounds = tuple(bounds)
    if len(bounds) != len(shape):
        raise ConstructionError(
            f"'bounds' must contain {len(shape)} ranges. got {bounds}"
        )
    for rng, n in zip(bounds, shape):
        if not isinstance(rng, range) or rng.step != 1:
            raise TypeError(type_mismatch_msg(
                'bounds', bounds, "a sequence of 'range' instances with step 1"
            ))
        if len(rng) != n:
            raise ConstructionError(
                f"length of each range in 'bounds' must match the array shape "
                f"{shape}. got {bounds}"
            )
    return bounds


def wrap_periodic(arr: NDArray) -> NDArray:
    """Appends the first sample of each axis at its end, representing the
    periodic boundary point expected by periodic grid file formats.

    An array of shape ``(n1, n2, ...)`` gives one of shape
    ``(n1 + 1, n2 + 1, ...)``.
    """
    arr = np.asarray(arr)
    return np.pad(arr, [(0, 1)] * arr.ndim, mode='wrap')


class MillerGrid(NDArrayOperatorsMixin, MillerDataType):
    """Dense container of values over a box of Miller indices.

    Values are stored in a D-dimensional array where the Miller index ``i``
    along an axis of length ``n`` is stored at offset ``i % n``. The
    zero-frequency component is at offset 0, positive indices follow in
    ascending order and negative indices wrap to the high end of the axis:
    the layout of `scipy.fft`. The logical index range of each axis is given
    by `bounds`, which is any contiguous window of ``n`` integers; by
    default it is centered (see `centered_bounds`).

    Indices outside `bounds` either wrap into the grid modulo its shape
    (``index_mode='wrap'``) or raise `MillerIndexError`
    (``index_mode='strict'``).

    Supports NumPy's scalar ufuncs through
    `numpy.lib.mixins.NDArrayOperatorsMixin`, enabling ``+``, ``-``, ``*``,
    ``/``, ``abs``, etc. Operands that are grids must have the same basis,
    shape and bounds.

    Parameters
    ----------
    basis : LatticeBasis
        Lattice basis the Miller indices refer to.
    data : array-like
        D-dimensional array of values in storage order. It is copied.
    bounds : Sequence[range], optional
        Logical index range of each axis. Defaults to the centered ranges.
    index_mode : {'wrap', 'strict'}, optional
        Policy for indices outside `bounds`. If None, follows
        `recispace.config.rsconfig.miller_index_mode`.
    """

    def __init__(self, basis: LatticeBasis, data, bounds=None,
                 index_mode: str | None = None, copy: bool = True):
        if not isinstance(basis, LatticeBasis):
            raise TypeError(type_mismatch_msg('basis', basis, LatticeBasis))
        self._basis: LatticeBasis = basis

        data = np.array(data, copy=True) if copy else np.asarray(data)
        if data.ndim != basis.dim:
            raise ConstructionError(
                f"'data' must be a {basis.dim}D array matching the basis. "
                f"got array of shape {data.shape}"
            )
        if data.size == 0:
            raise ConstructionError(
                f"'data' must not have zero-length axes. got shape {data.shape}"
            )
        if index_mode is not None and index_mode not in INDEX_MODES:
            raise ValueError(
                value_not_in_list_msg('index_mode', index_mode, INDEX_MODES)
            )
        self._data: NDArray = data
        self._bounds: tuple[range, ...] = _sanitize_bounds(bounds, data.shape)
        self._index_mode: str | None = index_mode

    @classmethod
    def zeros(cls, basis: LatticeBasis, shape: int | Sequence[int],
              dtype: str = 'c16', bounds=None,
              index_mode: str | None = None) -> MillerGrid:
        """Creates a grid of given shape filled with zeros"""
        if isinstance(shape, int):
            shape = (shape, )
        data = np.zeros(tuple(shape), dtype=dtype)
        return cls(basis, data, bounds, index_mode, copy=False)

    @classmethod
    def from_centered(cls, basis: LatticeBasis, arr, bounds=None,
                      index_mode: str | None = None) -> MillerGrid:
        """Creates a grid from an array ordered from the lowest to the
        highest Miller index along each axis.

        Parameters
        ----------
        basis : LatticeBasis
            Lattice basis the Miller indices refer to.
        arr : array-like
            Values; ``arr[j1, j2, ...]`` is the value at Miller index
            ``(bounds[0][j1], bounds[1][j2], ...)``.
        bounds : Sequence[range], optional
            Logical index range of each axis. Defaults to the centered ranges.
        """
        arr = np.asarray(arr)
        bounds = _sanitize_bounds(bounds, arr.shape)
        data = np.roll(arr, shift=[rng.start for rng in bounds],
                       axis=tuple(range(arr.ndim)))
        return cls(basis, data, bounds, index_mode, copy=False)

    @classmethod
    @rslogger.time('MillerGrid.from_real')
    def from_real(cls, basis: LatticeBasis, arr) -> MillerGrid:
        """Creates a grid of Fourier coefficients from values sampled on a
        uniform real-space grid spanning the unit cell of `basis`.

        Uses the convention ``f(G) = (1/N) sum_r f(r) exp(-iGr)``. The grid's
        basis is the reciprocal lattice of `basis`.
        """
        arr = np.asarray(arr)
        data = scipy.fft.fftn(arr, norm='forward', workers=rsconfig.fft_threads)
        return cls(to_reciprocal(basis), data, copy=False)

    @property
    def basis(self) -> LatticeBasis:
        return self._basis

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def data(self) -> NDArray:
        """Array containing the values in storage order. Not a copy;
        writes to it are visible through `get`."""
        return self._data

    @property
    def shape(self) -> tuple[int, ...]:
        return self._data.shape

    @property
    def size(self) -> int:
        """Number of elements in the grid"""
        return self._data.size

    @property
    def bounds(self) -> tuple[range, ...]:
        """Logical Miller index range of each axis"""
        return self._bounds

    @property
    def index_mode(self) -> str:
        """Policy in effect for indices outside `bounds`"""
        if self._index_mode is None:
            return rsconfig.miller_index_mode
        return self._index_mode

    def storage_axes(self) -> tuple[range, ...]:
        """Zero-based storage offsets of each axis"""
        return tuple(range(n) for n in self.shape)

    def grid(self) -> NDArray:
        """Returns a copy of the data array in storage order"""
        return self._data.copy()

    def _axis_indices(self) -> list[NDArray]:
        """Logical Miller index of every storage offset, per axis"""
        l_idx = []
        for rng, n in zip(self._bounds, self.shape):
            logical = np.arange(rng.start, rng.stop)
            idx = np.empty(n, dtype='i8')
            idx[logical % n] = logical
            l_idx.append(idx)
        return l_idx

    def miller_indices(self) -> NDArray:
        """Returns the Miller index of every storage slot as an array of
        shape ``(*shape, dim)``"""
        return np.stack(np.meshgrid(*self._axis_indices(), indexing='ij'),
                        axis=-1)

    def _offset(self, index) -> tuple[int, ...]:
        index = self._sanitize_index(index)
        if self.index_mode == 'strict':
            for i, rng in zip(index, self._bounds):
                if i not in rng:
                    raise MillerIndexError(
                        f"Miller index {index} is outside the grid bounds "
                        f"{self._bounds}."
                    )
        return tuple(i % n for i, n in zip(index, self.shape))

    def get(self, index) -> Any:
        return self._data[self._offset(index)]

    def set(self, index, value) -> None:
        self._data[self._offset(index)] = value

    def keys(self) -> Iterator[tuple[int, ...]]:
        """Iterates over the Miller indices of the grid in storage order"""
        for index in product(*(idx.tolist() for idx in self._axis_indices())):
            yield index

    def values(self) -> Iterator[Any]:
        return iter(self._data.ravel())

    def items(self) -> Iterator[tuple[tuple[int, ...], Any]]:
        return zip(self.keys(), self.values())

    def __contains__(self, index) -> bool:
        try:
            index = self._sanitize_index(index)
        except ConstructionError:
            return False
        return all(i in rng for i, rng in zip(index, self._bounds))

    def __len__(self) -> int:
        return self.size

    def to_centered(self) -> NDArray:
        """Returns a copy of the data ordered from the lowest to the highest
        Miller index along each axis"""
        return np.roll(self._data, shift=[-rng.start for rng in self._bounds],
                       axis=tuple(range(self._data.ndim)))

    def wrapped(self) -> NDArray:
        """Returns the centered array with the periodic boundary point
        appended to each axis. Refer to `wrap_periodic`."""
        return wrap_periodic(self.to_centered())

    def expand(self, bounds: Sequence[range]) -> MillerGrid:
        """Embeds the grid into a larger box of Miller indices, filling
        the new entries with zeros.

        Raises
        ------
        ConsistencyError
            Raised if the ranges in `bounds` do not contain the grid's bounds.
        """
        bounds = tuple(bounds)
        shape = tuple(len(rng) if isinstance(rng, range) else 0 for rng in bounds)
        bounds = _sanitize_bounds(bounds, shape)
        for new, old in zip(bounds, self._bounds):
            if old.start < new.start or old.stop > new.stop:
                raise ConsistencyError(
                    f"'bounds' {bounds} do not contain the grid bounds "
                    f"{self._bounds}."
                )
        arr = np.zeros(shape, dtype=self.dtype)
        sl = tuple(slice(old.start - new.start, old.stop - new.start)
                   for new, old in zip(bounds, self._bounds))
        arr[sl] = self.to_centered()
        return MillerGrid.from_centered(self._basis, arr, bounds,
                                        self._index_mode)

    def copy(self) -> MillerGrid:
        """Makes a copy of itself"""
        return MillerGrid(self._basis, self._data, self._bounds, self._index_mode)

    def conj(self) -> MillerGrid:
        """Returns the complex conjugate of the grid"""
        return self._new(self._data.conj())

    def abs(self) -> MillerGrid:
        return self._new(np.abs(self._data))

    def abs2(self) -> MillerGrid:
        data = self._data
        if np.iscomplexobj(data):
            return self._new(data.real ** 2 + data.imag ** 2)
        return self._new(np.abs(data) ** 2)

    @rslogger.time('MillerGrid.to_real')
    def to_real(self) -> NDArray:
        """Evaluates the Fourier series on a uniform real-space grid of the
        same shape, with the convention ``f(r) = sum_G f(G) exp(iGr)``.

        Since storage follows the discrete transform layout, no reordering
        is needed. Indices wrap modulo the grid shape.
        """
        return scipy.fft.ifftn(self._data, norm='forward',
                               workers=rsconfig.fft_threads)

    def voxel_size(self) -> float:
        """Refer to `voxel_size`"""
        return voxel_size(self)

    def approx_equal(self, other: MillerGrid, rtol: float | None = None,
                     atol: float | None = None) -> bool:
        """Checks if the values of two grids are equal within tolerance.

        Tolerances default to `rsconfig.approx_rtol` and `rsconfig.approx_atol`.

        Raises
        ------
        ConsistencyError
            Raised if the grids differ in basis, shape or bounds.
        """
        self._check_compatible(other)
        if rtol is None:
            rtol = rsconfig.approx_rtol
        if atol is None:
            atol = rsconfig.approx_atol
        return bool(np.allclose(self._data, other._data, rtol=rtol, atol=atol))

    def _check_compatible(self, other: MillerGrid):
        if not isinstance(other, MillerGrid):
            raise TypeError(type_mismatch_msg('other', other, MillerGrid))
        if self._basis != other._basis:
            raise ConsistencyError(obj_mismatch_msg(
                'self.basis', self._basis, 'other.basis', other._basis
            ))
        if self.shape != other.shape:
            raise ConsistencyError(shape_mismatch_msg(
                'self', self.shape, 'other', other.shape
            ))
        if self._bounds != other._bounds:
            raise ConsistencyError(obj_mismatch_msg(
                'self.bounds', self._bounds, 'other.bounds', other._bounds
            ))

    def _new(self, data: NDArray) -> MillerGrid:
        return MillerGrid(self._basis, data, self._bounds, self._index_mode,
                          copy=False)

    def __eq__(self, other) -> bool:
        if not isinstance(other, MillerGrid):
            return NotImplemented
        return (self._basis == other._basis
                and self._bounds == other._bounds
                and np.array_equal(self._data, other._data))

    def __ne__(self, other) -> bool:
        eq = self.__eq__(other)
        if eq is NotImplemented:
            return eq
        return not eq

    __hash__ = None

    def __array_ufunc__(self, ufunc, method, *inputs, **kwargs):
        if method != '__call__' or ufunc.signature is not None:
            raise NotImplementedError(
                "'MillerGrid' instances only support the '__call__' method of "
                "scalar NumPy ufuncs. Operate on the 'data' property for "
                "anything else."
            )

        ufunc_inp = []
        for inp in inputs:
            if isinstance(inp, MillerGrid):
                self._check_compatible(inp)
                ufunc_inp.append(inp._data)
            elif isinstance(inp, (Number, np.ndarray, np.generic)):
                ufunc_inp.append(inp)
            else:
                return NotImplemented

        outputs = kwargs.get('out', ())
        if outputs:
            ufunc_out = []
            for out in outputs:
                if isinstance(out, MillerGrid):
                    self._check_compatible(out)
                    ufunc_out.append(out._data)
                elif isinstance(out, np.ndarray):
                    ufunc_out.append(out)
                else:
                    return NotImplemented
            kwargs['out'] = tuple(ufunc_out)

        result = getattr(ufunc, method)(*ufunc_inp, **kwargs)
        if outputs:
            return outputs[0] if len(outputs) == 1 else outputs
        if isinstance(result, tuple):
            return tuple(self._new(out) if out.shape == self.shape else out
                         for out in result)
        if result.shape == self.shape:
            return self._new(result)
        return result

    def __repr__(self) -> str:
        return (f"MillerGrid(basis={self._basis!r}, shape={self.shape}, "
                f"bounds={self._bounds}, dtype={self.dtype})")


def voxel_size(grid: MillerGrid) -> float:
    """Volume of the real-space element of one sample of the inverse
    transform of `grid`: the volume of the dual basis divided by the number
    of elements. Zero for an unspecified basis."""
    if not isinstance(grid, MillerGrid):
        raise TypeError(type_mismatch_msg('grid', grid, MillerGrid))
    return grid.basis.dual().volume() / grid.size
