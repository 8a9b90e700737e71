from __future__ import annotations
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from typing import Any, Iterator
__all__ = ['MillerDataType']

import operator
from abc import ABC, abstractmethod

import numpy as np

from recispace.lattice import LatticeBasis
from recispace.errors import ConstructionError


class MillerDataType(ABC):
    """Abstract base class of containers addressed by Miller index.

    A Miller index is a tuple of ``dim`` signed integers labelling a vector of
    the lattice `basis`. Subclasses decide how values are stored; reading and
    writing goes through `get` and `set` (or ``obj[index]``), and iterating
    yields the indices with stored values, like a mapping.
    """

    @property
    @abstractmethod
    def basis(self) -> LatticeBasis:
        """Lattice basis the Miller indices refer to"""
        pass

    @property
    @abstractmethod
    def dtype(self) -> np.dtype:
        """Data type of the stored values"""
        pass

    @property
    def dim(self) -> int:
        """Number of components of a Miller index"""
        return self.basis.dim

    @property
    def zero(self) -> Any:
        """Additive identity of `dtype`"""
        return self.dtype.type(0)

    @abstractmethod
    def get(self, index: tuple[int, ...]) -> Any:
        """Returns the value stored at Miller index `index`"""
        pass

    @abstractmethod
    def set(self, index: tuple[int, ...], value: Any) -> None:
        """Stores `value` at Miller index `index`"""
        pass

    @abstractmethod
    def keys(self) -> Iterator[tuple[int, ...]]:
        """Iterates over the Miller indices holding a value"""
        pass

    @abstractmethod
    def __contains__(self, index) -> bool:
        pass

    @abstractmethod
    def abs(self) -> MillerDataType:
        """Returns a container holding the magnitude of each value"""
        pass

    @abstractmethod
    def abs2(self) -> MillerDataType:
        """Returns a container holding the magnitude squared of each value"""
        pass

    def values(self) -> Iterator[Any]:
        for index in self.keys():
            yield self.get(index)

    def items(self) -> Iterator[tuple[tuple[int, ...], Any]]:
        for index in self.keys():
            yield index, self.get(index)

    def __iter__(self):
        return iter(self.keys())

    def __getitem__(self, index) -> Any:
        return self.get(index)

    def __setitem__(self, index, value):
        self.set(index, value)

    def _sanitize_index(self, index) -> tuple[int, ...]:
        """Converts `index` to a tuple of ``dim`` Python integers. Scalars
        are accepted for 1D containers."""
        if self.dim == 1 and not isinstance(index, tuple):
            index = (index, )
        try:
            index = tuple(operator.index(i) for i in index)
        except TypeError as e:
            raise ConstructionError(
                f"Miller index must be a tuple of {self.dim} integers. "
                f"got {index}"
            ) from e
        if len(index) != self.dim:
            raise ConstructionError(
                f"Miller index must have {self.dim} components. got {index}"
            )
        return index
