"""Implements recispace's containers for data addressed by Miller index,
such as the planewave coefficients of Bloch wavefunctions.

The containers come in two representations of the same logical data:

1. `recispace.containers.MillerGrid`: dense, array-backed storage over a
   fixed box of Miller indices, laid out in the discrete Fourier transform
   order of `scipy.fft`.
2. `recispace.containers.SparseMillerMap`: map-backed storage over an
   unbounded domain of Miller indices, where unset indices read as zero.

Both subclass `recispace.containers.MillerDataType` and share its
``get``/``set``/iteration contract. Conversions between them produce new,
independent storage:

* `recispace.containers.densify`: sparse to dense, over the smallest box
  containing all stored indices
* `recispace.containers.sparsify`: dense to sparse, dropping zeros

For export to periodic grid file formats, `recispace.containers.wrap_periodic`
appends the boundary point to each axis.
"""
from .base import *
from .grid import *
from .sparse import *

__all__ = ['MillerDataType', 'MillerGrid', 'SparseMillerMap',
           'densify', 'sparsify', 'centered_bounds', 'wrap_periodic',
           'voxel_size']
