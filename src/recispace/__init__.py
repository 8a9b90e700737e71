"""recispace: crystal lattices in real and reciprocal space, and data
addressed by Miller index.

Submodules
----------
lattice
    Lattice bases in real/reciprocal space, duality and cell geometry.
containers
    Dense and sparse containers over Miller indices.
kpts
    k-point lists and meshes.
bands
    Band energies/occupancies and the Fermi energy estimate.
wavefun
    Planewave wavefunctions over spins, k-points and bands.
"""
from .config import rsconfig
from .logger import rslogger
from . import constants
from .errors import *
from .lattice import (LatticeBasis, RealLattice, ReciLattice,
                      to_reciprocal, to_real, dual_lattice,
                      lattice_2d, lattice_3d, triangularize, max_miller_index)
from .containers import (MillerDataType, MillerGrid, SparseMillerMap,
                         densify, sparsify, wrap_periodic, voxel_size)
from .kpts import KPoint, KPointList, KPointGrid, gen_monkhorst_pack_grid
from .bands import BandAtKPoint, BandStructure, estimate_fermi
from .wavefun import WavefunctionRecord, ReciprocalWavefunction

__version__ = '0.1.0'

__all__ = ['rsconfig', 'rslogger', 'constants',
           'RecispaceError', 'ConstructionError', 'SingularTransformError',
           'ConsistencyError', 'NumericAssumptionError', 'MillerIndexError',
           'LatticeWarning',
           'LatticeBasis', 'RealLattice', 'ReciLattice',
           'to_reciprocal', 'to_real', 'dual_lattice',
           'lattice_2d', 'lattice_3d', 'triangularize', 'max_miller_index',
           'MillerDataType', 'MillerGrid', 'SparseMillerMap',
           'densify', 'sparsify', 'wrap_periodic', 'voxel_size',
           'KPoint', 'KPointList', 'KPointGrid', 'gen_monkhorst_pack_grid',
           'BandAtKPoint', 'BandStructure', 'estimate_fermi',
           'WavefunctionRecord', 'ReciprocalWavefunction',
           ]
