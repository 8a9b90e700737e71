from __future__ import annotations
from typing import TYPE_CHECKING, NamedTuple
if TYPE_CHECKING:
    from typing import Any
__all__ = ['WavefunctionRecord', 'ReciprocalWavefunction']

import numpy as np

from recispace.lattice import LatticeBasis, ReciLattice, to_reciprocal
from recispace.kpts import KPointList
from recispace.bands import BandAtKPoint, BandStructure, estimate_fermi
from recispace.containers import MillerGrid
from recispace.errors import ConstructionError, ConsistencyError
from recispace.logger import rslogger
from recispace.msg_format import (type_mismatch_msg, shape_mismatch_msg,
                                  value_mismatch_msg)
from recispace.config import NDArray


class WavefunctionRecord(NamedTuple):
    """Planewave coefficients of a selection of states with their energies
    and occupancies"""
    coeffs: Any
    energy: Any
    occupancy: Any


def _as_grid_array(waves) -> NDArray:
    """Copies `waves`, a 3D object array or 3-level nested sequence of
    `MillerGrid` instances, into a new object array."""
    if isinstance(waves, np.ndarray):
        if waves.dtype != object:
            raise TypeError(type_mismatch_msg(
                'waves', waves, "an object array of 'MillerGrid' instances"
            ))
        shape = waves.shape
    else:
        # np.array() would try to iterate the grids themselves
        shape, level = [], waves
        while isinstance(level, (list, tuple)):
            shape.append(len(level))
            if len(level) == 0:
                break
            level = level[0]
        shape = tuple(shape)
    if len(shape) != 3:
        raise ConstructionError(value_mismatch_msg('waves.ndim', len(shape), 3))

    arr = np.empty(shape, dtype=object)
    for idx in np.ndindex(*shape):
        try:
            elem = waves[idx] if isinstance(waves, np.ndarray) \
                else waves[idx[0]][idx[1]][idx[2]]
        except (IndexError, TypeError) as e:
            raise ConstructionError(
                "'waves' must be a rectangular (spin, kpt, band) array."
            ) from e
        if not isinstance(elem, MillerGrid):
            raise TypeError(type_mismatch_msg(f'waves{list(idx)}', elem, MillerGrid))
        arr[idx] = elem
    if not isinstance(waves, np.ndarray):
        # Ragged nesting longer than the first entry along any axis
        for idx in np.ndindex(*shape[:2]):
            if len(waves[idx[0]]) != shape[1] or len(waves[idx[0]][idx[1]]) != shape[2]:
                raise ConstructionError(
                    "'waves' must be a rectangular (spin, kpt, band) array."
                )
    return arr


class ReciprocalWavefunction:
    """Planewave coefficients, energies and occupancies of Bloch states over
    spins, k-points and bands.

    Parameters
    ----------
    lattice : LatticeBasis
        Lattice on which the k-points are defined. Real-space lattices are
        converted to reciprocal space.
    kpts : KPointList
        k-points of the wavefunction.
    waves : array-like of MillerGrid
        (``(numspin, numkpts, numbnd)``) Planewave coefficients of each
        state, as grids of complex values.
    energies : array-like, optional
        (``(numspin, numkpts, numbnd)``) Energies of the states. Defaults to
        zeros.
    occupancies : array-like, optional
        (``(numspin, numkpts, numbnd)``) Occupancies of the states. Defaults
        to zeros.

    Notes
    -----
    The number of bands is assumed to be the same for every spin and k-point.
    All arrays are copied and made read-only.
    """

    def __init__(self, lattice: LatticeBasis, kpts: KPointList, waves,
                 energies=None, occupancies=None):
        if not isinstance(lattice, LatticeBasis):
            raise TypeError(type_mismatch_msg('lattice', lattice, LatticeBasis))
        self._lattice: ReciLattice = to_reciprocal(lattice)

        if not isinstance(kpts, KPointList):
            raise TypeError(type_mismatch_msg('kpts', kpts, KPointList))
        if kpts.dim != self._lattice.dim:
            raise ConsistencyError(value_mismatch_msg(
                'kpts.dim', kpts.dim, f"lattice.dim = {self._lattice.dim}"
            ))
        self._kpts: KPointList = kpts

        waves = _as_grid_array(waves)
        if waves.shape[1] != len(kpts):
            raise ConsistencyError(
                f"number of k-points ({len(kpts)}) is inconsistent with "
                f"the number of wavefunction entries ({waves.shape[1]})."
            )
        for grid in waves.flat:
            if grid.dim != self._lattice.dim:
                raise ConsistencyError(value_mismatch_msg(
                    'grid.dim', grid.dim, f"lattice.dim = {self._lattice.dim}"
                ))

        l_arr = []
        for name, arr in (('energies', energies), ('occupancies', occupancies)):
            if arr is None:
                arr = np.zeros(waves.shape, dtype='f8')
            else:
                arr = np.array(arr, dtype='f8')
            if arr.shape != waves.shape:
                raise ConsistencyError(shape_mismatch_msg(
                    name, arr.shape, 'waves', waves.shape
                ))
            arr.flags.writeable = False
            l_arr.append(arr)

        waves.flags.writeable = False
        self._waves: NDArray = waves
        self._energies, self._occupancies = l_arr

    @property
    def lattice(self) -> ReciLattice:
        """Reciprocal lattice of the wavefunction"""
        return self._lattice

    @property
    def kpts(self) -> KPointList:
        return self._kpts

    @property
    def waves(self) -> NDArray:
        """(``(numspin, numkpts, numbnd)``) Read-only object array of grids"""
        return self._waves

    @property
    def energies(self) -> NDArray:
        return self._energies

    @property
    def occupancies(self) -> NDArray:
        return self._occupancies

    @property
    def shape(self) -> tuple[int, int, int]:
        return self._waves.shape

    @property
    def numspin(self) -> int:
        return self._waves.shape[0]

    @property
    def numkpts(self) -> int:
        return self._waves.shape[1]

    @property
    def numbnd(self) -> int:
        return self._waves.shape[2]

    def __len__(self) -> int:
        return self._waves.size

    def __getitem__(self, item) -> WavefunctionRecord:
        energy, occupancy = self._energies[item], self._occupancies[item]
        if np.ndim(energy) == 0:
            energy, occupancy = float(energy), float(occupancy)
        return WavefunctionRecord(self._waves[item], energy, occupancy)

    @rslogger.time('ReciprocalWavefunction.bounds')
    def bounds(self) -> tuple[range, ...]:
        """Smallest box of Miller indices containing the bounds of every
        grid, as one range per axis.

        Raises
        ------
        ConstructionError
            Raised if the wavefunction holds no grids.
        """
        grids = iter(self._waves.flat)
        try:
            l_bounds = next(grids).bounds
        except StopIteration:
            raise ConstructionError(
                "cannot compute the bounds of a wavefunction without grids."
            ) from None
        for grid in grids:
            l_bounds = [range(min(acc.start, rng.start), max(acc.stop, rng.stop))
                        for acc, rng in zip(l_bounds, grid.bounds)]
        return tuple(l_bounds)

    def densified(self, spin: int, kpt: int, band: int) -> MillerGrid:
        """Returns the grid of a single state embedded into the box
        given by `bounds`, so that all states share one shape for export."""
        return self._waves[spin, kpt, band].expand(self.bounds())

    def band_structure(self, spin: int = 0) -> BandStructure:
        """Returns the energies and occupancies of the given spin channel as
        a `BandStructure`"""
        bands = [BandAtKPoint(en, occ) for en, occ
                 in zip(self._energies[spin], self._occupancies[spin])]
        return BandStructure(self._kpts, bands)

    def fermi(self) -> float:
        """Estimates the Fermi energy from the energies and occupancies of
        all states. Refer to `recispace.bands.estimate_fermi`."""
        return estimate_fermi(self._energies, self._occupancies)

    def __repr__(self) -> str:
        return (f"ReciprocalWavefunction(lattice={self._lattice!r}, "
                f"shape={self.shape})")
