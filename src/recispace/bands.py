from __future__ import annotations
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from typing import Iterable, Sequence
__all__ = ['BandAtKPoint', 'BandStructure', 'estimate_fermi']

import numpy as np

from recispace.kpts import KPoint, KPointList
from recispace.errors import (ConstructionError, ConsistencyError,
                              NumericAssumptionError)
from recispace.logger import rslogger
from recispace.msg_format import (type_mismatch_msg, type_mismatch_seq_msg,
                                  shape_mismatch_msg)
from recispace.config import NDArray


@rslogger.time('estimate_fermi')
def estimate_fermi(energies, occupancies) -> float:
    """Estimates the Fermi energy from the energies and occupancies of a set
    of states.

    The states are sorted by energy and the last one whose occupancy
    exceeds half the maximum occupancy ``max_occ`` is located. If the next
    state is occupied by exactly ``max_occ / 2``, its energy is returned.
    Otherwise, the energies of the two states are interpolated, each
    weighted by the reciprocal of the distance of its occupancy from
    ``max_occ / 2``.

    This assumes a single crossing of the half-occupancy threshold; it is
    not an integral over the density of states.

    Parameters
    ----------
    energies : array-like
        Energies of the states. Any shape.
    occupancies : array-like
        Occupancies of the states, with the same shape as `energies`.
        The maximum occupancy, rounded to the nearest integer, must be
        1 (spin-polarized) or 2 (non-spin-polarized).
        Here "spin-polarized" means one electron per state, i.e. states
        resolved by spin; some texts attach the labels the other way round.

    Returns
    -------
    float
        Estimate of the Fermi energy.

    Raises
    ------
    NumericAssumptionError
        Raised if the maximum occupancy is neither 1 nor 2, or if no pair
        of consecutive states crosses the half-occupancy threshold.
    """
    energies = np.asarray(energies, dtype='f8')
    occupancies = np.asarray(occupancies, dtype='f8')
    if energies.shape != occupancies.shape:
        raise ConsistencyError(shape_mismatch_msg(
            'energies', energies.shape, 'occupancies', occupancies.shape
        ))
    if energies.size == 0:
        raise NumericAssumptionError("cannot estimate the Fermi energy "
                                     "without any states.")
    energies, occupancies = energies.ravel(), occupancies.ravel()

    max_occ = int(np.rint(np.amax(occupancies)))
    if max_occ not in (1, 2):
        raise NumericAssumptionError(
            f"maximum occupancy must round to 1 or 2. got {max_occ}"
        )
    half_occ = max_occ / 2

    order = np.argsort(energies, kind='stable')
    energies, occupancies = energies[order], occupancies[order]

    idx_above = np.nonzero(occupancies > half_occ)[0]
    if len(idx_above) == 0:
        raise NumericAssumptionError(
            f"no state has an occupancy above {half_occ}."
        )
    ind = int(idx_above[-1])
    if ind + 1 == len(energies):
        raise NumericAssumptionError(
            f"the highest state has an occupancy above {half_occ}; "
            "no threshold crossing found."
        )
    rslogger.debug("Fermi level crossing between sorted states %d and %d",
                   ind, ind + 1)

    if occupancies[ind + 1] == half_occ:
        return float(energies[ind + 1])
    wt = 1 / np.abs(occupancies[ind:ind + 2] - half_occ)
    wt /= np.sum(wt)
    return float(np.sum(wt * energies[ind:ind + 2]))


class BandAtKPoint:
    """Energies and occupancies of the bands at a single k-point.

    Parameters
    ----------
    energies : array-like
        (``(numbnd, )``) Band energies.
    occupancies : array-like, optional
        (``(numbnd, )``) Band occupancies. Defaults to zeros.
    """

    def __init__(self, energies, occupancies=None):
        energies = np.array(energies, dtype='f8')
        if energies.ndim != 1:
            raise ConstructionError(
                f"'energies' must be a 1D array. got shape {energies.shape}"
            )
        if occupancies is None:
            occupancies = np.zeros_like(energies)
        occupancies = np.array(occupancies, dtype='f8')
        if occupancies.shape != energies.shape:
            raise ConstructionError(shape_mismatch_msg(
                'energies', energies.shape, 'occupancies', occupancies.shape
            ))
        energies.flags.writeable = False
        occupancies.flags.writeable = False
        self._energies: NDArray = energies
        self._occupancies: NDArray = occupancies

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[float, float]]) -> BandAtKPoint:
        """Creates an instance from a sequence of ``(energy, occupancy)``
        pairs"""
        pairs = list(pairs)
        if not all(len(pair) == 2 for pair in pairs):
            raise ConstructionError(
                f"'pairs' must contain (energy, occupancy) pairs. got {pairs}"
            )
        return cls([pair[0] for pair in pairs], [pair[1] for pair in pairs])

    @property
    def energies(self) -> NDArray:
        return self._energies

    @property
    def occupancies(self) -> NDArray:
        return self._occupancies

    @property
    def numbnd(self) -> int:
        """Number of bands"""
        return len(self._energies)

    def __len__(self) -> int:
        return self.numbnd

    def __getitem__(self, item) -> tuple:
        energy, occ = self._energies[item], self._occupancies[item]
        if np.ndim(energy) == 0:
            return float(energy), float(occ)
        return energy, occ

    def __eq__(self, other) -> bool:
        if not isinstance(other, BandAtKPoint):
            return NotImplemented
        return (np.array_equal(self._energies, other._energies)
                and np.array_equal(self._occupancies, other._occupancies))

    __hash__ = None

    def __repr__(self) -> str:
        return (f"BandAtKPoint(energies={self._energies.tolist()}, "
                f"occupancies={self._occupancies.tolist()})")


class BandStructure:
    """Band energies and occupancies at every k-point of a `KPointList`.

    Parameters
    ----------
    kpts : KPointList
        k-points at which the band data is given.
    bands : Sequence[BandAtKPoint]
        Band data at each k-point. Every entry must have the same number of
        bands.
    """

    def __init__(self, kpts: KPointList, bands: Sequence[BandAtKPoint]):
        if not isinstance(kpts, KPointList):
            raise TypeError(type_mismatch_msg('kpts', kpts, KPointList))
        bands = tuple(bands)
        if not all(isinstance(band, BandAtKPoint) for band in bands):
            raise TypeError(type_mismatch_seq_msg('bands', bands, BandAtKPoint))
        if len(bands) != len(kpts):
            raise ConsistencyError(
                f"number of k-points ({len(kpts)}) and band datasets "
                f"({len(bands)}) do not match."
            )
        if len(set(band.numbnd for band in bands)) > 1:
            raise ConsistencyError(
                "number of bands is inconsistent across k-points: "
                f"{[band.numbnd for band in bands]}"
            )
        self.kpts: KPointList = kpts
        self.bands: tuple[BandAtKPoint, ...] = bands

    @property
    def numkpts(self) -> int:
        return len(self.kpts)

    @property
    def numbnd(self) -> int:
        return self.bands[0].numbnd

    def energies(self) -> NDArray:
        """(``(numkpts, numbnd)``) Array of band energies"""
        return np.stack([band.energies for band in self.bands])

    def occupancies(self) -> NDArray:
        """(``(numkpts, numbnd)``) Array of band occupancies"""
        return np.stack([band.occupancies for band in self.bands])

    def fermi(self) -> float:
        """Estimates the Fermi energy. Refer to `estimate_fermi`."""
        return estimate_fermi(self.energies(), self.occupancies())

    def __len__(self) -> int:
        return self.numkpts

    def __getitem__(self, item: int) -> tuple[KPoint, BandAtKPoint]:
        return self.kpts[item], self.bands[item]

    def __repr__(self) -> str:
        return (f"BandStructure(numkpts={self.numkpts}, "
                f"numbnd={self.numbnd})")
