"""Units and Constants used across recispace.

Values of Physical Constants taken from NIST (2018):
https://physics.nist.gov/cuu/Constants/index.html

Internally, recispace does not assume any unit system. Lattices, cutoffs
and energies are taken as given by the caller; the unit factors below
are provided for callers that work in Hartree Atomic Units. Any physical
values imported from here that do not have unit suffix (``_SI``,
``_RYD``, ``_HART``, etc.) are assumed to be in Hartree Units.

None of these values are used as implicit defaults by the library. In
particular, the energy cutoff scale factor required by
`recispace.lattice.max_miller_index` must always be passed explicitly.
"""

from numpy import pi, sqrt

EPS = 1E-5

PI = pi  #: Pi
SQRT_PI = sqrt(pi)  #: Square root of Pi
TPI = 2 * PI
FPI = 4 * PI
TPIJ = TPI * 1j

# Constants from NIST
ELECTRON_SI = 1.602176634e-19     #: Charge of electron in C
BOHR_SI = 5.29177210903e-11       #: Bohr Radius in m
HARTREE_SI = 4.3597447222071e-18  #: Hartree Energy in J

# Units of Energy: Electronvolt, Hartree and Rydberg
ELECTRONVOLT_SI = ELECTRON_SI     #: Electronvolt in J
RYDBERG_SI = HARTREE_SI / 2       #: Rydberg in J
ELECTRONVOLT_HART = ELECTRONVOLT_SI / HARTREE_SI  #: Electronvolt in Hartree Atomic Units
RYDBERG_HART = 1. / 2             #: Rydberg in Hartree Atomic Units

# Units of Length: Bohr and Angstrom
ANGSTROM_SI = 1e-10               #: Angstrom in m
ANGSTROM_BOHR = ANGSTROM_SI / BOHR_SI    #: Angstrom in Bohr

# Hartree Atomic Units
BOHR = 1.
ANGSTROM = ANGSTROM_BOHR
ELECTRONVOLT = ELECTRONVOLT_HART
HARTREE = 1.
RYDBERG = RYDBERG_HART

# Scale factor 2m/hbar^2 relating a kinetic energy cutoff to |G|^2,
# i.e. |G|^2 <= c * ecut.
TWO_M_HBAR2_HART = 2.             #: Hartree atomic units (bohr^-2 Ha^-1)
TWO_M_HBAR2_VASP = 0.262465831    #: Value hardcoded in VASP (angstrom^-2 eV^-1)
