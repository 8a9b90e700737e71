"""Exceptions and warnings raised by recispace.

Every exception derives from a builtin exception type as well, so code
catching ``ValueError``/``IndexError``/``ArithmeticError`` keeps working.
"""
__all__ = ['RecispaceError', 'ConstructionError', 'SingularTransformError',
           'ConsistencyError', 'NumericAssumptionError', 'MillerIndexError',
           'LatticeWarning']


class RecispaceError(Exception):
    """Base class of all exceptions raised by recispace"""


class ConstructionError(RecispaceError, ValueError):
    """Raised when an object cannot be built from the given input, e.g.
    a singular lattice basis or k-points and weights of different lengths.
    No partially-built object is ever returned."""


class SingularTransformError(ConstructionError):
    """Raised when a supercell transformation matrix is singular."""


class ConsistencyError(RecispaceError, ValueError):
    """Raised when two or more objects that must agree (basis, shape,
    number of k-points, ...) do not."""


class NumericAssumptionError(RecispaceError, ArithmeticError):
    """Raised when input data violates an assumption of a numerical
    estimate, e.g. occupations that are neither 1 nor 2 at most."""


class MillerIndexError(RecispaceError, IndexError):
    """Raised when a Miller index falls outside the bounds of a dense grid
    and the grid is configured with ``index_mode='strict'``."""


class LatticeWarning(UserWarning):
    """Emitted for valid but unusual lattice input, e.g. a left-handed set
    of basis vectors."""
