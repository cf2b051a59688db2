"""quantmap package root."""

from quantmap.exceptions import (
    BucketRangeError,
    NeverRaise,
    NeverThrown,
    QuantMapError,
    UnknownItemError,
)
from quantmap.invariants import never

__all__ = [
    "__version__",
    "BucketRangeError",
    "NeverRaise",
    "NeverThrown",
    "QuantMapError",
    "UnknownItemError",
    "never",
]

__version__ = "0.1.0"
