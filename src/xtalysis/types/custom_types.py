"""Scalar type aliases accepted throughout the package.

Extended Summary
----------------
Public functions accept either Python numbers or zero-dimensional JAX
arrays for scalar arguments. These aliases keep the ``beartype`` checks
permissive about that choice while still rejecting strings or arrays of
the wrong rank.

Routine Listings
----------------
scalar_float : type alias
    Python float/int or JAX scalar array
scalar_int : type alias
    Python int or integer JAX scalar array
"""

from beartype.typing import Union
from jaxtyping import Array, Float, Int

scalar_float = Union[float, int, Float[Array, " "]]
scalar_int = Union[int, Int[Array, " "]]
