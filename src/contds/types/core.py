# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


"""
Core Types

Semantic aliases for the arrays and callables that flow through contds.
They carry no runtime behaviour; they document intent in signatures.

Usage
-----
>>> from contds.types.core import StateVector, VectorField
>>>
>>> def decay(du: StateVector, u: StateVector) -> None:
...     du[:] = -u
>>>
>>> f: VectorField = decay
"""

from typing import Callable, Union

import numpy as np

# ============================================================================
# Basic Array Types
# ============================================================================

ArrayLike = Union[np.ndarray, list, tuple]
"""
Anything ``numpy.asarray`` turns into a float array.

Results handed back by contds are always ``numpy.ndarray``.
"""

ScalarLike = Union[float, int, np.floating, np.integer]
"""
Real scalar, exact or floating point.

Times given as ints (or ``fractions.Fraction``) are coerced to float
before they reach an engine.
"""

StateVector = np.ndarray
"""
Phase-space point, shape (D,).

D is the system dimension and never changes for a given system.
"""

JacobianMatrix = np.ndarray
"""
Matrix of partial derivatives d(du_i)/d(u_j), shape (D, D).
"""

# ============================================================================
# Callables
# ============================================================================

VectorField = Callable[[np.ndarray, np.ndarray], None]
"""
In-place equations of motion: ``eom(du, u) -> None``.

The first argument is a pre-sized output buffer that the function fills
with the time derivative at ``u``. The return value is ignored.

Examples
--------
>>> def lorenz(du, u, sigma=10.0, rho=28.0, beta=8 / 3):
...     du[0] = sigma * (u[1] - u[0])
...     du[1] = u[0] * (rho - u[2]) - u[1]
...     du[2] = u[0] * u[1] - beta * u[2]
"""

JacobianFunction = Callable[[np.ndarray], np.ndarray]
"""
Jacobian of the vector field: ``jacobian(u) -> J`` with J of shape (D, D).
"""
