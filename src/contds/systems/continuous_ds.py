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
ContinuousDS - State Container for Continuous-Time Dynamical Systems

Holds the current phase-space point of an autonomous ODE

    du/dt = f(u)

together with the in-place vector field ``eom(du, u)``, an optional
Jacobian ``jacobian(u) -> J`` and a display name.

The state is the only mutable part of the object. Its length defines the
system dimension and is fixed at construction; ``evolve_in_place`` is the
one operation in contds that overwrites it.

Examples
--------
>>> def decay(du, u):
...     du[0] = -u[0]
>>>
>>> ds = ContinuousDS([1.0], decay, name="decay")
>>> ds.dimension
1
>>> ds.evolve(1.0)
array([0.36787944])
>>> ds.state      # unchanged
array([1.])
"""

from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Union

import numpy as np

from contds.errors import InvalidArgumentError
from contds.types.core import ArrayLike, JacobianFunction, ScalarLike, StateVector, VectorField

if TYPE_CHECKING:
    from contds.systems.numerical_integration.ode_problem import ODEProblem
    from contds.systems.numerical_integration.solver_config import SolverConfig
    from contds.types.trajectories import Trajectory


class ContinuousDS:
    """
    Continuous dynamical system with dimension D = len(state).

    Parameters
    ----------
    state : ArrayLike
        Initial state vector (D,). Copied; the system owns its state.
    eom : VectorField
        Equations of motion in the in-place format ``eom(du, u)``, where
        ``du`` is a pre-allocated buffer of shape (D,) to be filled.
    jacobian : Optional[JacobianFunction]
        ``jacobian(u) -> J`` with J of shape (D, D). Only implicit solvers
        use it, so it can be left out.
    name : str
        Label for display purposes only.

    Raises
    ------
    InvalidArgumentError
        If the state is not a non-empty 1-D vector
    TypeError
        If eom (or a given jacobian) is not callable
    """

    def __init__(
        self,
        state: ArrayLike,
        eom: VectorField,
        jacobian: Optional[JacobianFunction] = None,
        name: str = "",
    ):
        if not callable(eom):
            raise TypeError(f"eom must be callable, got {type(eom).__name__}")
        if jacobian is not None and not callable(jacobian):
            raise TypeError(f"jacobian must be callable or None, got {type(jacobian).__name__}")

        self._state = self._as_state(state)
        self.eom = eom
        self.jacobian = jacobian
        self.name = name

    @staticmethod
    def _as_state(state: ArrayLike) -> StateVector:
        source_dtype = np.asarray(state).dtype
        if source_dtype.kind not in "biuf":
            raise InvalidArgumentError(
                f"State must hold real numbers, got dtype {source_dtype}"
            )
        arr = np.array(state, dtype=np.result_type(source_dtype, np.float64))
        if arr.ndim != 1 or arr.size == 0:
            raise InvalidArgumentError(
                f"State must be a non-empty 1-D vector, got shape {arr.shape}"
            )
        return arr

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def state(self) -> StateVector:
        """Current state vector (D,)."""
        return self._state

    @state.setter
    def state(self, value: ArrayLike):
        new_state = self._as_state(value)
        if new_state.shape != self._state.shape:
            raise InvalidArgumentError(
                f"State dimension is fixed at {self.dimension}, "
                f"got a vector of length {new_state.shape[0]}"
            )
        self._state = new_state

    @property
    def dimension(self) -> int:
        return self._state.shape[0]

    @property
    def dtype(self) -> np.dtype:
        return self._state.dtype

    @property
    def has_jacobian(self) -> bool:
        return self.jacobian is not None

    # ========================================================================
    # Evolution (delegates to contds.systems.evolution)
    # ========================================================================

    def problem(self, T: ScalarLike) -> "ODEProblem":
        """Initial value problem on [0, T] starting from the current state."""
        from contds.systems.numerical_integration.ode_problem import build_problem

        return build_problem(self, T)

    def evolve(
        self,
        T: ScalarLike = 1.0,
        config: Optional[Union[Mapping[str, Any], "SolverConfig"]] = None,
    ) -> StateVector:
        """State after time T. The system itself is left untouched."""
        from contds.systems.evolution import evolve

        return evolve(self, T, config)

    def evolve_in_place(
        self,
        T: ScalarLike = 1.0,
        config: Optional[Union[Mapping[str, Any], "SolverConfig"]] = None,
    ) -> StateVector:
        """Advance the system by T, overwrite its state and return it."""
        from contds.systems.evolution import evolve_in_place

        return evolve_in_place(self, T, config)

    def trajectory(
        self,
        T: ScalarLike,
        dt: ScalarLike = 0.05,
        config: Optional[Union[Mapping[str, Any], "SolverConfig"]] = None,
    ) -> "Trajectory":
        """States sampled every dt on [0, T]."""
        from contds.systems.evolution import compute_trajectory

        return compute_trajectory(self, T, dt=dt, config=config)

    # ========================================================================
    # Display
    # ========================================================================

    def _eom_name(self) -> str:
        return getattr(self.eom, "__name__", type(self.eom).__name__)

    def __repr__(self) -> str:
        return (
            f"ContinuousDS(state={self._state!r}, eom={self._eom_name()}, "
            f"jacobian={'yes' if self.has_jacobian else 'no'}, name={self.name!r})"
        )

    def __str__(self) -> str:
        header = self.name or f"{self.dimension}-dimensional continuous dynamical system"
        jac = getattr(self.jacobian, "__name__", "none") if self.has_jacobian else "none"
        return f"{header}:\nstate: {self._state}\ne.o.m.: {self._eom_name()}\njacobian: {jac}"

    def get_info(self) -> Dict[str, Any]:
        """Summary of the system for logging and debugging."""
        return {
            "name": self.name,
            "dimension": self.dimension,
            "dtype": str(self.dtype),
            "eom": self._eom_name(),
            "has_jacobian": self.has_jacobian,
        }
