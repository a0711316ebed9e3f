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
ODEProblem - Immutable Initial Value Problem Description

Translates a mutable ContinuousDS into the problem an ODE engine
consumes: a snapshot of the initial state, the vector field in the
calling conventions the engines expect, and the interval [0, T].

Calling conventions provided:
- ``f(t, u) -> du``: out-of-place, used by scipy.integrate
- ``f_inplace(du, u, t)``: in-place, used by the Julia bridge
- ``jac(t, u) -> J``: only when the system has a Jacobian
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np

from contds.types.core import ScalarLike, StateVector
from contds.types.trajectories import TimeSpan

if TYPE_CHECKING:
    from contds.systems.continuous_ds import ContinuousDS


@dataclass(frozen=True, eq=False)
class ODEProblem:
    """
    Initial value problem du/dt = f(u), u(0) = u0, on tspan = (0, T).

    Attributes
    ----------
    u0 : StateVector
        Read-only copy of the system state at build time
    f : Callable[[float, np.ndarray], np.ndarray]
        Out-of-place vector field wrapper
    f_inplace : Callable[[np.ndarray, np.ndarray, float], None]
        In-place vector field wrapper
    tspan : TimeSpan
        (0, T)
    jac : Optional[Callable[[float, np.ndarray], np.ndarray]]
        Jacobian wrapper, None when the system has no Jacobian
    name : str
        Name of the originating system
    """

    u0: StateVector
    f: Callable[[float, np.ndarray], np.ndarray]
    f_inplace: Callable[[np.ndarray, np.ndarray, float], None]
    tspan: TimeSpan
    jac: Optional[Callable[[float, np.ndarray], np.ndarray]] = None
    name: str = ""
    dimension: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "dimension", self.u0.shape[0])

    @property
    def t0(self) -> float:
        return self.tspan[0]

    @property
    def tf(self) -> float:
        return self.tspan[1]

    @property
    def has_jacobian(self) -> bool:
        return self.jac is not None

    @classmethod
    def from_system(cls, ds: "ContinuousDS", T: ScalarLike) -> "ODEProblem":
        """
        Build the problem for ds on [0, T].

        The state is copied, so evolving the problem never touches ds.
        T is not validated here.
        """
        eom = ds.eom
        u0 = np.array(ds.state, copy=True)
        u0.setflags(write=False)

        def f(t, u):
            du = np.empty(np.shape(u), dtype=u0.dtype)
            eom(du, u)
            return du

        def f_inplace(du, u, t):
            eom(du, u)

        jac = None
        if ds.jacobian is not None:
            jacobian = ds.jacobian

            def jac(t, u):
                return np.asarray(jacobian(u))

        return cls(
            u0=u0,
            f=f,
            f_inplace=f_inplace,
            tspan=(0.0, T),
            jac=jac,
            name=ds.name,
        )


def build_problem(ds: "ContinuousDS", T: ScalarLike) -> ODEProblem:
    """
    Return the ODEProblem for ds on [0, T] (t0 is zero).

    Examples
    --------
    >>> prob = build_problem(ds, 10.0)
    >>> prob.tspan
    (0.0, 10.0)
    >>> prob.u0 is ds.state
    False
    """
    return ODEProblem.from_system(ds, T)
