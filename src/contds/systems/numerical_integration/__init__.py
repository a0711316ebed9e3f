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
Numerical integration: problem building, solver configuration and engines.
"""

from contds.systems.numerical_integration.integrator_factory import (
    create_integrator,
    get_solution,
    is_julia_method,
    solve,
)
from contds.systems.numerical_integration.ode_problem import ODEProblem, build_problem
from contds.systems.numerical_integration.scipy_integrator import ScipyODEIntegrator
from contds.systems.numerical_integration.solver_config import (
    DEFAULT_ABSTOL,
    DEFAULT_RELTOL,
    DEFAULT_SOLVER,
    SolverConfig,
    resolve_solver,
)

__all__ = [
    "DEFAULT_ABSTOL",
    "DEFAULT_RELTOL",
    "DEFAULT_SOLVER",
    "ODEProblem",
    "ScipyODEIntegrator",
    "SolverConfig",
    "build_problem",
    "create_integrator",
    "get_solution",
    "is_julia_method",
    "resolve_solver",
    "solve",
]
