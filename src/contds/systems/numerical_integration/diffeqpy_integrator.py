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
DiffEqPy Engine: Julia DifferentialEquations.jl via diffeqpy.

Gives access to Julia's ODE solvers (Tsit5, Vern9, Rodas5, ...) with the
same problem and option vocabulary as the scipy engine. Options are
passed to ``solve``/``init`` under their DifferentialEquations.jl names.

Requirements:
    Julia must be installed with DifferentialEquations.jl:
        julia> using Pkg
        julia> Pkg.add("DifferentialEquations")

    Python package:
        $ pip install diffeqpy

Notes
-----
Many implicit/Rosenbrock methods need a Jacobian. When the system has
one it is handed to Julia through ``ODEFunction(f; jac=...)``; otherwise
Julia tries automatic differentiation through the Python vector field,
which typically fails with

    "First call to automatic differentiation for the Jacobian"

Explicit methods (Tsit5, Vern6-9, DP5, DP8) and stabilized ones
(ROCK2, ROCK4) work without a Jacobian.
"""

import logging
import re
import time
from typing import Any, Dict, List, Mapping

import numpy as np

from contds.systems.numerical_integration.ode_problem import ODEProblem
from contds.systems.numerical_integration.solver_config import (
    SolverChoice,
    with_default_tolerances,
)
from contds.types.trajectories import ODESolution

logger = logging.getLogger(__name__)

_de = None


def get_de():
    """
    Return the diffeqpy ``de`` module, importing it on first use.

    Raises
    ------
    ImportError
        If diffeqpy is not installed
    """
    global _de
    if _de is None:
        try:
            from diffeqpy import de
        except ImportError as e:
            raise ImportError(
                "diffeqpy is required for Julia algorithms.\n\n"
                "Installation steps:\n"
                "1. Install Julia from https://julialang.org/downloads/\n"
                "2. Install DifferentialEquations.jl:\n"
                "   julia> using Pkg\n"
                "   julia> Pkg.add('DifferentialEquations')\n"
                "3. Install Python package:\n"
                "   pip install diffeqpy\n"
                "4. Run Julia setup from Python:\n"
                "   python -c 'from diffeqpy import install; install()'\n"
                f"Error: {e}"
            ) from e
        _de = de
    return _de


def get_algorithm(algorithm: SolverChoice, de=None):
    """
    Julia algorithm object for a name.

    Handles simple names ('Tsit5') and composite ones such as
    'AutoTsit5(Rosenbrock23())'. Non-string values are assumed to be
    algorithm objects already and returned as they are.

    Raises
    ------
    ValueError
        If the name cannot be resolved in DifferentialEquations.jl
    """
    if not isinstance(algorithm, str):
        return algorithm
    de = de if de is not None else get_de()

    if "(" not in algorithm:
        try:
            return getattr(de, algorithm)()
        except AttributeError:
            raise ValueError(
                f"Algorithm '{algorithm}' not found in DifferentialEquations.jl"
            )

    # Composite: rewrite every algorithm name as an attribute of de and evaluate
    def replace_algo(match):
        return f"de.{match.group(0)}"

    expr = re.sub(r"\b([A-Z][a-zA-Z0-9]*)\b", replace_algo, algorithm)
    try:
        return eval(expr, {"__builtins__": {}}, {"de": de})
    except Exception as e:
        raise ValueError(f"Failed to create algorithm '{algorithm}'. Check syntax. Error: {e}")


def _julia_options(options: Mapping[str, Any]) -> Dict[str, Any]:
    opts = with_default_tolerances(options)
    for key in ("saveat", "tstops"):
        value = opts.get(key)
        if value is not None and np.ndim(value) > 0:
            opts[key] = [float(v) for v in np.asarray(value).ravel()]
    if "maxiters" in opts:
        opts["maxiters"] = int(opts["maxiters"])
    return opts


def _julia_problem(problem: ODEProblem, de, fev_count: List[int]):
    dim = problem.dimension

    # Julia in-place signature: f!(du, u, p, t)
    def ode_func_inplace(du, u_val, p, t):
        x_np = np.asarray(u_val, dtype=np.float64)
        dx = np.empty(dim, dtype=np.float64)
        problem.f_inplace(dx, x_np, float(t))
        fev_count[0] += 1
        for i in range(dim):
            du[i] = dx[i]

    func = ode_func_inplace
    if problem.has_jacobian:

        def jac_inplace(J, u_val, p, t):
            jac = np.asarray(problem.jac(float(t), np.asarray(u_val, dtype=np.float64)))
            for i in range(dim):
                for j in range(dim):
                    J[i, j] = float(jac[i, j])

        func = de.ODEFunction(ode_func_inplace, jac=jac_inplace)

    u0 = np.array(problem.u0, dtype=np.float64)
    tspan = (float(problem.t0), float(problem.tf))
    return de.ODEProblem(func, u0, tspan)


def _retcode(sol) -> str:
    # diffeqpy renders the return code as 'Success' or 'ReturnCode.Success'
    return str(sol.retcode).split(".")[-1]


def solve_julia(problem: ODEProblem, algorithm: SolverChoice = "Tsit5", **options) -> ODESolution:
    """
    Solve problem with DifferentialEquations.jl.

    Parameters
    ----------
    problem : ODEProblem
        Problem to solve
    algorithm : str or Julia algorithm
        e.g. 'Tsit5', 'Vern9', 'AutoTsit5(Rosenbrock23())'
    **options
        Forwarded to Julia's ``solve`` (abstol, reltol, saveat, tstops,
        save_everystep, save_start, dense, dtmax, maxiters, ...)

    Returns
    -------
    ODESolution
        success is True only for retcode 'Success'

    Examples
    --------
    >>> sol = solve_julia(prob, "Vern9", reltol=1e-12, abstol=1e-14)
    >>> sol["retcode"]
    'Success'
    """
    start_time = time.time()
    de = get_de()
    fev_count = [0]

    jl_prob = _julia_problem(problem, de, fev_count)
    alg = get_algorithm(algorithm, de)
    opts = _julia_options(options)
    logger.debug("Julia solve with %s, options %s", algorithm, sorted(opts))

    sol = de.solve(jl_prob, alg, **opts)

    retcode = _retcode(sol)
    u_out = np.array([np.array(x_i, dtype=np.float64) for x_i in sol.u])
    return {
        "t": np.array(sol.t, dtype=np.float64),
        "u": u_out.reshape(-1, problem.dimension),
        "success": retcode == "Success",
        "message": f"Integration {retcode}",
        "retcode": retcode,
        "nfev": fev_count[0],
        "solver": f"DiffEqPy-{algorithm}",
        "integration_time": time.time() - start_time,
    }


def init_julia(problem: ODEProblem, algorithm: SolverChoice = "Tsit5", **options):
    """
    Julia integrator object for stepwise advancement.

    Drive it with diffeqpy's own interface, e.g. ``de.step_b(integ)`` or
    ``de.step_b(integ, dt, True)``; ``integ.u`` and ``integ.t`` give the
    current state and time.
    """
    de = get_de()
    jl_prob = _julia_problem(problem, de, [0])
    alg = get_algorithm(algorithm, de)
    opts = _julia_options(options)
    logger.debug("Julia init with %s, options %s", algorithm, sorted(opts))
    return de.init(jl_prob, alg, **opts)
