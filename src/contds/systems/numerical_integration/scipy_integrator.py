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
Scipy Engine

Solves ODEProblems with scipy.integrate.

- solve_scipy(): one-shot solve via scipy.integrate.solve_ivp
- ScipyODEIntegrator: live stepping handle around a scipy OdeSolver
  (RK45, DOP853, Radau, ...), advanced by the caller one step at a time

Both accept the canonical option vocabulary from solver_config and
translate it to scipy keyword arguments. Two options have no direct scipy
equivalent and are implemented here:

- tstops: the interval is split so that the solver lands exactly on each
  stop time (scipy solvers always land on their t_bound)
- save_everystep: False keeps only the first and last point instead of
  every accepted step

Supported Methods:
- RK45: Dormand-Prince 5(4) [DEFAULT]
- RK23: Bogacki-Shampine 3(2)
- DOP853: Dormand-Prince 8(5,3)
- Radau: Implicit Runge-Kutta (Radau IIA), uses the Jacobian
- BDF: Backward Differentiation Formula, uses the Jacobian
- LSODA: Adams/BDF with automatic stiffness detection, uses the Jacobian
"""

import logging
import time
import warnings
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
import scipy.integrate
from scipy.integrate import OdeSolver

from contds.errors import IntegrationError
from contds.systems.numerical_integration.ode_problem import ODEProblem
from contds.systems.numerical_integration.solver_config import (
    DEFAULT_SOLVER,
    IMPLICIT_METHODS,
    OPTION_ALIASES,
    SCIPY_METHODS,
    SolverChoice,
    with_default_tolerances,
)
from contds.types.trajectories import ODESolution, TimePoints

logger = logging.getLogger(__name__)


# ============================================================================
# Option Translation
# ============================================================================


def method_name(solver: SolverChoice) -> str:
    """Display name of a scipy method given as a string or OdeSolver class."""
    if isinstance(solver, type):
        return solver.__name__
    return str(solver)


def get_method_class(solver: SolverChoice) -> type:
    """
    Return the OdeSolver subclass for a method name.

    Raises
    ------
    ValueError
        If solver is neither a known scipy method name nor an OdeSolver class
    """
    if isinstance(solver, type) and issubclass(solver, OdeSolver):
        return solver
    if isinstance(solver, str) and solver in SCIPY_METHODS:
        return getattr(scipy.integrate, solver)
    raise ValueError(f"`method` must be one of {list(SCIPY_METHODS)} or OdeSolver class.")


def save_times(saveat: Any, t0: float, tf: float) -> TimePoints:
    """
    Sorted save times within [t0, tf].

    A scalar saveat is a spacing: t0, t0 + saveat, ..., with tf appended.
    """
    if np.ndim(saveat) == 0:
        step = float(saveat)
        if step <= 0:
            raise ValueError(f"saveat spacing must be positive, got {step}")
        grid = t0 + step * np.arange(int(np.floor((tf - t0) / step)) + 1)
        grid = grid[grid < tf]
        return np.append(grid, tf)

    times = np.sort(np.asarray(saveat, dtype=np.float64))
    if times.size and (times[0] < t0 or times[-1] > tf):
        raise ValueError(
            f"saveat values must lie within the integration interval [{t0}, {tf}]"
        )
    return times


def _stop_times(tstops: Any, t0: float, tf: float) -> List[float]:
    """Interior stop times in (t0, tf), sorted and unique."""
    if tstops is None:
        return []
    stops = np.unique(np.atleast_1d(np.asarray(tstops, dtype=np.float64)))
    return [float(s) for s in stops if t0 < s < tf]


def _scipy_options(
    problem: ODEProblem, solver: SolverChoice, options: Mapping[str, Any]
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Split canonical options into (driver_options, scipy_kwargs).

    driver_options holds saveat, tstops, save_everystep and save_start;
    scipy_kwargs is ready to pass to solve_ivp or an OdeSolver.
    """
    opts = with_default_tolerances(options)

    driver = {
        "saveat": opts.pop("saveat", None),
        "tstops": opts.pop("tstops", None),
        "save_everystep": opts.pop("save_everystep", True),
        "save_start": opts.pop("save_start", True),
    }

    if opts.pop("maxiters", None) is not None:
        warnings.warn(
            "maxiters has no effect with scipy methods; "
            "use a Julia algorithm to limit iterations",
            UserWarning,
            stacklevel=3,
        )

    # An empty saveat means no explicit save times
    saveat = driver["saveat"]
    if saveat is not None and np.ndim(saveat) > 0 and np.size(saveat) == 0:
        driver["saveat"] = None

    kwargs = {OPTION_ALIASES.get(key, key): value for key, value in opts.items()}

    name = method_name(solver)
    if "min_step" in kwargs and name != "LSODA":
        logger.debug("min_step dropped: only LSODA accepts it, not %s", name)
        del kwargs["min_step"]
    if problem.has_jacobian and "jac" not in kwargs:
        if name in IMPLICIT_METHODS:
            kwargs["jac"] = problem.jac
        else:
            logger.debug("Jacobian of '%s' not used by explicit method %s", problem.name, name)

    return driver, kwargs


def _clamp_first_step(kwargs: Dict[str, Any], t: float, bound: float) -> Dict[str, Any]:
    # scipy rejects a first_step longer than the interval
    first_step = kwargs.get("first_step")
    if first_step is None or first_step <= abs(bound - t):
        return kwargs
    clamped = dict(kwargs)
    clamped["first_step"] = abs(bound - t)
    return clamped


# ============================================================================
# One-shot Solve
# ============================================================================


def solve_scipy(
    problem: ODEProblem, solver: SolverChoice = DEFAULT_SOLVER, **options
) -> ODESolution:
    """
    Solve problem with scipy.integrate.solve_ivp.

    Parameters
    ----------
    problem : ODEProblem
        Problem to solve
    solver : str or OdeSolver subclass
        scipy method (default: 'RK45')
    **options
        Canonical or scipy options. Save policy:
        - saveat given: exactly those times
        - save_everystep=True (default): every accepted step
        - save_everystep=False: first and last point
        save_start=False drops the initial point in the last two cases.

    Returns
    -------
    ODESolution
        Saved times and states, success flag and statistics

    Notes
    -----
    Unknown method names raise from solve_ivp unchanged.

    Examples
    --------
    >>> sol = solve_scipy(prob, "DOP853", abstol=1e-12, reltol=1e-12)
    >>> sol["u"][-1]
    >>>
    >>> # Only the endpoints
    >>> sol = solve_scipy(prob, save_everystep=False)
    >>> sol["t"]
    array([ 0., 10.])
    """
    start_time = time.time()
    driver, kwargs = _scipy_options(problem, solver, options)
    name = f"scipy.{method_name(solver)}"

    t0, tf = float(problem.t0), float(problem.tf)
    u0 = np.asarray(problem.u0, dtype=np.float64)

    saveat = driver["saveat"]
    t_save = save_times(saveat, t0, tf) if saveat is not None else None
    if t_save is not None and driver["save_everystep"] and "save_everystep" in options:
        warnings.warn(
            "save_everystep is ignored when saveat is given", UserWarning, stacklevel=2
        )

    # Handle edge case
    if t0 == tf:
        if t_save is not None:
            t_out = t_save
        else:
            t_out = np.array([t0]) if driver["save_start"] else np.array([tf])
        return {
            "t": t_out,
            "u": np.tile(u0, (len(t_out), 1)),
            "success": True,
            "message": "Zero time span",
            "retcode": "Success",
            "nfev": 0,
            "solver": name,
            "integration_time": 0.0,
        }

    boundaries = [t0] + _stop_times(driver["tstops"], t0, tf) + [tf]
    if len(boundaries) > 2:
        logger.debug("Splitting [%g, %g] at %d stop times", t0, tf, len(boundaries) - 2)

    t_chunks: List[np.ndarray] = []
    u_chunks: List[np.ndarray] = []
    stats = {"nfev": 0, "njev": 0, "nlu": 0}
    success, message = True, "The solver successfully reached the end of the integration interval."
    t_last, y = t0, u0

    for k, (a, b) in enumerate(zip(boundaries[:-1], boundaries[1:])):
        wanted = None
        t_eval = None
        if t_save is not None:
            lower = (t_save >= a) if k == 0 else (t_save > a)
            wanted = t_save[lower & (t_save <= b)]
            # The segment end is always evaluated: the next segment starts there
            t_eval = wanted if wanted.size and wanted[-1] == b else np.append(wanted, b)

        sol = scipy.integrate.solve_ivp(
            problem.f,
            (a, b),
            y,
            method=solver,
            t_eval=t_eval,
            **_clamp_first_step(kwargs, a, b),
        )
        for key in stats:
            stats[key] += int(getattr(sol, key, 0) or 0)

        if not sol.success:
            success, message = False, sol.message
            break

        seg_t, seg_u = sol.t, sol.y.T
        t_last, y = float(seg_t[-1]), seg_u[-1]
        if wanted is not None:
            seg_t, seg_u = seg_t[: wanted.size], seg_u[: wanted.size]
        elif not driver["save_everystep"]:
            continue
        elif k > 0:
            seg_t, seg_u = seg_t[1:], seg_u[1:]
        t_chunks.append(seg_t)
        u_chunks.append(seg_u)

    if t_save is None and not driver["save_everystep"]:
        t_chunks = [np.array([t0, t_last])]
        u_chunks = [np.vstack([u0, y])]
    if t_save is None and not driver["save_start"] and t_chunks:
        t_chunks[0] = t_chunks[0][1:]
        u_chunks[0] = u_chunks[0][1:]

    t_out = np.concatenate(t_chunks) if t_chunks else np.empty(0)
    u_out = np.concatenate(u_chunks) if u_chunks else np.empty((0, problem.dimension))

    elapsed = time.time() - start_time
    result: ODESolution = {
        "t": t_out,
        "u": u_out.reshape(-1, problem.dimension),
        "success": success,
        "message": message,
        "retcode": "Success" if success else "Failure",
        "nfev": stats["nfev"],
        "solver": name,
        "integration_time": elapsed,
    }
    if stats["njev"]:
        result["njev"] = stats["njev"]
    if stats["nlu"]:
        result["nlu"] = stats["nlu"]
    return result


# ============================================================================
# Stepping Handle
# ============================================================================


class ScipyODEIntegrator:
    """
    Resumable integration session over a scipy OdeSolver.

    The handle owns a copy of the current time and state and advances them
    under caller control. Stop times (``tstops``, ``advance`` targets) are
    honoured exactly by restarting the underlying solver at each stop.

    Parameters
    ----------
    problem : ODEProblem
        Problem to integrate
    solver : str or OdeSolver subclass
        scipy method (default: 'RK45')
    **options
        Canonical or scipy options, plus saveat, tstops, save_everystep
        and save_start. ``dense`` is not supported by the handle.

    Attributes
    ----------
    t : float
        Current time
    u : np.ndarray
        Current state (copy, safe to keep)
    tf : float
        End of the integration interval
    status : str
        'running', 'finished' or 'failed'
    saved_t, saved_u : list
        Points recorded under the save policy

    Examples
    --------
    >>> integ = ScipyODEIntegrator(prob, "RK45", save_everystep=False)
    >>> while integ.status == "running":
    ...     integ.step()
    >>> integ.u
    >>>
    >>> # Land exactly on t = 0.5
    >>> integ = ScipyODEIntegrator(prob)
    >>> integ.advance(0.5).t
    0.5
    """

    def __init__(self, problem: ODEProblem, solver: SolverChoice = DEFAULT_SOLVER, **options):
        driver, kwargs = _scipy_options(problem, solver, options)
        kwargs.pop("t_eval", None)
        if kwargs.pop("dense_output", False):
            raise ValueError("dense output is not available from a stepping handle")

        self.problem = problem
        self.method = get_method_class(solver)
        self._kwargs = kwargs
        self.save_start = driver["save_start"]
        self.save_everystep = driver["save_everystep"]

        self.t0, self.tf = float(problem.t0), float(problem.tf)
        self.t = self.t0
        self._u = np.array(problem.u0, dtype=np.float64)
        self.nsteps = 0
        self.nfev = 0

        self._saveat: Optional[TimePoints] = None
        if driver["saveat"] is not None:
            self._saveat = save_times(driver["saveat"], self.t0, self.tf)
            self._saveat = self._saveat[self._saveat > self.t0]
            self.save_everystep = False
        self._stops = _stop_times(driver["tstops"], self.t0, self.tf) + [self.tf]

        self.saved_t: List[float] = []
        self.saved_u: List[np.ndarray] = []
        if self.save_start:
            self._record(self.t, self._u)

        self.status = "finished" if self.t0 == self.tf else "running"
        self._solver: Optional[OdeSolver] = None
        if self.status == "running":
            self._restart()

    @property
    def u(self) -> np.ndarray:
        return self._u.copy()

    @property
    def name(self) -> str:
        return f"scipy.{self.method.__name__}"

    def _record(self, t: float, u: np.ndarray):
        self.saved_t.append(float(t))
        self.saved_u.append(np.array(u, dtype=np.float64))

    def _restart(self):
        bound = self._stops[0]
        logger.debug("Starting %s segment [%g, %g]", self.name, self.t, bound)
        self._solver = self.method(
            self.problem.f, self.t, self._u, bound, **_clamp_first_step(self._kwargs, self.t, bound)
        )
        # Only the very first segment honours a user first_step
        self._kwargs.pop("first_step", None)

    def step(self) -> "ScipyODEIntegrator":
        """
        Take one adaptive step.

        Raises
        ------
        RuntimeError
            If the integration has already finished or failed
        IntegrationError
            If the underlying solver fails
        """
        if self.status != "running":
            raise RuntimeError(f"Cannot step: integration is {self.status}")
        if self._solver.status == "finished":
            self._restart()

        t_old = self.t
        nfev_before = self._solver.nfev
        message = self._solver.step()
        self.nfev += self._solver.nfev - nfev_before

        if self._solver.status == "failed":
            self.status = "failed"
            raise IntegrationError(
                f"{self.name} failed at t={self.t}: {message}", solver=self.name, retcode=str(message)
            )

        t_new = self._solver.t
        if self._saveat is not None:
            pending = self._saveat[(self._saveat > t_old) & (self._saveat <= t_new)]
            if pending.size:
                interp = self._solver.dense_output()
                for ts in pending:
                    self._record(ts, self._solver.y if ts == t_new else interp(ts))

        self.t = float(t_new)
        self._u = np.array(self._solver.y, dtype=np.float64)
        self.nsteps += 1

        if self.save_everystep:
            self._record(self.t, self._u)

        if self._solver.status == "finished":
            self._stops.pop(0)
            if not self._stops:
                self.status = "finished"
                if not self.save_everystep and self._saveat is None:
                    self._record(self.t, self._u)

        return self

    def advance_to(self, t_target: float) -> "ScipyODEIntegrator":
        """Integrate until exactly t_target (t < t_target <= tf)."""
        t_target = float(t_target)
        if not self.t < t_target <= self.tf:
            raise ValueError(
                f"Target time must lie in ({self.t}, {self.tf}], got {t_target}"
            )
        if t_target not in self._stops:
            self._stops.append(t_target)
            self._stops.sort()
            if t_target < self._solver.t_bound:
                self._restart()
        while self.t < t_target:
            self.step()
        return self

    def advance(self, dt: float) -> "ScipyODEIntegrator":
        """Integrate for dt time units, landing exactly on t + dt."""
        return self.advance_to(self.t + dt)

    def solve(self) -> "ScipyODEIntegrator":
        """Step until tf."""
        while self.status == "running":
            self.step()
        return self

    def __repr__(self) -> str:
        return (
            f"ScipyODEIntegrator(method='{self.method.__name__}', t={self.t}, "
            f"tf={self.tf}, status='{self.status}')"
        )
