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
Solver Configuration

Splits a solver configuration into the algorithm choice and the options
forwarded to the engine.

A configuration is either a plain mapping

    {"solver": "DOP853", "abstol": 1e-10, "reltol": 1e-10}

or a SolverConfig, which keeps the two parts apart from the start. The
"solver" key is never forwarded to the engine; when absent, DEFAULT_SOLVER
is used. The caller's mapping is never modified.

Option Vocabulary
-----------------
Options use DifferentialEquations.jl names, which are translated for the
scipy engine. scipy spellings are accepted as well:

    abstol          atol            absolute tolerance
    reltol          rtol            relative tolerance
    saveat          t_eval          explicit save times
    dtmax           max_step        largest step
    dtmin           min_step        smallest step (LSODA only in scipy)
    dt              first_step      initial step
    dense           dense_output    keep the interpolant
    save_first      save_start      save the initial point

``tstops``, ``save_everystep`` and ``maxiters`` have no scipy counterpart
and are handled by the driver. Anything else passes through unvalidated.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# ============================================================================
# Defaults
# ============================================================================

DEFAULT_SOLVER = "RK45"
"""Dormand-Prince 5(4): explicit, fifth order, adaptive step."""

DEFAULT_RELTOL = 1e-6
DEFAULT_ABSTOL = 1e-8

SOLVER_KEY = "solver"

SCIPY_METHODS = ("RK45", "RK23", "DOP853", "Radau", "BDF", "LSODA")

# Methods that accept a user Jacobian
IMPLICIT_METHODS = frozenset({"Radau", "BDF", "LSODA"})

# Canonical (DifferentialEquations.jl) name -> scipy name
OPTION_ALIASES: Dict[str, str] = {
    "abstol": "atol",
    "reltol": "rtol",
    "saveat": "t_eval",
    "dtmax": "max_step",
    "dtmin": "min_step",
    "dt": "first_step",
    "dense": "dense_output",
}

# Synonyms folded into the canonical name before anything else
_SYNONYMS: Dict[str, str] = {
    "save_first": "save_start",
}

SolverChoice = Any
"""Algorithm name (str), scipy OdeSolver subclass, or Julia algorithm object."""


@dataclass(frozen=True)
class SolverConfig:
    """
    Algorithm choice plus pass-through engine options.

    Attributes
    ----------
    solver : SolverChoice
        Algorithm to use (default: DEFAULT_SOLVER)
    options : Mapping[str, Any]
        Options forwarded to the engine; never contains "solver"

    Examples
    --------
    >>> cfg = SolverConfig("DOP853", {"abstol": 1e-12})
    >>> cfg.with_options(reltol=1e-12).options
    {'abstol': 1e-12, 'reltol': 1e-12}
    >>> SolverConfig.from_mapping({"abstol": 1e-9}).solver
    'RK45'
    """

    solver: SolverChoice = DEFAULT_SOLVER
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if SOLVER_KEY in self.options:
            raise ValueError(
                f"'{SOLVER_KEY}' belongs in SolverConfig.solver, not in options"
            )
        object.__setattr__(self, "options", dict(self.options))

    @classmethod
    def from_mapping(cls, config: Optional[Mapping[str, Any]] = None) -> "SolverConfig":
        solver, remaining = resolve_solver(config)
        return cls(solver, remaining)

    def with_options(self, **options) -> "SolverConfig":
        """Copy with options added or overridden."""
        merged = dict(self.options)
        merged.update(options)
        return SolverConfig(self.solver, merged)

    def as_dict(self) -> Dict[str, Any]:
        """Flat mapping including the solver key."""
        return {SOLVER_KEY: self.solver, **self.options}


ConfigLike = Union[Mapping[str, Any], SolverConfig, None]


def resolve_solver(config: ConfigLike = None) -> Tuple[SolverChoice, Dict[str, Any]]:
    """
    Extract the solver choice from a configuration.

    Parameters
    ----------
    config : Mapping, SolverConfig or None
        Solver configuration. Not modified.

    Returns
    -------
    solver : SolverChoice
        config["solver"] if present, else DEFAULT_SOLVER
    remaining : dict
        New dict holding every other entry

    Examples
    --------
    >>> resolve_solver({"solver": "Radau", "abstol": 1e-9})
    ('Radau', {'abstol': 1e-09})
    >>> resolve_solver({"abstol": 1e-9})
    ('RK45', {'abstol': 1e-09})
    """
    if config is None:
        return DEFAULT_SOLVER, {}
    if isinstance(config, SolverConfig):
        return config.solver, dict(config.options)

    remaining = dict(config)
    if SOLVER_KEY in remaining:
        solver = remaining.pop(SOLVER_KEY)
    else:
        solver = DEFAULT_SOLVER
    logger.debug("Resolved solver %r with options %s", solver, sorted(remaining))
    return solver, remaining


def normalize_options(options: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Rewrite option names into the canonical vocabulary.

    scipy spellings become their DifferentialEquations.jl counterparts and
    synonyms collapse into one name. Unknown keys are kept as they are.

    Raises
    ------
    ValueError
        If the same option is given under two spellings
    """
    reverse = {scipy_name: name for name, scipy_name in OPTION_ALIASES.items()}
    reverse.update(_SYNONYMS)

    normalized: Dict[str, Any] = {}
    origin: Dict[str, str] = {}
    for key, value in options.items():
        canonical = reverse.get(key, key)
        if canonical in normalized:
            raise ValueError(
                f"Option given twice: '{origin[canonical]}' and '{key}' "
                f"both set '{canonical}'"
            )
        normalized[canonical] = value
        origin[canonical] = key
    return normalized


def with_default_tolerances(options: Mapping[str, Any]) -> Dict[str, Any]:
    """Canonical options with DEFAULT_RELTOL/DEFAULT_ABSTOL filled in."""
    merged = normalize_options(options)
    merged.setdefault("reltol", DEFAULT_RELTOL)
    merged.setdefault("abstol", DEFAULT_ABSTOL)
    return merged
