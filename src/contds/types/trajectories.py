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
Trajectory and Solution Types

- TimeSpan, TimePoints: integration interval and sample times
- ODESolution: TypedDict returned by one-shot solves
- Trajectory: fixed-step samples of a solution curve

Shape Conventions:
- Solution rows: (n_saved, D), one row per saved time, time-major
- Trajectory: (n_steps, D) with a matching (n_steps,) time grid
"""

from typing import Iterator, Optional, Tuple

import numpy as np
from typing_extensions import NotRequired, TypedDict

from .core import StateVector

TimeSpan = Tuple[float, float]
"""Integration interval (t_start, t_end)."""

TimePoints = np.ndarray
"""Monotonically increasing sample times, shape (n,)."""


class ODESolution(TypedDict):
    """
    Result of a one-shot solve.

    Keys
    ----
    t : TimePoints
        Saved times (n,)
    u : np.ndarray
        Saved states (n, D), row k belongs to t[k]
    success : bool
        Whether the engine reached the end of the interval
    message : str
        Engine status message
    retcode : str
        Engine return code ('Success' on success)
    nfev : int
        Vector field evaluations
    solver : str
        Algorithm name
    integration_time : float
        Wall time in seconds
    """

    t: TimePoints
    u: np.ndarray
    success: bool
    message: str
    retcode: str
    nfev: int
    solver: str
    integration_time: float
    njev: NotRequired[int]
    nlu: NotRequired[int]


class Trajectory:
    """
    States sampled on a fixed time grid.

    Rows are state vectors; row k was sampled at ``t[k]``. The container
    is a snapshot and keeps no reference to the system it came from.

    Examples
    --------
    >>> traj = compute_trajectory(ds, 1.0, dt=0.5)
    >>> len(traj)
    3
    >>> traj[0]        # initial state
    array([1.])
    >>> traj.column(0) # first component over time
    array([1.        , 0.60653066, 0.36787944])
    """

    def __init__(self, data, t: Optional[TimePoints] = None):
        data = np.asarray(data, dtype=np.float64)
        if data.ndim == 1:
            data = data.reshape(-1, 1)
        if data.ndim != 2:
            raise ValueError(f"Trajectory data must be 2-D (n_steps, D), got shape {data.shape}")
        if t is None:
            t = np.arange(data.shape[0], dtype=np.float64)
        t = np.asarray(t, dtype=np.float64)
        if t.shape != (data.shape[0],):
            raise ValueError(
                f"Time grid has {t.shape[0] if t.ndim else 0} points "
                f"but trajectory has {data.shape[0]} rows"
            )
        self._data = data
        self._t = t

    @property
    def t(self) -> TimePoints:
        return self._t

    @property
    def x(self) -> np.ndarray:
        """Rows as an (n_steps, D) array."""
        return self._data

    @property
    def dimension(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._data.shape

    def column(self, i: int) -> np.ndarray:
        """Component i of the state over time."""
        return self._data[:, i]

    def __len__(self) -> int:
        return self._data.shape[0]

    def __getitem__(self, key):
        return self._data[key]

    def __iter__(self) -> Iterator[StateVector]:
        return iter(self._data)

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._data
        return self._data.astype(dtype)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Trajectory):
            return NotImplemented
        return np.array_equal(self._t, other._t) and np.array_equal(self._data, other._data)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Trajectory(n_steps={len(self)}, dimension={self.dimension})"

    def __str__(self) -> str:
        return f"{self.dimension}-dimensional Trajectory with {len(self)} points\n{self._data}"
