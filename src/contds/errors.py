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
Exceptions raised by contds.

Only two failure modes originate in this package. Everything else
(unknown algorithm names, exceptions thrown from inside a user vector
field, bad keyword arguments) propagates unchanged from the external
solver library.
"""


class InvalidArgumentError(ValueError):
    """Raised when an argument is outside its admissible range"""
    pass


class IntegrationError(RuntimeError):
    """
    Raised when the external solver returns without success.

    Attributes
    ----------
    solver : str
        Name of the algorithm that failed
    retcode : str
        Engine return code or status message
    """

    def __init__(self, message: str, solver: str = "", retcode: str = ""):
        super().__init__(message)
        self.solver = solver
        self.retcode = retcode
