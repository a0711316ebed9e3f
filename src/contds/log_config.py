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


"""Logging setup shared by scripts and interactive sessions."""

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] [%(name)s] %(message)s"


def _default_level() -> int:
    return logging.DEBUG if os.environ.get("CONTDS_DEBUG", "0") == "1" else logging.INFO


def setup_logging(level=None):
    """
    Configure basic logging to stdout.

    Parameters
    ----------
    level : Optional[int]
        Root logger level. Defaults to INFO, or DEBUG when the
        ``CONTDS_DEBUG`` environment variable is set to ``1``.
    """
    if level is None:
        level = _default_level()

    log_formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger()

    # Clear existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    logging.getLogger("contds").debug("Logging configured.")
