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
Unit tests for logging setup and error types
"""

import logging
import sys

import pytest

from contds.errors import IntegrationError, InvalidArgumentError
from contds.log_config import LOG_FORMAT, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestSetupLogging:
    def test_single_stdout_handler(self, restore_root_logger):
        setup_logging(logging.WARNING)

        root = restore_root_logger
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stdout
        assert root.handlers[0].formatter._fmt == LOG_FORMAT

    def test_repeated_setup_does_not_stack_handlers(self, restore_root_logger):
        setup_logging()
        setup_logging()
        assert len(restore_root_logger.handlers) == 1

    def test_default_level_info(self, restore_root_logger, monkeypatch):
        monkeypatch.delenv("CONTDS_DEBUG", raising=False)
        setup_logging()
        assert restore_root_logger.level == logging.INFO

    def test_debug_environment_variable(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("CONTDS_DEBUG", "1")
        setup_logging()
        assert restore_root_logger.level == logging.DEBUG


class TestErrors:
    def test_invalid_argument_is_value_error(self):
        assert issubclass(InvalidArgumentError, ValueError)

    def test_integration_error_attributes(self):
        err = IntegrationError("failed", solver="scipy.RK45", retcode="Failure")

        assert isinstance(err, RuntimeError)
        assert str(err) == "failed"
        assert err.solver == "scipy.RK45"
        assert err.retcode == "Failure"
