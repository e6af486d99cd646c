# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Session fixture that provisions one environment for the whole e2e run."""

import warnings

import pytest

from testenv_manager.errors import CleanupError
from testenv_manager.orchestrator import EnvironmentOrchestrator


class CleanupWarning(UserWarning):
    """Teardown left something behind."""


@pytest.fixture(scope="session", autouse=True)
def test_environment():
    orchestrator = EnvironmentOrchestrator.from_env()
    try:
        orchestrator.setup()
    except BaseException as e:
        try:
            orchestrator.release_cluster()
        except CleanupError as cleanup_err:
            warnings.warn(str(cleanup_err), CleanupWarning)
        if not isinstance(e, Exception):
            raise
        pytest.exit(f"failed to setup test environment: {e}", returncode=1)

    yield orchestrator

    try:
        orchestrator.teardown()
    except CleanupError as e:
        warnings.warn(str(e), CleanupWarning)
