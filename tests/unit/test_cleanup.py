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

import pytest

from testenv_manager.cleanup import STEP_PROCESSES, STEP_SWEEP, STEP_TEARDOWN, CleanupOrchestrator
from testenv_manager.errors import CleanupError, CommandFailedError
from testenv_manager.processes import ProcessTracker
from tests.unit.fakes import FakeProcess

NAMESPACE = "unstructured-controller-namespace"
API_RESOURCES = "\n".join([
    "pods",
    "controllerconfigs.operator.dataverse.redhat.com",
    "unstructureddataproducts.operator.dataverse.redhat.com",
    "deployments.apps",
])
TEARDOWN = [
    "make undeploy ignore-not-found=true",
    f"kubectl delete secret aws-secret -n {NAMESPACE} --ignore-not-found=true",
    f"kubectl delete -f test/localstack/ -n {NAMESPACE} --ignore-not-found=true",
]


@pytest.fixture
def tracker():
    return ProcessTracker()


@pytest.fixture
def cleaner(runner, tracker):
    runner.respond("kubectl api-resources", output=API_RESOURCES)
    return CleanupOrchestrator(runner, tracker, NAMESPACE, list(TEARDOWN))


def test_custom_resource_kinds_filtered_by_group(cleaner):
    assert cleaner.list_custom_resource_kinds() == [
        "controllerconfigs.operator.dataverse.redhat.com",
        "unstructureddataproducts.operator.dataverse.redhat.com",
    ]


def test_sweep_runs_before_undeploy(cleaner, runner, tracker):
    process = FakeProcess()
    tracker.track(process, "port-forward")

    cleaner.run()

    sweeps = [i for i, c in enumerate(runner.commands) if "--all --ignore-not-found" in c]
    assert len(sweeps) == 2
    assert max(sweeps) < runner.index("make undeploy")
    assert runner.commands[-len(TEARDOWN):] == TEARDOWN
    assert process.kill_calls == 1


def test_sweep_uses_bounded_delete(cleaner, runner):
    cleaner.sweep_custom_resources()
    assert (
        "kubectl delete controllerconfigs.operator.dataverse.redhat.com --all --ignore-not-found "
        f"-n {NAMESPACE} --timeout=60s"
    ) in runner.commands


def test_failed_teardown_command_does_not_stop_cleanup(cleaner, runner, tracker):
    process = FakeProcess()
    tracker.track(process, "log follower")
    runner.fail("delete secret aws-secret", output="connection refused")

    with pytest.raises(CleanupError) as exc_info:
        cleaner.run()

    failures = exc_info.value.failures
    assert [f.step for f in failures] == [STEP_TEARDOWN]
    assert isinstance(failures[0].error, CommandFailedError)
    assert "aws-secret" in failures[0].error.command
    assert runner.ran("kubectl delete -f test/localstack/")
    assert process.kill_calls == 1
    assert "connection refused" in str(exc_info.value)


def test_every_failure_is_reported_in_order(cleaner, runner, tracker):
    tracker.track(FakeProcess(kill_error=PermissionError("denied")), "stuck")
    runner.fail("--all --ignore-not-found")
    runner.fail("make undeploy")

    with pytest.raises(CleanupError) as exc_info:
        cleaner.run()

    steps = [f.step for f in exc_info.value.failures]
    assert steps == [STEP_SWEEP, STEP_SWEEP, STEP_TEARDOWN, STEP_PROCESSES]
    assert "(4 failures)" in str(exc_info.value)


def test_discovery_failure_is_recorded_and_teardown_continues(runner, tracker):
    runner.fail("kubectl api-resources", output="Unable to connect to the server")
    cleaner = CleanupOrchestrator(runner, tracker, NAMESPACE, list(TEARDOWN))

    with pytest.raises(CleanupError) as exc_info:
        cleaner.run()

    assert [f.step for f in exc_info.value.failures] == [STEP_SWEEP]
    assert runner.ran("make undeploy")


def test_leftover_resources_do_not_fail_teardown(cleaner, runner):
    runner.respond(
        "kubectl get controllerconfigs",
        output="controllerconfig.operator.dataverse.redhat.com/controllerconfig\n",
    )
    cleaner.run()
    assert cleaner.remaining_custom_resources() == [
        "controllerconfig.operator.dataverse.redhat.com/controllerconfig",
    ]


def test_cleanup_is_repeatable(cleaner, runner):
    cleaner.run()
    first = list(runner.commands)
    cleaner.run()
    assert runner.commands[len(first):] == first
