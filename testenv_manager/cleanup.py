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

"""Best-effort teardown of everything a test run deployed."""

from __future__ import annotations

from collections.abc import Callable

from rich.panel import Panel

from testenv_manager import console, logger
from testenv_manager.constants import API_GROUP, CLEANUP_DELETE_TIMEOUT
from testenv_manager.errors import CleanupError, CleanupFailure, CommandFailedError
from testenv_manager.processes import ProcessTracker
from testenv_manager.utils import CommandRunner, quote

STEP_SWEEP = "resource sweep"
STEP_TEARDOWN = "workload teardown"
STEP_PROCESSES = "process termination"


class CleanupOrchestrator:
    """Remove custom resources, the workload, secrets, and helper processes.

    Every step runs even when an earlier one failed. Failures are collected and
    raised together as one CleanupError at the end.

    Attributes:
        runner: Runner for kubectl and make.
        tracker: Background processes to terminate.
        namespace: Namespace under test.
        teardown_commands: Inverse of deployment, in execution order. Each must
            tolerate missing objects so teardown can be repeated.
        api_group: Custom resources of this group are swept before undeploy.
    """

    def __init__(
        self,
        runner: CommandRunner,
        tracker: ProcessTracker,
        namespace: str,
        teardown_commands: list[str],
        api_group: str = API_GROUP,
    ) -> None:
        self.runner = runner
        self.tracker = tracker
        self.namespace = namespace
        self.teardown_commands = teardown_commands
        self.api_group = api_group

    def run(self) -> None:
        """Attempt every cleanup step.

        Raises:
            CleanupError: If any action failed; lists every failure in order.
        """
        console.print(Panel.fit("Cleaning up test environment", style="bold blue"))
        failures: list[CleanupFailure] = []

        # Controller finalizers must still be running while its resources are deleted.
        self._attempt(STEP_SWEEP, self.sweep_custom_resources, failures)
        self.verify_sweep()
        self._attempt(STEP_TEARDOWN, self.teardown_workload, failures)
        self._attempt(STEP_PROCESSES, self.terminate_processes, failures)

        if failures:
            raise CleanupError(failures)
        console.print("[green]\u2705 Test environment cleaned up[/green]")

    @staticmethod
    def _attempt(
        step: str,
        action: Callable[[], list[Exception]],
        failures: list[CleanupFailure],
    ) -> None:
        try:
            errors = action()
        except Exception as e:
            errors = [e]
        for error in errors:
            logger.warning("%s: %s", step, error)
            failures.append(CleanupFailure(step, error))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def list_custom_resource_kinds(self) -> list[str]:
        """Namespaced, listable resource kinds of the API group.

        Raises:
            CommandFailedError: If discovery fails.
        """
        result = self.runner.run("kubectl api-resources --verbs=list --namespaced -o name").check()
        suffix = f".{self.api_group}"
        return [line.strip() for line in result.output.splitlines() if line.strip().endswith(suffix)]

    def sweep_custom_resources(self) -> list[Exception]:
        """Delete every instance of every custom resource kind in the namespace."""
        console.print("[yellow]\u2139\ufe0f  Deleting all custom resources from the namespace...[/yellow]")
        errors: list[Exception] = []
        for kind in self.list_custom_resource_kinds():
            result = self.runner.run(
                f"kubectl delete {quote(kind)} --all --ignore-not-found -n {quote(self.namespace)} "
                f"--timeout={CLEANUP_DELETE_TIMEOUT}"
            )
            if not result.ok:
                errors.append(CommandFailedError(result.command, result.exit_code, result.output))
        return errors

    def remaining_custom_resources(self) -> list[str]:
        """Names of custom resources still present in the namespace.

        Raises:
            CommandFailedError: If discovery or listing fails.
        """
        remaining: list[str] = []
        for kind in self.list_custom_resource_kinds():
            result = self.runner.run(
                f"kubectl get {quote(kind)} --ignore-not-found -n {quote(self.namespace)} -o name"
            ).check()
            remaining.extend(line.strip() for line in result.output.splitlines() if line.strip())
        return remaining

    def verify_sweep(self) -> None:
        """Report leftovers for manual follow-up. Never fails the teardown."""
        console.print("[yellow]\u2139\ufe0f  Verifying custom resource cleanup...[/yellow]")
        try:
            remaining = self.remaining_custom_resources()
        except CommandFailedError as e:
            logger.warning("Verification command failed: %s", e)
            return
        if not remaining:
            console.print("[green]\u2705 All custom resources successfully deleted[/green]")
            return
        console.print(
            f"[yellow]\u26a0\ufe0f  {len(remaining)} custom resources remain, "
            f"delete them manually from the cluster:[/yellow]"
        )
        for name in remaining:
            console.print(f"[yellow]   {name}[/yellow]")

    def teardown_workload(self) -> list[Exception]:
        """Run every teardown command, collecting failures."""
        errors: list[Exception] = []
        for command in self.teardown_commands:
            result = self.runner.run(command)
            if not result.ok:
                errors.append(CommandFailedError(result.command, result.exit_code, result.output))
        return errors

    def terminate_processes(self) -> list[Exception]:
        count = len(self.tracker)
        errors = self.tracker.kill_all()
        if count:
            console.print(f"[yellow]   Terminated {count - len(errors)}/{count} background processes[/yellow]")
        return list(errors)
