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

"""Orchestration that composes the provisioning steps into setup and teardown."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from rich.panel import Panel

from testenv_manager import console, logger
from testenv_manager.cleanup import STEP_PROCESSES, CleanupOrchestrator
from testenv_manager.cluster import ClusterProvisioner, generate_cluster_name, kube_context
from testenv_manager.components import DependencyDeployer, WorkloadDeployer
from testenv_manager.config import DeploySettings, EnvironmentFlags
from testenv_manager.constants import REQUIRED_TOOLS, TEST_NAMESPACE
from testenv_manager.controller_config import ConfigResourceFactory
from testenv_manager.credentials import CredentialProvisioner
from testenv_manager.errors import CleanupError, CleanupFailure, MissingInputError
from testenv_manager.kube import ClusterClient
from testenv_manager.processes import ProcessTracker
from testenv_manager.utils import CommandRunner, ShellCommandRunner, require_command

STEP_NAMESPACE = "namespace deletion"
STEP_CLUSTER = "cluster deletion"


@dataclass
class TestEnvironment:
    """One sandbox per test run.

    Attributes:
        cluster_name: kind cluster name, unique per run.
        flags: Skip flags read once at startup.
        namespace: Namespace everything is deployed into.
        processes: Background processes owned by this environment.
    """

    __test__ = False

    cluster_name: str
    flags: EnvironmentFlags
    namespace: str = TEST_NAMESPACE
    processes: ProcessTracker = field(default_factory=ProcessTracker)

    @classmethod
    def from_env(cls, deploy_cfg: DeploySettings | None = None) -> TestEnvironment:
        deploy_cfg = deploy_cfg or DeploySettings()
        return cls(
            cluster_name=deploy_cfg.cluster_name or generate_cluster_name(),
            flags=EnvironmentFlags(),
        )

    @property
    def kube_context(self) -> str | None:
        """Context of the cluster we create; the current context when reusing one."""
        if self.flags.skip_cluster_setup:
            return None
        return kube_context(self.cluster_name)

    @property
    def kubeconfig(self) -> Path | None:
        """Kubeconfig holding only the cluster we create; None when reusing the current one.

        The path depends only on the cluster name, so a later ``env teardown`` finds it.
        """
        if self.flags.skip_cluster_setup:
            return None
        return Path(tempfile.gettempdir()) / f"{self.cluster_name}.kubeconfig"

    @property
    def command_env(self) -> dict[str, str]:
        """Environment overlay that pins kind, kubectl and make to this cluster."""
        kubeconfig = self.kubeconfig
        return {} if kubeconfig is None else {"KUBECONFIG": str(kubeconfig)}


class EnvironmentOrchestrator:
    """Fail-fast setup and best-effort teardown of a TestEnvironment.

    Attributes:
        cluster_created: This run reached kind cluster creation, so it owns the cluster.
        deploy_started: This run reached the first step that changes the cluster;
            cleanup has nothing to do before that.
    """

    def __init__(
        self,
        environment: TestEnvironment,
        deploy_cfg: DeploySettings,
        runner: CommandRunner | None = None,
        client: ClusterClient | None = None,
    ) -> None:
        self.environment = environment
        self.deploy_cfg = deploy_cfg
        self.runner = runner or ShellCommandRunner(cwd=deploy_cfg.project_dir, env=environment.command_env)
        self.client = client or ClusterClient(
            context=environment.kube_context, config_file=environment.kubeconfig,
        )
        self.cluster_created = False
        self.deploy_started = False

        namespace = environment.namespace
        tracker = environment.processes
        tracker.env = environment.command_env
        self.cluster = ClusterProvisioner(self.runner)
        self.credentials = CredentialProvisioner(self.runner, namespace)
        self.dependencies = DependencyDeployer(
            self.runner, self.client, tracker, namespace, environment.flags, deploy_cfg.project_dir,
        )
        self.workload = WorkloadDeployer(self.runner, self.client, tracker, namespace, deploy_cfg.project_dir)
        self.config_factory = ConfigResourceFactory(self.runner, self.client, namespace)
        self.cleaner = CleanupOrchestrator(self.runner, tracker, namespace, self.teardown_commands())

    @classmethod
    def from_env(cls) -> EnvironmentOrchestrator:
        deploy_cfg = DeploySettings()
        return cls(TestEnvironment.from_env(deploy_cfg), deploy_cfg)

    @property
    def flags(self) -> EnvironmentFlags:
        return self.environment.flags

    def teardown_commands(self) -> list[str]:
        """Inverse of setup, all tolerant of objects that were never created."""
        return [
            *self.workload.cleanup_commands(),
            *self.credentials.cleanup_commands(),
            *self.config_factory.cleanup_commands(),
            *self.dependencies.cleanup_commands(),
        ]

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def setup(self) -> None:
        """Bring the environment to a healthy state, stopping at the first failure.

        On failure, including KeyboardInterrupt, the partial environment is cleaned
        up (unless SKIP_TEST_CLEANUP), helper processes are stopped, and the
        original error is re-raised.
        """
        try:
            self._run_setup()
        except BaseException as e:
            console.print(f"[red]\u274c failed to setup test environment: {str(e) or type(e).__name__}[/red]")
            self._cleanup_after_failed_setup()
            raise

    def _run_setup(self) -> None:
        env = self.environment
        image = self._require_inputs()
        self._check_prerequisites()

        if not self.flags.skip_cluster_setup:
            # A failed create can leave a partial cluster behind.
            self.cluster_created = True
            self.cluster.create_cluster(env.cluster_name)
        else:
            console.print("[yellow]   Skipping cluster creation, using the current kube context[/yellow]")
        self.deploy_started = True
        self.cluster.create_namespace(env.namespace)

        self.credentials.provision(self.deploy_cfg.snowflake_secret_file)
        self.dependencies.deploy_all()
        self.workload.deploy(image)

        resource = self.config_factory.build()
        self.config_factory.submit(resource)
        self.config_factory.wait_healthy(resource.metadata.name, resource.metadata.namespace)
        console.print(Panel.fit(f"Test environment ready ({env.cluster_name})", style="bold green"))

    def _require_inputs(self) -> str:
        """Validate required inputs before anything is deployed.

        Returns:
            The controller image reference.

        Raises:
            MissingInputError: If IMG or SNOWFLAKE_SECRET_FILE is unset or unusable.
        """
        if not self.deploy_cfg.img:
            raise MissingInputError("IMG environment variable is required")
        key_file = self.deploy_cfg.snowflake_secret_file
        if not key_file:
            raise MissingInputError("SNOWFLAKE_SECRET_FILE environment variable is required for snowflake secret")
        if not key_file.is_file():
            raise MissingInputError(f"SNOWFLAKE_SECRET_FILE does not point to a file: {key_file}")
        return self.deploy_cfg.img

    def _check_prerequisites(self) -> None:
        console.print(Panel.fit("Checking prerequisites", style="bold blue"))
        tools = REQUIRED_TOOLS if not self.flags.skip_cluster_setup else tuple(t for t in REQUIRED_TOOLS if t != "kind")
        for cmd in tools:
            require_command(self.runner, cmd)
        console.print("[green]\u2705 All required tools are available[/green]")

    def _cleanup_after_failed_setup(self) -> None:
        if self.deploy_started and self.flags.cleanup_required:
            try:
                self.cleanup()
            except CleanupError as e:
                logger.warning("%s", e)
        else:
            for error in self.environment.processes.kill_all():
                logger.warning("%s", error)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def adopt_cluster(self) -> None:
        """Take ownership of an environment provisioned by an earlier run.

        Unless the current context is being reused, the cluster's kubeconfig is
        exported again so every command targets it.

        Raises:
            CommandFailedError: If the cluster does not exist.
        """
        if not self.flags.skip_cluster_setup:
            self.cluster.export_kubeconfig(self.environment.cluster_name)
            self.cluster_created = True
        self.deploy_started = True

    def cleanup(self) -> None:
        """Run the cleanup sequence once.

        Raises:
            CleanupError: If any cleanup action failed.
        """
        self.cleaner.run()

    def release_cluster(self) -> None:
        """Delete the namespace and cluster if this run created them.

        Raises:
            CleanupError: If either deletion failed.
        """
        failures = self._release_cluster()
        if failures:
            raise CleanupError(failures)

    def _release_cluster(self) -> list[CleanupFailure]:
        failures: list[CleanupFailure] = []
        if not (self.cluster_created and self.flags.destroy_cluster):
            return failures
        env = self.environment
        for step, action, target in (
            (STEP_NAMESPACE, self.cluster.delete_namespace, env.namespace),
            (STEP_CLUSTER, self.cluster.destroy_cluster, env.cluster_name),
        ):
            try:
                action(target)
            except Exception as e:
                logger.warning("%s: %s", step, e)
                failures.append(CleanupFailure(step, e))
        if env.kubeconfig is not None:
            env.kubeconfig.unlink(missing_ok=True)
        return failures

    def teardown(self) -> None:
        """Clean up the environment and release the cluster.

        Background processes are always terminated, even with SKIP_TEST_CLEANUP.
        Nothing is deleted when setup never reached the cluster.

        Raises:
            CleanupError: With every failure from cleanup and cluster release.
        """
        console.print("[yellow]\u2139\ufe0f  finishing tests, cleaning cluster ...[/yellow]")
        failures: list[CleanupFailure] = []
        if self.deploy_started and self.flags.cleanup_required:
            try:
                self.cleanup()
            except CleanupError as e:
                failures.extend(e.failures)
        else:
            if not self.deploy_started:
                console.print("[yellow]   Nothing was deployed, skipping test cleanup[/yellow]")
            else:
                console.print("[yellow]   Skipping test cleanup (SKIP_TEST_CLEANUP=true)[/yellow]")
            failures.extend(
                CleanupFailure(STEP_PROCESSES, error) for error in self.environment.processes.kill_all()
            )

        failures.extend(self._release_cluster())
        if failures:
            raise CleanupError(failures)
