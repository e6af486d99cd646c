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

"""Controller and auxiliary dependency deployment."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field
from rich.panel import Panel

from testenv_manager import console, logger
from testenv_manager.config import EnvironmentFlags
from testenv_manager.constants import (
    CACHE_MOUNT_PATH,
    CACHE_VOLUME_NAME,
    CONTROLLER_DEPLOYMENT,
    CONTROLLER_LOG_FILE,
    DEFAULT_DEPENDENCY_POLL_INTERVAL_SECONDS,
    DEPENDENCIES,
    DEPLOYMENT_READY_TIMEOUT_SECONDS,
    MAKE_DEPLOY,
    MAKE_UNDEPLOY,
    WORKLOAD_POLL_INTERVAL_SECONDS,
)
from testenv_manager.errors import CommandFailedError
from testenv_manager.processes import ProcessTracker
from testenv_manager.utils import CommandRunner, quote
from testenv_manager.waiter import wait_for


class DeploymentStatusSource(Protocol):
    def deployment_available(self, name: str, namespace: str) -> bool: ...


class AuxiliaryDependency(BaseModel):
    """A service the controller needs but that is not under test.

    Attributes:
        name: Key in dependencies.yaml.
        manifests: Manifest file or directory, relative to the project root.
        deployment: Deployment whose availability gates readiness.
        service: Service to port-forward to the test host.
        local_port: Port opened on the test host.
        remote_port: Service port inside the cluster.
        poll_interval_seconds: Readiness poll interval.
        skip_env: Environment variable that skips this dependency.
    """

    name: str
    manifests: str
    deployment: str
    service: str
    local_port: int = Field(ge=1, le=65535)
    remote_port: int = Field(ge=1, le=65535)
    poll_interval_seconds: float = Field(default=DEFAULT_DEPENDENCY_POLL_INTERVAL_SECONDS, gt=0)
    skip_env: str


def load_auxiliary_dependencies() -> list[AuxiliaryDependency]:
    """Build dependency descriptors from dependencies.yaml, in file order."""
    return [AuxiliaryDependency(name=name, **spec) for name, spec in DEPENDENCIES.items()]


def wait_for_deployment(
    client: DeploymentStatusSource,
    name: str,
    namespace: str,
    interval: float,
    timeout: float = DEPLOYMENT_READY_TIMEOUT_SECONDS,
) -> None:
    """Block until a deployment reports Available.

    Raises:
        DeadlineExceededError: If the deployment is not available within *timeout*.
    """
    wait_for(
        lambda: client.deployment_available(name, namespace),
        timeout=timeout,
        interval=interval,
        description=f"deployment {namespace}/{name} to be available",
    )


def cache_volume_patch() -> list[dict]:
    """JSON patch appending the scratch cache volume and its mount."""
    return [
        {
            "op": "add",
            "path": "/spec/template/spec/volumes/-",
            "value": {"name": CACHE_VOLUME_NAME, "emptyDir": {}},
        },
        {
            "op": "add",
            "path": "/spec/template/spec/containers/0/volumeMounts/-",
            "value": {"name": CACHE_VOLUME_NAME, "mountPath": CACHE_MOUNT_PATH},
        },
    ]


# ============================================================================
# Auxiliary dependencies
# ============================================================================

class DependencyDeployer:
    """Deploy auxiliary services and tunnel them to the test host."""

    def __init__(
        self,
        runner: CommandRunner,
        client: DeploymentStatusSource,
        tracker: ProcessTracker,
        namespace: str,
        flags: EnvironmentFlags,
        project_dir: Path | None = None,
        dependencies: list[AuxiliaryDependency] | None = None,
    ) -> None:
        self.runner = runner
        self.client = client
        self.tracker = tracker
        self.namespace = namespace
        self.flags = flags
        self.project_dir = project_dir
        self.dependencies = load_auxiliary_dependencies() if dependencies is None else dependencies

    def deploy_all(self) -> None:
        """Deploy every dependency whose skip flag is unset, one after another."""
        for dep in self.dependencies:
            if self.flags.skips(dep.skip_env):
                console.print(f"[yellow]   Skipping {dep.name} ({dep.skip_env}=true)[/yellow]")
                continue
            self.deploy(dep)

    def deploy(self, dep: AuxiliaryDependency) -> None:
        """Apply, wait for, and port-forward a single dependency.

        Raises:
            CommandFailedError: If applying the manifests or starting the tunnel fails.
            DeadlineExceededError: If the deployment never becomes available.
        """
        console.print(Panel.fit(f"Deploying {dep.name}", style="bold blue"))
        self.runner.run(f"kubectl apply -n {quote(self.namespace)} -f {quote(dep.manifests)}").check()

        console.print(f"[yellow]\u2139\ufe0f  Waiting for {dep.deployment} to be ready...[/yellow]")
        wait_for_deployment(self.client, dep.deployment, self.namespace, dep.poll_interval_seconds)

        console.print(f"[yellow]\u2139\ufe0f  Port-forwarding {dep.service} to localhost:{dep.local_port}[/yellow]")
        self.tracker.start(
            ["kubectl", "port-forward", "-n", self.namespace,
             f"services/{dep.service}", f"{dep.local_port}:{dep.remote_port}"],
            description=f"port-forward {dep.service} {dep.local_port}:{dep.remote_port}",
            cwd=self.project_dir,
        )
        console.print(f"[green]\u2705 {dep.name} is ready[/green]")

    def cleanup_commands(self) -> list[str]:
        """Manifest deletions for every dependency, skipped or not."""
        return [
            f"kubectl delete -f {quote(dep.manifests)} -n {quote(self.namespace)} --ignore-not-found=true"
            for dep in self.dependencies
        ]


# ============================================================================
# Controller under test
# ============================================================================

class WorkloadDeployer:
    """Deploy the controller, add its cache volume, and follow its logs."""

    def __init__(
        self,
        runner: CommandRunner,
        client: DeploymentStatusSource,
        tracker: ProcessTracker,
        namespace: str,
        project_dir: Path,
        deployment: str = CONTROLLER_DEPLOYMENT,
    ) -> None:
        self.runner = runner
        self.client = client
        self.tracker = tracker
        self.namespace = namespace
        self.project_dir = project_dir
        self.deployment = deployment

    @property
    def log_path(self) -> Path:
        return self.project_dir / CONTROLLER_LOG_FILE

    def deploy(self, image: str) -> None:
        """Deploy the controller and block until it is available.

        The patch targets the deployment created by ``make deploy`` and runs
        before the wait, so the wait observes the final pod spec.

        Args:
            image: Controller image reference.

        Raises:
            CommandFailedError: If deploy or patch fails.
            DeadlineExceededError: If the deployment never becomes available.
        """
        console.print(Panel.fit("Deploying controller", style="bold blue"))
        console.print(f"[yellow]Image: {image}[/yellow]")
        self.runner.run(MAKE_DEPLOY.format(image=quote(image))).check()

        console.print("[yellow]\u2139\ufe0f  Patching controller-manager to add cache directory volume...[/yellow]")
        self.patch_cache_volume()

        console.print("[yellow]\u2139\ufe0f  Waiting for controller-manager deployment to be available...[/yellow]")
        wait_for_deployment(self.client, self.deployment, self.namespace, WORKLOAD_POLL_INTERVAL_SECONDS)
        console.print("[green]\u2705 Controller deployed[/green]")

        self.capture_logs()

    def patch_cache_volume(self) -> None:
        """Append the cache volume and mount to the existing deployment."""
        patch = json.dumps(cache_volume_patch())
        self.runner.run(
            f"kubectl patch deployment {quote(self.deployment)} -n {quote(self.namespace)} "
            f"--type=json -p {quote(patch)}"
        ).check()

    def capture_logs(self) -> None:
        """Follow controller logs into a file; failing to start is not fatal."""
        console.print(f"[yellow]\u2139\ufe0f  Capturing controller-manager logs to {self.log_path}[/yellow]")
        try:
            self.tracker.start(
                ["kubectl", "logs", "-f", "-n", self.namespace, f"deployments/{self.deployment}"],
                description=f"log follower for {self.deployment}",
                log_path=self.log_path,
                cwd=self.project_dir,
            )
        except CommandFailedError as e:
            logger.warning("failed to capture controller logs: %s", e)

    def cleanup_commands(self) -> list[str]:
        return [MAKE_UNDEPLOY]
