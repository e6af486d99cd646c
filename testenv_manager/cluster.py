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

"""kind cluster and namespace lifecycle."""

from __future__ import annotations

import time

from rich.panel import Panel

from testenv_manager import console
from testenv_manager.constants import CLUSTER_NAME_PREFIX, KIND_CONTEXT_PREFIX, KIND_WAIT_TIMEOUT
from testenv_manager.errors import CommandFailedError
from testenv_manager.utils import CommandRunner, quote

_last_stamp = 0


def generate_cluster_name(prefix: str = CLUSTER_NAME_PREFIX) -> str:
    """Return a cluster name unique across parallel runs and within this process.

    The suffix is a nanosecond timestamp, bumped when the clock has not advanced
    since the previous call.

    Args:
        prefix: Name prefix.

    Returns:
        A name such as ``test-cluster-1767225600000000000``.
    """
    global _last_stamp
    _last_stamp = max(time.time_ns(), _last_stamp + 1)
    return f"{prefix}-{_last_stamp}"


def kube_context(cluster_name: str) -> str:
    """kubeconfig context that kind writes for *cluster_name*."""
    return f"{KIND_CONTEXT_PREFIX}{cluster_name}"


class ClusterProvisioner:
    """Create and destroy the kind cluster and the test namespace."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def create_cluster(self, name: str) -> None:
        """Create a kind cluster and wait for its control plane.

        Raises:
            CommandFailedError: If kind fails.
        """
        console.print(Panel.fit(f"Creating kind cluster '{name}'", style="bold blue"))
        self.runner.run(f"kind create cluster --name {quote(name)} --wait {KIND_WAIT_TIMEOUT}").check()
        console.print("[green]\u2705 Cluster created successfully[/green]")

    def destroy_cluster(self, name: str) -> None:
        """Delete the kind cluster.

        Raises:
            CommandFailedError: If kind fails.
        """
        console.print(f"[yellow]\u2139\ufe0f  Deleting kind cluster '{name}'...[/yellow]")
        self.runner.run(f"kind delete cluster --name {quote(name)}").check()
        console.print(f"[green]\u2705 Cluster '{name}' deleted[/green]")

    def export_kubeconfig(self, name: str) -> None:
        """Write the cluster's credentials to the active kubeconfig.

        Raises:
            CommandFailedError: If the cluster does not exist.
        """
        self.runner.run(f"kind export kubeconfig --name {quote(name)}").check()

    def create_namespace(self, name: str) -> None:
        """Create the namespace; an existing one is accepted.

        Raises:
            CommandFailedError: If creation fails for any other reason.
        """
        result = self.runner.run(f"kubectl create namespace {quote(name)}")
        if result.ok:
            console.print(f"[green]\u2705 Namespace '{name}' created[/green]")
        elif "AlreadyExists" in result.output:
            console.print(f"[yellow]   Namespace '{name}' already exists[/yellow]")
        else:
            raise CommandFailedError(result.command, result.exit_code, result.output)

    def delete_namespace(self, name: str) -> None:
        """Delete the namespace if present.

        Raises:
            CommandFailedError: If kubectl fails.
        """
        console.print(f"[yellow]\u2139\ufe0f  Deleting namespace '{name}'...[/yellow]")
        self.runner.run(f"kubectl delete namespace {quote(name)} --ignore-not-found=true").check()
