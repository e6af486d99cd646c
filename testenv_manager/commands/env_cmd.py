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

"""Environment lifecycle subcommands (run, up, teardown)."""

from __future__ import annotations

import subprocess
import threading

import typer

from testenv_manager import console
from testenv_manager.config import DeploySettings, EnvironmentFlags, display_config
from testenv_manager.errors import CleanupError, SandboxError
from testenv_manager.orchestrator import EnvironmentOrchestrator, TestEnvironment

app = typer.Typer(help="Provision and tear down test environments.")


def _build_orchestrator(cluster_name: str | None = None) -> EnvironmentOrchestrator:
    deploy_cfg = DeploySettings()
    if cluster_name is not None:
        deploy_cfg = deploy_cfg.model_copy(update={"cluster_name": cluster_name})
    environment = TestEnvironment.from_env(deploy_cfg)
    display_config(environment.flags, deploy_cfg, environment.cluster_name, environment.namespace)
    return EnvironmentOrchestrator(environment, deploy_cfg)


def _setup_or_exit(orchestrator: EnvironmentOrchestrator) -> None:
    """Run setup; on failure release the cluster and exit non-zero.

    KeyboardInterrupt also releases the cluster, then propagates.
    """
    try:
        orchestrator.setup()
    except BaseException as e:
        try:
            orchestrator.release_cluster()
        except CleanupError as cleanup_err:
            console.print(f"[yellow]\u26a0\ufe0f  {cleanup_err}[/yellow]")
        if isinstance(e, Exception):
            raise typer.Exit(1) from e
        raise


def _teardown_with_warning(orchestrator: EnvironmentOrchestrator) -> None:
    """Tear down; leftovers are reported but do not change the exit code."""
    try:
        orchestrator.teardown()
    except CleanupError as e:
        console.print(f"[yellow]\u26a0\ufe0f  cleanup warning: {e}[/yellow]")


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def run(ctx: typer.Context) -> None:
    """Set up an environment, run a test command in it, then tear it down.

    Example: ./cli.py env run -- go test -tags=e2e ./test/e2e/...
    """
    if not ctx.args:
        raise typer.BadParameter("a test command is required, e.g. `env run -- pytest -m e2e`")
    orchestrator = _build_orchestrator()
    _setup_or_exit(orchestrator)
    try:
        result = subprocess.run(ctx.args, cwd=orchestrator.deploy_cfg.project_dir)
    finally:
        _teardown_with_warning(orchestrator)
    raise typer.Exit(result.returncode)


@app.command()
def up() -> None:
    """Set up an environment and keep it (and its port-forwards) until Ctrl+C."""
    orchestrator = _build_orchestrator()
    _setup_or_exit(orchestrator)
    console.print("[green]Environment is up. Press Ctrl+C to tear it down.[/green]")
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        console.print()
    finally:
        _teardown_with_warning(orchestrator)


@app.command()
def teardown(
    cluster_name: str | None = typer.Option(
        None, "--cluster-name", help="kind cluster to tear down (overrides CLUSTER_NAME)"),
) -> None:
    """Clean up a previously provisioned environment."""
    flags = EnvironmentFlags()
    if cluster_name is None and DeploySettings().cluster_name is None and not flags.skip_cluster_setup:
        raise typer.BadParameter("--cluster-name (or CLUSTER_NAME) is required unless SKIP_CLUSTER_SETUP=true")
    orchestrator = _build_orchestrator(cluster_name)
    try:
        orchestrator.adopt_cluster()
        orchestrator.teardown()
    except SandboxError as e:
        console.print(f"[red]\u274c {e}[/red]")
        raise typer.Exit(1)
