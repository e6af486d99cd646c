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

"""Configuration inspection subcommands."""

from __future__ import annotations

import typer
import yaml
from rich.panel import Panel
from rich.syntax import Syntax

from testenv_manager import console
from testenv_manager.config import DeploySettings, EnvironmentFlags, display_config
from testenv_manager.constants import TEST_NAMESPACE
from testenv_manager.controller_config import ConfigResourceFactory
from testenv_manager.kube import ClusterClient
from testenv_manager.utils import ShellCommandRunner

app = typer.Typer(help="Inspect the resolved configuration.")


@app.command()
def show(
    cluster_name: str = typer.Option(
        "<generated>", "--cluster-name", help="Cluster name to display"),
) -> None:
    """Print skip flags, deploy inputs, and the ControllerConfig that would be submitted."""
    deploy_cfg = DeploySettings()
    display_config(EnvironmentFlags(), deploy_cfg, deploy_cfg.cluster_name or cluster_name, TEST_NAMESPACE)

    factory = ConfigResourceFactory(ShellCommandRunner(deploy_cfg.project_dir), ClusterClient(), TEST_NAMESPACE)
    manifest = yaml.safe_dump(factory.build().to_manifest(), sort_keys=False)
    console.print(Panel.fit("ControllerConfig", style="bold blue"))
    console.print(Syntax(manifest, "yaml"))
