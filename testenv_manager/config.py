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

"""Configuration classes and config display."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from testenv_manager import console
from testenv_manager.constants import (
    DEFAULT_CACHE_DIRECTORY,
    DEFAULT_DATA_STORAGE_BUCKET,
    DEFAULT_DOCLING_SERVE_URL,
    DEFAULT_INGESTION_BUCKET,
    DEFAULT_MAX_CONCURRENT_DOCLING_TASKS,
    DEFAULT_MAX_CONCURRENT_LANGCHAIN_TASKS,
    DEFAULT_SNOWFLAKE_ACCOUNT,
    DEFAULT_SNOWFLAKE_ROLE,
    DEFAULT_SNOWFLAKE_USER,
    DEFAULT_SNOWFLAKE_WAREHOUSE,
)


# ============================================================================
# Configuration classes
# ============================================================================

class EnvironmentFlags(BaseSettings):
    """Skip flags, read once at startup from SKIP_* env vars.

    Attributes:
        skip_cluster_setup: Reuse the current cluster instead of creating one.
        skip_cluster_cleanup: Keep the cluster and namespace after the run.
        skip_test_cleanup: Leave deployed resources in place after the run.
        skip_localstack_setup: Do not deploy the LocalStack emulator.
        skip_docling_setup: Do not deploy docling-serve.
    """

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True, frozen=True)

    skip_cluster_setup: bool = False
    skip_cluster_cleanup: bool = False
    skip_test_cleanup: bool = False
    skip_localstack_setup: bool = False
    skip_docling_setup: bool = False

    @property
    def cleanup_required(self) -> bool:
        return not self.skip_test_cleanup

    @property
    def destroy_cluster(self) -> bool:
        """Only a cluster created by this run is ever destroyed."""
        return not self.skip_cluster_cleanup and not self.skip_cluster_setup

    def skips(self, env_name: str) -> bool:
        """Return the flag backing a dependency's skip variable.

        Args:
            env_name: Skip variable name as listed in dependencies.yaml.

        Raises:
            AttributeError: If no flag is declared for *env_name*.
        """
        return getattr(self, env_name.lower())


class DeploySettings(BaseSettings):
    """Inputs for deploying the controller.

    Attributes:
        img: Controller image reference (IMG). Required.
        snowflake_secret_file: Private key file for the Snowflake secret. Required.
        project_dir: Controller project root; ``make`` and manifest paths resolve here.
        cluster_name: Explicit cluster name, or None to generate one.
    """

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True)

    img: str | None = None
    snowflake_secret_file: Path | None = None
    project_dir: Path = Field(default_factory=Path.cwd)
    cluster_name: str | None = None


class SnowflakeSettings(BaseSettings):
    """Warehouse identity block, overridable via ACCOUNT/USER/ROLE/WAREHOUSE."""

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True)

    account: str = Field(default=DEFAULT_SNOWFLAKE_ACCOUNT, min_length=1)
    user: str = Field(default=DEFAULT_SNOWFLAKE_USER, min_length=1)
    role: str = Field(default=DEFAULT_SNOWFLAKE_ROLE, min_length=1)
    warehouse: str = Field(default=DEFAULT_SNOWFLAKE_WAREHOUSE, min_length=1)


class ProcessingSettings(BaseSettings):
    """Document processing tuning for the ControllerConfig resource."""

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True)

    docling_serve_url: str = Field(default=DEFAULT_DOCLING_SERVE_URL, min_length=1)
    ingestion_bucket: str = Field(default=DEFAULT_INGESTION_BUCKET, min_length=1)
    data_storage_bucket: str = Field(default=DEFAULT_DATA_STORAGE_BUCKET, min_length=1)
    cache_directory: str = Field(default=DEFAULT_CACHE_DIRECTORY, min_length=1)
    max_concurrent_docling_tasks: int = Field(default=DEFAULT_MAX_CONCURRENT_DOCLING_TASKS, ge=1)
    max_concurrent_langchain_tasks: int = Field(default=DEFAULT_MAX_CONCURRENT_LANGCHAIN_TASKS, ge=1)


# ============================================================================
# Display
# ============================================================================

def display_config(
    flags: EnvironmentFlags,
    deploy_cfg: DeploySettings,
    cluster_name: str,
    namespace: str,
) -> None:
    """Print the resolved environment configuration.

    Args:
        flags: Resolved skip flags.
        deploy_cfg: Deployment inputs.
        cluster_name: Cluster the run targets.
        namespace: Test namespace.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print("[yellow]Cluster:[/yellow]")
    console.print(f"  cluster_name    : {cluster_name}")
    console.print(f"  namespace       : {namespace}")
    console.print(f"  create cluster  : {not flags.skip_cluster_setup}")
    console.print(f"  destroy cluster : {flags.destroy_cluster}")
    console.print(f"  test cleanup    : {flags.cleanup_required}")

    console.print("[yellow]Controller:[/yellow]")
    console.print(f"  image           : {deploy_cfg.img or '(unset)'}")
    console.print(f"  project_dir     : {deploy_cfg.project_dir}")
    console.print(f"  private key     : {deploy_cfg.snowflake_secret_file or '(unset)'}")

    console.print("[yellow]Dependencies:[/yellow]")
    console.print(f"  localstack      : {'skip' if flags.skip_localstack_setup else 'deploy'}")
    console.print(f"  docling         : {'skip' if flags.skip_docling_setup else 'deploy'}")
