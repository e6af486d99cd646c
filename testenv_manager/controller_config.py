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

"""ControllerConfig custom resource: build, submit, and wait for ConfigReady."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from rich.panel import Panel

from testenv_manager import console
from testenv_manager.config import ProcessingSettings, SnowflakeSettings
from testenv_manager.constants import (
    API_GROUP,
    API_VERSION,
    AWS_SECRET_NAME,
    CONFIG_READY_CONDITION,
    CONFIG_READY_TIMEOUT_SECONDS,
    CONTROLLER_CONFIG_KIND,
    CONTROLLER_CONFIG_NAME,
    CONTROLLER_CONFIG_PLURAL,
    DEFAULT_SNOWFLAKE_CONFIG_NAME,
    DEFAULT_SNOWFLAKE_REGION,
    SNOWFLAKE_SECRET_NAME,
)
from testenv_manager.errors import CommandFailedError, DeadlineExceededError
from testenv_manager.kube import ResourceKind, ResourceRegistry
from testenv_manager.utils import CommandRunner, quote

CONTROLLER_CONFIG_RESOURCE = ResourceKind(
    group=API_GROUP,
    version=API_VERSION,
    kind=CONTROLLER_CONFIG_KIND,
    plural=CONTROLLER_CONFIG_PLURAL,
)


class CustomObjectClient(Protocol):
    registry: ResourceRegistry

    def create(self, manifest: dict) -> dict: ...


# ============================================================================
# Resource model
# ============================================================================

class _ResourceModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ObjectMeta(_ResourceModel):
    name: str = Field(min_length=1)
    namespace: str = Field(min_length=1)


class SnowflakeConfig(_ResourceModel):
    name: str = Field(min_length=1)
    account: str = Field(min_length=1)
    user: str = Field(min_length=1)
    role: str = Field(min_length=1)
    region: str = Field(min_length=1)
    warehouse: str = Field(min_length=1)
    private_key_secret: str = Field(min_length=1)


class UnstructuredDataProcessingConfig(_ResourceModel):
    docling_serve_url: str = Field(alias="doclingServeURL", min_length=1)
    ingestion_bucket: str = Field(min_length=1)
    data_storage_bucket: str = Field(min_length=1)
    cache_directory: str = Field(min_length=1)
    max_concurrent_docling_tasks: int = Field(ge=1)
    max_concurrent_langchain_tasks: int = Field(ge=1)


class ControllerConfigSpec(_ResourceModel):
    aws_secret: str = Field(min_length=1)
    snowflake_config: SnowflakeConfig
    unstructured_data_processing_config: UnstructuredDataProcessingConfig


class ControllerConfig(_ResourceModel):
    """The controller's cluster-wide configuration object.

    Secrets are referenced by name only.
    """

    api_version: str = CONTROLLER_CONFIG_RESOURCE.api_version
    kind: str = CONTROLLER_CONFIG_KIND
    metadata: ObjectMeta
    spec: ControllerConfigSpec

    def to_manifest(self) -> dict:
        return self.model_dump(by_alias=True)


# ============================================================================
# Factory
# ============================================================================

class ConfigResourceFactory:
    """Build the ControllerConfig from the environment and bring it to ConfigReady."""

    def __init__(self, runner: CommandRunner, client: CustomObjectClient, namespace: str) -> None:
        self.runner = runner
        self.client = client
        self.namespace = namespace

    def build(self, name: str = CONTROLLER_CONFIG_NAME) -> ControllerConfig:
        """Resolve every field from its environment override or default.

        Raises:
            pydantic.ValidationError: If an override is invalid.
        """
        identity = SnowflakeSettings()
        processing = ProcessingSettings()
        return ControllerConfig(
            metadata=ObjectMeta(name=name, namespace=self.namespace),
            spec=ControllerConfigSpec(
                aws_secret=AWS_SECRET_NAME,
                snowflake_config=SnowflakeConfig(
                    name=DEFAULT_SNOWFLAKE_CONFIG_NAME,
                    account=identity.account,
                    user=identity.user,
                    role=identity.role,
                    region=DEFAULT_SNOWFLAKE_REGION,
                    warehouse=identity.warehouse,
                    private_key_secret=SNOWFLAKE_SECRET_NAME,
                ),
                unstructured_data_processing_config=UnstructuredDataProcessingConfig(
                    **processing.model_dump(),
                ),
            ),
        )

    def submit(self, resource: ControllerConfig) -> None:
        """Register the ControllerConfig kind with the client, then create the object.

        Raises:
            ClusterApiError: If the API server rejects the object.
        """
        console.print(Panel.fit("Creating ControllerConfig", style="bold blue"))
        self.client.registry.register(CONTROLLER_CONFIG_RESOURCE)
        self.client.create(resource.to_manifest())
        console.print(f"[green]\u2705 ControllerConfig '{resource.metadata.name}' created[/green]")

    def wait_healthy(
        self,
        name: str,
        namespace: str,
        timeout: int = CONFIG_READY_TIMEOUT_SECONDS,
    ) -> None:
        """Wait until the resource reports ConfigReady=true.

        Raises:
            DeadlineExceededError: If the condition is not met within *timeout* seconds.
            CommandFailedError: If the status query fails for another reason.
        """
        console.print(f"[yellow]\u2139\ufe0f  Waiting for ControllerConfig to be healthy ({CONFIG_READY_CONDITION}=true)...[/yellow]")
        result = self.runner.run(
            f"kubectl wait --for=condition={CONFIG_READY_CONDITION}=true "
            f"{self.resource_ref(name)} -n {quote(namespace)} --timeout={timeout}s"
        )
        if not result.ok:
            if "timed out" in result.output.lower():
                raise DeadlineExceededError(
                    f"ControllerConfig {namespace}/{name} not {CONFIG_READY_CONDITION} after {timeout}s"
                )
            raise CommandFailedError(result.command, result.exit_code, result.output)
        console.print("[green]\u2705 ControllerConfig is healthy[/green]")

    @staticmethod
    def resource_ref(name: str) -> str:
        return f"{CONTROLLER_CONFIG_PLURAL}.{API_GROUP}/{name}"

    def cleanup_commands(self, name: str = CONTROLLER_CONFIG_NAME) -> list[str]:
        return [
            f"kubectl delete {CONTROLLER_CONFIG_PLURAL}.{API_GROUP} {name} "
            f"-n {quote(self.namespace)} --ignore-not-found=true"
        ]
