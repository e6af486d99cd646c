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

"""Kubernetes API access: deployment status and custom resource creation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from testenv_manager import logger
from testenv_manager.errors import ClusterApiError

HTTP_NOT_FOUND = 404


@dataclass(frozen=True)
class ResourceKind:
    """API coordinates of a custom resource kind.

    Attributes:
        group: API group, e.g. ``operator.dataverse.redhat.com``.
        version: API version within the group.
        kind: Resource kind as written in manifests.
        plural: Lower-case plural used in REST paths.
    """

    group: str
    version: str
    kind: str
    plural: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"


class ResourceRegistry:
    """Maps (apiVersion, kind) to the REST coordinates the client needs."""

    def __init__(self) -> None:
        self._kinds: dict[tuple[str, str], ResourceKind] = {}

    def register(self, kind: ResourceKind) -> None:
        self._kinds[(kind.api_version, kind.kind)] = kind

    def lookup(self, api_version: str, kind: str) -> ResourceKind:
        """Resolve a registered kind.

        Raises:
            ClusterApiError: If the kind was never registered.
        """
        try:
            return self._kinds[(api_version, kind)]
        except KeyError:
            raise ClusterApiError(f"kind {kind} ({api_version}) is not registered with the client") from None

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._kinds


def is_deployment_available(deployment: client.V1Deployment) -> bool:
    """True when the deployment reports condition Available=True."""
    conditions = (deployment.status.conditions if deployment.status else None) or []
    return any(c.type == "Available" and c.status == "True" for c in conditions)


class ClusterClient:
    """Thin wrapper over the Kubernetes API for one kubeconfig context.

    The kubeconfig is loaded on first use, so the client can be built before the
    cluster it targets exists.
    """

    def __init__(
        self,
        context: str | None = None,
        registry: ResourceRegistry | None = None,
        config_file: Path | None = None,
    ) -> None:
        self.context = context
        self.config_file = config_file
        self.registry = registry or ResourceRegistry()
        self._api_client: client.ApiClient | None = None

    def _api(self) -> client.ApiClient:
        if self._api_client is None:
            logger.debug("loading kubeconfig (context=%s)", self.context or "<current>")
            self._api_client = config.new_client_from_config(
                config_file=str(self.config_file) if self.config_file else None,
                context=self.context,
            )
        return self._api_client

    def deployment_available(self, name: str, namespace: str) -> bool:
        """Report whether a deployment exists and is Available.

        A missing deployment counts as not yet available.

        Raises:
            ApiException: For API errors other than not-found.
        """
        try:
            deployment = client.AppsV1Api(self._api()).read_namespaced_deployment_status(name, namespace)
        except ApiException as e:
            if e.status == HTTP_NOT_FOUND:
                return False
            raise
        return is_deployment_available(deployment)

    def create(self, manifest: dict) -> dict:
        """Create a namespaced custom object from its manifest.

        Args:
            manifest: Full object including apiVersion, kind and metadata.

        Returns:
            The object as stored by the API server.

        Raises:
            ClusterApiError: If the kind is unregistered or the API rejects the object.
        """
        kind = self.registry.lookup(manifest["apiVersion"], manifest["kind"])
        namespace = manifest["metadata"]["namespace"]
        try:
            return client.CustomObjectsApi(self._api()).create_namespaced_custom_object(
                kind.group, kind.version, namespace, kind.plural, manifest,
            )
        except ApiException as e:
            raise ClusterApiError(
                f"failed to create {kind.kind} {namespace}/{manifest['metadata']['name']}: "
                f"{e.status} {e.reason}"
            ) from e
