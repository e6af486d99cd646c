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

"""Names, timeouts, defaults, and auxiliary dependency descriptors."""

from __future__ import annotations

from pathlib import Path

import yaml


def load_dependencies() -> dict:
    """Load auxiliary dependency descriptors from dependencies.yaml.

    Returns:
        Parsed YAML content keyed by dependency name.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


# -- Cluster --
CLUSTER_NAME_PREFIX = "test-cluster"
KIND_WAIT_TIMEOUT = "120s"
KIND_CONTEXT_PREFIX = "kind-"
REQUIRED_TOOLS = ("kind", "kubectl", "make")

# -- Namespaces & workload --
TEST_NAMESPACE = "unstructured-controller-namespace"
CONTROLLER_DEPLOYMENT = "unstructured-data-controller-controller-manager"
CONTROLLER_LOG_FILE = "controller-manager-logs.txt"
CACHE_VOLUME_NAME = "cache-volume"
CACHE_MOUNT_PATH = "/tmp/cache"

# -- Secrets --
SNOWFLAKE_SECRET_NAME = "snowflake-private-key"
SNOWFLAKE_SECRET_KEY = "privateKey"
AWS_SECRET_NAME = "aws-secret"

# -- Custom resources --
API_GROUP = "operator.dataverse.redhat.com"
API_VERSION = "v1alpha1"
CONTROLLER_CONFIG_KIND = "ControllerConfig"
CONTROLLER_CONFIG_PLURAL = "controllerconfigs"
CONTROLLER_CONFIG_NAME = "controllerconfig"
CONFIG_READY_CONDITION = "ConfigReady"

# -- Relative paths (from the controller project root) --
REL_AWS_SECRET_MANIFEST = "config/samples/aws-secret.yaml"

# -- Make targets --
MAKE_DEPLOY = "make IMG={image} deploy"
MAKE_UNDEPLOY = "make undeploy ignore-not-found=true"

# -- Timeouts & intervals (seconds unless noted) --
DEPLOYMENT_READY_TIMEOUT_SECONDS = 600
WORKLOAD_POLL_INTERVAL_SECONDS = 2
DEFAULT_DEPENDENCY_POLL_INTERVAL_SECONDS = 5
CONFIG_READY_TIMEOUT_SECONDS = 120
CLEANUP_DELETE_TIMEOUT = "60s"
PROCESS_KILL_WAIT_SECONDS = 5

# -- Snowflake defaults --
DEFAULT_SNOWFLAKE_CONFIG_NAME = "e2e"
DEFAULT_SNOWFLAKE_ACCOUNT = "gdadclc-rhplatformtest"
DEFAULT_SNOWFLAKE_USER = "shikgupt"
DEFAULT_SNOWFLAKE_ROLE = "accountadmin"
DEFAULT_SNOWFLAKE_REGION = "us-west-2"
DEFAULT_SNOWFLAKE_WAREHOUSE = "DEFAULT"

# -- Processing defaults --
DEFAULT_DOCLING_SERVE_URL = "http://docling-serve:5001"
DEFAULT_INGESTION_BUCKET = "unstructured-bucket"
DEFAULT_DATA_STORAGE_BUCKET = "data-storage-bucket"
DEFAULT_CACHE_DIRECTORY = "/tmp/cache/"
DEFAULT_MAX_CONCURRENT_DOCLING_TASKS = 5
DEFAULT_MAX_CONCURRENT_LANGCHAIN_TASKS = 10
