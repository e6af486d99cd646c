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

import pytest

from testenv_manager.cluster import ClusterProvisioner, generate_cluster_name, kube_context
from testenv_manager.errors import CommandFailedError


def test_generated_names_are_unique():
    names = {generate_cluster_name() for _ in range(1000)}
    assert len(names) == 1000
    assert all(name.startswith("test-cluster-") for name in names)


def test_generated_name_uses_prefix():
    assert generate_cluster_name("e2e").startswith("e2e-")


def test_kube_context():
    assert kube_context("test-cluster-1") == "kind-test-cluster-1"


def test_create_and_destroy_cluster(runner):
    provisioner = ClusterProvisioner(runner)
    provisioner.create_cluster("test-cluster-1")
    provisioner.destroy_cluster("test-cluster-1")
    assert runner.commands == [
        "kind create cluster --name test-cluster-1 --wait 120s",
        "kind delete cluster --name test-cluster-1",
    ]


def test_create_cluster_failure(runner):
    runner.fail("kind create", output="node(s) already exist")
    with pytest.raises(CommandFailedError, match="already exist"):
        ClusterProvisioner(runner).create_cluster("test-cluster-1")


def test_existing_namespace_is_accepted(runner):
    runner.fail("kubectl create namespace", output='namespaces "ns" AlreadyExists')
    ClusterProvisioner(runner).create_namespace("ns")


def test_namespace_creation_failure(runner):
    runner.fail("kubectl create namespace", output="connection refused")
    with pytest.raises(CommandFailedError):
        ClusterProvisioner(runner).create_namespace("ns")


def test_delete_namespace_ignores_missing(runner):
    ClusterProvisioner(runner).delete_namespace("ns")
    assert runner.commands == ["kubectl delete namespace ns --ignore-not-found=true"]


def test_export_kubeconfig(runner):
    ClusterProvisioner(runner).export_kubeconfig("test-cluster-1")
    assert runner.commands == ["kind export kubeconfig --name test-cluster-1"]
