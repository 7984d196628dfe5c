# /*
# Copyright 2026 The Stack Manager Authors.
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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_dependencies() -> dict:
    """Load chart versions and image lists from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


def stack_images() -> list[str]:
    """Return the ordered pre-pull manifest for the full stack."""
    return [
        *dep_value("opensearch", "images", default=[]),
        *dep_value("jaeger", "images", default=[]),
        *dep_value("test_images", "busybox", default=[]),
        *dep_value("otel_demo", "images", default=[]),
    ]


# -- Preflight --
REQUIRED_TOOLS = ("bash", "curl", "kubectl", "helm")
VERSION_FLOORS = (("kubectl", "1.25.0"), ("helm", "3.10.0"))
DEFAULT_MIN_CPU_CORES = 4
DEFAULT_MIN_MEM_MB = 6000
VERSION_COMMAND_TIMEOUT_SECONDS = 15
CLUSTER_INFO_TIMEOUT_SECONDS = 30

# -- Timeouts --
DEFAULT_ROLLOUT_TIMEOUT_SECONDS = 600
DEFAULT_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_VERIFY_TIMEOUT_SECONDS = 30
VERIFY_SETTLE_SECONDS = 3.0
VERIFY_PROBE_INTERVAL_SECONDS = 1.0
VERIFY_REQUEST_TIMEOUT_SECONDS = 2.0
VERIFY_OK_STATUS_CODES = (200, 404)
HELM_INSTALL_TIMEOUT = "10m"
HELM_INSTALL_TIMEOUT_OTEL = "15m"
TUNNEL_STOP_TIMEOUT_SECONDS = 5

# -- Namespaces --
NS_OPENSEARCH = "opensearch"
NS_JAEGER = "jaeger"
NS_OTEL_DEMO = "otel-demo"
NS_INGRESS_NGINX = "ingress-nginx"
NS_CERT_MANAGER = "cert-manager"
STACK_NAMESPACES = (NS_OTEL_DEMO, NS_JAEGER, NS_OPENSEARCH)

# -- Helm releases --
HELM_RELEASE_OPENSEARCH = "opensearch"
HELM_RELEASE_DASHBOARDS = "opensearch-dashboards"
HELM_RELEASE_JAEGER = "jaeger"
HELM_RELEASE_OTEL_DEMO = "otel-demo"

# -- Helm repos --
HELM_REPO_OPENSEARCH = "opensearch"
HELM_REPO_OPENSEARCH_URL = "https://opensearch-project.github.io/helm-charts/"
HELM_REPO_OTEL = "open-telemetry"
HELM_REPO_OTEL_URL = "https://open-telemetry.github.io/opentelemetry-helm-charts"
HELM_CHART_OPENSEARCH = "opensearch/opensearch"
HELM_CHART_DASHBOARDS = "opensearch/opensearch-dashboards"
HELM_CHART_OTEL_DEMO = "open-telemetry/opentelemetry-demo"

# -- Workloads --
KIND_DEPLOYMENT = "Deployment"
KIND_STATEFULSET = "StatefulSet"
WORKLOAD_KINDS = (KIND_DEPLOYMENT, KIND_STATEFULSET)
STS_OPENSEARCH = "opensearch-cluster-single"
DEPLOY_DASHBOARDS = "opensearch-dashboards"
DEPLOY_JAEGER = "jaeger"
DEPLOY_FRONTEND = "frontend"
DEPLOY_LOAD_GENERATOR = "load-generator"
LABEL_APP_NAME = "app.kubernetes.io/name"
LABEL_STS_POD_NAME = "statefulset.kubernetes.io/pod-name"

# -- Services --
SVC_OPENSEARCH = "opensearch-cluster-single"
SVC_DASHBOARDS = "opensearch-dashboards"
SVC_JAEGER_QUERY = "jaeger-query-clusterip"
SVC_FRONTEND_PROXY = "frontend-proxy"
SVC_LOAD_GENERATOR = "load-generator"
SVC_INGRESS_CONTROLLER = "ingress-nginx-controller"

# -- Relative paths (resolved against the values directory) --
REL_OPENSEARCH_VALUES = "opensearch-values.yaml"
REL_DASHBOARDS_VALUES = "opensearch-dashboard-values.yaml"
REL_JAEGER_VALUES = "jaeger-values.yaml"
REL_JAEGER_CONFIG = "jaeger-config.yaml"
REL_JAEGER_QUERY_SERVICE = "jaeger-query-service.yaml"
REL_OTEL_DEMO_VALUES = "otel-demo-values.yaml"
REL_JAEGER_CHART = "helm-charts/charts/jaeger"
REL_CLUSTER_ISSUER = "cluster-issuer.yaml"
REL_INGRESS_TLS = "ingress-with-tls.yaml"
REQUIRED_VALUES_FILES = (
    REL_OPENSEARCH_VALUES,
    REL_DASHBOARDS_VALUES,
    REL_JAEGER_VALUES,
    REL_JAEGER_CONFIG,
    REL_JAEGER_QUERY_SERVICE,
    REL_OTEL_DEMO_VALUES,
)

# -- OKE defaults --
DEFAULT_CONFIG_FILE = "cluster-config.env"
DEFAULT_OKE_CLUSTER_NAME = "jaeger-demo-cluster"
DEFAULT_OKE_NODE_POOL_NAME = "jaeger-demo-nodes"
DEFAULT_OKE_KUBERNETES_VERSION = "v1.28.2"
DEFAULT_OKE_NODE_SHAPE = "VM.Standard.E4.Flex"
DEFAULT_OKE_OCPUS = 4
DEFAULT_OKE_MEMORY_GB = 32
DEFAULT_OKE_NODE_COUNT = 3
OKE_CNI_TYPE = "OCI_VCN_IP_NATIVE"
OKE_ACTIVE_STATE = "ACTIVE"
OKE_REQUIRED_KEYS = (
    "OCI_COMPARTMENT_ID",
    "OCI_VCN_OCID",
    "OCI_PUBLIC_LB_SUBNET_OCID",
    "OCI_WORKER_SUBNET_OCID",
)
KEY_CLUSTER_ID = "CLUSTER_ID"
KEY_NODE_POOL_ID = "NODE_POOL_ID"

# -- GKE ingress defaults --
DEFAULT_INGRESS_POD_TIMEOUT_SECONDS = 600
DEFAULT_INGRESS_IP_TIMEOUT_SECONDS = 600
INGRESS_POLL_INTERVAL_SECONDS = 10.0
INGRESS_DONE_POD_PHASES = ("Running", "Succeeded")
INGRESS_HOSTS = (
    ("Jaeger UI", "jaegertracing.fun"),
    ("Shop Frontend", "shop.jaegertracing.fun"),
    ("Load Generator", "loadgen.jaegertracing.fun"),
    ("OpenSearch Dashboards", "opensearch.jaegertracing.fun"),
)
INGRESS_CERTIFICATE = "jaegertracing-fun-tls"
