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

"""The observability demo stack: releases, their dependencies, and endpoints."""

from __future__ import annotations

from stack_manager.config import StackConfig
from stack_manager.constants import (
    DEPLOY_DASHBOARDS,
    DEPLOY_FRONTEND,
    DEPLOY_JAEGER,
    DEPLOY_LOAD_GENERATOR,
    HELM_CHART_DASHBOARDS,
    HELM_CHART_OPENSEARCH,
    HELM_CHART_OTEL_DEMO,
    HELM_INSTALL_TIMEOUT,
    HELM_INSTALL_TIMEOUT_OTEL,
    HELM_RELEASE_DASHBOARDS,
    HELM_RELEASE_JAEGER,
    HELM_RELEASE_OPENSEARCH,
    HELM_RELEASE_OTEL_DEMO,
    HELM_REPO_OPENSEARCH,
    HELM_REPO_OPENSEARCH_URL,
    HELM_REPO_OTEL,
    HELM_REPO_OTEL_URL,
    KIND_DEPLOYMENT,
    KIND_STATEFULSET,
    LABEL_APP_NAME,
    LABEL_STS_POD_NAME,
    NS_JAEGER,
    NS_OPENSEARCH,
    NS_OTEL_DEMO,
    REL_DASHBOARDS_VALUES,
    REL_JAEGER_CHART,
    REL_JAEGER_CONFIG,
    REL_JAEGER_QUERY_SERVICE,
    REL_JAEGER_VALUES,
    REL_OPENSEARCH_VALUES,
    REL_OTEL_DEMO_VALUES,
    STACK_NAMESPACES,
    STS_OPENSEARCH,
    SVC_DASHBOARDS,
    SVC_FRONTEND_PROXY,
    SVC_JAEGER_QUERY,
    SVC_LOAD_GENERATOR,
    SVC_OPENSEARCH,
    dep_value,
)
from stack_manager.readiness import ReadinessTarget
from stack_manager.releases import ReleaseDescriptor
from stack_manager.tunnel import ServiceEndpoint

HELM_REPOS = [
    (HELM_REPO_OPENSEARCH, HELM_REPO_OPENSEARCH_URL),
    (HELM_REPO_OTEL, HELM_REPO_OTEL_URL),
]

OPENSEARCH_API = ServiceEndpoint(NS_OPENSEARCH, SVC_OPENSEARCH, 9200, "/_cluster/health", "OpenSearch API")
JAEGER_UI = ServiceEndpoint(NS_JAEGER, SVC_JAEGER_QUERY, 16686, "/api/services", "Jaeger UI")
DASHBOARDS_UI = ServiceEndpoint(NS_OPENSEARCH, SVC_DASHBOARDS, 5601, "/", "OpenSearch Dashboards")
FRONTEND = ServiceEndpoint(NS_OTEL_DEMO, SVC_FRONTEND_PROXY, 8080, "/", "OTEL Demo Frontend")
LOAD_GENERATOR = ServiceEndpoint(NS_OTEL_DEMO, SVC_LOAD_GENERATOR, 8089, "/", "Load Generator")

# Order of the access report and of the port-forwards started at the end.
ACCESS_ENDPOINTS = [JAEGER_UI, DASHBOARDS_UI, OPENSEARCH_API, FRONTEND, LOAD_GENERATOR]


def _deployment(namespace: str, name: str, timeout: float) -> ReadinessTarget:
    return ReadinessTarget(namespace, KIND_DEPLOYMENT, name, timeout, selector=f"{LABEL_APP_NAME}={name}")


def build_stack(cfg: StackConfig) -> list[ReleaseDescriptor]:
    """Declare the stack's releases and the dependencies between them.

    The trace backend points at the storage engine's service and the demo
    application exports to the trace backend, hence the ``depends_on`` chain.

    Args:
        cfg: Stack configuration providing the rollout timeout.

    Returns:
        Release descriptors in declaration order.
    """
    timeout = float(cfg.rollout_timeout)
    return [
        ReleaseDescriptor(
            name=HELM_RELEASE_OPENSEARCH,
            namespace=NS_OPENSEARCH,
            chart=HELM_CHART_OPENSEARCH,
            version=dep_value("opensearch", "chart_version"),
            set_values=(f"image.tag={dep_value('opensearch', 'image_tag')}",),
            values_files=(REL_OPENSEARCH_VALUES,),
            timeout=HELM_INSTALL_TIMEOUT,
            readiness=(
                ReadinessTarget(NS_OPENSEARCH, KIND_STATEFULSET, STS_OPENSEARCH, timeout,
                                selector=LABEL_STS_POD_NAME),
            ),
            verify=(OPENSEARCH_API,),
        ),
        ReleaseDescriptor(
            name=HELM_RELEASE_DASHBOARDS,
            namespace=NS_OPENSEARCH,
            chart=HELM_CHART_DASHBOARDS,
            create_namespace=False,
            values_files=(REL_DASHBOARDS_VALUES,),
            timeout=HELM_INSTALL_TIMEOUT,
            depends_on=(HELM_RELEASE_OPENSEARCH,),
            readiness=(_deployment(NS_OPENSEARCH, DEPLOY_DASHBOARDS, timeout),),
        ),
        ReleaseDescriptor(
            name=HELM_RELEASE_JAEGER,
            namespace=NS_JAEGER,
            chart=REL_JAEGER_CHART,
            local_chart=True,
            set_values=(
                "provisionDataStore.cassandra=false",
                "allInOne.enabled=true",
                "storage.type=none",
                f"allInOne.image.repository={dep_value('jaeger', 'image_repository')}",
                f"allInOne.image.tag={dep_value('jaeger', 'image_tag')}",
            ),
            set_file_values=(("userconfig", REL_JAEGER_CONFIG),),
            values_files=(REL_JAEGER_VALUES,),
            timeout=HELM_INSTALL_TIMEOUT,
            depends_on=(HELM_RELEASE_DASHBOARDS,),
            readiness=(_deployment(NS_JAEGER, DEPLOY_JAEGER, timeout),),
            manifests=(REL_JAEGER_QUERY_SERVICE,),
            verify=(JAEGER_UI,),
        ),
        ReleaseDescriptor(
            name=HELM_RELEASE_OTEL_DEMO,
            namespace=NS_OTEL_DEMO,
            chart=HELM_CHART_OTEL_DEMO,
            values_files=(REL_OTEL_DEMO_VALUES,),
            timeout=HELM_INSTALL_TIMEOUT_OTEL,
            depends_on=(HELM_RELEASE_JAEGER,),
            readiness=(
                _deployment(NS_OTEL_DEMO, DEPLOY_FRONTEND, timeout),
                _deployment(NS_OTEL_DEMO, DEPLOY_LOAD_GENERATOR, timeout),
            ),
        ),
    ]


def stack_namespaces() -> list[str]:
    return list(STACK_NAMESPACES)
