import json

import pytest

import stack_manager.ingress as ingress
from stack_manager.config import IngressConfig
from stack_manager.constants import REL_CLUSTER_ISSUER, REL_INGRESS_TLS
from stack_manager.errors import MissingFile, WaitTimeout


@pytest.fixture
def manifests_dir(tmp_path):
    (tmp_path / REL_CLUSTER_ISSUER).write_text("kind: ClusterIssuer\n", encoding="utf-8")
    (tmp_path / REL_INGRESS_TLS).write_text("kind: Ingress\n", encoding="utf-8")
    return tmp_path


def _cfg(manifests_dir, **overrides):
    return IngressConfig(
        manifests_dir=manifests_dir,
        nginx_manifest="https://example.test/nginx.yaml",
        cert_manager_manifest="https://example.test/cert-manager.yaml",
        **overrides,
    )


def test_pods_settled_requires_pods(monkeypatch):
    monkeypatch.setattr(ingress, "run_kubectl", lambda *a, **kw: (True, json.dumps({"items": []}), ""))

    assert ingress.pods_settled("ingress-nginx") is False


def test_pods_settled_accepts_completed_jobs(monkeypatch):
    pods = {"items": [
        {"metadata": {"name": "controller"}, "status": {"phase": "Running"}},
        {"metadata": {"name": "admission-create"}, "status": {"phase": "Succeeded"}},
    ]}
    monkeypatch.setattr(ingress, "run_kubectl", lambda *a, **kw: (True, json.dumps(pods), ""))

    assert ingress.pods_settled("ingress-nginx") is True


def test_external_ip_treats_empty_output_as_pending(monkeypatch):
    monkeypatch.setattr(ingress, "run_kubectl", lambda *a, **kw: (True, "", ""))

    assert ingress.external_ip("ingress-nginx-controller", "ingress-nginx") is None


def test_ingress_setup_applies_in_order(monkeypatch, manifests_dir, clock):
    applied = []
    monkeypatch.setattr(ingress, "apply_manifest_source", lambda source, context=None: applied.append(source))
    monkeypatch.setattr(ingress, "pods_settled", lambda ns, context=None: True)
    monkeypatch.setattr(
        ingress, "external_ip",
        lambda svc, ns, context=None: "34.1.2.3" if clock() >= 20 else None,
    )

    ip = ingress.run_ingress_setup(_cfg(manifests_dir), clock=clock, sleep=clock.sleep)

    assert ip == "34.1.2.3"
    assert applied == [
        "https://example.test/nginx.yaml",
        "https://example.test/cert-manager.yaml",
        str(manifests_dir / REL_CLUSTER_ISSUER),
        str(manifests_dir / REL_INGRESS_TLS),
    ]


def test_ingress_setup_pod_wait_is_bounded(monkeypatch, manifests_dir, clock):
    applied = []
    monkeypatch.setattr(ingress, "apply_manifest_source", lambda source, context=None: applied.append(source))
    monkeypatch.setattr(ingress, "pods_settled", lambda ns, context=None: False)

    with pytest.raises(WaitTimeout, match="ingress-nginx"):
        ingress.run_ingress_setup(_cfg(manifests_dir, pod_timeout=60), clock=clock, sleep=clock.sleep)

    assert clock() == 60
    assert applied == ["https://example.test/nginx.yaml"]


def test_ingress_setup_requires_manifest_files(tmp_path):
    with pytest.raises(MissingFile):
        ingress.run_ingress_setup(_cfg(tmp_path))
