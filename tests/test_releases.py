from pathlib import Path

import pytest
import sh

import stack_manager.releases as releases
from stack_manager.config import StackConfig
from stack_manager.errors import DependencyError, InstallFailed, MissingFile
from stack_manager.releases import ReleaseDescriptor, helm_install_args, order_releases
from stack_manager.stack import build_stack


class FakeSh:
    """Stand-in for the ``sh`` module that records helm/kubectl calls."""

    ErrorReturnCode = sh.ErrorReturnCode
    CommandNotFound = sh.CommandNotFound

    def __init__(self, helm_error=None):
        self.calls = []
        self.helm_error = helm_error

    def helm(self, *args):
        self.calls.append(("helm", *args))
        if self.helm_error is not None:
            raise self.helm_error
        return ""

    def kubectl(self, *args):
        self.calls.append(("kubectl", *args))
        return ""


def _helm_failure(stderr):
    return sh.ErrorReturnCode_1("helm install", b"", stderr.encode())


def _release(name, *deps):
    return ReleaseDescriptor(name=name, namespace="demo", chart=f"repo/{name}", depends_on=deps)


def test_order_releases_respects_dependencies():
    ordered = order_releases([_release("app", "db"), _release("db"), _release("ui", "app")])

    assert [r.name for r in ordered] == ["db", "app", "ui"]


def test_order_releases_keeps_declaration_order_for_ties():
    ordered = order_releases([_release("b"), _release("a"), _release("c", "a")])

    assert [r.name for r in ordered] == ["b", "a", "c"]


def test_order_releases_rejects_cycle():
    with pytest.raises(DependencyError, match="cycle"):
        order_releases([_release("a", "b"), _release("b", "a")])


def test_order_releases_rejects_unknown_dependency():
    with pytest.raises(DependencyError, match="unknown release 'db'"):
        order_releases([_release("app", "db")])


def test_stack_releases_install_in_chain_order():
    ordered = order_releases(build_stack(StackConfig()))

    assert [r.name for r in ordered] == ["opensearch", "opensearch-dashboards", "jaeger", "otel-demo"]


def test_helm_install_args_for_local_chart():
    jaeger = next(r for r in build_stack(StackConfig()) if r.name == "jaeger")
    values_dir = Path("/srv/values")

    args = helm_install_args(jaeger, values_dir, "kind-demo")

    assert args[:5] == ["install", "jaeger", "/srv/values/helm-charts/charts/jaeger", "--namespace", "jaeger"]
    assert "--create-namespace" in args
    assert ["--set-file", "userconfig=/srv/values/jaeger-config.yaml"] == args[
        args.index("--set-file"):args.index("--set-file") + 2
    ]
    assert ["-f", "/srv/values/jaeger-values.yaml"] == args[args.index("-f"):args.index("-f") + 2]
    assert args[-4:] == ["--wait", "--timeout=10m", "--kube-context", "kind-demo"]


def test_helm_install_args_shared_namespace_is_not_recreated():
    dashboards = next(r for r in build_stack(StackConfig()) if r.name == "opensearch-dashboards")

    assert "--create-namespace" not in helm_install_args(dashboards, Path("/v"))


def test_install_release_runs_helm(monkeypatch):
    fake = FakeSh()
    monkeypatch.setattr(releases, "sh", fake)

    releases.install_release(_release("db"), Path("/v"))

    assert fake.calls[0][:3] == ("helm", "install", "db")


def test_install_release_failure_raises_install_failed(monkeypatch):
    fake = FakeSh(helm_error=_helm_failure("Error: INSTALLATION FAILED: cannot re-use a name"))
    monkeypatch.setattr(releases, "sh", fake)

    with pytest.raises(InstallFailed) as excinfo:
        releases.install_release(_release("db"), Path("/v"))

    assert excinfo.value.name == "db"
    assert "cannot re-use a name" in excinfo.value.detail


def test_uninstall_missing_release_is_not_an_error(monkeypatch):
    monkeypatch.setattr(releases, "sh", FakeSh(helm_error=_helm_failure("Error: uninstall: Release not loaded: db: release: not found")))

    assert releases.uninstall_release("db", "demo") is False


def test_build_chart_dependencies_requires_chart_file(tmp_path):
    with pytest.raises(MissingFile):
        releases.build_chart_dependencies(tmp_path / "helm-charts" / "charts" / "jaeger")


def test_apply_manifest_requires_file(tmp_path):
    with pytest.raises(MissingFile):
        releases.apply_manifest(tmp_path / "jaeger-query-service.yaml", "jaeger")
