import sh

import stack_manager.releases as releases
import stack_manager.teardown as teardown_mod
from stack_manager.config import StackConfig
from stack_manager.stack import build_stack, stack_namespaces
from stack_manager.tunnel import TunnelRegistry


class FakeSh:
    ErrorReturnCode = sh.ErrorReturnCode
    CommandNotFound = sh.CommandNotFound

    def __init__(self):
        self.calls = []

    def helm(self, *args):
        self.calls.append(("helm", *args))
        raise sh.ErrorReturnCode_1("helm uninstall", b"", b"Error: uninstall: Release not loaded: release: not found")

    def pkill(self, *args):
        self.calls.append(("pkill", *args))
        raise sh.ErrorReturnCode_1("pkill", b"", b"")


def test_teardown_on_empty_cluster_does_not_raise(monkeypatch):
    fake = FakeSh()
    kubectl_calls = []
    monkeypatch.setattr(releases, "sh", fake)
    monkeypatch.setattr(teardown_mod, "sh", fake)
    monkeypatch.setattr(
        teardown_mod, "run_kubectl",
        lambda args, timeout=30, context=None: kubectl_calls.append(args) or (True, "", ""),
    )

    teardown_mod.teardown(build_stack(StackConfig()), stack_namespaces(), registry=TunnelRegistry())

    uninstalled = [call[2] for call in fake.calls if call[0] == "helm"]
    assert uninstalled == ["otel-demo", "jaeger", "opensearch-dashboards", "opensearch"]
    deleted = [args[2] for args in kubectl_calls]
    assert deleted == ["otel-demo", "jaeger", "opensearch"]
    assert all("--wait=false" in args for args in kubectl_calls)


def test_namespace_delete_failure_is_not_fatal(monkeypatch):
    fake = FakeSh()
    monkeypatch.setattr(releases, "sh", fake)
    monkeypatch.setattr(teardown_mod, "sh", fake)
    monkeypatch.setattr(
        teardown_mod, "run_kubectl",
        lambda args, timeout=30, context=None: (False, "", "Unable to connect to the server"),
    )

    teardown_mod.teardown(build_stack(StackConfig()), ["jaeger"], registry=TunnelRegistry())
