import signal

import pytest

import stack_manager.tunnel as tunnel_module
from stack_manager.tunnel import ServiceEndpoint, TunnelRegistry, interrupt_cleanup, open_tunnel

ENDPOINT = ServiceEndpoint("opensearch", "opensearch-cluster-single", 9200, "/_cluster/health")


class FakeProcess:
    def __init__(self, args, **kwargs):
        self.args = args
        self.returncode = None
        self.terminated = False

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def wait(self, timeout=None):
        return self.returncode

    def kill(self):
        self.returncode = -9


def test_forward_args_include_context():
    assert ENDPOINT.forward_args("kind-demo") == [
        "kubectl", "--context", "kind-demo",
        "port-forward", "-n", "opensearch", "svc/opensearch-cluster-single", "9200:9200",
    ]
    assert ENDPOINT.local_url == "http://localhost:9200"


def test_open_tunnel_stops_process_on_exit(monkeypatch):
    procs = []

    def fake_popen(args, **kwargs):
        proc = FakeProcess(args, **kwargs)
        procs.append(proc)
        return proc

    monkeypatch.setattr(tunnel_module.subprocess, "Popen", fake_popen)
    registry = TunnelRegistry()

    with open_tunnel(ENDPOINT, registry=registry) as tunnel:
        assert len(registry) == 1
        assert not tunnel.closed

    assert procs[0].terminated
    assert tunnel.closed
    assert len(registry) == 0


def test_registry_stop_all_stops_every_tunnel(monkeypatch):
    monkeypatch.setattr(tunnel_module.subprocess, "Popen", FakeProcess)
    registry = TunnelRegistry()
    tunnels = [tunnel_module.Tunnel(ENDPOINT), tunnel_module.Tunnel(ENDPOINT)]
    for t in tunnels:
        t.start()
        registry.add(t)

    assert registry.stop_all() == 2
    assert all(t.closed for t in tunnels)
    assert len(registry) == 0


def test_interrupt_cleanup_restores_handlers():
    before = signal.getsignal(signal.SIGTERM)

    with interrupt_cleanup(TunnelRegistry()):
        assert signal.getsignal(signal.SIGTERM) is not before

    assert signal.getsignal(signal.SIGTERM) is before


def test_interrupt_handler_stops_tunnels_and_exits_one(monkeypatch):
    monkeypatch.setattr(tunnel_module.subprocess, "Popen", FakeProcess)
    registry = TunnelRegistry()
    tunnel = tunnel_module.Tunnel(ENDPOINT)
    tunnel.start()
    registry.add(tunnel)

    with interrupt_cleanup(registry):
        handler = signal.getsignal(signal.SIGINT)
        with pytest.raises(SystemExit) as excinfo:
            handler(signal.SIGINT, None)

    assert excinfo.value.code == 1
    assert len(registry) == 0
    assert tunnel.closed
