import threading

import pytest

import stack_manager.readiness as readiness
from stack_manager.errors import ReadinessTimeout, WaitCancelled, WaitTimeout
from stack_manager.readiness import Deadline, ReadinessTarget, bounded_wait, wait_ready, workload_ready


def _deployment(desired=1, updated=1, available=1, total=1, generation=1, observed=1):
    return {
        "metadata": {"generation": generation},
        "spec": {"replicas": desired},
        "status": {
            "observedGeneration": observed,
            "replicas": total,
            "updatedReplicas": updated,
            "availableReplicas": available,
        },
    }


def _statefulset(desired=1, ready=1):
    return {
        "metadata": {"generation": 1},
        "spec": {"replicas": desired},
        "status": {"observedGeneration": 1, "readyReplicas": ready},
    }


def test_deadline_counts_down_on_injected_clock(clock):
    deadline = Deadline(10, clock)
    clock.sleep(4)

    assert deadline.remaining() == 6
    assert not deadline.expired()

    clock.sleep(6)
    assert deadline.expired()


def test_bounded_wait_returns_as_soon_as_check_passes(clock):
    bounded_wait(lambda: clock() >= 12, 60, description="thing", poll_interval=5,
                 clock=clock, sleep=clock.sleep)

    assert clock() == 15


def test_bounded_wait_times_out_exactly_at_deadline(clock):
    calls = []

    def check():
        calls.append(clock())
        return False

    with pytest.raises(WaitTimeout, match="after 12s"):
        bounded_wait(check, 12, description="thing", poll_interval=5, clock=clock, sleep=clock.sleep)

    assert clock() == 12
    assert calls == [0, 5, 10, 12]


def test_bounded_wait_stops_when_cancelled(clock):
    cancel = threading.Event()

    def check():
        if clock() >= 10:
            cancel.set()
        return False

    with pytest.raises(WaitCancelled):
        bounded_wait(check, 600, description="thing", poll_interval=5, clock=clock,
                     sleep=clock.sleep, cancel=cancel)

    assert clock() == 10


def test_deployment_ready_rules():
    assert workload_ready(_deployment(), "Deployment")
    assert not workload_ready(_deployment(generation=2, observed=1), "Deployment")
    assert not workload_ready(_deployment(desired=2, updated=1), "Deployment")
    assert not workload_ready(_deployment(total=2, updated=1), "Deployment")
    assert not workload_ready(_deployment(available=0), "Deployment")


def test_statefulset_ready_rules():
    assert workload_ready(_statefulset(desired=1, ready=1), "StatefulSet")
    assert not workload_ready(_statefulset(desired=3, ready=2), "StatefulSet")


def test_replicas_default_to_one():
    obj = _deployment()
    del obj["spec"]["replicas"]

    assert workload_ready(obj, "Deployment")


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        ReadinessTarget("demo", "DaemonSet", "agent", 30)


def test_wait_ready_succeeds_when_workload_becomes_ready(clock, monkeypatch):
    target = ReadinessTarget("jaeger", "Deployment", "jaeger", 600)

    def fake_get(t, context=None):
        return _deployment() if clock() >= 20 else None

    monkeypatch.setattr(readiness, "get_workload", fake_get)

    wait_ready(target, poll_interval=5, clock=clock, sleep=clock.sleep)

    assert clock() == 20


def test_wait_ready_timeout_dumps_diagnostics(clock, monkeypatch):
    target = ReadinessTarget("opensearch", "StatefulSet", "opensearch-cluster-single", 30)
    dumped = []
    monkeypatch.setattr(readiness, "get_workload", lambda t, context=None: _statefulset(ready=0))
    monkeypatch.setattr(readiness, "dump_diagnostics", lambda t, context=None: dumped.append(t))

    with pytest.raises(ReadinessTimeout) as excinfo:
        wait_ready(target, poll_interval=5, clock=clock, sleep=clock.sleep)

    assert clock() == 30
    assert dumped == [target]
    assert str(excinfo.value) == (
        "StatefulSet opensearch-cluster-single failed to become ready in opensearch within 30s"
    )


def test_diagnostic_failures_do_not_mask_timeout(clock, monkeypatch):
    calls = []

    def failing_kubectl(args, timeout=30, context=None):
        calls.append(args)
        return False, "", "error: Unable to connect to the server"

    monkeypatch.setattr(readiness, "run_kubectl", failing_kubectl)
    target = ReadinessTarget("jaeger", "Deployment", "jaeger", 10, selector="app.kubernetes.io/name=jaeger")

    with pytest.raises(ReadinessTimeout):
        wait_ready(target, poll_interval=5, clock=clock, sleep=clock.sleep)

    diagnostics = [args[:2] for args in calls if args[-2:] != ["-o", "json"]]
    assert diagnostics == [["get", "deployment"], ["describe", "deployment"], ["get", "pods"]]
