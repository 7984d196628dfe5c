import pytest

from stack_manager.errors import NoPullBackend
from stack_manager.images import PullBackend, prepull_images, select_backend, verify_local_images


class FakeBackend(PullBackend):
    def __init__(self, name="fake", available=True, failing=()):
        self.name = name
        self._available = available
        self.failing = set(failing)
        self.pulled = []
        self.probed = 0

    def available(self):
        self.probed += 1
        return self._available

    def pull(self, image):
        self.pulled.append(image)
        if image in self.failing:
            raise RuntimeError(f"manifest for {image} not found")

    def has_image(self, image):
        return image in self.pulled and image not in self.failing


def test_select_backend_takes_first_available():
    first = FakeBackend("minikube", available=False)
    second = FakeBackend("docker")
    third = FakeBackend("nerdctl")

    assert select_backend([first, second, third]) is second
    assert third.probed == 0


def test_select_backend_without_candidates_fails():
    with pytest.raises(NoPullBackend) as excinfo:
        select_backend([FakeBackend("minikube", available=False), FakeBackend("crictl", available=False)])

    assert excinfo.value.candidates == ["minikube", "crictl"]


def test_prepull_continues_past_failures():
    images = ["busybox:latest", "nginx:alpine", "redis:alpine", "missing:1.0"]
    backend = FakeBackend(failing={"nginx:alpine", "missing:1.0"})

    report = prepull_images(images, backend)

    assert backend.pulled == images
    assert report.failed == ["nginx:alpine", "missing:1.0"]
    assert report.succeeded == ["busybox:latest", "redis:alpine"]
    assert report.total == 4


def test_prepull_empty_manifest_pulls_nothing():
    backend = FakeBackend()

    report = prepull_images([], backend)

    assert report.total == 0
    assert backend.pulled == []


def test_verify_local_images_reports_missing():
    backend = FakeBackend()
    backend.pulled = ["busybox:latest"]

    assert verify_local_images(["busybox:latest", "nginx:alpine"], backend) == ["nginx:alpine"]
