import pytest

from stack_manager.utils import helm_context_args, kubectl_context_args, parse_version


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Client Version: v1.29.3\nKustomize Version: v5.0.4", (1, 29, 3)),
        ('version.BuildInfo{Version:"v3.14.2", GitCommit:"c309b6f"}', (3, 14, 2)),
        ("v1.25.0", (1, 25, 0)),
        ("", None),
        ("no version here\nv9.9.9", None),
    ],
)
def test_parse_version(text, expected):
    assert parse_version(text) == expected


def test_context_args_are_empty_without_context():
    assert kubectl_context_args(None) == []
    assert helm_context_args(None) == []


def test_context_args_use_tool_specific_flags():
    assert kubectl_context_args("kind-demo") == ["--context", "kind-demo"]
    assert helm_context_args("kind-demo") == ["--kube-context", "kind-demo"]
