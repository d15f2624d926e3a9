from __future__ import annotations

import subprocess
from typing import Callable, Dict, List, Optional

import pytest

from bootc_provision.lib import command


class FakeRunner:
    """Records argv and answers with canned stdout per program prefix."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self.responses: Dict[tuple, str] = {}
        self.failures: Dict[tuple, int] = {}
        self.hooks: List[Callable[[List[str]], None]] = []

    def respond(self, prefix: tuple, stdout: str) -> None:
        self.responses[prefix] = stdout

    def fail(self, prefix: tuple, returncode: int = 1) -> None:
        self.failures[prefix] = returncode

    def _match(self, table: dict, argv: List[str]):
        for prefix, value in table.items():
            if tuple(argv[: len(prefix)]) == prefix:
                return value
        return None

    def __call__(self, argv, input=None, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(input)
        for hook in self.hooks:
            hook(argv)
        rc = self._match(self.failures, argv) or 0
        stdout = self._match(self.responses, argv) or ""
        return subprocess.CompletedProcess(argv, rc, stdout=stdout, stderr="boom" if rc else "")

    def programs(self) -> List[str]:
        return [c[0] for c in self.calls]

    def find(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]


@pytest.fixture
def fake_run(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr(command.subprocess, "run", runner)
    return runner
