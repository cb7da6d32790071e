from __future__ import annotations

import io
from collections.abc import Callable, Iterator
from typing import List

import pytest
from rich.console import Console

from zping.core.config import CONFIG_PATH
from zping.net.icmp import EchoReply
from zping.reporting.console import ConsoleReporter


class FakeSender:
    """Replays scripted replies; an exception in the script is raised instead."""

    def __init__(self, replies: List[object] | None = None) -> None:
        self.replies = list(replies or [])
        self.calls: List[tuple[str, int]] = []
        self.closed = False

    def send(self, address: str, timeout_ms: int) -> EchoReply:
        self.calls.append((address, timeout_ms))
        reply = self.replies.pop(0) if self.replies else EchoReply("Success", roundtrip_ms=5, address=address)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def __enter__(self) -> "FakeSender":
        return self

    def __exit__(self, *exc: object) -> None:
        self.closed = True


@pytest.fixture
def fake_sender_type() -> type[FakeSender]:
    return FakeSender


@pytest.fixture
def fake_sender() -> Callable[..., FakeSender]:
    return lambda *replies: FakeSender(list(replies))


@pytest.fixture
def reporter() -> ConsoleReporter:
    return ConsoleReporter(
        console=Console(file=io.StringIO(), width=200, no_color=True, soft_wrap=True),
        error_console=Console(file=io.StringIO(), width=200, no_color=True, soft_wrap=True),
    )


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    monkeypatch.delenv("ZPING_VERBOSE", raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setattr("zping.core.config.CONFIG_PATH", tmp_path / "missing" / CONFIG_PATH.name)
    yield
