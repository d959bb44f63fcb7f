import sys
from collections import deque
from pathlib import Path
from typing import Callable, Optional

from smtbridge.exceptions import SMTBridgeTransportException
from smtbridge.solvers.yices import YicesSolver
from smtbridge.tests.fake_engine import FakeYices, PROMPT

FAKE_ENGINE = Path(__file__).parent / "fake_engine.py"


class FakeTransport:
    """
    In-memory replacement for SolverProcess.

    Replies are taken from `replies` while there are any, then computed by
    `responder`. Commands containing `fail_on` make the transport fail as if
    the process had died.
    """

    def __init__(
        self,
        replies: Optional[list[str]] = None,
        responder: Optional[Callable[[str], str]] = None,
        fail_on: Optional[str] = None,
        prompt: str = PROMPT,
    ):
        self.replies = deque(replies or [])
        self.responder = responder
        self.fail_on = fail_on
        self.prompt = prompt
        self.sent: list[str] = []
        self.running = False
        self.exited = False

    def start(self) -> str:
        if self.running:
            raise SMTBridgeTransportException("yices is already running")
        self.running = True
        return self.prompt

    def send(self, *text: str) -> None:
        if not self.running:
            raise SMTBridgeTransportException("yices is not running")
        self.sent.append("".join(text))

    def listen(self) -> str:
        wire = self.sent[-1]
        if self.fail_on is not None and self.fail_on in wire:
            raise SMTBridgeTransportException("yices terminated unexpectedly")
        if self.replies:
            reply = self.replies.popleft()
        elif self.responder is not None:
            reply = self.responder(wire)
        else:
            reply = ""
        return reply + self.prompt

    def send_and_listen(self, *text: str) -> str:
        self.send(*text)
        return self.listen()

    def exit(self) -> str:
        if not self.running:
            raise SMTBridgeTransportException("yices is not running")
        self.running = False
        self.exited = True
        return ""


def make_solver(transport=None, **options) -> YicesSolver:
    """A started Yices driver talking to an in-memory engine."""
    if transport is None:
        transport = FakeTransport(responder=FakeYices().handle)
    solver = YicesSolver(transport=transport, **options)
    assert solver.start().is_ok()
    return solver


def engine_command() -> list[str]:
    return [sys.executable, "-u", str(FAKE_ENGINE)]
