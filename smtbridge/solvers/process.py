from __future__ import annotations

import logging
import os
from pathlib import Path
from select import select
from subprocess import Popen, PIPE, STDOUT, TimeoutExpired
from time import time
from typing import Optional, Sequence

from smtbridge.exceptions import SMTBridgeTransportException


class SolverProcess:
    """
    Conversation with an interactive solver over its standard streams.

    The solver prints a fixed prompt whenever it is ready for the next
    command, so a reply is everything written up to and including that
    prompt. Standard error is merged into standard output so that error
    messages are framed by the same prompt.

    A command must not be sent before the reply to the previous one has
    been read: there is no way to tell replies apart otherwise.
    """

    CHUNK_SIZE = 8192
    EXIT_TIMEOUT = 5.0  # seconds granted to the solver to terminate

    def __init__(
        self,
        args: Sequence[str],
        prompt: str,
        log_path: Optional[Path] = None,
        timeout: Optional[float] = None,
        listen_on_start: bool = True,
    ):
        """
        :param args: executable followed by its command line arguments
        :param prompt: the string printed by the solver after each reply
        :param log_path: file receiving a transcript of the conversation
        :param timeout: seconds to wait for a reply before giving up
        :param listen_on_start: whether the solver prints a prompt when started
        """
        self.args = [str(arg) for arg in args]
        self.prompt = prompt
        self.log_path = Path(log_path) if log_path else None
        self.timeout = timeout
        self.listen_on_start = listen_on_start

        self._prompt_bytes = prompt.encode()
        self._process: Optional[Popen] = None
        self._pending = b""
        self._log = None

    @property
    def name(self) -> str:
        return Path(self.args[0]).name if self.args else "solver"

    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> str:
        """
        Spawn the solver. Returns its greeting, if it prints a prompt on start.
        """
        if self._process is not None:
            raise SMTBridgeTransportException(f"{self.name} is already running")
        if self.log_path:
            try:
                self._log = open(self.log_path, "w")
            except OSError as err:
                raise SMTBridgeTransportException(
                    f"Cannot write the transcript {self.log_path}: {err}"
                ) from err
        logging.debug(f"Running {self.name}: {' '.join(self.args)}")
        try:
            self._process = Popen(self.args, stdin=PIPE, stdout=PIPE, stderr=STDOUT)
        except OSError as err:
            self._close_log()
            raise SMTBridgeTransportException(
                f"Failed to start process {self.args[0]}: {err}"
            ) from err
        if not self.listen_on_start:
            return ""
        try:
            return self.listen()
        except SMTBridgeTransportException:
            self._process.kill()
            self.exit()
            raise

    def send(self, *text: str) -> None:
        """Write a command without waiting for the reply."""
        process = self._running_process()
        data = "".join(text)
        logging.debug(f"Sending: {data.rstrip()}")
        self._write_log(data)
        try:
            process.stdin.write(data.encode())
            process.stdin.flush()
        except OSError as err:
            raise SMTBridgeTransportException(
                f"Failed to write to {self.name}: {err}"
            ) from err

    def send_and_listen(self, *text: str) -> str:
        """Write a command and return the reply, prompt included."""
        self.send(*text)
        return self.listen()

    def listen(self) -> str:
        """Block until the next prompt and return everything read up to it."""
        process = self._running_process()
        fd = process.stdout.fileno()
        deadline = None if self.timeout is None else time() + self.timeout
        buf = self._pending
        while True:
            idx = buf.find(self._prompt_bytes)
            if idx >= 0:
                end = idx + len(self._prompt_bytes)
                reply, self._pending = buf[:end], buf[end:]
                text = reply.decode("utf-8", errors="replace")
                logging.debug(f"Received: {text.strip()}")
                self._write_log(text)
                return text

            wait = None if deadline is None else deadline - time()
            if wait is not None and wait <= 0:
                self._pending = buf
                raise SMTBridgeTransportException(
                    f"{self.name} did not answer within {self.timeout} seconds",
                    buf.decode("utf-8", errors="replace"),
                )
            rlist, _, _ = select([fd], [], [], wait)
            if not rlist:
                continue
            chunk = os.read(fd, self.CHUNK_SIZE)
            if not chunk:
                self._pending = b""
                raise SMTBridgeTransportException(
                    f"{self.name} terminated unexpectedly",
                    buf.decode("utf-8", errors="replace"),
                )
            buf += chunk

    def exit(self) -> str:
        """
        Close the channel and wait for the solver to terminate.
        Returns whatever the solver wrote after the last prompt.
        """
        process = self._running_process()
        self._process = None
        try:
            out, _ = process.communicate(timeout=self.EXIT_TIMEOUT)
        except TimeoutExpired:
            logging.warning(f"{self.name} did not terminate, killing it")
            process.kill()
            out, _ = process.communicate()
        text = (self._pending + (out or b"")).decode("utf-8", errors="replace")
        self._pending = b""
        logging.debug(f"{self.name} exited with code {process.returncode}")
        self._write_log(text)
        self._close_log()
        return text

    def _running_process(self) -> Popen:
        if self._process is None:
            raise SMTBridgeTransportException(f"{self.name} is not running")
        return self._process

    def _write_log(self, text: str) -> None:
        if self._log:
            self._log.write(text)
            self._log.flush()

    def _close_log(self) -> None:
        if self._log:
            self._log.close()
            self._log = None
