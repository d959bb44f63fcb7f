"""
A stand-in for `yices -i`, speaking just enough of its language for the tests.

A check is unsat when some live assertion mentions `false`, sat otherwise.
Besides the Yices commands, `(crash)` terminates without answering and
`(sleep)` stalls before answering.
"""

import sys
import time

PROMPT = "yices > "


class FakeYices:
    def __init__(self):
        self.scopes: list[list[str]] = [[]]
        self.received: list[str] = []

    @property
    def depth(self) -> int:
        return len(self.scopes) - 1

    def handle(self, command: str) -> str:
        """Answer one command, without the prompt."""
        command = command.strip()
        self.received.append(command)
        if command.startswith("(assert+ ") and command.endswith(")"):
            self.scopes[-1].append(command[len("(assert+ ") : -1])
            return ""
        if command == "(check)":
            if any("false" in a for scope in self.scopes for a in scope):
                return "unsat\n"
            return "sat\n"
        if command == "(push)":
            self.scopes.append([])
            return ""
        if command == "(pop)":
            if not self.depth:
                return "Error: pop without matching push\n"
            self.scopes.pop()
            return ""
        if command == "(reset)":
            self.scopes = [[]]
            return ""
        if command.startswith("(define"):
            return ""
        if command.startswith("(get-value"):
            return "(= x 0)\n"
        return f"Error: unknown command {command}\n"


def main() -> int:
    engine = FakeYices()
    sys.stdout.write(PROMPT)
    sys.stdout.flush()
    while True:
        line = sys.stdin.readline()
        if not line:
            return 0
        command = line.strip()
        if not command:
            continue
        if command == "(exit)":
            return 0
        if command == "(crash)":
            return 3
        if command == "(sleep)":
            time.sleep(30)
        sys.stdout.write(engine.handle(command) + PROMPT)
        sys.stdout.flush()


if __name__ == "__main__":
    sys.exit(main())
