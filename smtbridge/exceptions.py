from __future__ import annotations

from typing import Optional


class SMTBridgeException(Exception):
    """
    Base exception for smtbridge
    """


class SMTBridgeInternalException(SMTBridgeException):
    """
    Exception for internal errors
    """


class SMTBridgeSolverException(SMTBridgeException):
    """
    Exception for solvers that cannot be configured or located
    """


class SMTBridgePositionedException(SMTBridgeException):
    """
    Exception attached to a range of the input text, when one is known
    """

    def __init__(self, message: str, pos=None):
        super().__init__(message)
        self.message = message
        self.pos = pos

    def __str__(self) -> str:
        if self.pos is None:
            return self.message
        return f"{self.message} ({self.pos.describe_short()})"


class SMTBridgeParseException(SMTBridgePositionedException):
    """
    Exception for malformed SMT-LIB text
    """


class SMTBridgeTranslationException(SMTBridgePositionedException):
    """
    Exception for terms or sorts the backend cannot express
    """


class SMTBridgeTransportException(SMTBridgeException):
    """
    Exception for failures of the channel to the solver process
    """

    def __init__(self, message: str, output: Optional[str] = None):
        super().__init__(message)
        self.output = output


class SMTBridgeEngineException(SMTBridgeException):
    """
    Exception for replies in which the solver reports an error

    """

    def __init__(self, reply: str):
        super().__init__(reply)
        self.reply = reply
