"""
Failure categories of the request/response cycle.

Every error is fatal for the current run; ClientApp maps each one
to its own process exit code.
"""


class ClientError(Exception):
    """Base class for all fatal client errors."""

    exit_code = 1

    def __init__(self, message: str, reason: str = None):
        self.message = message
        self.reason = reason
        super().__init__(f"{message}: {reason}" if reason else message)


class ResolutionError(ClientError):
    exit_code = 2


class ConnectError(ClientError):
    exit_code = 3


class ConnectTimeout(ClientError):
    exit_code = 4


class PollError(ClientError):
    exit_code = 5


class SendError(ClientError):
    exit_code = 6


class ReceiveError(ClientError):
    exit_code = 7


class AllocationError(ClientError):
    exit_code = 8
