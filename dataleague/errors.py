"""Exceptions raised by the league client."""

from typing import Optional


class LeagueError(Exception):
    """Base class of all the league client errors."""


class ValidationError(LeagueError):
    """Bad command input, eg. an invalid proof link or an out of range
       match duration. The message is shown to the user as is.
    """


class InvalidIdentifier(ValidationError):
    """A user identifier that isn't a Discord ID, mention or name#1234."""

    def __init__(self, identifier: str = ""):
        super().__init__("Discord user ID is invalid")
        self.identifier = identifier


class PermissionDenied(LeagueError):
    """The command is restricted to the league admins."""


class RemoteCallError(LeagueError):
    """The game backend call failed: network, auth or server side error."""

    def __init__(self, message: str, status: Optional[int] = None,
                 operation: str = ""):
        super().__init__(message)
        self.status = status
        self.operation = operation

    def __str__(self):
        msg = super().__str__()
        if self.status is not None:
            msg = f"{msg} (HTTP {self.status})"
        return msg
