"""Errors raised by the session store, the partitioning engine and the coordinator.

Every error carries a stable ``kind`` string so the transport layer can report
it to clients without knowing the class hierarchy.
"""


class JumblerError(Exception):
    kind = "JumblerError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class SessionNotFound(JumblerError):
    """The session code is unknown or its record has expired."""

    kind = "SessionNotFound"

    def __init__(self, code: str):
        super().__init__(f"Session {code} not found")
        self.code = code


class InvalidConfiguration(JumblerError):
    """A configuration value is out of its documented range."""

    kind = "InvalidConfiguration"


class EmptySession(JumblerError):
    """A partition was requested for a session without members."""

    kind = "EmptySession"

    def __init__(self, code: str):
        super().__init__(f"Session {code} has no members to partition")
        self.code = code


class BackendUnavailable(JumblerError):
    """The shared Redis store or channel could not be reached."""

    kind = "BackendUnavailable"
