# bugzillabot/errors.py


class BugzillaError(Exception):
    """Base class for everything this library raises."""


class DecodeError(BugzillaError):
    """A response body is not valid JSON or lacks a required field."""


class PreconditionError(BugzillaError):
    """A derived value was requested from a bug that cannot provide it."""


class TransportError(BugzillaError):
    """An HTTP request failed, either on the network or with a non-2xx status.

    `status` is 0 when no response was received. `url` never contains the API key.
    """

    def __init__(self, message: str, *, status: int = 0, url: str | None = None):
        super().__init__(message)
        self.status = status
        self.url = url
