"""
Error taxonomy for linking and merging.

Each error carries the HTTP status the API answers with; the CLI prints the
message and exits non-zero.
"""


class LinkageError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthorizationError(LinkageError):
    """Caller lacks the capability for the operation. Nothing was read."""
    status_code = 403


class InvalidRequestError(LinkageError):
    """Missing or contradictory parameters. Nothing was read."""
    status_code = 400


class NotFoundError(LinkageError):
    """A referenced member does not exist. Nothing was written."""
    status_code = 404


class UpstreamReadError(LinkageError):
    """A bulk read against the data store failed; no partial result exists."""
    status_code = 500


class MergeStepError(LinkageError):
    """A merge step failed. The enclosing transaction is rolled back."""
    status_code = 500

    def __init__(self, step: str, cause: Exception):
        super().__init__(f"Merge step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause
