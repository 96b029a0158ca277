#
# Weave job error taxonomy.
#
from __future__ import annotations


class WeaveJobError(Exception):
    pass


class JobValidationError(WeaveJobError, ValueError):
    """A required request field is missing or malformed.

    Raised before any filesystem or subprocess work and never converted into a
    failed `JobResult`; HTTP callers map it to a client error.
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class SessionDirError(WeaveJobError, OSError):
    pass


class ResultCollectionError(WeaveJobError, OSError):
    pass
