"""Error taxonomy shared by the store, the engines and the HTTP layer.

Every user-visible failure carries a short ``message`` and the HTTP status it
maps to. ``NotificationError`` is never raised out of a request; the
registration workflow captures it into the visitor's email fields.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(AppError):
    status_code = 400


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    # Cross-stall re-scans are reported as 403 like other scan refusals
    status_code = 403


class InternalError(AppError):
    status_code = 500


class StorageError(InternalError):
    pass


class NotificationError(Exception):
    pass
