"""Domain errors.

Every error carries a ``kind`` (rendered to clients) and the HTTP status the
app exception handler maps it to. None of them is fatal to the process.
"""


class FamChatError(Exception):
    kind = 'FamChatError'
    status_code = 400

    def __init__(self, message: str = ''):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class ValidationError(FamChatError):
    kind = 'ValidationError'
    status_code = 400


class DuplicateIdentity(FamChatError):
    kind = 'DuplicateIdentity'
    status_code = 409

    def __init__(self, field: str):
        super().__init__(f'{field.capitalize()} already exists')
        self.field = field


class AlreadyExists(FamChatError):
    kind = 'AlreadyExists'
    status_code = 409


class NotFound(FamChatError):
    kind = 'NotFound'
    status_code = 404


class SelfReference(FamChatError):
    kind = 'SelfReference'
    status_code = 400


class NotConnected(FamChatError):
    kind = 'NotConnected'
    status_code = 403


class Unauthenticated(FamChatError):
    kind = 'Unauthenticated'
    status_code = 401


class InvalidSession(FamChatError):
    kind = 'InvalidSession'
    status_code = 401


class ConstraintViolation(Exception):
    """Storage-level unique constraint failure, resolved to the offending key."""

    def __init__(self, field: str):
        super().__init__(field)
        self.field = field
