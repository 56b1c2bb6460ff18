"""Domain error kinds.

Every error raised by the services carries a ``kind`` (the user-facing error
category) and a ``code`` (the specific rule that was violated). The HTTP layer
maps ``kind`` to a status code; callers never need to inspect messages.
"""


class BudgetFlowError(Exception):
    """Base class for all domain errors."""

    kind = "ServerError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"kind": self.kind, "code": self.code, "message": self.message}


class ValidationFailed(BudgetFlowError):
    kind = "Validation"
    status_code = 400


class Unauthorized(BudgetFlowError):
    kind = "Unauthorized"
    status_code = 401


class Forbidden(BudgetFlowError):
    kind = "Forbidden"
    status_code = 403


class NotFound(BudgetFlowError):
    kind = "NotFound"
    status_code = 404


class Conflict(BudgetFlowError):
    kind = "Conflict"
    status_code = 409


class AlreadyMember(Conflict):
    pass


class AlreadyAdmin(Conflict):
    pass


class AlreadyPlainMember(Conflict):
    pass


class InviteExpired(Conflict):
    pass


class InviteAlreadyUsed(Conflict):
    pass


class CannotDemoteCreator(Conflict):
    pass


class CannotRemoveSelf(Conflict):
    pass


class CannotRemoveCreator(Conflict):
    pass


class CreatorCannotLeave(Conflict):
    pass


class NotAMember(Conflict):
    pass


class EmailAlreadyRegistered(Conflict):
    pass


class StorageFailure(BudgetFlowError):
    kind = "StorageFailure"
    status_code = 500
