# apitokens/core/errors.py
"""Failure kinds surfaced by the issuance command.

Each kind maps to a distinct CLI exit code and an HTTP status, so both
boundaries report the same error the same way.
"""


class TokenIssuanceError(Exception):
    kind = "TokenIssuanceError"
    exit_code = 1
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationError(TokenIssuanceError):
    kind = "ValidationError"
    exit_code = 3
    http_status = 422


class InvalidExpirationError(TokenIssuanceError):
    kind = "InvalidExpirationError"
    exit_code = 4
    http_status = 422

    def __init__(self, value: str):
        super().__init__(f"cannot parse expiration {value!r}")
        self.value = value


class StorageError(TokenIssuanceError):
    kind = "StorageError"
    exit_code = 5
    http_status = 503


class IdentityNotFoundError(TokenIssuanceError):
    kind = "IdentityNotFoundError"
    exit_code = 6
    http_status = 404

    def __init__(self, handle: str):
        super().__init__(f"no identity with handle {handle!r}")
        self.handle = handle
