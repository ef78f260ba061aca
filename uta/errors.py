from __future__ import annotations


class UtaError(RuntimeError):
    stage = "fetch"


class IdentifierError(UtaError):
    pass


class NetworkError(UtaError):
    pass


class ApiResponseError(NetworkError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(UtaError):
    pass


class NotFoundError(UtaError):
    pass


class EnvelopeError(UtaError):
    pass


class ParseError(UtaError):
    stage = "convert"


class UnsupportedFormatError(UtaError):
    stage = "convert"


class OutputError(UtaError):
    stage = "write"
