"""Error types for Piano ID operations.

Every failure that reaches a caller is a PianoIdError, whatever its origin:
a business error reported by the server, a non-2xx HTTP response, or a
transport/parsing exception. Subclasses let callers tell these apart when
they care, while a single ``except PianoIdError`` handles all of them.
"""


class PianoIdError(Exception):
    """Error during a Piano ID operation."""

    def __init__(self, message: str | None = None, cause: BaseException | None = None):
        if message is None:
            message = str(cause) if cause is not None else "Unknown error"
        super().__init__(message)
        self.message = message
        if cause is not None:
            self.__cause__ = cause


class PianoIdHttpError(PianoIdError):
    """Server answered with a non-2xx HTTP status."""

    def __init__(self, status_code: int, operation: str):
        super().__init__(f"{operation} failed (HTTP {status_code})")
        self.status_code = status_code
        self.operation = operation


class PianoIdDecodeError(PianoIdError):
    """A token, payload or response body could not be parsed."""

    pass


class OAuthProviderNotRegisteredError(PianoIdError):
    """Social login was requested for a provider nobody registered."""

    def __init__(self, provider: str):
        super().__init__(f"OAuth provider '{provider}' is not registered")
        self.provider = provider


def to_piano_id_error(exc: BaseException) -> PianoIdError:
    """Normalize any exception into a PianoIdError.

    PianoIdError instances are returned unchanged; anything else is wrapped
    with the original exception kept as ``__cause__``.
    """
    if isinstance(exc, PianoIdError):
        return exc
    return PianoIdError(cause=exc)
