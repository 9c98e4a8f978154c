"""Error type shared by the code generation core, plus a few fixed names."""

from __future__ import annotations

QUERY_PROP_NAME = "client"
TRANSACTION_PROP_NAME = "conn"
PROPS_NAME = "props"


class GelxCoreError(Exception):
    """Raised when configuration, I/O or code generation fails.

    It can be built from a plain message or from another exception, in which
    case the message is the other exception's text and that exception is
    kept as ``source`` and as the cause.
    """

    def __init__(self, error: str | BaseException) -> None:
        if isinstance(error, BaseException):
            self.source: BaseException | None = error
            message = str(error)
        else:
            self.source = None
            message = str(error)
        super().__init__(message)
        self.message = message
        if self.source is not None:
            self.__cause__ = self.source

    def __str__(self) -> str:
        return self.message