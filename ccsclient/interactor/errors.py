"""Error kinds raised by the CCS interactor.

Every failure the retrieval layer can report maps onto exactly one
:class:`ErrorKind`.  The concrete exception classes below are the only way the
kind is expressed, so callers can either ``except NotFoundError`` or inspect
``error.kind`` after catching the shared :class:`CCSClientError` base.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from typing import Any, ClassVar


class ErrorKind(enum.Enum):
    AUTHENTICATION = 'authentication'
    NOT_FOUND = 'not-found'
    STRUCTURAL = 'structural'
    DECODE = 'decode'
    TRANSPORT = 'transport'
    SERVER = 'server'


class CCSClientError(RuntimeError):
    """Base error raised for transport, status and decoding failures."""

    kind: ClassVar[ErrorKind] = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        partial: Sequence[Any] = (),
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body
        self.partial = list(partial)

    def wrap(self, context: str) -> CCSClientError:
        """Return a copy of this error with call-site ``context`` prefixed.

        The copy keeps the class (and so the kind), the status code, the raw
        body and any partially decoded results.
        """

        return type(self)(
            f'{context}: {self.message}',
            status_code=self.status_code,
            body=self.body,
            partial=self.partial,
        )


class AuthenticationError(CCSClientError):
    """The server answered 401."""

    kind = ErrorKind.AUTHENTICATION


class NotFoundError(CCSClientError):
    """The server answered 404."""

    kind = ErrorKind.NOT_FOUND


class StructuralError(CCSClientError):
    """The reply was valid JSON but not shaped as expected."""

    kind = ErrorKind.STRUCTURAL


class DecodeError(CCSClientError):
    """A JSON document, timestamp, duration or file bundle could not be converted."""

    kind = ErrorKind.DECODE


class TransportError(CCSClientError):
    """Connection, TLS or protocol failure below the HTTP status layer."""

    kind = ErrorKind.TRANSPORT


class ServerError(CCSClientError):
    """Any other non-2xx status; ``status_code`` carries the number."""

    kind = ErrorKind.SERVER


__all__ = [
    'AuthenticationError',
    'CCSClientError',
    'DecodeError',
    'ErrorKind',
    'NotFoundError',
    'ServerError',
    'StructuralError',
    'TransportError',
]
