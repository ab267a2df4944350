"""Errors raised by the typed RabbitMQ layer."""


class TypedRmqError(Exception):
    """Base class for errors raised by this package."""


class DeclarationNotFoundError(TypedRmqError, LookupError):
    """No exchange or queue was declared for the requested subject type.

    This is a programming error (a missing declaration), never a transient
    condition, so it is not retried.
    """

    def __init__(self, kind: str, subject: type):
        self.kind = kind
        self.subject = subject
        super().__init__(
            f"{kind.capitalize()} declaration for class {_qualified_name(subject)} is not found"
        )


class DuplicateDeclarationError(TypedRmqError, ValueError):
    """The same subject type was declared twice within one declaration pass."""

    def __init__(self, kind: str, subject: type):
        self.kind = kind
        self.subject = subject
        super().__init__(
            f"{kind.capitalize()} declaration for class {_qualified_name(subject)} is declared more than once"
        )


class ConnectionClosedError(TypedRmqError):
    """The connection manager has been shut down."""


def _qualified_name(subject: type) -> str:
    return f"{subject.__module__}.{subject.__qualname__}"
