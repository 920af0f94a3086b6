"""Exceptions raised by the controller and by token verifiers."""


class ControllerError(Exception):
    """Base class for controller failures."""


class ListenerError(ControllerError):
    """The listener could not bind, start, or was given a bad address."""

    def __init__(self, message: str, address: str | None = None) -> None:
        super().__init__(message)
        self.address = address


class AuthenticationError(ControllerError):
    """A token verifier rejected the presented bearer token."""
