"""Exceptions raised by the relay."""


class RelayError(Exception):
    """Base class for relay errors."""


class TypesDBError(RelayError):
    """types.db could not be read or parsed."""

    def __init__(self, message: str, source: str = "<string>", line: int | None = None) -> None:
        self.source = source
        self.line = line
        location = f"{source}:{line}" if line is not None else source
        super().__init__(f"{location}: {message}")


class PacketDecodeError(RelayError, ValueError):
    """A collectd datagram is malformed."""


class BackendConfigError(RelayError):
    """A storage backend client cannot be constructed from the settings."""


class ListenerError(RelayError):
    """The collectd UDP socket cannot be bound."""
