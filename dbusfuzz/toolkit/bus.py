"""bus.py — Thin blocking D-Bus client built on jeepney."""

from jeepney import (
    DBusAddress,
    DBusErrorResponse,
    HeaderFields,
    Introspectable,
    MessageType,
    new_method_call,
)
from jeepney.auth import AuthenticationError
from jeepney.bus_messages import message_bus
from jeepney.io.blocking import open_dbus_connection

from dbusfuzz.core.values import DBusTuple, DBusValue


class BusOfflineError(ConnectionError):
    """Raised when the message bus cannot be reached or the connection drops."""


class RemoteError(Exception):
    """A method call ended with an error instead of a reply."""

    def __init__(self, name: str | None, message: str = ""):
        super().__init__(f"{name}: {message}" if name else message)
        self.name = name
        self.message = message


class BusReply:
    """Successful method return: its body signature and values."""

    def __init__(self, signature: str = "", body: tuple = ()):
        self.signature = signature
        self.body = body

    @property
    def type_string(self) -> str:
        return f"({self.signature})"

    def __repr__(self):
        return f"BusReply({self.type_string}, {self.body!r})"


def connect(system: bool = False):
    """Open a blocking connection to the session (or system) bus."""
    bus = "SYSTEM" if system else "SESSION"
    try:
        return open_dbus_connection(bus=bus, enable_fds=True)
    except (OSError, KeyError, ValueError, AuthenticationError) as e:
        raise BusOfflineError(f"{bus.lower()} bus unreachable: {e}")


def to_wire(value: DBusValue):
    """Convert a DBusValue into what jeepney serialises for its signature."""
    if value.signature == "v":
        inner = value.value
        return (inner.signature, to_wire(inner))
    return value.value


def _error_text(data) -> str:
    if data and isinstance(data[0], str):
        return data[0]
    return ""


def _send(connection, msg):
    try:
        reply = connection.send_and_get_reply(msg)
    except OSError as e:
        raise BusOfflineError(f"Connection to the bus lost: {e}") from e
    if reply.header.message_type == MessageType.error:
        err = DBusErrorResponse(reply)
        raise RemoteError(err.name, _error_text(err.data))
    return reply


class BusProxy:
    """Calls methods of one interface on one object of a bus peer."""

    def __init__(self, connection, bus_name: str, object_path: str, interface: str):
        self.connection = connection
        self.bus_name = bus_name
        self.object_path = object_path
        self.interface = interface
        self.address = DBusAddress(object_path, bus_name=bus_name, interface=interface)

    def call(self, method_name: str, args: DBusTuple) -> BusReply:
        """Invoke *method_name* and block until its reply or error arrives."""
        body = tuple(to_wire(el) for el in args)
        msg = new_method_call(self.address, method_name, args.signature or None, body)
        reply = _send(self.connection, msg)
        signature = reply.header.fields.get(HeaderFields.signature, "")
        return BusReply(signature, reply.body)


def get_process_id(connection, bus_name: str) -> int:
    """PID of the process owning *bus_name*."""
    reply = _send(connection, message_bus.GetConnectionUnixProcessID(bus_name))
    return int(reply.body[0])


def introspect_xml(connection, bus_name: str, object_path: str) -> str:
    reply = _send(connection, Introspectable(object_path, bus_name).Introspect())
    return reply.body[0]
