"""A simulated RPC network for exercising distributed services in one process.

The network can lose requests and replies, delay messages and disconnect
individual client end-points. Arguments and replies are always passed through
the labgob encoding, so a server never shares objects with its callers.

    net = Network()
    end = net.make_end("client-1")
    server = Server()
    server.add_service(Service(receiver))
    net.add_server("server-1", server)
    net.connect("client-1", "server-1")
    net.enable("client-1", True)
    reply = end.call("Receiver.Method", args)

A handler is any public method of the receiver that takes exactly one
argument; whatever it returns is sent back as the reply. ``call`` raises
RpcError when no reply arrives: the request or the reply was lost, the end is
disabled or unconnected, or the server has been deleted.
"""

from __future__ import annotations

import inspect
import io
import queue
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable

from distlab import labgob

SHORT_DELAY_MS = 27
LONG_DELAY_MS = 7000
MAX_DELAY_MS = LONG_DELAY_MS + 100

_POLL_SECONDS = 0.1

_CO_VARARGS = 0x04
_CO_VARKEYWORDS = 0x08


class RpcError(Exception):
    """No reply was received for an RPC."""


def _encode(value: Any) -> bytes:
    buf = io.BytesIO()
    labgob.Encoder(buf).encode(value)
    return buf.getvalue()


def _decode(data: bytes) -> Any:
    return labgob.Decoder(io.BytesIO(data)).decode()


@dataclass(frozen=True)
class _Request:
    endname: Hashable
    svc_meth: str
    args: bytes


class ClientEnd:
    """A client end-point through which RPCs to one server are sent."""

    def __init__(self, network: Network, endname: Hashable) -> None:
        self._network = network
        self._endname = endname

    @property
    def endname(self) -> Hashable:
        return self._endname

    def call(self, svc_meth: str, args: Any) -> Any:
        """Send an RPC such as "Raft.AppendEntries" and return the reply.

        Raises RpcError if no reply was received.
        """
        request = _Request(self._endname, svc_meth, _encode(args))
        return _decode(self._network._submit(request))


class Network:
    """Holds client end-points, servers and the connections between them."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reliable = True
        self._long_delays = False
        self._long_reordering = False
        self._ends: dict[Hashable, ClientEnd] = {}
        self._enabled: dict[Hashable, bool] = {}
        self._servers: dict[Hashable, Server | None] = {}
        self._connections: dict[Hashable, Hashable | None] = {}
        self._done = threading.Event()
        self._count = 0
        self._bytes = 0

    def __enter__(self) -> Network:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        """Shut the network down; later calls fail at once."""
        self._done.set()

    @property
    def reliable(self) -> bool:
        with self._lock:
            return self._reliable

    @reliable.setter
    def reliable(self, yes: bool) -> None:
        with self._lock:
            self._reliable = yes

    @property
    def long_delays(self) -> bool:
        """Whether a request on a dead connection pauses a long time."""
        with self._lock:
            return self._long_delays

    @long_delays.setter
    def long_delays(self, yes: bool) -> None:
        with self._lock:
            self._long_delays = yes

    @property
    def long_reordering(self) -> bool:
        """Whether replies are sometimes delayed a long time."""
        with self._lock:
            return self._long_reordering

    @long_reordering.setter
    def long_reordering(self, yes: bool) -> None:
        with self._lock:
            self._long_reordering = yes

    @property
    def total_count(self) -> int:
        """Total number of RPCs sent over the network."""
        with self._lock:
            return self._count

    @property
    def total_bytes(self) -> int:
        """Total number of argument and delivered reply bytes."""
        with self._lock:
            return self._bytes

    def make_end(self, endname: Hashable) -> ClientEnd:
        """Create a client end-point, initially disabled and unconnected."""
        with self._lock:
            if endname in self._ends:
                raise ValueError(f"make_end: {endname!r} already exists")
            end = ClientEnd(self, endname)
            self._ends[endname] = end
            self._enabled[endname] = False
            self._connections[endname] = None
            return end

    def delete_end(self, endname: Hashable) -> None:
        with self._lock:
            if endname not in self._ends:
                raise KeyError(f"delete_end: {endname!r} doesn't exist")
            del self._ends[endname]
            del self._enabled[endname]
            del self._connections[endname]

    def add_server(self, servername: Hashable, server: Server) -> None:
        with self._lock:
            self._servers[servername] = server

    def delete_server(self, servername: Hashable) -> None:
        """Remove a server; RPCs waiting on it fail."""
        with self._lock:
            self._servers[servername] = None

    def connect(self, endname: Hashable, servername: Hashable) -> None:
        """Connect a client end-point to a server."""
        with self._lock:
            self._connections[endname] = servername

    def enable(self, endname: Hashable, enabled: bool) -> None:
        """Enable or disable a client end-point."""
        with self._lock:
            self._enabled[endname] = enabled

    def get_count(self, servername: Hashable) -> int:
        """Return a server's count of incoming RPCs."""
        with self._lock:
            server = self._servers.get(servername)
        if server is None:
            raise KeyError(f"get_count: no server {servername!r}")
        return server.count

    def _submit(self, request: _Request) -> bytes:
        if self._done.is_set():
            raise RpcError("network has been cleaned up")
        with self._lock:
            self._count += 1
            self._bytes += len(request.args)
        return self._process(request)

    def _endname_info(
        self, endname: Hashable
    ) -> tuple[bool, Hashable | None, Server | None, bool, bool]:
        with self._lock:
            enabled = self._enabled.get(endname, False)
            servername = self._connections.get(endname)
            server = self._servers.get(servername) if servername is not None else None
            return (
                enabled,
                servername,
                server,
                self._reliable,
                self._long_reordering,
            )

    def _is_server_dead(
        self, endname: Hashable, servername: Hashable, server: Server
    ) -> bool:
        with self._lock:
            return (
                not self._enabled.get(endname, False)
                or self._servers.get(servername) is not server
            )

    def _add_bytes(self, n: int) -> None:
        with self._lock:
            self._bytes += n

    def _process(self, request: _Request) -> bytes:
        enabled, servername, server, reliable, long_reordering = self._endname_info(
            request.endname
        )

        if not (enabled and servername is not None and server is not None):
            # simulate no reply and an eventual timeout.
            if self.long_delays:
                ms = random.randrange(LONG_DELAY_MS)
            else:
                ms = random.randrange(100)
            time.sleep(ms / 1000)
            raise RpcError("no reply: end disabled, unconnected or server missing")

        if not reliable:
            time.sleep(random.randrange(SHORT_DELAY_MS) / 1000)
            if random.randrange(1000) < 100:
                raise RpcError("request lost")

        # run the handler in its own thread so that a deleted server can be
        # noticed while the handler is still busy.
        results: queue.Queue[tuple[bytes | None, BaseException | None]] = queue.Queue(
            maxsize=1
        )

        def run() -> None:
            try:
                results.put((server._dispatch(request.svc_meth, request.args), None))
            except BaseException as exc:  # handed back to the caller
                results.put((None, exc))

        threading.Thread(target=run, daemon=True).start()

        outcome: tuple[bytes | None, BaseException | None] | None = None
        while outcome is None:
            try:
                outcome = results.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                if self._is_server_dead(request.endname, servername, server):
                    break

        # never reply once the server is gone, so that a caller does not see
        # success for an update persisted by a superseded server.
        if outcome is None or self._is_server_dead(
            request.endname, servername, server
        ):
            raise RpcError("server was killed")

        reply, error = outcome
        if error is not None:
            raise error
        assert reply is not None

        if not reliable and random.randrange(1000) < 100:
            raise RpcError("reply lost")
        if long_reordering and random.randrange(900) < 600:
            ms = 200 + random.randrange(1 + random.randrange(2000))
            time.sleep(ms / 1000)
        self._add_bytes(len(reply))
        return reply


class Server:
    """A collection of services sharing one RPC dispatcher."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._services: dict[str, Service] = {}
        self._count = 0

    def add_service(self, service: Service) -> None:
        with self._lock:
            self._services[service.name] = service

    @property
    def count(self) -> int:
        """Number of incoming RPCs."""
        with self._lock:
            return self._count

    def _dispatch(self, svc_meth: str, args: bytes) -> bytes:
        with self._lock:
            self._count += 1
            service_name, _, method_name = svc_meth.rpartition(".")
            service = self._services.get(service_name)
            choices = sorted(self._services)
        if service is None:
            raise LookupError(
                f"unknown service {service_name!r} in {svc_meth!r}; "
                f"expecting one of {choices}"
            )
        return service._dispatch(method_name, svc_meth, args)


def _is_handler(func: Any) -> bool:
    """Whether a plain function defined on a class takes self and one argument."""
    code = getattr(func, "__code__", None)
    if code is None:
        return False
    if code.co_flags & (_CO_VARARGS | _CO_VARKEYWORDS):
        return False
    return code.co_argcount == 2 and code.co_kwonlyargcount == 0


class Service:
    """An object whose one-argument public methods can be called by RPC."""

    def __init__(self, receiver: Any, name: str | None = None) -> None:
        self._receiver = receiver
        self._name = name or type(receiver).__name__
        self._methods: dict[str, Callable[[Any], Any]] = {}
        for attr in dir(type(receiver)):
            if attr.startswith("_"):
                continue
            static = inspect.getattr_static(receiver, attr)
            if not inspect.isfunction(static):
                continue
            if _is_handler(static):
                self._methods[attr] = getattr(receiver, attr)

    @property
    def name(self) -> str:
        return self._name

    @property
    def methods(self) -> list[str]:
        """Names of the methods that handle RPCs, sorted."""
        return sorted(self._methods)

    def _dispatch(self, method_name: str, svc_meth: str, args: bytes) -> bytes:
        handler = self._methods.get(method_name)
        if handler is None:
            raise LookupError(
                f"unknown method {method_name!r} in {svc_meth!r}; "
                f"expecting one of {self.methods}"
            )
        return _encode(handler(_decode(args)))