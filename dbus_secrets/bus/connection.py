"""
Async D-Bus connection to the secret daemon.

Defines the small set of bus operations the client needs (method calls,
property access, signal subscription) and an implementation on top of the
jeepney asyncio router.
"""

import asyncio
from collections.abc import Callable
from contextlib import AsyncExitStack
from typing import Any, Protocol, Self, runtime_checkable

import structlog
from jeepney import (
    DBusAddress,
    DBusErrorResponse,
    MatchRule,
    Message,
    MessageType,
    Properties,
    message_bus,
    new_method_call,
)
from jeepney.io.asyncio import DBusRouter, open_dbus_router
from jeepney.io.common import RouterClosed

from dbus_secrets.constants import SERVICE_NAME
from dbus_secrets.exceptions import ConnectionClosedError, ProtocolError, TransportError

logger = structlog.get_logger(__name__)

SignalCallback = Callable[[Exception | None, tuple[Any, ...] | None], None]


@runtime_checkable
class SignalSubscription(Protocol):
    """Handle on an active signal subscription."""

    def close(self) -> None:
        """Stop delivering signals. Idempotent."""
        ...


@runtime_checkable
class BusConnection(Protocol):
    """
    Bus operations used by the Secret Service client.

    Every call targets the secret daemon's bus name. Variants are
    ``(signature, value)`` tuples, object paths are ``str`` and byte arrays
    are ``bytes``.
    """

    async def call(
        self, path: str, interface: str, method: str, signature: str, *args: Any
    ) -> tuple[Any, ...]:
        """
        Invoke a method and return the reply body.

        Raises:
            TransportError: If the call fails or the daemon returns an error.
        """
        ...

    async def get_property(self, path: str, interface: str, name: str) -> Any:
        """Read a property, returning the unwrapped variant value."""
        ...

    async def set_property(
        self, path: str, interface: str, name: str, signature: str, value: Any
    ) -> None:
        """Write a property."""
        ...

    async def watch_signal(
        self, path: str, interface: str, member: str, callback: SignalCallback
    ) -> SignalSubscription:
        """
        Subscribe to a signal.

        The subscription is live once this coroutine returns, so signals
        emitted by any call made afterwards reach ``callback``. The callback
        receives ``(None, body)`` for each signal and ``(exc, None)`` if the
        connection is lost.
        """
        ...

    async def close(self) -> None:
        """Close the connection, failing any live subscription."""
        ...


class _CallbackQueue:
    """Stand-in for the router's filter queue that hands messages to a callback."""

    def __init__(self, callback: SignalCallback) -> None:
        self._callback = callback

    def put_nowait(self, msg: Message) -> None:
        self._callback(None, msg.body)


class _JeepneySubscription:
    def __init__(
        self,
        owner: "JeepneyConnection",
        handle: Any,
        rule: MatchRule,
        callback: SignalCallback,
    ) -> None:
        self._owner = owner
        self._handle = handle
        self._rule = rule
        self._callback = callback
        self._closed = False

    def close(self) -> None:
        self._release(remove_match=True)

    def fail(self, exc: Exception) -> None:
        if self._closed:
            return
        # The bus drops match rules with the connection
        self._release(remove_match=False)
        self._callback(exc, None)

    def _release(self, *, remove_match: bool) -> None:
        if self._closed:
            return
        self._closed = True
        self._handle.close()
        self._owner._forget(self)
        if remove_match:
            self._owner._remove_match(self._rule)


class JeepneyConnection:
    """
    BusConnection backed by a jeepney asyncio DBusRouter.

    Use :meth:`open` to connect, or wrap an existing router for tests.

    Args:
        router: Running jeepney router.
        service_name: Bus name of the secret daemon.
    """

    def __init__(self, router: DBusRouter, *, service_name: str = SERVICE_NAME) -> None:
        self._router = router
        self._service_name = service_name
        self._exit_stack: AsyncExitStack | None = None
        self._subscriptions: set[_JeepneySubscription] = set()
        self._pending_removals: set[asyncio.Future] = set()
        self._closed = False

        # The router exposes no public hook for a dropped connection
        receiver = getattr(router, "_rcv_task", None)
        if receiver is not None:
            receiver.add_done_callback(self._on_receiver_done)

    @classmethod
    async def open(cls, bus: str = "SESSION", *, service_name: str = SERVICE_NAME) -> Self:
        """
        Connect and authenticate to a message bus.

        Args:
            bus: "SESSION", "SYSTEM" or a D-Bus address. The session bus
                address comes from DBUS_SESSION_BUS_ADDRESS.

        Raises:
            TransportError: If the bus cannot be reached.
        """
        stack = AsyncExitStack()
        try:
            router = await stack.enter_async_context(open_dbus_router(bus))
        except (OSError, ValueError, KeyError) as e:
            await stack.aclose()
            raise TransportError("Failed to connect to message bus", bus=bus) from e

        connection = cls(router, service_name=service_name)
        connection._exit_stack = stack
        logger.debug("Bus connection opened", bus=bus)
        return connection

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def call(
        self, path: str, interface: str, method: str, signature: str, *args: Any
    ) -> tuple[Any, ...]:
        address = DBusAddress(path, bus_name=self._service_name, interface=interface)
        msg = new_method_call(address, method, signature or None, args)
        return await self._send(msg, f"{interface}.{method}")

    async def get_property(self, path: str, interface: str, name: str) -> Any:
        address = DBusAddress(path, bus_name=self._service_name, interface=interface)
        body = await self._send(Properties(address).get(name), f"{interface}.{name}")
        try:
            ((_signature, value),) = body
        except (TypeError, ValueError) as e:
            raise ProtocolError("Malformed property reply", property=name) from e
        return value

    async def set_property(
        self, path: str, interface: str, name: str, signature: str, value: Any
    ) -> None:
        address = DBusAddress(path, bus_name=self._service_name, interface=interface)
        await self._send(Properties(address).set(name, signature, value), f"{interface}.{name}")

    async def watch_signal(
        self, path: str, interface: str, member: str, callback: SignalCallback
    ) -> SignalSubscription:
        if self._closed:
            raise ConnectionClosedError()

        rule = MatchRule(type="signal", path=path, interface=interface, member=member)
        # Local filter first, so nothing routed after AddMatch can be missed
        handle = self._router.filter(rule, queue=_CallbackQueue(callback))
        subscription = _JeepneySubscription(self, handle, rule, callback)
        self._subscriptions.add(subscription)
        try:
            await self._send(message_bus.AddMatch(rule), "AddMatch")
        except BaseException:
            subscription._release(remove_match=False)
            raise
        return subscription

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._fail_subscriptions(ConnectionClosedError())
        if self._pending_removals:
            await asyncio.gather(*self._pending_removals, return_exceptions=True)
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._exit_stack = None
        logger.debug("Bus connection closed")

    async def _send(self, msg: Message, what: str) -> tuple[Any, ...]:
        if self._closed:
            raise ConnectionClosedError()
        try:
            reply = await self._router.send_and_get_reply(msg)
        except RouterClosed as e:
            raise ConnectionClosedError() from e
        except OSError as e:
            raise TransportError("Bus I/O failed", method=what) from e

        if reply.header.message_type == MessageType.error:
            error = DBusErrorResponse(reply)
            raise TransportError(
                f"D-Bus call failed: {error.name}", name=error.name, method=what
            ) from error
        return reply.body

    def _forget(self, subscription: _JeepneySubscription) -> None:
        self._subscriptions.discard(subscription)

    def _remove_match(self, rule: MatchRule) -> None:
        if self._closed:
            return
        future = asyncio.ensure_future(self._router.send(message_bus.RemoveMatch(rule)))
        self._pending_removals.add(future)
        future.add_done_callback(self._on_removal_done)

    def _on_removal_done(self, future: asyncio.Future) -> None:
        self._pending_removals.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.debug("RemoveMatch failed", error=str(exc))

    def _fail_subscriptions(self, exc: Exception) -> None:
        for subscription in list(self._subscriptions):
            subscription.fail(exc)

    def _on_receiver_done(self, _task: asyncio.Task) -> None:
        if not self._subscriptions:
            return
        logger.debug("Bus receiver stopped", pending=len(self._subscriptions))
        self._fail_subscriptions(ConnectionClosedError("Bus connection lost"))
