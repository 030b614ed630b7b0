"""
Prompt handling for operations the daemon defers to the user.

When an operation needs user interaction (unlocking, confirming deletion,
creating a collection), the daemon returns the path of a Prompt object
instead of a result. Calling ``Prompt`` shows the dialog; the outcome
arrives later in the prompt's ``Completed`` signal.
"""

import asyncio
from collections.abc import Iterable
from typing import Any

import structlog

from dbus_secrets.bus.connection import BusConnection
from dbus_secrets.constants import PROMPT_INTERFACE, SERVICE_INTERFACE, SERVICE_PATH
from dbus_secrets.exceptions import ProtocolError
from dbus_secrets.models.secret import ObjectPath, is_root

logger = structlog.get_logger(__name__)


async def prompt(
    connection: BusConnection,
    prompt_path: ObjectPath,
    window_id: str = "",
) -> tuple[bool, tuple[str, Any]]:
    """
    Show a prompt and wait for the user's decision.

    The ``Completed`` subscription is registered before ``Prompt`` is
    invoked, so an immediate completion is never lost. There is no timeout:
    wrap the call in ``asyncio.timeout`` if one is needed. Cancelling the
    awaiting task releases the subscription and drops any later signal.

    Args:
        connection: Bus connection to the daemon.
        prompt_path: Object path of the prompt.
        window_id: Platform window handle the dialog should attach to.

    Returns:
        ``(dismissed, result)`` where ``result`` is the ``(signature, value)``
        variant carried by ``Completed``.

    Raises:
        TransportError: If the call fails or the connection is lost.
        ProtocolError: If the signal body is malformed.
    """
    loop = asyncio.get_running_loop()
    completed: asyncio.Future[tuple[bool, tuple[str, Any]]] = loop.create_future()

    def resolve(error: Exception | None, body: tuple[Any, ...] | None) -> None:
        if completed.done():
            return
        if error is not None:
            completed.set_exception(error)
            return
        try:
            dismissed, result = body
            _signature, _value = result
        except (TypeError, ValueError):
            completed.set_exception(ProtocolError("Malformed Completed signal", path=prompt_path))
            return
        completed.set_result((bool(dismissed), result))

    def on_completed(error: Exception | None, body: tuple[Any, ...] | None) -> None:
        # May run on a bus I/O thread
        loop.call_soon_threadsafe(resolve, error, body)

    subscription = await connection.watch_signal(
        prompt_path, PROMPT_INTERFACE, "Completed", on_completed
    )
    try:
        logger.debug("Prompt started", path=prompt_path)
        await connection.call(prompt_path, PROMPT_INTERFACE, "Prompt", "s", window_id)
        dismissed, result = await completed
    finally:
        subscription.close()

    logger.debug("Prompt completed", path=prompt_path, dismissed=dismissed)
    return dismissed, result


async def lock_or_unlock(
    connection: BusConnection,
    lock: bool,
    paths: Iterable[ObjectPath],
    *,
    service_path: str = SERVICE_PATH,
    window_id: str = "",
) -> list[ObjectPath]:
    """
    Lock or unlock objects, going through a prompt if the daemon asks for one.

    The prompt's own result is ignored: the daemon updates lock state
    whatever it reports.

    Args:
        connection: Bus connection to the daemon.
        lock: True to lock, False to unlock.
        paths: Collection or item paths.
        service_path: Object path of the daemon's Service object.
        window_id: Platform window handle for the prompt.

    Returns:
        Paths the daemon changed immediately, without prompting.

    Raises:
        TransportError: If the call fails.
        ProtocolError: If the reply is malformed.
    """
    method = "Lock" if lock else "Unlock"
    targets = list(paths)
    reply = await connection.call(service_path, SERVICE_INTERFACE, method, "ao", targets)
    try:
        changed, prompt_path = reply
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Malformed {method} reply") from e

    logger.debug(method, paths=targets, prompted=not is_root(prompt_path))
    if not is_root(prompt_path):
        await prompt(connection, prompt_path, window_id)

    return list(changed)
