"""
Secret item handle.

An Item only records its object path; every read goes to the daemon.
Deleting the item on the daemon does not invalidate the handle, later
calls simply fail with a TransportError.
"""

import structlog

from dbus_secrets.bus.connection import BusConnection
from dbus_secrets.config import SecretServiceConfig
from dbus_secrets.constants import ITEM_INTERFACE, SECRET_SIGNATURE
from dbus_secrets.exceptions import ProtocolError
from dbus_secrets.models.secret import ObjectPath, Secret, is_root
from dbus_secrets.services.prompt import lock_or_unlock, prompt
from dbus_secrets.session import Session

logger = structlog.get_logger(__name__)


class Item:
    """
    A secret with a label and lookup attributes, stored in a collection.

    Args:
        connection: Bus connection to the daemon.
        session: Transport session used for secret values.
        path: Object path of the item.
        config: Client configuration.
    """

    def __init__(
        self,
        connection: BusConnection,
        session: Session,
        path: ObjectPath,
        *,
        config: SecretServiceConfig | None = None,
    ) -> None:
        self._connection = connection
        self._session = session
        self._config = config or SecretServiceConfig()
        self._path = path

    @property
    def path(self) -> ObjectPath:
        return self._path

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return self._path == other._path

    def __hash__(self) -> int:
        return hash((Item, self._path))

    def __repr__(self) -> str:
        return f"Item({self._path!r})"

    # Properties

    async def is_locked(self) -> bool:
        return bool(await self._get("Locked"))

    async def get_attributes(self) -> dict[str, str]:
        """Get the lookup attributes."""
        return dict(await self._get("Attributes"))

    async def set_attributes(self, attributes: dict[str, str]) -> None:
        """Replace the lookup attributes."""
        await self._connection.set_property(
            self._path, ITEM_INTERFACE, "Attributes", "a{ss}", dict(attributes)
        )

    async def get_label(self) -> str:
        return str(await self._get("Label"))

    async def set_label(self, label: str) -> None:
        await self._connection.set_property(self._path, ITEM_INTERFACE, "Label", "s", label)

    async def get_created(self) -> int:
        """Creation time, unix seconds."""
        return int(await self._get("Created"))

    async def get_modified(self) -> int:
        """Last modification time, unix seconds."""
        return int(await self._get("Modified"))

    # Methods

    async def lock(self) -> None:
        """Lock the item, prompting the user if necessary."""
        await self._lock_or_unlock(True)

    async def unlock(self) -> None:
        """
        Unlock the item, prompting the user if necessary.

        Usually unlocks the whole collection holding the item. A dismissed
        prompt is not reported; the item simply stays locked.
        """
        await self._lock_or_unlock(False)

    async def delete(self) -> None:
        """Delete the item, prompting the user if necessary."""
        reply = await self._connection.call(self._path, ITEM_INTERFACE, "Delete", "")
        try:
            (prompt_path,) = reply
        except (TypeError, ValueError) as e:
            raise ProtocolError("Malformed Delete reply", path=self._path) from e
        if not is_root(prompt_path):
            await prompt(self._connection, prompt_path, self._config.window_id)
        logger.debug("Item deleted", path=self._path)

    async def get_secret(self) -> bytes:
        """
        Get the secret value, unlocking the item first if it is locked.

        Returns:
            The decrypted secret.

        Raises:
            TransportError: If the item is still locked (unlock dismissed) or gone.
            DecryptionError: If the secret cannot be decrypted.
        """
        secret = await self._fetch_secret()
        return self._session.decrypt_secret(secret)

    async def get_secret_content_type(self) -> str:
        """Get the content type stored alongside the secret."""
        secret = await self._fetch_secret()
        return secret.content_type

    async def set_secret(self, secret: bytes, content_type: str | None = None) -> None:
        """
        Replace the secret value, unlocking the item first if it is locked.

        Args:
            secret: New secret value.
            content_type: Content type, defaults to the configured one.
        """
        formatted = self._session.format_secret(
            secret, content_type or self._config.default_content_type
        )

        await self._ensure_unlocked()
        await self._connection.call(
            self._path, ITEM_INTERFACE, "SetSecret", SECRET_SIGNATURE, formatted.to_dbus()
        )

    async def _fetch_secret(self) -> Secret:
        await self._ensure_unlocked()
        reply = await self._connection.call(
            self._path, ITEM_INTERFACE, "GetSecret", "o", self._session.path
        )
        try:
            (data,) = reply
        except (TypeError, ValueError) as e:
            raise ProtocolError("Malformed GetSecret reply", path=self._path) from e
        return Secret.from_dbus(data)

    async def _ensure_unlocked(self) -> None:
        if await self.is_locked():
            logger.debug("Auto-unlocking item", path=self._path)
            await self.unlock()

    async def _lock_or_unlock(self, lock: bool) -> None:
        await lock_or_unlock(
            self._connection,
            lock,
            [self._path],
            service_path=self._config.service_path,
            window_id=self._config.window_id,
        )

    async def _get(self, name: str):
        return await self._connection.get_property(self._path, ITEM_INTERFACE, name)
