"""
Collection handle.

Collections group items. Like items, a Collection only records its object
path and reads every property from the daemon.
"""

import structlog

from dbus_secrets.bus.connection import BusConnection
from dbus_secrets.config import SecretServiceConfig
from dbus_secrets.constants import (
    COLLECTION_INTERFACE,
    ITEM_ATTRIBUTES_PROPERTY,
    ITEM_LABEL_PROPERTY,
)
from dbus_secrets.exceptions import ProtocolError
from dbus_secrets.models.secret import ObjectPath, is_root
from dbus_secrets.services.item import Item
from dbus_secrets.services.prompt import lock_or_unlock, prompt
from dbus_secrets.session import Session

logger = structlog.get_logger(__name__)


class Collection:
    """
    A named set of items in the daemon's store.

    Args:
        connection: Bus connection to the daemon.
        session: Transport session used for secret values.
        path: Object path of the collection.
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
        if not isinstance(other, Collection):
            return NotImplemented
        return self._path == other._path

    def __hash__(self) -> int:
        return hash((Collection, self._path))

    def __repr__(self) -> str:
        return f"Collection({self._path!r})"

    # Properties

    async def get_items(self) -> list[Item]:
        """Get handles for every item in the collection."""
        paths = await self._get("Items")
        return [self._item(path) for path in paths]

    async def get_label(self) -> str:
        return str(await self._get("Label"))

    async def set_label(self, label: str) -> None:
        await self._connection.set_property(self._path, COLLECTION_INTERFACE, "Label", "s", label)

    async def is_locked(self) -> bool:
        return bool(await self._get("Locked"))

    async def get_created(self) -> int:
        """Creation time, unix seconds."""
        return int(await self._get("Created"))

    async def get_modified(self) -> int:
        """Last modification time, unix seconds."""
        return int(await self._get("Modified"))

    # Methods

    async def search_items(self, attributes: dict[str, str]) -> list[Item]:
        """
        Find items in this collection whose attributes match.

        Args:
            attributes: Attributes that must all be present with equal values.

        Returns:
            Matching items, possibly empty.
        """
        reply = await self._connection.call(
            self._path, COLLECTION_INTERFACE, "SearchItems", "a{ss}", dict(attributes)
        )
        try:
            (paths,) = reply
        except (TypeError, ValueError) as e:
            raise ProtocolError("Malformed SearchItems reply", path=self._path) from e
        return [self._item(path) for path in paths]

    async def create_item(
        self,
        label: str,
        attributes: dict[str, str],
        secret: bytes,
        content_type: str | None = None,
        replace: bool = False,
    ) -> Item | None:
        """
        Create an item, unlocking the collection first if it is locked.

        Args:
            label: Displayed label of the new item.
            attributes: Lookup attributes.
            secret: Secret value.
            content_type: Content type, defaults to the configured one.
            replace: Replace an existing item with the same attributes.

        Returns:
            The new item, or None if the daemon prompted and the prompt was
            dismissed or produced no item path.

        Raises:
            TransportError: If the daemon rejects the call.
            CryptoError: If the secret cannot be encrypted.
        """
        formatted = self._session.format_secret(
            secret, content_type or self._config.default_content_type
        )
        properties = {
            ITEM_LABEL_PROPERTY: ("s", label),
            ITEM_ATTRIBUTES_PROPERTY: ("a{ss}", dict(attributes)),
        }

        if await self.is_locked():
            logger.debug("Auto-unlocking collection", path=self._path)
            await self.unlock()

        reply = await self._connection.call(
            self._path,
            COLLECTION_INTERFACE,
            "CreateItem",
            "a{sv}(oayays)b",
            properties,
            formatted.to_dbus(),
            replace,
        )
        try:
            item_path, prompt_path = reply
        except (TypeError, ValueError) as e:
            raise ProtocolError("Malformed CreateItem reply", path=self._path) from e

        if is_root(item_path):
            dismissed, (signature, value) = await prompt(
                self._connection, prompt_path, self._config.window_id
            )
            if dismissed or signature != "o":
                logger.debug("Item creation not completed", path=self._path, dismissed=dismissed)
                return None
            item_path = value

        logger.debug("Item created", path=item_path)
        return self._item(item_path)

    async def lock(self) -> None:
        """Lock the collection, prompting the user if necessary."""
        await self._lock_or_unlock(True)

    async def unlock(self) -> None:
        """Unlock the collection, prompting the user if necessary."""
        await self._lock_or_unlock(False)

    async def delete(self) -> None:
        """Delete the collection and all of its items, prompting if necessary."""
        reply = await self._connection.call(self._path, COLLECTION_INTERFACE, "Delete", "")
        try:
            (prompt_path,) = reply
        except (TypeError, ValueError) as e:
            raise ProtocolError("Malformed Delete reply", path=self._path) from e
        if not is_root(prompt_path):
            await prompt(self._connection, prompt_path, self._config.window_id)
        logger.debug("Collection deleted", path=self._path)

    def _item(self, path: ObjectPath) -> Item:
        return Item(self._connection, self._session, path, config=self._config)

    async def _lock_or_unlock(self, lock: bool) -> None:
        await lock_or_unlock(
            self._connection,
            lock,
            [self._path],
            service_path=self._config.service_path,
            window_id=self._config.window_id,
        )

    async def _get(self, name: str):
        return await self._connection.get_property(self._path, COLLECTION_INTERFACE, name)
