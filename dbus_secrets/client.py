"""
Secret Service client facade.

This is the main entry point for users of the library. It owns the bus
connection and the transport session, and hands out Collection and Item
handles bound to both.
"""

from collections.abc import Iterable
from typing import Any, Self

import structlog

from dbus_secrets.bus.connection import BusConnection, JeepneyConnection
from dbus_secrets.config import SecretServiceConfig
from dbus_secrets.constants import (
    COLLECTION_LABEL_PROPERTY,
    DEFAULT_COLLECTION_ALIAS,
    SERVICE_INTERFACE,
)
from dbus_secrets.exceptions import ProtocolError
from dbus_secrets.models.secret import EncryptionType, ObjectPath, is_root
from dbus_secrets.services.collection import Collection
from dbus_secrets.services.item import Item
from dbus_secrets.services.prompt import lock_or_unlock, prompt
from dbus_secrets.session import Session, open_session

logger = structlog.get_logger(__name__)

LockTarget = Collection | Item | ObjectPath


class SecretService:
    """
    Async client for the Freedesktop Secret Service.

    Example:
        ```python
        async with await SecretService.connect(EncryptionType.DH) as service:
            collection = await service.default_collection()
            item = await collection.create_item(
                "Mail password", {"service": "imap"}, b"hunter2"
            )
            print(await item.get_secret())
        ```

    Instances are independent: each owns its connection and session.
    Use :meth:`connect` rather than the constructor.

    Args:
        connection: Bus connection to the daemon.
        session: Open transport session.
        config: Client configuration.
    """

    def __init__(
        self,
        connection: BusConnection,
        session: Session,
        *,
        config: SecretServiceConfig | None = None,
    ) -> None:
        self._connection = connection
        self._session = session
        self._config = config or SecretServiceConfig()
        self._closed = False

    @classmethod
    async def connect(
        cls,
        encryption: EncryptionType | None = None,
        *,
        config: SecretServiceConfig | None = None,
        connection: BusConnection | None = None,
    ) -> Self:
        """
        Connect to the daemon and open a transport session.

        Args:
            encryption: Session algorithm, overrides ``config.encryption``.
            config: Client configuration. Uses defaults if not provided.
            connection: Already open bus connection, e.g. a test double.
                A new session bus connection is opened if not provided.

        Returns:
            A connected SecretService.

        Raises:
            TransportError: If the bus or OpenSession fails.
            ProtocolError: If the daemon replies with an unexpected shape.
            CryptoError: If key agreement fails.
            UnsupportedAlgorithmError: If the encryption is not implemented.
        """
        config = config or SecretServiceConfig()
        encryption = encryption or config.encryption

        if connection is None:
            connection = await JeepneyConnection.open(config.bus, service_name=config.service_name)

        try:
            session = await open_session(connection, encryption, service_path=config.service_path)
        except BaseException:
            await connection.close()
            raise

        logger.debug("Connected to secret service", encryption=str(encryption))
        return cls(connection, session, config=config)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the bus connection and wipe session key material."""
        if self._closed:
            return
        self._closed = True
        self._session.close()
        await self._connection.close()
        logger.debug("Secret service closed")

    @property
    def session(self) -> Session:
        return self._session

    @property
    def encryption(self) -> EncryptionType:
        return self._session.encryption

    @property
    def connection(self) -> BusConnection:
        return self._connection

    # Properties

    async def get_collections(self) -> list[Collection]:
        """Get handles for every collection the daemon knows."""
        paths = await self._connection.get_property(
            self._config.service_path, SERVICE_INTERFACE, "Collections"
        )
        return [self._collection(path) for path in paths]

    # Methods

    async def create_collection(self, label: str, alias: str = "") -> Collection | None:
        """
        Create a collection. The daemon normally asks the user to confirm.

        Args:
            label: Displayed label.
            alias: Optional alias, such as "default".

        Returns:
            The new collection, or None if the prompt was dismissed.
        """
        properties = {COLLECTION_LABEL_PROPERTY: ("s", label)}
        reply = await self._call("CreateCollection", "a{sv}s", properties, alias)
        try:
            collection_path, prompt_path = reply
        except (TypeError, ValueError) as e:
            raise ProtocolError("Malformed CreateCollection reply") from e

        if is_root(collection_path):
            dismissed, (signature, value) = await prompt(
                self._connection, prompt_path, self._config.window_id
            )
            if dismissed or signature != "o":
                logger.debug("Collection creation not completed", dismissed=dismissed)
                return None
            collection_path = value

        logger.debug("Collection created", path=collection_path)
        return self._collection(collection_path)

    async def collection_by_alias(self, alias: str) -> Collection | None:
        """
        Look up a collection by alias.

        Returns:
            The collection, or None if no collection has this alias.
        """
        reply = await self._call("ReadAlias", "s", alias)
        try:
            (path,) = reply
        except (TypeError, ValueError) as e:
            raise ProtocolError("Malformed ReadAlias reply", alias=alias) from e
        if is_root(path):
            return None
        return self._collection(path)

    async def default_collection(self) -> Collection | None:
        """Get the collection with the "default" alias, if any."""
        return await self.collection_by_alias(DEFAULT_COLLECTION_ALIAS)

    async def search_items(self, attributes: dict[str, str]) -> tuple[list[Item], list[Item]]:
        """
        Find items in all collections whose attributes match.

        Returns:
            ``(unlocked, locked)`` item lists. Locked items are ordinary
            handles; reading their secret unlocks them first.
        """
        reply = await self._call("SearchItems", "a{ss}", dict(attributes))
        try:
            unlocked, locked = reply
        except (TypeError, ValueError) as e:
            raise ProtocolError("Malformed SearchItems reply") from e
        return [self._item(path) for path in unlocked], [self._item(path) for path in locked]

    async def lock(self, *targets: LockTarget) -> list[ObjectPath]:
        """
        Lock collections or items, prompting if necessary.

        Returns:
            Paths locked without a prompt.
        """
        return await self._lock_or_unlock(True, targets)

    async def unlock(self, *targets: LockTarget) -> list[ObjectPath]:
        """
        Unlock collections or items, prompting if necessary.

        Returns:
            Paths unlocked without a prompt.
        """
        return await self._lock_or_unlock(False, targets)

    async def _lock_or_unlock(self, lock: bool, targets: Iterable[LockTarget]) -> list[ObjectPath]:
        paths = [target if isinstance(target, str) else target.path for target in targets]
        return await lock_or_unlock(
            self._connection,
            lock,
            paths,
            service_path=self._config.service_path,
            window_id=self._config.window_id,
        )

    async def _call(self, method: str, signature: str, *args: Any) -> tuple[Any, ...]:
        return await self._connection.call(
            self._config.service_path, SERVICE_INTERFACE, method, signature, *args
        )

    def _collection(self, path: ObjectPath) -> Collection:
        return Collection(self._connection, self._session, path, config=self._config)

    def _item(self, path: ObjectPath) -> Item:
        return Item(self._connection, self._session, path, config=self._config)
