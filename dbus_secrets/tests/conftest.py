from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from dbus_secrets.client import SecretService
from dbus_secrets.config import SecretServiceConfig
from dbus_secrets.models.secret import EncryptionType
from dbus_secrets.tests.utils.fake_daemon import FakeSecretDaemon


@pytest.fixture
def daemon() -> FakeSecretDaemon:
    daemon = FakeSecretDaemon()
    daemon.add_collection("login", label="Login", alias="default")
    return daemon


@pytest.fixture
def config() -> SecretServiceConfig:
    return SecretServiceConfig(window_id="x11:42")


@pytest_asyncio.fixture
async def plain_service(
    daemon: FakeSecretDaemon, config: SecretServiceConfig
) -> AsyncIterator[SecretService]:
    service = await SecretService.connect(EncryptionType.PLAIN, config=config, connection=daemon)
    yield service
    await service.close()


@pytest_asyncio.fixture
async def dh_service(
    daemon: FakeSecretDaemon, config: SecretServiceConfig
) -> AsyncIterator[SecretService]:
    service = await SecretService.connect(EncryptionType.DH, config=config, connection=daemon)
    yield service
    await service.close()
