import pytest

from dbus_secrets.config import SecretServiceConfig
from dbus_secrets.constants import SERVICE_NAME, SERVICE_PATH
from dbus_secrets.models.secret import EncryptionType


def test_defaults_target_session_bus_with_dh() -> None:
    config = SecretServiceConfig()

    assert config.bus == "SESSION"
    assert config.encryption is EncryptionType.DH
    assert config.service_name == SERVICE_NAME
    assert config.service_path == SERVICE_PATH
    assert config.window_id == ""
    assert config.default_content_type == "text/plain"


def test_config_is_frozen() -> None:
    config = SecretServiceConfig()

    with pytest.raises(AttributeError):
        config.window_id = "x11:1"  # type: ignore[misc]


def test_config_requires_keyword_arguments() -> None:
    with pytest.raises(TypeError):
        SecretServiceConfig("SYSTEM")  # type: ignore[misc]


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"bus": ""}, "bus must not be empty"),
        ({"service_name": ""}, "service_name must not be empty"),
        ({"service_path": "org/freedesktop/secrets"}, "service_path"),
        ({"service_path": "/"}, "service_path"),
        ({"encryption": "plain"}, "encryption must be an EncryptionType"),
    ],
)
def test_invalid_values_are_rejected(kwargs: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        SecretServiceConfig(**kwargs)


def test_custom_values_are_kept() -> None:
    config = SecretServiceConfig(
        bus="SYSTEM",
        encryption=EncryptionType.PLAIN,
        service_name="org.example.secrets",
        service_path="/org/example/secrets",
        window_id="wayland:abc",
        default_content_type="application/octet-stream",
    )

    assert config.bus == "SYSTEM"
    assert config.encryption is EncryptionType.PLAIN
    assert config.window_id == "wayland:abc"
