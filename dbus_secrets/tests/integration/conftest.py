import os

import pytest


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    if os.getenv("DBUS_SECRETS_TEST_DAEMON"):
        return
    mark_expr = getattr(config.option, "markexpr", "")
    if "integration" in mark_expr:
        return
    skip = pytest.mark.skip(reason="DBUS_SECRETS_TEST_DAEMON not set")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip)
