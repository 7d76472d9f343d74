import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the protean config overlay before any domain is initialized."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def reset_adapters():
    """Give every test fresh external adapters and policies."""
    from ordering.catalog import reset_catalog
    from ordering.dispatch.channel import reset_channels
    from ordering.dispatch.policy import reset_dispatch_policy
    from ordering.pricing.policy import reset_policy

    reset_catalog()
    reset_channels()
    reset_policy()
    reset_dispatch_policy()
    yield
    reset_catalog()
    reset_channels()
    reset_policy()
    reset_dispatch_policy()
