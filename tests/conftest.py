import shutil
import sys
from pathlib import Path

import pytest  # type: ignore[import-not-found]

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from pynapi import settings  # noqa: E402
from pynapi.runtime import RuntimeRelease  # noqa: E402


@pytest.fixture(autouse=True)
def reset_settings():
    original_manager = settings.SettingsManager.from_dict(
        settings.settings_manager.to_dict()
    )
    settings.settings_manager = settings.SettingsManager()
    yield
    settings.settings_manager = original_manager


@pytest.fixture
def linux_release() -> RuntimeRelease:
    return RuntimeRelease("v20.11.1", "linux", "x64")


@pytest.fixture
def windows_release() -> RuntimeRelease:
    return RuntimeRelease("v20.11.1", "win32", "x64")


INTEGRATION_TOOLS = ("cmake", "ninja", "node")


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--type",
        action="store",
        default="all",
        choices=("unit", "integration", "all"),
        help=(
            "Select which tests to run: unit (no external tools), integration "
            "(needs cmake, ninja and node on the path and network access to "
            "the Node.js dist mirror), or all."
        ),
    )
    parser.addoption(
        "--offline",
        action="store_true",
        default=False,
        help="Skip integration tests, which download Node.js headers.",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    selected = config.getoption("--type")
    missing = [tool for tool in INTEGRATION_TOOLS if shutil.which(tool) is None]

    skip_unit = pytest.mark.skip(reason="skipped by --type integration")
    if selected == "unit":
        skip_integration = pytest.mark.skip(reason="skipped by --type unit")
    elif config.getoption("--offline"):
        skip_integration = pytest.mark.skip(reason="needs network access (--offline)")
    elif missing:
        skip_integration = pytest.mark.skip(
            reason=f"needs {', '.join(missing)} on the path"
        )
    else:
        skip_integration = None

    for item in items:
        is_integration = item.get_closest_marker("integration") is not None
        if is_integration and skip_integration is not None:
            item.add_marker(skip_integration)
        elif selected == "integration" and not is_integration:
            item.add_marker(skip_unit)
