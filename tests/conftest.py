"""
Global test configuration: environment isolation, markers and shared fixtures.
"""

import logging
import os

import pytest

from scenecode.config import FrozenConfig

# --- Canonical responses ---

COMPLETE_RESPONSE = (
    "Here is a rotating box scene for you to explore.\n\n"
    "[INSERT_CODE]```javascript\n"
    "const createScene = () => {\n"
    "    const scene = new BABYLON.Scene(engine);\n"
    '    const box = BABYLON.MeshBuilder.CreateBox("box", {size: 2}, scene);\n'
    "    return scene;\n"
    "};\n"
    "const scene = createScene();\n"
    "```[/INSERT_CODE]\n\n"
    "The box sits in the middle of the scene.\n"
    "[RUN_SCENE]"
)


# --- Environment Isolation (Autouse) ---


@pytest.fixture(autouse=True)
def isolate_scenecode_env(request, monkeypatch):
    """Ensure a clean SCENECODE_* environment for each test.

    Escape hatch: mark a test with @pytest.mark.allow_env_pollution to keep
    the current environment unchanged.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("SCENECODE_"):
            monkeypatch.delenv(key, raising=False)
    # Avoid DEBUG toggling telemetry on
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture(autouse=True)
def neutral_home_config(request, monkeypatch, tmp_path):
    """Point the home config file at an isolated temp path.

    Prevents reading a developer's real ~/.config/scenecode.toml.
    """
    if request.node.get_closest_marker("allow_real_home_config"):
        return

    fake_home_dir = tmp_path / "home_config_isolated"
    fake_home_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("SCENECODE_CONFIG_HOME", str(fake_home_dir / "scenecode.toml"))


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "contract: Behavioral invariants of the pipeline",
        "integration: Component integration tests with scripted providers",
        "allow_env_pollution: Keep SCENECODE_* variables from the real environment",
        "allow_real_home_config: Read the real ~/.config/scenecode.toml",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


@pytest.fixture
def fast_config():
    """Config with a short stall timeout so stall tests finish quickly."""
    return FrozenConfig(api_key="test-key", stall_timeout=0.05)


@pytest.fixture
def no_sleep():
    """Async sleep replacement that records requested delays."""
    delays: list[float] = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)

    _sleep.delays = delays  # type: ignore[attr-defined]
    return _sleep


@pytest.fixture
def complete_response():
    return COMPLETE_RESPONSE
