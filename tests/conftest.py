"""Shared pytest fixtures and test helpers for polyface tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from polyface.config.settings import PolyfaceSettings
from polyface.domain.descriptors import ServiceDescriptor
from polyface.services.analysis import describe_service
from polyface.services.telemetry import _current_span, disable_telemetry
from sample_services import Calculator, Feed, UserService

USERS_TARGET = "sample_services:UserService"
CALC_TARGET = "sample_services:Calculator"
FEED_TARGET = "sample_services:Feed"
CLASH_TARGET = "sample_services:Clashing"
FOLDING_TARGET = "sample_services:Folding"

SERVICE_TOML = """\
name = "Inventory"
doc = "Stock levels."

[[operations]]
name = "get_item"
returns = "Item | None"
params = [{ name = "item_id", type = "str" }]

[[operations]]
name = "add_item"
returns = "Result[Item, Conflict]"
params = [
    { name = "sku", type = "str" },
    { name = "quantity", type = "u32", default = 1 },
]

[[operations]]
name = "list_items"
returns = "list[Item]"
params = [{ name = "tags", type = "list[str] | None" }]
"""


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore logger and telemetry state changed by AppContext."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    poly = logging.getLogger("polyface")
    poly_level = poly.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    poly.setLevel(poly_level)
    disable_telemetry()
    _current_span.set(None)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """No POLYFACE_* variable from the outer environment leaks into a test."""
    import os

    for key in list(os.environ):
        if key.startswith("POLYFACE_"):
            monkeypatch.delenv(key)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty project directory used as CWD."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def settings(project: Path) -> PolyfaceSettings:
    return PolyfaceSettings.from_cli(project_root=project)


@pytest.fixture
def service_file(tmp_path: Path) -> Path:
    path = tmp_path / "inventory.toml"
    path.write_text(SERVICE_TOML, encoding="utf-8")
    return path


@pytest.fixture
def users() -> ServiceDescriptor:
    return describe_service(UserService)


@pytest.fixture
def calculator() -> ServiceDescriptor:
    return describe_service(Calculator)


@pytest.fixture
def feed() -> ServiceDescriptor:
    return describe_service(Feed)


def write_config(root: Path, body: str) -> Path:
    """Write ``polyface.toml`` under *root*."""
    path = root / "polyface.toml"
    path.write_text(body, encoding="utf-8")
    return path
