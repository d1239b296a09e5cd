"""Unit tests for console configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from deckhub.config import apply_env_overrides, with_overrides
from deckhub.config.loader import load_config
from deckhub.config.schema import ConsoleConfig, HubConfig, ReconnectConfig


@pytest.mark.unit
def test_missing_file_yields_defaults(tmp_path: Path):
    cfg = load_config(tmp_path / "absent.yml")

    assert cfg.hub.host == "localhost:8080"
    assert cfg.hub.secure is False
    assert cfg.polling.interval == 1.0
    assert cfg.shell.reconnect.max_attempts == 0


@pytest.mark.unit
def test_yaml_file_is_validated_and_env_expanded(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STUDIO_HUB", "hub.studio:9443")
    path = tmp_path / "deckhub.yml"
    path.write_text(
        "hub:\n"
        "  host: ${STUDIO_HUB}\n"
        "  secure: true\n"
        "shell:\n"
        "  scrollback_lines: 5000\n"
        "  reconnect:\n"
        "    max_attempts: 3\n"
        "relay:\n"
        "  timeout: 4\n",
        encoding="utf-8",
    )

    cfg = load_config(path)

    assert cfg.hub.host == "hub.studio:9443"
    assert cfg.hub.secure is True
    assert cfg.shell.scrollback_lines == 5000
    assert cfg.shell.reconnect.max_attempts == 3
    assert cfg.relay.timeout == 4.0


@pytest.mark.unit
def test_empty_file_yields_defaults(tmp_path: Path):
    path = tmp_path / "deckhub.yml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == ConsoleConfig()


@pytest.mark.unit
def test_unparseable_file_falls_back_to_defaults(tmp_path: Path):
    path = tmp_path / "deckhub.yml"
    path.write_text("hub: [unclosed\n", encoding="utf-8")

    assert load_config(path) == ConsoleConfig()


@pytest.mark.unit
def test_invalid_values_raise(tmp_path: Path):
    path = tmp_path / "deckhub.yml"
    path.write_text("polling:\n  interval: 0\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_config(path)


@pytest.mark.unit
@pytest.mark.parametrize("host", ["http://hub:8080", "hub:8080/graphql", "  "])
def test_hub_host_must_be_bare(host: str):
    with pytest.raises(ValidationError):
        HubConfig(host=host)


@pytest.mark.unit
def test_effective_host_prefers_api_host():
    assert HubConfig(host="ui:3000").effective_host == "ui:3000"
    assert HubConfig(host="ui:3000", api_host="hub:8080").effective_host == "hub:8080"


@pytest.mark.unit
def test_reconnect_backoff_bounds_are_checked():
    with pytest.raises(ValidationError):
        ReconnectConfig(initial_backoff=10, max_backoff=1)


@pytest.mark.unit
def test_env_overrides_apply_to_hub(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DECKHUB_HUB_HOST", "envhub:8080")
    monkeypatch.setenv("DECKHUB_API_HOST", "api.envhub:8443")
    monkeypatch.setenv("DECKHUB_SECURE", "yes")

    cfg = apply_env_overrides(ConsoleConfig())

    assert cfg.hub.host == "envhub:8080"
    assert cfg.hub.api_host == "api.envhub:8443"
    assert cfg.hub.secure is True


@pytest.mark.unit
def test_env_overrides_absent_keep_base(monkeypatch: pytest.MonkeyPatch):
    for name in ("DECKHUB_HUB_HOST", "DECKHUB_API_HOST", "DECKHUB_SECURE"):
        monkeypatch.delenv(name, raising=False)
    base = ConsoleConfig()

    assert apply_env_overrides(base) is base


@pytest.mark.unit
def test_with_overrides_skips_none_and_revalidates():
    base = ConsoleConfig()

    cfg = with_overrides(base, host="cli:1234", api_host=None, secure=None)

    assert cfg.hub.host == "cli:1234"
    assert cfg.hub.secure is False
    assert base.hub.host == "localhost:8080"
    with pytest.raises(ValidationError):
        with_overrides(base, host="ws://nope")
