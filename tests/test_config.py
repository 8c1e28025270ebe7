"""Tests for configuration loading and validation."""

from __future__ import annotations

import json

import pytest

from mcp_metaproxy.config import (
    BackendDescriptor,
    ProxyConfig,
    expand_env_vars,
    load_config_file,
    load_config_string,
    validate_config,
)
from mcp_metaproxy.constants import DEFAULT_DISCOVER_LIMIT
from mcp_metaproxy.errors import ConfigurationError


class TestProxyConfigDefaults:
    def test_empty_config(self) -> None:
        cfg = validate_config({})
        assert cfg.mcp_servers == {}
        assert cfg.discover_limit == DEFAULT_DISCOVER_LIMIT
        assert cfg.discover_description is None
        assert cfg.discover_description_extras is None
        assert cfg.partial_startup is False
        assert cfg.search.fuzzy == pytest.approx(0.1)
        assert cfg.search.prefix is True
        assert cfg.search.boost == {"description": 2.0}

    def test_none_is_treated_as_empty(self) -> None:
        assert validate_config(None).mcp_servers == {}

    def test_null_fields_take_defaults(self) -> None:
        cfg = validate_config({"mcpServers": None, "discoverLimit": None})
        assert cfg.mcp_servers == {}
        assert cfg.discover_limit == 5

    def test_backend_defaults(self) -> None:
        backend = BackendDescriptor(command="uvx")
        assert backend.args == []
        assert backend.env == {}
        assert backend.transport == "stdio"

    def test_populate_by_field_name(self) -> None:
        cfg = ProxyConfig(discover_limit=3)
        assert cfg.discover_limit == 3


class TestProxyConfigValidation:
    def test_full_config(self) -> None:
        cfg = validate_config(
            {
                "mcpServers": {
                    "weather": {"command": "uvx", "args": ["weather-mcp"], "env": {"K": "v"}},
                },
                "discoverDescription": "Find tools",
                "discoverDescriptionExtras": "Prefer weather tools.",
                "discoverLimit": 2,
                "partialStartup": True,
            }
        )
        weather = cfg.mcp_servers["weather"]
        assert weather.command == "uvx"
        assert weather.args == ["weather-mcp"]
        assert weather.env == {"K": "v"}
        assert cfg.discover_limit == 2
        assert cfg.partial_startup is True

    def test_unknown_transport_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown transport 'sse' for backend 'remote'"):
            validate_config({"mcpServers": {"remote": {"command": "x", "transport": "sse"}}})

    def test_null_transport_defaults_to_stdio(self) -> None:
        cfg = validate_config({"mcpServers": {"a": {"command": "x", "transport": None}}})
        assert cfg.mcp_servers["a"].transport == "stdio"

    def test_blank_command_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="command"):
            validate_config({"mcpServers": {"a": {"command": "   "}}})

    def test_reserved_backend_name(self) -> None:
        with pytest.raises(ConfigurationError, match="reserved"):
            validate_config({"mcpServers": {"local": {"command": "x"}}})

    def test_limit_must_be_positive(self) -> None:
        with pytest.raises(ConfigurationError, match="discoverLimit"):
            validate_config({"discoverLimit": 0})

    def test_unknown_boost_field(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown search field"):
            validate_config({"search": {"boost": {"title": 2}}})

    def test_all_errors_reported_at_once(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            validate_config(
                {
                    "mcpServers": {"a": {"args": []}},
                    "discoverLimit": -1,
                }
            )
        message = str(exc_info.value)
        assert "2 error(s)" in message
        assert message.count("  • ") == 2


class TestEnvExpansion:
    def test_expands_set_variables(self, monkeypatch) -> None:
        monkeypatch.setenv("API_TOKEN", "abc")
        assert expand_env_vars({"env": {"TOKEN": "${API_TOKEN}"}}) == {"env": {"TOKEN": "abc"}}

    def test_leaves_unset_variables(self, monkeypatch) -> None:
        monkeypatch.delenv("NOPE_NOT_SET", raising=False)
        assert expand_env_vars(["${NOPE_NOT_SET}", 3]) == ["${NOPE_NOT_SET}", 3]

    def test_expansion_applies_before_validation(self, monkeypatch) -> None:
        monkeypatch.setenv("SERVER_BIN", "/opt/bin/server")
        cfg = validate_config({"mcpServers": {"a": {"command": "${SERVER_BIN}"}}})
        assert cfg.mcp_servers["a"].command == "/opt/bin/server"


class TestLoaders:
    def test_load_config_file(self, tmp_path) -> None:
        path = tmp_path / "servers.json"
        path.write_text(json.dumps({"mcpServers": {"a": {"command": "node"}}}))
        assert list(load_config_file(str(path)).mcp_servers) == ["a"]

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_config_file(str(tmp_path / "missing.json"))

    def test_malformed_json(self) -> None:
        with pytest.raises(ConfigurationError, match="Unable to parse JSON"):
            load_config_string("{not json")

    def test_top_level_must_be_object(self) -> None:
        with pytest.raises(ConfigurationError, match="must be a JSON object"):
            load_config_string("[1, 2]")

    def test_load_config_string(self) -> None:
        cfg = load_config_string('{"discoverLimit": 7}')
        assert cfg.discover_limit == 7
