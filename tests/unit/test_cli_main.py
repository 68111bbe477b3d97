"""
Unit tests for CLI main entry point.

Tests the command group, global options, configuration display and the
ad-hoc REST and GraphQL commands against an in-memory transport.
"""

import json
import logging

import pytest
from click.testing import CliRunner

from veriflow._version import __version__
from veriflow.cli.context import CLIContext
from veriflow.cli.main import cli
from veriflow.sdk.adapters.base import SDKResponse
from veriflow.sdk.client import VeriflowClient


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "absent.yaml")


@pytest.fixture
def cli_context(adapter, ws_transport, clock):
    def factory(config):
        return VeriflowClient(
            config=config,
            adapter_factory=lambda: adapter,
            ws_transport=ws_transport,
            clock=clock,
        )
    return CLIContext(client_factory=factory)


def invoke(runner, cli_context, config_path, *args):
    return runner.invoke(
        cli,
        ["--config", config_path, "--api-key", "vf_cli", "--base-url", "https://api.test", *args],
        obj=cli_context,
    )


class TestCLIMain:
    """Test CLI main entry point."""

    def test_cli_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "Veriflow SDK" in result.output
        assert "--config" in result.output
        assert "--log-level" in result.output
        assert "--api-key" in result.output

    def test_cli_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_config_file(self, runner, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("http: [unclosed")

        result = runner.invoke(cli, ["--config", str(path), "config", "show"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_log_level_from_config_file(self, runner, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("logging:\n  level: ERROR\n")

        result = runner.invoke(cli, ["--config", str(path), "config", "show"])

        assert result.exit_code == 0
        assert logging.getLogger().level == logging.ERROR

    def test_log_level_flag_overrides_config_file(self, runner, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("logging:\n  level: ERROR\n")

        result = runner.invoke(cli, ["--config", str(path), "--log-level", "critical", "config", "show"])

        assert result.exit_code == 0
        assert logging.getLogger().level == logging.CRITICAL


class TestConfigShow:
    def test_secrets_masked(self, runner, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("secret_key: top-secret\nhttp:\n  max_connections: 4\n")

        result = runner.invoke(cli, ["--config", str(path), "--api-key", "vf_cli", "config", "show"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["api_key"] == "****"
        assert data["secret_key"] == "****"
        assert data["http"]["max_connections"] == 4
        assert data["websocket_url"] == "wss://api.veriflow.io/ws"

    def test_env_api_key(self, runner, config_path):
        result = runner.invoke(
            cli,
            ["--config", config_path, "config", "show"],
            env={"VERIFLOW_API_KEY": "vf_env", "VERIFLOW_BASE_URL": "http://localhost:9000"},
        )

        data = json.loads(result.output)
        assert data["api_key"] == "****"
        assert data["base_url"] == "http://localhost:9000"


class TestGetCommand:
    def test_get_prints_body(self, runner, cli_context, config_path, adapter):
        adapter.add("GET", "/verifications/v1", SDKResponse(status_code=200, body={"id": "v1"}))

        result = invoke(runner, cli_context, config_path, "get", "verifications/v1")

        assert result.exit_code == 0
        assert json.loads(result.output) == {"id": "v1"}

    def test_get_params(self, runner, cli_context, config_path, adapter):
        adapter.add("GET", "/verifications", SDKResponse(status_code=200, body=[]))

        result = invoke(
            runner, cli_context, config_path,
            "get", "/verifications", "-p", "status=pending", "--param", "limit=5",
        )

        assert result.exit_code == 0
        assert adapter.sent_requests[-1].params == {"status": "pending", "limit": "5"}

    def test_bad_param(self, runner, cli_context, config_path):
        result = invoke(runner, cli_context, config_path, "get", "/x", "-p", "novalue")

        assert result.exit_code == 2
        assert "key=value" in result.output

    def test_api_error_exits_1(self, runner, cli_context, config_path, adapter):
        adapter.add("GET", "/missing", SDKResponse(status_code=404, body={"message": "not found"}))

        result = invoke(runner, cli_context, config_path, "get", "/missing")

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "not found" in result.output

    def test_missing_api_key(self, runner, cli_context, config_path):
        result = runner.invoke(
            cli,
            ["--config", config_path, "get", "/x"],
            obj=cli_context,
            env={"VERIFLOW_API_KEY": ""},
        )

        assert result.exit_code == 1
        assert "api_key" in result.output


class TestGraphQLCommand:
    def test_query(self, runner, cli_context, config_path, adapter):
        adapter.add("POST", "/graphql", SDKResponse(status_code=200, body={"data": {"me": {"id": "u1"}}}))

        result = invoke(
            runner, cli_context, config_path,
            "graphql", "query($id: ID!) { user(id: $id) { id } }", "-V", '{"id": "u1"}',
        )

        assert result.exit_code == 0
        assert json.loads(result.output) == {"me": {"id": "u1"}}
        assert adapter.sent_requests[-1].body["variables"] == {"id": "u1"}

    @pytest.mark.parametrize("variables", ["{not json", "[1, 2]"])
    def test_bad_variables(self, runner, cli_context, config_path, variables):
        result = invoke(runner, cli_context, config_path, "graphql", "{ me { id } }", "-V", variables)

        assert result.exit_code == 2

    def test_graphql_errors(self, runner, cli_context, config_path, adapter):
        adapter.add("POST", "/graphql", SDKResponse(
            status_code=200, body={"errors": [{"message": "Cannot query field"}]},
        ))

        result = invoke(runner, cli_context, config_path, "graphql", "{ nope }")

        assert result.exit_code == 1
        assert "Cannot query field" in result.output
