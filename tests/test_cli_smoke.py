"""Smoke tests for CLI commands.

Commands run through Click's CliRunner against an in-memory redis server
shared between the seeding code and the client the command creates.
"""

import asyncio

import fakeredis
import pytest
from click.testing import CliRunner

from nohm import NohmSettings, Registry, __version__
from nohm.cli.main import cli

PREFIX = "clitest"


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def server():
    """In-memory redis server."""
    return fakeredis.FakeServer()


@pytest.fixture
def invoke(runner, server, tmp_path):
    """Invoke the CLI with a client bound to the in-memory server."""

    def _invoke(*args, input=None):
        obj = {"client_factory": lambda: fakeredis.FakeAsyncRedis(server=server, decode_responses=True)}
        return runner.invoke(
            cli,
            ["--log-file", str(tmp_path / "cli.log"), "--prefix", PREFIX, *args],
            obj=obj,
            input=input,
        )

    return _invoke


@pytest.fixture
def seeded(server):
    """Two saved User records; returns their ids."""

    async def seed():
        client = fakeredis.FakeAsyncRedis(server=server, decode_responses=True)
        registry = Registry(client, NohmSettings(prefix=PREFIX))
        model = registry.model("User", {
            "name": {"type": "string", "unique": True},
            "visits": {"type": "integer", "index": True},
        }, id_generator="increment")
        ids = []
        for name, visits in (("Alice", 3), ("Bob", 5)):
            user = model()
            user.property({"name": name, "visits": visits})
            await user.save()
            ids.append(user.id)
        await client.aclose()
        return ids

    return asyncio.run(seed())


@pytest.mark.integration
class TestCLIHelp:
    """Test that all commands have working help text."""

    def test_main_help(self, runner):
        """Test main CLI help displays."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "inspect data stored by the nohm object mapper" in result.output
        assert "--redis-url" in result.output
        assert "--prefix" in result.output

    def test_version_flag(self, runner):
        """Test --version flag works."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    @pytest.mark.parametrize("command", ["keys", "ids", "show", "purge"])
    def test_command_help(self, invoke, command):
        """Test every command has help."""
        result = invoke(command, "--help")
        assert result.exit_code == 0

    def test_invalid_log_level(self, runner):
        """Test an unknown log level is rejected."""
        result = runner.invoke(cli, ["--log-level", "LOUD", "keys"])
        assert result.exit_code != 0
        assert "Invalid value" in result.output


@pytest.mark.integration
class TestRecordCommands:
    """Test keys, ids and show."""

    def test_keys_empty(self, invoke):
        """Test an empty prefix."""
        result = invoke("keys")
        assert result.exit_code == 0
        assert "No keys found." in result.output

    def test_keys(self, invoke, seeded):
        """Test every key under the prefix is listed."""
        result = invoke("keys")
        assert result.exit_code == 0
        assert f"{PREFIX}:hash:User:1" in result.output
        assert f"{PREFIX}:idsets:User" in result.output
        assert f"{PREFIX}:uniques:User:name:alice" in result.output

    def test_keys_pattern(self, invoke, seeded):
        """Test --pattern narrows the listing."""
        result = invoke("keys", "--pattern", "hash:*")
        assert result.exit_code == 0
        assert result.output.split() == [f"{PREFIX}:hash:User:1", f"{PREFIX}:hash:User:2"]

    def test_ids(self, invoke, seeded):
        """Test ids of a model are listed."""
        result = invoke("ids", "User")
        assert result.exit_code == 0
        assert result.output.split() == seeded

    def test_ids_unknown_model(self, invoke):
        """Test a model without records."""
        result = invoke("ids", "Nobody")
        assert result.exit_code == 0
        assert "No Nobody records found." in result.output

    def test_show(self, invoke, seeded):
        """Test stored fields are printed without the meta version."""
        result = invoke("show", "User", seeded[0])
        assert result.exit_code == 0
        assert f"User:{seeded[0]}" in result.output
        assert "  name: Alice" in result.output
        assert "  visits: 3" in result.output
        assert "__meta_version" not in result.output

    def test_show_missing(self, invoke, seeded):
        """Test a missing record exits with an error."""
        result = invoke("show", "User", "99")
        assert result.exit_code == 1
        assert "ERROR: not found" in result.output


@pytest.mark.integration
class TestPurgeCommand:
    """Test purge."""

    def test_purge_yes(self, invoke, seeded):
        """Test purge --yes deletes every key under the prefix."""
        result = invoke("purge", "--yes")
        assert result.exit_code == 0
        assert f"under '{PREFIX}:'" in result.output
        assert "Deleted 0 key(s)" not in result.output
        assert "No keys found." in invoke("keys").output

    def test_purge_declined(self, invoke, seeded):
        """Test answering no keeps the data."""
        result = invoke("purge", input="n\n")
        assert result.exit_code != 0
        assert "Aborted" in result.output
        assert f"{PREFIX}:hash:User:1" in invoke("keys").output

    def test_purge_keeps_other_prefixes(self, invoke, server, seeded):
        """Test keys under another prefix survive."""

        async def call(command, *args):
            client = fakeredis.FakeAsyncRedis(server=server, decode_responses=True)
            result = await getattr(client, command)(*args)
            await client.aclose()
            return result

        asyncio.run(call("set", "otherapp:value", "1"))
        assert invoke("purge", "--yes").exit_code == 0
        assert asyncio.run(call("get", "otherapp:value")) == "1"
