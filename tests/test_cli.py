from click.testing import CliRunner
import pytest

from dataleague.cli import CommandRunner, cli, execute
from dataleague.errors import RemoteCallError


class FakeLeague:
    """Stands in for a LeagueContext whose session is already open."""

    def __init__(self, client):
        self.client = client
        self.discord_message = None
        self.user_id = "u1"

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def require_admin(self):
        pass


@pytest.fixture
def client(mocker, account):
    client = mocker.AsyncMock()
    client.get_account.return_value = account
    client.read_storage_objects.return_value = []
    client.list_storage_objects.return_value = []
    client.rpc_json.return_value = None
    client.rpc.return_value = ""
    return client


@pytest.fixture
def connect(client):
    return lambda: FakeLeague(client)


def invoke(connect, args):
    return CliRunner().invoke(cli, args, obj=CommandRunner(connect))


def test_login_alias(connect):
    result = invoke(connect, ["l"])
    assert result.exit_code == 0
    assert result.output == "User <@111> has successfully logged in\n"


@pytest.mark.parametrize("alias", ["go", "new", "search", "ticket", "t"])
def test_go_aliases(connect, alias):
    result = invoke(connect, [alias, "--help"])
    assert result.exit_code == 0
    assert "Search for a **New Quick Match**" in result.output


def test_validation_error_exits_with_1(connect, client):
    result = invoke(connect, ["go", "--duration", "49"])
    assert result.exit_code == 1
    assert "duration can not be more than 48 hours" in result.output
    client.get_account.assert_not_awaited()


def test_remote_error_exits_with_1(connect, client):
    client.get_account.side_effect = RemoteCallError("boom", 500)
    result = invoke(connect, ["login"])
    assert result.exit_code == 1
    assert "boom (HTTP 500)" in result.output


def test_submit_positional_score(connect, client):
    result = invoke(connect, ["s", "abc"])
    assert result.exit_code == 1
    assert "'abc' is not a valid score" in result.output


def test_get_subcommand_aliases(connect, client):
    client.rpc_json.return_value = {"user": {"id": "u2"}, "custom_id": "222"}
    result = invoke(connect, ["get", "u", "<@!222>"])
    assert result.exit_code == 0
    assert "> User: <@222>" in result.output
    client.rpc_json.assert_awaited_with("AccountByCustomIDGet",
                                        {"Identifier": "222"})


def test_group_users_split_ids(connect, client):
    client.kick_group_users.return_value = {}
    result = invoke(connect, ["kick", "gu", "-g", "g1", "-u", "a,b",
                              "-u", "c"])
    assert result.exit_code == 0
    client.kick_group_users.assert_awaited_once_with("g1", ["a", "b", "c"])


def test_execute_captures_output(connect):
    output = execute(["login"], connect)
    assert output == "User <@111> has successfully logged in\n"


def test_execute_reports_errors(connect):
    output = execute(["go", "-d", "0"], connect)
    assert output == "Error: duration can not be less than 1 hours\n"


def test_execute_refuses_config_file(connect, tmp_path):
    path = tmp_path / "override.yml"
    path.write_text("DLBOT_CMD_PREFIX: x\n")
    output = execute(["--config", str(path), "login"], connect)
    assert output.startswith("Error: --config is only available")
