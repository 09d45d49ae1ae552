from hypothesis import given
from hypothesis.strategies import integers
import pytest

from dataleague.errors import InvalidIdentifier, ValidationError
from dataleague.identity import (UserIdentity, detect_user_identity,
                                 resolve_account, strip_mention)


@given(integers(min_value=-2**63, max_value=2**63 - 1))
def test_int64_is_a_discord_id(x):
    assert detect_user_identity(str(x)) is UserIdentity.DISCORD_ID


@given(integers(min_value=2**63, max_value=2**70))
def test_out_of_range_number_is_undefined(x):
    assert detect_user_identity(str(x)) is UserIdentity.UNDEFINED


@given(integers(min_value=1, max_value=2**64 - 1))
def test_mentions(x):
    assert detect_user_identity(f"<@{x}>") is UserIdentity.DISCORD_MENTION
    assert detect_user_identity(f"<@!{x}>") is UserIdentity.DISCORD_MENTION
    assert strip_mention(f"<@!{x}>") == str(x)


@pytest.mark.parametrize("identifier, identity", [
    ("alice#1234", UserIdentity.USERNAME_WITH_DISCRIMINATOR),
    ("<@#1>", UserIdentity.USERNAME_WITH_DISCRIMINATOR),
    ("alice", UserIdentity.UNDEFINED),
    ("", UserIdentity.UNDEFINED),
    ("12ab", UserIdentity.UNDEFINED),
])
def test_detect_user_identity(identifier, identity):
    assert detect_user_identity(identifier) is identity


@pytest.mark.asyncio
@pytest.mark.parametrize("identifier, rpc_id, sent", [
    ("alice#1234", "AccountByUsernameGet", "alice#1234"),
    ("<@!554195751274807297>", "AccountByCustomIDGet", "554195751274807297"),
    ("554195751274807297", "AccountByCustomIDGet", "554195751274807297"),
])
async def test_resolve_account(mocker, identifier, rpc_id, sent):
    client = mocker.AsyncMock()
    client.rpc_json.return_value = {"user": {"id": "u2"}, "custom_id": sent}

    account = await resolve_account(client, identifier)

    client.rpc_json.assert_awaited_once_with(rpc_id, {"Identifier": sent})
    assert account.id == "u2"


@pytest.mark.asyncio
async def test_resolve_invalid_identifier(mocker):
    client = mocker.AsyncMock()
    with pytest.raises(InvalidIdentifier, match="Discord user ID is invalid"):
        await resolve_account(client, "alice")
    client.rpc_json.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("result", [None, {}, {"user": {}, "custom_id": "1"}])
async def test_resolve_unknown_account(mocker, result):
    client = mocker.AsyncMock()
    client.rpc_json.return_value = result
    with pytest.raises(ValidationError, match="Account not found"):
        await resolve_account(client, "1")
