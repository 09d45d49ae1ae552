import json

import pytest

from dataleague import config
from dataleague.models import (MATCH_COLLECTION, TICKET_COLLECTION,
                               USER_DATA_COLLECTION)


def storage_object(value, version="v1", create_time="2022-05-01T10:00:00Z"):
    return {"value": json.dumps(value), "version": version,
            "create_time": create_time}


@pytest.fixture(autouse=True)
def no_overrides():
    config.OVERRIDES.clear()
    yield
    config.OVERRIDES.clear()


@pytest.fixture
def account():
    return {
        "user": {
            "id": "u1",
            "username": "alice#1234",
            "metadata": json.dumps({"ChannelID": "c1", "GuildID": "g1"}),
        },
        "custom_id": "111",
        "wallet": json.dumps({"coins": 5}),
    }


@pytest.fixture
def storage():
    """Fake backend storage: {collection: [objects]}."""
    return {USER_DATA_COLLECTION: [], TICKET_COLLECTION: [],
            MATCH_COLLECTION: []}


@pytest.fixture
def league(mocker, account, storage):
    league = mocker.Mock()
    league.client = mocker.AsyncMock()
    league.client.get_account.return_value = account
    league.client.read_storage_objects.side_effect = \
        lambda collection, key, user_id: storage[collection]
    league.client.list_storage_objects.side_effect = \
        lambda collection, user_id: storage[collection]
    league.client.rpc_json.return_value = None
    league.client.rpc.return_value = ""
    league.discord_message = None
    league.user_id = "u1"
    league.require_admin.return_value = None
    return league


def rpc_json_calls(league, rpc_id):
    """Requests sent to the rpc_id procedure through rpc_json()."""
    return [c.args[1] for c in league.client.rpc_json.await_args_list
            if c.args[0] == rpc_id]


def rpc_calls(league, rpc_id):
    """Decoded payloads sent to the rpc_id procedure through rpc()."""
    return [json.loads(c.args[1]) for c in league.client.rpc.await_args_list
            if c.args[0] == rpc_id]
