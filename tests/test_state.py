import pytest

from conftest import rpc_json_calls, storage_object
from dataleague import state
from dataleague.models import (TICKET_COLLECTION, USER_DATA_COLLECTION,
                               Account)
from dataleague.patch import UserDataPatch


@pytest.mark.asyncio
async def test_missing_user_data_is_restored_from_metadata(league, account):
    user_data = await state.get_user_data(league.client,
                                          Account.from_dict(account))

    assert user_data.user_id == "u1"
    assert user_data.discord_channel_id == "c1"
    assert user_data.discord_guild_id == "g1"
    written = rpc_json_calls(league, "LastUserDataCreate")
    assert written == [{"UserID": "u1", "UserData": user_data.to_dict()}]


@pytest.mark.asyncio
async def test_stored_user_data_gets_missing_channel(league, account,
                                                     storage):
    storage[USER_DATA_COLLECTION] = [storage_object(
        {"UserID": "u1", "TicketID": "t1", "DiscordGuildID": "g9"},
        version="v7")]

    user_data = await state.get_user_data(league.client,
                                          Account.from_dict(account))

    assert user_data.ticket_id == "t1"
    assert user_data.version == "v7"
    assert user_data.discord_channel_id == "c1"
    assert user_data.discord_guild_id == "g9"
    assert not rpc_json_calls(league, "LastUserDataCreate")


@pytest.mark.asyncio
async def test_unchanged_patch_is_not_written(league, account, storage):
    storage[USER_DATA_COLLECTION] = [storage_object(
        {"UserID": "u1", "TicketID": "t1", "DiscordChannelID": "c1",
         "DiscordGuildID": "g1"})]

    await state.create_or_update_last_user_data(
        league.client, Account.from_dict(account),
        UserDataPatch(ticket_id="t1"))

    assert not rpc_json_calls(league, "LastUserDataCreate")


@pytest.mark.asyncio
async def test_ticket_state_by_id_and_newest(league, account, storage):
    storage[TICKET_COLLECTION] = [
        storage_object({"Ticket": {"id": "t2"}, "MatchID": "m2"}),
    ]
    owner = Account.from_dict(account)

    newest = await state.get_ticket_state(league.client, "", owner)
    by_id = await state.get_ticket_state(league.client, "t2", owner)

    assert newest.ticket.id == by_id.ticket.id == "t2"
    league.client.list_storage_objects.assert_awaited_once_with(
        TICKET_COLLECTION, "u1")
    league.client.read_storage_objects.assert_awaited_once_with(
        TICKET_COLLECTION, "t2", "u1")


@pytest.mark.asyncio
async def test_unknown_match(league):
    assert await state.get_match_state(league.client, "m1") is None
    assert rpc_json_calls(league, "MatchStateGet") == [
        {"ID": "m1", "StorageCollection": ""}]


@pytest.mark.asyncio
async def test_list_match_states(league):
    league.client.rpc_json.return_value = [{"MatchID": "m1"},
                                           {"MatchID": "m2"}]
    match_states = await state.list_match_states(league.client)
    assert [x.match_id for x in match_states] == ["m1", "m2"]
