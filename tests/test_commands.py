import json

import pytest

from conftest import rpc_calls, rpc_json_calls, storage_object
from dataleague import config
from dataleague.commands import (groups, leaderboards, matches, results,
                                 tickets, users)
from dataleague.errors import (InvalidIdentifier, PermissionDenied,
                               ValidationError)
from dataleague.models import (TICKET_COLLECTION, USER_DATA_COLLECTION,
                               DiscordAuthor, DiscordMessage)
from dataleague.session import LeagueContext


def user_data(ticket_id="", match_id=""):
    return storage_object({"UserID": "u1", "MatchID": match_id,
                           "TicketID": ticket_id, "DiscordChannelID": "c1",
                           "DiscordGuildID": "g1"})


def ticket_state(ticket_id="t1", match_id=""):
    return storage_object({"Ticket": {"id": ticket_id}, "MatchID": match_id,
                           "UserID": "u1", "DiscordID": "111"})


def match_state(**kwargs):
    state = {
        "MatchID": "m1",
        "Active": True,
        "Started": True,
        "Teams": [
            {"ID": 0, "TeamUsers": [{"User": {"Nakama": {"ID": "u2"}}}]},
            {"ID": 1, "TeamUsers": [{"User": {"Nakama": {"ID": "u1"}}}]},
        ],
    }
    state.update(kwargs)
    return state


@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [0, 49])
async def test_go_checks_duration_before_any_call(league, duration):
    with pytest.raises(ValidationError):
        await tickets.create_ticket(league, duration=duration)
    league.client.get_account.assert_not_awaited()
    league.client.rpc_json.assert_not_awaited()


@pytest.mark.asyncio
async def test_go_refuses_captains_draft_only_modes(league):
    with pytest.raises(ValidationError, match="Match mode 3vs3 is invalid"):
        await tickets.create_ticket(league, mode="3vs3")
    league.client.get_account.assert_not_awaited()


@pytest.mark.asyncio
async def test_existing_ticket_blocks_a_new_one(league, storage):
    storage[USER_DATA_COLLECTION] = [user_data(ticket_id="t1")]
    storage[TICKET_COLLECTION] = [ticket_state("t1")]

    output = await tickets.create_ticket(league)

    assert "<@111> already has a ticket" in output
    assert "TicketID: t1" in output
    assert not rpc_json_calls(league, "OpenMatchFrontendTicketCreate")
    assert not rpc_json_calls(league, "TicketStateCreate")


@pytest.mark.asyncio
async def test_go_creates_a_ticket_and_points_user_data_to_it(league,
                                                             storage):
    storage[USER_DATA_COLLECTION] = [user_data(match_id="old")]

    def rpc_json(rpc_id, request):
        if rpc_id == "OpenMatchFrontendTicketCreate":
            return {"id": "t9", "search_fields": request["ticket"][
                "search_fields"]}
        return None
    league.client.rpc_json.side_effect = rpc_json

    output = await tickets.create_ticket(league, mode="1vs1", duration=5)

    request = rpc_json_calls(league, "OpenMatchFrontendTicketCreate")[0]
    assert request["ticket"]["search_fields"] == {
        "double_args": {"minDuration": 5.0, "maxDuration": 5.0},
        "tags": ["1vs1"],
    }
    created = rpc_json_calls(league, "TicketStateCreate")[0]
    assert created["UserID"] == "u1"
    assert created["TicketState"]["Ticket"]["id"] == "t9"
    written = rpc_json_calls(league, "LastUserDataCreate")[-1]["UserData"]
    assert written["TicketID"] == "t9"
    assert written["MatchID"] == ""
    assert "TicketID: t9" in output
    assert "[1vs1] 5 hours" in output


@pytest.mark.asyncio
async def test_challenge_refuses_self(league, account):
    league.client.rpc_json.side_effect = \
        lambda rpc_id, request: account if rpc_id.startswith("Account") \
        else None
    with pytest.raises(ValidationError, match="selected yourself"):
        await tickets.create_ticket(league, captains_draft=True,
                                    args=["<@111>"])


@pytest.mark.asyncio
async def test_challenge_requires_an_opponent(league):
    with pytest.raises(ValidationError, match="specify the opponent"):
        await tickets.create_ticket(league, captains_draft=True)


@pytest.mark.asyncio
async def test_cancel_deletes_unassigned_ticket(league, storage):
    storage[USER_DATA_COLLECTION] = [user_data(ticket_id="t1",
                                               match_id="m0")]
    storage[TICKET_COLLECTION] = [ticket_state("t1")]

    output = await tickets.cancel(league)

    assert output.startswith("Ticket **t1** was not assigned to any match, "
                             "just deleting it")
    league.client.delete_storage_object.assert_awaited_once_with(
        TICKET_COLLECTION, "t1")
    assert rpc_calls(league, "OpenMatchFrontendTicketDelete") == [
        {"ticket_id": "t1"}]
    written = rpc_json_calls(league, "LastUserDataCreate")[-1]["UserData"]
    assert written["TicketID"] == ""
    assert written["MatchID"] == ""
    assert written["DiscordChannelID"] == "c1"


@pytest.mark.asyncio
async def test_cancel_assigned_ticket_cancels_the_match(league, storage):
    storage[TICKET_COLLECTION] = [ticket_state("t1", match_id="m1")]
    league.client.rpc.return_value = '{"MatchID": "m1"}'

    output = await tickets.cancel(league, ticket_id="t1")

    assert rpc_calls(league, "MatchCancel") == [
        {"MatchID": "m1", "UserID": "u1"}]
    league.client.delete_storage_object.assert_not_awaited()
    assert json.loads(output) == {"MatchID": "m1"}


@pytest.mark.asyncio
async def test_ready_without_ticket(league):
    assert await tickets.ready(league) == "No tickets found for <@111>"
    league.client.rpc.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("handler", [matches.pool_add, matches.pool_pick])
async def test_pool_needs_the_callers_ticket(league, handler):
    with pytest.raises(ValidationError, match="No tickets found for <@111>"):
        await handler(league, user="<@222>")
    league.client.rpc.assert_not_awaited()


@pytest.mark.asyncio
async def test_pool_join_requires_match_id(league):
    with pytest.raises(ValidationError, match="MatchID"):
        await matches.pool_join(league)


@pytest.mark.asyncio
async def test_pick_unknown_user(league, storage):
    storage[USER_DATA_COLLECTION] = [user_data(ticket_id="t1")]
    storage[TICKET_COLLECTION] = [ticket_state("t1", match_id="m1")]

    with pytest.raises(ValidationError, match="Account not found"):
        await matches.pool_pick(league, user="ghost#0001")
    assert not rpc_calls(league, "PoolPick")


@pytest.mark.asyncio
async def test_add_unknown_user(league, storage):
    storage[USER_DATA_COLLECTION] = [user_data(ticket_id="t1")]
    storage[TICKET_COLLECTION] = [ticket_state("t1", match_id="m1")]

    with pytest.raises(ValidationError, match="Account not found"):
        await matches.pool_add(league, args=["ghost#0001"])
    assert not rpc_json_calls(league, "TicketStateCreate")
    assert not rpc_calls(league, "PoolJoin")


@pytest.mark.asyncio
async def test_challenge_unknown_opponent(league):
    with pytest.raises(ValidationError, match="Account not found"):
        await tickets.create_ticket(league, captains_draft=True,
                                    user="<@999>")
    assert not rpc_json_calls(league, "TicketStateCreate")
    assert not rpc_json_calls(league, "MatchCreate")


@pytest.mark.asyncio
async def test_get_unknown_user(league):
    with pytest.raises(ValidationError, match="Account not found"):
        await users.get_user(league, "ghost#0001")


@pytest.mark.asyncio
async def test_top_of_unknown_user(league):
    with pytest.raises(ValidationError, match="Account not found"):
        await leaderboards.top_leaderboard(league, discord_id="999")
    league.client.list_leaderboard_records_around_owner.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("show_all", [False, True])
async def test_get_ticket_without_ticket(league, show_all):
    output = await tickets.get_ticket(league, show_all=show_all)
    assert output == "No tickets found for <@111>"


@pytest.mark.asyncio
async def test_submit_splits_score_and_fixes_proof_link(league):
    league.client.rpc_json.side_effect = \
        lambda rpc_id, request: match_state() \
        if rpc_id == "MatchStateGet" else None

    output = await results.submit(league, args=["10.5", "example.com/p.png",
                                                "m1"])

    sent = rpc_calls(league, "SubmitCreate")[0]
    assert sent["MatchID"] == "m1"
    assert sent["UserID"] == "u1"
    assert sent["Submit"]["Score"] == 10
    assert sent["Submit"]["Subscore"] == 5000000000
    assert sent["Submit"]["ProofLink"] == "http://example.com/p.png"
    assert "Score: 10.5000000000" in output


@pytest.mark.asyncio
async def test_submit_requires_proof(league):
    with pytest.raises(ValidationError, match="proof link is"):
        await results.submit(league, score=3)
    league.client.get_account.assert_not_awaited()


@pytest.mark.asyncio
async def test_submit_requires_score(league):
    with pytest.raises(ValidationError, match="score is"):
        await results.submit(league, proof="https://example.com")


@pytest.mark.asyncio
async def test_submit_to_inactive_match(league):
    league.client.rpc_json.side_effect = \
        lambda rpc_id, request: match_state(Started=False) \
        if rpc_id == "MatchStateGet" else None

    output = await results.submit(league, score=1, proof="https://a.io",
                                  match_id="m1")

    assert output == "Match is not active or not started yet"
    assert not rpc_calls(league, "SubmitCreate")


@pytest.mark.asyncio
async def test_draw_reports_the_callers_team(league):
    league.client.rpc_json.side_effect = \
        lambda rpc_id, request: match_state() \
        if rpc_id == "MatchStateGet" else None

    await results.report_result(league, draw=True, args=["m1"])

    sent = rpc_calls(league, "MatchResult")[0]
    assert sent["MatchID"] == "m1"
    assert sent["MatchResult"]["Draw"] is True
    assert sent["MatchResult"]["TeamNumber"] == 1
    assert sent["MatchResult"]["DiscordID"] == "111"


@pytest.mark.asyncio
async def test_win_with_bad_team_number(league):
    with pytest.raises(ValidationError, match="Incorrect team number x"):
        await results.report_result(league, win=True, args=["x"])
    league.client.get_account.assert_not_awaited()


@pytest.mark.asyncio
async def test_win_with_out_of_range_team(league):
    league.client.rpc_json.side_effect = \
        lambda rpc_id, request: match_state() \
        if rpc_id == "MatchStateGet" else None
    with pytest.raises(ValidationError, match="Incorrect team number 5"):
        await results.report_result(league, win=True, team_id=5,
                                    match_id="m1")
    league.client.rpc.assert_not_awaited()


@pytest.mark.asyncio
async def test_lose_without_match(league):
    with pytest.raises(ValidationError, match="No match found for <@111>"):
        await results.report_result(league)


@pytest.mark.asyncio
async def test_login_on_the_command_line(league):
    output = await users.login(league)

    assert output == "User <@111> has successfully logged in"
    written = rpc_json_calls(league, "LastUserDataCreate")[0]
    assert written["UserID"] == "u1"
    assert written["UserData"]["DiscordChannelID"] == ""


@pytest.mark.asyncio
async def test_get_user_with_invalid_identifier(league):
    with pytest.raises(InvalidIdentifier):
        await users.get_user(league, "alice")
    league.client.rpc_json.assert_not_awaited()


@pytest.mark.asyncio
async def test_top_without_records(league):
    league.client.list_leaderboard_records_around_owner.return_value = []
    output = await leaderboards.top_leaderboard(league)
    assert output == "No leaderboard records found for the Main Leaderboard"


def discord_message(author_id):
    return DiscordMessage(id="1", channel_id="c1", guild_id="g1",
                          content="dl create group -n x",
                          author=DiscordAuthor(id=author_id,
                                               username="bob"))


@pytest.mark.asyncio
async def test_admin_command_refused_on_discord(mocker):
    league = LeagueContext(mocker.AsyncMock(), discord_message("42"))
    league.client = mocker.AsyncMock()

    with pytest.raises(PermissionDenied,
                       match="<@42> is not allowed to run this command"):
        await groups.create_group(league, "clan")
    league.client.create_group.assert_not_awaited()


@pytest.mark.asyncio
async def test_admin_command_allowed_for_configured_ids(mocker, monkeypatch):
    monkeypatch.setitem(config.OVERRIDES, "DLBOT_ADMIN_DISCORD_IDS", ["42"])
    league = LeagueContext(mocker.AsyncMock(), discord_message("42"))
    league.client = mocker.AsyncMock()
    league.client.create_group.return_value = {"id": "g1"}

    output = await groups.create_group(league, "clan")

    assert json.loads(output) == {"id": "g1"}
