"""Match and league leaderboards."""

import json
import logging
from typing import Sequence
import uuid

from dataleague import state
from dataleague.commands.common import current_account, flag_or_arg
from dataleague.formatting import (format_json, format_leaderboard_records,
                                   render)
from dataleague.identity import resolve_account
from dataleague.models import MAIN_LEADERBOARD, LeaderboardRecord
from dataleague.session import LeagueContext

logger = logging.getLogger(__name__)


async def _records_around(league: LeagueContext, leaderboard_id: str,
                          owner_id: str) -> list[LeaderboardRecord]:
    records = await league.client.list_leaderboard_records_around_owner(
        leaderboard_id, owner_id)
    return [LeaderboardRecord.from_dict(x) for x in records]


async def match_leaderboard(league: LeagueContext, match_id: str = "",
                            args: Sequence[str] = ()) -> str:
    """Scores of a match, around the caller. Every match keeps its own
       leaderboard, named after the match ID.
    """
    match_id = flag_or_arg(match_id, args)
    account = await current_account(league)
    if match_id:
        match_state = await state.get_match_state(league.client, match_id)
    else:
        match_state = await state.get_last_user_match_state(
            league.client, account, "")
    if match_state is None:
        return f"No match found for user <@{account.custom_id}>"

    records = await _records_around(league, match_state.match_id,
                                    account.id)
    if not records:
        return ("No leaderboard records found for match "
                f"**{match_state.match_id}**")
    return render(format_leaderboard_records, records)


async def top_leaderboard(league: LeagueContext, discord_id: str = "",
                          args: Sequence[str] = ()) -> str:
    """The league leaderboard, around the caller or the given Discord user.
    """
    discord_id = flag_or_arg(discord_id, args)
    if discord_id:
        account = await resolve_account(league.client, discord_id)
    else:
        account = await current_account(league)

    records = await _records_around(league, MAIN_LEADERBOARD, account.id)
    if not records:
        return f"No leaderboard records found for the {MAIN_LEADERBOARD}"
    return render(format_leaderboard_records, records)


async def create_leaderboard(league: LeagueContext,
                             authoritative: bool = True,
                             sort_order: str = "desc",
                             operator: str = "best",
                             reset_schedule: str = "") -> str:
    league.require_admin()
    payload = await league.client.rpc("LeaderboardCreate", json.dumps({
        "ID": str(uuid.uuid4()),
        "Authoritative": authoritative,
        "SortOrder": sort_order,
        "Operator": operator,
        "ResetSchedule": reset_schedule,
        "Metadata": {},
    }))
    return format_json(payload)


async def delete_leaderboard(league: LeagueContext, leaderboard_id: str
                             ) -> str:
    league.require_admin()
    payload = await league.client.rpc("LeaderboardDelete",
                                      json.dumps({"ID": leaderboard_id}))
    return format_json(payload)


async def write_leaderboard_record(league: LeagueContext,
                                   leaderboard_id: str, score: int = 0,
                                   subscore: int = 0, owner_id: str = "",
                                   username: str = "") -> str:
    """Writes a record on behalf of owner_id (the caller by default)."""
    league.require_admin()
    if not owner_id:
        owner_id = (await current_account(league)).id
    payload = await league.client.rpc("LeaderboardRecordWrite", json.dumps({
        "ID": leaderboard_id,
        "OwnerID": owner_id,
        "Username": username,
        "Score": score,
        "Subscore": subscore,
        "Metadata": {},
    }))
    return format_json(payload)


async def delete_leaderboard_record(league: LeagueContext,
                                    leaderboard_id: str,
                                    owner_id: str = "") -> str:
    league.require_admin()
    payload = await league.client.rpc("LeaderboardRecordDelete", json.dumps({
        "ID": leaderboard_id,
        "OwnerID": owner_id or league.user_id,
    }))
    return format_json(payload)
