"""Match state queries and the captains draft pool."""

import json
import logging
from typing import Sequence

from dataleague import state
from dataleague.commands.common import current_account, flag_or_arg, require
from dataleague.commands.tickets import create_captains_draft_ticket_state
from dataleague.errors import ValidationError
from dataleague.formatting import format_json, format_match_state, render
from dataleague.identity import resolve_account
from dataleague.models import DEFAULT_NAKAMA_MATCH_MODULE, Account
from dataleague.session import LeagueContext

logger = logging.getLogger(__name__)


async def get_match(league: LeagueContext, match_id: str = "",
                    show_all: bool = False) -> str:
    account = await current_account(league)
    not_found = f"No match found for user <@{account.custom_id}>"
    if show_all:
        match_states = await state.list_match_states(league.client)
        if not match_states:
            return not_found
        return "".join(render(format_match_state, x) for x in match_states)

    if match_id:
        match_state = await state.get_match_state(league.client, match_id)
    else:
        match_state = await state.get_last_user_match_state(
            league.client, account, "")
    if match_state is None:
        return not_found
    return render(format_match_state, match_state)


async def create_match(league: LeagueContext,
                       module: str = DEFAULT_NAKAMA_MATCH_MODULE) -> str:
    """Starts an authoritative match handled by the given server module."""
    league.require_admin()
    payload = await league.client.rpc("MatchCreate", json.dumps({
        "Module": module,
        "Params": {},
    }))
    return format_json(payload)


async def _caller_match_id(league: LeagueContext, account: Account) -> str:
    ticket_state = await state.get_last_user_ticket_state(league.client,
                                                          account)
    if ticket_state is None:
        raise ValidationError(f"No tickets found for <@{account.custom_id}>")
    return ticket_state.match_id


async def _join_pool(league: LeagueContext, account: Account,
                     match_id: str) -> str:
    ticket_state = await state.get_last_user_ticket_state(league.client,
                                                          account)
    if ticket_state is not None:
        return (f"Existing ticket found for <@{account.custom_id}>, please "
                "complete the game")
    await create_captains_draft_ticket_state(league, account, match_id, True)
    return await league.client.rpc("PoolJoin", json.dumps({
        "MatchID": match_id,
        "UserID": account.id,
    }))


async def pool_join(league: LeagueContext, match_id: str = "",
                    args: Sequence[str] = ()) -> str:
    """Joins the caller to the draft pool of a captains draft match."""
    match_id = require(flag_or_arg(match_id, args),
                       "Please specify the MatchID to join the captains "
                       "draft pool")
    account = await current_account(league)
    return await _join_pool(league, account, match_id)


async def pool_add(league: LeagueContext, user: str = "",
                   args: Sequence[str] = ()) -> str:
    """Adds another user to the draft pool of the caller's match."""
    user = require(flag_or_arg(user, args),
                   "Please specify the UserID to add to the draft pool")
    account = await current_account(league)
    match_id = await _caller_match_id(league, account)
    target = await resolve_account(league.client, user)
    return await _join_pool(league, target, match_id)


async def pool_pick(league: LeagueContext, user: str = "",
                    args: Sequence[str] = ()) -> str:
    """The captain picks a user from the draft pool into their team."""
    user = require(flag_or_arg(user, args),
                   "Please specify the UserID to pick from the draft pool")
    account = await current_account(league)
    match_id = await _caller_match_id(league, account)
    picked = await resolve_account(league.client, user)
    return await league.client.rpc("PoolPick", json.dumps({
        "MatchID": match_id,
        "CaptainUserID": account.id,
        "UserID": picked.id,
    }))
