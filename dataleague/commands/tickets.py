"""Matchmaking tickets: searching, challenging, readiness and cancelling."""

import base64
import json
import logging
from typing import List, Optional, Sequence
import uuid

import pendulum

from dataleague import state
from dataleague.commands.common import current_account, flag_or_arg
from dataleague.errors import ValidationError
from dataleague.formatting import format_json, format_ticket_state, render
from dataleague.identity import resolve_account
from dataleague.models import (DEFAULT_MATCH_DURATION_HOURS,
                               MATCH_EXTENSION_MATCH_TYPE,
                               MATCH_PROFILE_1_VS_1, MATCH_PROFILE_2_VS_2,
                               MATCH_TYPE_CAPTAINS_DRAFT, SEARCH_MAX_DURATION,
                               SEARCH_MIN_DURATION, Account, Ticket,
                               TicketState)
from dataleague.patch import CLEAR, UserDataPatch
from dataleague.session import LeagueContext
from dataleague.validation import check_duration, check_match_mode

logger = logging.getLogger(__name__)


def default_mode(captains_draft: bool) -> str:
    return MATCH_PROFILE_2_VS_2 if captains_draft else MATCH_PROFILE_1_VS_1


def already_has_ticket(ticket_state: TicketState) -> str:
    return (f"<@{ticket_state.discord_id}> already has a ticket. Please "
            "cancel the following ticket or finish the following match:\n"
            + render(format_ticket_state, ticket_state))


def _search_fields(duration: int) -> dict:
    return {SEARCH_MIN_DURATION: float(duration),
            SEARCH_MAX_DURATION: float(duration)}


async def create_captains_draft_ticket_state(
        league: LeagueContext, account: Account, match_id: str, ready: bool,
        duration: int = DEFAULT_MATCH_DURATION_HOURS,
        tags: Optional[List[str]] = None) -> TicketState:
    """Creates the ticket state of a captains draft participant, and points
       the participant's user data to it.
    """
    user_data = await state.get_user_data(league.client, account)
    ticket_state = TicketState(
        ticket=Ticket(
            id=str(uuid.uuid4()),
            create_time=pendulum.now("UTC"),
            extensions=Ticket.user_extension(account.team_user(user_data)),
            double_args=_search_fields(duration),
            tags=list(tags or []),
        ),
        match_id=match_id,
        version="*",
        discord_id=account.custom_id,
        user_id=account.id,
        user_ready=ready,
        captains_draft=True,
    )
    await state.create_ticket_state(league.client, ticket_state)
    await state.create_or_update_last_user_data(
        league.client, account,
        UserDataPatch(user_id=account.id, match_id=match_id,
                      ticket_id=ticket_state.ticket.id))
    return ticket_state


async def _challenge(league: LeagueContext, account: Account, mode: str,
                     duration: int, ready: bool, opponent: str) -> str:
    if not opponent:
        raise ValidationError("Please specify the opponent user ID to "
                              "challenge him in the Captains Draft mode.")
    opponent_account = await resolve_account(league.client, opponent)
    if opponent_account.id == account.id:
        raise ValidationError("You have selected yourself as your opponent's "
                              "account. Please select a different opponent "
                              "account.")

    opponent_ticket = await state.get_last_user_ticket_state(
        league.client, opponent_account)
    if opponent_ticket is not None:
        return already_has_ticket(opponent_ticket)

    match_id = str(uuid.uuid4())
    ticket_state = await create_captains_draft_ticket_state(
        league, account, match_id, ready, duration, [mode])
    opponent_state = await create_captains_draft_ticket_state(
        league, opponent_account, match_id, False, duration, [mode])

    match_type = json.dumps(MATCH_TYPE_CAPTAINS_DRAFT).encode()
    result = await league.client.rpc_json("MatchCreate", {
        "match_id": match_id,
        "match_profile": mode,
        "tickets": [ticket_state.ticket.to_dict(),
                    opponent_state.ticket.to_dict()],
        "extensions": {
            MATCH_EXTENSION_MATCH_TYPE:
                {"value": base64.b64encode(match_type).decode()},
        },
    })
    logger.info("created match %s", result)
    return render(format_ticket_state, ticket_state)


async def _search(league: LeagueContext, account: Account, mode: str,
                  duration: int, ready: bool) -> str:
    user_data = await state.get_user_data(league.client, account)
    request = Ticket(
        tags=[mode],
        double_args=_search_fields(duration),
        extensions=Ticket.user_extension(account.team_user(user_data)),
    )
    result = await league.client.rpc_json("OpenMatchFrontendTicketCreate",
                                          {"ticket": request.to_dict()})
    ticket_state = TicketState(
        ticket=Ticket.from_dict(result or {}),
        version="*",
        discord_id=account.custom_id,
        user_id=account.id,
        user_ready=ready,
    )
    await state.create_ticket_state(league.client, ticket_state)
    await state.create_or_update_last_user_data(
        league.client, account,
        UserDataPatch(user_id=account.id, match_id=CLEAR,
                      ticket_id=ticket_state.ticket.id))
    return render(format_ticket_state, ticket_state)


async def create_ticket(league: LeagueContext, mode: Optional[str] = None,
                        duration: int = DEFAULT_MATCH_DURATION_HOURS,
                        ready: bool = True, captains_draft: bool = False,
                        user: str = "", args: Sequence[str] = ()) -> str:
    """Searches for a new quick match, or challenges another user in the
       captains draft mode. A user can only hold one ticket at a time.
    """
    mode = check_match_mode(mode or default_mode(captains_draft),
                            captains_draft)
    check_duration(duration)

    account = await current_account(league)
    last_ticket = await state.get_last_user_ticket_state(league.client,
                                                         account)
    if last_ticket is not None:
        return already_has_ticket(last_ticket)

    if captains_draft:
        return await _challenge(league, account, mode, duration, ready,
                                flag_or_arg(user, args))
    return await _search(league, account, mode, duration, ready)


async def get_ticket(league: LeagueContext, ticket_id: str = "",
                     show_all: bool = False) -> str:
    account = await current_account(league)
    not_found = f"No tickets found for <@{account.custom_id}>"
    if show_all:
        ticket_states = await state.list_ticket_states(league.client,
                                                       account)
        if not ticket_states:
            return not_found
        return "".join(render(format_ticket_state, x) for x in ticket_states)

    if ticket_id:
        ticket_state = await state.get_ticket_state(league.client, ticket_id,
                                                    account)
    else:
        ticket_state = await state.get_last_user_ticket_state(league.client,
                                                              account)
    if ticket_state is None:
        return not_found
    return render(format_ticket_state, ticket_state)


async def _ticket_of(league: LeagueContext, account: Account,
                     ticket_id: str) -> Optional[TicketState]:
    if ticket_id:
        return await state.get_ticket_state(league.client, ticket_id,
                                            account)
    return await state.get_last_user_ticket_state(league.client, account)


async def ready(league: LeagueContext, ticket_id: str = "",
                args: Sequence[str] = ()) -> str:
    """Marks the caller ready for the match their ticket is assigned to."""
    account = await current_account(league)
    ticket_state = await _ticket_of(league, account,
                                    flag_or_arg(ticket_id, args))
    if ticket_state is None:
        return f"No tickets found for <@{account.custom_id}>"
    if not ticket_state.match_id:
        return (f"Ticket **{ticket_state.ticket.id}** is not assigned to "
                "any match")
    return await league.client.rpc("MatchReady", json.dumps({
        "MatchID": ticket_state.match_id,
        "UserID": account.id,
    }))


async def cancel(league: LeagueContext, ticket_id: str = "",
                 args: Sequence[str] = ()) -> str:
    """Cancels the match the ticket is assigned to. A ticket without a match
       is simply deleted.
    """
    account = await current_account(league)
    ticket_state = await _ticket_of(league, account,
                                    flag_or_arg(ticket_id, args))
    if ticket_state is None:
        return f"No tickets found for <@{account.custom_id}>"

    if ticket_state.match_id:
        payload = await league.client.rpc("MatchCancel", json.dumps({
            "MatchID": ticket_state.match_id,
            "UserID": account.id,
        }))
        return format_json(payload)

    ticket_id = ticket_state.ticket.id
    await state.delete_ticket_state(league.client, ticket_id)
    output = (f"Ticket **{ticket_id}** was not assigned to any match, just "
              "deleting it")
    payload = await league.client.rpc(
        "OpenMatchFrontendTicketDelete", json.dumps({"ticket_id": ticket_id}))
    output += format_json(payload)
    await state.create_or_update_last_user_data(
        league.client, account,
        UserDataPatch(user_id=account.id, match_id=CLEAR, ticket_id=CLEAR))
    return output


async def delete_ticket(league: LeagueContext, ticket_id: str) -> str:
    """Removes a ticket from the matchmaker."""
    payload = await league.client.rpc(
        "OpenMatchFrontendTicketDelete", json.dumps({"ticket_id": ticket_id}))
    return format_json(payload)
