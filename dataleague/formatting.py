"""Renders the backend entities as Discord flavoured text.

   Every view model has its own format_* function. They are called through
   render(), which logs a formatting failure and yields an empty string
   instead of failing the command.
"""

from datetime import timedelta
import json
import logging
from typing import Any, Callable, Optional

import pendulum
from pendulum import DateTime

from dataleague.models import (MATCH_STATUS_AWAITING_USERS_READY,
                               MATCH_TYPE_CAPTAINS_DRAFT, Account,
                               LeaderboardRecord, MatchState, Submit, Team,
                               TicketState, UserReady)

logger = logging.getLogger(__name__)

# Renders as "02 Jan 2006 15:04:05 UTC".
TIME_LAYOUT = "DD MMM YYYY HH:mm:ss [UTC]"
BLOCK_CODE_TYPE = "yaml"

FORMAT_ERRORS = (AttributeError, IndexError, KeyError, TypeError, ValueError)


def render(formatter: Callable[..., str], *args: Any) -> str:
    try:
        return formatter(*args)
    except FORMAT_ERRORS:
        logger.exception("Failed to format %s", formatter.__name__)
        return ""


def code_block(text: str) -> str:
    return f"```{BLOCK_CODE_TYPE}\n{text}```\n"


def format_date(value: Optional[DateTime]) -> str:
    if value is None:
        value = pendulum.from_timestamp(0)
    return value.in_timezone("UTC").format(TIME_LAYOUT)


def parse_date(text: str) -> DateTime:
    """Inverse of format_date()."""
    return pendulum.from_format(text, TIME_LAYOUT, tz="UTC")


def format_duration(value: timedelta, units: int = 2) -> str:
    """Human readable duration limited to its largest units, eg.
       "1 day 3 hours".
    """
    # Base values, pendulum's Duration overrides the arithmetic.
    seconds = abs(int(timedelta.total_seconds(value)))
    if not seconds:
        return "0 seconds"
    words = pendulum.duration(seconds=seconds).in_words().split()
    return " ".join(words[:units * 2])


def duration_since(value: Optional[DateTime]) -> timedelta:
    if value is None:
        return timedelta()
    return pendulum.now("UTC") - value


def is_captains_draft(match_type: str) -> bool:
    return match_type == MATCH_TYPE_CAPTAINS_DRAFT


def coins_from_wallet(wallet: str) -> float:
    """Reads the "coins" balance of a JSON wallet. 0 if there is none."""
    try:
        data = json.loads(wallet) if wallet else {}
    except ValueError:
        logger.error("Malformed wallet: %s", wallet)
        return 0
    if not isinstance(data, dict):
        return 0
    return data.get("coins", 0)


def _number(value: float) -> str:
    return f"{value:g}"


def format_json(data: Any) -> str:
    """Pretty prints a JSON document. Strings holding JSON are decoded
       first.
    """
    if isinstance(data, str):
        if not data:
            return ""
        try:
            data = json.loads(data)
        except ValueError:
            return data
    return json.dumps(data, indent=4)


def format_account(account: Account) -> str:
    return (
        f"> User: <@{account.custom_id}>\n"
        + code_block(
            f"UserID: {account.id}\n"
            f"DiscordID: {account.custom_id}\n"
            f"Username: {account.username}\n"
            f"Created: {format_date(account.create_time)}\n"
            f"Updated: {format_date(account.update_time)}")
        + f"> AvatarUrl: {account.avatar_url}\n"
    )


def format_ticket_state(ticket_state: TicketState) -> str:
    ticket = ticket_state.ticket
    tags = " ".join(ticket.tags)
    hours = _number(ticket.double_args.get("maxDuration", 0))
    return (
        f"> User: <@{ticket_state.discord_id}>\n"
        + code_block(
            f"TicketID: {ticket.id}\n"
            f"MatchID: {ticket_state.match_id or 'Not assigned'}\n"
            f"SearchFields: [{tags}] {hours} hours\n"
            f"CreateTime: {format_date(ticket.create_time)}")
    )


def format_team(team: Team) -> str:
    line = f"> **{team.id}** "
    if team.name:
        line += f"**{team.name}**"
    line += ": "
    for team_user in team.team_users:
        nakama = team_user.user.nakama
        line += f" <@{nakama.custom_id}> {nakama.username} "
        if nakama.wallet:
            line += f"({_number(coins_from_wallet(nakama.wallet))})"
        if team_user.reward > 0:
            line += f"**+{_number(team_user.reward)}**"
        elif team_user.reward < 0:
            line += f"**-{_number(abs(team_user.reward))}**"
    return line + "\n"


def format_teams(teams: list[Team]) -> str:
    return "> Teams:\n" + "".join(format_team(x) for x in teams)


def format_draft_pool(match_state: MatchState) -> str:
    if not is_captains_draft(match_state.match_type):
        return ""
    msg = "\n> Captain Draft mode: \n"
    if match_state.captain_turn_user_id:
        msg += f"> CaptainTurnUserID: <@{match_state.captain_turn_user_id}>\n"
    if match_state.captain_user_ids:
        msg += "> Captain User IDs: \n"
        msg += "".join(f"> <@{x}>\n" for x in match_state.captain_user_ids)
    if match_state.pool_user_custom_ids:
        msg += "> Draft Pool User IDs: \n"
        msg += "".join(f"> <@{x}>\n"
                       for x in match_state.pool_user_custom_ids)
    return msg


def format_match_results(match_state: MatchState) -> str:
    if not match_state.results:
        return ""
    msg = "> Results: \n"
    for result in match_state.results:
        if result.draw:
            outcome = "**Draw**"
        else:
            outcome = (f"**Team {result.team_number}** "
                       + ("**Win**" if result.win else "**Lose**"))
        msg += (f">   <@{result.discord_id}> {outcome} {result.proof_link} "
                f"{format_date(result.date_time)}\n")
    return msg + "\n"


def _users_ready(users: list[UserReady], ready: bool) -> str:
    if ready:
        return "".join(f" **<@{x.discord_id}>**" for x in users if x.ready)
    return "".join(f" <@{x.discord_id}>" for x in users if not x.ready)


def format_match_ready_users(match_state: MatchState) -> str:
    """Who is (not) ready yet, while the match waits for its players."""
    if match_state.status != MATCH_STATUS_AWAITING_USERS_READY:
        return ""
    teams = match_state.users_ready()
    msg = ""
    if teams:
        msg += "> Ready:\n"
        for number, users in sorted(teams.items()):
            msg += f"> Team **{number}**: {_users_ready(users, True)}\n"
    if any(not user.ready for users in teams.values() for user in users):
        msg += "\n> Not ready:\n"
        for number, users in sorted(teams.items()):
            msg += f"> Team **{number}**: {_users_ready(users, False)}\n"
    return msg + "\n"


def format_match_state(match_state: MatchState) -> str:
    lines = [
        f"> Active: **{'True' if match_state.active else 'False'}**",
        f"> Mode: **{match_state.match_profile}**",
        f"> Status: **{match_state.status}**",
        f"> Duration: **{format_duration(match_state.duration)}**",
    ]
    if match_state.started:
        lines.append(
            f"> Start date: **{format_date(match_state.date_time_start)}**")
        lines.append(
            f"> End date: **{format_date(match_state.date_time_end)}**")
        if match_state.active:
            elapsed = duration_since(match_state.date_time_start)
            lines.append(f"> Elapsed time: **{format_duration(elapsed)}**")
        if match_state.actual_date_time_end is not None:
            lines.append("> Actual end date: "
                         f"**{format_date(match_state.actual_date_time_end)}**")
        if match_state.actual_duration:
            lines.append("> Actual duration: "
                         f"**{format_duration(match_state.actual_duration)}**")
    return (
        code_block(f"MatchID: {match_state.match_id}")
        + format_teams(match_state.teams)
        + "\n".join(lines) + "\n"
        + format_draft_pool(match_state)
        + format_match_results(match_state)
        + format_match_ready_users(match_state)
    )


def format_leaderboard_records(records: list[LeaderboardRecord]) -> str:
    msg = f"> Match Leaderboard **{records[0].leaderboard_id}** :\n"
    for record in records:
        msg += f"> <@{record.username}> {record.score}.{record.subscore}\n"
    return msg + "\n"


def format_submit(submit: Submit) -> str:
    return code_block(f"Score: {submit.score}.{submit.subscore} | "
                      f"Date: {format_date(submit.datetime)} | "
                      f"Proof: {submit.proof_link}")
