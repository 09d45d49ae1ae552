"""Logging in and looking up users."""

import logging

from dataleague import state
from dataleague.commands.common import current_account, require
from dataleague.formatting import format_account, render
from dataleague.identity import resolve_account
from dataleague.models import UserData
from dataleague.session import LeagueContext

logger = logging.getLogger(__name__)


async def login(league: LeagueContext) -> str:
    """Remembers the chat channel and guild the caller talks to the bot in,
       so the league knows where to notify them.
    """
    account = await current_account(league)
    msg = league.discord_message
    await state.write_last_user_data(league.client, UserData(
        user_id=account.id,
        discord_channel_id=msg.channel_id if msg else "",
        discord_guild_id=msg.guild_id if msg else "",
    ))
    return f"User <@{account.custom_id}> has successfully logged in"


async def get_user(league: LeagueContext, user: str) -> str:
    user = require(user, "Please specify the user by the discord "
                         "username#1234, @username or <@discord_user_id>")
    account = await resolve_account(league.client, user)
    return render(format_account, account)
