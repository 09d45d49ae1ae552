"""Groups (clans) and their members."""

import logging
from typing import Optional, Sequence

from dataleague.formatting import format_json
from dataleague.session import LeagueContext

logger = logging.getLogger(__name__)

MAX_GROUP_COUNT = 2**31 - 1


async def create_group(league: LeagueContext, name: str,
                       description: str = "", avatar_url: str = "",
                       lang_tag: str = "", open_group: bool = True,
                       max_count: int = MAX_GROUP_COUNT) -> str:
    league.require_admin()
    result = await league.client.create_group(
        name, description=description, lang_tag=lang_tag,
        avatar_url=avatar_url, open_group=open_group, max_count=max_count)
    return format_json(result)


async def list_groups(league: LeagueContext, name: str = "",
                      cursor: str = "", limit: int = 100) -> str:
    """Groups whose name starts with name."""
    result = await league.client.list_groups(name=name, cursor=cursor,
                                             limit=limit)
    return format_json(result)


async def update_group(league: LeagueContext, group_id: str, name: str = "",
                       description: str = "", avatar_url: str = "",
                       lang_tag: str = "") -> str:
    result = await league.client.update_group(
        group_id, name=name, description=description, lang_tag=lang_tag,
        avatar_url=avatar_url)
    return format_json(result)


async def delete_group(league: LeagueContext, group_id: str) -> str:
    league.require_admin()
    return format_json(await league.client.delete_group(group_id))


async def leave_group(league: LeagueContext, group_id: str) -> str:
    return format_json(await league.client.leave_group(group_id))


async def add_group_users(league: LeagueContext, group_id: str,
                          user_ids: Sequence[str]) -> str:
    league.require_admin()
    return format_json(await league.client.add_group_users(group_id,
                                                           user_ids))


async def ban_group_users(league: LeagueContext, group_id: str,
                          user_ids: Sequence[str]) -> str:
    league.require_admin()
    return format_json(await league.client.ban_group_users(group_id,
                                                           user_ids))


async def kick_group_users(league: LeagueContext, group_id: str,
                           user_ids: Sequence[str]) -> str:
    league.require_admin()
    return format_json(await league.client.kick_group_users(group_id,
                                                            user_ids))


async def promote_group_users(league: LeagueContext, group_id: str,
                              user_ids: Sequence[str]) -> str:
    league.require_admin()
    return format_json(await league.client.promote_group_users(group_id,
                                                               user_ids))


async def list_group_users(league: LeagueContext, group_id: str,
                           limit: int = 100, state: Optional[int] = None,
                           cursor: str = "") -> str:
    result = await league.client.list_group_users(group_id, limit=limit,
                                                  state=state, cursor=cursor)
    return format_json(result)


async def list_user_groups(league: LeagueContext, user_id: str = "",
                           limit: int = 100, state: Optional[int] = None,
                           cursor: str = "") -> str:
    """Groups of the given user, the caller by default."""
    result = await league.client.list_user_groups(
        user_id or league.user_id, limit=limit, state=state, cursor=cursor)
    return format_json(result)
