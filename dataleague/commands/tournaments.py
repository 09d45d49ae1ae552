"""Tournaments and their records. Creating and deleting them is reserved to
   the league admins.
"""

import json
import logging
from typing import Sequence
import uuid

import pendulum

from dataleague.errors import ValidationError
from dataleague.formatting import format_json, parse_date
from dataleague.session import LeagueContext

logger = logging.getLogger(__name__)

TIME_START_DEFAULT = "01 Jan 1970 00:00:00 UTC"
TIME_END_DEFAULT = "01 Jan 3000 00:00:00 UTC"


async def create_tournament(league: LeagueContext, title: str,
                            description: str = "", sort_order: str = "desc",
                            operator: str = "best", reset_schedule: str = "",
                            category: int = 1, duration: int = 3600,
                            max_size: int = 10000, max_num_score: int = 3,
                            join_required: bool = True,
                            debug: bool = True) -> str:
    """Starts a tournament right away, without an end time.

       The reset schedule is a CRON expression. Its fields may be separated
       by commas so it fits in a single chat argument, eg. "0,12,*,*,*".
    """
    league.require_admin()
    payload = await league.client.rpc("TournamentCreate", json.dumps({
        "ID": str(uuid.uuid4()),
        "SortOrder": sort_order,
        "Operator": operator,
        "ResetSchedule": reset_schedule.replace(",", " "),
        "Metadata": {},
        "Title": title,
        "Description": description,
        "Category": category,
        "StartTime": pendulum.now("UTC").int_timestamp,
        "EndTime": 0,
        "Duration": duration,
        "MaxSize": max_size,
        "MaxNumScore": max_num_score,
        "JoinRequired": join_required,
        "debug": debug,
    }))
    return format_json(payload)


async def delete_tournament(league: LeagueContext, tournament_id: str) -> str:
    league.require_admin()
    payload = await league.client.rpc("TournamentDelete",
                                      json.dumps({"ID": tournament_id}))
    return format_json(payload)


async def list_tournaments(league: LeagueContext, category_start: int = 0,
                           category_end: int = 127,
                           time_start: str = TIME_START_DEFAULT,
                           time_end: str = TIME_END_DEFAULT,
                           limit: int = 100, cursor: str = "") -> str:
    """Lists the tournaments active between time_start and time_end, given
       as "02 Jan 2006 15:04:05 UTC".
    """
    result = await league.client.list_tournaments(
        category_start=category_start, category_end=category_end,
        start_time=_timestamp(time_start), end_time=_timestamp(time_end),
        limit=limit, cursor=cursor)
    return format_json(result)


def _timestamp(text: str) -> int:
    try:
        return parse_date(text).int_timestamp
    except ValueError as err:
        raise ValidationError(f"'{text}' is not a date like "
                              f"'{TIME_START_DEFAULT}'") from err


async def write_tournament_record(league: LeagueContext, tournament_id: str,
                                  score: int = 0, subscore: int = 0,
                                  metadata: str = "") -> str:
    league.require_admin()
    result = await league.client.write_tournament_record(
        tournament_id, score, subscore, metadata)
    return format_json(result)


async def list_tournament_records(league: LeagueContext, tournament_id: str,
                                  owner_ids: Sequence[str] = (),
                                  limit: int = 100, cursor: str = "",
                                  expiry: int = 0) -> str:
    """Records of the given owners, the caller by default."""
    result = await league.client.list_tournament_records(
        tournament_id, owner_ids=list(owner_ids) or [league.user_id],
        limit=limit, cursor=cursor, expiry=expiry)
    return format_json(result)


async def list_tournament_records_around_owner(
        league: LeagueContext, tournament_id: str, owner_id: str = "",
        limit: int = 100, expiry: int = 0) -> str:
    result = await league.client.list_tournament_records_around_owner(
        tournament_id, owner_id or league.user_id, limit=limit,
        expiry=expiry)
    return format_json(result)
