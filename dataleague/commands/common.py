"""Helpers shared by the command handlers."""

import logging
from typing import Optional, Sequence

from dataleague.errors import ValidationError
from dataleague.models import Account
from dataleague.session import LeagueContext

logger = logging.getLogger(__name__)


def flag_or_arg(flag: Optional[str], args: Sequence[str],
                index: int = 0) -> str:
    """The flag value if given, else the positional argument at index, else
       an empty string.
    """
    if flag:
        return flag
    if len(args) > index:
        return args[index]
    return ""


def require(value: str, message: str) -> str:
    if not value:
        raise ValidationError(message)
    return value


async def current_account(league: LeagueContext) -> Account:
    """Account of the authenticated caller."""
    return Account.from_dict(await league.client.get_account())
