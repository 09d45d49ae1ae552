"""Resolving free-form user identifiers to accounts."""

from enum import Enum
import logging
import re

from dataleague.errors import InvalidIdentifier, ValidationError
from dataleague.models import Account

logger = logging.getLogger(__name__)

_INT64_RE = re.compile(r"[+-]?[0-9]+")


class UserIdentity(Enum):
    """The forms a user can be referred to by."""
    UNDEFINED = 0
    USERNAME_WITH_DISCRIMINATOR = 1  # name#1234
    DISCORD_ID = 2  # 554195751274807297
    DISCORD_MENTION = 3  # <@554195751274807297>


def _is_int64(text: str) -> bool:
    if not _INT64_RE.fullmatch(text):
        return False
    return -2**63 <= int(text) < 2**63


def detect_user_identity(identifier: str) -> UserIdentity:
    if "#" in identifier:
        return UserIdentity.USERNAME_WITH_DISCRIMINATOR
    if (identifier.startswith("<") and "@" in identifier
            and identifier.endswith(">")):
        return UserIdentity.DISCORD_MENTION
    if _is_int64(identifier):
        return UserIdentity.DISCORD_ID
    return UserIdentity.UNDEFINED


def strip_mention(identifier: str) -> str:
    """<@123> and <@!123> -> 123"""
    for char in "<@!>":
        identifier = identifier.replace(char, "")
    return identifier


async def resolve_account(client, identifier: str) -> Account:
    """Looks up the account of a Discord ID, mention or name#1234.

       Raises InvalidIdentifier for anything else, and ValidationError when
       the backend knows no such account.
    """
    identity = detect_user_identity(identifier)
    if identity is UserIdentity.USERNAME_WITH_DISCRIMINATOR:
        rpc_id = "AccountByUsernameGet"
    elif identity is UserIdentity.DISCORD_MENTION:
        rpc_id = "AccountByCustomIDGet"
        identifier = strip_mention(identifier)
    elif identity is UserIdentity.DISCORD_ID:
        rpc_id = "AccountByCustomIDGet"
    else:
        raise InvalidIdentifier(identifier)
    logger.info("resolving %s by %s", identifier, rpc_id)
    result = await client.rpc_json(rpc_id, {"Identifier": identifier})
    account = Account.from_dict(result or {})
    if not account.id:
        raise ValidationError("Account not found")
    return account
