"""Partial updates of the stored user data."""

from dataclasses import dataclass, fields, replace
import logging
from typing import Optional, Union

from dataleague.models import UserData

logger = logging.getLogger(__name__)


class _Clear:
    """Marker type of CLEAR."""

    def __repr__(self):
        return "CLEAR"


# Patch value that empties a field, as opposed to None which leaves it as is.
CLEAR = _Clear()

PatchValue = Union[None, str, _Clear]


@dataclass
class UserDataPatch:
    """Fields to change in a UserData. None or "" means no change."""
    user_id: PatchValue = None
    match_id: PatchValue = None
    ticket_id: PatchValue = None
    version: PatchValue = None
    discord_channel_id: PatchValue = None
    discord_guild_id: PatchValue = None


def merge_user_data(current: Optional[UserData],
                    patch: UserDataPatch) -> Optional[UserData]:
    """Applies patch to current by field name.

       Returns the merged user data, or None if no field changed.
       If there is no current user data, the patch is applied to an
       empty one.
    """
    base = current if current is not None else UserData()
    changes = {}
    for patch_field in fields(patch):
        value = getattr(patch, patch_field.name)
        if value is None or value == "":
            continue
        changes[patch_field.name] = "" if value is CLEAR else value
    merged = replace(base, **changes)
    if current is not None and merged == current:
        logger.debug("user data was not patched because it has not changed")
        return None
    logger.debug("patched user data %s -> %s", current, merged)
    return merged
