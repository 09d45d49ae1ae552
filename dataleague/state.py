"""User data, ticket state and match state of the league.

   The records live in the backend storage. They are read with the typed
   storage calls, and written through the league procedures so the server
   can keep its own bookkeeping consistent.
"""

import json
import logging
from typing import List, Optional

from dataleague.client import NakamaClient
from dataleague.models import (MATCH_COLLECTION, NAKAMA_SYSTEM_USER_ID,
                               TICKET_COLLECTION, USER_DATA_COLLECTION,
                               USER_LAST_DATA_KEY, Account, MatchState,
                               TicketState, UserData)
from dataleague.patch import UserDataPatch, merge_user_data

logger = logging.getLogger(__name__)


# User data

async def write_last_user_data(client: NakamaClient,
                               user_data: UserData) -> None:
    logger.info("writing user data %s", user_data)
    await client.rpc_json("LastUserDataCreate", {
        "UserID": user_data.user_id,
        "UserData": user_data.to_dict(),
    })


async def get_user_data(client: NakamaClient, account: Account,
                        key: str = USER_LAST_DATA_KEY) -> UserData:
    """Reads the stored user data.

       A missing record is rebuilt from the chat channel and guild kept in
       the account metadata, and written back. The same metadata fills in
       a stored record's empty channel and guild.
    """
    objects = await client.read_storage_objects(USER_DATA_COLLECTION, key,
                                                account.id)
    metadata = account.metadata_dict
    channel_id = metadata.get("ChannelID", "")
    guild_id = metadata.get("GuildID", "")

    if not objects:
        logger.warning("No user data found for %s, restoring it from the "
                       "account metadata", account.id)
        user_data = UserData(user_id=account.id,
                             discord_channel_id=channel_id,
                             discord_guild_id=guild_id)
        await write_last_user_data(client, user_data)
        return user_data

    user_data = UserData.from_dict(json.loads(objects[0]["value"]))
    user_data.version = objects[0].get("version", "")
    if not user_data.discord_channel_id:
        user_data.discord_channel_id = channel_id
    if not user_data.discord_guild_id:
        user_data.discord_guild_id = guild_id
    return user_data


async def create_or_update_last_user_data(client: NakamaClient,
                                          account: Account,
                                          patch: UserDataPatch) -> None:
    """Applies patch to the stored user data. Nothing is written when the
       patch changes nothing.
    """
    current = await get_user_data(client, account)
    merged = merge_user_data(current, patch)
    if merged is not None:
        await write_last_user_data(client, merged)


# Ticket state

def _ticket_state(obj: dict) -> TicketState:
    return TicketState.from_dict(json.loads(obj["value"]))


async def list_ticket_states(client: NakamaClient,
                             account: Account) -> List[TicketState]:
    """All ticket states of the user, newest first."""
    objects = await client.list_storage_objects(TICKET_COLLECTION,
                                                account.id)
    return [_ticket_state(x) for x in objects]


async def get_ticket_state(client: NakamaClient, ticket_id: str,
                           account: Account) -> Optional[TicketState]:
    """The ticket state stored under ticket_id, or the newest one of the
       user if no ID is given. None if there is no such ticket.
    """
    if ticket_id:
        objects = await client.read_storage_objects(TICKET_COLLECTION,
                                                    ticket_id, account.id)
    else:
        objects = await client.list_storage_objects(TICKET_COLLECTION,
                                                    account.id)
    if not objects:
        return None
    return _ticket_state(objects[0])


async def get_last_user_ticket_state(
        client: NakamaClient, account: Account) -> Optional[TicketState]:
    user_data = await get_user_data(client, account)
    if not user_data.ticket_id:
        return None
    return await get_ticket_state(client, user_data.ticket_id, account)


async def delete_ticket_state(client: NakamaClient, ticket_id: str) -> None:
    await client.delete_storage_object(TICKET_COLLECTION, ticket_id)


async def create_ticket_state(client: NakamaClient,
                              ticket_state: TicketState) -> None:
    await client.rpc_json("TicketStateCreate", {
        "TicketState": ticket_state.to_dict(),
        "UserID": ticket_state.user_id,
    })


# Match state

async def get_match_state(client: NakamaClient, match_id: str,
                          collection: str = "") -> Optional[MatchState]:
    """None if the server knows no such match."""
    result = await client.rpc_json("MatchStateGet", {
        "ID": match_id,
        "StorageCollection": collection,
    })
    if not result:
        return None
    return MatchState.from_dict(result)


async def get_last_user_match_state(
        client: NakamaClient, account: Account,
        collection: str = MATCH_COLLECTION) -> Optional[MatchState]:
    user_data = await get_user_data(client, account)
    if not user_data.match_id:
        return None
    return await get_match_state(client, user_data.match_id, collection)


async def list_match_states(client: NakamaClient, collection: str = "",
                            key: str = "") -> List[MatchState]:
    result = await client.rpc_json("MatchStateListGet", {
        "StorageCollection": collection,
        "Key": key,
        "UserID": NAKAMA_SYSTEM_USER_ID,
    })
    return [MatchState.from_dict(x) for x in result or []]
