"""Authenticated connections to the game backend.

   A LeagueContext is used as an async context manager: entering it opens
   the HTTP connection pool, authenticates with the server key, switches to
   the session bearer token and checks the backend health. Leaving it
   closes the connections.
"""

import base64
import binascii
import json
import logging
from types import TracebackType
from typing import Any, Awaitable, Callable, Optional, Type

import aiohttp

from dataleague.client import NakamaClient
from dataleague.config import cfg
from dataleague.errors import PermissionDenied, RemoteCallError
from dataleague.models import DiscordMessage

logger = logging.getLogger(__name__)

Authenticator = Callable[[NakamaClient], Awaitable[dict]]


def fix_username(username: str) -> str:
    return username.replace(" ", "_")


def account_vars(msg: DiscordMessage) -> dict[str, str]:
    """Account variables stored by the backend for a Discord user."""
    author = msg.author
    return {
        "ChannelID": msg.channel_id,
        "GuildID": msg.guild_id,
        "Author.ID": author.id,
        "Author.Email": author.email,
        "Author.Username": fix_username(author.username),
        "Author.Locale": author.locale,
        "Author.Discriminator": author.discriminator,
        "Author.Verified": str(author.verified).lower(),
        "Author.MFAEnbled": str(author.mfa_enabled).lower(),
        "Author.Bot": str(author.bot).lower(),
        "Author.AvatarUrl": author.avatar_url,
        "Content": msg.content,
    }


def user_data_from_session(token: str) -> dict[str, Any]:
    """Decodes the claims of a session token, eg. the user ID as "uid"."""
    try:
        claims = token.split(".")[1]
        claims += "=" * (-len(claims) % 4)
        return json.loads(base64.urlsafe_b64decode(claims))
    except (IndexError, binascii.Error, ValueError) as err:
        raise RemoteCallError(f"Malformed session token: {err}") from err


def base_url() -> str:
    scheme = "https" if cfg("DLBOT_SERVER_SSL") else "http"
    return f"{scheme}://{cfg('DLBOT_SERVER_HOST')}:{cfg('DLBOT_SERVER_PORT')}"


class LeagueContext:
    """Authenticated backend session, plus the chat message the command
       came from (None on the command line).
    """

    def __init__(self, authenticate: Authenticator,
                 discord_message: Optional[DiscordMessage] = None):
        self._authenticate = authenticate
        self.discord_message = discord_message
        self.http: Optional[aiohttp.ClientSession] = None
        self.client: Optional[NakamaClient] = None
        self.session: Optional[dict] = None

    @classmethod
    def for_custom_id(cls, custom_id: str, username: Optional[str] = None,
                      discord_message: Optional[DiscordMessage] = None,
                      **kwargs) -> "LeagueContext":
        async def authenticate(client):
            return await client.authenticate_custom(
                custom_id, username=username or custom_id, **kwargs)
        return cls(authenticate, discord_message)

    @classmethod
    def for_admin(cls) -> "LeagueContext":
        """Session of the command line client."""
        return cls.for_custom_id(cfg("DLBOT_ADMIN_CUSTOM_ID"))

    @classmethod
    def for_discord_message(cls, msg: DiscordMessage) -> "LeagueContext":
        """Session of the author of a chat message. The account is created
           on first use, named after the Discord name#discriminator.
        """
        username = (f"{fix_username(msg.author.username)}#"
                    f"{msg.author.discriminator}")
        return cls.for_custom_id(msg.author.id, username=username,
                                 discord_message=msg,
                                 account_vars=account_vars(msg))

    @classmethod
    def for_email(cls, email: str, password: str) -> "LeagueContext":
        async def authenticate(client):
            return await client.authenticate_email(email, password,
                                                   username=email)
        return cls(authenticate)

    async def __aenter__(self) -> "LeagueContext":
        timeout = aiohttp.ClientTimeout(
            total=None, sock_connect=cfg("DLBOT_CONNECT_TIMEOUT_SECS"))
        connector = aiohttp.TCPConnector(
            keepalive_timeout=cfg("DLBOT_KEEPALIVE_SECS"))
        self.http = aiohttp.ClientSession(connector=connector,
                                          timeout=timeout)
        self.client = NakamaClient(self.http, base_url(),
                                   cfg("DLBOT_SERVER_KEY"))
        try:
            self.session = await self._authenticate(self.client)
            self.client.token = self.session["token"]
            await self.client.healthcheck()
        except BaseException:
            await self.http.close()
            raise
        logger.info("Session restored for %s", self.user_id)
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> bool:
        if self.http is not None:
            await self.http.close()
            self.http = None
        return False

    @property
    def user_data(self) -> dict[str, Any]:
        assert self.session is not None
        return user_data_from_session(self.session["token"])

    @property
    def user_id(self) -> str:
        return self.user_data.get("uid", "")

    def is_admin(self) -> bool:
        """The command line is trusted. On Discord, only the configured
           admin IDs are.
        """
        if self.discord_message is None:
            return True
        return self.discord_message.author.id in (
            cfg("DLBOT_ADMIN_DISCORD_IDS") or [])

    def require_admin(self) -> None:
        if not self.is_admin():
            author = self.discord_message.author.id
            raise PermissionDenied(
                f"<@{author}> is not allowed to run this command")
