"""Mirrors of the game backend's entities.

   The league procedures exchange JSON with PascalCase keys, while the
   platform API (accounts, storage, leaderboards, matchmaker tickets) uses
   snake_case keys. Each model converts from and to its wire form with
   from_dict() and to_dict().
"""

import base64
from dataclasses import dataclass, field
from datetime import timedelta
import json
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime

USER_DATA_COLLECTION = "user_data"
USER_LAST_DATA_KEY = "last"
TICKET_COLLECTION = "ticket_data"
MATCH_COLLECTION = "match_data"
MATCH_ARCHIVE_COLLECTION = "match_archive_data"
SUBMIT_COLLECTION = "submit_data"

TICKET_EXTENSION_USER = "user"
MATCH_EXTENSION_MATCH_TYPE = "match_type"

MAIN_LEADERBOARD = "Main Leaderboard"
DEFAULT_NAKAMA_MATCH_MODULE = "league"
NAKAMA_SYSTEM_USER_ID = "00000000-0000-0000-0000-000000000000"

MATCH_PROFILE_1_VS_1 = "1vs1"
MATCH_PROFILE_2_VS_2 = "2vs2"
MATCH_PROFILE_3_VS_3 = "3vs3"
MATCH_PROFILE_4_VS_4 = "4vs4"
MATCH_PROFILE_5_VS_5 = "5vs5"

MATCH_TYPE_MATCH_MAKER = "match_maker"
MATCH_TYPE_CAPTAINS_DRAFT = "captains_draft"

MATCH_STATUS_CREATED = "Created"
MATCH_STATUS_CAPTAINS_DRAFT_IN_PROGRESS = "Players draft in progress"
MATCH_STATUS_AWAITING_USERS_READY = "Awaiting users ready"
MATCH_STATUS_IN_PROGRESS = "In progress"
MATCH_STATUS_AWAITING_RESULTS = "Awaiting results"
MATCH_STATUS_ENDED_AFTER_TIME_EXPIRED = "The match ended after the time expired"
MATCH_STATUS_COMPLETED_AHEAD_OF_SCHEDULE = \
    "The match was completed ahead of schedule"
MATCH_STATUS_CANCELED = "Canceled"

SEARCH_MIN_DURATION = "minDuration"
SEARCH_MAX_DURATION = "maxDuration"
SEARCH_MIN_DATE = "minDate"
SEARCH_MAX_DATE = "maxDate"

DEFAULT_MATCH_DURATION_HOURS = 3
MIN_MATCH_DURATION_HOURS = 1
MAX_MATCH_DURATION_HOURS = 48

# Zero datetime the backend uses for unset datetimes.
ZERO_TIME = "0001-01-01T00:00:00Z"


def parse_time(value) -> Optional[DateTime]:
    """Parses a backend datetime: an RFC 3339 string or a protobuf
       {"seconds": ...} timestamp. Unset and zero times give None.
    """
    if not value:
        return None
    if isinstance(value, dict):
        seconds = int(value.get("seconds", 0))
        return pendulum.from_timestamp(seconds) if seconds else None
    if isinstance(value, (int, float)):
        return pendulum.from_timestamp(value) if value else None
    if value.startswith("0001-01-01"):
        return None
    return pendulum.parse(value).in_timezone("UTC")


def dump_time(value: Optional[DateTime]) -> str:
    return value.in_timezone("UTC").isoformat() if value else ZERO_TIME


def parse_duration(nanoseconds) -> timedelta:
    """The backend sends durations as integer nanoseconds."""
    return pendulum.duration(microseconds=int(nanoseconds or 0) // 1000)


@dataclass
class CaptainsDraftMode:
    team_count: int
    users_in_team: int
    users_per_captain_turn: List[int] = field(default_factory=list)


MATCH_MAKER_MODES = [MATCH_PROFILE_1_VS_1]

CAPTAINS_DRAFT_MODES_MAP = {
    MATCH_PROFILE_1_VS_1: CaptainsDraftMode(2, 1),
    MATCH_PROFILE_2_VS_2: CaptainsDraftMode(2, 2, [1, 1]),
    MATCH_PROFILE_3_VS_3: CaptainsDraftMode(2, 3, [1, 2, 1]),
    MATCH_PROFILE_4_VS_4: CaptainsDraftMode(2, 4, [1, 2, 2, 1]),
    MATCH_PROFILE_5_VS_5: CaptainsDraftMode(2, 5, [1, 2, 2, 2, 1]),
}

CAPTAINS_DRAFT_MODES = list(CAPTAINS_DRAFT_MODES_MAP)


@dataclass
class DiscordAuthor:
    id: str
    username: str
    discriminator: str = "0"
    email: str = ""
    locale: str = ""
    verified: bool = False
    mfa_enabled: bool = False
    bot: bool = False
    avatar_url: str = ""


@dataclass
class DiscordMessage:
    """Plain copy of the chat message a command came from."""
    id: str
    channel_id: str
    guild_id: str
    content: str
    author: DiscordAuthor


@dataclass
class DiscordUser:
    author_id: str = ""
    channel_id: str = ""
    discriminator: str = ""
    guild_id: str = ""
    username: str = ""
    message_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "AuthorID": self.author_id,
            "ChannelID": self.channel_id,
            "Discriminator": self.discriminator,
            "GuildID": self.guild_id,
            "Username": self.username,
            "MessageID": self.message_id,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "DiscordUser":
        return DiscordUser(
            author_id=d.get("AuthorID", ""),
            channel_id=d.get("ChannelID", ""),
            discriminator=d.get("Discriminator", ""),
            guild_id=d.get("GuildID", ""),
            username=d.get("Username", ""),
            message_id=d.get("MessageID", ""),
        )


@dataclass
class NakamaUser:
    custom_id: str = ""
    username: str = ""
    id: str = ""
    display_name: str = ""
    wallet: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "CustomID": self.custom_id,
            "Username": self.username,
            "ID": self.id,
            "DisplayName": self.display_name,
            "Wallet": self.wallet,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "NakamaUser":
        return NakamaUser(
            custom_id=d.get("CustomID", ""),
            username=d.get("Username", ""),
            id=d.get("ID", ""),
            display_name=d.get("DisplayName", ""),
            wallet=d.get("Wallet", ""),
        )


@dataclass
class User:
    nakama: NakamaUser = field(default_factory=NakamaUser)
    discord: DiscordUser = field(default_factory=DiscordUser)

    def to_dict(self) -> Dict[str, Any]:
        return {"Nakama": self.nakama.to_dict(),
                "Discord": self.discord.to_dict()}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "User":
        return User(nakama=NakamaUser.from_dict(d.get("Nakama") or {}),
                    discord=DiscordUser.from_dict(d.get("Discord") or {}))


@dataclass
class TeamUser:
    user: User = field(default_factory=User)
    ticket_id: str = ""
    reward: float = 0.0
    captain: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"User": self.user.to_dict(), "TicketID": self.ticket_id,
                "Reward": self.reward, "Captain": self.captain}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "TeamUser":
        return TeamUser(user=User.from_dict(d.get("User") or {}),
                        ticket_id=d.get("TicketID", ""),
                        reward=float(d.get("Reward") or 0),
                        captain=bool(d.get("Captain", False)))


@dataclass
class Team:
    id: int = 0
    name: str = ""
    team_users: List[TeamUser] = field(default_factory=list)
    discord_channels: List[Dict[str, Any]] = field(default_factory=list)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Team":
        return Team(
            id=int(d.get("ID") or 0),
            name=d.get("Name", ""),
            team_users=[TeamUser.from_dict(x)
                        for x in d.get("TeamUsers") or []],
            discord_channels=list(d.get("DiscordChannels") or []),
        )


@dataclass
class MatchResult:
    user_id: str = ""
    discord_id: str = ""
    proof_link: str = ""
    team_number: int = 0
    win: bool = False
    draw: bool = False
    date_time: Optional[DateTime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "UserID": self.user_id,
            "DiscordID": self.discord_id,
            "ProofLink": self.proof_link,
            "TeamNumber": self.team_number,
            "Win": self.win,
            "Draw": self.draw,
            "DateTime": dump_time(self.date_time),
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "MatchResult":
        return MatchResult(
            user_id=d.get("UserID", ""),
            discord_id=d.get("DiscordID", ""),
            proof_link=d.get("ProofLink", ""),
            team_number=int(d.get("TeamNumber") or 0),
            win=bool(d.get("Win", False)),
            draw=bool(d.get("Draw", False)),
            date_time=parse_time(d.get("DateTime")),
        )


@dataclass
class UserReady:
    ready: bool
    user_id: str
    discord_id: str


@dataclass
class MatchState:
    """Server side snapshot of a match. Read only for this client."""
    match_id: str = ""
    active: bool = False
    started: bool = False
    debug: bool = False
    status: str = ""
    match_profile: str = ""
    match_type: str = ""
    cancel_user_ids: List[str] = field(default_factory=list)
    captain_user_ids: List[str] = field(default_factory=list)
    captain_turn_user_id: str = ""
    date_time_start: Optional[DateTime] = None
    date_time_end: Optional[DateTime] = None
    duration: timedelta = field(default_factory=timedelta)
    actual_date_time_end: Optional[DateTime] = None
    actual_duration: timedelta = field(default_factory=timedelta)
    teams: List[Team] = field(default_factory=list)
    pool_user_ids: List[str] = field(default_factory=list)
    pool_user_custom_ids: List[str] = field(default_factory=list)
    results: List[MatchResult] = field(default_factory=list)
    ready_user_ids: List[str] = field(default_factory=list)
    storage_user_id: str = ""
    storage_collection: str = ""
    version: str = ""
    discord_channels: List[Dict[str, Any]] = field(default_factory=list)
    discord_new_match_message: Dict[str, Any] = field(default_factory=dict)
    max_num_score: int = 0

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "MatchState":
        return MatchState(
            match_id=d.get("MatchID", ""),
            active=bool(d.get("Active", False)),
            started=bool(d.get("Started", False)),
            debug=bool(d.get("Debug", False)),
            status=d.get("Status", ""),
            match_profile=d.get("MatchProfile", ""),
            match_type=d.get("MatchType", ""),
            cancel_user_ids=list(d.get("CancelUserIDs") or []),
            captain_user_ids=list(d.get("CaptainUserIDs") or []),
            captain_turn_user_id=d.get("CaptainTurnUserID", ""),
            date_time_start=parse_time(d.get("DateTimeStart")),
            date_time_end=parse_time(d.get("DateTimeEnd")),
            duration=parse_duration(d.get("Duration")),
            actual_date_time_end=parse_time(d.get("ActualDateTimeEnd")),
            actual_duration=parse_duration(d.get("ActualDuration")),
            teams=[Team.from_dict(x) for x in d.get("Teams") or []],
            pool_user_ids=list(d.get("PoolUserIDs") or []),
            pool_user_custom_ids=list(d.get("PoolUserCustomIDs") or []),
            results=[MatchResult.from_dict(x)
                     for x in d.get("Results") or []],
            ready_user_ids=list(d.get("ReadyUserIDs") or []),
            storage_user_id=d.get("StorageUserID", ""),
            storage_collection=d.get("StorageCollection", ""),
            version=d.get("Version", ""),
            discord_channels=list(d.get("DiscordChannels") or []),
            discord_new_match_message=dict(
                d.get("DiscordNewMatchMessage") or {}),
            max_num_score=int(d.get("MaxNumScore") or 0),
        )

    def team_number_of(self, user_id: str) -> int:
        """Returns the index of the team the user plays in, or -1."""
        for number, team in enumerate(self.teams):
            if any(x.user.nakama.id == user_id for x in team.team_users):
                return number
        return -1

    def users_ready(self) -> Dict[int, List[UserReady]]:
        """Readiness of every team member, by team index."""
        ready = {}
        for number, team in enumerate(self.teams):
            ready[number] = [
                UserReady(ready=x.user.nakama.id in self.ready_user_ids,
                          user_id=x.user.nakama.id,
                          discord_id=x.user.nakama.custom_id)
                for x in team.team_users
            ]
        return ready


@dataclass
class Ticket:
    """Matchmaker ticket. Uses the matchmaker's snake_case JSON."""
    id: str = ""
    tags: List[str] = field(default_factory=list)
    double_args: Dict[str, float] = field(default_factory=dict)
    extensions: Dict[str, Any] = field(default_factory=dict)
    create_time: Optional[DateTime] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.id:
            d["id"] = self.id
        search_fields: Dict[str, Any] = {}
        if self.double_args:
            search_fields["double_args"] = self.double_args
        if self.tags:
            search_fields["tags"] = self.tags
        if search_fields:
            d["search_fields"] = search_fields
        if self.extensions:
            d["extensions"] = self.extensions
        if self.create_time:
            d["create_time"] = {"seconds": self.create_time.int_timestamp}
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Ticket":
        search_fields = d.get("search_fields") or {}
        return Ticket(
            id=d.get("id", ""),
            tags=list(search_fields.get("tags") or []),
            double_args=dict(search_fields.get("double_args") or {}),
            extensions=dict(d.get("extensions") or {}),
            create_time=parse_time(d.get("create_time")),
        )

    @staticmethod
    def user_extension(team_user: TeamUser) -> Dict[str, Any]:
        """Packs the ticket owner into a protobuf Any style extension."""
        value = json.dumps(team_user.to_dict()).encode()
        return {TICKET_EXTENSION_USER:
                {"value": base64.b64encode(value).decode()}}


@dataclass
class TicketState:
    ticket: Ticket = field(default_factory=Ticket)
    captains_draft: bool = False
    match_id: str = ""
    user_id: str = ""
    discord_id: str = ""
    version: str = ""
    user_ready: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Ticket": self.ticket.to_dict(),
            "CaptainsDraft": self.captains_draft,
            "MatchID": self.match_id,
            "UserID": self.user_id,
            "DiscordID": self.discord_id,
            "Version": self.version,
            "UserReady": self.user_ready,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "TicketState":
        return TicketState(
            ticket=Ticket.from_dict(d.get("Ticket") or {}),
            captains_draft=bool(d.get("CaptainsDraft", False)),
            match_id=d.get("MatchID", ""),
            user_id=d.get("UserID", ""),
            discord_id=d.get("DiscordID", ""),
            version=d.get("Version", ""),
            user_ready=bool(d.get("UserReady", False)),
        )


@dataclass
class UserData:
    """Last known state of a user: current match, ticket and chat channel."""
    user_id: str = ""
    match_id: str = ""
    ticket_id: str = ""
    version: str = ""
    discord_channel_id: str = ""
    discord_guild_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "UserID": self.user_id,
            "MatchID": self.match_id,
            "TicketID": self.ticket_id,
            "Version": self.version,
            "DiscordChannelID": self.discord_channel_id,
            "DiscordGuildID": self.discord_guild_id,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "UserData":
        return UserData(
            user_id=d.get("UserID", ""),
            match_id=d.get("MatchID", ""),
            ticket_id=d.get("TicketID", ""),
            version=d.get("Version", ""),
            discord_channel_id=d.get("DiscordChannelID", ""),
            discord_guild_id=d.get("DiscordGuildID", ""),
        )


@dataclass
class Submit:
    score: int
    subscore: int
    proof_link: str
    datetime: Optional[DateTime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"Datetime": dump_time(self.datetime), "Score": self.score,
                "Subscore": self.subscore, "ProofLink": self.proof_link}


@dataclass
class Account:
    """Platform account. The custom ID is the user's Discord ID."""
    id: str = ""
    username: str = ""
    display_name: str = ""
    avatar_url: str = ""
    metadata: str = ""
    create_time: Optional[DateTime] = None
    update_time: Optional[DateTime] = None
    wallet: str = ""
    custom_id: str = ""
    email: str = ""

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Account":
        user = d.get("user") or {}
        return Account(
            id=user.get("id", ""),
            username=user.get("username", ""),
            display_name=user.get("display_name", ""),
            avatar_url=user.get("avatar_url", ""),
            metadata=user.get("metadata", ""),
            create_time=parse_time(user.get("create_time")),
            update_time=parse_time(user.get("update_time")),
            wallet=d.get("wallet", ""),
            custom_id=d.get("custom_id", ""),
            email=d.get("email", ""),
        )

    @property
    def metadata_dict(self) -> Dict[str, Any]:
        if not self.metadata:
            return {}
        return json.loads(self.metadata)

    def team_user(self, user_data: UserData) -> TeamUser:
        """The account as a team member, as the matchmaker expects it."""
        name, _, discriminator = self.username.partition("#")
        return TeamUser(user=User(
            discord=DiscordUser(
                author_id=self.custom_id,
                username=name,
                channel_id=user_data.discord_channel_id,
                discriminator=discriminator,
                guild_id=user_data.discord_guild_id,
            ),
            nakama=NakamaUser(
                custom_id=self.custom_id,
                display_name=self.display_name,
                id=self.id,
                username=self.username,
                wallet=self.wallet,
            ),
        ))


@dataclass
class LeaderboardRecord:
    leaderboard_id: str = ""
    owner_id: str = ""
    username: str = ""
    score: int = 0
    subscore: int = 0
    rank: int = 0

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "LeaderboardRecord":
        username = d.get("username", "")
        if isinstance(username, dict):
            username = username.get("value", "")
        return LeaderboardRecord(
            leaderboard_id=d.get("leaderboard_id", ""),
            owner_id=d.get("owner_id", ""),
            username=username,
            score=int(d.get("score") or 0),
            subscore=int(d.get("subscore") or 0),
            rank=int(d.get("rank") or 0),
        )
