"""The dl command tree, shared by the command line and the Discord bot.

   Every command opens a LeagueContext through the CommandRunner it is
   given, awaits its handler and echoes the returned text. The runner
   decides who the caller is: the league administrator on the command line,
   or the author of the chat message on Discord.
"""

import asyncio
import contextlib
import io
import logging
from typing import Any, Awaitable, Callable, Iterable, Sequence

import click

from dataleague import __version__
from dataleague.commands import (groups, leaderboards, matches, results,
                                 tickets, tournaments, users)
from dataleague.config import load_overrides
from dataleague.errors import PermissionDenied, RemoteCallError, \
    ValidationError
from dataleague.logger import setup_logging
from dataleague.models import (DEFAULT_MATCH_DURATION_HOURS,
                               DEFAULT_NAKAMA_MATCH_MODULE,
                               MAX_MATCH_DURATION_HOURS)
from dataleague.session import LeagueContext

logger = logging.getLogger(__name__)

Connect = Callable[[], LeagueContext]

USER_HELP = ("Discord username#1234, @username or <@discord_user_id>")
PROOF_HELP = ("Proof link **must** be a valid URL starting with **http** or "
              "**https**")


class AliasedGroup(click.Group):
    """click.Group whose subcommands can have aliases, eg. "dl t" for
       "dl go".
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.aliases: dict[str, str] = {}

    def _register(self, decorator, aliases: Iterable[str]):
        def wrapper(func):
            cmd = decorator(func)
            for alias in aliases:
                self.aliases[alias] = cmd.name
            return cmd
        return wrapper

    def command(self, *args, aliases: Iterable[str] = (), **kwargs):
        return self._register(super().command(*args, **kwargs), aliases)

    def group(self, *args, aliases: Iterable[str] = (), **kwargs):
        kwargs.setdefault("cls", AliasedGroup)
        return self._register(super().group(*args, **kwargs), aliases)

    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, self.aliases.get(cmd_name, cmd_name))

    def resolve_command(self, ctx, args):
        _, cmd, args = super().resolve_command(ctx, args)
        return (cmd.name if cmd else None), cmd, args


class CommandRunner:
    """Runs command handlers in a fresh league session."""

    def __init__(self, connect: Connect, allow_config: bool = True):
        self.connect = connect
        self.allow_config = allow_config

    async def _run(self, handler: Callable[..., Awaitable[str]], *args: Any,
                   **kwargs: Any) -> str:
        try:
            async with self.connect() as league:
                return await handler(league, *args, **kwargs)
        except (ValidationError, PermissionDenied) as err:
            raise click.ClickException(str(err)) from err
        except RemoteCallError as err:
            logger.error("%s failed: %s", handler.__name__, err)
            raise click.ClickException(str(err)) from err

    def run(self, handler: Callable[..., Awaitable[str]], *args: Any,
            **kwargs: Any) -> None:
        output = asyncio.run(self._run(handler, *args, **kwargs))
        if output:
            click.echo(output)


pass_runner = click.make_pass_decorator(CommandRunner)


def _split(values: Sequence[str]) -> list[str]:
    """Flattens repeated and comma separated option values."""
    return [x for value in values for x in value.split(",") if x]


@click.group(cls=AliasedGroup, name="dl")
@click.option("--config", "config_path", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="YAML file overriding the shipped config values.")
@click.version_option(__version__, prog_name="dl")
@click.pass_context
def cli(ctx, config_path):
    """Data League CLI"""
    runner = ctx.find_object(CommandRunner)
    if runner is None:
        runner = ctx.obj = CommandRunner(LeagueContext.for_admin)
    if config_path:
        if not runner.allow_config:
            raise click.UsageError("--config is only available on the "
                                   "command line", ctx)
        load_overrides(config_path)


# Tickets

def ticket_options(captains_draft: bool):
    default = tickets.default_mode(captains_draft)
    kind = "Captains Draft" if captains_draft else "Match Maker"

    def decorator(func):
        func = click.option(
            "--ready/--not-ready", "-r", default=True,
            help="Indicate an early readiness for a new match")(func)
        func = click.option(
            "--duration", "-d", type=int,
            default=DEFAULT_MATCH_DURATION_HOURS,
            help=("duration in hours, maximum duration is "
                  f"{MAX_MATCH_DURATION_HOURS} hours"))(func)
        func = click.option("--mode", "-m", default=default,
                            help=f"{kind} mode")(func)
        return func
    return decorator


@cli.command(name="go", aliases=("new", "search", "ticket", "t"))
@ticket_options(captains_draft=False)
@pass_runner
def go_cmd(runner, mode, duration, ready):
    """Search for a **New Quick Match** and receive a ticket ID"""
    runner.run(tickets.create_ticket, mode=mode, duration=duration,
               ready=ready)


@cli.command(name="challenge", aliases=("chal", "chall", "c"))
@click.argument("args", nargs=-1)
@click.option("--user", "-u", default="",
              help=f"**Challenge** a specific user by the {USER_HELP}")
@ticket_options(captains_draft=True)
@pass_runner
def challenge_cmd(runner, args, user, mode, duration, ready):
    """**Challenge** a specific user in the Captains Draft mode."""
    runner.run(tickets.create_ticket, mode=mode, duration=duration,
               ready=ready, captains_draft=True, user=user, args=args)


@cli.command(name="ready", aliases=("r",))
@click.argument("args", nargs=-1)
@click.option("--ticketID", "-t", "ticket_id", default="")
@pass_runner
def ready_cmd(runner, args, ticket_id):
    """Indicate the readiness for a new match

       Player can be ready even before a new match is found
    """
    runner.run(tickets.ready, ticket_id=ticket_id, args=args)


@cli.command(name="cancel")
@click.argument("args", nargs=-1)
@click.option("--ticketID", "-t", "ticket_id", default="")
@pass_runner
def cancel_cmd(runner, args, ticket_id):
    """**Cancel** the ticket for a new match if the match has not started
       yet
    """
    runner.run(tickets.cancel, ticket_id=ticket_id, args=args)


# Captains draft pool

@cli.command(name="join", aliases=("j",))
@click.argument("args", nargs=-1)
@click.option("--matchID", "-m", "match_id", default="")
@pass_runner
def join_cmd(runner, args, match_id):
    """Join to the captains draft pool by the MatchID"""
    runner.run(matches.pool_join, match_id=match_id, args=args)


@cli.command(name="add", aliases=("a",))
@click.argument("args", nargs=-1)
@click.option("--userID", "-u", "user", default="", help=USER_HELP)
@pass_runner
def add_cmd(runner, args, user):
    """Add user to the captains draft pool by the UserID"""
    runner.run(matches.pool_add, user=user, args=args)


@cli.command(name="pick", aliases=("p",))
@click.argument("args", nargs=-1)
@click.option("--userID", "-u", "user", default="", help=USER_HELP)
@pass_runner
def pick_cmd(runner, args, user):
    """Pick user from the captains draft pool by the UserID"""
    runner.run(matches.pool_pick, user=user, args=args)


# Results

def result_options(draw: bool):
    def decorator(func):
        func = click.argument("args", nargs=-1)(func)
        func = click.option("--matchID", "-m", "match_id", default="")(func)
        func = click.option("--proof", "-p", default="",
                            help=PROOF_HELP)(func)
        if not draw:
            func = click.option("--teamID", "-t", "team_id", type=int,
                                default=-1, help="Team #")(func)
        return func
    return decorator


@cli.command(name="win", aliases=("victory",))
@result_options(draw=False)
@pass_runner
def win_cmd(runner, args, match_id, proof, team_id):
    """Report an early **win** before the match ends

       Usage: win [teamID] [matchID] [proof_link]
    """
    runner.run(results.report_result, win=True, team_id=team_id,
               match_id=match_id, proof=proof, args=args)


@cli.command(name="draw")
@result_options(draw=True)
@pass_runner
def draw_cmd(runner, args, match_id, proof):
    """Report an early **draw** before the match ends

       Usage: draw [matchID] [proof_link]
    """
    runner.run(results.report_result, draw=True, match_id=match_id,
               proof=proof, args=args)


@cli.command(name="lose", aliases=("ff", "loss"))
@result_options(draw=False)
@pass_runner
def lose_cmd(runner, args, match_id, proof, team_id):
    """Report an early **loss** before the match ends

       Usage: lose [teamID] [matchID] [proof_link]
    """
    runner.run(results.report_result, team_id=team_id, match_id=match_id,
               proof=proof, args=args)


@cli.command(name="submit", aliases=("score", "s"))
@click.argument("args", nargs=-1)
@click.option("--score", "-s", type=float, default=None,
              help="Score value, eg. 10.5")
@click.option("--proof", "-p", default="", help=PROOF_HELP)
@click.option("--matchID", "-m", "match_id", default="", help="Match ID")
@pass_runner
def submit_cmd(runner, args, score, proof, match_id):
    """Submit a **new score** and a **proof link** to the match leaderboard

       Usage: submit [score] [proof_link] [matchID]
    """
    runner.run(results.submit, score=score, proof=proof, match_id=match_id,
               args=args)


# Leaderboards

def lb_command(group, **kwargs):
    @group.command(name="lb", **kwargs)
    @click.argument("args", nargs=-1)
    @click.option("--matchID", "-m", "match_id", default="")
    @pass_runner
    def lb_cmd(runner, args, match_id):
        """Get the **match leaderboard**"""
        runner.run(leaderboards.match_leaderboard, match_id=match_id,
                   args=args)
    return lb_cmd


def top_command(group, **kwargs):
    @group.command(name="top", **kwargs)
    @click.argument("args", nargs=-1)
    @click.option("--discordID", "-d", "discord_id", default="")
    @pass_runner
    def top_cmd(runner, args, discord_id):
        """Get the **league leaderboard**"""
        runner.run(leaderboards.top_leaderboard, discord_id=discord_id,
                   args=args)
    return top_cmd


lb_command(cli)
top_command(cli)


@cli.command(name="login", aliases=("l",))
@pass_runner
def login_cmd(runner):
    """**Login** to the league"""
    runner.run(users.login)


# Queries

@cli.group(name="get")
def get_group():
    """Get league entities"""


@get_group.command(name="match", aliases=("m",))
@click.option("--matchID", "-m", "match_id", default="")
@click.option("--all", "-a", "show_all", is_flag=True,
              help="Get all active matches")
@pass_runner
def get_match_cmd(runner, match_id, show_all):
    """Get match state"""
    runner.run(matches.get_match, match_id=match_id, show_all=show_all)


@get_group.command(name="ticket")
@click.argument("ticket_id", required=False, default="")
@click.option("--id", "-i", "ticket_id_flag", default="")
@click.option("--all", "-a", "show_all", is_flag=True,
              help="Get all the tickets")
@pass_runner
def get_ticket_cmd(runner, ticket_id, ticket_id_flag, show_all):
    """Get ticket state"""
    runner.run(tickets.get_ticket, ticket_id=ticket_id_flag or ticket_id,
               show_all=show_all)


@get_group.command(name="user", aliases=("u",))
@click.argument("identifier", required=False, default="")
@click.option("--user", "-u", default="", help=USER_HELP)
@pass_runner
def get_user_cmd(runner, identifier, user):
    """Get user"""
    runner.run(users.get_user, user or identifier)


lb_command(get_group)
top_command(get_group)


@get_group.command(name="tournament")
@click.option("--categoryStart", "category_start", type=int, default=0)
@click.option("--categoryEnd", "category_end", type=int, default=127)
@click.option("--timeStart", "-s", "time_start",
              default=tournaments.TIME_START_DEFAULT)
@click.option("--timeEnd", "-e", "time_end",
              default=tournaments.TIME_END_DEFAULT)
@click.option("--limit", "-l", type=int, default=100)
@click.option("--cursor", "-c", default="")
@pass_runner
def get_tournament_cmd(runner, category_start, category_end, time_start,
                       time_end, limit, cursor):
    """List tournaments"""
    runner.run(tournaments.list_tournaments, category_start=category_start,
               category_end=category_end, time_start=time_start,
               time_end=time_end, limit=limit, cursor=cursor)


@get_group.command(name="group")
@click.argument("name", required=False, default="")
@click.option("--name", "-n", "name_flag", default="")
@click.option("--limit", "-l", type=int, default=100)
@click.option("--cursor", "-c", default="")
@pass_runner
def get_group_cmd(runner, name, name_flag, limit, cursor):
    """List groups by name"""
    runner.run(groups.list_groups, name=name_flag or name, limit=limit,
               cursor=cursor)


@get_group.command(name="groupUsers", aliases=("gu",))
@click.argument("group_id", required=False, default="")
@click.option("--groupID", "-g", "group_id_flag", default="")
@click.option("--limit", "-l", type=int, default=100)
@click.option("--state", "-s", type=int, default=None)
@click.option("--cursor", "-c", default="")
@pass_runner
def get_group_users_cmd(runner, group_id, group_id_flag, limit, state,
                        cursor):
    """List the members of a group"""
    runner.run(groups.list_group_users, group_id_flag or group_id,
               limit=limit, state=state, cursor=cursor)


@get_group.command(name="userGroups", aliases=("ug",))
@click.argument("user_id", required=False, default="")
@click.option("--userID", "-i", "user_id_flag", default="")
@click.option("--limit", "-l", type=int, default=100)
@click.option("--state", "-s", type=int, default=None)
@click.option("--cursor", "-c", default="")
@pass_runner
def get_user_groups_cmd(runner, user_id, user_id_flag, limit, state, cursor):
    """List the groups of a user"""
    runner.run(groups.list_user_groups, user_id=user_id_flag or user_id,
               limit=limit, state=state, cursor=cursor)


@get_group.command(name="tournamentRecord", aliases=("tr",))
@click.option("--tournamentID", "-i", "tournament_id", required=True)
@click.option("--ownerIDs", "-o", "owner_ids", multiple=True)
@click.option("--limit", "-l", type=int, default=100)
@click.option("--cursor", "-c", default="")
@click.option("--expiry", "-e", type=int, default=0)
@pass_runner
def get_tournament_record_cmd(runner, tournament_id, owner_ids, limit,
                              cursor, expiry):
    """List tournament records"""
    runner.run(tournaments.list_tournament_records, tournament_id,
               owner_ids=_split(owner_ids), limit=limit, cursor=cursor,
               expiry=expiry)


@get_group.command(name="tournamentRecordAroundOwner")
@click.option("--tournamentID", "-i", "tournament_id", required=True)
@click.option("--ownerID", "-o", "owner_id", default="")
@click.option("--limit", "-l", type=int, default=100)
@click.option("--expiry", "-e", type=int, default=0)
@pass_runner
def get_tournament_record_around_owner_cmd(runner, tournament_id, owner_id,
                                           limit, expiry):
    """List tournament records around an owner"""
    runner.run(tournaments.list_tournament_records_around_owner,
               tournament_id, owner_id=owner_id, limit=limit, expiry=expiry)


# Administration

@cli.group(name="create")
def create_group():
    """Create league entities"""


@create_group.command(name="tournament")
@click.option("--title", "-t", required=True)
@click.option("--desc", "description", default="")
@click.option("--sortOrder", "-s", "sort_order", default="desc")
@click.option("--operator", "-o", default="best")
@click.option("--resetSchedule", "-r", "reset_schedule", default="",
              help="eg. 0,12,*,*,*")
@click.option("--category", "-c", type=int, default=1)
@click.option("--duration", type=int, default=3600, help="in seconds")
@click.option("--maxSize", "max_size", type=int, default=10000)
@click.option("--maxNumScore", "max_num_score", type=int, default=3)
@click.option("--joinRequired/--no-joinRequired", "-j", "join_required",
              default=True)
@click.option("--debug/--no-debug", default=True)
@pass_runner
def create_tournament_cmd(runner, **kwargs):
    """Create a tournament"""
    runner.run(tournaments.create_tournament, **kwargs)


@create_group.command(name="leaderboard", aliases=("l",))
@click.option("--authoritative/--not-authoritative", "-a", default=True)
@click.option("--sortOrder", "-s", "sort_order", default="desc")
@click.option("--operator", "-o", default="best")
@click.option("--resetSchedule", "-r", "reset_schedule", default="",
              help="eg. 0 12 * * *")
@pass_runner
def create_leaderboard_cmd(runner, **kwargs):
    """Create a leaderboard"""
    runner.run(leaderboards.create_leaderboard, **kwargs)


@create_group.command(name="leaderboardRecord")
@click.option("--leaderboardID", "-i", "leaderboard_id", required=True)
@click.option("--userID", "-o", "owner_id", default="")
@click.option("--username", "-u", default="")
@click.option("--score", "-s", type=int, default=0)
@click.option("--subscore", type=int, default=0)
@pass_runner
def create_leaderboard_record_cmd(runner, **kwargs):
    """Write a leaderboard record"""
    runner.run(leaderboards.write_leaderboard_record, **kwargs)


@create_group.command(name="match")
@click.option("--module", "-m", default=DEFAULT_NAKAMA_MATCH_MODULE)
@pass_runner
def create_match_cmd(runner, module):
    """Create an authoritative match"""
    runner.run(matches.create_match, module=module)


@create_group.command(name="tournamentRecord", aliases=("tr",))
@click.option("--tournamentID", "-i", "tournament_id", required=True)
@click.option("--metadata", "-m", default="")
@click.option("--score", "-s", type=int, default=0)
@click.option("--subscore", type=int, default=0)
@pass_runner
def create_tournament_record_cmd(runner, **kwargs):
    """Write a tournament record"""
    runner.run(tournaments.write_tournament_record, **kwargs)


@create_group.command(name="group")
@click.option("--name", "-n", required=True)
@click.option("--desc", "-d", "description", default="")
@click.option("--avatarUrl", "-a", "avatar_url", default="")
@click.option("--langTag", "-l", "lang_tag", default="")
@click.option("--open/--closed", "-o", "open_group", default=True)
@click.option("--maxCount", "-m", "max_count", type=int,
              default=groups.MAX_GROUP_COUNT)
@pass_runner
def create_group_cmd(runner, **kwargs):
    """Create a group"""
    runner.run(groups.create_group, **kwargs)


def group_users_command(group, handler, help_text, **kwargs):
    @group.command(name="groupUsers", help=help_text, **kwargs)
    @click.option("--groupID", "-g", "group_id", required=True)
    @click.option("--userIDs", "-u", "user_ids", multiple=True,
                  help="Comma separated or repeated user IDs")
    @pass_runner
    def group_users_cmd(runner, group_id, user_ids):
        runner.run(handler, group_id, _split(user_ids))
    return group_users_cmd


group_users_command(create_group, groups.add_group_users,
                    "Add users to a group", aliases=("gu",))


@cli.group(name="delete")
def delete_group():
    """Delete league entities"""


@delete_group.command(name="tournament")
@click.argument("tournament_id")
@pass_runner
def delete_tournament_cmd(runner, tournament_id):
    """Delete a tournament"""
    runner.run(tournaments.delete_tournament, tournament_id)


@delete_group.command(name="leaderboard")
@click.argument("leaderboard_id")
@pass_runner
def delete_leaderboard_cmd(runner, leaderboard_id):
    """Delete a leaderboard"""
    runner.run(leaderboards.delete_leaderboard, leaderboard_id)


@delete_group.command(name="leaderboardRecord")
@click.argument("leaderboard_id")
@click.option("--ownerID", "-o", "owner_id", default="")
@pass_runner
def delete_leaderboard_record_cmd(runner, leaderboard_id, owner_id):
    """Delete a leaderboard record"""
    runner.run(leaderboards.delete_leaderboard_record, leaderboard_id,
               owner_id=owner_id)


@delete_group.command(name="group")
@click.argument("group_id")
@pass_runner
def delete_group_cmd(runner, group_id):
    """Delete a group"""
    runner.run(groups.delete_group, group_id)


@delete_group.command(name="ticket", aliases=("t",))
@click.argument("ticket_id")
@pass_runner
def delete_ticket_cmd(runner, ticket_id):
    """Delete game ticket by id"""
    runner.run(tickets.delete_ticket, ticket_id)


@cli.group(name="update")
def update_group():
    """Update league entities"""


@update_group.command(name="group")
@click.option("--groupID", "-g", "group_id", required=True)
@click.option("--name", "-n", default="")
@click.option("--desc", "-d", "description", default="")
@click.option("--avatarUrl", "-a", "avatar_url", default="")
@click.option("--langTag", "-l", "lang_tag", default="")
@pass_runner
def update_group_cmd(runner, group_id, **kwargs):
    """Update a group"""
    runner.run(groups.update_group, group_id, **kwargs)


@cli.group(name="leave")
def leave_group():
    """Leave a group"""


@leave_group.command(name="group")
@click.argument("group_id")
@pass_runner
def leave_group_cmd(runner, group_id):
    """Leave a group"""
    runner.run(groups.leave_group, group_id)


@cli.group(name="promote")
def promote_group():
    """Promote group members"""


@cli.group(name="ban", aliases=("b",))
def ban_group():
    """Ban group members"""


@cli.group(name="kick")
def kick_group():
    """Kick group members"""


group_users_command(promote_group, groups.promote_group_users,
                    "Promote group members", aliases=("gu",))
group_users_command(ban_group, groups.ban_group_users,
                    "Ban users from a group", aliases=("gu",))
group_users_command(kick_group, groups.kick_group_users,
                    "Kick users from a group", aliases=("gu",))


def execute(args: Sequence[str], connect: Connect) -> str:
    """Runs a command line and returns everything it printed, errors
       included. Used by the Discord bot, where --config is not available.
    """
    runner = CommandRunner(connect, allow_config=False)
    output = io.StringIO()
    with contextlib.redirect_stdout(output):
        try:
            cli.main(args=list(args), prog_name="dl", obj=runner,
                     standalone_mode=False)
        except click.ClickException as err:
            click.echo(f"Error: {err.format_message()}")
    return output.getvalue()


def main():
    load_overrides()
    setup_logging()
    cli(obj=CommandRunner(LeagueContext.for_admin))


if __name__ == "__main__":
    main()
