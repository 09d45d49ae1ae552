#!/usr/bin/env python3

"""Discord front-end of the Data League.

   Usage:
     Chat commands:
       Any message starting with the DLBOT_CMD_PREFIX word (default "dl") is
       run as a league command on behalf of its author, eg:
         dl login
         dl go --mode 1vs1
         dl challenge @username --mode 2vs2
         dl submit 10.5 https://example.com/proof.png
       "dl --help" lists every command.

     Slash commands:
       - ping  Bot will simply respond with "pong". Use to test if
               the bot is still online and responsive.

     Config values:
       The config values have been documented as comments in the config.yml
       file itself.
"""

# MIT License
#
# Copyright (c) 2021- https://github.com/Rainyan and collaborators
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

import asyncio
import logging
import shlex
from typing import Iterator, Optional

import discord
from discord.ext import commands

from dataleague import __version__
from dataleague.cli import execute
from dataleague.config import cfg, load_overrides
from dataleague.logger import setup_logging
from dataleague.models import DiscordAuthor, DiscordMessage
from dataleague.session import LeagueContext

assert discord.version_info.major == 2

SCRIPT_NAME = "Data League Bot for Discord"

# Discord refuses messages longer than this.
MAX_MESSAGE_LENGTH = 2000

logger = logging.getLogger(__name__)

INTENTS = discord.Intents.none()
INTENTS.guilds = True
INTENTS.guild_messages = True  # for the chat commands
INTENTS.message_content = True  # for the chat commands
BOT = commands.Bot(case_insensitive=True, intents=INTENTS)

# The command output is captured from stdout, one command at a time.
COMMAND_LOCK = asyncio.Lock()


def command_args(content: str, prefix: str) -> Optional[list[str]]:
    """Returns the arguments of a league command, or None if the message
       is not one.
    """
    if not content.lower().startswith(prefix.lower()):
        return None
    args = shlex.split(content)
    if not args or args[0].lower() != prefix.lower():
        return None
    return args[1:]


def snapshot(msg: discord.Message) -> DiscordMessage:
    """Copies the parts of a chat message the league needs, so they can be
       used from a worker thread.
    """
    author = msg.author
    return DiscordMessage(
        id=str(msg.id),
        channel_id=str(msg.channel.id),
        guild_id=str(msg.guild.id) if msg.guild else "",
        content=msg.content,
        author=DiscordAuthor(
            id=str(author.id),
            username=author.name,
            discriminator=author.discriminator,
            bot=author.bot,
            avatar_url=author.display_avatar.url,
        ),
    )


def chunks(text: str, size: int = MAX_MESSAGE_LENGTH) -> Iterator[str]:
    """Splits text on line boundaries into pieces of at most size
       characters. Lines longer than that are cut.
    """
    chunk = ""
    for line in text.splitlines(keepends=True):
        while len(line) > size:
            if chunk:
                yield chunk
                chunk = ""
            yield line[:size]
            line = line[size:]
        if len(chunk) + len(line) > size:
            yield chunk
            chunk = ""
        chunk += line
    if chunk.strip():
        yield chunk


@BOT.event
async def on_message(msg):
    """Runs the league commands found in the chat."""
    # Quickly ignore most chat messages.
    if msg.author.bot or not msg.content:
        return
    try:
        args = command_args(msg.content, cfg("DLBOT_CMD_PREFIX"))
    except ValueError as err:
        await msg.channel.send(f"{msg.author.mention} {err}")
        return
    if args is None:
        return

    message = snapshot(msg)
    logger.info("%s: %s", message.author.id, args)
    async with COMMAND_LOCK:
        output = await asyncio.to_thread(
            execute, args,
            lambda: LeagueContext.for_discord_message(message))
    for chunk in chunks(output):
        await msg.channel.send(chunk)


@BOT.slash_command(brief="Test if bot is active")
async def ping(ctx):
    """Just a standard Discord bot ping test command for confirming whether
    the bot is online or not.
    """
    await ctx.send_response("pong", ephemeral=True)


class ErrorHandlerCog(commands.Cog):
    """Helper class for error handling."""

    def __init__(self, parent_bot):
        self.bot = parent_bot

    @commands.Cog.listener()
    async def on_application_command_error(self, ctx, err):
        """Error handler for the slash commands. Chat commands report their
           own errors in on_message.
        """
        logger.error("/%s failed", ctx.command, exc_info=err)
        await ctx.respond("Sorry, something went wrong. The error has been "
                          "logged.", ephemeral=True)


def main():
    load_overrides()
    setup_logging()
    token = cfg("DLBOT_SECRET_TOKEN")
    if not token:
        raise SystemExit("DLBOT_SECRET_TOKEN is not set")

    BOT.add_cog(ErrorHandlerCog(BOT))
    if cfg("DLBOT_DEBUG"):
        logger.debug("Intents (%s):", BOT.intents)
        for intent, enabled in iter(BOT.intents):
            if enabled:
                logger.debug("* %s", intent)

    logger.info("Now running %s v.%s", SCRIPT_NAME, __version__)
    BOT.run(token)


if __name__ == "__main__":
    main()
