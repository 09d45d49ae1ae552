"""
Data League client for Discord and the command line.

Talks to the Data League game backend (a Nakama server) to search for
matches, challenge other players in the captains draft mode, report match
results, submit scores and browse the league leaderboards.

Usage:
 Command line:
   dl go --mode 1vs1 --duration 3    Search for a new quick match.
   dl challenge <@discord_id>        Challenge a player in captains draft.
   dl ready / dl cancel              Confirm or drop the current ticket.
   dl submit 10.5 example.com/proof  Submit a score with a proof link.
   dl win / dl draw / dl lose        Report an early match result.
   dl get match|ticket|user|...      Read-only queries.

 Discord:
   Run the dl-bot entry point; any chat message starting with the
   configured command prefix (default "dl") is executed as above and
   answered in the same channel.

 Config values:
   The config values have been documented as comments in the config.yml
   file itself.

:copyright: (c) 2020- Data League collaborators
:license: MIT License; please see the LICENSE file for info.
"""

__title__ = "Data League"
__author__ = "Data League collaborators"
__license__ = "MIT"
__copyright__ = "Copyright (c) 2020- Data League collaborators"
__version__ = "1.0.0"
