"""Command handlers of the league.

   Every handler is a coroutine taking the LeagueContext of the caller
   followed by the parsed command arguments, and returning the text to
   show. Invalid input raises ValidationError before any remote call.
"""
