"""Reporting match outcomes and scores."""

import json
import logging
from typing import Optional, Sequence

import pendulum

from dataleague import state
from dataleague.commands.common import current_account, flag_or_arg
from dataleague.errors import ValidationError
from dataleague.formatting import format_json, format_submit, render
from dataleague.models import MATCH_COLLECTION, MatchResult, Submit
from dataleague.session import LeagueContext
from dataleague.validation import normalize_proof_link, split_score

logger = logging.getLogger(__name__)


def _team_number(text: str) -> int:
    try:
        return int(text)
    except ValueError as err:
        raise ValidationError(f"Incorrect team number {text}") from err


async def report_result(league: LeagueContext, win: bool = False,
                        draw: bool = False, team_id: int = -1,
                        match_id: str = "", proof: str = "",
                        args: Sequence[str] = ()) -> str:
    """Reports an early win, loss or draw before the match ends.

       Positional arguments are [teamID] [matchID] [proof] for a win or a
       loss, and [matchID] [proof] for a draw. Without a team, the caller's
       own team is used; without a match, the caller's last match.
    """
    offset = 0 if draw else 1
    proof = flag_or_arg(proof, args, offset + 1)
    if proof:
        proof = normalize_proof_link(proof)
    if not draw and team_id == -1 and args:
        team_id = _team_number(args[0])

    account = await current_account(league)
    match_id = flag_or_arg(match_id, args, offset)
    if match_id:
        match_state = await state.get_match_state(league.client, match_id,
                                                  MATCH_COLLECTION)
    else:
        match_state = await state.get_last_user_match_state(league.client,
                                                            account)
    if match_state is None:
        raise ValidationError(f"No match found for <@{account.custom_id}>")

    if draw or team_id == -1:
        team_id = match_state.team_number_of(account.id)
    if not draw and not -1 <= team_id < len(match_state.teams):
        raise ValidationError(f"Incorrect team number {team_id}")

    result = MatchResult(user_id=account.id, discord_id=account.custom_id,
                         proof_link=proof, team_number=team_id, win=win,
                         draw=draw, date_time=pendulum.now("UTC"))
    payload = await league.client.rpc("MatchResult", json.dumps({
        "MatchResult": result.to_dict(),
        "MatchID": match_state.match_id,
    }))
    return format_json(payload)


def _score(score: Optional[float], args: Sequence[str]) -> float:
    if score:
        return score
    if not args:
        return 0
    try:
        return float(args[0])
    except ValueError as err:
        raise ValidationError(f"'{args[0]}' is not a valid score") from err


async def submit(league: LeagueContext, score: Optional[float] = None,
                 proof: str = "", match_id: str = "",
                 args: Sequence[str] = ()) -> str:
    """Submits a score with its proof link to the match leaderboard.

       The fractional part of the score becomes the subscore, eg. 10.5 is
       submitted as score 10, subscore 5000000000.
    """
    whole, subscore = split_score(_score(score, args))
    proof = flag_or_arg(proof, args, 1)
    if not proof:
        raise ValidationError("proof link is **required**")
    proof = normalize_proof_link(proof)
    match_id = flag_or_arg(match_id, args, 2)

    account = await current_account(league)
    if match_id:
        match_state = await state.get_match_state(league.client, match_id,
                                                  MATCH_COLLECTION)
    else:
        match_state = await state.get_last_user_match_state(league.client,
                                                            account)
    if match_state is None:
        return f"No active matches found for <@{account.custom_id}>"
    if not (match_state.active and match_state.started):
        return "Match is not active or not started yet"

    entry = Submit(score=whole, subscore=subscore, proof_link=proof,
                   datetime=pendulum.now("UTC"))
    await league.client.rpc("SubmitCreate", json.dumps({
        "Submit": entry.to_dict(),
        "MatchID": match_state.match_id,
        "UserID": account.id,
    }))
    return render(format_submit, entry)
