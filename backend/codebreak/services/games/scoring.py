from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from codebreak.models import PLAYING_TEAMS, Team, TeamRecord, Transition, Winner, opponent_of
from .similarity import is_correct

WIN_THRESHOLD = 2


@dataclass(frozen=True)
class RoundOutcome:
    transition: Transition
    winner: Optional[Winner] = None


def evaluate_round_end(teams: Mapping[Team, TeamRecord], round_count: int, max_rounds: int) -> RoundOutcome:
    """Decide what follows a finished round.

    A team that cracks the opposing code twice wins; a team that fails to
    read its own code twice hands the win to its opponent. A single winner
    ends the game. If both teams are winners the higher net score
    (cracked - errors) wins and equal nets go to a tie-break, which is also
    where the game goes once the round cap is reached without a winner.
    """
    reasons: Dict[Team, str] = {}
    for team in PLAYING_TEAMS:
        record = teams[team]
        if record.cracked_count == WIN_THRESHOLD:
            reasons.setdefault(team, f"{team.value} intercepted {opponent_of(team).value}'s code twice")
        if record.error_count == WIN_THRESHOLD:
            other = opponent_of(team)
            reasons.setdefault(other, f"{team.value} misread its own code twice")

    if len(reasons) == 1:
        team, reason = next(iter(reasons.items()))
        return RoundOutcome(Transition.END_GAME, Winner(team, reason))

    if len(reasons) == 2:
        red, blue = teams[Team.RED].net_score(), teams[Team.BLUE].net_score()
        if red == blue:
            return RoundOutcome(Transition.TIE_BREAK)
        team = Team.RED if red > blue else Team.BLUE
        reason = f"both teams reached a win condition; {team.value} has the higher net score ({max(red, blue)} to {min(red, blue)})"
        return RoundOutcome(Transition.END_GAME, Winner(team, reason))

    if round_count == max_rounds:
        return RoundOutcome(Transition.TIE_BREAK)
    return RoundOutcome(Transition.START_ROUND)


def count_tie_break_hits(guesses, targets) -> int:
    hits = 0
    for guess, target in zip(guesses or (), targets or ()):
        if is_correct(guess, target):
            hits += 1
    return hits


def score_tie_break(teams: Mapping[Team, TeamRecord]) -> Winner:
    """Score each team's four word guesses against the opposing team's target words."""
    scores = {
        team: count_tie_break_hits(teams[team].tie_break_guess, teams[opponent_of(team)].target_words)
        for team in PLAYING_TEAMS
    }
    red, blue = scores[Team.RED], scores[Team.BLUE]
    if red == blue:
        return Winner(Team.NONE, f"tie-break drawn: RED {red}, BLUE {blue}")
    team = Team.RED if red > blue else Team.BLUE
    return Winner(team, f"{team.value} won the tie-break: RED {red}, BLUE {blue}")
