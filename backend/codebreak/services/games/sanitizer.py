"""Per-viewer projections of a game.

Projections are built up field by field from what a viewer is allowed to
see; nothing is copied wholesale from a team record. The session itself is
only ever read here.
"""

from typing import TYPE_CHECKING, Callable, Optional

from codebreak.models import PLAYING_TEAMS, Role, Team, TeamRecord

if TYPE_CHECKING:
    from .session import GameSession

NameLookup = Callable[[str], Optional[str]]


def _copy(value):
    if isinstance(value, list):
        return [_copy(item) for item in value]
    return value


def _membership(record: TeamRecord, name_of: NameLookup) -> dict:
    return {
        'caller': name_of(record.caller) if record.caller is not None else None,
        'receivers': [name_of(sid) for sid in record.receivers],
    }


def _public_fields(record: TeamRecord) -> dict:
    return {
        'hint_history': _copy(record.hint_history),
        'guess_history_self': _copy(record.guess_history_self),
        'guess_history_other': _copy(record.guess_history_other),
        'card_history': _copy(record.card_history),
        'cracked_count': record.cracked_count,
        'error_count': record.error_count,
        'active_hint_submitted': record.active_hint_submitted,
        'active_guess_submitted': record.active_guess_submitted,
        'tie_break_guess_submitted': record.tie_break_guess_submitted,
    }


def _team_fields(record: TeamRecord) -> dict:
    return {
        'target_words': _copy(record.target_words),
        'active_hint': _copy(record.active_hint),
        'active_guess': _copy(record.active_guess),
        'tie_break_guess': _copy(record.tie_break_guess),
    }


def project_team(record: TeamRecord, projected: Team, viewer_team: Optional[Team],
                 viewer_role: Optional[Role], name_of: NameLookup, reveal_all: bool = False) -> dict:
    view = _membership(record, name_of)
    if projected not in PLAYING_TEAMS:
        return view
    view.update(_public_fields(record))
    own_team = projected == viewer_team
    if own_team or reveal_all:
        view.update(_team_fields(record))
    if own_team and viewer_role == Role.CALLER:
        view['active_card'] = _copy(record.active_card)
    return view


def project(session: 'GameSession', viewer_team: Optional[Team], viewer_role: Optional[Role],
            name_of: NameLookup, reveal_all: Optional[bool] = None) -> dict:
    """Build the view of `session` for a viewer seated at (viewer_team, viewer_role).

    Opposing teams never expose their card or target words before the game
    ends; a team's own card is only shown to its caller.
    """
    if reveal_all is None:
        reveal_all = session.reveal_all
    teams = {
        team.value: project_team(record, team, viewer_team, viewer_role, name_of, reveal_all)
        for team, record in session.teams.items()
    }
    return {
        'room_code': session.room_code,
        'me': {
            'team': viewer_team.value if viewer_team else None,
            'role': viewer_role.value if viewer_role else None,
        },
        'round_count': session.round_count,
        'max_rounds': session.max_rounds,
        'state': session.state.value,
        'winner': session.winner.to_dict() if session.winner else None,
        'teams': teams,
    }
