"""
Actions accepted by the ledger state machine.

Each kind of action is a small frozen dataclass tagged with an ActionType.
Collaborators that speak the dictionary wire form ({"type": "CHAAL", "id": ...})
go through action_from_dict().
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Type

from teenpatti.ledger.errors import InvalidActionError
from teenpatti.ledger.state import GameSettings


class ActionType(Enum):
    """Every action kind the ledger understands."""

    ADD_PLAYER = "ADD_PLAYER"
    REMOVE_PLAYER = "REMOVE_PLAYER"
    WITHDRAW_PLAYER = "WITHDRAW_PLAYER"
    PROCEED_TO_SETTINGS = "PROCEED_TO_SETTINGS"
    START_GAME = "START_GAME"
    FOLD = "FOLD"
    CHAAL = "CHAAL"
    BLIND = "BLIND"
    SHOW = "SHOW"
    BACK_SHOW = "BACK_SHOW"
    RESOLVE_SHOW = "RESOLVE_SHOW"
    END_GAME = "END_GAME"
    SET_FIRST_PLAYER = "SET_FIRST_PLAYER"
    DISMISS_ROUND = "DISMISS_ROUND"
    END_SESSION = "END_SESSION"
    SET_SETTINGS = "SET_SETTINGS"
    NEXT_PLAYER = "NEXT_PLAYER"
    ADD_MONEY = "ADD_MONEY"
    CLEAR_TOAST = "CLEAR_TOAST"


# Actions a player takes on their own turn
TURN_ACTIONS = (
    ActionType.CHAAL,
    ActionType.BLIND,
    ActionType.SHOW,
    ActionType.BACK_SHOW,
    ActionType.FOLD,
)


@dataclass(frozen=True)
class Action:
    """Base class for all ledger actions."""

    action_type = None  # type: ActionType

    def to_dict(self) -> Dict[str, Any]:
        """Convert the action to its dictionary wire form."""
        data: Dict[str, Any] = {"type": self.action_type.value}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = value.to_dict() if isinstance(value, GameSettings) else value
        return data


@dataclass(frozen=True)
class AddPlayer(Action):
    name: str
    action_type = ActionType.ADD_PLAYER


@dataclass(frozen=True)
class RemovePlayer(Action):
    id: str
    action_type = ActionType.REMOVE_PLAYER


@dataclass(frozen=True)
class WithdrawPlayer(Action):
    id: str
    action_type = ActionType.WITHDRAW_PLAYER


@dataclass(frozen=True)
class ProceedToSettings(Action):
    action_type = ActionType.PROCEED_TO_SETTINGS


@dataclass(frozen=True)
class StartGame(Action):
    action_type = ActionType.START_GAME


@dataclass(frozen=True)
class Fold(Action):
    id: str
    action_type = ActionType.FOLD


@dataclass(frozen=True)
class Chaal(Action):
    id: str
    action_type = ActionType.CHAAL


@dataclass(frozen=True)
class Blind(Action):
    id: str
    action_type = ActionType.BLIND


@dataclass(frozen=True)
class Show(Action):
    id: str
    action_type = ActionType.SHOW


@dataclass(frozen=True)
class BackShow(Action):
    id: str
    target_id: str
    action_type = ActionType.BACK_SHOW


@dataclass(frozen=True)
class ResolveShow(Action):
    winner_id: str
    loser_id: str
    action_type = ActionType.RESOLVE_SHOW


@dataclass(frozen=True)
class EndGame(Action):
    winner_id: str
    action_type = ActionType.END_GAME


@dataclass(frozen=True)
class SetFirstPlayer(Action):
    player_id: str
    action_type = ActionType.SET_FIRST_PLAYER


@dataclass(frozen=True)
class DismissRound(Action):
    action_type = ActionType.DISMISS_ROUND


@dataclass(frozen=True)
class EndSession(Action):
    action_type = ActionType.END_SESSION


@dataclass(frozen=True)
class SetSettings(Action):
    settings: GameSettings
    action_type = ActionType.SET_SETTINGS


@dataclass(frozen=True)
class NextPlayer(Action):
    action_type = ActionType.NEXT_PLAYER


@dataclass(frozen=True)
class AddMoney(Action):
    player_id: str
    amount: int
    action_type = ActionType.ADD_MONEY


@dataclass(frozen=True)
class ClearToast(Action):
    action_type = ActionType.CLEAR_TOAST


ACTION_CLASSES: Dict[ActionType, Type[Action]] = {
    cls.action_type: cls
    for cls in (
        AddPlayer,
        RemovePlayer,
        WithdrawPlayer,
        ProceedToSettings,
        StartGame,
        Fold,
        Chaal,
        Blind,
        Show,
        BackShow,
        ResolveShow,
        EndGame,
        SetFirstPlayer,
        DismissRound,
        EndSession,
        SetSettings,
        NextPlayer,
        AddMoney,
        ClearToast,
    )
}

# Wire names used by collaborators for fields that differ from ours
_FIELD_ALIASES = {
    "targetId": "target_id",
    "winnerId": "winner_id",
    "loserId": "loser_id",
    "playerId": "player_id",
}


def action_from_dict(data: Mapping[str, Any]) -> Action:
    """
    Build an action from its dictionary wire form.

    Args:
        data: Dictionary with a "type" key and the action's fields

    Returns:
        The matching Action instance

    Raises:
        InvalidActionError: If the type is unknown or a field is missing
    """
    try:
        action_type = ActionType(str(data["type"]).upper())
    except (KeyError, ValueError):
        raise InvalidActionError(f"Unknown action type: {data.get('type')!r}")

    cls = ACTION_CLASSES[action_type]
    normalized = {_FIELD_ALIASES.get(k, k): v for k, v in data.items() if k != "type"}

    kwargs = {}
    for f in fields(cls):
        if f.name not in normalized:
            raise InvalidActionError(
                f"{action_type.value} requires field {f.name!r}"
            )
        value = normalized[f.name]
        if f.name == "settings":
            if not isinstance(value, GameSettings):
                if not isinstance(value, Mapping):
                    raise InvalidActionError(f"Invalid settings: {value!r}")
                try:
                    value = GameSettings.from_dict(value)
                except (TypeError, ValueError, OverflowError) as e:
                    raise InvalidActionError(f"Invalid settings: {e}")
        elif f.name == "amount":
            try:
                value = int(value)
            except (TypeError, ValueError, OverflowError):
                raise InvalidActionError(f"Invalid amount: {value!r}")
        elif not isinstance(value, str):
            # Ids and names
            raise InvalidActionError(
                f"{action_type.value} field {f.name!r} must be a string"
            )
        kwargs[f.name] = value

    return cls(**kwargs)
