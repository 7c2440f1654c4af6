"""
Immutable state models for the Teen Patti ledger.

This module provides dataclasses for representing the state of a Teen Patti
session in an immutable manner. These classes are designed to be used with pure
transition functions that create new state instances rather than modifying
existing ones.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple
from enum import Enum, auto
import uuid

from teenpatti.ledger.constants import (
    STARTING_BALANCE,
    DEFAULT_BOOT_AMOUNT,
    DEFAULT_BLIND_AMOUNT,
    DEFAULT_CHAAL_MULTIPLIER,
    DEFAULT_CHAAL_FIXED_AMOUNT,
    DEFAULT_POT_LIMIT,
)


class ChaalType(Enum):
    """How the chaal (call) amount is derived."""

    MULTIPLIER = "multiplier"
    FIXED = "fixed"


class BlindStatus(Enum):
    """What a player has done so far in the current round."""

    NEVER_ACTED = auto()
    PLAYED_BLIND = auto()
    PLAYED_SEEN = auto()


class GamePhase(Enum):
    """Phase of the session, derived from the state flags."""

    NO_PLAYERS = auto()
    SETUP = auto()
    SETTINGS_REVIEW = auto()
    IN_ROUND = auto()
    SHOW_PENDING = auto()
    ROUND_RESOLVED = auto()
    NEW_ROUND_PENDING = auto()


@dataclass(frozen=True)
class GameSettings:
    """
    Immutable stake configuration for a session.

    Attributes:
        boot_amount: Stake collected from every non-withdrawn player at round start
        blind_amount: Stake for playing blind
        chaal_type: Whether chaal is a multiple of the current bet or a fixed amount
        chaal_multiplier: Factor applied to the current bet
        chaal_fixed_amount: Chaal amount when the type is fixed
        pot_limit: Pot size considered the limit (0 means unlimited)
    """

    boot_amount: int = DEFAULT_BOOT_AMOUNT
    blind_amount: int = DEFAULT_BLIND_AMOUNT
    chaal_type: ChaalType = ChaalType.MULTIPLIER
    chaal_multiplier: int = DEFAULT_CHAAL_MULTIPLIER
    chaal_fixed_amount: int = DEFAULT_CHAAL_FIXED_AMOUNT
    pot_limit: int = DEFAULT_POT_LIMIT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "boot_amount": self.boot_amount,
            "blind_amount": self.blind_amount,
            "chaal_type": self.chaal_type.value,
            "chaal_multiplier": self.chaal_multiplier,
            "chaal_fixed_amount": self.chaal_fixed_amount,
            "pot_limit": self.pot_limit,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameSettings":
        """
        Build settings from a dictionary, falling back to defaults.

        Args:
            data: Dictionary with any subset of the settings fields

        Returns:
            New GameSettings instance
        """
        defaults = cls()
        chaal_type = data.get("chaal_type", defaults.chaal_type)
        if not isinstance(chaal_type, ChaalType):
            chaal_type = ChaalType(chaal_type)
        return cls(
            boot_amount=int(data.get("boot_amount", defaults.boot_amount)),
            blind_amount=int(data.get("blind_amount", defaults.blind_amount)),
            chaal_type=chaal_type,
            chaal_multiplier=int(
                data.get("chaal_multiplier", defaults.chaal_multiplier)
            ),
            chaal_fixed_amount=int(
                data.get("chaal_fixed_amount", defaults.chaal_fixed_amount)
            ),
            pot_limit=int(data.get("pot_limit", defaults.pot_limit)),
        )


@dataclass(frozen=True)
class ActionInfo:
    """
    Description of the last applied action, used for toast notifications.

    Attributes:
        type: Kind of action (FOLD, CHAAL, WIN, ...)
        player_name: Display name of the acting player (may be empty)
        description: Free text describing what happened
    """

    type: str
    player_name: str
    description: str

    @property
    def message(self) -> str:
        """Toast text for this action."""
        if self.player_name:
            return f"{self.player_name} {self.description}"
        return self.description


@dataclass(frozen=True)
class PlayerState:
    """
    Immutable representation of a player's seat in the session.

    Attributes:
        id: Unique identifier for this player
        name: Display name of the player
        balance: Current money balance
        is_active: Whether the player is still contesting the current round
        is_current: Whether the player holds the turn
        blind_status: What the player has played this round
        has_withdrawn: Whether the player has permanently left the session
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Player"
    balance: int = STARTING_BALANCE
    is_active: bool = True
    is_current: bool = False
    blind_status: BlindStatus = BlindStatus.NEVER_ACTED
    has_withdrawn: bool = False

    @property
    def is_eligible(self) -> bool:
        """Whether the player can take part in turn rotation."""
        return self.is_active and not self.has_withdrawn

    @property
    def is_blind(self) -> bool:
        return self.blind_status == BlindStatus.PLAYED_BLIND

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "balance": self.balance,
            "is_active": self.is_active,
            "is_current": self.is_current,
            "blind_status": self.blind_status.name,
            "has_withdrawn": self.has_withdrawn,
        }


@dataclass(frozen=True)
class GameState:
    """
    Immutable representation of a Teen Patti session.

    Attributes:
        id: Unique identifier for this session
        players: Players in seating (and turn) order
        current_player_index: Index of the player holding the turn
        pot: Money staked this round
        current_bet: Last accepted call amount
        is_game_started: Whether rounds are being played
        in_settings_screen: Whether the session is reviewing settings
        settings: Stake configuration
        round: Round counter, 0 before the first start
        previous_balances: Balances snapshotted at round start
        player_contributions: Money each player has staked this round
        show_in_progress: Whether a show awaits resolution
        show_players: Ids of the requester and the opponent of a show
        last_action: Last applied action, for notifications
        last_win_amount: Pot awarded at the last resolution
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    players: Tuple[PlayerState, ...] = ()
    current_player_index: int = 0
    pot: int = 0
    current_bet: int = 0
    is_game_started: bool = False
    in_settings_screen: bool = False
    settings: GameSettings = field(default_factory=GameSettings)
    round: int = 0
    previous_balances: Mapping[str, int] = field(default_factory=dict)
    player_contributions: Mapping[str, int] = field(default_factory=dict)
    show_in_progress: bool = False
    show_players: Tuple[str, ...] = ()
    last_action: Optional[ActionInfo] = None
    last_win_amount: Optional[int] = None

    def __post_init__(self):
        # Snapshots share no mutable substructure with their successors
        object.__setattr__(self, "players", tuple(self.players))
        object.__setattr__(self, "show_players", tuple(self.show_players))
        object.__setattr__(
            self, "previous_balances", MappingProxyType(dict(self.previous_balances))
        )
        object.__setattr__(
            self,
            "player_contributions",
            MappingProxyType(dict(self.player_contributions)),
        )

    @property
    def current_player(self) -> Optional[PlayerState]:
        """Get the player holding the turn, if any."""
        return next((p for p in self.players if p.is_current), None)

    @property
    def phase(self) -> GamePhase:
        """Derive the session phase from the state flags."""
        if not self.players:
            return GamePhase.NO_PLAYERS
        if self.show_in_progress:
            return GamePhase.SHOW_PENDING
        if self.is_game_started:
            if self.current_player is not None:
                return GamePhase.IN_ROUND
            if self.last_win_amount is not None:
                return GamePhase.ROUND_RESOLVED
            return GamePhase.NEW_ROUND_PENDING
        if self.in_settings_screen:
            return GamePhase.SETTINGS_REVIEW
        return GamePhase.SETUP

    def get_player(self, player_id: str) -> Optional[PlayerState]:
        """Find a player by id."""
        return next((p for p in self.players if p.id == player_id), None)

    def index_of(self, player_id: str) -> int:
        """Index of a player by id, or -1."""
        for i, player in enumerate(self.players):
            if player.id == player_id:
                return i
        return -1

    def total_money(self) -> int:
        """Pot plus every balance; only changes when money enters or leaves."""
        return self.pot + sum(p.balance for p in self.players)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the game state to a dictionary suitable for serialization.

        Returns:
            Dictionary representation of the game state
        """
        return {
            "id": self.id,
            "phase": self.phase.name,
            "players": [player.to_dict() for player in self.players],
            "current_player_index": self.current_player_index,
            "pot": self.pot,
            "current_bet": self.current_bet,
            "is_game_started": self.is_game_started,
            "in_settings_screen": self.in_settings_screen,
            "settings": self.settings.to_dict(),
            "round": self.round,
            "previous_balances": dict(self.previous_balances),
            "player_contributions": dict(self.player_contributions),
            "show_in_progress": self.show_in_progress,
            "show_players": list(self.show_players),
            "last_action": (
                {
                    "type": self.last_action.type,
                    "player_name": self.last_action.player_name,
                    "description": self.last_action.description,
                }
                if self.last_action
                else None
            ),
            "last_win_amount": self.last_win_amount,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameState":
        """
        Rebuild a game state from the output of to_dict().

        Args:
            data: Dictionary representation of a game state

        Returns:
            New GameState instance
        """
        players: List[PlayerState] = [
            PlayerState(
                id=p["id"],
                name=p["name"],
                balance=p["balance"],
                is_active=p["is_active"],
                is_current=p["is_current"],
                blind_status=BlindStatus[p.get("blind_status", "NEVER_ACTED")],
                has_withdrawn=p.get("has_withdrawn", False),
            )
            for p in data.get("players", [])
        ]
        last_action = data.get("last_action")
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            players=tuple(players),
            current_player_index=data.get("current_player_index", 0),
            pot=data.get("pot", 0),
            current_bet=data.get("current_bet", 0),
            is_game_started=data.get("is_game_started", False),
            in_settings_screen=data.get("in_settings_screen", False),
            settings=GameSettings.from_dict(data.get("settings", {})),
            round=data.get("round", 0),
            previous_balances=data.get("previous_balances", {}),
            player_contributions=data.get("player_contributions", {}),
            show_in_progress=data.get("show_in_progress", False),
            show_players=tuple(data.get("show_players", ())),
            last_action=ActionInfo(**last_action) if last_action else None,
            last_win_amount=data.get("last_win_amount"),
        )

    def to_adapter_format(self) -> Dict[str, Any]:
        """
        Convert the game state to a format suitable for platform adapters.

        Returns:
            Dictionary in adapter-friendly format
        """
        return {
            "round": self.round,
            "phase": self.phase.name,
            "pot": self.pot,
            "current_bet": self.current_bet,
            "pot_limit": self.settings.pot_limit,
            "current_player": (
                self.current_player.name if self.current_player else None
            ),
            "show_players": [
                next((p.name for p in self.players if p.id == pid), "Unknown")
                for pid in self.show_players
            ],
            "toast": self.last_action.message if self.last_action else None,
            "last_win_amount": self.last_win_amount,
            "players": [
                {
                    "name": player.name,
                    "balance": player.balance,
                    "is_active": player.is_active,
                    "is_current": player.is_current,
                    "is_blind": player.is_blind,
                    "has_withdrawn": player.has_withdrawn,
                    "contribution": self.player_contributions.get(player.id, 0),
                }
                for player in self.players
            ],
        }
