"""
Game rule configuration and validation.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import DECK_SIZE, MIN_PLAYERS, TOTAL_ROUNDS

TeamMode = Literal['individual', 'two_teams', 'three_teams']

# The last round deals TOTAL_ROUNDS cards to everyone from a single deck
MAX_PLAYERS = DECK_SIZE // TOTAL_ROUNDS


class GameConfig(BaseModel):
    """Room configuration, fixed when the room is created."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    player_count: int = Field(
        default=4,
        ge=MIN_PLAYERS,
        description="Seats in the room"
    )
    team_mode: TeamMode = Field(
        default='two_teams',
        description="individual, two_teams or three_teams"
    )
    num_teams: Optional[int] = Field(
        default=None,
        ge=1,
        description="Explicit team count, overrides the team mode default"
    )
    allow_nil: bool = Field(
        default=True,
        description="Whether nil bids are allowed from round 2"
    )
    allow_blind_nil: bool = Field(
        default=False,
        description="Whether blind nil bids are allowed from round 2"
    )

    @field_validator('player_count')
    @classmethod
    def validate_player_count(cls, v):
        """Every round must be dealable from one deck."""
        if v * TOTAL_ROUNDS > DECK_SIZE:
            raise ValueError(
                f'player_count ({v}) cannot be dealt {TOTAL_ROUNDS} cards each from '
                f'a {DECK_SIZE}-card deck (max {MAX_PLAYERS})'
            )
        return v

    @field_validator('num_teams', mode='before')
    @classmethod
    def unset_zero_num_teams(cls, v):
        """0 means no explicit team count."""
        return None if v == 0 and not isinstance(v, bool) else v

    @model_validator(mode='after')
    def validate_num_teams(self):
        if self.num_teams is not None and self.num_teams > self.player_count:
            raise ValueError(
                f'num_teams ({self.num_teams}) must be <= player_count ({self.player_count})'
            )
        return self


# Default configuration instance
default_config = GameConfig()


def create_config(**overrides) -> GameConfig:
    """Create a GameConfig with optional overrides."""
    config_dict = default_config.model_dump()
    config_dict.update({key: value for key, value in overrides.items() if value is not None})
    return GameConfig(**config_dict)
