"""
Centralized Pydantic Input Validation Layer

Validates raw play results before any reward is calculated, so invalid
input is rejected instead of reaching the formulas or the store.

Validation Categories:
1. Game mode - Known modes only
2. Session results - One model per session game, range checks
3. Batch syncs - Attempt ids unique, claims non-negative
4. Level attempts and grammar syncs - Bounded scores and counts

Everything here raises src.exceptions.ValidationError (InvalidInput);
Pydantic's own errors never leave this module.
"""

import logging
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, model_validator

from src.exceptions import ValidationError
from src.gamification.level_progression import MAX_LEVEL_SCORE, MIN_LEVEL_SCORE
from src.gamification.rewards import (
    CORRECT_COUNT_MAX_QUESTIONS,
    GRAMMAR_MAX_QUESTIONS_PER_SYNC,
    WORD_FINDER_HARD_QUESTIONS_PER_SESSION,
    WORDLE_MAX_GUESSES,
    WORDLE_MIN_GUESSES,
)
from src.models.game import BatchAttempt, GameKind, GameMode, get_policy

logger = logging.getLogger(__name__)


# ============================================================================
# GAME MODE VALIDATION
# ============================================================================

def parse_mode(value: Union[str, GameMode]) -> GameMode:
    """Resolve a mode name; unknown modes are invalid input"""
    try:
        return GameMode(value)
    except ValueError:
        raise ValidationError(
            message=f"Unknown game mode: {value}",
            field="mode",
            value=value,
        )


# ============================================================================
# SESSION RESULT VALIDATION
# ============================================================================

class _StrictInput(BaseModel):
    model_config = ConfigDict(extra="forbid")


class WordleResult(_StrictInput):
    """
    Word guess game result

    Constraints:
    - guess_count required on a win, 1..6
    - A loss may omit guess_count
    """
    won: bool
    guess_count: Optional[int] = Field(default=None, ge=WORDLE_MIN_GUESSES, le=WORDLE_MAX_GUESSES)
    used_hint: bool = False

    @model_validator(mode="after")
    def guess_count_on_win(self) -> "WordleResult":
        if self.won and self.guess_count is None:
            raise ValueError("guess_count is required for a win")
        return self


class WordFinderEasyResult(_StrictInput):
    """
    Timed word search result

    time_remaining outside 0..600 is clamped by the formula, not rejected;
    NaN and infinities are rejected.
    """
    words_found: int = Field(ge=0)
    time_remaining: float = Field(default=0, allow_inf_nan=False)


class WordFinderHardResult(_StrictInput):
    """
    Timed question round (5 questions per session)

    Constraints:
    - total_questions 1..5
    - correct_answers 0..total_questions
    """
    correct_answers: int = Field(ge=0)
    total_questions: int = Field(
        default=WORD_FINDER_HARD_QUESTIONS_PER_SESSION, ge=1, le=WORD_FINDER_HARD_QUESTIONS_PER_SESSION
    )
    time_remaining: float = Field(default=0, allow_inf_nan=False)
    hint_used: bool = False

    @model_validator(mode="after")
    def correct_within_total(self) -> "WordFinderHardResult":
        if self.correct_answers > self.total_questions:
            raise ValueError(
                f"correct_answers ({self.correct_answers}) cannot exceed "
                f"total_questions ({self.total_questions})"
            )
        return self


class CorrectCountResult(_StrictInput):
    """
    Pure correct-count games (spice match, competitive GK)

    Constraints:
    - total_questions required, 1..CORRECT_COUNT_MAX_QUESTIONS
    - correct_count 0..total_questions
    """
    correct_count: int = Field(ge=0)
    total_questions: int = Field(ge=1, le=CORRECT_COUNT_MAX_QUESTIONS)
    score: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def correct_within_total(self) -> "CorrectCountResult":
        if self.correct_count > self.total_questions:
            raise ValueError(
                f"correct_count ({self.correct_count}) cannot exceed "
                f"total_questions ({self.total_questions})"
            )
        return self


SESSION_RESULT_MODELS: dict[GameMode, type[BaseModel]] = {
    GameMode.WORDLE: WordleResult,
    GameMode.WORD_FINDER_EASY: WordFinderEasyResult,
    GameMode.WORD_FINDER_HARD: WordFinderHardResult,
    GameMode.LET_EM_COOK: CorrectCountResult,
    GameMode.GK_COMPETITIVE: CorrectCountResult,
}


# ============================================================================
# BATCH SYNC VALIDATION
# ============================================================================

class BatchSyncInput(_StrictInput):
    """
    One background sync of a batch game

    Constraints:
    - claimed_reward >= 0
    - attempt ids unique within the batch
    """
    attempts: list[BatchAttempt] = Field(default_factory=list)
    claimed_reward: int = Field(default=0, ge=0)
    is_complete: bool = False

    @model_validator(mode="after")
    def unique_attempt_ids(self) -> "BatchSyncInput":
        ids = [attempt.id for attempt in self.attempts]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate attempt ids in one batch")
        return self


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def format_validation_error(e: PydanticValidationError) -> tuple[str, str]:
    """
    Condense a Pydantic error into (field, message)

    Uses the first error; nested locations are joined with dots.
    """
    errors = e.errors()
    if not errors:
        return "input", "Validation failed"

    first_error = errors[0]
    loc = first_error.get("loc") or ("input",)
    field = ".".join(str(part) for part in loc)
    msg = first_error.get("msg", "Invalid value")
    # model_validator errors carry "Value error, " prefix
    msg = msg.removeprefix("Value error, ")
    return field, msg


def validate_input(model_class: type[BaseModel], raw: Any, player_id: Optional[str] = None) -> BaseModel:
    """
    Validate raw data against a model

    Raises:
        ValidationError: With the offending field and a readable message
    """
    if isinstance(raw, model_class):
        return raw

    try:
        return model_class.model_validate(raw)
    except PydanticValidationError as e:
        field, msg = format_validation_error(e)
        raise ValidationError(
            message=msg,
            field=field,
            value=raw,
            player_id=player_id,
            operation=f"validate_{model_class.__name__}",
        )


def validate_game_result(mode: GameMode, raw: Any, player_id: Optional[str] = None) -> BaseModel:
    """
    Validate a finished-session result for a session mode

    Raises:
        ValidationError: mode is a batch mode, or the result is malformed
    """
    if get_policy(mode).kind != GameKind.SESSION:
        raise ValidationError(
            message=f"{mode.value} results arrive through batch sync",
            field="mode",
            value=mode.value,
            player_id=player_id,
        )
    return validate_input(SESSION_RESULT_MODELS[mode], raw, player_id)


def validate_batch_sync(mode: GameMode, raw: Any, player_id: Optional[str] = None) -> BatchSyncInput:
    """
    Validate a batch sync payload for a batch mode

    Raises:
        ValidationError: mode is a session mode, or the payload is malformed
    """
    if get_policy(mode).kind != GameKind.BATCH:
        raise ValidationError(
            message=f"{mode.value} does not support batch sync",
            field="mode",
            value=mode.value,
            player_id=player_id,
        )
    return validate_input(BatchSyncInput, raw, player_id)


# ============================================================================
# LEVEL AND GRAMMAR VALIDATION
# ============================================================================

class LevelAttemptInput(_StrictInput):
    """One scored attempt at a level difficulty (score is a percentage)"""
    difficulty: str = Field(min_length=1)
    score: int = Field(ge=MIN_LEVEL_SCORE, le=MAX_LEVEL_SCORE)


class GrammarSyncInput(_StrictInput):
    """
    Grammar detective answers since the last sync

    Constraints:
    - questions_answered 0..GRAMMAR_MAX_QUESTIONS_PER_SYNC
    - correct_answers 0..questions_answered
    """
    questions_answered: int = Field(ge=0, le=GRAMMAR_MAX_QUESTIONS_PER_SYNC)
    correct_answers: int = Field(ge=0)
    current_question_index: int = Field(ge=0)

    @model_validator(mode="after")
    def correct_within_answered(self) -> "GrammarSyncInput":
        if self.correct_answers > self.questions_answered:
            raise ValueError(
                f"correct_answers ({self.correct_answers}) cannot exceed "
                f"questions_answered ({self.questions_answered})"
            )
        return self
