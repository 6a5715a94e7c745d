"""Unit tests for input validation (src/validators.py)"""
import pytest

from src.exceptions import ValidationError
from src.models.game import GameMode
from src.validators import (
    BatchSyncInput,
    GrammarSyncInput,
    LevelAttemptInput,
    WordFinderHardResult,
    WordleResult,
    parse_mode,
    validate_batch_sync,
    validate_game_result,
    validate_input,
)


# ============================================================================
# Game Mode Tests
# ============================================================================

def test_parse_mode_known():
    assert parse_mode("wordle") == GameMode.WORDLE
    assert parse_mode(GameMode.EXPLORER) == GameMode.EXPLORER


def test_parse_mode_unknown():
    with pytest.raises(ValidationError) as exc_info:
        parse_mode("chess")
    assert exc_info.value.field == "mode"


# ============================================================================
# Session Result Tests
# ============================================================================

def test_wordle_win_valid():
    result = validate_game_result(GameMode.WORDLE, {"won": True, "guess_count": 3})

    assert isinstance(result, WordleResult)
    assert result.guess_count == 3
    assert result.used_hint is False


def test_wordle_loss_without_guess_count():
    result = validate_game_result(GameMode.WORDLE, {"won": False})
    assert result.guess_count is None


@pytest.mark.parametrize("guess_count", [0, 7, -1])
def test_wordle_guess_count_out_of_range(guess_count):
    with pytest.raises(ValidationError) as exc_info:
        validate_game_result(GameMode.WORDLE, {"won": True, "guess_count": guess_count})
    assert exc_info.value.field == "guess_count"


def test_wordle_win_requires_guess_count():
    with pytest.raises(ValidationError) as exc_info:
        validate_game_result(GameMode.WORDLE, {"won": True})
    assert "guess_count is required" in exc_info.value.message


def test_negative_correct_count_rejected():
    with pytest.raises(ValidationError):
        validate_game_result(GameMode.LET_EM_COOK, {"correct_count": -2, "total_questions": 5})


def test_hard_correct_cannot_exceed_total():
    with pytest.raises(ValidationError) as exc_info:
        validate_game_result(GameMode.WORD_FINDER_HARD, {"correct_answers": 6, "total_questions": 5})
    assert "cannot exceed" in exc_info.value.message


def test_hard_defaults_to_five_questions():
    result = validate_game_result(GameMode.WORD_FINDER_HARD, {"correct_answers": 4})

    assert isinstance(result, WordFinderHardResult)
    assert result.total_questions == 5


@pytest.mark.parametrize("mode, result", [
    (GameMode.WORD_FINDER_EASY, {"words_found": 5}),
    (GameMode.WORD_FINDER_HARD, {"correct_answers": 3}),
])
@pytest.mark.parametrize("time_remaining", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_time_remaining_rejected(mode, result, time_remaining):
    with pytest.raises(ValidationError) as exc_info:
        validate_game_result(mode, {**result, "time_remaining": time_remaining})
    assert exc_info.value.field == "time_remaining"


def test_hard_total_questions_capped_at_session_size():
    with pytest.raises(ValidationError) as exc_info:
        validate_game_result(GameMode.WORD_FINDER_HARD, {"correct_answers": 1000, "total_questions": 1000})
    assert exc_info.value.field == "total_questions"


def test_hard_correct_above_session_size_rejected():
    with pytest.raises(ValidationError):
        validate_game_result(GameMode.WORD_FINDER_HARD, {"correct_answers": 6})


def test_correct_count_requires_total_questions():
    with pytest.raises(ValidationError) as exc_info:
        validate_game_result(GameMode.LET_EM_COOK, {"correct_count": 10_000_000})
    assert exc_info.value.field == "total_questions"


def test_correct_count_bounded_by_total_questions():
    with pytest.raises(ValidationError) as exc_info:
        validate_game_result(GameMode.GK_COMPETITIVE, {"correct_count": 8, "total_questions": 5})
    assert "cannot exceed" in exc_info.value.message

    with pytest.raises(ValidationError):
        validate_game_result(GameMode.GK_COMPETITIVE, {"correct_count": 500, "total_questions": 500})


def test_client_reward_fields_rejected():
    """Rewards are computed server-side; a client-supplied reward is unknown input"""
    with pytest.raises(ValidationError) as exc_info:
        validate_game_result(GameMode.WORD_FINDER_EASY, {"words_found": 3, "xp_reward": 9999})
    assert exc_info.value.field == "xp_reward"


def test_batch_mode_has_no_session_results():
    with pytest.raises(ValidationError):
        validate_game_result(GameMode.FLAG_CHAMPS, {"correct_count": 3})


# ============================================================================
# Batch Sync Tests
# ============================================================================

def test_batch_sync_valid():
    payload = validate_batch_sync(
        GameMode.FLAG_CHAMPS,
        {"attempts": [{"id": "fr", "correct": True}, {"id": "de", "correct": False}], "claimed_reward": 6},
    )

    assert isinstance(payload, BatchSyncInput)
    assert len(payload.attempts) == 2
    assert payload.is_complete is False


def test_batch_sync_duplicate_ids_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_batch_sync(
            GameMode.FLAG_CHAMPS,
            {"attempts": [{"id": "fr", "correct": True}, {"id": "fr", "correct": True}]},
        )
    assert "Duplicate" in exc_info.value.message


def test_batch_sync_negative_claim_rejected():
    with pytest.raises(ValidationError):
        validate_batch_sync(GameMode.EXPLORER, {"attempts": [], "claimed_reward": -5})


def test_session_mode_has_no_batch_sync():
    with pytest.raises(ValidationError):
        validate_batch_sync(GameMode.WORDLE, {"attempts": []})


# ============================================================================
# Level & Grammar Tests
# ============================================================================

@pytest.mark.parametrize("score", [-1, 101])
def test_level_score_out_of_range(score):
    with pytest.raises(ValidationError) as exc_info:
        validate_input(LevelAttemptInput, {"difficulty": "easy", "score": score})
    assert exc_info.value.field == "score"


def test_level_attempt_valid():
    attempt = validate_input(LevelAttemptInput, {"difficulty": "hard", "score": 100})
    assert attempt.score == 100


def test_grammar_correct_cannot_exceed_answered():
    with pytest.raises(ValidationError) as exc_info:
        validate_input(
            GrammarSyncInput,
            {"questions_answered": 2, "correct_answers": 3, "current_question_index": 4},
        )
    assert "cannot exceed" in exc_info.value.message


def test_grammar_sync_size_capped():
    with pytest.raises(ValidationError) as exc_info:
        validate_input(
            GrammarSyncInput,
            {"questions_answered": 51, "correct_answers": 51, "current_question_index": 51},
        )
    assert exc_info.value.field == "questions_answered"
