"""
Reward Calculator

Pure, deterministic XP and coin formulas for each game. Rewards are always
computed here, on the server, from raw play results; any reward number a
client sends is ignored.

Formulas:
- Word guess (wordle): XP/coins keyed by guess count (fewer = more),
  halved (floored) with a hint. A loss earns 10 XP consolation, no coins.
- Word finder easy: xp = min(50, round(10 * words * time_bonus))
- Word finder hard: xp = min(200, round(40 * correct * time_bonus * hint_penalty))
  time_bonus = 1 + 0.5 * (time_remaining / 600), hint_penalty = 0.5 if hint used
- Correct-count games (let'em cook, competitive GK): correct * rate, bounded
  by the session's question count
- Level progression: fixed coins by difficulty name, first pass only
- Grammar detective: 2 XP per correct answer, no coins

Rounding is half-up so 62.5 becomes 63 on every platform. Inputs are clamped
to their valid range before computing and results are never negative.
"""

from decimal import Decimal, ROUND_HALF_UP, ROUND_FLOOR
from typing import NamedTuple


class Reward(NamedTuple):
    xp: int
    coins: int


# Word guess game
WORDLE_MIN_GUESSES = 1
WORDLE_MAX_GUESSES = 6
WORDLE_XP_BY_GUESS = {1: 50, 2: 45, 3: 40, 4: 35, 5: 30, 6: 25}
WORDLE_COINS_BY_GUESS = {1: 100, 2: 80, 3: 60, 4: 50, 5: 40, 6: 30}
WORDLE_LOSS_XP = 10
WORDLE_LOSS_COINS = 0
WORDLE_HINT_PENALTY = Decimal("0.5")

# Word finder
WORD_FINDER_MAX_TIME_SECONDS = 600
WORD_FINDER_TIME_BONUS_MULTIPLIER = Decimal("0.5")
WORD_FINDER_EASY_XP_PER_WORD = 10
WORD_FINDER_EASY_MAX_XP = 50
WORD_FINDER_EASY_COINS_PER_WORD = 1
WORD_FINDER_HARD_XP_PER_CORRECT = 40
WORD_FINDER_HARD_MAX_XP = 200
WORD_FINDER_HARD_HINT_PENALTY = Decimal("0.5")
WORD_FINDER_HARD_COINS_PER_CORRECT = 2
WORD_FINDER_HARD_QUESTIONS_PER_SESSION = 5

# Correct-count games (one session never has more questions than this)
CORRECT_COUNT_MAX_QUESTIONS = 50
LET_EM_COOK_XP_PER_CORRECT = 10
LET_EM_COOK_COINS_PER_CORRECT = 1
GK_COMPETITIVE_XP_PER_CORRECT = 10
GK_COMPETITIVE_COINS_PER_CORRECT = 10

# Level progression: coins for the first pass of a difficulty, no XP
LEVEL_PROGRESSION_COINS = {"easy": 50, "medium": 100, "hard": 150}
LEVEL_PROGRESSION_DEFAULT_COINS = 50

# Grammar detective
GRAMMAR_XP_PER_CORRECT = 2
GRAMMAR_MAX_QUESTIONS_PER_SYNC = 50


def _clamp(value: int | float, low: int | float, high: int | float) -> int | float:
    return max(low, min(high, value))


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _floor(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_FLOOR))


def time_bonus(time_remaining: float, max_time: int = WORD_FINDER_MAX_TIME_SECONDS) -> Decimal:
    """1.0 with no time left up to 1.5 with the full timer remaining"""
    remaining = _clamp(Decimal(str(time_remaining)), Decimal(0), Decimal(max_time))
    return 1 + WORD_FINDER_TIME_BONUS_MULTIPLIER * (remaining / Decimal(max_time))


def wordle_reward(won: bool, guess_count: int | None = None, used_hint: bool = False) -> Reward:
    """Binary win/lose with a bounded guess count"""
    if not won:
        return Reward(WORDLE_LOSS_XP, WORDLE_LOSS_COINS)

    guesses = _clamp(guess_count or WORDLE_MAX_GUESSES, WORDLE_MIN_GUESSES, WORDLE_MAX_GUESSES)
    xp = WORDLE_XP_BY_GUESS[guesses]
    coins = WORDLE_COINS_BY_GUESS[guesses]
    if used_hint:
        xp = _floor(xp * WORDLE_HINT_PENALTY)
        coins = _floor(coins * WORDLE_HINT_PENALTY)
    return Reward(xp, coins)


def word_finder_easy_reward(words_found: int, time_remaining: float = 0) -> Reward:
    """Timed search: capped per session regardless of formula output"""
    words = max(0, words_found)
    raw = WORD_FINDER_EASY_XP_PER_WORD * words * time_bonus(time_remaining)
    xp = min(WORD_FINDER_EASY_MAX_XP, round_half_up(raw))
    return Reward(xp, words * WORD_FINDER_EASY_COINS_PER_WORD)


def word_finder_hard_reward(correct_answers: int, time_remaining: float = 0, hint_used: bool = False) -> Reward:
    """Timed questions with a hint penalty"""
    correct = _clamp(correct_answers, 0, WORD_FINDER_HARD_QUESTIONS_PER_SESSION)
    penalty = WORD_FINDER_HARD_HINT_PENALTY if hint_used else Decimal(1)
    raw = WORD_FINDER_HARD_XP_PER_CORRECT * correct * time_bonus(time_remaining) * penalty
    xp = min(WORD_FINDER_HARD_MAX_XP, round_half_up(raw))
    return Reward(xp, correct * WORD_FINDER_HARD_COINS_PER_CORRECT)


def correct_count_reward(correct_count: int, xp_per_correct: int, coins_per_correct: int) -> Reward:
    """Pure correct-count games: linear, no cap"""
    correct = max(0, correct_count)
    return Reward(correct * xp_per_correct, correct * coins_per_correct)


def let_em_cook_reward(correct_count: int) -> Reward:
    return correct_count_reward(correct_count, LET_EM_COOK_XP_PER_CORRECT, LET_EM_COOK_COINS_PER_CORRECT)


def gk_competitive_reward(correct_count: int) -> Reward:
    return correct_count_reward(correct_count, GK_COMPETITIVE_XP_PER_CORRECT, GK_COMPETITIVE_COINS_PER_CORRECT)


def level_pass_reward(difficulty_name: str, first_pass: bool) -> Reward:
    """Coins only when a difficulty is passed for the first time"""
    if not first_pass:
        return Reward(0, 0)
    return Reward(0, LEVEL_PROGRESSION_COINS.get(difficulty_name, LEVEL_PROGRESSION_DEFAULT_COINS))


def grammar_reward(correct_answers: int) -> Reward:
    return Reward(max(0, correct_answers) * GRAMMAR_XP_PER_CORRECT, 0)
