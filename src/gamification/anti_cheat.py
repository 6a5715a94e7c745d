"""
Anti-cheat validation for batch-synced progress

Background syncs send many small answers plus a client-claimed XP total.
The claim is never trusted: the server derives the most the reported
attempts could possibly be worth and clamps the claim to that bound.

    max_possible = correct * per_correct + incorrect * per_incorrect
    validated    = max(0, min(claimed, max_possible))

A client can therefore never claim more than the composition of the
attempts it actually reported. An empty batch is always worth 0.
"""

from typing import Iterable, List, Set, Tuple
import logging

from src.models.game import BatchAttempt, BatchPolicy

logger = logging.getLogger(__name__)


def max_possible_reward(attempts: Iterable[BatchAttempt], per_correct: int, per_incorrect: int) -> int:
    """Provable upper bound derived from the attempts themselves"""
    correct = 0
    incorrect = 0
    for attempt in attempts:
        if attempt.correct:
            correct += 1
        else:
            incorrect += 1
    return correct * per_correct + incorrect * per_incorrect


def clamp(claimed_reward: int, attempts: List[BatchAttempt], per_correct: int, per_incorrect: int) -> int:
    """
    Clamp a client claim to what the batch can prove

    Args:
        claimed_reward: XP the client says it earned
        attempts: Attempts reported in this batch (already de-duplicated)
        per_correct: Reward per correct attempt
        per_incorrect: Reward per incorrect attempt

    Returns:
        Validated reward, 0 <= validated <= max_possible
    """
    if not attempts:
        return 0

    bound = max_possible_reward(attempts, per_correct, per_incorrect)
    validated = max(0, min(claimed_reward, bound))
    if claimed_reward > bound:
        logger.warning(
            f"Clamped batch claim {claimed_reward} to provable max {bound} "
            f"({len(attempts)} attempts)"
        )
    return validated


def clamp_for_policy(claimed_reward: int, attempts: List[BatchAttempt], policy: BatchPolicy) -> int:
    return clamp(claimed_reward, attempts, policy.xp_per_correct, policy.xp_per_incorrect)


def split_new_attempts(
    attempts: List[BatchAttempt],
    already_recorded: Iterable[str]
) -> Tuple[List[BatchAttempt], int]:
    """
    Drop attempts already recorded today

    A retried network call resends the same attempt ids; those contribute
    nothing. Returns (new_attempts, replayed_count).
    """
    seen: Set[str] = set(already_recorded)
    fresh = []
    for attempt in attempts:
        if attempt.id in seen:
            continue
        seen.add(attempt.id)
        fresh.append(attempt)
    return fresh, len(attempts) - len(fresh)
