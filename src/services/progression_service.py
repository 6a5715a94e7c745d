"""
ProgressionService - Progression & Rewards Business Logic

Entry point for every player-facing progression command. Each command:

1. validates its raw input (InvalidInput is raised before anything else)
2. consumes one rate-limit slot in its own committed transaction
3. runs ONE store transaction that reads the player's progress for update,
   checks the daily gate, computes rewards server-side, applies them
   through the ledger, stamps today's play and saves

If step 3 raises, nothing in it is persisted.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Union

from pydantic import BaseModel

from src.config import MAX_COINS_PER_OPERATION
from src.db.store import Store, StoreTransaction
from src.exceptions import AlreadyCompletedTodayError, RecordNotFoundError, ValidationError
from src.gamification import daily_gate
from src.gamification.anti_cheat import clamp_for_policy, split_new_attempts
from src.gamification.level_progression import level_view, record_attempt
from src.gamification.rewards import (
    Reward,
    gk_competitive_reward,
    grammar_reward,
    let_em_cook_reward,
    level_pass_reward,
    word_finder_easy_reward,
    word_finder_hard_reward,
    wordle_reward,
)
from src.gamification.streak_system import update_login_streak, update_win_streak
from src.gamification.xp_system import LedgerResult, apply_delta, get_level_info, sync_unlocks
from src.models.game import BATCH_POLICIES, BatchAttempt, GameKind, GameMode, get_policy
from src.models.ordering import FamilyKey
from src.models.progress import GameState, GrammarProgress, LevelProgress, PlayerProgress
from src.models.rate_limit import RateLimitResult
from src.observability.metrics import (
    artifacts_unlocked_total,
    claims_clamped_total,
    coins_awarded_total,
    game_results_total,
    xp_awarded_total,
)
from src.security.rate_limiter import RateLimiter
from src.utils.datetime_helpers import Clock, default_clock
from src.validators import (
    CorrectCountResult,
    GrammarSyncInput,
    LevelAttemptInput,
    WordFinderEasyResult,
    WordFinderHardResult,
    WordleResult,
    parse_mode,
    validate_batch_sync,
    validate_game_result,
    validate_input,
)

logger = logging.getLogger(__name__)

# Modes whose result can be affected by a hint marked earlier today
HINT_MODES = (GameMode.WORDLE, GameMode.WORD_FINDER_HARD)


class ProgressionService:
    """
    Service for daily games, rewards and progression.

    Responsibilities:
    - Daily eligibility per game mode
    - Server-side reward calculation for finished sessions
    - Clamped, idempotent batch syncs
    - XP/coin ledger and artifact unlocks
    - Login streaks and hint markers
    - Level attempts and grammar detective progress
    """

    def __init__(
        self,
        store: Store,
        clock: Clock = default_clock,
        rate_limiter: Optional[RateLimiter] = None,
        coin_ceiling: int = MAX_COINS_PER_OPERATION,
    ):
        """
        Initialize ProgressionService.

        Args:
            store: Transactional store
            clock: Day boundary clock
            rate_limiter: Applied to every mutating command when set
            coin_ceiling: Upper bound on coins credited by one command
        """
        self.store = store
        self.clock = clock
        self.rate_limiter = rate_limiter
        self.coin_ceiling = coin_ceiling
        logger.debug("ProgressionService initialized")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _consume(self, action: str, player_id: str) -> None:
        if self.rate_limiter is not None:
            await self.rate_limiter.check(action, player_id, player_id=player_id)

    @staticmethod
    async def _load_for_update(tx: StoreTransaction, player_id: str) -> PlayerProgress:
        """Read the player's record, creating a zeroed one on first access"""
        progress = await tx.get_progress(player_id)
        if progress is None:
            await tx.insert_progress(PlayerProgress(player_id=player_id))
            progress = await tx.get_progress(player_id)
        return progress

    @staticmethod
    def _require_player(player_id: str) -> None:
        if not player_id:
            raise ValidationError(message="Player id is required", field="player_id", value=player_id)

    def _record_reward_metrics(self, source: str, ledger: LedgerResult) -> None:
        xp_awarded_total.labels(mode=source).inc(max(0, ledger.xp_applied))
        coins_awarded_total.labels(mode=source).inc(max(0, ledger.coins_applied))
        for artifact in ledger.newly_unlocked:
            artifacts_unlocked_total.labels(artifact_id=artifact).inc()

    # ------------------------------------------------------------------
    # Rate limits
    # ------------------------------------------------------------------

    async def check_and_consume_rate_limit(
        self, action: str, identifier: str, player_id: Optional[str] = None
    ) -> RateLimitResult:
        """Consume one slot; raises RateLimitedError when over budget"""
        if self.rate_limiter is None:
            raise RuntimeError("ProgressionService was created without a rate limiter")
        return await self.rate_limiter.check(action, identifier, player_id=player_id)

    # ------------------------------------------------------------------
    # Eligibility and reads
    # ------------------------------------------------------------------

    async def check_eligibility(self, player_id: str, mode: Union[str, GameMode]) -> bool:
        """Can the player start this mode today?"""
        self._require_player(player_id)
        mode = parse_mode(mode)
        async with self.store.transaction() as tx:
            progress = await tx.get_progress(player_id)

        if progress is None:
            return True
        return daily_gate.is_available(progress.game(mode), get_policy(mode), self.clock)

    async def get_daily_progress(self, player_id: str, mode: Union[str, GameMode]) -> Dict[str, Any]:
        """
        Today's progress for one mode plus its lifetime stats

        Stale days read as empty, so a client resuming after midnight
        starts from zero without any write having happened.
        """
        self._require_player(player_id)
        mode = parse_mode(mode)
        async with self.store.transaction() as tx:
            progress = await tx.get_progress(player_id)

        state = progress.game(mode) if progress else GameState()
        policy = get_policy(mode)
        view = daily_gate.daily_view(state, policy, self.clock)
        view.update({
            "mode": mode.value,
            "total_items": policy.total_items,
            "seconds_until_reset": self.clock.seconds_until_reset(),
            "stats": self._game_stats(mode, state),
        })
        return view

    async def get_progress(self, player_id: str) -> Dict[str, Any]:
        """Totals, level and unlocks for the profile screen"""
        self._require_player(player_id)
        async with self.store.transaction() as tx:
            progress = await tx.get_progress(player_id)

        progress = progress or PlayerProgress(player_id=player_id)
        return {
            "player_id": progress.player_id,
            "xp": progress.xp,
            "coins": progress.coins,
            "unlocked_artifacts": list(progress.unlocked_artifacts),
            "login_streak": progress.login_streak,
            "level": get_level_info(progress),
            "games": {
                mode.value: {
                    "available": daily_gate.is_available(state, get_policy(mode), self.clock),
                    **self._game_stats(mode, state),
                }
                for mode, state in progress.games.items()
            },
        }

    @staticmethod
    def _game_stats(mode: GameMode, state: GameState) -> Dict[str, Any]:
        stats = {
            "games_played": state.games_played,
            "correct_answers": state.correct_answers,
            "best_score": state.best_score,
            "total_xp_earned": state.total_xp_earned,
            "total_coins_earned": state.total_coins_earned,
        }
        if mode == GameMode.WORDLE:
            stats.update({
                "games_won": state.games_won,
                "current_streak": state.current_streak,
                "max_streak": state.max_streak,
                "guess_distribution": list(state.guess_distribution),
            })
        if get_policy(mode).kind == GameKind.BATCH:
            stats["completions"] = state.completions
        return stats

    # ------------------------------------------------------------------
    # Finished sessions
    # ------------------------------------------------------------------

    async def record_game_result(
        self,
        player_id: str,
        mode: Union[str, GameMode],
        raw_result: Union[Dict[str, Any], BaseModel],
    ) -> Dict[str, Any]:
        """
        Record one finished session and credit its reward

        Args:
            player_id: Resolved player identity
            mode: Session game mode
            raw_result: Raw play result; any reward the client computed is ignored

        Returns:
            {
                'xp_awarded': int,
                'coins_awarded': int,
                'new_xp': int,
                'new_coins': int,
                'unlocked_artifacts': list,
                'newly_unlocked': list,
                'level': int,
                'leveled_up': bool,
                'attempts_today': int,
                'game_stats': dict
            }

        Raises:
            ValidationError: Unknown mode or malformed result
            RateLimitedError: Too many submissions
            AlreadyCompletedTodayError: Today's quota already used
        """
        self._require_player(player_id)
        mode = parse_mode(mode)
        try:
            result = validate_game_result(mode, raw_result, player_id)
        except ValidationError:
            game_results_total.labels(mode=mode.value, status="invalid").inc()
            raise

        await self._consume("finish_game", player_id)

        policy = get_policy(mode)
        try:
            async with self.store.transaction() as tx:
                progress = await self._load_for_update(tx, player_id)
                state = progress.game(mode)

                daily_gate.require_available(state, policy, self.clock, player_id)
                hint_marked = daily_gate.hint_used_today(state, self.clock)

                attempts = daily_gate.record_play(state, self.clock)
                reward = self._apply_session_result(mode, state, result, hint_marked)

                ledger = apply_delta(progress, reward.xp, reward.coins, coin_ceiling=self.coin_ceiling)
                state.daily_xp += ledger.xp_applied
                state.total_xp_earned += ledger.xp_applied
                state.total_coins_earned += ledger.coins_applied

                await tx.save_progress(progress)
        except AlreadyCompletedTodayError:
            game_results_total.labels(mode=mode.value, status="already_completed").inc()
            raise

        game_results_total.labels(mode=mode.value, status="accepted").inc()
        self._record_reward_metrics(mode.value, ledger)

        logger.info(
            f"Recorded {mode.value} result for player {player_id}: "
            f"+{ledger.xp_applied} XP, +{ledger.coins_applied} coins (attempt {attempts} today)"
        )

        return {
            "xp_awarded": ledger.xp_applied,
            "coins_awarded": ledger.coins_applied,
            "new_xp": ledger.new_xp,
            "new_coins": ledger.new_coins,
            "unlocked_artifacts": list(progress.unlocked_artifacts),
            "newly_unlocked": ledger.newly_unlocked,
            "level": ledger.new_level,
            "leveled_up": ledger.leveled_up,
            "attempts_today": attempts,
            "game_stats": self._game_stats(mode, state),
        }

    def _apply_session_result(
        self, mode: GameMode, state: GameState, result: BaseModel, hint_marked: bool
    ) -> Reward:
        """Update the mode's stats and return the server-computed reward"""
        state.games_played += 1

        if mode == GameMode.WORDLE:
            return self._apply_wordle(state, result, hint_marked)

        if mode == GameMode.WORD_FINDER_EASY:
            easy: WordFinderEasyResult = result
            state.correct_answers += easy.words_found
            state.correct_today += easy.words_found
            state.daily_score = max(state.daily_score, easy.words_found)
            state.best_score = max(state.best_score, easy.words_found)
            return word_finder_easy_reward(easy.words_found, easy.time_remaining)

        if mode == GameMode.WORD_FINDER_HARD:
            hard: WordFinderHardResult = result
            state.correct_answers += hard.correct_answers
            state.correct_today = hard.correct_answers
            state.daily_score = hard.correct_answers
            state.best_score = max(state.best_score, hard.correct_answers)
            return word_finder_hard_reward(hard.correct_answers, hard.time_remaining, hard.hint_used or hint_marked)

        counted: CorrectCountResult = result
        score = counted.score if counted.score is not None else counted.correct_count
        state.correct_answers += counted.correct_count
        state.correct_today = counted.correct_count
        state.daily_score = score
        state.best_score = max(state.best_score, score)
        if mode == GameMode.LET_EM_COOK:
            return let_em_cook_reward(counted.correct_count)
        return gk_competitive_reward(counted.correct_count)

    @staticmethod
    def _apply_wordle(state: GameState, result: WordleResult, hint_marked: bool) -> Reward:
        if result.won:
            state.games_won += 1
            state.guess_distribution[result.guess_count - 1] += 1
            state.daily_score = result.guess_count
            state.correct_today = 1
        update_win_streak(state, result.won)
        return wordle_reward(result.won, result.guess_count, result.used_hint or hint_marked)

    # ------------------------------------------------------------------
    # Batch sync
    # ------------------------------------------------------------------

    async def sync_batch_progress(
        self,
        player_id: str,
        mode: Union[str, GameMode],
        new_attempts: Iterable[Union[BatchAttempt, Dict[str, Any]]],
        claimed_reward: int,
        is_complete: bool = False,
    ) -> Dict[str, Any]:
        """
        Merge a batch of answered items into today's progress

        Attempts already recorded today contribute nothing, so a retried
        sync is harmless. The claimed XP is clamped to what the fresh
        attempts can prove; coins are derived from the fresh correct count.

        The lifetime completion counter moves only when THIS sync takes
        today's answered set from below the item total to the total.

        Returns:
            {
                'accepted_reward': int,
                'coins_awarded': int,
                'replayed': int,
                'total_progress': int,
                'correct_today': int,
                'daily_xp': int,
                'best_score': int,
                'completions': int,
                'is_complete': bool,
                'new_xp': int,
                'new_coins': int,
                'newly_unlocked': list
            }

        Raises:
            ValidationError: Unknown mode, session mode or malformed batch
            RateLimitedError: Too many syncs
            AlreadyCompletedTodayError: New attempts after today's set is complete
        """
        self._require_player(player_id)
        mode = parse_mode(mode)
        payload = validate_batch_sync(
            mode,
            {
                "attempts": [a.model_dump() if isinstance(a, BatchAttempt) else a for a in new_attempts],
                "claimed_reward": claimed_reward,
                "is_complete": is_complete,
            },
            player_id,
        )

        await self._consume("sync_progress", player_id)

        policy = get_policy(mode)
        batch_policy = BATCH_POLICIES[mode]

        async with self.store.transaction() as tx:
            progress = await self._load_for_update(tx, player_id)
            state = progress.game(mode)
            daily_gate.reset_if_new_day(state, self.clock)

            previous_count = len(state.guessed_today)
            fresh, replayed = split_new_attempts(payload.attempts, state.guessed_today)

            if fresh and previous_count >= policy.total_items:
                daily_gate.require_available(state, policy, self.clock, player_id)

            room = policy.total_items - previous_count
            if len(fresh) > room:
                logger.warning(
                    f"{mode.value} sync for player {player_id} has {len(fresh)} new attempts "
                    f"but only {room} items remain today; ignoring the excess"
                )
                fresh = fresh[:room]

            accepted = clamp_for_policy(payload.claimed_reward, fresh, batch_policy)
            correct_new = sum(1 for attempt in fresh if attempt.correct)
            coins = correct_new * batch_policy.coins_per_correct

            ledger = apply_delta(progress, accepted, coins, coin_ceiling=self.coin_ceiling)

            state.guessed_today = state.guessed_today + [attempt.id for attempt in fresh]
            state.correct_today += correct_new
            state.correct_answers += correct_new
            state.daily_xp += ledger.xp_applied
            state.daily_score = state.correct_today
            state.total_xp_earned += ledger.xp_applied
            state.total_coins_earned += ledger.coins_applied

            new_count = len(state.guessed_today)
            set_complete = new_count >= policy.total_items
            if previous_count < policy.total_items <= new_count:
                state.completions += 1
                state.games_played += 1
                logger.info(f"Player {player_id} completed today's {mode.value} set")

            if payload.is_complete or set_complete:
                state.best_score = max(state.best_score, state.correct_today)

            await tx.save_progress(progress)

        if payload.claimed_reward > accepted and fresh:
            claims_clamped_total.labels(mode=mode.value).inc()
        self._record_reward_metrics(mode.value, ledger)

        logger.info(
            f"Synced {len(fresh)} {mode.value} attempts for player {player_id} "
            f"({replayed} replayed): +{ledger.xp_applied} XP, +{ledger.coins_applied} coins, "
            f"{new_count}/{policy.total_items} today"
        )

        return {
            "accepted_reward": ledger.xp_applied,
            "coins_awarded": ledger.coins_applied,
            "replayed": replayed,
            "total_progress": new_count,
            "correct_today": state.correct_today,
            "daily_xp": state.daily_xp,
            "best_score": state.best_score,
            "completions": state.completions,
            "is_complete": set_complete,
            "new_xp": ledger.new_xp,
            "new_coins": ledger.new_coins,
            "newly_unlocked": ledger.newly_unlocked,
        }

    # ------------------------------------------------------------------
    # Level progression
    # ------------------------------------------------------------------

    async def submit_level_attempt(
        self,
        player_id: str,
        level_id: str,
        raw_attempt: Union[Dict[str, Any], BaseModel],
    ) -> Dict[str, Any]:
        """
        Record a scored attempt at one difficulty of a level

        The level's difficulties and their pass marks come from the
        difficulties family of the level. Coins are credited only the first
        time a difficulty is passed, so replaying a passed difficulty earns
        nothing.

        Returns:
            {
                'level_id': str,
                'difficulty': str,
                'score': int,
                'passed': bool,
                'is_new_high_score': bool,
                'level_completed': bool,
                'attempts': int,
                'high_score': int,
                'coins_awarded': int,
                'new_coins': int
            }

        Raises:
            ValidationError: Score outside 0..100 or malformed attempt
            RateLimitedError: Too many coin-crediting calls
            RecordNotFoundError: Unknown level or difficulty
        """
        self._require_player(player_id)
        attempt: LevelAttemptInput = validate_input(LevelAttemptInput, raw_attempt, player_id)

        await self._consume("add_coins", player_id)

        family = FamilyKey.difficulties(level_id)
        async with self.store.transaction() as tx:
            difficulties = await tx.list_family(family)
            if not difficulties:
                raise RecordNotFoundError(
                    message=f"Level {level_id} not found",
                    record_type="Level",
                    record_id=level_id,
                    player_id=player_id,
                    operation="submit_level_attempt",
                )
            played = next((d for d in difficulties if d.member_id == attempt.difficulty), None)
            if played is None:
                raise RecordNotFoundError(
                    message=f"Difficulty {attempt.difficulty} not found in level {level_id}",
                    record_type="Difficulty",
                    record_id=f"{level_id}:{attempt.difficulty}",
                    player_id=player_id,
                    operation="submit_level_attempt",
                )

            progress = await self._load_for_update(tx, player_id)
            level = progress.levels.setdefault(level_id, LevelProgress())
            outcome = record_attempt(
                level,
                [d.member_id for d in difficulties],
                attempt.difficulty,
                attempt.score,
                played.required_score,
                self.clock.now(),
            )

            reward = level_pass_reward(attempt.difficulty, outcome.first_pass)
            ledger = apply_delta(progress, reward.xp, reward.coins, coin_ceiling=self.coin_ceiling)
            await tx.save_progress(progress)

        self._record_reward_metrics("levels", ledger)
        logger.info(
            f"Level attempt by player {player_id}: {level_id}/{attempt.difficulty} scored {attempt.score} "
            f"({'passed' if outcome.passed else 'not passed'}), +{ledger.coins_applied} coins"
            f"{', level completed' if outcome.level_completed else ''}"
        )

        return {
            "level_id": level_id,
            "difficulty": attempt.difficulty,
            "score": attempt.score,
            "passed": outcome.passed,
            "is_new_high_score": outcome.is_new_high_score,
            "level_completed": outcome.level_completed,
            "attempts": outcome.attempts,
            "high_score": outcome.high_score,
            "coins_awarded": ledger.coins_applied,
            "new_coins": ledger.new_coins,
        }

    async def get_level_progress(self, player_id: str) -> Dict[str, Any]:
        """Every level the player has attempted"""
        self._require_player(player_id)
        async with self.store.transaction() as tx:
            progress = await tx.get_progress(player_id)

        levels = progress.levels if progress else {}
        return {
            "player_id": player_id,
            "levels": [level_view(level_id, level) for level_id, level in levels.items()],
        }

    # ------------------------------------------------------------------
    # Grammar detective
    # ------------------------------------------------------------------

    async def sync_grammar_progress(
        self, player_id: str, raw_sync: Union[Dict[str, Any], BaseModel]
    ) -> Dict[str, Any]:
        """
        Add answers since the last sync and store the resume position

        XP is derived from the correct count; the client's own tally is
        never read.

        Raises:
            ValidationError: Counts out of range
            RateLimitedError: Too many XP-crediting calls
        """
        self._require_player(player_id)
        payload: GrammarSyncInput = validate_input(GrammarSyncInput, raw_sync, player_id)

        await self._consume("add_xp", player_id)

        reward = grammar_reward(payload.correct_answers)
        async with self.store.transaction() as tx:
            progress = await self._load_for_update(tx, player_id)
            ledger = apply_delta(progress, reward.xp, reward.coins, coin_ceiling=self.coin_ceiling)

            grammar = progress.grammar
            grammar.questions_answered += payload.questions_answered
            grammar.correct_answers += payload.correct_answers
            grammar.total_xp_earned += ledger.xp_applied
            grammar.current_question_index = payload.current_question_index
            await tx.save_progress(progress)

        self._record_reward_metrics("grammar_detective", ledger)

        return {
            **grammar.model_dump(),
            "xp_awarded": ledger.xp_applied,
            "new_xp": ledger.new_xp,
            "newly_unlocked": ledger.newly_unlocked,
        }

    async def get_grammar_progress(self, player_id: str) -> Dict[str, Any]:
        """Resume position and lifetime grammar stats"""
        self._require_player(player_id)
        async with self.store.transaction() as tx:
            progress = await tx.get_progress(player_id)

        grammar = progress.grammar if progress else GrammarProgress()
        return grammar.model_dump()

    # ------------------------------------------------------------------
    # Small mutations
    # ------------------------------------------------------------------

    async def mark_hint_used(self, player_id: str, mode: Union[str, GameMode]) -> Dict[str, Any]:
        """Persist today's hint marker so a restarted app cannot dodge the penalty"""
        self._require_player(player_id)
        mode = parse_mode(mode)
        if mode not in HINT_MODES:
            raise ValidationError(
                message=f"{mode.value} has no hints",
                field="mode",
                value=mode.value,
                player_id=player_id,
            )

        await self._consume("mutation", player_id)

        async with self.store.transaction() as tx:
            progress = await self._load_for_update(tx, player_id)
            daily_gate.mark_hint_used(progress.game(mode), self.clock)
            await tx.save_progress(progress)

        logger.info(f"Player {player_id} used a {mode.value} hint on {self.clock.today()}")
        return {"mode": mode.value, "hint_used_today": True}

    async def record_app_open(self, player_id: str) -> Dict[str, Any]:
        """Advance the daily login streak"""
        self._require_player(player_id)
        await self._consume("mutation", player_id)

        async with self.store.transaction() as tx:
            progress = await self._load_for_update(tx, player_id)
            streak = update_login_streak(progress, self.clock)
            if streak["changed"]:
                await tx.save_progress(progress)

        return streak

    async def sync_progression(self, player_id: str) -> Dict[str, Any]:
        """
        Grant any artifacts current XP has already earned

        Repairs records written before an artifact was added to the table.
        """
        self._require_player(player_id)
        await self._consume("mutation", player_id)

        async with self.store.transaction() as tx:
            progress = await self._load_for_update(tx, player_id)
            newly = sync_unlocks(progress)
            if newly:
                await tx.save_progress(progress)

        for artifact in newly:
            artifacts_unlocked_total.labels(artifact_id=artifact).inc()

        return {
            "xp": progress.xp,
            "unlocked_artifacts": list(progress.unlocked_artifacts),
            "newly_unlocked": newly,
            "level": get_level_info(progress),
        }
