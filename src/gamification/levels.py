"""
Level thresholds and artifact unlocks

Twenty levels on a hand-tuned curve. Levels 2-10 each grant a collectible
artifact the moment cumulative XP reaches the level's threshold.

This table is the only definition of the curve; clients read it through
the progress endpoint instead of keeping their own copy.
"""

from typing import Dict, List, NamedTuple, Optional


class LevelThreshold(NamedTuple):
    level: int
    xp_required: int
    artifact_id: Optional[str]


LEVELS: List[LevelThreshold] = [
    LevelThreshold(1, 0, None),
    LevelThreshold(2, 100, "ganesha-wisdom"),
    LevelThreshold(3, 250, "hanuman-strength"),
    LevelThreshold(4, 450, "krishna-flute"),
    LevelThreshold(5, 700, "arjuna-bow"),
    LevelThreshold(6, 1000, "shiva-trident"),
    LevelThreshold(7, 1400, "durga-lion"),
    LevelThreshold(8, 1900, "rama-arrow"),
    LevelThreshold(9, 2500, "vishnu-chakra"),
    LevelThreshold(10, 3200, "lakshmi-lotus"),
    LevelThreshold(11, 4000, None),
    LevelThreshold(12, 5000, None),
    LevelThreshold(13, 6200, None),
    LevelThreshold(14, 7600, None),
    LevelThreshold(15, 9200, None),
    LevelThreshold(16, 11000, None),
    LevelThreshold(17, 13000, None),
    LevelThreshold(18, 15500, None),
    LevelThreshold(19, 18500, None),
    LevelThreshold(20, 22000, None),
]

VALID_ARTIFACT_IDS: List[str] = [lvl.artifact_id for lvl in LEVELS if lvl.artifact_id]


def artifacts_for_xp(total_xp: int, table: List[LevelThreshold] = LEVELS) -> List[str]:
    """All artifacts earned at this XP, in threshold order"""
    return [lvl.artifact_id for lvl in table if lvl.artifact_id and total_xp >= lvl.xp_required]


def merge_unlocks(
    total_xp: int,
    current: List[str],
    table: List[LevelThreshold] = LEVELS
) -> List[str]:
    """
    Return artifacts newly earned at total_xp that are not in current

    Idempotent: re-running with the result merged in returns []. Never
    proposes removals, even when total_xp is below an owned artifact's threshold.
    """
    owned = set(current)
    return [artifact for artifact in artifacts_for_xp(total_xp, table) if artifact not in owned]


def calculate_level_from_xp(total_xp: int, table: List[LevelThreshold] = LEVELS) -> Dict[str, any]:
    """
    Calculate level and progress toward the next one

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int,    # 0 at max level
            'xp_for_next_level': int,   # threshold of the next level, None at max
            'percentage': float,        # 100.0 at max level
            'is_max_level': bool
        }
    """
    total_xp = max(0, total_xp)
    current = table[0]
    for lvl in table:
        if total_xp >= lvl.xp_required:
            current = lvl

    index = table.index(current)
    if index + 1 >= len(table):
        return {
            "current_level": current.level,
            "xp_in_current_level": total_xp - current.xp_required,
            "xp_to_next_level": 0,
            "xp_for_next_level": None,
            "percentage": 100.0,
            "is_max_level": True,
        }

    nxt = table[index + 1]
    span = nxt.xp_required - current.xp_required
    into = total_xp - current.xp_required
    return {
        "current_level": current.level,
        "xp_in_current_level": into,
        "xp_to_next_level": nxt.xp_required - total_xp,
        "xp_for_next_level": nxt.xp_required,
        "percentage": round(into / span * 100, 2),
        "is_max_level": False,
    }
