"""
Sibling ordering

Keeps a dense 1..N order among records that share a parent scope (levels,
a level's difficulties, a level+difficulty's questions).

A move is "swap, then renumber everyone": siblings are sorted into a
canonical total order (order, created_at, member_id), the target swaps with
its neighbour, and EVERY sibling is rewritten to its 1-based position. This
repairs gaps and duplicate order values left by earlier partial failures,
so the result is dense for any starting state. Moving past an edge is a
no-op that still renumbers.
"""

from typing import Dict, List
import logging

from src.exceptions import RecordNotFoundError, ValidationError
from src.models.ordering import Direction, OrderedSibling

logger = logging.getLogger(__name__)


def canonical_order(siblings: List[OrderedSibling]) -> List[OrderedSibling]:
    """Deterministic total order even when stored order values have drifted"""
    return sorted(siblings, key=lambda s: (s.order, s.created_at, s.member_id))


def plan_reorder(siblings: List[OrderedSibling], member_id: str, direction: Direction | str) -> Dict[str, int]:
    """
    Compute the new order of every sibling after moving member_id

    Args:
        siblings: All members of one family
        member_id: Member to move
        direction: 'up' (towards 1) or 'down'

    Returns:
        {member_id: new_order} for ALL siblings (dense 1..N)

    Raises:
        RecordNotFoundError: member_id is not in the family
        ValidationError: direction is not up/down
    """
    try:
        direction = Direction(direction)
    except ValueError:
        raise ValidationError(
            message="Direction must be 'up' or 'down'",
            field="direction",
            value=direction,
        )

    ordered = canonical_order(siblings)
    index = next((i for i, s in enumerate(ordered) if s.member_id == member_id), None)
    if index is None:
        raise RecordNotFoundError(
            message=f"Member {member_id} not found in family",
            record_type="Member",
            record_id=member_id,
        )

    target = index - 1 if direction == Direction.UP else index + 1
    if 0 <= target < len(ordered):
        ordered[index], ordered[target] = ordered[target], ordered[index]
    else:
        logger.debug(f"Member {member_id} already at edge; renumbering only")

    return {sibling.member_id: position for position, sibling in enumerate(ordered, start=1)}


def changed_orders(siblings: List[OrderedSibling], plan: Dict[str, int]) -> Dict[str, int]:
    """Subset of a plan whose value differs from what is stored"""
    return {s.member_id: plan[s.member_id] for s in siblings if s.order != plan[s.member_id]}
