"""
OrderingService - Admin reordering of ordered content

Moves one member of a sibling family up or down and rewrites the whole
family to a dense 1..N sequence, in one store transaction. Content records
themselves are owned by content management; only their order is written here.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from src.db.store import Store
from src.exceptions import RecordNotFoundError, ValidationError
from src.gamification.ordering import canonical_order, changed_orders, plan_reorder
from src.models.ordering import Direction, FamilyKey, FamilyKind, OrderedSibling
from src.utils.datetime_helpers import Clock, default_clock

logger = logging.getLogger(__name__)


class OrderingService:
    """Service for sibling ordering (admin only; callers check the role)"""

    def __init__(self, store: Store, clock: Clock = default_clock):
        self.store = store
        self.clock = clock
        logger.debug("OrderingService initialized")

    async def reorder_family(
        self,
        family: FamilyKey,
        member_id: str,
        direction: Union[str, Direction],
    ) -> Dict[str, int]:
        """
        Move a member one step and renumber the family

        Args:
            family: Parent scope of the siblings
            member_id: Member to move
            direction: 'up' or 'down'

        Returns:
            {member_id: order} for every sibling after the move

        Raises:
            RecordNotFoundError: Family is empty or member is not in it
            ValidationError: Direction is not up/down
        """
        async with self.store.transaction() as tx:
            siblings = await tx.list_family(family)
            if not siblings:
                raise RecordNotFoundError(
                    message=f"Family {family.kind.value}:{family.scope} has no members",
                    record_type="Family",
                    record_id=f"{family.kind.value}:{family.scope}",
                    operation="reorder_family",
                )

            plan = plan_reorder(siblings, member_id, direction)
            await tx.update_orders(family, plan)

        changed = changed_orders(siblings, plan)
        logger.info(
            f"Reordered {family.kind.value}:{family.scope} - moved {member_id} {Direction(direction).value}, "
            f"{len(changed)} of {len(plan)} order values changed"
        )
        return plan

    async def list_family(self, family: FamilyKey) -> List[OrderedSibling]:
        """Siblings in canonical order"""
        async with self.store.transaction() as tx:
            siblings = await tx.list_family(family)
        return canonical_order(siblings)

    async def add_member(
        self, family: FamilyKey, member_id: str, required_score: Optional[int] = None
    ) -> OrderedSibling:
        """
        Register a content record at the end of its family

        Registering an existing member keeps its position; a new pass mark
        replaces the old one.

        Raises:
            ValidationError: A difficulty registered without a pass mark
        """
        if family.kind == FamilyKind.DIFFICULTIES and required_score is None:
            raise ValidationError(
                message="Difficulties need a required_score (0..100)",
                field="required_score",
                value=required_score,
                operation="add_member",
            )

        async with self.store.transaction() as tx:
            siblings = await tx.list_family(family)
            existing = next((s for s in siblings if s.member_id == member_id), None)
            if existing is not None:
                if required_score is None or existing.required_score == required_score:
                    return existing
                sibling = existing.model_copy(update={"required_score": required_score})
            else:
                sibling = OrderedSibling(
                    member_id=member_id,
                    family=family,
                    order=max((s.order for s in siblings), default=0) + 1,
                    created_at=self.clock.now(),
                    required_score=required_score,
                )
            await tx.add_family_member(sibling)

        logger.info(f"Registered {member_id} in {family.kind.value}:{family.scope} at position {sibling.order}")
        return sibling

    @staticmethod
    def describe(siblings: List[OrderedSibling]) -> List[Dict[str, Any]]:
        return [
            {"member_id": s.member_id, "order": s.order, "required_score": s.required_score,
             "created_at": s.created_at.isoformat()}
            for s in siblings
        ]
