"""Ordered content models (levels, difficulties, questions)"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class FamilyKind(str, Enum):
    """Kinds of sibling families that keep a dense 1..N order"""
    LEVELS = "levels"
    DIFFICULTIES = "difficulties"   # scope: level id
    QUESTIONS = "questions"         # scope: "<level id>:<difficulty name>"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


class FamilyKey(BaseModel, frozen=True):
    """Parent scope shared by a set of siblings"""
    kind: FamilyKind
    scope: str = ""

    @classmethod
    def levels(cls) -> "FamilyKey":
        return cls(kind=FamilyKind.LEVELS)

    @classmethod
    def difficulties(cls, level_id: str) -> "FamilyKey":
        return cls(kind=FamilyKind.DIFFICULTIES, scope=level_id)

    @classmethod
    def questions(cls, level_id: str, difficulty_name: str) -> "FamilyKey":
        return cls(kind=FamilyKind.QUESTIONS, scope=f"{level_id}:{difficulty_name}")


class OrderedSibling(BaseModel):
    """A content record's position within its family"""
    member_id: str
    family: FamilyKey
    order: int
    created_at: datetime
    required_score: Optional[int] = None  # difficulties: pass mark, 0..100
