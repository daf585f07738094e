"""Specialist roles, escalation state and the actions an agent can emit.

An agent answers when it is confident enough. Otherwise it delegates to the
next specialist it has not tried yet, in a fixed priority order, and answers
with a caveat once every specialist has been tried. The orchestrator that
consumes these actions owns the mapping from a :class:`Role` to whatever
actually handles it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from boostgate.confidence import Label

EXPERT_REVIEW_CAVEAT = "Consider seeking additional information or expert review."


class Role(str, Enum):
    DATA_COLLECTOR = "Data Collector"
    KNOWLEDGE_EXPERT = "Knowledge Expert"
    DETAIL_ANALYZER = "Detail Analyzer"
    PATTERN_RECOGNIZER = "Pattern Recognizer"
    CONTEXT_EXPLORER = "Context Explorer"
    ALTERNATIVE_PERSPECTIVE = "Alternative Perspective"
    SOLUTION_SYNTHESIZER = "Solution Synthesizer"
    ERROR_RECOVERY_SPECIALIST = "Error Recovery Specialist"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS: Dict[Role, str] = {
    Role.DATA_COLLECTOR: "Gather training examples",
    Role.KNOWLEDGE_EXPERT: "Provide domain expertise",
    Role.DETAIL_ANALYZER: "Deep dive into specific aspects",
    Role.PATTERN_RECOGNIZER: "Identify patterns and relationships",
    Role.CONTEXT_EXPLORER: "Explore broader context",
    Role.ALTERNATIVE_PERSPECTIVE: "Consider different viewpoints",
    Role.SOLUTION_SYNTHESIZER: "Combine multiple approaches",
    Role.ERROR_RECOVERY_SPECIALIST: "Handle error cases and try alternative methods",
}

# Priority order in which low-confidence queries are escalated.
SPECIALIST_POOL: Tuple[Role, ...] = (
    Role.DETAIL_ANALYZER,
    Role.PATTERN_RECOGNIZER,
    Role.CONTEXT_EXPLORER,
    Role.ALTERNATIVE_PERSPECTIVE,
    Role.SOLUTION_SYNTHESIZER,
)

DATA_COLLECTION_ROLES: Tuple[Role, ...] = (Role.DATA_COLLECTOR, Role.KNOWLEDGE_EXPERT)


class EscalationState:
    """The specialists already tried by one agent.

    The set of attempted roles only grows and never holds a role twice.
    :meth:`record_attempt` is the only way to change it.
    """

    def __init__(self, pool: Iterable[Role] = SPECIALIST_POOL):
        self._pool: Tuple[Role, ...] = tuple(pool)
        self._attempted: List[Role] = []

    @property
    def pool(self) -> Tuple[Role, ...]:
        return self._pool

    @property
    def attempted_approaches(self) -> Tuple[Role, ...]:
        """Roles tried so far, in the order they were tried."""
        return tuple(self._attempted)

    @property
    def exhausted(self) -> bool:
        return self.next_available_role() is None

    def next_available_role(self) -> Optional[Role]:
        """The highest priority role not tried yet, or None when all were."""
        for role in self._pool:
            if role not in self._attempted:
                return role
        return None

    def record_attempt(self, role: Role) -> None:
        if role not in self._pool:
            raise ValueError(f"{role!r} is not in the specialist pool.")
        if role in self._attempted:
            raise ValueError(f"{role.value} has already been attempted.")
        self._attempted.append(role)


@dataclass(frozen=True)
class Answer:
    """Answer directly with the classified label."""

    label: Label
    confidence: float
    caveat: Optional[str] = None
    thinking: str = ""

    @property
    def message(self) -> str:
        percent = f"{self.confidence * 100:.1f}%"
        if self.caveat is None:
            return f"Prediction: {self.label.value} with {percent} confidence"
        return (
            f"Low confidence prediction: {self.label.value} "
            f"({percent} confidence). {self.caveat}"
        )


@dataclass(frozen=True)
class Delegate:
    """Hand the query off to one or more roles."""

    targets: Tuple[Role, ...]
    context: Dict[str, Any] = field(default_factory=dict)
    thinking: str = ""


Action = Union[Answer, Delegate]
