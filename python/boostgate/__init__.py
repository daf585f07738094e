"""Boostgate, a confidence-gated regularized tree and escalation agent.

Provides:
  - :class:`RegularizedTree`: a single gradient tree fit on logistic-loss statistics.
  - :class:`RegularizedTreeClassifier`: scikit-learn wrapper.
  - :class:`ConfidenceClassifier`: symmetric confidence on top of a trained tree.
  - :func:`extract_features` and :class:`MeanImputer`: text features and imputation.
  - :class:`EscalationAgent`: answers, or escalates to specialist roles when unsure.
"""

from __future__ import annotations

from boostgate.agent import AgentStatus, EscalationAgent
from boostgate.confidence import Classification, ConfidenceClassifier, Label
from boostgate.data import Node, TreeNode
from boostgate.errors import (
    DegenerateInputError,
    EmptyDatasetError,
    ModelNotTrainedError,
)
from boostgate.escalation import (
    SPECIALIST_POOL,
    Action,
    Answer,
    Delegate,
    EscalationState,
    Role,
)
from boostgate.features import FEATURE_NAMES, extract_features
from boostgate.history import TrainingHistory
from boostgate.imputer import MeanImputer
from boostgate.sklearn import RegularizedTreeClassifier
from boostgate.tree import RegularizedTree

__all__ = [
    "RegularizedTree",
    "RegularizedTreeClassifier",
    "TreeNode",
    "Node",
    "ConfidenceClassifier",
    "Classification",
    "Label",
    "extract_features",
    "FEATURE_NAMES",
    "MeanImputer",
    "TrainingHistory",
    "EscalationAgent",
    "AgentStatus",
    "EscalationState",
    "Role",
    "SPECIALIST_POOL",
    "Action",
    "Answer",
    "Delegate",
    "EmptyDatasetError",
    "ModelNotTrainedError",
    "DegenerateInputError",
]
