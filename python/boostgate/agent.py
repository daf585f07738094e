"""Confidence-gated agent that answers or escalates text queries."""

import logging
from collections import deque
from enum import Enum
from typing import Deque, Optional, Tuple

import numpy as np

from boostgate.confidence import Classification, ConfidenceClassifier
from boostgate.errors import EmptyDatasetError, ModelNotTrainedError
from boostgate.escalation import (
    DATA_COLLECTION_ROLES,
    EXPERT_REVIEW_CAVEAT,
    Action,
    Answer,
    Delegate,
    EscalationState,
    Role,
)
from boostgate.features import extract_features
from boostgate.history import TrainingHistory
from boostgate.imputer import MeanImputer
from boostgate.tree import RegularizedTree

logger = logging.getLogger(__name__)


class AgentStatus(str, Enum):
    UNTRAINED = "untrained"
    TRAINED = "trained"


class EscalationAgent:
    """
    Classifies text queries with a regularized tree and escalates when unsure.

    Each :meth:`think` call extracts features from the query, fills missing
    values from the training history and then:

    - while untrained, records the query as an unlabeled sample and delegates
      to the data collection roles;
    - once trained, answers when the confidence reaches the threshold;
    - otherwise delegates to the next specialist not tried yet, and answers
      with a caveat once every specialist has been tried.

    Any error raised while deciding is turned into a delegation to the error
    recovery role. The agent holds mutable state and does no locking, so
    concurrent calls on one instance must be serialized by the caller.
    """

    def __init__(
        self,
        *,
        confidence_threshold: float = 0.7,
        max_depth: int = 6,
        min_child_weight: float = 1.0,
        gamma: float = 0.1,
        reg_lambda: float = 1.0,
        eta: float = 0.3,
        trace_limit: int = 1000,
    ):
        """
        Parameters
        ----------
        confidence_threshold : float, default=0.7
            Minimum confidence, in ``[0, 1]``, required to answer directly.
        max_depth, min_child_weight, gamma, reg_lambda, eta
            Parameters of the owned :class:`~boostgate.tree.RegularizedTree`.
        trace_limit : int, default=1000
            Number of most recent diagnostic lines kept in :attr:`trace`.
        """
        if not 0 <= confidence_threshold <= 1:
            raise ValueError(
                f"confidence_threshold must be in [0, 1], got {confidence_threshold}."
            )
        if trace_limit < 1:
            raise ValueError(f"trace_limit must be >= 1, got {trace_limit}.")
        self._confidence_threshold = confidence_threshold
        self.tree = RegularizedTree(
            max_depth=max_depth,
            min_child_weight=min_child_weight,
            gamma=gamma,
            reg_lambda=reg_lambda,
            eta=eta,
        )
        self.classifier = ConfidenceClassifier(self.tree)
        self.imputer = MeanImputer()
        self.history = TrainingHistory()
        self.escalation = EscalationState()
        self.status = AgentStatus.UNTRAINED
        self.trace: Deque[str] = deque(maxlen=trace_limit)

    @property
    def confidence_threshold(self) -> float:
        return self._confidence_threshold

    @property
    def attempted_approaches(self) -> Tuple[Role, ...]:
        return self.escalation.attempted_approaches

    def add_data_point(self, features, label: Optional[int] = None) -> int:
        """Record a training sample and return its position in the history."""
        return self.history.append(features, label)

    def label_sample(self, index: int, label: int) -> None:
        """Attach a label to a previously recorded sample."""
        self.history.set_label(index, label)

    def train(self) -> None:
        """
        Train the tree on every labeled sample in the history.

        Missing values in the recorded vectors are filled with column means
        first. Unlabeled samples are skipped.

        Raises
        ------
        EmptyDatasetError
            If no recorded sample carries a label.
        """
        X, y = self.history.labeled()
        if y.shape[0] == 0:
            raise EmptyDatasetError(
                f"None of the {len(self.history)} recorded samples is labeled."
            )
        training = self.history.as_array()
        X = np.vstack([self.imputer.impute(row, training) for row in X])
        self.tree.train(X, y)
        self.status = AgentStatus.TRAINED
        logger.info(
            f"Agent trained on {y.shape[0]} labeled of {len(self.history)} recorded samples."
        )

    def preprocess_input(self, text: str) -> np.ndarray:
        return extract_features(text)

    def handle_missing_values(self, features) -> np.ndarray:
        return self.imputer.impute(features, self.history.as_array())

    def predict(self, features) -> Classification:
        if self.status is not AgentStatus.TRAINED:
            raise ModelNotTrainedError("Model not trained yet.")
        return self.classifier.classify(features)

    def think(self, text: str) -> Action:
        """
        Decide how to handle one text query.

        Parameters
        ----------
        text : str
            The query. Empty or whitespace-only text is routed to error
            recovery.

        Returns
        -------
        action : Answer or Delegate
        """
        notes = ["Analyzing input using the regularized tree..."]

        def note(message: str) -> str:
            notes.append(message)
            return "\n".join(notes)

        try:
            features = self.preprocess_input(text)
            processed = self.handle_missing_values(features)

            if self.status is not AgentStatus.TRAINED:
                self.history.append(processed)
                logger.debug("Untrained, delegating to data collection.")
                return Delegate(
                    targets=DATA_COLLECTION_ROLES,
                    thinking=note(
                        "Insufficient training data. Initiating data collection..."
                    ),
                )

            result = self.predict(processed)
            percent = f"{result.confidence * 100:.1f}%"
            note(f"Confidence level: {percent}")

            if result.confidence >= self.confidence_threshold:
                logger.debug(f"Answering {result.label.value} at {percent}.")
                return Answer(
                    label=result.label,
                    confidence=result.confidence,
                    thinking="\n".join(notes),
                )

            specialist = self.escalation.next_available_role()
            if specialist is not None:
                self.escalation.record_attempt(specialist)
                logger.debug(
                    f"Confidence {percent} below threshold, delegating to {specialist.value}."
                )
                return Delegate(
                    targets=(specialist,),
                    context={
                        "previous_confidence": result.confidence,
                        "attempted_approaches": self.escalation.attempted_approaches,
                    },
                    thinking=note(
                        f"Confidence too low ({percent}). Delegating to {specialist.value}."
                    ),
                )

            logger.warning(
                f"All {len(self.escalation.pool)} specialists attempted, answering at {percent}."
            )
            return Answer(
                label=result.label,
                confidence=result.confidence,
                caveat=EXPERT_REVIEW_CAVEAT,
                thinking=note(
                    "All specialized approaches attempted. Providing best available answer with low confidence."
                ),
            )
        except Exception as e:
            logger.exception(
                "Failed to decide on a query, delegating to error recovery."
            )
            note(f"Error: {e}")
            return Delegate(
                targets=(Role.ERROR_RECOVERY_SPECIALIST,),
                context={"error": str(e)},
                thinking=note("Attempting alternative approach..."),
            )
        finally:
            self.trace.extend(notes)
