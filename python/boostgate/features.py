"""Text to feature vector mapping used by the escalation agent."""

import re

import numpy as np

from boostgate.errors import DegenerateInputError

FEATURE_NAMES = (
    "length",
    "token_count",
    "special_characters",
    "mean_token_length",
    "max_token_length",
    "min_token_length",
    "uppercase_letters",
    "digits",
    "sentence_endings",
)

_WHITESPACE_RUN = re.compile(r"\s+")
_SPECIAL = re.compile(r"[^a-zA-Z0-9\s]")
_UPPERCASE = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"[0-9]")
_SENTENCE_END = re.compile(r"[.!?]")


def extract_features(text: str) -> np.ndarray:
    """
    Map text to a fixed vector of 9 surface statistics.

    Tokens come from splitting on runs of whitespace, so leading or trailing
    whitespace produces an empty token of length 0.

    Parameters
    ----------
    text : str
        Non-empty text containing at least one non-whitespace character.

    Returns
    -------
    features : ndarray of shape (9,)
        Values in the order of :data:`FEATURE_NAMES`.

    Raises
    ------
    DegenerateInputError
        If ``text`` is empty or whitespace only.
    """
    if not isinstance(text, str):
        raise TypeError(f"Expected text, got {type(text).__name__}.")
    if not text.strip():
        raise DegenerateInputError(
            "Cannot extract features from empty or whitespace-only text."
        )

    tokens = _WHITESPACE_RUN.split(text)
    token_lengths = np.array([len(t) for t in tokens], dtype="float64")

    return np.array(
        [
            len(text),
            len(tokens),
            len(_SPECIAL.findall(text)),
            token_lengths.mean(),
            token_lengths.max(),
            token_lengths.min(),
            len(_UPPERCASE.findall(text)),
            len(_DIGIT.findall(text)),
            len(_SENTENCE_END.findall(text)),
        ],
        dtype="float64",
    )
