"""Serialization helpers for persisting trees and model metadata.

Provides an abstract serializer, a JSON serializer for metadata values and a
codec between :class:`~boostgate.data.TreeNode` structures and plain
JSON-compatible dictionaries.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, TypeVar, Union

from boostgate.data import TreeNode

T = TypeVar("T")


class BaseSerializer(ABC, Generic[T]):
    """Abstract base for serializers."""

    @abstractmethod
    def serialize(self, obj: T) -> str:
        """serialize method - should take an object and return a string"""

    @abstractmethod
    def deserialize(self, obj_repr: str) -> T:
        """deserialize method - should take a string and return original object"""


Scaler = Union[int, float, str, None]

ObjectItem = Union[
    List[Scaler],
    Dict[str, Scaler],
    Scaler,
]


class ObjectSerializer(BaseSerializer[ObjectItem]):
    """Serializer for JSON-compatible objects (lists, dicts, scalars)."""

    def serialize(self, obj: ObjectItem) -> str:
        return json.dumps(obj)

    def deserialize(self, obj_repr: str) -> ObjectItem:
        return json.loads(obj_repr)


def node_to_dict(node: TreeNode) -> Dict[str, Any]:
    """Convert a node and its subtree into nested dictionaries."""
    d: Dict[str, Any] = {
        "gradient_sum": node.gradient_sum,
        "hessian_sum": node.hessian_sum,
        "count": node.count,
    }
    if node.is_leaf:
        d["prediction"] = node.prediction
        return d
    d.update(
        split_feature=node.split_feature,
        split_value=node.split_value,
        gain=node.gain,
        left=node_to_dict(node.left_child),  # type: ignore
        right=node_to_dict(node.right_child),  # type: ignore
    )
    return d


def node_from_dict(d: Dict[str, Any]) -> TreeNode:
    """Rebuild a node and its subtree from :func:`node_to_dict` output."""
    if "prediction" in d:
        return TreeNode.leaf(
            prediction=float(d["prediction"]),
            gradient_sum=float(d["gradient_sum"]),
            hessian_sum=float(d["hessian_sum"]),
            count=int(d["count"]),
        )
    return TreeNode(
        split_feature=int(d["split_feature"]),
        split_value=float(d["split_value"]),
        gain=float(d["gain"]),
        left_child=node_from_dict(d["left"]),
        right_child=node_from_dict(d["right"]),
        gradient_sum=float(d["gradient_sum"]),
        hessian_sum=float(d["hessian_sum"]),
        count=int(d["count"]),
    )

