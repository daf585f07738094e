"""Data structures for the tree and for tree inspection."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class TreeNode:
    """A single node of a :class:`~boostgate.tree.RegularizedTree`.

    A node is either a leaf (``prediction`` set, no split, no children) or an
    internal split (``split_feature``/``split_value`` set, both children
    present, no ``prediction``). Children are owned exclusively by their
    parent and nodes are never modified after construction.

    Attributes
    ----------
    split_feature : int or None
        Column index tested at this node.
    split_value : float or None
        Threshold; samples with ``x[split_feature] <= split_value`` go left.
    prediction : float or None
        Leaf weight (additive margin contribution).
    gain : float
        Gain of the chosen split, 0.0 for leaves.
    left_child : TreeNode or None
        Subtree for values less than or equal to the threshold.
    right_child : TreeNode or None
        Subtree for values greater than the threshold.
    gradient_sum : float
        Sum of the gradients of the training samples routed here.
    hessian_sum : float
        Sum of the hessians of the training samples routed here (cover).
    count : int
        Number of training samples routed here.
    """

    split_feature: Optional[int] = None
    split_value: Optional[float] = None
    prediction: Optional[float] = None
    gain: float = 0.0
    left_child: Optional["TreeNode"] = None
    right_child: Optional["TreeNode"] = None
    gradient_sum: float = 0.0
    hessian_sum: float = 0.0
    count: int = 0

    def __post_init__(self):
        if self.prediction is not None:
            if (
                self.split_feature is not None
                or self.split_value is not None
                or self.left_child is not None
                or self.right_child is not None
            ):
                raise ValueError("A leaf node cannot carry a split or children.")
        elif (
            self.split_feature is None
            or self.split_value is None
            or self.left_child is None
            or self.right_child is None
        ):
            raise ValueError(
                "An internal node needs a split feature, a split value and both children."
            )

    @property
    def is_leaf(self) -> bool:
        return self.prediction is not None

    @classmethod
    def leaf(
        cls, prediction: float, gradient_sum: float, hessian_sum: float, count: int
    ) -> "TreeNode":
        return cls(
            prediction=prediction,
            gradient_sum=gradient_sum,
            hessian_sum=hessian_sum,
            count=count,
        )


@dataclass
class Node:
    """Flat, index-based view of a single tree node, used for inspection.

    Attributes
    ----------
    num : int
        Node index in pre-order.
    weight_value : float
        Leaf weight, 0.0 for split nodes.
    hessian_sum : float
        Sum of hessians (sample coverage).
    gradient_sum : float
        Sum of gradients.
    depth : int
        Depth of the node in the tree.
    split_value : float
        Threshold used for splitting.
    split_feature : str or int
        Feature used for the split.
    split_gain : float
        Gain achieved by this split.
    left_child : int
        Index of the left child.
    right_child : int
        Index of the right child.
    is_leaf : bool
        Whether this node is a leaf.
    parent_node : int
        Index of the parent node (the root is its own parent).
    count : int
        Number of samples reaching this node.
    """

    num: int
    weight_value: float
    hessian_sum: float
    gradient_sum: float = 0.0
    depth: int = 0
    split_value: float = 0.0
    split_feature: Union[str, int] = ""
    split_gain: float = 0.0
    left_child: int = 0
    right_child: int = 0
    is_leaf: bool = False
    parent_node: int = 0
    count: int = 0
