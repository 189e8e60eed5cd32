"""Bounding volume hierarchy construction.

The hierarchy is built once on the host from a list of figure node ids and
stored as BVH_NODE entries in the figure arena, so traversal is shared with
every other figure kind (see ``figures.hit_figure``).

Each level picks a split axis uniformly at random, sorts its figures by the
minimum of their boxes along that axis and splits the sorted list at the
midpoint. A single figure becomes a node whose two children are that same
figure; two figures become the two children directly.

Example:
    >>> import numpy as np
    >>> from pathtracer.geometry import figures
    >>> from pathtracer.geometry.bvh import build_bvh
    >>> spheres = [figures.add_sphere((x, 0.0, 0.0), 0.4) for x in range(8)]
    >>> root = build_bvh(spheres, rng=np.random.default_rng(7))
"""

import logging

import numpy as np

from pathtracer.geometry import figures

logger = logging.getLogger(__name__)


def _build(nodes: list[int], rng: np.random.Generator) -> tuple[int, int]:
    """Recursively build a subtree, returning (node id, depth)."""
    axis = int(rng.integers(0, 3))
    ordered = sorted(nodes, key=lambda n: figures.bounding_box(n).min[axis])

    if len(ordered) == 1:
        return figures.add_bvh_node(ordered[0], ordered[0]), 1
    if len(ordered) == 2:
        return figures.add_bvh_node(ordered[0], ordered[1]), 1

    mid = len(ordered) // 2
    left, left_depth = _build(ordered[:mid], rng)
    right, right_depth = _build(ordered[mid:], rng)
    return figures.add_bvh_node(left, right), 1 + max(left_depth, right_depth)


def build_bvh(
    nodes,
    rng: np.random.Generator | None = None,
    t0: float = 0.0,
    t1: float = 1.0,
) -> int:
    """Build a BVH over figure nodes and return the root node id.

    Args:
        nodes: Figure node ids to organise. Each must have a bounding box.
        rng: Random generator used to choose split axes. A fresh default
            generator is used when omitted.
        t0: Start of the shutter interval the boxes are computed for.
        t1: End of the shutter interval.

    Returns:
        The node id of the BVH root.

    Raises:
        ValueError: If ``nodes`` is empty or a node has no bounding box.
    """
    nodes = [int(n) for n in nodes]
    if not nodes:
        raise ValueError("Cannot build a BVH from an empty figure list")
    for node in nodes:
        if figures.bounding_box(node, t0, t1) is None:
            kind = figures.get_figure_info(node).kind
            raise ValueError(
                f"Figure {node} ({kind.name.lower()}) has no bounding box and "
                "cannot be placed in a BVH"
            )
    if rng is None:
        rng = np.random.default_rng()

    root, depth = _build(nodes, rng)
    logger.debug("Built BVH over %d figures, depth %d, root node %d", len(nodes), depth, root)
    return root
