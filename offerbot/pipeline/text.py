"""Flatten a UI subtree into the text blob the matcher reads.

Pre-order, depth-first, iterative with an explicit stack. A node that goes
stale mid-read counts as having no text (and no children); it never aborts
the walk. Traversal stops at MAX_NODES / MAX_DEPTH and never revisits a node.
"""

import logging

from offerbot.core.schemas import CandidateRecord
from offerbot.device.base import NodeLike, StaleNodeError

logger = logging.getLogger(__name__)

MAX_NODES = 2000
MAX_DEPTH = 64


def collect_text(
    node: NodeLike | None,
    *,
    max_nodes: int = MAX_NODES,
    max_depth: int = MAX_DEPTH,
) -> list[str]:
    """Return every non-absent text value under `node`, in pre-order."""
    if node is None:
        return []

    texts: list[str] = []
    stack: list[tuple[NodeLike, int]] = [(node, 0)]
    seen: set[int] = set()

    while stack:
        current, depth = stack.pop()
        if id(current) in seen:
            logger.debug("Cycle in UI tree — skipping revisited node")
            continue
        if len(seen) >= max_nodes:
            logger.debug("Text walk truncated at %d nodes", max_nodes)
            break
        seen.add(id(current))

        try:
            text = current.text
        except StaleNodeError:
            logger.debug("Stale node during text walk — treating as textless")
            text = None
        if text is not None:
            texts.append(str(text))

        if depth >= max_depth:
            continue
        try:
            children = current.children
        except StaleNodeError:
            continue
        stack.extend((child, depth + 1) for child in reversed(children))

    return texts


def build_candidate(node: NodeLike | None) -> CandidateRecord:
    """Flatten one candidate element into a CandidateRecord."""
    return CandidateRecord.from_texts(collect_text(node))
