"""
Category tree editing for CATEGORY fields.

A category configuration is a forest of CategoryNode. Nodes are immutable:
insertion rebuilds only the nodes on the path from the root to the parent and
shares every untouched subtree with the input forest.
"""

import uuid
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from tableforge.core.entities import CategoryNode


@dataclass(frozen=True)
class TreeInsertion:
    forest: List[CategoryNode]
    node: CategoryNode
    inserted: bool


def new_node(label: str) -> CategoryNode:
    return CategoryNode(id=str(uuid.uuid4()), label=label, children=[])


def _attach(
    nodes: Sequence[CategoryNode], parent_id: str, node: CategoryNode
) -> Tuple[List[CategoryNode], bool]:
    updated: List[CategoryNode] = []
    inserted = False
    for current in nodes:
        if inserted:
            updated.append(current)
            continue
        if current.id == parent_id:
            updated.append(current.model_copy(update={"children": [*current.children, node]}))
            inserted = True
            continue
        if current.children:
            children, inserted = _attach(current.children, parent_id, node)
            if inserted:
                updated.append(current.model_copy(update={"children": children}))
                continue
        updated.append(current)
    return updated, inserted


def insert(
    forest: Optional[Sequence[CategoryNode]], parent_id: Optional[str], label: str
) -> TreeInsertion:
    """
    Insert a new node labelled ``label``.

    With no ``parent_id`` the node is appended at root level. Otherwise the
    first node (depth-first) whose id equals ``parent_id`` receives it as its
    last child. When no such node exists the input forest is returned as is
    with ``inserted=False``.
    """
    nodes = list(forest or [])
    taken = {existing.id for existing in walk(nodes)}
    node = new_node(label)
    while node.id in taken:
        node = new_node(label)

    if parent_id is None:
        return TreeInsertion(forest=[*nodes, node], node=node, inserted=True)

    updated, inserted = _attach(nodes, parent_id, node)
    if not inserted:
        return TreeInsertion(forest=nodes, node=node, inserted=False)
    return TreeInsertion(forest=updated, node=node, inserted=True)


def walk(forest: Sequence[CategoryNode]) -> Iterator[CategoryNode]:
    for node in forest:
        yield node
        yield from walk(node.children)


def find(forest: Sequence[CategoryNode], node_id: str) -> Optional[CategoryNode]:
    return next((node for node in walk(forest) if node.id == node_id), None)
