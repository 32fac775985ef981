"""Category forest assembly.

Turns flat category rows into trees. Rows whose parent is not among the
given rows (e.g. hidden from the caller) become roots.
"""

from collections.abc import Iterable, Sequence
from typing import Any

from catalog_api.application.views import CategoryFacet, CategoryNode


def build_category_tree(categories: Sequence[Any]) -> list[CategoryNode]:
    """Build the visible category forest.

    Input order is preserved among siblings, so rows sorted by name yield
    trees sorted by name at every level.

    Args:
        categories: Category rows.

    Returns:
        Root nodes with nested children.
    """
    # First pass: create all nodes
    nodes = {category.id: CategoryNode.from_model(category) for category in categories}

    # Second pass: establish parent-child relationships
    roots: list[CategoryNode] = []
    for category in categories:
        node = nodes[category.id]
        parent = nodes.get(category.parent_id) if category.parent_id is not None else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


def build_category_facets(rows: Iterable[Any]) -> list[CategoryFacet]:
    """Build the category facet tree.

    Only categories holding products are kept, together with the ancestors
    needed to reach them.

    Args:
        rows: Rows with id, name, parent_id and product_count.

    Returns:
        Root facets with nested children.
    """
    rows = list(rows)
    parents = {row.id: row.parent_id for row in rows}
    facets = {
        row.id: CategoryFacet(id=row.id, name=row.name, product_count=row.product_count)
        for row in rows
    }

    keep: set[int] = set()
    for row in rows:
        if row.product_count <= 0:
            continue
        current: int | None = row.id
        while current is not None and current in facets and current not in keep:
            keep.add(current)
            current = parents.get(current)

    roots: list[CategoryFacet] = []
    for row in rows:
        if row.id not in keep:
            continue
        parent_id = row.parent_id
        if parent_id is not None and parent_id in keep and parent_id != row.id:
            facets[parent_id].children.append(facets[row.id])
        else:
            roots.append(facets[row.id])
    return roots
