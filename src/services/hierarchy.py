"""Category hierarchy engine.

Everything here is a pure function of the flat category collection. Trees,
descendant sets, filtered views and dropdown options are recomputed from the
full collection on every call and never updated incrementally.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from src.models.enums import ProductType
from src.schemas.category import CategoryDropdownOption, CategoryRecord

logger = logging.getLogger(__name__)

LEVEL_PREFIX = "—"


class StatusFilter(str, Enum):
    """Active/inactive facet of the category screen."""

    ALL = "all"
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class CategoryFilter:
    """Search text, product type and status facets, combined with AND."""

    search_text: str = ""
    product_type: ProductType | None = None
    status: StatusFilter = StatusFilter.ALL

    @property
    def normalized_text(self) -> str:
        return self.search_text.strip().lower()

    @property
    def is_active(self) -> bool:
        return (
            bool(self.normalized_text)
            or self.product_type is not None
            or self.status != StatusFilter.ALL
        )

    def matches(self, category: CategoryRecord) -> bool:
        """Check whether a category directly satisfies every facet."""
        if self.status == StatusFilter.ACTIVE and not category.active:
            return False
        if self.status == StatusFilter.INACTIVE and category.active:
            return False

        if self.product_type is not None and category.product_type != self.product_type:
            return False

        text = self.normalized_text
        if text:
            in_name = text in category.name.lower()
            in_description = bool(category.description) and text in category.description.lower()
            if not (in_name or in_description):
                return False

        return True


def index_by_id(categories: Iterable[CategoryRecord]) -> dict[int, CategoryRecord]:
    return {category.id: category for category in categories}


def index_children(categories: Iterable[CategoryRecord]) -> dict[int, list[int]]:
    """Map each parent id to the ids of its direct children, in input order."""
    children_by_parent: dict[int, list[int]] = {}
    for category in categories:
        if category.parent_id is not None:
            children_by_parent.setdefault(category.parent_id, []).append(category.id)
    return children_by_parent


def build_hierarchy(categories: Sequence[CategoryRecord]) -> list[CategoryRecord]:
    """Turn a flat list into root nodes with materialized ``children``.

    Records are reused by reference and only their ``children`` list is
    replaced. A record whose parent is not part of ``categories`` (usually
    because a filter left the parent out) becomes a root instead of being
    dropped. So does a record that names itself as parent, and one record of
    every parent cycle, which is detached from its parent to break the cycle.
    """
    by_id: dict[int, CategoryRecord] = {}
    for category in categories:
        category.children = []
        by_id[category.id] = category

    roots: list[CategoryRecord] = []
    for category in categories:
        parent = by_id.get(category.parent_id) if category.parent_id is not None else None
        if parent is None or parent is category:
            roots.append(category)
        else:
            parent.children.append(category)

    reached = _mark_reachable(roots, set())
    if len(reached) == len(by_id):
        return roots

    # Whatever is left hangs off a parent cycle
    for category in categories:
        if category.id in reached:
            continue
        cycle_start = _find_cycle_member(category, by_id)
        parent = by_id[cycle_start.parent_id]
        parent.children = [child for child in parent.children if child is not cycle_start]
        roots.append(cycle_start)
        _mark_reachable([cycle_start], reached)

    root_keys = {id(root) for root in roots}
    return [category for category in categories if id(category) in root_keys]


def _mark_reachable(nodes: Iterable[CategoryRecord], reached: set[int]) -> set[int]:
    pending = list(nodes)
    while pending:
        node = pending.pop()
        if node.id in reached:
            continue
        reached.add(node.id)
        pending.extend(node.children)
    return reached


def _find_cycle_member(
    category: CategoryRecord, by_id: dict[int, CategoryRecord]
) -> CategoryRecord:
    """Climb parent links from an unreachable record until one repeats."""
    seen: set[int] = set()
    current = category
    while current.id not in seen:
        seen.add(current.id)
        current = by_id[current.parent_id]
    return current


def add_descendant_ids(
    category_id: int,
    children_by_parent: dict[int, list[int]],
    found: set[int],
) -> set[int]:
    """Add every transitive child of ``category_id`` to ``found``.

    ``found`` doubles as the visited set, so a cyclic parent chain in corrupt
    data terminates instead of looping forever.
    """
    pending = [category_id]
    while pending:
        current = pending.pop()
        for child_id in children_by_parent.get(current, ()):
            if child_id == category_id or child_id in found:
                continue
            found.add(child_id)
            pending.append(child_id)
    return found


def add_ancestor_ids(
    category: CategoryRecord,
    by_id: dict[int, CategoryRecord],
    included: set[int],
) -> set[int]:
    """Walk parent links upward, adding each ancestor to ``included``.

    Stops at a root, at a parent missing from ``by_id``, or at an id that is
    already included (its own ancestors were added when it was).
    """
    parent_id = category.parent_id
    while parent_id is not None and parent_id not in included:
        parent = by_id.get(parent_id)
        if parent is None:
            break
        included.add(parent_id)
        parent_id = parent.parent_id
    return included


def get_descendant_ids(category_id: int, categories: Iterable[CategoryRecord]) -> set[int]:
    """Ids of all transitive children of ``category_id``; never includes ``category_id``."""
    return add_descendant_ids(category_id, index_children(categories), set())


def get_ancestor_ids(category_id: int, categories: Iterable[CategoryRecord]) -> set[int]:
    by_id = index_by_id(categories)
    category = by_id.get(category_id)
    if category is None:
        return set()
    ancestors = add_ancestor_ids(category, by_id, {category_id})
    ancestors.discard(category_id)
    return ancestors


def filter_categories(
    categories: Sequence[CategoryRecord], category_filter: CategoryFilter
) -> list[CategoryRecord]:
    """Select the categories visible under ``category_filter``.

    A direct match keeps its whole ancestor chain, so it stays reachable from a
    root, and its whole subtree. Always pass the unfiltered collection: results
    are not meant to be filtered again.
    """
    if not category_filter.is_active:
        return list(categories)

    by_id = index_by_id(categories)
    children_by_parent = index_children(categories)
    included: set[int] = set()
    matches = 0

    for category in categories:
        if not category_filter.matches(category):
            continue
        matches += 1
        included.add(category.id)
        add_ancestor_ids(category, by_id, included)
        included |= add_descendant_ids(category.id, children_by_parent, set())

    logger.debug(
        f"Filter {category_filter} matched {matches} categories, showing {len(included)}"
    )
    return [category for category in categories if category.id in included]


def build_filtered_hierarchy(
    categories: Sequence[CategoryRecord], category_filter: CategoryFilter
) -> list[CategoryRecord]:
    return build_hierarchy(filter_categories(categories, category_filter))


def flatten_for_dropdown(
    roots: Iterable[CategoryRecord], level: int = 0, seen: set[int] | None = None
) -> list[CategoryDropdownOption]:
    """Flatten a tree depth-first into options indented by their level."""
    if seen is None:
        seen = set()

    options: list[CategoryDropdownOption] = []
    for category in roots:
        if category.id in seen:
            continue
        seen.add(category.id)

        full_name = f"{LEVEL_PREFIX * level} {category.name}" if level > 0 else category.name
        options.append(
            CategoryDropdownOption(
                id=category.id,
                name=category.name,
                level=level,
                full_name=full_name,
                active=category.active,
            )
        )
        options.extend(flatten_for_dropdown(category.children, level + 1, seen))

    return options


def dropdown_options(categories: Sequence[CategoryRecord]) -> list[CategoryDropdownOption]:
    """Options for every category, built on copies so the caller's trees are untouched."""
    copies = [category.model_copy() for category in categories]
    return flatten_for_dropdown(build_hierarchy(copies))


def project_dropdown(
    options: Iterable[CategoryDropdownOption],
    categories: Iterable[CategoryRecord],
    editing_id: int | None = None,
) -> list[CategoryDropdownOption]:
    """Parents the user may pick: active ones, minus the edited category and its subtree."""
    excluded: set[int] = set()
    if editing_id is not None:
        excluded = get_descendant_ids(editing_id, categories)
        excluded.add(editing_id)

    return [option for option in options if option.active and option.id not in excluded]
