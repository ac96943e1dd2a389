"""Tests for the category hierarchy engine."""

from src.models.enums import ProductType
from src.services.hierarchy import (
    CategoryFilter,
    StatusFilter,
    build_filtered_hierarchy,
    build_hierarchy,
    dropdown_options,
    filter_categories,
    flatten_for_dropdown,
    get_ancestor_ids,
    get_descendant_ids,
    project_dropdown,
)


def ids(categories):
    return [category.id for category in categories]


class TestBuildHierarchy:
    """Tests for build_hierarchy."""

    def test_builds_nested_chain(self, make_record):
        """A parent chain becomes one root with nested children."""
        categories = [make_record(1), make_record(2, parent_id=1), make_record(3, parent_id=2)]

        roots = build_hierarchy(categories)

        assert ids(roots) == [1]
        assert ids(roots[0].children) == [2]
        assert ids(roots[0].children[0].children) == [3]
        assert roots[0].children[0].children[0].children == []

    def test_children_keep_input_order(self, make_record):
        categories = [make_record(1), make_record(5, parent_id=1), make_record(3, parent_id=1)]

        roots = build_hierarchy(categories)

        assert ids(roots[0].children) == [5, 3]

    def test_dangling_parent_becomes_root(self, make_record):
        """A record whose parent is missing from the input is kept as a root."""
        categories = [make_record(2, parent_id=1), make_record(3, parent_id=2)]

        roots = build_hierarchy(categories)

        assert ids(roots) == [2]
        assert ids(roots[0].children) == [3]

    def test_self_parent_becomes_root(self, make_record):
        roots = build_hierarchy([make_record(1, parent_id=1)])

        assert ids(roots) == [1]
        assert roots[0].children == []

    def test_parent_cycle_falls_back_to_root(self, make_record):
        """Records on a corrupt parent cycle stay in the tree instead of vanishing."""
        categories = [make_record(1, parent_id=2), make_record(2, parent_id=1), make_record(3)]

        roots = build_hierarchy(categories)

        assert ids(roots) == [1, 3]
        assert ids(roots[0].children) == [2]
        assert roots[0].children[0].children == []

    def test_subtree_under_a_cycle_is_kept(self, make_record):
        categories = [
            make_record(4, parent_id=2),
            make_record(1, parent_id=2),
            make_record(2, parent_id=1),
        ]

        roots = build_hierarchy(categories)

        assert ids(roots) == [2]
        assert ids(roots[0].children) == [4, 1]

    def test_empty_input(self):
        assert build_hierarchy([]) == []

    def test_records_are_reused_by_reference(self, make_record):
        categories = [make_record(1), make_record(2, parent_id=1)]

        roots = build_hierarchy(categories)

        assert roots[0] is categories[0]
        assert roots[0].children[0] is categories[1]

    def test_rebuild_is_idempotent(self, make_record):
        """Building twice from the same input yields the same tree, without duplicated children."""
        categories = [
            make_record(1),
            make_record(2, parent_id=1),
            make_record(3, parent_id=1),
            make_record(4, parent_id=3),
        ]

        first = [root.model_dump() for root in build_hierarchy(categories)]
        second = [root.model_dump() for root in build_hierarchy(categories)]

        assert first == second
        assert len(second[0]["children"]) == 2


class TestDescendantIndex:
    """Tests for get_descendant_ids and get_ancestor_ids."""

    def test_collects_transitive_children(self, make_record):
        categories = [
            make_record(1),
            make_record(2, parent_id=1),
            make_record(3, parent_id=2),
            make_record(4),
        ]

        assert get_descendant_ids(1, categories) == {2, 3}
        assert get_descendant_ids(2, categories) == {3}
        assert get_descendant_ids(3, categories) == set()
        assert get_descendant_ids(4, categories) == set()

    def test_unknown_id_has_no_descendants(self, make_record):
        assert get_descendant_ids(99, [make_record(1)]) == set()

    def test_cycle_terminates(self, make_record):
        """Corrupt data with a parent cycle must not loop forever."""
        categories = [make_record(1, parent_id=2), make_record(2, parent_id=1)]

        assert get_descendant_ids(1, categories) == {2}
        assert get_descendant_ids(2, categories) == {1}

    def test_category_is_never_its_own_descendant(self, make_record):
        categories = [
            make_record(1, parent_id=3),
            make_record(2, parent_id=1),
            make_record(3, parent_id=2),
            make_record(4, parent_id=4),
        ]

        for category in categories:
            assert category.id not in get_descendant_ids(category.id, categories)

    def test_ancestor_chain(self, make_record):
        categories = [make_record(1), make_record(2, parent_id=1), make_record(3, parent_id=2)]

        assert get_ancestor_ids(3, categories) == {1, 2}
        assert get_ancestor_ids(1, categories) == set()
        assert get_ancestor_ids(42, categories) == set()


class TestFilterCategories:
    """Tests for the context-preserving filter."""

    def test_no_filter_returns_everything(self, make_record):
        categories = [make_record(1), make_record(2, parent_id=1)]

        assert ids(filter_categories(categories, CategoryFilter())) == [1, 2]

    def test_text_match_keeps_ancestors(self, make_record):
        """Matching only a leaf still shows the path from its root."""
        categories = [
            make_record(1, name="Seeds"),
            make_record(2, parent_id=1, name="Soybean"),
            make_record(3, parent_id=2, name="Early cycle"),
            make_record(4, name="Fertilizers"),
        ]

        visible = filter_categories(categories, CategoryFilter(search_text="early"))
        roots = build_hierarchy(visible)

        assert ids(visible) == [1, 2, 3]
        assert ids(roots) == [1]
        assert ids(roots[0].children[0].children) == [3]

    def test_match_keeps_whole_subtree(self, make_record):
        categories = [
            make_record(1, name="Seeds"),
            make_record(2, parent_id=1, name="Soybean"),
            make_record(3, parent_id=2, name="Early cycle"),
            make_record(4, parent_id=1, name="Corn"),
            make_record(5, name="Fertilizers"),
        ]

        visible = filter_categories(categories, CategoryFilter(search_text="seeds"))

        assert ids(visible) == [1, 2, 3, 4]

    def test_text_matches_description_case_insensitively(self, make_record):
        categories = [
            make_record(1, name="Inputs"),
            make_record(2, parent_id=1, name="Blend", description="Contains NITROGEN"),
        ]

        visible = filter_categories(categories, CategoryFilter(search_text="  nitrogen "))

        assert ids(visible) == [1, 2]

    def test_facets_combine_with_and(self, make_record):
        categories = [
            make_record(1, name="Soy", product_type=ProductType.SEEDS),
            make_record(2, name="Soy blend", product_type=ProductType.FERTILIZERS),
            make_record(3, name="Soy old", product_type=ProductType.SEEDS, active=False),
        ]

        visible = filter_categories(
            categories,
            CategoryFilter(
                search_text="soy", product_type=ProductType.SEEDS, status=StatusFilter.ACTIVE
            ),
        )

        assert ids(visible) == [1]

    def test_status_filter_keeps_context(self, make_record):
        """An inactive child under an active parent still shows its parent."""
        categories = [
            make_record(1, active=True),
            make_record(2, parent_id=1, active=False),
            make_record(3, active=True),
        ]

        visible = filter_categories(categories, CategoryFilter(status=StatusFilter.INACTIVE))

        assert ids(visible) == [1, 2]

    def test_second_match_under_included_ancestor_keeps_its_subtree(self, make_record):
        """A match already included as an ancestor still brings its other descendants."""
        categories = [
            make_record(1, name="Root match"),
            make_record(2, parent_id=1, name="Middle"),
            make_record(3, parent_id=2, name="Leaf match"),
            make_record(4, parent_id=2, name="Sibling"),
        ]

        visible = filter_categories(categories, CategoryFilter(search_text="leaf"))
        assert ids(visible) == [1, 2, 3]

        visible = filter_categories(categories, CategoryFilter(search_text="match"))
        assert ids(visible) == [1, 2, 3, 4]

    def test_every_match_is_connected_to_a_root(self, make_record):
        categories = [
            make_record(1, name="A"),
            make_record(2, parent_id=1, name="B"),
            make_record(3, parent_id=2, name="target one"),
            make_record(4, name="C"),
            make_record(5, parent_id=4, name="target two"),
            make_record(6, parent_id=5, name="D"),
        ]
        category_filter = CategoryFilter(search_text="target")

        visible = filter_categories(categories, category_filter)
        visible_ids = set(ids(visible))

        for category in categories:
            if category_filter.matches(category):
                assert get_ancestor_ids(category.id, categories) <= visible_ids
                assert get_descendant_ids(category.id, categories) <= visible_ids

    def test_filter_over_cyclic_data_terminates(self, make_record):
        categories = [make_record(1, parent_id=2, name="x"), make_record(2, parent_id=1, name="y")]

        visible = filter_categories(categories, CategoryFilter(search_text="x"))

        assert ids(visible) == [1, 2]

    def test_filtered_tree_with_excluded_parent(self, make_record):
        """When the parent is filtered out by a type facet, the match surfaces as a root."""
        categories = [
            make_record(1, product_type=ProductType.SEEDS),
            make_record(2, parent_id=1, product_type=ProductType.FERTILIZERS),
        ]

        visible = filter_categories(categories, CategoryFilter(product_type=ProductType.FERTILIZERS))
        roots = build_hierarchy([category for category in visible if category.id == 2])

        assert ids(visible) == [1, 2]
        assert ids(roots) == [2]

    def test_build_filtered_hierarchy(self, make_record):
        categories = [
            make_record(1, name="Seeds"),
            make_record(2, parent_id=1, name="Soybean"),
            make_record(3, name="Fertilizers"),
        ]

        roots = build_filtered_hierarchy(categories, CategoryFilter(search_text="soy"))

        assert ids(roots) == [1]
        assert ids(roots[0].children) == [2]


class TestDropdown:
    """Tests for dropdown flattening and projection."""

    def test_flatten_indents_by_level(self, make_record):
        categories = [
            make_record(1, name="Seeds"),
            make_record(2, parent_id=1, name="Soybean"),
            make_record(3, parent_id=2, name="Early"),
        ]

        options = flatten_for_dropdown(build_hierarchy(categories))

        assert [option.level for option in options] == [0, 1, 2]
        assert [option.full_name for option in options] == ["Seeds", "— Soybean", "—— Early"]

    def test_dropdown_options_do_not_touch_caller_records(self, make_record):
        categories = [make_record(1), make_record(2, parent_id=1)]
        roots = build_hierarchy([categories[1]])

        dropdown_options(categories)

        assert categories[0].children == []
        assert ids(roots) == [2]

    def test_options_include_records_on_a_cycle(self, make_record):
        categories = [make_record(1, parent_id=2), make_record(2, parent_id=1), make_record(3)]

        options = dropdown_options(categories)

        assert [option.id for option in options] == [1, 2, 3]
        assert [option.level for option in options] == [0, 1, 0]

    def test_projection_excludes_edited_subtree(self, make_record):
        categories = [
            make_record(1),
            make_record(2, parent_id=1),
            make_record(3, parent_id=2),
            make_record(4),
            make_record(5, parent_id=4),
        ]

        options = project_dropdown(dropdown_options(categories), categories, editing_id=1)

        assert [option.id for option in options] == [4, 5]

    def test_projection_drops_inactive(self, make_record):
        categories = [make_record(1), make_record(2, active=False)]

        options = project_dropdown(dropdown_options(categories), categories)

        assert [option.id for option in options] == [1]

    def test_projection_never_offers_self_or_descendants(self, make_record):
        categories = [
            make_record(1),
            make_record(2, parent_id=1),
            make_record(3, parent_id=2),
            make_record(4, parent_id=1),
            make_record(5),
        ]
        options = dropdown_options(categories)

        for category in categories:
            offered = {option.id for option in project_dropdown(options, categories, category.id)}
            assert category.id not in offered
            assert not offered & get_descendant_ids(category.id, categories)
