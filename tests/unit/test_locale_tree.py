import copy

import pytest

from locale_sync.locale_tree import (
    Leaf,
    Node,
    add_missing_keys,
    find_missing_keys,
    get_by_path,
    iter_leaves,
    leaf_paths,
    map_leaves,
    parent_path,
    path_conflict,
    set_by_path,
    tree_from_json,
    tree_to_json,
)

BASE = {
    "common": {
        "actions": {"retry": "Retry", "cancel": "Cancel"},
        "title": "Home",
    },
    "project": {"units": "{count} units", "empty": ""},
    "footer": "All rights reserved",
}

BASE_LEAF_PATHS = [
    "common.actions.retry",
    "common.actions.cancel",
    "common.title",
    "project.units",
    "project.empty",
    "footer",
]


def test_tree_from_json_builds_nodes_and_leaves():
    tree = tree_from_json({"a": {"b": "Hello"}, "c": "World"})

    assert isinstance(tree, Node)
    assert isinstance(tree.get("a"), Node)
    assert tree.get("a").get("b") == Leaf("Hello")
    assert tree.get("c") == Leaf("World")


def test_tree_from_json_rejects_non_string_leaves():
    with pytest.raises(ValueError, match="a.count"):
        tree_from_json({"a": {"count": 3}})


def test_tree_json_conversion_preserves_order():
    tree = tree_from_json(BASE)
    assert list(tree_to_json(tree)) == ["common", "project", "footer"]
    assert tree_to_json(tree) == BASE


def test_get_by_path():
    tree = tree_from_json(BASE)

    assert get_by_path(tree, "common.actions.retry") == Leaf("Retry")
    assert isinstance(get_by_path(tree, "common.actions"), Node)
    assert get_by_path(tree, "common.missing") is None
    # Cannot descend through a leaf.
    assert get_by_path(tree, "footer.sub") is None
    assert get_by_path(tree, "") is tree


def test_set_by_path_creates_intermediate_nodes():
    tree = Node()
    set_by_path(tree, "a.b.c", "deep")
    set_by_path(tree, "a.d", "shallow")

    assert tree_to_json(tree) == {"a": {"b": {"c": "deep"}, "d": "shallow"}}


def test_set_by_path_replaces_leaf_in_the_way():
    tree = tree_from_json({"a": "was a string"})
    set_by_path(tree, "a.b", "now nested")

    assert tree_to_json(tree) == {"a": {"b": "now nested"}}


def test_parent_path():
    assert parent_path("a.b.c") == "a.b"
    assert parent_path("a") == ""


def test_leaf_paths_depth_first():
    assert leaf_paths(tree_from_json(BASE)) == BASE_LEAF_PATHS


class TestFindMissingKeys:

    def test_empty_target_reports_every_leaf_once_in_order(self):
        missing = find_missing_keys(tree_from_json(BASE), Node())

        assert missing == BASE_LEAF_PATHS
        assert len(set(missing)) == len(missing)

    def test_deep_copy_reports_nothing(self):
        base = tree_from_json(BASE)
        target = tree_from_json(copy.deepcopy(BASE))

        assert find_missing_keys(base, target) == []

    def test_partial_target(self):
        target = tree_from_json({
            "common": {"actions": {"retry": "Повторить"}},
            "footer": "Все права защищены",
        })

        assert find_missing_keys(tree_from_json(BASE), target) == [
            "common.actions.cancel",
            "common.title",
            "project.units",
            "project.empty",
        ]

    def test_leaf_where_base_has_subtree_reports_whole_subtree(self):
        target = tree_from_json({"common": "oops", "project": {"units": "x", "empty": "y"}, "footer": "z"})

        assert find_missing_keys(tree_from_json(BASE), target) == [
            "common.actions.retry",
            "common.actions.cancel",
            "common.title",
        ]

    def test_empty_string_in_target_counts_as_present(self):
        base = tree_from_json({"greeting": "Hello"})
        target = tree_from_json({"greeting": ""})

        assert find_missing_keys(base, target) == []


def test_map_leaves_keeps_shape_and_source():
    tree = tree_from_json(BASE)

    blank = map_leaves(tree, lambda value: '')

    assert leaf_paths(blank) == BASE_LEAF_PATHS
    assert all(value == '' for _, value in iter_leaves(blank))
    assert tree_to_json(tree) == BASE


def test_path_conflict():
    tree = tree_from_json({"a": "text", "b": {"c": "x"}})

    assert path_conflict(tree, "a.d")
    assert path_conflict(tree, "b")
    assert not path_conflict(tree, "b.d")
    assert not path_conflict(tree, "e.f")


class TestAddMissingKeys:

    def test_adds_absent_keys_as_empty_strings(self):
        tree = tree_from_json({"common": {"title": "Главная"}})

        added, conflicting = add_missing_keys(tree, ["common.title", "common.actions.retry", "footer"])

        assert added == ["common.actions.retry", "footer"]
        assert conflicting == []
        assert tree_to_json(tree) == {
            "common": {"title": "Главная", "actions": {"retry": ""}},
            "footer": "",
        }

    def test_conflicting_keys_are_left_alone(self):
        tree = tree_from_json({"a": "text", "b": {"c": "x"}})

        added, conflicting = add_missing_keys(tree, ["a.d", "b"])

        assert added == []
        assert conflicting == ["a.d", "b"]
        assert tree_to_json(tree) == {"a": "text", "b": {"c": "x"}}

    def test_keys_containing_dots_count_as_present(self):
        tree = tree_from_json({"v1.0": "Version one"})

        assert add_missing_keys(tree, ["v1.0"]) == ([], [])
