"""
Nested locale trees.

A locale file is an arbitrarily nested JSON object whose leaves are strings.
In memory it is a ``Node`` whose children are either further ``Node``s or
``Leaf`` values, so every traversal states explicitly which of the two it
is looking at.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Leaf:
    value: str


@dataclass
class Node:
    children: Dict[str, 'LocaleTree'] = field(default_factory=dict)

    def __contains__(self, key: str) -> bool:
        return key in self.children

    def __len__(self) -> int:
        return len(self.children)

    def get(self, key: str) -> Optional['LocaleTree']:
        return self.children.get(key)


LocaleTree = Union[Leaf, Node]


def tree_from_json(data: Dict[str, Any], _path: str = '') -> Node:
    """
    Build a ``Node`` from a decoded JSON object.

    Raises:
        ValueError: If a value is neither a string nor an object.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Expected an object at '{_path or '<root>'}', got {type(data).__name__}")

    node = Node()
    for key, value in data.items():
        full_key = join_path(_path, key)
        if isinstance(value, str):
            node.children[key] = Leaf(value)
        elif isinstance(value, dict):
            node.children[key] = tree_from_json(value, full_key)
        else:
            raise ValueError(f"Unsupported value of type {type(value).__name__} at '{full_key}'")
    return node


def tree_to_json(node: Node) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, child in node.children.items():
        if isinstance(child, Leaf):
            result[key] = child.value
        else:
            result[key] = tree_to_json(child)
    return result


def join_path(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def parent_path(path: str) -> str:
    """Return the dotted path of the parent, or an empty string for top-level keys."""
    return path.rpartition('.')[0]


def get_by_path(node: Node, path: str) -> Optional[LocaleTree]:
    """Look up a dotted path. An empty path returns the node itself."""
    if not path:
        return node
    current: LocaleTree = node
    for part in path.split('.'):
        if not isinstance(current, Node):
            return None
        child = current.get(part)
        if child is None:
            return None
        current = child
    return current


def set_by_path(node: Node, path: str, value: str) -> None:
    """
    Write a leaf at a dotted path, creating intermediate nodes as needed.

    A leaf standing where an intermediate node is required is replaced.
    """
    *parents, last = path.split('.')
    current = node
    for part in parents:
        child = current.get(part)
        if not isinstance(child, Node):
            child = Node()
            current.children[part] = child
        current = child
    current.children[last] = Leaf(value)


def iter_leaves(node: Node, prefix: str = '') -> Iterator[Tuple[str, str]]:
    """Yield ``(dotted_path, value)`` for every leaf, depth-first in insertion order."""
    for key, child in node.children.items():
        full_key = join_path(prefix, key)
        if isinstance(child, Leaf):
            yield full_key, child.value
        else:
            yield from iter_leaves(child, full_key)


def leaf_paths(node: Node, prefix: str = '') -> List[str]:
    return [path for path, _ in iter_leaves(node, prefix)]


def find_missing_keys(base: Node, target: Node, prefix: str = '') -> List[str]:
    """
    List the leaf paths of ``base`` that have no counterpart in ``target``.

    When the target lacks a whole subtree (or holds a plain string where the
    base has a subtree) every leaf below it is reported without descending
    into the target. An empty string in the target counts as present.
    """
    missing: List[str] = []
    for key, base_child in base.children.items():
        full_key = join_path(prefix, key)
        target_child = target.get(key)

        if isinstance(base_child, Node):
            if not isinstance(target_child, Node):
                missing.extend(leaf_paths(base_child, full_key))
            else:
                missing.extend(find_missing_keys(base_child, target_child, full_key))
        elif target_child is None:
            missing.append(full_key)
    return missing


def map_leaves(node: Node, fn: Callable[[str], str]) -> Node:
    """Return a copy of ``node`` with the same shape and every leaf passed through ``fn``."""
    return Node({
        key: Leaf(fn(child.value)) if isinstance(child, Leaf) else map_leaves(child, fn)
        for key, child in node.children.items()
    })


def path_conflict(node: Node, path: str) -> bool:
    """
    Tell whether writing a leaf at ``path`` would destroy existing content:
    a string on the way to it, or a subtree at it.
    """
    *parents, last = path.split('.')
    current = node
    for part in parents:
        child = current.get(part)
        if child is None:
            return False
        if isinstance(child, Leaf):
            return True
        current = child
    return isinstance(current.get(last), Node)


def add_missing_keys(node: Node, keys: List[str], value: str = '') -> Tuple[List[str], List[str]]:
    """
    Add every key of ``keys`` that ``node`` has no leaf for, set to ``value``.

    Returns:
        A tuple of (added, conflicting). Conflicting keys would overwrite an
        existing string or subtree and are left alone.
    """
    present = set(leaf_paths(node))
    added: List[str] = []
    conflicting: List[str] = []
    for key in keys:
        if key in present:
            continue
        if path_conflict(node, key):
            conflicting.append(key)
            continue
        set_by_path(node, key, value)
        present.add(key)
        added.append(key)
    return added, conflicting
