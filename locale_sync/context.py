"""
Context strategies.

A context strategy turns a key of the base tree into a short string that is
sent with the text to help the model disambiguate it. Strategies are plain
callables ``(base_tree, key) -> str``.
"""
import json
import logging
from typing import Callable

import tiktoken

from locale_sync.locale_tree import Leaf, Node, get_by_path, parent_path, tree_to_json

logger = logging.getLogger(__name__)

ContextStrategy = Callable[[Node, str], str]

DEFAULT_MAX_CONTEXT_TOKENS = 1000


def count_tokens(text: str, model_name: str = 'gpt-3.5-turbo') -> int:
    """Count the number of tokens in ``text`` for ``model_name``.

    ``tiktoken`` does not know every OpenAI-compatible model and may need to
    download encoding data on first use. If the model's encoding is unknown
    the ``cl100k_base`` encoding is used; if that is unavailable too, a plain
    whitespace split is the estimate.
    """
    try:
        encoding = tiktoken.encoding_for_model(model_name)
    except Exception:
        try:
            encoding = tiktoken.get_encoding("cl100k_base")
        except Exception:
            return len(text.split())

    try:
        return len(encoding.encode(text))
    except Exception:
        return len(text.split())


def no_context(base_tree: Node, key: str) -> str:
    return ''


def parent_json_context(base_tree: Node, key: str, max_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS) -> str:
    """
    Serialise the parent object of ``key`` so the model sees the sibling keys.

    Top-level keys have no parent and get an empty context. A parent larger
    than ``max_tokens`` is reduced to its direct string siblings, and dropped
    entirely if that is still too large.
    """
    parent_key = parent_path(key)
    if not parent_key:
        return ''

    parent = get_by_path(base_tree, parent_key)
    if not isinstance(parent, Node):
        return ''

    context = json.dumps(tree_to_json(parent), ensure_ascii=False)
    if count_tokens(context) <= max_tokens:
        return context

    siblings = {name: child.value for name, child in parent.children.items() if isinstance(child, Leaf)}
    context = json.dumps(siblings, ensure_ascii=False)
    if count_tokens(context) <= max_tokens:
        logger.debug("Context for '%s' reduced to direct siblings", key)
        return context

    logger.debug("Context for '%s' exceeds %d tokens and was dropped", key, max_tokens)
    return ''


def make_parent_json_context(max_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS) -> ContextStrategy:
    def strategy(base_tree: Node, key: str) -> str:
        return parent_json_context(base_tree, key, max_tokens)
    return strategy
