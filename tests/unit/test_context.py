import json
import unittest
from unittest.mock import patch, MagicMock

from locale_sync.context import count_tokens, make_parent_json_context, no_context, parent_json_context
from locale_sync.locale_tree import tree_from_json

BASE = tree_from_json({
    "search": {
        "filters": {"price": "Price", "bedrooms": "Bedrooms"},
        "title": "Search",
    },
    "footer": "All rights reserved",
})


class TestParentJsonContext(unittest.TestCase):

    def test_top_level_key_has_no_context(self):
        self.assertEqual(parent_json_context(BASE, "footer"), "")

    def test_serialises_parent_object(self):
        context = parent_json_context(BASE, "search.filters.price")
        self.assertEqual(json.loads(context), {"price": "Price", "bedrooms": "Bedrooms"})

    def test_large_parent_is_reduced_to_leaf_siblings(self):
        # The whole "search" object is 7 words, its leaf siblings alone are 2.
        context = parent_json_context(BASE, "search.title", max_tokens=3)
        self.assertEqual(json.loads(context), {"title": "Search"})

    def test_context_dropped_when_still_too_large(self):
        self.assertEqual(parent_json_context(BASE, "search.title", max_tokens=1), "")

    def test_strategy_factory_and_no_context(self):
        strategy = make_parent_json_context(max_tokens=1)
        self.assertEqual(strategy(BASE, "search.title"), "")
        self.assertEqual(no_context(BASE, "search.title"), "")


class TestCountTokens(unittest.TestCase):

    def test_uses_model_encoding(self):
        fake_enc = MagicMock()
        fake_enc.encode.return_value = [1, 2, 3, 4]
        with patch('locale_sync.context.tiktoken.encoding_for_model', return_value=fake_enc):
            self.assertEqual(count_tokens('anything', 'gpt-4o'), 4)

    def test_falls_back_to_whitespace_split(self):
        with patch('locale_sync.context.tiktoken.encoding_for_model', side_effect=Exception()), \
                patch('locale_sync.context.tiktoken.get_encoding', side_effect=Exception()):
            self.assertEqual(count_tokens('one two three'), 3)


if __name__ == '__main__':
    unittest.main()
