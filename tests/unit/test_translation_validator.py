import re
import unittest

from locale_sync.locale_tree import tree_from_json
from locale_sync.models import ValidationRules
from locale_sync.translation_validator import (
    TranslationValidator,
    check_key_coverage,
    check_variable_parity,
    extract_variables
)


class TestValidationHelpers(unittest.TestCase):
    def test_check_key_coverage(self):
        base_keys = ['key.one', 'key.two', 'key.three']
        target_keys = ['key.one', 'key.three', 'key.four']

        missing, extra = check_key_coverage(base_keys, target_keys)

        self.assertEqual(missing, ['key.two'])
        self.assertEqual(extra, ['key.four'])

    def test_extract_variables_unique_in_order(self):
        self.assertEqual(
            extract_variables("Hi {name}, {count} new, {count} total"),
            ['name', 'count']
        )
        self.assertEqual(extract_variables("No variables"), [])

    def test_variable_parity_allows_reordering(self):
        self.assertEqual(check_variable_parity("First {a}, then {b}.", "Zuerst {b}, dann {a}."), ([], []))

    def test_variable_parity_reports_both_sides(self):
        missing, extra = check_variable_parity("Hello {name}.", "Привет {user}.")
        self.assertEqual(missing, ['name'])
        self.assertEqual(extra, ['user'])


class TestTranslationValidator(unittest.TestCase):
    def setUp(self):
        self.validator = TranslationValidator(ValidationRules())

    def test_valid_translation(self):
        result = self.validator.validate('common.title', 'Главная')
        self.assertTrue(result.is_valid)
        self.assertEqual(result.errors, ())

    def test_required_key_cannot_be_empty(self):
        result = self.validator.validate('common.actions.retry', '')
        self.assertFalse(result.is_valid)
        self.assertEqual(result.errors[0].message, 'Required translation is missing')

    def test_max_length(self):
        rules = ValidationRules(max_length=10)
        result = TranslationValidator(rules).validate('common.title', 'x' * 11)

        self.assertFalse(result.is_valid)
        self.assertIn('10', result.errors[0].message)

    def test_html_rejected_unless_allowed(self):
        self.assertFalse(self.validator.validate('common.title', '<b>hi</b>').is_valid)

        permissive = TranslationValidator(ValidationRules(allow_html=True))
        self.assertTrue(permissive.validate('common.title', '<b>hi</b>').is_valid)

    def test_named_patterns_apply_when_key_contains_name(self):
        result = self.validator.validate('contact.email', 'not an email')
        self.assertFalse(result.is_valid)
        self.assertEqual(result.errors[0].message, 'Value does not match email pattern')

        self.assertTrue(self.validator.validate('contact.email', 'sales@example.com').is_valid)
        self.assertTrue(self.validator.validate('contact.title', 'not an email').is_valid)

    def test_custom_pattern_override(self):
        rules = ValidationRules.from_overrides({'patterns': {'price': r'^\d+$'}})

        self.assertIn('email', rules.patterns)
        self.assertIsInstance(rules.patterns['price'], re.Pattern)
        self.assertFalse(TranslationValidator(rules).validate('unit.price', 'ten').is_valid)

    def test_required_override_accepts_single_key(self):
        rules = ValidationRules.from_overrides({'required': 'common.error.unknown'})
        self.assertEqual(rules.required, frozenset({'common.error.unknown'}))

        with self.assertRaises(ValueError):
            ValidationRules.from_overrides({'required': {'common.error.unknown': True}})

    def test_variables_checked_against_source(self):
        result = self.validator.validate('project.units', '{total} юнитов', source='{count} units')

        self.assertFalse(result.is_valid)
        issue = result.errors[0]
        self.assertEqual(issue.message, 'Interpolation variables mismatch')
        self.assertEqual(issue.context, {'missing_vars': ['count'], 'extra_vars': ['total']})

    def test_mixed_quotes_is_a_warning_that_still_fails(self):
        result = self.validator.validate('common.title', 'It\'s "fine"')

        self.assertFalse(result.is_valid)
        self.assertEqual(result.errors[0].level, 'warning')

    def test_whitespace(self):
        self.assertFalse(self.validator.validate('common.title', ' hello ').is_valid)
        self.assertFalse(self.validator.validate('common.title', 'a  b').is_valid)

    def test_errors_accumulate(self):
        rules = ValidationRules(max_length=5)
        result = TranslationValidator(rules).validate('common.title', ' <i>a  b</i>')

        messages = [issue.message for issue in result.errors]
        self.assertEqual(len(messages), 4)
        self.assertTrue(messages[0].startswith('Translation exceeds maximum length'))
        self.assertEqual(messages[1], 'HTML tags are not allowed in translations')

    def test_validate_tree_uses_dotted_keys(self):
        tree = tree_from_json({"contact": {"email": "nope"}, "title": "Fine"})
        result = self.validator.validate_tree(tree)

        self.assertFalse(result.is_valid)
        self.assertEqual([issue.key for issue in result.errors], ['contact.email'])


class TestLocaleConsistency(unittest.TestCase):
    def setUp(self):
        self.validator = TranslationValidator()

    def test_variable_mismatch_is_reported(self):
        base = tree_from_json({"greet": "Hi {name}"})
        target = tree_from_json({"greet": "Salut"})

        result = self.validator.validate_locale_consistency(base, target)

        self.assertFalse(result.is_valid)
        issue = result.errors[0]
        self.assertEqual(issue.key, 'greet')
        self.assertEqual(issue.context['missing_vars'], ['name'])
        self.assertEqual(issue.context['extra_vars'], [])

    def test_missing_and_extra_keys(self):
        base = tree_from_json({"a": {"b": "B", "c": "C"}})
        target = tree_from_json({"a": {"b": "Б"}, "old": "Старый"})

        result = self.validator.validate_locale_consistency(base, target)
        by_key = {issue.key: issue for issue in result.errors}

        self.assertEqual(by_key['missing_keys'].context['keys'], ['a.c'])
        self.assertEqual(by_key['extra_keys'].context['keys'], ['old'])

    def test_consistent_trees(self):
        base = tree_from_json({"a": {"b": "{n} items"}})
        target = tree_from_json({"a": {"b": "{n} элементов"}})

        self.assertTrue(self.validator.validate_locale_consistency(base, target).is_valid)


if __name__ == '__main__':
    unittest.main()
