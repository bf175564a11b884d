import re
from typing import List, Optional, Set, Tuple

from locale_sync.locale_tree import Node, Leaf, get_by_path, iter_leaves, leaf_paths
from locale_sync.models import ValidationIssue, ValidationResult, ValidationRules

# Placeholders like {name}, {count}, {0}.
PLACEHOLDER_REGEX = re.compile(r'\{([^{}]+)\}')
HTML_TAG_REGEX = re.compile(r'<[^>]+>')
MULTIPLE_SPACES_REGEX = re.compile(r' {2,}')


def extract_variables(text: str) -> List[str]:
    """
    Extract interpolation variable names from a string.

    Args:
        text: The string to scan, e.g. ``"Hi {name}, you have {count} new {count}"``.

    Returns:
        The unique variable names in order of first appearance, e.g. ``['name', 'count']``.
    """
    return list(dict.fromkeys(PLACEHOLDER_REGEX.findall(text)))


def check_key_coverage(base_keys: List[str], target_keys: List[str]) -> Tuple[List[str], List[str]]:
    """
    Compares the keys of a target locale against the base locale.

    Both lists keep the order of the input they were drawn from.

    Returns:
        A tuple of (missing_keys, extra_keys):
        - missing_keys: Keys present in the base but missing from the target.
        - extra_keys: Keys present in the target but absent from the base.
    """
    base_set: Set[str] = set(base_keys)
    target_set: Set[str] = set(target_keys)
    missing_keys = [key for key in base_keys if key not in target_set]
    extra_keys = [key for key in target_keys if key not in base_set]
    return missing_keys, extra_keys


def check_variable_parity(base_string: str, target_string: str) -> Tuple[List[str], List[str]]:
    """
    Compare the interpolation variables of two strings. Reordering is allowed.

    Returns:
        A tuple of (missing_vars, extra_vars) seen from the target's side.
    """
    base_vars = extract_variables(base_string)
    target_vars = extract_variables(target_string)
    missing_vars = [var for var in base_vars if var not in target_vars]
    extra_vars = [var for var in target_vars if var not in base_vars]
    return missing_vars, extra_vars


class TranslationValidator:
    """Checks translated strings against a fixed set of ``ValidationRules``. Never raises."""

    def __init__(self, rules: Optional[ValidationRules] = None):
        self.rules = rules or ValidationRules()

    def validate(self, key: str, value: str, source: Optional[str] = None) -> ValidationResult:
        """
        Validate a single translated string.

        Every check runs and the issues accumulate. When ``source`` is given the
        interpolation variables of ``value`` must match those of the source.
        """
        issues: List[ValidationIssue] = []
        rules = self.rules

        if key in rules.required and not value:
            issues.append(ValidationIssue(key, 'Required translation is missing'))

        if len(value) > rules.max_length:
            issues.append(ValidationIssue(
                key, f'Translation exceeds maximum length of {rules.max_length} characters'
            ))

        if not rules.allow_html and HTML_TAG_REGEX.search(value):
            issues.append(ValidationIssue(key, 'HTML tags are not allowed in translations'))

        for pattern_name, pattern in rules.patterns.items():
            if pattern_name in key and not pattern.search(value):
                issues.append(ValidationIssue(key, f'Value does not match {pattern_name} pattern'))

        if source is not None:
            missing_vars, extra_vars = check_variable_parity(source, value)
            if missing_vars or extra_vars:
                issues.append(ValidationIssue(
                    key,
                    'Interpolation variables mismatch',
                    context={'missing_vars': missing_vars, 'extra_vars': extra_vars},
                ))

        if "'" in value and '"' in value:
            issues.append(ValidationIssue(key, 'Mixed quote styles detected', level='warning'))

        if value != value.strip():
            issues.append(ValidationIssue(key, 'Translation contains leading or trailing whitespace'))

        if MULTIPLE_SPACES_REGEX.search(value.strip()):
            issues.append(ValidationIssue(key, 'Translation contains multiple consecutive spaces'))

        return ValidationResult.from_issues(issues)

    def validate_tree(self, tree: Node) -> ValidationResult:
        """Validate every leaf of a locale tree under its dotted key."""
        issues: List[ValidationIssue] = []
        for key, value in iter_leaves(tree):
            issues.extend(self.validate(key, value).errors)
        return ValidationResult.from_issues(issues)

    def validate_locale_consistency(self, base: Node, target: Node) -> ValidationResult:
        """
        Compare a target locale tree against the base tree.

        Reports keys missing from the target, keys the base does not know, and
        interpolation variable mismatches on every shared leaf.
        """
        issues: List[ValidationIssue] = []
        base_keys = leaf_paths(base)
        target_keys = leaf_paths(target)

        missing_keys, extra_keys = check_key_coverage(base_keys, target_keys)
        if missing_keys:
            issues.append(ValidationIssue(
                'missing_keys',
                f"Missing translations for keys: {', '.join(missing_keys)}",
                context={'keys': missing_keys},
            ))
        if extra_keys:
            issues.append(ValidationIssue(
                'extra_keys',
                f"Extra translations found for keys: {', '.join(extra_keys)}",
                context={'keys': extra_keys},
            ))

        for key in base_keys:
            base_value = get_by_path(base, key)
            target_value = get_by_path(target, key)
            if not (isinstance(base_value, Leaf) and isinstance(target_value, Leaf)):
                continue
            missing_vars, extra_vars = check_variable_parity(base_value.value, target_value.value)
            if missing_vars or extra_vars:
                issues.append(ValidationIssue(
                    key,
                    'Interpolation variables mismatch',
                    context={'missing_vars': missing_vars, 'extra_vars': extra_vars},
                ))

        return ValidationResult.from_issues(issues)
