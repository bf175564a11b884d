"""Shared data types for the locale synchronisation service."""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Pattern, Tuple

DEFAULT_REQUIRED_KEYS = frozenset({'common.error.unknown', 'common.actions.retry'})

DEFAULT_PATTERNS: Dict[str, str] = {
    'email': r'^[^@]+@[^@]+\.[^@]+$',
    'phone': r'^\+?[\d\s\-()]+$',
    'url': r'^https?://.+',
}

DEFAULT_API_BASE_URL = 'https://api.deepseek.com'


def as_string_list(value: Any, name: str) -> List[str]:
    """Read a config value that may be a single string or a list of strings."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set, frozenset)) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ValueError(f"'{name}' must be a string or a list of strings, got {value!r}")


def compile_patterns(patterns: Mapping[str, Any]) -> Dict[str, Pattern]:
    """Compile a name -> regex mapping, leaving already compiled patterns untouched."""
    return {
        name: pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)
        for name, pattern in patterns.items()
    }


@dataclass(frozen=True)
class ValidationRules:
    """Rules applied to every translated string. Immutable for the duration of a run."""
    max_length: int = 1000
    allow_html: bool = False
    required: FrozenSet[str] = DEFAULT_REQUIRED_KEYS
    patterns: Mapping[str, Pattern] = field(default_factory=lambda: compile_patterns(DEFAULT_PATTERNS))

    @classmethod
    def from_overrides(cls, overrides: Optional[Mapping[str, Any]] = None) -> 'ValidationRules':
        """Merge user overrides onto the default rules."""
        overrides = dict(overrides or {})
        defaults = cls()
        patterns = dict(defaults.patterns)
        patterns.update(compile_patterns(overrides.get('patterns', {})))
        return cls(
            max_length=int(overrides.get('max_length', defaults.max_length)),
            allow_html=bool(overrides.get('allow_html', defaults.allow_html)),
            required=frozenset(as_string_list(overrides.get('required', defaults.required), 'required')),
            patterns=patterns,
        )


@dataclass(frozen=True)
class CacheOptions:
    max_size: int = 1000
    ttl_ms: int = 3_600_000

    def __post_init__(self):
        if self.max_size <= 0:
            raise ValueError(f"Cache max_size must be positive, got {self.max_size}")
        if self.ttl_ms <= 0:
            raise ValueError(f"Cache ttl_ms must be positive, got {self.ttl_ms}")

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_ms / 1000


@dataclass(frozen=True)
class ApiConfig:
    base_url: str = DEFAULT_API_BASE_URL
    retry_attempts: int = 3
    rate_limit: float = 10
    timeout_ms: int = 5000

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


@dataclass(frozen=True)
class ValidationIssue:
    key: str
    message: str
    context: Optional[Dict[str, Any]] = None
    level: str = 'error'


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation call. Built once and never mutated."""
    is_valid: bool
    errors: Tuple[ValidationIssue, ...] = ()

    @classmethod
    def from_issues(cls, issues) -> 'ValidationResult':
        issues = tuple(issues)
        return cls(is_valid=not issues, errors=issues)

    def messages(self) -> Tuple[str, ...]:
        return tuple(f"{issue.key}: {issue.message}" for issue in self.errors)


class TranslationError(Exception):
    """
    Raised when a string could not be translated.

    Args:
        message: Human readable description.
        key: The key or source text that failed.
        locale: The target locale.
        context: Either ``{"original_error": exc}`` for API failures or
            ``{"validation": ValidationResult}`` for rejected translations.
    """

    def __init__(self, message: str, key: str, locale: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.key = key
        self.locale = locale
        self.context = context or {}

    def __str__(self) -> str:
        base = f"{super().__str__()} (key={self.key!r}, locale={self.locale!r})"
        original = self.context.get('original_error')
        if original is not None:
            base += f": {original.__class__.__name__} - {original}"
        validation = self.context.get('validation')
        if validation is not None:
            base += ": " + "; ".join(validation.messages())
        return base
