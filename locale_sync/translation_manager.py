"""
Fill in missing keys of every target locale.

The manager asks the differ for the keys each target locale lacks, translates
them one at a time through the cache, rate limiter and retry loop, writes the
results into the in-memory target tree and saves each locale once its whole
key list has been processed.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from openai import OpenAIError
from tqdm import tqdm

from locale_sync.app_config import AppConfig
from locale_sync.context import ContextStrategy, make_parent_json_context
from locale_sync.locale_store import LocaleFileStore
from locale_sync.locale_tree import Leaf, find_missing_keys, get_by_path, set_by_path
from locale_sync.models import (
    ApiConfig,
    CacheOptions,
    TranslationError,
    ValidationRules
)
from locale_sync.rate_limiter import RateLimiter
from locale_sync.translation_cache import TranslationCache
from locale_sync.translation_validator import TranslationValidator
from locale_sync.translator import OpenAITranslator

logger = logging.getLogger(__name__)

BACKOFF_BASE_DELAY = 1.0


@dataclass
class TranslationOptions:
    locales_dir: str = 'src/locales'
    base_locale: str = 'en'
    target_locales: List[str] = field(default_factory=lambda: ['ru'])
    validation_rules: ValidationRules = field(default_factory=ValidationRules)
    cache_options: CacheOptions = field(default_factory=CacheOptions)
    api_config: ApiConfig = field(default_factory=ApiConfig)
    dry_run: bool = False


@dataclass
class TranslationReport:
    """Outcome of a ``translate_missing`` run."""
    translated: Dict[str, int] = field(default_factory=dict)
    saved: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    pending: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def _retry_delay(attempt: int, base_delay: float, api_exc: Optional[Exception] = None) -> float:
    """
    Exponential backoff of ``base_delay * 2 ** attempt`` seconds.

    A ``Retry-After`` header on an OpenAI error takes precedence.
    """
    if api_exc is not None and isinstance(api_exc, OpenAIError):
        response = getattr(api_exc, "response", None)
        headers = getattr(response, "headers", None) or {}
        retry_after_header = headers.get("Retry-After") if hasattr(headers, "get") else None
        if retry_after_header:
            try:
                if retry_after_header.endswith("ms"):
                    return float(retry_after_header[:-2]) / 1000
                return float(retry_after_header)
            except ValueError:
                logger.warning(f"Failed to parse Retry-After header '{retry_after_header}'. Falling back to exponential backoff.")
    return base_delay * (2 ** attempt)


async def _handle_retry(attempt: int, max_retries: int, key: str, exc: Optional[Exception] = None,
                        base_delay: float = BACKOFF_BASE_DELAY) -> None:
    delay = _retry_delay(attempt, base_delay, exc)
    logger.info(
        f"Retrying translation of '{key}' in {delay:.2f} seconds (Attempt {attempt}/{max_retries})")
    await asyncio.sleep(delay)


class TranslationManager:
    """
    Orchestrates translation of missing keys.

    Every collaborator is passed in explicitly; two managers only share a
    cache or rate limiter if they are handed the same instance.

    Args:
        options: Locales, rules and limits for this run.
        translator: Object with an async ``translate(text, source_locale, target_locale, context)``.
            May be None in dry-run mode.
        store: Locale file store. Built from ``options`` when omitted.
        cache: Translation cache. Built from ``options.cache_options`` when omitted.
        rate_limiter: Built from ``options.api_config.rate_limit`` when omitted.
        context_strategy: Callable deriving the disambiguation context for a key.
        validator: Built from ``options.validation_rules`` when omitted.
        load: Load the locale files immediately. A broken base locale fails here.
    """

    def __init__(
            self,
            options: Optional[TranslationOptions] = None,
            translator: Optional[OpenAITranslator] = None,
            store: Optional[LocaleFileStore] = None,
            cache: Optional[TranslationCache] = None,
            rate_limiter: Optional[RateLimiter] = None,
            context_strategy: Optional[ContextStrategy] = None,
            validator: Optional[TranslationValidator] = None,
            load: bool = True
    ):
        self.options = options or TranslationOptions()
        self.translator = translator
        self.store = store or LocaleFileStore(
            self.options.locales_dir, self.options.base_locale, self.options.target_locales
        )
        self.cache = cache or TranslationCache(self.options.cache_options)
        self.rate_limiter = rate_limiter or RateLimiter(self.options.api_config.rate_limit)
        self.context_strategy = context_strategy or make_parent_json_context()
        self.validator = validator or TranslationValidator(self.options.validation_rules)

        if load:
            self.store.load()

    @classmethod
    def from_config(cls, config: AppConfig) -> 'TranslationManager':
        """Build a manager and its collaborators from the loaded application config."""
        options = TranslationOptions(
            locales_dir=config.locales_dir,
            base_locale=config.base_locale,
            target_locales=list(config.target_locales),
            validation_rules=config.validation_rules,
            cache_options=config.cache_options,
            api_config=config.api_config,
            dry_run=config.dry_run,
        )
        translator = None
        if config.openai_client is not None:
            translator = OpenAITranslator(config.openai_client, config.model_name, config.language_codes)
        return cls(
            options,
            translator=translator,
            context_strategy=make_parent_json_context(config.max_context_tokens),
        )

    async def __aenter__(self) -> 'TranslationManager':
        self.cache.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cache.stop()

    def find_missing_translations(self) -> Dict[str, List[str]]:
        """Map every target locale to its missing dotted keys, in depth-first order."""
        base_tree = self.store.base_tree
        return {
            locale: find_missing_keys(base_tree, self.store.tree(locale))
            for locale in self.options.target_locales
        }

    async def translate_text(self, text: str, context: str = '', locale: Optional[str] = None) -> str:
        """
        Translate ``text`` into ``locale``, serving fresh results from the cache.

        Raises:
            TranslationError: Wrapping whatever the translation API raised.
        """
        locale = locale or self.options.target_locales[0]
        cached = self.cache.get(text, context, locale)
        if cached is not None:
            logger.debug(f"Cache hit for '{text}' ({locale}).")
            return cached

        if self.translator is None:
            raise TranslationError('No translator configured', text, locale)

        try:
            translation = await self.translator.translate(text, self.options.base_locale, locale, context)
        except Exception as exc:
            logger.error(f"API error occurred: {exc.__class__.__name__} - {exc}")
            raise TranslationError('Translation API error', text, locale, {'original_error': exc}) from exc

        self.cache.put(text, context, translation, locale)
        return translation

    async def translate_with_retry(
            self,
            text: str,
            context: str = '',
            locale: Optional[str] = None,
            key: Optional[str] = None
    ) -> str:
        """
        Translate and validate ``text``, retrying with exponential backoff.

        Args:
            text: Source text.
            context: Disambiguation context sent to the model.
            locale: Target locale. Defaults to the first configured target.
            key: Key the result is validated against. Defaults to ``context``.

        Raises:
            The last error once ``retry_attempts`` attempts have failed.
        """
        locale = locale or self.options.target_locales[0]
        key = context if key is None else key
        max_retries = self.options.api_config.retry_attempts
        last_error: Optional[Exception] = None

        for attempt in range(1, max_retries + 1):
            try:
                await self.rate_limiter.acquire()
                result = await self.translate_text(text, context, locale)
                validation = self.validator.validate(key, result, source=text)
                if validation.is_valid:
                    return result

                # Do not serve the rejected translation again on the next attempt.
                self.cache.discard(text, context, locale)
                raise TranslationError('Translation validation failed', key, locale, {'validation': validation})
            except Exception as exc:
                last_error = exc
                logger.warning(f"Attempt {attempt}/{max_retries} for key '{key}' ({locale}) failed: {exc}")
                if attempt < max_retries:
                    original = exc.context.get('original_error') if isinstance(exc, TranslationError) else exc
                    await _handle_retry(attempt, max_retries, key, original)

        logger.error(f"Translation failed for key '{key}' ({locale}) after {max_retries} attempts.")
        if last_error is not None:
            raise last_error
        raise TranslationError('Translation failed after all retries', key, locale)

    async def _translate_locale(self, locale: str, keys: List[str]) -> int:
        base_tree = self.store.base_tree
        target_tree = self.store.tree(locale)
        translated_count = 0

        for key in tqdm(keys, desc=f"Translating {locale}", unit="key", disable=not keys):
            value = get_by_path(base_tree, key)
            if not isinstance(value, Leaf):
                # Keys containing '.' cannot be addressed by a dotted path.
                logger.warning(f"Skipping '{key}' ({locale}): no string found at this path in the base locale.")
                continue

            if not value.value.strip():
                set_by_path(target_tree, key, value.value)
                continue

            context = self.context_strategy(base_tree, key)
            translation = await self.translate_with_retry(value.value, context, locale=locale, key=key)
            set_by_path(target_tree, key, translation)
            translated_count += 1
            logger.info(f"Translated {key}: {value.value} -> {translation}")

        return translated_count

    async def translate_missing(
            self,
            locales: Optional[List[str]] = None,
            key_filter: Optional[str] = None
    ) -> TranslationReport:
        """
        Translate every missing key of every target locale and save each locale.

        A failure inside one locale stops that locale only: its partially
        translated tree is not saved and the next locale is processed.

        Args:
            locales: Subset of the configured target locales to process.
            key_filter: Only translate keys containing this substring.
        """
        unknown = [locale for locale in (locales or []) if locale not in self.options.target_locales]
        if unknown:
            raise ValueError(f"Locales not configured as targets: {', '.join(unknown)}")

        missing = self.find_missing_translations()
        report = TranslationReport()

        for locale in self.options.target_locales:
            if locales and locale not in locales:
                continue

            keys = missing[locale]
            if key_filter:
                keys = [key for key in keys if key_filter in key]

            if self.options.dry_run:
                logger.info(f"[Dry Run] {len(keys)} key(s) would be translated for '{locale}'.")
                for key in keys:
                    logger.info(f"[Dry Run]   - {key}")
                report.pending[locale] = keys
                continue

            logger.info(f"Translating {len(keys)} missing key(s) for '{locale}'...")
            try:
                report.translated[locale] = await self._translate_locale(locale, keys)
            except Exception as exc:
                logger.error(f"Stopped translating '{locale}', its file is left unchanged: {exc}")
                report.failed[locale] = str(exc)
                continue

            if self.store.save(locale):
                report.saved.append(locale)
            else:
                report.failed[locale] = f"Could not save '{self.store.path_for(locale)}'"

        return report
