"""Command line entry point: ``locale-sync translate|check|validate|create-locale|fix-structure|add``."""
import argparse
import asyncio
import dataclasses
import logging
import os
import sys
from typing import List, Optional

# --- Python Version Check ---
if sys.version_info < (3, 11):
    sys.stderr.write("Error: locale-sync requires Python 3.11 or newer.\n")
    sys.stderr.write(f"You are running Python {sys.version.split()[0]}.\n")
    sys.exit(1)
# --- End Version Check ---

from locale_sync.app_config import AppConfig, load_app_config
from locale_sync.locale_store import LocaleFileStore
from locale_sync.locale_tree import (
    Leaf,
    Node,
    add_missing_keys,
    get_by_path,
    leaf_paths,
    map_leaves,
    path_conflict,
    set_by_path
)
from locale_sync.translation_manager import TranslationManager
from locale_sync.translation_validator import TranslationValidator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="locale-sync",
        description="Keep nested JSON locale files in sync with the base locale.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    translate = subparsers.add_parser("translate", help="Translate missing keys of the target locales")
    translate.add_argument("-l", "--locale", action="append", dest="locales",
                           help="Target locale to translate (repeatable, default: all configured targets)")
    translate.add_argument("-d", "--dry-run", action="store_true",
                           help="Show what would be translated without calling the API or writing files")
    translate.add_argument("-f", "--filter", dest="key_filter",
                           help="Only translate keys containing this pattern")

    subparsers.add_parser("check", help="List missing keys per target locale")
    subparsers.add_parser("validate", help="Validate every locale and its consistency with the base locale")

    create = subparsers.add_parser("create-locale", help="Create a new locale file from the base locale")
    create.add_argument("locale", help="Locale code, e.g. fr, de, es")
    mode = create.add_mutually_exclusive_group()
    mode.add_argument("-s", "--structure-only", action="store_true",
                      help="Create the key structure with empty strings")
    mode.add_argument("-t", "--translate", action="store_true",
                      help="Translate every key into the new locale right away")
    create.add_argument("--force", action="store_true", help="Overwrite an existing locale file")

    fix = subparsers.add_parser("fix-structure",
                                help="Add keys present in any locale file to every locale file as empty strings")
    fix.add_argument("-d", "--dry-run", action="store_true", help="Show what would be added without writing files")

    add = subparsers.add_parser("add", help="Add a key to the base locale")
    add.add_argument("key", help="Dotted key, e.g. common.buttons.save")
    add.add_argument("value", help="Base locale text")
    add.add_argument("--force", action="store_true", help="Overwrite the key if it already has a value")
    return parser


async def run_translate(config: AppConfig, locales: Optional[List[str]], key_filter: Optional[str]) -> int:
    manager = TranslationManager.from_config(config)
    async with manager:
        report = await manager.translate_missing(locales=locales, key_filter=key_filter)

    if config.dry_run:
        total = sum(len(keys) for keys in report.pending.values())
        logger.info(f"[Dry Run] {total} key(s) would be translated.")
        return 0

    for locale, count in report.translated.items():
        logger.info(f"Translated {count} key(s) for '{locale}'.")
    for locale, error in report.failed.items():
        logger.error(f"Locale '{locale}' failed: {error}")
    return 0 if report.ok else 1


def run_check(config: AppConfig) -> int:
    manager = TranslationManager.from_config(config)
    missing = manager.find_missing_translations()
    has_missing = False
    for locale, keys in missing.items():
        if not keys:
            print(f"[{locale}] all keys translated")
            continue
        has_missing = True
        print(f"[{locale}] {len(keys)} missing key(s):")
        for key in keys:
            print(f"  - {key}")
    return 1 if has_missing else 0


def run_validate(config: AppConfig) -> int:
    store = LocaleFileStore(config.locales_dir, config.base_locale, config.target_locales)
    store.load()
    validator = TranslationValidator(config.validation_rules)

    has_issues = False
    for locale in [config.base_locale] + config.target_locales:
        results = [validator.validate_tree(store.tree(locale))]
        if locale != config.base_locale:
            results.append(validator.validate_locale_consistency(store.base_tree, store.tree(locale)))
        issues = [issue for result in results for issue in result.errors]
        if not issues:
            print(f"[{locale}] OK")
            continue
        has_issues = True
        print(f"[{locale}] {len(issues)} issue(s):")
        for issue in issues:
            print(f"  - [{issue.level}] {issue.key}: {issue.message}")
    return 1 if has_issues else 0


def run_create_locale(config: AppConfig, locale: str, structure_only: bool = False,
                      translate: bool = False, force: bool = False) -> int:
    """
    Write ``<locale>.json`` with the shape of the base locale.

    Leaves hold the base text, or empty strings with ``structure_only``. With
    ``translate`` the file starts empty and every key is translated into it.
    """
    if locale == config.base_locale:
        logger.error(f"'{locale}' is the base locale.")
        return 1

    store = LocaleFileStore(config.locales_dir, config.base_locale, [])
    store.load()
    locale_path = store.path_for(locale)
    if os.path.exists(locale_path) and not force:
        logger.error(f"Locale file '{locale_path}' already exists. Use --force to overwrite.")
        return 1

    if translate:
        tree = Node()
    elif structure_only:
        tree = map_leaves(store.base_tree, lambda value: '')
    else:
        tree = map_leaves(store.base_tree, lambda value: value)

    store.set_tree(locale, tree)
    if not store.save(locale):
        return 1
    print(f"Created {locale_path} with {len(leaf_paths(tree))} key(s)")

    if not translate:
        return 0
    return asyncio.run(run_translate(dataclasses.replace(config, target_locales=[locale]), None, None))


def run_fix_structure(config: AppConfig, dry_run: bool = False) -> int:
    """Give every configured locale file every key that any of them has, as an empty string."""
    store = LocaleFileStore(config.locales_dir, config.base_locale, config.target_locales)
    store.load()
    locales = [config.base_locale] + config.target_locales
    all_keys = list(dict.fromkeys(key for locale in locales for key in leaf_paths(store.tree(locale))))

    fix_count = 0
    save_failed = False
    for locale in locales:
        added, conflicting = add_missing_keys(store.tree(locale), all_keys)
        for key in conflicting:
            logger.warning(f"[{locale}] '{key}' clashes with an existing key of a different shape, left alone.")
        if not added:
            print(f"[{locale}] structure OK")
            continue

        fix_count += len(added)
        print(f"[{locale}] {len(added)} missing key(s){' (dry run)' if dry_run else ' added'}:")
        for key in added:
            print(f"  + {key}")
        if not dry_run and not store.save(locale):
            save_failed = True

    if not fix_count:
        print("No structure issues found")
    elif dry_run:
        print(f"Would fix {fix_count} issue(s)")
    else:
        print(f"Fixed {fix_count} issue(s)")
    return 1 if save_failed else 0


def run_add(config: AppConfig, key: str, value: str, force: bool = False) -> int:
    """Write ``key`` into the base locale and report validation issues of ``value``."""
    if not key or '' in key.split('.'):
        logger.error(f"Invalid key '{key}'.")
        return 1

    store = LocaleFileStore(config.locales_dir, config.base_locale, [])
    store.load()
    base_tree = store.base_tree

    existing = get_by_path(base_tree, key)
    if isinstance(existing, Leaf) and not force:
        logger.error(f"Key '{key}' already exists with value '{existing.value}'. Use --force to overwrite.")
        return 1
    if path_conflict(base_tree, key):
        logger.error(f"Key '{key}' would overwrite an existing key of a different shape.")
        return 1

    for issue in TranslationValidator(config.validation_rules).validate(key, value).errors:
        print(f"  - [{issue.level}] {key}: {issue.message}")

    set_by_path(base_tree, key, value)
    if not store.save(config.base_locale):
        return 1
    print(f"Added '{key}' to {store.path_for(config.base_locale)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "translate":
        config = load_app_config(dry_run=True if args.dry_run else None)
        try:
            return asyncio.run(run_translate(config, args.locales, args.key_filter))
        except ValueError as e:
            logger.error(str(e))
            return 2

    if args.command == "create-locale":
        config = load_app_config(create_client=args.translate)
        return run_create_locale(config, args.locale, args.structure_only, args.translate, args.force)

    config = load_app_config(create_client=False)
    if args.command == "check":
        return run_check(config)
    if args.command == "fix-structure":
        return run_fix_structure(config, args.dry_run)
    if args.command == "add":
        return run_add(config, args.key, args.value, args.force)
    return run_validate(config)


if __name__ == "__main__":
    sys.exit(main())
