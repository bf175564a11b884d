"""Durable storage of locale trees as one ``<locale>.json`` file per locale."""
import json
import logging
import os
from typing import Dict, List

import jsonschema

from locale_sync.locale_tree import Node, tree_from_json, tree_to_json

logger = logging.getLogger(__name__)

# An object whose values are strings or objects of the same shape.
LOCALE_TREE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "$ref": "#/definitions/tree",
    "definitions": {
        "tree": {
            "type": "object",
            "additionalProperties": {
                "anyOf": [
                    {"type": "string"},
                    {"$ref": "#/definitions/tree"}
                ]
            }
        }
    }
}


def read_locale_file(file_path: str) -> Node:
    """
    Read and validate a locale file.

    Raises:
        OSError: If the file cannot be read.
        json.JSONDecodeError: If the file is not valid JSON.
        jsonschema.ValidationError: If the JSON is not a tree of strings.
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    jsonschema.validate(instance=data, schema=LOCALE_TREE_SCHEMA)
    return tree_from_json(data)


def write_locale_file(file_path: str, tree: Node) -> None:
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(tree_to_json(tree), f, ensure_ascii=False, indent=4)
        f.write('\n')


class LocaleFileStore:
    """
    Holds the base and target locale trees in memory and persists them to disk.

    Args:
        locales_dir: Directory containing ``<locale>.json`` files.
        base_locale: Locale code of the source language.
        target_locales: Locale codes to keep in sync with the base.
    """

    def __init__(self, locales_dir: str, base_locale: str, target_locales: List[str]):
        self.locales_dir = locales_dir
        self.base_locale = base_locale
        self.target_locales = list(target_locales)
        self.trees: Dict[str, Node] = {}

    def path_for(self, locale: str) -> str:
        return os.path.join(self.locales_dir, f"{locale}.json")

    @property
    def base_tree(self) -> Node:
        return self.tree(self.base_locale)

    def tree(self, locale: str) -> Node:
        try:
            return self.trees[locale]
        except KeyError:
            raise KeyError(f"Locale '{locale}' has not been loaded") from None

    def set_tree(self, locale: str, tree: Node) -> None:
        """Replace the in-memory tree of ``locale``. Nothing is written until ``save``."""
        self.trees[locale] = tree

    def load(self) -> None:
        """
        Load the base locale and every target locale.

        A missing base file is created empty. Target files that are missing
        or unreadable fall back to an empty tree with a warning. Any failure
        on the base locale is logged and re-raised.
        """
        try:
            os.makedirs(self.locales_dir, exist_ok=True)

            base_path = self.path_for(self.base_locale)
            if not os.path.exists(base_path):
                logger.info(f"Base locale file '{base_path}' not found, creating an empty one.")
                write_locale_file(base_path, Node())
                self.trees[self.base_locale] = Node()
            else:
                self.trees[self.base_locale] = read_locale_file(base_path)
        except (OSError, ValueError, jsonschema.ValidationError):
            logger.exception("Error loading base locale '%s' from '%s'", self.base_locale, self.locales_dir)
            raise

        for locale in self.target_locales:
            locale_path = self.path_for(locale)
            try:
                self.trees[locale] = read_locale_file(locale_path)
            except FileNotFoundError:
                logger.warning(f"No translation file found for '{locale}', starting with an empty tree.")
                self.trees[locale] = Node()
            except (OSError, ValueError, jsonschema.ValidationError) as e:
                logger.warning(f"Could not read translation file '{locale_path}': {e}. Starting with an empty tree.")
                self.trees[locale] = Node()

    def save(self, locale: str) -> bool:
        """
        Overwrite the file of ``locale`` with its in-memory tree.

        Returns:
            True on success. Write failures are logged and reported as False so
            that the remaining locales can still be processed.
        """
        locale_path = self.path_for(locale)
        try:
            write_locale_file(locale_path, self.tree(locale))
        except OSError:
            logger.exception("Error saving translations for '%s' to '%s'", locale, locale_path)
            return False
        logger.info(f"Saved translations for '{locale}' to '{locale_path}'.")
        return True
