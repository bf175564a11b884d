import json
import os
from unittest.mock import MagicMock, patch

import pytest


class StubTranslator:
    """Translator double that wraps every input in square brackets and records the calls."""

    def __init__(self, fmt="[{text}]"):
        self.fmt = fmt
        self.calls = []

    async def translate(self, text, source_locale, target_locale, context=''):
        self.calls.append((text, source_locale, target_locale, context))
        return self.fmt.format(text=text, locale=target_locale)


class NoopRateLimiter:
    def __init__(self):
        self.acquired = 0

    async def acquire(self):
        self.acquired += 1


def write_locale(locales_dir, locale, data):
    """Write ``data`` as ``<locale>.json`` into ``locales_dir`` and return the path."""
    os.makedirs(locales_dir, exist_ok=True)
    path = os.path.join(locales_dir, f"{locale}.json")
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=4)
    return path


def read_locale(locales_dir, locale):
    with open(os.path.join(locales_dir, f"{locale}.json"), 'r', encoding='utf-8') as f:
        return json.load(f)


@pytest.fixture(autouse=True)
def offline_tokenizer():
    """Keep tiktoken from downloading encodings; token counts fall back to whitespace splitting."""
    fake_encoding = MagicMock()
    fake_encoding.encode.side_effect = lambda text: text.split()
    with patch('locale_sync.context.tiktoken.encoding_for_model', side_effect=KeyError("offline")), \
            patch('locale_sync.context.tiktoken.get_encoding', return_value=fake_encoding):
        yield


@pytest.fixture
def locales_dir(tmp_path):
    path = tmp_path / "locales"
    path.mkdir()
    return str(path)


@pytest.fixture
def stub_translator():
    return StubTranslator()
