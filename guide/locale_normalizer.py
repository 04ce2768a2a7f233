"""
Locale normalization across three taxonomies:
user-facing language preferences, translation-service codes and
speech-service language tags/voices.

The tables are versioned data in ``data/locales.json`` so they can be
updated and tested independently of the pipeline.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from guide.dto import CanonicalLocale
from guide.errors import LocaleTableError
from guide.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TABLE_PATH = Path(__file__).parent / "data" / "locales.json"


def _reject_duplicates(pairs: List[Tuple[str, object]]) -> Dict[str, object]:
    table: Dict[str, object] = {}
    seen = set()
    for key, value in pairs:
        folded = key.lower()
        if folded in seen:
            raise LocaleTableError(f"Duplicate locale key '{key}'")
        seen.add(folded)
        table[key] = value
    return table


class LocaleNormalizer:
    """
    Maps a raw language preference to a CanonicalLocale.

    Resolution order:
      1. alias table (case-insensitive) → translation code; unknown input passes through
      2. speech table lookup by full translation code
      3. speech table lookup by base subtag (text before the first hyphen)
      4. no voice: speech fields stay None, synthesis must raise UnsupportedLocale
    """

    def __init__(self, aliases: Dict[str, str], speech: Dict[str, Dict[str, str]], version: str = "unversioned"):
        self.version = version
        self._aliases = {k.lower(): v for k, v in aliases.items()}
        self._speech = {k.lower(): v for k, v in speech.items()}
        if len(self._aliases) != len(aliases) or len(self._speech) != len(speech):
            raise LocaleTableError("Locale tables contain keys differing only by case")

    @classmethod
    def from_file(cls, path: Optional[Path] = None) -> "LocaleNormalizer":
        path = path or DEFAULT_TABLE_PATH
        with Path(path).open("r", encoding="utf-8") as f:
            data = json.load(f, object_pairs_hook=_reject_duplicates)

        try:
            aliases = data["aliases"]
            speech = data["speech"]
        except KeyError as e:
            raise LocaleTableError(f"Locale table {path} is missing section {e}") from e

        for code, entry in speech.items():
            if not isinstance(entry, dict) or "lang" not in entry or "voice" not in entry:
                raise LocaleTableError(f"Speech entry '{code}' needs 'lang' and 'voice'")

        normalizer = cls(aliases, speech, version=str(data.get("version", "unversioned")))
        logger.debug(f"Loaded locale tables v{normalizer.version} "
                     f"({len(aliases)} aliases, {len(speech)} voices)")
        return normalizer

    def translation_code(self, language: str) -> str:
        cleaned = language.strip()
        return self._aliases.get(cleaned.lower(), cleaned)

    def speech_entry(self, translation_code: str) -> Optional[Dict[str, str]]:
        entry = self._speech.get(translation_code.lower())
        if entry is not None:
            return entry

        base = translation_code.split("-", 1)[0].lower()
        return self._speech.get(base)

    def normalize(self, language: str) -> CanonicalLocale:
        code = self.translation_code(language)
        entry = self.speech_entry(code)

        if entry is None:
            logger.warning(f"No speech voice for '{language}' (translation code '{code}')")
            return CanonicalLocale(requested=language, translation_code=code)

        return CanonicalLocale(
            requested=language,
            translation_code=code,
            speech_language_tag=entry["lang"],
            speech_voice_id=entry["voice"],
        )

    def supported_speech_codes(self) -> List[str]:
        return sorted(self._speech.keys())
