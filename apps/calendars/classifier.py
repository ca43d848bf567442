"""Availability event classifier.

Guides advertise open slots as ordinary events on a dedicated calendar,
titled however they like ("Dispo", "free slot", "👍"). The classifier
decides whether an event is such a marker by matching a keyword list
against its title, description and location. Matching ignores case and
accents and requires whole words, so "dispo" matches "Dispo matin" but
"y" does not match "kayak". A keyword ending in "*" only has to start a
word: "disponib*" matches "Disponibilités samedi".
"""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from pathlib import Path
from typing import Iterable, Union

from django.conf import settings  # type: ignore

from .external import ExternalEvent

logger = logging.getLogger(__name__)


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def load_keywords(path: Union[str, Path]) -> list[str]:
    with open(path, encoding="utf-8") as handle:
        keywords = json.load(handle)
    if not isinstance(keywords, list) or not all(isinstance(item, str) for item in keywords):
        raise ValueError(f"{path} must contain a JSON list of strings")
    return keywords


def _alternatives(keywords: list[str]) -> str:
    # Longest first so "ok dispo" wins over "ok"
    return "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))


class AvailabilityEventClassifier:
    def __init__(self, keywords: Iterable[str]):
        normalised = []
        for keyword in keywords:
            keyword = strip_accents(keyword.strip()).lower()
            if keyword.rstrip("*") and keyword not in normalised:
                normalised.append(keyword)
        if not normalised:
            raise ValueError("At least one availability keyword is required")
        self.keywords = tuple(normalised)

        words = [k for k in self.keywords if not k.endswith("*")]
        prefixes = [k.rstrip("*") for k in self.keywords if k.endswith("*")]
        branches = []
        if words:
            branches.append(rf"(?<!\w)(?:{_alternatives(words)})(?!\w)")
        if prefixes:
            branches.append(rf"(?<!\w)(?:{_alternatives(prefixes)})")
        self._pattern = re.compile("|".join(branches), re.IGNORECASE)

    @classmethod
    def from_settings(cls) -> "AvailabilityEventClassifier":
        path = settings.CALENDAR_AVAILABILITY_KEYWORDS_FILE
        keywords = load_keywords(path)
        logger.debug(f"Loaded {len(keywords)} availability keywords from {path}")
        return cls(keywords)

    def matches_text(self, text: str) -> bool:
        return bool(self._pattern.search(strip_accents(text or "")))

    def is_availability(self, event: ExternalEvent) -> bool:
        return self.matches_text(f"{event.summary} {event.description} {event.location}")

    __call__ = is_availability
