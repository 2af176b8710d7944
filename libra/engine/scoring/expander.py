"""Query normalization and expansion for the Libra search engine.

This module turns free text into the expanded token set used by both the
lexical query builder and the lexical scorer:
- Stop-word and short-token removal
- Curated domain synonyms
- Auto-derived co-occurrence synonyms from catalog titles
- Morphological variants validated against the title vocabulary
"""

import logging
import re

from ..core.vocabulary import CatalogIndex
from .constants import CURATED_SYNONYMS, MIN_TOKEN_LENGTH, STOP_WORDS
from .stemmer import morphological_variants

logger = logging.getLogger(__name__)

_WORD_SPLIT = re.compile(r"\W+")


def extract_tokens(text: str) -> list[str]:
    """Extract raw content tokens from a query, filtering stop words.

    Args:
        text: The raw query string.

    Returns:
        Lowercase tokens longer than two characters, stop words removed,
        in first-occurrence order without duplicates.
    """
    seen: set[str] = set()
    tokens: list[str] = []
    for word in _WORD_SPLIT.split(text.lower()):
        # "_" is a word character; a token of only underscores has no content
        word = word.strip("_")
        if len(word) <= MIN_TOKEN_LENGTH or word in STOP_WORDS or word in seen:
            continue
        seen.add(word)
        tokens.append(word)
    return tokens


class QueryExpander:
    """Expands query text into a token set using one CatalogIndex snapshot."""

    def __init__(
        self,
        index: CatalogIndex,
        curated_synonyms: dict[str, list[str]] | None = None,
    ):
        self.index = index
        self.curated_synonyms = CURATED_SYNONYMS if curated_synonyms is None else curated_synonyms

    def expand(self, text: str) -> set[str]:
        """Expand text into a deduplicated token set.

        Synonym expansions are not filtered through the stop-word set, so a
        curated entry may reintroduce a generic term.

        Args:
            text: Raw query text.

        Returns:
            Superset of the raw content tokens; empty when the text has no
            retrievable content.
        """
        raw_tokens = extract_tokens(text)
        if not raw_tokens:
            return set()

        expanded: set[str] = set(raw_tokens)
        vocabulary = self.index.title_vocabulary

        for token in raw_tokens:
            expanded.update(s.lower() for s in self.curated_synonyms.get(token, ()))
            expanded.update(self.index.auto_synonyms.get(token, ()))

            for variant in morphological_variants(token):
                if variant in vocabulary:
                    expanded.add(variant)

        if len(expanded) > len(raw_tokens):
            logger.debug(f"Query expansion: {sorted(raw_tokens)} → {sorted(expanded)}")
        return expanded
