"""Basic suffix rules for morphological query variants.

This module proposes singular/plural and -ing variants of a query token
without external dependencies like NLTK or spaCy. The guesses are cheap and
often wrong, so callers only admit a variant that is attested in the
catalog's title vocabulary.
"""


def morphological_variants(word: str) -> list[str]:
    """Generate candidate singular/plural/stem forms of a word.

    Minimum-length guards keep short words like "bus" or "ring" from being
    stripped into meaningless stems.

    Examples::

        morphological_variants("libraries") -> ["library", "librari", "librarie"]
        morphological_variants("physics")   -> ["physic"]
        morphological_variants("learning")  -> ["learnings", "learninges", "learn"]

    Args:
        word: The token to vary (lowercase).

    Returns:
        Candidate variants in generation order, without duplicates and never
        including the word itself.
    """
    word = word.lower()
    candidates: list[str] = []

    # Plural → singular
    if word.endswith("ies") and len(word) > 4:
        candidates.append(word[:-3] + "y")
    if word.endswith("es") and len(word) > 5:
        candidates.append(word[:-2])
    if word.endswith("s") and not word.endswith("ss") and len(word) > 3:
        candidates.append(word[:-1])
    # "physics" → "physic", "mathematics" → "mathematic"
    if word.endswith("ics") and len(word) > 5:
        candidates.append(word[:-1])

    # Singular → plural
    if not word.endswith("s"):
        candidates.append(word + "s")
        candidates.append(word + "es")
    # "graphic" → "graphics"
    if word.endswith("ic") and len(word) > 4:
        candidates.append(word + "s")

    # "learning" → "learn"; stems of 4 chars or fewer are too ambiguous
    if word.endswith("ing") and len(word) - 3 > 4:
        candidates.append(word[:-3])

    seen: set[str] = set()
    result: list[str] = []
    for candidate in candidates:
        if candidate != word and candidate not in seen:
            seen.add(candidate)
            result.append(candidate)
    return result
