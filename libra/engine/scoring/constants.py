"""Scoring constants for the Libra hybrid search engine.

This module contains all constants used by the hybrid keyword+semantic search:
- Stop words for query normalization
- The curated domain synonym table
- Coding / DSA intent vocabularies
- Ranking weights and caps
- Intent hint patterns and their boost terms
- Catalog keywords for casual-query detection
"""

# ---------------------------------------------------------------------------
# Stop words: dropped from raw query tokens before expansion.
# Generic catalog words ("book", "copies", "available") are included so that
# "do you have any python books available" searches for "python" only.
# ---------------------------------------------------------------------------
STOP_WORDS = frozenset(
    {
        # Articles, auxiliaries, pronouns
        "the",
        "are",
        "any",
        "and",
        "for",
        "with",
        "you",
        "your",
        "have",
        "has",
        "can",
        "could",
        "would",
        "there",
        "some",
        "that",
        "this",
        "what",
        "which",
        "from",
        "about",
        # Pleasantries
        "hi",
        "hello",
        "hey",
        "please",
        "thanks",
        "thank",
        # Requests
        "want",
        "need",
        "show",
        "find",
        "get",
        "give",
        "looking",
        "recommend",
        "suggest",
        "search",
        # Generic catalog words
        "book",
        "books",
        "title",
        "titles",
        "copy",
        "copies",
        "available",
        "library",
        "pages",
    }
)

# Minimum raw token length (tokens of this length or shorter are dropped)
MIN_TOKEN_LENGTH = 2


# ---------------------------------------------------------------------------
# Curated synonym table: hand-authored domain knowledge.
# Keys are single lowercase query tokens (length > 2, never stop words);
# values are single tokens so they survive lexical query cleaning.
# ---------------------------------------------------------------------------
CURATED_SYNONYMS: dict[str, list[str]] = {
    "dsa": ["data", "structures", "algorithms"],
    "algorithms": ["algorithm", "data", "structures"],
    "algorithm": ["algorithms", "data", "structures"],
    "programming": ["coding", "code", "software"],
    "coding": ["programming", "code", "software"],
    "python": ["programming"],
    "java": ["programming"],
    "javascript": ["programming", "web"],
    "web": ["html", "css", "javascript"],
    "database": ["sql", "dbms", "databases"],
    "dbms": ["database", "sql"],
    "sql": ["database", "dbms"],
    "math": ["mathematics", "calculus", "algebra"],
    "maths": ["mathematics", "calculus", "algebra"],
    "mathematics": ["math", "calculus", "algebra"],
    "calculus": ["mathematics"],
    "statistics": ["probability", "statistical"],
    "probability": ["statistics"],
    "physics": ["mechanics", "quantum"],
    "chemistry": ["organic", "inorganic"],
    "networking": ["networks", "network"],
    "networks": ["network", "networking"],
    "compiler": ["compilers"],
    "compilers": ["compiler"],
    "operating": ["systems"],
    "intelligence": ["artificial", "machine", "learning"],
    "machine": ["learning"],
    "deep": ["learning", "neural"],
    "graphics": ["opengl", "rendering"],
    "electronics": ["circuits", "electronic"],
    "fiction": ["novel", "stories"],
    "novel": ["fiction"],
    "economics": ["economy", "microeconomics", "macroeconomics"],
    "history": ["historical"],
}


# ---------------------------------------------------------------------------
# Coding / DSA intent vocabularies.
# Query-side keywords decide whether the query is a coding query; item-side
# keywords decide whether an item earns the coding bonus / passes the coding
# filter. The two sets overlap only partially.
# ---------------------------------------------------------------------------
CODING_QUERY_KEYWORDS = (
    "programming",
    "coding",
    "code",
    "coder",
    "developer",
    "software",
    "python",
    "java",
    "javascript",
    "c++",
    "c#",
    "golang",
    "rust",
    "leetcode",
    "dsa",
    "algorithm",
    "algorithms",
    "data structure",
    "data structures",
    "competitive programming",
)

CODING_ITEM_KEYWORDS = (
    "programming",
    "program",
    "coding",
    "code",
    "software",
    "python",
    "java",
    "javascript",
    "c++",
    "c#",
    "algorithm",
    "data structure",
    "developer",
    "computer science",
    "compiler",
)

DSA_QUERY_TERMS = (
    "dsa",
    "data structure",
    "data structures",
    "algorithm",
    "algorithms",
)

DSA_TITLE_INDICATORS = (
    "algorithm",
    "data structure",
    "dsa",
)


# ---------------------------------------------------------------------------
# Ranking weights and caps
# ---------------------------------------------------------------------------
LEXICAL_BASE_SCORE = 1.0
LEXICAL_MATCH_WEIGHT = 0.1  # 1 + matches / 10
CODING_BONUS = 0.5
SEMANTIC_TOP_K = 20
TOP_N = 5
PREFIX_WILDCARD_MIN_LENGTH = 4


# ---------------------------------------------------------------------------
# Intent hints: regex → boost terms appended to the query before expansion
# ---------------------------------------------------------------------------
INTENT_HINTS: dict[str, tuple[str, str]] = {
    "exam_prep": (
        r"\b(?:exams?|test prep|revision|entrance|competitive exams?|interview prep)\b",
        "exam preparation guide",
    ),
    "practice_problems": (
        r"\b(?:practice|problems?|exercises?|questions?|solved|workbook)\b",
        "problems exercises solutions practice",
    ),
    "project": (
        r"\b(?:projects?|project[- ]based|build(?:ing)? apps?)\b",
        "projects practical",
    ),
    "diagrams": (
        r"\b(?:diagrams?|illustrat\w*|visual\w*|figures?|pictures?)\b",
        "illustrated visual diagrams",
    ),
    "simplicity": (
        r"\b(?:simple|simply|easy|beginners?|basics?|introductory|intro|dummies)\b",
        "introduction beginners basics",
    ),
    "practicality": (
        r"\b(?:practical|applied|real[- ]world|hands[- ]on)\b",
        "practical applied handbook",
    ),
    "graphics": (
        r"\b(?:graphics|opengl|rendering|3d|game engines?)\b",
        "graphics opengl rendering",
    ),
}

# "under 400 pages", "less than 300 pages", "max 250 pages"
PAGE_LIMIT_PATTERN = (
    r"\b(?:under|below|less than|fewer than|within|at most|up to|max(?:imum)?|<=?)\s*"
    r"(\d{1,5})\s*(?:pages?|pgs?)\b"
)


# ---------------------------------------------------------------------------
# Casual-query detection: a query is a catalog query only if it mentions one
# of these keywords (substring match on the lowercased query).
# ---------------------------------------------------------------------------
CATALOG_KEYWORDS = (
    "book",
    "books",
    "read",
    "find",
    "author",
    "title",
    "have",
    "available",
    "inventory",
    "copy",
    "copies",
    "where",
    "which",
    "what",
    "do you have",
    "search",
    "library",
    "borrow",
    "novel",
    "textbook",
    "recommend",
    "suggest",
)

CASUAL_REPLY = (
    "Hi! If you're looking for books or need help finding something in the library, "
    "just ask me about specific topics, titles, or authors 😊"
)

# Filler phrases stripped from "how many copies of X" / "is X available" subjects
SUBJECT_FILLER_PATTERNS = (
    r"\b(?:do you have|are there|is there|in the library|in stock|on the shelf|right now|currently)\b",
    r"\b(?:the|any|all|a|an|please|book|books|title|titles|copies|copy)\b",
)
