"""Scoring engine for Libra hybrid search.

This package provides the scoring algorithms for keyword and semantic search:
- Query normalization and expansion (stop words, synonyms, morphology)
- Lexical query construction and keyword scoring
- Semantic scoring via pre-computed item embeddings
- Score fusion, intent filtering and deduplication

Usage:
    from libra.engine.scoring import (
        QueryExpander,
        build_lexical_query,
        SemanticScorer,
        HybridRanker,
    )
"""

from .constants import (
    CATALOG_KEYWORDS,
    CODING_ITEM_KEYWORDS,
    CODING_QUERY_KEYWORDS,
    CURATED_SYNONYMS,
    DSA_TITLE_INDICATORS,
    SEMANTIC_TOP_K,
    STOP_WORDS,
    TOP_N,
)
from .expander import QueryExpander, extract_tokens
from .fusion import (
    FusionStrategy,
    HybridRanker,
    MaxScoreFusion,
    apply_intent_filter,
    dedupe_candidates,
    fuse_candidates,
    sort_candidates,
)
from .keyword_scorer import (
    build_lexical_query,
    calculate_keyword_score,
    has_coding_keyword,
    is_coding_query,
    is_dsa_query,
    score_lexical_candidates,
)
from .semantic_scorer import EmbeddingProvider, SemanticScorer, cosine_similarity
from .stemmer import morphological_variants

__all__ = [
    # Constants
    "CATALOG_KEYWORDS",
    "CODING_ITEM_KEYWORDS",
    "CODING_QUERY_KEYWORDS",
    "CURATED_SYNONYMS",
    "DSA_TITLE_INDICATORS",
    "SEMANTIC_TOP_K",
    "STOP_WORDS",
    "TOP_N",
    # Stemmer
    "morphological_variants",
    # Expander
    "QueryExpander",
    "extract_tokens",
    # Keyword scorer
    "build_lexical_query",
    "calculate_keyword_score",
    "has_coding_keyword",
    "is_coding_query",
    "is_dsa_query",
    "score_lexical_candidates",
    # Semantic scorer
    "EmbeddingProvider",
    "SemanticScorer",
    "cosine_similarity",
    # Fusion
    "FusionStrategy",
    "HybridRanker",
    "MaxScoreFusion",
    "apply_intent_filter",
    "dedupe_candidates",
    "fuse_candidates",
    "sort_candidates",
]
