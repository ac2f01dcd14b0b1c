"""
Deduplication and multi-signal ranking.

Articles are clustered by IDF-weighted title overlap; each cluster is scored
on seven signals (authority, coverage, freshness, depth, category, country,
keyword) and the clusters are ordered with a per-domain diversity cap.
"""

import logging
import math
import re
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

import yaml

from newsdesk.models.article import Article, Cluster, Coverage
from newsdesk.services.article_filter import category_relevance_score
from newsdesk.services.relevance_keywords import HEADLINE_SYNONYMS, SOURCE_AUTHORITY_TIER, STOP_WORDS
from newsdesk.utils.logging_config import PerformanceTracker, log_pipeline_metrics


SIMILARITY_THRESHOLD = 0.65
MAX_PER_DOMAIN = 2

HOUR_MS = 3_600_000
FRESHNESS_RATIO = 0.20
MIN_HALF_LIFE_MS = 3 * HOUR_MS
MAX_HALF_LIFE_MS = 120 * HOUR_MS
POPULARITY_HALF_LIFE_MS = 48 * HOUR_MS
DEFAULT_HALF_LIFE_MS = 6 * HOUR_MS

_PUNCTUATION_RE = re.compile(r"[‘’'\"“”\-–—:,.|!?()\[\]{}]")
_WHITESPACE_RE = re.compile(r"\s+")
_BOOLEAN_RE = re.compile(r"\b(and|or|not)\b", re.IGNORECASE)
_TERM_EDGE_RE = re.compile(r"^[\"'(]+|[\"')]+$")
_QUERY_TOKEN_RE = re.compile(r'"([^"]+)"|(\S+)')

_STEM_RULES = [
    (re.compile(p), r) for p, r in [
        (r"ational$", "ate"), (r"tional$", "tion"), (r"ations?$", "ate"),
        (r"izing$", "ize"), (r"ising$", "ise"), (r"ness$", ""),
        (r"ment$", ""), (r"ings?$", ""), (r"edly$", ""),
        (r"ingly$", ""), (r"ated?$", ""), (r"iers?$", "y"),
        (r"ies$", "y"), (r"ers?$", ""), (r"ed$", ""),
        (r"ly$", ""), (r"es$", ""), (r"s$", ""),
    ]
]


@dataclass
class RankingOptions:
    use_popularity: bool = False
    category: Optional[str] = None
    search_terms: Optional[List[str]] = None
    raw_keyword: Optional[str] = None
    keyword_mode: bool = False
    range_hours: Optional[int] = None


@dataclass
class ModeWeights:
    freshness: float
    authority: float
    coverage: float
    cat: float
    depth: float
    country_rel: float
    kw_rel: float


DEFAULT_MODE_WEIGHTS: Dict[str, ModeWeights] = {
    # Precision monitoring: keyword and country dominate, freshness matters least
    "keyword": ModeWeights(freshness=1.0, authority=1.5, coverage=1.5, cat=1.0, depth=0.5, country_rel=3.0, kw_rel=5.0),
    # Trending: cross-source coverage and authority drive the order
    "popularity": ModeWeights(freshness=1.0, authority=2.5, coverage=3.0, cat=1.5, depth=1.0, country_rel=2.0, kw_rel=2.5),
    # Home feed: freshness balanced against category and country relevance
    "default": ModeWeights(freshness=2.0, authority=1.5, coverage=1.5, cat=2.5, depth=1.0, country_rel=2.5, kw_rel=2.5),
}


class RankingWeights:
    """Weight vectors for the three ranking modes."""

    def __init__(self, modes: Optional[Dict[str, ModeWeights]] = None):
        self.modes: Dict[str, ModeWeights] = dict(DEFAULT_MODE_WEIGHTS)
        if modes:
            self.modes.update(modes)

    @staticmethod
    def mode_for(options: RankingOptions) -> str:
        if options.keyword_mode:
            return "keyword"
        if options.use_popularity:
            return "popularity"
        return "default"

    def for_options(self, options: RankingOptions) -> ModeWeights:
        mode = self.mode_for(options)
        weights = self.modes[mode]
        # Outside keyword mode the keyword signal only counts when terms were given
        if mode != "keyword" and not options.search_terms:
            weights = replace(weights, kw_rel=0.0)
        return weights

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "RankingWeights":
        modes: Dict[str, ModeWeights] = {}
        for mode, values in (data or {}).items():
            if mode not in DEFAULT_MODE_WEIGHTS:
                raise ValueError(f"Unknown ranking mode in weights: {mode}")
            base = DEFAULT_MODE_WEIGHTS[mode]
            modes[mode] = replace(base, **{k: float(v) for k, v in (values or {}).items()})
        return cls(modes)


def load_ranking_config(path: str) -> Dict[str, Any]:
    """
    Load ranking overrides from YAML.

    Returns {"weights": RankingWeights, "source_tiers": {domain: tier}}.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Ranking config at {path} must be a mapping")

    tiers = {str(domain).lower(): int(tier) for domain, tier in (raw.get("source_tiers") or {}).items()}
    for domain, tier in tiers.items():
        if tier not in (1, 2, 3):
            raise ValueError(f"Source tier for {domain} must be 1, 2 or 3, got {tier}")

    return {
        "weights": RankingWeights.from_mapping(raw.get("weights") or {}),
        "source_tiers": tiers,
    }


def normalise_title(title: Optional[str]) -> str:
    text = _PUNCTUATION_RE.sub(" ", (title or "").lower())
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_keywords(norm_title: str) -> List[str]:
    """Content words of a normalised title, with headline synonyms folded together."""
    words = [w for w in norm_title.split(" ") if len(w) > 2 and w not in STOP_WORDS]
    return [HEADLINE_SYNONYMS.get(w, w) for w in words]


def build_idf_map(keyword_lists: List[List[str]]) -> Dict[str, float]:
    n = len(keyword_lists)
    doc_freq: Dict[str, int] = {}
    for keywords in keyword_lists:
        for word in set(keywords):
            doc_freq[word] = doc_freq.get(word, 0) + 1
    return {word: math.log(n / freq) + 1 for word, freq in doc_freq.items()}


def title_similarity(keywords_a: List[str], keywords_b: List[str], idf_map: Dict[str, float]) -> float:
    """IDF-weighted Jaccard overlap of two keyword lists."""
    if not keywords_a or not keywords_b:
        return 0.0
    set_a, set_b = set(keywords_a), set(keywords_b)
    intersection = sum(idf_map.get(w, 1.0) for w in set_a & set_b)
    union = sum(idf_map.get(w, 1.0) for w in set_a | set_b)
    return intersection / union if union > 0 else 0.0


def cluster_articles(
    keyword_lists: List[List[str]],
    idf_map: Dict[str, float],
    threshold: float = SIMILARITY_THRESHOLD,
) -> List[List[int]]:
    """
    Greedy single pass: each unassigned index opens a cluster and absorbs every
    later unassigned index whose similarity to it exceeds ``threshold``.
    Returns clusters as lists of indices.
    """
    clusters: List[List[int]] = []
    assigned = set()
    for i in range(len(keyword_lists)):
        if i in assigned:
            continue
        cluster = [i]
        assigned.add(i)
        for j in range(i + 1, len(keyword_lists)):
            if j in assigned:
                continue
            if title_similarity(keyword_lists[i], keyword_lists[j], idf_map) > threshold:
                cluster.append(j)
                assigned.add(j)
        clusters.append(cluster)
    return clusters


def content_depth_score(article: Article) -> float:
    desc = len(article.description or "")
    content = len(article.content or "")
    if content < 50 and desc < 30:
        return 0.0
    return min(desc / 150, 1) * 0.3 + min(content / 500, 1) * 0.7


def stem_word(word: str) -> str:
    """Strip one common English suffix, keeping at least three characters."""
    if len(word) < 5:
        return word
    for pattern, replacement in _STEM_RULES:
        result = pattern.sub(replacement, word)
        if result != word and len(result) >= 3:
            return result
    return word


def keyword_relevance_score(article: Article, search_terms: Optional[List[str]], raw_keyword: Optional[str] = None) -> float:
    if not search_terms:
        return 0.0
    title = (article.title or "").lower()
    desc = (article.description or "").lower()
    content = (article.content or "").lower()
    score = 0.0

    if raw_keyword:
        phrase = raw_keyword.strip().lower()
        if " " in phrase and not _BOOLEAN_RE.search(phrase):
            if phrase in title:
                score += 5
            elif phrase in desc:
                score += 2.5

    for term in search_terms:
        t = _TERM_EDGE_RE.sub("", term.lower())
        if len(t) < 2:
            continue
        stem = stem_word(t)

        def found(text: str) -> bool:
            return t in text or (stem != t and stem in text)

        if found(title):
            score += 3
        if found(desc):
            score += 1
        if found(content):
            score += 0.5

    return min(score / 8, 1.0)


def split_search_terms(query: Optional[str]) -> List[str]:
    """Split a free-text query into terms; quoted phrases stay whole, boolean operators are dropped."""
    if not query:
        return []
    terms: List[str] = []
    for phrase, word in _QUERY_TOKEN_RE.findall(query):
        term = _TERM_EDGE_RE.sub("", (phrase or word).strip())
        if not term or term.lower() in ("and", "or", "not"):
            continue
        if len(term) < 2 or term.lower() in terms:
            continue
        terms.append(term.lower())
    return terms


def freshness_half_life_ms(use_popularity: bool = False, range_hours: Optional[int] = None) -> float:
    """Half-life of the freshness signal: 20% of the window, clamped to 3h..120h."""
    if use_popularity and not range_hours:
        return POPULARITY_HALF_LIFE_MS
    if range_hours:
        return min(max(range_hours * FRESHNESS_RATIO * HOUR_MS, MIN_HALF_LIFE_MS), MAX_HALF_LIFE_MS)
    return DEFAULT_HALF_LIFE_MS


def freshness_signal(timestamp_ms: float, now_ms: float, half_life_ms: float) -> float:
    """0-10 exponential decay; future timestamps count as brand new."""
    age_ms = max(now_ms - timestamp_ms, 0)
    return 10 * math.pow(2, -age_ms / half_life_ms)


def get_source_tier(article: Article, tiers: Optional[Dict[str, int]] = None) -> int:
    table = tiers if tiers is not None else SOURCE_AUTHORITY_TIER
    return table.get(article.source_domain, 1)


@dataclass
class _Item:
    article: Article
    keywords: List[str]
    tier: int
    timestamp_ms: float
    depth: float
    cat_relevance: float
    country_rel: float
    kw_relevance: float
    domain: str


@dataclass
class _ScoredCluster:
    article: Article
    signals: Dict[str, float]
    domain: str
    total: float = 0.0
    demoted: bool = False
    story: Optional[Cluster] = None


class RankingService:
    """Clusters duplicate coverage and orders the representatives."""

    def __init__(
        self,
        weights: Optional[RankingWeights] = None,
        source_tiers: Optional[Dict[str, int]] = None,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        max_per_domain: int = MAX_PER_DOMAIN,
        clock=None,
    ):
        self.weights = weights or RankingWeights()
        self.source_tiers: Dict[str, int] = dict(SOURCE_AUTHORITY_TIER)
        if source_tiers:
            self.source_tiers.update(source_tiers)
        self.similarity_threshold = similarity_threshold
        self.max_per_domain = max_per_domain
        self._clock = clock or time.time
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config_file(cls, path: str, **kwargs) -> "RankingService":
        config = load_ranking_config(path)
        return cls(weights=config["weights"], source_tiers=config["source_tiers"], **kwargs)

    def rank_and_deduplicate(self, articles: List[Article], options: Optional[RankingOptions] = None) -> List[Article]:
        """
        Cluster duplicate stories and return one ranked representative per
        cluster. Input articles are not modified.
        """
        if not articles:
            return []
        options = options or RankingOptions()

        with PerformanceTracker("rank_and_deduplicate", self.logger) as tracker:
            items = self._build_items(articles, options)
            idf_map = build_idf_map([it.keywords for it in items])
            index_clusters = cluster_articles([it.keywords for it in items], idf_map, self.similarity_threshold)

            now_ms = self._clock() * 1000
            half_life = freshness_half_life_ms(options.use_popularity, options.range_hours)
            scored = [self._score_cluster([items[i] for i in idx], now_ms, half_life) for idx in index_clusters]

            weights = self.weights.for_options(options)
            for s in scored:
                s.total = self._weighted_total(s.signals, weights)

            ranked = self._diversify(sorted(scored, key=lambda s: s.total, reverse=True))

        log_pipeline_metrics(
            self.logger,
            "ranking",
            len(articles),
            len(ranked),
            tracker.duration_ms,
            mode=RankingWeights.mode_for(options),
            clusters=len(index_clusters),
        )
        return [s.article for s in ranked]

    def _build_items(self, articles: List[Article], options: RankingOptions) -> List[_Item]:
        items = []
        for a in articles:
            items.append(_Item(
                article=a,
                keywords=extract_keywords(normalise_title(a.title)),
                tier=get_source_tier(a, self.source_tiers),
                timestamp_ms=a.timestamp * 1000,
                depth=content_depth_score(a),
                cat_relevance=category_relevance_score(a, options.category or a.category),
                country_rel=a.country_score if a.country_score is not None else -1,
                kw_relevance=(
                    keyword_relevance_score(a, options.search_terms, options.raw_keyword)
                    if options.search_terms else -1
                ),
                domain=a.source_domain,
            ))
        return items

    def _score_cluster(self, cluster: List[_Item], now_ms: float, half_life_ms: float) -> _ScoredCluster:
        cluster.sort(key=lambda c: (c.tier, c.cat_relevance, c.depth, c.timestamp_ms), reverse=True)
        best = cluster[0]
        story = Cluster(members=[c.article for c in cluster])
        coverage_count = story.unique_source_count

        max_cat = max(c.cat_relevance for c in cluster)
        best_country = max(c.country_rel for c in cluster)
        best_kw = max(c.kw_relevance for c in cluster)

        signals = {
            "authority": 10 if best.tier == 3 else 7 if best.tier == 2 else 4,
            "coverage": min((coverage_count - 1) * 3, 10),
            "freshness": freshness_signal(best.timestamp_ms, now_ms, half_life_ms),
            "depth": best.depth * 5,
            # Representative's own relevance dominates so a weak representative cannot borrow a strong score
            "cat": (best.cat_relevance * 0.7 + max_cat * 0.3) * 8,
            "country_rel": 4 if best_country == -1 else best_country,
            "kw_rel": 0 if best_kw == -1 else best_kw * 10,
        }

        article = replace(
            story.representative,
            coverage=Coverage(coverage_count, story.sources) if coverage_count > 1 else None,
        )
        return _ScoredCluster(article=article, signals=signals, domain=best.domain, story=story)

    @staticmethod
    def _weighted_total(signals: Dict[str, float], w: ModeWeights) -> float:
        return (
            signals["authority"] * w.authority
            + signals["coverage"] * w.coverage
            + signals["freshness"] * w.freshness
            + signals["depth"] * w.depth
            + signals["cat"] * w.cat
            + signals["country_rel"] * w.country_rel
            + signals["kw_rel"] * w.kw_rel
        )

    def _diversify(self, scored: List[_ScoredCluster]) -> List[_ScoredCluster]:
        """Push a domain's third and later representatives behind everything else, keeping score order."""
        domain_count: Dict[str, int] = {}
        for s in scored:
            domain_count[s.domain] = domain_count.get(s.domain, 0) + 1
            s.demoted = domain_count[s.domain] > self.max_per_domain
        demoted = sum(1 for s in scored if s.demoted)
        if demoted:
            self.logger.debug(f"Diversity pass demoted {demoted} representatives")
        return sorted(scored, key=lambda s: s.demoted)
