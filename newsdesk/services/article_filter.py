"""
Category and country relevance filters.

Both filters work on lower-cased substring matches against title, description
and content; the keyword tables live in relevance_keywords.py.
"""

from dataclasses import dataclass
from typing import List, Optional

from newsdesk.models.article import Article, extract_domain
from newsdesk.services.relevance_keywords import (
    CATEGORY_QUERY_NOUNS,
    CATEGORY_RELEVANCE_KEYWORDS,
    COUNTRY_DEMONYMS,
    COUNTRY_NAMES,
    COUNTRY_RELEVANCE_KEYWORDS,
    DOMAIN_COUNTRY,
    GENERIC_CCTLDS,
    INTERNATIONAL_SOURCES,
    SECOND_LEVEL_TLD_COUNTRY,
)

MAX_COUNTRY_SCORE = 10
DEFAULT_MIN_COUNTRY_SCORE = 2

# Outcomes of assess_article
ACCEPTED = "accepted"
MARGINAL = "marginal"
FILLER = "filler"
REJECTED = "rejected"


@dataclass
class CountryMention:
    in_title: bool
    in_text: bool
    term_hits: int


def count_keyword_hits(text: str, keywords: List[str]) -> int:
    return sum(1 for kw in keywords if kw in text)


def _title_and_text(article: Article):
    title = (article.title or "").lower()
    text = f"{title} {(article.description or '').lower()}"
    return title, text


def article_matches_category(article: Article, category: str) -> bool:
    """
    Two-tier keyword match.

    Any strong keyword in title+description matches. Otherwise two weak hits
    match, or a single weak hit when that keyword is in the title. ``world``
    and unknown categories always match.
    """
    if category == "world":
        return True
    keywords = CATEGORY_RELEVANCE_KEYWORDS.get(category)
    if not keywords:
        return True

    title, text = _title_and_text(article)
    if any(kw in text for kw in keywords["strong"]):
        return True

    weak_hits = count_keyword_hits(text, keywords["weak"])
    if weak_hits >= 2:
        return True
    if weak_hits == 1 and any(kw in title for kw in keywords["weak"]):
        return True
    return False


def has_weak_category_keyword(article: Article, category: str) -> bool:
    """At least one weak category keyword anywhere in title+description."""
    keywords = CATEGORY_RELEVANCE_KEYWORDS.get(category)
    if not keywords:
        return False
    _, text = _title_and_text(article)
    return count_keyword_hits(text, keywords["weak"]) >= 1


def has_category_title_keyword(article: Article, category: str) -> bool:
    keywords = CATEGORY_RELEVANCE_KEYWORDS.get(category)
    if not keywords:
        return False
    title = (article.title or "").lower()
    return any(kw in title for kw in keywords["strong"]) or any(kw in title for kw in keywords["weak"])


def category_relevance_score(article: Article, category: Optional[str]) -> float:
    """0-1 strength of the category match, used by ranking."""
    if not category or category == "world":
        return 0.5
    keywords = CATEGORY_RELEVANCE_KEYWORDS.get(category)
    if not keywords:
        return 0.5

    title, text = _title_and_text(article)
    score = 0.0
    for kw in keywords["strong"]:
        if kw in text:
            score += 2
            if kw in title:
                score += 1
    for kw in keywords["weak"]:
        if kw in text:
            score += 1
            if kw in title:
                score += 0.5
    return min(score / 8, 1.0)


def get_country_terms(country: str) -> List[str]:
    if country in COUNTRY_RELEVANCE_KEYWORDS:
        return COUNTRY_RELEVANCE_KEYWORDS[country]
    name = COUNTRY_NAMES.get(country)
    return [name.lower()] if name else [country.lower()]


def article_mentions_country(article: Article, country: str) -> CountryMention:
    terms = get_country_terms(country)
    title, text = _title_and_text(article)
    full_text = f"{text} {(article.content or '').lower()}"

    return CountryMention(
        in_title=any(term in title for term in terms),
        in_text=any(term in text for term in terms),
        term_hits=sum(1 for term in terms if term in full_text),
    )


def infer_source_country(domain: str) -> Optional[str]:
    """Best guess of an outlet's home country from its domain."""
    domain = (domain or "").lower()
    if not domain:
        return None

    # Curated outlets, including their subdomains (edition.cnn.com)
    parts = domain.split(".")
    for i in range(len(parts) - 1):
        country = DOMAIN_COUNTRY.get(".".join(parts[i:]))
        if country:
            return country

    if len(parts) >= 3:
        country = SECOND_LEVEL_TLD_COUNTRY.get(".".join(parts[-2:]))
        if country:
            return country

    tld = parts[-1]
    if tld == "uk":
        return "gb"
    if len(tld) == 2 and tld not in GENERIC_CCTLDS and (tld in COUNTRY_NAMES or tld in COUNTRY_DEMONYMS):
        return tld
    return None


def is_international_source(article: Article) -> bool:
    return (article.source_domain or extract_domain(article.url)) in INTERNATIONAL_SOURCES


def country_relevance_score(article: Article, country: str, category: Optional[str] = None) -> int:
    """Integer 0-10 estimate of how much an article is about ``country``."""
    mention = article_mentions_country(article, country)
    score = 0

    if mention.in_title:
        score += 4
    elif mention.in_text:
        score += 2

    if mention.term_hits >= 3:
        score += 2
    elif mention.term_hits == 2:
        score += 1

    domain = article.source_domain or extract_domain(article.url)
    if infer_source_country(domain) == country and not is_international_source(article):
        score += 2

    if category and mention.in_title and has_category_title_keyword(article, category):
        score += 2

    return min(score, MAX_COUNTRY_SCORE)


def assess_article(
    article: Article,
    country: str,
    category: str,
    min_country_score: int = DEFAULT_MIN_COUNTRY_SCORE,
) -> str:
    """
    Score an article for one (country, category) pair and classify it.

    Sets ``country_score`` and ``matches_category`` on the article. Articles
    that miss the category are rejected unless the title names the country
    and a weak category keyword appears in the title or description. The
    rest are accepted, marginal or filler by country score.
    """
    matches = article_matches_category(article, category)
    score = country_relevance_score(article, country, category)
    article.matches_category = matches
    article.country_score = score

    if not matches:
        bypass = article_mentions_country(article, country).in_title and has_weak_category_keyword(article, category)
        if not bypass:
            return REJECTED

    if score >= min_country_score:
        return ACCEPTED
    if score > 0:
        return MARGINAL
    return FILLER


def build_national_query(country: str, category: str) -> str:
    """
    Search query aimed at domestic coverage: exact demonym/name phrases with
    a looser boolean fallback.
    """
    demonym = COUNTRY_DEMONYMS.get(country)
    country_name = COUNTRY_NAMES.get(country, country)
    nouns = CATEGORY_QUERY_NOUNS.get(category, [category])

    phrases = []
    for noun in nouns:
        if demonym:
            phrases.append(f'"{demonym} {noun}"')
        phrases.append(f'"{country_name} {noun}"')

    topic_keywords = " OR ".join(nouns[:5])
    if demonym:
        loose = f"({demonym} OR {country_name}) AND ({topic_keywords})"
    else:
        loose = f"{country_name} AND ({topic_keywords})"

    return f"({' OR '.join(phrases)} OR {loose})"
