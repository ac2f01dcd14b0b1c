from newsdesk.services.article_filter import (
    ACCEPTED,
    FILLER,
    MARGINAL,
    REJECTED,
    article_matches_category,
    assess_article,
    build_national_query,
    category_relevance_score,
    country_relevance_score,
    infer_source_country,
)


def test_world_and_unknown_categories_fail_open(article_factory):
    article = article_factory("Quarterly earnings beat expectations")
    assert article_matches_category(article, "world")
    assert article_matches_category(article, "knitting")
    assert category_relevance_score(article, "world") == 0.5
    assert category_relevance_score(article, None) == 0.5


def test_strong_keyword_anywhere_matches(article_factory):
    article = article_factory("A night to remember", description="Fans packed the stadium for the final")
    assert article_matches_category(article, "sports")


def test_single_weak_keyword_needs_title(article_factory):
    """One weak hit counts only when it sits in the title."""
    in_body = article_factory("Local club update", description="The coach spoke to reporters")
    in_title = article_factory("Club names new coach", description="An announcement on Friday")
    two_weak = article_factory("Local club update", description="The coach praised the player")

    assert not article_matches_category(in_body, "sports")
    assert article_matches_category(in_title, "sports")
    assert article_matches_category(two_weak, "sports")


def test_country_score_components(article_factory):
    """Title mention, domestic outlet and category-in-title bonuses add up."""
    article = article_factory("France crush Wales in rugby opener", url="https://www.lemonde.fr/sport/rugby-opener")
    # +4 title, +2 domestic outlet, +2 country and category keyword in title
    assert country_relevance_score(article, "fr", "sports") == 8
    assert country_relevance_score(article, "fr") == 6


def test_wire_services_get_no_domestic_bonus(article_factory):
    domestic = article_factory("Macron visits Berlin", url="https://www.lemonde.fr/politique/macron-berlin")
    wire = article_factory("Macron visits Berlin", url="https://www.france24.com/en/europe/macron-berlin")

    assert country_relevance_score(domestic, "fr") == 6
    assert country_relevance_score(wire, "fr") == 4


def test_multiple_terms_in_body_raise_score(article_factory):
    article = article_factory(
        "Election season heats up",
        description="Macron faces pressure in Paris",
        content="Lyon and Marseille mayors weigh in",
    )
    # +2 text mention, +2 for four distinct terms
    assert country_relevance_score(article, "fr") == 4


def test_country_score_capped(article_factory):
    article = article_factory(
        "France: Macron in Paris as football title race tightens",
        url="https://www.lequipe.fr/football/ligue-1",
        description="French champions Paris and Marseille meet in Lyon",
    )
    assert country_relevance_score(article, "fr", "sports") == 10


def test_infer_source_country():
    assert infer_source_country("lemonde.fr") == "fr"
    assert infer_source_country("news.bbc.co.uk") == "gb"
    assert infer_source_country("smh.com.au") == "au"
    assert infer_source_country("edition.cnn.com") == "us"
    assert infer_source_country("france24.com") == "fr"
    assert infer_source_country("startup.io") is None
    assert infer_source_country("example.com") is None
    assert infer_source_country("") is None


def test_assess_article_outcomes(article_factory):
    """Category misses are rejected; the rest are split by country score."""
    rejected = article_factory("France unveils new budget", url="https://www.lemonde.fr/eco/budget")
    accepted = article_factory("France names new rugby coach", url="https://example.com/rugby-coach")
    marginal = article_factory(
        "Club announces new coach",
        url="https://example.com/new-coach",
        content="Supporters in Paris and Lyon reacted",
    )
    filler = article_factory("Club announces new coach", url="https://example.com/other-coach")

    assert assess_article(rejected, "fr", "sports") == REJECTED
    assert assess_article(accepted, "fr", "sports") == ACCEPTED
    assert assess_article(marginal, "fr", "sports") == MARGINAL
    assert assess_article(filler, "fr", "sports") == FILLER

    assert accepted.matches_category is True
    assert accepted.country_score >= 2
    assert marginal.country_score == 1
    assert filler.country_score == 0
    assert rejected.matches_category is False


def test_min_country_score_is_configurable(article_factory):
    article = article_factory("France names new rugby coach", url="https://example.com/rugby-coach")
    assert assess_article(article, "fr", "sports", min_country_score=10) == MARGINAL


def test_national_query_uses_demonym_and_name():
    query = build_national_query("fr", "sports")
    assert '"French sport"' in query
    assert '"France sport"' in query
    assert "(French OR France) AND (" in query


def test_country_in_title_keeps_category_miss_with_weak_keyword_in_description(article_factory):
    """A lone weak keyword outside the title fails the category match but the country title keeps it."""
    article = article_factory(
        "France stunned as captain quits",
        url="https://example.com/captain-quits",
        description="The coach said the decision came late",
    )

    assert not article_matches_category(article, "sports")
    assert assess_article(article, "fr", "sports") == ACCEPTED
    assert article.matches_category is False
    assert article.country_score == 4


def test_weak_keyword_in_description_without_country_title_is_rejected(article_factory):
    article = article_factory(
        "Captain quits after stunning week",
        url="https://example.com/captain-week",
        description="The coach in Paris said the decision came late",
    )
    assert assess_article(article, "fr", "sports") == REJECTED
