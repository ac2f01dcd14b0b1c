"""
Keyword, country and source tables used by the relevance filters and ranking.

Tuning data only; the matching logic lives in article_filter.py and
ranking_service.py.
"""

from typing import Dict, FrozenSet, List


COUNTRY_NAMES: Dict[str, str] = {
    "us": "United States", "ca": "Canada", "mx": "Mexico", "cu": "Cuba",
    "jm": "Jamaica", "cr": "Costa Rica", "pa": "Panama", "do": "Dominican Republic",
    "gt": "Guatemala", "hn": "Honduras",
    "br": "Brazil", "ar": "Argentina", "cl": "Chile", "co": "Colombia", "pe": "Peru",
    "ve": "Venezuela", "ec": "Ecuador", "uy": "Uruguay", "py": "Paraguay", "bo": "Bolivia",
    "gb": "United Kingdom", "de": "Germany", "fr": "France", "it": "Italy", "es": "Spain",
    "nl": "Netherlands", "se": "Sweden", "no": "Norway", "pl": "Poland", "ch": "Switzerland",
    "be": "Belgium", "at": "Austria", "ie": "Ireland", "pt": "Portugal", "dk": "Denmark",
    "fi": "Finland", "gr": "Greece", "cz": "Czech Republic", "ro": "Romania", "hu": "Hungary",
    "ua": "Ukraine", "rs": "Serbia", "hr": "Croatia", "bg": "Bulgaria", "sk": "Slovakia",
    "lt": "Lithuania", "lv": "Latvia", "ee": "Estonia", "is": "Iceland", "lu": "Luxembourg",
    "cn": "China", "jp": "Japan", "in": "India", "kr": "South Korea", "sg": "Singapore",
    "hk": "Hong Kong", "tw": "Taiwan", "id": "Indonesia", "th": "Thailand", "my": "Malaysia",
    "ph": "Philippines", "vn": "Vietnam", "pk": "Pakistan", "bd": "Bangladesh", "lk": "Sri Lanka",
    "mm": "Myanmar", "kh": "Cambodia", "np": "Nepal",
    "il": "Israel", "ps": "Palestine", "ae": "UAE", "sa": "Saudi Arabia", "tr": "Turkey", "qa": "Qatar",
    "kw": "Kuwait", "bh": "Bahrain", "om": "Oman", "jo": "Jordan", "lb": "Lebanon",
    "iq": "Iraq", "ir": "Iran",
    "za": "South Africa", "ng": "Nigeria", "eg": "Egypt", "ke": "Kenya", "ma": "Morocco",
    "gh": "Ghana", "et": "Ethiopia", "tz": "Tanzania", "ug": "Uganda", "sn": "Senegal",
    "ci": "Ivory Coast", "cm": "Cameroon", "dz": "Algeria", "tn": "Tunisia", "rw": "Rwanda",
    "au": "Australia", "nz": "New Zealand", "fj": "Fiji", "pg": "Papua New Guinea",
}

COUNTRY_DEMONYMS: Dict[str, str] = {
    "us": "American", "ca": "Canadian", "mx": "Mexican", "cu": "Cuban",
    "jm": "Jamaican", "cr": "Costa Rican", "pa": "Panamanian", "do": "Dominican",
    "gt": "Guatemalan", "hn": "Honduran",
    "br": "Brazilian", "ar": "Argentine", "cl": "Chilean", "co": "Colombian",
    "pe": "Peruvian", "ve": "Venezuelan", "ec": "Ecuadorian", "uy": "Uruguayan",
    "py": "Paraguayan", "bo": "Bolivian",
    "gb": "British", "de": "German", "fr": "French", "it": "Italian",
    "es": "Spanish", "nl": "Dutch", "se": "Swedish", "no": "Norwegian",
    "pl": "Polish", "ch": "Swiss", "be": "Belgian", "at": "Austrian",
    "ie": "Irish", "pt": "Portuguese", "dk": "Danish", "fi": "Finnish",
    "gr": "Greek", "cz": "Czech", "ro": "Romanian", "hu": "Hungarian",
    "ua": "Ukrainian", "rs": "Serbian", "hr": "Croatian", "bg": "Bulgarian",
    "sk": "Slovak", "lt": "Lithuanian", "lv": "Latvian", "ee": "Estonian",
    "is": "Icelandic", "lu": "Luxembourgish", "si": "Slovenian", "ru": "Russian",
    "cn": "Chinese", "jp": "Japanese", "in": "Indian", "kr": "South Korean",
    "sg": "Singaporean", "hk": "Hong Kong", "tw": "Taiwanese", "id": "Indonesian",
    "th": "Thai", "my": "Malaysian", "ph": "Philippine", "vn": "Vietnamese",
    "pk": "Pakistani", "bd": "Bangladeshi", "lk": "Sri Lankan", "mm": "Myanmar",
    "kh": "Cambodian", "np": "Nepalese",
    "au": "Australian", "nz": "New Zealand", "fj": "Fijian", "pg": "Papua New Guinean",
    "il": "Israeli", "ps": "Palestinian", "ae": "Emirati", "sa": "Saudi",
    "tr": "Turkish", "qa": "Qatari", "kw": "Kuwaiti", "bh": "Bahraini",
    "om": "Omani", "jo": "Jordanian", "lb": "Lebanese", "iq": "Iraqi",
    "ir": "Iranian",
    "za": "South African", "ng": "Nigerian", "eg": "Egyptian", "ke": "Kenyan",
    "ma": "Moroccan", "gh": "Ghanaian", "et": "Ethiopian", "tz": "Tanzanian",
    "ug": "Ugandan", "sn": "Senegalese", "ci": "Ivorian", "cm": "Cameroonian",
    "dz": "Algerian", "tn": "Tunisian", "rw": "Rwandan",
}

# Curated country terms: name, demonym, capital and a few national institutions.
# Countries missing here fall back to their lower-cased display name.
COUNTRY_RELEVANCE_KEYWORDS: Dict[str, List[str]] = {
    "us": ["united states", "u.s.", "america", "washington", "white house", "congress", "senate", "pentagon"],
    "gb": ["united kingdom", "britain", "british", "u.k.", "london", "westminster", "downing street", "england", "scotland", "wales"],
    "ca": ["canada", "canadian", "ottawa", "toronto", "montreal", "vancouver", "quebec"],
    "au": ["australia", "australian", "canberra", "sydney", "melbourne", "queensland", "brisbane"],
    "nz": ["new zealand", "kiwi", "wellington", "auckland", "christchurch"],
    "ie": ["ireland", "irish", "dublin", "taoiseach", "dail"],
    "fr": ["france", "french", "paris", "macron", "elysee", "marseille", "lyon", "ligue 1"],
    "de": ["germany", "german", "berlin", "bundestag", "munich", "frankfurt", "bundesliga"],
    "it": ["italy", "italian", "rome", "milan", "serie a", "naples"],
    "es": ["spain", "spanish", "madrid", "barcelona", "la liga", "catalonia"],
    "in": ["india", "indian", "new delhi", "delhi", "mumbai", "modi", "bengaluru", "lok sabha"],
    "jp": ["japan", "japanese", "tokyo", "osaka", "kishida", "yen"],
    "cn": ["china", "chinese", "beijing", "shanghai", "xi jinping", "yuan"],
    "hk": ["hong kong", "kowloon"],
    "kr": ["south korea", "korean", "seoul", "busan"],
    "br": ["brazil", "brazilian", "brasilia", "sao paulo", "rio de janeiro", "lula"],
    "mx": ["mexico", "mexican", "mexico city", "guadalajara", "monterrey"],
    "za": ["south africa", "south african", "johannesburg", "pretoria", "cape town", "anc"],
    "ng": ["nigeria", "nigerian", "lagos", "abuja"],
    "ke": ["kenya", "kenyan", "nairobi", "mombasa"],
    "ua": ["ukraine", "ukrainian", "kyiv", "kiev", "zelensky", "kharkiv"],
    "il": ["israel", "israeli", "jerusalem", "tel aviv", "netanyahu", "knesset"],
    "sg": ["singapore", "singaporean"],
}

CATEGORY_QUERY_NOUNS: Dict[str, List[str]] = {
    "politics": ["politics", "government", "election", "parliament", "prime minister", "legislation", "policy"],
    "world": ["foreign policy", "diplomacy", "trade deal", "international relations", "summit"],
    "business": ["economy", "market", "industry", "trade", "central bank", "stocks", "finance"],
    "technology": ["tech", "startup", "innovation", "digital", "AI", "software", "cybersecurity"],
    "science": ["research", "science", "discovery", "climate", "space", "laboratory", "environment"],
    "health": ["health", "hospital", "healthcare", "medical", "disease", "public health"],
    "sports": ["sport", "team", "league", "championship", "football", "cricket", "athlete"],
    "gaming": ["gaming", "video game", "esports", "game industry"],
    "film": ["film", "movie", "cinema", "box office", "film industry"],
    "tv": ["television", "TV", "streaming", "TV series", "broadcast"],
}

# strong: one match confirms the category. weak: needs two hits, or one in the title.
CATEGORY_RELEVANCE_KEYWORDS: Dict[str, Dict[str, List[str]]] = {
    "politics": {
        "strong": [
            "politi", "parliament", "legislat", "senator", "congress",
            "ballot", "referendum", "bipartisan", "geopoliti", "impeach",
            "inaugurat", "gubernator", "governorship", "caucus", "filibuster",
            "executive order", "head of state", "prime minister", "veto",
        ],
        "weak": [
            "government", "elect", "minister", "president", "vote", "voter",
            "opposition", "coalition", "campaign", "democrat", "republican",
            "labor party", "liberal", "conservative", "cabinet", "regulation",
            "policy", "reform", "constitutional", "sanction", "diplomatic",
            "nato", "tariff", "populis", "authoritar", "regime", "judiciary",
            "governance", "sovereignty", "junta", "coup",
        ],
    },
    "world": {
        "strong": [
            "diplomacy", "diplomat", "united nations", "nato", "treaty",
            "bilateral", "multilateral", "peacekeep", "cease-fire", "ceasefire",
            "annexation", "territorial dispute", "border dispute",
        ],
        "weak": [
            "international", "foreign", "global", "summit", "sanction",
            "geopoliti", "embassy", "refugee", "humanitarian", "conflict",
            "alliance", "sovereignty", "occupation", "migration", "diaspora",
            "trade deal", "foreign aid", "foreign policy",
        ],
    },
    "business": {
        "strong": [
            "econom", "stock market", "financ", "gdp", "inflation", "interest rate",
            "merger", "acquisition", "ipo", "earnings", "dividend", "bankruptcy",
            "recession", "wall street", "dow jones", "nasdaq", "s&p 500",
            "supply chain", "quarterly", "fiscal", "monetary",
        ],
        "weak": [
            "business", "market", "stock", "bank", "invest", "profit", "revenue",
            "startup", "ceo", "industry", "commodit", "oil price", "crypto",
            "bitcoin", "retail", "consumer", "workforce", "export", "import",
            "shareholder", "valuation", "hedge fund", "venture capital",
            "central bank", "trade",
        ],
    },
    "technology": {
        "strong": [
            "artificial intelligen", "machine learning", "deep learning",
            "semiconductor", "silicon valley", "open source", "software",
            "cybersecur", "neural network", "large language model",
            "autonomous vehicl", "self-driving", "programming", "developer",
            "generative ai", "chatgpt", "openai", "github",
        ],
        "weak": [
            "tech", "hardware", "cyber", "robot", "comput", "chip",
            "cloud comput", "algorithm", "blockchain", "quantum comput",
            "internet", "encryption", "startup", "digital", "smartphone",
            "gadget", "browser", "operating system", "linux", "api",
            "augmented reality", "virtual reality", " vr ", " ar ",
        ],
    },
    "science": {
        "strong": [
            "scien", "nasa", "genome", "archaeolog", "paleontolog", "particle",
            "telescope", "laboratory", "peer-review", "peer review", "hypothesis",
            "biolog", "astrono", "geolog", "physicist", "chemist",
            "extinction", "biodiversity", "ecosystem", "photosynthes",
        ],
        "weak": [
            "research", "discover", "experiment", "space", "climate",
            "species", "fossil", "dna", "physics", "environ", "carbon",
            "evolution", "renewable", "solar", "fusion", "neurosci",
            "volcanic", "seismic", "marine biolog", "gene", "organism",
        ],
    },
    "health": {
        "strong": [
            "medical", "hospital", "patient", "disease", "vaccine", "pharma",
            "surgery", "mental health", "diagnosis", "symptom", "pandemic",
            "epidemic", "outbreak", "clinical trial", "oncolog", "cardio",
            "alzheimer", "dementia", "public health", "healthcare",
        ],
        "weak": [
            "health", "doctor", "virus", "treatment", "cancer", "diabet",
            "obesity", "clinic", "therapy", "nutrition", "wellness",
            "fitness", "nursing", "stroke", "chronic", "infectious",
            "immuniz", "prescription", "antibiotic", "organ transplant",
        ],
    },
    "sports": {
        "strong": [
            "championship", "tournament", "olympic", "fifa", "nba", "nfl",
            "premier league", "world cup", "athlet", "playoff", "grand slam",
            "super bowl", "champions league", "world series", "medal",
            "stadium", "transfer window", "world record",
        ],
        "weak": [
            "sport", "player", "coach", "league", "goal", "defeat",
            "cricket", "football", "soccer", "tennis", "rugby", "boxing",
            "hockey", "baseball", "basketball", "qualifier", "roster",
            "draft pick", "injury report", "halftime", "referee",
        ],
    },
    "gaming": {
        "strong": [
            "video game", "esport", "playstation", "xbox", "nintendo",
            "game developer", "gameplay", "game pass", "battle royale",
            "mmorpg", "game engine", "unreal engine", "early access",
            "indie game", "game studio", "dlc",
        ],
        "weak": [
            "gaming", "console", "gamer", "multiplayer", "twitch",
            "rpg", "game update", "game patch", "frame rate", "modding",
            "speedrun", "game release", "co-op", "open world",
        ],
    },
    "film": {
        "strong": [
            "box office", "screenplay", "hollywood", "blockbuster",
            "oscar", "academy award", "golden globe", "bafta",
            "film festival", "cannes", "sundance", "tribeca",
            "cinematograph", "film director",
        ],
        "weak": [
            "film", "movie", "cinema", "director", "actor", "actress",
            "premiere", "sequel", "franchise", "animation", "documentary",
            "trailer", "film critic", "casting",
        ],
    },
    "tv": {
        "strong": [
            "tv show", "tv series", "showrunner", "series finale",
            "primetime", "cable network", "reality tv", "talk show",
            "miniseries", "anthology series", "sitcom", "drama series",
            "late night", "television show",
        ],
        "weak": [
            "television", "netflix", "hbo", "disney+", "episode",
            "renewal", "cancell", "streaming service", "season premiere",
            "season finale", "reboot", "spinoff", "broadcast",
            "emmys", "emmy",
        ],
    },
}

# Wire services and international broadcasters: no home-country bonus
INTERNATIONAL_SOURCES: FrozenSet[str] = frozenset({
    "reuters.com", "apnews.com", "bbc.co.uk", "bbc.com",
    "aljazeera.com", "france24.com", "dw.com",
    "theconversation.com",
})

# Outlets whose country is not visible from the TLD
DOMAIN_COUNTRY: Dict[str, str] = {
    "reuters.com": "gb", "apnews.com": "us", "bbc.com": "gb",
    "nytimes.com": "us", "washingtonpost.com": "us", "cnn.com": "us",
    "npr.org": "us", "abcnews.go.com": "us", "cbsnews.com": "us",
    "nbcnews.com": "us", "pbs.org": "us", "politico.com": "us",
    "wsj.com": "us", "bloomberg.com": "us", "espn.com": "us",
    "theguardian.com": "gb", "economist.com": "gb", "ft.com": "gb",
    "theconversation.com": "au", "aljazeera.com": "qa",
    "france24.com": "fr", "dw.com": "de", "scmp.com": "hk",
    "thehindu.com": "in", "timesofindia.indiatimes.com": "in",
    "straitstimes.com": "sg", "channelnewsasia.com": "sg",
    "koreaherald.com": "kr", "kyivindependent.com": "ua",
    "timesofisrael.com": "il", "arabnews.com": "sa",
    "thenationalnews.com": "ae", "bangkokpost.com": "th",
    "brazilianreport.com": "br", "mexiconewsdaily.com": "mx",
    "nation.africa": "ke", "inquirer.net": "ph", "rappler.com": "ph",
    "notesfrompoland.com": "pl",
}

# Second-level suffixes that carry a country, e.g. bbc.co.uk
SECOND_LEVEL_TLD_COUNTRY: Dict[str, str] = {
    "co.uk": "gb", "org.uk": "gb", "ac.uk": "gb",
    "com.au": "au", "net.au": "au", "org.au": "au",
    "co.nz": "nz", "co.za": "za", "co.in": "in",
    "com.br": "br", "com.ar": "ar", "com.mx": "mx",
    "co.jp": "jp", "com.sg": "sg", "com.hk": "hk",
    "co.kr": "kr", "com.ng": "ng", "co.ke": "ke",
}

# ccTLDs widely used by non-national sites
GENERIC_CCTLDS: FrozenSet[str] = frozenset({"io", "co", "ai", "tv", "me", "ly", "fm", "to"})

TRUSTED_DOMAINS: List[str] = [
    # General / wire
    "reuters.com", "bbc.co.uk", "bbc.com", "apnews.com", "theguardian.com",
    "abc.net.au", "nytimes.com", "washingtonpost.com", "aljazeera.com",
    "npr.org", "cnn.com", "abcnews.go.com", "cbsnews.com", "nbcnews.com",
    "pbs.org", "theconversation.com",
    # Regional
    "smh.com.au", "theaustralian.com.au", "france24.com", "dw.com",
    "scmp.com", "timesofindia.indiatimes.com", "thehindu.com",
    "japantimes.co.jp", "straitstimes.com",
    # Business & finance
    "politico.com", "economist.com", "ft.com", "bloomberg.com", "wsj.com",
    # Technology
    "arstechnica.com", "wired.com", "techcrunch.com", "theverge.com",
    "engadget.com", "thenextweb.com",
    # Science
    "nationalgeographic.com", "newscientist.com",
    # Sports
    "espn.com",
    # Gaming
    "ign.com", "polygon.com",
    # Film & TV
    "ew.com", "buzzfeed.com",
]

SOURCE_AUTHORITY_TIER: Dict[str, int] = {
    # Tier 3: wire services and top international
    "reuters.com": 3, "apnews.com": 3, "bbc.co.uk": 3, "bbc.com": 3,
    "nytimes.com": 3, "theguardian.com": 3, "washingtonpost.com": 3,
    "economist.com": 3, "ft.com": 3, "bloomberg.com": 3,
    # Tier 2: strong nationals and specialists
    "cnn.com": 2, "npr.org": 2, "abc.net.au": 2, "aljazeera.com": 2,
    "wsj.com": 2, "politico.com": 2, "abcnews.go.com": 2, "cbsnews.com": 2,
    "nbcnews.com": 2, "pbs.org": 2, "france24.com": 2, "dw.com": 2,
    "arstechnica.com": 2, "wired.com": 2, "techcrunch.com": 2, "theverge.com": 2,
    "espn.com": 2, "scmp.com": 2, "theconversation.com": 2,
    "timesofindia.indiatimes.com": 2, "thehindu.com": 2,
    "caixinglobal.com": 2, "asia.nikkei.com": 2,
    "dailymaverick.co.za": 2, "koreaherald.com": 2, "channelnewsasia.com": 2,
    "kyivindependent.com": 2, "timesofisrael.com": 2, "arabnews.com": 2,
    "thenationalnews.com": 2, "bangkokpost.com": 2, "mercopress.com": 2,
    # Tier 1: quality regionals (also the default)
    "brazilianreport.com": 1, "batimes.com.ar": 1, "mexiconewsdaily.com": 1,
    "businessday.ng": 1, "nation.africa": 1, "africanews.com": 1,
    "middleeasteye.net": 1, "jakartaglobe.id": 1, "inquirer.net": 1,
    "rappler.com": 1, "notesfrompoland.com": 1, "meduza.io": 1,
}

STOP_WORDS: FrozenSet[str] = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
    "be", "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "shall", "can", "need", "it", "its", "that",
    "this", "these", "those", "what", "which", "who", "whom", "how", "when",
    "where", "why", "not", "no", "nor", "than", "too", "very", "just",
    "about", "over", "after", "before", "between", "under", "above", "into",
    "through", "during", "each", "some", "such", "only", "also", "more",
    "most", "other", "new", "says", "said", "according", "report", "news",
    "announces", "announced", "reveals", "revealed", "confirms", "confirmed",
    "updates", "updated", "launches", "launched", "reports", "reported",
    "shows", "warns", "warned", "plans", "faces", "calls", "called",
    "urges", "urged", "seeks", "signs", "signed", "set", "sets",
    "makes", "made", "takes", "taken", "gets", "got", "comes", "going",
    "first", "latest", "ahead", "back", "still", "amid", "top",
})

# Headline verbs and nouns that different desks use for the same event.
# Folded onto one token before clustering so paraphrased headlines overlap.
HEADLINE_SYNONYMS: Dict[str, str] = {
    "passes": "pass", "passed": "pass", "approves": "pass", "approved": "pass",
    "approve": "pass", "clears": "pass", "cleared": "pass", "adopts": "pass",
    "adopted": "pass", "backs": "pass", "backed": "pass",
    "legislation": "bill", "bills": "bill", "measure": "bill",
    "taxes": "tax", "taxation": "tax",
    "wins": "win", "won": "win", "beats": "win", "beat": "win",
    "defeats": "win", "defeated": "win",
    "kills": "kill", "killed": "kill", "killing": "kill",
    "resigns": "resign", "resigned": "resign", "quits": "resign", "quit": "resign",
    "bans": "ban", "banned": "ban", "bars": "ban", "barred": "ban",
    "rises": "rise", "rose": "rise", "climbs": "rise", "surges": "rise", "jumps": "rise",
    "falls": "fall", "fell": "fall", "drops": "fall", "slides": "fall", "plunges": "fall",
    "elections": "election", "polls": "election",
}
