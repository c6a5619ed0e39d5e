"""
Static lookup tables for news scoring.

Matching is a lower-case substring search, so trailing spaces are
significant: "fed " does not match "federal", "cpi " does not match "cpis".
"""

# Macro and systemic events: 3 points each
HIGH_KEYWORDS = (
    "fed ",
    "federal reserve",
    "fomc",
    "rate cut",
    "rate hike",
    "interest rate",
    "recession",
    "crash",
    "bear market",
    "bull market",
    "circuit breaker",
    "trading halt",
    "market crash",
    "black monday",
    "inflation data",
    "jobs report",
    "nonfarm payroll",
    "cpi ",
    "ppi ",
    "gdp ",
)

# Corporate actions: 1 point each
MEDIUM_KEYWORDS = (
    "earnings beat",
    "earnings miss",
    "earnings surprise",
    "revenue beat",
    "sec ",
    "ipo ",
    "acquisition",
    "merger",
    "takeover",
    "buyout",
    "layoffs",
    "bankruptcy",
    "investigation",
    "fraud",
    "downgrade",
    "upgrade",
    "price target",
    "guidance",
    "stock split",
    "dividend",
    "buyback",
    "recall",
    "tariff",
    "sanction",
    "regulation",
)

# +2 when the article is about one of these
MEGA_CAP_TICKERS = frozenset({
    "AAPL", "MSFT", "GOOGL", "GOOG", "AMZN", "NVDA", "META", "TSLA",
    "BRK.A", "BRK.B", "JPM", "V", "UNH", "MA", "JNJ", "WMT", "XOM",
    "PG", "HD", "BAC", "COST", "AVGO", "LLY", "ABBV", "KO", "PEP",
    "MRK", "CRM", "AMD", "NFLX", "ADBE", "ORCL", "INTC", "DIS",
})

HIGH_WEIGHT = 3
MEDIUM_WEIGHT = 1
MEGA_CAP_BONUS = 2
