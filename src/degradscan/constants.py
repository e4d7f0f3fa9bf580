"""Project-wide constants."""

from pathlib import Path

# -- Base client defaults ---------------------------------------------------
DEFAULT_TIMEOUT: float = 30.0
DEFAULT_MAX_RETRIES: int = 3

# -- Cache ------------------------------------------------------------------
# Anchored to the project root (two levels above this package's src/ dir) so
# that a single _cache/ directory is used regardless of the working directory
# from which tests or scripts are launched.
_PROJECT_ROOT: Path = Path(__file__).parent.parent.parent
DEFAULT_CACHE_DIR: Path = _PROJECT_ROOT / "_cache"
CACHE_TTL: int = 5 * 86400  # registry responses; report cache entries never expire
REPORT_CACHE_NAMESPACE: str = "degradation_report"

# -- OpenRouter -------------------------------------------------------------
OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
OPENROUTER_CHAT_URL: str = f"{OPENROUTER_BASE_URL}/chat/completions"
OPENROUTER_MODELS_URL: str = f"{OPENROUTER_BASE_URL}/models"
OPENROUTER_REFERER: str = "http://localhost:3000/"
OPENROUTER_TITLE: str = "DegradScan"
DEFAULT_LLM_MODEL: str = "anthropic/claude-3.5-sonnet"
LLM_TEMPERATURE: float = 0.2
LLM_MAX_TOKENS: int = 4000

# -- Report synthesis -------------------------------------------------------
MIN_PRODUCTS: int = 8  # soft target for the primary prompt
MAX_PRODUCTS: int = 12
EXPANSION_MIN_PRODUCTS: int = 6
TEXT_PLACEHOLDER: str = "Not specified"

# -- Crossref ---------------------------------------------------------------
CROSSREF_WORKS_URL: str = "https://api.crossref.org/works"
DOI_RESOLVER_URL: str = "https://doi.org"

# -- PubMed / NCBI ----------------------------------------------------------
NCBI_BASE_URL: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
PUBMED_SEARCH_URL: str = f"{NCBI_BASE_URL}/esearch.fcgi"
PUBMED_SUMMARY_URL: str = f"{NCBI_BASE_URL}/esummary.fcgi"
PUBMED_ARTICLE_URL: str = "https://pubmed.ncbi.nlm.nih.gov"
NCBI_REQUESTS_PER_SECOND: float = 3.0
NCBI_REQUESTS_PER_SECOND_WITH_KEY: float = 10.0
