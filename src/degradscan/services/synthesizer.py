"""
Degradation report synthesis via the LLM.

Strategy ("deepen"): ask for at least MIN_PRODUCTS products; if fewer come
back, ask once more for EXPANSION_MIN_PRODUCTS additional products that are
not in the first list, then merge without duplicates.
"""

import logging

from degradscan.config import Settings, get_settings
from degradscan.constants import EXPANSION_MIN_PRODUCTS, MAX_PRODUCTS, MIN_PRODUCTS
from degradscan.errors import CredentialMissing, ParseError, UpstreamError
from degradscan.models import DegradationProduct, DegradationReport
from degradscan.services.llm import query_llm
from degradscan.services.report_parser import parse_report

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert in analytical chemistry. "
    "Answer only with valid JSON as requested."
)
EXPANSION_SYSTEM_PROMPT = "Answer only with valid JSON."

_SCHEMA_EXAMPLE = """{
  "products": [
    {
      "substance": "name of the compound formed",
      "degradationRoute": "chemical degradation pathway",
      "environmentalConditions": "environmental conditions that favour it",
      "toxicityData": "reported toxicity data"
    }
  ],
  "references": [
    "reference 1 (DOI/PMID/URL)",
    "reference 2 (DOI/PMID/URL)"
  ]
}"""

REPORT_PROMPT = (
    "As a senior analytical chemistry expert, run a thorough scientific search on "
    "the degradation products of {substance}. List in detail the products formed, "
    "the degradation pathway, the environmental conditions and the reported "
    "toxicity data.\n\n"
    "Requirements:\n"
    "- List at least {min_products} distinct products, up to {max_products} if "
    "there is evidence.\n"
    "- Prefer references with a DOI, a PMID or an indexed source (PubMed, Reaxys, "
    "SciFinder, ICH, USP).\n"
    "- Do not include comments or markdown; answer with valid JSON only.\n\n"
    "Response format:\n{schema}"
)

EXPANSION_PROMPT = (
    "Add more degradation products of {substance} that are not in the list below. "
    "Keep the same JSON format and do not repeat items. List at least "
    "{min_products} new products.\n\n"
    "List to avoid:\n{exclusions}\n\n"
    "Format:\n{schema}"
)


def build_prompt(substance_name: str) -> str:
    return REPORT_PROMPT.format(
        substance=substance_name,
        min_products=MIN_PRODUCTS,
        max_products=MAX_PRODUCTS,
        schema=_SCHEMA_EXAMPLE,
    )


def build_expansion_prompt(substance_name: str, existing_names: list[str]) -> str:
    exclusions = "\n".join(f"- {name}" for name in existing_names) or "- (none)"
    return EXPANSION_PROMPT.format(
        substance=substance_name,
        min_products=EXPANSION_MIN_PRODUCTS,
        exclusions=exclusions,
        schema=_SCHEMA_EXAMPLE,
    )


def merge_reports(base: DegradationReport, extra: DegradationReport) -> DegradationReport:
    """Append products from ``extra`` that are not field-for-field in ``base``.

    References are unioned by exact string, first appearance wins.
    """
    seen: set[DegradationProduct] = set(base.products)
    products = list(base.products)
    for product in extra.products:
        if product not in seen:
            seen.add(product)
            products.append(product)

    references = list(dict.fromkeys([*base.references, *extra.references]))
    return DegradationReport(products=products, references=references)


async def fetch_report(
    substance_name: str, settings: Settings | None = None
) -> DegradationReport:
    """Single primary request.

    Raises:
        CredentialMissing: no OpenRouter key configured.
        UpstreamError: non-success status from OpenRouter.
        ParseError: the answer held no recoverable report.
    """
    settings = settings or get_settings()
    if not settings.has_llm_credential:
        raise CredentialMissing("OPEN_ROUTER_API_KEY is not set")

    content = await query_llm(build_prompt(substance_name), SYSTEM_PROMPT, settings)
    return parse_report(content)


async def fetch_report_deep(
    substance_name: str, settings: Settings | None = None
) -> DegradationReport:
    """Primary request, topped up by one expansion request when short.

    The expansion is best-effort: any upstream or parse failure keeps the
    primary result. Fewer than MIN_PRODUCTS after expansion is returned as-is.
    """
    settings = settings or get_settings()
    first = await fetch_report(substance_name, settings)
    if len(first.products) >= MIN_PRODUCTS:
        return first

    logger.info(
        "Only %d products for %s, requesting expansion",
        len(first.products),
        substance_name,
    )
    prompt = build_expansion_prompt(substance_name, first.product_names())
    try:
        content = await query_llm(prompt, EXPANSION_SYSTEM_PROMPT, settings)
        second = parse_report(content)
    except (UpstreamError, ParseError) as e:
        logger.warning("Expansion for %s failed, keeping primary result: %s", substance_name, e)
        return first

    merged = merge_reports(first, second)
    logger.info(
        "Expansion for %s: %d -> %d products",
        substance_name,
        len(first.products),
        len(merged.products),
    )
    return merged
