"""
Parsing of LLM answers into DegradationReport.

Tiers, in order:
    1. the whole text is a JSON object
    2. a fenced ```json block inside the text
    3. the first balanced {...} fragment that parses
    4. a pipe-delimited table plus a references section (free text)
"""

import json
import logging
import re
from collections.abc import Iterator

from degradscan.constants import TEXT_PLACEHOLDER
from degradscan.errors import ParseError
from degradscan.models import DegradationProduct, DegradationReport
from degradscan.services.mock_reports import get_mock_report

logger = logging.getLogger(__name__)

_FENCED = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
# A heading line on its own, e.g. "## References:" or "**Referências bibliográficas**".
_REFERENCES_HEADING = re.compile(
    r"^\W*(?:references?|bibliograph\w*|refer[eê]ncias?|bibliografia)(?:\s+\w+)?\W*$",
    re.IGNORECASE,
)
_SEPARATOR_ROW = re.compile(r"^[\s|:\-+=]+$")
_BULLET = re.compile(r"^(?:[-*•]|\d+[.)])\s+")
_HEADER_CELLS: frozenset[str] = frozenset(
    {
        "product",
        "products",
        "substance",
        "degradation product",
        "degradation products",
        "degradation route",
        "environmental conditions",
        "toxicity",
        "toxicity data",
        "produto",
        "produtos",
    }
)
FALLBACK_REFERENCE = (
    "Consult specialized scientific literature for detailed information "
    "on degradation products."
)


def _load_report(text: str) -> DegradationReport | None:
    """Strict JSON load; None unless it is a report with at least one product.

    A missing ``references`` list is read as empty.
    """
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    report = DegradationReport.from_payload(payload, require_all=False)
    if report is None or not report.products:
        return None
    return report


def _balanced_fragments(text: str) -> Iterator[str]:
    """Yield top-level ``{...}`` fragments, honouring JSON string escapes."""
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start : i + 1]


def parse_structured(text: str) -> DegradationReport | None:
    """Run the three JSON tiers; None when none of them yields a report."""
    report = _load_report(text.strip())
    if report is not None:
        return report

    for block in _FENCED.findall(text):
        report = _load_report(block.strip())
        if report is not None:
            logger.debug("Parsed report from fenced block")
            return report

    for fragment in _balanced_fragments(text):
        report = _load_report(fragment)
        if report is not None:
            logger.debug("Parsed report from embedded JSON fragment")
            return report
    return None


def _split_row(line: str) -> list[str]:
    return [cell.strip() for cell in line.split("|") if cell.strip()]


def _is_header_row(cells: list[str]) -> bool:
    return any(cell.lower().strip("*_ ") in _HEADER_CELLS for cell in cells)


def extract_table_report(text: str) -> DegradationReport | None:
    """Recover products from a pipe table and references from a trailing section.

    Returns None when no product row is found.
    """
    products: list[DegradationProduct] = []
    references: list[str] = []
    in_references = False

    for line in (ln.strip() for ln in text.splitlines()):
        if not line:
            continue
        if "|" not in line and _REFERENCES_HEADING.search(line) and not in_references:
            in_references = True
            continue

        if in_references:
            if "|" not in line:
                ref = _BULLET.sub("", line).strip()
                if ref:
                    references.append(ref)
            continue

        if "|" not in line or _SEPARATOR_ROW.match(line):
            continue
        cells = _split_row(line)
        if _is_header_row(cells) or len(cells) < 4:
            continue
        padded = cells + [TEXT_PLACEHOLDER] * (4 - len(cells))
        products.append(
            DegradationProduct(
                substance=padded[0] or TEXT_PLACEHOLDER,
                degradation_route=padded[1] or TEXT_PLACEHOLDER,
                environmental_conditions=padded[2] or TEXT_PLACEHOLDER,
                toxicity_data=padded[3] or TEXT_PLACEHOLDER,
            )
        )

    if not products:
        return None
    if not references:
        references.append(FALLBACK_REFERENCE)
    return DegradationReport(products=products, references=references)


def parse_report(text: str) -> DegradationReport:
    """Parse an LLM answer through all tiers.

    Raises:
        ParseError: if neither the JSON tiers nor the table parser recover
            at least one product.
    """
    if not text or not text.strip():
        raise ParseError("Empty response text")

    report = parse_structured(text)
    if report is not None:
        return report

    report = extract_table_report(text)
    if report is not None:
        logger.info("Structured parse failed, recovered %d rows from text table", len(report.products))
        return report

    raise ParseError(f"No degradation report found in response: {text[:200]!r}")


def parse_text_response(text: str, substance_name: str) -> DegradationReport:
    """Free-text table parse that falls back to the mock report. Never raises.

    The public entry point for callers holding plain model text; synthesis
    itself goes through ``parse_report`` so a failed parse reaches the
    pipeline as ParseError.
    """
    report = extract_table_report(text or "")
    if report is None:
        logger.info("No table rows found for %s, using mock report", substance_name)
        return get_mock_report(substance_name)
    return report
