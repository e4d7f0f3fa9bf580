"""
Canned degradation reports.

Terminal fallback for every failure path: used when no synthesis credential is
configured and when the pipeline hits an unrecoverable error. ``get_mock_report``
never raises and always returns non-empty products and references.
"""

import logging

from degradscan.helpers.substance_helpers import normalize_substance_name
from degradscan.models import DegradationProduct, DegradationReport

logger = logging.getLogger(__name__)

_PARACETAMOL = DegradationReport(
    products=[
        DegradationProduct(
            substance="N-acetyl-p-benzoquinone imine (NAPQI)",
            degradation_route="Metabolic oxidation via CYP2E1",
            environmental_conditions="Physiological pH, presence of oxygen, body temperature (37°C)",
            toxicity_data="Highly hepatotoxic; responsible for paracetamol toxicity in overdose",
        ),
        DegradationProduct(
            substance="p-Aminophenol",
            degradation_route="Hydrolysis of the amide bond",
            environmental_conditions="Acidic pH (< 4), elevated temperature (> 60°C), high humidity",
            toxicity_data="Moderately toxic; may cause methemoglobinemia and nephrotoxicity",
        ),
        DegradationProduct(
            substance="p-Hydroxybenzoic acid",
            degradation_route="Oxidation of the amino group followed by deamination",
            environmental_conditions="Oxidizing agents, UV light, alkaline pH (> 8)",
            toxicity_data="Low toxicity; used as a food preservative (E-214)",
        ),
    ],
    references=[
        "Larson, A. M., et al. (2005). Acetaminophen-induced acute liver failure: results of a United States multicenter, prospective study. Hepatology, 42(6), 1364-1372.",
        "McGill, M. R., & Jaeschke, H. (2013). Metabolism and disposition of acetaminophen: recent advances in relation to hepatotoxicity and diagnosis. Pharmaceutical Research, 30(9), 2174-2187.",
        "Prescott, L. F. (2000). Paracetamol, alcohol and the liver. British Journal of Clinical Pharmacology, 49(4), 291-301.",
        "Dahlin, D. C., et al. (1984). N-acetyl-p-benzoquinone imine: a cytochrome P-450-mediated oxidation product of acetaminophen. Proceedings of the National Academy of Sciences, 81(5), 1327-1331.",
    ],
)

_IBUPROFEN = DegradationReport(
    products=[
        DegradationProduct(
            substance="2-[4-(2-Carboxypropyl)phenyl]propionic acid",
            degradation_route="Oxidation of the isobutyl side chain",
            environmental_conditions="Neutral pH (6-8), presence of oxygen, enzymatic catalysis (CYP2C9)",
            toxicity_data="Moderate renal toxicity; less nephrotoxic than the parent compound",
        ),
        DegradationProduct(
            substance="4-Isobutylphenol",
            degradation_route="Thermal decarboxylation",
            environmental_conditions="Elevated temperature (> 80°C), acidic pH (< 3), absence of water",
            toxicity_data="Potential skin and eye irritant; limited systemic toxicity data",
        ),
        DegradationProduct(
            substance="2-[4-(1-Hydroxy-2-methylpropyl)phenyl]propionic acid",
            degradation_route="Side-chain hydroxylation",
            environmental_conditions="CYP enzymes present, physiological pH, body temperature",
            toxicity_data="Toxicity profile similar to ibuprofen, lower anti-inflammatory activity",
        ),
    ],
    references=[
        "Davies, N. M. (1998). Clinical pharmacokinetics of ibuprofen. Clinical Pharmacokinetics, 34(2), 101-154.",
        "Rainsford, K. D. (2009). Ibuprofen: pharmacology, efficacy and safety. Inflammopharmacology, 17(6), 275-342.",
        "Mazaleuskaya, L. L., et al. (2015). PharmGKB summary: ibuprofen pathways. Pharmacogenetics and Genomics, 25(2), 96-106.",
    ],
)

MOCK_REPORTS: dict[str, DegradationReport] = {
    "paracetamol": _PARACETAMOL,
    "acetaminophen": _PARACETAMOL,
    "ibuprofen": _IBUPROFEN,
}

GENERIC_REFERENCES: list[str] = [
    "For substance-specific degradation products, consult specialized databases such as PubMed, SciFinder or Reaxys.",
    "ICH Q1A(R2) - Stability Testing of New Drug Substances and Products.",
    "USP <1225> Validation of Compendial Procedures - Analytical validation guidelines.",
]


def get_mock_report(substance_name: str) -> DegradationReport:
    """Return the canned report for a known substance, else a generic one."""
    name = (substance_name or "").strip()
    report = MOCK_REPORTS.get(normalize_substance_name(name))
    if report is not None:
        return report.model_copy(deep=True)

    logger.debug("No canned report for %r, using generic guidance", name)
    return DegradationReport(
        products=[
            DegradationProduct(
                substance=f"Degradation products of {name or 'the substance'}",
                degradation_route="Several pathways are possible (hydrolysis, oxidation, photolysis)",
                environmental_conditions="Depends on the specific conditions (pH, temperature, light, oxygen)",
                toxicity_data="Substance-specific toxicity data requires a detailed literature review",
            )
        ],
        references=list(GENERIC_REFERENCES),
    )
