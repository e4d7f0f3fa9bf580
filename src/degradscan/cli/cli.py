"""Command-line interface for DegradScan."""

import asyncio
import json
import logging
from pathlib import Path

import click

from degradscan.config import get_settings
from degradscan.models import RequestContext
from degradscan.services.llm import check_llm_health
from degradscan.services.pipeline import build_default_pipeline
from degradscan.services.reference_resolver import resolve_references


@click.group()
@click.version_option(package_name="degradscan")
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level")
def main(verbose: bool):
    """DegradScan: degradation products of chemical substances."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else get_settings().log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("-s", "--substance", required=True, help="Substance name to look up")
@click.option(
    "--resolve-refs",
    is_flag=True,
    help="Resolve references to Crossref/PubMed metadata",
)
@click.option("-o", "--output", type=click.Path(), help="Output file path (JSON)")
def report(substance: str, resolve_refs: bool, output: str | None):
    """Show the degradation report for a substance."""
    pipeline = build_default_pipeline()
    context = RequestContext(ip="cli", user_agent="degradscan-cli")
    outcome = asyncio.run(pipeline.resolve_detailed(substance, context))

    click.echo(
        f"Degradation products of {substance} "
        f"(source: {outcome.provenance.value}, {outcome.latency_ms:.0f}ms):"
    )
    for i, product in enumerate(outcome.report.products, 1):
        click.echo(f"  {i}. {product.substance}")
        click.echo(f"     route: {product.degradation_route}")
        click.echo(f"     conditions: {product.environmental_conditions}")
        click.echo(f"     toxicity: {product.toxicity_data}")

    click.echo("References:")
    for ref in outcome.report.references:
        click.echo(f"  - {ref}")

    payload = {
        "substance": substance,
        "source": outcome.provenance.value,
        **outcome.report.to_payload(),
    }
    if resolve_refs:
        items = asyncio.run(resolve_references(outcome.report.references))
        payload["referenceMetadata"] = [i.model_dump(by_alias=True) for i in items]
        for item in items:
            link = item.pubmed_url or item.url
            click.echo(f"  [{item.id}] {item.title} {link}")

    if output:
        Path(output).write_text(json.dumps(payload, indent=2, ensure_ascii=False))
        click.echo(f"\nResults saved to: {output}")


@main.command()
@click.argument("citations", nargs=-1, required=True)
def refs(citations: tuple[str, ...]):
    """Resolve citation strings to DOI/PMID metadata."""
    items = asyncio.run(resolve_references(list(citations)))
    click.echo(json.dumps([i.model_dump(by_alias=True) for i in items], indent=2))


@main.command()
def health():
    """Check the synthesis service configuration and reachability."""
    result = asyncio.run(check_llm_health())
    click.echo(json.dumps(result, indent=2))
    if not result["ok"]:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
