"""CLI entry point for SmartCart."""

import logging

import click

from . import __version__
from .api import KrogerAPI, WalmartAPI
from .config import clear_credentials, get_max_workers, save_credentials
from .errors import AuthenticationError, ProductAPIError
from .matcher import find_best_matches
from .models import PickStatus, RawCandidate
from .shopping import PriceLookup, ShoppingComparison, kroger_source, walmart_source
from .suggestions import suggest_substitute

STORES = ("kroger", "walmart")


def get_kroger_api() -> KrogerAPI:
    return KrogerAPI()


def get_walmart_api() -> WalmartAPI:
    return WalmartAPI()


def format_price(price: float | None) -> str:
    if price is not None and price > 0:
        return f"${price:.2f}"
    return "—"


def display_products(products: list[RawCandidate]) -> None:
    """Display a ranked product list."""
    for i, product in enumerate(products, 1):
        click.echo(f"{i}. {product.name}")
        details = [d for d in (product.brand, product.size) if d]
        if details:
            click.echo(f"   {' · '.join(details)}")
        availability = "" if product.available is not False else " (out of stock)"
        click.echo(f"   {format_price(product.price)}{availability}")


def display_comparison(comparison: ShoppingComparison) -> None:
    """Display best picks per ingredient and the store totals."""
    click.echo()
    click.echo("=" * 60)
    click.echo("BEST PRICES")
    click.echo("=" * 60)

    picks = comparison.best_picks()
    for i, ingredient in enumerate(comparison.ingredients, 1):
        pick = picks[ingredient]
        click.echo(f"\n{i}. {ingredient}")
        if pick.status is PickStatus.NOT_FOUND:
            click.echo("   ✗ Not found")
            suggestion = suggest_substitute(ingredient)
            if suggestion:
                click.echo(f"   Try instead: {suggestion}")
            continue
        click.echo(f"   → {pick.product_name} at {pick.source}")
        click.echo(f"   Price: {format_price(pick.price)}")

    click.echo()
    click.echo("-" * 60)
    totals = comparison.totals()
    for source in comparison.sources:
        found = comparison.found_count(source)
        click.echo(
            f"{source}: {format_price(totals[source])} "
            f"({found} of {len(comparison.ingredients)} found)"
        )

    result = comparison.comparison()
    if result.has_winner and result.savings > 0:
        click.echo(f"Save {format_price(result.savings)} at {result.cheapest}")
    for source, error in comparison.failures.items():
        click.echo(f"⚠️  {source} unavailable: {error}", err=True)
    click.echo("-" * 60)


# ============================================================================
# Main CLI Group
# ============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="smartcart")
@click.option("--verbose", "-v", is_flag=True, help="Log search queries and fallbacks")
def cli(verbose: bool):
    """SmartCart: match recipe ingredients to grocery products.

    Finds the best Kroger and Walmart products for each ingredient line and
    compares what the list costs at each store.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ============================================================================
# Credential Commands
# ============================================================================


@cli.command()
@click.option("--kroger-client-id", prompt="Kroger client ID", default="", show_default=False)
@click.option(
    "--kroger-client-secret",
    prompt="Kroger client secret",
    hide_input=True,
    default="",
    show_default=False,
)
@click.option(
    "--serpapi-key", prompt="SerpAPI key", hide_input=True, default="", show_default=False
)
def configure(kroger_client_id: str, kroger_client_secret: str, serpapi_key: str):
    """Save API credentials locally."""
    save_credentials(
        kroger_client_id=kroger_client_id,
        kroger_client_secret=kroger_client_secret,
        serpapi_api_key=serpapi_key,
    )
    click.echo("✓ Credentials saved")


@cli.command()
def logout():
    """Clear saved credentials."""
    clear_credentials()
    click.echo("✓ Credentials cleared")


# ============================================================================
# Search Commands
# ============================================================================


@cli.command()
@click.argument("zip_code")
def stores(zip_code: str):
    """List Kroger-family stores near a ZIP code."""
    api = get_kroger_api()

    try:
        locations = api.find_locations(zip_code)
    except ValueError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None
    except ProductAPIError as e:
        click.echo(f"✗ Store lookup failed: {e}", err=True)
        raise SystemExit(1) from None

    if not locations:
        click.echo("No stores found near that ZIP code.")
        return

    for location in locations:
        click.echo(f"{location.location_id}  {location.name}")
        if location.address:
            click.echo(f"    {location.address}")


@cli.command()
@click.argument("ingredient")
@click.option("--store", "-s", type=click.Choice(STORES), default="kroger", show_default=True)
@click.option("--location", "-l", "location_id", help="Kroger store location ID")
def find(ingredient: str, store: str, location_id: str | None):
    """Find the best products for one ingredient line.

    Examples:

    \b
        smartcart find "2 cups chopped fresh cilantro"
        smartcart find "1 lb ground beef" --store walmart
    """
    if store == "kroger":
        source = kroger_source(get_kroger_api(), location_id)
    else:
        source = walmart_source(get_walmart_api())

    try:
        products = find_best_matches(ingredient, source.search, policy=source.policy)
    except AuthenticationError as e:
        click.echo(f"✗ {store} authentication failed: {e}", err=True)
        raise SystemExit(1) from None

    if not products:
        click.echo(f"✗ No match found for '{ingredient}'")
        suggestion = suggest_substitute(ingredient)
        if suggestion:
            click.echo(f"Try instead: {suggestion}")
        return

    display_products(products)


@cli.command()
@click.argument("items", nargs=-1, required=True)
@click.option("--location", "-l", "location_id", help="Kroger store location ID")
@click.option("--zip", "zip_code", help="Use the nearest Kroger store to this ZIP code")
@click.option("--workers", "-w", type=int, default=None, help="Concurrent lookups")
def compare(items: tuple[str, ...], location_id: str | None, zip_code: str | None, workers: int | None):
    """Compare a shopping list across Kroger and Walmart.

    Examples:

    \b
        smartcart compare "2 eggs" "1 cup milk" --zip 45202
    """
    kroger = get_kroger_api()

    if zip_code and not location_id:
        try:
            locations = kroger.find_locations(zip_code, limit=1)
        except (ValueError, ProductAPIError) as e:
            click.echo(f"✗ Store lookup failed: {e}", err=True)
            raise SystemExit(1) from None
        if not locations:
            click.echo("✗ No stores found near that ZIP code.", err=True)
            raise SystemExit(1)
        location_id = locations[0].location_id
        click.echo(f"Using {locations[0].name}")

    lookup = PriceLookup(
        [kroger_source(kroger, location_id), walmart_source(get_walmart_api())],
        max_workers=workers or get_max_workers(),
    )
    click.echo(f"Looking up {len(items)} items...")
    display_comparison(lookup.run(items))


# ============================================================================
# Entry Point
# ============================================================================


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
