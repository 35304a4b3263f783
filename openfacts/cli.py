"""CLI entry point for openfacts."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from .config import OpenFactsConfig, load_config
from .nutrition import describe_nova_group, format_energy
from .service import OpenFactsService


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="openfacts",
        description="Look up products by barcode in the Open Facts catalogs, with Open Prices data",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to the configuration file (TOML)",
    )
    parser.add_argument(
        "--credentials",
        type=str,
        default=None,
        help="Path to open_prices_credentials.json",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # product
    product_parser = sub.add_parser("product", help="Look up a product by barcode")
    product_parser.add_argument("barcode", type=str)
    product_parser.add_argument(
        "--no-prices", action="store_true", help="Skip Open Prices enrichment"
    )
    product_parser.add_argument("--location", type=str, default=None, help="Store location name")
    product_parser.add_argument(
        "--lang", type=str, default=None, help="Comma-separated language preference, e.g. fr,en"
    )
    product_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # prices
    prices_parser = sub.add_parser("prices", help="Show recent prices for a barcode")
    prices_parser.add_argument("barcode", type=str)
    prices_parser.add_argument("--limit", type=int, default=20)
    prices_parser.add_argument("--location", type=str, default=None)
    prices_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # locations
    locations_parser = sub.add_parser("locations", help="List Open Prices store locations")
    locations_parser.add_argument("--limit", type=int, default=50)
    locations_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # status
    status_parser = sub.add_parser("status", help="Show Open Prices, credential and cache status")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    config = load_config(args.config)
    if args.credentials:
        config.prices.credentials_path = args.credentials

    match args.command:
        case "product":
            code = asyncio.run(_cmd_product(config, args))
        case "prices":
            code = asyncio.run(_cmd_prices(config, args))
        case "locations":
            code = asyncio.run(_cmd_locations(config, args))
        case "status":
            code = asyncio.run(_cmd_status(config, args))
        case _:
            code = 1

    if code:
        sys.exit(code)


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


async def _cmd_product(config: OpenFactsConfig, args) -> int:
    if args.lang:
        config.service.languages = [c.strip() for c in args.lang.split(",") if c.strip()]

    async with OpenFactsService(config) as service:
        lookup = await service.lookup(
            args.barcode,
            include_pricing=not args.no_prices,
            location=args.location,
        )

    if args.json:
        _print_json(
            {
                "status": lookup.status.value,
                "detail": lookup.detail,
                "product": lookup.value.to_dict() if lookup.value else None,
            }
        )
        return 0 if lookup.ok else 1

    if not lookup.ok:
        print(f"Product {args.barcode} not found ({lookup.status.value}: {lookup.detail})")
        return 1

    product = lookup.value
    print(f"{product.name or '(no name)'}  [{product.barcode}]")
    if product.brand:
        print(f"  Brand:        {product.brand}")
    print(f"  Type:         {product.product_type.display_name}")
    print(f"  Language:     {product.language.display_name}")
    if product.nutri_score:
        print(f"  Nutri-Score:  {product.nutri_score}")
    if product.nova_group:
        print(f"  NOVA:         {product.nova_group} ({describe_nova_group(product.nova_group)})")
    if product.energy_kcal is not None:
        print(f"  Energy:       {format_energy(product.energy_kcal)} / 100 g")
    if product.period_after_opening:
        print(f"  After opening: {product.period_after_opening}")
    if product.allergens:
        print(f"  Allergens:    {', '.join(product.allergens)}")
    if product.ingredients:
        print(f"  Ingredients:  {product.ingredients}")
    if product.current_price:
        price = product.current_price
        where = f" at {price.store_name}" if price.store_name else ""
        print(f"  Latest price: {price}{where} ({price.date.isoformat()})")
    if product.price_stats and not product.price_stats.is_empty:
        stats = product.price_stats
        print(
            f"  Last {len(product.recent_prices)} prices: "
            f"avg {stats.average:.2f} / min {stats.minimum:.2f} / max {stats.maximum:.2f} "
            f"{stats.currency}"
        )
    return 0


async def _cmd_prices(config: OpenFactsConfig, args) -> int:
    async with OpenFactsService(config) as service:
        prices = await service.get_price_history(
            args.barcode, limit=args.limit, location=args.location
        )

    if args.json:
        _print_json([p.to_dict() for p in prices])
        return 0

    if not prices:
        print(f"No prices found for {args.barcode}")
        return 0
    print(f"{len(prices)} prices for {args.barcode}:")
    for p in prices:
        store = p.store_name or "unknown store"
        promo = " (promo)" if p.is_promotional else ""
        print(f"  {p.date.isoformat()}  {p}{promo}  {store}")
    return 0


async def _cmd_locations(config: OpenFactsConfig, args) -> int:
    async with OpenFactsService(config) as service:
        locations = await service.get_store_locations(limit=args.limit)

    if args.json:
        _print_json(locations)
        return 0

    if not locations:
        print("No locations found")
        return 0
    for loc in locations:
        name = loc.get("osm_name") or "(unnamed)"
        city = loc.get("osm_address_city") or ""
        print(f"  {loc.get('id', '?'):>6}  {name}  {city}".rstrip())
    return 0


async def _cmd_status(config: OpenFactsConfig, args) -> int:
    async with OpenFactsService(config) as service:
        data = {
            "prices": await service.get_prices_status(),
            "credentials": service.credential_status(),
            "cache": service.cache_stats(),
        }

    if args.json:
        _print_json(data)
        return 0

    prices = data["prices"]
    print(f"Open Prices API:  {'reachable' if prices['api'] is not None else 'unreachable'}")
    print(f"Authentication:   {prices['method']} ({'ok' if prices['authenticated'] else 'none'})")
    creds = data["credentials"]
    print(f"Credential file:  {creds['source_path'] or '-'}")
    cache = data["cache"]
    if cache["enabled"]:
        print(f"Cache:            {cache['total']} products ({cache['fresh']} fresh) in {cache['path']}")
    else:
        print("Cache:            disabled")
    return 0
