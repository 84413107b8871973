"""
Catalog inventory report.

Loads every collection, runs the dashboard summary and an unfiltered
listing for each category, and prints a report of what the storefront
would serve.
"""

import argparse
import asyncio
import logging
import time
from pathlib import Path

from config import settings
from dashboard import AggregateCountEngine
from engine import CatalogEngine, PageRequest, sort_products, use_collation
from models import CanonicalProduct, CatalogFilters, CatalogSummary
from registry import AdapterSet, CategoryRegistry, build_registry
from store import load_store

logger = logging.getLogger(__name__)


async def collect_category(adapter_set: AdapterSet) -> dict[str, list[CanonicalProduct]]:
    """Normalized products per adapter for one category, unfiltered."""
    filters = CatalogFilters()
    batches = await asyncio.gather(*[adapter.query(filters) for adapter in adapter_set])
    return {
        adapter.key: [adapter.normalize(r) for r in records]
        for adapter, records in zip(adapter_set, batches)
    }


async def collect(registry: CategoryRegistry) -> dict[str, dict[str, list[CanonicalProduct]]]:
    category_sets = registry.categories()
    results = await asyncio.gather(*[collect_category(s) for s in category_sets])
    return {s.category: result for s, result in zip(category_sets, results)}


def print_report(
    summary: CatalogSummary,
    catalog: dict[str, dict[str, list[CanonicalProduct]]],
    wall_clock: float,
) -> None:
    """Print the inventory report."""
    # ── Dashboard ────────────────────────────────────────────────────
    print(f"\n{'='*70}")
    print("CATALOG REPORT")
    print(f"{'='*70}")

    print(f"\n── Dashboard ──")
    print(f"  Users:            {summary.total_users}")
    print(f"  Orders:           {summary.total_orders} ({summary.pending_orders} pending)")
    print(f"  Revenue:          {summary.total_revenue:,.2f}")
    print(f"  Products (raw):   {summary.total_products}")

    print(f"\n  {'Category':<15} {'Count':>8}")
    print(f"  {'-'*24}")
    for category, count in summary.inventory.items():
        print(f"  {category:<15} {count:>8}")

    # ── Sources ──────────────────────────────────────────────────────
    print(f"\n── Sources per category ──")
    print(f"  {'Category':<13} {'Adapter':<22} {'Records':>8} {'On sale':>8} {'New':>6}")
    print(f"  {'-'*61}")
    for category, by_adapter in catalog.items():
        for key, products in by_adapter.items():
            print(f"  {category:<13} {key:<22} {len(products):>8} "
                  f"{sum(1 for p in products if p.on_sale):>8} "
                  f"{sum(1 for p in products if p.is_new_arrival):>6}")

    # ── Pricing ──────────────────────────────────────────────────────
    print(f"\n── Pricing ──")
    print(f"  {'Category':<13} {'Min':>10} {'Max':>10} {'Avg disc.':>10}")
    print(f"  {'-'*46}")
    for category, by_adapter in catalog.items():
        products = [p for batch in by_adapter.values() for p in batch]
        priced = [p.final_price for p in products if p.final_price > 0]
        if not priced:
            print(f"  {category:<13} {'-':>10} {'-':>10} {'-':>10}")
            continue
        avg_discount = sum(p.discount_percent for p in products) / len(products)
        print(f"  {category:<13} {min(priced):>10.2f} {max(priced):>10.2f} {avg_discount:>9.1f}%")

    # ── Newest ───────────────────────────────────────────────────────
    print(f"\n── Newest per category ──")
    for category, by_adapter in catalog.items():
        products = sort_products([p for batch in by_adapter.values() for p in batch], "createdAt", False)
        if products:
            newest = products[0]
            print(f"  {category:<13} {newest.title[:40]:<40} {newest.created_at or '-'}")

    print(f"\n── Timing ──")
    print(f"  Wall clock (total):  {wall_clock:.3f}s")
    print(f"\n{'='*70}")


async def main(data_dir: Path) -> None:
    t_wall_start = time.monotonic()
    use_collation(settings.collation)
    store = load_store(data_dir)
    registry = build_registry(store)

    summary, catalog = await asyncio.gather(
        AggregateCountEngine(store, registry).summarize(),
        collect(registry),
    )
    wall_clock = time.monotonic() - t_wall_start

    # Sanity check: the engine serves the same totals the sources report
    engine = CatalogEngine(registry)
    for adapter_set in registry.categories():
        page = await engine.list_products(adapter_set.category, CatalogFilters(), PageRequest.from_params(page=1, limit=1))
        logger.info("%s: %d products across %d source(s)", adapter_set.category, page.pagination.total, len(adapter_set))

    print_report(summary, catalog, wall_clock)


if __name__ == "__main__":
    arg_parser = argparse.ArgumentParser(description="Print the catalog inventory report")
    arg_parser.add_argument("--data-dir", type=Path, default=settings.data_dir)
    args = arg_parser.parse_args()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main(args.data_dir))
