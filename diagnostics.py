"""
Diagnostic: normalize every stored document through its adapter.
Reports, per adapter, how many records came out degraded, with a
placeholder name, without images or with a zero price.
"""

import asyncio
from pathlib import Path

from adapters import SchemaAdapter
from config import settings
from models import CanonicalProduct, CatalogFilters
from registry import build_registry
from store import load_store

CHECKS = [
    "degraded",
    "placeholder_name",
    "no_images",
    "zero_price",
    "no_brand",
    "no_created_at",
]


def check_product(product: CanonicalProduct) -> list[str]:
    """Names of the checks ``product`` fails."""
    failed = []
    if product.title.startswith("Untitled product"):
        failed.append("placeholder_name")
    if not product.images:
        failed.append("no_images")
    if product.final_price == 0:
        failed.append("zero_price")
    if not product.brand:
        failed.append("no_brand")
    if not product.created_at:
        failed.append("no_created_at")
    return failed


async def diagnose_adapter(adapter: SchemaAdapter) -> dict:
    records = await adapter.query(CatalogFilters())
    report = {"adapter": adapter.key, "source": adapter.source, "records": len(records), "counts": {}, "examples": {}}
    for check in CHECKS:
        report["counts"][check] = 0

    for record in records:
        product = adapter.try_normalize(record)
        failed = []
        if product is None:
            product = adapter.degraded(record)
            failed.append("degraded")
        failed.extend(check_product(product))

        for check in failed:
            report["counts"][check] += 1
            # Keep the first few ids per failing check
            report["examples"].setdefault(check, [])
            if len(report["examples"][check]) < 3:
                report["examples"][check].append(product.id or "?")

    return report


async def diagnose(data_dir: Path) -> list[dict]:
    registry = build_registry(load_store(data_dir))
    adapters = [a for s in registry.categories() for a in s]
    return await asyncio.gather(*[diagnose_adapter(a) for a in adapters])


def main():
    reports = asyncio.run(diagnose(settings.data_dir))
    print(f"Diagnosing {len(reports)} adapters (normalization only, no filters)\n")

    for report in reports:
        print(f"{'=' * 70}")
        print(f"  {report['adapter']}  ({report['source']}, {report['records']} records)")
        print(f"{'=' * 70}")

        failing = {k: v for k, v in report["counts"].items() if v}
        if not failing:
            print("  All records fully normalized!")
        for check, count in failing.items():
            print(f"    {check:<18} {count:>5}  e.g. {report['examples'][check]}")
        print()

    # Summary table
    print(f"\n{'=' * 70}")
    print("SUMMARY: Records failing each check")
    print(f"{'=' * 70}")
    print(f"{'Check':<18} ", end="")
    for r in reports:
        print(f"{r['adapter'][:12]:<14}", end="")
    print()
    print("-" * (19 + 14 * len(reports)))

    for check in CHECKS:
        print(f"{check:<18} ", end="")
        for r in reports:
            print(f"{r['counts'][check]:<14}", end="")
        print()


if __name__ == "__main__":
    main()
