"""
Bilevel Aggregator Walkthrough

Shows the three ownership variants on the same sales rows:
1. Which products were sold in each region (BilevelSet)?
2. How many units per (region, product) (BilevelMap)?
3. Which regions sold each product (pivot)?
"""

import logging

from bilevel_aggregator import KeyLayout, copy_keys, hybrid_keys, owned_keys


ROWS = [
    ("north", "2024-Q1", "widget", 5),
    ("north", "2024-Q1", "gadget", 2),
    ("south", "2024-Q1", "widget", 1),
    ("north", "2024-Q1", "widget", 4),
    ("south", "2024-Q2", "sprocket", 7),
]

# region + quarter form the group key, product the aggregation key
LAYOUT = KeyLayout(group_fields=2, agg_fields=1)


def print_section(title):
    """Print a formatted section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def demonstrate_sets():
    """List distinct products per group with every variant."""
    print_section("1: Distinct aggregation keys per group")

    for module in (copy_keys, owned_keys, hybrid_keys):
        products = module.BilevelSet()
        for *fields, _ in ROWS:
            products.insert(LAYOUT.split(fields))
        print(f"\n{module.__name__}:")
        for group in products.groups():
            print(f"  {group}: {[agg[0] for agg in products.group(group)]}")
        products.check_invariants()


def demonstrate_maps():
    """Sum units per full key."""
    print_section("2: Payload per full key")

    units = owned_keys.BilevelMap(int)
    for *fields, qty in ROWS:
        units.add_or_get(LAYOUT.split(fields)).value += qty

    for full_key, qty in units.items():
        print(f"  {LAYOUT.join(full_key)} -> {qty}")
    print(f"\n  stats: {units.stats}")


def demonstrate_pivot():
    """Regroup by product."""
    print_section("3: Pivot")

    sold = copy_keys.BilevelSet()
    sold.update((region, product) for region, _, product, _ in ROWS)
    by_product = sold.pivot()
    for product in by_product.groups():
        print(f"  {product}: {list(by_product.group(product))}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    demonstrate_sets()
    demonstrate_maps()
    demonstrate_pivot()
    print("\n✓ Demo complete")
