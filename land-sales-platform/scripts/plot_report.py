"""
Plot inventory and buyer balance report.

Prints the plot status breakdown with values, then each buyer's budget,
outstanding obligation and remaining balance.

Usage:
    python scripts/plot_report.py
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.money import format_money
from domain.plot import PlotStatus
from repositories.config import create_store, load_settings
from repositories.store import LandStore
from services.payment_service import buyer_balance


def print_plot_report(store: LandStore) -> None:
    stats = store.get_plots_stats()

    print("=" * 50)
    print("PLOT INVENTORY")
    print("=" * 50)
    print(f"Total plots:               {stats.total_plots}")
    for entry in stats.by_status:
        print(f"{entry.status.value.capitalize() + ':':<27}{entry.count:>4}   {format_money(entry.total_value)}")
    sold_pct = stats.count(PlotStatus.SOLD) / stats.total_plots * 100 if stats.total_plots else 0
    print(f"Percentage sold:           {sold_pct:.1f}%")
    print(f"Sold value:                {format_money(stats.sold_value)}")
    print("=" * 50)


def print_buyer_report(store: LandStore) -> None:
    buyers = store.list_buyers()

    print("\nBUYERS")
    print("-" * 50)
    if not buyers:
        print("No buyers yet.")
        return

    for buyer in buyers:
        balance = buyer_balance(store, buyer.id)
        print(f"{buyer.name} ({buyer.id_number})")
        print(f"  Budget:             {format_money(buyer.budget)}")
        print(f"  Total spent:        {format_money(buyer.total_spent)}")
        print(f"  Remaining balance:  {format_money(buyer.remaining_balance)}")
        print(f"  Transactions:       {len(balance.transactions)}"
              f" (paid {format_money(balance.total_paid)},"
              f" outstanding {format_money(balance.total_outstanding)})")


if __name__ == "__main__":
    with create_store(load_settings()) as store:
        print_plot_report(store)
        print_buyer_report(store)
