"""
Wallet registry CLI.

Usage:
  python -m wallet_tracker.cli add <address> [label]   Add a wallet to tracking
  python -m wallet_tracker.cli remove <address>         Remove a wallet from tracking
  python -m wallet_tracker.cli list                     List all tracked wallets

Changes take effect for the webhook subscription on the next server start
(or POST /webhooks/setup).
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime

from wallet_tracker.api_server import db_wallet_tracking
from wallet_tracker.core.exceptions import TrackerError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wallet-tracker",
        description="Manage the Solana wallets tracked for Discord notifications.",
    )
    sub = parser.add_subparsers(dest="command")

    add = sub.add_parser("add", help="Add a wallet to tracking")
    add.add_argument("address", help="Solana wallet address (base58)")
    add.add_argument("label", nargs="?", default=None, help="Optional display label")

    remove = sub.add_parser("remove", help="Remove a wallet from tracking")
    remove.add_argument("address", help="Solana wallet address (base58)")

    sub.add_parser("list", help="List all tracked wallets")
    sub.add_parser("help", help="Show this help")
    return parser


def _print_wallets(title: str, wallets: list[dict]) -> None:
    print(title)
    for index, wallet in enumerate(wallets, start=1):
        print(f"  {index}. {wallet['wallet']}")
        if wallet["label"]:
            print(f"     Label: {wallet['label']}")
        added = datetime.fromtimestamp(wallet["added_at"]).strftime("%Y-%m-%d %H:%M:%S")
        print(f"     Added: {added}")
        print("")


def cmd_add(address: str, label: str | None) -> int:
    db_wallet_tracking.add_wallet(address, label)
    print(f"✅ Successfully added wallet: {address}")
    if label:
        print(f"   Label: {label}")
    print("💡 Restart the tracker to begin monitoring this wallet")
    return 0


def cmd_remove(address: str) -> int:
    db_wallet_tracking.remove_wallet(address)
    print(f"✅ Successfully removed wallet: {address}")
    print("💡 Restart the tracker to stop monitoring this wallet")
    return 0


def cmd_list() -> int:
    wallets = db_wallet_tracking.list_wallets()
    active = [w for w in wallets if w["is_active"]]
    inactive = [w for w in wallets if not w["is_active"]]

    print("\n📊 Wallet Tracking Status\n")
    if active:
        _print_wallets("🟢 Active Wallets:", active)
    else:
        print("🟢 Active Wallets: None")
    if inactive:
        _print_wallets("🔴 Inactive Wallets:", inactive)
    print(f"📈 Total: {len(wallets)} wallets ({len(active)} active, {len(inactive)} inactive)")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command in (None, "help"):
        parser.print_help()
        return 0

    db_wallet_tracking.init_db()
    try:
        if args.command == "add":
            return cmd_add(args.address, args.label)
        if args.command == "remove":
            return cmd_remove(args.address)
        return cmd_list()
    except TrackerError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
