"""
Solana Wallet Tracker: relays Helius transaction webhooks to Discord.

Normalizes webhook payloads, matches them against tracked wallets, and
posts one formatted notification per involved wallet. Modules: webhook
intake (solana_listener), alert pipeline (alerts), registry and HTTP API
(api_server), Helius webhook management (ingestion), CLI.
"""

__version__ = "1.0.0"
