"""
API server package: Helius webhook intake and wallet/webhook management
over HTTP, plus the tracked wallet registry it reads from.
"""
