"""
Tracked wallet registry: SQLAlchemy-backed wallet list.

Uses DATABASE_URL when set; otherwise falls back to SQLite
(WALLET_TRACKING_DB_PATH or wallets.db). Same public API for the FastAPI
server, the webhook processor and the CLI.

Removing a wallet deactivates it; adding it again reactivates the row.
"""

from __future__ import annotations

import os
import time
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import Boolean, Column, Integer, String, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from wallet_tracker.core.exceptions import (
    WalletAlreadyTrackedError,
    WalletNotFoundError,
    WalletValidationError,
)
from wallet_tracker.tracker_logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()

# -----------------------------------------------------------------------------
# SQLAlchemy models
# -----------------------------------------------------------------------------


class TrackedWallet(Base):
    """One row per wallet with optional label and active flag."""

    __tablename__ = "tracked_wallets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet = Column(String(64), unique=True, nullable=False, index=True)
    label = Column(String(256), nullable=True)
    added_at = Column(Integer, nullable=False)  # Unix timestamp
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "wallet": self.wallet,
            "label": self.label or "",
            "added_at": self.added_at,
            "is_active": self.is_active,
        }


# -----------------------------------------------------------------------------
# Engine and session (DATABASE_URL, else SQLite)
# -----------------------------------------------------------------------------

DEFAULT_SQLITE_PATH = "wallets.db"


def _get_database_url() -> str:
    """Return DATABASE_URL if set; else SQLite from WALLET_TRACKING_DB_PATH or default."""
    url = (os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    path = (os.getenv("WALLET_TRACKING_DB_PATH") or "").strip() or DEFAULT_SQLITE_PATH
    return f"sqlite:///{path}"


_engine = None
_SessionLocal: sessionmaker | None = None


def _get_engine():
    """Create or return cached engine."""
    global _engine
    if _engine is None:
        url = _get_database_url()
        connect_args = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
        logger.info("wallet_tracking_engine", url=url.split("?")[0].split("//")[-1])
    return _engine


def _get_session_factory() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
    return _SessionLocal


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Context manager for a single session. Commits on success, rolls back on error."""
    factory = _get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def validate_wallet(wallet: str) -> str:
    """Validate a Solana address with solders Pubkey; return it stripped."""
    wallet = (wallet or "").strip()
    if not wallet:
        raise WalletValidationError("wallet must be non-empty")
    from solders.pubkey import Pubkey

    try:
        Pubkey.from_string(wallet)
    except Exception as e:
        raise WalletValidationError(f"Invalid Solana wallet: {wallet}") from e
    return wallet


def init_db() -> None:
    """Create registry tables if they do not exist. Safe to call on every startup."""
    try:
        engine = _get_engine()
        Base.metadata.create_all(bind=engine)
        logger.info("wallet_tracking_init_db", url=_get_database_url().split("?")[0].split("//")[-1])
    except Exception as e:
        logger.exception("wallet_tracking_init_db_failed", error=str(e))
        raise


def add_wallet(wallet: str, label: str | None = None) -> bool:
    """
    Track wallet. Returns True when inserted or reactivated.

    Raises WalletValidationError for a bad address and
    WalletAlreadyTrackedError when the wallet is already active.
    """
    wallet = validate_wallet(wallet)
    label = (label or "").strip() or None
    with _session_scope() as session:
        row = session.query(TrackedWallet).filter(TrackedWallet.wallet == wallet).first()
        if row is not None:
            if row.is_active:
                raise WalletAlreadyTrackedError(f"Wallet {wallet} is already being tracked")
            row.is_active = True
            row.label = label or row.label
            logger.info("wallet_reactivated", wallet_id=wallet)
            return True
        session.add(TrackedWallet(wallet=wallet, label=label, added_at=int(time.time()), is_active=True))
    logger.info("wallet_added", wallet_id=wallet, label=label)
    return True


def remove_wallet(wallet: str) -> bool:
    """Stop tracking wallet (row kept, marked inactive). Raises WalletNotFoundError."""
    wallet = (wallet or "").strip()
    with _session_scope() as session:
        row = session.query(TrackedWallet).filter(TrackedWallet.wallet == wallet).first()
        if row is None:
            raise WalletNotFoundError(f"Wallet {wallet} not found in tracking list")
        row.is_active = False
    logger.info("wallet_removed", wallet_id=wallet)
    return True


def get_wallet_info(wallet: str) -> dict[str, Any] | None:
    """Return one wallet's row as dict, or None if not registered."""
    wallet = (wallet or "").strip()
    if not wallet:
        return None
    with _session_scope() as session:
        row = session.query(TrackedWallet).filter(TrackedWallet.wallet == wallet).first()
        return row.to_dict() if row else None


def describe_wallet(wallet: str) -> str | None:
    """Display label for wallet, or None when it has none."""
    info = get_wallet_info(wallet)
    if info is None:
        return None
    return info["label"] or None


def list_wallets() -> list[dict[str, Any]]:
    """All wallets (active and inactive) in insertion order."""
    try:
        with _session_scope() as session:
            rows = session.query(TrackedWallet).order_by(TrackedWallet.id).all()
            return [r.to_dict() for r in rows]
    except Exception as e:
        logger.exception("wallet_tracking_list_failed", error=str(e))
        raise


def load_active_wallets() -> list[str]:
    """Addresses with is_active = true; read once per webhook delivery."""
    try:
        with _session_scope() as session:
            rows = (
                session.query(TrackedWallet.wallet)
                .filter(TrackedWallet.is_active.is_(True))
                .order_by(TrackedWallet.id)
                .all()
            )
            return [r[0] for r in rows]
    except Exception as e:
        logger.exception("wallet_tracking_load_active_failed", error=str(e))
        raise


def reset_engine_for_test() -> None:
    """Clear cached engine and session factory. For tests only."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
