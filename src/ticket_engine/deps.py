"""Dependency injection singletons for Ticket-Engine."""

from ticket_engine.checkin.coordinator import CheckInCoordinator
from ticket_engine.checkin.locks import KeyedLockTable
from ticket_engine.common.config import get_settings
from ticket_engine.common.database import DatabaseManager
from ticket_engine.payments.gateway import PaymentGateway, build_payment_gateway
from ticket_engine.payments.transactions import TransactionLedger
from ticket_engine.scans.ledger import ScanLedger
from ticket_engine.tickets.audit import AuditChain
from ticket_engine.tickets.service import TicketLifecycleService
from ticket_engine.tickets.store import TicketStore
from ticket_engine.wallet.issuer import WalletPassIssuer, build_wallet_issuer

_db: DatabaseManager | None = None
_store: TicketStore | None = None
_ledger: ScanLedger | None = None
_transactions: TransactionLedger | None = None
_audit: AuditChain | None = None
_gateway: PaymentGateway | None = None
_wallet: WalletPassIssuer | None = None
_lifecycle: TicketLifecycleService | None = None
_locks: KeyedLockTable | None = None
_coordinator: CheckInCoordinator | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_ticket_store() -> TicketStore:
    global _store
    if _store is None:
        _store = TicketStore()
    return _store


def get_scan_ledger() -> ScanLedger:
    global _ledger
    if _ledger is None:
        _ledger = ScanLedger()
    return _ledger


def get_transaction_ledger() -> TransactionLedger:
    global _transactions
    if _transactions is None:
        _transactions = TransactionLedger()
    return _transactions


def get_audit_chain() -> AuditChain:
    global _audit
    if _audit is None:
        _audit = AuditChain(get_settings())
    return _audit


def get_payment_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        _gateway = build_payment_gateway(get_settings())
    return _gateway


def get_wallet_issuer() -> WalletPassIssuer:
    global _wallet
    if _wallet is None:
        _wallet = build_wallet_issuer(get_settings())
    return _wallet


def get_lifecycle_service() -> TicketLifecycleService:
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = TicketLifecycleService(
            get_settings(),
            store=get_ticket_store(),
            ledger=get_scan_ledger(),
            transactions=get_transaction_ledger(),
            audit=get_audit_chain(),
            gateway=get_payment_gateway(),
            wallet_issuer=get_wallet_issuer(),
        )
    return _lifecycle


def get_lock_table() -> KeyedLockTable:
    global _locks
    if _locks is None:
        _locks = KeyedLockTable(timeout=get_settings().checkin_lock_timeout)
    return _locks


def get_coordinator() -> CheckInCoordinator:
    global _coordinator
    if _coordinator is None:
        _coordinator = CheckInCoordinator(
            get_db(), get_lifecycle_service(), get_lock_table(),
        )
    return _coordinator


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _store, _ledger, _transactions, _audit, _gateway, _wallet
    global _lifecycle, _locks, _coordinator
    _db = None
    _store = None
    _ledger = None
    _transactions = None
    _audit = None
    _gateway = None
    _wallet = None
    _lifecycle = None
    _locks = None
    _coordinator = None
