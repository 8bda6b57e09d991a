"""
Ledger Transaction

Every request runs inside one LedgerTransaction. Account reads see the
request's own staged writes layered over the host store; nothing becomes
visible to other requests until commit() applies every write inside a
single storage.atomic() block. Account creation is re-checked at commit so
that of two requests racing to create the same address, only one wins.
"""

from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Union
from enum import Enum
import uuid

from solders.pubkey import Pubkey

from .accounts import ACCOUNTS_TABLE, MintAccount, TokenAccount, account_from_dict
from .errors import AlreadyInitialized, MissingRequiredSignature
from .storage import StorageInterface

LedgerAccount = Union[MintAccount, TokenAccount]


class TransactionState(Enum):
    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class LedgerTransaction:
    """Staged, all-or-nothing set of account mutations for one request"""

    def __init__(self, storage: StorageInterface, signers: Iterable[Pubkey],
                 request_id: Optional[str] = None):
        self.storage = storage
        self.request_id = request_id or str(uuid.uuid4())
        self.signers: FrozenSet[Pubkey] = frozenset(signers)
        self.state = TransactionState.OPEN
        self.logs: List[str] = []
        self._writes: Dict[str, dict] = {}
        self._created: Set[str] = set()

    def _ensure_open(self) -> None:
        if self.state != TransactionState.OPEN:
            raise RuntimeError(f"Transaction {self.request_id} is {self.state.value}")

    def is_signer(self, address: Pubkey) -> bool:
        return address in self.signers

    def require_signer(self, address: Pubkey, role: str) -> None:
        if not self.is_signer(address):
            raise MissingRequiredSignature(f"{role} {address} must sign the request")

    def account_exists(self, address: Pubkey) -> bool:
        key = str(address)
        return key in self._writes or self.storage.exists(ACCOUNTS_TABLE, key)

    def get_account(self, address: Pubkey) -> Optional[LedgerAccount]:
        key = str(address)
        data = self._writes.get(key)
        if data is None:
            data = self.storage.load(ACCOUNTS_TABLE, key)
        if data is None:
            return None
        return account_from_dict(data)

    def create_account(self, record: LedgerAccount, payer: Pubkey,
                       signed_by_program: bool = False) -> None:
        """
        Stage creation of a new account funded by payer

        The new address must sign, either as a keypair in the request or,
        when signed_by_program is set, through a derived-address signature.
        """
        self._ensure_open()
        address = Pubkey.from_string(record.address)
        if self.account_exists(address):
            raise AlreadyInitialized(f"Account {address} already in use")
        self.require_signer(payer, "Payer")
        if not signed_by_program:
            self.require_signer(address, "New account")
        self._created.add(record.address)
        self._writes[record.address] = record.to_dict()

    def write_account(self, record: LedgerAccount) -> None:
        self._ensure_open()
        record.updated_at = datetime.now(timezone.utc)
        self._writes[record.address] = record.to_dict()

    def log(self, message: str) -> None:
        self._ensure_open()
        self.logs.append(message)

    @property
    def staged_addresses(self) -> List[str]:
        return sorted(self._writes)

    def commit(self) -> None:
        """Apply every staged write atomically"""
        self._ensure_open()
        with self.storage.atomic():
            for address in sorted(self._created):
                if self.storage.exists(ACCOUNTS_TABLE, address):
                    raise AlreadyInitialized(f"Account {address} already in use")
            for address, data in self._writes.items():
                self.storage.save(ACCOUNTS_TABLE, address, data)
        self.state = TransactionState.COMMITTED

    def rollback(self) -> None:
        """Discard staged writes and program logs"""
        if self.state != TransactionState.OPEN:
            return
        self._writes.clear()
        self._created.clear()
        self.logs = []
        self.state = TransactionState.ROLLED_BACK
