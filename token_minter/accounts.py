"""
Ledger Account Records

The two records a request touches: the Mint (asset class) and the
recipient's Holding Record. Both are stored in the host's "accounts" table
keyed by address, with a kind discriminator and the owning program.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from enum import Enum

from .storage import StorageRecord

ACCOUNTS_TABLE = "accounts"


class AccountKind(Enum):
    MINT = "mint"
    TOKEN_ACCOUNT = "token_account"


class TokenAccountState(Enum):
    """Holding record states"""
    INITIALIZED = "initialized"
    FROZEN = "frozen"


@dataclass
class MintAccount(StorageRecord):
    """
    Asset class record

    id is the mint address. Authorities are set once at creation and never
    changed by this system.
    """
    decimals: int
    supply: int
    mint_authority: Optional[str]
    freeze_authority: Optional[str]
    owner_program: str
    is_initialized: bool = True

    @property
    def address(self) -> str:
        return self.id

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['kind'] = AccountKind.MINT.value
        # u64 values can exceed what JSON consumers read back as exact ints
        result['supply'] = str(self.supply)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MintAccount':
        data = dict(data)
        data.pop('kind', None)
        data['supply'] = int(data['supply'])
        return super().from_dict(data)


@dataclass
class TokenAccount(StorageRecord):
    """
    Holding record: one owner's balance of one mint

    id is the associated address derived from (owner, mint).
    """
    mint: str
    owner: str
    amount: int
    owner_program: str
    state: TokenAccountState = TokenAccountState.INITIALIZED

    @property
    def address(self) -> str:
        return self.id

    @property
    def is_frozen(self) -> bool:
        return self.state == TokenAccountState.FROZEN

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['kind'] = AccountKind.TOKEN_ACCOUNT.value
        result['amount'] = str(self.amount)
        result['state'] = self.state.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TokenAccount':
        data = dict(data)
        data.pop('kind', None)
        data['amount'] = int(data['amount'])
        data['state'] = TokenAccountState(data['state'])
        return super().from_dict(data)


def account_from_dict(data: Dict[str, Any]):
    """Decode a stored account by its kind"""
    kind = AccountKind(data['kind'])
    if kind == AccountKind.MINT:
        return MintAccount.from_dict(data)
    return TokenAccount.from_dict(data)
