"""
Token Engine

In-process model of the external token program: it owns Mint and Holding
Record layouts, initializes them, and performs the supply-increasing
mint-to. The minter only ever calls it; all authority and arithmetic checks
live here, the way the real engine enforces them regardless of caller.
"""

from datetime import datetime, timezone
from typing import FrozenSet, List, Optional

from solders.pubkey import Pubkey

from .accounts import (
    ACCOUNTS_TABLE, AccountKind, MintAccount, TokenAccount
)
from .amounts import check_u8, check_u64, checked_add_u64
from .errors import TokenEngineError
from .storage import StorageInterface
from .transaction import LedgerTransaction


class TokenEngine:
    """Mint and holding-record primitives of the token program"""

    def __init__(self, program_id: Pubkey):
        self.program_id = program_id

    def create_mint(
        self,
        tx: LedgerTransaction,
        mint: Pubkey,
        decimals: int,
        mint_authority: Pubkey,
        freeze_authority: Optional[Pubkey],
        payer: Pubkey
    ) -> MintAccount:
        """Create and initialize a mint at an address that signs the request"""
        check_u8(decimals, "decimals")
        now = datetime.now(timezone.utc)
        record = MintAccount(
            id=str(mint),
            created_at=now,
            updated_at=now,
            decimals=decimals,
            supply=0,
            mint_authority=str(mint_authority),
            freeze_authority=str(freeze_authority) if freeze_authority else None,
            owner_program=str(self.program_id),
        )
        tx.create_account(record, payer=payer)
        return record

    def create_token_account(
        self,
        tx: LedgerTransaction,
        address: Pubkey,
        mint: Pubkey,
        owner: Pubkey,
        payer: Pubkey
    ) -> TokenAccount:
        """Create a zero-balance holding record at a program-derived address"""
        mint_record = tx.get_account(mint)
        if not isinstance(mint_record, MintAccount) or not mint_record.is_initialized:
            raise TokenEngineError(f"Mint {mint} is not initialized")

        now = datetime.now(timezone.utc)
        record = TokenAccount(
            id=str(address),
            created_at=now,
            updated_at=now,
            mint=str(mint),
            owner=str(owner),
            amount=0,
            owner_program=str(self.program_id),
        )
        tx.create_account(record, payer=payer, signed_by_program=True)
        return record

    def mint_to(
        self,
        tx: LedgerTransaction,
        mint: Pubkey,
        destination: Pubkey,
        authority: Pubkey,
        amount: int,
        signers: FrozenSet[Pubkey]
    ) -> TokenAccount:
        """
        Increase supply and credit the destination holding record

        Raises:
            TokenEngineError: authority mismatch, missing signature, frozen or
                foreign destination, or u64 overflow of supply or balance
        """
        check_u64(amount, "amount")

        mint_record = tx.get_account(mint)
        if not isinstance(mint_record, MintAccount) or not mint_record.is_initialized:
            raise TokenEngineError(f"Mint {mint} is not initialized")
        if mint_record.owner_program != str(self.program_id):
            raise TokenEngineError(f"Mint {mint} is not owned by the token program")

        if mint_record.mint_authority is None:
            raise TokenEngineError("Mint has a fixed supply")
        if mint_record.mint_authority != str(authority):
            raise TokenEngineError(
                f"Owner does not match: mint authority is {mint_record.mint_authority}, got {authority}"
            )
        if authority not in signers:
            raise TokenEngineError(f"Mint authority {authority} did not sign")

        holding = tx.get_account(destination)
        if not isinstance(holding, TokenAccount):
            raise TokenEngineError(f"Destination {destination} is not a token account")
        if holding.mint != str(mint):
            raise TokenEngineError("Account not associated with this Mint")
        if holding.is_frozen:
            raise TokenEngineError("Account is frozen")

        try:
            mint_record.supply = checked_add_u64(mint_record.supply, amount)
            holding.amount = checked_add_u64(holding.amount, amount)
        except OverflowError as e:
            raise TokenEngineError(f"Operation overflowed: {e}") from e

        tx.write_account(mint_record)
        tx.write_account(holding)
        return holding

    # Read side, against committed state only

    def get_mint(self, storage: StorageInterface, mint: Pubkey) -> Optional[MintAccount]:
        data = storage.load(ACCOUNTS_TABLE, str(mint))
        if not data or data.get('kind') != AccountKind.MINT.value:
            return None
        return MintAccount.from_dict(data)

    def get_token_account(self, storage: StorageInterface, address: Pubkey) -> Optional[TokenAccount]:
        data = storage.load(ACCOUNTS_TABLE, str(address))
        if not data or data.get('kind') != AccountKind.TOKEN_ACCOUNT.value:
            return None
        return TokenAccount.from_dict(data)

    def get_token_accounts_by_owner(self, storage: StorageInterface, owner: Pubkey) -> List[TokenAccount]:
        records = storage.find(ACCOUNTS_TABLE, {
            'kind': AccountKind.TOKEN_ACCOUNT.value,
            'owner': str(owner),
            'owner_program': str(self.program_id),
        })
        accounts = [TokenAccount.from_dict(data) for data in records]
        accounts.sort(key=lambda a: a.created_at)
        return accounts
