"""
Associated Holding-Record Factory

Model of the external associated-account program: each (owner, mint) pair
has exactly one canonical holding-record address, derived under the
factory's program id, which the factory creates on first use.
"""

from typing import Tuple

from solders.pubkey import Pubkey

from .accounts import TokenAccount
from .addresses import get_associated_token_address
from .errors import AccountConstraintViolation
from .token_engine import TokenEngine
from .transaction import LedgerTransaction


class AssociatedAccountFactory:
    """Create-if-absent for associated holding records"""

    def __init__(self, program_id: Pubkey, token_engine: TokenEngine):
        self.program_id = program_id
        self.token_engine = token_engine

    def address_for(self, owner: Pubkey, mint: Pubkey) -> Pubkey:
        return get_associated_token_address(
            owner, mint, self.token_engine.program_id, self.program_id
        )

    def get_or_create(
        self,
        tx: LedgerTransaction,
        payer: Pubkey,
        owner: Pubkey,
        mint: Pubkey
    ) -> Tuple[TokenAccount, bool]:
        """
        Return the holding record for (owner, mint), creating it if absent

        Returns:
            (record, created) where created is False for an existing record

        Raises:
            AccountConstraintViolation: the address holds an account that is
                not this owner's record for this mint
        """
        address = self.address_for(owner, mint)
        existing = tx.get_account(address)
        if existing is not None:
            if not isinstance(existing, TokenAccount):
                raise AccountConstraintViolation(f"{address} is not a token account")
            if existing.owner != str(owner):
                raise AccountConstraintViolation(
                    f"Token account {address} owner is {existing.owner}, expected {owner}"
                )
            if existing.mint != str(mint):
                raise AccountConstraintViolation(
                    f"Token account {address} mint is {existing.mint}, expected {mint}"
                )
            return existing, False

        record = self.token_engine.create_token_account(tx, address, mint, owner, payer)
        return record, True
