"""
Balance Queries

Read-only views over committed ledger state: one owner's balance of one
mint, and every holding an owner has under the token program.
"""

from dataclasses import dataclass
from typing import List, Optional

from solders.pubkey import Pubkey

from .account_factory import AssociatedAccountFactory
from .amounts import format_amount
from .storage import StorageInterface
from .token_engine import TokenEngine


@dataclass(frozen=True)
class TokenBalance:
    mint: str
    holding: str
    amount: int
    decimals: int

    @property
    def ui_amount_string(self) -> str:
        return format_amount(self.amount, self.decimals)

    def to_dict(self) -> dict:
        return {
            "mint": self.mint,
            "holding": self.holding,
            "amount": str(self.amount),
            "decimals": self.decimals,
            "balance": self.ui_amount_string,
        }


class TokenBalanceService:
    """Balance lookups by (mint, owner) and by owner"""

    def __init__(self, storage: StorageInterface, token_engine: TokenEngine,
                 account_factory: AssociatedAccountFactory):
        self.storage = storage
        self.token_engine = token_engine
        self.account_factory = account_factory

    def get_balance(self, mint: Pubkey, owner: Pubkey) -> Optional[TokenBalance]:
        """
        Balance of owner's associated holding record for mint

        Returns None for an unknown mint. A known mint without a holding
        record for owner reads as a zero balance.
        """
        mint_record = self.token_engine.get_mint(self.storage, mint)
        if mint_record is None:
            return None

        holding_address = self.account_factory.address_for(owner, mint)
        holding = self.token_engine.get_token_account(self.storage, holding_address)
        amount = holding.amount if holding else 0
        return TokenBalance(
            mint=str(mint),
            holding=str(holding_address),
            amount=amount,
            decimals=mint_record.decimals,
        )

    def get_tokens_by_owner(self, owner: Pubkey) -> List[TokenBalance]:
        """Every holding record owned by owner, oldest first"""
        balances = []
        for holding in self.token_engine.get_token_accounts_by_owner(self.storage, owner):
            mint_record = self.token_engine.get_mint(self.storage, Pubkey.from_string(holding.mint))
            decimals = mint_record.decimals if mint_record else 0
            balances.append(TokenBalance(
                mint=holding.mint,
                holding=holding.address,
                amount=holding.amount,
                decimals=decimals,
            ))
        return balances
