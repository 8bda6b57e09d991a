"""
Account Validator

Establishes the two account preconditions of an issuance inside the
request's transaction: a brand-new Mint controlled by the derived authority,
and the recipient's holding record for it. Everything is staged; nothing is
visible until the transaction commits.
"""

from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from .accounts import MintAccount, TokenAccount
from .account_factory import AssociatedAccountFactory
from .amounts import check_u8, check_u64
from .errors import AlreadyInitialized, InvalidMintAmount
from .token_engine import TokenEngine
from .transaction import LedgerTransaction


@dataclass(frozen=True)
class IssuanceRequest:
    """
    Create-and-issue arguments

    mint is a fresh address whose keypair signs the request. authority and
    bump are optional; when supplied they must equal the canonical
    derivation.
    """
    decimals: int
    initial_amount: int
    payer: Pubkey
    recipient: Pubkey
    mint: Pubkey
    authority: Optional[Pubkey] = None
    bump: Optional[int] = None


@dataclass
class ValidatedAccounts:
    mint: MintAccount
    holding: TokenAccount
    holding_created: bool


class AccountValidator:
    """Creates the mint and prepares the recipient holding record"""

    def __init__(self, token_engine: TokenEngine, account_factory: AssociatedAccountFactory):
        self.token_engine = token_engine
        self.account_factory = account_factory

    def check_arguments(self, request: IssuanceRequest) -> None:
        """
        Stateless argument checks, run before any account is read

        Raises:
            InvalidInstructionData: decimals or amount out of integer range
            InvalidMintAmount: amount is zero
        """
        check_u8(request.decimals, "decimals")
        check_u64(request.initial_amount, "initial_amount")
        if request.bump is not None:
            check_u8(request.bump, "bump")
        if request.initial_amount == 0:
            raise InvalidMintAmount()

    def prepare(self, tx: LedgerTransaction, request: IssuanceRequest,
                authority: Pubkey) -> ValidatedAccounts:
        """
        Stage mint creation and the recipient holding record

        Args:
            tx: Transaction of the current request
            request: Issuance arguments
            authority: Derived authority to install as mint and freeze authority

        Raises:
            AlreadyInitialized: the mint address is already in use
            MissingRequiredSignature: payer or mint did not sign
            AccountConstraintViolation: an existing holding record does not match
        """
        self.check_arguments(request)

        # A mint is only ever created here; there is no top-up path
        if tx.account_exists(request.mint):
            raise AlreadyInitialized(f"Mint {request.mint} already initialized")

        mint = self.token_engine.create_mint(
            tx,
            mint=request.mint,
            decimals=request.decimals,
            mint_authority=authority,
            freeze_authority=authority,
            payer=request.payer,
        )

        holding, created = self.account_factory.get_or_create(
            tx,
            payer=request.payer,
            owner=request.recipient,
            mint=request.mint,
        )

        return ValidatedAccounts(mint=mint, holding=holding, holding_created=created)
