"""
Issuance Invoker

Performs the one privileged call of a request: mint-to on the token engine,
signed by the derived authority. There is no signature in the cryptographic
sense; the host asks the Authority whether the calling program can
reproduce the derivation from (label, bump) and, if so, lends the derived
address signer status for that call only.
"""

from dataclasses import dataclass
from typing import List

from solders.pubkey import Pubkey

from .addresses import Authority, CallerContext
from .errors import IssuanceFailed, TokenEngineError
from .token_engine import TokenEngine
from .transaction import LedgerTransaction


@dataclass(frozen=True)
class MintToInstruction:
    mint: Pubkey
    destination: Pubkey
    authority: Pubkey
    amount: int
    signer_seeds: List[bytes]


class IssuanceInvoker:
    """Signed mint-to call and the program log lines that follow it"""

    def __init__(self, program_id: Pubkey, token_engine: TokenEngine, authority: Authority):
        self.program_id = program_id
        self.token_engine = token_engine
        self.authority = authority

    def build_instruction(self, mint: Pubkey, destination: Pubkey, authority: Pubkey,
                          bump: int, amount: int) -> MintToInstruction:
        return MintToInstruction(
            mint=mint,
            destination=destination,
            authority=authority,
            amount=amount,
            signer_seeds=[self.authority.label, bytes([bump])],
        )

    def invoke_signed(self, tx: LedgerTransaction, instruction: MintToInstruction) -> None:
        """
        Run the mint-to with the derived authority as signer

        Raises:
            IssuanceFailed: the host refused the derived signature or the
                token engine rejected the instruction
        """
        label, bump_seed = instruction.signer_seeds
        caller = CallerContext(program_id=self.program_id)
        if not self.authority.verify(caller, label, bump_seed[0]):
            raise IssuanceFailed(
                f"Cross-program invocation with unauthorized signer {instruction.authority}"
            )

        signers = tx.signers | {instruction.authority}
        try:
            self.token_engine.mint_to(
                tx,
                mint=instruction.mint,
                destination=instruction.destination,
                authority=instruction.authority,
                amount=instruction.amount,
                signers=signers,
            )
        except TokenEngineError as e:
            raise IssuanceFailed(e.message) from e

    def issue(self, tx: LedgerTransaction, mint: Pubkey, destination: Pubkey,
              authority: Pubkey, bump: int, amount: int) -> MintToInstruction:
        instruction = self.build_instruction(mint, destination, authority, bump, amount)
        self.invoke_signed(tx, instruction)

        tx.log("Token created and minted successfully!")
        tx.log(f"Mint Address: {mint}")
        tx.log(f"Recipient Token Address: {destination}")
        tx.log(f"Amount Minted: {amount}")
        return instruction
