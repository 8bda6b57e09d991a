"""
Program-Derived Addresses

An authority derived from seeds and a program id has no private key: the
derivation hashes the seeds into a 32-byte value that is rejected if it lies
on the ed25519 curve. The only way to "sign" as such an address is for the
host to confirm the calling program can reproduce the derivation.

The bump is the single trailing seed byte that pushes the hash off the
curve. It is found by probing from 255 downward and only the first hit is
ever accepted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence, Tuple
import hashlib

from solders.pubkey import Pubkey

PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEED_LEN = 32
MAX_SEEDS = 16


class InvalidSeeds(ValueError):
    """Seeds cannot produce a program-derived address"""


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    """
    Hash seeds under program_id into an address with no private key

    Raises:
        InvalidSeeds: too many or too long seeds, or the hash is on the curve
    """
    if len(seeds) > MAX_SEEDS:
        raise InvalidSeeds(f"At most {MAX_SEEDS} seeds allowed, got {len(seeds)}")

    hasher = hashlib.sha256()
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise InvalidSeeds(f"Seed of {len(seed)} bytes exceeds {MAX_SEED_LEN}")
        hasher.update(seed)
    hasher.update(bytes(program_id))
    hasher.update(PDA_MARKER)

    candidate = Pubkey(hasher.digest())
    if candidate.is_on_curve():
        raise InvalidSeeds("Derived address lies on the ed25519 curve")
    return candidate


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Return the canonical (address, bump) for seeds under program_id"""
    for bump in range(255, 0, -1):
        try:
            address = create_program_address(list(seeds) + [bytes([bump])], program_id)
        except InvalidSeeds:
            continue
        return address, bump
    raise InvalidSeeds("Unable to find a viable program address bump seed")


def get_associated_token_address(
    owner: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey,
    associated_token_program_id: Pubkey
) -> Pubkey:
    """Address of the holding record for (owner, mint)"""
    address, _ = find_program_address(
        [bytes(owner), bytes(token_program_id), bytes(mint)],
        associated_token_program_id
    )
    return address


@dataclass(frozen=True)
class CallerContext:
    """Execution context the host attributes a signed call to"""
    program_id: Pubkey


class Authority(ABC):
    """Proof-of-origin capability for a key-less signing identity"""

    @abstractmethod
    def derive(self) -> Tuple[Pubkey, int]:
        """Canonical (address, bump) of the authority"""

    @abstractmethod
    def verify(self, caller: CallerContext, label: bytes, counter: int) -> bool:
        """Whether caller may assert the identity derived from (label, counter)"""

    @property
    @abstractmethod
    def label(self) -> bytes:
        pass


class ProgramDerivedAuthority(Authority):
    """Binds the authority to the native program-derived address rule"""

    def __init__(self, program_id: Pubkey, label: bytes = b"mint_authority"):
        self.program_id = program_id
        self._label = label

    @property
    def label(self) -> bytes:
        return self._label

    def derive(self) -> Tuple[Pubkey, int]:
        # Recomputed every time; the authority is never stored
        return find_program_address([self._label], self.program_id)

    def verify(self, caller: CallerContext, label: bytes, counter: int) -> bool:
        if caller.program_id != self.program_id or label != self._label:
            return False
        address, bump = self.derive()
        if counter != bump:
            return False
        try:
            return create_program_address([label, bytes([counter])], caller.program_id) == address
        except InvalidSeeds:
            return False


class StaticAuthority(Authority):
    """Equality-check authority for tests that do not exercise the hash rule"""

    def __init__(self, address: Pubkey, bump: int, program_id: Pubkey,
                 label: bytes = b"mint_authority"):
        self.address = address
        self.bump = bump
        self.program_id = program_id
        self._label = label
        self.verify_calls: List[Tuple[CallerContext, bytes, int]] = []

    @property
    def label(self) -> bytes:
        return self._label

    def derive(self) -> Tuple[Pubkey, int]:
        return self.address, self.bump

    def verify(self, caller: CallerContext, label: bytes, counter: int) -> bool:
        self.verify_calls.append((caller, label, counter))
        return (
            caller.program_id == self.program_id
            and label == self._label
            and counter == self.bump
        )
