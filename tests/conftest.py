"""
Shared fixtures: an in-memory host with the minter program wired from the
default configuration.
"""

import pytest
from solders.keypair import Keypair

from token_minter.config import MinterConfig
from token_minter.processor import MinterProgram
from token_minter.storage import InMemoryStorage
from token_minter.validator import IssuanceRequest


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def config():
    return MinterConfig(cluster="mainnet-beta", program_id=None, enable_audit_logging=True)


@pytest.fixture
def program(config, storage):
    return MinterProgram.from_config(config, storage=storage)


def new_request(decimals=6, initial_amount=1_000_000, payer=None, recipient=None,
                mint=None, **kwargs):
    """Build a request with fresh addresses; returns (request, signers)"""
    payer = payer or Keypair().pubkey()
    recipient = recipient or Keypair().pubkey()
    mint = mint or Keypair().pubkey()
    request = IssuanceRequest(
        decimals=decimals,
        initial_amount=initial_amount,
        payer=payer,
        recipient=recipient,
        mint=mint,
        **kwargs
    )
    return request, [payer, mint]


@pytest.fixture
def make_request():
    return new_request
