"""
Integration tests for the Token Minter API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient
from solders.keypair import Keypair

from token_minter.api import MintingSystem, create_app


@pytest.fixture
def system(program):
    return MintingSystem(program)


@pytest.fixture
def client(system):
    """Test client over an in-memory minting system"""
    return TestClient(create_app(system))


def _create(client, **overrides):
    body = {"decimals": 6, "initial_amount": 1_000_000, "payer": str(Keypair().pubkey())}
    body.update(overrides)
    return client.post("/tokens", json=body)


class TestHealthEndpoints:
    """Test basic health and root endpoints"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        data = r.json()
        assert data["name"] == "Token Minter API"
        assert "tokens" in data["endpoints"]

    def test_authority(self, client, program):
        r = client.get("/authority")
        assert r.status_code == 200
        address, bump = program.derive_authority()
        assert r.json() == {
            "program_id": str(program.program_id),
            "seed": "mint_authority",
            "address": str(address),
            "bump": bump,
        }


class TestCreateToken:
    """POST /tokens"""

    def test_create_token(self, client, program):
        recipient = str(Keypair().pubkey())
        r = _create(client, recipient=recipient)

        assert r.status_code == 201
        data = r.json()
        address, bump = program.derive_authority()
        assert data["status"] == "completed"
        assert data["amount"] == 1_000_000
        assert data["authority"] == str(address)
        assert data["bump"] == bump
        assert data["holding_created"] is True
        assert data["logs"] == [
            "Token created and minted successfully!",
            f"Mint Address: {data['mint']}",
            f"Recipient Token Address: {data['holding']}",
            "Amount Minted: 1000000",
        ]

    def test_recipient_defaults_to_payer(self, client):
        payer = str(Keypair().pubkey())
        data = _create(client, payer=payer).json()

        r = client.get(f"/mints/{data['mint']}/balances/{payer}")

        assert r.status_code == 200
        assert r.json()["amount"] == "1000000"
        assert r.json()["balance"] == "1"

    def test_each_request_gets_a_fresh_mint(self, client):
        first = _create(client).json()
        second = _create(client).json()
        assert first["mint"] != second["mint"]

    def test_zero_amount(self, client, storage):
        r = _create(client, initial_amount=0)

        assert r.status_code == 400
        assert r.json()["error"] == "InvalidMintAmount"
        assert r.json()["code"] == 6000
        assert storage.count("accounts") == 0

    def test_wrong_bump(self, client, program):
        _, bump = program.derive_authority()
        r = _create(client, bump=(bump + 1) % 256)

        assert r.status_code == 400
        assert r.json()["error"] == "AuthorityMismatch"

    def test_wrong_authority(self, client):
        r = _create(client, authority=str(Keypair().pubkey()))
        assert r.status_code == 400
        assert r.json()["error"] == "AuthorityMismatch"

    def test_invalid_payer_address(self, client):
        r = _create(client, payer="not-an-address")
        assert r.status_code == 400

    @pytest.mark.parametrize("overrides", [
        {"decimals": 256},
        {"initial_amount": -1},
        {"initial_amount": 2 ** 64},
        {"bump": 300},
    ])
    def test_schema_violations(self, client, overrides):
        assert _create(client, **overrides).status_code == 422

    def test_conflict_response(self, client, system, monkeypatch):
        from token_minter.errors import AlreadyInitialized

        def taken(*args, **kwargs):
            raise AlreadyInitialized()

        monkeypatch.setattr(system.program, "create_and_issue", taken)
        r = _create(client)

        assert r.status_code == 409
        assert r.json()["error"] == "AlreadyInitialized"


class TestQueries:
    """Mint and balance reads"""

    def test_get_mint(self, client, program):
        data = _create(client, decimals=9, initial_amount=5).json()

        r = client.get(f"/mints/{data['mint']}")

        assert r.status_code == 200
        mint = r.json()
        address, _ = program.derive_authority()
        assert mint["decimals"] == 9
        assert mint["supply"] == "5"
        assert mint["mint_authority"] == str(address)
        assert mint["freeze_authority"] == str(address)

    def test_unknown_mint(self, client):
        mint = str(Keypair().pubkey())
        assert client.get(f"/mints/{mint}").status_code == 404
        assert client.get(f"/mints/{mint}/balances/{Keypair().pubkey()}").status_code == 404

    def test_balance_of_owner_without_holding(self, client):
        data = _create(client).json()

        r = client.get(f"/mints/{data['mint']}/balances/{Keypair().pubkey()}")

        assert r.status_code == 200
        assert r.json()["balance"] == "0"

    def test_owner_tokens(self, client):
        owner = str(Keypair().pubkey())
        first = _create(client, recipient=owner, initial_amount=7, decimals=0).json()
        second = _create(client, recipient=owner, initial_amount=2_500, decimals=3).json()

        r = client.get(f"/owners/{owner}/tokens")

        assert r.status_code == 200
        tokens = {t["mint"]: t["balance"] for t in r.json()["tokens"]}
        assert tokens == {first["mint"]: "7", second["mint"]: "2.5"}
