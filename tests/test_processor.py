"""
End-to-end tests for create_and_issue

CRITICAL: a request either commits the mint, the holding record, the
issued supply and exactly four program log lines, or fails with one error
and leaves the ledger untouched.
"""

import threading

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from token_minter.accounts import ACCOUNTS_TABLE
from token_minter.addresses import StaticAuthority
from token_minter.audit import AuditEventType
from token_minter.config import DEVNET_PROGRAM_ID, MAINNET_PROGRAM_ID, MinterConfig
from token_minter.errors import (
    AlreadyInitialized, AuthorityMismatch, InvalidMintAmount, IssuanceFailed,
    MissingRequiredSignature
)
from token_minter.processor import MinterProgram, RequestStatus


class TestCreateAndIssue:
    """Happy path"""

    def test_end_to_end(self, program, storage, make_request):
        """decimals=6, 1_000_000 units to a fresh recipient"""
        request, signers = make_request(decimals=6, initial_amount=1_000_000)

        receipt = program.create_and_issue(request, signers)

        authority, bump = Pubkey.find_program_address(
            [b"mint_authority"], Pubkey.from_string(MAINNET_PROGRAM_ID)
        )
        mint = program.token_engine.get_mint(storage, request.mint)
        assert mint.decimals == 6
        assert mint.supply == 1_000_000
        assert mint.mint_authority == str(authority)
        assert mint.freeze_authority == str(authority)

        holding = program.token_engine.get_token_account(storage, receipt.holding)
        assert holding.owner == str(request.recipient)
        assert holding.mint == str(request.mint)
        assert holding.amount == 1_000_000

        assert receipt.status == RequestStatus.COMPLETED
        assert receipt.authority == authority
        assert receipt.bump == bump
        assert receipt.holding_created
        assert storage.count(ACCOUNTS_TABLE) == 2

    def test_program_log_lines(self, program, make_request):
        """Four lines in fixed order with exact content"""
        request, signers = make_request(initial_amount=42)

        receipt = program.create_and_issue(request, signers)

        assert receipt.logs == [
            "Token created and minted successfully!",
            f"Mint Address: {request.mint}",
            f"Recipient Token Address: {receipt.holding}",
            "Amount Minted: 42",
        ]

    def test_holding_is_associated_address(self, program, make_request):
        request, signers = make_request()
        receipt = program.create_and_issue(request, signers)
        assert receipt.holding == program.account_factory.address_for(request.recipient, request.mint)

    def test_payer_can_be_recipient(self, program, storage, make_request):
        payer = Keypair().pubkey()
        request, signers = make_request(payer=payer, recipient=payer)

        receipt = program.create_and_issue(request, signers)

        assert program.token_engine.get_token_account(storage, receipt.holding).owner == str(payer)

    def test_supplied_canonical_bump_and_authority_accepted(self, program, make_request):
        address, bump = program.derive_authority()
        request, signers = make_request(authority=address, bump=bump)

        receipt = program.create_and_issue(request, signers)

        assert receipt.status == RequestStatus.COMPLETED

    def test_authority_independent_of_payer_and_recipient(self, program, make_request):
        receipts = []
        for _ in range(3):
            request, signers = make_request()
            receipts.append(program.create_and_issue(request, signers))

        assert len({(r.authority, r.bump) for r in receipts}) == 1

    def test_audit_record(self, program, make_request):
        request, signers = make_request(initial_amount=7)

        receipt = program.create_and_issue(request, signers)

        issued = program.audit_trail.get_events_by_type(AuditEventType.TOKENS_ISSUED)
        assert len(issued) == 1
        assert issued[0].id == receipt.audit_event_id
        assert issued[0].metadata == {
            "mint": str(request.mint),
            "holding": str(receipt.holding),
            "amount": 7,
        }
        assert program.audit_trail.count_events() == 3
        assert program.audit_trail.verify_integrity()["valid"]

    def test_audit_disabled(self, storage, make_request):
        program = MinterProgram.from_config(MinterConfig(enable_audit_logging=False), storage=storage)
        request, signers = make_request()

        receipt = program.create_and_issue(request, signers)

        assert program.audit_trail is None
        assert receipt.audit_event_id is None

    def test_devnet_program_id(self, storage, make_request):
        program = MinterProgram.from_config(MinterConfig(cluster="devnet"), storage=storage)
        request, signers = make_request()

        receipt = program.create_and_issue(request, signers)

        expected, _ = Pubkey.find_program_address(
            [b"mint_authority"], Pubkey.from_string(DEVNET_PROGRAM_ID)
        )
        assert receipt.authority == expected


class TestRejections:
    """Every failure is terminal and leaves no state behind"""

    def test_zero_amount(self, program, storage, make_request):
        request, signers = make_request(initial_amount=0)

        with pytest.raises(InvalidMintAmount):
            program.create_and_issue(request, signers)

        assert storage.count(ACCOUNTS_TABLE) == 0
        assert program.audit_trail.count_events() == 0

    def test_same_mint_twice(self, program, storage, make_request):
        request, signers = make_request(initial_amount=1_000)
        program.create_and_issue(request, signers)
        before = storage.get_all_data()

        with pytest.raises(AlreadyInitialized):
            program.create_and_issue(request, signers)

        assert storage.get_all_data() == before

    def test_reissue_to_existing_mint_is_not_supported(self, program, storage, make_request):
        """create+mint is one fused operation; there is no top-up"""
        request, signers = make_request(initial_amount=1_000)
        first = program.create_and_issue(request, signers)

        again, again_signers = make_request(
            initial_amount=500, payer=request.payer, recipient=request.recipient, mint=request.mint
        )
        with pytest.raises(AlreadyInitialized):
            program.create_and_issue(again, again_signers)

        assert program.token_engine.get_mint(storage, request.mint).supply == 1_000
        assert program.token_engine.get_token_account(storage, first.holding).amount == 1_000

    @pytest.mark.parametrize("offset", [1, 2, 17, 128])
    @pytest.mark.parametrize("amount", [1, 1_000_000])
    def test_non_canonical_bump(self, program, storage, make_request, offset, amount):
        _, canonical = program.derive_authority()
        request, signers = make_request(initial_amount=amount, bump=(canonical + offset) % 256)

        with pytest.raises(AuthorityMismatch):
            program.create_and_issue(request, signers)

        assert storage.count(ACCOUNTS_TABLE) == 0

    def test_wrong_authority_address(self, program, storage, make_request):
        request, signers = make_request(authority=Keypair().pubkey())

        with pytest.raises(AuthorityMismatch):
            program.create_and_issue(request, signers)

        assert storage.count(ACCOUNTS_TABLE) == 0

    def test_mint_must_sign(self, program, storage, make_request):
        request, _ = make_request()

        with pytest.raises(MissingRequiredSignature):
            program.create_and_issue(request, [request.payer])

        assert storage.count(ACCOUNTS_TABLE) == 0

    def test_rejected_signed_call_commits_nothing(self, storage, make_request):
        """Authority that refuses the caller: the mint created earlier is rolled back"""
        program_id = Pubkey.from_string(MAINNET_PROGRAM_ID)
        address, bump = Pubkey.find_program_address([b"mint_authority"], program_id)
        refusing = StaticAuthority(address, bump, Pubkey.from_string(DEVNET_PROGRAM_ID))
        program = MinterProgram.from_config(MinterConfig(), storage=storage, authority=refusing)
        request, signers = make_request()

        with pytest.raises(IssuanceFailed, match="unauthorized signer"):
            program.create_and_issue(request, signers)

        assert len(refusing.verify_calls) == 1
        assert storage.count(ACCOUNTS_TABLE) == 0
        assert program.audit_trail.count_events() == 0

    def test_engine_rejection_surfaces_as_issuance_failed(self, program, storage,
                                                          make_request, monkeypatch):
        from token_minter.errors import TokenEngineError

        def refuse(*args, **kwargs):
            raise TokenEngineError("Operation overflowed")

        monkeypatch.setattr(program.token_engine, "mint_to", refuse)
        request, signers = make_request()

        with pytest.raises(IssuanceFailed, match="overflowed") as excinfo:
            program.create_and_issue(request, signers)

        assert isinstance(excinfo.value.__cause__, TokenEngineError)
        assert storage.count(ACCOUNTS_TABLE) == 0

    def test_static_authority_double_drives_full_flow(self, storage, make_request):
        """The request path works against any Authority binding"""
        program_id = Pubkey.from_string(MAINNET_PROGRAM_ID)
        address = Keypair().pubkey()
        double = StaticAuthority(address, 200, program_id)
        program = MinterProgram.from_config(MinterConfig(), storage=storage, authority=double)
        request, signers = make_request()

        receipt = program.create_and_issue(request, signers)

        assert receipt.authority == address
        assert receipt.bump == 200
        assert program.token_engine.get_mint(storage, request.mint).mint_authority == str(address)


class TestConcurrency:
    """Independent requests never interfere; creation races have one winner"""

    def test_distinct_mints_in_parallel(self, program, storage, make_request):
        requests = [make_request(initial_amount=i + 1) for i in range(8)]
        barrier = threading.Barrier(len(requests))
        receipts, errors = [], []

        def run(request, signers):
            barrier.wait(timeout=5)
            try:
                receipts.append(program.create_and_issue(request, signers))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=run, args=pair) for pair in requests]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert len(receipts) == 8
        for request, _ in requests:
            mint = program.token_engine.get_mint(storage, request.mint)
            assert mint.supply == request.initial_amount
            balance = program.token_engine.get_token_account(
                storage, program.account_factory.address_for(request.recipient, request.mint)
            )
            assert balance.amount == request.initial_amount
        assert program.audit_trail.verify_integrity()["valid"]

    def test_same_mint_race_has_one_winner(self, program, storage, make_request):
        mint = Keypair().pubkey()
        contenders = [make_request(mint=mint, initial_amount=100 * (i + 1)) for i in range(2)]
        barrier = threading.Barrier(2)
        receipts, errors = [], []

        def run(request, signers):
            barrier.wait(timeout=5)
            try:
                receipts.append(program.create_and_issue(request, signers))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=run, args=pair) for pair in contenders]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(receipts) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], AlreadyInitialized)
        winner = receipts[0]
        assert program.token_engine.get_mint(storage, mint).supply == winner.amount
        assert storage.count(ACCOUNTS_TABLE) == 2
