"""
Create-and-Issue Request Handler

Runs one request through Validator -> Deriver -> Invoker inside a single
LedgerTransaction and commits it, or rolls everything back and re-raises
the one error that stopped it.

State machine per request:
    received -> validating -> {authority_verified | authority_mismatch |
    validation_failed} -> issuing -> {completed | issuance_failed}
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from enum import Enum

from solders.pubkey import Pubkey

from .account_factory import AssociatedAccountFactory
from .addresses import Authority, ProgramDerivedAuthority
from .audit import AuditTrail, AuditEventType
from .config import MinterConfig, get_config
from .errors import AuthorityMismatch, IssuanceFailed, MinterError
from .invoker import IssuanceInvoker
from .logging_config import get_logger, log_action
from .storage import InMemoryStorage, StorageInterface
from .token_engine import TokenEngine
from .transaction import LedgerTransaction
from .validator import AccountValidator, IssuanceRequest, ValidatedAccounts


class RequestStatus(Enum):
    RECEIVED = "received"
    VALIDATING = "validating"
    VALIDATION_FAILED = "validation_failed"
    AUTHORITY_VERIFIED = "authority_verified"
    AUTHORITY_MISMATCH = "authority_mismatch"
    ISSUING = "issuing"
    COMPLETED = "completed"
    ISSUANCE_FAILED = "issuance_failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            RequestStatus.VALIDATION_FAILED,
            RequestStatus.AUTHORITY_MISMATCH,
            RequestStatus.COMPLETED,
            RequestStatus.ISSUANCE_FAILED,
        )


@dataclass(frozen=True)
class ServiceIdentities:
    """Well-known program ids the minter calls into"""
    token_program: Pubkey
    associated_token_program: Pubkey
    system_program: Pubkey

    @classmethod
    def from_config(cls, config: MinterConfig) -> 'ServiceIdentities':
        return cls(
            token_program=Pubkey.from_string(config.token_program_id),
            associated_token_program=Pubkey.from_string(config.associated_token_program_id),
            system_program=Pubkey.from_string(config.system_program_id),
        )


@dataclass
class IssuanceReceipt:
    request_id: str
    mint: Pubkey
    holding: Pubkey
    amount: int
    decimals: int
    authority: Pubkey
    bump: int
    holding_created: bool
    status: RequestStatus
    logs: List[str] = field(default_factory=list)
    audit_event_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "mint": str(self.mint),
            "holding": str(self.holding),
            "amount": self.amount,
            "decimals": self.decimals,
            "authority": str(self.authority),
            "bump": self.bump,
            "holding_created": self.holding_created,
            "status": self.status.value,
            "logs": list(self.logs),
            "audit_event_id": self.audit_event_id,
        }


class MinterProgram:
    """
    The minter program: one operation, create_and_issue

    All collaborators are injected so tests can swap the authority binding,
    the store and the audit trail without a live ledger.
    """

    def __init__(
        self,
        program_id: Pubkey,
        storage: StorageInterface,
        authority: Authority,
        token_engine: TokenEngine,
        account_factory: AssociatedAccountFactory,
        audit_trail: Optional[AuditTrail] = None
    ):
        self.program_id = program_id
        self.storage = storage
        self.authority = authority
        self.token_engine = token_engine
        self.account_factory = account_factory
        self.audit_trail = audit_trail
        self.validator = AccountValidator(token_engine, account_factory)
        self.invoker = IssuanceInvoker(program_id, token_engine, authority)
        self.logger = get_logger("minter.processor")

    @classmethod
    def from_config(
        cls,
        config: Optional[MinterConfig] = None,
        storage: Optional[StorageInterface] = None,
        authority: Optional[Authority] = None
    ) -> 'MinterProgram':
        """Wire the default collaborators from configuration"""
        config = config or get_config()
        storage = storage or InMemoryStorage()
        program_id = config.resolve_program_id()
        services = ServiceIdentities.from_config(config)

        token_engine = TokenEngine(services.token_program)
        account_factory = AssociatedAccountFactory(services.associated_token_program, token_engine)
        audit_trail = AuditTrail(InMemoryStorage()) if config.enable_audit_logging else None

        return cls(
            program_id=program_id,
            storage=storage,
            authority=authority or ProgramDerivedAuthority(program_id, config.seed_bytes),
            token_engine=token_engine,
            account_factory=account_factory,
            audit_trail=audit_trail,
        )

    def derive_authority(self):
        """Canonical (address, bump) of the mint authority"""
        return self.authority.derive()

    def _verify_authority(self, request: IssuanceRequest, address: Pubkey, bump: int) -> None:
        if request.bump is not None and request.bump != bump:
            raise AuthorityMismatch(
                f"Supplied bump {request.bump} is not the canonical bump {bump}"
            )
        if request.authority is not None and request.authority != address:
            raise AuthorityMismatch(
                f"Supplied authority {request.authority} does not match derived {address}"
            )

    def create_and_issue(self, request: IssuanceRequest,
                         signers: Iterable[Pubkey]) -> IssuanceReceipt:
        """
        Create a mint controlled by the derived authority and issue its
        initial supply to the recipient

        Args:
            request: Issuance arguments
            signers: Addresses that signed the request (payer and mint)

        Returns:
            IssuanceReceipt of the committed request

        Raises:
            MinterError: exactly one terminal error; nothing was committed
        """
        tx = LedgerTransaction(self.storage, signers)
        status = RequestStatus.RECEIVED

        try:
            status = RequestStatus.VALIDATING
            address, bump = self.authority.derive()
            accounts: ValidatedAccounts = self.validator.prepare(tx, request, address)

            try:
                self._verify_authority(request, address, bump)
            except AuthorityMismatch:
                status = RequestStatus.AUTHORITY_MISMATCH
                raise
            status = RequestStatus.AUTHORITY_VERIFIED

            status = RequestStatus.ISSUING
            holding_address = Pubkey.from_string(accounts.holding.address)
            try:
                self.invoker.issue(
                    tx,
                    mint=request.mint,
                    destination=holding_address,
                    authority=address,
                    bump=bump,
                    amount=request.initial_amount,
                )
            except IssuanceFailed:
                status = RequestStatus.ISSUANCE_FAILED
                raise

            tx.commit()
            status = RequestStatus.COMPLETED
        except MinterError as e:
            tx.rollback()
            if not status.is_terminal:
                status = RequestStatus.VALIDATION_FAILED
            log_action(
                self.logger, "warning", f"Issuance rejected: {e.name}",
                action="create_and_issue", resource=f"mint:{request.mint}",
                correlation_id=tx.request_id,
                extra={"status": status.value, "code": e.code, "reason": e.message}
            )
            raise
        except Exception:
            tx.rollback()
            raise

        receipt = IssuanceReceipt(
            request_id=tx.request_id,
            mint=request.mint,
            holding=holding_address,
            amount=request.initial_amount,
            decimals=request.decimals,
            authority=address,
            bump=bump,
            holding_created=accounts.holding_created,
            status=status,
            logs=list(tx.logs),
        )
        receipt.audit_event_id = self._record_audit(receipt, request)

        for line in receipt.logs:
            log_action(self.logger, "info", line, action="program_log",
                       correlation_id=tx.request_id)
        return receipt

    def _record_audit(self, receipt: IssuanceReceipt, request: IssuanceRequest) -> Optional[str]:
        if self.audit_trail is None:
            return None

        self.audit_trail.log_event(
            event_type=AuditEventType.MINT_CREATED,
            entity_type="mint",
            entity_id=str(receipt.mint),
            request_id=receipt.request_id,
            metadata={
                "decimals": receipt.decimals,
                "mint_authority": receipt.authority,
                "freeze_authority": receipt.authority,
                "payer": request.payer,
            }
        )
        if receipt.holding_created:
            self.audit_trail.log_event(
                event_type=AuditEventType.HOLDING_RECORD_CREATED,
                entity_type="holding_record",
                entity_id=str(receipt.holding),
                request_id=receipt.request_id,
                metadata={"owner": request.recipient, "mint": receipt.mint, "payer": request.payer}
            )
        event = self.audit_trail.log_event(
            event_type=AuditEventType.TOKENS_ISSUED,
            entity_type="mint",
            entity_id=str(receipt.mint),
            request_id=receipt.request_id,
            metadata={
                "mint": receipt.mint,
                "holding": receipt.holding,
                "amount": receipt.amount,
            }
        )
        return event.id
