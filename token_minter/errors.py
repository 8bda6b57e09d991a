"""
Error Taxonomy

Every failure of a create-and-issue request is terminal and surfaces as
exactly one MinterError subclass. Codes follow the numbering the on-chain
host reports for the same condition so clients can match on them.
"""

from typing import Optional


class MinterError(Exception):
    """Base class for all request failures"""
    code: int = 1
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"error": self.name, "code": self.code, "message": self.message}


class InvalidMintAmount(MinterError):
    """Requested issuance quantity is zero"""
    code = 6000
    default_message = "Initial mint amount must be greater than zero"


class AuthorityMismatch(MinterError):
    """Supplied bump or authority address is not the canonical derivation"""
    code = 2006
    default_message = "A seeds constraint was violated"


class AlreadyInitialized(MinterError):
    """Mint address is already in use"""
    code = 0
    default_message = "Account already in use"


class IssuanceFailed(MinterError):
    """The signed mint-to call was rejected"""
    code = 7000
    default_message = "Token issuance failed"


class InvalidInstructionData(MinterError):
    """Instruction arguments do not fit their declared integer widths"""
    code = 102
    default_message = "The program could not deserialize the given instruction"


class MissingRequiredSignature(MinterError):
    """An account that must sign the request did not"""
    code = 3010
    default_message = "Missing required signature"


class AccountConstraintViolation(MinterError):
    """An existing account does not match the role it is passed in"""
    code = 2014
    default_message = "An account constraint was violated"


class TokenEngineError(MinterError):
    """Raised by the token engine; wrapped into IssuanceFailed by the invoker"""
    code = 7001
    default_message = "Token engine rejected the instruction"
