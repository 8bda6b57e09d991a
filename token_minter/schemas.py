"""
Pydantic schemas for API requests and responses
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class CreateTokenRequest(BaseModel):
    decimals: int = Field(..., ge=0, le=255, description="Decimal precision of the new mint")
    # Zero is accepted here so the program reports InvalidMintAmount itself
    initial_amount: int = Field(..., ge=0, le=2 ** 64 - 1, description="Raw units to issue")
    payer: str = Field(..., description="Base58 address paying for the new accounts")
    recipient: Optional[str] = Field(None, description="Base58 owner of the holding record; defaults to payer")
    authority: Optional[str] = Field(None, description="Expected derived authority address")
    bump: Optional[int] = Field(None, ge=0, le=255, description="Expected canonical bump")


class IssuanceResponse(BaseModel):
    request_id: str
    mint: str
    holding: str
    amount: int
    decimals: int
    authority: str
    bump: int
    holding_created: bool
    status: str
    logs: List[str]
    audit_event_id: Optional[str] = None


class AuthorityResponse(BaseModel):
    program_id: str
    seed: str
    address: str
    bump: int


class MintResponse(BaseModel):
    address: str
    decimals: int
    supply: str
    mint_authority: Optional[str]
    freeze_authority: Optional[str]
    owner_program: str


class BalanceResponse(BaseModel):
    mint: str
    holding: str
    amount: str
    decimals: int
    balance: str


class OwnerTokensResponse(BaseModel):
    owner: str
    tokens: List[BalanceResponse]
