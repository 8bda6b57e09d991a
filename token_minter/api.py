"""
Token Minter API Application Factory

HTTP surface over MinterProgram: create-and-issue plus read-only mint and
balance queries. The server plays the client role for a request: it
generates the fresh mint keypair and submits with payer and mint as
signers.
"""

from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from . import __version__
from .balances import TokenBalanceService
from .config import get_config
from .errors import AlreadyInitialized, MinterError
from .logging_config import get_logger
from .processor import MinterProgram
from .schemas import (
    AuthorityResponse, BalanceResponse, CreateTokenRequest, IssuanceResponse,
    MintResponse, OwnerTokensResponse
)
from .validator import IssuanceRequest

logger = get_logger("minter.api")


class MintingSystem:
    """Minter program with its read-side services"""

    def __init__(self, program: Optional[MinterProgram] = None):
        self.program = program or MinterProgram.from_config()
        self.balances = TokenBalanceService(
            self.program.storage, self.program.token_engine, self.program.account_factory
        )


def get_minting_system(request: Request) -> MintingSystem:
    return request.app.state.minting_system


def _parse_address(value: str, field: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} is not a valid address: {value}")


def create_app(system: Optional[MintingSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Token Minter API",
        description="Create a mint controlled by a program-derived authority and issue its supply",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.minting_system = system or MintingSystem()

    @app.exception_handler(MinterError)
    async def minter_error_handler(request: Request, exc: MinterError):
        code = status.HTTP_409_CONFLICT if isinstance(exc, AlreadyInitialized) else status.HTTP_400_BAD_REQUEST
        return JSONResponse(status_code=code, content=exc.to_dict())

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "token_minter_api", "version": __version__}

    @app.get("/")
    async def get_api_info():
        return {
            "name": "Token Minter API",
            "version": __version__,
            "cluster": get_config().cluster,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "authority": "/authority",
                "tokens": "/tokens",
                "mints": "/mints/{mint}",
                "balances": "/mints/{mint}/balances/{owner}",
                "owner_tokens": "/owners/{owner}/tokens",
            }
        }

    @app.get("/authority", response_model=AuthorityResponse)
    async def get_authority(system: MintingSystem = Depends(get_minting_system)):
        """Derived mint authority of this program"""
        address, bump = system.program.derive_authority()
        return AuthorityResponse(
            program_id=str(system.program.program_id),
            seed=system.program.authority.label.decode("utf-8"),
            address=str(address),
            bump=bump,
        )

    @app.post("/tokens", response_model=IssuanceResponse, status_code=status.HTTP_201_CREATED)
    def create_token(request: CreateTokenRequest,
                     system: MintingSystem = Depends(get_minting_system)):
        """Create a new mint and issue its initial supply"""
        payer = _parse_address(request.payer, "payer")
        recipient = _parse_address(request.recipient, "recipient") if request.recipient else payer
        authority = _parse_address(request.authority, "authority") if request.authority else None

        mint_keypair = Keypair()
        mint = mint_keypair.pubkey()

        receipt = system.program.create_and_issue(
            IssuanceRequest(
                decimals=request.decimals,
                initial_amount=request.initial_amount,
                payer=payer,
                recipient=recipient,
                mint=mint,
                authority=authority,
                bump=request.bump,
            ),
            signers=[payer, mint],
        )
        return IssuanceResponse(**receipt.to_dict())

    @app.get("/mints/{mint}", response_model=MintResponse)
    async def get_mint(mint: str, system: MintingSystem = Depends(get_minting_system)):
        address = _parse_address(mint, "mint")
        record = system.program.token_engine.get_mint(system.program.storage, address)
        if record is None:
            raise HTTPException(status_code=404, detail="Mint not found")
        return MintResponse(
            address=record.address,
            decimals=record.decimals,
            supply=str(record.supply),
            mint_authority=record.mint_authority,
            freeze_authority=record.freeze_authority,
            owner_program=record.owner_program,
        )

    @app.get("/mints/{mint}/balances/{owner}", response_model=BalanceResponse)
    async def get_balance(mint: str, owner: str,
                          system: MintingSystem = Depends(get_minting_system)):
        balance = system.balances.get_balance(
            _parse_address(mint, "mint"), _parse_address(owner, "owner")
        )
        if balance is None:
            raise HTTPException(status_code=404, detail="Mint not found")
        return BalanceResponse(**balance.to_dict())

    @app.get("/owners/{owner}/tokens", response_model=OwnerTokensResponse)
    async def get_tokens_by_owner(owner: str,
                                  system: MintingSystem = Depends(get_minting_system)):
        owner_address = _parse_address(owner, "owner")
        tokens = system.balances.get_tokens_by_owner(owner_address)
        return OwnerTokensResponse(
            owner=str(owner_address),
            tokens=[BalanceResponse(**t.to_dict()) for t in tokens],
        )

    logger.info("Token minter API initialized for program %s", app.state.minting_system.program.program_id)
    return app
