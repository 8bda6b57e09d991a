"""
Token Minter

Creates a fungible-token mint and issues its initial supply in one
all-or-nothing request. Minting and freezing are controlled by a key-less
authority derived from the program id and the "mint_authority" seed.
"""

__version__ = "1.0.0"
