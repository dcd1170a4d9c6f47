"""Early large accumulator discovery for a single Solana token."""

__version__ = "0.1.0"
