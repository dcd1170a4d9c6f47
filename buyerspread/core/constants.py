# ==============================================================================
# CHAIN CONSTANTS
# ==============================================================================
LAMPORTS_PER_SOL = 1_000_000_000

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

# Canonical Base Tokens
BASE_TOKENS = {
    'WSOL': 'So11111111111111111111111111111111111111112',
    'USDC': 'EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v',
    'USDT': 'Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB',
}
WSOL_MINT = BASE_TOKENS['WSOL']
STABLECOIN_MINTS = frozenset({BASE_TOKENS['USDC'], BASE_TOKENS['USDT']})
BASE_TOKEN_ADDRESSES = frozenset(BASE_TOKENS.values())

# Token whose early buyers are analysed when TRACKED_MINT is not set
DEFAULT_TRACKED_MINT = "4gJSf4q3VXwoKH7ScrYCxHBN41eWwPYJW3aNykYrpump"

# Program IDs used as venue markers in transaction logs
JUPITER_PROGRAM_ID = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
RAYDIUM_PROGRAM_ID = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
PUMP_PROGRAM_ID = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"

JUPITER_PRICE_API = "https://api.jup.ag/price/v2"

# ==============================================================================
# PIPELINE DEFAULTS
# ==============================================================================
# History
SIGNATURE_PAGE_SIZE = 1000               # Max allowed by getSignaturesForAddress
PAGE_DELAY_SECONDS = 1.0                 # 1 request per second while paginating
ANALYSIS_WINDOW_SECONDS = 1800           # First 30 minutes of trading

# RPC backoff (429 only)
MAX_RATE_LIMIT_ATTEMPTS = 5
BACKOFF_BASE_SECONDS = 1.0

# Transaction details
DETAIL_BATCH_SIZE = 45                   # Stay under the provider's 50 RPS ceiling
DETAIL_ATTEMPTS = 3
DETAIL_RETRY_DELAY_SECONDS = 1.0
BATCH_DELAY_SECONDS = 1.0

# Aggregation
ACCUMULATION_THRESHOLD = 2_000_000       # Net tokens bought to count as accumulator

# Portfolio enrichment
MIN_HOLDING_AMOUNT = 20_000              # UI amount floor for non-mandatory mints
TOP_HOLDINGS = 20
PRICE_BATCH_SIZE = 100                   # Max ids per Jupiter request
PRICE_BATCH_DELAY_SECONDS = 1.0
OWNER_RATE_LIMIT = 30                    # Owners per second

REQUEST_TIMEOUT_SECONDS = 15
