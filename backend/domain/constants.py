"""
Domain constants used across services/routers.
"""

# Solana Pay transfer-request URI
SOLANA_PROTOCOL = "solana:"
MAX_URL_LENGTH = 2048

SOL_DECIMALS = 9

# Public keys are 32 raw bytes, base58-encoded
PUBLIC_KEY_LENGTH = 32

# getSignaturesForAddress page size (RPC maximum)
SIGNATURES_PAGE_LIMIT = 1000

# Failure reasons that do not come from the transfer validator
FAILURE_TRANSPORT_ERROR = "transport_error"
FAILURE_TIMEOUT = "timeout"
FAILURE_INTERNAL_ERROR = "internal_error"
