"""Asset identifiers and protocol constants."""

# Asset symbols
XLM = "XLM"
BTC = "BTC"
ETH = "ETH"
USDC = "USDC"

# Stellar assets carry 7 decimals
STELLAR_DECIMALS = 7
XLM_DECIMALS = STELLAR_DECIMALS
BTC_DECIMALS = STELLAR_DECIMALS
ETH_DECIMALS = STELLAR_DECIMALS
USDC_DECIMALS = STELLAR_DECIMALS

STABLE_ASSET = USDC

# Default admin identity for local runs
DEFAULT_ADMIN = "admin"
