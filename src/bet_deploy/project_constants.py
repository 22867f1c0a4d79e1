"""
Deployment parameters for the BetOnBalaji contract on Polygon.

These values are the constructor arguments of the deployed bet.
Changing them deploys a different bet and MUST be publicly announced.
"""

CONTRACT_NAME = "BetOnBalaji"
CONTRACT_SOURCE = "contracts/BetOnBalaji.sol"

# WBTC token (Polygon PoS)
WBTC_ADDRESS = "0x1BFD67037B42Cf73acF2047067bd4F2C47D9BfD6"

# Chainlink BTC/USD price feed (Polygon PoS)
PRICE_FEED_ADDRESS = "0xc907E116054Ad103354f2D350FD2514433D57F6f"

# Bet duration: 90 days in seconds
BET_DURATION_S = 90 * 24 * 60 * 60

# Constructor order: (token, priceFeed, duration)
CONSTRUCTOR_ARGS = [WBTC_ADDRESS, PRICE_FEED_ADDRESS, BET_DURATION_S]

# Blocks to wait before asking the explorer to verify
CONFIRMATIONS = 8
