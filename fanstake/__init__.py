"""
FanStake: creator-token bonding-curve exchange engine
"""

__version__ = "0.1.0"
