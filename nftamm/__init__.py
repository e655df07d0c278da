"""
nftamm: accounting core of a bonding-curve liquidity-pool marketplace for
non-fungible assets.
"""

__version__ = "0.1.0"
