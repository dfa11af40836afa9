"""Building blocks for Ethereum node management: Beacon API access, key types, SSZ and a JSON API client."""

__version__ = "0.1.0"