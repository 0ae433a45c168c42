"""hashbatch: groups claimed IPFS hashes into directory batches for anchoring."""

__version__ = "0.1.0"
__author__ = "Hashbatch Team"

__all__ = ["__version__", "__author__"]
