"""Client-side synchronization engine for the Eclat asset catalog."""

__version__ = "0.4.0"
