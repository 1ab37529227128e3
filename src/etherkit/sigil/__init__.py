"""Sigil - key material, addresses and raw signatures."""
