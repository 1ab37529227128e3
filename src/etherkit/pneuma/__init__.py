"""
Pneuma - chain interaction layer for etherkit.

Provides the JSON-RPC client and provider, ABI encoding, legacy
transaction building and signing, and receipt polling.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
