"""
rewards_deployer.chain_clients

Chain client package.

Responsibilities:
- Provide the client interface the orchestrator uses to talk to a node.
- Load compiled contract artifacts.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The orchestrator should depend on `chain_clients.base.ChainClient` (not on web3 directly).
