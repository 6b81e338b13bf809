"""
rewards_deployer

Deploys a locked staking-rewards factory, funds the farm it creates and starts emission.

Entry points: `rewards_deployer.cli` (the `rewards-deployer` command) and
`rewards_deployer.orchestrator.deployer.DeploymentOrchestrator` for programmatic use.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
