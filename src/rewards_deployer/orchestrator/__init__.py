"""
rewards_deployer.orchestrator

Orchestration package (LangGraph state machine over the deployment steps).

Responsibilities:
- Typed state schema, stages, step nodes, routing, and graph compilation.
- The deployment orchestrator and its error taxonomy.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Public surface area should remain small and stable; call sites should use the service layer
# or `orchestrator.deployer.DeploymentOrchestrator` directly.
