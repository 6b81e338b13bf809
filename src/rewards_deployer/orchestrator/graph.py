from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from langgraph.graph import END, StateGraph

from rewards_deployer.orchestrator.nodes import (
    ROUTES,
    activate_node,
    deploy_factory_node,
    entry_node,
    finish_node,
    fund_node,
    initialize_factory_node,
    read_record_node,
    route_from_entry,
    wait_node,
)
from rewards_deployer.orchestrator.state import (
    ACTIVATE,
    DEPLOY_FACTORY,
    FINISH,
    FUND,
    INITIALIZE_FACTORY,
    READ_RECORD,
    WAIT,
    DeploymentState,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from rewards_deployer.orchestrator.deployer import DeploymentOrchestrator


def build_graph(*, orchestrator: DeploymentOrchestrator):
    """
    Returns a compiled LangGraph runnable: entry, then the six steps in fixed order.
    """

    graph = StateGraph(DeploymentState)

    graph.add_node("entry", entry_node)
    graph.add_node(DEPLOY_FACTORY, _bind_orchestrator(deploy_factory_node, orchestrator))
    graph.add_node(INITIALIZE_FACTORY, _bind_orchestrator(initialize_factory_node, orchestrator))
    graph.add_node(READ_RECORD, _bind_orchestrator(read_record_node, orchestrator))
    graph.add_node(FUND, _bind_orchestrator(fund_node, orchestrator))
    graph.add_node(WAIT, _bind_orchestrator(wait_node, orchestrator))
    graph.add_node(ACTIVATE, _bind_orchestrator(activate_node, orchestrator))
    graph.add_node(FINISH, finish_node)

    graph.set_entry_point("entry")
    graph.add_conditional_edges("entry", route_from_entry, ROUTES)

    graph.add_edge(DEPLOY_FACTORY, INITIALIZE_FACTORY)
    graph.add_edge(INITIALIZE_FACTORY, READ_RECORD)
    graph.add_edge(READ_RECORD, FUND)
    graph.add_edge(FUND, WAIT)
    graph.add_edge(WAIT, ACTIVATE)
    graph.add_edge(ACTIVATE, FINISH)
    graph.add_edge(FINISH, END)

    return graph.compile()


def _bind_orchestrator(
    fn: Callable[..., Awaitable[DeploymentState]],
    orchestrator: DeploymentOrchestrator,
) -> Callable[[DeploymentState], Awaitable[DeploymentState]]:
    async def _wrapped(state: DeploymentState) -> DeploymentState:
        return await fn(state, orchestrator=orchestrator)

    return _wrapped
