from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_deployer.chain_clients.artifacts import ContractArtifact
from rewards_deployer.db.init_db import init_db
from rewards_deployer.db.session import create_engine, create_sessionmaker
from rewards_deployer.models import DeploymentParameters
from rewards_deployer.orchestrator.deployer import DeploymentOrchestrator, OrchestratorConfig
from rewards_deployer.settings import Settings

from tests.fakes import FakeChainClient, FakeClock, artifact_payload, default_parameters


@pytest.fixture
def artifact() -> ContractArtifact:
    return ContractArtifact.model_validate(artifact_payload())


@pytest.fixture
def client() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def clock(client: FakeChainClient) -> FakeClock:
    return FakeClock(client.events)


@pytest.fixture
def make_orchestrator(
    client: FakeChainClient, clock: FakeClock, artifact: ContractArtifact
) -> Callable[..., DeploymentOrchestrator]:
    def _make(
        *,
        parameters: DeploymentParameters | None = None,
        chain: FakeChainClient | None = None,
        timer: FakeClock | None = None,
        **config: Any,
    ) -> DeploymentOrchestrator:
        return DeploymentOrchestrator(
            client=chain or client,
            config=OrchestratorConfig(parameters=parameters or default_parameters(), **config),
            factory_artifact=artifact,
            clock=timer or clock,
        )

    return _make


@pytest.fixture
def orchestrator(make_orchestrator: Callable[..., DeploymentOrchestrator]) -> DeploymentOrchestrator:
    return make_orchestrator()


@pytest_asyncio.fixture
async def session() -> AsyncIterator[AsyncSession]:
    engine = create_engine(Settings(_env_file=None, database_url="sqlite+aiosqlite://"))
    await init_db(engine)
    try:
        async with create_sessionmaker(engine)() as s:
            yield s
    finally:
        await engine.dispose()
