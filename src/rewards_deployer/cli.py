"""
rewards_deployer.cli

Command-line entrypoint (`rewards-deployer`).

Responsibilities:
- Parse operator commands (`deploy`, `status`).
- Wire settings, logging, the run ledger, the chain client and the orchestrator.
- Turn outcomes into exit codes; this is the only place exceptions become exit codes.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_deployer import __version__
from rewards_deployer.chain_clients.artifacts import ArtifactError, load_artifact
from rewards_deployer.chain_clients.web3_client import Web3ChainClient
from rewards_deployer.db.init_db import init_db
from rewards_deployer.db.models import DeploymentRun
from rewards_deployer.db.repositories.runs import RunRepo
from rewards_deployer.db.session import create_engine, create_sessionmaker
from rewards_deployer.observability.logging import configure_logging, get_logger
from rewards_deployer.orchestrator.deployer import DeploymentOrchestrator, OrchestratorConfig
from rewards_deployer.orchestrator.errors import (
    CheckpointFailed,
    DeploymentError,
    DeploymentFailed,
    error_kind,
)
from rewards_deployer.services.deployment_service import (
    DeploymentService,
    RunNotFound,
    run_status,
)
from rewards_deployer.settings import NetworkConfig, Settings, UnknownNetwork, get_settings

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_CONFIRMATION_REQUIRED = 3

log = get_logger(__name__)


class ConfigError(Exception):
    """Operator-fixable configuration problem (exit code 2)."""


def open_chain_client(network: NetworkConfig, private_key: str) -> Any:
    # Returns an async context manager; tests replace this with a fake client.
    return Web3ChainClient(network=network, private_key=private_key)


def orchestrator_config(settings: Settings) -> OrchestratorConfig:
    return OrchestratorConfig(
        parameters=settings.deployment_parameters(),
        funding_multiple=settings.funding_multiple,
        funding_target=settings.funding_target,
        propagation_delay_ms=settings.propagation_delay_ms,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rewards-deployer",
        description="Deploy, fund and activate a locked staking-rewards farm.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    deploy = sub.add_parser("deploy", help="Run (or resume) a deployment")
    deploy.add_argument("--network", default=None, help="Configured network name")
    deploy.add_argument(
        "--resume",
        metavar="RUN_ID",
        default=None,
        help="Resume a stored run by id, or 'latest' for the newest run on the network",
    )
    deploy.add_argument(
        "--confirm-retry",
        action="store_true",
        help="Confirm re-sending a step whose previous attempt may have reached the chain",
    )

    status = sub.add_parser("status", help="Print a stored run as JSON")
    status.add_argument("--network", default=None, help="Configured network name")
    status.add_argument("--run-id", default=None, help="Run id (default: latest on the network)")
    return parser


async def _find_run(session: AsyncSession, ref: str | None, network: str) -> DeploymentRun:
    runs = RunRepo(session)
    if ref is None or ref == "latest":
        run = await runs.latest_for_network(network)
        if run is None:
            raise ConfigError(f"no runs recorded for network {network!r}")
        return run
    try:
        run_id = uuid.UUID(ref)
    except ValueError:
        raise ConfigError(f"not a run id: {ref!r}") from None
    run = await runs.get(run_id)
    if run is None:
        raise ConfigError(f"run {ref} not found")
    return run


async def _deploy(settings: Settings, args: argparse.Namespace) -> int:
    if settings.private_key is None:
        raise ConfigError("DEPLOYER_PRIVATE_KEY is not set")
    artifact = load_artifact(settings.artifacts_dir, settings.factory_contract)
    settings.deployment_parameters().validate()

    engine = create_engine(settings)
    try:
        await init_db(engine)
        sessionmaker = create_sessionmaker(engine)
        async with sessionmaker() as session:
            network = args.network or settings.network
            run_id: uuid.UUID | None = None
            if args.resume:
                run = await _find_run(session, args.resume, network)
                run_id, network = run.id, run.network
            net = settings.network_config(network)

            async with open_chain_client(net, settings.private_key.get_secret_value()) as client:
                orchestrator = DeploymentOrchestrator(
                    client=client,
                    config=orchestrator_config(settings),
                    factory_artifact=artifact,
                )
                service = DeploymentService(session=session, orchestrator=orchestrator)
                if run_id is None:
                    run_id = await service.start(network=network)
                result = await service.execute(run_id=run_id, confirm_retry=args.confirm_retry)
    finally:
        await engine.dispose()

    if result["status"] != "COMPLETED":
        print(f"run {result['run_id']} needs confirmation before {result['step']}")
        print(result["reason"])
        print(f"re-run: rewards-deployer deploy --resume {result['run_id']} --confirm-retry")
        return EXIT_CONFIRMATION_REQUIRED

    print(f"run:             {result['run_id']}")
    print(f"factory:         {result['factory_address']}")
    print(f"staking_rewards: {result['staking_rewards_address']}")
    print(f"funded:          {result['funded_amount']}")
    return EXIT_OK


async def _status(settings: Settings, args: argparse.Namespace) -> int:
    engine = create_engine(settings)
    try:
        await init_db(engine)
        async with create_sessionmaker(engine)() as session:
            run = await _find_run(session, args.run_id, args.network or settings.network)
            payload = await run_status(session, run_id=run.id)
    finally:
        await engine.dispose()
    print(json.dumps(payload, indent=2, default=str))
    return EXIT_OK


def main(argv: Sequence[str] | None = None, *, settings: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = settings or get_settings()
    except ValidationError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    configure_logging(
        service_name=settings.service_name, level=settings.log_level, fmt=settings.log_format
    )
    command = _deploy if args.command == "deploy" else _status

    try:
        return asyncio.run(command(settings, args))
    except (ConfigError, ArtifactError, UnknownNetwork, RunNotFound) as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG
    except DeploymentFailed as e:
        print(f"FAILED at {e.step}: {error_kind(e.cause)}: {e.cause}")
        return EXIT_FAILED
    except CheckpointFailed as e:
        print(f"FAILED: run ledger: {e}; check chain state before resuming")
        return EXIT_FAILED
    except DeploymentError as e:
        # Raised outside a step, e.g. invalid parameters or an unreachable node at connect.
        print(f"FAILED: {e.kind}: {e}")
        return EXIT_CONFIG if e.local else EXIT_FAILED
    except KeyboardInterrupt:
        log.warning("interrupted")
        print("interrupted; resume with: rewards-deployer deploy --resume latest")
        return EXIT_FAILED


# --- Module Notes -----------------------------------------------------------
# Results go to stdout and logs go to stderr, so `status` output can be piped into jq.
