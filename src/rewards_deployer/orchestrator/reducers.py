"""
rewards_deployer.orchestrator.reducers

Merge functions for the keys of `DeploymentState` that nodes extend rather than replace.
"""

from __future__ import annotations

from typing import Any


def append_audit(
    left: list[dict[str, Any]] | None, right: list[dict[str, Any]] | None
) -> list[dict[str, Any]]:
    # Audit entries are only ever appended; a node returns the entries it produced.
    return [*(left or []), *(right or [])]


def merge_dicts(left: dict[str, str] | None, right: dict[str, str] | None) -> dict[str, str]:
    """
    Merge step name -> transaction hash maps.

    A step that is re-sent after a confirmed retry overwrites its earlier hash.
    """

    return {**(left or {}), **(right or {})}
