"""
rewards_deployer.__main__

Entrypoint for `python -m rewards_deployer`.
"""

from __future__ import annotations

from rewards_deployer.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
