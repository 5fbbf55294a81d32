"""CLI demonstration of one orchestrated agent cycle."""
from __future__ import annotations

import asyncio
from typing import NoReturn

from floodguard.config import config
from floodguard.core.log import configure_logging
from floodguard.core.models import AgentContext
from floodguard.runtime import get_orchestrator, get_repository


async def main() -> None:
    orchestrator = get_orchestrator()

    result = await orchestrator.run_cycle(AgentContext(params={"inc": 2, "soc": 3}))
    print(f"Cycle {result.correlation_id} success={result.success}")
    if result.success:
        risk = result.results["risk"]
        print(f"Risk tier {risk['riskTier']} (score {risk['overallRiskScore']})")
        for alert in result.results["alerts"]["alerts"]:
            print(f"[{alert['audience']}] {alert['message']}")
    else:
        print(f"Error: {result.error}")

    print("Trace:")
    for envelope in orchestrator.drain_trace():
        env = envelope.to_dict()
        print(f"  {env['env']['from']} {env['dir']} {env['env']['to']} ({env['env']['type']})")

    get_repository().close()


def run() -> NoReturn:
    configure_logging(config.log_level, "console")
    asyncio.run(main())
    raise SystemExit(0)


if __name__ == "__main__":
    run()
