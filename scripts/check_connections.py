#!/usr/bin/env python
"""Check connectivity to the vector database and the generation API.

Usage:
    python -m scripts.check_connections

Intended as a deployment smoke test: exits 1 when any dependency is
unreachable or misconfigured.
"""

import argparse
import asyncio
import json
import sys

from digital_twin.config import get_settings
from digital_twin.health import HealthChecker, HealthReport
from digital_twin.logging_config import get_logger, setup_logging
from digital_twin.services import ServiceContainer

logger = get_logger(__name__)


async def check_connections() -> HealthReport:
    """Run the dependency probes once."""
    settings = get_settings()
    setup_logging(level=settings.log_level, json_output=False, stream=sys.stderr)

    services = ServiceContainer(settings)
    try:
        return await HealthChecker(services).check()
    finally:
        await services.close()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Check external service connections")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args()

    report = asyncio.run(check_connections())

    if args.json:
        print(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        print("=" * 60)
        print("CONNECTION CHECK")
        print("=" * 60)
        for name, ok in report.services.items():
            print(f"  {name:<12} {'ok' if ok else 'FAILED'}")
        for key, value in report.details.items():
            print(f"  {key}: {value}")
        if report.errors:
            print("\nErrors:")
            for error in report.errors:
                print(f"  - {error}")
        print("=" * 60)
        print(f"RESULT: {'HEALTHY' if report.success else 'UNHEALTHY'}")

    sys.exit(0 if report.success else 1)


if __name__ == "__main__":
    main()
