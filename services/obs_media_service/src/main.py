#!/usr/bin/env python
"""
One-shot runner: play media for a single reward, command or scene change.

    python -m services.obs_media_service.src.main --kind command --name dmflPlayRandomXFiles --raw-input 3
"""
import argparse
import json
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

# DMFL_DISABLE_OBS is read from the process environment, so .env must be loaded first
PROJECT_ROOT = Path(__file__).resolve().parents[3]
explicit_env = PROJECT_ROOT / ".env"
if explicit_env.exists():
    load_dotenv(explicit_env, override=False)
else:
    found = find_dotenv()
    if found:
        load_dotenv(found, override=False)

from app_logging.logger import logger  # noqa: E402
from config.config import Settings  # noqa: E402
from services.obs_media_service.core.models import TriggerEvent, TriggerKind  # noqa: E402
from services.trigger_service.src.trigger_handler import TriggerHandler  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run one DMFL trigger")
    parser.add_argument(
        "--kind",
        choices=[kind.value for kind in TriggerKind],
        required=True,
        help="What started this run",
    )
    parser.add_argument(
        "--name",
        required=True,
        help="Reward name, command name or scene name",
    )
    parser.add_argument(
        "--raw-input",
        default=None,
        help="Text typed after a command, e.g. the number of random files",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear a stale busy flag before running",
    )
    args = parser.parse_args(argv)

    settings = Settings()
    handler = TriggerHandler.from_settings(settings)
    if args.reset:
        handler.reset()

    trigger = TriggerEvent(
        kind=TriggerKind(args.kind), name=args.name, raw_input=args.raw_input
    )
    result = handler.handle(trigger)
    logger.info(f"Result: {result}")
    print(json.dumps(result, indent=2))
    return 0 if result.get("ok") else 1


if __name__ == "__main__":
    sys.exit(main())
