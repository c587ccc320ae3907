#!/usr/bin/env python3
# node_agent/main.py
"""
Relay Node Agent daemon entry point
"""

import sys
import signal
import logging
import argparse

from pydantic import ValidationError

from .config import AgentSettings
from .metrics.exporter import MetricsServer
from .runtime import new_agent

logger = logging.getLogger('relay-agent')


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Relay Node Agent")
    parser.add_argument("--env-file", default=".env", help="Optional .env file with agent settings")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args(argv)

    try:
        settings = AgentSettings(_env_file=args.env_file)
    except ValidationError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Invalid configuration: {e}")
        return 2

    logging.basicConfig(
        level=getattr(logging, (args.log_level or settings.LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        agent, exporter = new_agent(settings)
    except Exception as e:
        logger.error(f"Init agent failed: {e}")
        return 1

    def _signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        agent.stop()

    signal.signal(signal.SIGTERM, _signal_handler)
    signal.signal(signal.SIGINT, _signal_handler)

    metrics_server = MetricsServer(exporter, settings.AGENT_METRICS_ADDR)
    metrics_server.start()
    try:
        agent.run()
    finally:
        metrics_server.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
