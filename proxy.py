#!/usr/bin/env python3
"""Run the Copilot gateway with uvicorn."""

from __future__ import annotations

import argparse
import os

import uvicorn

from copilot_gateway.config_loader import build_settings, load_config
from copilot_gateway.main import create_app


def main() -> int:
    parser = argparse.ArgumentParser(description="Anthropic Messages gateway for GitHub Copilot")
    parser.add_argument(
        "--config",
        help="Path to the YAML config (default: COPILOT_GATEWAY_CONFIG or configs/config_default.yaml)",
    )
    parser.add_argument("--env-file", help="Path to a .env file used for ${VAR} substitution")
    parser.add_argument("--host", help="Bind host (overrides config)")
    parser.add_argument("--port", type=int, help="Bind port (overrides config)")
    args = parser.parse_args()

    if args.host:
        os.environ["COPILOT_GATEWAY_HOST"] = args.host
    if args.port:
        os.environ["COPILOT_GATEWAY_PORT"] = str(args.port)

    config = load_config(args.config, env_path=args.env_file)
    settings = build_settings(config)
    app = create_app(config)
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
