"""dropin-rota MCP server.

Exposes tools for profile management, availability resolution, rota
generation (via rota_core) and rota evaluation.
"""
from __future__ import annotations

import argparse
import logging
import os
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import RuntimeConfig, get_profile, load_env, load_rota_profiles, runtime_config
from .pipeline import resolution_summary, rota_summary

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "dropin-rota",
    host=os.getenv("DROPIN_ROTA_HOST") or "127.0.0.1",
    port=int(os.getenv("DROPIN_ROTA_PORT") or "8000"),
    instructions=(
        "Rota generation engine for volunteer drop-in centres. "
        "Resolves volunteer groups and availability, generates a fair "
        "deterministic rota and evaluates its quality. "
        "Input is read from a CSV directory or an XLSX workbook; nothing is written back."
    ),
)

_ENV_FILE: str | None = None


def _input_source(input_dir: str | None) -> str:
    load_env(_ENV_FILE or os.getenv("DROPIN_ROTA_ENV_FILE"))
    if input_dir:
        return input_dir
    cfg = runtime_config()
    if cfg.input_dir is None:
        raise ValueError("input_dir not given and DROPIN_ROTA_INPUT_DIR is not set")
    return str(cfg.input_dir)


# -- Profile management --

@mcp.tool()
def list_profiles() -> dict[str, Any]:
    """List available rota profiles with their settings."""
    profiles = load_rota_profiles()
    return {name: get_profile(name).summary() for name in profiles}


@mcp.tool()
def load_profile(profile_name: str) -> dict[str, Any]:
    """Load a rota profile by name. Returns the full profile JSON."""
    profiles = load_rota_profiles()
    if profile_name not in profiles:
        available = list(profiles.keys())
        raise ValueError(
            f"Profile '{profile_name}' not found. Available: {available}"
        )
    return profiles[profile_name]


# -- Rota engine --

@mcp.tool()
def resolve_availability(input_dir: str | None = None) -> dict[str, Any]:
    """Group volunteers and report which groups are eligible and why others were dropped."""
    return resolution_summary(_input_source(input_dir))


@mcp.tool()
def generate_rota(input_dir: str | None = None, profile_name: str | None = None) -> dict[str, Any]:
    """Run the rota engine on an input directory or workbook.

    Returns shifts, fairness overview, validation issues and the
    availability resolution report. Uses the profile named in rota.json
    when profile_name is omitted.
    """
    return rota_summary(_input_source(input_dir), profile_name)


@mcp.tool()
def evaluate_rota(input_dir: str | None = None, profile_name: str | None = None) -> dict[str, Any]:
    """Generate a rota and compute quality metrics: coverage, team leads, fairness, issues."""
    from .evaluate import evaluate_outcome

    return evaluate_outcome(rota_summary(_input_source(input_dir), profile_name))


# -- Server entrypoints --

def http_app(cfg: RuntimeConfig):
    """Streamable-HTTP app with an open /health route.

    Every other path needs ``Authorization: Bearer <DROPIN_ROTA_API_KEY>``
    when a key is configured.
    """
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.responses import JSONResponse, PlainTextResponse
    from starlette.routing import Route

    class BearerAuth(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            if request.url.path == "/health":
                return await call_next(request)
            auth = request.headers.get("authorization", "")
            if auth != f"Bearer {cfg.api_key}":
                logger.warning("Rejected %s %s: bad or missing bearer token", request.method, request.url.path)
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            return await call_next(request)

    app = mcp.streamable_http_app()
    if cfg.api_key:
        app.add_middleware(BearerAuth)
    else:
        logger.warning("DROPIN_ROTA_API_KEY is not set; HTTP transport is unauthenticated")
    app.routes.append(Route("/health", lambda r: PlainTextResponse("ok")))
    return app


async def _run_http() -> None:
    import uvicorn

    cfg = runtime_config()
    port = cfg.http_port or 8000
    logger.info("Serving dropin-rota on http://%s:%d", cfg.http_host, port)
    config = uvicorn.Config(
        http_app(cfg),
        host=cfg.http_host,
        port=port,
        log_level=cfg.log_level.lower(),
    )
    await uvicorn.Server(config).serve()


def main() -> None:
    global _ENV_FILE

    parser = argparse.ArgumentParser(description="Run dropin-rota MCP server")
    parser.add_argument("--env-file", default=None, help="Path to .env file")
    parser.add_argument(
        "--transport",
        default=None,
        choices=["stdio", "sse", "streamable-http"],
        help="MCP transport (default: streamable-http when DROPIN_ROTA_PORT is set, else stdio)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: DROPIN_ROTA_LOG_LEVEL or INFO)",
    )
    args = parser.parse_args()
    _ENV_FILE = args.env_file
    load_env(_ENV_FILE)

    logging.basicConfig(
        level=args.log_level or runtime_config().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    transport = args.transport
    if transport is None:
        transport = "streamable-http" if runtime_config().http_port else "stdio"

    if transport == "streamable-http":
        import anyio
        anyio.run(_run_http)
    else:
        mcp.run(transport=transport)


if __name__ == "__main__":
    main()
