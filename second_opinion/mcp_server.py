"""
Second Opinion MCP Server

Exposes the second-opinion router as MCP tools for any MCP-enabled agent.

Tools:
  - get_second_opinion(prompt, context?) → routed answer plus decision metadata
  - list_available_models()              → configured providers, models and routing rules

Usage:
    python -m second_opinion.mcp_server
    # or
    from second_opinion.mcp_server import create_server
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, Optional

# ---------------------------------------------------------------------------
# Graceful MCP availability check
# ---------------------------------------------------------------------------
try:
    from mcp.server.fastmcp import FastMCP
    MCP_AVAILABLE = True
except ImportError:
    MCP_AVAILABLE = False
    FastMCP = None  # type: ignore

from second_opinion.config import NO_PROVIDER_MESSAGE, Config
from second_opinion.router import SecondOpinionRouter

_log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_router(config_path: Optional[str] = None) -> SecondOpinionRouter:
    """Build the router from configuration loaded once at startup."""
    return SecondOpinionRouter(Config.load(config_path))


def _error_payload(error: Exception) -> Dict[str, Any]:
    return {"error": str(error), "error_type": type(error).__name__}


# ---------------------------------------------------------------------------
# Server factory
# ---------------------------------------------------------------------------

def create_server(router: Optional[SecondOpinionRouter] = None) -> "FastMCP":
    """Create and return the FastMCP server with second-opinion tools.

    Args:
        router: Router to serve. Built from the default configuration when omitted.

    Returns:
        A configured ``FastMCP`` instance ready to run.

    Raises:
        ImportError: If the ``mcp`` package is not installed.
    """
    if not MCP_AVAILABLE:
        raise ImportError(
            "The 'mcp' package is required to run the second-opinion MCP server. "
            "Install it with: pip install mcp"
        )

    if router is None:
        router = _get_router()

    mcp = FastMCP(
        name="second-opinion",
        instructions=(
            "Second opinion from another AI model. "
            "Use get_second_opinion() when you are stuck, need to verify your "
            "reasoning, want an alternative perspective, or need advice on a "
            "tricky implementation. Use list_available_models() to see which "
            "providers are configured and how requests are routed."
        ),
    )

    # ------------------------------------------------------------------
    # Tool: get_second_opinion
    # ------------------------------------------------------------------
    @mcp.tool()
    def get_second_opinion(
        prompt: str,
        context: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Get a second opinion from another AI model.

        The provider (OpenAI GPT or Google Gemini) and model size are picked
        automatically: multimodal requests go to Gemini, pipeline tasks to the
        cheapest GPT tier, clear text/code to the mid tier, and complex,
        ambiguous or high-stakes requests to the strongest model.

        Args:
            prompt: The problem, question, or situation you need help with.
                Be specific about what you're stuck on or what to verify.
            context: Optional additional context such as code snippets,
                error messages, or prior attempts.

        Returns:
            Dict with keys: selected_model, provider, task_type, stakes,
            ambiguity, confidence, reason, fallback_model, model_used,
            attempts, response. On failure: error, error_type.
        """
        try:
            opinion = router.ask(prompt, context)
        except Exception as e:
            _log.error("get_second_opinion failed: %s", e)
            return _error_payload(e)
        return opinion.to_dict()

    # ------------------------------------------------------------------
    # Tool: list_available_models
    # ------------------------------------------------------------------
    @mcp.tool()
    def list_available_models() -> Dict[str, Any]:
        """List available providers and models for second opinions.

        Returns:
            Dict with keys: providers, classification, confidence_threshold,
            routing, routing_rules. On failure: error, error_type.
        """
        if not router.availability.any:
            return {"error": NO_PROVIDER_MESSAGE, "error_type": "NoProviderConfiguredError"}
        return router.describe()

    return mcp


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Run the second-opinion MCP server (stdio transport by default)."""
    parser = argparse.ArgumentParser(
        description="Second Opinion MCP Server: ask another model for a second opinion."
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="MCP transport (default: stdio).",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for SSE transport (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8767,
        help="Port for SSE transport (default: 8767).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a JSON config file (default: $MCP_CONFIG_PATH or ./config.json).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level; logs go to stderr (default: INFO).",
    )
    args = parser.parse_args()

    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not MCP_AVAILABLE:
        print(
            "ERROR: The 'mcp' package is not installed.\n"
            "Install it with: pip install mcp",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        router = _get_router(args.config)
    except ValueError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    if not router.availability.any:
        print(f"ERROR: {NO_PROVIDER_MESSAGE}", file=sys.stderr)
        sys.exit(1)

    _log.info(
        "Second Opinion MCP server starting (providers: %s, classification: %s)",
        ", ".join(router.availability.providers()), router.classifier.strategy,
    )
    server = create_server(router)

    if args.transport == "stdio":
        server.run(transport="stdio")
    else:
        server.settings.host = args.host
        server.settings.port = args.port
        server.run(transport="sse")


if __name__ == "__main__":
    main()
