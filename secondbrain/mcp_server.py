"""
Second Brain MCP Server.

Exposes memory recall to assistants over MCP (stdio transport).

Expected MCP Tool Return Format:
{
    "ok": bool,
    "results": Any,          # Present if ok is True
    "error": str            # Present if ok is False
}
"""

import argparse
import logging
import signal
from typing import Annotated, Any, Dict, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations
from pydantic import Field

from .common.config import load_config
from .common.errors import SearchError
from .retriever.date_resolver import DateExpressionResolver
from .retriever.searcher import SearchOrchestrator, format_context, search_with_fallback

logger = logging.getLogger("secondbrain.mcp")

MAX_RECALL_LIMIT = 50


class MCPServerApp:
    """
    MCP application wrapping a search pipeline.

    Tools:
    - recall: smart search with the degenerate-result fallback, rendered as context
    - analyze_query: how a query would be interpreted
    - resolve_date: a date phrase resolved to a concrete range
    """

    def __init__(
        self,
        orchestrator: SearchOrchestrator,
        mcp_server_name: str = "secondbrain_mcp_server",
        default_limit: int = 10,
        default_threshold: float = 0.5,
    ) -> None:
        """
        Args:
            orchestrator: Wired search pipeline
            mcp_server_name: Advertised MCP server name
            default_limit: Results returned when the caller gives no limit
            default_threshold: Similarity threshold when the caller gives none
        """
        self.orchestrator = orchestrator
        self.analyzer = orchestrator.analyzer
        self.resolver: DateExpressionResolver = orchestrator.analyzer.resolver
        self._default_limit = default_limit
        self._default_threshold = default_threshold
        self.mcp = FastMCP(name=mcp_server_name)

        # ---------- MCP Tools: Recall ---------- #
        @self.mcp.tool(
            name="recall",
            description=(
                "Recall memories from the user's second brain. "
                "Understands date phrases (\"last week\", \"next tuesday\", \"overdue\"), "
                "categories (\"meetings\", \"tasks\") and tags (\"urgent\") inside the query: "
                "dates restrict the search window, categories and tags boost ranking."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_recall(
            query: Annotated[str, Field(description="natural language recall query")],
            limit: Annotated[Optional[int], Field(description="maximum number of memories to return")] = None,
            threshold: Annotated[Optional[float], Field(description="minimum similarity for memories without a category/tag match")] = None,
        ) -> Dict[str, Any]:
            """
            Recall memories relevant to a query.

            Returns:
                Dict[str, Any]: ranked results, formatted context and search metadata
            """
            if not query or not query.strip():
                return {"ok": False, "error": "query parameter is required."}

            limit = limit or self._default_limit
            if limit < 1 or limit > MAX_RECALL_LIMIT:
                return {"ok": False, "error": f"limit must be between 1 and {MAX_RECALL_LIMIT}."}
            threshold = self._default_threshold if threshold is None else threshold

            try:
                response = await search_with_fallback(
                    self.orchestrator, query, limit=limit, threshold=threshold,
                )
            except SearchError as e:
                logger.error("Recall failed for %r: %s", query, e)
                return {"ok": False, "error": "search failed"}

            data = response.to_dict()
            return {
                "ok": True,
                "results": data["results"],
                "analysis": data["analysis"],
                "metadata": data["metadata"],
                "context": format_context(response.results),
            }

        # ---------- MCP Tools: Analysis ---------- #
        @self.mcp.tool(
            name="analyze_query",
            description="Show how a recall query is interpreted: date phrase, category, tags and residual text.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_analyze_query(
            query: Annotated[str, Field(description="natural language query")],
        ) -> Dict[str, Any]:
            if not query or not query.strip():
                return {"ok": False, "error": "query parameter is required."}
            analysis = await self.analyzer.analyze(query)
            date_range = self.resolver.resolve(analysis.date_phrase, context=query)
            results = analysis.to_dict()
            results["date_range"] = date_range.to_dict() if date_range else None
            return {"ok": True, "results": results}

        @self.mcp.tool(
            name="resolve_date",
            description="Resolve a natural-language date phrase into a concrete date range and target field.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_resolve_date(
            phrase: Annotated[str, Field(description="date phrase, e.g. 'last week' or 'Q1 2026'")],
            context: Annotated[Optional[str], Field(description="full query, used for due/received hints")] = None,
        ) -> Dict[str, Any]:
            if not phrase or not phrase.strip():
                raise ToolError("phrase is required")
            try:
                date_range = self.resolver.resolve_strict(phrase, context=context)
            except SearchError as e:
                return {"ok": False, "error": str(e)}
            if date_range is None:
                return {"ok": True, "results": None}
            return {"ok": True, "results": date_range.to_dict()}

    def run(self) -> None:
        """Runs the MCP server using stdio transport."""
        self.mcp.run(transport="stdio")


def main() -> None:
    from .retriever.server import build_pipeline

    parser = argparse.ArgumentParser(description="Run the Second Brain MCP server (stdio).")
    parser.add_argument(
        "--server-name",
        default="secondbrain_mcp_server",
        help="Advertised MCP server name.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (logs go to stderr).",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config()
    orchestrator = build_pipeline(config)
    app = MCPServerApp(
        orchestrator,
        mcp_server_name=args.server_name,
        default_limit=min(config.search.default_limit, MAX_RECALL_LIMIT),
        default_threshold=config.search.threshold,
    )

    def _handle_shutdown(signum, frame):
        raise SystemExit(0)
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            signal.signal(sig, _handle_shutdown)

    app.run()


if __name__ == "__main__":
    main()
