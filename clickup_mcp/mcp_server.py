from fastmcp import FastMCP

from clickup_mcp.time_tracking_tools import register_time_tracking_tools

mcp = FastMCP(
    name="ClickUp Time Reports MCP Server",
    instructions=(
        "Track time on ClickUp tasks and build time reports for a single "
        "member or the whole organization grouped by team lead."
    ),
)

register_time_tracking_tools(mcp)


if __name__ == "__main__":
    import logging

    import uvicorn

    from time_reports.config import MCP_HOST, MCP_PORT, validate_config
    from time_reports.logging_config import setup_logging

    setup_logging()
    validate_config()

    logging.getLogger("mcp-server").info(
        f"🚀 Starting ClickUp Time Reports MCP Server on {MCP_HOST}:{MCP_PORT}"
    )

    # Create the ASGI app (FastMCP 3.x uses http_app())
    app = mcp.http_app(transport="sse")

    config = uvicorn.Config(
        app,
        host=MCP_HOST,
        port=MCP_PORT,
    )
    server = uvicorn.Server(config)
    server.run()
