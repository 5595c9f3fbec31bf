"""FastMCP server exposing the BambooHR tools."""

import logging
import time
from typing import Any, Literal, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import TextContent

from bamboohr.sdk.client import BambooHRClient

from .handlers import TOOL_HANDLERS, ProgressCallback
from .responses import ToolResponse

logger = logging.getLogger(__name__)

SERVER_NAME = "bamboohr-mcp"

INSTRUCTIONS = """BambooHR MCP Server - discovery-driven workforce analytics.

Core tools:
- bamboo_find_employee: find employees by name, email or ID
- bamboo_whos_out: see who is on leave
- bamboo_team_info: get a department roster
- bamboo_time_off_requests: view time-off requests

Discovery tools (use these first):
- bamboo_discover_datasets: see what datasets are available
- bamboo_discover_fields: see what fields are in each dataset

Analytics tools:
- bamboo_workforce_analytics: requires discovery first to get correct field names
- bamboo_run_custom_report: list and run pre-built custom reports

Additional tools:
- bamboo_get_employee_photo: get employee profile photos
- bamboo_list_departments: list all company departments

All tools are read-only. For analytics, always use the discovery tools first."""

TOOL_DESCRIPTIONS = {
    "bamboo_find_employee": "Find employee by name, email, or ID with support for partial name matches",
    "bamboo_whos_out": (
        "See who is out on leave today or in a date range (YYYY-MM-DD). "
        "Defaults to today if no dates are provided."
    ),
    "bamboo_team_info": (
        "Get team/department roster with employee details including job titles and "
        "contact info. Department names support partial matching."
    ),
    "bamboo_time_off_requests": (
        "Get time-off requests for a date range (YYYY-MM-DD). Optional status filter: "
        "approved, denied, pending, all."
    ),
    "bamboo_discover_datasets": "Discover what datasets are available in BambooHR for analytics",
    "bamboo_discover_fields": (
        "Discover what fields are available in a specific dataset for use in workforce analytics"
    ),
    "bamboo_workforce_analytics": (
        "Get workforce analytics data from BambooHR datasets. Use the discovery tools first "
        "to find correct dataset and field names. Filters are objects with field, operator "
        "and value."
    ),
    "bamboo_run_custom_report": (
        "List available custom reports (list_reports=true) or run a specific report by ID"
    ),
    "bamboo_get_employee_photo": (
        "Get the profile photo for a specific employee by ID, as an authenticated URL or, "
        "with return_base64=true, as an embeddable HTML page"
    ),
    "bamboo_list_departments": "Get a list of all departments in the company with head counts",
}


def progress_reporter(ctx: Context) -> ProgressCallback:
    """Forward handler progress to the MCP client."""

    async def report(progress: float, total: float, message: str) -> None:
        await ctx.report_progress(progress, total)

    return report


def to_tool_result(response: ToolResponse) -> list[TextContent]:
    """Convert a handler response into MCP content, raising for errors."""
    if response.is_error:
        raise ToolError(response.text)
    return [TextContent(type="text", text=block.text) for block in response.content]


def create_server(client: BambooHRClient) -> FastMCP:
    """Build a FastMCP server whose tools are served by *client*.

    Parameters
    ----------
    client : BambooHRClient
        Client shared by every tool call

    Returns
    -------
    FastMCP
        Server with the ten BambooHR tools registered
    """
    server = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS)

    async def call(tool_name: str, ctx: Context, **arguments: Any) -> list[TextContent]:
        args = {key: value for key, value in arguments.items() if value is not None}
        logger.info("Executing tool %s", tool_name)
        started = time.monotonic()
        response = await TOOL_HANDLERS[tool_name](client, args, progress_reporter(ctx))
        logger.info(
            "Tool %s finished in %.0fms%s",
            tool_name,
            (time.monotonic() - started) * 1000,
            " with error" if response.is_error else "",
        )
        return to_tool_result(response)

    def register(name: str):
        return server.tool(name=name, description=TOOL_DESCRIPTIONS[name])

    @register("bamboo_find_employee")
    async def find_employee(ctx: Context, query: str):
        return await call("bamboo_find_employee", ctx, query=query)

    @register("bamboo_whos_out")
    async def whos_out(ctx: Context, start_date: Optional[str] = None, end_date: Optional[str] = None):
        return await call("bamboo_whos_out", ctx, start_date=start_date, end_date=end_date)

    @register("bamboo_team_info")
    async def team_info(ctx: Context, department: str):
        return await call("bamboo_team_info", ctx, department=department)

    @register("bamboo_time_off_requests")
    async def time_off_requests(
        ctx: Context, start_date: str, end_date: str, status: Optional[str] = None
    ):
        return await call(
            "bamboo_time_off_requests", ctx, start_date=start_date, end_date=end_date, status=status
        )

    @register("bamboo_discover_datasets")
    async def discover_datasets(ctx: Context):
        return await call("bamboo_discover_datasets", ctx)

    @register("bamboo_discover_fields")
    async def discover_fields(ctx: Context, dataset_id: str):
        return await call("bamboo_discover_fields", ctx, dataset_id=dataset_id)

    @register("bamboo_workforce_analytics")
    async def workforce_analytics(
        ctx: Context,
        dataset_id: str,
        fields: list[str],
        filters: Optional[list[dict[str, Any]]] = None,
        group_by: Optional[str] = None,
    ):
        return await call(
            "bamboo_workforce_analytics",
            ctx,
            dataset_id=dataset_id,
            fields=fields,
            filters=filters,
            group_by=group_by,
        )

    @register("bamboo_run_custom_report")
    async def run_custom_report(
        ctx: Context,
        list_reports: bool = False,
        report_id: Optional[str] = None,
        format: Optional[Literal["json", "csv", "pdf"]] = None,
    ):
        return await call(
            "bamboo_run_custom_report",
            ctx,
            list_reports=list_reports,
            report_id=report_id,
            format=format,
        )

    @register("bamboo_get_employee_photo")
    async def get_employee_photo(ctx: Context, employee_id: str, return_base64: bool = False):
        return await call(
            "bamboo_get_employee_photo", ctx, employee_id=employee_id, return_base64=return_base64
        )

    @register("bamboo_list_departments")
    async def list_departments(ctx: Context):
        return await call("bamboo_list_departments", ctx)

    logger.debug("Registered %d BambooHR tools", len(TOOL_HANDLERS))
    return server
