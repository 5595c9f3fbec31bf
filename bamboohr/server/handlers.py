"""Tool handlers for the BambooHR MCP server.

Every handler takes the client, a plain dict of tool arguments and an
optional progress callback, and always returns a :class:`ToolResponse`.
Missing or malformed arguments produce guidance text; client failures are
turned into ``isError`` responses by :func:`handle_bamboo_error`.
"""

from __future__ import annotations

import functools
import html
import logging
import re
from datetime import date
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote

from bamboohr.sdk.client import BambooHRClient
from bamboohr.sdk.exceptions import (
    BambooHRError,
    ClientError,
    ImageTooLargeError,
    InvalidImageDataError,
    RequestTimeoutError,
)
from bamboohr.sdk.images import ImageInfo, format_bytes, get_image_info

from . import formatters
from .errors import handle_bamboo_error
from .responses import ToolResponse, utc_timestamp

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, float, str], Awaitable[None]]
Handler = Callable[..., Awaitable[ToolResponse]]

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DIRECTORY_ENDPOINT = "/employees/directory?fields=id,firstName,lastName,workEmail,jobTitle,department"
DEPARTMENTS_ENDPOINT = "/employees/directory?fields=department"


async def _report(progress: Optional[ProgressCallback], value: float, message: str) -> None:
    logger.debug("Progress %s/100: %s", value, message)
    if progress is not None:
        await progress(value, 100, message)


def _text_arg(args: dict[str, Any], name: str) -> str:
    value = args.get(name)
    return value.strip() if isinstance(value, str) else ""


def _records_from(payload: Any, *keys: str) -> Optional[list[Any]]:
    """Pull the record list out of a bare array or one of *keys*."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            if isinstance(payload.get(key), list):
                return payload[key]
    return None


def tool_handler(tool_name: str, operation: str, endpoint: Callable[[dict[str, Any]], str]):
    """Turn any exception escaping a handler into an error response."""

    def decorator(func: Handler) -> Handler:
        @functools.wraps(func)
        async def wrapper(
            client: BambooHRClient,
            args: Optional[dict[str, Any]] = None,
            progress: Optional[ProgressCallback] = None,
        ) -> ToolResponse:
            args = args or {}
            try:
                return await func(client, args, progress)
            except Exception as exc:
                if not isinstance(exc, BambooHRError):
                    logger.exception("Unexpected failure in %s", tool_name)
                return handle_bamboo_error(
                    exc, operation, tool_name, endpoint=endpoint(args), parameters=args
                )

        wrapper.tool_name = tool_name  # type: ignore[attr-defined]
        return wrapper

    return decorator


# ---------------- Employees -----------------


def employee_matches(employee: dict[str, Any], query: str) -> bool:
    """Substring match on first/last name, email or full name; exact match on id."""
    needle = query.lower()
    first = str(employee.get("firstName") or "")
    last = str(employee.get("lastName") or "")

    if any(needle in value.lower() for value in (first, last, str(employee.get("workEmail") or ""))):
        return True
    if str(employee.get("id")) == query:
        return True
    return bool(first and last and needle in f"{first} {last}".lower())


@tool_handler("bamboo_find_employee", "employee search", lambda args: "/employees/directory")
async def find_employee(
    client: BambooHRClient, args: dict[str, Any], progress: Optional[ProgressCallback]
) -> ToolResponse:
    await _report(progress, 10, "Validating search query")
    query = _text_arg(args, "query")
    if not query:
        logger.warning("Employee search called without a query")
        return ToolResponse.from_text(
            "Missing required parameter: query. "
            "Provide employee name, email, or ID to search for."
        )

    await _report(progress, 50, "Searching employee directory")
    directory = await client.get(DIRECTORY_ENDPOINT)

    await _report(progress, 90, "Processing search results")
    employees = _records_from(directory, "employees") or []
    found = next((emp for emp in employees if employee_matches(emp, query)), None)

    if found is None:
        logger.info("Employee search found no match")
        return ToolResponse.from_text(f'No employee found matching "{query}"')

    await _report(progress, 100, "Employee search completed")
    links = None
    if found.get("id"):
        links = {
            "related": [
                {"href": f"employee://{found['id']}/photo", "title": "Employee Photo", "rel": "photo"}
            ]
        }
    return ToolResponse.from_text(
        formatters.format_employee(found),
        meta={"confidence": 1.0, "employeeId": found.get("id"), "timestamp": utc_timestamp()},
        links=links,
    )


def _photo_endpoint(args: dict[str, Any]) -> str:
    return f"/employees/{_text_arg(args, 'employee_id')}/photo"


def _render_photo_html(name: str, employee_id: str, info: ImageInfo) -> str:
    name = html.escape(name)
    employee_id = html.escape(employee_id)
    return f"""<!DOCTYPE html>
<html>
<head>
    <title>Employee Photo: {name}</title>
    <meta charset="UTF-8">
    <style>
        body {{ font-family: system-ui, sans-serif; padding: 20px; text-align: center; }}
        .photo-container {{ display: inline-block; padding: 32px; border-radius: 16px; border: 1px solid #e1e5e9; }}
        img {{ max-width: 280px; max-height: 280px; border-radius: 12px; }}
        .employee-name {{ font-size: 24px; font-weight: 700; margin-top: 16px; }}
        .metadata {{ margin-top: 16px; font-size: 13px; color: #6b7280; }}
    </style>
</head>
<body>
    <div class="photo-container">
        <img src="{info.data_uri}" alt="Employee Photo: {name}" />
        <div class="employee-name">{name}</div>
        <div>Employee ID: {employee_id}</div>
        <div class="metadata">
            <div><strong>Image Format:</strong> {info.format}</div>
            <div><strong>File Size:</strong> {info.size_formatted}</div>
            <div><strong>Source:</strong> BambooHR API</div>
        </div>
    </div>
</body>
</html>"""


@tool_handler("bamboo_get_employee_photo", "employee photo retrieval", _photo_endpoint)
async def get_employee_photo(
    client: BambooHRClient, args: dict[str, Any], progress: Optional[ProgressCallback]
) -> ToolResponse:
    employee_id = _text_arg(args, "employee_id")
    if not employee_id:
        return ToolResponse.from_text(
            "Missing required parameter: employee_id. Use bamboo_find_employee to get the ID first.",
            meta={"error": True, "validationError": "missing_employee_id", "timestamp": utc_timestamp()},
        )

    endpoint = f"/employees/{quote(employee_id, safe='')}"
    url_mode_hint = f'{{"employee_id": "{employee_id}", "return_base64": false}}'

    try:
        employee = await client.get(f"{endpoint}?fields=id,firstName,lastName") or {}
        name = formatters.full_name(employee)

        if not args.get("return_base64"):
            photo_url = f"{client.get_base_url()}{endpoint}/photo"
            return ToolResponse.from_text(
                "**Employee Photo URL**\n\n"
                f"Employee: {name} (ID: {employee_id})\n"
                f"Authenticated Photo URL: {photo_url}\n\n"
                "**Note:** This URL requires your BambooHR API key for access. "
                "For direct display, use the base64 option.",
                meta={
                    "employeeId": employee_id,
                    "employeeName": name,
                    "photoUrl": photo_url,
                    "operation": "employee_photo_url",
                    "timestamp": utc_timestamp(),
                },
            )

        image = await client.get_binary(
            f"{endpoint}/photo", max_bytes=client.config.max_inline_image_bytes
        )
    except InvalidImageDataError as exc:
        return ToolResponse.from_text(
            "**Invalid Image Data**\n\n"
            f"Employee {employee_id} has an invalid or corrupted photo.\n\n"
            f"**Error:** {exc.reason}\n\n"
            f"**Suggestions:**\n- Try again in a few moments\n- Use the URL mode instead: {url_mode_hint}",
            meta={"error": True, "employeeId": employee_id, "errorType": "invalid_image_data"},
            is_error=True,
        )
    except ImageTooLargeError as exc:
        return ToolResponse.from_text(
            "**Image Too Large**\n\n"
            f"The photo for employee {employee_id} is {format_bytes(exc.size)}, which exceeds "
            f"the {format_bytes(exc.limit)} display limit.\n\n"
            f"**Alternatives:**\n- Use the URL mode instead: {url_mode_hint}",
            meta={
                "error": True,
                "employeeId": employee_id,
                "errorType": "image_too_large",
                "imageSize": exc.size,
            },
            is_error=True,
        )
    except ClientError as exc:
        if exc.status_code != 404:
            raise
        return ToolResponse.from_text(
            "**Employee Photo Not Found**\n\n"
            f'Employee ID "{employee_id}" either does not exist or has no photo uploaded.\n\n'
            "**Troubleshooting Steps:**\n"
            "1. Verify the employee ID using the employee search tool\n"
            "2. Check if the employee has uploaded a photo in BambooHR\n"
            "3. Ensure your API key has photo access permissions",
            meta={"error": True, "employeeId": employee_id, "errorType": "not_found"},
            is_error=True,
        )
    except RequestTimeoutError:
        return ToolResponse.from_text(
            "**Request Timeout**\n\n"
            f"The photo request for employee {employee_id} took too long to complete. "
            "Wait a moment and retry the request.",
            meta={"error": True, "employeeId": employee_id, "errorType": "timeout"},
            is_error=True,
        )

    info = get_image_info(image)
    page = _render_photo_html(name, employee_id, info)
    return ToolResponse.from_text(
        page,
        meta={
            "employeeId": employee_id,
            "employeeName": name,
            "imageSize": info.size,
            "imageType": info.format,
            "operation": "employee_photo_display",
            "timestamp": utc_timestamp(),
        },
    )


# ---------------- Time off -----------------


def _date_range_error(*names: str) -> ToolResponse:
    return ToolResponse.from_text(
        f"Invalid date parameter: {', '.join(names)} must use YYYY-MM-DD format."
    )


def _whos_out_endpoint(args: dict[str, Any]) -> str:
    start = _text_arg(args, "start_date") or "today"
    return f"/time_off/whos_out?start={start}&end={_text_arg(args, 'end_date') or start}"


@tool_handler("bamboo_whos_out", "who's out calendar", _whos_out_endpoint)
async def whos_out(
    client: BambooHRClient, args: dict[str, Any], progress: Optional[ProgressCallback]
) -> ToolResponse:
    start = _text_arg(args, "start_date") or date.today().isoformat()
    end = _text_arg(args, "end_date") or start

    invalid = [name for name, value in (("start_date", start), ("end_date", end)) if not DATE_PATTERN.match(value)]
    if invalid:
        return _date_range_error(*invalid)

    calendar = await client.get(f"/time_off/whos_out?start={start}&end={end}")
    entries = _records_from(calendar, "calendar") or []

    return ToolResponse.from_text(
        formatters.format_whos_out(entries, start, end),
        meta={
            "dateRange": {"start": start, "end": end},
            "entryCount": len(entries),
            "timestamp": utc_timestamp(),
        },
    )


def _time_off_endpoint(args: dict[str, Any]) -> str:
    endpoint = f"/time_off/requests?start={_text_arg(args, 'start_date')}&end={_text_arg(args, 'end_date')}"
    status = _text_arg(args, "status")
    return f"{endpoint}&status={quote(status, safe='')}" if status else endpoint


@tool_handler("bamboo_time_off_requests", "time-off requests retrieval", _time_off_endpoint)
async def time_off_requests(
    client: BambooHRClient, args: dict[str, Any], progress: Optional[ProgressCallback]
) -> ToolResponse:
    start = _text_arg(args, "start_date")
    end = _text_arg(args, "end_date")
    if not start or not end:
        return ToolResponse.from_text(
            "Missing required parameters: start_date and end_date (YYYY-MM-DD format). "
            "Optional status filter: approved, denied, pending, all."
        )

    invalid = [name for name, value in (("start_date", start), ("end_date", end)) if not DATE_PATTERN.match(value)]
    if invalid:
        return _date_range_error(*invalid)

    requests = await client.get(_time_off_endpoint(args))
    records = _records_from(requests, "requests") or []
    return ToolResponse.from_text(formatters.format_time_off_requests(records, start, end))


# ---------------- Organization -----------------


@tool_handler("bamboo_team_info", "team info retrieval", lambda args: "/employees/directory")
async def team_info(
    client: BambooHRClient, args: dict[str, Any], progress: Optional[ProgressCallback]
) -> ToolResponse:
    department = _text_arg(args, "department")
    if not department:
        return ToolResponse.from_text(
            "Missing required parameter: department. "
            "Provide department name to get team roster for."
        )

    directory = await client.get(DIRECTORY_ENDPOINT)
    needle = department.lower()
    members = [
        emp
        for emp in _records_from(directory, "employees") or []
        if needle in str(emp.get("department") or "").lower()
    ]

    if not members:
        return ToolResponse.from_text(f'No employees found in department "{department}"')

    return ToolResponse.from_text(
        formatters.format_employee_list(members, f"{department} Team"),
        meta={"department": department, "employeeCount": len(members), "timestamp": utc_timestamp()},
    )


@tool_handler("bamboo_list_departments", "departments listing", lambda args: "/employees/directory")
async def list_departments(
    client: BambooHRClient, args: dict[str, Any], progress: Optional[ProgressCallback]
) -> ToolResponse:
    await _report(progress, 25, "Fetching employee directory")
    directory = await client.get(DEPARTMENTS_ENDPOINT)

    employees = _records_from(directory, "employees")
    if employees is None:
        return ToolResponse.from_text(
            "Could not retrieve employee data for departments.",
            meta={"error": True, "errorType": "invalid_response", "timestamp": utc_timestamp()},
        )

    await _report(progress, 75, "Processing department data")
    counts: dict[str, int] = {}
    for emp in employees:
        name = str(emp.get("department") or "").strip()
        if name:
            counts[name] = counts.get(name, 0) + 1

    if not counts:
        return ToolResponse.from_text(
            "No departments found in employee data.",
            meta={"departmentCount": 0, "employeeCount": len(employees), "timestamp": utc_timestamp()},
        )

    await _report(progress, 100, "Department analysis complete")
    total = sum(counts.values())
    names = sorted(counts)
    return ToolResponse.from_text(
        formatters.format_departments(counts),
        meta={
            "departmentCount": len(counts),
            "employeeCount": total,
            "averageDepartmentSize": round(total / len(counts)),
            "operation": "list_departments",
            "timestamp": utc_timestamp(),
        },
        links={
            "related": [
                {"href": f"department://{quote(name, safe='')}", "title": f"{name} Department", "rel": "department"}
                for name in names
            ]
        },
    )


# ---------------- Datasets and analytics -----------------


@tool_handler("bamboo_discover_datasets", "dataset discovery", lambda args: "/datasets")
async def discover_datasets(
    client: BambooHRClient, args: dict[str, Any], progress: Optional[ProgressCallback]
) -> ToolResponse:
    await _report(progress, 25, "Fetching available datasets")
    payload = await client.get("/datasets")

    await _report(progress, 75, "Processing dataset information")
    datasets = _records_from(payload, "datasets")
    if not datasets:
        return ToolResponse.from_text("No datasets available or API not accessible")

    await _report(progress, 100, "Datasets discovered successfully")
    return ToolResponse.from_text(formatters.format_datasets(datasets))


@tool_handler(
    "bamboo_discover_fields",
    "field discovery",
    lambda args: f"/datasets/{_text_arg(args, 'dataset_id')}/fields",
)
async def discover_fields(
    client: BambooHRClient, args: dict[str, Any], progress: Optional[ProgressCallback]
) -> ToolResponse:
    dataset_id = _text_arg(args, "dataset_id")
    if not dataset_id:
        return ToolResponse.from_text(
            "Missing required parameter: dataset_id. "
            "Use bamboo_discover_datasets first to get available dataset IDs."
        )

    payload = await client.get(f"/datasets/{quote(dataset_id, safe='')}/fields")
    fields = _records_from(payload, "fields")
    if not fields:
        return ToolResponse.from_text(f"No fields found for dataset: {dataset_id}")

    return ToolResponse.from_text(formatters.format_dataset_fields(fields, dataset_id))


def _valid_filter(item: Any) -> bool:
    return (
        isinstance(item, dict)
        and isinstance(item.get("field"), str)
        and isinstance(item.get("operator"), str)
        and "value" in item
    )


@tool_handler(
    "bamboo_workforce_analytics",
    "workforce analytics query",
    lambda args: f"/datasets/{_text_arg(args, 'dataset_id')}",
)
async def workforce_analytics(
    client: BambooHRClient, args: dict[str, Any], progress: Optional[ProgressCallback]
) -> ToolResponse:
    await _report(progress, 10, "Validating request parameters")
    dataset_id = _text_arg(args, "dataset_id")
    fields = args.get("fields")

    if not dataset_id or not isinstance(fields, list) or not fields:
        return ToolResponse.from_text(
            "Discovery required first. To use workforce analytics:\n\n"
            "1. Run `bamboo_discover_datasets` to see available datasets\n"
            "2. Run `bamboo_discover_fields` with dataset ID to see available fields\n"
            "3. Use this tool with dataset_id and fields from discovery\n\n"
            'Example: {"dataset_id": "employee", "fields": ["department", "status"]}',
            meta={
                "error": True,
                "validationFailed": True,
                "requiredSteps": ["bamboo_discover_datasets", "bamboo_discover_fields"],
            },
        )

    filters = args.get("filters")
    if filters is not None and not isinstance(filters, list):
        return ToolResponse.from_text(
            formatters.format_validation_error(
                "Filters must be an array of objects with 'field', 'operator', and 'value' properties.",
                ['{"filters": [{"field": "status", "operator": "equal", "value": "Active"}]}'],
            ),
            meta={"error": True, "validationError": "invalid_filters_format"},
        )

    await _report(progress, 25, "Building analytics request")
    body: dict[str, Any] = {
        "fields": [name.strip() for name in fields if isinstance(name, str) and name.strip()]
    }
    if not body["fields"]:
        return ToolResponse.from_text(
            formatters.format_validation_error(
                "At least one valid field name is required.",
                ["Use `bamboo_discover_fields` to see available field names for the dataset."],
            ),
            meta={"error": True, "validationError": "no_valid_fields"},
        )

    group_by = _text_arg(args, "group_by")
    if group_by:
        body["groupBy"] = [group_by]

    if filters:
        valid = [item for item in filters if _valid_filter(item)]
        if len(valid) != len(filters):
            return ToolResponse.from_text(
                formatters.format_validation_error(
                    "Some filters are malformed. Each filter needs a string `field`, "
                    "a string `operator` and a `value`.\n\n"
                    f"**Valid filters**: {len(valid)}/{len(filters)}"
                ),
                meta={
                    "error": True,
                    "validationError": "malformed_filters",
                    "validFilterCount": len(valid),
                    "totalFilterCount": len(filters),
                },
            )
        body["filters"] = valid

    await _report(progress, 50, "Executing analytics query")
    payload = await client.post(f"/datasets/{quote(dataset_id, safe='')}", body)

    await _report(progress, 75, "Processing analytics results")
    records = _records_from(payload, "data", "records", "result")
    if records is None:
        shape = ", ".join(payload) if isinstance(payload, dict) else type(payload).__name__
        return ToolResponse.from_text(
            "ERROR: **Unexpected Response Structure**\n\n"
            f"Could not find a data array in the response. Received: {shape}",
            meta={"error": True, "timestamp": utc_timestamp()},
        )

    await _report(progress, 90, "Formatting results")
    meta = {
        "dataset": dataset_id,
        "fieldCount": len(body["fields"]),
        "filterCount": len(body.get("filters", [])),
        "recordCount": len(records),
        "timestamp": utc_timestamp(),
    }
    if not records:
        return ToolResponse.from_text(
            "ANALYTICS: **No Records Found**\n\n"
            f"Dataset: {dataset_id}\n"
            f"Fields: {', '.join(body['fields'])}\n"
            f"Filters: {body.get('filters') or 'None'}\n\n"
            "**Suggestions:**\n"
            "- Try removing filters to see if data exists\n"
            "- Use `bamboo_discover_fields` to verify field names",
            meta=meta,
        )

    await _report(progress, 100, "Analytics complete")
    return ToolResponse.from_text(
        formatters.format_workforce_analytics(records, dataset_id, body["fields"]),
        meta={**meta, "groupBy": body.get("groupBy"), "analyticsType": "workforce_analytics"},
        links={
            "related": [
                {"href": f"dataset://{dataset_id}", "title": f"Dataset: {dataset_id}", "rel": "dataset"},
                {"href": f"dataset://{dataset_id}/fields", "title": "Dataset Fields", "rel": "fields"},
            ]
        },
    )


# ---------------- Custom reports -----------------


def _report_endpoint(args: dict[str, Any]) -> str:
    report_id = _text_arg(args, "report_id")
    if args.get("list_reports") or not report_id:
        return "/custom-reports"
    fmt = _text_arg(args, "format")
    return f"/custom-reports/{quote(report_id, safe='')}" + (f"?format={fmt}" if fmt else "")


@tool_handler("bamboo_run_custom_report", "custom report operation", _report_endpoint)
async def run_custom_report(
    client: BambooHRClient, args: dict[str, Any], progress: Optional[ProgressCallback]
) -> ToolResponse:
    if args.get("list_reports"):
        await _report(progress, 25, "Fetching available reports")
        payload = await client.get("/custom-reports")
        reports = _records_from(payload, "reports", "data", "results")
        if reports is None:
            reports = []
        await _report(progress, 100, "Reports list retrieved")
        return ToolResponse.from_text(
            formatters.format_custom_reports(reports),
            meta={"reportCount": len(reports), "operation": "list_reports", "timestamp": utc_timestamp()},
        )

    report_id = _text_arg(args, "report_id")
    if not report_id:
        return ToolResponse.from_text(
            "ERROR: **Missing Parameter**\n\n"
            "Provide either:\n"
            '- `{"list_reports": true}` - to see available reports\n'
            '- `{"report_id": "123"}` - to run report ID 123\n'
            '- `{"report_id": "123", "format": "json"}` - to run report with specific format',
            meta={"error": True, "validationError": "missing_parameters"},
        )

    await _report(progress, 25, "Executing custom report")
    report_data = await client.get(_report_endpoint(args))

    if not report_data:
        return ToolResponse.from_text(
            "ERROR: **Empty Report Response**\n\n"
            f"Report ID: {report_id}\n\n"
            "The API returned an empty response. The report may have no data or may "
            'still be generating. Use `{"list_reports": true}` to verify the report exists.',
            meta={"error": True, "reportId": report_id, "errorType": "empty_response"},
        )

    await _report(progress, 100, "Report execution complete")
    return ToolResponse.from_text(
        formatters.format_custom_report_results(report_data, report_id),
        meta={
            "reportId": report_id,
            "format": _text_arg(args, "format") or "json",
            "operation": "run_report",
            "timestamp": utc_timestamp(),
        },
        links={"self": {"href": f"report://{report_id}", "title": f"Custom Report {report_id}", "rel": "self"}},
    )


TOOL_HANDLERS: dict[str, Handler] = {
    handler.tool_name: handler  # type: ignore[attr-defined]
    for handler in (
        find_employee,
        whos_out,
        team_info,
        time_off_requests,
        discover_datasets,
        discover_fields,
        workforce_analytics,
        run_custom_report,
        get_employee_photo,
        list_departments,
    )
}
