"""Plain-text rendering of BambooHR data for tool responses."""

from __future__ import annotations

import json
from collections import Counter
from typing import Any, Optional

ANALYZED_FIELDS = (
    ("department", "Department"),
    ("location", "Location"),
    ("status", "Status"),
    ("jobTitle", "Job Title"),
    ("division", "Division"),
)

STATUS_TAGS = {"approved": "[APPROVED]", "denied": "[DENIED]", "pending": "[PENDING]"}


def full_name(employee: dict[str, Any]) -> str:
    name = f"{employee.get('firstName') or ''} {employee.get('lastName') or ''}".strip()
    return name or "Unknown Name"


def _display(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def format_employee(employee: dict[str, Any]) -> str:
    return (
        f"**{full_name(employee)}**\n"
        f"Email: {employee.get('workEmail') or 'Not available'}\n"
        f"Job Title: {employee.get('jobTitle') or 'Not available'}\n"
        f"Department: {employee.get('department') or 'Not available'}\n"
        f"Employee ID: {employee.get('id')}"
    )


def format_employee_list(employees: list[dict[str, Any]], title: Optional[str] = None) -> str:
    if not employees:
        return f"**{title}**\n\nNo employees found." if title else "No employees found."

    lines = "\n".join(
        f"• **{full_name(emp)}** - {emp.get('jobTitle') or 'Not available'} "
        f"({emp.get('workEmail') or 'Not available'})"
        for emp in employees
    )
    header = f"**{title} ({len(employees)} employees)**\n\n" if title else ""
    return f"{header}{lines}"


def format_whos_out(entries: list[dict[str, Any]], start: str, end: str) -> str:
    header = f"**Who's Out: {start} to {end}**\n\n"
    if not entries:
        return f"{header}No one is scheduled to be out during this period."

    lines = "\n".join(
        f"• **{entry.get('name')}** ({entry.get('start')} to {entry.get('end')})" for entry in entries
    )
    return f"{header}{lines}"


def _request_status(request: dict[str, Any]) -> str:
    status = request.get("status")
    # BambooHR nests the status as {"status": "approved", ...}
    if isinstance(status, dict):
        status = status.get("status")
    return STATUS_TAGS.get(str(status).lower(), "[OTHER]")


def _request_type(request: dict[str, Any]) -> str:
    request_type = request.get("type")
    if isinstance(request_type, str):
        return request_type
    if isinstance(request_type, dict) and request_type.get("name"):
        return request_type["name"]
    return "Time Off"


def format_time_off_requests(requests: list[dict[str, Any]], start: str, end: str) -> str:
    header = f"**Time-Off Requests: {start} to {end}**\n\n"
    if not requests:
        return f"{header}No time-off requests found for this period."

    lines = "\n".join(
        f"{_request_status(req)}: **{req.get('name')}** - {req.get('start')} to "
        f"{req.get('end')} ({_request_type(req)})"
        for req in requests
    )
    return f"{header}{lines}"


def format_datasets(datasets: list[dict[str, Any]]) -> str:
    if not datasets:
        return (
            "**Available Datasets**\n\n"
            "No datasets found. Your API key may not have access to datasets."
        )

    text = f"**Available Datasets ({len(datasets)})**\n\n"
    for index, dataset in enumerate(datasets, start=1):
        text += f"{index}. **{dataset.get('name') or 'Unnamed Dataset'}**\n"
        if dataset.get("description"):
            text += f"   {dataset['description']}\n"
        text += f"   ID: `{dataset.get('id') or 'No ID'}`\n\n"
    text += "Use `bamboo_discover_fields` with dataset ID to see available fields"
    return text


def format_dataset_fields(fields: list[dict[str, Any]], dataset_id: str) -> str:
    if not fields:
        return f"**Fields in Dataset: {dataset_id}**\n\nNo fields found or access denied."

    by_type: dict[str, list[dict[str, Any]]] = {}
    for field in fields:
        by_type.setdefault(field.get("type") or "unknown", []).append(field)

    text = f"**Fields in Dataset: {dataset_id}** ({len(fields)} total)\n\n"
    for field_type, typed_fields in by_type.items():
        text += f"**{field_type.upper()} Fields:**\n"
        for field in typed_fields:
            text += f"• `{field.get('name')}` - {field.get('label') or field.get('name')}"
            if field.get("description"):
                text += f" ({field['description']})"
            text += "\n"
        text += "\n"
    text += "Use these exact field names in workforce analytics queries"
    return text


def format_field_distribution(records: list[Any], field_name: str, display_name: str) -> str:
    """Top ten values of *field_name* across *records*, plus missing counts."""
    counts: Counter = Counter()
    null_count = 0
    missing_count = 0

    for record in records:
        if not isinstance(record, dict) or field_name not in record:
            missing_count += 1
        elif record[field_name] is None:
            null_count += 1
        else:
            counts[str(record[field_name]) or "Empty"] += 1

    if not counts and not null_count and not missing_count:
        return f"**{display_name}** `{field_name}`: No data found\n\n"

    text = f"**{display_name}** `{field_name}`:\n"
    for value, count in counts.most_common(10):
        text += f"• {value}: {count}\n"
    if null_count:
        text += f"• (null): {null_count}\n"
    if missing_count:
        text += f"• (missing): {missing_count}\n"
    if len(counts) > 10:
        text += f"• ... and {len(counts) - 10} more values\n"
    return f"{text}\n"


def format_workforce_analytics(
    records: list[Any], dataset_id: str, requested_fields: list[str]
) -> str:
    text = f"**Workforce Analytics - {dataset_id}**\n\nTotal Records: {len(records)}\n\n"

    if records and isinstance(records[0], dict):
        sample = records[0]
        text += "**Sample Record Structure**:\n"
        if sample:
            for key, value in list(sample.items())[:10]:
                shown = "null" if value is None else f'"{value}"' if isinstance(value, str) else str(value)
                text += f"• `{key}`: {shown}\n"
            if len(sample) > 10:
                text += f"• ... and {len(sample) - 10} more fields\n"
        else:
            text += "• (Record is empty)\n"
        text += "\n"

    for field_name, display_name in ANALYZED_FIELDS:
        if field_name in requested_fields:
            text += format_field_distribution(records, field_name, display_name)
    return text


def format_custom_reports(reports: list[Any]) -> str:
    if not reports:
        return (
            "**No Custom Reports Available**\n\n"
            "This could mean:\n"
            "• No custom reports have been created in your BambooHR account\n"
            "• Your API key lacks report access permissions\n"
            "• Your BambooHR plan doesn't include custom reporting\n\n"
            "**Next Steps:**\n"
            "• Ask your BambooHR administrator to verify report permissions\n"
            "• Try `bamboo_workforce_analytics` for data analysis"
        )

    text = f"**Available Custom Reports ({len(reports)})**\n\n"
    for index, report in enumerate(reports[:20], start=1):
        if not isinstance(report, dict):
            text += f"{index}. **Invalid Report Entry** ({type(report).__name__})\n\n"
            continue
        name = report.get("name") or report.get("title") or report.get("reportName") or "Unnamed Report"
        report_id = report.get("id") or report.get("reportId") or "No ID"
        text += f"{index}. **{name}**\n   ID: `{report_id}`\n"
        for key, label in (
            ("description", "Description"),
            ("created", "Created"),
            ("lastModified", "Modified"),
            ("owner", "Owner"),
        ):
            if report.get(key):
                text += f"   {label}: {report[key]}\n"
        text += "\n"

    if len(reports) > 20:
        text += f"... and {len(reports) - 20} more reports\n\n"
    text += 'Use `{"report_id": "ID_NUMBER"}` to run a specific report'
    return text


def _format_sample_records(records: list[Any]) -> str:
    first = records[0]
    if not isinstance(first, dict):
        return f"WARNING: **Unexpected Record Format**: First record is {type(first).__name__}\n"

    text = f"**Available Fields ({len(first)})**: {', '.join(first)}\n\n"
    sample_size = min(3, len(records))
    text += f"**Sample Records ({sample_size} of {len(records)})**:\n\n"

    for index, record in enumerate(records[:sample_size], start=1):
        if not isinstance(record, dict):
            text += f"**Record {index}**: Invalid record format ({type(record).__name__})\n\n"
            continue
        text += f"**Record {index}**:\n"
        for key, value in list(record.items())[:8]:
            if value not in (None, ""):
                text += f"• {key}: {_display(value)}\n"
        text += "\n"

    if len(records) > sample_size:
        text += f"... and {len(records) - sample_size} more records\n"
    return text


def format_custom_report_results(report_data: Any, report_id: str) -> str:
    text = f"**Custom Report Results - ID: {report_id}**\n\n"

    records: Optional[list[Any]] = None
    if isinstance(report_data, list):
        records = report_data
    elif isinstance(report_data, dict) and isinstance(report_data.get("data"), list):
        records = report_data["data"]

    if records is not None:
        text += f"{len(records)} records found\n\n"
        if not records:
            return f"{text}**Empty Report**: No records returned\n"
        return text + _format_sample_records(records)

    if isinstance(report_data, dict):
        text += "**Report Summary**:\n\n"
        if not report_data:
            return f"{text}No data properties found in response\n"
        entries = list(report_data.items())
        for key, value in entries[:20]:
            text += f"• **{key}**: {_display(value)}\n"
        if len(entries) > 20:
            text += f"• ... and {len(entries) - 20} more properties\n"
        return text

    return f"{text}**Raw Response**:\n{json.dumps(report_data, indent=2)}"


def format_departments(counts: dict[str, int]) -> str:
    """Department list with head counts and share of the total."""
    total = sum(counts.values())
    lines = "\n".join(
        f"• **{name}** - {counts[name]} employees ({counts[name] / total * 100:.1f}%)"
        for name in sorted(counts)
    )
    return (
        f"**Available Departments ({len(counts)}):**\n\n{lines}\n\n"
        "**Summary:**\n"
        f"- Total Departments: {len(counts)}\n"
        f"- Total Employees: {total}\n"
        f"- Average Department Size: {round(total / len(counts))}"
    )


def format_validation_error(message: str, suggestions: Optional[list[str]] = None) -> str:
    text = f"ERROR: **Validation Failed**\n\n{message}"
    if suggestions:
        text += "\n\n**Suggestions:**\n" + "".join(f"- {item}\n" for item in suggestions)
    return text
