"""Test plain-text rendering."""

from bamboohr.server.formatters import (
    format_custom_report_results,
    format_custom_reports,
    format_employee,
    format_employee_list,
    format_field_distribution,
    format_validation_error,
    full_name,
)


def test_full_name_fallback():
    assert full_name({"firstName": "Ada", "lastName": None}) == "Ada"
    assert full_name({}) == "Unknown Name"


def test_format_employee_missing_fields():
    text = format_employee({"id": 7, "firstName": "Ada", "lastName": "Lovelace"})
    assert text.splitlines() == [
        "**Ada Lovelace**",
        "Email: Not available",
        "Job Title: Not available",
        "Department: Not available",
        "Employee ID: 7",
    ]


def test_format_employee_list():
    text = format_employee_list(
        [{"firstName": "Ada", "lastName": "Lovelace", "jobTitle": "Engineer", "workEmail": "ada@acme.test"}],
        "Engineering Team",
    )
    assert text == (
        "**Engineering Team (1 employees)**\n\n"
        "• **Ada Lovelace** - Engineer (ada@acme.test)"
    )
    assert format_employee_list([]) == "No employees found."


def test_field_distribution_top_ten():
    records = [{"location": f"City {index}"} for index in range(12)] + [{}]
    text = format_field_distribution(records, "location", "Location")
    assert text.startswith("**Location** `location`:\n")
    assert "• (missing): 1" in text
    assert "• ... and 2 more values" in text


def test_field_distribution_no_records():
    assert format_field_distribution([], "status", "Status") == "**Status** `status`: No data found\n\n"


def test_custom_reports_truncated_at_twenty():
    reports = [{"id": str(index), "name": f"Report {index}"} for index in range(25)]
    text = format_custom_reports(reports)
    assert "**Available Custom Reports (25)**" in text
    assert "20. **Report 19**" in text
    assert "Report 20**" not in text
    assert "... and 5 more reports" in text


def test_custom_reports_empty():
    assert format_custom_reports([]).startswith("**No Custom Reports Available**")


def test_custom_report_results_data_key():
    text = format_custom_report_results({"data": [{"name": "Ada", "notes": None}]}, "9")
    assert "1 records found" in text
    assert "**Available Fields (2)**: name, notes" in text
    assert "• name: Ada" in text
    assert "notes:" not in text


def test_custom_report_results_summary():
    text = format_custom_report_results({"title": "Headcount", "total": 42}, "9")
    assert "**Report Summary**" in text
    assert "• **total**: 42" in text


def test_custom_report_results_raw():
    assert "**Raw Response**:\n42" in format_custom_report_results(42, "9")


def test_validation_error_suggestions():
    text = format_validation_error("Bad input", ["Try this"])
    assert text == "ERROR: **Validation Failed**\n\nBad input\n\n**Suggestions:**\n- Try this\n"
