import csv
import io
import re
from .aggregation import AVERAGE_KEYS, CRITERIA_LABELS, format_export
from ..models.rating import CRITERIA_FIELDS

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\r\n]+')


def export_filename(module_name: str) -> str:
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", module_name).strip() or "module"
    return f"{safe_name}_report.csv"


def format_date(value) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d")


def render_report_csv(report: dict) -> str:
    """
    Render a module report (see ``build_module_report``) as CSV: the summary
    averages with two decimals, then one row per individual rating.
    """
    module = report["module"]
    averages = report["averages"]

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow(["Module", "Lecturer", "Total Ratings", *CRITERIA_LABELS, "Overall Average"])
    writer.writerow([
        module.module_name,
        module.lecturer_name,
        str(report["total_ratings"]),
        *[format_export(averages[key]) for key in AVERAGE_KEYS],
        format_export(averages["overall"]),
    ])
    writer.writerow([])
    writer.writerow(["Individual Ratings:"])
    writer.writerow(["Date", *CRITERIA_LABELS, "Remarks"])

    for rating in report["ratings"]:
        writer.writerow([
            format_date(rating.created_at),
            *[getattr(rating, field) for field in CRITERIA_FIELDS],
            rating.remarks or "",
        ])

    return buffer.getvalue()
