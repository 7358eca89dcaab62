# reporting/reports/export_helpers.py
"""
CSV rendering of royalty reports for the finance team's accounting import.
"""
import csv
import io
from typing import Iterable

ROYALTY_CSV_COLUMNS = [
    "period", "franchisee_code", "franchisee_name", "gross_sales", "share_pct",
    "amount_due", "order_count", "period_start", "period_end", "timezone", "generated_at",
]


def royalty_reports_to_csv(reports: Iterable) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=ROYALTY_CSV_COLUMNS)
    writer.writeheader()
    for report in reports:
        writer.writerow({
            "period": report.period,
            "franchisee_code": report.franchisee.code,
            "franchisee_name": report.franchisee.name,
            "gross_sales": str(report.gross_sales),
            "share_pct": str(report.share_pct),
            "amount_due": str(report.amount_due),
            "order_count": report.order_count,
            "period_start": report.period_start.isoformat(),
            "period_end": report.period_end.isoformat(),
            "timezone": report.timezone,
            "generated_at": report.generated_at.isoformat(),
        })
    return output.getvalue()
