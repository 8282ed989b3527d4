# utils/excel_utils.py

from datetime import datetime, tzinfo
from io import BytesIO
from typing import Optional

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

REPORT_COLUMNS = [
    "Date",
    "Employee ID",
    "Employee Name",
    "Punch In",
    "Punch Out",
    "Total Hours",
    "Status",
    "Notes",
]

HEADER_ROW = 3
SHEET_NAME = "Attendance"


def _format_time(value: Optional[datetime], tz: tzinfo) -> Optional[str]:
    # Excel cannot hold tz-aware datetimes, so write local wall-clock text.
    if value is None:
        return None
    return value.astimezone(tz).strftime("%H:%M:%S")


def add_table_styling(worksheet, header_row, rows_count, cols_count):
    """Add borders to make the data look like a table."""
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )
    for row in range(header_row, header_row + rows_count + 1):
        for col in range(1, cols_count + 1):
            worksheet.cell(row=row, column=col).border = thin_border


def create_attendance_report(records, tz: tzinfo) -> BytesIO:
    """
    Build an attendance report workbook.

    Args:
        records: AttendanceView objects, already sorted newest first
        tz: zone the punch times are shown in

    Returns:
        BytesIO containing the .xlsx file
    """
    data = []
    for record in records:
        data.append({
            "Date": record.date.isoformat(),
            "Employee ID": record.employee_id,
            "Employee Name": record.employee_name or "",
            "Punch In": _format_time(record.punch_in_time, tz),
            "Punch Out": _format_time(record.punch_out_time, tz),
            "Total Hours": record.total_hours,
            "Status": record.status.value,
            "Notes": record.notes or "",
        })

    df = pd.DataFrame(data, columns=REPORT_COLUMNS)

    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, startrow=HEADER_ROW - 1, sheet_name=SHEET_NAME)
        worksheet = writer.sheets[SHEET_NAME]

        worksheet.merge_cells("A1:D1")
        cell = worksheet.cell(row=1, column=1)
        cell.value = "ATTENDANCE REPORT"
        cell.font = Font(bold=True, size=14)
        cell.alignment = Alignment(horizontal="left")

        worksheet.merge_cells("E1:H1")
        cell = worksheet.cell(row=1, column=5)
        cell.value = f"Generated {datetime.now(tz).strftime('%Y-%m-%d %H:%M')}"
        cell.font = Font(italic=True)

        for idx, col in enumerate(REPORT_COLUMNS, 1):
            cell = worksheet.cell(row=HEADER_ROW, column=idx)
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center")
            cell.fill = PatternFill(start_color="D3D3D3", end_color="D3D3D3", fill_type="solid")

            max_length = len(col)
            for row_idx in range(HEADER_ROW + 1, len(df) + HEADER_ROW + 1):
                value = worksheet.cell(row=row_idx, column=idx).value
                if value:
                    max_length = max(max_length, len(str(value)))
            worksheet.column_dimensions[get_column_letter(idx)].width = max(12, max_length + 2)

        add_table_styling(worksheet, HEADER_ROW, len(df), len(REPORT_COLUMNS))

        total_row_idx = len(df) + HEADER_ROW + 1
        worksheet.cell(row=total_row_idx, column=1).value = "TOTAL"
        worksheet.cell(row=total_row_idx, column=1).font = Font(bold=True)

        hours_col = get_column_letter(REPORT_COLUMNS.index("Total Hours") + 1)
        cell = worksheet[f"{hours_col}{total_row_idx}"]
        if len(df):
            cell.value = f"=SUM({hours_col}{HEADER_ROW + 1}:{hours_col}{total_row_idx - 1})"
        else:
            cell.value = 0
        cell.font = Font(bold=True)
        cell.number_format = "0.00"

    output.seek(0)
    return output
