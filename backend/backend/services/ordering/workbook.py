from __future__ import annotations

import io
import re
from datetime import datetime
from typing import Iterable

from openpyxl import Workbook

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
REQUEST_COLUMNS = ["Category", "Item", "SKU", "On Hand", "Order Qty"]

_WS_RE = re.compile(r"\s+")


def attachment_name(site_name: str, submitted_at: datetime) -> str:
    return f"supply_request_{_WS_RE.sub('_', site_name)}_{submitted_at.date().isoformat()}.xlsx"


def build_request_workbook(site_name: str, employee_name: str, submitted_at: datetime, lines: Iterable[dict]) -> bytes:
    """One "Request" sheet: a small header block, a blank row, then one row per line."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Request"

    ws.append(["Site", site_name])
    ws.append(["Employee", employee_name])
    ws.append(["Submitted", submitted_at.isoformat()])
    ws.append([])
    ws.append(REQUEST_COLUMNS)
    for line in lines:
        ws.append([line["category"], line["name"], line["sku"], line["on_hand"], line["order_qty"]])

    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()
