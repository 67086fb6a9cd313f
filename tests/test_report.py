"""Tests for the JSON report."""
from datetime import datetime

import orjson
from src.jobs.report import JsonReportWriter, format_date_for_filename


def test_format_date_for_filename():
    """Test the report timestamp format."""
    assert format_date_for_filename(datetime(2026, 2, 4, 13, 5)) == "2026-02-04-13-05"


def test_report_lists_sales_and_total(tmp_path):
    """Test the report keeps history order and sums amounts."""
    sales = [
        {"id": "A1", "valor": "R$ 1.234,56"},
        {"id": "A2", "valor": "R$ 10,00"},
        {"id": "A3"},
    ]
    path = JsonReportWriter(tmp_path).render(sales, datetime(2026, 2, 4, 13, 5))

    assert path.name == "relatorio-vendas-2026-02-04-13-05.json"
    report = orjson.loads(path.read_bytes())
    assert report["count"] == 3
    assert report["total"] == 1244.56
    assert [s["id"] for s in report["sales"]] == ["A1", "A2", "A3"]
