from datetime import datetime

from muthawwif.utils.helpers import format_date, format_price, month_label, slugify, truncate_text, whatsapp_url
from muthawwif.utils.result import Result, ResultStatus


def test_format_price_uses_rupiah_grouping():
    assert format_price(1250000) == "Rp 1.250.000"
    assert format_price(None) == "Rp 0"


def test_indonesian_dates():
    assert format_date(datetime(2026, 10, 7)) == "07 Oktober 2026"
    assert format_date(None) == ""
    assert month_label(datetime(2026, 8, 1)) == "Agu 2026"


def test_slugify_and_truncate():
    assert slugify("  Panduan Umrah: Hari ke-1  ") == "panduan-umrah-hari-ke-1"
    assert truncate_text("a" * 10, 5) == "aaaaa..."


def test_whatsapp_url_falls_back_to_default_number():
    assert whatsapp_url(None, "Halo", "628111") == "https://wa.me/628111?text=Halo"
    assert whatsapp_url("0812 34", "Salam kenal", "628111") == "https://wa.me/081234?text=Salam%20kenal"


def test_result_status():
    assert Result.ok([]).status == ResultStatus.EMPTY
    assert Result.ok([1]).status == ResultStatus.SUCCESS

    failed = Result.failed(RuntimeError("timeout"), [])
    assert failed.is_error
    assert failed.data == []
    assert failed.error == "timeout"
