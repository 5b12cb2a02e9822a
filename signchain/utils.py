import re
from datetime import date, datetime
from typing import Optional, Union

SAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")
# Turkish letters folded to ASCII before unsafe characters are replaced
TR_TO_ASCII = str.maketrans("çÇğĞıİöÖşŞüÜ", "cCgGiIoOsSuU")


def format_date_tr(value: Optional[Union[date, str]]) -> str:
    # dd.mm.yyyy, as tr-TR locales print dates
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%d.%m.%Y")


def safe_pdf_filename(name: Optional[str], default: str = "sozlesme.pdf") -> str:
    stem = SAFE_FILENAME.sub("_", (name or "").strip().translate(TR_TO_ASCII)).strip("._")
    if not stem:
        return default
    if not stem.lower().endswith(".pdf"):
        stem += ".pdf"
    return stem
