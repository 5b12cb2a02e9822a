"""
Surface forms the AI model uses for risk levels and section headings, plus the
placeholder strings substituted when nothing usable comes back.

Turkish and English forms live side by side; add a language by adding rows.
"""
from __future__ import annotations

from typing import Dict, Optional

from signchain.schemas import RiskLevel

LEVEL_ALIASES: Dict[str, RiskLevel] = {
    "high": RiskLevel.HIGH,
    "yüksek": RiskLevel.HIGH,
    "medium": RiskLevel.MEDIUM,
    "orta": RiskLevel.MEDIUM,
    "low": RiskLevel.LOW,
    "düşük": RiskLevel.LOW,
}

# Regex alternations, longest first so "RISK ANALIZI" wins over "RISK".
SUMMARY_HEADINGS = r"ÖZET|OZET|SUMMARY"
RISK_HEADINGS = r"R[İIıi]SK\s+ANAL[İIıi]Z[İIıi]|RISK\s+ANALYSIS|R[İIıi]SK"
LEVEL_TOKENS = r"High|Medium|Low|Yüksek|Orta|Düşük"

PLACEHOLDERS: Dict[str, str] = {
    # freeform text without recognizable sections
    "summary_missing": "Özet otomatik olarak üretilemedi.",
    "risk_missing": "Risk analizi otomatik olarak üretilemedi.",
    # JSON object without the field
    "summary_absent": "Özet bulunamadı",
    "risk_absent": "Risk analizi yok",
    # nothing could be recovered at all
    "summary_failed": "AI yanıtı çözümlenemedi.",
    "risk_failed": "AI yanıtı boş veya okunamaz durumda; sözleşme metni elle kontrol edilmelidir.",
    # the AI call itself failed
    "contract_generation_failed": (
        "# UYARI: Otomatik sözleşme oluşturulamadı\n\n"
        "Sistem bir hata ile karşılaştı. Lütfen daha sonra tekrar deneyin."
    ),
    "summary_generation_failed": "Sistemsel hata nedeniyle sözleşme oluşturulamadı.",
    "risk_generation_failed": "AI çağrısı sırasında hata oluştu.",
}


def canonical_level(token: object) -> Optional[RiskLevel]:
    """Map a level token in any known language/casing to RiskLevel, or None."""
    if isinstance(token, RiskLevel):
        return token
    if not isinstance(token, str):
        return None
    return LEVEL_ALIASES.get(token.strip().lower())
