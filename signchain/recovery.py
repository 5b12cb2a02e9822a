from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from signchain.schemas import GeneratedContract, RiskItem, RiskLevel
from signchain.vocabulary import (
    LEVEL_TOKENS,
    PLACEHOLDERS,
    RISK_HEADINGS,
    SUMMARY_HEADINGS,
    canonical_level,
)

log = logging.getLogger("signchain.recovery")

# ------------------------------------------------------------------------------
# Patterns
# ------------------------------------------------------------------------------

FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
BRACED_SPAN = re.compile(r"\{[\s\S]*\}")

HEX_ESCAPE = re.compile(r"\\u00([0-9A-Fa-f]{2})")
LEADING_QUOTES = re.compile(r"^\s*[\"'`]+\s*")
TRAILING_QUOTES = re.compile(r"\s*[\"'`]+\s*\Z")
ENCLOSING_QUOTES = re.compile(r'"(.*)"', re.DOTALL)

SECTION_END = r"(?:\n#{1,3}\s|\Z)"
SUMMARY_SECTION = re.compile(
    r"(?:^|\n)#{0,3}[ \t]*(?:" + SUMMARY_HEADINGS + r")\b[ \t]*[:\-]?[ \t]*([\s\S]*?)" + SECTION_END,
    re.IGNORECASE,
)
RISK_SECTION = re.compile(
    r"(?:^|\n)#{0,3}[ \t]*(?:" + RISK_HEADINGS + r")\b[ \t]*[:\-]?[ \t]*([\s\S]*?)" + SECTION_END,
    re.IGNORECASE,
)
RISK_LINE = re.compile(r"\b(" + LEVEL_TOKENS + r")\**\s*[:\-–]\s*(.+)", re.IGNORECASE)

BULLET_MARKER = re.compile(r"^\s*[-*•](?=\s|$)\s*")
BULLET_LINE = re.compile(r"^[ \t]*[-*•][ \t]+\S")

CONTRACT_FIELDS = ("contract", "summary", "riskAnalysis")
MAX_SUMMARY_ITEMS = 6


# ------------------------------------------------------------------------------
# Text helpers
# ------------------------------------------------------------------------------

def unescape_text(text: str) -> str:
    """
    Turn JSON-style escape sequences that leaked into plain text back into
    the characters they stand for.
    """
    if not text:
        return text
    text = (
        text.replace("\\n", "\n")
        .replace("\\r", "\r")
        .replace("\\t", "\t")
        .replace('\\"', '"')
        .replace("\\'", "'")
    )
    return HEX_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), text)


def extract_json_candidate(text: str) -> Optional[str]:
    """
    First fenced block if there is one, otherwise the greedy first-{ .. last-}
    span. Not nesting-aware.
    """
    if not text:
        return None
    fenced = FENCED_BLOCK.search(text)
    if fenced and fenced.group(1):
        return fenced.group(1).strip()
    braced = BRACED_SPAN.search(text)
    if braced:
        return braced.group(0)
    return None


def _strip_outer_quotes(text: str) -> str:
    return TRAILING_QUOTES.sub("", LEADING_QUOTES.sub("", text))


def _loads_contract_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    # The whole object may itself arrive JSON-encoded as a string
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if isinstance(value, dict) and any(value.get(k) for k in CONTRACT_FIELDS):
        return value
    return None


def parse_json_maybe(text: str) -> Optional[Dict[str, Any]]:
    """
    Try, in order: direct parse, unescape-then-parse, strip outer quoting then
    unescape-then-parse. Returns the contract-shaped object or None.
    """
    if not text or not text.strip():
        return None
    attempts = (
        lambda: text,
        lambda: unescape_text(text),
        lambda: unescape_text(_strip_outer_quotes(text)),
    )
    for attempt in attempts:
        parsed = _loads_contract_object(attempt())
        if parsed is not None:
            return parsed
    return None


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, ensure_ascii=False)


# ------------------------------------------------------------------------------
# Field normalization
# ------------------------------------------------------------------------------

def _normalize_contract(value: Any) -> str:
    if value is None:
        return ""
    text = unescape_text(_stringify(value)).strip()
    quoted = ENCLOSING_QUOTES.fullmatch(text)
    if quoted:
        text = quoted.group(1)
    return text.strip()


def _normalize_summary(value: Any) -> List[str]:
    if isinstance(value, list) and value:
        return [_stringify(item) for item in value]
    return [PLACEHOLDERS["summary_absent"]]


def _normalize_risk(item: Any) -> RiskItem:
    if isinstance(item, dict):
        level = canonical_level(item.get("level")) or RiskLevel.MEDIUM
        description = item.get("description")
        if description is None:
            description = item
        return RiskItem(level=level, description=_stringify(description))
    if isinstance(item, str):
        return _parse_risk_line(item)
    return RiskItem(level=RiskLevel.MEDIUM, description=_stringify(item))


def _normalize_risks(value: Any) -> List[RiskItem]:
    if isinstance(value, list) and value:
        return [_normalize_risk(item) for item in value]
    return [RiskItem(level=RiskLevel.MEDIUM, description=PLACEHOLDERS["risk_absent"])]


def _from_parsed(parsed: Dict[str, Any], raw_text: str) -> GeneratedContract:
    contract = _normalize_contract(parsed.get("contract")) or raw_text.strip()
    return GeneratedContract(
        contract=contract,
        summary=_normalize_summary(parsed.get("summary")),
        riskAnalysis=_normalize_risks(parsed.get("riskAnalysis")),
    )


# ------------------------------------------------------------------------------
# Freeform (Markdown) extraction
# ------------------------------------------------------------------------------

def _strip_bullet(line: str) -> str:
    return BULLET_MARKER.sub("", line).strip()


def _summary_from_text(text: str) -> List[str]:
    section = SUMMARY_SECTION.search(text)
    if section:
        items = [_strip_bullet(line) for line in section.group(1).split("\n")]
        items = [item for item in items if item]
        if items:
            return items[:MAX_SUMMARY_ITEMS]

    # No summary heading: take the first bullet list in the text
    bullets: List[str] = []
    for line in text.split("\n"):
        if BULLET_LINE.match(line):
            bullets.append(_strip_bullet(line))
        elif bullets and line.strip():
            break
    return bullets[:MAX_SUMMARY_ITEMS]


def _parse_risk_line(line: str) -> RiskItem:
    m = RISK_LINE.search(line)
    if m:
        level = canonical_level(m.group(1)) or RiskLevel.MEDIUM
        return RiskItem(level=level, description=m.group(2).strip())
    return RiskItem(level=RiskLevel.MEDIUM, description=line.strip())


def _risks_from_text(text: str) -> List[RiskItem]:
    section = RISK_SECTION.search(text)
    if not section:
        return []
    lines = [line.strip() for line in section.group(1).split("\n")]
    return [_parse_risk_line(line) for line in lines if line]


# ------------------------------------------------------------------------------
# Strategies (ordered; first non-None result wins)
# ------------------------------------------------------------------------------

Strategy = Callable[[str], Optional[GeneratedContract]]


def _from_candidate_span(raw_text: str) -> Optional[GeneratedContract]:
    candidate = extract_json_candidate(raw_text)
    if candidate is None:
        return None
    parsed = parse_json_maybe(candidate)
    return _from_parsed(parsed, raw_text) if parsed is not None else None


def _from_whole_text(raw_text: str) -> Optional[GeneratedContract]:
    parsed = parse_json_maybe(raw_text)
    return _from_parsed(parsed, raw_text) if parsed is not None else None


def _from_freeform(raw_text: str) -> Optional[GeneratedContract]:
    if not raw_text.strip():
        return None
    summary = _summary_from_text(raw_text) or [PLACEHOLDERS["summary_missing"]]
    risks = _risks_from_text(raw_text) or [
        RiskItem(level=RiskLevel.MEDIUM, description=PLACEHOLDERS["risk_missing"])
    ]
    return GeneratedContract(contract=raw_text.strip(), summary=summary, riskAnalysis=risks)


STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("candidate-span", _from_candidate_span),
    ("whole-text", _from_whole_text),
    ("freeform", _from_freeform),
)


def failure_record(raw_text: str) -> GeneratedContract:
    return GeneratedContract(
        contract=raw_text.strip(),
        summary=[PLACEHOLDERS["summary_failed"]],
        riskAnalysis=[RiskItem(level=RiskLevel.HIGH, description=PLACEHOLDERS["risk_failed"])],
    )


# ------------------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------------------

def recover(raw_text: Optional[str]) -> GeneratedContract:
    """
    Recover a GeneratedContract from whatever the AI model returned.

    - JSON (bare, fenced, escaped or quoted) is preferred.
    - Otherwise the text is taken as a Markdown contract and the summary and
      risk sections are scraped out of it.
    - Never raises; unusable input yields a placeholder record with a High risk.
    """
    text = raw_text if isinstance(raw_text, str) else ""
    try:
        for name, strategy in STRATEGIES:
            result = strategy(text)
            if result is not None:
                # NOTE: raw text is not logged, it may contain personal data.
                log.info(
                    "recover: strategy=%s summary=%d risks=%d",
                    name,
                    len(result.summary),
                    len(result.riskAnalysis),
                )
                return result
    except Exception as exc:
        log.exception("recover: unexpected failure, using placeholder record: %s", exc)

    log.warning("recover: nothing recoverable in %d chars of input", len(text))
    return failure_record(text)
