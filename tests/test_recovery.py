"""Unit tests for recovering contract records from raw AI output."""

import json

import pytest

from signchain import recovery
from signchain.recovery import extract_json_candidate, recover, unescape_text
from signchain.schemas import RiskLevel
from signchain.vocabulary import PLACEHOLDERS

MARKDOWN_CONTRACT = """# HİZMET SÖZLEŞMESİ

## TARAFLAR
Ali Yılmaz ve Ayşe Demir

## ÖZET
- Birinci madde
- İkinci madde

## RISK ANALIZI
- Yüksek: Ödeme gecikmesi
Orta – Teslim riski
Low: minor
Belirsiz satır
"""


def _levels(result):
    return [r.level for r in result.riskAnalysis]


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


class TestUnescapeText:
    def test_common_escapes(self):
        assert unescape_text('a\\nb\\tc\\"d\\" \\\'e\\\'') == "a\nb\tc\"d\" 'e'"

    def test_carriage_return(self):
        assert unescape_text("a\\r\\nb") == "a\r\nb"

    def test_latin1_hex_escapes(self):
        assert unescape_text("\\u00e7\\u00F6") == "çö"

    def test_empty_passthrough(self):
        assert unescape_text("") == ""


class TestExtractJsonCandidate:
    def test_prefers_fenced_block(self):
        text = 'noise {"x": 1}\n```json\n{"contract": "A"}\n```'
        assert extract_json_candidate(text) == '{"contract": "A"}'

    def test_fence_without_language(self):
        assert extract_json_candidate('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_greedy_brace_span(self):
        text = 'before {"a": {"b": 1}} middle {"c": 2} after'
        assert extract_json_candidate(text) == '{"a": {"b": 1}} middle {"c": 2}'

    def test_no_candidate(self):
        assert extract_json_candidate("plain text only") is None
        assert extract_json_candidate("") is None


# ---------------------------------------------------------------------------
# JSON interpretations
# ---------------------------------------------------------------------------


class TestJsonRecovery:
    def test_fenced_json_with_turkish_level(self):
        raw = '```json\n{"contract":"A","summary":["s1"],"riskAnalysis":[{"level":"Yüksek","description":"d"}]}\n```'
        result = recover(raw)
        assert result.contract == "A"
        assert result.summary == ["s1"]
        assert len(result.riskAnalysis) == 1
        assert result.riskAnalysis[0].level == RiskLevel.HIGH
        assert result.riskAnalysis[0].description == "d"

    def test_bare_json_round_trip(self):
        payload = {
            "contract": "# Sözleşme\n\nMadde 1",
            "summary": ["one", "two", "three"],
            "riskAnalysis": [
                {"level": "Low", "description": "l"},
                {"level": "Medium", "description": "m"},
                {"level": "High", "description": "h"},
            ],
        }
        result = recover(json.dumps(payload, ensure_ascii=False))
        assert result.contract == payload["contract"]
        assert result.summary == payload["summary"]
        assert [(r.level.value, r.description) for r in result.riskAnalysis] == [
            ("Low", "l"),
            ("Medium", "m"),
            ("High", "h"),
        ]

    def test_json_wrapped_in_prose(self):
        raw = 'Tabii, işte sözleşme:\n{"contract": "Body", "summary": ["s"]}\nİyi çalışmalar.'
        result = recover(raw)
        assert result.contract == "Body"
        assert result.summary == ["s"]

    def test_escaped_json_is_unescaped_then_parsed(self):
        raw = r'{\"contract\":\"Hello\",\"summary\":[\"s1\"],\"riskAnalysis\":[{\"level\":\"Low\",\"description\":\"d\"}]}'
        result = recover(raw)
        assert result.contract == "Hello"
        assert result.summary == ["s1"]
        assert result.riskAnalysis[0].level == RiskLevel.LOW

    def test_quoted_candidate_is_stripped(self):
        raw = "```\n'{\"contract\": \"Q\", \"summary\": [\"a\"]}'\n```"
        result = recover(raw)
        assert result.contract == "Q"
        assert result.summary == ["a"]

    def test_whole_response_json_encoded_as_string(self):
        inner = json.dumps({"contract": "A\nB", "summary": ["s"], "riskAnalysis": []})
        result = recover(json.dumps(inner))
        assert result.contract == "A\nB"
        assert result.summary == ["s"]
        assert result.riskAnalysis[0].description == PLACEHOLDERS["risk_absent"]

    def test_contract_literal_escapes_are_unescaped(self):
        result = recover(json.dumps({"contract": "a\\nb", "summary": ["s"]}))
        assert result.contract == "a\nb"

    def test_contract_enclosing_quotes_stripped_once(self):
        result = recover(json.dumps({"contract": '  "Quoted body"  ', "summary": ["s"]}))
        assert result.contract == "Quoted body"

    def test_non_string_contract_is_stringified(self):
        result = recover(json.dumps({"contract": {"title": "X"}, "summary": ["s"]}))
        assert result.contract == '{"title": "X"}'

    def test_missing_contract_falls_back_to_raw_text(self):
        raw = '{"summary": ["s"]}'
        result = recover(raw)
        assert result.contract == raw
        assert result.summary == ["s"]

    def test_summary_not_a_list_gets_placeholder(self):
        result = recover(json.dumps({"contract": "A", "summary": "just text"}))
        assert result.summary == [PLACEHOLDERS["summary_absent"]]

    def test_summary_items_coerced_to_strings(self):
        result = recover(json.dumps({"contract": "A", "summary": [1, "two", {"k": "v"}]}))
        assert result.summary == ["1", "two", '{"k": "v"}']

    def test_levels_normalized_from_any_casing_or_language(self):
        raw = json.dumps(
            {
                "contract": "A",
                "riskAnalysis": [
                    {"level": "yüksek", "description": "1"},
                    {"level": "ORTA", "description": "2"},
                    {"level": "Düşük", "description": "3"},
                    {"level": "critical", "description": "4"},
                    {"level": "low", "description": "5"},
                ],
            },
            ensure_ascii=False,
        )
        assert _levels(recover(raw)) == [
            RiskLevel.HIGH,
            RiskLevel.MEDIUM,
            RiskLevel.LOW,
            RiskLevel.MEDIUM,
            RiskLevel.LOW,
        ]

    def test_risk_item_defaults(self):
        raw = json.dumps({"contract": "A", "riskAnalysis": [{"level": "High"}, {"description": "no level"}, 7]})
        result = recover(raw)
        assert result.riskAnalysis[0].level == RiskLevel.HIGH
        assert result.riskAnalysis[0].description == '{"level": "High"}'
        assert result.riskAnalysis[1].level == RiskLevel.MEDIUM
        assert result.riskAnalysis[1].description == "no level"
        assert result.riskAnalysis[2].description == "7"

    def test_string_risk_items_are_parsed_as_lines(self):
        raw = json.dumps({"contract": "A", "riskAnalysis": ["High: late payment", "something vague"]})
        result = recover(raw)
        assert result.riskAnalysis[0].level == RiskLevel.HIGH
        assert result.riskAnalysis[0].description == "late payment"
        assert result.riskAnalysis[1].level == RiskLevel.MEDIUM
        assert result.riskAnalysis[1].description == "something vague"

    def test_object_without_contract_fields_is_not_accepted(self):
        raw = '{"foo": 1}'
        result = recover(raw)
        assert result.contract == raw
        assert result.summary == [PLACEHOLDERS["summary_missing"]]


# ---------------------------------------------------------------------------
# Freeform fallback
# ---------------------------------------------------------------------------


class TestFreeformRecovery:
    def test_markdown_body_preserved(self):
        result = recover(MARKDOWN_CONTRACT)
        assert result.contract == MARKDOWN_CONTRACT.strip()

    def test_summary_section(self):
        result = recover(MARKDOWN_CONTRACT)
        assert result.summary == ["Birinci madde", "İkinci madde"]

    def test_risk_section(self):
        result = recover(MARKDOWN_CONTRACT)
        assert [(r.level, r.description) for r in result.riskAnalysis] == [
            (RiskLevel.HIGH, "Ödeme gecikmesi"),
            (RiskLevel.MEDIUM, "Teslim riski"),
            (RiskLevel.LOW, "minor"),
            (RiskLevel.MEDIUM, "Belirsiz satır"),
        ]

    def test_dotted_turkish_risk_heading_stops_at_next_heading(self):
        text = "# Başlık\n\n## RİSK ANALİZİ\nDüşük - Az risk\n**Yüksek**: Ceza şartı\n## SONUÇ\nBitti"
        result = recover(text)
        assert [(r.level, r.description) for r in result.riskAnalysis] == [
            (RiskLevel.LOW, "Az risk"),
            (RiskLevel.HIGH, "Ceza şartı"),
        ]

    def test_mixed_case_summary_heading_with_colon(self):
        text = "Sözleşme metni\n\nÖzet:\n* a\n* b\n\n## Son"
        assert recover(text).summary == ["a", "b"]

    def test_summary_capped_at_six(self):
        bullets = "\n".join(f"- madde {i}" for i in range(1, 9))
        result = recover(f"Metin\n\n## ÖZET\n{bullets}\n")
        assert result.summary == [f"madde {i}" for i in range(1, 7)]

    def test_first_bullet_list_used_without_summary_heading(self):
        text = "Giriş\n- a\n- b\nAra metin\n- c"
        result = recover(text)
        assert result.summary == ["a", "b"]
        assert result.riskAnalysis[0].level == RiskLevel.MEDIUM
        assert result.riskAnalysis[0].description == PLACEHOLDERS["risk_missing"]

    def test_plain_text_gets_placeholders(self):
        result = recover("Sadece düz metin.")
        assert result.contract == "Sadece düz metin."
        assert result.summary == [PLACEHOLDERS["summary_missing"]]

    def test_trailing_braces_fall_back_to_freeform(self):
        raw = 'Result {"contract": "A", "summary": ["s"]} and then {extra}'
        result = recover(raw)
        assert result.contract == raw.strip()

    @pytest.mark.parametrize(
        "text",
        [
            "  just words  ",
            "Line one\nLine two\n",
            "# Heading\n\nbody with \\n literal backslash",
            "'quoted'",
            "123",
            "null",
        ],
    )
    def test_freeform_contract_is_verbatim(self, text):
        assert recover(text).contract == text.strip()


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------


class TestInvariants:
    @pytest.mark.parametrize("raw", ["", "   \n\t ", None])
    def test_blank_input_gives_failure_record(self, raw):
        result = recover(raw)
        assert result.contract == ""
        assert result.summary == [PLACEHOLDERS["summary_failed"]]
        assert len(result.riskAnalysis) == 1
        assert result.riskAnalysis[0].level == RiskLevel.HIGH

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "x",
            MARKDOWN_CONTRACT,
            '{"contract": "A", "summary": [], "riskAnalysis": []}',
            "```json\nnot json\n```",
            "{{{{",
        ],
    )
    def test_summary_and_risks_never_empty(self, raw):
        result = recover(raw)
        assert result.summary
        assert result.riskAnalysis
        assert all(r.level in set(RiskLevel) for r in result.riskAnalysis)

    def test_idempotent(self):
        assert recover(MARKDOWN_CONTRACT) == recover(MARKDOWN_CONTRACT)
        raw = '```json\n{"contract":"A","summary":["s1"]}\n```'
        assert recover(raw) == recover(raw)

    def test_unexpected_error_is_masked(self, monkeypatch):
        def explode(_):
            raise RuntimeError("boom")

        monkeypatch.setattr(recovery, "STRATEGIES", (("explode", explode),))
        result = recover("some text")
        assert result.contract == "some text"
        assert result.riskAnalysis[0].level == RiskLevel.HIGH
