from __future__ import annotations

import logging
from typing import Any, Protocol

from openai import OpenAI

from signchain.recovery import recover
from signchain.schemas import ContractGenerationRequest, GeneratedContract, RiskItem, RiskLevel
from signchain.utils import format_date_tr
from signchain.vocabulary import PLACEHOLDERS

log = logging.getLogger("signchain.openai")

SYSTEM_PROMPT = "Sen deneyimli bir sözleşme avukatısın. Türkçe, profesyonel ve eksiksiz sözleşmeler yazarsın."


def build_contract_prompt(request: ContractGenerationRequest) -> str:
    parties = "; ".join(f"{p.name} ({p.address or 'adres yok'})" for p in request.parties)
    termination = request.termination if request.termination not in (None, "") else "Belirtilmemiş"
    return f"""
Aşağıdaki bilgilere göre DETAYLI ve profesyonel bir Türkçe sözleşme oluştur.
Açıklama: {request.prompt}
Taraflar: {parties or "Belirtilmemiş"}
Ülke: {request.country}
Para Birimi: {request.currency}
Son Tarih: {format_date_tr(request.deadline) or "Belirtilmemiş"}
Fesih Süresi (gün): {termination}

ÇIKTI:
1) Tercihen tek bir geçerli JSON nesnesi döndür (kod bloğu ve kaçış dizisi kullanmadan):
{{ "contract": "...", "summary": ["..."], "riskAnalysis": [{{ "level": "High|Medium|Low", "description": "..." }}] }}

2) JSON veremiyorsan SADECE okunabilir Markdown döndür:
- # <SÖZLEŞME ADI>
- ## TARAFLAR
- ## PROJE KAPSAMI
- ## ÖDEME KOŞULLARI
- ## TESLİM TARİHİ
- ## FİKRİ MÜLKİYET
- ## FESİH KOŞULLARI
- En sonda "## ÖZET" (3-6 madde) ve "## RISK ANALIZI" (her satır "Seviye: açıklama")
""".strip()


def generation_failed_record() -> GeneratedContract:
    return GeneratedContract(
        contract=PLACEHOLDERS["contract_generation_failed"],
        summary=[PLACEHOLDERS["summary_generation_failed"]],
        riskAnalysis=[RiskItem(level=RiskLevel.HIGH, description=PLACEHOLDERS["risk_generation_failed"])],
    )


class ContractGenerator(Protocol):
    def generate(self, request: ContractGenerationRequest) -> GeneratedContract:
        ...


class OpenAIContractGenerator:
    """
    One chat-completion call per request; the raw answer goes through the
    recovery engine. API failures are masked by a warning record.
    """

    def __init__(
        self,
        client: Any,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        max_tokens: int = 4000,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_api_key(cls, api_key: str, **kwargs: Any) -> "OpenAIContractGenerator":
        return cls(OpenAI(api_key=api_key), **kwargs)

    def generate(self, request: ContractGenerationRequest) -> GeneratedContract:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_contract_prompt(request)},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            raw_text = resp.choices[0].message.content or ""
        except Exception as exc:
            log.exception("OpenAI contract generation failed: %s", exc)
            return generation_failed_record()

        tokens = (resp.usage and resp.usage.total_tokens) or 0
        log.info("generate: model=%s chars=%d tokens=%s", self.model, len(raw_text), tokens)
        return recover(raw_text)


class SimulatedContractGenerator:
    """Deterministic contract built from the form, for running without an API key."""

    def generate(self, request: ContractGenerationRequest) -> GeneratedContract:
        parties = "\n".join(f"**{p.name}:** {p.address}" for p in request.parties)
        if request.deadline:
            deadline = f"Proje {format_date_tr(request.deadline)} tarihine kadar tamamlanacaktır."
        else:
            deadline = "Teslim tarihi belirtilmemiştir."
        if request.termination not in (None, ""):
            termination = (
                f"Her iki taraf da {request.termination} gün önceden yazılı bildirimde "
                "bulunarak sözleşmeyi feshedebilir."
            )
        else:
            termination = "Fesih koşulları belirtilmemiştir."

        contract = (
            "# FREELANCE YAZILIM GELİŞTİRME SÖZLEŞMESİ\n\n"
            f"## TARAFLAR\n{parties}\n\n"
            f"## PROJE KAPSAMI\n{request.prompt}\n\n"
            f"## ÖDEME KOŞULLARI\n- Para birimi: {request.currency}\n- Ülke: {request.country}\n\n"
            f"## TESLİM TARİHİ\n{deadline}\n\n"
            f"## FESİH KOŞULLARI\n{termination}"
        )
        return GeneratedContract(
            contract=contract,
            summary=[
                "AI tarafından oluşturulan sözleşme",
                f"Para birimi: {request.currency}",
                f"Ülke: {request.country}",
                f"{len(request.parties)} taraf dahil",
            ],
            riskAnalysis=[RiskItem(level=RiskLevel.LOW, description="Geliştirme ortamında simüle edildi")],
        )
