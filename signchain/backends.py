from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request

from signchain.config import Settings
from signchain.ledger import AlgorandLedger, Ledger, SimulatedLedger, build_algod_client
from signchain.openai_client import (
    ContractGenerator,
    OpenAIContractGenerator,
    SimulatedContractGenerator,
)
from signchain.storage import ContentStorage, PinataStorage, SimulatedStorage

log = logging.getLogger("signchain.backends")

MODES = ("auto", "live", "simulated")


@dataclass(frozen=True)
class Backends:
    """The three outside services the pipeline talks to, chosen once at startup."""
    generator: ContractGenerator
    storage: ContentStorage
    ledger: Ledger


def _wants_live(mode: str, configured: bool, what: str) -> bool:
    if mode == "simulated":
        return False
    if mode == "live" and not configured:
        raise ValueError(f"BACKEND_MODE=live but {what} is not configured")
    return configured


def build_backends(settings: Settings) -> Backends:
    mode = (settings.backend_mode or "auto").strip().lower()
    if mode not in MODES:
        raise ValueError(f"Unsupported BACKEND_MODE '{settings.backend_mode}'. Use one of {MODES}.")

    if _wants_live(mode, bool(settings.openai_api_key), "OPENAI_API_KEY"):
        generator: ContractGenerator = OpenAIContractGenerator.from_api_key(
            settings.openai_api_key,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
        )
    else:
        generator = SimulatedContractGenerator()

    if _wants_live(mode, bool(settings.pinata_jwt), "PINATA_JWT"):
        storage: ContentStorage = PinataStorage(
            settings.pinata_jwt,
            settings.pinata_endpoint,
            timeout=settings.pinata_timeout_seconds,
            max_attempts=settings.upload_max_attempts,
            backoff_seconds=settings.upload_backoff_seconds,
        )
    else:
        storage = SimulatedStorage()

    if _wants_live(mode, bool(settings.algod_server), "ALGOD_SERVER"):
        ledger: Ledger = AlgorandLedger(build_algod_client(settings), settings.algod_wait_rounds)
    else:
        ledger = SimulatedLedger()

    log.info(
        "backends: mode=%s generator=%s storage=%s ledger=%s",
        mode,
        type(generator).__name__,
        type(storage).__name__,
        type(ledger).__name__,
    )
    return Backends(generator=generator, storage=storage, ledger=ledger)


def get_backends(request: Request) -> Backends:
    return request.app.state.backends


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
