from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ------------------------------------------------------------------------------
# Contract generation input
# ------------------------------------------------------------------------------

class Party(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    address: str = Field(default="", description="Postal or wallet address of the party")


class ContractGenerationRequest(BaseModel):
    """
    Everything the user filled in on the contract form.
    """
    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., min_length=1, max_length=20_000)
    parties: List[Party] = Field(default_factory=list)
    country: str = Field(default="TR", description="Country code, e.g. TR")
    currency: str = Field(default="TRY", description="Currency code, e.g. TRY")
    deadline: Optional[date] = None
    termination: Optional[Union[int, str]] = Field(
        default=None,
        description="Termination notice period in days, or free text.",
    )


# ------------------------------------------------------------------------------
# Generated contract (output of the recovery engine)
# ------------------------------------------------------------------------------

class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RiskItem(BaseModel):
    level: RiskLevel = RiskLevel.MEDIUM
    description: str


class GeneratedContract(BaseModel):
    """
    Normalized contract record. summary and riskAnalysis are never empty.
    """
    contract: str
    summary: List[str] = Field(..., min_length=1)
    riskAnalysis: List[RiskItem] = Field(..., min_length=1)


# ------------------------------------------------------------------------------
# HTTP envelopes
# ------------------------------------------------------------------------------

class RecoverRequest(BaseModel):
    raw_text: str = Field(default="", description="At most MAX_INPUT_CHARS characters")


class PdfRequest(BaseModel):
    text: str = Field(..., min_length=1, description="At most MAX_INPUT_CHARS characters")
    title: Optional[str] = Field(default=None, description="Defaults to the configured title")
    filename: str = Field(default="sozlesme.pdf")


class PublishResponse(BaseModel):
    cid: str
    filename: str
    size_bytes: int


class UploadResponse(BaseModel):
    cid: str


class AnchorPrepareRequest(BaseModel):
    cid: str = Field(..., min_length=1)
    wallet_address: str = Field(..., min_length=1)


class AnchorPrepareResponse(BaseModel):
    txn: str = Field(..., description="Base64 msgpack of the unsigned transaction")


class AnchorSubmitRequest(BaseModel):
    signed_txn: str = Field(..., min_length=1, description="Base64 of the signed transaction")


class AnchorSubmitResponse(BaseModel):
    tx_id: str
