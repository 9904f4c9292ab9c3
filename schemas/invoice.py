import json
from typing import Dict, Optional, Union

from pydantic import Field, field_validator

from core.config import settings
from schemas.common import CamelModel


MetadataValue = Union[str, int, float, bool, None]


class InvoiceDetailsIn(CamelModel):
    commodity: str = Field(..., min_length=1, max_length=140)
    # integer string in the smallest currency unit
    amount: str = Field(..., pattern=r"^\d{1,30}$")
    supplier_country: str = Field(..., min_length=1, max_length=140)
    buyer_country: str = Field(..., min_length=1, max_length=140)
    exporter_name: str = Field(..., min_length=1, max_length=255)
    buyer_name: str = Field(..., min_length=1, max_length=255)

    @property
    def amount_value(self) -> int:
        return int(self.amount)


class VerificationRequest(CamelModel):
    invoice_id: str = Field(..., min_length=1, max_length=140)
    # shape is judged by the document checker, not rejected here
    document_hash: str = Field(..., max_length=255)
    invoice_details: InvoiceDetailsIn
    metadata: Optional[Dict[str, MetadataValue]] = None

    @field_validator("metadata")
    @classmethod
    def _bounded_metadata(cls, value):
        """
        Keep the persisted bag small: bounded key count, key length and
        serialized size.
        """
        if value is None:
            return value
        if len(value) > settings.METADATA_MAX_KEYS:
            raise ValueError(f"metadata may contain at most {settings.METADATA_MAX_KEYS} keys")
        for key in value:
            if not key or len(key) > 64:
                raise ValueError("metadata keys must be 1-64 characters")
        size = len(json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
        if size > settings.METADATA_MAX_BYTES:
            raise ValueError(f"metadata must serialize to at most {settings.METADATA_MAX_BYTES} bytes")
        return value

    model_config = {
        **CamelModel.model_config,
        "json_schema_extra": {
            "example": {
                "invoiceId": "TEST-001",
                "documentHash": "0x1234567890abcdef",
                "invoiceDetails": {
                    "commodity": "Electronics",
                    "amount": "50000000",
                    "supplierCountry": "Singapore",
                    "buyerCountry": "United States",
                    "exporterName": "Test Exports Ltd",
                    "buyerName": "Test Corp USA",
                },
                "metadata": {"test": True},
            }
        },
    }
