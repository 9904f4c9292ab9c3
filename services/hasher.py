import hashlib
import json


def canonical_input(invoice_id: str, document_hash: str, details: dict) -> dict:
    """
    Normalize the verification input for stable hashing:
    - keep only the fields that drive scoring
    - strip strings
    - fixed key order (sort_keys on dump)
    """
    return {
        "invoice_id": (invoice_id or "").strip(),
        "document_hash": (document_hash or "").strip(),
        "commodity": (details.get("commodity") or "").strip(),
        "amount": str(details.get("amount") or "").strip(),
        "supplier_country": (details.get("supplier_country") or "").strip(),
        "buyer_country": (details.get("buyer_country") or "").strip(),
        "exporter_name": (details.get("exporter_name") or "").strip(),
        "buyer_name": (details.get("buyer_name") or "").strip(),
    }


def input_hash(invoice_id: str, document_hash: str, details: dict) -> str:
    payload = canonical_input(invoice_id, document_hash, details)
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
