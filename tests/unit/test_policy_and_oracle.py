import json
import os
import tempfile
import unittest
from datetime import datetime, timezone

from models.verification import VerificationRecord
from services.oracle import encode_payload
from services.policy import DEFAULT_POLICY, load_policy
from services.risk_engine import RiskAssessmentService
from services.sanctions import SanctionsScreeningService


class TestLoadPolicy(unittest.TestCase):
    def _write(self, payload: dict) -> str:
        fd, path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        self.addCleanup(os.unlink, path)
        return path

    def test_override_keeps_unspecified_tables(self):
        path = self._write({
            "version": "test-2",
            "sanctioned_entities": ["Evil Widgets Inc"],
            "commodities": {"Widgets": {"impact": 3, "typical_max_amount": 1000}},
            "corridor_overrides": [["Germany", "France", 12]],
        })
        policy = load_policy(path)

        self.assertEqual(policy.version, "test-2")
        self.assertEqual(policy.sanctioned_entities, ("Evil Widgets Inc",))
        self.assertEqual(policy.commodity_rule("widgets").impact, 3)
        self.assertEqual(policy.corridor_impact("france", "germany"), 12)
        # untouched
        self.assertEqual(policy.country_tiers, DEFAULT_POLICY.country_tiers)

        flagged = SanctionsScreeningService(policy).match_entity("Evil Widgets")
        self.assertEqual(flagged, "Evil Widgets Inc")

        geo = RiskAssessmentService(policy).assess_geography(supplier_country="Germany", buyer_country="France")
        self.assertEqual(geo.risk_impact, 12)

    def test_version_required(self):
        path = self._write({"sanctioned_entities": []})
        with self.assertRaises(ValueError):
            load_policy(path)

    def test_unknown_keys_rejected(self):
        path = self._write({"version": "x", "sanctions_list_url": "http://example"})
        with self.assertRaises(ValueError):
            load_policy(path)


class TestOraclePayload(unittest.TestCase):
    def _record(self, **overrides) -> VerificationRecord:
        values = dict(
            verification_id="v-1",
            invoice_id="INV-1",
            document_hash="0x1234567890abcdef",
            is_valid=True,
            risk_score=20,
            credit_rating="AA",
            checks={},
            details=["Document hash format verified", "Sanctions screening passed"],
            recommendations=[],
            policy_version="2025.1",
            input_hash="0" * 64,
            metadata_={},
            processing_time_ms=3,
            verified_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        values.update(overrides)
        return VerificationRecord(**values)

    def test_field_order(self):
        payload = encode_payload(self._record(), max_bytes=256, max_score=255)
        self.assertEqual(
            payload,
            "1|20|AA|Document hash format verified; Sanctions screening passed|1735689600",
        )

    def test_detail_truncated_to_budget(self):
        record = self._record(details=["x" * 1000])
        payload = encode_payload(record, max_bytes=64, max_score=255)
        self.assertLessEqual(len(payload.encode("utf-8")), 64)
        self.assertTrue(payload.endswith("|1735689600"))
        self.assertTrue(payload.startswith("1|20|AA|xxx"))

    def test_multibyte_detail_not_split(self):
        record = self._record(details=["é" * 200])
        payload = encode_payload(record, max_bytes=65, max_score=255)
        self.assertLessEqual(len(payload.encode("utf-8")), 65)
        payload.encode("utf-8").decode("utf-8")

    def test_score_saturates_and_separator_escaped(self):
        record = self._record(is_valid=False, risk_score=400, credit_rating="D", details=["a|b"])
        payload = encode_payload(record, max_bytes=256, max_score=255)
        self.assertEqual(payload.split("|")[:4], ["0", "255", "D", "a/b"])

    def test_naive_timestamp_treated_as_utc(self):
        record = self._record(verified_at=datetime(2025, 1, 1))
        self.assertTrue(encode_payload(record, max_bytes=256, max_score=255).endswith("|1735689600"))


if __name__ == "__main__":
    unittest.main()
