import unittest
from dataclasses import replace

from services.check_result import FraudStatus, SanctionsStatus
from services.document import DocumentIntegrityChecker
from services.fraud import FraudHeuristicsService
from services.policy import DEFAULT_POLICY, normalize_party_name
from services.sanctions import SanctionsScreeningService


class TestDocumentIntegrity(unittest.TestCase):
    def setUp(self):
        self.doc = DocumentIntegrityChecker(DEFAULT_POLICY)

    def test_hex_reference_valid(self):
        r = self.doc.verify("0x1234567890abcdef")
        self.assertTrue(r.is_valid)
        self.assertEqual(r.risk_impact, 0)

    def test_ipfs_cid_v0_valid(self):
        r = self.doc.verify("Qm" + "a" * 44)
        self.assertTrue(r.is_valid)

    def test_empty_reference_never_raises(self):
        for value in ("", "   ", None):
            with self.subTest(value=value):
                r = self.doc.verify(value)
                self.assertFalse(r.is_valid)
                self.assertEqual(r.risk_impact, DEFAULT_POLICY.empty_document_impact)
                self.assertEqual(len(r.details), 1)

    def test_malformed_reference(self):
        r = self.doc.verify("not-a-hash")
        self.assertFalse(r.is_valid)
        self.assertEqual(r.risk_impact, DEFAULT_POLICY.malformed_document_impact)


class TestSanctionsScreening(unittest.TestCase):
    def setUp(self):
        self.sanctions = SanctionsScreeningService(DEFAULT_POLICY)

    def _screen(self, **overrides):
        params = {
            "exporter_name": "Test Exports Ltd",
            "buyer_name": "Test Corp USA",
            "supplier_country": "Singapore",
            "buyer_country": "United States",
        }
        params.update(overrides)
        return self.sanctions.screen(**params)

    def test_clear(self):
        r = self._screen()
        self.assertEqual(r.status, SanctionsStatus.CLEAR.value)
        self.assertEqual(r.risk_impact, 0)

    def test_exact_entity_match_ignoring_legal_suffix(self):
        r = self._screen(buyer_name="Korea Mining Development Trading Corp.")
        self.assertEqual(r.status, SanctionsStatus.FLAGGED.value)
        self.assertEqual(r.risk_impact, DEFAULT_POLICY.sanctions_impact)

    def test_fuzzy_entity_match(self):
        r = self._screen(exporter_name="Bank Meli Iran")
        self.assertEqual(r.status, SanctionsStatus.FLAGGED.value)

    def test_entity_contained_in_longer_name(self):
        r = self._screen(exporter_name="Bank Melli Iran London Branch")
        self.assertEqual(r.status, SanctionsStatus.FLAGGED.value)

    def test_single_word_entity_inside_longer_name(self):
        r = self._screen(exporter_name="Sovcomflot Shipping Ltd")
        self.assertEqual(r.status, SanctionsStatus.FLAGGED.value)
        self.assertFalse(r.is_valid)

    def test_sanctioned_country_inside_longer_name(self):
        for country in ("Iran (Islamic Republic of)", "Republic of Cuba", "Crimea region"):
            with self.subTest(country=country):
                r = self._screen(supplier_country=country)
                self.assertEqual(r.status, SanctionsStatus.FLAGGED.value)

    def test_korea_alias_inside_longer_name_not_flagged(self):
        r = self._screen(buyer_country="Republic of Korea (South)")
        self.assertEqual(r.status, SanctionsStatus.CLEAR.value)

    def test_sanctioned_country_alias(self):
        r = self._screen(buyer_country="DPRK")
        self.assertEqual(r.status, SanctionsStatus.FLAGGED.value)

    def test_neighbouring_country_not_flagged(self):
        r = self._screen(buyer_country="Iraq")
        self.assertEqual(r.status, SanctionsStatus.CLEAR.value)

    def test_watchlist_country_adds_small_impact(self):
        r = self._screen(supplier_country="Russia", buyer_country="Russian Federation")
        self.assertEqual(r.status, SanctionsStatus.CLEAR.value)
        self.assertEqual(r.risk_impact, DEFAULT_POLICY.watchlist_impact)

    def test_multiple_hits_single_impact(self):
        r = self._screen(exporter_name="Tornado Cash", buyer_country="Iran")
        self.assertEqual(r.status, SanctionsStatus.FLAGGED.value)
        self.assertEqual(r.risk_impact, DEFAULT_POLICY.sanctions_impact)
        self.assertEqual(len(r.details), 2)

    def test_screen_is_reproducible(self):
        a = self._screen(exporter_name="Sovcomflot PJSC")
        b = self._screen(exporter_name="Sovcomflot PJSC")
        self.assertEqual((a.status, a.risk_impact, a.details), (b.status, b.risk_impact, b.details))


class TestFraudHeuristics(unittest.TestCase):
    def setUp(self):
        self.fraud = FraudHeuristicsService(DEFAULT_POLICY)

    def _detect(self, **overrides):
        params = {
            "exporter_name": "Test Exports Ltd",
            "buyer_name": "Test Corp USA",
            "amount": 50_000_000,
            "commodity": "Electronics",
        }
        params.update(overrides)
        return self.fraud.detect(**params)

    def test_ordinary_invoice_passes(self):
        r = self._detect()
        self.assertEqual(r.status, FraudStatus.PASSED.value)
        self.assertEqual(r.risk_impact, 0)

    def test_self_dealing_fails(self):
        r = self._detect(exporter_name="Acme Trading Ltd", buyer_name="ACME Trading Limited")
        self.assertEqual(r.status, FraudStatus.FAILED.value)

    def test_shell_entity_pattern_fails(self):
        r = self._detect(buyer_name="Pacific Offshore Holdings")
        self.assertEqual(r.status, FraudStatus.FAILED.value)

    def test_zero_amount_fails(self):
        r = self._detect(amount=0)
        self.assertEqual(r.status, FraudStatus.FAILED.value)

    def test_round_amount_alone_passes_with_risk(self):
        r = self._detect(amount=2_000_000_000, commodity="Crude Oil")
        self.assertEqual(r.status, FraudStatus.PASSED.value)
        self.assertEqual(r.risk_impact, DEFAULT_POLICY.fraud_soft_impact)

    def test_round_and_implausible_amount_fails(self):
        # coffee typical max 100M -> 10x = 1B
        r = self._detect(amount=3_000_000_000, commodity="Coffee")
        self.assertEqual(r.status, FraudStatus.FAILED.value)
        self.assertEqual(r.risk_impact, 2 * DEFAULT_POLICY.fraud_soft_impact)

    def test_signal_impacts_come_from_policy(self):
        policy = replace(DEFAULT_POLICY, version="test-fraud", fraud_soft_impact=7, fraud_hard_impact=40)
        fraud = FraudHeuristicsService(policy)

        r = fraud.detect(exporter_name="A Ltd", buyer_name="B Ltd", amount=2_000_000_000, commodity="Crude Oil")
        self.assertEqual(r.risk_impact, 7)

        r = fraud.detect(exporter_name="A Ltd", buyer_name="B Ltd", amount=0, commodity="Crude Oil")
        self.assertEqual(r.risk_impact, 40)
        self.assertEqual(r.status, FraudStatus.FAILED.value)


class TestNormalization(unittest.TestCase):
    def test_party_name_suffixes_stripped(self):
        self.assertEqual(normalize_party_name("Test Exports, Ltd."), "test exports")
        self.assertEqual(normalize_party_name("Foo Pte. Ltd"), "foo")
        self.assertEqual(normalize_party_name(None), "")


if __name__ == "__main__":
    unittest.main()
