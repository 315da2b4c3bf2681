"""Referral code generation."""

from pulseearn.auth.referral_codes import (
    REFERRAL_CHARSET,
    REFERRAL_CODE_LENGTH,
    generate_referral_code,
    normalize_referral_code,
)


class TestReferralCodes:
    def test_format(self):
        for _ in range(100):
            code = generate_referral_code()
            assert len(code) == REFERRAL_CODE_LENGTH
            assert all(c in REFERRAL_CHARSET for c in code)

    def test_codes_vary(self):
        assert len({generate_referral_code() for _ in range(50)}) > 45

    def test_normalize(self):
        assert normalize_referral_code("  abc123 ") == "ABC123"
        assert normalize_referral_code("   ") is None
        assert normalize_referral_code(None) is None
