"""
LeadDesk - CNPJ and password helper tests (config.py)
Run: cd backend && pytest tests/test_cnpj.py -v
"""

from config import (
    format_cnpj,
    hash_password,
    normalize_cnpj,
    validate_cnpj,
    verify_password,
)


class TestValidCnpj:

    def test_plain_digits(self):
        assert validate_cnpj("11222333000181") == (True, "11222333000181")

    def test_formatted(self):
        assert validate_cnpj("11.222.333/0001-81") == (True, "11222333000181")

    def test_second_sample(self):
        assert validate_cnpj("11.444.777/0001-61") == (True, "11444777000161")


class TestInvalidCnpj:

    def test_wrong_length(self):
        ok, error = validate_cnpj("1122233300018")
        assert not ok
        assert "14" in error

    def test_empty(self):
        ok, _ = validate_cnpj("")
        assert not ok

    def test_none(self):
        ok, _ = validate_cnpj(None)
        assert not ok

    def test_repeated_digits(self):
        ok, error = validate_cnpj("00000000000000")
        assert not ok
        assert "repeated" in error

    def test_bad_first_check_digit(self):
        ok, error = validate_cnpj("11222333000191")
        assert not ok
        assert "check digits" in error

    def test_bad_second_check_digit(self):
        ok, _ = validate_cnpj("11222333000182")
        assert not ok


class TestFormatting:

    def test_normalize(self):
        assert normalize_cnpj(" 11.222.333/0001-81 ") == "11222333000181"

    def test_format(self):
        assert format_cnpj("11222333000181") == "11.222.333/0001-81"

    def test_format_is_idempotent(self):
        assert format_cnpj("11.222.333/0001-81") == "11.222.333/0001-81"

    def test_format_leaves_odd_values(self):
        assert format_cnpj("123") == "123"


class TestPasswords:

    def test_round_trip(self):
        stored = hash_password("s3cret!", iterations=1000)
        assert verify_password("s3cret!", stored)
        assert not verify_password("S3cret!", stored)

    def test_salted(self):
        assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)

    def test_not_plaintext(self):
        assert "admin123" not in hash_password("admin123", iterations=1000)

    def test_garbage_hash(self):
        assert not verify_password("x", "admin123")
        assert not verify_password("x", "md5$1$00$00")
        assert not verify_password("x", "pbkdf2_sha256$abc$zz$00")
