"""
Unit tests for password hashing and token helpers.
"""
import re


class TestPasswordHashing:
    """Tests for hash_password / verify_password."""

    def test_hash_round_trip(self):
        from storefront.core.security import hash_password, verify_password

        encoded = hash_password("correct-horse", iterations=1000)
        assert verify_password("correct-horse", encoded) is True
        assert verify_password("wrong-horse", encoded) is False

    def test_hash_format_records_iterations(self):
        from storefront.core.security import hash_password

        encoded = hash_password("secret-value", iterations=1234)
        algorithm, iterations, salt, digest = encoded.split("$")
        assert algorithm == "pbkdf2_sha256"
        assert iterations == "1234"
        assert len(salt) == 32
        assert len(digest) == 64

    def test_same_password_gets_different_salts(self):
        from storefront.core.security import hash_password

        assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)

    def test_malformed_hash_is_rejected(self):
        """Legacy or corrupt hashes never verify."""
        from storefront.core.security import verify_password

        assert verify_password("x", "") is False
        assert verify_password("x", "plaintext") is False
        assert verify_password("x", "md5$1$salt$digest") is False
        assert verify_password("x", "pbkdf2_sha256$notanumber$salt$digest") is False
        assert verify_password("", "pbkdf2_sha256$1000$salt$digest") is False


class TestTokens:
    """Tests for session, magic link and invoice identifiers."""

    def test_session_tokens_are_unique(self):
        from storefront.core.security import generate_token

        tokens = {generate_token() for _ in range(50)}
        assert len(tokens) == 50

    def test_magic_link_token_shape(self):
        from storefront.core.security import generate_magic_link_token

        token = generate_magic_link_token()
        assert re.match(r"^[0-9a-f-]{36}-\d{13}$", token)

    def test_invoice_number_format(self):
        from storefront.core.security import generate_invoice_number

        assert re.match(r"^INV-2026-\d{5}$", generate_invoice_number("INV", 2026))
        assert re.match(r"^INV-PROD-2026-\d{5}$", generate_invoice_number("INV-PROD", 2026))

    def test_truncate_secret(self):
        from storefront.core.security import truncate_secret

        assert truncate_secret("abcdefghijkl") == "abcdefgh..."
        assert truncate_secret(None) == "unknown"
        assert truncate_secret("") == "unknown"
