"""
test_signatures.py - Unit tests for release authorization signatures
"""

import pytest

from tokensale import (
    release_message, load_verifying_key, generate_signer,
    sign_release, verify_release_signature,
)


class TestKeys:

    def test_generate_signer_hex_lengths(self, signer):
        private_key, public_key = signer
        assert len(private_key) == 64
        assert len(public_key) == 128
        assert load_verifying_key(public_key).to_string().hex() == public_key

    def test_keys_are_fresh(self):
        assert generate_signer()[0] != generate_signer()[0]

    @pytest.mark.parametrize("public_key", ["", "00" * 10, "xyz"])
    def test_invalid_public_key(self, public_key):
        with pytest.raises(ValueError):
            load_verifying_key(public_key)


class TestReleaseSignature:

    def test_message_is_beneficiary(self):
        assert release_message("alice") == "alice"

    def test_sign_and_verify(self, signer):
        private_key, public_key = signer
        signature = sign_release(private_key, "alice")
        assert len(signature) == 128
        assert verify_release_signature(public_key, "alice", signature)

    def test_signature_is_deterministic(self, signer):
        assert sign_release(signer[0], "alice") == sign_release(signer[0], "alice")

    def test_wrong_beneficiary(self, signer):
        private_key, public_key = signer
        assert not verify_release_signature(public_key, "bob", sign_release(private_key, "alice"))

    def test_wrong_key(self, signer):
        other_private, _ = generate_signer()
        assert not verify_release_signature(signer[1], "alice", sign_release(other_private, "alice"))

    @pytest.mark.parametrize("signature", ["", "zz", "00" * 64, "ab" * 10])
    def test_malformed_signature_is_false(self, signer, signature):
        assert not verify_release_signature(signer[1], "alice", signature)

    def test_malformed_public_key_is_false(self, signer):
        assert not verify_release_signature("00", "alice", sign_release(signer[0], "alice"))
