"""
signatures.py - Release Authorization Signatures

Token holders configured with a signer only release when presented with a
secp256k1 signature, produced by the signer, over the canonical release
message for the holder's beneficiary. Keys and signatures travel as hex:
public keys as the raw 64-byte point, signatures as raw r||s.
"""

from __future__ import annotations
import hashlib
from typing import Tuple

import ecdsa
from ecdsa.errors import MalformedPointError
from ecdsa.util import sigdecode_string, sigencode_string, MalformedSignature


def release_message(beneficiary: str) -> str:
    """The message a signer authorizes: the beneficiary address itself."""
    return beneficiary


def load_verifying_key(public_key_hex: str) -> ecdsa.VerifyingKey:
    """
    Parse a secp256k1 public key from hex.

    Raises:
        ValueError: If the hex is malformed or not a point on the curve
    """
    try:
        return ecdsa.VerifyingKey.from_string(bytearray.fromhex(public_key_hex), curve=ecdsa.SECP256k1)
    except MalformedPointError as e:
        raise ValueError(f"Invalid signer public key: {e}") from e


def generate_signer() -> Tuple[str, str]:
    """
    Create a fresh signing key pair.

    Returns:
        (private_key_hex, public_key_hex)
    """
    signing_key = ecdsa.SigningKey.generate(curve=ecdsa.SECP256k1)
    return signing_key.to_string().hex(), signing_key.get_verifying_key().to_string().hex()


def sign_release(private_key_hex: str, beneficiary: str) -> str:
    """Sign the release message for a beneficiary, returning r||s as hex."""
    signing_key = ecdsa.SigningKey.from_string(bytearray.fromhex(private_key_hex), curve=ecdsa.SECP256k1)
    signature = signing_key.sign_deterministic(
        release_message(beneficiary).encode('utf-8'),
        hashfunc=hashlib.sha256,
        sigencode=sigencode_string,
    )
    return signature.hex()


def verify_release_signature(public_key_hex: str, beneficiary: str, signature_hex: str) -> bool:
    """
    Check that signature_hex is the signer's signature over the release
    message for beneficiary. Malformed input verifies as False.
    """
    try:
        public_key = load_verifying_key(public_key_hex)
        return public_key.verify(
            bytearray.fromhex(signature_hex),
            release_message(beneficiary).encode('utf-8'),
            hashfunc=hashlib.sha256,
            sigdecode=sigdecode_string,
        )
    except (ecdsa.BadSignatureError, MalformedSignature, ValueError):
        return False
