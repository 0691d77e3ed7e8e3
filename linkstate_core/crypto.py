"""
linkstate_core.crypto
---------------------
Default credential generation for a fresh linked-device identity:

- X25519: noise and pairing-ephemeral key pairs, signed pre-key
- Ed25519: identity key that signs the pre-key

``init_auth_creds`` is the generator AuthStateManager falls back to when no
usable state is stored. Hosts with their own key scheme pass a different
``init_creds`` callable instead.
"""

from __future__ import annotations
import secrets
from typing import Tuple
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519, x25519

from .creds import AccountSettings, AuthenticationCreds, KeyPair, SignedKeyPair
from .utils import b64e, random_bytes

# Curve25519 public keys are announced with a one-byte type prefix
KEY_BUNDLE_TYPE = b"\x05"


# --------- Ed25519 (sign/verify) ----------
def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = ed25519.Ed25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()

def ed25519_sign(priv_raw: bytes, data: bytes) -> bytes:
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw)
    return sk.sign(data)

def ed25519_verify(pub_raw: bytes, sig: bytes, data: bytes) -> bool:
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(pub_raw).verify(sig, data)
        return True
    except (InvalidSignature, ValueError):
        return False

# --------- X25519 ----------
def x25519_generate() -> Tuple[bytes, bytes]:
    sk = x25519.X25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()


def _key_pair(generate) -> KeyPair:
    priv, pub = generate()
    return KeyPair(public=pub, private=priv)


def signed_key_pair(identity: KeyPair, key_id: int) -> SignedKeyPair:
    pre_key = _key_pair(x25519_generate)
    sig = ed25519_sign(identity.private, KEY_BUNDLE_TYPE + pre_key.public)
    return SignedKeyPair(key_pair=pre_key, signature=sig, key_id=key_id)


def generate_registration_id() -> int:
    return secrets.randbits(16) & 16383


def init_auth_creds() -> AuthenticationCreds:
    identity = _key_pair(ed25519_generate)
    return AuthenticationCreds(
        noise_key=_key_pair(x25519_generate),
        pairing_ephemeral_key_pair=_key_pair(x25519_generate),
        signed_identity_key=identity,
        signed_pre_key=signed_key_pair(identity, 1),
        registration_id=generate_registration_id(),
        adv_secret_key=b64e(random_bytes(32)),
        next_pre_key_id=1,
        first_unuploaded_pre_key_id=1,
        account_sync_counter=0,
        account_settings=AccountSettings(unarchive_chats=False),
        registered=False,
    )


def verify_signed_pre_key(creds: AuthenticationCreds) -> bool:
    spk = creds.signed_pre_key
    return ed25519_verify(
        creds.signed_identity_key.public,
        spk.signature,
        KEY_BUNDLE_TYPE + spk.key_pair.public,
    )
