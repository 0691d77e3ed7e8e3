# linkstate_core/creds.py

from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional


@dataclass
class KeyPair:
    public: bytes
    private: bytes

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyPair":
        return cls(public=data["public"], private=data["private"])


@dataclass
class SignedKeyPair:
    key_pair: KeyPair
    signature: bytes
    key_id: int
    timestamp_s: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignedKeyPair":
        return cls(
            key_pair=KeyPair.from_dict(data["key_pair"]),
            signature=data["signature"],
            key_id=data["key_id"],
            timestamp_s=data.get("timestamp_s"),
        )


@dataclass
class Contact:
    id: str
    name: Optional[str] = None
    lid: Optional[str] = None


@dataclass
class AccountSettings:
    unarchive_chats: bool = False
    default_disappearing_mode: Optional[Dict[str, Any]] = None


@dataclass
class AuthenticationCreds:
    """
    Identity credential record for one linked-device session.

    Exactly one exists per identity key. The session replaces it wholesale
    through a ``creds.update`` event; it is never merged field by field.
    Binary fields stay ``bytes`` and are handled by the codec.
    """
    noise_key: KeyPair
    pairing_ephemeral_key_pair: KeyPair
    signed_identity_key: KeyPair
    signed_pre_key: SignedKeyPair
    registration_id: int
    adv_secret_key: str

    me: Optional[Contact] = None
    account: Optional[Dict[str, Any]] = None
    signal_identities: List[Dict[str, Any]] = field(default_factory=list)
    my_app_state_key_id: Optional[str] = None

    first_unuploaded_pre_key_id: int = 1
    next_pre_key_id: int = 1

    last_account_sync_timestamp: Optional[int] = None
    platform: Optional[str] = None
    processed_history_messages: List[Any] = field(default_factory=list)
    account_sync_counter: int = 0
    account_settings: AccountSettings = field(default_factory=AccountSettings)
    registered: bool = False
    pairing_code: Optional[str] = None
    routing_info: Optional[bytes] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthenticationCreds":
        me = data.get("me")
        settings = data.get("account_settings") or {}
        return cls(
            noise_key=KeyPair.from_dict(data["noise_key"]),
            pairing_ephemeral_key_pair=KeyPair.from_dict(data["pairing_ephemeral_key_pair"]),
            signed_identity_key=KeyPair.from_dict(data["signed_identity_key"]),
            signed_pre_key=SignedKeyPair.from_dict(data["signed_pre_key"]),
            registration_id=data["registration_id"],
            adv_secret_key=data["adv_secret_key"],
            me=Contact(**me) if me else None,
            account=data.get("account"),
            signal_identities=list(data.get("signal_identities") or []),
            my_app_state_key_id=data.get("my_app_state_key_id"),
            first_unuploaded_pre_key_id=data.get("first_unuploaded_pre_key_id", 1),
            next_pre_key_id=data.get("next_pre_key_id", 1),
            last_account_sync_timestamp=data.get("last_account_sync_timestamp"),
            platform=data.get("platform"),
            processed_history_messages=list(data.get("processed_history_messages") or []),
            account_sync_counter=data.get("account_sync_counter", 0),
            account_settings=AccountSettings(**settings),
            registered=data.get("registered", False),
            pairing_code=data.get("pairing_code"),
            routing_info=data.get("routing_info"),
        )
