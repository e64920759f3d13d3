"""
Security type classification.
Normalizes the security strings reported by nmcli ("WPA1 WPA2", "--") and
system_profiler ("spairport_security_mode_wpa2_personal") into one enum.
"""

import re
from enum import Enum
from typing import Optional


class SecurityType(Enum):
    NONE = "None"
    WEP = "WEP"
    WPA = "WPA"
    WPA2 = "WPA2"
    WPA3 = "WPA3"
    UNKNOWN = "Unknown"


# Strongest first
_PROTOCOL_TOKENS = (
    (SecurityType.WPA3, {"WPA3", "SAE"}),
    (SecurityType.WPA2, {"WPA2"}),
    (SecurityType.WPA, {"WPA", "WPA1"}),
    (SecurityType.WEP, {"WEP"}),
)
_OPEN_TOKENS = {"--", "NONE", "OPEN"}

_TOKEN_SPLIT = re.compile(r"[\s/_,]+|(?<=\w)-(?=\w)")

PSK_PARAMETER = "802-11-wireless-security.psk"
WEP_KEY_PARAMETER = "802-11-wireless-security.wep-key0"


def _tokens(raw: str):
    return {t for t in _TOKEN_SPLIT.split(raw.strip().upper()) if t}


def classify(raw: Optional[str]) -> SecurityType:
    """
    Classify a raw security string.

    Multiple protocols may be present ("WPA1 WPA2"); the strongest wins.
    Empty or unrecognized input (e.g. "RSN") is UNKNOWN.
    """
    if not raw or not raw.strip():
        return SecurityType.UNKNOWN
    tokens = _tokens(raw)
    for security_type, names in _PROTOCOL_TOKENS:
        if tokens & names:
            return security_type
    if tokens & _OPEN_TOKENS:
        return SecurityType.NONE
    return SecurityType.UNKNOWN


def nmcli_secret_parameter(security: SecurityType,
                           password_supplied: bool = False) -> Optional[str]:
    """
    Map a security type to the nmcli property that holds its secret.

    UNKNOWN means "open, nothing to set" unless a password was supplied, in
    which case the WPA-family parameter is used as a best effort.
    """
    if security in (SecurityType.WPA, SecurityType.WPA2, SecurityType.WPA3):
        return PSK_PARAMETER
    if security == SecurityType.WEP:
        return WEP_KEY_PARAMETER
    if security == SecurityType.UNKNOWN and password_supplied:
        return PSK_PARAMETER
    return None
