"""
Last.fm request signing.

api_sig = md5(k1 + v1 + k2 + v2 + ... + secret), keys sorted ascending,
api_sig itself excluded. Must be bit-exact or the server answers with
error 13 (invalid method signature).
"""

from __future__ import annotations

import pylast

SIGNATURE_FIELD = "api_sig"
RESPONSE_FORMAT = "json"


class SignatureComputationError(Exception): ...


class Signer:
    def __init__(self, api_secret: str):
        if not api_secret:
            raise SignatureComputationError("Missing Last.fm API secret")
        self._secret = api_secret

    def sign(self, params: dict[str, str]) -> str:
        """Return the lower-case hex MD5 signature for params."""
        for key, value in params.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise SignatureComputationError(f"Parameter {key!r} must be a string")
        keys = sorted(k for k in params if k != SIGNATURE_FIELD)
        payload = "".join(k + params[k] for k in keys)
        return pylast.md5(payload + self._secret)

    def signed(self, params: dict[str, str]) -> dict[str, str]:
        """Copy of params with api_sig appended, then format=json."""
        out = dict(params)
        out[SIGNATURE_FIELD] = self.sign(out)
        out["format"] = RESPONSE_FORMAT
        return out
