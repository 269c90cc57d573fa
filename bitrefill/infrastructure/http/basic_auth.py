"""HTTP Basic credentials for the marketplace API."""

import base64
from typing import Dict

from bitrefill.domain.exceptions import ValidationFailure
from bitrefill.domain.interfaces.credentials import CredentialEncoder


class BasicAuthEncoder(CredentialEncoder):
    """Encodes an API key/secret pair as an HTTP Basic `Authorization` header."""

    def __init__(self, api_key: str, api_secret: str):
        if not api_key or not api_secret:
            raise ValidationFailure("Bitrefill API key and secret must both be provided.")
        self._api_key = api_key
        self._api_secret = api_secret

    def headers(self) -> Dict[str, str]:
        token = base64.b64encode(f"{self._api_key}:{self._api_secret}".encode("utf-8")).decode("ascii")
        return {
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json",
        }

    def __repr__(self) -> str:
        return f"BasicAuthEncoder(api_key='{self._api_key[:4]}...')"
