"""Key material loading and request signing.

Example:
    ```python
    from digipost_api_client.security import Signer

    with open("certificate.p12", "rb") as f:
        signer = Signer.from_pkcs12(f, passphrase)
    ```
"""

from __future__ import annotations

from digipost_api_client.security.canonical import SIGNED_HEADERS, canonical_request
from digipost_api_client.security.exceptions import (
    KeyLoadError,
    SecurityError,
    SigningError,
)
from digipost_api_client.security.keys import (
    load_private_key,
    load_private_key_from_file,
)
from digipost_api_client.security.signer import SIGNATURE_ALGORITHM, Signer


__all__ = [
    "SIGNATURE_ALGORITHM",
    "SIGNED_HEADERS",
    "KeyLoadError",
    "SecurityError",
    "Signer",
    "SigningError",
    "canonical_request",
    "load_private_key",
    "load_private_key_from_file",
]
