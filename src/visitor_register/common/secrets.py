from __future__ import annotations

import hmac
from typing import Optional


def check_shared_secret(supplied: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time comparison; an unset secret never matches."""
    if not expected or supplied is None:
        return False
    return hmac.compare_digest(str(supplied).encode("utf-8"), str(expected).encode("utf-8"))
