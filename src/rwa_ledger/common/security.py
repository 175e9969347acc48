"""Gateway authentication dependencies.

The ledger sits behind an authenticating gateway. The gateway proves itself
with a shared API key and forwards the authenticated user's id; role, KYC
and freeze checks then happen inside the services.
"""

from fastapi import Depends, Header, HTTPException


async def require_api_key(
    x_ledger_api_key: str = Header(..., alias="X-Ledger-Api-Key"),
) -> str:
    """FastAPI dependency that validates the gateway API key from header."""
    from rwa_ledger.common.config import get_settings

    settings = get_settings()
    if x_ledger_api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return x_ledger_api_key


async def require_caller(
    x_ledger_user_id: str = Header(..., alias="X-Ledger-User-Id"),
    _=Depends(require_api_key),
) -> str:
    """Id of the end user the gateway authenticated for this request."""
    caller_id = x_ledger_user_id.strip()
    if not caller_id:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return caller_id
