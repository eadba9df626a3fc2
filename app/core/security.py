import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from starlette.status import HTTP_401_UNAUTHORIZED

from app.core.config import get_settings

bearer = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    """
    Vérifie un JWT émis par le fournisseur d'auth (HS256 par défaut).
    """
    s = get_settings()
    options = {"require": ["sub", "exp"]}
    if not s.AUTH_JWT_AUDIENCE:
        options["verify_aud"] = False
    return jwt.decode(
        token,
        s.AUTH_JWT_SECRET,
        algorithms=[s.AUTH_JWT_ALGORITHM],
        audience=s.AUTH_JWT_AUDIENCE or None,
        options=options,
    )


def get_current_auth_id(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> str:
    """
    Identité externe (claim `sub`) de l'appelant.
    """
    if not creds:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Authentication required")

    try:
        payload = decode_token(creds.credentials)
    except jwt.PyJWTError:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token")

    sub = str(payload.get("sub") or "").strip()
    if not sub:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return sub
