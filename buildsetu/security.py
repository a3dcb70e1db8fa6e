from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from jose import jwt, JWTError

from buildsetu.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_DAYS


# =====================================================
# JWT HANDLING
# =====================================================

def create_token(user_id, role: str, email: Optional[str] = None) -> str:
    """Sign an access token. Issuance belongs to the auth provider; used for seeding and tests."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),  # UUID → str
        "role": role,
        "exp": now + timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS),
        "iat": now,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


# =====================================================
# AUTH HELPERS
# =====================================================

def get_token_from_request(request: Request) -> Optional[str]:
    # 1️⃣ Authorization header (PRIMARY for API clients)
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]

    # 2️⃣ Fallback: HTTP-only cookie
    return request.cookies.get("access_token")
