# petaboo/core/security.py

from datetime import datetime, timedelta, timezone
from typing import Optional, Any, Dict
from jose import JWTError, jwt
from fastapi.security import HTTPBearer

from petaboo.core.settings import settings
from petaboo.core.exceptions import AuthenticationFailed, Unauthorized

# Настройки
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> tuple[str, datetime]:
    """
    Генерирует JWT тем же секретом, что и провайдер идентификации.
    Нужен для тестов и локальной разработки. Возвращает (token, expire_time).
    """
    to_encode: Dict[str, Any] = dict(extra_claims or {})
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"sub": subject, "exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt, expire

def decode_token(token: str) -> Dict[str, Any]:
    """
    Проверяет подпись и возвращает claims.
    sub — постоянный идентификатор пользователя.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise AuthenticationFailed(f"Invalid token: {e}")
    if not payload.get("sub"):
        raise Unauthorized("Invalid token payload")
    return payload

# auto_error=False: отсутствие заголовка обрабатываем сами (required/optional режимы)
bearer_scheme = HTTPBearer(auto_error=False)
