from typing import Optional, Annotated
from fastapi import Header, HTTPException
from config.settings import settings
from schemas.auth import Actor, Role
import hmac

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]
UserIdHeader = Annotated[Optional[str], Header(alias="X-User-Id")]
UserRoleHeader = Annotated[Optional[str], Header(alias="X-User-Role")]


def _unauthorized(detail: str):
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_gateway_token(authorization: AuthHeader = None):
    # 설정 누락 방지: 환경에서 토큰이 비어있으면 개발 중 오류를 명확히 드러냄
    if not settings.INTERNAL_API_TOKEN:
        raise HTTPException(status_code=500, detail="Server token not configured")

    if not authorization:
        raise _unauthorized("Missing Authorization header")

    # "Bearer <token>" 파싱
    try:
        scheme, token = authorization.split(" ", 1)
    except ValueError:
        raise _unauthorized("Invalid Authorization header format")

    if scheme.lower() != "bearer":
        raise _unauthorized("Invalid auth scheme")

    # 타이밍 안전 비교
    if not hmac.compare_digest(token.strip(), settings.INTERNAL_API_TOKEN):
        raise _unauthorized("Invalid token")


def get_actor(
    authorization: AuthHeader = None,
    user_id: UserIdHeader = None,
    user_role: UserRoleHeader = None,
) -> Actor:
    """
    게이트웨이가 검증 후 전달한 {user_id, role} 을 요청 주체(Actor)로 변환
    - 사용자 토큰 자체는 여기서 검증하지 않음 (인증 서비스 책임)
    """
    require_gateway_token(authorization)

    if not user_id or not user_id.strip():
        raise _unauthorized("Missing X-User-Id header")

    try:
        role = Role((user_role or "").strip().lower())
    except ValueError:
        raise _unauthorized("Missing or unknown X-User-Role header")

    return Actor(user_id=user_id.strip(), role=role)
