import enum
from pydantic import BaseModel


# ✅ 인증 서비스가 발급하는 역할(role claim)
class Role(str, enum.Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


# ✅ 요청 주체 (게이트웨이가 전달한 사용자 ID + 역할)
# - 엔진의 모든 연산에 인자로 명시적으로 전달
class Actor(BaseModel):
    user_id: str
    role: Role
