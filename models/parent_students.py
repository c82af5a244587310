from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from database.db import Base

class ParentStudent(Base):
    __tablename__ = "parent_students"  # 학부모 계정 ↔ 학생 연결 테이블

    id = Column(Integer, primary_key=True, index=True)
    parent_user_id = Column(String(64), nullable=False, index=True)         # 학부모 인증 서비스 사용자 ID
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False) # 자녀 학생 ID

    __table_args__ = (
        UniqueConstraint("parent_user_id", "student_id", name="uq_parent_student"),
    )
