from sqlalchemy import Column, Integer, String, ForeignKey
from database.db import Base

class Student(Base):
    __tablename__ = "students"  # 학생 기본 정보 테이블

    id = Column(Integer, primary_key=True, index=True)                # 고유 학생 ID (Primary Key)
    user_id = Column(String(64), unique=True, nullable=False)        # 인증 서비스 사용자 ID
    student_code = Column(String(30), unique=True, nullable=False)   # 학번
    full_name = Column(String(100), nullable=False)                  # 학생 이름
    class_id = Column(Integer, ForeignKey("classes.id"))             # 소속 반 ID (classes 테이블과 연동)
