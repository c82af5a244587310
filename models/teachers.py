from sqlalchemy import Column, Integer, String
from database.db import Base

class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, index=True)               # 교사 고유 ID (PK)
    user_id = Column(String(64), unique=True, nullable=False)       # 인증 서비스 사용자 ID
    teacher_code = Column(String(30), unique=True, nullable=False)  # 교번
    full_name = Column(String(100), nullable=False)                 # 교사 이름
