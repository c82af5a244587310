from sqlalchemy import Column, Integer, String, ForeignKey
from database.db import Base

class Class(Base):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)      # 학급 고유 ID (PK)
    class_name = Column(String(100), nullable=False)        # 학급 이름 (예: JSS 1A)
    grade_level = Column(Integer, nullable=False)           # 학년 수준
    section = Column(String(20))                            # 분반

    # ✅ 소속 학년도 (FK)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"))
