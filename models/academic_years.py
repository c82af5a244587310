from sqlalchemy import Column, Integer, String, Date, Boolean
from database.db import Base

class AcademicYear(Base):
    __tablename__ = "academic_years"  # 학년도 테이블

    id = Column(Integer, primary_key=True, index=True)        # 학년도 고유 ID (Primary Key)
    year_name = Column(String(50), nullable=False)           # 학년도 이름 (예: 2024/2025)
    start_date = Column(Date, nullable=False)                # 시작일
    end_date = Column(Date, nullable=False)                  # 종료일
    is_current = Column(Boolean, default=False)              # 현재 학년도 여부
