from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.student_scores import SubmissionState


# ✅ 성적 원장 키 (학생, 과목, 학급, 시험 학기)
class ScoreKey(BaseModel):
    student_id: int
    subject_id: int
    class_id: int
    exam_term_id: int


# ✅ 입력용 (PUT /scores)
# - 범위 검사는 엔진(services/grading.py)에서 수행, 여기서는 타입만 확인
class ScoreUpsert(ScoreKey):
    class_score: Optional[Decimal] = None        # 수업 점수 (0~30)
    quiz_score: Optional[Decimal] = None         # 퀴즈 점수 (0~20)
    exam_score: Optional[Decimal] = None         # 시험 점수 (0~40)
    attendance_score: Optional[Decimal] = None   # 출석 점수 (0~10)
    remarks: Optional[str] = None                # 교사 코멘트

    def key(self) -> ScoreKey:
        return ScoreKey(
            student_id=self.student_id,
            subject_id=self.subject_id,
            class_id=self.class_id,
            exam_term_id=self.exam_term_id,
        )

    def components(self) -> dict:
        return {
            "class_score": self.class_score,
            "quiz_score": self.quiz_score,
            "exam_score": self.exam_score,
            "attendance_score": self.attendance_score,
        }


# ✅ 출력용 (응답 직렬화)
class ScoreRecord(ScoreKey):
    id: int
    teacher_id: int
    class_score: float
    quiz_score: float
    exam_score: float
    attendance_score: float
    total_score: float
    grade: str
    remarks: Optional[str] = None
    submission_state: SubmissionState
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# ✅ 일괄 제출 요청
class SubmitRequest(BaseModel):
    student_ids: List[int] = Field(..., min_length=1)
    subject_id: int
    class_id: int
    exam_term_id: int


# ✅ 일괄 제출 결과 (항목별 결과 보고, 첫 실패에서 중단하지 않음)
class SubmitResult(BaseModel):
    updated: int = 0
    skipped: List[int] = []      # 이미 제출된 학생 ID
    not_found: List[int] = []    # 성적 레코드가 없는 학생 ID
    forbidden: List[int] = []    # 다른 교사 소유 레코드
    locked: List[int] = []       # 공개된 학기의 Draft 레코드 (제출 불가)


# ✅ 성적표 요약
class ResultSummary(BaseModel):
    subjects: int
    average: float
    highest: float
    grade: Optional[str] = None
