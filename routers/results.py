from collections import OrderedDict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import get_actor
from routers.scores import serialize_score
from schemas.auth import Actor
from schemas.scores import ResultSummary
from services.grading import summarize
from services.score_ledger import ScoreLedger

router = APIRouter(prefix="/results", tags=["성적 조회"])


# ✅ [READ] 학기별 결과 조회 (역할별 가시성 적용)
# - records : 볼 수 있는 성적 레코드 전체
# - students: 학생별 성적표 요약 (과목 수 / 평균 / 최고점 / 평균 등급)
@router.get("/{exam_term_id}")
def view_results(exam_term_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    records = ScoreLedger(db).view_results(actor, exam_term_id)

    by_student = OrderedDict()
    for r in records:
        by_student.setdefault(r.student_id, []).append(r)

    students = [
        {
            "student_id": student_id,
            "summary": ResultSummary(**summarize(rows)).model_dump(),
        }
        for student_id, rows in by_student.items()
    ]

    return {
        "success": True,
        "data": {
            "exam_term_id": exam_term_id,
            "records": [serialize_score(r) for r in records],
            "students": students,
        },
        "message": f"{len(records)} results loaded"
    }
