"""
services/score_repository.py

성적 원장 저장소 (관계형 DB 접근 계층)
- 키 조회 / 정확 일치 필터 조회 / 추가 / 조건부 갱신(compare-and-set)만 제공
- 조인, 저장 프로시저 없음
- 커밋/롤백 시점은 호출하는 엔진(services/score_ledger.py)이 결정
"""

from typing import List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from models.academic_years import AcademicYear
from models.classes import Class
from models.exam_terms import ExamTerm, PublicationState
from models.parent_students import ParentStudent
from models.student_scores import StudentScore, SubmissionState
from models.students import Student
from models.subjects import Subject
from models.teacher_assignments import TeacherAssignment
from models.teachers import Teacher
from schemas.scores import ScoreKey


def _apply_filters(query, model, filters: dict):
    # 값이 list/tuple/set 이면 IN, 그 외는 == 비교
    for key, value in filters.items():
        column = getattr(model, key)
        if isinstance(value, (list, tuple, set)):
            query = query.filter(column.in_(list(value)))
        else:
            query = query.filter(column == value)
    return query


class ScoreRepository:
    def __init__(self, db: Session):
        self.db = db

    # ==========================================================
    # [1단계] 기준 정보 조회 (읽기 전용)
    # ==========================================================

    def get_term(self, term_id: int) -> Optional[ExamTerm]:
        return self.db.query(ExamTerm).filter(ExamTerm.id == term_id).first()

    def get_academic_year(self, year_id: int) -> Optional[AcademicYear]:
        return self.db.query(AcademicYear).filter(AcademicYear.id == year_id).first()

    def get_class(self, class_id: int) -> Optional[Class]:
        return self.db.query(Class).filter(Class.id == class_id).first()

    def get_subject(self, subject_id: int) -> Optional[Subject]:
        return self.db.query(Subject).filter(Subject.id == subject_id).first()

    def get_student(self, student_id: int) -> Optional[Student]:
        return self.db.query(Student).filter(Student.id == student_id).first()

    def get_student_by_user(self, user_id: str) -> Optional[Student]:
        return self.db.query(Student).filter(Student.user_id == user_id).first()

    def get_teacher_by_user(self, user_id: str) -> Optional[Teacher]:
        return self.db.query(Teacher).filter(Teacher.user_id == user_id).first()

    def students_in_class(self, class_id: int) -> List[Student]:
        return (
            self.db.query(Student)
            .filter(Student.class_id == class_id)
            .order_by(Student.full_name, Student.id)
            .all()
        )

    def linked_student_ids(self, parent_user_id: str) -> List[int]:
        rows = (
            self.db.query(ParentStudent.student_id)
            .filter(ParentStudent.parent_user_id == parent_user_id)
            .all()
        )
        return [r[0] for r in rows]

    def _assignment_query(self, teacher_id: int, academic_year_id: Optional[int]):
        query = self.db.query(TeacherAssignment).filter(TeacherAssignment.teacher_id == teacher_id)
        # 학기에 학년도가 지정된 경우, 학년도 미지정 배정 또는 같은 학년도 배정만 인정
        if academic_year_id is not None:
            query = query.filter(
                (TeacherAssignment.academic_year_id == academic_year_id)
                | (TeacherAssignment.academic_year_id.is_(None))
            )
        return query

    def is_assigned(self, teacher_id: int, class_id: int, subject_id: int,
                    academic_year_id: Optional[int] = None) -> bool:
        return (
            self._assignment_query(teacher_id, academic_year_id)
            .filter(TeacherAssignment.class_id == class_id, TeacherAssignment.subject_id == subject_id)
            .first()
            is not None
        )

    def assigned_pairs(self, teacher_id: int, academic_year_id: Optional[int] = None) -> Set[Tuple[int, int]]:
        return {
            (a.class_id, a.subject_id)
            for a in self._assignment_query(teacher_id, academic_year_id).all()
        }

    # ==========================================================
    # [2단계] 시험 학기
    # ==========================================================

    def find_terms(self, **filters) -> List[ExamTerm]:
        query = _apply_filters(self.db.query(ExamTerm), ExamTerm, filters)
        return query.order_by(ExamTerm.created_at.desc(), ExamTerm.id.desc()).all()

    def add_term(self, term: ExamTerm) -> ExamTerm:
        self.db.add(term)
        self.db.flush()
        return term

    def publish_term(self, term_id: int, published_at) -> bool:
        """draft → published 조건부 갱신. 이미 공개된 경우 False"""
        updated = (
            self.db.query(ExamTerm)
            .filter(ExamTerm.id == term_id, ExamTerm.publication_state == PublicationState.DRAFT)
            .update(
                {"publication_state": PublicationState.PUBLISHED, "published_at": published_at},
                synchronize_session=False,
            )
        )
        return updated == 1

    # ==========================================================
    # [3단계] 성적 원장
    # ==========================================================

    def get_score(self, key: ScoreKey) -> Optional[StudentScore]:
        return (
            self.db.query(StudentScore)
            .filter(
                StudentScore.student_id == key.student_id,
                StudentScore.subject_id == key.subject_id,
                StudentScore.class_id == key.class_id,
                StudentScore.exam_term_id == key.exam_term_id,
            )
            .first()
        )

    def get_score_by_id(self, score_id: int) -> Optional[StudentScore]:
        return self.db.query(StudentScore).filter(StudentScore.id == score_id).first()

    def find_scores(self, **filters) -> List[StudentScore]:
        query = _apply_filters(self.db.query(StudentScore), StudentScore, filters)
        return query.order_by(
            StudentScore.class_id, StudentScore.subject_id, StudentScore.student_id
        ).all()

    def count_scores(self, **filters) -> int:
        return _apply_filters(self.db.query(StudentScore), StudentScore, filters).count()

    def page_scores(self, offset: int, limit: int, **filters) -> Tuple[int, List[StudentScore]]:
        query = _apply_filters(self.db.query(StudentScore), StudentScore, filters)
        total = query.count()
        items = (
            query.order_by(StudentScore.updated_at.desc(), StudentScore.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return total, items

    def insert_score(self, key: ScoreKey, teacher_id: int, values: dict) -> StudentScore:
        """새 Draft 레코드 추가. 동일 키가 이미 있으면 IntegrityError (flush 시점)"""
        record = StudentScore(
            **key.model_dump(),
            teacher_id=teacher_id,
            submission_state=SubmissionState.DRAFT,
            **values,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def update_draft_score(self, score_id: int, values: dict) -> bool:
        """
        Draft 상태일 때만 점수 갱신 (compare-and-set)
        - 잠금 확인과 쓰기가 하나의 UPDATE 문에서 처리됨
        - 갱신된 행이 없으면 False (이미 제출됨 또는 삭제됨)
        """
        updated = (
            self.db.query(StudentScore)
            .filter(StudentScore.id == score_id, StudentScore.submission_state == SubmissionState.DRAFT)
            .update(values, synchronize_session=False)
        )
        return updated == 1

    def mark_submitted(self, score_id: int, submitted_at) -> bool:
        """draft → submitted 조건부 갱신. 이미 제출된 경우 False"""
        updated = (
            self.db.query(StudentScore)
            .filter(StudentScore.id == score_id, StudentScore.submission_state == SubmissionState.DRAFT)
            .update(
                {
                    "submission_state": SubmissionState.SUBMITTED,
                    "submitted_at": submitted_at,
                    "updated_at": submitted_at,
                },
                synchronize_session=False,
            )
        )
        return updated == 1
