"""
services/score_ledger.py

성적 원장 & 등급 엔진
- 성적 입력(upsert) → 제출(submit) → 학기 공개(publish) → 결과 조회(view) 흐름
- 요청 주체(Actor)는 모든 연산에 인자로 명시적으로 전달
- 잠금/공개 규칙은 UI가 아닌 이 엔진에서 강제
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Mapping, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.exam_terms import ExamTerm, PublicationState
from models.student_scores import StudentScore, SubmissionState
from models.teachers import Teacher
from schemas.auth import Actor, Role
from schemas.exam_terms import ExamTermCreate
from schemas.scores import ScoreKey, SubmitResult
from services.exceptions import NothingToPublish, NotFound, PermissionDenied, RecordLocked, ValidationError
from services.grading import compute_total, grade_of, normalize_components
from services.score_repository import ScoreRepository

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class ScoreLedger:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ScoreRepository(db)

    # ==========================================================
    # [공통] 권한/존재 확인
    # ==========================================================

    @staticmethod
    def _require_role(actor: Actor, *roles: Role):
        if actor.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise PermissionDenied(f"Role '{actor.role.value}' is not allowed here (requires: {allowed})")

    def _require_term(self, term_id: int) -> ExamTerm:
        term = self.repo.get_term(term_id)
        if term is None:
            raise NotFound("Exam term", term_id)
        return term

    def _require_teacher(self, actor: Actor) -> Teacher:
        teacher = self.repo.get_teacher_by_user(actor.user_id)
        if teacher is None:
            raise NotFound("Teacher profile", actor.user_id)
        return teacher

    def _teacher_context(self, actor: Actor, class_id: int, subject_id: int,
                         term_id: int) -> Tuple[Teacher, ExamTerm]:
        """교사 본인 + 학급/과목/학기 존재 + 배정 여부 확인"""
        self._require_role(actor, Role.TEACHER)
        teacher = self._require_teacher(actor)
        term = self._require_term(term_id)
        if self.repo.get_class(class_id) is None:
            raise NotFound("Class", class_id)
        if self.repo.get_subject(subject_id) is None:
            raise NotFound("Subject", subject_id)
        if not self.repo.is_assigned(teacher.id, class_id, subject_id, term.academic_year_id):
            logger.warning(
                "teacher %s is not assigned to class=%s subject=%s", teacher.id, class_id, subject_id
            )
            raise PermissionDenied("Teacher is not assigned to this class and subject")
        return teacher, term

    @staticmethod
    def _require_open_term(term: ExamTerm):
        if term.publication_state == PublicationState.PUBLISHED:
            raise RecordLocked(f"Exam term {term.id} is already published")

    # ==========================================================
    # [1단계] 성적 입력 (Draft 상태에서만)
    # ==========================================================

    def upsert_score(self, actor: Actor, key: ScoreKey,
                     components: Optional[Mapping[str, object]] = None,
                     remarks: Optional[str] = None) -> StudentScore:
        """
        구성 점수 저장 후 합계/등급을 다시 계산해 반환
        - 빠진 구성 점수는 0
        - 제출 완료된 레코드 또는 공개된 학기 → RecordLocked (입력값 검증보다 먼저)
        """
        teacher, term = self._teacher_context(actor, key.class_id, key.subject_id, key.exam_term_id)
        self._require_open_term(term)

        student = self.repo.get_student(key.student_id)
        if student is None:
            raise NotFound("Student", key.student_id)
        if student.class_id != key.class_id:
            raise ValidationError(
                f"Student {key.student_id} is not enrolled in class {key.class_id}", field="student_id"
            )

        existing = self.repo.get_score(key)
        if existing is not None and existing.submission_state == SubmissionState.SUBMITTED:
            logger.warning("rejected write to submitted score %s", existing.id)
            raise RecordLocked(f"Score record {existing.id} is already submitted")

        values = normalize_components(components)
        total = compute_total(values)
        values["total_score"] = total
        values["grade"] = grade_of(total)
        values["updated_at"] = _now()
        if remarks is not None:
            values["remarks"] = remarks

        if existing is None:
            try:
                record = self.repo.insert_score(key, teacher.id, values)
                self.db.commit()
                self.db.refresh(record)
                logger.info("score %s created for %s", record.id, key.model_dump())
                return record
            except IntegrityError:
                # 다른 탭/요청이 먼저 같은 키로 생성함 → 조건부 갱신으로 진행
                self.db.rollback()
                existing = self.repo.get_score(key)
                if existing is None:
                    raise

        return self._write_draft(existing, teacher, values)

    def _write_draft(self, record: StudentScore, teacher: Teacher, values: dict) -> StudentScore:
        if record.teacher_id != teacher.id:
            logger.warning("teacher %s tried to edit score %s owned by %s", teacher.id, record.id, record.teacher_id)
            raise PermissionDenied("Score record belongs to another teacher")

        score_id = record.id
        if not self.repo.update_draft_score(score_id, values):
            self.db.rollback()
            logger.warning("rejected write to submitted score %s", score_id)
            raise RecordLocked(f"Score record {score_id} is already submitted")

        self.db.commit()
        return self.repo.get_score_by_id(score_id)

    # ✅ [ROSTER] 학급 명단 기준 성적 레코드 로드 (없으면 Draft 로 생성)
    def load_roster(self, actor: Actor, class_id: int, subject_id: int, term_id: int) -> List[StudentScore]:
        teacher, term = self._teacher_context(actor, class_id, subject_id, term_id)
        students = self.repo.students_in_class(class_id)
        filters = {"class_id": class_id, "subject_id": subject_id, "exam_term_id": term_id}
        existing = {s.student_id: s for s in self.repo.find_scores(**filters)}

        missing = [s for s in students if s.id not in existing]
        if missing and term.publication_state == PublicationState.DRAFT:
            zeros = normalize_components(None)
            total = compute_total(zeros)
            try:
                for student in missing:
                    key = ScoreKey(student_id=student.id, **filters)
                    values = dict(zeros, total_score=total, grade=grade_of(total))
                    existing[student.id] = self.repo.insert_score(key, teacher.id, values)
                self.db.commit()
                logger.info("created %d draft scores for class=%s subject=%s term=%s",
                            len(missing), class_id, subject_id, term_id)
            except IntegrityError:
                self.db.rollback()
                logger.warning("roster for class=%s subject=%s term=%s changed concurrently; reloading",
                               class_id, subject_id, term_id)
                existing = {s.student_id: s for s in self.repo.find_scores(**filters)}

        return [existing[s.id] for s in students if s.id in existing]

    # ==========================================================
    # [2단계] 제출 (Draft → Submitted, 레코드 단위)
    # ==========================================================

    def submit(self, actor: Actor, student_ids: Iterable[int], subject_id: int,
               class_id: int, term_id: int) -> SubmitResult:
        """
        학생 목록의 성적을 제출 처리
        - 이미 제출된 레코드는 skipped 로 보고 (학기 공개 후에도 오류 아님)
        - 공개된 학기의 Draft 레코드는 locked 로 보고
        - 레코드별로 커밋하므로 일부 성공 가능, 결과는 항목별로 보고
        """
        teacher, term = self._teacher_context(actor, class_id, subject_id, term_id)
        term_published = term.publication_state == PublicationState.PUBLISHED

        result = SubmitResult()
        for student_id in dict.fromkeys(student_ids):
            key = ScoreKey(student_id=student_id, subject_id=subject_id, class_id=class_id, exam_term_id=term_id)
            record = self.repo.get_score(key)
            if record is None:
                result.not_found.append(student_id)
                continue
            if record.teacher_id != teacher.id:
                result.forbidden.append(student_id)
                continue
            if record.submission_state == SubmissionState.SUBMITTED:
                result.skipped.append(student_id)
                continue
            if term_published:
                result.locked.append(student_id)
                continue

            if self.repo.mark_submitted(record.id, _now()):
                self.db.commit()
                result.updated += 1
            else:
                self.db.rollback()
                result.skipped.append(student_id)

        logger.info(
            "submit class=%s subject=%s term=%s by teacher %s: updated=%d skipped=%d not_found=%d forbidden=%d locked=%d",
            class_id, subject_id, term_id, teacher.id, result.updated,
            len(result.skipped), len(result.not_found), len(result.forbidden), len(result.locked),
        )
        return result

    # ==========================================================
    # [3단계] 학기 공개 (관리자)
    # ==========================================================

    def publish_term(self, actor: Actor, term_id: int) -> ExamTerm:
        self._require_role(actor, Role.ADMIN)
        term = self._require_term(term_id)
        if term.publication_state == PublicationState.PUBLISHED:
            logger.info("exam term %s already published; nothing changed", term_id)
            return term

        submitted = self.repo.count_scores(exam_term_id=term_id, submission_state=SubmissionState.SUBMITTED)
        if submitted == 0:
            raise NothingToPublish(f"Exam term {term_id} has no submitted scores")

        if self.repo.publish_term(term_id, _now()):
            self.db.commit()
            logger.info("exam term %s published with %d submitted scores", term_id, submitted)
        else:
            self.db.rollback()
        return self._require_term(term_id)

    # ==========================================================
    # [4단계] 결과 조회 (역할별 가시성)
    # ==========================================================

    def view_results(self, actor: Actor, term_id: int) -> List[StudentScore]:
        """
        - admin   : 학기의 전체 레코드 (Draft + Submitted)
        - teacher : 본인 소유 + 배정된 (학급, 과목) 레코드
        - student : 공개된 학기의 본인 Submitted 레코드, 미공개면 []
        - parent  : 공개된 학기의 연결된 자녀 Submitted 레코드, 미공개면 []
        """
        term = self._require_term(term_id)

        if actor.role == Role.ADMIN:
            return self.repo.find_scores(exam_term_id=term_id)

        if actor.role == Role.TEACHER:
            teacher = self._require_teacher(actor)
            pairs = self.repo.assigned_pairs(teacher.id, term.academic_year_id)
            records = self.repo.find_scores(exam_term_id=term_id, teacher_id=teacher.id)
            return [r for r in records if (r.class_id, r.subject_id) in pairs]

        if term.publication_state != PublicationState.PUBLISHED:
            return []

        if actor.role == Role.STUDENT:
            student = self.repo.get_student_by_user(actor.user_id)
            if student is None:
                raise NotFound("Student profile", actor.user_id)
            student_ids = [student.id]
        else:
            student_ids = self.repo.linked_student_ids(actor.user_id)
            if not student_ids:
                return []

        return self.repo.find_scores(
            exam_term_id=term_id,
            student_id=student_ids,
            submission_state=SubmissionState.SUBMITTED,
        )

    # ✅ [SUBMISSIONS] 교사 본인의 제출 이력 (최신순)
    def list_submissions(self, actor: Actor, page: int = 1, size: int = 20) -> Tuple[int, List[StudentScore]]:
        self._require_role(actor, Role.TEACHER)
        teacher = self._require_teacher(actor)
        return self.repo.page_scores(
            offset=(page - 1) * size,
            limit=size,
            teacher_id=teacher.id,
            submission_state=SubmissionState.SUBMITTED,
        )

    # ==========================================================
    # [5단계] 시험 학기 관리
    # ==========================================================

    def create_term(self, actor: Actor, payload: ExamTermCreate) -> ExamTerm:
        self._require_role(actor, Role.ADMIN)
        name = (payload.term_name or "").strip()
        if not name:
            raise ValidationError("term_name is required", field="term_name")
        if payload.start_date and payload.end_date and payload.end_date < payload.start_date:
            raise ValidationError("end_date must not be before start_date", field="end_date")
        if payload.academic_year_id is not None and self.repo.get_academic_year(payload.academic_year_id) is None:
            raise NotFound("Academic year", payload.academic_year_id)

        term = self.repo.add_term(ExamTerm(
            term_name=name,
            academic_year_id=payload.academic_year_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            publication_state=PublicationState.DRAFT,
        ))
        self.db.commit()
        self.db.refresh(term)
        logger.info("exam term %s created: %s", term.id, name)
        return term

    def list_terms(self, actor: Actor) -> List[ExamTerm]:
        """관리자: 전체 / 교사: 입력 가능한 Draft 학기 / 학생·학부모: 공개된 학기"""
        if actor.role == Role.ADMIN:
            return self.repo.find_terms()
        if actor.role == Role.TEACHER:
            return self.repo.find_terms(publication_state=PublicationState.DRAFT)
        return self.repo.find_terms(publication_state=PublicationState.PUBLISHED)

    def get_term(self, actor: Actor, term_id: int) -> ExamTerm:
        term = self._require_term(term_id)
        if actor.role in (Role.STUDENT, Role.PARENT) and term.publication_state != PublicationState.PUBLISHED:
            raise NotFound("Exam term", term_id)
        return term

