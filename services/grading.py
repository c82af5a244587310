"""
services/grading.py

성적 계산 규칙
- 구성 점수: 수업(30) + 퀴즈(20) + 시험(40) + 출석(10) = 100
- 합계는 Decimal 로 정확히 더함 (부동소수 오차 없음)
- 등급 기준은 A+ ~ F 7단계 척도 하나만 사용
"""

from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Mapping, Optional

from services.exceptions import ValidationError

# ✅ 구성 점수별 만점
COMPONENT_LIMITS: Dict[str, Decimal] = {
    "class_score": Decimal("30"),
    "quiz_score": Decimal("20"),
    "exam_score": Decimal("40"),
    "attendance_score": Decimal("10"),
}

# ✅ 등급 하한선 (높은 순서대로 검사)
GRADE_SCALE = (
    (Decimal("90"), "A+"),
    (Decimal("80"), "A"),
    (Decimal("70"), "B+"),
    (Decimal("60"), "B"),
    (Decimal("50"), "C"),
    (Decimal("40"), "D"),
)
FAILING_GRADE = "F"

_TWO_PLACES = Decimal("0.01")


def _to_decimal(field: str, value) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", field=field)
    if not number.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    return number


def normalize_components(components: Optional[Mapping[str, object]]) -> Dict[str, Decimal]:
    """
    구성 점수 4개를 Decimal 로 정규화
    - 값이 없거나 None 이면 0
    - 0 미만 또는 만점 초과 시 ValidationError
    - 소수 둘째 자리를 넘는 값은 ValidationError (컬럼 정밀도 Numeric(5,2))
    """
    components = components or {}
    unknown = set(components) - set(COMPONENT_LIMITS)
    if unknown:
        raise ValidationError(f"Unknown score component: {sorted(unknown)[0]}", field=sorted(unknown)[0])

    normalized = {}
    for field, limit in COMPONENT_LIMITS.items():
        raw = components.get(field)
        value = Decimal("0") if raw is None else _to_decimal(field, raw)
        if value < 0 or value > limit:
            raise ValidationError(f"{field} must be between 0 and {limit}", field=field)
        if value != value.quantize(_TWO_PLACES):
            raise ValidationError(f"{field} must have at most 2 decimal places", field=field)
        normalized[field] = value
    return normalized


def compute_total(components: Mapping[str, Decimal]) -> Decimal:
    return sum((components[field] for field in COMPONENT_LIMITS), Decimal("0"))


def grade_of(total) -> str:
    """합계 점수 → 등급 문자"""
    total = total if isinstance(total, Decimal) else Decimal(str(total))
    for minimum, letter in GRADE_SCALE:
        if total >= minimum:
            return letter
    return FAILING_GRADE


def summarize(records: Iterable) -> dict:
    """
    성적표 요약 (과목 수 / 평균 / 최고점 / 평균 등급)
    - records: total_score 속성을 가진 객체 목록
    """
    totals = [Decimal(str(r.total_score or 0)) for r in records]
    if not totals:
        return {"subjects": 0, "average": Decimal("0.00"), "highest": Decimal("0"), "grade": None}

    average = (sum(totals, Decimal("0")) / len(totals)).quantize(_TWO_PLACES)
    return {
        "subjects": len(totals),
        "average": average,
        "highest": max(totals),
        "grade": grade_of(average),
    }
