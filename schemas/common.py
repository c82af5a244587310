"""
schemas/common.py

라우터 공용 응답 스키마
- 에러 응답: middlewares/error_handler.py 가 모든 실패 응답을 ErrorResponse 로 통일
- 목록 메타: 페이지 단위 목록 응답의 "meta" 필드
"""

from __future__ import annotations

from datetime import datetime, timezone
from math import ceil
from typing import Optional

from pydantic import BaseModel, Field


# =========================================================
# 에러 응답
# =========================================================

class ErrorDetail(BaseModel):
    code: str = Field(..., description="RECORD_LOCKED / NOTHING_TO_PUBLISH / NOT_FOUND / VALIDATION_ERROR ...")
    message: str
    field: Optional[str] = Field(default=None, description="검증 실패 시 문제가 된 입력 필드")


class ErrorResponse(BaseModel):
    """{"success": false, "error": {...}} 형태의 실패 응답"""
    success: bool = False
    error: ErrorDetail
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    latency_ms: Optional[int] = Field(default=None, ge=0)


# =========================================================
# 목록 메타
# =========================================================

class MetaInfo(BaseModel):
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    size: int = Field(..., ge=1)
    pages: int = Field(..., ge=1)


def make_meta(total: int, page: int, size: int) -> MetaInfo:
    # 결과가 0건이어도 pages 는 1
    pages = max(1, ceil(total / max(1, size)))
    return MetaInfo(total=total, page=page, size=size, pages=pages)
