"""해석 로그 리포지토리 - DB 접근 로직"""
from typing import Any, Dict, List, Optional, cast

from sqlalchemy.orm import Session
from sqlalchemy import func, desc

from kl_taxonomy.repositories.models import ResolutionLog
from kl_taxonomy.core.logging import logger
from kl_taxonomy.core.exceptions import DatabaseException


class ResolutionLogRepository:
    """해석 로그 데이터 액세스 레이어"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        kind: str,
        target: str,
        status: str,
        source: Optional[str] = None,
        item_count: int = 0,
        elapsed_ms: Optional[float] = None,
        attempts: Optional[str] = None,
    ) -> ResolutionLog:
        """해석 로그 생성

        Raises:
            DatabaseException: 저장 실패
        """
        try:
            log = ResolutionLog(
                kind=kind,
                target=target[:512],
                status=status,
                source=source,
                item_count=item_count,
                elapsed_ms=elapsed_ms,
                attempts=attempts,
            )
            self.db.add(log)
            self.db.commit()
            self.db.refresh(log)
            logger.debug(f"Resolution log created: {log.id}")
            return log
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create resolution log: {e}")
            raise DatabaseException(f"Failed to create resolution log: {e}")

    def get_by_id(self, log_id: int) -> Optional[ResolutionLog]:
        """ID로 로그 조회"""
        return self.db.query(ResolutionLog).filter(ResolutionLog.id == log_id).first()

    def get_total_count(self) -> int:
        """전체 해석 횟수"""
        return self.db.query(func.count(ResolutionLog.id)).scalar() or 0

    def get_status_counts(self, kind: Optional[str] = None) -> Dict[str, int]:
        """상태별 횟수 ({status: count})"""
        query = self.db.query(ResolutionLog.status, func.count(ResolutionLog.id).label("count"))
        if kind:
            query = query.filter(ResolutionLog.kind == kind)
        rows: List[Any] = query.group_by(ResolutionLog.status).all()
        return {
            cast(str, getattr(row, "status", "")): int(cast(Any, getattr(row, "count", 0)))
            for row in rows
        }

    def get_recent_logs(self, limit: int = 20, kind: Optional[str] = None) -> List[ResolutionLog]:
        """최근 로그 조회"""
        query = self.db.query(ResolutionLog)
        if kind:
            query = query.filter(ResolutionLog.kind == kind)
        return query.order_by(desc(ResolutionLog.created_at), desc(ResolutionLog.id)).limit(limit).all()
