"""데이터베이스 모델"""
from sqlalchemy import Column, Integer, String, TIMESTAMP, func, Index, Text, Float
from kl_taxonomy.core.database import Base


class ResolutionLog(Base):
    """해석 로그 테이블 (children / fields / taxonomy 호출 기록)"""

    __tablename__ = "resolution_logs"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(String, nullable=False, index=True)  # children, fields, taxonomy
    target = Column(String, nullable=False, index=True)  # 캐시 키 (id:<id> / url:<path>)
    status = Column(String, nullable=False, index=True)  # success, empty, no_session, deadline_exceeded
    source = Column(String, nullable=True)  # cache, snapshot, static, listing_fetch, browser:<stage>
    item_count = Column(Integer, nullable=False, default=0)
    elapsed_ms = Column(Float, nullable=True)
    attempts = Column(Text, nullable=True)  # "snapshot:empty,listing_fetch:hit"
    created_at = Column(TIMESTAMP, server_default=func.now(), index=True)

    __table_args__ = (
        Index("idx_resolution_kind_created", "kind", "created_at"),
        Index("idx_resolution_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ResolutionLog(id={self.id}, kind={self.kind}, target={self.target}, status={self.status})>"
