"""Position Clustering - 화면 x좌표 기반 열(column) 묶기

카테고리 선택 UI는 단계별로 열이 오른쪽에 추가됩니다.
클릭 가능한 요소를 x좌표로 묶어 가장 오른쪽 열을 현재 단계의 하위 항목으로 봅니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol


@dataclass(frozen=True)
class PositionedItem:
    id: str
    name: str
    x: float
    y: float = 0.0
    url: str = ""


@dataclass
class Cluster:
    anchor_x: float
    items: list[PositionedItem] = field(default_factory=list)


def cluster_by_position(items: Iterable[PositionedItem], threshold: float = 60.0) -> list[Cluster]:
    """x좌표 정렬 후 클러스터 앵커(첫 항목 x)와의 거리가 threshold를 넘으면 새 클러스터 시작"""
    ordered = sorted(items, key=lambda item: (item.x, item.y))
    clusters: list[Cluster] = []
    for item in ordered:
        if clusters and abs(clusters[-1].anchor_x - item.x) <= threshold:
            clusters[-1].items.append(item)
        else:
            clusters.append(Cluster(anchor_x=item.x, items=[item]))
    return clusters


class ClusteringStrategy(Protocol):
    """후보 요소 → 하위 항목 선택 전략"""

    def select(self, items: list[PositionedItem], exclude_id: Optional[str] = None) -> list[PositionedItem]:
        ...


class PositionClusteringStrategy:
    """가장 오른쪽 클러스터를 고르고 id 기준으로 중복 제거

    Usage:
        strategy = PositionClusteringStrategy(threshold=60)
        children = strategy.select(candidates, exclude_id="161")
    """

    def __init__(self, threshold: float = 60.0):
        self.threshold = threshold

    def select(self, items: list[PositionedItem], exclude_id: Optional[str] = None) -> list[PositionedItem]:
        candidates = [item for item in items if item.id and item.name and item.id != exclude_id]
        clusters = cluster_by_position(candidates, self.threshold)
        if not clusters:
            return []
        rightmost = clusters[-1]
        seen: set[str] = set()
        result: list[PositionedItem] = []
        for item in sorted(rightmost.items, key=lambda i: i.y):
            if item.id in seen:
                continue
            seen.add(item.id)
            result.append(item)
        return result
