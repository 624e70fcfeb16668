"""Analytics models"""

from pydantic import BaseModel
from typing import List


class WorkloadSnapshot(BaseModel):
    user_id: str
    user_name: str
    total_cards: int = 0
    completed_cards: int = 0
    in_progress_cards: int = 0
    overdue_cards: int = 0
    upcoming_cards: int = 0
    estimated_hours: float = 0
    workload_score: int = 0


class PriorityDistribution(BaseModel):
    LOW: int = 0
    MEDIUM: int = 0
    HIGH: int = 0
    URGENT: int = 0


class BoardMetrics(BaseModel):
    total_lists: int
    total_cards: int
    completed_cards: int
    in_progress_cards: int
    overdue_cards: int
    cards_created_today: int
    cards_completed_today: int
    active_members: int
    average_card_age: float
    velocity_score: int
    priority_distribution: PriorityDistribution
    completion_rate: float


class ReportMetrics(BaseModel):
    priority_distribution: PriorityDistribution
    completion_rate: float


class BoardReport(BaseModel):
    id: str
    board_id: str
    report_date: str
    total_lists: int
    total_cards: int
    completed_cards: int
    in_progress_cards: int
    overdue_cards: int
    cards_created_today: int
    cards_completed_today: int
    active_members: int
    average_card_age: float
    velocity_score: int
    metrics: ReportMetrics


class BoardAnalytics(BaseModel):
    board_metrics: BoardMetrics
    workloads: List[WorkloadSnapshot]
    historical_reports: List[BoardReport]
