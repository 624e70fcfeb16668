"""Workload and board metrics computation.

The ``compute_*`` functions are pure: they take a board graph snapshot and
the instant to evaluate at. ``WorkloadEngine`` loads snapshots from the
database and persists board reports.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

from ..models.analytics import BoardMetrics, PriorityDistribution, WorkloadSnapshot
from ..models.board import Priority, is_in_progress_list
from .database import Database, Q, parse_datetime, utcnow

logger = logging.getLogger(__name__)

UPCOMING_WINDOW = timedelta(days=7)
VELOCITY_WINDOW = timedelta(days=7)
REPORT_HISTORY_DAYS = 30
UNKNOWN_USER_NAME = "Unknown"

# Each term is capped on its own; the caps sum to 100.
CARD_LOAD_CAP, CARDS_AT_CAP = 30, 10
OVERDUE_LOAD_CAP, OVERDUE_AT_CAP = 40, 5
HOURS_LOAD_CAP, HOURS_AT_CAP = 30, 40


class BoardNotFoundError(Exception):
    def __init__(self, board_id: str):
        self.board_id = board_id
        super().__init__(f"Board not found: {board_id}")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def workload_score(total_cards: int, overdue_cards: int, estimated_hours: float) -> int:
    card_load = min(total_cards / CARDS_AT_CAP * CARD_LOAD_CAP, CARD_LOAD_CAP)
    overdue_load = min(overdue_cards / OVERDUE_AT_CAP * OVERDUE_LOAD_CAP, OVERDUE_LOAD_CAP)
    hours_load = min(estimated_hours / HOURS_AT_CAP * HOURS_LOAD_CAP, HOURS_LOAD_CAP)
    return round_half_up(card_load + overdue_load + hours_load)


def start_of_day(now: datetime) -> datetime:
    """Midnight of ``now``'s day in the server's local timezone"""
    return now.astimezone().replace(hour=0, minute=0, second=0, microsecond=0)


def is_completed(card: dict) -> bool:
    return bool(card.get("completed_at"))


def is_overdue(card: dict, now: datetime) -> bool:
    due = parse_datetime(card.get("due_date"))
    return not is_completed(card) and due is not None and due < now


def is_upcoming(card: dict, now: datetime) -> bool:
    due = parse_datetime(card.get("due_date"))
    return not is_completed(card) and due is not None and now < due <= now + UPCOMING_WINDOW


def compute_user_workload(
    user_id: str,
    user_name: str,
    cards: Iterable[dict],
    lists_by_id: dict,
    now: datetime
) -> WorkloadSnapshot:
    """Workload of one user from the cards assigned to them on a board"""
    cards = list(cards)
    open_cards = [c for c in cards if not is_completed(c)]

    total_cards = len(cards)
    overdue_cards = sum(1 for c in cards if is_overdue(c, now))
    estimated_hours = sum(c.get("estimated_hours") or 0 for c in open_cards)

    return WorkloadSnapshot(
        user_id=user_id,
        user_name=user_name,
        total_cards=total_cards,
        completed_cards=total_cards - len(open_cards),
        in_progress_cards=sum(
            1 for c in open_cards if is_in_progress_list(lists_by_id.get(c["list_id"], {}))
        ),
        overdue_cards=overdue_cards,
        upcoming_cards=sum(1 for c in cards if is_upcoming(c, now)),
        estimated_hours=estimated_hours,
        workload_score=workload_score(total_cards, overdue_cards, estimated_hours),
    )


def compute_board_metrics(board: dict, now: datetime) -> BoardMetrics:
    """Aggregate metrics of a loaded board graph"""
    lists = board.get("lists", [])
    lists_by_id = {l["id"]: l for l in lists}
    all_cards = [card for lst in lists for card in lst.get("cards", [])]

    today = start_of_day(now)
    velocity_start = now - VELOCITY_WINDOW

    total_cards = len(all_cards)
    completed = [c for c in all_cards if is_completed(c)]
    open_cards = [c for c in all_cards if not is_completed(c)]

    completed_at = [parse_datetime(c["completed_at"]) for c in completed]
    created_at = [parse_datetime(c.get("created_at")) for c in all_cards]

    ages = [
        (now - parse_datetime(c["created_at"])).total_seconds() / 86400
        for c in open_cards
        if c.get("created_at")
    ]

    assignee_ids = {a["user_id"] for c in all_cards for a in c.get("assignees", [])}

    distribution = {p.value: 0 for p in Priority}
    for card in all_cards:
        if card.get("priority") in distribution:
            distribution[card["priority"]] += 1

    return BoardMetrics(
        total_lists=len(lists),
        total_cards=total_cards,
        completed_cards=len(completed),
        in_progress_cards=sum(
            1 for c in open_cards if is_in_progress_list(lists_by_id.get(c["list_id"], {}))
        ),
        overdue_cards=sum(1 for c in all_cards if is_overdue(c, now)),
        cards_created_today=sum(1 for dt in created_at if dt and dt >= today),
        cards_completed_today=sum(1 for dt in completed_at if dt and dt >= today),
        active_members=len(assignee_ids),
        average_card_age=sum(ages) / len(ages) if ages else 0,
        velocity_score=sum(1 for dt in completed_at if dt and dt >= velocity_start),
        priority_distribution=PriorityDistribution(**distribution),
        completion_rate=(len(completed) / total_cards) * 100 if total_cards > 0 else 0,
    )


class WorkloadEngine:
    """Loads board data and runs the workload computations"""

    def __init__(self, db: Database):
        self.db = db

    def _member_name(self, board_id: str, user_id: str) -> Optional[str]:
        member = self.db.board_members.get((Q.board_id == board_id) & (Q.user_id == user_id))
        return member.get("user_name") if member else None

    def calculate_user_workload(self, user_id: str, board_id: str, now: datetime = None) -> WorkloadSnapshot:
        """Workload of a user on a board; an unknown user yields all zeros"""
        now = now or utcnow()
        lists_by_id = {l["id"]: l for l in self.db.get_board_lists(board_id)}

        assignments = sorted(
            self.db.assignees.search(Q.user_id == user_id),
            key=lambda x: x.get("assigned_at", "")
        )
        card_ids = [a["card_id"] for a in assignments]
        cards = [
            c for c in self.db.cards.search(Q.id.one_of(card_ids))
            if c["list_id"] in lists_by_id
        ]
        board_card_ids = {c["id"] for c in cards}
        board_assignments = [a for a in assignments if a["card_id"] in board_card_ids]

        user_name = None
        if board_assignments:
            user_name = board_assignments[0].get("user_name")
        user_name = user_name or self._member_name(board_id, user_id) or UNKNOWN_USER_NAME

        return compute_user_workload(user_id, user_name, cards, lists_by_id, now)

    def calculate_board_metrics(self, board_id: str, now: datetime = None) -> BoardMetrics:
        board = self.db.load_board_graph(board_id)
        if not board:
            raise BoardNotFoundError(board_id)
        return compute_board_metrics(board, now or utcnow())

    def generate_board_report(self, board_id: str, now: datetime = None) -> dict:
        """Compute metrics and append a new report row"""
        now = now or utcnow()
        metrics = self.calculate_board_metrics(board_id, now)

        report = {
            "id": self.db.generate_id(),
            "board_id": board_id,
            "report_date": now.isoformat(),
            **metrics.model_dump(exclude={"priority_distribution", "completion_rate"}),
            "metrics": {
                "priority_distribution": metrics.priority_distribution.model_dump(),
                "completion_rate": metrics.completion_rate,
            },
        }
        self.db.board_reports.insert(report)
        logger.info(f"Generated report {report['id']} for board {board_id}")
        return report

    def list_reports(self, board_id: str, days: int = REPORT_HISTORY_DAYS, now: datetime = None) -> list:
        """Reports of the trailing window, oldest first"""
        since = (now or utcnow()) - timedelta(days=days)
        reports = [
            dict(r) for r in self.db.board_reports.search(Q.board_id == board_id)
            if parse_datetime(r["report_date"]) >= since
        ]
        return sorted(reports, key=lambda x: parse_datetime(x["report_date"]))

    def board_user_ids(self, board_id: str) -> list:
        """Owner first, then members, without duplicates"""
        board = self.db.boards.get(Q.id == board_id)
        if not board:
            raise BoardNotFoundError(board_id)
        members = sorted(
            self.db.board_members.search(Q.board_id == board_id),
            key=lambda x: x.get("added_at", "")
        )
        user_ids = [board["owner_id"]] + [m["user_id"] for m in members]
        return list(dict.fromkeys(user_ids))

    def board_analytics(self, board_id: str, now: datetime = None) -> dict:
        now = now or utcnow()
        metrics = self.calculate_board_metrics(board_id, now)
        workloads = [
            self.calculate_user_workload(user_id, board_id, now)
            for user_id in self.board_user_ids(board_id)
        ]
        return {
            "board_metrics": metrics,
            "workloads": workloads,
            "historical_reports": self.list_reports(board_id, now=now),
        }
