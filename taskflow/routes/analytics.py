"""
Board Analytics API

Workload per member, board-wide metrics and the historical report series.
"""

from fastapi import APIRouter, Depends, HTTPException, Query as QueryParam

from ..models.analytics import BoardAnalytics, BoardMetrics, BoardReport, WorkloadSnapshot
from ..services.database import Database
from ..services.workload import REPORT_HISTORY_DAYS, BoardNotFoundError, WorkloadEngine
from .deps import CurrentUser, get_accessible_board, get_current_user, get_db, get_engine

router = APIRouter()


@router.get("/boards/{board_id}/analytics", response_model=BoardAnalytics)
async def get_board_analytics(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    engine: WorkloadEngine = Depends(get_engine)
):
    """Board metrics, workload of the owner and every member, last 30 days of reports."""
    get_accessible_board(db, board_id, user)
    try:
        return engine.board_analytics(board_id)
    except BoardNotFoundError:
        raise HTTPException(status_code=404, detail="Board not found")


@router.get("/boards/{board_id}/metrics", response_model=BoardMetrics)
async def get_board_metrics(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    engine: WorkloadEngine = Depends(get_engine)
):
    get_accessible_board(db, board_id, user)
    try:
        return engine.calculate_board_metrics(board_id)
    except BoardNotFoundError:
        raise HTTPException(status_code=404, detail="Board not found")


@router.get("/boards/{board_id}/workload/{user_id}", response_model=WorkloadSnapshot)
async def get_user_workload(
    board_id: str,
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    engine: WorkloadEngine = Depends(get_engine)
):
    """Workload of one user on a board"""
    get_accessible_board(db, board_id, user)
    return engine.calculate_user_workload(user_id, board_id)


@router.post("/boards/{board_id}/reports", response_model=BoardReport)
async def create_board_report(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    engine: WorkloadEngine = Depends(get_engine)
):
    """Snapshot the current metrics as a new report"""
    get_accessible_board(db, board_id, user)
    try:
        return engine.generate_board_report(board_id)
    except BoardNotFoundError:
        raise HTTPException(status_code=404, detail="Board not found")


@router.get("/boards/{board_id}/reports", response_model=list[BoardReport])
async def list_board_reports(
    board_id: str,
    days: int = QueryParam(default=REPORT_HISTORY_DAYS, ge=1, le=365),
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    engine: WorkloadEngine = Depends(get_engine)
):
    get_accessible_board(db, board_id, user)
    return engine.list_reports(board_id, days=days)
