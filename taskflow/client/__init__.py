"""TaskFlow API client and board view synchronization"""

from .api import TaskFlowClient
from .sync import (
    ACTIVATION_DISTANCE, BoardState, BoardSync, DragKind, DragState, ReorderFailedError
)

__all__ = [
    "ACTIVATION_DISTANCE",
    "BoardState",
    "BoardSync",
    "DragKind",
    "DragState",
    "ReorderFailedError",
    "TaskFlowClient",
]
