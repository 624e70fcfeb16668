"""TaskFlow - Kanban boards with workload analytics and live reordering"""

__version__ = "1.0.0"
