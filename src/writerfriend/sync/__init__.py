"""Filesystem-to-catalog reconciliation."""

from .items import ItemReconciler
from .models import ItemSyncPlan, ItemSyncReport, ProjectSyncReport, SkippedEntry
from .ordering import compute_order_repairs, repair_order
from .projects import ProjectReconciler

__all__ = [
    "ItemReconciler",
    "ProjectReconciler",
    "ItemSyncPlan",
    "ItemSyncReport",
    "ProjectSyncReport",
    "SkippedEntry",
    "compute_order_repairs",
    "repair_order",
]
