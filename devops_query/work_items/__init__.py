"""
Work Items module for the Azure DevOps query tool.

This module contains the models for saved queries and work items and the
extractor that turns query results into work item entries.
"""

from devops_query.work_items.models import DetailModel, SavedQuery, WorkItemViewModel

__all__ = [
    'DetailModel',
    'SavedQuery',
    'WorkItemViewModel',
]
