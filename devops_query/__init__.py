"""
Azure DevOps work item queries with locally saved WIQL queries.
"""

__version__ = "1.0.0"
