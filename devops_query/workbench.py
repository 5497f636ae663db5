"""
Query workbench: the state behind the Azure DevOps query window.

Holds the query being edited, the list of saved queries and the results of
the last run. Operations log problems and return instead of raising, so a
front end can call them straight from user actions.
"""

import logging
from typing import List, Optional

from devops_query.storage.saved_query_store import SavedQueryStore
from devops_query.work_items.models import SavedQuery, WorkItemViewModel
from devops_query.work_items.work_item_extractor import WorkItemExtractor

DEFAULT_QUERY_NAME = "Committed WorkItems"
DEFAULT_QUERY_TEXT = (
    "SELECT [System.Id], [System.Title] FROM WorkItems "
    "WHERE [System.State] = 'Committed' AND [System.AreaPath] = '@AREAPATH@' "
    "ORDER BY [System.Id]"
)


class QueryWorkbench:
    def __init__(self, extractor: WorkItemExtractor, store: SavedQueryStore):
        self.extractor = extractor
        self.store = store
        self.logger = logging.getLogger(__name__)

        self.current_query: Optional[SavedQuery] = SavedQuery(name=DEFAULT_QUERY_NAME, query_text=DEFAULT_QUERY_TEXT)
        self.selected_saved_query: Optional[SavedQuery] = None
        self.saved_queries: List[SavedQuery] = []
        self.work_items: List[WorkItemViewModel] = []
        self.selected_item: Optional[WorkItemViewModel] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def select_saved_query(self, query: Optional[SavedQuery]) -> None:
        """Select a saved query and copy it into a fresh current query."""
        self.selected_saved_query = query
        if query is not None:
            self.current_query = SavedQuery(name=query.name, query_text=query.query_text)

    def find_saved_query(self, name: str) -> Optional[SavedQuery]:
        for query in self.saved_queries:
            if query.name == name:
                return query
        return None

    async def execute_query(self) -> List[WorkItemViewModel]:
        """Run the current query; returns the refreshed result list."""
        if self._running:
            self.logger.warning("A query is already running, ignoring the new request.")
            return self.work_items

        self._running = True
        try:
            self.work_items = []
            self.selected_item = None

            if self.current_query is None:
                self.logger.warning("Current query is null or empty.")
                return self.work_items

            self.work_items = await self.extractor.extract(self.current_query.query_text)
            if self.work_items:
                self.selected_item = self.work_items[0]
            return self.work_items
        finally:
            self._running = False

    def load_queries(self) -> List[SavedQuery]:
        self.saved_queries = []
        try:
            self.saved_queries = self.store.get_saved_queries()
            self.logger.info(f"Loaded {len(self.saved_queries)} saved queries")
        except Exception as e:
            self.logger.error(f"Error loading saved queries: {str(e)}")
        return self.saved_queries

    def save_query(self) -> bool:
        """Persist the current query under its name; names must be unique."""
        query = self.current_query
        if query is None:
            self.logger.warning("No current query to save.")
            return False

        if not (query.name or "").strip() or not (query.query_text or "").strip():
            self.logger.warning("Query name or text cannot be empty.")
            return False

        if self.find_saved_query(query.name) is not None:
            self.logger.warning(f"A query named '{query.name}' already exists. Please use a different name.")
            return False

        try:
            self.store.add_saved_query(query)
        except Exception as e:
            self.logger.error(f"Error saving query: {str(e)}")
            return False

        self.saved_queries.append(SavedQuery(id=query.id, name=query.name, query_text=query.query_text))
        self.logger.info(f"Query '{query.name}' saved successfully.")
        return True

    def delete_query(self, query: Optional[SavedQuery] = None) -> bool:
        """Delete the given saved query, or the selected one."""
        query = query or self.selected_saved_query
        if query is None:
            self.logger.warning("No query selected to delete.")
            return False

        try:
            self.store.delete_saved_query(query.id)
        except Exception as e:
            self.logger.error(f"Error deleting query: {str(e)}")
            return False

        self.saved_queries = [q for q in self.saved_queries if q.id != query.id]
        if self.selected_saved_query is not None and self.selected_saved_query.id == query.id:
            self.selected_saved_query = None
        self.logger.info(f"Query '{query.name}' deleted successfully.")
        return True
