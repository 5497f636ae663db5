"""
Work Item Extractor module.

Runs a WIQL query and turns the returned ids into WorkItemViewModel entries,
fetching the details of each work item one after the other.
"""

import logging
from typing import List, Optional

from devops_query.utils.azure_client import AzureDevOpsClient
from devops_query.work_items.models import WorkItemViewModel

NO_WORK_ITEMS_TITLE = "No work items found"
QUERY_ERROR_TITLE = "Error executing query"
DETAILS_ERROR_TITLE = "Error fetching details"
ERROR_ID = "Error"


class WorkItemExtractor:
    """
    Extracts the work items matched by a query.

    Failures never escape: a failed query yields a single "Error" entry and
    a failed detail fetch yields an entry titled "Error fetching details"
    so the result list stays aligned with the query result.
    """

    def __init__(self, azure_client: AzureDevOpsClient):
        """
        Initialize the WorkItemExtractor.

        Args:
            azure_client: The Azure DevOps client
        """
        self.client = azure_client
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def extract_work_item_id(entry) -> Optional[str]:
        """Read the id of one workItems entry as a string, None if absent."""
        if not isinstance(entry, dict):
            return None
        value = entry.get("id")
        if value is None:
            return None
        work_item_id = str(value).strip()
        return work_item_id or None

    async def extract(self, query_text: Optional[str]) -> List[WorkItemViewModel]:
        """
        Run a query template and fetch the details of every matched work item.

        Args:
            query_text: WIQL text, may contain the @AREAPATH@ token

        Returns:
            Work items in query order, with placeholders for failures
        """
        results: List[WorkItemViewModel] = []

        if query_text is None or not query_text.strip():
            self.logger.warning("Current query is null or empty.")
            return results

        try:
            query = self.client.replace_area_path(query_text)
            if query is None or not query.strip():
                self.logger.warning("Query replacement failed or resulted in an empty string.")
                return results

            work_items = await self.client.execute_query(query)
            if work_items is None:
                self.logger.warning("No work items returned from the query execution.")
                results.append(WorkItemViewModel.placeholder(ERROR_ID, NO_WORK_ITEMS_TITLE))
                return results

            self.logger.info(f"Fetching details for {len(work_items)} work items")
            for entry in work_items:
                work_item_id = self.extract_work_item_id(entry)
                if work_item_id is None:
                    continue

                try:
                    details = await self.client.fetch_work_item_details(work_item_id)
                except Exception as e:
                    self.logger.error(f"Error fetching work item details for ID {work_item_id}: {str(e)}", exc_info=True)
                    details = None

                results.append(details or WorkItemViewModel.placeholder(work_item_id, DETAILS_ERROR_TITLE))

        except Exception as e:
            self.logger.error(f"Error executing query: {str(e)}", exc_info=True)
            results.append(WorkItemViewModel.placeholder(ERROR_ID, QUERY_ERROR_TITLE))
            return results

        self.logger.info(f"Retrieved a total of {len(results)} work items")
        return results
