from msrest.authentication import BasicAuthentication
import requests
import logging
from typing import Any, Dict, List, Optional
import asyncio

from devops_query.config.config import DevOpsConfig
from devops_query.errors import DevOpsHttpError
from devops_query.utils.html_text import html_to_plain_text
from devops_query.work_items.models import DetailModel, WorkItemViewModel

API_VERSION = "6.0"
AREA_PATH_TOKEN = "@AREAPATH@"


async def retry_async(func, *args, retries=3, delay=2, backoff=2, **kwargs):
    """
    Retry an async function with exponential backoff

    Args:
        func: The async function to retry
        args: Positional arguments to pass to the function
        retries: Number of times to retry before giving up
        delay: Initial delay between retries in seconds
        backoff: Backoff multiplier e.g. value of 2 will double the delay each retry
        kwargs: Keyword arguments to pass to the function

    Returns:
        The return value of the function

    Raises:
        The last exception raised by the function
    """
    logger = logging.getLogger(__name__)
    current_delay = delay

    for retry_count in range(retries + 1):  # one attempt plus 'retries' retries
        try:
            if retry_count > 0:
                logger.warning(f"Retry attempt {retry_count}/{retries} for {func.__name__} after {current_delay}s delay")
            return await func(*args, **kwargs)
        except DevOpsHttpError as e:
            # Client errors will not get better by asking again
            if e.status_code < 500 or retry_count >= retries:
                raise
            logger.warning(f"Exception during {func.__name__}: {str(e)}. Retrying in {current_delay}s...")
        except requests.RequestException as e:
            if retry_count >= retries:
                if retries:
                    logger.error(f"All {retries} retries failed for {func.__name__}: {str(e)}")
                raise
            logger.warning(f"Exception during {func.__name__}: {str(e)}. Retrying in {current_delay}s...")
        await asyncio.sleep(current_delay)
        current_delay *= backoff


class AzureDevOpsClient:
    """
    Thin client for the two Azure DevOps endpoints the query tool needs:
    the WIQL query endpoint and the single work item endpoint.
    """

    def __init__(self, config: DevOpsConfig, session: Optional[requests.Session] = None):
        self.config = config
        self._session = session
        self.logger = logging.getLogger(__name__)

    @property
    def session(self) -> requests.Session:
        if not self._session:
            self.logger.info("Creating Azure DevOps session with:")
            self.logger.info(f"  API endpoint: {self.config.api_endpoint}")
            self.logger.info(f"  Organization: {self.config.organization}")
            self.logger.info(f"  Project: {self.config.project}")
            self.logger.info(f"  PAT (masked): {self.config.masked_token}")

            # PAT goes in the password field, user name stays empty
            credentials = BasicAuthentication('', self.config.personal_access_token)
            self._session = credentials.signed_session()
        return self._session

    @property
    def project_url(self) -> str:
        return f"{self.config.api_endpoint}/{self.config.organization}/{self.config.project}"

    def wiql_url(self) -> str:
        return f"{self.project_url}/_apis/wit/wiql?api-version={API_VERSION}"

    def work_item_url(self, work_item_id: str) -> str:
        return f"{self.project_url}/_apis/wit/workitems/{work_item_id}?api-version={API_VERSION}"

    def replace_area_path(self, query_template: Optional[str]) -> Optional[str]:
        """Substitute every @AREAPATH@ token with the configured area path."""
        if query_template is None:
            return None
        return query_template.replace(AREA_PATH_TOKEN, self.config.area_path)

    def _validate_http_response(self, response: requests.Response, url: str):
        # Only 2xx is success
        if 200 <= response.status_code < 300:
            return
        error = DevOpsHttpError(response.status_code, url, response.reason or "")
        self.logger.error(str(error))
        raise error

    async def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        async def _request():
            self.logger.info(f"Sending {method} request to {url}")
            response = self.session.request(method, url, timeout=self.config.timeout, **kwargs)
            self.logger.info(f"API Response Status: {response.status_code}")
            self._validate_http_response(response, url)
            return response

        return await retry_async(_request, retries=self.config.max_retries, delay=2)

    async def execute_query(self, query: Optional[str]) -> Optional[List[Dict[str, Any]]]:
        """
        Run a WIQL query.

        Args:
            query: WIQL text with the area path already substituted

        Returns:
            The workItems array of the response (dicts carrying an "id"),
            or None when the response body cannot be parsed

        Raises:
            ValueError: if the query is blank
            DevOpsHttpError: if Azure DevOps answers with a non-success status
        """
        if query is None or not query.strip():
            raise ValueError("Query cannot be null or whitespace.")

        url = self.wiql_url()
        self.logger.info(f"API CALL: Executing WIQL query in project '{self.config.project}'")
        response = await self._send("POST", url, json={"query": query})

        try:
            data = response.json()
        except ValueError as e:
            self.logger.error(f"Error parsing JSON: {str(e)}")
            return None

        work_items = data.get("workItems") if isinstance(data, dict) else None
        if not isinstance(work_items, list):
            self.logger.error("Error parsing JSON: response has no workItems array")
            return None

        self.logger.info(f"API RESULT: Query returned {len(work_items)} work items")
        return work_items

    async def fetch_work_item_details(self, work_item_id: str) -> Optional[WorkItemViewModel]:
        """
        Get a single work item.

        Failures (non-success status such as 401, transport errors and
        malformed JSON) are logged and reported as None.
        """
        url = self.work_item_url(work_item_id)
        try:
            response = await self._send("GET", url)
        except DevOpsHttpError as e:
            self.logger.error(f"Error retrieving work item {work_item_id}: {str(e)}")
            return None
        except requests.RequestException as e:
            self.logger.error(f"Error retrieving work item {work_item_id}: {str(e)}")
            return None

        try:
            work_item = response.json()
        except ValueError as e:
            self.logger.error(f"Error parsing JSON: {str(e)}")
            return None

        if not isinstance(work_item, dict):
            self.logger.error(f"Error parsing JSON: work item {work_item_id} is not a JSON object")
            return None

        fields = work_item.get("fields")
        if not isinstance(fields, dict):
            fields = None

        title = fields.get("System.Title") if fields else None
        html_description = fields.get("System.Description") if fields else None
        description = html_to_plain_text(str(html_description)) if html_description is not None else None

        return WorkItemViewModel(
            id=work_item_id,
            title=str(title) if title is not None else None,
            fields=fields,
            details=DetailModel(description=description),
        )
