import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from devops_query.config.config import load_config, load_environment
from devops_query.errors import ConfigurationError
from devops_query.storage.saved_query_store import SavedQueryStore
from devops_query.utils.azure_client import AzureDevOpsClient
from devops_query.utils.json_utils import save_json_data
from devops_query.work_items.models import SavedQuery
from devops_query.work_items.work_item_extractor import WorkItemExtractor
from devops_query.workbench import QueryWorkbench

AD_HOC_QUERY_NAME = "Ad hoc query"


def setup_logging(logs_dir: str = "logs", level: int = logging.INFO) -> str:
    # Create logs directory if it doesn't exist
    os.makedirs(logs_dir, exist_ok=True)

    # Generate timestamp for log filename
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(logs_dir, f"devops_query_{timestamp}.log")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Console handler on stderr so results on stdout stay clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # File handler with rotation (10 MB per file, 10 backup files)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=10
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    return log_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Query Azure DevOps work items and manage saved queries')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--logs-dir', default='logs', help='Directory for log files (default: logs)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    run_parser = subparsers.add_parser('run', help='Run a WIQL query and list the matching work items')
    source = run_parser.add_mutually_exclusive_group()
    source.add_argument('--query', help='WIQL text; @AREAPATH@ is replaced with the configured area path')
    source.add_argument('--saved', metavar='NAME', help='Name of a saved query to run')
    run_parser.add_argument('--output', metavar='FILE', help='Also write the work items to this JSON file')
    run_parser.add_argument('--details', action='store_true', help='Print the description of each work item')

    subparsers.add_parser('list', help='List saved queries')

    save_parser = subparsers.add_parser('save', help='Save a named query')
    save_parser.add_argument('name', help='Name of the query')
    save_parser.add_argument('query', help='WIQL text, may contain @AREAPATH@')

    delete_parser = subparsers.add_parser('delete', help='Delete a saved query')
    delete_parser.add_argument('name', help='Name of the query to delete')

    return parser


def build_workbench(config) -> QueryWorkbench:
    client = AzureDevOpsClient(config)
    store = SavedQueryStore(config.db_path)
    workbench = QueryWorkbench(WorkItemExtractor(client), store)
    workbench.load_queries()
    return workbench


async def run_command(args, workbench: QueryWorkbench) -> int:
    logger = logging.getLogger(__name__)

    if args.command == 'list':
        for query in workbench.saved_queries:
            print(f"{query.name}\t{query.query_text}")
        return 0

    if args.command == 'save':
        workbench.current_query = SavedQuery(name=args.name, query_text=args.query)
        return 0 if workbench.save_query() else 1

    if args.command == 'delete':
        query = workbench.find_saved_query(args.name)
        if query is None:
            logger.error(f"No saved query named '{args.name}'")
            return 1
        return 0 if workbench.delete_query(query) else 1

    # run
    if args.saved:
        query = workbench.find_saved_query(args.saved)
        if query is None:
            logger.error(f"No saved query named '{args.saved}'")
            return 1
        workbench.select_saved_query(query)
    elif args.query:
        workbench.current_query = SavedQuery(name=AD_HOC_QUERY_NAME, query_text=args.query)

    logger.info(f"Running query '{workbench.current_query.name}'")
    work_items = await workbench.execute_query()

    for item in work_items:
        print(item.list_item)
        if args.details and item.details.description:
            for line in item.details.description.splitlines():
                print(f"    {line}")

    if args.output:
        output_dir, filename = os.path.split(os.path.abspath(args.output))
        file_path = save_json_data(work_items, filename, base_path=output_dir)
        logger.info(f"Work items saved to: {file_path}")

    return 0


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log_file = setup_logging(args.logs_dir, logging.DEBUG if args.debug else logging.INFO)

    logger = logging.getLogger(__name__)
    logger.info(f"Logs will be saved to: {log_file}")

    try:
        load_environment()
        config = load_config()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {str(e)}")
        return 2

    try:
        workbench = build_workbench(config)
        return await run_command(args, workbench)
    except Exception as e:
        logger.error(f"Error during {args.command}: {str(e)}", exc_info=True)
        return 1


def cli():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
