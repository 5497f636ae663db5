import unittest
import asyncio
import os
import sqlite3
import tempfile
from unittest.mock import AsyncMock, MagicMock

from devops_query.storage.saved_query_store import SavedQueryStore
from devops_query.work_items.models import SavedQuery, WorkItemViewModel
from devops_query.workbench import DEFAULT_QUERY_NAME, QueryWorkbench


class TestQueryWorkbench(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "queries.db")
        self.store = SavedQueryStore(self.db_path)
        self.extractor = MagicMock()
        self.extractor.extract = AsyncMock(return_value=[
            WorkItemViewModel(id="1", title="A"),
            WorkItemViewModel(id="2", title="B"),
        ])
        self.workbench = QueryWorkbench(self.extractor, self.store)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_starts_with_default_query(self):
        self.assertEqual(self.workbench.current_query.name, DEFAULT_QUERY_NAME)
        self.assertIn("@AREAPATH@", self.workbench.current_query.query_text)

    def test_save_query_persists_and_lists(self):
        self.workbench.current_query = SavedQuery(name="Bugs", query_text="SELECT 1")

        self.assertTrue(self.workbench.save_query())

        self.assertEqual([q.name for q in self.workbench.saved_queries], ["Bugs"])
        stored = self.store.get_saved_queries()
        self.assertEqual([(q.id, q.name) for q in stored], [(self.workbench.current_query.id, "Bugs")])

    def test_save_query_rejects_blank_name_or_text(self):
        for query in (SavedQuery(name=" ", query_text="SELECT 1"), SavedQuery(name="Named", query_text="")):
            with self.subTest(query=query):
                self.workbench.current_query = query
                self.assertFalse(self.workbench.save_query())
        self.assertEqual(self.store.get_saved_queries(), [])

    def test_save_query_rejects_duplicate_name(self):
        self.workbench.current_query = SavedQuery(name="Bugs", query_text="SELECT 1")
        self.workbench.save_query()

        self.workbench.current_query = SavedQuery(name="Bugs", query_text="SELECT 2")
        self.assertFalse(self.workbench.save_query())

        self.assertEqual(len(self.store.get_saved_queries()), 1)

    def test_load_queries_reads_the_store(self):
        self.store.add_saved_query(SavedQuery(name="One", query_text="SELECT 1"))
        self.store.add_saved_query(SavedQuery(name="Two", query_text="SELECT 2"))

        loaded = self.workbench.load_queries()

        self.assertEqual(sorted(q.name for q in loaded), ["One", "Two"])

    def test_load_queries_survives_corrupt_rows(self):
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("INSERT INTO SavedQueries VALUES ('bad-id', 'Broken', 'SELECT 1')")
            conn.commit()
        finally:
            conn.close()

        self.assertEqual(self.workbench.load_queries(), [])

    def test_select_saved_query_copies_into_new_current_query(self):
        saved = SavedQuery(name="Bugs", query_text="SELECT 1")

        self.workbench.select_saved_query(saved)

        self.assertIs(self.workbench.selected_saved_query, saved)
        self.assertEqual(self.workbench.current_query.name, "Bugs")
        self.assertEqual(self.workbench.current_query.query_text, "SELECT 1")
        self.assertNotEqual(self.workbench.current_query.id, saved.id)

    def test_delete_selected_query(self):
        saved = SavedQuery(name="Bugs", query_text="SELECT 1")
        self.store.add_saved_query(saved)
        self.workbench.load_queries()
        self.workbench.select_saved_query(self.workbench.saved_queries[0])

        self.assertTrue(self.workbench.delete_query())

        self.assertEqual(self.workbench.saved_queries, [])
        self.assertIsNone(self.workbench.selected_saved_query)
        self.assertEqual(self.store.get_saved_queries(), [])

    def test_delete_without_selection(self):
        self.assertFalse(self.workbench.delete_query())

    async def test_execute_query_fills_results_and_selects_first(self):
        items = await self.workbench.execute_query()

        self.assertEqual([i.id for i in items], ["1", "2"])
        self.assertIs(self.workbench.selected_item, items[0])
        self.extractor.extract.assert_awaited_once_with(self.workbench.current_query.query_text)

    async def test_execute_query_is_not_reentrant(self):
        started = asyncio.Event()
        release = asyncio.Event()
        first_results = [WorkItemViewModel(id="1", title="A")]

        async def slow_extract(query_text):
            started.set()
            await release.wait()
            return first_results

        self.extractor.extract.side_effect = slow_extract

        first = asyncio.ensure_future(self.workbench.execute_query())
        await started.wait()
        self.assertTrue(self.workbench.is_running)

        second = await self.workbench.execute_query()
        self.assertEqual(second, [])

        release.set()
        self.assertEqual(await first, first_results)
        self.assertEqual(self.extractor.extract.await_count, 1)
        self.assertEqual(self.workbench.work_items, first_results)
        self.assertFalse(self.workbench.is_running)

    async def test_execute_query_resets_running_flag(self):
        await self.workbench.execute_query()
        self.assertFalse(self.workbench.is_running)


if __name__ == '__main__':
    unittest.main()
