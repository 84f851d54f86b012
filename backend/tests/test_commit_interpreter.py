import unittest
from datetime import datetime, timezone

from contextflow.commits.interpreter import (
    TAG_STATUS_MAP,
    CommitAuthorInfo,
    interpret_commit,
    summarize_commit,
    tag_status_to_service_status,
)
from contextflow.commits.tag_parser import STATUS_VALUES
from contextflow.entities.enums import Priority, ServiceStatus


class TestInterpretCommit(unittest.TestCase):
    def test_scenario_a_message(self):
        parsed = interpret_commit(
            "a1b2c3d4e5",
            "fix: done [STATUS:DONE] [NEXT:Add refresh tokens] [PROGRESS:100]",
            CommitAuthorInfo(name="Dana", email="dana@example.com"),
        )

        self.assertTrue(parsed.has_tags)
        self.assertEqual(parsed.status, ServiceStatus.DONE)
        self.assertEqual(parsed.next_steps, ["Add refresh tokens"])
        self.assertEqual(parsed.progress, 100)
        self.assertIsNone(parsed.priority)
        self.assertEqual(parsed.author.name, "Dana")

    def test_every_status_literal_maps(self):
        for literal in STATUS_VALUES:
            self.assertIn(literal, TAG_STATUS_MAP)
            self.assertIsNotNone(tag_status_to_service_status(literal.lower()))

    def test_first_status_wins_and_duplicate_is_warned(self):
        parsed = interpret_commit("sha1", "[STATUS:TESTING] [STATUS:DONE]")

        self.assertEqual(parsed.status, ServiceStatus.TESTING)
        self.assertTrue(any("STATUS" in w for w in parsed.warnings))

    def test_unknown_status_yields_no_status(self):
        parsed = interpret_commit("sha1", "[STATUS:SHIPPED] [NEXT:Deploy]")

        self.assertIsNone(parsed.status)
        self.assertEqual(parsed.next_steps, ["Deploy"])
        self.assertTrue(parsed.warnings)

    def test_out_of_range_progress_is_not_adopted(self):
        parsed = interpret_commit("sha1", "[PROGRESS:150]")

        self.assertTrue(parsed.has_tags)
        self.assertIsNone(parsed.progress)

    def test_priority_case_insensitive(self):
        parsed = interpret_commit("sha1", "[PRIORITY:p2]")

        self.assertEqual(parsed.priority, Priority.P2)

    def test_invalid_priority_ignored(self):
        self.assertIsNone(interpret_commit("sha1", "[PRIORITY:urgent]").priority)

    def test_untagged_commit(self):
        parsed = interpret_commit("sha1", "refactor: tidy imports")

        self.assertFalse(parsed.has_tags)
        self.assertIsNone(parsed.status)
        self.assertIsNone(parsed.next_steps)
        self.assertEqual(parsed.warnings, [])

    def test_author_defaults(self):
        parsed = interpret_commit("sha1", "[STATUS:DONE]")

        self.assertEqual(parsed.author.name, "")
        self.assertIsNone(parsed.author.date)

    def test_author_date_kept(self):
        when = datetime(2024, 5, 1, tzinfo=timezone.utc)
        parsed = interpret_commit("sha1", "[STATUS:DONE]", CommitAuthorInfo(date=when))

        self.assertEqual(parsed.author.date, when)


class TestSummarizeCommit(unittest.TestCase):
    def test_summary_lists_changes(self):
        parsed = interpret_commit("sha1", "[STATUS:DONE] [PROGRESS:100] [NEXT:Ship it]")

        self.assertEqual(
            summarize_commit(parsed), "Status -> Done | Progress -> 100% | Next: Ship it"
        )

    def test_summary_without_changes(self):
        parsed = interpret_commit("sha1", "[PROGRESS:999]")

        self.assertEqual(summarize_commit(parsed), "No changes detected")


if __name__ == "__main__":
    unittest.main()
