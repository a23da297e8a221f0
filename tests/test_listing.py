import unittest
from datetime import datetime, timedelta, timezone

from s3_table.listing import PAGE_SIZE, clamp_page, filter_objects, page_count, paginate, sort_objects
from s3_table.models import ObjectMeta

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_object(key, size=0, minutes=0):
    return ObjectMeta(key=key, size=size, last_modified=BASE_TIME + timedelta(minutes=minutes))


def keys(objects):
    return [obj.key for obj in objects]


class FilterObjectsTests(unittest.TestCase):
    def setUp(self):
        self.inventory = (
            make_object("2024/log1.json"),
            make_object("readme.md"),
            make_object("log2.csv"),
        )

    def test_matches_substring_in_key(self):
        self.assertEqual(["2024/log1.json", "log2.csv"], keys(filter_objects(self.inventory, "log")))

    def test_match_ignores_case(self):
        self.assertEqual(["readme.md"], keys(filter_objects(self.inventory, "README")))
        self.assertEqual(["2024/log1.json", "log2.csv"], keys(filter_objects(self.inventory, "LoG")))

    def test_empty_term_keeps_everything(self):
        self.assertEqual(self.inventory, filter_objects(self.inventory, ""))

    def test_size_and_timestamp_are_not_searched(self):
        inventory = (make_object("a.txt", size=1234),)

        self.assertEqual((), filter_objects(inventory, "1234"))
        self.assertEqual((), filter_objects(inventory, "2024"))

    def test_result_is_subset_and_repeatable(self):
        first = filter_objects(self.inventory, ".")
        second = filter_objects(self.inventory, ".")

        self.assertEqual(first, second)
        for obj in first:
            self.assertIn(obj, self.inventory)


class SortObjectsTests(unittest.TestCase):
    def setUp(self):
        self.inventory = (
            make_object("b.txt", size=10, minutes=2),
            make_object("a.txt", size=5, minutes=3),
            make_object("c.txt", size=20, minutes=1),
        )

    def test_sort_by_key_ascending(self):
        self.assertEqual(["a.txt", "b.txt", "c.txt"], keys(sort_objects(self.inventory, "key", "asc")))

    def test_sort_by_size_descending(self):
        self.assertEqual(["c.txt", "b.txt", "a.txt"], keys(sort_objects(self.inventory, "size", "desc")))

    def test_sort_by_last_modified(self):
        self.assertEqual(["c.txt", "b.txt", "a.txt"], keys(sort_objects(self.inventory, "last_modified", "asc")))
        self.assertEqual(["a.txt", "b.txt", "c.txt"], keys(sort_objects(self.inventory, "last_modified", "desc")))

    def test_sort_is_idempotent(self):
        once = sort_objects(self.inventory, "size", "asc")

        self.assertEqual(once, sort_objects(once, "size", "asc"))

    def test_reversing_direction_reverses_distinct_values(self):
        ascending = sort_objects(self.inventory, "key", "asc")
        descending = sort_objects(self.inventory, "key", "desc")

        self.assertEqual(list(reversed(ascending)), list(descending))

    def test_equal_values_keep_input_order_in_both_directions(self):
        inventory = (
            make_object("z.txt", size=5),
            make_object("big.bin", size=50),
            make_object("m.txt", size=5),
            make_object("a.txt", size=5),
        )

        self.assertEqual(["z.txt", "m.txt", "a.txt", "big.bin"], keys(sort_objects(inventory, "size", "asc")))
        self.assertEqual(["big.bin", "z.txt", "m.txt", "a.txt"], keys(sort_objects(inventory, "size", "desc")))

    def test_does_not_mutate_input(self):
        original = list(self.inventory)

        sort_objects(self.inventory, "key", "asc")

        self.assertEqual(original, list(self.inventory))

    def test_rejects_unknown_key_or_direction(self):
        with self.assertRaises(ValueError):
            sort_objects(self.inventory, "etag", "asc")
        with self.assertRaises(ValueError):
            sort_objects(self.inventory, "key", "sideways")


class PaginationTests(unittest.TestCase):
    def setUp(self):
        self.inventory = tuple(make_object(f"obj-{index:04d}") for index in range(301))

    def test_page_count(self):
        self.assertEqual(1, page_count(0))
        self.assertEqual(1, page_count(1))
        self.assertEqual(1, page_count(300))
        self.assertEqual(2, page_count(301))
        self.assertEqual(3, page_count(601))

    def test_301_objects_span_two_pages(self):
        first = paginate(self.inventory, 1)
        second = paginate(self.inventory, 2)

        self.assertEqual(300, PAGE_SIZE)
        self.assertEqual(self.inventory[:300], first)
        self.assertEqual((self.inventory[300],), second)
        self.assertEqual(2, page_count(len(self.inventory)))

    def test_pages_concatenate_to_full_sequence(self):
        pages = [paginate(self.inventory, number, 7) for number in range(1, page_count(301, 7) + 1)]

        rebuilt = tuple(obj for page in pages for obj in page)

        self.assertEqual(self.inventory, rebuilt)

    def test_empty_input_gives_empty_page(self):
        self.assertEqual((), paginate((), 1))

    def test_out_of_range_page_is_not_clamped(self):
        self.assertEqual((), paginate(self.inventory, 5))

    def test_rejects_invalid_arguments(self):
        with self.assertRaises(ValueError):
            paginate(self.inventory, 0)
        with self.assertRaises(ValueError):
            paginate(self.inventory, 1, 0)

    def test_clamp_page(self):
        self.assertEqual(1, clamp_page(0, 301))
        self.assertEqual(2, clamp_page(9, 301))
        self.assertEqual(1, clamp_page(3, 0))
        self.assertEqual(2, clamp_page(2, 301))


if __name__ == "__main__":
    unittest.main()
