"""
Tests for latest-wins search bookkeeping
"""
import threading

import pytest

from request_tokens import LatestRequestRegistry, is_valid_page_id, new_page_id


class TestLatestRequestRegistry:

    def test_newer_request_supersedes_older(self):
        registry = LatestRequestRegistry()
        first = registry.issue('tok', 'all-reports', 1)
        second = registry.issue('tok', 'all-reports', 2)
        assert not registry.is_current(first)
        assert registry.is_current(second)

    def test_late_arriving_older_request_is_refused(self):
        registry = LatestRequestRegistry()
        registry.issue('tok', 'all-reports', 5)
        assert registry.issue('tok', 'all-reports', 3) is None

    def test_same_seq_reissued(self):
        registry = LatestRequestRegistry()
        registry.issue('tok', 'v', 4)
        assert registry.issue('tok', 'v', 4) is not None

    def test_keys_are_independent(self):
        registry = LatestRequestRegistry()
        mine = registry.issue('tok-a', 'all-reports', 1)
        registry.issue('tok-b', 'all-reports', 9)
        registry.issue('tok-a', 'other-view', 9)
        assert registry.is_current(mine)

    def test_forget_drops_a_session(self):
        registry = LatestRequestRegistry()
        registry.issue('tok', 'v', 10)
        registry.forget('tok')
        assert registry.issue('tok', 'v', 1) is not None

    def test_oldest_key_is_evicted_when_full(self):
        registry = LatestRequestRegistry(max_keys=2)
        oldest = registry.issue('a', 'v', 1)
        registry.issue('b', 'v', 1)
        registry.issue('c', 'v', 1)
        assert not registry.is_current(oldest)

    def test_concurrent_issue_keeps_highest_seq(self):
        registry = LatestRequestRegistry()
        threads = [threading.Thread(target=registry.issue, args=('tok', 'v', n)) for n in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert registry.issue('tok', 'v', 48) is None
        assert registry.issue('tok', 'v', 49) is not None

    def test_pages_are_independent(self):
        registry = LatestRequestRegistry()
        registry.issue('tok', 'all-reports', 5, 'a1')
        reloaded = registry.issue('tok', 'all-reports', 1, 'b2')
        assert reloaded is not None
        assert registry.issue('tok', 'all-reports', 4, 'a1') is None
        assert registry.is_current(reloaded)

    def test_forget_drops_every_page_of_a_session(self):
        registry = LatestRequestRegistry()
        registry.issue('tok', 'v', 10, 'a1')
        registry.issue('tok', 'v', 10, 'b2')
        registry.forget('tok')
        assert registry.issue('tok', 'v', 1, 'a1') is not None
        assert registry.issue('tok', 'v', 1, 'b2') is not None


class TestPageIds:

    def test_new_page_ids_differ(self):
        first, second = new_page_id(), new_page_id()
        assert first != second
        assert is_valid_page_id(first)

    @pytest.mark.parametrize('value,valid', [
        ('', True),
        ('0a1b2c3d4e5f6789', True),
        ('ZZ!', False),
        ('x' * 40, False),
        ('a' * 33, False),
    ])
    def test_is_valid_page_id(self, value, valid):
        assert is_valid_page_id(value) is valid
