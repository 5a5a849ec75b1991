# =================================================================
#   NPC Smart Report - Request Tokens
#   Latest-wins bookkeeping for debounced live searches.
#
#   Each rendered page gets its own page id, and the browser tags every
#   search from that page with an increasing `seq`. A search that is
#   older than the newest one seen for the same (session, view, page),
#   or that gets overtaken while its backend call is in flight, is
#   reported as superseded so it cannot overwrite a newer result.
#   A reload or a second tab carries a new page id and starts afresh.
# =================================================================

import re
import secrets
import threading

PAGE_ID_PATTERN = re.compile(r'^[0-9a-f]{1,32}$')


def new_page_id():
    """Random id rendered into a page so its searches are counted on their own."""
    return secrets.token_hex(8)


def is_valid_page_id(value):
    return value == '' or bool(PAGE_ID_PATTERN.match(value))


class SearchTicket:
    __slots__ = ('key', 'seq')

    def __init__(self, key, seq):
        self.key = key
        self.seq = seq


class LatestRequestRegistry:
    """Thread-safe map of (session, view, page) -> newest sequence number."""

    def __init__(self, max_keys=10000):
        self._latest = {}
        self._lock = threading.Lock()
        self._max_keys = max_keys

    def issue(self, session_key, view, seq, page_id=''):
        """
        Register a request. Returns a SearchTicket, or None when a newer
        request from the same page has already been registered.
        """
        key = (session_key, view, page_id)
        with self._lock:
            current = self._latest.get(key)
            if current is not None and seq < current:
                return None
            if current is None and len(self._latest) >= self._max_keys:
                # Drop the oldest registration (dicts keep insertion order).
                self._latest.pop(next(iter(self._latest)))
            self._latest[key] = seq
        return SearchTicket(key, seq)

    def is_current(self, ticket):
        """True when no newer request has been registered since `ticket`."""
        with self._lock:
            return self._latest.get(ticket.key) == ticket.seq

    def forget(self, session_key):
        """Drop every registration belonging to a session (on logout)."""
        with self._lock:
            for key in [k for k in self._latest if k[0] == session_key]:
                del self._latest[key]
