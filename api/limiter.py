"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and
api/routes/v1/auth.py (to apply the login limit with @limiter.limit()).

Fixed-window counting, keyed by client address, in-memory storage. A single
shared instance ensures all routes share the same counter store. The
@limiter.limit() wrapper checks the limit before the handler body runs, so a
throttled login never reaches credential comparison.

The key is the TCP peer address; X-Forwarded-For is never read, so a client
cannot pick its own bucket. Known limitation: browser logins relayed by the
edge all arrive from the edge's address (the edge strips forwarding
headers), so they share one bucket and a single client can exhaust it for
every operator. SDKs and operators calling the API directly get per-address
buckets.

In tests: call limiter.reset() between cases to clear the counters.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://", strategy="fixed-window")
