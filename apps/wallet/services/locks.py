"""
Per-key serialization for balance mutations inside one process.

Database row locks (``select_for_update``) and the optimistic version check
protect against other processes. Inside a process, worker threads first take
these locks so that two requests for the same account never interleave their
read-check-write, even on backends without row locking.

A key's lock only lives while someone holds or waits for it; the registry
drops it when the last holder releases.
"""

import threading
from contextlib import contextmanager


_registry_lock = threading.Lock()
# key -> [RLock, number of holders and waiters]
_locks = {}


def _acquire(key):
    with _registry_lock:
        entry = _locks.get(key)
        if entry is None:
            entry = _locks[key] = [threading.RLock(), 0]
        entry[1] += 1
    try:
        entry[0].acquire()
    except BaseException:
        _forget(key, entry)
        raise
    return entry


def _forget(key, entry):
    with _registry_lock:
        entry[1] -= 1
        if entry[1] == 0:
            del _locks[key]


def _release(key, entry):
    entry[0].release()
    _forget(key, entry)


@contextmanager
def key_locks(*keys):
    """
    Hold the locks of every given key for the duration of the block.

    Locks are acquired in one global order (sorted keys) so that two
    callers locking the same set can never deadlock. Locks are re-entrant.
    """
    ordered = sorted(set(keys))
    acquired = []
    try:
        for key in ordered:
            acquired.append((key, _acquire(key)))
        yield
    finally:
        for key, entry in reversed(acquired):
            _release(key, entry)


def account_locks(*account_ids):
    """Lock accounts by id, e.g. both sides of a transfer. ``None`` is ignored."""
    return key_locks(*(f'account:{account_id}' for account_id in account_ids if account_id is not None))


def share_code_lock(code):
    """Lock a verification code while it is looked up and redeemed. Taken before account locks."""
    return key_locks(f'share-code:{code}')
