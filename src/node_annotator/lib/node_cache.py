"""
node_cache.py
- List-then-watch informer for cluster Node objects.
- Maintains a thread-safe local cache (the lister workers read from) and
  delivers add/update callbacks to registered handlers.
- Re-lists on 410 Gone; every other error, 401/403 included, backs off and retries.
"""

import random
import threading

from kubernetes import watch
from kubernetes.client import ApiException
from loguru import logger

from node_annotator.core.constants import (
    CACHE_SYNC_POLL_INTERVAL,
    DEFAULT_WATCH_TIMEOUT,
    WATCH_MAX_BACKOFF,
)

AUTH_STATUSES = {401, 403}


def node_key(node):
    """Return the cache/queue key for a node (nodes are cluster scoped, so just the name)."""
    metadata = getattr(node, "metadata", None)
    name = getattr(metadata, "name", None)
    if not name:
        raise ValueError(f"object has no metadata.name: {node!r}")
    return name


class NodeInformer:
    def __init__(self, core_api, watch_timeout=DEFAULT_WATCH_TIMEOUT):
        self.core_api = core_api
        self.watch_timeout = watch_timeout

        self._store = {}
        self._store_lock = threading.Lock()
        self._handlers = []
        self._synced = threading.Event()

        self._active_watcher = None
        self._watcher_lock = threading.Lock()

    # --- Lister ---
    def get(self, name):
        with self._store_lock:
            return self._store.get(name)

    def list_keys(self):
        with self._store_lock:
            return sorted(self._store)

    def has_synced(self):
        return self._synced.is_set()

    def add_event_handler(self, on_add=None, on_update=None):
        self._handlers.append((on_add, on_update))

    # --- Event delivery ---
    def _notify(self, old, new):
        for on_add, on_update in self._handlers:
            try:
                if old is None:
                    if on_add:
                        on_add(new)
                elif on_update:
                    on_update(old, new)
            except Exception as e:
                logger.error(f"[informer] Event handler failed for {getattr(new.metadata, 'name', '?')}: {e}")

    def handle_event(self, event_type, node):
        """Apply a single watch event to the cache and notify handlers."""
        try:
            key = node_key(node)
        except ValueError as e:
            logger.error(f"[informer] Dropping {event_type} event: {e}")
            return

        if event_type in ("ADDED", "MODIFIED"):
            with self._store_lock:
                old = self._store.get(key)
                self._store[key] = node
            self._notify(old, node)
        elif event_type == "DELETED":
            with self._store_lock:
                self._store.pop(key, None)
            logger.debug(f"[informer] Node {key} deleted")
        else:
            logger.debug(f"[informer] Ignoring {event_type} event for {key}")

    def replace(self, nodes):
        """
        Replace the cache contents with a fresh list.

        New nodes are delivered as adds, surviving nodes as updates, and
        vanished nodes are dropped. Marks the cache as synced.
        """
        fresh = {}
        for node in nodes:
            try:
                fresh[node_key(node)] = node
            except ValueError as e:
                logger.error(f"[informer] Skipping listed object: {e}")

        with self._store_lock:
            previous = self._store
            self._store = dict(fresh)

        for key, node in fresh.items():
            self._notify(previous.get(key), node)

        self._synced.set()
        logger.info(f"[informer] Cache synced with {len(fresh)} nodes")

    def _list(self):
        listing = self.core_api.list_node()
        self.replace(listing.items or [])
        return getattr(getattr(listing, "metadata", None), "resource_version", None)

    # --- Control ---
    def request_stop(self):
        """Interrupt any open watch stream so run() can observe its stop event."""
        with self._watcher_lock:
            active = self._active_watcher
        if active is not None:
            active.stop()

    def run(self, stop_event):
        """
        List then watch nodes until stop_event is set.

        Transient errors back off exponentially with jitter, capped at
        WATCH_MAX_BACKOFF seconds.
        """
        resource_version = None
        backoff = 1

        while not stop_event.is_set() and not self._synced.is_set():
            try:
                resource_version = self._list()
                break
            except ApiException as e:
                if e.status in AUTH_STATUSES:
                    logger.error(f"[informer] Access denied listing nodes (status={e.status}). Check RBAC, retrying.")
                else:
                    logger.error(f"[informer] Initial node list failed: {e}")
            except Exception as e:
                logger.error(f"[informer] Unexpected error during initial node list: {e}")

            stop_event.wait(timeout=backoff * (0.5 + random.random()))
            backoff = min(backoff * 2, WATCH_MAX_BACKOFF)

        backoff = 1
        while not stop_event.is_set():
            watcher = watch.Watch()
            with self._watcher_lock:
                self._active_watcher = watcher
            try:
                stream = watcher.stream(
                    self.core_api.list_node,
                    resource_version=resource_version,
                    timeout_seconds=self.watch_timeout,
                )
                for event in stream:
                    if stop_event.is_set():
                        break

                    event_type = str(event.get("type", ""))
                    if event_type == "ERROR":
                        raw = event.get("raw_object") or {}
                        raise ApiException(status=raw.get("code", 500), reason=raw.get("message"))

                    node = event.get("object")
                    if node is None:
                        continue
                    metadata = getattr(node, "metadata", None)
                    if metadata is not None and metadata.resource_version:
                        resource_version = metadata.resource_version
                    self.handle_event(event_type, node)

                backoff = 1
            except ApiException as e:
                if e.status == 410:
                    logger.warning("[informer] Watch resource version expired, re-listing")
                    try:
                        resource_version = self._list()
                    except Exception as relist_error:
                        logger.error(f"[informer] Re-list after 410 failed: {relist_error}")
                        resource_version = None
                    continue

                if e.status in AUTH_STATUSES:
                    logger.error(f"[informer] Node watch denied (status={e.status}). Check RBAC, retrying.")
                else:
                    logger.error(f"[informer] Node watch error: {e}")
                stop_event.wait(timeout=backoff * (0.5 + random.random()))
                backoff = min(backoff * 2, WATCH_MAX_BACKOFF)
            except Exception as e:
                logger.error(f"[informer] Unexpected node watch error: {e}")
                stop_event.wait(timeout=backoff * (0.5 + random.random()))
                backoff = min(backoff * 2, WATCH_MAX_BACKOFF)
            finally:
                watcher.stop()
                with self._watcher_lock:
                    if self._active_watcher is watcher:
                        self._active_watcher = None

        logger.info("[informer] Stopped")


def wait_for_cache_sync(name, stop_event, *has_synced, poll_interval=CACHE_SYNC_POLL_INTERVAL):
    """
    Block until every has_synced callable returns True.

    Returns:
        bool: True once synced, False if stop_event was set first.
    """
    logger.info(f"[{name}] Waiting for caches to sync")
    while not stop_event.is_set():
        if all(fn() for fn in has_synced):
            logger.info(f"[{name}] Caches are synced")
            return True
        stop_event.wait(timeout=poll_interval)
    logger.error(f"[{name}] Unable to sync caches")
    return False
