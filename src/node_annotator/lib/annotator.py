#!/usr/bin/env python3
"""
annotator.py
- Main reconciliation logic for the node instance-id annotation.
- Each node's spec.providerID (gce://project/zone/name) is resolved against the
  Compute Engine API and the numeric instance id is written to the node's
  annotations, but only when it differs from what is already stored.
- Nodes are enqueued on add, and on update only when their bootID changed.
- Failures are retried per node with exponential backoff, indefinitely.
"""

import copy
import threading
import time

from loguru import logger

from node_annotator.core.constants import INSTANCE_ID_ANNOTATION_KEY, QUEUE_NAME
from node_annotator.lib.identity import resolve_instance_id
from node_annotator.lib.node_cache import node_key, wait_for_cache_sync
from node_annotator.lib.workqueue import RateLimitingQueue

# --- Metrics ---
syncs_total = 0
sync_errors_total = 0
annotation_writes_total = 0
last_sync_duration_seconds = 0.0
_metrics_lock = threading.Lock()


def _boot_id(node):
    status = getattr(node, "status", None)
    node_info = getattr(status, "node_info", None)
    return getattr(node_info, "boot_id", None)


def _provider_id(node):
    spec = getattr(node, "spec", None)
    return getattr(spec, "provider_id", None)


class NodeAnnotater:
    """
    Keeps the instance-id annotation on every node in sync with GCE.

    Args:
        core_api: kubernetes CoreV1Api used for node writes (replace_node).
        informer: NodeInformer providing the node cache and event callbacks.
        get_instance: callable(project, zone, name) returning a compute Instance.
        queue: RateLimitingQueue; a default one is created if omitted.
        annotation_key (str): Annotation that holds the instance id.
        dry_run (bool): Log intended writes instead of issuing them.
    """

    def __init__(self, core_api, informer, get_instance, queue=None,
                 annotation_key=INSTANCE_ID_ANNOTATION_KEY, dry_run=False):
        self.core_api = core_api
        self.informer = informer
        self.get_instance = get_instance
        self.queue = queue if queue is not None else RateLimitingQueue(name=QUEUE_NAME)
        self.annotation_key = annotation_key
        self.dry_run = dry_run

        informer.add_event_handler(on_add=self.on_add, on_update=self.on_update)

    # --- Event handlers ---
    def on_add(self, node):
        self.enqueue(node)

    def on_update(self, old_node, new_node):
        # A bootID change means the node restarted; re-verify its identity.
        if _boot_id(new_node) != _boot_id(old_node):
            self.enqueue(new_node)

    def enqueue(self, node):
        try:
            key = node_key(node)
        except ValueError as e:
            logger.error(f"[annotater] Couldn't get key for object: {e}")
            return
        self.queue.add(key)

    def enqueue_all(self):
        """Enqueue every node currently in the cache (manual resync)."""
        keys = self.informer.list_keys()
        for key in keys:
            self.queue.add(key)
        logger.info(f"[annotater] Resync enqueued {len(keys)} nodes")
        return len(keys)

    # --- Reconciliation ---
    def sync(self, key):
        """
        Reconcile a single node.

        Returns normally when the node is gone, already annotated correctly,
        or was updated. Raises on resolution or write failure so the caller
        can schedule a retry.
        """
        global annotation_writes_total

        node = self.informer.get(key)
        if node is None:
            logger.debug(f"[annotater] Node {key} no longer exists, nothing to do")
            return

        instance_id = resolve_instance_id(_provider_id(node), self.get_instance)

        annotations = node.metadata.annotations
        if annotations and annotations.get(self.annotation_key) == instance_id:
            # node restarted but no update of the instance id required
            logger.debug(f"[annotater] Node {key} already annotated with {instance_id}")
            return

        if self.dry_run:
            logger.info(f"[annotater] (Dry Run) Would set {self.annotation_key}={instance_id} on {key}")
            return

        updated = copy.deepcopy(node)
        if updated.metadata.annotations is None:
            updated.metadata.annotations = {}
        updated.metadata.annotations[self.annotation_key] = instance_id

        self.core_api.replace_node(key, updated)
        with _metrics_lock:
            annotation_writes_total += 1
        logger.info(f"[annotater] ✅ Annotated node {key} with {self.annotation_key}={instance_id}")

    def process_next_work_item(self):
        global syncs_total, sync_errors_total, last_sync_duration_seconds

        key, shutdown = self.queue.get()
        if shutdown:
            return False

        start_time = time.time()
        try:
            self.sync(key)
            self.queue.forget(key)
        except Exception as e:
            delay = self.queue.add_rate_limited(key)
            logger.error(f"[annotater] Sync {key} failed with: {e} (retry {self.queue.num_requeues(key)} in {delay:.1f}s)")
            with _metrics_lock:
                sync_errors_total += 1
        finally:
            self.queue.done(key)
            with _metrics_lock:
                syncs_total += 1
                last_sync_duration_seconds = time.time() - start_time

        return True

    def work(self):
        while self.process_next_work_item():
            pass

    # --- Entrypoint ---
    def run(self, workers, stop_event):
        """
        Wait for the node cache, start workers and block until stop_event is set.

        On shutdown the queue stops handing out keys and in-flight syncs are
        allowed to finish before this returns.
        """
        if not wait_for_cache_sync(QUEUE_NAME, stop_event, self.informer.has_synced):
            self.queue.shut_down()
            return

        threads = [
            threading.Thread(target=self.work, name=f"{QUEUE_NAME}-worker-{i}", daemon=True)
            for i in range(workers)
        ]
        for t in threads:
            t.start()
        logger.info(f"[annotater] Started {workers} workers")

        stop_event.wait()

        logger.info("[annotater] Shutdown requested, draining in-flight syncs")
        self.queue.shut_down()
        for t in threads:
            t.join()
        logger.info("[annotater] All workers stopped")


def metrics_snapshot():
    with _metrics_lock:
        return {
            "syncs_total": syncs_total,
            "sync_errors_total": sync_errors_total,
            "annotation_writes_total": annotation_writes_total,
            "last_sync_duration_seconds": last_sync_duration_seconds,
        }
