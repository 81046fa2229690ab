#!/usr/bin/env python3
"""
annotator.py (runner)
- Wires the node informer, work queue and annotater together and runs them
  until the stop event is set.
- Can be called by main.py or manually via the CLI (cli/entrypoint.py run).
"""

import threading

from loguru import logger

from node_annotator.core import config
from node_annotator.core.config_loader import load_settings, preview_yaml
from node_annotator.core.constants import QUEUE_NAME
from node_annotator.core.gce_client import get_instance
from node_annotator.core.kube_client import get_core_api
from node_annotator.core.retry_state import RetryState
from node_annotator.lib.annotator import NodeAnnotater
from node_annotator.lib.node_cache import NodeInformer
from node_annotator.lib.workqueue import RateLimitingQueue

# Set by build(); read by the HTTP API for readiness, metrics and resync.
informer = None
annotater = None


def build(settings, core_api=None, lookup=None):
    """
    Construct the informer and annotater from resolved settings.

    Args:
        settings (dict): Output of config_loader.load_settings().
        core_api: CoreV1Api override (defaults to the shared client).
        lookup: get_instance override (defaults to the Compute Engine client).
    """
    global informer, annotater

    core_api = core_api or get_core_api()
    informer = NodeInformer(core_api, watch_timeout=config.WATCH_TIMEOUT)
    queue = RateLimitingQueue(
        name=QUEUE_NAME,
        retry_state=RetryState(settings["base_retry_delay"], settings["max_retry_delay"]),
    )
    annotater = NodeAnnotater(
        core_api,
        informer,
        lookup or get_instance,
        queue=queue,
        annotation_key=settings["annotation_key"],
        dry_run=config.DRY_RUN,
    )
    return informer, annotater


def run(stop_event):
    """
    Run the annotater until stop_event is set, then drain and stop the informer.
    """
    preview_yaml(config.CONFIG_FILE, name="config.yml")
    settings = load_settings()
    logger.info(
        f"[runner] Starting node annotater: workers={settings['workers']} "
        f"annotation_key={settings['annotation_key']} dry_run={config.DRY_RUN}"
    )

    build(settings)
    informer_thread = threading.Thread(
        target=informer.run, args=(stop_event,), name="node-informer", daemon=True
    )
    informer_thread.start()

    try:
        annotater.run(settings["workers"], stop_event)
    finally:
        stop_event.set()
        informer.request_stop()
        informer_thread.join(timeout=5)
        logger.info("[runner] Node annotater stopped")
