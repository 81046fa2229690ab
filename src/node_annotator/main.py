#!/usr/bin/env python3
"""
main.py
- Main entrypoint for the node-annotator container.
- Launches:
    - HTTP API: health, readiness, Prometheus metrics and manual resync
    - Node annotater: informer + work queue + reconciliation workers
- SIGINT/SIGTERM trigger a graceful drain of in-flight syncs.
"""

import signal
import sys
import threading
from threading import Thread

import sentry_sdk
import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger

from node_annotator.core import config
from node_annotator.lib import annotator as annotator_metrics
from node_annotator.runner import annotator as runner


def setup_logging():
    logger.remove()
    logger.add(
        sys.stderr,
        level=config.LOG_LEVEL,
        colorize=True,
        format=config.LOG_FORMAT,
    )


def setup_sentry():
    if config.SENTRY_DSN:
        sentry_sdk.init(
            dsn=config.SENTRY_DSN,
            traces_sample_rate=1.0,
        )


# --- FastAPI Server ---
api = FastAPI()


@api.get("/healthz")
async def health():
    return {"status": "ok"}


@api.get("/readyz")
async def ready():
    if runner.informer is not None and runner.informer.has_synced():
        return {"status": "ready"}
    return JSONResponse(status_code=503, content={"status": "waiting for node cache"})


@api.post("/resync")
async def resync():
    if runner.annotater is None:
        return JSONResponse(status_code=503, content={"status": "not started"})
    count = runner.annotater.enqueue_all()
    return {"status": "triggered", "nodes": count}


@api.get("/metrics")
async def metrics():
    m = annotator_metrics.metrics_snapshot()
    queue_depth = len(runner.annotater.queue) if runner.annotater is not None else 0
    synced = 1 if runner.informer is not None and runner.informer.has_synced() else 0
    return PlainTextResponse(
        f"""# HELP node_annotater_syncs_total Total node sync attempts
# TYPE node_annotater_syncs_total counter
node_annotater_syncs_total {m['syncs_total']}
# HELP node_annotater_sync_errors_total Total node syncs that failed and were scheduled for retry
# TYPE node_annotater_sync_errors_total counter
node_annotater_sync_errors_total {m['sync_errors_total']}
# HELP node_annotater_annotation_writes_total Total instance-id annotation writes
# TYPE node_annotater_annotation_writes_total counter
node_annotater_annotation_writes_total {m['annotation_writes_total']}
# HELP node_annotater_last_sync_duration_seconds Duration of the last node sync in seconds
# TYPE node_annotater_last_sync_duration_seconds gauge
node_annotater_last_sync_duration_seconds {m['last_sync_duration_seconds']}
# HELP node_annotater_queue_depth Node keys waiting for a worker
# TYPE node_annotater_queue_depth gauge
node_annotater_queue_depth {queue_depth}
# HELP node_annotater_cache_synced 1 if the node cache has completed its initial list
# TYPE node_annotater_cache_synced gauge
node_annotater_cache_synced {synced}
""",
        media_type="text/plain"
    )


def start_api():
    uvicorn.run(api, host=config.API_HOST, port=config.API_PORT, log_level="warning")


def main():
    setup_logging()
    setup_sentry()

    stop_event = threading.Event()

    def handle_exit(signum, frame):
        logger.info(f"📴 Received signal {signum}, shutting down node annotater...")
        stop_event.set()

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    Thread(target=start_api, daemon=True).start()
    runner.run(stop_event)


if __name__ == "__main__":
    main()
