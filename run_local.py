#!/usr/bin/env python3
"""
Local pipeline runner.

Runs the ingress FastAPI application with uvicorn against an in-memory
queue, and drains that queue in a background consumer thread that calls
the backend in-process. No AWS resources are needed.

Usage:
    python run_local.py
    python run_local.py --port 8000
    python run_local.py --visibility-timeout 10 --batch-size 5

Then publish with:
    curl -X POST http://127.0.0.1:8000/events -d 'hello'
"""

import argparse
import threading

import uvicorn

from event_pipeline.backend.service import get_backend
from event_pipeline.config.settings import settings
from event_pipeline.delivery.invoker import LocalBackendInvoker
from event_pipeline.delivery.worker import Consumer
from event_pipeline.handlers.publisher import get_queue
from event_pipeline.main import app
from event_pipeline.sqs_queue.memory import SECONDS_PER_DAY, InMemoryQueue
from event_pipeline.utils.logger import get_logger

logger = get_logger("run_local")


def consume_forever(consumer: Consumer, queue: InMemoryQueue, batch_size: int,
                    poll_interval: float, stop: threading.Event) -> None:
    """Drain the queue until stop is set, sleeping when it is empty."""
    while not stop.is_set():
        outcome = consumer.drain(queue, batch_size=batch_size)
        if not outcome.records:
            stop.wait(poll_interval)


def main():
    parser = argparse.ArgumentParser(
        description="Run the event pipeline locally with an in-memory queue"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level for uvicorn (default: info)"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.batch_size,
        help="Messages per consumer batch (default: BATCH_SIZE setting)"
    )
    parser.add_argument(
        "--visibility-timeout",
        type=float,
        default=settings.visibility_timeout,
        help="Seconds a leased message stays invisible (default: VISIBILITY_TIMEOUT setting)"
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=1.0,
        help="Seconds to wait when the queue is empty (default: 1.0)"
    )

    args = parser.parse_args()

    queue = InMemoryQueue(
        visibility_timeout=args.visibility_timeout,
        retention_period=settings.retention_period_days * SECONDS_PER_DAY
    )
    consumer = Consumer(
        invoker=LocalBackendInvoker(get_backend()),
        failure_policy=settings.backend_failure_policy
    )
    app.dependency_overrides[get_queue] = lambda: queue

    stop = threading.Event()
    worker = threading.Thread(
        target=consume_forever,
        args=(consumer, queue, args.batch_size, args.poll_interval, stop),
        name="consumer",
        daemon=True
    )
    worker.start()

    print("=" * 60)
    print("Starting event pipeline (local, in-memory queue)")
    print("=" * 60)
    print(f"Publish: POST http://{args.host}:{args.port}/events")
    print(f"Health:  http://{args.host}:{args.port}/health")
    print(f"Batch size: {args.batch_size}, visibility timeout: {args.visibility_timeout}s")
    print("=" * 60)

    try:
        uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)
    finally:
        stop.set()
        worker.join(timeout=5)
        logger.info("Local pipeline stopped", remaining=queue.approximate_size())


if __name__ == "__main__":
    main()
