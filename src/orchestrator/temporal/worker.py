"""
Temporal Worker - Separate process from API.

Run with:
    python -m src.orchestrator.temporal.worker
    python -m src.orchestrator.temporal.worker --no-schedule   # don't create the sweep schedule
"""

import argparse
import asyncio

import uvicorn
from fastapi import FastAPI
from temporalio.client import Client
from temporalio.worker import Worker

from src.orchestrator.core.config import get_settings
from src.orchestrator.core.db import dispose_engine
from src.orchestrator.core.logging import get_logger, setup_logging
from src.orchestrator.temporal.activities import check_job_timeout, list_provisioning_job_ids
from src.orchestrator.temporal.schedules import ensure_timeout_sweep_schedule
from src.orchestrator.temporal.workflows import JobTimeoutSweepWorkflow

logger = get_logger(__name__)

WORKER_HEALTH_PORT = 8001


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Provisioning orchestrator Temporal worker")
    parser.add_argument(
        "--no-schedule",
        action="store_true",
        help="Do not create the timeout sweep schedule on startup",
    )
    parser.add_argument(
        "--health-port",
        type=int,
        default=WORKER_HEALTH_PORT,
        help=f"Port for the worker health server (default: {WORKER_HEALTH_PORT})",
    )
    return parser.parse_args()


def create_worker(client: Client, task_queue: str) -> Worker:
    """Create the sweep worker.

    Activities are short database round-trips, so concurrency is kept
    modest to stay within the connection pool.
    """
    return Worker(
        client,
        task_queue=task_queue,
        workflows=[JobTimeoutSweepWorkflow],
        activities=[list_provisioning_job_ids, check_job_timeout],
        max_concurrent_activities=10,
        max_concurrent_workflow_tasks=10,
    )


def create_health_app(task_queue: str) -> FastAPI:
    """Lightweight app for container liveness/readiness probes."""
    health_app = FastAPI(title="Provisioning Worker Health")

    @health_app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "healthy",
            "service": "temporal-worker",
            "task_queue": task_queue,
        }

    @health_app.get("/ready")
    async def ready() -> dict[str, str]:
        return {"status": "ready"}

    return health_app


async def run_health_server(task_queue: str, port: int = WORKER_HEALTH_PORT) -> None:
    config = uvicorn.Config(
        create_health_app(task_queue),
        host="0.0.0.0",
        port=port,
        log_level="warning",
    )
    server = uvicorn.Server(config)
    logger.info("worker_health_server_starting", port=port)
    await server.serve()


async def main() -> None:
    args = parse_args()
    settings = get_settings()
    setup_logging(settings.debug)

    client = await Client.connect(
        settings.temporal_host,
        namespace=settings.temporal_namespace,
    )

    if not args.no_schedule:
        await ensure_timeout_sweep_schedule(client, settings)

    worker = create_worker(client, settings.temporal_task_queue)
    logger.info("worker_starting", task_queue=settings.temporal_task_queue)

    try:
        health_task = asyncio.create_task(
            run_health_server(settings.temporal_task_queue, args.health_port)
        )
        await worker.run()
        await health_task
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
